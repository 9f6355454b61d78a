#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Migration executor with transaction management and tracking.

Runs one migration's up() or down() against its connection, inside a
transaction where the dialect can roll back DDL, and records the result
in the ledger. Supports pretend mode for previewing the statements a
migration would run without executing them.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError

from tablewright.database import DatabaseManager
from tablewright.errors import ExecutionError, SchemaError
from tablewright.schema.builder import Schema

from .ledger import Ledger
from .migration import MigrationUnit
from .migration_validator import MigrationValidator

DIRECTIONS = ('up', 'down')


@dataclass
class MigrationResult:
    """
    Result of migration execution.

    Attributes:
        identity: Migration identity
        direction: 'up' or 'down'
        success: Whether migration completed successfully
        execution_time_ms: Execution time in milliseconds
        statements: Statements executed (or recorded, in pretend mode)
        warnings: Compile and validation warnings
        pretend: Whether statements were only recorded
        error_message: Error message if failed (None if success)
    """
    identity: str
    direction: str
    success: bool
    execution_time_ms: int
    statements: list[str] = field(default_factory=list)
    warnings: list[Any] = field(default_factory=list)
    pretend: bool = False
    error_message: Optional[str] = None


class MigrationExecutor:
    """
    Executes migrations with transaction safety.

    Each unit runs in its own scoped transaction when its database supports
    transactional DDL and the migration allows it. The ledger write joins
    that transaction when the ledger lives on the same database, so a
    migration and its record commit or roll back together.

    Attributes:
        databases: DatabaseManager resolving migration connections
        ledger: Ledger receiving applied/rolled-back records
        logger: Logger for execution tracking

    Example:
        executor = MigrationExecutor(databases, ledger)
        result = await executor.run(unit, 'up', batch=3)
        result = await executor.run(unit, 'down')
    """

    def __init__(self, databases: DatabaseManager, ledger: Ledger,
                 validator: Optional[MigrationValidator] = None):
        """
        Initialize migration executor.

        Args:
            databases: DatabaseManager instance
            ledger: Ledger for the default connection
            validator: Validator for executed statements (defaults to one
                for the ledger's dialect)
        """
        self.databases = databases
        self.ledger = ledger
        self.validator = validator or MigrationValidator(ledger.database.dialect)
        self.logger = logging.getLogger(__name__)

    async def run(
        self,
        unit: MigrationUnit,
        direction: str,
        batch: Optional[int] = None,
        pretend: bool = False,
    ) -> MigrationResult:
        """
        Run a migration's up() or down().

        Args:
            unit: Migration to run
            direction: 'up' or 'down'
            batch: Batch number to record (required for 'up' unless pretend)
            pretend: Record statements instead of executing them; the
                ledger is not touched

        Returns:
            MigrationResult with statements, warnings and execution time

        Raises:
            SchemaError: Any definition, compile or execution error, with
                the migration identity attached
            ExecutionError: Wrapping a driver error raised outside the
                schema gateway
        """
        if direction not in DIRECTIONS:
            raise ValueError(f"direction must be 'up' or 'down', got {direction!r}")
        if direction == 'up' and batch is None and not pretend:
            raise ValueError(f"Applying {unit.identity} requires a batch number")

        migration = unit.migration
        database = self.databases.get(migration.connection)
        transactional = database.supports_transactional_ddl and migration.within_transaction
        start_time = time.time()
        schema = None

        self.logger.info(
            '%s migration %s%s',
            'Applying' if direction == 'up' else 'Rolling back',
            unit.identity,
            ' (PRETEND)' if pretend else '',
        )

        try:
            async with database.begin(transactional=transactional) as conn:
                schema = Schema(conn, connections=self.databases, pretend=pretend)
                await getattr(migration, direction)(schema)

                if not pretend:
                    shared = conn if database is self.ledger.database else None
                    if direction == 'up':
                        await self.ledger.record(unit.identity, batch, connection=shared)
                    else:
                        await self.ledger.remove(unit.identity, connection=shared)

        except SchemaError as e:
            if e.migration is None:
                e.migration = unit.identity
            self._log_failure(unit, direction, start_time, e)
            raise

        except SQLAlchemyError as e:
            error = ExecutionError(
                f"Database error: {getattr(e, 'orig', None) or e}",
                original_error=e,
                migration=unit.identity,
                statement=getattr(e, 'statement', None),
            )
            self._log_failure(unit, direction, start_time, error)
            raise error from e

        execution_time_ms = int((time.time() - start_time) * 1000)
        warnings = list(schema.warnings)
        warnings.extend(self.validator.validate(unit, schema.log))
        for warning in warnings[len(schema.warnings):]:
            self.logger.warning('%r', warning)

        self.logger.info(
            '%s migration %s (%dms, %d statements)',
            'Applied' if direction == 'up' else 'Rolled back',
            unit.identity,
            execution_time_ms,
            len(schema.log),
        )

        return MigrationResult(
            identity=unit.identity,
            direction=direction,
            success=True,
            execution_time_ms=execution_time_ms,
            statements=list(schema.log),
            warnings=warnings,
            pretend=pretend,
        )

    def _log_failure(self, unit: MigrationUnit, direction: str,
                     start_time: float, error: SchemaError) -> None:
        execution_time_ms = int((time.time() - start_time) * 1000)
        self.logger.error(
            'Failed to %s migration %s after %dms: %s',
            'apply' if direction == 'up' else 'roll back',
            unit.identity,
            execution_time_ms,
            error,
        )
