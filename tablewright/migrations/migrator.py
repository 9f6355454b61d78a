#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Migrator: runs pending migrations and rolls back batches.

Every run holds the ledger lock, executes units one at a time in order and
stops at the first failure. Migrations that completed before the failure
stay applied.
"""
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional

from tablewright.database import DatabaseManager

from .ledger import Ledger
from .migration import MigrationUnit
from .migration_executor import MigrationExecutor, MigrationResult
from .migration_manager import MigrationManager


@dataclass
class MigrationStatus:
    """
    One row of the status report.

    Attributes:
        identity: Migration identity
        state: 'applied', 'pending' or 'missing' (in the ledger, no file)
        batch: Batch number for applied and missing entries
    """
    identity: str
    state: str
    batch: Optional[int] = None


class Migrator:
    """
    Applies and rolls back migrations.

    Attributes:
        manager: MigrationManager providing the units
        databases: DatabaseManager for migration connections
        ledger: Ledger on the default connection
        executor: MigrationExecutor running single units

    Example:
        migrator = Migrator(manager, databases)
        await migrator.migrate()
        await migrator.rollback(steps=2)
    """

    def __init__(self, manager: MigrationManager, databases: DatabaseManager,
                 table: str = 'migrations'):
        self.logger = logging.getLogger(__name__)
        self.manager = manager
        self.databases = databases
        self.ledger = Ledger(databases.get(), table)
        self.executor = MigrationExecutor(databases, self.ledger)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def migrate(self, pretend: bool = False, step: bool = False) -> List[MigrationResult]:
        """
        Apply all pending migrations as one batch.

        Args:
            pretend: Record the statements instead of executing them
            step: Give each migration its own batch so they can be rolled
                back one at a time

        Returns:
            Results in run order (empty when nothing is pending)

        Raises:
            LedgerLockError: If another process is migrating
            SchemaError: On the first failing migration
        """
        async with self._guard(pretend):
            return await self._migrate(pretend, step)

    async def rollback(self, steps: int = 1, pretend: bool = False) -> List[MigrationResult]:
        """
        Roll back the newest `steps` batches, newest migration first.

        Raises:
            MigrationError: If a ledger entry has no matching migration
        """
        async with self._guard(pretend):
            entries = await self.ledger.entries_for_last_batches(steps)
            return await self._run_down(entries, pretend)

    async def reset(self, pretend: bool = False) -> List[MigrationResult]:
        """Roll back every applied migration."""
        async with self._guard(pretend):
            return await self._reset(pretend)

    async def refresh(self, step: bool = False) -> List[MigrationResult]:
        """Reset, then migrate from scratch."""
        async with self._guard(False):
            results = await self._reset(False)
            results.extend(await self._migrate(False, step))
            return results

    async def status(self) -> List[MigrationStatus]:
        """Applied and pending migrations, plus ledger entries without a file."""
        entries = await self.ledger.applied()
        batches = {entry.migration: entry.batch for entry in entries}
        rows = [
            MigrationStatus(
                identity=unit.identity,
                state='applied' if unit.identity in batches else 'pending',
                batch=batches.get(unit.identity),
            )
            for unit in self.manager.units
        ]
        rows.extend(
            MigrationStatus(identity=identity, state='missing', batch=batches[identity])
            for identity in self.manager.get_orphans(batches)
        )
        return rows

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _guard(self, pretend: bool) -> AsyncIterator[None]:
        if pretend:
            yield
            return
        await self.ledger.ensure_table()
        async with self.ledger.lock():
            yield

    async def _migrate(self, pretend: bool, step: bool) -> List[MigrationResult]:
        applied = [entry.migration for entry in await self.ledger.applied()]
        for identity in self.manager.get_orphans(applied):
            self.logger.warning(
                'Ledger entry %s has no migration file', identity
            )

        pending = self.manager.get_pending(applied)
        if not pending:
            self.logger.info('Nothing to migrate')
            return []

        batch = await self.ledger.next_batch_number()
        self.logger.info(
            'Running %d migration(s) in batch %d%s',
            len(pending), batch, ' (PRETEND)' if pretend else '',
        )
        return await self._run_up(pending, batch, pretend, step)

    async def _run_up(self, units: List[MigrationUnit], batch: int,
                      pretend: bool, step: bool) -> List[MigrationResult]:
        results = []
        for unit in units:
            results.append(await self.executor.run(unit, 'up', batch=batch, pretend=pretend))
            if step:
                batch += 1
        return results

    async def _reset(self, pretend: bool) -> List[MigrationResult]:
        entries = sorted(
            await self.ledger.applied(), key=lambda e: (e.batch, e.id), reverse=True
        )
        return await self._run_down(entries, pretend)

    async def _run_down(self, entries, pretend: bool) -> List[MigrationResult]:
        if not entries:
            self.logger.info('Nothing to roll back')
            return []

        units = self.manager.get_rollback(entries)
        self.logger.info(
            'Rolling back %d migration(s)%s', len(units), ' (PRETEND)' if pretend else ''
        )
        results = []
        for unit in units:
            results.append(await self.executor.run(unit, 'down', pretend=pretend))
        return results

    async def close(self) -> None:
        await self.databases.close()

