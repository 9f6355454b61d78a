#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Migration validation for destructive operations.

Classifies the statements a migration ran (or would run, in pretend mode)
and reports the ones that destroy data: DROP TABLE, DROP COLUMN and
TRUNCATE. Warnings are informational; they never stop a migration.
"""
import re
from dataclasses import dataclass
from typing import Iterable, List

import sqlparse

from tablewright.schema.grammars import WarningLevel

from .migration import MigrationUnit


@dataclass
class ValidationWarning:
    """
    Warning from migration validation.

    Attributes:
        level: Severity level (INFO, WARNING, ERROR)
        message: Human-readable warning message
        migration: Identity of the migration that triggered the warning
        category: Warning category ('destructive')
        statement: Statement that triggered the warning

    Example:
        >>> warning = ValidationWarning(
        ...     level=WarningLevel.WARNING,
        ...     message="Drops table 'flights' (all table data will be deleted)",
        ...     migration="default.2024_01_05_120000_drop_flights",
        ...     category="destructive",
        ...     statement='DROP TABLE "flights"',
        ... )
        >>> print(repr(warning))
        [WARNING] default.2024_01_05_120000_drop_flights: Drops table 'flights' ...
    """
    level: WarningLevel
    message: str
    migration: str
    category: str
    statement: str = ''

    def __repr__(self) -> str:
        return f"[{self.level.value}] {self.migration}: {self.message}"


class MigrationValidator:
    """
    Flags destructive statements.

    Attributes:
        dialect: Database dialect name ('sqlite', 'postgresql', ...)

    Example:
        >>> validator = MigrationValidator('sqlite')
        >>> warnings = validator.validate(unit, ['DROP TABLE "flights"'])
        >>> [w.category for w in warnings]
        ['destructive']
    """

    DROP_COLUMN_PATTERN = re.compile(r'\bDROP\s+COLUMN\s+(?:IF\s+EXISTS\s+)?(\S+)', re.IGNORECASE)
    DROP_TABLE_PATTERN = re.compile(r'^\s*DROP\s+TABLE\s+(?:IF\s+EXISTS\s+)?(\S+)', re.IGNORECASE)
    TRUNCATE_PATTERN = re.compile(r'^\s*TRUNCATE\s+(?:TABLE\s+)?(\S+)', re.IGNORECASE)

    def __init__(self, dialect: str = 'sqlite'):
        self.dialect = dialect.lower()

    def validate(self, unit: MigrationUnit, statements: Iterable[str]) -> List[ValidationWarning]:
        """
        Check statements for destructive operations.

        Args:
            unit: Migration that produced the statements
            statements: Executed or recorded statements

        Returns:
            List of ValidationWarning objects (empty if no issues)
        """
        warnings = []
        for statement in statements:
            warnings.extend(self._check_statement(unit.identity, statement))
        return warnings

    def classify(self, statement: str) -> str:
        """
        Statement type as reported by sqlparse ('CREATE', 'ALTER', 'DROP',
        'INSERT', ...), or 'UNKNOWN'.
        """
        parsed = sqlparse.parse(statement)
        if not parsed:
            return 'UNKNOWN'
        kind = parsed[0].get_type()
        if kind == 'UNKNOWN' and self.TRUNCATE_PATTERN.match(statement):
            return 'TRUNCATE'
        return kind

    def _check_statement(self, identity: str, statement: str) -> List[ValidationWarning]:
        kind = self.classify(statement)
        warnings = []

        if kind == 'DROP':
            match = self.DROP_TABLE_PATTERN.match(statement)
            if match:
                warnings.append(self._warning(
                    identity, statement,
                    f"Drops table {match.group(1)} (all table data will be deleted)",
                ))

        elif kind == 'ALTER':
            for match in self.DROP_COLUMN_PATTERN.finditer(statement):
                warnings.append(self._warning(
                    identity, statement,
                    f"Drops column {match.group(1).rstrip(',')} (potential data loss)",
                ))

        elif kind == 'TRUNCATE':
            match = self.TRUNCATE_PATTERN.match(statement)
            warnings.append(self._warning(
                identity, statement,
                f"Truncates table {match.group(1)} (all rows will be deleted)",
            ))

        return warnings

    @staticmethod
    def _warning(identity: str, statement: str, message: str) -> ValidationWarning:
        return ValidationWarning(
            level=WarningLevel.WARNING,
            message=message,
            migration=identity,
            category='destructive',
            statement=statement,
        )
