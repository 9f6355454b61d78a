#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Schema migration exceptions.

This module defines the exception hierarchy for schema definition,
compilation, execution, migration tracking and seeding, enabling precise
error handling at each layer.

Definition and compile errors are raised before any statement is sent to
the database. Execution errors wrap the driver's native error. Every error
can carry the migration identity and the failing statement so the command
line can report both.
"""

from typing import Any, Optional


class SchemaError(Exception):
    """
    Base exception for all schema and migration errors.

    Attributes:
        code: Stable error code (e.g., "DEFINITION_ERROR")
        message: Human-readable error message
        details: Optional dict of additional context
        migration: Identity of the migration being run (attached later)
        statement: DDL statement that failed (attached later)
    """

    code = "SCHEMA_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        *,
        migration: Optional[str] = None,
        statement: Optional[str] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        self.migration = migration
        self.statement = statement
        super().__init__(message)

    def __str__(self) -> str:
        text = f"[{self.code}] {self.message}"
        if self.migration:
            text += f" (migration: {self.migration})"
        if self.statement:
            text += f" (statement: {self.statement})"
        return text


class DefinitionError(SchemaError):
    """
    Malformed column, index or table definition.

    Raised when:
    - A type parameter is missing or out of range (char length, decimal scale)
    - A modifier does not apply to the column type
    - change() or rename_column() targets a column that does not exist
    - rename_column() is used on a table with enum columns
    """

    code = "DEFINITION_ERROR"


class DuplicateColumnError(SchemaError):
    """Column name collides within one blueprint or with the existing table."""

    code = "DUPLICATE_COLUMN"


class DuplicateIndexNameError(SchemaError):
    """Index or constraint name collides within one blueprint or table."""

    code = "DUPLICATE_INDEX_NAME"


class DependentObjectError(SchemaError):
    """
    Drop blocked by a dependent object.

    Raised when a column is still used by an index, primary key or foreign
    key (in either direction). The dependent object must be dropped first.
    """

    code = "DEPENDENT_OBJECT"


class CompileError(SchemaError):
    """Target dialect cannot represent the requested operation."""

    code = "COMPILE_ERROR"


class ExecutionError(SchemaError):
    """
    Database rejected a statement.

    Attributes:
        original_error: The driver exception that caused this error
    """

    code = "EXECUTION_ERROR"

    def __init__(
        self,
        message: str,
        original_error: Optional[Exception] = None,
        details: Optional[dict[str, Any]] = None,
        **kwargs: Any,
    ) -> None:
        self.original_error = original_error
        super().__init__(message, details, **kwargs)


class RecursionLimitError(SchemaError):
    """Seeder call chain exceeded the configured depth."""

    code = "RECURSION_LIMIT"


class MigrationError(SchemaError):
    """
    Migration discovery or ledger inconsistency.

    Raised when:
    - A migration file does not define exactly one Migration subclass
    - Two migrations share an identity
    - A ledger entry refers to a migration that cannot be located
    """

    code = "MIGRATION_ERROR"


class LedgerLockError(MigrationError):
    """Another process holds the migration ledger lock."""

    code = "LEDGER_LOCKED"
