"""
tablewright: schema migrations and seeding on SQLAlchemy asyncio.

This package provides:
- Schema, Blueprint: Table definition gateway and fluent blueprint
- Database, DatabaseManager: Async connections per named database
- Migration, MigrationManager, Migrator: Versioned schema changes
- Seeder, SeederRunner: Data seeding
- SchemaError and subclasses: Error hierarchy
"""

from .errors import (
    CompileError,
    DefinitionError,
    DependentObjectError,
    DuplicateColumnError,
    DuplicateIndexNameError,
    ExecutionError,
    LedgerLockError,
    MigrationError,
    RecursionLimitError,
    SchemaError,
)
from .database import Connection, Database, DatabaseManager
from .schema import Blueprint, ColumnType, Expression, ForeignKeyAction, IndexKind
from .schema.builder import Schema
from .migrations import Migration, MigrationManager, Migrator
from .seeding import Seeder, SeederRunner

__version__ = '1.0.0'

__all__ = [
    'Blueprint',
    'ColumnType',
    'CompileError',
    'Connection',
    'Database',
    'DatabaseManager',
    'DefinitionError',
    'DependentObjectError',
    'DuplicateColumnError',
    'DuplicateIndexNameError',
    'ExecutionError',
    'Expression',
    'ForeignKeyAction',
    'IndexKind',
    'LedgerLockError',
    'Migration',
    'MigrationError',
    'MigrationManager',
    'Migrator',
    'RecursionLimitError',
    'Schema',
    'SchemaError',
    'Seeder',
    'SeederRunner',
]
