"""
Schema migrations package.

This package provides:
- Migration: Base class for migration files
- MigrationUnit: A migration with its identity
- LedgerEntry: Data model for applied migrations
- MigrationManager: Discovery, registration and ordering of migrations
- Ledger: Applied-migration records and the migration lock
- MigrationExecutor: Execution of one migration with transaction safety
- MigrationResult: Data model for execution results
- MigrationValidator: Destructive statement checks
- Migrator: migrate, rollback, reset, refresh and status
"""

from .migration import LedgerEntry, Migration, MigrationUnit
from .migration_manager import MigrationManager
from .ledger import Ledger
from .migration_validator import MigrationValidator, ValidationWarning
from .migration_executor import MigrationExecutor, MigrationResult
from .migrator import MigrationStatus, Migrator

__all__ = [
    'Ledger',
    'LedgerEntry',
    'Migration',
    'MigrationExecutor',
    'MigrationManager',
    'MigrationResult',
    'MigrationStatus',
    'MigrationUnit',
    'MigrationValidator',
    'Migrator',
    'ValidationWarning',
]
