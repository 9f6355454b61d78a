"""
Migration data models.

This module defines the core data structures for managing migrations:
- Migration: Base class authors subclass in migration files
- MigrationUnit: A discovered or registered migration with its identity
- LedgerEntry: A migration recorded as applied in the ledger table

These models are used by MigrationManager, the Ledger and the Migrator to
track schema changes over time.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional


class Migration:
    """
    Base class for one reversible schema change.

    Subclass it in a migration file and implement up() and down(). Both
    receive a Schema bound to the migration's connection.

    Attributes:
        connection: Named connection to run on (None for the default)
        within_transaction: Run inside a transaction where the dialect
            supports transactional DDL

    Example:
        >>> class CreateFlightsTable(Migration):
        ...     async def up(self, schema):
        ...         await schema.create('flights', lambda table: (
        ...             table.id(),
        ...             table.string('name'),
        ...         ))
        ...
        ...     async def down(self, schema):
        ...         await schema.drop_if_exists('flights')
    """

    connection: Optional[str] = None
    within_transaction: bool = True

    async def up(self, schema) -> None:
        """Apply the change."""
        raise NotImplementedError(f"{type(self).__name__} does not implement up()")

    async def down(self, schema) -> None:
        """Reverse the change. The default does nothing."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"


@dataclass
class MigrationUnit:
    """
    A migration with its identity.

    Attributes:
        namespace: Migration path namespace (e.g. 'default', 'billing')
        name: File stem, e.g. '2024_01_05_120000_create_flights_table'
        migration: Migration instance
        file_path: Source file (None for registered migrations)

    Example:
        >>> unit = MigrationUnit('default', '2024_01_05_120000_create_flights', m)
        >>> unit.identity
        'default.2024_01_05_120000_create_flights'
    """

    namespace: str
    name: str
    migration: Migration
    file_path: Optional[Path] = field(default=None, compare=False)

    def __post_init__(self):
        if not self.namespace or '.' in self.namespace:
            raise ValueError(f"Invalid migration namespace: {self.namespace!r}")
        if not self.name:
            raise ValueError("Migration name must not be empty")

    @property
    def identity(self) -> str:
        return f"{self.namespace}.{self.name}"

    @property
    def sort_key(self) -> tuple[str, str]:
        return (self.name, self.namespace)

    def __lt__(self, other: 'MigrationUnit') -> bool:
        if not isinstance(other, MigrationUnit):
            return NotImplemented
        return self.sort_key < other.sort_key

    def __repr__(self) -> str:
        return f"<MigrationUnit({self.identity})>"


@dataclass
class LedgerEntry:
    """
    A row of the migrations ledger table.

    Attributes:
        id: Insertion order
        migration: Migration identity
        batch: Batch number the migration was applied in
        applied_at: When it was applied (UTC)
    """

    id: int
    migration: str
    batch: int
    applied_at: Optional[datetime] = None

    def __repr__(self) -> str:
        return f"<LedgerEntry({self.migration}, batch {self.batch})>"
