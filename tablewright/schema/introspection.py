#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Table introspection snapshots.

Reads the current shape of a table through the SQLAlchemy inspector and
freezes it into small value objects. Blueprints for alter operations are
pre-populated with a TableState so the compiler can validate column and
index references without touching the database.

The inspector is synchronous; call inspect_table() through
AsyncConnection.run_sync().
"""

import re
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import inspect
from sqlalchemy.sql import sqltypes


@dataclass(frozen=True)
class ColumnState:
    """One existing column."""
    name: str
    type_name: str
    nullable: bool
    is_enum: bool = False


@dataclass(frozen=True)
class IndexState:
    """
    One existing index or constraint.

    Attributes:
        name: Index/constraint name (None for unnamed SQLite constraints)
        kind: 'primary', 'unique', 'index' or 'foreign'
        columns: Constrained columns in key order
        table: Table the index belongs to
        referenced_table: For foreign keys, the referenced table
        referenced_columns: For foreign keys, the referenced columns
    """
    name: Optional[str]
    kind: str
    columns: tuple[str, ...]
    table: str
    referenced_table: Optional[str] = None
    referenced_columns: tuple[str, ...] = ()


@dataclass(frozen=True)
class TableState:
    """
    Snapshot of one table.

    Attributes:
        name: Table name
        columns: Columns in table order
        indexes: Primary key, unique/plain indexes and outgoing foreign keys
        referenced_by: Foreign keys on other tables pointing at this table
    """
    name: str
    columns: tuple[ColumnState, ...]
    indexes: tuple[IndexState, ...] = ()
    referenced_by: tuple[IndexState, ...] = field(default=())

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def has_column(self, name: str) -> bool:
        return any(c.name.lower() == name.lower() for c in self.columns)

    def get_column(self, name: str) -> Optional[ColumnState]:
        for column in self.columns:
            if column.name.lower() == name.lower():
                return column
        return None

    def has_index(self, name: str) -> bool:
        return any(i.name == name for i in self.indexes)

    @property
    def has_enum_columns(self) -> bool:
        return any(c.is_enum for c in self.columns)

    def dependents_of(self, column: str) -> list[IndexState]:
        """Indexes and foreign keys (both directions) that use `column`."""
        column = column.lower()
        dependents = [
            index for index in self.indexes
            if column in (c.lower() for c in index.columns)
        ]
        dependents.extend(
            fk for fk in self.referenced_by
            if column in (c.lower() for c in fk.referenced_columns)
        )
        return dependents


# status IN ('a', 'b')
IN_LIST_CHECK = re.compile(r'["`\[]?(\w+)["`\]]?\s+IN\s*\(', re.IGNORECASE)

# PostgreSQL rewrites IN lists: (status)::text = ANY ((ARRAY[...])::text[])
ANY_ARRAY_CHECK = re.compile(
    r'\(?"?(\w+)"?\)?::[\w ]+?\s*=\s*ANY\s*\(+ARRAY\[', re.IGNORECASE
)


def _enum_columns(inspector, table: str) -> set[str]:
    try:
        checks = inspector.get_check_constraints(table)
    except NotImplementedError:
        return set()

    names = set()
    for check in checks:
        sqltext = check.get('sqltext') or ''
        for pattern in (IN_LIST_CHECK, ANY_ARRAY_CHECK):
            for match in pattern.finditer(sqltext):
                names.add(match.group(1).lower())
    return names


def inspect_table(sync_conn, table: str) -> Optional[TableState]:
    """
    Build a TableState for `table`, or None if it does not exist.

    Args:
        sync_conn: Synchronous SQLAlchemy connection (inside run_sync)
        table: Table name

    Returns:
        TableState snapshot or None
    """
    inspector = inspect(sync_conn)
    if not inspector.has_table(table):
        return None

    enum_names = _enum_columns(inspector, table)
    columns = tuple(
        ColumnState(
            name=col['name'],
            type_name=str(col['type']),
            nullable=bool(col.get('nullable', True)),
            is_enum=(
                isinstance(col['type'], sqltypes.Enum)
                or col['name'].lower() in enum_names
            ),
        )
        for col in inspector.get_columns(table)
    )

    indexes: list[IndexState] = []
    seen_names: set[str] = set()

    pk = inspector.get_pk_constraint(table) or {}
    if pk.get('constrained_columns'):
        indexes.append(IndexState(
            name=pk.get('name'),
            kind='primary',
            columns=tuple(pk['constrained_columns']),
            table=table,
        ))

    for index in inspector.get_indexes(table):
        if index.get('name') in seen_names:
            continue
        seen_names.add(index.get('name'))
        indexes.append(IndexState(
            name=index.get('name'),
            kind='unique' if index.get('unique') else 'index',
            columns=tuple(c for c in index.get('column_names', []) if c),
            table=table,
        ))

    for unique in inspector.get_unique_constraints(table):
        if unique.get('name') in seen_names and unique.get('name') is not None:
            continue
        seen_names.add(unique.get('name'))
        indexes.append(IndexState(
            name=unique.get('name'),
            kind='unique',
            columns=tuple(unique.get('column_names', [])),
            table=table,
        ))

    for fk in inspector.get_foreign_keys(table):
        indexes.append(_foreign_state(table, fk))

    referenced_by = []
    for other in inspector.get_table_names():
        for fk in inspector.get_foreign_keys(other):
            if fk.get('referred_table') == table:
                referenced_by.append(_foreign_state(other, fk))

    return TableState(
        name=table,
        columns=columns,
        indexes=tuple(indexes),
        referenced_by=tuple(referenced_by),
    )


def _foreign_state(table: str, fk: dict) -> IndexState:
    return IndexState(
        name=fk.get('name'),
        kind='foreign',
        columns=tuple(fk.get('constrained_columns', [])),
        table=table,
        referenced_table=fk.get('referred_table'),
        referenced_columns=tuple(fk.get('referred_columns', [])),
    )
