"""
Schema definition package.

This package provides:
- Blueprint: Fluent table definition handed to schema callbacks
- ColumnDefinition, IndexDefinition: Column and index descriptors
- ColumnType, IndexKind, ForeignKeyAction, Expression: Descriptor enums
- TableState: Introspected table snapshot
"""

from .blueprint import Blueprint
from .columns import (
    ColumnDefinition,
    ColumnType,
    Expression,
    ForeignKeyAction,
    IndexDefinition,
    IndexKind,
    derive_index_name,
)
from .introspection import ColumnState, IndexState, TableState

__all__ = [
    'Blueprint',
    'ColumnDefinition',
    'ColumnState',
    'ColumnType',
    'Expression',
    'ForeignKeyAction',
    'IndexDefinition',
    'IndexKind',
    'IndexState',
    'TableState',
    'derive_index_name',
]
