#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Table blueprint: the fluent definition surface for one table operation.

A Blueprint is opened by the Schema gateway, handed to one user callback,
compiled by a grammar and discarded. It records commands in the order the
author issued them so the grammar can preserve that order.

Usage:
    def build(table: Blueprint) -> None:
        table.id()
        table.string('email').unique()
        table.foreign_id('team_id').nullable().constrained()
        table.timestamps()

    await schema.create('users', build)
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional, Sequence

from tablewright.errors import (
    DefinitionError,
    DuplicateColumnError,
    DuplicateIndexNameError,
)
from tablewright.schema.columns import (
    ColumnDefinition,
    ColumnType,
    IndexDefinition,
    IndexKind,
    derive_index_name,
)
from tablewright.schema.introspection import TableState


@dataclass
class Command:
    """Base class for blueprint commands; `name` selects the grammar method."""
    name: ClassVar[str] = ''


@dataclass
class AddColumn(Command):
    name: ClassVar[str] = 'add_column'
    column: ColumnDefinition


@dataclass
class DropColumn(Command):
    name: ClassVar[str] = 'drop_column'
    columns: list[str]
    if_exists: bool = False


@dataclass
class RenameColumn(Command):
    name: ClassVar[str] = 'rename_column'
    from_: str
    to: str


@dataclass
class AddIndex(Command):
    name: ClassVar[str] = 'add_index'
    index: IndexDefinition


@dataclass
class DropIndex(Command):
    name: ClassVar[str] = 'drop_index'
    kind: IndexKind
    index_name: str


@dataclass
class Blueprint:
    """
    Accumulates the pending column and index operations for one table.

    Attributes:
        table: Table name
        state: Introspected table for alter operations (None for create)
        engine: Storage engine, honoured by create on dialects with engines
        commands: Commands in author order
    """

    table: str
    state: Optional[TableState] = None
    engine: Optional[str] = None
    commands: list[Command] = field(default_factory=list)

    def __post_init__(self):
        if not self.table or not isinstance(self.table, str):
            raise DefinitionError(f"Invalid table name: {self.table!r}")

    # ------------------------------------------------------------------
    # Column operations
    # ------------------------------------------------------------------

    def column(self, type: 'ColumnType | str', name: str, **params: Any) -> ColumnDefinition:
        """
        Append an add-column (or change-column) command.

        Args:
            type: ColumnType tag or its string value
            name: Column name
            **params: length, precision, scale or values

        Returns:
            The column descriptor for further fluent modifiers

        Raises:
            DuplicateColumnError: If `name` was already added in this blueprint
            DefinitionError: If parameters are invalid for the type
        """
        if any(
            isinstance(c, AddColumn) and c.column.name.lower() == name.lower()
            for c in self.commands
        ):
            raise DuplicateColumnError(
                f"Column '{name}' already defined in blueprint for '{self.table}'",
                {'table': self.table, 'column': name},
            )
        column = ColumnDefinition(name, type, **params)
        self.commands.append(AddColumn(column))
        return column

    def increments(self, name: str = 'id') -> ColumnDefinition:
        return self.integer(name, auto_increment=True, unsigned=True)

    def big_increments(self, name: str = 'id') -> ColumnDefinition:
        return self.big_integer(name, auto_increment=True, unsigned=True)

    def id(self, name: str = 'id') -> ColumnDefinition:
        return self.big_increments(name)

    def _integer(self, type: ColumnType, name: str, auto_increment: bool,
                 unsigned: bool) -> ColumnDefinition:
        column = self.column(type, name)
        if auto_increment:
            column.auto_increment()
        if unsigned:
            column.unsigned()
        return column

    def tiny_integer(self, name: str, auto_increment: bool = False,
                     unsigned: bool = False) -> ColumnDefinition:
        return self._integer(ColumnType.TINY_INTEGER, name, auto_increment, unsigned)

    def small_integer(self, name: str, auto_increment: bool = False,
                      unsigned: bool = False) -> ColumnDefinition:
        return self._integer(ColumnType.SMALL_INTEGER, name, auto_increment, unsigned)

    def medium_integer(self, name: str, auto_increment: bool = False,
                       unsigned: bool = False) -> ColumnDefinition:
        return self._integer(ColumnType.MEDIUM_INTEGER, name, auto_increment, unsigned)

    def integer(self, name: str, auto_increment: bool = False,
                unsigned: bool = False) -> ColumnDefinition:
        return self._integer(ColumnType.INTEGER, name, auto_increment, unsigned)

    def big_integer(self, name: str, auto_increment: bool = False,
                    unsigned: bool = False) -> ColumnDefinition:
        return self._integer(ColumnType.BIG_INTEGER, name, auto_increment, unsigned)

    def unsigned_integer(self, name: str) -> ColumnDefinition:
        return self.integer(name, unsigned=True)

    def unsigned_big_integer(self, name: str) -> ColumnDefinition:
        return self.big_integer(name, unsigned=True)

    def foreign_id(self, name: str) -> ColumnDefinition:
        """Unsigned big integer meant to be followed by constrained()."""
        return self.unsigned_big_integer(name)

    def string(self, name: str, length: Optional[int] = None) -> ColumnDefinition:
        return self.column(ColumnType.STRING, name, length=length)

    def char(self, name: str, length: Optional[int] = None) -> ColumnDefinition:
        return self.column(ColumnType.CHAR, name, length=length)

    def text(self, name: str) -> ColumnDefinition:
        return self.column(ColumnType.TEXT, name)

    def medium_text(self, name: str) -> ColumnDefinition:
        return self.column(ColumnType.MEDIUM_TEXT, name)

    def long_text(self, name: str) -> ColumnDefinition:
        return self.column(ColumnType.LONG_TEXT, name)

    def decimal(self, name: str, precision: Optional[int] = None,
                scale: Optional[int] = None) -> ColumnDefinition:
        return self.column(ColumnType.DECIMAL, name, precision=precision, scale=scale)

    def float(self, name: str, precision: Optional[int] = None,
              scale: Optional[int] = None) -> ColumnDefinition:
        return self.column(ColumnType.FLOAT, name, precision=precision, scale=scale)

    def double(self, name: str, precision: Optional[int] = None,
               scale: Optional[int] = None) -> ColumnDefinition:
        return self.column(ColumnType.DOUBLE, name, precision=precision, scale=scale)

    def date(self, name: str) -> ColumnDefinition:
        return self.column(ColumnType.DATE, name)

    def datetime(self, name: str) -> ColumnDefinition:
        return self.column(ColumnType.DATETIME, name)

    def time(self, name: str) -> ColumnDefinition:
        return self.column(ColumnType.TIME, name)

    def timestamp(self, name: str) -> ColumnDefinition:
        return self.column(ColumnType.TIMESTAMP, name)

    def timestamps(self) -> list[ColumnDefinition]:
        """Nullable created_at and updated_at timestamps."""
        return [
            self.timestamp('created_at').nullable(),
            self.timestamp('updated_at').nullable(),
        ]

    def boolean(self, name: str) -> ColumnDefinition:
        return self.column(ColumnType.BOOLEAN, name)

    def binary(self, name: str, length: Optional[int] = None) -> ColumnDefinition:
        return self.column(ColumnType.BINARY, name, length=length)

    def json(self, name: str) -> ColumnDefinition:
        return self.column(ColumnType.JSON, name)

    def jsonb(self, name: str) -> ColumnDefinition:
        return self.column(ColumnType.JSONB, name)

    def enum(self, name: str, values: Sequence[Any]) -> ColumnDefinition:
        return self.column(ColumnType.ENUM, name, values=values)

    def drop_column(self, *names: str) -> 'Blueprint':
        self.commands.append(DropColumn(self._names(names, 'drop_column')))
        return self

    def drop_column_if_exists(self, *names: str) -> 'Blueprint':
        self.commands.append(
            DropColumn(self._names(names, 'drop_column_if_exists'), if_exists=True)
        )
        return self

    def rename_column(self, from_: str, to: str) -> 'Blueprint':
        """
        Rename a column.

        Raises:
            DefinitionError: If the table is known to contain an enum column.
                Enum values are enforced with constraints that name the
                column, and not every dialect rewrites them on rename.
        """
        if self.has_enum_columns():
            raise DefinitionError(
                f"Cannot rename columns on '{self.table}': table has enum columns",
                {'table': self.table, 'from': from_, 'to': to},
            )
        self.commands.append(RenameColumn(from_, to))
        return self

    @staticmethod
    def _names(names: Sequence[Any], method: str) -> list[str]:
        flat: list[str] = []
        for name in names:
            if isinstance(name, (list, tuple)):
                flat.extend(name)
            else:
                flat.append(name)
        if not flat:
            raise DefinitionError(f"{method}() needs at least one column name")
        return flat

    # ------------------------------------------------------------------
    # Index operations
    # ------------------------------------------------------------------

    def add_index(
        self,
        kind: 'IndexKind | str',
        columns: 'str | Sequence[str]',
        name: Optional[str] = None,
    ) -> IndexDefinition:
        """
        Append an add-index command.

        Args:
            kind: 'primary', 'unique', 'index' or 'foreign'
            columns: One column or an ordered sequence of columns
            name: Explicit name; derived from (table, columns, kind) if omitted

        Returns:
            The index descriptor (foreign keys take references()/on() next)

        Raises:
            DuplicateIndexNameError: If the name is already used in this blueprint
        """
        kind = IndexKind(kind)
        columns = [columns] if isinstance(columns, str) else list(columns)
        if name is None:
            name = derive_index_name(self.table, columns, kind)
        self._check_index_name(name)
        index = IndexDefinition(kind, columns, name)
        self.commands.append(AddIndex(index))
        return index

    def primary(self, columns: 'str | Sequence[str]',
                name: Optional[str] = None) -> IndexDefinition:
        return self.add_index(IndexKind.PRIMARY, columns, name)

    def unique(self, columns: 'str | Sequence[str]',
               name: Optional[str] = None) -> IndexDefinition:
        return self.add_index(IndexKind.UNIQUE, columns, name)

    def index(self, columns: 'str | Sequence[str]',
              name: Optional[str] = None) -> IndexDefinition:
        return self.add_index(IndexKind.INDEX, columns, name)

    def foreign(self, columns: 'str | Sequence[str]',
                name: Optional[str] = None) -> IndexDefinition:
        return self.add_index(IndexKind.FOREIGN, columns, name)

    def _drop_index(self, kind: IndexKind, name: str) -> 'Blueprint':
        if not name or not isinstance(name, str):
            raise DefinitionError(
                f"Dropping a {kind.value} on '{self.table}' requires its name"
            )
        self.commands.append(DropIndex(kind, name))
        return self

    def drop_primary(self, name: str) -> 'Blueprint':
        return self._drop_index(IndexKind.PRIMARY, name)

    def drop_unique(self, name: str) -> 'Blueprint':
        return self._drop_index(IndexKind.UNIQUE, name)

    def drop_index(self, name: str) -> 'Blueprint':
        return self._drop_index(IndexKind.INDEX, name)

    def drop_foreign(self, name: str) -> 'Blueprint':
        return self._drop_index(IndexKind.FOREIGN, name)

    def _pending_index_names(self) -> set[str]:
        return {c.index.name for c in self.commands if isinstance(c, AddIndex)}

    def _check_index_name(self, name: str) -> None:
        if name in self._pending_index_names():
            raise DuplicateIndexNameError(
                f"Index '{name}' already defined in blueprint for '{self.table}'",
                {'table': self.table, 'index': name},
            )

    # ------------------------------------------------------------------
    # Read access for the grammar
    # ------------------------------------------------------------------

    def has_enum_columns(self) -> bool:
        if self.state is not None and self.state.has_enum_columns:
            return True
        return any(
            isinstance(c, AddColumn) and c.column.type == ColumnType.ENUM
            for c in self.commands
        )

    def added_columns(self) -> list[ColumnDefinition]:
        return [
            c.column for c in self.commands
            if isinstance(c, AddColumn) and not c.column.change_flag
        ]

    def build_commands(self) -> list[Command]:
        """
        Expand fluent column flags into index commands.

        Each implied index is placed directly after the command of the
        column that declared it, so the column exists before its index.

        Returns:
            New list of commands; self.commands is left untouched

        Raises:
            DuplicateIndexNameError: If an implied name collides
        """
        built: list[Command] = []
        names = set()
        for command in self.commands:
            built.append(command)
            if isinstance(command, AddIndex):
                names.add(command.index.name)
                continue
            if not isinstance(command, AddColumn):
                continue

            column = command.column
            implied: list[IndexDefinition] = []
            if column.primary_flag:
                implied.append(self._implied(IndexKind.PRIMARY, column.name, None))
            if column.unique_flag:
                implied.append(self._implied(IndexKind.UNIQUE, column.name, column.unique_name))
            if column.index_flag:
                implied.append(self._implied(IndexKind.INDEX, column.name, column.index_name))
            if column.foreign_table:
                foreign = self._implied(IndexKind.FOREIGN, column.name, None)
                foreign.references(column.foreign_column).on(column.foreign_table)
                foreign.on_delete(column.foreign_on_delete).on_update(column.foreign_on_update)
                implied.append(foreign)

            for index in implied:
                if index.name in names or index.name in self._pending_index_names():
                    raise DuplicateIndexNameError(
                        f"Index '{index.name}' already defined in blueprint for "
                        f"'{self.table}'",
                        {'table': self.table, 'index': index.name},
                    )
                names.add(index.name)
                built.append(AddIndex(index))
        return built

    def _implied(self, kind: IndexKind, column: str,
                 name: Optional[str]) -> IndexDefinition:
        return IndexDefinition(
            kind, [column], name or derive_index_name(self.table, [column], kind)
        )
