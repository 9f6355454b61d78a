#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Column, index and foreign key descriptors.

Descriptors are plain value objects with fluent setters. A blueprint owns
the descriptors it hands out; nothing here is shared between blueprints.

Usage:
    column = ColumnDefinition('email', ColumnType.STRING, length=191)
    column.nullable().unique()

    index = IndexDefinition(IndexKind.FOREIGN, ['user_id'], 'posts_user_id_foreign')
    index.references('id').on('users').cascade_on_delete()
"""

import re
from enum import Enum
from typing import Any, Optional, Sequence

from tablewright.errors import DefinitionError

# Bump only together with a migration that renames existing indexes
INDEX_NAMING_VERSION = 1


class ColumnType(str, Enum):
    """Column type tags understood by every grammar."""
    TINY_INTEGER = 'tiny_integer'
    SMALL_INTEGER = 'small_integer'
    MEDIUM_INTEGER = 'medium_integer'
    INTEGER = 'integer'
    BIG_INTEGER = 'big_integer'
    STRING = 'string'
    CHAR = 'char'
    TEXT = 'text'
    MEDIUM_TEXT = 'medium_text'
    LONG_TEXT = 'long_text'
    DECIMAL = 'decimal'
    FLOAT = 'float'
    DOUBLE = 'double'
    DATE = 'date'
    DATETIME = 'datetime'
    TIME = 'time'
    TIMESTAMP = 'timestamp'
    BOOLEAN = 'boolean'
    BINARY = 'binary'
    JSON = 'json'
    JSONB = 'jsonb'
    ENUM = 'enum'

    @property
    def is_integer(self) -> bool:
        return self in INTEGER_TYPES

    @property
    def is_numeric(self) -> bool:
        return self in INTEGER_TYPES or self in (
            ColumnType.DECIMAL, ColumnType.FLOAT, ColumnType.DOUBLE
        )


INTEGER_TYPES = frozenset({
    ColumnType.TINY_INTEGER,
    ColumnType.SMALL_INTEGER,
    ColumnType.MEDIUM_INTEGER,
    ColumnType.INTEGER,
    ColumnType.BIG_INTEGER,
})

DEFAULT_STRING_LENGTH = 255
DEFAULT_DECIMAL_PRECISION = 8
DEFAULT_DECIMAL_SCALE = 2


class IndexKind(str, Enum):
    """Index and constraint kinds."""
    PRIMARY = 'primary'
    UNIQUE = 'unique'
    INDEX = 'index'
    FOREIGN = 'foreign'


class ForeignKeyAction(str, Enum):
    """Referential actions for ON DELETE / ON UPDATE."""
    CASCADE = 'cascade'
    SET_NULL = 'set null'
    RESTRICT = 'restrict'
    NO_ACTION = 'no action'

    @classmethod
    def parse(cls, value: Any) -> 'ForeignKeyAction':
        """Accept enum members or strings like 'cascade', 'set-null', 'SET NULL'."""
        if isinstance(value, cls):
            return value
        normalized = re.sub(r'[\s_-]+', ' ', str(value).strip().lower())
        for action in cls:
            if action.value == normalized:
                return action
        raise DefinitionError(
            f"Unknown foreign key action '{value}'. "
            f"Valid actions: {', '.join(a.value for a in cls)}"
        )

    @property
    def sql(self) -> str:
        return self.value.upper()


class Expression:
    """
    Raw SQL fragment used as a column default.

    Example:
        >>> table.timestamp('created_at').default(Expression('CURRENT_TIMESTAMP'))
    """

    def __init__(self, sql: str):
        self.sql = sql

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Expression) and other.sql == self.sql

    def __hash__(self) -> int:
        return hash(self.sql)

    def __repr__(self) -> str:
        return f"Expression({self.sql!r})"


def derive_index_name(
    table: str,
    columns: Sequence[str],
    kind: 'IndexKind | str',
    version: int = INDEX_NAMING_VERSION,
) -> str:
    """
    Derive an index or constraint name from its table, columns and kind.

    The result is a pure function of the arguments, so deriving the name of
    an index that is already deployed always reproduces the deployed name.

    Args:
        table: Table name
        columns: Participating columns, in key order
        kind: Index kind ('primary', 'unique', 'index', 'foreign')
        version: Naming scheme version (only version 1 exists)

    Returns:
        Name like 'users_email_unique'

    Raises:
        DefinitionError: If no columns are given or the version is unknown

    Example:
        >>> derive_index_name('users', ['first_name', 'last_name'], 'index')
        'users_first_name_last_name_index'
    """
    if version != 1:
        raise DefinitionError(f"Unknown index naming version {version}")
    if not columns:
        raise DefinitionError(f"Index on '{table}' needs at least one column")

    kind_value = IndexKind(kind).value
    name = '_'.join([table, *columns, kind_value]).lower()
    return re.sub(r'[-.]', '_', name)


class ColumnDefinition:
    """
    Describes one column and its modifiers.

    Attributes:
        name: Column name
        type: ColumnType tag
        length: Length for string/char/binary types
        precision: Total digits for decimal/float/double
        scale: Digits after the decimal point
        values: Allowed values for enum columns
        nullable_flag: Whether NULL is allowed (default False)
        default_value: Default value, meaningful only when has_default
        placement: None, 'first' or 'after:<column>'
        change_flag: Modify an existing column instead of adding one
    """

    def __init__(
        self,
        name: str,
        type: ColumnType,
        length: Optional[int] = None,
        precision: Optional[int] = None,
        scale: Optional[int] = None,
        values: Optional[Sequence[Any]] = None,
    ):
        if not name or not isinstance(name, str):
            raise DefinitionError(f"Invalid column name: {name!r}")

        try:
            self.type = ColumnType(type)
        except ValueError:
            raise DefinitionError(f"Unknown column type '{type}' for column '{name}'")

        self.name = name
        self.length = length
        self.precision = precision
        self.scale = scale
        self.values = list(values) if values is not None else None

        self.nullable_flag = False
        self.has_default = False
        self.default_value: Any = None
        self.unsigned_flag = False
        self.auto_increment_flag = False
        self.placement: Optional[str] = None
        self.comment_text: Optional[str] = None
        self.change_flag = False

        # Fluent index flags, expanded by Blueprint.build_commands()
        self.primary_flag = False
        self.unique_flag = False
        self.index_flag = False
        self.unique_name: Optional[str] = None
        self.index_name: Optional[str] = None
        self.foreign_table: Optional[str] = None
        self.foreign_column = 'id'
        self.foreign_on_delete = ForeignKeyAction.RESTRICT
        self.foreign_on_update = ForeignKeyAction.RESTRICT

        self._validate_parameters()

    def _validate_parameters(self) -> None:
        column_type = self.type

        if column_type == ColumnType.STRING and self.length is None:
            self.length = DEFAULT_STRING_LENGTH

        if column_type == ColumnType.CHAR and self.length is None:
            raise DefinitionError(f"char column '{self.name}' requires a length")

        if self.length is not None and (
            not isinstance(self.length, int) or self.length <= 0
        ):
            raise DefinitionError(
                f"Length for column '{self.name}' must be a positive integer, "
                f"got {self.length!r}"
            )

        if column_type == ColumnType.DECIMAL:
            if self.precision is None:
                self.precision = DEFAULT_DECIMAL_PRECISION
            if self.scale is None:
                self.scale = DEFAULT_DECIMAL_SCALE

        if self.precision is not None or self.scale is not None:
            if column_type not in (ColumnType.DECIMAL, ColumnType.FLOAT, ColumnType.DOUBLE):
                raise DefinitionError(
                    f"Precision/scale do not apply to {column_type.value} "
                    f"column '{self.name}'"
                )
            precision = self.precision
            scale = self.scale if self.scale is not None else 0
            if precision is None or not (precision >= scale >= 0) or precision <= 0:
                raise DefinitionError(
                    f"Column '{self.name}' requires precision >= scale >= 0, "
                    f"got precision={self.precision!r}, scale={self.scale!r}"
                )

        if column_type == ColumnType.ENUM:
            if not self.values:
                raise DefinitionError(f"enum column '{self.name}' requires values")
            if len(set(self.values)) != len(self.values):
                raise DefinitionError(f"enum column '{self.name}' has duplicate values")
        elif self.values is not None:
            raise DefinitionError(
                f"Values only apply to enum columns, not '{self.name}'"
            )

    # ------------------------------------------------------------------
    # Fluent modifiers
    # ------------------------------------------------------------------

    def nullable(self, value: bool = True) -> 'ColumnDefinition':
        self.nullable_flag = bool(value)
        return self

    def default(self, value: Any) -> 'ColumnDefinition':
        if isinstance(value, (list, dict, set, tuple)):
            raise DefinitionError(
                f"Default for column '{self.name}' must be a scalar or Expression"
            )
        self.has_default = True
        self.default_value = value
        return self

    def use_current(self) -> 'ColumnDefinition':
        """Default a temporal column to the current timestamp."""
        if self.type not in (ColumnType.DATETIME, ColumnType.TIMESTAMP):
            raise DefinitionError(
                f"use_current() only applies to datetime/timestamp, not '{self.name}'"
            )
        return self.default(Expression('CURRENT_TIMESTAMP'))

    def unsigned(self) -> 'ColumnDefinition':
        if not self.type.is_numeric:
            raise DefinitionError(
                f"unsigned() only applies to numeric columns, not '{self.name}'"
            )
        self.unsigned_flag = True
        return self

    def auto_increment(self) -> 'ColumnDefinition':
        if not self.type.is_integer:
            raise DefinitionError(
                f"auto_increment() only applies to integer columns, not '{self.name}'"
            )
        self.auto_increment_flag = True
        return self

    def first(self) -> 'ColumnDefinition':
        self.placement = 'first'
        return self

    def after(self, column: str) -> 'ColumnDefinition':
        self.placement = f'after:{column}'
        return self

    def comment(self, text: str) -> 'ColumnDefinition':
        self.comment_text = str(text)
        return self

    def change(self) -> 'ColumnDefinition':
        """Modify the existing column in place instead of adding it."""
        self.change_flag = True
        return self

    def primary(self) -> 'ColumnDefinition':
        self.primary_flag = True
        return self

    def unique(self, name: Optional[str] = None) -> 'ColumnDefinition':
        self.unique_flag = True
        self.unique_name = name
        return self

    def index(self, name: Optional[str] = None) -> 'ColumnDefinition':
        self.index_flag = True
        self.index_name = name
        return self

    def constrained(
        self,
        table: Optional[str] = None,
        column: str = 'id',
    ) -> 'ColumnDefinition':
        """
        Add a foreign key to `table`.`column`.

        When `table` is omitted it is guessed from a '<singular>_id' name,
        so 'user_id' references 'users'.
        """
        if table is None:
            if not self.name.endswith('_id'):
                raise DefinitionError(
                    f"Cannot guess referenced table for '{self.name}'; "
                    f"pass constrained(table=...)"
                )
            table = self.name[:-3] + 's'
        self.foreign_table = table
        self.foreign_column = column
        return self

    def _require_constrained(self, method: str) -> None:
        if self.foreign_table is None:
            raise DefinitionError(
                f"{method}() on '{self.name}' needs constrained() first"
            )

    def on_delete(self, action: 'ForeignKeyAction | str') -> 'ColumnDefinition':
        """ON DELETE action of the foreign key added by constrained()."""
        self._require_constrained('on_delete')
        self.foreign_on_delete = ForeignKeyAction.parse(action)
        return self

    def on_update(self, action: 'ForeignKeyAction | str') -> 'ColumnDefinition':
        self._require_constrained('on_update')
        self.foreign_on_update = ForeignKeyAction.parse(action)
        return self

    def cascade_on_delete(self) -> 'ColumnDefinition':
        return self.on_delete(ForeignKeyAction.CASCADE)

    def null_on_delete(self) -> 'ColumnDefinition':
        return self.on_delete(ForeignKeyAction.SET_NULL)

    def restrict_on_delete(self) -> 'ColumnDefinition':
        return self.on_delete(ForeignKeyAction.RESTRICT)

    def cascade_on_update(self) -> 'ColumnDefinition':
        return self.on_update(ForeignKeyAction.CASCADE)

    @property
    def after_column(self) -> Optional[str]:
        if self.placement and self.placement.startswith('after:'):
            return self.placement.split(':', 1)[1]
        return None

    def __repr__(self) -> str:
        return f"<ColumnDefinition({self.name}, {self.type.value})>"


class IndexDefinition:
    """
    Describes one primary key, unique index, plain index or foreign key.

    Foreign keys default to RESTRICT for both ON DELETE and ON UPDATE.
    """

    def __init__(self, kind: IndexKind, columns: Sequence[str], name: str):
        self.kind = IndexKind(kind)
        if isinstance(columns, str):
            columns = [columns]
        self.columns = list(columns)
        if not self.columns:
            raise DefinitionError(f"{self.kind.value} '{name}' needs at least one column")
        self.name = name

        self.referenced_table: Optional[str] = None
        self.referenced_columns: list[str] = []
        self.on_delete_action = ForeignKeyAction.RESTRICT
        self.on_update_action = ForeignKeyAction.RESTRICT

    def _require_foreign(self, method: str) -> None:
        if self.kind != IndexKind.FOREIGN:
            raise DefinitionError(f"{method}() only applies to foreign keys, not '{self.name}'")

    def references(self, columns: 'str | Sequence[str]') -> 'IndexDefinition':
        self._require_foreign('references')
        self.referenced_columns = [columns] if isinstance(columns, str) else list(columns)
        return self

    def on(self, table: str) -> 'IndexDefinition':
        self._require_foreign('on')
        self.referenced_table = table
        return self

    def on_delete(self, action: 'ForeignKeyAction | str') -> 'IndexDefinition':
        self._require_foreign('on_delete')
        self.on_delete_action = ForeignKeyAction.parse(action)
        return self

    def on_update(self, action: 'ForeignKeyAction | str') -> 'IndexDefinition':
        self._require_foreign('on_update')
        self.on_update_action = ForeignKeyAction.parse(action)
        return self

    def cascade_on_delete(self) -> 'IndexDefinition':
        return self.on_delete(ForeignKeyAction.CASCADE)

    def null_on_delete(self) -> 'IndexDefinition':
        return self.on_delete(ForeignKeyAction.SET_NULL)

    def restrict_on_delete(self) -> 'IndexDefinition':
        return self.on_delete(ForeignKeyAction.RESTRICT)

    def cascade_on_update(self) -> 'IndexDefinition':
        return self.on_update(ForeignKeyAction.CASCADE)

    def validate(self) -> None:
        """Check a foreign key is fully specified before compiling it."""
        if self.kind != IndexKind.FOREIGN:
            return
        if not self.referenced_table or not self.referenced_columns:
            raise DefinitionError(
                f"Foreign key '{self.name}' needs references(...) and on(...)"
            )
        if len(self.referenced_columns) != len(self.columns):
            raise DefinitionError(
                f"Foreign key '{self.name}' has {len(self.columns)} columns but "
                f"references {len(self.referenced_columns)}"
            )

    def __repr__(self) -> str:
        return f"<IndexDefinition({self.kind.value} {self.name} {self.columns})>"
