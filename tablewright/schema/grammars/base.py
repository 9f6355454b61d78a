#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
DDL compiler base class.

A Grammar turns (operation kind, Blueprint) into an ordered list of DDL
statements for one dialect. Compilation is pure: it reads the blueprint
(and the table state the blueprint carries) and never touches a database.

Dialect subclasses override type mapping, column modifiers and the
statements for operations whose syntax differs.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from sqlalchemy.engine import Dialect

from tablewright.errors import (
    CompileError,
    DefinitionError,
    DependentObjectError,
    DuplicateColumnError,
    DuplicateIndexNameError,
)
from tablewright.schema.blueprint import (
    AddColumn,
    AddIndex,
    Blueprint,
    Command,
    DropColumn,
    DropIndex,
    RenameColumn,
)
from tablewright.schema.columns import (
    ColumnDefinition,
    Expression,
    IndexDefinition,
    IndexKind,
)

OPERATIONS = ('create', 'alter', 'rename', 'drop', 'drop_if_exists')


class WarningLevel(Enum):
    """Severity levels for compile and validation warnings."""
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass
class CompileWarning:
    """
    A modifier or option the dialect could not honour.

    The statement is still emitted without it.

    Attributes:
        level: Severity level
        message: Human-readable message
        table: Table being compiled
        category: 'placement', 'engine' or 'comment'
    """
    level: WarningLevel
    message: str
    table: str
    category: str

    def __repr__(self) -> str:
        return f"[{self.level.value}] {self.table}: {self.message}"


@dataclass
class CompileResult:
    """Statements in execution order plus any warnings raised on the way."""
    statements: list[str] = field(default_factory=list)
    warnings: list[CompileWarning] = field(default_factory=list)


class Grammar:
    """
    Base DDL compiler.

    Attributes:
        name: Dialect name ('sqlite', 'postgresql', 'mysql')
        supports_placement: FIRST / AFTER column placement
        supports_engine: Storage engine clause on CREATE TABLE
        supports_conditional_column_drop: DROP COLUMN IF EXISTS
        modifiers: Column modifier methods applied in this order
    """

    name = 'generic'
    sqlalchemy_dialect: Callable[[], Dialect]
    supports_placement = False
    supports_engine = False
    supports_inline_comments = False
    supports_conditional_column_drop = False
    modifiers: tuple[str, ...] = ('nullable', 'default')
    alter_only_modifiers: tuple[str, ...] = ()

    def __init__(self):
        self._preparer = self.sqlalchemy_dialect().identifier_preparer

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def compile(self, kind: str, blueprint: Blueprint, **options: Any) -> CompileResult:
        """
        Compile one table operation.

        Args:
            kind: 'create', 'alter', 'rename', 'drop' or 'drop_if_exists'
            blueprint: Blueprint for the table
            **options: 'to' for rename

        Returns:
            CompileResult with statements in execution order

        Raises:
            CompileError: If the kind is unknown or the dialect cannot
                express a command
            DefinitionError, DuplicateColumnError, DuplicateIndexNameError,
            DependentObjectError: If the blueprint is inconsistent with
                itself or with the introspected table
        """
        if kind not in OPERATIONS:
            raise CompileError(f"Unknown operation '{kind}'", {'table': blueprint.table})

        result = CompileResult()
        if kind == 'create':
            self._compile_create(blueprint, result)
        elif kind == 'alter':
            self._compile_alter(blueprint, result)
        elif kind == 'rename':
            to = options.get('to')
            if not to:
                raise DefinitionError(f"Renaming '{blueprint.table}' needs a target name")
            result.statements.append(self.compile_rename(blueprint.table, to))
        elif kind == 'drop':
            result.statements.append(f"DROP TABLE {self.wrap(blueprint.table)}")
        else:
            result.statements.append(f"DROP TABLE IF EXISTS {self.wrap(blueprint.table)}")
        return result

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def _compile_create(self, blueprint: Blueprint, result: CompileResult) -> None:
        commands = blueprint.build_commands()
        columns: list[ColumnDefinition] = []
        constraints: list[IndexDefinition] = []
        trailing: list[IndexDefinition] = []

        for command in commands:
            if isinstance(command, AddColumn):
                if command.column.change_flag:
                    raise DefinitionError(
                        f"Column '{command.column.name}' is marked change() in a "
                        f"create of '{blueprint.table}'"
                    )
                columns.append(command.column)
            elif isinstance(command, AddIndex):
                command.index.validate()
                if command.index.kind in (IndexKind.PRIMARY, IndexKind.FOREIGN):
                    constraints.append(command.index)
                else:
                    trailing.append(command.index)
            else:
                raise CompileError(
                    f"'{command.name}' is not valid when creating '{blueprint.table}'",
                    {'table': blueprint.table, 'command': command.name},
                )

        if not columns:
            raise DefinitionError(f"Table '{blueprint.table}' needs at least one column")

        column_names = {c.name.lower() for c in columns}
        for index in constraints + trailing:
            missing = [c for c in index.columns if c.lower() not in column_names]
            if missing:
                raise DefinitionError(
                    f"Index '{index.name}' references unknown column(s) "
                    f"{', '.join(missing)} on '{blueprint.table}'"
                )

        primaries = [i for i in constraints if i.kind == IndexKind.PRIMARY]
        auto = [c for c in columns if c.auto_increment_flag]
        if len(primaries) + len(auto) > 1:
            raise DefinitionError(f"Table '{blueprint.table}' has more than one primary key")

        for column in columns:
            if column.placement:
                self._warn(result, blueprint.table, 'placement',
                           f"placement of '{column.name}' ignored on create")

        parts = [
            self.compile_column(column, blueprint, result, creating=True)
            for column in columns
        ]
        parts.extend(self.compile_inline_constraint(index) for index in constraints)

        sql = f"CREATE TABLE {self.wrap(blueprint.table)} ({', '.join(parts)})"
        if blueprint.engine:
            if self.supports_engine:
                sql += f" ENGINE = {blueprint.engine}"
            else:
                self._warn(result, blueprint.table, 'engine',
                           f"storage engine '{blueprint.engine}' ignored by {self.name}")
        result.statements.append(sql)

        for index in trailing:
            result.statements.append(self.compile_create_index(blueprint.table, index))
        result.statements.extend(self.compile_comments(blueprint.table, columns))

    # ------------------------------------------------------------------
    # Alter
    # ------------------------------------------------------------------

    def _compile_alter(self, blueprint: Blueprint, result: CompileResult) -> None:
        commands = blueprint.build_commands()
        self.validate_alter(blueprint, commands)

        for command in commands:
            method = getattr(self, f'compile_{command.name}', None)
            if method is None:
                raise CompileError(
                    f"{self.name} cannot compile '{command.name}'",
                    {'table': blueprint.table},
                )
            result.statements.extend(method(blueprint, command, result))

    def validate_alter(self, blueprint: Blueprint, commands: list[Command]) -> None:
        """
        Check alter commands against the introspected table, in order.

        Tracks the column and index sets as each command would change them
        so a later command may rely on an earlier one in the same blueprint.
        Skipped when the blueprint carries no state.
        """
        state = blueprint.state
        if state is None:
            return

        columns = {c.lower() for c in state.column_names}
        index_names = {i.name for i in state.indexes if i.name}
        dropped_indexes: set[str] = set()
        pending_indexes: list[IndexDefinition] = []

        for command in commands:
            if isinstance(command, AddColumn):
                column = command.column
                key = column.name.lower()
                if column.change_flag:
                    if key not in columns:
                        raise DefinitionError(
                            f"Cannot change missing column '{column.name}' on "
                            f"'{blueprint.table}'",
                            {'table': blueprint.table, 'column': column.name},
                        )
                elif key in columns:
                    raise DuplicateColumnError(
                        f"Column '{column.name}' already exists on '{blueprint.table}'",
                        {'table': blueprint.table, 'column': column.name},
                    )
                columns.add(key)

            elif isinstance(command, RenameColumn):
                if command.from_.lower() not in columns:
                    raise DefinitionError(
                        f"Cannot rename missing column '{command.from_}' on "
                        f"'{blueprint.table}'"
                    )
                if command.to.lower() in columns:
                    raise DuplicateColumnError(
                        f"Column '{command.to}' already exists on '{blueprint.table}'"
                    )
                columns.discard(command.from_.lower())
                columns.add(command.to.lower())

            elif isinstance(command, AddIndex):
                index = command.index
                index.validate()
                if index.name in index_names:
                    raise DuplicateIndexNameError(
                        f"Index '{index.name}' already exists on '{blueprint.table}'",
                        {'table': blueprint.table, 'index': index.name},
                    )
                missing = [c for c in index.columns if c.lower() not in columns]
                if missing:
                    raise DefinitionError(
                        f"Index '{index.name}' references unknown column(s) "
                        f"{', '.join(missing)} on '{blueprint.table}'"
                    )
                index_names.add(index.name)
                pending_indexes.append(index)

            elif isinstance(command, DropIndex):
                dropped_indexes.add(command.index_name)
                index_names.discard(command.index_name)
                pending_indexes = [
                    i for i in pending_indexes if i.name != command.index_name
                ]

            elif isinstance(command, DropColumn):
                for name in command.columns:
                    key = name.lower()
                    if key not in columns:
                        if command.if_exists:
                            continue
                        raise DefinitionError(
                            f"Cannot drop missing column '{name}' on '{blueprint.table}'",
                            {'table': blueprint.table, 'column': name},
                        )
                    self._check_dependents(blueprint, name, dropped_indexes,
                                           pending_indexes)
                    columns.discard(key)

    @staticmethod
    def _check_dependents(blueprint: Blueprint, column: str,
                          dropped: set[str],
                          pending: list[IndexDefinition]) -> None:
        dependents = [
            d for d in blueprint.state.dependents_of(column)
            if d.name is None or d.name not in dropped
        ]
        blocking = [f"{d.kind} {d.name or '(unnamed)'} on {d.table}" for d in dependents]
        blocking.extend(
            f"{i.kind.value} {i.name}" for i in pending
            if column.lower() in (c.lower() for c in i.columns)
        )
        if blocking:
            raise DependentObjectError(
                f"Cannot drop column '{column}' on '{blueprint.table}': still used by "
                f"{', '.join(blocking)}. Drop the dependent objects first.",
                {'table': blueprint.table, 'column': column, 'dependents': blocking},
            )

    def _column_exists(self, blueprint: Blueprint, name: str) -> bool:
        if blueprint.state is None:
            raise CompileError(
                f"{self.name} needs introspection to drop '{name}' conditionally",
                {'table': blueprint.table},
            )
        return blueprint.state.has_column(name)

    def compile_add_column(self, blueprint: Blueprint, command: AddColumn,
                           result: CompileResult) -> list[str]:
        column = command.column
        if column.change_flag:
            return self.compile_change_column(blueprint, column, result)
        if column.placement and not self.supports_placement:
            self._warn(result, blueprint.table, 'placement',
                       f"placement of '{column.name}' ignored by {self.name}")
        sql = (
            f"ALTER TABLE {self.wrap(blueprint.table)} ADD COLUMN "
            f"{self.compile_column(column, blueprint, result)}"
        )
        return [sql, *self.compile_comments(blueprint.table, [column])]

    def compile_change_column(self, blueprint: Blueprint, column: ColumnDefinition,
                              result: CompileResult) -> list[str]:
        raise CompileError(
            f"{self.name} cannot change column '{column.name}' in place",
            {'table': blueprint.table, 'column': column.name},
        )

    def compile_drop_column(self, blueprint: Blueprint, command: DropColumn,
                            result: CompileResult) -> list[str]:
        names = command.columns
        if command.if_exists and not self.supports_conditional_column_drop:
            names = [n for n in names if self._column_exists(blueprint, n)]
        if not names:
            return []
        conditional = command.if_exists and self.supports_conditional_column_drop
        clause = 'DROP COLUMN IF EXISTS' if conditional else 'DROP COLUMN'
        drops = ', '.join(f"{clause} {self.wrap(n)}" for n in names)
        return [f"ALTER TABLE {self.wrap(blueprint.table)} {drops}"]

    def compile_rename_column(self, blueprint: Blueprint, command: RenameColumn,
                              result: CompileResult) -> list[str]:
        return [
            f"ALTER TABLE {self.wrap(blueprint.table)} RENAME COLUMN "
            f"{self.wrap(command.from_)} TO {self.wrap(command.to)}"
        ]

    def compile_add_index(self, blueprint: Blueprint, command: AddIndex,
                          result: CompileResult) -> list[str]:
        index = command.index
        index.validate()
        table = self.wrap(blueprint.table)
        if index.kind == IndexKind.PRIMARY:
            return [
                f"ALTER TABLE {table} ADD CONSTRAINT {self.wrap(index.name)} "
                f"PRIMARY KEY ({self.columnize(index.columns)})"
            ]
        if index.kind == IndexKind.FOREIGN:
            return [f"ALTER TABLE {table} ADD {self.compile_inline_constraint(index)}"]
        return [self.compile_create_index(blueprint.table, index)]

    def compile_drop_index(self, blueprint: Blueprint, command: DropIndex,
                           result: CompileResult) -> list[str]:
        table = self.wrap(blueprint.table)
        if command.kind in (IndexKind.PRIMARY, IndexKind.FOREIGN):
            return [f"ALTER TABLE {table} DROP CONSTRAINT {self.wrap(command.index_name)}"]
        return [f"DROP INDEX {self.wrap(command.index_name)}"]

    def compile_rename(self, from_: str, to: str) -> str:
        return f"ALTER TABLE {self.wrap(from_)} RENAME TO {self.wrap(to)}"

    # ------------------------------------------------------------------
    # Fragments
    # ------------------------------------------------------------------

    def compile_column(self, column: ColumnDefinition, blueprint: Blueprint,
                       result: CompileResult, creating: bool = False) -> str:
        sql = f"{self.wrap(column.name)} {self.type_sql(column)}"
        for modifier in self.modifiers:
            if creating and modifier in self.alter_only_modifiers:
                continue
            fragment = getattr(self, f'modify_{modifier}')(column, blueprint, result)
            if fragment:
                sql += f" {fragment}"
        return sql

    def compile_inline_constraint(self, index: IndexDefinition) -> str:
        if index.kind == IndexKind.PRIMARY:
            return (
                f"CONSTRAINT {self.wrap(index.name)} "
                f"PRIMARY KEY ({self.columnize(index.columns)})"
            )
        return (
            f"CONSTRAINT {self.wrap(index.name)} "
            f"FOREIGN KEY ({self.columnize(index.columns)}) "
            f"REFERENCES {self.wrap(index.referenced_table)} "
            f"({self.columnize(index.referenced_columns)}) "
            f"ON DELETE {index.on_delete_action.sql} "
            f"ON UPDATE {index.on_update_action.sql}"
        )

    def compile_create_index(self, table: str, index: IndexDefinition) -> str:
        unique = 'UNIQUE ' if index.kind == IndexKind.UNIQUE else ''
        return (
            f"CREATE {unique}INDEX {self.wrap(index.name)} ON {self.wrap(table)} "
            f"({self.columnize(index.columns)})"
        )

    def compile_comments(self, table: str, columns: list[ColumnDefinition]) -> list[str]:
        """Separate comment statements for dialects without inline comments."""
        return []

    def modify_nullable(self, column, blueprint, result) -> Optional[str]:
        return 'NULL' if column.nullable_flag else 'NOT NULL'

    def modify_default(self, column, blueprint, result) -> Optional[str]:
        if not column.has_default:
            return None
        return f"DEFAULT {self.default_sql(column.default_value)}"

    def modify_comment(self, column, blueprint, result) -> Optional[str]:
        if column.comment_text is None:
            return None
        if self.supports_inline_comments:
            return f"COMMENT {self.quote_string(column.comment_text)}"
        return None

    def modify_unsigned(self, column, blueprint, result) -> Optional[str]:
        # Only MySQL has unsigned integer types
        return None

    def type_sql(self, column: ColumnDefinition) -> str:
        method = getattr(self, f'type_{column.type.value}', None)
        if method is None:
            raise CompileError(
                f"{self.name} has no type for {column.type.value} column '{column.name}'"
            )
        return method(column)

    def numeric_args(self, column: ColumnDefinition) -> str:
        if column.precision is None:
            return ''
        if column.scale is None:
            return f"({column.precision})"
        return f"({column.precision}, {column.scale})"

    def enum_check(self, column: ColumnDefinition) -> str:
        values = ', '.join(self.quote_string(str(v)) for v in column.values)
        return f"CHECK ({self.wrap(column.name)} IN ({values}))"

    def default_sql(self, value: Any) -> str:
        if isinstance(value, Expression):
            return value.sql
        if value is None:
            return 'NULL'
        if isinstance(value, bool):
            return self.boolean_sql(value)
        if isinstance(value, (int, float)):
            return repr(value)
        if isinstance(value, Enum):
            value = value.value
        return self.quote_string(str(value))

    def boolean_sql(self, value: bool) -> str:
        return '1' if value else '0'

    # ------------------------------------------------------------------
    # Quoting
    # ------------------------------------------------------------------

    def wrap(self, identifier: str) -> str:
        """Always-quoted identifier, using the SQLAlchemy dialect's rules."""
        return self._preparer.quote_identifier(identifier)

    def columnize(self, columns) -> str:
        return ', '.join(self.wrap(c) for c in columns)

    @staticmethod
    def quote_string(value: str) -> str:
        return "'" + value.replace("'", "''") + "'"

    def _warn(self, result: CompileResult, table: str, category: str,
              message: str) -> None:
        result.warnings.append(CompileWarning(
            level=WarningLevel.WARNING,
            message=message,
            table=table,
            category=category,
        ))

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"

