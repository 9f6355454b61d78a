#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SQLite DDL grammar.

SQLite has limited ALTER TABLE support: it can add, drop and rename
columns, but cannot modify a column or add/drop primary and foreign keys
on an existing table. Those commands raise CompileError instead of being
emulated with a table rebuild.
"""

from sqlalchemy.dialects.sqlite.base import SQLiteDialect

from tablewright.errors import CompileError
from tablewright.schema.columns import IndexKind
from tablewright.schema.grammars.base import Grammar


class SQLiteGrammar(Grammar):
    """DDL compiler for SQLite 3.35+."""

    name = 'sqlite'
    sqlalchemy_dialect = SQLiteDialect
    modifiers = ('increment', 'nullable', 'default', 'comment')

    def type_tiny_integer(self, column):
        return 'INTEGER'

    type_small_integer = type_tiny_integer
    type_medium_integer = type_tiny_integer
    type_integer = type_tiny_integer
    type_big_integer = type_tiny_integer

    def type_string(self, column):
        return 'VARCHAR'

    type_char = type_string

    def type_text(self, column):
        return 'TEXT'

    type_medium_text = type_text
    type_long_text = type_text
    type_json = type_text
    type_jsonb = type_text

    def type_decimal(self, column):
        return 'NUMERIC'

    def type_float(self, column):
        return 'FLOAT'

    type_double = type_float

    def type_date(self, column):
        return 'DATE'

    def type_datetime(self, column):
        return 'DATETIME'

    type_timestamp = type_datetime

    def type_time(self, column):
        return 'TIME'

    def type_boolean(self, column):
        return 'TINYINT(1)'

    def type_binary(self, column):
        return 'BLOB'

    def type_enum(self, column):
        return f"VARCHAR {self.enum_check(column)}"

    def modify_increment(self, column, blueprint, result):
        if column.auto_increment_flag:
            return 'PRIMARY KEY AUTOINCREMENT'
        return None

    def modify_comment(self, column, blueprint, result):
        if column.comment_text is not None:
            self._warn(result, blueprint.table, 'comment',
                       f"comment on '{column.name}' ignored by sqlite")
        return None

    def compile_add_column(self, blueprint, command, result):
        if command.column.auto_increment_flag and not command.column.change_flag:
            raise CompileError(
                f"sqlite cannot add auto-increment column '{command.column.name}' "
                f"to existing table '{blueprint.table}'",
                {'table': blueprint.table},
            )
        return super().compile_add_column(blueprint, command, result)

    def compile_drop_column(self, blueprint, command, result):
        names = command.columns
        if command.if_exists:
            names = [n for n in names if self._column_exists(blueprint, n)]
        # One column per statement
        return [
            f"ALTER TABLE {self.wrap(blueprint.table)} DROP COLUMN {self.wrap(name)}"
            for name in names
        ]

    def compile_add_index(self, blueprint, command, result):
        if command.index.kind in (IndexKind.PRIMARY, IndexKind.FOREIGN):
            raise CompileError(
                f"sqlite cannot add a {command.index.kind.value} key to existing "
                f"table '{blueprint.table}'; define it when creating the table",
                {'table': blueprint.table, 'index': command.index.name},
            )
        return super().compile_add_index(blueprint, command, result)

    def compile_drop_index(self, blueprint, command, result):
        if command.kind in (IndexKind.PRIMARY, IndexKind.FOREIGN):
            raise CompileError(
                f"sqlite cannot drop {command.kind.value} key '{command.index_name}' "
                f"from '{blueprint.table}'",
                {'table': blueprint.table, 'index': command.index_name},
            )
        return super().compile_drop_index(blueprint, command, result)
