#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
MySQL / MariaDB DDL grammar.

MySQL is the only supported dialect with column placement (FIRST/AFTER),
storage engines and inline column comments. It does not run DDL inside
transactions; see Database.supports_transactional_ddl.
"""

from sqlalchemy.dialects.mysql.base import MySQLDialect

from tablewright.schema.columns import IndexKind
from tablewright.schema.grammars.base import Grammar


class MySqlGrammar(Grammar):
    """DDL compiler for MySQL 8.0+ and MariaDB 10.5+."""

    name = 'mysql'
    sqlalchemy_dialect = MySQLDialect
    supports_placement = True
    supports_engine = True
    supports_inline_comments = True
    modifiers = ('unsigned', 'nullable', 'default', 'increment', 'comment', 'placement')
    alter_only_modifiers = ('placement',)

    def type_tiny_integer(self, column):
        return 'TINYINT'

    def type_small_integer(self, column):
        return 'SMALLINT'

    def type_medium_integer(self, column):
        return 'MEDIUMINT'

    def type_integer(self, column):
        return 'INT'

    def type_big_integer(self, column):
        return 'BIGINT'

    def type_string(self, column):
        return f"VARCHAR({column.length})"

    def type_char(self, column):
        return f"CHAR({column.length})"

    def type_text(self, column):
        return 'TEXT'

    def type_medium_text(self, column):
        return 'MEDIUMTEXT'

    def type_long_text(self, column):
        return 'LONGTEXT'

    def type_decimal(self, column):
        return f"DECIMAL{self.numeric_args(column)}"

    def type_float(self, column):
        return f"FLOAT{self.numeric_args(column)}"

    def type_double(self, column):
        return f"DOUBLE{self.numeric_args(column)}"

    def type_date(self, column):
        return 'DATE'

    def type_datetime(self, column):
        return 'DATETIME'

    def type_time(self, column):
        return 'TIME'

    def type_timestamp(self, column):
        return 'TIMESTAMP'

    def type_boolean(self, column):
        return 'TINYINT(1)'

    def type_binary(self, column):
        if column.length:
            return f"VARBINARY({column.length})"
        return 'BLOB'

    def type_json(self, column):
        return 'JSON'

    type_jsonb = type_json

    def type_enum(self, column):
        values = ', '.join(self.quote_string(str(v)) for v in column.values)
        return f"ENUM({values})"

    def modify_unsigned(self, column, blueprint, result):
        return 'UNSIGNED' if column.unsigned_flag else None

    def modify_increment(self, column, blueprint, result):
        if column.auto_increment_flag and not column.change_flag:
            return 'AUTO_INCREMENT PRIMARY KEY'
        if column.auto_increment_flag:
            return 'AUTO_INCREMENT'
        return None

    def modify_placement(self, column, blueprint, result):
        if column.placement == 'first':
            return 'FIRST'
        if column.after_column:
            return f"AFTER {self.wrap(column.after_column)}"
        return None

    def compile_change_column(self, blueprint, column, result):
        return [
            f"ALTER TABLE {self.wrap(blueprint.table)} MODIFY "
            f"{self.compile_column(column, blueprint, result)}"
        ]

    def compile_drop_index(self, blueprint, command, result):
        table = self.wrap(blueprint.table)
        if command.kind == IndexKind.PRIMARY:
            return [f"ALTER TABLE {table} DROP PRIMARY KEY"]
        if command.kind == IndexKind.FOREIGN:
            return [f"ALTER TABLE {table} DROP FOREIGN KEY {self.wrap(command.index_name)}"]
        return [f"ALTER TABLE {table} DROP INDEX {self.wrap(command.index_name)}"]

    def compile_rename(self, from_, to):
        return f"RENAME TABLE {self.wrap(from_)} TO {self.wrap(to)}"
