#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""PostgreSQL DDL grammar."""

from sqlalchemy.dialects.postgresql.base import PGDialect

from tablewright.errors import CompileError
from tablewright.schema.columns import ColumnType
from tablewright.schema.grammars.base import Grammar


class PostgresGrammar(Grammar):
    """DDL compiler for PostgreSQL 12+."""

    name = 'postgresql'
    sqlalchemy_dialect = PGDialect
    supports_conditional_column_drop = True
    modifiers = ('nullable', 'default', 'increment')

    def type_tiny_integer(self, column):
        return 'SMALLSERIAL' if column.auto_increment_flag else 'SMALLINT'

    type_small_integer = type_tiny_integer

    def type_medium_integer(self, column):
        return 'SERIAL' if column.auto_increment_flag else 'INTEGER'

    type_integer = type_medium_integer

    def type_big_integer(self, column):
        return 'BIGSERIAL' if column.auto_increment_flag else 'BIGINT'

    def type_string(self, column):
        return f"VARCHAR({column.length})"

    def type_char(self, column):
        return f"CHAR({column.length})"

    def type_text(self, column):
        return 'TEXT'

    type_medium_text = type_text
    type_long_text = type_text

    def type_decimal(self, column):
        return f"DECIMAL{self.numeric_args(column)}"

    def type_float(self, column):
        if column.precision is not None:
            return f"FLOAT({column.precision})"
        return 'REAL'

    def type_double(self, column):
        return 'DOUBLE PRECISION'

    def type_date(self, column):
        return 'DATE'

    def type_datetime(self, column):
        return 'TIMESTAMP(0) WITHOUT TIME ZONE'

    type_timestamp = type_datetime

    def type_time(self, column):
        return 'TIME(0) WITHOUT TIME ZONE'

    def type_boolean(self, column):
        return 'BOOLEAN'

    def type_binary(self, column):
        return 'BYTEA'

    def type_json(self, column):
        return 'JSON'

    def type_jsonb(self, column):
        return 'JSONB'

    def type_enum(self, column):
        return f"VARCHAR(255) {self.enum_check(column)}"

    def boolean_sql(self, value):
        return 'TRUE' if value else 'FALSE'

    def modify_increment(self, column, blueprint, result):
        if column.auto_increment_flag:
            return 'PRIMARY KEY'
        return None

    def compile_comments(self, table, columns):
        return [
            f"COMMENT ON COLUMN {self.wrap(table)}.{self.wrap(column.name)} "
            f"IS {self.quote_string(column.comment_text)}"
            for column in columns
            if column.comment_text is not None
        ]

    def compile_change_column(self, blueprint, column, result):
        if column.type == ColumnType.ENUM or column.auto_increment_flag:
            raise CompileError(
                f"postgresql cannot change '{column.name}' to "
                f"{'an auto-increment' if column.auto_increment_flag else 'an enum'} column",
                {'table': blueprint.table, 'column': column.name},
            )
        name = self.wrap(column.name)
        clauses = [f"ALTER COLUMN {name} TYPE {self.type_sql(column)}"]
        if column.nullable_flag:
            clauses.append(f"ALTER COLUMN {name} DROP NOT NULL")
        else:
            clauses.append(f"ALTER COLUMN {name} SET NOT NULL")
        if column.has_default:
            clauses.append(
                f"ALTER COLUMN {name} SET DEFAULT {self.default_sql(column.default_value)}"
            )
        else:
            clauses.append(f"ALTER COLUMN {name} DROP DEFAULT")
        return [
            f"ALTER TABLE {self.wrap(blueprint.table)} {', '.join(clauses)}",
            *self.compile_comments(blueprint.table, [column]),
        ]
