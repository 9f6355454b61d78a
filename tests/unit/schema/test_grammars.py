"""
Unit tests for the DDL grammars.

Compilation is pure, so these tests check the exact statements each
dialect produces without a database.

Tests cover:
- CREATE TABLE with inline keys and trailing indexes
- ALTER TABLE add/drop/rename/change per dialect
- Unsupported modifiers downgraded to warnings
- Operations a dialect cannot express (CompileError)
- Validation against introspected table state
"""

import pytest

from tablewright.errors import (
    CompileError,
    DefinitionError,
    DependentObjectError,
    DuplicateColumnError,
    DuplicateIndexNameError,
)
from tablewright.schema.blueprint import Blueprint
from tablewright.schema.columns import Expression
from tablewright.schema.grammars import (
    MySqlGrammar,
    PostgresGrammar,
    SQLiteGrammar,
    WarningLevel,
    get_grammar,
)
from tablewright.schema.introspection import ColumnState, IndexState, TableState


# ==================== Test Fixtures ====================

@pytest.fixture
def sqlite():
    return SQLiteGrammar()


@pytest.fixture
def postgres():
    return PostgresGrammar()


@pytest.fixture
def mysql():
    return MySqlGrammar()


@pytest.fixture
def users_state():
    """Existing users table referenced by posts.user_id."""
    return TableState(
        'users',
        columns=(
            ColumnState('id', 'INTEGER', False),
            ColumnState('email', 'VARCHAR', False),
            ColumnState('age', 'INTEGER', True),
        ),
        indexes=(
            IndexState(None, 'primary', ('id',), 'users'),
            IndexState('users_email_unique', 'unique', ('email',), 'users'),
        ),
        referenced_by=(
            IndexState('posts_user_id_foreign', 'foreign', ('user_id',), 'posts',
                       'users', ('id',)),
        ),
    )


def compile_blueprint(grammar, kind, build=None, table='users', state=None, **options):
    blueprint = Blueprint(table, state=state)
    if build is not None:
        build(blueprint)
    return grammar.compile(kind, blueprint, **options)


def build_users(table):
    table.id()
    table.string('email').unique()
    table.timestamps()


def build_posts(table):
    table.id()
    table.foreign_id('user_id').constrained()
    table.string('title')


# ==================== Create ====================

class TestCreateTable:
    """Test CREATE TABLE compilation."""

    def test_sqlite_users(self, sqlite):
        result = compile_blueprint(sqlite, 'create', build_users)
        assert result.statements == [
            'CREATE TABLE "users" ('
            '"id" INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL, '
            '"email" VARCHAR NOT NULL, '
            '"created_at" DATETIME NULL, '
            '"updated_at" DATETIME NULL)',
            'CREATE UNIQUE INDEX "users_email_unique" ON "users" ("email")',
        ]
        assert result.warnings == []

    def test_postgres_users(self, postgres):
        result = compile_blueprint(postgres, 'create', build_users)
        assert result.statements == [
            'CREATE TABLE "users" ('
            '"id" BIGSERIAL NOT NULL PRIMARY KEY, '
            '"email" VARCHAR(255) NOT NULL, '
            '"created_at" TIMESTAMP(0) WITHOUT TIME ZONE NULL, '
            '"updated_at" TIMESTAMP(0) WITHOUT TIME ZONE NULL)',
            'CREATE UNIQUE INDEX "users_email_unique" ON "users" ("email")',
        ]

    def test_mysql_users(self, mysql):
        result = compile_blueprint(mysql, 'create', build_users)
        assert result.statements == [
            'CREATE TABLE `users` ('
            '`id` BIGINT UNSIGNED NOT NULL AUTO_INCREMENT PRIMARY KEY, '
            '`email` VARCHAR(255) NOT NULL, '
            '`created_at` TIMESTAMP NULL, '
            '`updated_at` TIMESTAMP NULL)',
            'CREATE UNIQUE INDEX `users_email_unique` ON `users` (`email`)',
        ]

    def test_inline_foreign_key(self, postgres):
        result = compile_blueprint(postgres, 'create', build_posts, table='posts')
        assert result.statements == [
            'CREATE TABLE "posts" ('
            '"id" BIGSERIAL NOT NULL PRIMARY KEY, '
            '"user_id" BIGINT NOT NULL, '
            '"title" VARCHAR(255) NOT NULL, '
            'CONSTRAINT "posts_user_id_foreign" FOREIGN KEY ("user_id") '
            'REFERENCES "users" ("id") ON DELETE RESTRICT ON UPDATE RESTRICT)',
        ]

    def test_foreign_key_actions(self, sqlite):
        def build(table):
            table.increments('id')
            table.integer('user_id').nullable()
            table.foreign('user_id').references('id').on('users').null_on_delete()

        result = compile_blueprint(sqlite, 'create', build, table='posts')
        assert result.statements[0].endswith(
            'CONSTRAINT "posts_user_id_foreign" FOREIGN KEY ("user_id") '
            'REFERENCES "users" ("id") ON DELETE SET NULL ON UPDATE RESTRICT)'
        )

    def test_constrained_column_actions(self, mysql):
        def build(table):
            table.id()
            table.foreign_id('user_id').constrained().cascade_on_delete()

        result = compile_blueprint(mysql, 'create', build, table='posts')
        assert result.statements[0].endswith(
            'CONSTRAINT `posts_user_id_foreign` FOREIGN KEY (`user_id`) '
            'REFERENCES `users` (`id`) ON DELETE CASCADE ON UPDATE RESTRICT)'
        )

    def test_composite_primary_key(self, postgres):
        def build(table):
            table.integer('user_id')
            table.integer('role_id')
            table.primary(['user_id', 'role_id'])

        result = compile_blueprint(postgres, 'create', build, table='role_user')
        assert result.statements == [
            'CREATE TABLE "role_user" ("user_id" INTEGER NOT NULL, '
            '"role_id" INTEGER NOT NULL, '
            'CONSTRAINT "role_user_user_id_role_id_primary" '
            'PRIMARY KEY ("user_id", "role_id"))',
        ]

    def test_enum_per_dialect(self, sqlite, postgres, mysql):
        def build(table):
            table.enum('status', ['draft', 'published'])

        assert compile_blueprint(sqlite, 'create', build, table='posts').statements == [
            'CREATE TABLE "posts" ("status" VARCHAR '
            'CHECK ("status" IN (\'draft\', \'published\')) NOT NULL)',
        ]
        assert compile_blueprint(postgres, 'create', build, table='posts').statements == [
            'CREATE TABLE "posts" ("status" VARCHAR(255) '
            'CHECK ("status" IN (\'draft\', \'published\')) NOT NULL)',
        ]
        assert compile_blueprint(mysql, 'create', build, table='posts').statements == [
            "CREATE TABLE `posts` (`status` ENUM('draft', 'published') NOT NULL)",
        ]

    def test_defaults(self, sqlite, postgres):
        def build(table):
            table.boolean('active').default(True)
            table.string('role').default("o'neil")
            table.integer('score').default(0)
            table.timestamp('seen_at').use_current()

        assert compile_blueprint(sqlite, 'create', build).statements == [
            'CREATE TABLE "users" ('
            '"active" TINYINT(1) NOT NULL DEFAULT 1, '
            '"role" VARCHAR NOT NULL DEFAULT \'o\'\'neil\', '
            '"score" INTEGER NOT NULL DEFAULT 0, '
            '"seen_at" DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP)',
        ]
        assert compile_blueprint(postgres, 'create', build).statements[0].startswith(
            'CREATE TABLE "users" ("active" BOOLEAN NOT NULL DEFAULT TRUE, '
        )

    def test_numeric_types(self, postgres, mysql):
        def build(table):
            table.decimal('price')
            table.double('ratio')
            table.decimal('amount', 10, 4).unsigned()

        assert compile_blueprint(postgres, 'create', build, table='items').statements == [
            'CREATE TABLE "items" ("price" DECIMAL(8, 2) NOT NULL, '
            '"ratio" DOUBLE PRECISION NOT NULL, '
            '"amount" DECIMAL(10, 4) NOT NULL)',
        ]
        assert compile_blueprint(mysql, 'create', build, table='items').statements == [
            'CREATE TABLE `items` (`price` DECIMAL(8, 2) NOT NULL, '
            '`ratio` DOUBLE NOT NULL, '
            '`amount` DECIMAL(10, 4) UNSIGNED NOT NULL)',
        ]

    def test_default_expression(self, mysql):
        def build(table):
            table.datetime('expires_at').default(Expression('NOW()'))

        assert compile_blueprint(mysql, 'create', build).statements == [
            'CREATE TABLE `users` (`expires_at` DATETIME NOT NULL DEFAULT NOW())',
        ]


# ==================== Column types ====================

COLUMN_TYPES = [
    # (build, sqlite, postgresql, mysql)
    (lambda t: t.tiny_integer('c'), 'INTEGER', 'SMALLINT', 'TINYINT'),
    (lambda t: t.small_integer('c'), 'INTEGER', 'SMALLINT', 'SMALLINT'),
    (lambda t: t.medium_integer('c'), 'INTEGER', 'INTEGER', 'MEDIUMINT'),
    (lambda t: t.integer('c'), 'INTEGER', 'INTEGER', 'INT'),
    (lambda t: t.big_integer('c'), 'INTEGER', 'BIGINT', 'BIGINT'),
    (lambda t: t.string('c', 40), 'VARCHAR', 'VARCHAR(40)', 'VARCHAR(40)'),
    (lambda t: t.char('c', 2), 'VARCHAR', 'CHAR(2)', 'CHAR(2)'),
    (lambda t: t.text('c'), 'TEXT', 'TEXT', 'TEXT'),
    (lambda t: t.medium_text('c'), 'TEXT', 'TEXT', 'MEDIUMTEXT'),
    (lambda t: t.long_text('c'), 'TEXT', 'TEXT', 'LONGTEXT'),
    (lambda t: t.float('c'), 'FLOAT', 'REAL', 'FLOAT'),
    (lambda t: t.float('c', 53), 'FLOAT', 'FLOAT(53)', 'FLOAT(53)'),
    (lambda t: t.double('c', 15, 8), 'FLOAT', 'DOUBLE PRECISION', 'DOUBLE(15, 8)'),
    (lambda t: t.date('c'), 'DATE', 'DATE', 'DATE'),
    (lambda t: t.datetime('c'), 'DATETIME', 'TIMESTAMP(0) WITHOUT TIME ZONE', 'DATETIME'),
    (lambda t: t.time('c'), 'TIME', 'TIME(0) WITHOUT TIME ZONE', 'TIME'),
    (lambda t: t.timestamp('c'), 'DATETIME', 'TIMESTAMP(0) WITHOUT TIME ZONE', 'TIMESTAMP'),
    (lambda t: t.boolean('c'), 'TINYINT(1)', 'BOOLEAN', 'TINYINT(1)'),
    (lambda t: t.binary('c'), 'BLOB', 'BYTEA', 'BLOB'),
    (lambda t: t.binary('c', 16), 'BLOB', 'BYTEA', 'VARBINARY(16)'),
    (lambda t: t.json('c'), 'TEXT', 'JSON', 'JSON'),
    (lambda t: t.jsonb('c'), 'TEXT', 'JSONB', 'JSON'),
]

AUTO_INCREMENT = [
    (lambda t: t.tiny_integer('c', auto_increment=True), 'SMALLSERIAL', 'TINYINT'),
    (lambda t: t.small_integer('c', auto_increment=True), 'SMALLSERIAL', 'SMALLINT'),
    (lambda t: t.medium_integer('c', auto_increment=True), 'SERIAL', 'MEDIUMINT'),
    (lambda t: t.integer('c', auto_increment=True), 'SERIAL', 'INT'),
    (lambda t: t.big_integer('c', auto_increment=True), 'BIGSERIAL', 'BIGINT'),
]


class TestColumnTypes:
    """Test the column type each dialect emits."""

    @pytest.mark.parametrize("build, sqlite_sql, postgres_sql, mysql_sql", COLUMN_TYPES)
    def test_type(self, sqlite, postgres, mysql, build, sqlite_sql, postgres_sql, mysql_sql):
        assert compile_blueprint(sqlite, 'create', build, table='t').statements == [
            f'CREATE TABLE "t" ("c" {sqlite_sql} NOT NULL)',
        ]
        assert compile_blueprint(postgres, 'create', build, table='t').statements == [
            f'CREATE TABLE "t" ("c" {postgres_sql} NOT NULL)',
        ]
        assert compile_blueprint(mysql, 'create', build, table='t').statements == [
            f'CREATE TABLE `t` (`c` {mysql_sql} NOT NULL)',
        ]

    @pytest.mark.parametrize("build, postgres_sql, mysql_sql", AUTO_INCREMENT)
    def test_auto_increment(self, sqlite, postgres, mysql, build, postgres_sql, mysql_sql):
        assert compile_blueprint(sqlite, 'create', build, table='t').statements == [
            'CREATE TABLE "t" ("c" INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL)',
        ]
        assert compile_blueprint(postgres, 'create', build, table='t').statements == [
            f'CREATE TABLE "t" ("c" {postgres_sql} NOT NULL PRIMARY KEY)',
        ]
        assert compile_blueprint(mysql, 'create', build, table='t').statements == [
            f'CREATE TABLE `t` (`c` {mysql_sql} NOT NULL AUTO_INCREMENT PRIMARY KEY)',
        ]

    def test_unsigned_only_on_mysql(self, sqlite, postgres, mysql):
        def build(table):
            table.unsigned_integer('votes')

        sqlite_result = compile_blueprint(sqlite, 'create', build, table='t')
        assert sqlite_result.statements == ['CREATE TABLE "t" ("votes" INTEGER NOT NULL)']
        assert sqlite_result.warnings == []

        postgres_result = compile_blueprint(postgres, 'create', build, table='t')
        assert postgres_result.statements == ['CREATE TABLE "t" ("votes" INTEGER NOT NULL)']
        assert postgres_result.warnings == []

        assert compile_blueprint(mysql, 'create', build, table='t').statements == [
            'CREATE TABLE `t` (`votes` INT UNSIGNED NOT NULL)',
        ]



class TestCreateErrors:
    """Test definition errors caught while compiling a create."""

    def test_no_columns(self, sqlite):
        with pytest.raises(DefinitionError, match="at least one column"):
            compile_blueprint(sqlite, 'create')

    def test_index_on_unknown_column(self, sqlite):
        def build(table):
            table.id()
            table.index('missing')

        with pytest.raises(DefinitionError, match="unknown column"):
            compile_blueprint(sqlite, 'create', build)

    def test_two_primary_keys(self, postgres):
        def build(table):
            table.id()
            table.string('code').primary()

        with pytest.raises(DefinitionError, match="more than one primary key"):
            compile_blueprint(postgres, 'create', build)

    def test_change_in_create(self, postgres):
        def build(table):
            table.string('email').change()

        with pytest.raises(DefinitionError, match="change"):
            compile_blueprint(postgres, 'create', build)

    def test_drop_in_create(self, postgres):
        def build(table):
            table.string('email')
            table.drop_column('legacy')

        with pytest.raises(CompileError):
            compile_blueprint(postgres, 'create', build)

    def test_incomplete_foreign_key(self, sqlite):
        def build(table):
            table.integer('user_id')
            table.foreign('user_id')

        with pytest.raises(DefinitionError, match="references"):
            compile_blueprint(sqlite, 'create', build, table='posts')


class TestWarnings:
    """Test modifiers a dialect cannot honour."""

    def test_engine_ignored_by_sqlite(self, sqlite):
        blueprint = Blueprint('users', engine='InnoDB')
        blueprint.id()
        result = sqlite.compile('create', blueprint)

        assert 'ENGINE' not in result.statements[0]
        assert len(result.warnings) == 1
        warning = result.warnings[0]
        assert warning.category == 'engine'
        assert warning.level is WarningLevel.WARNING
        assert repr(warning) == "[WARNING] users: storage engine 'InnoDB' ignored by sqlite"

    def test_engine_on_mysql(self, mysql):
        blueprint = Blueprint('users', engine='InnoDB')
        blueprint.id()
        result = mysql.compile('create', blueprint)
        assert result.statements[0].endswith(') ENGINE = InnoDB')
        assert result.warnings == []

    def test_placement_ignored_on_create(self, mysql):
        def build(table):
            table.string('email')
            table.string('name').after('email')

        result = compile_blueprint(mysql, 'create', build)
        assert 'AFTER' not in result.statements[0]
        assert [w.category for w in result.warnings] == ['placement']

    def test_placement_ignored_by_postgres(self, postgres):
        def build(table):
            table.string('nick').nullable().after('email')

        result = compile_blueprint(postgres, 'alter', build)
        assert result.statements == ['ALTER TABLE "users" ADD COLUMN "nick" VARCHAR(255) NULL']
        assert [w.category for w in result.warnings] == ['placement']

    def test_comment_ignored_by_sqlite(self, sqlite):
        def build(table):
            table.string('email').comment('Login address')

        result = compile_blueprint(sqlite, 'create', build)
        assert result.statements == ['CREATE TABLE "users" ("email" VARCHAR NOT NULL)']
        assert [w.category for w in result.warnings] == ['comment']

    def test_comment_on_postgres(self, postgres):
        def build(table):
            table.increments('id')
            table.string('email').comment('Login address')

        result = compile_blueprint(postgres, 'create', build)
        assert result.statements == [
            'CREATE TABLE "users" ("id" SERIAL NOT NULL PRIMARY KEY, '
            '"email" VARCHAR(255) NOT NULL)',
            'COMMENT ON COLUMN "users"."email" IS \'Login address\'',
        ]
        assert result.warnings == []

    def test_comment_inline_on_mysql(self, mysql):
        def build(table):
            table.string('email').comment('Login address')

        result = compile_blueprint(mysql, 'create', build)
        assert result.statements == [
            "CREATE TABLE `users` (`email` VARCHAR(255) NOT NULL COMMENT 'Login address')",
        ]


# ==================== Alter ====================

class TestAlterTable:
    """Test ALTER TABLE compilation without introspection."""

    def test_add_and_drop(self, postgres):
        def build(table):
            table.string('name', 100).nullable()
            table.drop_column('age')

        result = compile_blueprint(postgres, 'alter', build)
        assert result.statements == [
            'ALTER TABLE "users" ADD COLUMN "name" VARCHAR(100) NULL',
            'ALTER TABLE "users" DROP COLUMN "age"',
        ]

    def test_mysql_placement(self, mysql):
        def build(table):
            table.string('nick').nullable().after('email')
            table.string('code').first()

        result = compile_blueprint(mysql, 'alter', build)
        assert result.statements == [
            'ALTER TABLE `users` ADD COLUMN `nick` VARCHAR(255) NULL AFTER `email`',
            'ALTER TABLE `users` ADD COLUMN `code` VARCHAR(255) NOT NULL FIRST',
        ]
        assert result.warnings == []

    def test_drop_many_postgres(self, postgres):
        result = compile_blueprint(postgres, 'alter', lambda t: t.drop_column('a', 'b'))
        assert result.statements == ['ALTER TABLE "users" DROP COLUMN "a", DROP COLUMN "b"']

    def test_drop_many_sqlite(self, sqlite):
        result = compile_blueprint(sqlite, 'alter', lambda t: t.drop_column('a', 'b'))
        assert result.statements == [
            'ALTER TABLE "users" DROP COLUMN "a"',
            'ALTER TABLE "users" DROP COLUMN "b"',
        ]

    def test_conditional_drop_postgres(self, postgres):
        result = compile_blueprint(postgres, 'alter', lambda t: t.drop_column_if_exists('age'))
        assert result.statements == ['ALTER TABLE "users" DROP COLUMN IF EXISTS "age"']

    def test_conditional_drop_sqlite_needs_state(self, sqlite):
        with pytest.raises(CompileError, match="introspection"):
            compile_blueprint(sqlite, 'alter', lambda t: t.drop_column_if_exists('age'))

    def test_conditional_drop_mysql_needs_state(self, mysql):
        with pytest.raises(CompileError, match="introspection"):
            compile_blueprint(mysql, 'alter', lambda t: t.drop_column_if_exists('age'))

    def test_rename_column(self, sqlite):
        result = compile_blueprint(sqlite, 'alter', lambda t: t.rename_column('mail', 'email'))
        assert result.statements == ['ALTER TABLE "users" RENAME COLUMN "mail" TO "email"']

    def test_add_index(self, postgres):
        result = compile_blueprint(postgres, 'alter', lambda t: t.index(['last', 'first']))
        assert result.statements == [
            'CREATE INDEX "users_last_first_index" ON "users" ("last", "first")',
        ]

    def test_add_foreign_postgres(self, postgres):
        def build(table):
            table.foreign('user_id').references('id').on('users').cascade_on_delete()

        result = compile_blueprint(postgres, 'alter', build, table='posts')
        assert result.statements == [
            'ALTER TABLE "posts" ADD CONSTRAINT "posts_user_id_foreign" '
            'FOREIGN KEY ("user_id") REFERENCES "users" ("id") '
            'ON DELETE CASCADE ON UPDATE RESTRICT',
        ]

    def test_add_primary_postgres(self, postgres):
        result = compile_blueprint(postgres, 'alter', lambda t: t.primary('code'), table='codes')
        assert result.statements == [
            'ALTER TABLE "codes" ADD CONSTRAINT "codes_code_primary" PRIMARY KEY ("code")',
        ]

    def test_drop_indexes_postgres(self, postgres):
        def build(table):
            table.drop_unique('users_email_unique')
            table.drop_foreign('users_team_id_foreign')

        result = compile_blueprint(postgres, 'alter', build)
        assert result.statements == [
            'DROP INDEX "users_email_unique"',
            'ALTER TABLE "users" DROP CONSTRAINT "users_team_id_foreign"',
        ]

    def test_drop_indexes_mysql(self, mysql):
        def build(table):
            table.drop_primary('users_id_primary')
            table.drop_foreign('users_team_id_foreign')
            table.drop_index('users_name_index')

        result = compile_blueprint(mysql, 'alter', build)
        assert result.statements == [
            'ALTER TABLE `users` DROP PRIMARY KEY',
            'ALTER TABLE `users` DROP FOREIGN KEY `users_team_id_foreign`',
            'ALTER TABLE `users` DROP INDEX `users_name_index`',
        ]

    def test_change_postgres(self, postgres):
        result = compile_blueprint(
            postgres, 'alter', lambda t: t.string('name', 50).nullable().change()
        )
        assert result.statements == [
            'ALTER TABLE "users" ALTER COLUMN "name" TYPE VARCHAR(50), '
            'ALTER COLUMN "name" DROP NOT NULL, '
            'ALTER COLUMN "name" DROP DEFAULT',
        ]

    def test_change_mysql(self, mysql):
        result = compile_blueprint(
            mysql, 'alter', lambda t: t.string('name', 50).nullable().change()
        )
        assert result.statements == ['ALTER TABLE `users` MODIFY `name` VARCHAR(50) NULL']

    def test_change_sqlite(self, sqlite):
        with pytest.raises(CompileError, match="cannot change"):
            compile_blueprint(sqlite, 'alter', lambda t: t.string('name', 50).change())

    def test_sqlite_cannot_add_auto_increment(self, sqlite):
        with pytest.raises(CompileError, match="auto-increment"):
            compile_blueprint(sqlite, 'alter', lambda t: t.increments('id'))

    def test_sqlite_cannot_add_foreign(self, sqlite):
        def build(table):
            table.foreign('user_id').references('id').on('users')

        with pytest.raises(CompileError, match="foreign"):
            compile_blueprint(sqlite, 'alter', build, table='posts')

    def test_sqlite_cannot_drop_primary(self, sqlite):
        with pytest.raises(CompileError):
            compile_blueprint(sqlite, 'alter', lambda t: t.drop_primary('users_id_primary'))


class TestAlterValidation:
    """Test alter validation against introspected table state."""

    def test_duplicate_existing_column(self, sqlite, users_state):
        with pytest.raises(DuplicateColumnError):
            compile_blueprint(sqlite, 'alter', lambda t: t.string('email'), state=users_state)

    def test_duplicate_existing_index(self, sqlite, users_state):
        with pytest.raises(DuplicateIndexNameError):
            compile_blueprint(sqlite, 'alter', lambda t: t.unique('email'), state=users_state)

    def test_index_on_missing_column(self, sqlite, users_state):
        with pytest.raises(DefinitionError, match="unknown column"):
            compile_blueprint(sqlite, 'alter', lambda t: t.index('nope'), state=users_state)

    def test_index_on_column_added_earlier(self, sqlite, users_state):
        def build(table):
            table.string('nick').nullable()
            table.index('nick')

        result = compile_blueprint(sqlite, 'alter', build, state=users_state)
        assert result.statements == [
            'ALTER TABLE "users" ADD COLUMN "nick" VARCHAR NULL',
            'CREATE INDEX "users_nick_index" ON "users" ("nick")',
        ]

    def test_drop_missing_column(self, sqlite, users_state):
        with pytest.raises(DefinitionError, match="missing column"):
            compile_blueprint(sqlite, 'alter', lambda t: t.drop_column('nope'), state=users_state)

    def test_conditional_drop_skips_missing(self, sqlite, users_state):
        result = compile_blueprint(
            sqlite, 'alter', lambda t: t.drop_column_if_exists('nope', 'age'),
            state=users_state,
        )
        assert result.statements == ['ALTER TABLE "users" DROP COLUMN "age"']

    def test_conditional_drop_mysql(self, mysql, users_state):
        result = compile_blueprint(
            mysql, 'alter', lambda t: t.drop_column_if_exists('age', 'nope'),
            state=users_state,
        )
        assert result.statements == ['ALTER TABLE `users` DROP COLUMN `age`']

    def test_conditional_drop_mysql_nothing_left(self, mysql, users_state):
        result = compile_blueprint(
            mysql, 'alter', lambda t: t.drop_column_if_exists('nope'), state=users_state,
        )
        assert result.statements == []

    def test_drop_column_with_unique_index(self, sqlite, users_state):
        with pytest.raises(DependentObjectError) as exc_info:
            compile_blueprint(sqlite, 'alter', lambda t: t.drop_column('email'),
                              state=users_state)
        assert 'users_email_unique' in str(exc_info.value)

    def test_drop_index_then_column(self, sqlite, users_state):
        def build(table):
            table.drop_unique('users_email_unique')
            table.drop_column('email')

        result = compile_blueprint(sqlite, 'alter', build, state=users_state)
        assert result.statements == [
            'DROP INDEX "users_email_unique"',
            'ALTER TABLE "users" DROP COLUMN "email"',
        ]

    def test_drop_referenced_column(self, postgres, users_state):
        with pytest.raises(DependentObjectError) as exc_info:
            compile_blueprint(postgres, 'alter', lambda t: t.drop_column('id'),
                              state=users_state)
        assert exc_info.value.code == 'DEPENDENT_OBJECT'
        assert 'posts_user_id_foreign' in exc_info.value.message

    def test_drop_column_used_by_pending_index(self, postgres, users_state):
        def build(table):
            table.index('age')
            table.drop_column('age')

        with pytest.raises(DependentObjectError):
            compile_blueprint(postgres, 'alter', build, state=users_state)

    def test_rename_missing_column(self, sqlite, users_state):
        with pytest.raises(DefinitionError):
            compile_blueprint(sqlite, 'alter', lambda t: t.rename_column('nope', 'x'),
                              state=users_state)

    def test_rename_onto_existing_column(self, sqlite, users_state):
        with pytest.raises(DuplicateColumnError):
            compile_blueprint(sqlite, 'alter', lambda t: t.rename_column('age', 'email'),
                              state=users_state)

    def test_change_missing_column(self, postgres, users_state):
        with pytest.raises(DefinitionError, match="missing column"):
            compile_blueprint(postgres, 'alter', lambda t: t.string('nope').change(),
                              state=users_state)


# ==================== Table operations ====================

class TestTableOperations:
    """Test rename and drop compilation."""

    def test_rename(self, postgres, mysql):
        assert compile_blueprint(postgres, 'rename', to='members').statements == [
            'ALTER TABLE "users" RENAME TO "members"',
        ]
        assert compile_blueprint(mysql, 'rename', to='members').statements == [
            'RENAME TABLE `users` TO `members`',
        ]

    def test_rename_needs_target(self, postgres):
        with pytest.raises(DefinitionError):
            compile_blueprint(postgres, 'rename')

    def test_drop(self, sqlite):
        assert compile_blueprint(sqlite, 'drop').statements == ['DROP TABLE "users"']
        assert compile_blueprint(sqlite, 'drop_if_exists').statements == [
            'DROP TABLE IF EXISTS "users"',
        ]

    def test_unknown_operation(self, sqlite):
        with pytest.raises(CompileError, match="Unknown operation"):
            compile_blueprint(sqlite, 'truncate')


class TestGetGrammar:
    """Test grammar lookup."""

    @pytest.mark.parametrize("dialect,grammar_cls", [
        ('sqlite', SQLiteGrammar),
        ('postgresql', PostgresGrammar),
        ('mysql', MySqlGrammar),
        ('mariadb', MySqlGrammar),
    ])
    def test_known(self, dialect, grammar_cls):
        assert isinstance(get_grammar(dialect), grammar_cls)

    def test_unknown(self):
        with pytest.raises(CompileError, match="Unsupported dialect"):
            get_grammar('oracle')
