#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Integration tests for the Schema gateway.

Tests the complete define, compile and execute path against a
file-backed SQLite database: create, alter, rename and drop, raw
statements, pretend mode and error reporting.
"""
import pytest
from sqlalchemy.exc import IntegrityError

from tablewright.errors import (
    DefinitionError,
    DependentObjectError,
    DuplicateColumnError,
    ExecutionError,
)
from tablewright.schema.builder import Schema


def build_users(table):
    table.id()
    table.string('email').unique()
    table.integer('age').nullable()
    table.timestamps()


def build_posts(table):
    table.id()
    table.foreign_id('user_id').constrained()
    table.string('title')


class TestCreateAndInspect:
    """Test creating tables and reading them back."""

    @pytest.mark.asyncio
    async def test_create_table(self, schema):
        statements = await schema.create('users', build_users)

        assert len(statements) == 2
        assert await schema.has_table('users')
        assert await schema.has_column('users', 'email')
        assert not await schema.has_column('users', 'name')
        assert await schema.get_column_listing('users') == [
            'id', 'email', 'age', 'created_at', 'updated_at',
        ]
        assert schema.log == statements

    @pytest.mark.asyncio
    async def test_missing_table(self, schema):
        assert not await schema.has_table('nope')
        assert not await schema.has_column('nope', 'id')
        assert await schema.get_column_listing('nope') == []

    @pytest.mark.asyncio
    async def test_async_callback(self, schema):
        async def build(table):
            table.increments('id')
            table.string('name')

        await schema.create('teams', build)
        assert await schema.get_column_listing('teams') == ['id', 'name']

    @pytest.mark.asyncio
    async def test_create_existing_table(self, schema):
        await schema.create('users', build_users)
        with pytest.raises(ExecutionError) as exc_info:
            await schema.create('users', build_users)
        assert exc_info.value.statement.startswith('CREATE TABLE "users"')
        assert exc_info.value.original_error is not None

    @pytest.mark.asyncio
    async def test_create_drop_create(self, schema):
        await schema.create('users', build_users)
        await schema.drop('users')
        assert not await schema.has_table('users')
        await schema.create('users', build_users)
        assert await schema.has_table('users')

    @pytest.mark.asyncio
    async def test_auto_increment_ids(self, schema, database):
        await schema.create('users', build_users)
        async with database.begin() as conn:
            await conn.insert('users', [{'email': 'a@example.com'}, {'email': 'b@example.com'}])
            rows = await conn.fetch('SELECT id FROM users ORDER BY id')
        assert [row.id for row in rows] == [1, 2]

    @pytest.mark.asyncio
    async def test_unique_index_enforced(self, schema, database):
        await schema.create('users', build_users)
        with pytest.raises(IntegrityError):
            async with database.begin() as conn:
                await conn.insert('users', [{'email': 'a@example.com'}, {'email': 'a@example.com'}])


class TestAlter:
    """Test altering existing tables."""

    @pytest.mark.asyncio
    async def test_add_then_drop_column(self, schema):
        await schema.create('users', build_users)

        await schema.table('users', lambda t: t.string('nickname').nullable())
        assert await schema.has_column('users', 'nickname')

        await schema.table('users', lambda t: t.drop_column('nickname'))
        assert not await schema.has_column('users', 'nickname')

    @pytest.mark.asyncio
    async def test_alter_missing_table(self, schema):
        with pytest.raises(DefinitionError, match="does not exist"):
            await schema.table('nope', lambda t: t.string('x'))

    @pytest.mark.asyncio
    async def test_duplicate_column_rejected_before_execution(self, schema):
        await schema.create('users', build_users)
        log_size = len(schema.log)

        with pytest.raises(DuplicateColumnError):
            await schema.table('users', lambda t: t.string('email'))
        assert len(schema.log) == log_size

    @pytest.mark.asyncio
    async def test_drop_indexed_column(self, schema):
        await schema.create('users', build_users)

        with pytest.raises(DependentObjectError):
            await schema.table('users', lambda t: t.drop_column('email'))

        def drop_email(table):
            table.drop_unique('users_email_unique')
            table.drop_column('email')

        await schema.table('users', drop_email)
        assert not await schema.has_column('users', 'email')

    @pytest.mark.asyncio
    async def test_drop_referenced_column(self, schema):
        await schema.create('users', build_users)
        await schema.create('posts', build_posts)

        with pytest.raises(DependentObjectError) as exc_info:
            await schema.table('users', lambda t: t.drop_column('id'))
        assert 'posts' in exc_info.value.message

    @pytest.mark.asyncio
    async def test_drop_foreign_key_column(self, schema):
        await schema.create('users', build_users)
        await schema.create('posts', build_posts)

        with pytest.raises(DependentObjectError):
            await schema.table('posts', lambda t: t.drop_column('user_id'))

    @pytest.mark.asyncio
    async def test_rename_column(self, schema):
        await schema.create('users', build_users)
        await schema.table('users', lambda t: t.rename_column('age', 'years'))
        assert await schema.has_column('users', 'years')
        assert not await schema.has_column('users', 'age')

    @pytest.mark.asyncio
    async def test_drop_column_if_exists(self, schema):
        await schema.create('users', build_users)
        statements = await schema.table(
            'users', lambda t: t.drop_column_if_exists('age', 'nope')
        )
        assert statements == ['ALTER TABLE "users" DROP COLUMN "age"']


class TestTableOperations:
    """Test rename and drop."""

    @pytest.mark.asyncio
    async def test_rename(self, schema):
        await schema.create('users', build_users)
        await schema.rename('users', 'members')
        assert await schema.has_table('members')
        assert not await schema.has_table('users')

    @pytest.mark.asyncio
    async def test_drop_if_exists(self, schema):
        await schema.drop_if_exists('nope')
        await schema.create('users', build_users)
        await schema.drop_if_exists('users')
        assert not await schema.has_table('users')

    @pytest.mark.asyncio
    async def test_drop_missing(self, schema):
        with pytest.raises(ExecutionError):
            await schema.drop('nope')


class TestStatement:
    """Test raw SQL."""

    @pytest.mark.asyncio
    async def test_splits_statements(self, schema, database):
        statements = await schema.statement("""
            CREATE TABLE notes (id INTEGER PRIMARY KEY, body TEXT);
            INSERT INTO notes (body) VALUES ('a; b');
        """)
        assert statements == [
            'CREATE TABLE notes (id INTEGER PRIMARY KEY, body TEXT)',
            "INSERT INTO notes (body) VALUES ('a; b')",
        ]
        async with database.begin() as conn:
            rows = await conn.fetch('SELECT body FROM notes')
        assert [row.body for row in rows] == ['a; b']

    @pytest.mark.asyncio
    async def test_failure_rolls_back_earlier_statements(self, schema):
        with pytest.raises(ExecutionError) as exc_info:
            await schema.statement(
                "CREATE TABLE notes (id INTEGER); INSERT INTO missing VALUES (1);"
            )
        assert exc_info.value.statement == 'INSERT INTO missing VALUES (1)'
        assert not await schema.has_table('notes')


class TestPretend:
    """Test pretend mode."""

    @pytest.mark.asyncio
    async def test_records_without_executing(self, database):
        schema = Schema(database, pretend=True)
        statements = await schema.create('users', build_users)

        assert statements == schema.log
        assert schema.log[0].startswith('CREATE TABLE "users"')
        assert not await Schema(database).has_table('users')

    @pytest.mark.asyncio
    async def test_alter_validates_against_real_table(self, schema, database):
        await schema.create('users', build_users)
        pretend = Schema(database, pretend=True)

        await pretend.table('users', lambda t: t.drop_column('age'))
        assert pretend.log == ['ALTER TABLE "users" DROP COLUMN "age"']
        assert await schema.has_column('users', 'age')

        with pytest.raises(DuplicateColumnError):
            await pretend.table('users', lambda t: t.string('email'))


class TestConnections:
    """Test switching connections."""

    @pytest.mark.asyncio
    async def test_named_connection(self, schema):
        audit = schema.connection('audit')
        await audit.create('events', lambda t: t.id())

        assert await audit.has_table('events')
        assert not await schema.has_table('events')
        assert schema.log == audit.log

    @pytest.mark.asyncio
    async def test_without_manager(self, database):
        with pytest.raises(DefinitionError, match="No connections configured"):
            Schema(database).connection('audit')

    @pytest.mark.asyncio
    async def test_unknown_connection(self, schema):
        with pytest.raises(DefinitionError, match="Unknown connection"):
            schema.connection('nope')
