#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Schema gateway.

The entry point migrations use to define and change tables. Each call
opens a Blueprint, hands it to the author's callback, compiles it with the
grammar for the connection's dialect and executes the statements.

Usage:
    async def up(self, schema):
        await schema.create('flights', lambda table: (
            table.id(),
            table.string('name'),
            table.timestamps(),
        ))

        async def add_airline(table):
            table.string('airline').nullable().after('name')

        await schema.table('flights', add_airline)
"""
import inspect
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Union

import sqlparse
from sqlalchemy.exc import SQLAlchemyError

from tablewright.database import Connection, Database, DatabaseManager, PretendConnection
from tablewright.errors import DefinitionError, ExecutionError
from tablewright.schema.blueprint import Blueprint
from tablewright.schema.grammars import CompileWarning, get_grammar

BlueprintCallback = Callable[[Blueprint], Union[None, Any, Awaitable[Any]]]


class Schema:
    """
    Table operations against one connection.

    Args:
        bind: A Connection (statements join its transaction) or a Database
            (each call opens its own scoped transaction)
        connections: DatabaseManager for connection(name)
        pretend: Record statements instead of executing them

    Attributes:
        log: Statements executed (or recorded, in pretend mode), in order
        warnings: Compile warnings raised so far
    """

    def __init__(
        self,
        bind: Union[Connection, Database],
        connections: Optional[DatabaseManager] = None,
        pretend: bool = False,
        log: Optional[list[str]] = None,
        warnings: Optional[list[CompileWarning]] = None,
    ):
        self.bind = bind
        self.connections = connections
        self.pretend = pretend
        self.log = [] if log is None else log
        self.warnings = [] if warnings is None else warnings
        self.grammar = get_grammar(bind.dialect)
        self.logger = logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Table operations
    # ------------------------------------------------------------------

    async def create(self, table: str, callback: BlueprintCallback) -> list[str]:
        """
        Create a new table.

        Args:
            table: Table name
            callback: Receives the Blueprint; may be a coroutine function

        Returns:
            Statements executed
        """
        return await self._apply('create', table, callback)

    async def table(self, table: str, callback: BlueprintCallback) -> list[str]:
        """
        Alter an existing table.

        The blueprint carries a snapshot of the table so the compiler can
        validate column and index references before anything runs.

        Raises:
            DefinitionError: If the table does not exist
        """
        return await self._apply('alter', table, callback, introspect=True)

    async def rename(self, from_: str, to: str) -> list[str]:
        return await self._apply('rename', from_, to=to)

    async def drop(self, table: str) -> list[str]:
        return await self._apply('drop', table)

    async def drop_if_exists(self, table: str) -> list[str]:
        return await self._apply('drop_if_exists', table)

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    async def has_table(self, table: str) -> bool:
        async with self._connection() as conn:
            return await conn.has_table(table)

    async def has_column(self, table: str, column: str) -> bool:
        async with self._connection() as conn:
            state = await conn.introspect(table)
        return state is not None and state.has_column(column)

    async def get_column_listing(self, table: str) -> list[str]:
        async with self._connection() as conn:
            state = await conn.introspect(table)
        return state.column_names if state is not None else []

    # ------------------------------------------------------------------
    # Other connections and raw SQL
    # ------------------------------------------------------------------

    def connection(self, name: str) -> 'Schema':
        """
        Gateway for another named connection.

        The default connection is not touched. Statements run in their own
        transaction on the named database and share this gateway's log.
        """
        if self.connections is None:
            raise DefinitionError(
                f"No connections configured; cannot switch to '{name}'"
            )
        return Schema(
            self.connections.get(name),
            connections=self.connections,
            pretend=self.pretend,
            log=self.log,
            warnings=self.warnings,
        )

    async def statement(self, sql: str) -> list[str]:
        """
        Run raw SQL, split into individual statements.

        Returns:
            Statements executed
        """
        statements = [
            s.strip().rstrip(';').strip() for s in sqlparse.split(sql)
        ]
        statements = [s for s in statements if s]
        async with self._connection() as conn:
            for statement in statements:
                await self._execute(conn, statement)
        return statements

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[Connection]:
        if isinstance(self.bind, Database):
            async with self.bind.begin() as conn:
                yield self._wrap(conn)
        else:
            yield self._wrap(self.bind)

    def _wrap(self, conn: Connection) -> Connection:
        if self.pretend and not isinstance(conn, PretendConnection):
            return PretendConnection(conn)
        return conn

    async def _apply(self, kind: str, table: str,
                     callback: Optional[BlueprintCallback] = None,
                     introspect: bool = False, **options: Any) -> list[str]:
        async with self._connection() as conn:
            state = None
            if introspect:
                state = await conn.introspect(table)
                if state is None:
                    raise DefinitionError(
                        f"Table '{table}' does not exist", {'table': table}
                    )

            blueprint = Blueprint(table, state=state)
            if callback is not None:
                outcome = callback(blueprint)
                if inspect.isawaitable(outcome):
                    await outcome

            result = self.grammar.compile(kind, blueprint, **options)
            for warning in result.warnings:
                self.logger.warning('%r', warning)
                self.warnings.append(warning)

            for statement in result.statements:
                await self._execute(conn, statement)
            return result.statements

    async def _execute(self, conn: Connection, statement: str) -> None:
        self.logger.debug('Executing: %s', statement)
        try:
            await conn.execute(statement)
        except SQLAlchemyError as e:
            driver_error = getattr(e, 'orig', None) or e
            raise ExecutionError(
                f"Statement failed: {driver_error}",
                original_error=e,
                statement=statement,
            ) from e
        self.log.append(statement)

    def __repr__(self) -> str:
        return f"<Schema({self.grammar.name}{', pretend' if self.pretend else ''})>"
