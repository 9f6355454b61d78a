#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Migration ledger: the persisted record of applied migrations.

One row per applied migration in the `migrations` table (name
configurable), grouped into batches. A batch is every migration applied
by one migrate run; rollback reverses whole batches.

The ledger lock keeps two processes from migrating the same database at
once. It fails fast rather than waiting.
"""
import logging
import os
import socket
import zlib
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, List, Optional

from sqlalchemy import (
    DateTime,
    Integer,
    String,
    column,
    delete,
    func,
    insert,
    select,
    table as table_clause,
    text,
)
from sqlalchemy.exc import IntegrityError

from tablewright.database import Connection, Database
from tablewright.errors import LedgerLockError, MigrationError
from tablewright.schema.builder import Schema

from .migration import LedgerEntry


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Ledger:
    """
    Applied-migration records and the migration lock.

    Attributes:
        database: Database holding the ledger table
        table: Ledger table name
        lock_table: Lock table name (SQLite only)

    Example:
        ledger = Ledger(database)
        await ledger.ensure_table()
        async with ledger.lock():
            batch = await ledger.next_batch_number()
            await ledger.record('default.2024_01_05_120000_create_flights', batch)
    """

    def __init__(self, database: Database, table: str = 'migrations'):
        self.logger = logging.getLogger(__name__)
        self.database = database
        self.table = table
        self.lock_table = f"{table}_lock"
        self._rows = table_clause(
            table,
            column('id', Integer),
            column('migration', String),
            column('batch', Integer),
            column('applied_at', DateTime),
        )
        self._lock_rows = table_clause(
            self.lock_table,
            column('id', Integer),
            column('owner', String),
            column('locked_at', DateTime),
        )

    # ------------------------------------------------------------------
    # Table
    # ------------------------------------------------------------------

    async def exists(self) -> bool:
        async with self.database.begin() as conn:
            return await conn.has_table(self.table)

    async def ensure_table(self) -> None:
        """Create the ledger table if it does not exist."""
        async with self.database.begin() as conn:
            if await conn.has_table(self.table):
                return
            await Schema(conn).create(self.table, _build_ledger_table)
        self.logger.info('Created migration ledger table: %s', self.table)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def applied(self) -> List[LedgerEntry]:
        """
        All ledger entries in application order.

        Returns:
            Entries ordered by (batch, id); empty if the table is missing
        """
        async with self.database.begin() as conn:
            if not await conn.has_table(self.table):
                return []
            rows = await conn.fetch(
                select(self._rows).order_by(self._rows.c.batch, self._rows.c.id)
            )
        return [
            LedgerEntry(
                id=row.id,
                migration=row.migration,
                batch=row.batch,
                applied_at=row.applied_at,
            )
            for row in rows
        ]

    async def last_batch_number(self) -> int:
        async with self.database.begin() as conn:
            if not await conn.has_table(self.table):
                return 0
            rows = await conn.fetch(select(func.max(self._rows.c.batch)))
        return rows[0][0] or 0

    async def next_batch_number(self) -> int:
        return await self.last_batch_number() + 1

    async def entries_for_last_batches(self, steps: int = 1) -> List[LedgerEntry]:
        """
        Entries of the newest `steps` batches, newest first.

        Raises:
            MigrationError: If steps is less than 1
        """
        if steps < 1:
            raise MigrationError(f"Rollback steps must be >= 1, got {steps}")
        entries = await self.applied()
        batches = sorted({entry.batch for entry in entries}, reverse=True)[:steps]
        selected = [entry for entry in entries if entry.batch in batches]
        return sorted(selected, key=lambda e: (e.batch, e.id), reverse=True)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def record(self, identity: str, batch: int,
                     connection: Optional[Connection] = None) -> None:
        """
        Record a migration as applied.

        Args:
            identity: Migration identity
            batch: Batch number
            connection: Join this connection's transaction instead of
                opening a new one
        """
        statement = insert(self._rows).values(
            migration=identity, batch=batch, applied_at=_utcnow()
        )
        async with self._connection(connection) as conn:
            await conn.execute(statement)
        self.logger.debug('Recorded %s in batch %d', identity, batch)

    async def remove(self, identity: str,
                     connection: Optional[Connection] = None) -> None:
        """Delete the entry of a rolled-back migration."""
        statement = delete(self._rows).where(self._rows.c.migration == identity)
        async with self._connection(connection) as conn:
            await conn.execute(statement)
        self.logger.debug('Removed %s from ledger', identity)

    @asynccontextmanager
    async def _connection(self, connection: Optional[Connection]) -> AsyncIterator[Connection]:
        if connection is not None:
            yield connection
        else:
            async with self.database.begin() as conn:
                yield conn

    # ------------------------------------------------------------------
    # Lock
    # ------------------------------------------------------------------

    @property
    def lock_name(self) -> str:
        return f"tablewright.{self.table}"

    @property
    def lock_key(self) -> int:
        return zlib.crc32(self.lock_name.encode('utf-8'))

    @asynccontextmanager
    async def lock(self) -> AsyncIterator[None]:
        """
        Hold the migration lock for the duration of the block.

        PostgreSQL uses a session advisory lock, MySQL a named lock, and
        SQLite a single-row lock table.

        Raises:
            LedgerLockError: If another process holds the lock
        """
        dialect = self.database.dialect
        if dialect == 'postgresql':
            guard = self._session_lock(
                'SELECT pg_try_advisory_lock(:key)',
                'SELECT pg_advisory_unlock(:key)',
                {'key': self.lock_key},
            )
        elif dialect in ('mysql', 'mariadb'):
            guard = self._session_lock(
                'SELECT GET_LOCK(:name, 0)',
                'SELECT RELEASE_LOCK(:name)',
                {'name': self.lock_name},
            )
        else:
            guard = self._table_lock()

        async with guard:
            self.logger.debug('Acquired migration lock on %s', self.database.name)
            yield
        self.logger.debug('Released migration lock on %s', self.database.name)

    @asynccontextmanager
    async def _session_lock(self, acquire: str, release: str,
                            params: dict) -> AsyncIterator[None]:
        async with self.database.connect() as conn:
            acquired = (await conn.execute(text(acquire), params)).scalar()
            await conn.commit()
            if not acquired:
                raise LedgerLockError(
                    f"Migration lock '{self.lock_name}' is held by another process",
                    {'lock': self.lock_name},
                )
            try:
                yield
            finally:
                await conn.execute(text(release), params)
                await conn.commit()

    @asynccontextmanager
    async def _table_lock(self) -> AsyncIterator[None]:
        async with self.database.begin() as conn:
            if not await conn.has_table(self.lock_table):
                await Schema(conn).create(self.lock_table, _build_lock_table)

        owner = f"{socket.gethostname()}:{os.getpid()}"
        try:
            async with self.database.begin() as conn:
                await conn.execute(
                    insert(self._lock_rows).values(id=1, owner=owner, locked_at=_utcnow())
                )
        except IntegrityError as e:
            holder = await self._lock_holder()
            raise LedgerLockError(
                f"Migration lock '{self.lock_table}' is held by {holder or 'another process'}",
                {'lock': self.lock_table, 'holder': holder},
            ) from e

        try:
            yield
        finally:
            async with self.database.begin() as conn:
                await conn.execute(delete(self._lock_rows).where(self._lock_rows.c.id == 1))

    async def _lock_holder(self) -> Optional[str]:
        async with self.database.begin() as conn:
            rows = await conn.fetch(
                select(self._lock_rows.c.owner, self._lock_rows.c.locked_at)
            )
        if not rows:
            return None
        return f"{rows[0].owner} since {rows[0].locked_at}"

    def __repr__(self) -> str:
        return f"<Ledger({self.database.name}.{self.table})>"


def _build_ledger_table(table) -> None:
    table.increments('id')
    table.string('migration').unique()
    table.integer('batch')
    table.timestamp('applied_at')


def _build_lock_table(table) -> None:
    table.integer('id').primary()
    table.string('owner')
    table.timestamp('locked_at')
