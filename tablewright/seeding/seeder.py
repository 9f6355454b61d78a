#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Database seeders.

A Seeder fills tables with data. Seeders call other seeders; the whole
call tree runs on one connection inside one transaction, so a failing
seeder leaves no partial data behind.

Usage:
    class UserSeeder(Seeder):
        async def run(self):
            await self.insert('users', [{'name': 'Alice'}, {'name': 'Bob'}])

    class DatabaseSeeder(Seeder):
        async def run(self):
            await self.call(UserSeeder, 'app.seeders.FlightSeeder')

    await SeederRunner(database).seed(DatabaseSeeder)
"""
import importlib
import logging
from typing import Any, Iterable, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from tablewright.database import Connection, Database
from tablewright.errors import DefinitionError, ExecutionError, RecursionLimitError

SeederRef = Union[str, type]

DEFAULT_MAX_DEPTH = 16


class Seeder:
    """
    Base class for seeders.

    Attributes:
        connection: Connection shared by the whole call tree
        runner: SeederRunner that started this seeder
        depth: Nesting depth (0 for the seeder passed to seed())
    """

    def __init__(self, connection: Connection, runner: 'SeederRunner', depth: int = 0):
        self.connection = connection
        self.runner = runner
        self.depth = depth
        self.logger = logging.getLogger(__name__)

    @classmethod
    def identity(cls) -> str:
        return f"{cls.__module__}.{cls.__qualname__}"

    async def run(self) -> None:
        raise NotImplementedError(f"{type(self).__name__} does not implement run()")

    async def call(self, *seeders: SeederRef) -> None:
        """Run other seeders, in order, one level deeper."""
        for seeder in seeders:
            await self.runner.invoke(seeder, self.connection, self.depth + 1)

    async def insert(self, table: str, rows: Union[dict, Iterable[dict]]) -> int:
        """Insert one row or many rows; returns the number inserted."""
        return await self.connection.insert(table, rows)

    async def create(self, model_cls: type, **attributes: Any) -> Any:
        """
        Create and flush one ORM model instance.

        Args:
            model_cls: SQLAlchemy mapped class
            **attributes: Column values

        Returns:
            The flushed instance (primary key populated)
        """
        async with self.connection.session() as session:
            instance = model_cls(**attributes)
            session.add(instance)
            await session.flush()
        return instance

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(depth={self.depth})>"


class SeederRunner:
    """
    Resolves and runs seeders.

    Args:
        database: Database to seed
        max_depth: Deepest allowed call() nesting
        default: Seeder used when seed() is called without one

    Example:
        runner = SeederRunner(database, max_depth=8)
        await runner.seed('database.seeders.DatabaseSeeder')
    """

    def __init__(self, database: Database, max_depth: int = DEFAULT_MAX_DEPTH,
                 default: Optional[SeederRef] = None):
        if max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {max_depth}")
        self.database = database
        self.max_depth = max_depth
        self.default = default
        self.logger = logging.getLogger(__name__)

    async def seed(self, seeder: Optional[SeederRef] = None) -> None:
        """
        Run a seeder and everything it calls in one transaction.

        Args:
            seeder: Seeder class or dotted path (defaults to `default`)

        Raises:
            DefinitionError: If no seeder is given or it cannot be resolved
            RecursionLimitError: If the call tree nests deeper than max_depth
        """
        seeder = seeder or self.default
        if seeder is None:
            raise DefinitionError("No seeder given and no default seeder configured")

        async with self.database.begin(transactional=True) as conn:
            await self.invoke(seeder, conn, 0)
        self.logger.info('Database seeding completed')

    async def invoke(self, seeder: SeederRef, connection: Connection, depth: int) -> None:
        """Run one seeder at `depth`; the depth is checked before it starts."""
        seeder_cls = self.resolve(seeder)
        if depth > self.max_depth:
            raise RecursionLimitError(
                f"Seeder {seeder_cls.identity()} at depth {depth} exceeds "
                f"max depth {self.max_depth}",
                {'seeder': seeder_cls.identity(), 'depth': depth},
            )

        self.logger.info('Seeding: %s', seeder_cls.identity())
        try:
            await seeder_cls(connection, self, depth).run()
        except SQLAlchemyError as e:
            raise ExecutionError(
                f"Database error: {getattr(e, 'orig', None) or e}",
                original_error=e,
                details={'seeder': seeder_cls.identity()},
                statement=getattr(e, 'statement', None),
            ) from e
        self.logger.debug('Seeded: %s', seeder_cls.identity())

    @staticmethod
    def resolve(seeder: SeederRef) -> type:
        """
        Seeder class for a class or a dotted path 'package.module.Class'.

        Raises:
            DefinitionError: If the path cannot be imported or is not a Seeder
        """
        if isinstance(seeder, str):
            module_name, _, class_name = seeder.rpartition('.')
            if not module_name:
                raise DefinitionError(f"Seeder path must be dotted: '{seeder}'")
            try:
                module = importlib.import_module(module_name)
            except ImportError as e:
                raise DefinitionError(f"Cannot import seeder module '{module_name}': {e}") from e
            seeder = getattr(module, class_name, None)
            if seeder is None:
                raise DefinitionError(f"Seeder '{class_name}' not found in '{module_name}'")

        if not (isinstance(seeder, type) and issubclass(seeder, Seeder)):
            raise DefinitionError(f"{seeder!r} is not a Seeder subclass")
        return seeder
