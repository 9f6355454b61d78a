"""
Migration manager for schema evolution.

This module provides the MigrationManager class which handles:
- Discovery of migration files in one directory per namespace
- Loading each file and locating its Migration subclass
- Programmatic registration of migrations without files
- Calculation of pending and rollback migrations
- Generation of new migration files from templates

Migration files follow the naming convention:
    YYYY_MM_DD_HHMMSS_description.py
Example: 2024_01_05_120000_create_flights_table.py

File format:
    from tablewright import Migration

    class CreateFlightsTable(Migration):
        async def up(self, schema):
            await schema.create('flights', lambda table: table.id())

        async def down(self, schema):
            await schema.drop_if_exists('flights')
"""

import importlib.util
import logging
import re
import sys
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Union

from tablewright.errors import MigrationError

from .migration import LedgerEntry, Migration, MigrationUnit

logger = logging.getLogger(__name__)

BLANK_TEMPLATE = '''from tablewright import Migration


class {class_name}(Migration):
    async def up(self, schema):
        pass

    async def down(self, schema):
        pass
'''

CREATE_TEMPLATE = '''from tablewright import Migration


class {class_name}(Migration):
    async def up(self, schema):
        def build(table):
            table.id()
            table.timestamps()

        await schema.create('{table}', build)

    async def down(self, schema):
        await schema.drop_if_exists('{table}')
'''

UPDATE_TEMPLATE = '''from tablewright import Migration


class {class_name}(Migration):
    async def up(self, schema):
        def build(table):
            pass

        await schema.table('{table}', build)

    async def down(self, schema):
        def build(table):
            pass

        await schema.table('{table}', build)
'''


class MigrationManager:
    """
    Manages migration discovery, registration and ordering.

    Responsibilities:
    - Discover migration files in each namespace directory
    - Load files and validate they define exactly one Migration
    - Calculate pending and rollback migrations
    - Write new migration files

    Does NOT execute migrations (see MigrationExecutor).

    Example:
        >>> manager = MigrationManager({'default': Path('database/migrations')})
        >>> manager.get_pending(['default.2024_01_05_120000_create_flights'])
        [<MigrationUnit(default.2024_02_01_090000_add_airline)>]
    """

    # Migration filename pattern: YYYY_MM_DD_HHMMSS_description.py
    MIGRATION_PATTERN = re.compile(r'^(\d{4}_\d{2}_\d{2}_\d{6})_([a-z0-9_]+)\.py$')

    NAME_PATTERN = re.compile(r'^[a-z0-9_]+$')

    def __init__(self, paths: Optional[dict[str, Union[str, Path]]] = None):
        """
        Initialize migration manager.

        Args:
            paths: Mapping of namespace to migrations directory
                Example: {'default': 'database/migrations',
                          'billing': 'billing/migrations'}
        """
        self.paths = {ns: Path(p) for ns, p in (paths or {}).items()}
        self._units: dict[str, MigrationUnit] = {}
        self._discovered = False

    # ------------------------------------------------------------------
    # Discovery and registration
    # ------------------------------------------------------------------

    @property
    def units(self) -> List[MigrationUnit]:
        """All known migrations, sorted by (name, namespace)."""
        if not self._discovered:
            self.discover()
        return sorted(self._units.values())

    def discover(self) -> List[MigrationUnit]:
        """
        Discover all migration files in every namespace directory.

        Files that do not match the naming pattern are skipped with a
        warning. A missing directory yields no migrations.

        Returns:
            Discovered units, sorted

        Raises:
            MigrationError: If a file does not define exactly one Migration
                subclass, or two migrations share an identity
        """
        # Rescan from scratch; registered units are kept
        self._units = {
            identity: unit for identity, unit in self._units.items()
            if unit.file_path is None
        }
        discovered = []
        for namespace, directory in sorted(self.paths.items()):
            if not directory.exists():
                logger.warning(
                    f"No migrations directory for namespace '{namespace}': {directory}"
                )
                continue

            for file_path in sorted(directory.glob('*.py')):
                if file_path.name.startswith('_'):
                    continue
                if not self.MIGRATION_PATTERN.match(file_path.name):
                    logger.warning(
                        f"Skipping invalid migration filename: {file_path.name}"
                    )
                    continue

                unit = MigrationUnit(
                    namespace=namespace,
                    name=file_path.stem,
                    migration=self.load_migration_file(file_path, namespace),
                    file_path=file_path.absolute(),
                )
                self._add(unit)
                discovered.append(unit)
                logger.debug(f"Discovered migration: {unit}")

        self._discovered = True
        return sorted(discovered)

    def load_migration_file(self, file_path: Path, namespace: str = 'default') -> Migration:
        """
        Import a migration file and instantiate its Migration subclass.

        Args:
            file_path: Path to migration file
            namespace: Namespace, used for the module name

        Returns:
            Migration instance

        Raises:
            MigrationError: If the file cannot be imported or does not
                define exactly one Migration subclass
        """
        module_name = f"tablewright_migrations.{namespace}.{file_path.stem}"
        spec = importlib.util.spec_from_file_location(module_name, file_path)
        if spec is None or spec.loader is None:
            raise MigrationError(f"Cannot load migration file: {file_path}")

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            sys.modules.pop(module_name, None)
            logger.error(f"Failed to load {file_path}: {e}")
            raise MigrationError(
                f"Failed to load migration {file_path.name}: {e}",
                {'file': str(file_path)},
            ) from e

        classes = [
            obj for obj in vars(module).values()
            if isinstance(obj, type)
            and issubclass(obj, Migration)
            and obj is not Migration
            and obj.__module__ == module_name
        ]
        if len(classes) != 1:
            raise MigrationError(
                f"Migration {file_path.name} must define exactly one Migration "
                f"subclass, found {len(classes)}",
                {'file': str(file_path)},
            )
        return classes[0]()

    def register(self, namespace: str, name: str,
                 migration: 'Migration | type[Migration]') -> MigrationUnit:
        """
        Register a migration without a file.

        Args:
            namespace: Namespace for the identity
            name: Name used for ordering, normally timestamp-prefixed
            migration: Migration instance or subclass

        Returns:
            The registered unit

        Raises:
            MigrationError: If the identity is already known
        """
        if isinstance(migration, type):
            migration = migration()
        if not isinstance(migration, Migration):
            raise MigrationError(f"{migration!r} is not a Migration")
        unit = MigrationUnit(namespace, name, migration)
        self._add(unit)
        return unit

    def _add(self, unit: MigrationUnit) -> None:
        if unit.identity in self._units:
            raise MigrationError(
                f"Duplicate migration identity '{unit.identity}'",
                {'identity': unit.identity},
            )
        self._units[unit.identity] = unit

    def find(self, identity: str) -> MigrationUnit:
        """
        Find a migration by identity.

        Raises:
            MigrationError: If no migration has this identity
        """
        for unit in self.units:
            if unit.identity == identity:
                return unit
        raise MigrationError(f"Migration not found: {identity}", {'identity': identity})

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def get_pending(self, applied: Iterable[str]) -> List[MigrationUnit]:
        """
        Migrations not yet applied, in run order.

        Args:
            applied: Identities recorded in the ledger

        Returns:
            Pending units sorted by (name, namespace)
        """
        applied = set(applied)
        return [unit for unit in self.units if unit.identity not in applied]

    def get_rollback(self, entries: Iterable[LedgerEntry]) -> List[MigrationUnit]:
        """
        Units for ledger entries, in the order given.

        Args:
            entries: Ledger entries, newest first

        Returns:
            Units to roll back

        Raises:
            MigrationError: If an entry has no matching migration
        """
        known = {unit.identity: unit for unit in self.units}
        units = []
        for entry in entries:
            unit = known.get(entry.migration)
            if unit is None:
                raise MigrationError(
                    f"Cannot roll back '{entry.migration}': migration not found. "
                    f"Restore the file or remove the ledger entry.",
                    {'identity': entry.migration, 'batch': entry.batch},
                )
            units.append(unit)
        return units

    def get_orphans(self, applied: Iterable[str]) -> List[str]:
        """Applied identities with no matching migration."""
        known = {unit.identity for unit in self.units}
        return [identity for identity in applied if identity not in known]

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def create_migration_file(
        self,
        name: str,
        namespace: str = 'default',
        table: Optional[str] = None,
        create: bool = False,
        now: Optional[datetime] = None,
    ) -> Path:
        """
        Write a new, timestamped migration file.

        Args:
            name: Description, e.g. 'create_flights_table'
            namespace: Namespace whose directory receives the file
            table: Table the migration creates or alters
            create: Use the create-table template (requires table)
            now: Timestamp for the filename (defaults to current time)

        Returns:
            Path of the new file

        Raises:
            MigrationError: If the name or namespace is invalid, or the
                file already exists
        """
        name = re.sub(r'[\s\-]+', '_', name.strip()).lower()
        if not self.NAME_PATTERN.match(name):
            raise MigrationError(
                f"Invalid migration name '{name}': use lowercase letters, "
                f"digits and underscores"
            )
        if namespace not in self.paths:
            raise MigrationError(
                f"Unknown migration namespace '{namespace}'. "
                f"Configured: {', '.join(sorted(self.paths)) or 'none'}"
            )
        if create and not table:
            raise MigrationError("A create migration needs a table name")

        stamp = (now or datetime.now()).strftime('%Y_%m_%d_%H%M%S')
        directory = self.paths[namespace]
        directory.mkdir(parents=True, exist_ok=True)
        file_path = directory / f"{stamp}_{name}.py"
        if file_path.exists():
            raise MigrationError(f"Migration file already exists: {file_path}")

        class_name = ''.join(part.capitalize() for part in name.split('_') if part)
        if not class_name[:1].isalpha():
            class_name = f"Migration{class_name}"
        if create:
            template = CREATE_TEMPLATE
        elif table:
            template = UPDATE_TEMPLATE
        else:
            template = BLANK_TEMPLATE

        file_path.write_text(
            template.format(class_name=class_name, table=table), encoding='utf-8'
        )
        logger.info(f"Created migration: {file_path}")
        return file_path
