"""
Global pytest configuration and fixtures for tablewright tests

Provides:
- File-backed SQLite databases in tmp_path
- Schema gateway bound to the test database
- Migration directory helpers
"""

import textwrap

import pytest

from tablewright.database import Database, DatabaseManager
from tablewright.schema.builder import Schema


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom settings"""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")


# ============================================================================
# Databases
# ============================================================================

@pytest.fixture
def database_url(tmp_path):
    """SQLite URL for a fresh database file"""
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
async def database(database_url):
    """Default test database, disposed after the test"""
    db = Database(database_url)
    yield db
    await db.close()


@pytest.fixture
async def databases(database, tmp_path):
    """DatabaseManager with the test database as default and an 'audit' connection"""
    manager = DatabaseManager({
        'default': database.database_url,
        'audit': f"sqlite+aiosqlite:///{tmp_path / 'audit.db'}",
    })
    manager.add(database)
    yield manager
    await manager.close()


@pytest.fixture
def schema(database, databases):
    """Schema gateway on the default test database"""
    return Schema(database, connections=databases)


# ============================================================================
# Migration files
# ============================================================================

@pytest.fixture
def migrations_dir(tmp_path):
    """Empty migrations directory"""
    path = tmp_path / "migrations"
    path.mkdir()
    return path


@pytest.fixture
def write_migration():
    """Write a migration file from an indented source snippet"""
    def _write(directory, filename, source):
        path = directory / filename
        path.write_text(textwrap.dedent(source).lstrip(), encoding='utf-8')
        return path
    return _write
