"""
Database seeding package.

This package provides:
- Seeder: Base class for seeders
- SeederRunner: Resolves seeders and runs them in one transaction
"""

from .seeder import DEFAULT_MAX_DEPTH, Seeder, SeederRunner

__all__ = ['DEFAULT_MAX_DEPTH', 'Seeder', 'SeederRunner']
