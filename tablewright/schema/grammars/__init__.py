"""
DDL grammars, one per supported dialect.

This package provides:
- Grammar: Base compiler turning blueprints into DDL statements
- SQLiteGrammar, PostgresGrammar, MySqlGrammar: Dialect compilers
- CompileResult, CompileWarning, WarningLevel: Compiler output types
- get_grammar: Grammar lookup by SQLAlchemy dialect name
"""

from tablewright.errors import CompileError

from .base import CompileResult, CompileWarning, Grammar, WarningLevel
from .mysql import MySqlGrammar
from .postgresql import PostgresGrammar
from .sqlite import SQLiteGrammar

GRAMMARS = {
    'sqlite': SQLiteGrammar,
    'postgresql': PostgresGrammar,
    'mysql': MySqlGrammar,
    'mariadb': MySqlGrammar,
}


def get_grammar(dialect: str) -> Grammar:
    """
    Return a grammar for a SQLAlchemy dialect name.

    Raises:
        CompileError: If the dialect is not supported
    """
    try:
        return GRAMMARS[dialect.lower()]()
    except KeyError:
        raise CompileError(
            f"Unsupported dialect '{dialect}'. "
            f"Supported: {', '.join(sorted(GRAMMARS))}"
        )


__all__ = [
    'CompileResult',
    'CompileWarning',
    'Grammar',
    'GRAMMARS',
    'MySqlGrammar',
    'PostgresGrammar',
    'SQLiteGrammar',
    'WarningLevel',
    'get_grammar',
]
