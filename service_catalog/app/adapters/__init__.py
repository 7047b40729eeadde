"""
Adapters package for the Catalog Service.

Contains the relational store adapter. It encapsulates:

- Connection pool lifecycle
- Parameterized query execution
- Mapping of driver errors onto shared DatabaseError kinds

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .postgres_executor import PostgresQueryExecutor, classify_database_error

__all__ = [
    "PostgresQueryExecutor",
    "classify_database_error",
]
