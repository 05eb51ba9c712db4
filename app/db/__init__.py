"""Database package for benchmark reports."""

from .engine import BenchmarkStore, create_db_engine, open_store
from .migrations import migrate
from .queries import BenchmarkQueries
from .schema import BenchmarkDB, benchmarks_table

__all__ = [
    "BenchmarkDB",
    "BenchmarkQueries",
    "BenchmarkStore",
    "benchmarks_table",
    "create_db_engine",
    "migrate",
    "open_store",
]
