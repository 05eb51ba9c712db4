"""Benchmark record model and display helpers."""

from .benchmark import (
    INSERT_COLUMNS,
    format_benchmark,
    get_test_type,
    parse_jsonl,
    parse_submission,
    transform_benchmark,
)
from .columns import TABLE_COLUMNS, ColumnConfig, format_cell_value, get_active_columns

__all__ = [
    "INSERT_COLUMNS",
    "TABLE_COLUMNS",
    "ColumnConfig",
    "format_benchmark",
    "format_cell_value",
    "get_active_columns",
    "get_test_type",
    "parse_jsonl",
    "parse_submission",
    "transform_benchmark",
]
