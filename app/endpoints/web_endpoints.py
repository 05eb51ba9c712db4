"""
Data endpoints backing the report pages.

These return the exact rows a page renders: display-formatted benchmark
table cells and chart series.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from app.db import BenchmarkQueries
from app.models import format_benchmark, format_cell_value, get_active_columns

from .dependencies import get_queries, int_or_default, limit_or_default

web_router = APIRouter(prefix="/partials", tags=["Pages"])

Queries = Annotated[BenchmarkQueries, Depends(get_queries)]


@web_router.get("/table")
def benchmark_table(
    queries: Queries,
    limit: str | None = None,
    offset: str | None = None,
    model: str | None = None,
    commit: str | None = None,
    test_type: str | None = None,
) -> dict:
    """Benchmark table with only the columns that have data."""
    benchmarks = [
        format_benchmark(b)
        for b in queries.get_benchmarks(
            limit=limit_or_default(limit, 50),
            offset=int_or_default(offset, 0),
            model=model,
            commit=commit,
            test_type=test_type,
        )
    ]
    columns = get_active_columns(benchmarks)
    return {
        "columns": [column.to_dict() for column in columns],
        "rows": [
            {"id": b["id"], **{column.key: format_cell_value(b.get(column.key), column) for column in columns}}
            for b in benchmarks
        ],
    }


@web_router.get("/trends-chart")
def trends_chart(
    queries: Queries,
    model: str | None = None,
    test_type: str | None = None,
    group_by: str | None = None,
) -> list[dict]:
    """Chart points for a single grouping column."""
    return queries.get_trends(
        model=model,
        test_type=test_type or "tg",
        group_by=group_by or "build_commit",
    )
