"""Request-scoped dependencies shared by the routers."""

from typing import Any, Iterable

from fastapi import Request

from app.db import BenchmarkQueries
from app.dimensions import coerce_filter_values, parse_dimension

FILTER_PREFIX = "filter_"


def get_queries(request: Request) -> BenchmarkQueries:
    """Query engine bound to the store held by the running app."""
    return BenchmarkQueries(request.app.state.store)


def int_or_default(value: Any, default: int | None) -> int | None:
    """Parse a query-string integer, falling back to default when malformed."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def limit_or_default(value: Any, default: int) -> int:
    """Parse a row limit; zero, negative and malformed values use default."""
    limit = int_or_default(value, default)
    return limit if limit > 0 else default


def non_empty(values: Iterable[str] | None) -> list[str]:
    return [v for v in (values or []) if v]


def split_csv(value: str | None) -> list[str]:
    return [v for v in value.split(",") if v] if value else []


def dimension_filters(request: Request) -> dict[str, list]:
    """Collect filter_<dimension>=value query params for registry dimensions."""
    filters: dict[str, list] = {}
    for key in request.query_params:
        if not key.startswith(FILTER_PREFIX):
            continue
        dimension = parse_dimension(key[len(FILTER_PREFIX):])
        if dimension is None:
            continue
        values = coerce_filter_values(dimension, request.query_params.getlist(key))
        if values:
            filters[dimension.value] = values
    return filters


def int_list(values: Iterable[Any] | None) -> list[int]:
    """Integers from values, silently dropping anything that does not parse."""
    parsed = (int_or_default(v, None) for v in values or [] if v != "")
    return [v for v in parsed if v is not None]
