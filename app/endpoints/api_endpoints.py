"""
REST API for submitting, querying and deleting benchmark results.

Handlers are plain `def` so FastAPI runs the blocking SQLite work in its
threadpool instead of on the event loop.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from app.db import BenchmarkQueries
from app.dimensions import by_group
from app.errors import ValidationError
from app.models import parse_submission, transform_benchmark

from .dependencies import dimension_filters, get_queries, int_list, int_or_default, limit_or_default, non_empty, split_csv

api_router = APIRouter(prefix="/api", tags=["Benchmarks"])

Queries = Annotated[BenchmarkQueries, Depends(get_queries)]


class DeleteBenchmarksRequest(BaseModel):
    """Request body for bulk deletion."""

    ids: list[Any] | None = None


@api_router.post("/benchmarks")
async def submit_benchmarks(request: Request, queries: Queries) -> dict:
    """Accept a JSON object, a JSON array or newline-delimited JSON."""
    body = await request.body()
    records = parse_submission(body, request.headers.get("content-type", ""))
    benchmarks = [transform_benchmark(record) for record in records]
    inserted = await run_in_threadpool(queries.insert_benchmarks, benchmarks)
    return {"success": True, "inserted": inserted}


@api_router.get("/benchmarks")
def list_benchmarks(
    queries: Queries,
    limit: str | None = None,
    offset: str | None = None,
    model: str | None = None,
    commit: str | None = None,
    test_type: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
) -> list[dict]:
    return queries.get_benchmarks(
        limit=limit_or_default(limit, 100),
        offset=int_or_default(offset, 0),
        model=model,
        commit=commit,
        test_type=test_type,
        start_date=start_date,
        end_date=end_date,
    )


@api_router.get("/benchmarks/filtered")
def list_benchmarks_filtered(
    request: Request,
    queries: Queries,
    models: Annotated[list[str] | None, Query()] = None,
    gpus: Annotated[list[str] | None, Query()] = None,
    test_types: Annotated[list[str] | None, Query()] = None,
    main_gpus: Annotated[list[str] | None, Query()] = None,
    split_modes: Annotated[list[str] | None, Query()] = None,
    limit: str | None = None,
) -> list[dict]:
    return queries.get_benchmarks_filtered(
        models=non_empty(models),
        gpus=non_empty(gpus),
        test_types=non_empty(test_types) or ["pp", "tg"],
        main_gpus=int_list(main_gpus),
        split_modes=non_empty(split_modes),
        dimension_filters=dimension_filters(request),
        limit=limit_or_default(limit, 100),
    )


@api_router.delete("/benchmarks")
def delete_benchmarks(queries: Queries, body: DeleteBenchmarksRequest | None = None) -> dict:
    if body is None or not body.ids:
        raise ValidationError("ids array is required")
    ids = int_list(body.ids)
    if not ids:
        raise ValidationError("No valid ids provided")
    deleted = queries.delete_benchmarks(ids)
    return {"success": True, "deleted": deleted}


@api_router.get("/models")
def list_models(queries: Queries) -> list[dict]:
    return queries.get_models()


@api_router.get("/builds")
def list_builds(queries: Queries) -> list[dict]:
    return queries.get_builds()


@api_router.get("/gpus")
def list_gpus(queries: Queries) -> list[dict]:
    return queries.get_gpus()


@api_router.get("/main-gpus")
def list_main_gpus(queries: Queries) -> list[dict]:
    return queries.get_main_gpus()


@api_router.get("/split-modes")
def list_split_modes(queries: Queries) -> list[dict]:
    return queries.get_split_modes()


@api_router.get("/trends")
def trends(
    queries: Queries,
    model: str | None = None,
    test_type: str | None = None,
    group_by: str | None = None,
) -> list[dict]:
    return queries.get_trends(
        model=model,
        test_type=test_type or "tg",
        group_by=group_by or "build_commit",
    )


@api_router.get("/trends/multi-series")
def trends_multi_series(
    queries: Queries,
    models: Annotated[list[str] | None, Query()] = None,
    gpus: Annotated[list[str] | None, Query()] = None,
    test_types: Annotated[list[str] | None, Query()] = None,
    main_gpus: Annotated[list[str] | None, Query()] = None,
    split_modes: Annotated[list[str] | None, Query()] = None,
) -> list[dict]:
    return queries.get_trends_multi_series(
        models=non_empty(models),
        gpus=non_empty(gpus),
        test_types=non_empty(test_types) or ["pp", "tg"],
        main_gpus=int_list(main_gpus),
        split_modes=non_empty(split_modes),
    )


@api_router.get("/trends/dimensional")
def trends_dimensional(
    request: Request,
    queries: Queries,
    group_by: Annotated[list[str] | None, Query()] = None,
    models: Annotated[list[str] | None, Query()] = None,
    test_types: Annotated[list[str] | None, Query()] = None,
) -> list[dict]:
    return queries.get_dimensional_trends(
        group_by_dimensions=non_empty(group_by),
        filters=dimension_filters(request),
        test_types=non_empty(test_types) or ["pp", "tg"],
        models=non_empty(models),
    )


@api_router.get("/compare")
def compare(
    queries: Queries,
    models: str | None = None,
    commits: str | None = None,
    test_type: str | None = None,
) -> list[dict]:
    """Comma-separated model filenames and commits."""
    return queries.get_comparison_data(
        models=split_csv(models),
        commits=split_csv(commits),
        test_type=test_type or "tg",
    )


@api_router.get("/stats")
def stats(queries: Queries) -> dict:
    return queries.get_stats()


@api_router.get("/dimensions")
def dimensions() -> dict:
    """Dimension catalog grouped for filter controls."""
    return {
        group: [
            {
                "key": d.key.value,
                "label": d.label,
                "group": d.group,
                "type": d.type.value,
                "priority": d.priority,
            }
            for d in descriptors
        ]
        for group, descriptors in by_group().items()
    }


@api_router.get("/dimensions/values")
def all_dimension_values(queries: Queries) -> dict:
    return queries.get_all_dimension_values()


@api_router.get("/dimensions/{dimension}/values")
def dimension_values(dimension: str, queries: Queries) -> list[dict]:
    return queries.get_dimension_values(dimension)
