"""
Query and aggregation functions for benchmark data.

Every statement is built from SQLAlchemy expressions: filter values are bound
parameters and column identifiers are `Column` objects resolved from either
the dimension registry or the fixed base-column list below. Unknown column
names never reach SQL; they are dropped or replaced by a default instead.
"""

import logging
from typing import Any, Iterable, Mapping, Sequence

from sqlalchemy import Column, case, delete, distinct, func, insert, or_, select
from sqlalchemy.sql.elements import ColumnElement

from app.dimensions import Dimension, filter_valid, parse_dimension
from app.errors import ValidationError

from .engine import BenchmarkStore
from .schema import benchmarks_table as t

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100
DEFAULT_TEST_TYPES = ("pp", "tg")

# Series identity for dimensional trends
BASE_TREND_GROUP_BY = ("build_commit", "model_filename", "test_type")

# Columns accepted by get_trends(group_by=...), besides the dimensions
BASE_GROUP_BY_COLUMNS = ("build_commit", "model_filename", "model_type", "gpu_info", "test_type", "backend")
VALID_GROUP_BY_COLUMNS = BASE_GROUP_BY_COLUMNS + tuple(
    d.value for d in Dimension if d.value not in BASE_GROUP_BY_COLUMNS
)

GPU_SEPARATOR = ", "


def _dimension_column(dimension: Dimension) -> Column:
    return t.c[dimension.value]


def _in(column: Column, values: Sequence[Any] | None) -> list[ColumnElement]:
    return [column.in_(list(values))] if values else []


def _multi_select_conditions(
    models: Sequence[str] | None = None,
    gpus: Sequence[str] | None = None,
    test_types: Sequence[str] | None = DEFAULT_TEST_TYPES,
    main_gpus: Sequence[int] | None = None,
    split_modes: Sequence[str] | None = None,
) -> list[ColumnElement]:
    conditions = []
    conditions += _in(t.c.test_type, test_types)
    conditions += _in(t.c.model_filename, models)
    if gpus:
        # Substring match so "A" finds rows stored as "A, B"
        conditions.append(or_(*(t.c.gpu_info.contains(gpu, autoescape=True) for gpu in gpus)))
    conditions += _in(t.c.main_gpu, main_gpus)
    conditions += _in(t.c.split_mode, split_modes)
    return conditions


def _dimension_conditions(filters: Mapping[str, Iterable[Any]] | None) -> list[ColumnElement]:
    """IN conditions for registry dimensions; other keys and empty value lists are skipped."""
    conditions = []
    for key, values in (filters or {}).items():
        dimension = parse_dimension(key)
        if dimension is None:
            logger.debug("Ignoring filter on unknown dimension %r", key)
            continue
        if isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
            continue
        values = list(values)
        if not values:
            continue
        conditions.append(_dimension_column(dimension).in_(values))
    return conditions


def _trend_group_column(group_by: str) -> Column:
    if group_by not in VALID_GROUP_BY_COLUMNS:
        logger.debug("Unknown trend column %r, grouping by build_commit", group_by)
        group_by = "build_commit"
    return t.c[group_by]


class BenchmarkQueries:
    """Reads and writes against the benchmarks table of one store."""

    def __init__(self, store: BenchmarkStore):
        self.store = store

    def _all(self, stmt) -> list[dict[str, Any]]:
        with self.store.session() as session:
            return [dict(row) for row in session.execute(stmt).mappings()]

    def _one(self, stmt) -> dict[str, Any]:
        with self.store.session() as session:
            return dict(session.execute(stmt).mappings().one())

    # -- writes ---------------------------------------------------------

    def insert_benchmark(self, benchmark: Mapping[str, Any]) -> int:
        """Insert one transformed benchmark and return its id."""
        with self.store.transaction() as session:
            result = session.execute(insert(t), dict(benchmark))
            return result.inserted_primary_key[0]

    def insert_benchmarks(self, benchmarks: Sequence[Mapping[str, Any]]) -> int:
        """Insert all benchmarks in one transaction; nothing is kept if any row fails."""
        if not benchmarks:
            return 0
        with self.store.transaction() as session:
            session.execute(insert(t), [dict(b) for b in benchmarks])
        logger.info("Inserted %d benchmarks", len(benchmarks))
        return len(benchmarks)

    def delete_benchmarks(self, ids: Iterable[int]) -> int:
        """Delete rows by id. Unknown ids are ignored; returns the number removed."""
        ids = list(ids)
        if not ids:
            return 0
        with self.store.transaction() as session:
            deleted = session.execute(delete(t).where(t.c.id.in_(ids))).rowcount
        logger.info("Deleted %d benchmarks", deleted)
        return deleted

    # -- listings -------------------------------------------------------

    def get_benchmarks(
        self,
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
        model: str | None = None,
        commit: str | None = None,
        test_type: str | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
    ) -> list[dict[str, Any]]:
        """Benchmarks newest-inserted first, with optional filters."""
        stmt = select(t)
        if model:
            stmt = stmt.where(t.c.model_filename.contains(model, autoescape=True))
        if commit:
            stmt = stmt.where(t.c.build_commit == commit)
        if test_type:
            stmt = stmt.where(t.c.test_type == test_type)
        if start_date:
            stmt = stmt.where(t.c.test_time >= start_date)
        if end_date:
            stmt = stmt.where(t.c.test_time <= end_date)
        stmt = stmt.order_by(t.c.created_at.desc(), t.c.id.desc()).limit(limit).offset(offset)
        return self._all(stmt)

    def get_benchmarks_filtered(
        self,
        models: Sequence[str] | None = None,
        gpus: Sequence[str] | None = None,
        test_types: Sequence[str] | None = DEFAULT_TEST_TYPES,
        main_gpus: Sequence[int] | None = None,
        split_modes: Sequence[str] | None = None,
        dimension_filters: Mapping[str, Iterable[Any]] | None = None,
        limit: int = DEFAULT_LIMIT,
    ) -> list[dict[str, Any]]:
        """Benchmarks matching the multi-select filters of the trends view, latest test first."""
        conditions = _multi_select_conditions(models, gpus, test_types, main_gpus, split_modes)
        conditions += _dimension_conditions(dimension_filters)
        stmt = select(t).where(*conditions).order_by(t.c.test_time.desc()).limit(limit)
        return self._all(stmt)

    # -- distinct values ------------------------------------------------

    def get_models(self) -> list[dict[str, Any]]:
        stmt = (
            select(t.c.model_filename, t.c.model_type, t.c.model_size, t.c.model_n_params)
            .distinct()
            .order_by(t.c.model_filename)
        )
        return self._all(stmt)

    def get_builds(self) -> list[dict[str, Any]]:
        """One row per commit with its most recent test time, latest first."""
        latest_test = func.max(t.c.test_time).label("latest_test")
        stmt = (
            select(t.c.build_commit, func.max(t.c.build_number).label("build_number"), latest_test)
            .group_by(t.c.build_commit)
            .order_by(latest_test.desc())
        )
        return self._all(stmt)

    def get_gpus(self) -> list[dict[str, str]]:
        """Individual GPU names, with multi-GPU entries split apart."""
        stmt = select(t.c.gpu_info).distinct().where(t.c.gpu_info.is_not(None), t.c.gpu_info != "")
        gpus = set()
        for row in self._all(stmt):
            gpus.update(g.strip() for g in row["gpu_info"].split(GPU_SEPARATOR) if g.strip())
        return [{"gpu_info": gpu} for gpu in sorted(gpus)]

    def get_main_gpus(self) -> list[dict[str, Any]]:
        stmt = select(t.c.main_gpu).distinct().where(t.c.main_gpu.is_not(None)).order_by(t.c.main_gpu)
        return self._all(stmt)

    def get_split_modes(self) -> list[dict[str, Any]]:
        stmt = (
            select(t.c.split_mode)
            .distinct()
            .where(t.c.split_mode.is_not(None), t.c.split_mode != "")
            .order_by(t.c.split_mode)
        )
        return self._all(stmt)

    def distinct_values(self, kind: str) -> list[dict[str, Any]]:
        lookups = {
            "models": self.get_models,
            "builds": self.get_builds,
            "gpus": self.get_gpus,
            "main_gpus": self.get_main_gpus,
            "split_modes": self.get_split_modes,
        }
        if kind not in lookups:
            raise ValidationError(f"Unknown value kind: {kind}")
        return lookups[kind]()

    # -- trends ---------------------------------------------------------

    def get_trends(
        self,
        model: str | None = None,
        test_type: str = "tg",
        group_by: str = "build_commit",
    ) -> list[dict[str, Any]]:
        """Throughput aggregated over one column, oldest first."""
        column = _trend_group_column(group_by)
        test_time = func.max(t.c.test_time).label("test_time")
        stmt = (
            select(
                column,
                column.label("group_value"),
                test_time,
                func.avg(t.c.tokens_per_second).label("avg_tps"),
                func.min(t.c.tokens_per_second).label("min_tps"),
                func.max(t.c.tokens_per_second).label("max_tps"),
                func.count().label("sample_count"),
            )
            .where(t.c.test_type == (test_type or "tg"))
            .group_by(column)
            .order_by(test_time.asc())
        )
        if model:
            stmt = stmt.where(t.c.model_filename.contains(model, autoescape=True))
        return self._all(stmt)

    def get_trends_multi_series(
        self,
        models: Sequence[str] | None = None,
        gpus: Sequence[str] | None = None,
        test_types: Sequence[str] | None = DEFAULT_TEST_TYPES,
        main_gpus: Sequence[int] | None = None,
        split_modes: Sequence[str] | None = None,
    ) -> list[dict[str, Any]]:
        """One point per (build, model, GPU, test type) for multi-line charts."""
        test_time = func.max(t.c.test_time).label("test_time")
        stmt = (
            select(
                t.c.build_commit,
                t.c.model_filename,
                t.c.gpu_info,
                t.c.test_type,
                test_time,
                func.avg(t.c.tokens_per_second).label("avg_tps"),
                func.count().label("sample_count"),
            )
            .where(*_multi_select_conditions(models, gpus, test_types, main_gpus, split_modes))
            .group_by(t.c.build_commit, t.c.model_filename, t.c.gpu_info, t.c.test_type)
            .order_by(test_time.asc(), t.c.model_filename, t.c.gpu_info, t.c.test_type)
        )
        return self._all(stmt)

    def get_dimensional_trends(
        self,
        group_by_dimensions: Iterable[str] = (),
        filters: Mapping[str, Iterable[Any]] | None = None,
        test_types: Sequence[str] | None = DEFAULT_TEST_TYPES,
        models: Sequence[str] | None = None,
    ) -> list[dict[str, Any]]:
        """
        Trend points with caller-chosen series dimensions.

        Rows are always split by build, model and test type; each valid
        dimension in `group_by_dimensions` splits them further, while
        `filters` holds other dimensions to a set of values.
        """
        group_names = list(BASE_TREND_GROUP_BY)
        for dimension in filter_valid(group_by_dimensions):
            if dimension.value not in group_names:
                group_names.append(dimension.value)
        group_columns = [t.c[name] for name in group_names]

        test_time = func.max(t.c.test_time).label("test_time")
        conditions = _in(t.c.test_type, test_types) + _in(t.c.model_filename, models)
        conditions += _dimension_conditions(filters)
        stmt = (
            select(
                *group_columns,
                test_time,
                func.avg(t.c.tokens_per_second).label("avg_tps"),
                func.min(t.c.tokens_per_second).label("min_tps"),
                func.max(t.c.tokens_per_second).label("max_tps"),
                func.avg(t.c.stddev).label("avg_stddev"),
                func.count().label("sample_count"),
            )
            .where(*conditions)
            .group_by(*group_columns)
            .order_by(test_time.asc())
        )
        return self._all(stmt)

    def get_comparison_data(
        self,
        models: Sequence[str] | None = None,
        commits: Sequence[str] | None = None,
        test_type: str = "tg",
    ) -> list[dict[str, Any]]:
        """Average throughput per model and build for one test type."""
        stmt = (
            select(
                t.c.model_filename,
                t.c.build_commit,
                t.c.test_type,
                func.avg(t.c.tokens_per_second).label("avg_tps"),
                func.avg(t.c.stddev).label("avg_stddev"),
                func.count().label("runs"),
            )
            .where(t.c.test_type == (test_type or "tg"), *_in(t.c.model_filename, models), *_in(t.c.build_commit, commits))
            .group_by(t.c.model_filename, t.c.build_commit, t.c.test_type)
            .order_by(t.c.model_filename, t.c.build_commit)
        )
        return self._all(stmt)

    # -- dimensions -----------------------------------------------------

    def get_dimension_values(self, dimension: str) -> list[dict[str, Any]]:
        """Distinct values of a dimension with their counts; [] for unknown names."""
        resolved = parse_dimension(dimension)
        if resolved is None:
            return []
        column = _dimension_column(resolved)
        stmt = (
            select(column.label("value"), func.count().label("count"))
            .where(column.is_not(None))
            .group_by(column)
            .order_by(column)
        )
        return self._all(stmt)

    def get_all_dimension_values(self) -> dict[str, list[dict[str, Any]]]:
        return {dimension.value: self.get_dimension_values(dimension.value) for dimension in Dimension}

    # -- dashboard ------------------------------------------------------

    def get_stats(self) -> dict[str, Any]:
        """Totals and averages for the dashboard plus the ten latest submissions."""
        stmt = select(
            func.count().label("total_benchmarks"),
            func.count(distinct(t.c.model_filename)).label("unique_models"),
            func.count(distinct(t.c.build_commit)).label("unique_builds"),
            func.avg(case((t.c.test_type == "tg", t.c.tokens_per_second))).label("avg_tg_tps"),
            func.avg(case((t.c.test_type == "pp", t.c.tokens_per_second))).label("avg_pp_tps"),
            func.max(t.c.test_time).label("latest_test"),
        ).select_from(t)
        stats = self._one(stmt)
        stats["recentBenchmarks"] = self._all(
            select(t).order_by(t.c.created_at.desc(), t.c.id.desc()).limit(10)
        )
        return stats
