from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest
from sqlalchemy import inspect, text
from sqlalchemy.exc import IntegrityError

from app.db import BenchmarkQueries, BenchmarkStore, benchmarks_table, migrate, open_store
from conftest import make_record


def _count(store: BenchmarkStore) -> int:
    with store.session() as session:
        return session.execute(text("SELECT COUNT(*) FROM benchmarks")).scalar_one()


def test_init_creates_table_indexes_and_wal(store: BenchmarkStore, db_path: Path) -> None:
    assert db_path.exists()
    inspector = inspect(store.engine)
    columns = {c["name"] for c in inspector.get_columns("benchmarks")}
    assert columns == {c.name for c in benchmarks_table.columns}
    indexes = {i["name"] for i in inspector.get_indexes("benchmarks")}
    assert {"idx_build_commit", "idx_model_filename", "idx_test_time", "idx_test_type", "idx_gpu_info"} <= indexes
    with store.engine.connect() as conn:
        assert conn.execute(text("PRAGMA journal_mode")).scalar_one().lower() == "wal"


def test_insert_assigns_ids_and_created_at(queries: BenchmarkQueries) -> None:
    first = queries.insert_benchmark(make_record())
    second = queries.insert_benchmark(make_record())
    assert second > first
    rows = queries.get_benchmarks()
    assert all(row["created_at"] is not None for row in rows)


def test_insert_many_returns_count(queries: BenchmarkQueries, store: BenchmarkStore) -> None:
    assert queries.insert_benchmarks([make_record(), make_record(), make_record()]) == 3
    assert queries.insert_benchmarks([]) == 0
    assert _count(store) == 3


def test_insert_many_is_all_or_nothing(queries: BenchmarkQueries, store: BenchmarkStore) -> None:
    bad = make_record()
    bad["flash_attn"] = None  # violates NOT NULL
    with pytest.raises(IntegrityError):
        queries.insert_benchmarks([make_record(), make_record(), make_record(), bad])
    assert _count(store) == 0


def test_delete_by_ids(queries: BenchmarkQueries, store: BenchmarkStore) -> None:
    ids = [queries.insert_benchmark(make_record()) for _ in range(3)]
    assert queries.delete_benchmarks([]) == 0
    assert queries.delete_benchmarks([ids[0] + 1000]) == 0
    assert queries.delete_benchmarks([ids[0], ids[1], 9999]) == 2
    assert queries.delete_benchmarks([ids[0]]) == 0
    assert _count(store) == 1


def test_deleted_ids_are_not_reused(queries: BenchmarkQueries) -> None:
    last = queries.insert_benchmark(make_record())
    queries.delete_benchmarks([last])
    assert queries.insert_benchmark(make_record()) > last


def test_migration_adds_missing_columns_to_old_table(tmp_path: Path) -> None:
    path = tmp_path / "old.db"
    conn = sqlite3.connect(path)
    conn.execute(
        "CREATE TABLE benchmarks (id INTEGER PRIMARY KEY AUTOINCREMENT, "
        "created_at DATETIME DEFAULT CURRENT_TIMESTAMP, build_commit TEXT, model_filename TEXT, "
        "test_type TEXT, tokens_per_second REAL, flash_attn INTEGER, embeddings INTEGER)"
    )
    conn.execute(
        "INSERT INTO benchmarks (build_commit, model_filename, test_type, tokens_per_second, flash_attn, embeddings) "
        "VALUES ('old', 'old.gguf', 'tg', 10.0, 0, 0)"
    )
    conn.commit()
    conn.close()

    store = open_store(f"sqlite:///{path}")
    try:
        columns = {c["name"] for c in inspect(store.engine).get_columns("benchmarks")}
        assert {"n_prompt", "n_gen", "n_depth", "split_mode", "main_gpu", "samples"} <= columns

        queries = BenchmarkQueries(store)
        rows = queries.get_benchmarks()
        assert len(rows) == 1
        assert rows[0]["build_commit"] == "old"
        assert rows[0]["n_depth"] is None

        queries.insert_benchmark(make_record(n_depth=512))
        assert len(queries.get_benchmarks()) == 2
        # nothing left to add on a second run
        assert migrate(store.engine) == []
    finally:
        store.dispose()
