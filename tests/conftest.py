from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from app.db import BenchmarkQueries, BenchmarkStore, open_store
from app.main import create_app
from app.models import transform_benchmark


def make_raw(**overrides: object) -> dict[str, object]:
    """A llama-bench style result object."""
    raw: dict[str, object] = {
        "build_commit": "abc123",
        "build_number": 4000,
        "test_time": "2025-01-01T00:00:00Z",
        "cpu_info": "AMD Ryzen 9 7950X",
        "gpu_info": "NVIDIA GeForce RTX 4090",
        "backends": "CUDA",
        "model_filename": "a.gguf",
        "model_type": "llama 7B Q4_0",
        "model_size": 3825065984,
        "model_n_params": 6738415616,
        "n_batch": 2048,
        "n_ubatch": 512,
        "n_threads": 16,
        "n_gpu_layers": 99,
        "type_k": "f16",
        "type_v": "f16",
        "flash_attn": False,
        "embeddings": False,
        "split_mode": "layer",
        "main_gpu": 0,
        "n_prompt": 0,
        "n_gen": 128,
        "avg_ts": 45.2,
        "stddev_ts": 0.3,
    }
    raw.update(overrides)
    return raw


def make_record(**overrides: object) -> dict[str, object]:
    return transform_benchmark(make_raw(**overrides))


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "benchmarks.db"


@pytest.fixture
def store(db_path: Path):
    store = open_store(f"sqlite:///{db_path}")
    yield store
    store.dispose()


@pytest.fixture
def queries(store: BenchmarkStore) -> BenchmarkQueries:
    return BenchmarkQueries(store)


@pytest.fixture
def client(store: BenchmarkStore):
    with TestClient(create_app(store)) as client:
        yield client
