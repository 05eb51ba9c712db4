from __future__ import annotations

from app import dimensions
from app.dimensions import Dimension, DimensionType


def test_filter_valid_keeps_order_and_drops_unknowns() -> None:
    assert dimensions.filter_valid(["n_batch", "not_a_real_column", "backend"]) == ["n_batch", "backend"]


def test_filter_valid_returns_registry_members() -> None:
    valid = dimensions.filter_valid(["n_ctx", "n_ctx; DROP TABLE benchmarks", 7, None])
    assert valid == [Dimension.N_CTX]


def test_all_keys_matches_descriptors() -> None:
    keys = dimensions.all_keys()
    assert keys == {d.key.value for d in dimensions.DIMENSIONS}
    assert len(keys) == 15
    assert "build_commit" not in keys


def test_is_valid() -> None:
    assert dimensions.is_valid("flash_attn")
    assert not dimensions.is_valid("FLASH_ATTN")
    assert not dimensions.is_valid(["flash_attn"])


def test_by_group_orders_by_priority() -> None:
    groups = dimensions.by_group()
    assert list(groups) == ["GPU Config", "Batching", "Test Params", "Features", "Hardware"]
    priorities = [d.priority for descriptors in groups.values() for d in descriptors]
    assert priorities == sorted(priorities)
    assert [d.key for d in groups["Batching"]] == [Dimension.N_BATCH, Dimension.N_UBATCH]


def test_get_dimension() -> None:
    descriptor = dimensions.get_dimension("split_mode")
    assert descriptor is not None
    assert descriptor.label == "Split Mode"
    assert descriptor.type is DimensionType.TEXT
    assert dimensions.get_dimension("nope") is None


def test_coerce_filter_values() -> None:
    assert dimensions.coerce_filter_values(Dimension.N_BATCH, ["512", "", "abc", "1024"]) == [512, 1024]
    assert dimensions.coerce_filter_values(Dimension.FLASH_ATTN, ["1"]) == [1]
    assert dimensions.coerce_filter_values(Dimension.CACHE_TYPE_K, ["q8_0", ""]) == ["q8_0"]
