"""
Dimension registry for pivot-style trend analysis.

A dimension is a benchmark configuration column that callers may group or
filter trends by. The registry is closed: a column name coming from a request
is only ever placed into a query after it has been resolved to a `Dimension`.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable

logger = logging.getLogger(__name__)


class DimensionType(str, Enum):
    NUMERIC = "numeric"
    TEXT = "text"
    BOOLEAN = "boolean"


class Dimension(str, Enum):
    """Column names eligible for dynamic grouping and filtering."""

    N_GPU_LAYERS = "n_gpu_layers"
    SPLIT_MODE = "split_mode"
    MAIN_GPU = "main_gpu"
    N_BATCH = "n_batch"
    N_UBATCH = "n_ubatch"
    N_CTX = "n_ctx"
    N_PROMPT = "n_prompt"
    N_GEN = "n_gen"
    N_DEPTH = "n_depth"
    FLASH_ATTN = "flash_attn"
    CACHE_TYPE_K = "cache_type_k"
    CACHE_TYPE_V = "cache_type_v"
    EMBEDDINGS = "embeddings"
    N_THREADS = "n_threads"
    BACKEND = "backend"


@dataclass(frozen=True)
class DimensionDescriptor:
    key: Dimension
    label: str
    group: str
    type: DimensionType
    priority: int


DIMENSIONS: tuple[DimensionDescriptor, ...] = (
    # GPU configuration
    DimensionDescriptor(Dimension.N_GPU_LAYERS, "GPU Layers", "GPU Config", DimensionType.NUMERIC, 1),
    DimensionDescriptor(Dimension.SPLIT_MODE, "Split Mode", "GPU Config", DimensionType.TEXT, 2),
    DimensionDescriptor(Dimension.MAIN_GPU, "Main GPU", "GPU Config", DimensionType.NUMERIC, 3),
    # Batching
    DimensionDescriptor(Dimension.N_BATCH, "Batch Size", "Batching", DimensionType.NUMERIC, 10),
    DimensionDescriptor(Dimension.N_UBATCH, "Micro Batch", "Batching", DimensionType.NUMERIC, 11),
    # Context / test parameters
    DimensionDescriptor(Dimension.N_CTX, "Context Size", "Test Params", DimensionType.NUMERIC, 20),
    DimensionDescriptor(Dimension.N_PROMPT, "Prompt Tokens", "Test Params", DimensionType.NUMERIC, 21),
    DimensionDescriptor(Dimension.N_GEN, "Gen Tokens", "Test Params", DimensionType.NUMERIC, 22),
    DimensionDescriptor(Dimension.N_DEPTH, "Context Depth", "Test Params", DimensionType.NUMERIC, 23),
    # Features
    DimensionDescriptor(Dimension.FLASH_ATTN, "Flash Attention", "Features", DimensionType.BOOLEAN, 30),
    DimensionDescriptor(Dimension.CACHE_TYPE_K, "K Cache Type", "Features", DimensionType.TEXT, 31),
    DimensionDescriptor(Dimension.CACHE_TYPE_V, "V Cache Type", "Features", DimensionType.TEXT, 32),
    DimensionDescriptor(Dimension.EMBEDDINGS, "Embeddings", "Features", DimensionType.BOOLEAN, 33),
    # Hardware / build
    DimensionDescriptor(Dimension.N_THREADS, "Threads", "Hardware", DimensionType.NUMERIC, 40),
    DimensionDescriptor(Dimension.BACKEND, "Backend", "Hardware", DimensionType.TEXT, 41),
)

_BY_KEY = {d.key.value: d for d in DIMENSIONS}


def all_keys() -> frozenset[str]:
    """The allow-list of dimension column names."""
    return frozenset(_BY_KEY)


def is_valid(key: Any) -> bool:
    return isinstance(key, str) and key in _BY_KEY


def parse_dimension(key: Any) -> Dimension | None:
    """Resolve a raw name to a registry member, or None if it is not one."""
    if not is_valid(key):
        return None
    return Dimension(key)


def get_dimension(key: Any) -> DimensionDescriptor | None:
    if not is_valid(key):
        return None
    return _BY_KEY[key]


def filter_valid(keys: Iterable[Any]) -> list[Dimension]:
    """Keep registry keys in input order and silently drop the rest."""
    valid = []
    for key in keys:
        dimension = parse_dimension(key)
        if dimension is None:
            logger.debug("Ignoring unknown dimension %r", key)
            continue
        valid.append(dimension)
    return valid


def by_group() -> dict[str, list[DimensionDescriptor]]:
    """Descriptors grouped by UI category, ordered by priority."""
    groups: dict[str, list[DimensionDescriptor]] = {}
    for descriptor in sorted(DIMENSIONS, key=lambda d: d.priority):
        groups.setdefault(descriptor.group, []).append(descriptor)
    return groups


def coerce_filter_values(dimension: Dimension, values: Iterable[Any]) -> list:
    """
    Convert raw filter values (usually query-string text) to column values.

    Numeric and boolean dimensions are stored as integers; values that do not
    parse are dropped, matching the permissive handling of dimension keys.
    """
    descriptor = _BY_KEY[dimension.value]
    coerced = []
    for value in values:
        if value is None or value == "":
            continue
        if descriptor.type is DimensionType.TEXT:
            coerced.append(str(value))
            continue
        try:
            coerced.append(int(value))
        except (TypeError, ValueError):
            logger.debug("Dropping non-integer value %r for %s", value, dimension.value)
    return coerced
