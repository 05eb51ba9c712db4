"""Table column catalog used when rendering benchmark rows."""

from dataclasses import asdict, dataclass
from typing import Any, Iterable, Mapping


@dataclass(frozen=True)
class ColumnConfig:
    key: str
    label: str
    format: str | None = None  # "number", "code", "boolean" or plain text
    decimals: int = 0
    bold: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


TABLE_COLUMNS: tuple[ColumnConfig, ...] = (
    # Identity
    ColumnConfig("model_filename", "Model"),
    ColumnConfig("model_type", "Type"),
    # Test info
    ColumnConfig("test_type", "Test"),
    ColumnConfig("n_prompt", "Prompt"),
    ColumnConfig("n_gen", "Gen"),
    ColumnConfig("n_depth", "Depth"),
    # Results
    ColumnConfig("tokens_per_second", "t/s", format="number", decimals=2, bold=True),
    ColumnConfig("stddev", "Stddev", format="number", decimals=2),
    # Hardware
    ColumnConfig("gpu_info", "GPU"),
    ColumnConfig("backend", "Backend"),
    # Parameters
    ColumnConfig("n_batch", "Batch"),
    ColumnConfig("n_ubatch", "uBatch"),
    ColumnConfig("n_threads", "Threads"),
    ColumnConfig("n_gpu_layers", "GPU Layers"),
    ColumnConfig("n_ctx", "Context"),
    # GPU config
    ColumnConfig("split_mode", "Split Mode"),
    ColumnConfig("main_gpu", "Main GPU"),
    # Features
    ColumnConfig("flash_attn", "Flash Attn", format="boolean"),
    ColumnConfig("cache_type_k", "K Cache"),
    ColumnConfig("cache_type_v", "V Cache"),
    ColumnConfig("embeddings", "Embeddings", format="boolean"),
    # Build info
    ColumnConfig("build_commit", "Build", format="code"),
    ColumnConfig("build_number", "Build #"),
    ColumnConfig("test_time", "Time"),
)


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def get_active_columns(rows: Iterable[Mapping[str, Any]]) -> list[ColumnConfig]:
    """Columns that have at least one non-empty value in rows."""
    rows = list(rows)
    return [
        column for column in TABLE_COLUMNS
        if any(not _is_empty(row.get(column.key)) for row in rows)
    ]


def format_cell_value(value: Any, column: ColumnConfig) -> str:
    if _is_empty(value):
        return ""

    if column.format == "number":
        try:
            return f"{float(value):.{column.decimals}f}"
        except (TypeError, ValueError):
            return str(value)
    if column.format == "code":
        # Short commit hash
        return value[:7] if isinstance(value, str) else str(value)
    if column.format == "boolean":
        return "Yes" if value in (1, True, "1") else "No"
    return str(value)
