"""Conversion between llama-bench JSON output and stored benchmark rows."""

import json
from datetime import datetime, timezone
from typing import Any, Mapping

from app.errors import JsonlParseError, ValidationError

NDJSON_CONTENT_TYPES = ("application/x-ndjson", "application/jsonl", "application/x-jsonlines")

# Columns written on insert, in table order. id and created_at are assigned by the store.
INSERT_COLUMNS = (
    "build_commit", "build_number", "test_time",
    "cpu_info", "gpu_info", "backend",
    "model_filename", "model_type", "model_size", "model_n_params",
    "test_type", "n_prompt", "n_gen", "n_depth", "n_batch", "n_ubatch", "n_threads", "n_gpu_layers",
    "n_ctx", "flash_attn", "cache_type_k", "cache_type_v", "embeddings",
    "split_mode", "main_gpu",
    "tokens_per_second", "stddev", "samples",
)


def _token_count(value: Any) -> float:
    # producers sometimes send counts as strings; anything unparsable counts as 0
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0


def get_test_type(n_prompt: Any, n_gen: Any) -> str | None:
    """Classify a run as prompt processing, token generation or both."""
    prompt = _token_count(n_prompt)
    gen = _token_count(n_gen)
    if prompt > 0 and gen > 0:
        return "pp+tg"
    if prompt > 0:
        return "pp"
    if gen > 0:
        return "tg"
    return None


def _first_present(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def transform_benchmark(data: Any) -> dict[str, Any]:
    """Map one llama-bench result object onto the benchmarks table columns."""
    if not isinstance(data, Mapping):
        raise ValidationError(f"Benchmark record must be a JSON object, got {type(data).__name__}")

    samples = data.get("samples")
    return {
        "build_commit": data.get("build_commit") or None,
        "build_number": data.get("build_number") or None,
        "test_time": data.get("test_time") or _now_iso(),

        "cpu_info": data.get("cpu_info") or None,
        "gpu_info": data.get("gpu_info") or None,
        # llama-bench emits "backends"
        "backend": data.get("backend") or data.get("backends") or None,

        "model_filename": data.get("model_filename") or None,
        "model_type": data.get("model_type") or None,
        "model_size": data.get("model_size") or None,
        "model_n_params": data.get("model_n_params") or None,

        "test_type": get_test_type(data.get("n_prompt"), data.get("n_gen")),
        # 0 is a real setting for these, so only a missing key becomes NULL
        "n_prompt": data.get("n_prompt"),
        "n_gen": data.get("n_gen"),
        "n_depth": data.get("n_depth"),
        "n_batch": data.get("n_batch"),
        "n_ubatch": data.get("n_ubatch"),
        "n_threads": data.get("n_threads"),
        "n_gpu_layers": data.get("n_gpu_layers"),
        "n_ctx": data.get("n_ctx"),
        "flash_attn": 1 if data.get("flash_attn") else 0,
        "cache_type_k": data.get("type_k") or data.get("cache_type_k") or None,
        "cache_type_v": data.get("type_v") or data.get("cache_type_v") or None,
        "embeddings": 1 if data.get("embeddings") else 0,
        "split_mode": data.get("split_mode") or None,
        "main_gpu": data.get("main_gpu"),

        "tokens_per_second": _first_present(data, "avg_ts", "t_s"),
        "stddev": _first_present(data, "stddev_ts", "stddev"),
        "samples": json.dumps(samples) if samples is not None else None,
    }


def parse_jsonl(text: str) -> list[dict[str, Any]]:
    """Parse newline-delimited JSON, one object per non-blank line."""
    records = []
    for line_number, line in enumerate(text.split("\n"), start=1):
        if not line.strip():
            continue
        try:
            records.append(json.loads(line))
        except json.JSONDecodeError as e:
            raise JsonlParseError(line_number, line.strip()) from e
    return records


def parse_submission(body: str | bytes, content_type: str = "") -> list[dict[str, Any]]:
    """
    Decode a submission body into raw benchmark objects.

    Newline-delimited JSON is selected by content type; anything else must be
    a JSON object or an array of objects. A single bad element rejects the
    whole submission.
    """
    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ValidationError("Request body is not valid UTF-8") from e

    if any(kind in content_type for kind in NDJSON_CONTENT_TYPES):
        records = parse_jsonl(body)
    else:
        try:
            payload = json.loads(body)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid JSON body: {e.msg}") from e
        records = payload if isinstance(payload, list) else [payload]

    for index, record in enumerate(records):
        if not isinstance(record, dict):
            raise ValidationError(f"Record {index} is not a JSON object")
    return records


def _decode_samples(samples: Any) -> list:
    if not samples:
        return []
    try:
        decoded = json.loads(samples)
    except (TypeError, json.JSONDecodeError):
        return []
    return decoded if isinstance(decoded, list) else []


def format_benchmark(benchmark: Mapping[str, Any]) -> dict[str, Any]:
    """Copy of a stored row with samples decoded and sizes in GB / billions."""
    model_size = benchmark.get("model_size")
    n_params = benchmark.get("model_n_params")
    return {
        **benchmark,
        "samples": _decode_samples(benchmark.get("samples")),
        "model_size_gb": f"{model_size / 1e9:.2f}" if model_size is not None else None,
        "model_params_b": f"{n_params / 1e9:.2f}" if n_params is not None else None,
    }
