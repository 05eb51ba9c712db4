"""Runtime configuration for the benchmark reports service."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

DEFAULT_DB_PATH = Path("data") / "benchmarks.db"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000
DEFAULT_LOG_LEVEL = "info"


@dataclass(frozen=True)
class Settings:
    """Settings read once at process start."""

    db_path: Path = DEFAULT_DB_PATH
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = DEFAULT_LOG_LEVEL

    @property
    def database_url(self) -> str:
        return f"sqlite:///{self.db_path}"


def _port(value: str | None) -> int:
    try:
        return int(value) if value else DEFAULT_PORT
    except ValueError:
        return DEFAULT_PORT


def load_settings(environ: Mapping[str, str] = os.environ) -> Settings:
    """Build settings from DB_PATH, HOST, PORT and LOG_LEVEL."""
    return Settings(
        db_path=Path(environ.get("DB_PATH") or DEFAULT_DB_PATH),
        host=environ.get("HOST") or DEFAULT_HOST,
        port=_port(environ.get("PORT")),
        log_level=(environ.get("LOG_LEVEL") or DEFAULT_LOG_LEVEL).lower(),
    )
