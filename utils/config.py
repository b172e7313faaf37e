"""Configuration for the RKC financial dashboard.

- AppConfig: application settings read from APP_* environment variables
- KnownValues: the closed sets of values the movement table accepts
"""

import os as _os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict, List, Optional


class KnownValues:
    """Closed value sets used by movement rows."""

    MOVEMENT_TYPES = ("ENTRADA", "SAIDA")

    DEFAULT_MOVEMENT_TYPE = "SAIDA"

    DEFAULT_STATUS = "confirmado"

    @classmethod
    def is_valid_movement_type(cls, tipo: Optional[str]) -> bool:
        return tipo in cls.MOVEMENT_TYPES


def _split_origins(raw: str) -> List[str]:
    if raw.strip() == "*":
        return ["*"]
    return [o.strip() for o in raw.split(",") if o.strip()]


class AppConfig:
    """Application settings.

    Every setting has a default, so the dashboard starts without any
    configuration.

    Environment variables:
        APP_DB_PATH: SQLite database file (default: rkc_financeiro.sqlite)
        APP_HOST: Server bind address (default: 127.0.0.1)
        APP_PORT: Server port (default: 8000)
        APP_LOG_FORMAT: "text" or "json" (default: text)
        APP_CORS_ORIGINS: Comma-separated allowed origins, or * (default: *)
        APP_MOVEMENT_LIMIT: Row cap for the movement list and exports (default: 200)
        APP_SLOW_QUERY_MS: Queries slower than this are logged (default: 100)
    """

    def __init__(self, env: Optional[Mapping[str, str]] = None) -> None:
        env = _os.environ if env is None else env
        self.db_path = Path(env.get("APP_DB_PATH", "rkc_financeiro.sqlite"))
        self.api_host = env.get("APP_HOST", "127.0.0.1")
        self.api_port = int(env.get("APP_PORT", "8000"))
        self.log_format = env.get("APP_LOG_FORMAT", "text").lower()
        self.cors_origins = _split_origins(env.get("APP_CORS_ORIGINS", "*"))
        self.movement_limit = int(env.get("APP_MOVEMENT_LIMIT", "200"))
        self.slow_query_ms = float(env.get("APP_SLOW_QUERY_MS", "100"))
        if self.log_format not in ("text", "json"):
            raise ValueError(f"APP_LOG_FORMAT must be 'text' or 'json', got {self.log_format!r}")
        if self.movement_limit < 1:
            raise ValueError("APP_MOVEMENT_LIMIT must be at least 1")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "AppConfig":
        """Read settings from ``env`` (default: the process environment)."""
        return cls(env)

    def to_dict(self) -> Dict[str, Any]:
        """Settings as plain JSON-compatible values (paths as strings)."""
        return {
            k: str(v) if isinstance(v, Path) else v
            for k, v in vars(self).items()
        }
