from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List, Optional

logger = logging.getLogger(__name__)

_DEFAULT_PORT = 5000


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PERSISTENCE_BACKEND: 'memory' (default) or 'sqlite'
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/todos.db'
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - HOST: interface the server binds to. Default '0.0.0.0'
    - PORT: listening port. Default 5000
    - LOG_LEVEL: root log level name. Default 'INFO'
    - USERS_SEED_FILE: optional JSON file with users to insert at startup
    """

    persistence_backend: str
    sqlite_db_path: str
    cors_allow_origins: List[str]
    host: str
    port: int
    log_level: str
    users_seed_file: Optional[str]


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_port(value: str) -> int:
    try:
        port = int(value.strip())
    except ValueError:
        logger.warning("Invalid PORT value '%s'; defaulting to %s", value, _DEFAULT_PORT)
        return _DEFAULT_PORT
    if not 0 < port < 65536:
        logger.warning("PORT %s out of range; defaulting to %s", port, _DEFAULT_PORT)
        return _DEFAULT_PORT
    return port


def _parse_log_level(value: str) -> str:
    level = value.strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        logger.warning("Unknown LOG_LEVEL '%s'; defaulting to INFO", value)
        return "INFO"
    return level


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    backend = _get_env("PERSISTENCE_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "sqlite"}:
        logger.warning("Unsupported PERSISTENCE_BACKEND '%s'; using memory", backend)
        backend = "memory"

    sqlite_path = _get_env("SQLITE_DB_PATH", "./data/todos.db").strip()
    origins = _parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*"))
    seed_file = os.getenv("USERS_SEED_FILE", "").strip() or None

    return Settings(
        persistence_backend=backend,
        sqlite_db_path=sqlite_path,
        cors_allow_origins=origins,
        host=_get_env("HOST", "0.0.0.0").strip(),
        port=_parse_port(_get_env("PORT", str(_DEFAULT_PORT))),
        log_level=_parse_log_level(_get_env("LOG_LEVEL", "INFO")),
        users_seed_file=seed_file,
    )
