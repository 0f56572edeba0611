# Runtime configuration read from environment variables.
# Every knob has a local-development default so the client works without any setup.
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


# Basic truthy parser for env flags (1, true, yes, on)
def _truthy(val: Optional[str]) -> bool:
    if val is None:
        return False
    return val.strip().lower() in {"1", "true", "t", "yes", "y", "on"}


def _to_float(val: Optional[str], default: float) -> float:
    try:
        return float(val) if val is not None else default
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    """Client settings.

    - api_base_url: backend root, e.g. http://localhost:8000
    - cache_database_url: SQLAlchemy URL of the on-device cache
    - http_timeout_seconds: per-request timeout applied by httpx
    - log_level: root level for the "rentease" logger namespace
    - sql_echo: log every SQL statement the cache issues
    """

    api_base_url: str = "http://localhost:8000"
    cache_database_url: str = "sqlite:///./rentease_cache.db"
    http_timeout_seconds: float = 10.0
    log_level: str = "INFO"
    sql_echo: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            api_base_url=os.getenv("RENTEASE_API_BASE_URL", cls.api_base_url).rstrip("/"),
            cache_database_url=os.getenv("RENTEASE_CACHE_DATABASE_URL", cls.cache_database_url),
            http_timeout_seconds=_to_float(os.getenv("RENTEASE_HTTP_TIMEOUT_SECONDS"), cls.http_timeout_seconds),
            log_level=os.getenv("RENTEASE_LOG_LEVEL", cls.log_level).upper(),
            sql_echo=_truthy(os.getenv("RENTEASE_SQL_ECHO")),
        )


def configure_logging(level: str = "INFO") -> None:
    """Attach a stream handler to the "rentease" logger once."""
    logger = logging.getLogger("rentease")
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        logger.addHandler(handler)
