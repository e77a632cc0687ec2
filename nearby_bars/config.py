"""Service settings: defaults, optional JSON file, environment variables."""
import json
import logging
import os
from pathlib import Path
from typing import Any, Iterator, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

CONFIG_FILE_ENV = "CONFIG_FILE"


def _leaves(config: dict[str, Any]) -> Iterator[tuple[str, Any]]:
    for key, value in config.items():
        # "_comment" style keys are annotations, not settings
        if key.startswith("_"):
            continue
        if isinstance(value, dict):
            yield from _leaves(value)
        else:
            yield key, value


def flatten_json_config(config: dict[str, Any]) -> dict[str, Any]:
    """Collapse grouped sections into one flat mapping of setting names.

    ``{"redis": {"redis_host": "cache"}, "rate_limit": {"rate_limit_max_requests": 5}}``
    becomes ``{"redis_host": "cache", "rate_limit_max_requests": 5}``. Group
    names are ignored, so setting names must be unique across groups.
    """
    return dict(_leaves(config))


def load_json_config(config_file: Optional[str] = None) -> dict[str, Any]:
    """Read the JSON config file named by ``config_file`` or ``$CONFIG_FILE``.

    A missing or unreadable file is logged and treated as empty so the
    service still starts on defaults and environment variables.
    """
    file_path = config_file or os.getenv(CONFIG_FILE_ENV)
    if not file_path:
        return {}

    path = Path(file_path)
    if not path.is_file():
        logger.warning(f"[Config] No config file at {file_path}, using defaults")
        return {}

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        logger.error(f"[Config] {file_path} is not valid JSON: {e}")
        return {}
    except OSError as e:
        logger.error(f"[Config] Could not read {file_path}: {e}")
        return {}

    if not isinstance(raw, dict):
        logger.error(f"[Config] {file_path} must hold a JSON object")
        return {}

    logger.info(f"[Config] Loaded settings from {file_path}")
    return flatten_json_config(raw)


class Settings(BaseSettings):
    """nearby-bars-server settings.

    Sources, strongest first: keyword arguments, environment variables
    (case-insensitive, also read from ``.env``), the JSON config file, defaults.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # "redis" in production, "memory" for local runs without Redis
    cache_backend: str = "redis"

    redis_host: str = "redis"
    redis_port: int = 6379
    redis_password: str = ""
    redis_db: int = 0

    overpass_endpoint: str = "https://overpass-api.de/api/interpreter"
    overpass_query_timeout_seconds: int = 15  # server-side [timeout:N] hint
    overpass_max_retries: int = 2  # retries after the first attempt
    overpass_backoff_seconds: float = 1.0  # delay grows linearly: 1s, 2s
    overpass_http_timeout_seconds: float = 30.0

    # Fixed window, per client IP
    rate_limit_enabled: bool = True
    rate_limit_window_ms: int = 60_000
    rate_limit_max_requests: int = 10

    # Search radius band in meters
    radius_min_meters: float = 100
    radius_max_meters: float = 10_000
    radius_default_meters: float = 2_000

    server_port: int = 8080
    log_level: str = "INFO"

    def __init__(self, **kwargs):
        # JSON values are passed as init kwargs, which pydantic-settings ranks
        # above the environment, so drop any the environment already sets.
        from_file = {
            key: value
            for key, value in load_json_config().items()
            if os.getenv(key.upper()) is None
        }
        super().__init__(**{**from_file, **kwargs})

    @property
    def redis_address(self) -> str:
        return f"{self.redis_host}:{self.redis_port}"
