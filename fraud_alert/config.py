from __future__ import annotations
from dataclasses import dataclass
import logging
import os

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://fraud-alert-project-landing.onrender.com"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    api_base_url: str = DEFAULT_API_BASE_URL
    request_timeout: float = 120.0
    batch_size: int = 10_000
    max_rows: int = 100_000
    use_demo_data_on_error: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            api_base_url=os.getenv("FRAUD_API_BASE_URL", DEFAULT_API_BASE_URL).rstrip("/"),
            request_timeout=float(os.getenv("FRAUD_API_TIMEOUT", "120")),
            batch_size=int(os.getenv("FRAUD_BATCH_SIZE", "10000")),
            max_rows=int(os.getenv("FRAUD_MAX_ROWS", "100000")),
            use_demo_data_on_error=_env_bool("FRAUD_USE_DEMO_DATA_ON_ERROR", True),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


def load_settings() -> Settings:
    """Settings from the environment, or the defaults when a value does not parse."""
    try:
        return Settings.from_env()
    except ValueError as e:
        logger.error("Invalid configuration, using defaults: %s", e)
        return Settings()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
