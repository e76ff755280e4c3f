"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


class ConfigError(RuntimeError):
    """Raised when mandatory configuration is missing."""


@dataclass(frozen=True)
class Settings:
    google_api_key: str = ""
    yelp_api_key: str = ""
    serpapi_api_key: str = ""
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    provider_timeout: float = 10.0
    google_fetch_details: bool = False
    search_max_workers: int = 1
    default_location: str = "San Francisco, CA"
    log_level: str = "INFO"
    port: int = 8080


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    google_api_key = os.getenv("GOOGLE_API_KEY", "")
    yelp_api_key = os.getenv("YELP_API_KEY", "")
    serpapi_api_key = os.getenv("SERPAPI_API_KEY", "")
    openai_api_key = os.getenv("OPENAI_API_KEY", "")
    openai_model = os.getenv("OPENAI_MODEL") or "gpt-4o-mini"
    provider_timeout = float(os.getenv("PROVIDER_TIMEOUT", "10"))
    google_fetch_details = _env_flag("GOOGLE_FETCH_DETAILS")
    search_max_workers = max(1, int(os.getenv("SEARCH_MAX_WORKERS", "1")))
    default_location = os.getenv("DEFAULT_LOCATION") or "San Francisco, CA"
    log_level = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    port = int(os.getenv("PORT", "8080"))

    if not google_api_key:
        logger.warning("GOOGLE_API_KEY is not configured; Google Places search is disabled.")
    if not yelp_api_key:
        logger.warning("YELP_API_KEY is not configured; Yelp search is disabled.")
    if not serpapi_api_key:
        logger.warning("SERPAPI_API_KEY is not configured; SerpAPI search is disabled.")
    if not openai_api_key:
        logger.warning("OPENAI_API_KEY is not configured; recommendations use keyword parsing only.")

    return Settings(
        google_api_key=google_api_key,
        yelp_api_key=yelp_api_key,
        serpapi_api_key=serpapi_api_key,
        openai_api_key=openai_api_key,
        openai_model=openai_model,
        provider_timeout=provider_timeout,
        google_fetch_details=google_fetch_details,
        search_max_workers=search_max_workers,
        default_location=default_location,
        log_level=log_level,
        port=port,
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
