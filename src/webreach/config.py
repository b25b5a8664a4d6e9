"""Application configuration helpers."""

from __future__ import annotations

from functools import lru_cache
import logging
import os
from typing import Annotated, Literal, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

logger = logging.getLogger(__name__)

DEFAULT_MIRRORS: Tuple[str, ...] = (
    "https://nitter.moonaroh.com",
    "https://nitter.privacydev.net",
    "https://nitter.1d4.us",
    "https://nitter.kavin.rocks",
    "https://nitter.unixfox.eu",
)

DEFAULT_PROXIES: Tuple[str, ...] = (
    "https://api.codetabs.com/v1/proxy?quest=",
)

DEFAULT_USER_AGENTS: Tuple[str, ...] = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/118.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/117.0.0.0 Safari/537.36 Edg/117.0.2045.47",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/16.6 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:124.0) Gecko/20100101 Firefox/124.0",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/116.0.0.0 Safari/537.36",
)


def _check_http_entries(values: Tuple[str, ...], label: str) -> Tuple[str, ...]:
    cleaned = tuple(v.strip() for v in values if v and v.strip())
    for entry in cleaned:
        if not entry.startswith(("http://", "https://")):
            raise ValueError(f"{label} entry must be an http(s) URL, got: {entry!r}")
    return cleaned


class MirrorConfig(BaseModel):
    """Ordered mirror hosts, rewriting proxies and request identity pool.

    Injected into MirrorClient so tests can substitute their own lists.
    """

    model_config = ConfigDict(frozen=True)

    mirrors: Tuple[str, ...] = Field(
        default=DEFAULT_MIRRORS,
        description="Mirror base URLs, tried in order",
    )
    proxies: Tuple[str, ...] = Field(
        default=DEFAULT_PROXIES,
        description="Proxy URL prefixes; the target URL is appended URL-encoded",
    )
    user_agents: Tuple[str, ...] = Field(default=DEFAULT_USER_AGENTS)
    timeout: float = Field(default=15.0, gt=0, le=120)

    @field_validator("mirrors", mode="after")
    @classmethod
    def _validate_mirrors(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        cleaned = _check_http_entries(value, "mirror")
        if not cleaned:
            raise ValueError("At least one mirror is required")
        return tuple(m.rstrip("/") for m in cleaned)

    @field_validator("proxies", mode="after")
    @classmethod
    def _validate_proxies(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        return _check_http_entries(value, "proxy")

    @field_validator("user_agents", mode="after")
    @classmethod
    def _validate_user_agents(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        if not value:
            raise ValueError("user_agents cannot be empty")
        return value


class ExtractorConfig(BaseModel):
    """Limits applied by the generic page extractor."""

    model_config = ConfigDict(frozen=True)

    timeout: float = Field(default=15.0, gt=0, le=120)
    max_content_length: int = Field(default=10_000, ge=500)
    min_content_length: int = Field(default=100, ge=0)
    max_response_bytes: int = Field(default=10 * 1024 * 1024, ge=1024)
    user_agents: Tuple[str, ...] = Field(default=DEFAULT_USER_AGENTS)


class AppConfig(BaseModel):
    """Runtime configuration loaded from environment variables."""

    model_config = ConfigDict(frozen=True)

    mirror: MirrorConfig = Field(default_factory=MirrorConfig)
    extractor: ExtractorConfig = Field(default_factory=ExtractorConfig)
    search_provider: Literal["searxng", "tavily"] = Field(
        default="searxng",
        description="Backend used by web_search (WEBREACH_SEARCH_PROVIDER)",
    )
    searxng_url: str = Field(
        default="http://127.0.0.1:8080",
        description="Base URL of a SearXNG-compatible JSON search endpoint",
    )
    tavily_api_key: Optional[str] = Field(default=None)
    search_timeout: float = Field(default=15.0, gt=0, le=120)
    max_search_results: int = Field(default=3, ge=1, le=20)
    max_batch_urls: int = Field(default=3, ge=1, le=10)
    max_timeline_posts: int = Field(default=10, ge=1, le=100)

    @field_validator("search_provider", mode="before")
    @classmethod
    def _normalize_provider(cls, value: Optional[str]) -> str:
        if value is None or value == "":
            return "searxng"
        return str(value).lower().strip()

    @field_validator("searxng_url", mode="after")
    @classmethod
    def _strip_searxng_url(cls, value: str) -> str:
        return value.strip().rstrip("/")


def _read_env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(key, default)


def _read_list(key: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = _read_env(key)
    if raw is None:
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _read_number(key: str, model: Type[BaseModel], field: str, cast):
    """Read a numeric env var, keeping the field default when it is unusable.

    Values that do not parse, or that the field's own constraints reject,
    are logged and replaced by the model default.
    """
    info = model.model_fields[field]
    raw = _read_env(key)
    if raw is None:
        return info.default
    try:
        value = cast(raw)
        if info.metadata:
            TypeAdapter(Annotated[(info.annotation, *info.metadata)]).validate_python(value)
    except (ValueError, ValidationError):
        logger.warning(f"Ignoring invalid {key}={raw!r}; using default {info.default}")
        return info.default
    return value


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Load and cache application configuration."""
    mirror = MirrorConfig(
        mirrors=_read_list("WEBREACH_MIRRORS", DEFAULT_MIRRORS),
        proxies=_read_list("WEBREACH_PROXIES", DEFAULT_PROXIES),
        timeout=_read_number("WEBREACH_MIRROR_TIMEOUT", MirrorConfig, "timeout", float),
    )
    extractor = ExtractorConfig(
        timeout=_read_number("WEBREACH_FETCH_TIMEOUT", ExtractorConfig, "timeout", float),
        max_content_length=_read_number("WEBREACH_MAX_CONTENT_LENGTH", ExtractorConfig, "max_content_length", int),
        max_response_bytes=_read_number("WEBREACH_MAX_RESPONSE_BYTES", ExtractorConfig, "max_response_bytes", int),
    )

    return AppConfig(
        mirror=mirror,
        extractor=extractor,
        search_provider=_read_env("WEBREACH_SEARCH_PROVIDER", "searxng"),
        searxng_url=_read_env("WEBREACH_SEARXNG_URL", "http://127.0.0.1:8080"),
        tavily_api_key=_read_env("TAVILY_API_KEY"),
        max_search_results=_read_number("WEBREACH_MAX_SEARCH_RESULTS", AppConfig, "max_search_results", int),
        max_batch_urls=_read_number("WEBREACH_MAX_BATCH_URLS", AppConfig, "max_batch_urls", int),
        max_timeline_posts=_read_number("WEBREACH_MAX_TIMELINE_POSTS", AppConfig, "max_timeline_posts", int),
    )


def reload_config() -> AppConfig:
    """Clear cached config (useful for tests) and reload."""
    get_config.cache_clear()
    return get_config()


__all__ = [
    "AppConfig", "MirrorConfig", "ExtractorConfig",
    "get_config", "reload_config",
    "DEFAULT_MIRRORS", "DEFAULT_PROXIES", "DEFAULT_USER_AGENTS",
]
