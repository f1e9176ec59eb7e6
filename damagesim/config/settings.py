"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


class ConfigurationError(RuntimeError):
    """Raised when a required setting is missing or invalid."""


def _load_env_file(path: str = ".env") -> None:
    """Populate os.environ from the provided .env file if it exists."""

    env_path = Path(path)
    if not env_path.exists():
        return

    for line in env_path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip())


@dataclass(frozen=True, slots=True)
class Settings:
    """Centralised project settings based on OS environment variables."""

    environment: str = "dev"
    log_level: str = "INFO"

    aitunnel_api_key: str = ""
    aitunnel_base_url: str = "https://api.aitunnel.ru/v1"
    aitunnel_image_model: str = "gemini-2.5-flash-image"
    aitunnel_request_timeout: float = 60.0

    cache_ttl_seconds: float = 24 * 60 * 60
    cache_sweep_interval_seconds: float = 60 * 60
    cache_fingerprint: str = "structural"

    image_codec: str = "pillow"
    compress_max_width: int = 1024
    compress_max_height: int = 1024
    compress_quality: float = 0.85

    def require_api_key(self) -> str:
        """Return the gateway credential or fail before any network call."""

        if not self.aitunnel_api_key.strip():
            raise ConfigurationError("AITunnel API key is not configured (AITUNNEL_API_KEY).")
        return self.aitunnel_api_key


def _env_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}.") from exc


def _env_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}.") from exc


def _require_positive(name: str, value: float) -> None:
    if value <= 0:
        raise ConfigurationError(f"{name} must be greater than zero, got {value!r}.")


def _validate(settings: Settings) -> Settings:
    _require_positive("AITUNNEL_REQUEST_TIMEOUT", settings.aitunnel_request_timeout)
    _require_positive("CACHE_TTL_SECONDS", settings.cache_ttl_seconds)
    _require_positive("CACHE_SWEEP_INTERVAL_SECONDS", settings.cache_sweep_interval_seconds)
    _require_positive("COMPRESS_MAX_WIDTH", settings.compress_max_width)
    _require_positive("COMPRESS_MAX_HEIGHT", settings.compress_max_height)
    if not 0 < settings.compress_quality <= 1:
        raise ConfigurationError(
            f"COMPRESS_QUALITY must be in (0, 1], got {settings.compress_quality!r}."
        )
    return settings


def _build_settings() -> Settings:
    _load_env_file()

    settings = Settings(
        environment=os.getenv("ENVIRONMENT", "dev"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        aitunnel_api_key=os.getenv("AITUNNEL_API_KEY", ""),
        aitunnel_base_url=os.getenv("AITUNNEL_BASE_URL", "https://api.aitunnel.ru/v1"),
        aitunnel_image_model=os.getenv("AITUNNEL_IMAGE_MODEL", "gemini-2.5-flash-image"),
        aitunnel_request_timeout=_env_float("AITUNNEL_REQUEST_TIMEOUT", "60"),
        cache_ttl_seconds=_env_float("CACHE_TTL_SECONDS", "86400"),
        cache_sweep_interval_seconds=_env_float("CACHE_SWEEP_INTERVAL_SECONDS", "3600"),
        cache_fingerprint=os.getenv("CACHE_FINGERPRINT", "structural").lower(),
        image_codec=os.getenv("IMAGE_CODEC", "pillow").lower(),
        compress_max_width=_env_int("COMPRESS_MAX_WIDTH", "1024"),
        compress_max_height=_env_int("COMPRESS_MAX_HEIGHT", "1024"),
        compress_quality=_env_float("COMPRESS_QUALITY", "0.85"),
    )
    return _validate(settings)


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance to avoid re-reading configuration."""

    return _build_settings()
