"""Configuration for the vision analysis service.

Settings are read from the environment (and a local ``.env`` file) once at
startup and then passed explicitly to the provider factory, the image
processor and the orchestrator. Nothing reads ``os.environ`` mid-request.

Example .env:
    APP_ENV=development
    VISION_PROVIDER=openai
    OPENAI_API_KEY=sk-...
    MOCK_LATENCY_MS=0
"""

from __future__ import annotations

import os
from typing import FrozenSet, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_FALLBACK_STATUSES: FrozenSet[int] = frozenset({401, 404, 429, 503, 504})


def _flag_enabled(value: Optional[str], default: bool = False) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip() in {"1", "true", "TRUE", "True", "on", "yes", "Y"}


def _parse_statuses(value: Optional[str]) -> FrozenSet[int]:
    if not value:
        return DEFAULT_FALLBACK_STATUSES
    return frozenset(int(part) for part in value.split(",") if part.strip())


class Settings(BaseModel):
    """Application settings (immutable)."""

    model_config = ConfigDict(frozen=True)

    # General
    app_env: str = Field("development", description="development | test | production")
    log_level: str = Field("INFO", description="Root log level")

    # Provider selection
    vision_provider: str = Field("mock", description="mock | openai")

    # OpenAI
    openai_api_key: Optional[str] = Field(None, description="OpenAI API key")
    openai_vision_model: str = Field("gpt-4o-mini", description="Vision model name")
    openai_timeout_s: float = Field(20.0, gt=0, description="Request timeout (seconds)")
    vision_max_attempts: int = Field(2, ge=1, description="Attempts for transient failures")
    vision_retry_backoff_s: float = Field(3.0, ge=0, description="Backoff multiplier (seconds)")

    # Mock estimator
    mock_latency_ms: int = Field(1500, ge=0, description="Simulated mock latency")

    # Fallback policy
    enable_fallback: bool = Field(True, description="Allow mock fallback")
    fallback_statuses: FrozenSet[int] = Field(
        DEFAULT_FALLBACK_STATUSES, description="Classified statuses eligible for fallback"
    )

    # Image processing
    max_image_size_mb: int = Field(10, gt=0, description="Upload size limit (MB)")
    max_image_width: int = Field(1200, gt=0, description="Resize box width")
    max_image_height: int = Field(1200, gt=0, description="Resize box height")
    image_quality: int = Field(85, ge=1, le=100, description="JPEG quality")

    @property
    def is_production(self) -> bool:
        return self.app_env.strip().lower() == "production"

    @property
    def max_image_size_bytes(self) -> int:
        return self.max_image_size_mb * 1024 * 1024

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Loads ``.env`` (without overriding real environment variables) when
        reading from ``os.environ``.

        Args:
            env: Mapping to read from (defaults to ``os.environ``)
        """
        if env is None:
            load_dotenv()
            env = os.environ

        def get(key: str, default: str) -> str:
            value = env.get(key)
            return value if value not in (None, "") else default

        return cls(
            app_env=get("APP_ENV", "development"),
            log_level=get("LOG_LEVEL", "INFO").upper(),
            vision_provider=get("VISION_PROVIDER", "mock").strip().lower(),
            openai_api_key=env.get("OPENAI_API_KEY") or None,
            openai_vision_model=get("OPENAI_VISION_MODEL", "gpt-4o-mini"),
            openai_timeout_s=float(get("OPENAI_TIMEOUT_S", "20")),
            vision_max_attempts=int(get("VISION_MAX_ATTEMPTS", "2")),
            vision_retry_backoff_s=float(get("VISION_RETRY_BACKOFF_S", "3")),
            mock_latency_ms=int(get("MOCK_LATENCY_MS", "1500")),
            enable_fallback=_flag_enabled(env.get("ENABLE_FALLBACK"), default=True),
            fallback_statuses=_parse_statuses(env.get("FALLBACK_STATUSES")),
            max_image_size_mb=int(get("MAX_IMAGE_SIZE_MB", "10")),
            max_image_width=int(get("MAX_IMAGE_WIDTH", "1200")),
            max_image_height=int(get("MAX_IMAGE_HEIGHT", "1200")),
            image_quality=int(get("IMAGE_QUALITY", "85")),
        )

    def validate_for_startup(self) -> None:
        """
        Fail fast on inconsistent configuration.

        Raises:
            ValueError: If a real provider is selected without credentials
                or the provider name is unknown
        """
        missing = []
        if self.vision_provider == "openai" and not self.openai_api_key:
            missing.append("OPENAI_API_KEY")
        if missing:
            raise ValueError(
                f"Missing required environment variables: {', '.join(missing)}"
            )
        if self.vision_provider not in {"mock", "openai"}:
            raise ValueError(f"Unsupported vision provider: {self.vision_provider}")
