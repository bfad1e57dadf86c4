"""FastAPI application for the NutriAI vision analysis service.

Run:
    uvicorn nutriai.app:app --port 8080
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import structlog
from fastapi import FastAPI

from nutriai import __version__
from nutriai.api.vision import router as vision_router
from nutriai.application.meal.vision_analysis_service import VisionAnalysisOrchestrator
from nutriai.config import Settings
from nutriai.domain.meal.recognition.ports import IImageProcessor, IVisionProvider
from nutriai.infrastructure.ai.factory import create_fallback_provider, create_vision_provider
from nutriai.infrastructure.image.processor import ImageProcessor

logger = structlog.get_logger("startup")


def configure_logging(level: str = "INFO") -> None:
    """Configure stdlib logging and structlog with the same level."""
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )


def _mask(secret: Optional[str]) -> Optional[str]:
    if not secret:
        return None
    if len(secret) > 8:
        return secret[:4] + "..." + secret[-4:]
    return "***"


def create_app(
    settings: Optional[Settings] = None,
    primary_provider: Optional[IVisionProvider] = None,
    fallback_provider: Optional[IVisionProvider] = None,
    image_processor: Optional[IImageProcessor] = None,
) -> FastAPI:
    """
    Compose the application.

    Providers are selected once here; the orchestrator receives them by
    injection. Tests pass their own providers and settings.

    Raises:
        ValueError: On invalid configuration (fail fast at startup)
    """
    settings = settings or Settings.from_env()
    settings.validate_for_startup()

    primary = primary_provider or create_vision_provider(settings)
    fallback = fallback_provider or create_fallback_provider(settings)
    orchestrator = VisionAnalysisOrchestrator(
        primary=primary,
        fallback=fallback,
        image_processor=image_processor or ImageProcessor.from_settings(settings),
        settings=settings,
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "startup.config",
            app_env=settings.app_env,
            vision_provider=primary.name,
            fallback_provider=fallback.name,
            fallback_enabled=settings.enable_fallback,
            fallback_statuses=sorted(settings.fallback_statuses),
            openai_key_masked=_mask(settings.openai_api_key),
        )
        try:
            yield
        finally:
            for provider in (primary, fallback):
                close: Any = getattr(provider, "aclose", None)
                if close is not None:
                    await close()
            logger.info("lifespan.shutdown", status="cleanup")

    app = FastAPI(
        title="NutriAI Vision Analysis",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.orchestrator = orchestrator

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/version")
    async def version() -> dict[str, str]:
        return {"version": __version__}

    app.include_router(vision_router)
    return app


_settings = Settings.from_env()
configure_logging(_settings.log_level)
app = create_app(_settings)
