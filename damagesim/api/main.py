"""FastAPI entrypoint and HTTP routes."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel, Field, field_validator

from damagesim.cache.fingerprint import get_fingerprint
from damagesim.cache.response_cache import ResponseCache
from damagesim.config.settings import Settings, get_settings
from damagesim.imggen.generator_client import GenerationError, ImageGeneratorClient, NetworkOrServiceError
from damagesim.imggen.types import AngleType, DamageType
from damagesim.imgproc.compression import ImageCompressor, build_codec
from damagesim.monitoring.logging import configure_logging
from damagesim.services.generation import (
    CompressionOptions,
    DamageGenerationService,
    ModelRefused,
    NoContentGenerated,
)
from damagesim.workers.cleanup import IntervalJobScheduler

logger = logging.getLogger(__name__)


class GenerateRequest(BaseModel):
    """Body of a damage simulation request."""

    image: str = Field(min_length=1, description="Source image as a data URI or bare base64 payload.")
    damage_type: DamageType
    instruction: str = ""
    angle: AngleType | None = None
    use_cache: bool = True
    compress: bool = True

    @field_validator("damage_type", mode="before")
    @classmethod
    def _parse_damage_type(cls, value: object) -> object:
        return DamageType.parse(value) if isinstance(value, str) else value

    @field_validator("angle", mode="before")
    @classmethod
    def _parse_angle(cls, value: object) -> object:
        if isinstance(value, str):
            return AngleType.parse(value) if value.strip() else None
        return value


class GenerateResponse(BaseModel):
    image: str


class CacheStatsResponse(BaseModel):
    size: int
    hits: int
    misses: int
    ttl_seconds: float


class OptionResponse(BaseModel):
    name: str
    label: str


def build_generation_service(
    settings: Settings,
    *,
    client: ImageGeneratorClient | None = None,
    scheduler: IntervalJobScheduler | None = None,
) -> DamageGenerationService:
    """Wire the client, cache and compressor described by ``settings``."""

    cache = ResponseCache(
        settings.cache_ttl_seconds,
        scheduler=scheduler,
        fingerprint=get_fingerprint(settings.cache_fingerprint),
    )
    return DamageGenerationService(
        client=client or ImageGeneratorClient(settings),
        cache=cache,
        compressor=ImageCompressor(build_codec(settings.image_codec)),
        compression=CompressionOptions(
            max_width=settings.compress_max_width,
            max_height=settings.compress_max_height,
            quality=settings.compress_quality,
        ),
    )


def _error_status(exc: GenerationError) -> int:
    if isinstance(exc, ModelRefused):
        return 422
    if isinstance(exc, (NoContentGenerated, NetworkOrServiceError)):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def create_app(service: DamageGenerationService | None = None) -> FastAPI:
    """Initialise the FastAPI application.

    When ``service`` is omitted it is built from settings at startup, together
    with the scheduler that sweeps the response cache.
    """

    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging()
        scheduler: IntervalJobScheduler | None = None
        if service is None:
            scheduler = IntervalJobScheduler()
            app.state.service = build_generation_service(settings, scheduler=scheduler)
            app.state.service.cache.start_sweeping(settings.cache_sweep_interval_seconds)
        else:
            app.state.service = service
        try:
            yield
        finally:
            if scheduler is not None:
                app.state.service.cache.stop_sweeping()
                scheduler.shutdown()
            if isinstance(app.state.service.client, ImageGeneratorClient):
                await app.state.service.client.close()

    app = FastAPI(
        title="Damage Simulation Studio API",
        version="0.1.0",
        docs_url="/docs" if settings.environment != "prod" else None,
        redoc_url="/redoc" if settings.environment != "prod" else None,
        lifespan=lifespan,
    )

    @app.exception_handler(GenerationError)
    async def _generation_error(request: Request, exc: GenerationError) -> JSONResponse:
        return JSONResponse(status_code=_error_status(exc), content={"detail": str(exc)})

    def _service(request: Request) -> DamageGenerationService:
        service_ = getattr(request.app.state, "service", None)
        if service_ is None:
            raise HTTPException(status_code=503, detail="Generation service is not initialised.")
        return service_

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Simple health endpoint used for readiness checks."""

        return {"status": "ok"}

    @app.get("/metrics", tags=["system"])
    async def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/damage-types", tags=["catalog"], response_model=list[OptionResponse])
    async def damage_types() -> list[OptionResponse]:
        return [OptionResponse(name=item.name, label=item.value) for item in DamageType]

    @app.get("/angle-types", tags=["catalog"], response_model=list[OptionResponse])
    async def angle_types() -> list[OptionResponse]:
        return [OptionResponse(name=item.name, label=item.value) for item in AngleType]

    @app.post("/generate", tags=["generation"], response_model=GenerateResponse)
    async def generate(body: GenerateRequest, request: Request) -> GenerateResponse:
        image = await _service(request).generate(
            body.image,
            body.damage_type,
            body.instruction,
            body.angle,
            use_cache=body.use_cache,
            compress=body.compress,
        )
        return GenerateResponse(image=image)

    @app.post("/retry", tags=["generation"], response_model=GenerateResponse)
    async def retry(body: GenerateRequest, request: Request) -> GenerateResponse:
        image = await _service(request).retry(
            body.image,
            body.damage_type,
            body.instruction,
            body.angle,
            compress=body.compress,
        )
        return GenerateResponse(image=image)

    @app.get("/cache/stats", tags=["cache"], response_model=CacheStatsResponse)
    async def cache_stats(request: Request) -> CacheStatsResponse:
        cache = _service(request).cache
        stats = cache.stats()
        return CacheStatsResponse(
            size=stats.size,
            hits=stats.hits,
            misses=stats.misses,
            ttl_seconds=cache.ttl_seconds,
        )

    @app.delete("/cache", tags=["cache"], status_code=status.HTTP_204_NO_CONTENT)
    async def clear_cache(request: Request) -> Response:
        _service(request).cache.clear()
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return app


app = create_app()
