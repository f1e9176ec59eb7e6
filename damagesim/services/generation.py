"""Damage simulation orchestration: cache, compression, prompt and model call."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, Sequence

from damagesim.cache.response_cache import ResponseCache
from damagesim.imggen.generator_client import ContentPart, GenerationError
from damagesim.imggen.prompt_builder import build_prompt
from damagesim.imggen.types import AngleType, DamageType
from damagesim.imgproc.compression import CompressionError, ImageCompressor
from damagesim.imgproc.data_uri import split_data_uri, to_data_uri
from damagesim.metrics.prometheus_exporter import (
    damage_generation_total,
    image_compression_fallbacks_total,
)

logger = logging.getLogger(__name__)


class NoContentGenerated(GenerationError):
    """Raised when the model response holds no content at all."""

    user_message = "No content generated by the image model. Please try again."


class ModelRefused(GenerationError):
    """Raised when the model answered without an image, usually on policy grounds."""

    user_message = (
        "The model did not return an image. It might have refused the request due to "
        "safety policies. Adjust the instructions or retry."
    )


class ImageEditor(Protocol):
    async def edit_image(self, image_data: str, mime_type: str, prompt: str) -> Sequence[ContentPart]:
        ...


@dataclass(frozen=True, slots=True)
class CompressionOptions:
    max_width: int = 1024
    max_height: int = 1024
    quality: float = 0.85


class DamageGenerationService:
    """Single entry point that turns a product photo into a damaged rendition."""

    def __init__(
        self,
        client: ImageEditor,
        cache: ResponseCache,
        compressor: ImageCompressor,
        compression: CompressionOptions | None = None,
    ) -> None:
        self._client = client
        self._cache = cache
        self._compressor = compressor
        self._compression = compression or CompressionOptions()

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    @property
    def client(self) -> ImageEditor:
        return self._client

    async def generate(
        self,
        image: str,
        damage_type: DamageType,
        instruction: str = "",
        angle: AngleType | None = None,
        *,
        use_cache: bool = True,
        compress: bool = True,
    ) -> str:
        """Return the damaged image as a PNG image-URI.

        The cache is consulted and populated with the original, uncompressed
        image so that toggling compression does not change the key.
        """

        return await self._run(
            image,
            damage_type,
            instruction,
            angle,
            read_cache=use_cache,
            write_cache=use_cache,
            compress=compress,
        )

    async def retry(
        self,
        image: str,
        damage_type: DamageType,
        instruction: str = "",
        angle: AngleType | None = None,
        *,
        compress: bool = True,
    ) -> str:
        """Resend the request ignoring any cached result, then store the fresh one."""

        return await self._run(
            image,
            damage_type,
            instruction,
            angle,
            read_cache=False,
            write_cache=True,
            compress=compress,
        )

    async def _run(
        self,
        image: str,
        damage_type: DamageType,
        instruction: str,
        angle: AngleType | None,
        *,
        read_cache: bool,
        write_cache: bool,
        compress: bool,
    ) -> str:
        if read_cache:
            cached = self._cache.get(image, damage_type, instruction, angle)
            if cached is not None:
                logger.info("Cache hit for %s", damage_type.name)
                damage_generation_total.labels(outcome="cached").inc()
                return cached.image

        source = await self._maybe_compress(image) if compress else image
        mime_type, payload = split_data_uri(source)
        prompt = build_prompt(damage_type, instruction, angle)

        try:
            parts = await self._client.edit_image(payload, mime_type, prompt)
            result = self._extract_image(parts)
        except GenerationError as exc:
            logger.error("Image generation failed for %s: %s", damage_type.name, exc)
            damage_generation_total.labels(outcome=type(exc).__name__).inc()
            raise

        damage_generation_total.labels(outcome="generated").inc()
        if write_cache:
            self._cache.set(image, damage_type, instruction, angle, result, prompt)
        return result

    async def _maybe_compress(self, image: str) -> str:
        options = self._compression
        try:
            return await self._compressor.compress(
                image,
                max_width=options.max_width,
                max_height=options.max_height,
                quality=options.quality,
            )
        except CompressionError as exc:
            logger.warning("Compression failed, sending original image: %s", exc)
            image_compression_fallbacks_total.inc()
            return image

    @staticmethod
    def _extract_image(parts: Sequence[ContentPart]) -> str:
        if not parts:
            raise NoContentGenerated()
        for part in parts:
            if part.has_image:
                return to_data_uri(part.image_data or "")
        refusal = next((part.text for part in parts if part.text), None)
        if refusal:
            logger.warning("Model returned text instead of an image: %s", refusal[:200])
        raise ModelRefused()
