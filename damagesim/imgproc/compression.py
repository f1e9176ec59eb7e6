"""Downsampling and re-encoding of input images before they are sent upstream."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from io import BytesIO
from typing import Protocol

from PIL import Image, UnidentifiedImageError

from damagesim.imgproc.data_uri import split_data_uri, to_data_uri

logger = logging.getLogger(__name__)


class CompressionError(RuntimeError):
    """Base class for recoverable compression failures."""


class CompressionUnavailable(CompressionError):
    """Raised when no image codec is configured in this runtime."""


class CompressionFailed(CompressionError):
    """Raised when the source image cannot be decoded or re-encoded."""


class ImageCodec(Protocol):
    """Capability that turns encoded image bytes into smaller encoded bytes."""

    def recompress(
        self,
        data: bytes,
        mime_type: str,
        max_width: int,
        max_height: int,
        quality: float,
    ) -> tuple[bytes, str]:
        ...


def fit_within(width: int, height: int, max_width: int, max_height: int) -> tuple[int, int]:
    """Scale ``(width, height)`` down to fit the bounds, keeping the aspect ratio."""

    if width <= max_width and height <= max_height:
        return width, height
    ratio = min(max_width / width, max_height / height)
    return max(1, round(width * ratio)), max(1, round(height * ratio))


class PillowCodec:
    """Re-encodes images as JPEG using Pillow."""

    output_mime_type = "image/jpeg"

    def recompress(
        self,
        data: bytes,
        mime_type: str,
        max_width: int,
        max_height: int,
        quality: float,
    ) -> tuple[bytes, str]:
        try:
            with Image.open(BytesIO(data)) as img:
                img.load()
                size = fit_within(img.width, img.height, max_width, max_height)
                if size != img.size:
                    img = img.resize(size, Image.LANCZOS)
                if img.mode != "RGB":
                    img = img.convert("RGB")
                buffer = BytesIO()
                img.save(buffer, format="JPEG", quality=max(1, min(100, round(quality * 100))))
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
            raise CompressionFailed(f"Failed to load image: {exc}") from exc
        return buffer.getvalue(), self.output_mime_type


class PassthroughCodec:
    """Leaves images untouched; for deployments that must not decode user content."""

    def recompress(
        self,
        data: bytes,
        mime_type: str,
        max_width: int,
        max_height: int,
        quality: float,
    ) -> tuple[bytes, str]:
        return data, mime_type


def build_codec(name: str) -> ImageCodec | None:
    """Return the codec selected by ``IMAGE_CODEC``; ``disabled`` yields ``None``."""

    codecs: dict[str, type] = {
        "pillow": PillowCodec,
        "passthrough": PassthroughCodec,
    }
    if name == "disabled":
        return None
    try:
        return codecs[name]()
    except KeyError:
        raise ValueError(f"Unknown image codec {name!r}; expected pillow, passthrough or disabled.") from None


def calculate_size_reduction(original_size: int, compressed_size: int) -> int:
    """Return the percentage by which ``compressed_size`` is smaller than ``original_size``."""

    if original_size <= 0:
        return 0
    return round((original_size - compressed_size) / original_size * 100)


class ImageCompressor:
    """Bounds image dimensions and byte size before transmission."""

    def __init__(self, codec: ImageCodec | None = None) -> None:
        self._codec = codec

    async def compress(
        self,
        image: str,
        max_width: int = 1024,
        max_height: int = 1024,
        quality: float = 0.85,
    ) -> str:
        """Return a new image-URI no larger than ``max_width`` x ``max_height``.

        Images that already fit are re-encoded but never upsampled.
        """

        if self._codec is None:
            raise CompressionUnavailable("Image compression requires an image codec; none is configured.")
        if max_width <= 0 or max_height <= 0:
            raise ValueError("max_width and max_height must be positive.")
        if not 0 < quality <= 1:
            raise ValueError("quality must be within (0, 1].")

        mime_type, payload = split_data_uri(image)
        try:
            raw = base64.b64decode(payload, validate=True)
        except (ValueError, binascii.Error) as exc:
            raise CompressionFailed("Image payload is not valid base64.") from exc

        data, out_mime = await asyncio.to_thread(
            self._codec.recompress, raw, mime_type, max_width, max_height, quality
        )
        logger.debug(
            "Compressed image %s -> %s bytes (%s%% smaller)",
            len(raw),
            len(data),
            calculate_size_reduction(len(raw), len(data)),
        )
        return to_data_uri(base64.b64encode(data).decode("ascii"), out_mime)
