"""Tests for image compression."""

from __future__ import annotations

import base64
from io import BytesIO

import pytest
from PIL import Image

from damagesim.imgproc.compression import (
    CompressionFailed,
    CompressionUnavailable,
    ImageCompressor,
    PassthroughCodec,
    PillowCodec,
    build_codec,
    calculate_size_reduction,
    fit_within,
)
from damagesim.imgproc.data_uri import split_data_uri


def _open(uri: str) -> Image.Image:
    _, payload = split_data_uri(uri)
    return Image.open(BytesIO(base64.b64decode(payload)))


@pytest.mark.parametrize(
    ("size", "expected"),
    [
        ((800, 600), (800, 600)),
        ((2048, 1024), (1024, 512)),
        ((1000, 3000), (341, 1024)),
        ((1024, 1024), (1024, 1024)),
    ],
)
def test_fit_within_preserves_aspect_ratio(size: tuple[int, int], expected: tuple[int, int]) -> None:
    assert fit_within(*size, 1024, 1024) == expected


@pytest.mark.asyncio
async def test_large_image_is_downscaled_to_jpeg(image_uri) -> None:
    compressor = ImageCompressor(PillowCodec())

    result = await compressor.compress(image_uri(2000, 1000), 1024, 1024, 0.85)

    assert result.startswith("data:image/jpeg;base64,")
    with _open(result) as img:
        assert img.format == "JPEG"
        assert img.size == (1024, 512)


@pytest.mark.asyncio
async def test_small_image_is_never_upsampled(image_uri) -> None:
    compressor = ImageCompressor(PillowCodec())

    result = await compressor.compress(image_uri(120, 80, mode="RGBA"))

    with _open(result) as img:
        assert img.size == (120, 80)
        assert img.mode == "RGB"


@pytest.mark.asyncio
async def test_input_without_prefix_is_accepted(image_uri) -> None:
    _, payload = split_data_uri(image_uri(50, 50))

    result = await ImageCompressor(PillowCodec()).compress(payload)

    assert result.startswith("data:image/jpeg;base64,")


@pytest.mark.asyncio
async def test_undecodable_image_fails() -> None:
    garbage = "data:image/png;base64," + base64.b64encode(b"not an image").decode()

    with pytest.raises(CompressionFailed):
        await ImageCompressor(PillowCodec()).compress(garbage)


@pytest.mark.asyncio
async def test_decompression_bomb_fails(image_uri, monkeypatch: pytest.MonkeyPatch) -> None:
    uri = image_uri(64, 48)
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)

    with pytest.raises(CompressionFailed):
        await ImageCompressor(PillowCodec()).compress(uri)


@pytest.mark.asyncio
async def test_invalid_base64_fails() -> None:
    with pytest.raises(CompressionFailed):
        await ImageCompressor(PillowCodec()).compress("data:image/png;base64,@@@")


@pytest.mark.asyncio
async def test_missing_codec_is_unavailable(image_uri) -> None:
    with pytest.raises(CompressionUnavailable):
        await ImageCompressor(None).compress(image_uri(10, 10))


@pytest.mark.asyncio
async def test_passthrough_codec_keeps_bytes(image_uri) -> None:
    original = image_uri(30, 30)

    result = await ImageCompressor(PassthroughCodec()).compress(original)

    assert result == original


@pytest.mark.asyncio
async def test_quality_out_of_range(image_uri) -> None:
    with pytest.raises(ValueError):
        await ImageCompressor(PillowCodec()).compress(image_uri(10, 10), quality=1.5)


def test_build_codec() -> None:
    assert isinstance(build_codec("pillow"), PillowCodec)
    assert isinstance(build_codec("passthrough"), PassthroughCodec)
    assert build_codec("disabled") is None
    with pytest.raises(ValueError):
        build_codec("canvas")


def test_calculate_size_reduction() -> None:
    assert calculate_size_reduction(1000, 250) == 75
    assert calculate_size_reduction(0, 10) == 0
