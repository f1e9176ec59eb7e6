"""Helpers for ``data:<mime>;base64,<payload>`` image strings."""

from __future__ import annotations

from typing import NamedTuple

DEFAULT_MIME_TYPE = "image/jpeg"
OUTPUT_MIME_TYPE = "image/png"


class ImagePayload(NamedTuple):
    mime_type: str
    data: str


def split_data_uri(image: str, default_mime: str = DEFAULT_MIME_TYPE) -> ImagePayload:
    """Split an image-URI into MIME type and base64 payload.

    Strings without a ``data:`` header are treated as bare payloads. A header
    without a usable ``type/subtype`` falls back to ``default_mime``.
    """

    if not image.startswith("data:") or "," not in image:
        return ImagePayload(default_mime, image)

    header, payload = image.split(",", 1)
    mime_type = header[len("data:"):].split(";", 1)[0].strip().lower()
    if "/" not in mime_type or mime_type.startswith("/") or mime_type.endswith("/"):
        mime_type = default_mime
    return ImagePayload(mime_type, payload)


def to_data_uri(data: str, mime_type: str = OUTPUT_MIME_TYPE) -> str:
    return f"data:{mime_type};base64,{data}"

