"""Async client for image editing through the AITunnel gateway."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

import httpx
from openai import AsyncOpenAI

from damagesim.config.settings import Settings, get_settings
from damagesim.imgproc.data_uri import split_data_uri, to_data_uri

logger = logging.getLogger(__name__)


class GenerationError(RuntimeError):
    """Base class for failures surfaced to the caller of a generation request."""

    user_message = "Failed to generate image. Please try again."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.user_message)


class NetworkOrServiceError(GenerationError):
    """Raised when the gateway cannot be reached or responds with an error status."""

    user_message = "The image service is unavailable. Please try again later."

    def __init__(self, message: str | None = None, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


@dataclass(frozen=True, slots=True)
class ContentPart:
    """One item of the model response: inline image data or text."""

    image_data: str | None = None
    mime_type: str | None = None
    text: str | None = None

    @property
    def has_image(self) -> bool:
        return bool(self.image_data)


class ImageGeneratorClient:
    """Sends one image plus an instruction to the image model and returns the content parts."""

    def __init__(self, settings: Settings | None = None, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        settings = settings or get_settings()
        api_key = settings.require_api_key()
        base_url = settings.aitunnel_base_url.rstrip("/")

        self._settings = settings
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=settings.aitunnel_request_timeout,
            headers={"Authorization": f"Bearer {api_key}"},
            transport=transport,
        )
        self._openai = AsyncOpenAI(api_key=api_key, base_url=base_url)

    @property
    def model(self) -> str:
        return self._settings.aitunnel_image_model

    async def edit_image(self, image_data: str, mime_type: str, prompt: str) -> list[ContentPart]:
        """Submit ``image_data`` (base64) with ``prompt`` and return the response parts in order."""

        payload = {
            "model": self.model,
            "modalities": ["image", "text"],
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "image_url", "image_url": {"url": to_data_uri(image_data, mime_type)}},
                        {"type": "text", "text": prompt},
                    ],
                }
            ],
        }
        response = await self._request_json("POST", "/chat/completions", json_body=payload)
        return self.response_to_parts(response)

    async def _request_json(
        self,
        method: str,
        endpoint: str,
        *,
        json_body: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            response = await self._client.request(method, endpoint, json=json_body)
            response.raise_for_status()
            if not response.content:
                return {}
            return response.json()
        except httpx.TimeoutException as exc:
            raise NetworkOrServiceError("Timed out waiting for the image service.") from exc
        except httpx.HTTPStatusError as exc:
            raise NetworkOrServiceError(
                f"Image service returned {exc.response.status_code}: {exc.response.text}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.RequestError as exc:
            raise NetworkOrServiceError(f"Could not reach the image service: {exc}") from exc
        except ValueError as exc:
            raise NetworkOrServiceError("Image service returned a malformed response.") from exc

    @staticmethod
    def response_to_parts(payload: Mapping[str, Any]) -> list[ContentPart]:
        """Flatten the first choice of a chat completion into content parts.

        Images may arrive under ``message.images`` or as ``image_url`` items of
        ``message.content``; both are returned, images listed first.
        """

        if not isinstance(payload, Mapping):
            logger.warning("Image response is not a JSON object: %s", _truncate(payload))
            return []
        choices = payload.get("choices") or []
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], Mapping):
            logger.warning("Image response has no choices: %s", _truncate(payload))
            return []
        message = choices[0].get("message") or {}
        if not isinstance(message, Mapping):
            return []

        parts: list[ContentPart] = []
        for entry in message.get("images") or []:
            if isinstance(entry, Mapping):
                parts.append(_image_url_part(entry.get("image_url")))

        content = message.get("content")
        if isinstance(content, str) and content:
            if content.startswith("data:"):
                parts.append(_image_url_part({"url": content}))
            else:
                parts.append(ContentPart(text=content))
        elif isinstance(content, list):
            for item in content:
                if not isinstance(item, Mapping):
                    continue
                if item.get("type") == "image_url":
                    parts.append(_image_url_part(item.get("image_url")))
                elif item.get("type") == "text" and item.get("text"):
                    parts.append(ContentPart(text=item["text"]))
        return parts

    async def ping(self) -> bool:
        """Return ``True`` when the gateway responds to a model listing call."""

        models = await self._openai.models.list()
        return bool(models.data)

    async def close(self) -> None:
        """Close the underlying HTTP clients."""

        await self._client.aclose()
        await self._openai.close()


def _image_url_part(image_info: Any) -> ContentPart:
    url = image_info.get("url") if isinstance(image_info, Mapping) else None
    if not isinstance(url, str) or not url.startswith("data:") or "," not in url:
        # Remote URLs carry no inline bytes.
        return ContentPart(text=url if isinstance(url, str) else None)
    mime_type, data = split_data_uri(url, default_mime="image/png")
    return ContentPart(image_data=data or None, mime_type=mime_type)


def _truncate(value: Any, limit: int = 300) -> str:
    text = repr(value)
    return text if len(text) <= limit else f"{text[:limit]}..."
