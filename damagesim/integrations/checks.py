"""Connectivity checks for the external image generation gateway."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable

from damagesim.config.settings import ConfigurationError, get_settings
from damagesim.imggen.generator_client import ImageGeneratorClient


@dataclass(slots=True)
class IntegrationCheckResult:
    """Structured result describing the integration check outcome."""

    name: str
    success: bool
    message: str


async def _run_check(
    name: str,
    factory: Callable[[], Awaitable[bool]],
    success_message: str,
) -> IntegrationCheckResult:
    try:
        result = await factory()
    except Exception as exc:  # pragma: no cover - reported, not raised
        return IntegrationCheckResult(name=name, success=False, message=str(exc))

    if result:
        return IntegrationCheckResult(name=name, success=True, message=success_message)
    return IntegrationCheckResult(
        name=name,
        success=False,
        message="Service responded with non-success status.",
    )


async def check_image_gateway() -> IntegrationCheckResult:
    """Ping the AITunnel image gateway and return the result."""

    try:
        settings = get_settings()
        client = ImageGeneratorClient(settings)
    except ConfigurationError as exc:
        return IntegrationCheckResult(name="AITunnel images", success=False, message=str(exc))

    async def _ping() -> bool:
        try:
            return await client.ping()
        finally:
            await client.close()

    return await _run_check(
        name="AITunnel images",
        factory=_ping,
        success_message=f"AITunnel image gateway is reachable (model {settings.aitunnel_image_model}).",
    )


async def run_all_checks() -> list[IntegrationCheckResult]:
    """Execute all integration checks concurrently."""

    return list(await asyncio.gather(check_image_gateway()))
