"""Run connectivity checks against the image generation gateway."""

from __future__ import annotations

import asyncio
from typing import Iterable

from damagesim.config.settings import ConfigurationError, get_settings
from damagesim.integrations import IntegrationCheckResult, run_all_checks
from damagesim.monitoring.logging import configure_logging


def _format_result(result: IntegrationCheckResult) -> str:
    status = "OK" if result.success else "FAIL"
    return f"[{status}] {result.name}: {result.message}"


def describe_target() -> str:
    """Return a one-line summary of the gateway and model being checked."""

    try:
        settings = get_settings()
    except ConfigurationError as exc:
        return f"Configuration error: {exc}"
    return f"Image model {settings.aitunnel_image_model} via {settings.aitunnel_base_url}"


def print_results(results: Iterable[IntegrationCheckResult]) -> None:
    for result in results:
        print(_format_result(result))


def main() -> None:
    configure_logging()
    print(describe_target())
    results = asyncio.run(run_all_checks())
    print_results(results)
    if not all(result.success for result in results):
        raise SystemExit(1)


if __name__ == "__main__":
    main()
