"""Integration check helpers."""

from .checks import (
    IntegrationCheckResult,
    check_image_gateway,
    run_all_checks,
)

__all__ = [
    "IntegrationCheckResult",
    "check_image_gateway",
    "run_all_checks",
]
