"""Prompt building and image generation utilities."""

from .generator_client import ContentPart, GenerationError, ImageGeneratorClient, NetworkOrServiceError
from .prompt_builder import build_prompt
from .types import AngleType, DamageType

__all__ = [
    "AngleType",
    "ContentPart",
    "DamageType",
    "GenerationError",
    "ImageGeneratorClient",
    "NetworkOrServiceError",
    "build_prompt",
]
