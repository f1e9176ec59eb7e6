"""Damage and camera-angle catalogues offered to the user."""

from __future__ import annotations

from enum import Enum


class _LabelledEnum(str, Enum):
    @classmethod
    def parse(cls, raw: str):
        """Resolve a member from its name (``RUST``) or its label (``Rust on the product``)."""

        candidate = raw.strip()
        try:
            return cls[candidate.upper()]
        except KeyError:
            pass
        try:
            return cls(candidate)
        except ValueError:
            raise ValueError(f"Unknown {cls.__name__}: {raw!r}") from None


class DamageType(_LabelledEnum):
    """Kinds of simulated damage; each value is interpolated verbatim into the prompt."""

    BROKEN_SEAL = "Broken or tampered seal"
    OPEN_PACKAGE = "Opened package on delivery"
    TORN_PACKAGING = "Torn or ripped packaging"
    CRUSHED_BOX = "Crushed shipping box"
    MISALIGNED_PARTS = "Misaligned or loose parts"
    LEAKAGE = "Leaking contents"
    MISSING_PARTS = "Missing parts or components"
    LABEL_DAMAGED = "Damaged or unreadable label"
    DIRTY_OR_STAINED = "Dirty or stained during transport"
    DEFORMED = "Deformed due to pressure or heat"
    IMPACT_DAMAGE = "Impact damage from drops"
    MOISTURE_EXPOSED = "Exposed to excessive moisture"
    TEMPERATURE_DAMAGE = "Damaged by extreme temperature"
    BROKEN_INTERNAL = "Broken internal components"
    SMALL_DAMAGE = "Small damage on the product"
    SCRATCHES = "Scratches on the product"
    RUST = "Rust on the product"
    CORROSION = "Corrosion on the product"
    SIDE_DENT = "Side dent on the product"


class AngleType(_LabelledEnum):
    """Camera position directives. ``ORIGINAL`` keeps the source perspective."""

    ORIGINAL = "Original"
    FRONT = "Front view"
    BACK = "Back view"
    SIDE = "Side view"
    LEFT_SIDE = "Left side view"
    RIGHT_SIDE = "Right side view"
    TOP = "Top view"
    BOTTOM = "Bottom view"
    THREE_QUARTER = "Three-quarter view"
    CLOSE_UP = "Close-up"
    LOW_ANGLE = "Low angle"
    HIGH_ANGLE = "High angle"
