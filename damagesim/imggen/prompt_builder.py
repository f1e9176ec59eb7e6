"""Prompt construction helpers for the image editing step."""

from __future__ import annotations

from damagesim.imggen.types import AngleType, DamageType

IDENTITY_CLAUSE = "Preserve product identity, shape, and all visual details"
KEEP_PERSPECTIVE_CLAUSE = "Maintain original camera perspective"
PHOTOREALISM_CLAUSE = "Make damage photorealistic"


def _angle_clause(angle: AngleType | None) -> str:
    if angle is None or angle is AngleType.ORIGINAL:
        return KEEP_PERSPECTIVE_CLAUSE
    return (
        f"Change camera angle to {angle.value.lower()} "
        "while preserving damage characteristics, textures, and materials"
    )


def build_prompt(
    damage_type: DamageType,
    custom_instruction: str | None = "",
    angle: AngleType | None = None,
) -> str:
    """Return a concise edit instruction for the image model.

    The angle directive is placed before the damage directive so the model does
    not read the camera change as part of the damage.
    """

    extra = (custom_instruction or "").strip().rstrip(".").strip()
    clauses = [
        IDENTITY_CLAUSE,
        _angle_clause(angle),
        f"Simulate {damage_type.value} damage",
        PHOTOREALISM_CLAUSE,
        extra,
    ]
    return ". ".join(clause for clause in clauses if clause) + "."
