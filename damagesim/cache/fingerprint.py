"""Image fingerprints used as part of response cache keys."""

from __future__ import annotations

import hashlib
import re
from typing import Callable

Fingerprint = Callable[[str], str]

_SAMPLE_CHARS = 100
_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


def structural_fingerprint(image: str) -> str:
    """Cheap fingerprint: first and last 100 characters plus the total length.

    Two different images sharing prefix, suffix and length collide. That is
    accepted in exchange for not hashing the whole payload on every request.
    """

    start = image[:_SAMPLE_CHARS]
    end = image[-_SAMPLE_CHARS:] if image else ""
    return _NON_ALNUM.sub("", f"{start}{end}{len(image)}")


def sha256_fingerprint(image: str) -> str:
    """Full-content SHA-256 of the encoded image."""

    return hashlib.sha256(image.encode("utf-8")).hexdigest()


FINGERPRINTS: dict[str, Fingerprint] = {
    "structural": structural_fingerprint,
    "sha256": sha256_fingerprint,
}


def get_fingerprint(name: str) -> Fingerprint:
    try:
        return FINGERPRINTS[name]
    except KeyError:
        raise ValueError(
            f"Unknown cache fingerprint {name!r}; expected one of {', '.join(FINGERPRINTS)}."
        ) from None
