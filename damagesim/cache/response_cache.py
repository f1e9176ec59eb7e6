"""In-memory cache of generated images keyed by request fingerprint."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, NamedTuple, Protocol

from damagesim.cache.fingerprint import Fingerprint, structural_fingerprint
from damagesim.imggen.types import AngleType, DamageType
from damagesim.metrics.prometheus_exporter import response_cache_entries, response_cache_lookups_total

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 24 * 60 * 60
SWEEP_JOB_NAME = "response-cache-sweep"


class SweepScheduler(Protocol):
    """Runs a callback on a fixed interval until shut down."""

    def schedule_every(self, interval_seconds: float, callback: Callable[[], object], name: str) -> None:
        ...

    def cancel(self, name: str) -> None:
        ...


class CacheKey(NamedTuple):
    """Cacheable fields of a generation request."""

    image_fingerprint: str
    damage_type: str
    instruction: str
    angle: str | None


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """Generated image together with the prompt that produced it."""

    image: str
    timestamp: float
    prompt: str


@dataclass(frozen=True, slots=True)
class CacheStats:
    size: int
    hits: int
    misses: int


class ResponseCache:
    """Memoizes generation results for ``ttl_seconds``.

    Expired entries are dropped lazily on lookup and in bulk by
    :meth:`sweep_expired`, which :meth:`start_sweeping` registers with the
    injected scheduler. All table mutations happen under one lock.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.time,
        scheduler: SweepScheduler | None = None,
        fingerprint: Fingerprint = structural_fingerprint,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive.")
        self._ttl = ttl_seconds
        self._clock = clock
        self._scheduler = scheduler
        self._fingerprint = fingerprint
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def make_key(
        self,
        image: str,
        damage_type: DamageType | str,
        instruction: str | None = "",
        angle: AngleType | str | None = None,
    ) -> CacheKey:
        """Derive the deterministic key for a request's cacheable fields."""

        return CacheKey(
            image_fingerprint=self._fingerprint(image),
            damage_type=_enum_value(damage_type),
            instruction=instruction or "",
            angle=_enum_value(angle) if angle is not None else None,
        )

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.timestamp > self._ttl

    def get(
        self,
        image: str,
        damage_type: DamageType | str,
        instruction: str | None = "",
        angle: AngleType | str | None = None,
    ) -> CacheEntry | None:
        """Return the live entry for the request, evicting it if it has expired."""

        key = self.make_key(image, damage_type, instruction, angle)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                result = "miss"
            elif self._is_expired(entry, self._clock()):
                del self._entries[key]
                self._misses += 1
                entry = None
                result = "expired"
            else:
                self._hits += 1
                result = "hit"
            size = len(self._entries)

        response_cache_lookups_total.labels(result=result).inc()
        response_cache_entries.set(size)
        if result == "expired":
            logger.info("Evicted expired cache entry for %s", key.damage_type)
        return entry

    def set(
        self,
        image: str,
        damage_type: DamageType | str,
        instruction: str | None,
        angle: AngleType | str | None,
        generated_image: str,
        prompt_used: str,
    ) -> CacheEntry:
        """Insert or overwrite the entry for the request, stamped with the current time."""

        key = self.make_key(image, damage_type, instruction, angle)
        entry = CacheEntry(image=generated_image, timestamp=self._clock(), prompt=prompt_used)
        with self._lock:
            self._entries[key] = entry
            size = len(self._entries)
        response_cache_entries.set(size)
        return entry

    def invalidate(
        self,
        image: str,
        damage_type: DamageType | str,
        instruction: str | None = "",
        angle: AngleType | str | None = None,
    ) -> bool:
        """Drop the entry for the request. Returns ``True`` if one existed."""

        key = self.make_key(image, damage_type, instruction, angle)
        with self._lock:
            removed = self._entries.pop(key, None) is not None
            size = len(self._entries)
        response_cache_entries.set(size)
        return removed

    def sweep_expired(self) -> int:
        """Remove every entry older than the TTL and return how many were dropped."""

        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if self._is_expired(entry, now)]
            for key in expired:
                del self._entries[key]
            size = len(self._entries)
        response_cache_entries.set(size)
        if expired:
            logger.info("Swept %s expired cache entries, %s remain", len(expired), size)
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
        response_cache_entries.set(0)

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(size=len(self._entries), hits=self._hits, misses=self._misses)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def start_sweeping(self, interval_seconds: float) -> None:
        """Register :meth:`sweep_expired` with the scheduler."""

        if self._scheduler is None:
            raise RuntimeError("ResponseCache was constructed without a scheduler.")
        self._scheduler.schedule_every(interval_seconds, self.sweep_expired, SWEEP_JOB_NAME)
        logger.info("Response cache sweep scheduled every %ss", interval_seconds)

    def stop_sweeping(self) -> None:
        if self._scheduler is not None:
            self._scheduler.cancel(SWEEP_JOB_NAME)


def _enum_value(value: DamageType | AngleType | str) -> str:
    return value.value if isinstance(value, (DamageType, AngleType)) else str(value)
