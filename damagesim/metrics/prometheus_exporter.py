"""Prometheus exporter helpers."""

from __future__ import annotations

from prometheus_client import Counter, Gauge


damage_generation_total = Counter(
    "damage_generation_total",
    "Damage simulation requests by outcome.",
    ["outcome"],
)

response_cache_lookups_total = Counter(
    "response_cache_lookups_total",
    "Response cache lookups by result.",
    ["result"],
)

image_compression_fallbacks_total = Counter(
    "image_compression_fallbacks_total",
    "Requests sent uncompressed because compression failed.",
)

response_cache_entries = Gauge(
    "response_cache_entries",
    "Number of entries currently held by the response cache.",
)
