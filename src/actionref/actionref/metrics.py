# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Prometheus metrics for reference resolution."""

import time
from contextlib import contextmanager
from typing import Iterator

from prometheus_client import Counter, Histogram

# --- Metric definitions ---

RESOLUTIONS = Counter(
    "actionref_resolutions_total",
    "Resolution attempts by outcome",
    ["outcome"],
)

FETCH_DURATION = Histogram(
    "actionref_fetch_duration_seconds",
    "Time spent fetching remote or local content",
    ["source"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

CACHE_EVICTIONS = Counter(
    "actionref_cache_evictions_total",
    "Resolution cache entries dropped",
    ["reason"],
)


def record_resolution(outcome: str):
    """Record one resolution attempt (``available``, ``unavailable`` or ``skipped``)."""
    RESOLUTIONS.labels(outcome=outcome).inc()


def record_eviction(reason: str):
    """Record that a cache entry was dropped (``expired`` or ``invalidated``)."""
    CACHE_EVICTIONS.labels(reason=reason).inc()


@contextmanager
def timed_fetch(source: str) -> Iterator[None]:
    start = time.perf_counter()
    try:
        yield
    finally:
        FETCH_DURATION.labels(source=source).observe(time.perf_counter() - start)
