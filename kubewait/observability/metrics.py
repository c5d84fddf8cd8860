"""Prometheus collectors for wait calls."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

waits_total = Counter(
    "kubewait_waits_total",
    "Completed wait calls by resource kind and outcome",
    ["kind", "outcome"],
)

wait_duration_seconds = Histogram(
    "kubewait_wait_duration_seconds",
    "Wall-clock duration of wait calls",
    ["kind"],
    buckets=(0.1, 0.5, 1, 5, 15, 30, 60, 120, 300, 600, 900),
)

watch_reconnects_total = Counter(
    "kubewait_watch_reconnects_total",
    "Watch channels that closed and were re-established",
    ["kind"],
)

poll_fetches_total = Counter(
    "kubewait_poll_fetches_total",
    "List/get calls issued by poll-driven waiters",
    ["kind"],
)


def record_wait(kind: str, outcome: str, elapsed: float) -> None:
    waits_total.labels(kind=kind, outcome=outcome).inc()
    wait_duration_seconds.labels(kind=kind).observe(elapsed)
