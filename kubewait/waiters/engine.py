"""Convergence engines: list -> watch -> reconnect, raced against a deadline.

``BaseWaiter.wait`` owns deadline arbitration, fatal-error capture, logging
and metrics; subclasses implement ``_run`` which returns only once a
terminal classification is reached.  The deadline is enforced with
``asyncio.timeout`` so that whatever the engine is awaiting (a list call, a
watch event, a poll sleep) is cancelled at expiry and its resources are
released before ``wait`` returns.
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from contextlib import aclosing

from kubewait.client.base import ResourceClient, ResourceClientError
from kubewait.models.convergence import (
    Classification,
    ConvergenceRequest,
    ConvergenceResult,
    Outcome,
    Selector,
    WaitStats,
    outcome_for,
)
from kubewait.models.snapshots import ResourceSnapshot
from kubewait.observability.logging import get_logger, wait_context
from kubewait.observability.metrics import record_wait, watch_reconnects_total
from kubewait.waiters.conditions import Predicate, PredicateCondition, S

_logger = get_logger("waiters.engine")

SnapshotObserver = Callable[[ResourceSnapshot], None]

# (verdict, snapshot the verdict refers to, supporting snapshots)
Verdict = tuple[Classification, ResourceSnapshot | None, tuple[ResourceSnapshot, ...]]


class BaseWaiter(ABC):
    """Deadline arbitration and result assembly shared by both engines."""

    def __init__(
        self,
        client: ResourceClient,
        tolerated: tuple[type[ResourceClientError], ...] = (),
    ) -> None:
        self._client = client
        self._tolerated = tolerated

    async def wait(
        self,
        request: ConvergenceRequest,
        on_snapshot: SnapshotObserver | None = None,
    ) -> ConvergenceResult:
        """Block until a terminal classification, the deadline, or a fatal error."""
        condition = request.condition
        stats = WaitStats()
        started = time.monotonic()

        with wait_context(condition.kind, request.selector.describe()):
            _logger.debug("wait_started", timeout=round(request.remaining(), 3))
            deadline = asyncio.timeout(request.remaining())
            try:
                async with deadline:
                    verdict, snapshot, items = await self._run(request, stats, on_snapshot)
            except TimeoutError as exc:
                if not deadline.expired():
                    # a transport-level timeout, not ours
                    return self._finish(request, Outcome.FATAL_ERROR, stats.last_snapshot, started, stats, error=exc)
                expired = condition.classify_expired()
                outcome = Outcome.TIMED_OUT if expired is None else outcome_for(expired)
                return self._finish(request, outcome, stats.last_snapshot, started, stats)
            except ResourceClientError as exc:
                return self._finish(request, Outcome.FATAL_ERROR, stats.last_snapshot, started, stats, error=exc)
            if snapshot is None:
                snapshot = stats.last_snapshot
            return self._finish(request, outcome_for(verdict), snapshot, started, stats, items=items)

    @abstractmethod
    async def _run(
        self,
        request: ConvergenceRequest,
        stats: WaitStats,
        on_snapshot: SnapshotObserver | None,
    ) -> Verdict:
        """Drive the client until a terminal verdict is reached."""

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _observe(stats: WaitStats, snapshot: ResourceSnapshot, on_snapshot: SnapshotObserver | None) -> None:
        stats.last_snapshot = snapshot
        stats.observations += 1
        if on_snapshot is not None:
            on_snapshot(snapshot)

    async def _list(self, request: ConvergenceRequest, stats: WaitStats) -> list[ResourceSnapshot]:
        """List and parse; tolerated errors read as an empty listing."""
        try:
            listing = await self._client.list(request.selector)
        except self._tolerated as exc:
            _logger.debug("list_error_tolerated", error=str(exc), status=exc.status)
            return []
        stats.cursor = listing.resource_version
        return [request.condition.parse(raw) for raw in listing.items]

    def _finish(
        self,
        request: ConvergenceRequest,
        outcome: Outcome,
        snapshot: ResourceSnapshot | None,
        started: float,
        stats: WaitStats,
        error: Exception | None = None,
        items: tuple[ResourceSnapshot, ...] = (),
    ) -> ConvergenceResult:
        condition = request.condition
        elapsed = time.monotonic() - started
        if outcome is Outcome.FATAL_ERROR:
            message = f"Error waiting for {condition.kind} {request.selector.describe()}: {error}"
        else:
            message = condition.message(outcome, request.selector, snapshot)

        log = _logger.warning if outcome in (Outcome.TIMED_OUT, Outcome.FATAL_ERROR) else _logger.info
        log(
            "wait_finished",
            outcome=outcome.value,
            elapsed=round(elapsed, 3),
            observations=stats.observations,
            reconnects=stats.reconnects,
            detail=message,
        )
        record_wait(condition.kind, outcome.value, elapsed)
        return ConvergenceResult(
            outcome=outcome,
            snapshot=snapshot,
            elapsed=elapsed,
            message=message,
            error=error,
            items=items,
            reconnects=stats.reconnects,
        )


class ConvergenceWaiter(BaseWaiter):
    """Watch-driven waiter.

    1. List and classify every object in list order.
    2. Watch from the list's resource version, classifying each event.
    3. When the server closes the channel, pause ``request.interval``,
       re-list and re-watch.  Closure is never surfaced to the caller and the
       number of reconnects is bounded only by the deadline.
    Any client error other than channel closure is fatal.
    """

    async def _run(
        self,
        request: ConvergenceRequest,
        stats: WaitStats,
        on_snapshot: SnapshotObserver | None,
    ) -> Verdict:
        condition = request.condition
        while True:
            snapshots = await self._list(request, stats)
            for snapshot in snapshots:
                self._observe(stats, snapshot, on_snapshot)
            verdict = condition.classify_all(snapshots)
            if verdict[0].terminal:
                return verdict

            _logger.debug("watch_opened", resource_version=stats.cursor)
            async with aclosing(self._client.watch(request.selector, stats.cursor)) as events:
                async for event in events:
                    snapshot = condition.parse(event.object)
                    if snapshot.resource_version:
                        stats.cursor = snapshot.resource_version
                    self._observe(stats, snapshot, on_snapshot)
                    classification = condition.classify(snapshot)
                    _logger.debug(
                        "watch_event",
                        event_type=event.type.value,
                        resource_version=snapshot.resource_version,
                        classification=classification.value,
                    )
                    if classification.terminal:
                        return classification, snapshot, (snapshot,)

            stats.reconnects += 1
            watch_reconnects_total.labels(kind=condition.kind).inc()
            _logger.info("watch_channel_closed", reconnects=stats.reconnects, resource_version=stats.cursor)
            await asyncio.sleep(request.interval)


async def wait_for(
    client: ResourceClient,
    selector: Selector,
    snapshot_type: type[S],
    success: Predicate[S],
    failure: Predicate[S] | None = None,
    cancel: Predicate[S] | None = None,
    *,
    timeout: float,
    interval: float = 1.0,
) -> ConvergenceResult:
    """Watch-wait with positional predicates evaluated success, failure, cancel."""
    condition = PredicateCondition(snapshot_type, success, failure, cancel)
    request = ConvergenceRequest.create(selector, condition, timeout=timeout, interval=interval)
    return await ConvergenceWaiter(client).wait(request)
