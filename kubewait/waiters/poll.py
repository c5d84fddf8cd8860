"""Fixed-interval poll waiter for kinds that need no live-update channel.

Unlike ConvergenceWaiter, a fetch error ends the wait immediately as
FatalError; the only exceptions are the error classes passed as
``tolerated``, which read as "object absent" and are classified through
``ConvergenceCondition.classify_absent``.
"""

from __future__ import annotations

import asyncio
from typing import Any

from kubewait.client.base import ResourceClient, ResourceClientError
from kubewait.models.convergence import ConvergenceRequest, WaitStats
from kubewait.models.snapshots import ResourceSnapshot
from kubewait.observability.logging import get_logger
from kubewait.observability.metrics import poll_fetches_total
from kubewait.waiters.engine import BaseWaiter, SnapshotObserver, Verdict

_logger = get_logger("waiters.poll")


class PollWaiter(BaseWaiter):
    """Poll by list (default), by get (``by_name``) or by create (``create_body``).

    Create mode classifies the object the server answers with, which is how
    access reviews report their verdict.

    The first fetch happens immediately; subsequent fetches are spaced by
    ``request.interval`` until a terminal verdict or the deadline.
    """

    def __init__(
        self,
        client: ResourceClient,
        by_name: bool = False,
        tolerated: tuple[type[ResourceClientError], ...] = (),
        create_body: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(client, tolerated)
        self._by_name = by_name
        self._create_body = create_body

    async def _run(
        self,
        request: ConvergenceRequest,
        stats: WaitStats,
        on_snapshot: SnapshotObserver | None,
    ) -> Verdict:
        ticks = 0
        while True:
            ticks += 1
            snapshots = await self._fetch(request, stats)
            for snapshot in snapshots:
                self._observe(stats, snapshot, on_snapshot)
            verdict = request.condition.classify_all(snapshots)
            if verdict[0].terminal:
                _logger.debug("poll_converged", ticks=ticks)
                return verdict
            await asyncio.sleep(request.interval)

    async def _fetch(self, request: ConvergenceRequest, stats: WaitStats) -> list[ResourceSnapshot]:
        poll_fetches_total.labels(kind=request.condition.kind).inc()
        selector = request.selector
        if self._create_body is not None:
            return [request.condition.parse(await self._client.create(selector.namespace, self._create_body))]
        if not self._by_name:
            return await self._list(request, stats)

        if selector.name is None:
            raise ValueError("PollWaiter(by_name=True) requires a selector with a name")
        try:
            raw = await self._client.get(selector.namespace, selector.name)
        except self._tolerated as exc:
            _logger.debug("get_error_tolerated", error=str(exc), status=exc.status)
            return []
        snapshot = request.condition.parse(raw)
        if snapshot.resource_version:
            stats.cursor = snapshot.resource_version
        return [snapshot]
