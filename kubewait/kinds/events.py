"""Build event waiter: poll a build's events for one with a given reason."""

from __future__ import annotations

from kubewait.client.base import ResourceClient
from kubewait.models.convergence import (
    Classification,
    ConvergenceRequest,
    ConvergenceResult,
    Outcome,
    Selector,
)
from kubewait.models.snapshots import EventSnapshot
from kubewait.waiters.conditions import ConvergenceCondition
from kubewait.waiters.poll import PollWaiter

DEFAULT_EVENT_TIMEOUT = 60.0
DEFAULT_EVENT_INTERVAL = 2.0


def build_event_fields(build_name: str) -> str:
    return f"involvedObject.kind=Build,involvedObject.name={build_name}"


class BuildEventCondition(ConvergenceCondition[EventSnapshot]):
    """The first event with *reason* decides: a matching message succeeds, any other fails.

    With no expected message, the reason alone succeeds.
    """

    snapshot_type = EventSnapshot

    def __init__(self, build_name: str, reason: str, expected_message: str | None = None) -> None:
        self.build_name = build_name
        self.reason = reason
        self.expected_message = expected_message

    def classify(self, snapshot: EventSnapshot) -> Classification:
        if snapshot.reason != self.reason:
            return Classification.PENDING
        if self.expected_message is None or snapshot.message == self.expected_message:
            return Classification.SUCCEEDED
        return Classification.FAILED

    def describe(self, snapshot: EventSnapshot) -> str:
        return f"reason={snapshot.reason} message={snapshot.message!r}"

    def message(self, outcome: Outcome, selector: Selector, snapshot: EventSnapshot | None) -> str:
        target = f"{selector.namespace}/{self.build_name}"
        if outcome is Outcome.SUCCEEDED:
            return f"Found a {self.reason!r} event on build {target}"
        if outcome is Outcome.FAILED and snapshot is not None:
            return (
                f"The {self.reason!r} event on build {target} has message {snapshot.message!r}, "
                f"expected {self.expected_message!r}"
            )
        return f"Did not find a {self.reason!r} event on build {target}"


async def wait_for_build_event(
    client: ResourceClient,
    namespace: str,
    build_name: str,
    reason: str,
    expected_message: str | None = None,
    *,
    timeout: float = DEFAULT_EVENT_TIMEOUT,
    interval: float = DEFAULT_EVENT_INTERVAL,
) -> ConvergenceResult:
    """Poll the events of build *build_name* until one carries *reason*."""
    request = ConvergenceRequest.create(
        Selector(namespace=namespace, fields=build_event_fields(build_name)),
        BuildEventCondition(build_name, reason, expected_message),
        timeout=timeout,
        interval=interval,
    )
    return await PollWaiter(client).wait(request)
