"""Pod predicates and pod-set waiters."""

from __future__ import annotations

from collections.abc import Callable, Sequence

from kubewait.client.base import NotFoundError, ResourceClient
from kubewait.models.convergence import (
    Classification,
    ConvergenceRequest,
    ConvergenceResult,
    Outcome,
    Selector,
)
from kubewait.models.snapshots import PodSnapshot, find_condition
from kubewait.waiters.conditions import ConvergenceCondition
from kubewait.waiters.poll import PollWaiter

POD_RUNNING = "Running"
POD_SUCCEEDED = "Succeeded"
POD_READY = "Ready"

PodPredicate = Callable[[PodSnapshot], bool]


def check_pod_is_running(pod: PodSnapshot) -> bool:
    return pod.phase == POD_RUNNING


def check_pod_is_succeeded(pod: PodSnapshot) -> bool:
    return pod.phase == POD_SUCCEEDED


def check_pod_is_ready(pod: PodSnapshot) -> bool:
    """Running with the Ready condition True."""
    if pod.phase != POD_RUNNING:
        return False
    ready = find_condition(pod.conditions, POD_READY)
    return ready is not None and ready.is_true


def check_pod_no_op(pod: PodSnapshot) -> bool:
    return True


POD_PREDICATES: dict[str, PodPredicate] = {
    "running": check_pod_is_running,
    "succeeded": check_pod_is_succeeded,
    "ready": check_pod_is_ready,
    "any": check_pod_no_op,
}


class PodCountCondition(ConvergenceCondition[PodSnapshot]):
    """Succeeds when exactly *count* listed pods satisfy *predicate*."""

    snapshot_type = PodSnapshot

    def __init__(self, predicate: PodPredicate, count: int) -> None:
        self.predicate = predicate
        self.count = count

    def classify(self, snapshot: PodSnapshot) -> Classification:
        return self.classify_all([snapshot])[0]

    def classify_all(
        self, snapshots: Sequence[PodSnapshot]
    ) -> tuple[Classification, PodSnapshot | None, tuple[PodSnapshot, ...]]:
        matching = tuple(pod for pod in snapshots if self.predicate(pod))
        if len(matching) == self.count:
            return Classification.SUCCEEDED, (matching[0] if matching else None), matching
        return Classification.PENDING, (snapshots[-1] if snapshots else None), ()

    def describe(self, snapshot: PodSnapshot) -> str:
        return f'pod {snapshot.name} phase "{snapshot.phase}"'

    def message(self, outcome: Outcome, selector: Selector, snapshot: PodSnapshot | None) -> str:
        if outcome is Outcome.TIMED_OUT:
            observed = self.describe(snapshot) if snapshot is not None else "no pods observed"
            return f"Timed out waiting for {self.count} pod(s) matching {selector.describe()}; last observed {observed}"
        if outcome is Outcome.SUCCEEDED:
            return f"{self.count} pod(s) matching {selector.describe()} satisfied the predicate"
        return super().message(outcome, selector, snapshot)


class PodGoneCondition(ConvergenceCondition[PodSnapshot]):
    """Succeeds once the pod can no longer be found."""

    snapshot_type = PodSnapshot

    def classify(self, snapshot: PodSnapshot) -> Classification:
        return Classification.PENDING

    def classify_absent(self) -> Classification:
        return Classification.SUCCEEDED

    def describe(self, snapshot: PodSnapshot) -> str:
        return f'still present, phase "{snapshot.phase}"'


async def get_pod_names_by_filter(
    client: ResourceClient,
    namespace: str,
    label_selector: str,
    predicate: PodPredicate,
) -> list[str]:
    """List pods matching *label_selector* and return the names satisfying *predicate*."""
    listing = await client.list(Selector(namespace=namespace, label_selector=label_selector))
    pods = [PodSnapshot.from_raw(raw) for raw in listing.items]
    return [pod.name for pod in pods if predicate(pod)]


async def wait_for_pods(
    client: ResourceClient,
    namespace: str,
    label_selector: str,
    predicate: PodPredicate,
    count: int,
    *,
    timeout: float,
    interval: float = 1.0,
) -> ConvergenceResult:
    """Poll until exactly *count* pods match the selector and predicate.

    The matching pod names are ``[pod.name for pod in result.items]``.
    """
    request = ConvergenceRequest.create(
        Selector(namespace=namespace, label_selector=label_selector),
        PodCountCondition(predicate, count),
        timeout=timeout,
        interval=interval,
    )
    return await PollWaiter(client).wait(request)


async def wait_until_pod_is_gone(
    client: ResourceClient,
    namespace: str,
    name: str,
    *,
    timeout: float,
    interval: float = 1.0,
) -> ConvergenceResult:
    request = ConvergenceRequest.create(
        Selector(namespace=namespace, name=name),
        PodGoneCondition(),
        timeout=timeout,
        interval=interval,
    )
    return await PollWaiter(client, by_name=True, tolerated=(NotFoundError,)).wait(request)
