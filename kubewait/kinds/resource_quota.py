"""Resource quota usage sync waiter.

The quota controller recomputes ``status.used`` asynchronously after objects
are created or deleted.  Callers state the usage they expect for a subset of
resource names; the observed usage is masked down to that subset and compared
per resource.

* upper-limit mode waits for usage to climb up to the expectation, so it is
  synced once every expected value is <= the observed one;
* lower-limit mode waits for usage to drop, so it is synced once every
  observed value is <= the expected one.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import Decimal

from kubernetes.utils.quantity import parse_quantity

from kubewait.client.base import ResourceClient
from kubewait.models.convergence import (
    Classification,
    ConvergenceRequest,
    ConvergenceResult,
    Outcome,
    Selector,
)
from kubewait.models.snapshots import ResourceQuotaSnapshot
from kubewait.waiters.conditions import ConvergenceCondition
from kubewait.waiters.engine import ConvergenceWaiter

ResourceList = Mapping[str, Decimal]


def mask(received: ResourceList, names: Iterable[str]) -> dict[str, Decimal]:
    """Keep only the entries of *received* whose name is in *names*."""
    wanted = set(names)
    return {name: value for name, value in received.items() if name in wanted}


def less_than_or_equal(a: ResourceList, b: ResourceList) -> bool:
    """Elementwise ``a <= b`` over the names of *a*.

    A name missing from *b* makes the comparison false.
    """
    for name, value in a.items():
        other = b.get(name)
        if other is None or value > other:
            return False
    return True


def is_usage_synced(received: ResourceList, expected: ResourceList, upper_limit: bool) -> bool:
    masked = mask(received, expected.keys())
    if len(masked) != len(expected):
        return False
    if upper_limit:
        # expected <= observed: usage has climbed to the cap, not stayed under it
        return less_than_or_equal(expected, masked)
    # observed <= expected: usage has dropped to or below the expectation
    return less_than_or_equal(masked, expected)


def parse_usage(usage: Mapping[str, str | int | Decimal]) -> dict[str, Decimal]:
    return {name: value if isinstance(value, Decimal) else parse_quantity(value) for name, value in usage.items()}


def format_usage(usage: ResourceList) -> str:
    return "{" + ", ".join(f"{name}: {value}" for name, value in sorted(usage.items())) + "}"


class QuotaSyncCondition(ConvergenceCondition[ResourceQuotaSnapshot]):
    snapshot_type = ResourceQuotaSnapshot

    def __init__(self, expected: ResourceList, upper_limit: bool = True) -> None:
        self.expected = dict(expected)
        self.upper_limit = upper_limit

    def classify(self, snapshot: ResourceQuotaSnapshot) -> Classification:
        if is_usage_synced(snapshot.used, self.expected, self.upper_limit):
            return Classification.SUCCEEDED
        return Classification.PENDING

    def describe(self, snapshot: ResourceQuotaSnapshot) -> str:
        return f"used={format_usage(mask(snapshot.used, self.expected))}"

    def message(self, outcome: Outcome, selector: Selector, snapshot: ResourceQuotaSnapshot | None) -> str:
        if outcome is Outcome.TIMED_OUT:
            observed = self.describe(snapshot) if snapshot is not None else "<not observed>"
            mode = "upper" if self.upper_limit else "lower"
            return (
                f"Timed out waiting for quota {selector.namespace}/{selector.name} to sync "
                f"to {format_usage(self.expected)} ({mode} limit); last observed {observed}"
            )
        return super().message(outcome, selector, snapshot)


def synced_usage(result: ConvergenceResult, expected: ResourceList) -> dict[str, Decimal]:
    """The masked usage of a finished quota wait; empty if nothing was observed."""
    if not isinstance(result.snapshot, ResourceQuotaSnapshot):
        return {}
    return mask(result.snapshot.used, expected.keys())


async def wait_for_resource_quota_sync(
    client: ResourceClient,
    namespace: str,
    name: str,
    expected: Mapping[str, str | int | Decimal],
    upper_limit: bool = True,
    *,
    timeout: float,
    reconnect_delay: float = 1.0,
) -> ConvergenceResult:
    """Watch quota *name* until its used resources sync with *expected*.

    The masked usage of a synced quota is ``synced_usage(result, expected)``.
    """
    request = ConvergenceRequest.create(
        Selector(namespace=namespace, name=name),
        QuotaSyncCondition(parse_usage(expected), upper_limit),
        timeout=timeout,
        interval=reconnect_delay,
    )
    return await ConvergenceWaiter(client).wait(request)
