"""Build convergence: existence check, then watch until a terminal phase.

A build is waited on in two phases with separate deadlines so that "the
build was never created" and "the build never finished" produce distinct
outcomes and messages:

1. poll ``get`` every second (default 2 minutes) until the object exists;
   NotFound/Forbidden read as "not yet".
2. watch (default 10 minutes) until the phase is Complete, Failed/Error,
   or Cancelled.
"""

from __future__ import annotations

from dataclasses import replace

from kubewait.client.base import ForbiddenError, NotFoundError, ResourceClient
from kubewait.models.convergence import (
    Classification,
    ConvergenceRequest,
    ConvergenceResult,
    Outcome,
    Selector,
)
from kubewait.models.snapshots import (
    BUILD_PHASE_CANCELLED,
    BUILD_PHASE_COMPLETE,
    BUILD_PHASE_ERROR,
    BUILD_PHASE_FAILED,
    BuildSnapshot,
)
from kubewait.observability.logging import get_logger
from kubewait.waiters.conditions import ConvergenceCondition, Predicate
from kubewait.waiters.engine import ConvergenceWaiter, SnapshotObserver
from kubewait.waiters.poll import PollWaiter

_logger = get_logger("kinds.build")

DEFAULT_CREATE_TIMEOUT = 120.0
DEFAULT_COMPLETE_TIMEOUT = 600.0


def check_build_success(build: BuildSnapshot) -> bool:
    return build.phase == BUILD_PHASE_COMPLETE


def check_build_failed(build: BuildSnapshot) -> bool:
    return build.phase in (BUILD_PHASE_FAILED, BUILD_PHASE_ERROR)


def check_build_cancelled(build: BuildSnapshot) -> bool:
    return build.phase == BUILD_PHASE_CANCELLED


def describe_build(build: BuildSnapshot) -> str:
    text = f'phase "{build.phase or "<unset>"}"'
    if build.reason:
        text += f" reason={build.reason}"
    if build.message:
        text += f" message={build.message!r}"
    return text


class BuildExistsCondition(ConvergenceCondition[BuildSnapshot]):
    """Satisfied by any observation of the build."""

    snapshot_type = BuildSnapshot

    def classify(self, snapshot: BuildSnapshot) -> Classification:
        return Classification.SUCCEEDED

    def message(self, outcome: Outcome, selector: Selector, snapshot: BuildSnapshot | None) -> str:
        if outcome is Outcome.TIMED_OUT:
            return f"Timed out waiting for build {selector.name!r} to be created"
        return f"Build {selector.name!r} exists"


class BuildCondition(ConvergenceCondition[BuildSnapshot]):
    """Complete -> succeeded, Failed/Error -> failed, Cancelled -> cancelled.

    Each predicate may be overridden; evaluation order stays success,
    failure, cancel.
    """

    snapshot_type = BuildSnapshot

    def __init__(
        self,
        success: Predicate[BuildSnapshot] | None = None,
        failure: Predicate[BuildSnapshot] | None = None,
        cancel: Predicate[BuildSnapshot] | None = None,
    ) -> None:
        self._success = success or check_build_success
        self._failure = failure or check_build_failed
        self._cancel = cancel or check_build_cancelled

    def classify(self, snapshot: BuildSnapshot) -> Classification:
        if self._success(snapshot):
            return Classification.SUCCEEDED
        if self._failure(snapshot):
            return Classification.FAILED
        if self._cancel(snapshot):
            return Classification.CANCELLED
        return Classification.PENDING

    def describe(self, snapshot: BuildSnapshot) -> str:
        return describe_build(snapshot)

    def message(self, outcome: Outcome, selector: Selector, snapshot: BuildSnapshot | None) -> str:
        if outcome is Outcome.FAILED and snapshot is not None:
            return f'The build {selector.name!r} status is "{snapshot.phase}"'
        if outcome is Outcome.TIMED_OUT:
            observed = describe_build(snapshot) if snapshot is not None else "<not observed>"
            return f"Timed out waiting for build {selector.name!r} to complete; last observed {observed}"
        return super().message(outcome, selector, snapshot)


async def wait_for_a_build(
    client: ResourceClient,
    namespace: str,
    name: str,
    success: Predicate[BuildSnapshot] | None = None,
    failure: Predicate[BuildSnapshot] | None = None,
    cancel: Predicate[BuildSnapshot] | None = None,
    *,
    create_timeout: float = DEFAULT_CREATE_TIMEOUT,
    complete_timeout: float = DEFAULT_COMPLETE_TIMEOUT,
    create_interval: float = 1.0,
    reconnect_delay: float = 1.0,
    on_snapshot: SnapshotObserver | None = None,
) -> ConvergenceResult:
    """Wait for the build to exist, then for it to reach a terminal phase."""
    selector = Selector(namespace=namespace, name=name)

    existence = await PollWaiter(client, by_name=True, tolerated=(NotFoundError, ForbiddenError)).wait(
        ConvergenceRequest.create(selector, BuildExistsCondition(), timeout=create_timeout, interval=create_interval),
        on_snapshot,
    )
    if not existence.succeeded:
        return existence

    _logger.info("build_observed", build=name, phase=getattr(existence.snapshot, "phase", ""))
    completion = await ConvergenceWaiter(client).wait(
        ConvergenceRequest.create(
            selector,
            BuildCondition(success, failure, cancel),
            timeout=complete_timeout,
            interval=reconnect_delay,
        ),
        on_snapshot,
    )
    if completion.snapshot is None:
        # Nothing new seen after the existence check; the build was still observed.
        completion = replace(completion, snapshot=existence.snapshot)
    return completion
