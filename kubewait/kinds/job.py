"""Job completion waiter."""

from __future__ import annotations

from kubewait.client.base import ResourceClient
from kubewait.models.convergence import Classification, ConvergenceRequest, ConvergenceResult, Selector
from kubewait.models.snapshots import JobSnapshot
from kubewait.waiters.conditions import ConvergenceCondition
from kubewait.waiters.poll import PollWaiter

JOB_COMPLETE = "Complete"
JOB_FAILED = "Failed"


class JobFinishedCondition(ConvergenceCondition[JobSnapshot]):
    """A job has finished once a Complete or Failed condition is True.

    Both count as convergence: the caller inspects the job to tell them apart.
    """

    snapshot_type = JobSnapshot

    def classify(self, snapshot: JobSnapshot) -> Classification:
        for cond in snapshot.conditions:
            if cond.type in (JOB_COMPLETE, JOB_FAILED) and cond.is_true:
                return Classification.SUCCEEDED
        return Classification.PENDING

    def describe(self, snapshot: JobSnapshot) -> str:
        if not snapshot.conditions:
            return "no conditions"
        return ", ".join(f"{c.type}={c.status}" for c in snapshot.conditions)


async def wait_for_a_job(
    client: ResourceClient,
    namespace: str,
    name: str,
    *,
    timeout: float,
    interval: float = 1.0,
) -> ConvergenceResult:
    """Poll the job by name until it finishes; any get error is fatal."""
    request = ConvergenceRequest.create(
        Selector(namespace=namespace, name=name),
        JobFinishedCondition(),
        timeout=timeout,
        interval=interval,
    )
    return await PollWaiter(client, by_name=True).wait(request)
