"""Service account provisioning waiter.

A service account is usable once the token controller has attached its
image-pull (dockercfg) secret.  Until the controller creates the account the
get call may return NotFound, or Forbidden while RBAC bootstraps; both are
treated as "not yet".
"""

from __future__ import annotations

from kubewait.client.base import ForbiddenError, NotFoundError, ResourceClient
from kubewait.models.convergence import Classification, ConvergenceRequest, ConvergenceResult, Selector
from kubewait.models.snapshots import ServiceAccountSnapshot
from kubewait.waiters.conditions import ConvergenceCondition
from kubewait.waiters.poll import PollWaiter

DOCKERCFG_SECRET_MARKER = "dockercfg"
DEFAULT_SERVICE_ACCOUNT_TIMEOUT = 180.0


class ServiceAccountReadyCondition(ConvergenceCondition[ServiceAccountSnapshot]):
    snapshot_type = ServiceAccountSnapshot

    def __init__(self, marker: str = DOCKERCFG_SECRET_MARKER) -> None:
        self.marker = marker

    def classify(self, snapshot: ServiceAccountSnapshot) -> Classification:
        if any(self.marker in secret for secret in snapshot.secrets):
            return Classification.SUCCEEDED
        return Classification.PENDING

    def describe(self, snapshot: ServiceAccountSnapshot) -> str:
        return f"secrets={list(snapshot.secrets)}"


async def wait_for_service_account(
    client: ResourceClient,
    namespace: str,
    name: str,
    *,
    timeout: float = DEFAULT_SERVICE_ACCOUNT_TIMEOUT,
    interval: float = 0.1,
) -> ConvergenceResult:
    request = ConvergenceRequest.create(
        Selector(namespace=namespace, name=name),
        ServiceAccountReadyCondition(),
        timeout=timeout,
        interval=interval,
    )
    waiter = PollWaiter(client, by_name=True, tolerated=(NotFoundError, ForbiddenError))
    return await waiter.wait(request)
