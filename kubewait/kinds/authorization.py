"""Access review waiter: poll until a user may perform an action.

Right after a namespace is created the cluster bootstrap roles may not yet be
bound, so a SubjectAccessReview for the user is created once a second until
the authorizer answers ``allowed``.  A denied review is not terminal; only a
client error ends the wait early.
"""

from __future__ import annotations

from typing import Any

from kubewait.client.base import ResourceClient
from kubewait.models.convergence import (
    Classification,
    ConvergenceRequest,
    ConvergenceResult,
    Outcome,
    Selector,
)
from kubewait.models.snapshots import SubjectAccessReviewSnapshot
from kubewait.observability.logging import get_logger
from kubewait.waiters.conditions import ConvergenceCondition
from kubewait.waiters.poll import PollWaiter

_logger = get_logger("kinds.authorization")

DEFAULT_AUTHORIZATION_TIMEOUT = 60.0


def subject_access_review(namespace: str, user: str, verb: str, resource: str) -> dict[str, Any]:
    return {
        "apiVersion": "authorization.k8s.io/v1",
        "kind": "SubjectAccessReview",
        "spec": {
            "user": user,
            "resourceAttributes": {"namespace": namespace, "verb": verb, "resource": resource},
        },
    }


class UserAuthorizedCondition(ConvergenceCondition[SubjectAccessReviewSnapshot]):
    snapshot_type = SubjectAccessReviewSnapshot

    def __init__(self, user: str, verb: str, resource: str) -> None:
        self.user = user
        self.verb = verb
        self.resource = resource

    def classify(self, snapshot: SubjectAccessReviewSnapshot) -> Classification:
        return Classification.SUCCEEDED if snapshot.allowed else Classification.PENDING

    def describe(self, snapshot: SubjectAccessReviewSnapshot) -> str:
        text = f"allowed={str(snapshot.allowed).lower()}"
        if snapshot.reason:
            text += f" reason={snapshot.reason!r}"
        if snapshot.evaluation_error:
            text += f" evaluationError={snapshot.evaluation_error!r}"
        return text

    def message(self, outcome: Outcome, selector: Selector, snapshot: SubjectAccessReviewSnapshot | None) -> str:
        action = f"{self.verb} {self.resource} in {selector.namespace}"
        if outcome is Outcome.SUCCEEDED:
            return f"User {self.user!r} is authorized to {action}"
        observed = self.describe(snapshot) if snapshot is not None else "no review answered"
        return f"Timed out waiting for user {self.user!r} to be authorized to {action}; last review {observed}"


async def wait_for_user_be_authorized(
    client: ResourceClient,
    namespace: str,
    user: str,
    verb: str,
    resource: str,
    *,
    timeout: float = DEFAULT_AUTHORIZATION_TIMEOUT,
    interval: float = 1.0,
) -> ConvergenceResult:
    """Create access reviews for *user* until one is allowed."""
    _logger.info("waiting_for_authorization", namespace=namespace, user=user, verb=verb, resource=resource)
    request = ConvergenceRequest.create(
        Selector(namespace=namespace),
        UserAuthorizedCondition(user, verb, resource),
        timeout=timeout,
        interval=interval,
    )
    waiter = PollWaiter(client, create_body=subject_access_review(namespace, user, verb, resource))
    return await waiter.wait(request)
