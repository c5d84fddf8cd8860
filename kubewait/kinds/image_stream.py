"""Image stream waiters: generic predicate wait and tag-history wait."""

from __future__ import annotations

from kubewait.client.base import ResourceClient
from kubewait.models.convergence import (
    Classification,
    ConvergenceRequest,
    ConvergenceResult,
    Outcome,
    Selector,
)
from kubewait.models.snapshots import ImageStreamSnapshot
from kubewait.observability.logging import get_logger
from kubewait.waiters.conditions import ConvergenceCondition, Predicate
from kubewait.waiters.engine import ConvergenceWaiter

_logger = get_logger("kinds.image_stream")

DEFAULT_TAG_TIMEOUT = 300.0


def check_image_stream_latest_tag_populated(stream: ImageStreamSnapshot) -> bool:
    return stream.status_tag("latest") is not None


def check_image_stream_tag_not_found(stream: ImageStreamSnapshot) -> bool:
    """True when the repository check annotation reports a failed import."""
    check = stream.repository_check
    return "not" in check or "error" in check


class ImageStreamCondition(ConvergenceCondition[ImageStreamSnapshot]):
    """Caller-supplied success/failure predicates; failure reports the repository check."""

    snapshot_type = ImageStreamSnapshot

    def __init__(self, success: Predicate[ImageStreamSnapshot], failure: Predicate[ImageStreamSnapshot]) -> None:
        self._success = success
        self._failure = failure

    def classify(self, snapshot: ImageStreamSnapshot) -> Classification:
        if self._success(snapshot):
            return Classification.SUCCEEDED
        if self._failure(snapshot):
            return Classification.FAILED
        return Classification.PENDING

    def describe(self, snapshot: ImageStreamSnapshot) -> str:
        return f'"{snapshot.repository_check}"'

    def message(self, outcome: Outcome, selector: Selector, snapshot: ImageStreamSnapshot | None) -> str:
        if outcome is Outcome.FAILED and snapshot is not None:
            return f"The image stream {selector.name!r} status is {self.describe(snapshot)}"
        return super().message(outcome, selector, snapshot)


class ImageStreamTagCondition(ConvergenceCondition[ImageStreamSnapshot]):
    """Succeeds once *tag* has at least one history item in status.

    Deadline expiry is reported as a failure of the tag import rather than
    as a timeout.
    """

    snapshot_type = ImageStreamSnapshot

    def __init__(self, namespace: str, tag: str) -> None:
        self.namespace = namespace
        self.tag = tag

    def classify(self, snapshot: ImageStreamSnapshot) -> Classification:
        history = snapshot.status_tag(self.tag)
        if history:
            return Classification.SUCCEEDED
        return Classification.PENDING

    def classify_expired(self) -> Classification:
        return Classification.FAILED

    def describe(self, snapshot: ImageStreamSnapshot) -> str:
        history = snapshot.status_tag(self.tag)
        if history is None:
            return f"tag {self.tag!r} absent from status (tags: {sorted(snapshot.tags) or 'none'})"
        return f"tag {self.tag!r} has {len(history)} history item(s)"

    def message(self, outcome: Outcome, selector: Selector, snapshot: ImageStreamSnapshot | None) -> str:
        if outcome in (Outcome.FAILED, Outcome.TIMED_OUT):
            observed = self.describe(snapshot) if snapshot is not None else "image stream not observed"
            return (
                f"timed out while waiting for image stream tag "
                f"{self.namespace}/{selector.name}:{self.tag} ({observed})"
            )
        return super().message(outcome, selector, snapshot)


async def wait_for_an_image_stream(
    client: ResourceClient,
    namespace: str,
    name: str,
    success: Predicate[ImageStreamSnapshot],
    failure: Predicate[ImageStreamSnapshot],
    *,
    timeout: float,
    reconnect_delay: float = 1.0,
) -> ConvergenceResult:
    """Watch an image stream until *success* or *failure* holds."""
    request = ConvergenceRequest.create(
        Selector(namespace=namespace, name=name),
        ImageStreamCondition(success, failure),
        timeout=timeout,
        interval=reconnect_delay,
    )
    return await ConvergenceWaiter(client).wait(request)


async def wait_for_an_image_stream_tag(
    client: ResourceClient,
    namespace: str,
    name: str,
    tag: str,
    *,
    timeout: float = DEFAULT_TAG_TIMEOUT,
    reconnect_delay: float = 1.0,
) -> ConvergenceResult:
    """Wait until image stream *name* has non-empty status history for *tag*."""
    _logger.info("waiting_for_image_stream_tag", namespace=namespace, image_stream=name, tag=tag)
    request = ConvergenceRequest.create(
        Selector(namespace=namespace, name=name),
        ImageStreamTagCondition(namespace, tag),
        timeout=timeout,
        interval=reconnect_delay,
    )
    return await ConvergenceWaiter(client).wait(request)


async def get_docker_image_reference(client: ResourceClient, namespace: str, name: str, tag: str) -> str:
    """Return the pull spec of the newest image recorded for *tag*."""
    stream = ImageStreamSnapshot.from_raw(await client.get(namespace, name))
    history = stream.status_tag(tag)
    if not history:
        raise LookupError(f"ImageStream {name!r} does not have tag {tag!r}")
    return history[0].docker_image_reference
