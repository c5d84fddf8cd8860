"""Readiness of the sample image streams in the ``openshift`` namespace.

The samples operator imports a standard set of language image streams after
the cluster comes up.  They are usable once

1. the openshift-samples ClusterOperator is at steady state: not Degraded,
   not Progressing, no import error reason on Progressing, not unavailable;
2. every language image stream exists, points at the internal registry (when
   its hostname is known) and lists every spec tag in status.

Both phases poll every 10 seconds against one shared deadline (150 seconds by
default).  Client errors only mean "not yet".
"""

from __future__ import annotations

import time
from collections.abc import Sequence

from kubewait.client.base import ResourceClient, ResourceClientError
from kubewait.commands import AdminCommand, CommandError
from kubewait.models.convergence import (
    Classification,
    ConvergenceRequest,
    ConvergenceResult,
    Outcome,
    Selector,
)
from kubewait.models.snapshots import ClusterOperatorSnapshot, ImageStreamSnapshot, find_condition
from kubewait.observability.logging import get_logger
from kubewait.waiters.conditions import ConvergenceCondition
from kubewait.waiters.poll import PollWaiter

_logger = get_logger("kinds.samples")

SAMPLES_OPERATOR = "openshift-samples"
OPENSHIFT_NAMESPACE = "openshift"
SAMPLE_LANGUAGES = ("ruby", "nodejs", "perl", "php", "python", "mysql", "postgresql", "mongodb", "jenkins")
DEFAULT_SAMPLES_TIMEOUT = 150.0
DEFAULT_SAMPLES_INTERVAL = 10.0

OPERATOR_DEGRADED = "Degraded"
OPERATOR_PROGRESSING = "Progressing"
OPERATOR_AVAILABLE = "Available"


def samples_operator_not_ready(operator: ClusterOperatorSnapshot) -> str | None:
    """Why the operator is not at steady state, or None when it is."""
    degraded = find_condition(operator.conditions, OPERATOR_DEGRADED)
    if degraded is not None and degraded.is_true:
        return "degraded"
    progressing = find_condition(operator.conditions, OPERATOR_PROGRESSING)
    if progressing is not None:
        if progressing.is_true:
            return "still in progress"
        # a reason on a settled Progressing condition reports an import error
        if progressing.reason:
            return f"import error {progressing.reason}: {progressing.message}"
    available = find_condition(operator.conditions, OPERATOR_AVAILABLE)
    if available is not None and available.is_false:
        return "not available"
    return None


def image_stream_not_imported(stream: ImageStreamSnapshot, registry_hostname: str = "") -> str | None:
    """Why *stream* is not fully imported, or None when it is."""
    if registry_hostname and not stream.docker_image_repository.startswith(registry_hostname):
        return f"repository {stream.docker_image_repository!r} does not match host {registry_hostname!r}"
    missing = [tag for tag in stream.spec_tags if stream.status_tag(tag) is None]
    if missing:
        return f"tags {missing} missing from status"
    return None


class SamplesOperatorReadyCondition(ConvergenceCondition[ClusterOperatorSnapshot]):
    snapshot_type = ClusterOperatorSnapshot

    def classify(self, snapshot: ClusterOperatorSnapshot) -> Classification:
        if samples_operator_not_ready(snapshot) is None:
            return Classification.SUCCEEDED
        return Classification.PENDING

    def describe(self, snapshot: ClusterOperatorSnapshot) -> str:
        return samples_operator_not_ready(snapshot) or "steady state"

    def message(self, outcome: Outcome, selector: Selector, snapshot: ClusterOperatorSnapshot | None) -> str:
        if outcome is Outcome.TIMED_OUT:
            observed = self.describe(snapshot) if snapshot is not None else "not observed"
            return f"Timed out waiting for the {SAMPLES_OPERATOR} operator; last observed {observed}"
        return super().message(outcome, selector, snapshot)


class ImageStreamsImportedCondition(ConvergenceCondition[ImageStreamSnapshot]):
    """Succeeds once every named image stream in the listing is imported.

    ``waiting_on`` keeps the first unmet requirement of the latest listing for
    the timeout message.
    """

    snapshot_type = ImageStreamSnapshot

    def __init__(self, names: Sequence[str], registry_hostname: str = "") -> None:
        self.names = tuple(names)
        self.registry_hostname = registry_hostname
        self.waiting_on = "no image streams listed"

    def classify(self, snapshot: ImageStreamSnapshot) -> Classification:
        if image_stream_not_imported(snapshot, self.registry_hostname) is None:
            return Classification.SUCCEEDED
        return Classification.PENDING

    def classify_all(
        self, snapshots: Sequence[ImageStreamSnapshot]
    ) -> tuple[Classification, ImageStreamSnapshot | None, tuple[ImageStreamSnapshot, ...]]:
        by_name = {stream.name: stream for stream in snapshots}
        ready: list[ImageStreamSnapshot] = []
        for name in self.names:
            stream = by_name.get(name)
            if stream is None:
                self.waiting_on = f"image stream {name!r} not found"
                return Classification.PENDING, None, ()
            reason = image_stream_not_imported(stream, self.registry_hostname)
            if reason is not None:
                self.waiting_on = f"image stream {name!r}: {reason}"
                return Classification.PENDING, stream, ()
            ready.append(stream)
        self.waiting_on = ""
        return Classification.SUCCEEDED, (ready[-1] if ready else None), tuple(ready)

    def describe(self, snapshot: ImageStreamSnapshot) -> str:
        return image_stream_not_imported(snapshot, self.registry_hostname) or "imported"

    def message(self, outcome: Outcome, selector: Selector, snapshot: ImageStreamSnapshot | None) -> str:
        if outcome is Outcome.SUCCEEDED:
            return f"Imported {len(self.names)} image streams in {selector.namespace}"
        return f"Failed to import expected imagestreams in {selector.namespace}: {self.waiting_on}"


async def wait_for_openshift_namespace_image_streams(
    operator_client: ResourceClient,
    image_stream_client: ResourceClient,
    *,
    languages: Sequence[str] = SAMPLE_LANGUAGES,
    registry_hostname: str = "",
    namespace: str = OPENSHIFT_NAMESPACE,
    timeout: float = DEFAULT_SAMPLES_TIMEOUT,
    interval: float = DEFAULT_SAMPLES_INTERVAL,
    command: AdminCommand | None = None,
) -> ConvergenceResult:
    """Wait for the samples operator to settle, then for the language image streams."""
    _logger.info("scanning_openshift_image_streams", namespace=namespace, languages=list(languages))
    deadline = time.monotonic() + timeout

    operator = await PollWaiter(operator_client, by_name=True, tolerated=(ResourceClientError,)).wait(
        ConvergenceRequest(
            selector=Selector(namespace="", name=SAMPLES_OPERATOR),
            condition=SamplesOperatorReadyCondition(),
            deadline=deadline,
            interval=interval,
        )
    )
    if not operator.succeeded:
        if command is not None:
            await _dump_samples(command, namespace)
        return operator

    result = await PollWaiter(image_stream_client, tolerated=(ResourceClientError,)).wait(
        ConvergenceRequest(
            selector=Selector(namespace=namespace),
            condition=ImageStreamsImportedCondition(languages, registry_hostname),
            deadline=deadline,
            interval=interval,
        )
    )
    if not result.succeeded and command is not None:
        await _dump_samples(command, namespace)
    return result


async def _dump_samples(command: AdminCommand, namespace: str) -> None:
    for args, event in (
        (("is", "-n", namespace, "-o", "yaml"), "image_streams_dump"),
        (("clusteroperator", SAMPLES_OPERATOR, "-o", "yaml"), "samples_operator_dump"),
    ):
        try:
            output = await command.run("get", *args)
        except CommandError as exc:
            _logger.warning(f"{event}_failed", error=str(exc), stderr=exc.stderr)
            continue
        _logger.info(event, yaml=output.stdout)
