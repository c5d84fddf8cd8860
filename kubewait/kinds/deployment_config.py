"""DeploymentConfig rollout waiter.

A rollout has converged once ``status.latestVersion`` reached the requested
version, the Progressing condition is True with reason
NewReplicationControllerAvailable, and the Available condition is True.
With ``enforce_not_progressing`` a Progressing=False condition is a terminal
failure rather than something to wait out.
"""

from __future__ import annotations

from kubewait.client.base import ResourceClient, ResourceClientError
from kubewait.commands import AdminCommand, CommandError
from kubewait.kinds.pods import check_pod_no_op, get_pod_names_by_filter
from kubewait.models.convergence import (
    Classification,
    ConvergenceRequest,
    ConvergenceResult,
    Outcome,
    Selector,
)
from kubewait.models.snapshots import DeploymentConfigSnapshot, find_condition
from kubewait.observability.logging import get_logger
from kubewait.waiters.conditions import ConvergenceCondition
from kubewait.waiters.engine import ConvergenceWaiter

_logger = get_logger("kinds.deployment_config")

CONDITION_PROGRESSING = "Progressing"
CONDITION_AVAILABLE = "Available"
NEW_RC_AVAILABLE_REASON = "NewReplicationControllerAvailable"
DEPLOYMENT_LABEL = "openshift.io/deployment.name"
DEFAULT_ROLLOUT_TIMEOUT = 900.0


def latest_deployment_name(config_name: str, version: int) -> str:
    return f"{config_name}-{version}"


class RolloutCondition(ConvergenceCondition[DeploymentConfigSnapshot]):
    snapshot_type = DeploymentConfigSnapshot

    def __init__(self, version: int, enforce_not_progressing: bool = False) -> None:
        self.version = version
        self.enforce_not_progressing = enforce_not_progressing

    def classify(self, snapshot: DeploymentConfigSnapshot) -> Classification:
        if snapshot.latest_version < self.version:
            return Classification.PENDING

        progressing = find_condition(snapshot.conditions, CONDITION_PROGRESSING)
        available = find_condition(snapshot.conditions, CONDITION_AVAILABLE)

        if (
            progressing is not None
            and progressing.is_true
            and progressing.reason == NEW_RC_AVAILABLE_REASON
            and available is not None
            and available.is_true
        ):
            return Classification.SUCCEEDED
        if self.enforce_not_progressing and progressing is not None and progressing.is_false:
            return Classification.FAILED
        return Classification.PENDING

    def describe(self, snapshot: DeploymentConfigSnapshot) -> str:
        parts = [f"latestVersion={snapshot.latest_version}"]
        for type_ in (CONDITION_PROGRESSING, CONDITION_AVAILABLE):
            cond = find_condition(snapshot.conditions, type_)
            if cond is None:
                parts.append(f"{type_}=<absent>")
                continue
            text = f"{type_}={cond.status}"
            if cond.reason:
                text += f"({cond.reason})"
            parts.append(text)
        return " ".join(parts)

    def message(self, outcome: Outcome, selector: Selector, snapshot: DeploymentConfigSnapshot | None) -> str:
        target = f"{selector.namespace}/{selector.name}"
        observed = self.describe(snapshot) if snapshot is not None else "<not observed>"
        if outcome is Outcome.FAILED:
            return f"deploymentconfig {target} not progressing: {observed}"
        if outcome is Outcome.TIMED_OUT:
            return f"timed out waiting for deploymentconfig {target} to be available with version {self.version}: {observed}"
        return super().message(outcome, selector, snapshot)


async def wait_for_deployment_config(
    dc_client: ResourceClient,
    pod_client: ResourceClient,
    namespace: str,
    name: str,
    version: int,
    enforce_not_progressing: bool = False,
    *,
    timeout: float = DEFAULT_ROLLOUT_TIMEOUT,
    reconnect_delay: float = 1.0,
    command: AdminCommand | None = None,
) -> ConvergenceResult:
    """Wait for deploymentconfig *name* to roll out *version* and report availability."""
    _logger.info("waiting_for_rollout", namespace=namespace, name=name, version=version)
    request = ConvergenceRequest.create(
        Selector(namespace=namespace, name=name),
        RolloutCondition(version, enforce_not_progressing),
        timeout=timeout,
        interval=reconnect_delay,
    )
    result = await ConvergenceWaiter(dc_client).wait(request)

    if not result.succeeded:
        if command is not None:
            await _dump_deployment_config(command, name)
        return result

    snapshot = result.snapshot
    if not isinstance(snapshot, DeploymentConfigSnapshot):
        return result
    label = f"{DEPLOYMENT_LABEL}={latest_deployment_name(name, snapshot.latest_version)}"
    try:
        pod_names = await get_pod_names_by_filter(pod_client, namespace, label, check_pod_no_op)
    except ResourceClientError as exc:
        _logger.warning("rollout_pod_listing_failed", name=name, error=str(exc))
        pod_names = []
    _logger.info(
        "deploymentconfig_available",
        namespace=namespace,
        name=name,
        elapsed=round(result.elapsed, 3),
        pods=pod_names,
    )
    return result


async def _dump_deployment_config(command: AdminCommand, name: str) -> None:
    try:
        output = await command.run("get", "dc", name, "-o", "yaml")
    except CommandError as exc:
        _logger.warning("deploymentconfig_dump_failed", name=name, error=str(exc), stderr=exc.stderr)
        return
    _logger.info("deploymentconfig_dump", name=name, yaml=output.stdout)
