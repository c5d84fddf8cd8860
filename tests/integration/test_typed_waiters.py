"""Integration tests for the per-kind waiters against a scripted client.

Tests cover: two-phase build waits, image stream tags, rollouts with their
diagnostics, quota sync, service account provisioning, jobs and pod sets.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from kubewait.client.base import ForbiddenError, ListResult, NotFoundError, ResourceClientError
from kubewait.commands import CommandOutput
from kubewait.kinds.build import wait_for_a_build
from kubewait.kinds.deployment_config import wait_for_deployment_config
from kubewait.kinds.image_stream import (
    check_image_stream_latest_tag_populated,
    check_image_stream_tag_not_found,
    get_docker_image_reference,
    wait_for_an_image_stream,
    wait_for_an_image_stream_tag,
)
from kubewait.kinds.job import wait_for_a_job
from kubewait.kinds.pods import check_pod_is_ready, wait_for_pods, wait_until_pod_is_gone
from kubewait.kinds.resource_quota import synced_usage, wait_for_resource_quota_sync
from kubewait.kinds.service_account import wait_for_service_account
from kubewait.models.convergence import Outcome
from kubewait.models.snapshots import PodSnapshot

from ..conftest import (
    HANG,
    FakeCommand,
    FakeResourceClient,
    build,
    condition,
    deployment_config,
    event,
    image_stream,
    job,
    pod,
    quota,
    service_account,
)

# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------


class TestBuild:
    async def test_build_runs_to_completion(self) -> None:
        """A build is created, then watched to completion."""
        client = FakeResourceClient(
            gets=[NotFoundError("not found", status=404), build("app-1", "Pending", "1")],
            lists=[ListResult([build("app-1", "Pending", "1")], "1")],
            watches=[
                [
                    event(build("app-1", "Pending", "2")),
                    event(build("app-1", "Running", "3")),
                    event(build("app-1", "Complete", "4")),
                ]
            ],
        )

        result = await wait_for_a_build(
            client, "test-ns", "app-1", create_timeout=2.0, complete_timeout=2.0, create_interval=0.01
        )

        assert result.outcome is Outcome.SUCCEEDED
        assert result.snapshot is not None
        assert result.snapshot.phase == "Complete"
        assert len(client.get_calls) == 2

    async def test_creation_and_completion_timeouts_are_distinguishable(self) -> None:
        """A build that never appears differs from one that never finishes."""
        never_created = FakeResourceClient(gets=[NotFoundError("not found", status=404)])
        never_finished = FakeResourceClient(
            gets=[build("app-1", "Running")],
            lists=[ListResult([build("app-1", "Running")], "1")],
            watches=[[HANG]],
        )

        create_result = await wait_for_a_build(
            never_created, "test-ns", "app-1", create_timeout=0.05, complete_timeout=5.0, create_interval=0.01
        )
        complete_result = await wait_for_a_build(
            never_finished, "test-ns", "app-1", create_timeout=5.0, complete_timeout=0.05
        )

        assert create_result.outcome is Outcome.TIMED_OUT
        assert complete_result.outcome is Outcome.TIMED_OUT
        assert create_result.message == "Timed out waiting for build 'app-1' to be created"
        assert complete_result.message.startswith("Timed out waiting for build 'app-1' to complete")
        assert 'phase "Running"' in complete_result.message
        assert create_result.snapshot is None
        assert complete_result.snapshot is not None

    async def test_forbidden_during_creation_is_pending(self) -> None:
        """Forbidden reads while waiting for creation are retried."""
        client = FakeResourceClient(
            gets=[ForbiddenError("forbidden", status=403), build("app-1", "Complete")],
            lists=[ListResult([build("app-1", "Complete")], "1")],
        )

        result = await wait_for_a_build(client, "test-ns", "app-1", create_interval=0.01)

        assert result.outcome is Outcome.SUCCEEDED

    async def test_custom_predicates_override_defaults(self) -> None:
        """Caller predicates replace the default phase checks."""
        client = FakeResourceClient(
            gets=[build("app-1", "Running")],
            lists=[ListResult([build("app-1", "Running")], "1")],
        )

        result = await wait_for_a_build(client, "test-ns", "app-1", success=lambda b: b.phase == "Running")

        assert result.outcome is Outcome.SUCCEEDED


# ---------------------------------------------------------------------------
# Image streams
# ---------------------------------------------------------------------------


class TestImageStream:
    async def test_tag_appears_through_watch(self) -> None:
        """A tag recorded through the watch succeeds."""
        client = FakeResourceClient(
            lists=[ListResult([image_stream("ruby")], "1")],
            watches=[[event(image_stream("ruby", {"2.7": ["registry/ruby@sha256:aa"]}, "2"))]],
        )

        result = await wait_for_an_image_stream_tag(client, "test-ns", "ruby", "2.7", timeout=2.0)

        assert result.outcome is Outcome.SUCCEEDED

    async def test_empty_tag_history_fails_at_deadline(self) -> None:
        """Deadline expiry is reported as a failed import, not a timeout."""
        client = FakeResourceClient(lists=[ListResult([image_stream("ruby", {"2.7": []})], "1")])

        result = await wait_for_an_image_stream_tag(client, "test-ns", "ruby", "2.7", timeout=0.05)

        assert result.outcome is Outcome.FAILED
        assert result.message.startswith("timed out while waiting for image stream tag test-ns/ruby:2.7")

    async def test_generic_wait_reports_repository_check_on_failure(self) -> None:
        """The repository check annotation is reported on failure."""
        stream = image_stream(
            "ruby", annotations={"openshift.io/image.dockerRepositoryCheck": "error: not found"}
        )
        client = FakeResourceClient(lists=[ListResult([stream], "1")])

        result = await wait_for_an_image_stream(
            client,
            "test-ns",
            "ruby",
            check_image_stream_latest_tag_populated,
            check_image_stream_tag_not_found,
            timeout=1.0,
        )

        assert result.outcome is Outcome.FAILED
        assert "error: not found" in result.message

    async def test_docker_image_reference(self) -> None:
        """The newest image of a tag is returned."""
        client = FakeResourceClient(
            gets=[image_stream("ruby", {"latest": ["registry/ruby@sha256:new", "registry/ruby@sha256:old"]})]
        )

        ref = await get_docker_image_reference(client, "test-ns", "ruby", "latest")

        assert ref == "registry/ruby@sha256:new"

    async def test_docker_image_reference_missing_tag(self) -> None:
        """A missing tag raises LookupError."""
        client = FakeResourceClient(gets=[image_stream("ruby")])

        with pytest.raises(LookupError, match="does not have tag"):
            await get_docker_image_reference(client, "test-ns", "ruby", "latest")


# ---------------------------------------------------------------------------
# Deployment config rollout
# ---------------------------------------------------------------------------


def _available(version: int) -> dict:
    return deployment_config(
        "frontend",
        version,
        [
            condition("Progressing", "True", "NewReplicationControllerAvailable"),
            condition("Available", "True"),
        ],
    )


class TestRollout:
    async def test_rollout_success_lists_deployment_pods(self) -> None:
        """A completed rollout returns the deployment's pods."""
        dc_client = FakeResourceClient(
            lists=[ListResult([deployment_config("frontend", 1, [])], "1")],
            watches=[[event(_available(2))]],
        )
        pod_client = FakeResourceClient(lists=[ListResult([pod("frontend-2-abc", "Running")], "1")])
        command = FakeCommand()

        result = await wait_for_deployment_config(
            dc_client, pod_client, "test-ns", "frontend", 2, timeout=2.0, command=command
        )

        assert result.outcome is Outcome.SUCCEEDED
        assert pod_client.list_calls[0].label_selector == "openshift.io/deployment.name=frontend-2"
        assert command.calls == []

    async def test_older_version_is_pending(self) -> None:
        """An older latestVersion keeps the rollout pending."""
        dc_client = FakeResourceClient(lists=[ListResult([_available(1)], "1")])

        result = await wait_for_deployment_config(
            dc_client, FakeResourceClient(), "test-ns", "frontend", 2, timeout=0.05
        )

        assert result.outcome is Outcome.TIMED_OUT
        assert "latestVersion=1" in result.message

    async def test_not_progressing_fails_when_enforced_and_dumps_yaml(self) -> None:
        """Progressing=False fails when enforced and dumps the config."""
        stalled = deployment_config(
            "frontend", 2, [condition("Progressing", "False", "ProgressDeadlineExceeded")]
        )
        dc_client = FakeResourceClient(lists=[ListResult([stalled], "1")])
        command = FakeCommand({"get": CommandOutput(stdout="kind: DeploymentConfig")})

        result = await wait_for_deployment_config(
            dc_client,
            FakeResourceClient(),
            "test-ns",
            "frontend",
            2,
            enforce_not_progressing=True,
            timeout=2.0,
            command=command,
        )

        assert result.outcome is Outcome.FAILED
        assert "not progressing" in result.message
        assert command.calls == [("get", "dc", "frontend", "-o", "yaml")]

    async def test_not_progressing_is_pending_without_enforcement(self) -> None:
        """Progressing=False is only pending without enforcement."""
        stalled = deployment_config("frontend", 2, [condition("Progressing", "False")])
        dc_client = FakeResourceClient(lists=[ListResult([stalled], "1")])

        result = await wait_for_deployment_config(
            dc_client, FakeResourceClient(), "test-ns", "frontend", 2, timeout=0.05
        )

        assert result.outcome is Outcome.TIMED_OUT


# ---------------------------------------------------------------------------
# Resource quota
# ---------------------------------------------------------------------------


class TestQuota:
    async def test_increment_syncs_on_second_observation(self) -> None:
        """Usage rising to the expectation syncs the quota."""
        client = FakeResourceClient(
            lists=[ListResult([quota("compute", {"cpu": "1", "memory": "1Gi"}, "1")], "1")],
            watches=[[event(quota("compute", {"cpu": "2", "memory": "1Gi"}, "2"))]],
        )

        result = await wait_for_resource_quota_sync(
            client, "test-ns", "compute", {"cpu": "2"}, upper_limit=True, timeout=2.0
        )

        assert result.outcome is Outcome.SUCCEEDED
        assert len(client.watch_calls) == 1
        assert result.snapshot is not None
        assert result.snapshot.resource_version == "2"
        assert synced_usage(result, {"cpu": Decimal(2)}) == {"cpu": Decimal(2)}

    async def test_decrement_in_lower_limit_mode(self) -> None:
        """Usage dropping to the expectation syncs in lower-limit mode."""
        client = FakeResourceClient(
            lists=[ListResult([quota("compute", {"pods": "3"}, "1")], "1")],
            watches=[[event(quota("compute", {"pods": "2"}, "2")), event(quota("compute", {"pods": "0"}, "3"))]],
        )

        result = await wait_for_resource_quota_sync(
            client, "test-ns", "compute", {"pods": 1}, upper_limit=False, timeout=2.0
        )

        assert result.outcome is Outcome.SUCCEEDED
        assert result.snapshot is not None
        assert result.snapshot.resource_version == "3"

    async def test_missing_resource_name_never_syncs(self) -> None:
        """An expected resource absent from usage never syncs."""
        client = FakeResourceClient(lists=[ListResult([quota("compute", {"cpu": "4"})], "1")])

        result = await wait_for_resource_quota_sync(
            client, "test-ns", "compute", {"cpu": "2", "services": "1"}, timeout=0.05
        )

        assert result.outcome is Outcome.TIMED_OUT
        assert "Timed out waiting for quota test-ns/compute" in result.message


# ---------------------------------------------------------------------------
# Service accounts, jobs and pods
# ---------------------------------------------------------------------------


class TestServiceAccount:
    async def test_waits_for_dockercfg_secret(self) -> None:
        """The service account is ready once its dockercfg secret exists."""
        client = FakeResourceClient(
            gets=[
                NotFoundError("not found", status=404),
                ForbiddenError("forbidden", status=403),
                service_account("builder", ["builder-token-abc"]),
                service_account("builder", ["builder-token-abc", "builder-dockercfg-xyz"]),
            ]
        )

        result = await wait_for_service_account(client, "test-ns", "builder", timeout=2.0, interval=0.01)

        assert result.outcome is Outcome.SUCCEEDED
        assert len(client.get_calls) == 4

    async def test_server_error_is_fatal(self) -> None:
        """A server error reading the service account is fatal."""
        client = FakeResourceClient(gets=[ResourceClientError("internal error", status=500)])

        result = await wait_for_service_account(client, "test-ns", "builder", timeout=2.0, interval=0.01)

        assert result.outcome is Outcome.FATAL_ERROR


class TestJob:
    async def test_job_completion(self) -> None:
        """A Complete condition ends the job wait."""
        client = FakeResourceClient(
            gets=[job("migrate", [condition("Complete", "False")]), job("migrate", [condition("Complete", "True")])]
        )

        result = await wait_for_a_job(client, "test-ns", "migrate", timeout=2.0, interval=0.01)

        assert result.outcome is Outcome.SUCCEEDED


class TestPods:
    async def test_waits_for_exact_ready_count(self) -> None:
        """The wait ends when exactly the expected pods are ready."""
        client = FakeResourceClient(
            lists=[
                ListResult([pod("web-1", "Running", ready=True), pod("web-2", "Running")], "1"),
                ListResult([pod("web-1", "Running", ready=True), pod("web-2", "Running", ready=True)], "2"),
            ]
        )

        result = await wait_for_pods(client, "test-ns", "app=web", check_pod_is_ready, 2, timeout=2.0, interval=0.01)

        assert result.outcome is Outcome.SUCCEEDED
        assert [p.name for p in result.items] == ["web-1", "web-2"]

    async def test_too_many_matching_pods_is_pending(self) -> None:
        """More matching pods than expected keeps the wait pending."""
        client = FakeResourceClient(
            lists=[ListResult([pod("web-1", "Running"), pod("web-2", "Running")], "1")]
        )

        result = await wait_for_pods(
            client, "test-ns", "app=web", lambda p: p.phase == "Running", 1, timeout=0.05, interval=0.01
        )

        assert result.outcome is Outcome.TIMED_OUT

    async def test_pod_gone(self) -> None:
        """The wait ends once the pod is not found."""
        client = FakeResourceClient(gets=[pod("web-1", "Running"), NotFoundError("not found", status=404)])

        result = await wait_until_pod_is_gone(client, "test-ns", "web-1", timeout=2.0, interval=0.01)

        assert result.outcome is Outcome.SUCCEEDED
        assert isinstance(result.snapshot, PodSnapshot)
        assert result.snapshot.name == "web-1"
