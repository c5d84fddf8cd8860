"""Unit tests for the click CLI, with scripted clients in place of a cluster."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import pytest
from click.testing import CliRunner

from kubewait.cli import cli
from kubewait.client.base import ListResult, NotFoundError, ResourceClientError

from ..conftest import (
    FakeCommand,
    FakeResourceClient,
    access_review,
    build,
    cluster_operator,
    condition,
    core_event,
    image_stream,
    job,
    pod,
    quota,
    service_account,
)


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def clients(monkeypatch: pytest.MonkeyPatch) -> dict[str, FakeResourceClient]:
    """Register fake clients per kind; the CLI's client factory hands them out."""
    registry: dict[str, FakeResourceClient] = {}

    @asynccontextmanager
    async def fake_kube_clients(config: Any, init: Any) -> AsyncIterator[Any]:
        yield lambda kind: registry.setdefault(kind, FakeResourceClient(kind))

    for key in ("KUBEWAIT_LOG_LEVEL", "KUBEWAIT_SERVICE_ACCOUNT_INTERVAL", "KUBEWAIT_POD_INTERVAL", "KUBEWAIT_JOB_INTERVAL"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr("kubewait.cli.main.kube_clients", fake_kube_clients)
    monkeypatch.setattr("kubewait.cli.main.setup_logging", lambda *args, **kwargs: None)
    monkeypatch.setattr("kubewait.cli.main.make_command", lambda namespace, init: FakeCommand())
    return registry


class TestExitCodes:
    def test_job_success(self, runner: CliRunner, clients: dict[str, FakeResourceClient]) -> None:
        clients["Job"] = FakeResourceClient(gets=[job("migrate", [{"type": "Complete", "status": "True"}])])

        result = runner.invoke(cli, ["job", "migrate", "-n", "test-ns", "--timeout", "5"])

        assert result.exit_code == 0, result.output
        assert "converged" in result.output

    def test_build_failure_exit_code(self, runner: CliRunner, clients: dict[str, FakeResourceClient]) -> None:
        clients["Build"] = FakeResourceClient(
            gets=[build("app-1", "Running")],
            lists=[ListResult([build("app-1", "Failed")], "1")],
        )

        result = runner.invoke(cli, ["build", "app-1", "-n", "test-ns"])

        assert result.exit_code == 1
        assert 'status is "Failed"' in result.output

    def test_build_never_observed_is_severe(self, runner: CliRunner, clients: dict[str, FakeResourceClient]) -> None:
        clients["Build"] = FakeResourceClient(gets=[ResourceClientError("internal error", status=500)])

        result = runner.invoke(cli, ["build", "app-1", "-n", "test-ns"])

        assert result.exit_code == 3
        assert "Severe error waiting for build" in result.output

    def test_timeout_exit_code(self, runner: CliRunner, clients: dict[str, FakeResourceClient]) -> None:
        clients["ServiceAccount"] = FakeResourceClient(gets=[NotFoundError("not found", status=404)])

        result = runner.invoke(cli, ["service-account", "builder", "-n", "test-ns", "--timeout", "0.2"])

        assert result.exit_code == 2

    def test_fatal_exit_code(self, runner: CliRunner, clients: dict[str, FakeResourceClient]) -> None:
        clients["Pod"] = FakeResourceClient(gets=[ResourceClientError("internal error", status=500)])

        result = runner.invoke(cli, ["pod-gone", "web-1", "-n", "test-ns", "--timeout", "5"])

        assert result.exit_code == 3
        assert "Error waiting for Pod test-ns/web-1" in result.output

    def test_client_error_after_build_observed_is_fatal(
        self, runner: CliRunner, clients: dict[str, FakeResourceClient]
    ) -> None:
        """A build seen once and then unreadable exits as a fatal error, not a timeout."""
        clients["Build"] = FakeResourceClient(
            gets=[build("app-1", "Running")],
            lists=[ResourceClientError("internal error", status=500)],
        )

        result = runner.invoke(cli, ["build", "app-1", "-n", "test-ns"])

        assert result.exit_code == 3
        assert "Error waiting for Build" in result.output


class TestCommands:
    def test_pods_prints_matching_names(self, runner: CliRunner, clients: dict[str, FakeResourceClient]) -> None:
        clients["Pod"] = FakeResourceClient(
            lists=[ListResult([pod("web-1", "Running"), pod("web-2", "Running"), pod("db-1", "Pending")], "1")]
        )

        result = runner.invoke(
            cli, ["pods", "-n", "test-ns", "-l", "tier=app", "--predicate", "running", "--count", "2"]
        )

        assert result.exit_code == 0, result.output
        assert "web-1" in result.output
        assert "web-2" in result.output
        assert clients["Pod"].list_calls[0].label_selector == "tier=app"

    def test_quota_parses_expectations(self, runner: CliRunner, clients: dict[str, FakeResourceClient]) -> None:
        clients["ResourceQuota"] = FakeResourceClient(
            lists=[ListResult([quota("compute", {"cpu": "2", "memory": "1Gi"})], "1")]
        )

        result = runner.invoke(
            cli, ["quota", "compute", "-n", "test-ns", "--expect", "cpu=2", "--expect", "memory=1Gi"]
        )

        assert result.exit_code == 0, result.output

    def test_quota_rejects_malformed_expectation(self, runner: CliRunner, clients: dict[str, FakeResourceClient]) -> None:
        result = runner.invoke(cli, ["quota", "compute", "-n", "test-ns", "--expect", "cpu"])

        assert result.exit_code == 2
        assert "NAME=QUANTITY" in result.output

    def test_service_account_success(self, runner: CliRunner, clients: dict[str, FakeResourceClient]) -> None:
        clients["ServiceAccount"] = FakeResourceClient(gets=[service_account("builder", ["builder-dockercfg-1"])])

        result = runner.invoke(cli, ["service-account", "builder", "-n", "test-ns"])

        assert result.exit_code == 0, result.output

    def test_namespace_is_required(self, runner: CliRunner, clients: dict[str, FakeResourceClient]) -> None:
        result = runner.invoke(cli, ["job", "migrate"])

        assert result.exit_code == 2

    def test_invalid_config_is_usage_error(
        self, runner: CliRunner, clients: dict[str, FakeResourceClient], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("KUBEWAIT_ROLLOUT_TIMEOUT", "-1")

        result = runner.invoke(cli, ["job", "migrate", "-n", "test-ns"])

        assert result.exit_code == 2
        assert "KUBEWAIT_ROLLOUT_TIMEOUT" in result.output

    def test_user_authorized(self, runner: CliRunner, clients: dict[str, FakeResourceClient]) -> None:
        """The review is created for the given user, verb and resource."""
        clients["SubjectAccessReview"] = FakeResourceClient(creates=[access_review(True)])

        result = runner.invoke(
            cli, ["user-authorized", "alice", "-n", "test-ns", "--verb", "create", "--resource", "pods"]
        )

        assert result.exit_code == 0, result.output
        _, body = clients["SubjectAccessReview"].create_calls[0]
        assert body["spec"]["resourceAttributes"] == {"namespace": "test-ns", "verb": "create", "resource": "pods"}

    def test_build_event_mismatch_fails(self, runner: CliRunner, clients: dict[str, FakeResourceClient]) -> None:
        clients["Event"] = FakeResourceClient(
            lists=[ListResult([core_event("app-1.1", "BuildStarted", "other")], "1")]
        )

        result = runner.invoke(
            cli, ["build-event", "app-1", "-n", "test-ns", "--reason", "BuildStarted", "--message", "expected"]
        )

        assert result.exit_code == 1

    def test_samples_with_explicit_languages(self, runner: CliRunner, clients: dict[str, FakeResourceClient]) -> None:
        """Only the requested languages are required."""
        clients["ClusterOperator"] = FakeResourceClient(
            gets=[cluster_operator("openshift-samples", [condition("Available", "True")])]
        )
        clients["ImageStream"] = FakeResourceClient(
            lists=[ListResult([image_stream("ruby", {"latest": ["ruby@sha256:1"]}, spec_tags=["latest"])], "1")]
        )

        result = runner.invoke(cli, ["samples", "--language", "ruby"])

        assert result.exit_code == 0, result.output
        assert "Imported 1 image streams in openshift" in result.output
