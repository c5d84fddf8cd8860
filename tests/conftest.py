"""Shared fakes and fixtures for kubewait tests.

Provides in-memory collaborators and raw object factories so the waiters can
be driven without a cluster.  FakeResourceClient is scripted with queues of
list results, watch sessions, get and create results.  The last list/get/create
entry repeats once the queue drains; a drained watch queue opens sessions
that hang until cancelled.
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import AsyncIterator, Iterable
from typing import Any

import pytest

from kubewait.client.base import ListResult, ResourceClient, WatchEvent
from kubewait.commands import CommandError, CommandOutput
from kubewait.models.convergence import EventType, Selector

# Watch session item: block until the waiter is cancelled.
HANG = object()

ListStep = ListResult | Exception
GetStep = dict[str, Any] | Exception


class FakeResourceClient(ResourceClient):
    def __init__(
        self,
        kind: str = "",
        lists: Iterable[ListStep] = (),
        watches: Iterable[list[Any]] = (),
        gets: Iterable[GetStep] = (),
        creates: Iterable[GetStep] = (),
    ) -> None:
        self.kind = kind
        self._lists: deque[ListStep] = deque(lists)
        self._watches: deque[list[Any]] = deque(watches)
        self._gets: deque[GetStep] = deque(gets)
        self._creates: deque[GetStep] = deque(creates)
        self.list_calls: list[Selector] = []
        self.watch_calls: list[tuple[Selector, str]] = []
        self.get_calls: list[tuple[str, str]] = []
        self.create_calls: list[tuple[str, dict[str, Any]]] = []
        self.closed_watches = 0

    @staticmethod
    def _next(queue: deque[Any], default: Any) -> Any:
        if not queue:
            return default
        if len(queue) > 1:
            return queue.popleft()
        return queue[0]

    async def list(self, selector: Selector) -> ListResult:
        self.list_calls.append(selector)
        step = self._next(self._lists, ListResult())
        if isinstance(step, Exception):
            raise step
        return step

    async def watch(self, selector: Selector, resource_version: str) -> AsyncIterator[WatchEvent]:
        self.watch_calls.append((selector, resource_version))
        session = self._watches.popleft() if self._watches else [HANG]
        try:
            for item in session:
                if item is HANG:
                    await asyncio.Event().wait()
                if isinstance(item, Exception):
                    raise item
                yield item
        finally:
            self.closed_watches += 1

    async def get(self, namespace: str, name: str) -> dict[str, Any]:
        self.get_calls.append((namespace, name))
        step = self._next(self._gets, None)
        if step is None:
            raise AssertionError(f"unexpected get of {namespace}/{name}")
        if isinstance(step, Exception):
            raise step
        return step

    async def create(self, namespace: str, body: dict[str, Any]) -> dict[str, Any]:
        self.create_calls.append((namespace, body))
        step = self._next(self._creates, None)
        if step is None:
            raise AssertionError(f"unexpected create in {namespace!r}")
        if isinstance(step, Exception):
            raise step
        return step


class FakeCommand:
    """AdminCommand that records invocations and replays canned output."""

    def __init__(self, outputs: dict[str, CommandOutput | CommandError] | None = None) -> None:
        self.outputs = outputs or {}
        self.calls: list[tuple[str, ...]] = []

    async def run(self, command: str, *args: str) -> CommandOutput:
        self.calls.append((command, *args))
        output = self.outputs.get(command, CommandOutput(stdout=""))
        if isinstance(output, CommandError):
            raise output
        return output


# ---------------------------------------------------------------------------
# Raw object factories
# ---------------------------------------------------------------------------


def meta(name: str, namespace: str = "test-ns", resource_version: str = "1", **extra: Any) -> dict[str, Any]:
    return {"name": name, "namespace": namespace, "resourceVersion": resource_version, **extra}


def build(name: str, phase: str, resource_version: str = "1", **status: Any) -> dict[str, Any]:
    return {
        "kind": "Build",
        "metadata": meta(name, resource_version=resource_version, creationTimestamp="2026-01-01T00:00:00Z"),
        "status": {"phase": phase, **status},
    }


def image_stream(
    name: str,
    tags: dict[str, list[str]] | None = None,
    resource_version: str = "1",
    annotations: dict[str, str] | None = None,
    spec_tags: list[str] | None = None,
) -> dict[str, Any]:
    return {
        "kind": "ImageStream",
        "metadata": meta(name, resource_version=resource_version, annotations=annotations or {}),
        "spec": {"tags": [{"name": tag} for tag in spec_tags or []]},
        "status": {
            "dockerImageRepository": f"image-registry.local/test-ns/{name}",
            "tags": [
                {"tag": tag, "items": [{"dockerImageReference": ref, "image": f"sha256:{i}"} for i, ref in enumerate(refs)]}
                for tag, refs in (tags or {}).items()
            ],
        },
    }


def condition(type_: str, status: str, reason: str = "") -> dict[str, Any]:
    return {"type": type_, "status": status, "reason": reason, "message": ""}


def deployment_config(
    name: str,
    latest_version: int,
    conditions: list[dict[str, Any]],
    resource_version: str = "1",
) -> dict[str, Any]:
    return {
        "kind": "DeploymentConfig",
        "metadata": meta(name, resource_version=resource_version),
        "status": {"latestVersion": latest_version, "conditions": conditions},
    }


def quota(name: str, used: dict[str, str], resource_version: str = "1") -> dict[str, Any]:
    return {
        "kind": "ResourceQuota",
        "metadata": meta(name, resource_version=resource_version),
        "status": {"hard": {k: "100" for k in used}, "used": used},
    }


def service_account(name: str, secrets: list[str]) -> dict[str, Any]:
    return {
        "kind": "ServiceAccount",
        "metadata": meta(name),
        "secrets": [{"name": s} for s in secrets],
    }


def pod(name: str, phase: str, ready: bool = False, labels: dict[str, str] | None = None) -> dict[str, Any]:
    return {
        "kind": "Pod",
        "metadata": meta(name, labels=labels or {}),
        "status": {
            "phase": phase,
            "conditions": [condition("Ready", "True" if ready else "False")],
        },
    }


def job(name: str, conditions: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    return {"kind": "Job", "metadata": meta(name), "status": {"conditions": conditions or []}}


def event(obj: dict[str, Any], type_: EventType = EventType.MODIFIED) -> WatchEvent:
    return WatchEvent(type=type_, object=obj)


def cluster_operator(name: str, conditions: list[dict[str, Any]]) -> dict[str, Any]:
    return {"kind": "ClusterOperator", "metadata": meta(name, namespace=""), "status": {"conditions": conditions}}


def access_review(allowed: bool, reason: str = "") -> dict[str, Any]:
    return {
        "kind": "SubjectAccessReview",
        "metadata": meta("", namespace=""),
        "status": {"allowed": allowed, "reason": reason},
    }


def core_event(name: str, reason: str, message: str, involved: str = "app-1") -> dict[str, Any]:
    return {
        "kind": "Event",
        "metadata": meta(name),
        "involvedObject": {"kind": "Build", "name": involved, "namespace": "test-ns"},
        "reason": reason,
        "message": message,
    }


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def fake_command() -> FakeCommand:
    """AdminCommand that succeeds with empty output and records its calls."""
    return FakeCommand()
