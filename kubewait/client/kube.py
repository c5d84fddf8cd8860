"""ResourceClient backed by kubernetes-asyncio.

Core and batch kinds go through the typed APIs and are converted back to
camelCase dicts with ``sanitize_for_serialization``; OpenShift kinds go
through CustomObjectsApi, which already returns dicts.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from typing import Any

import aiohttp
from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]
from kubernetes_asyncio import watch as k8s_watch  # type: ignore[import-untyped]
from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

from kubewait.client.base import (
    ExpiredError,
    ListResult,
    ResourceClient,
    ResourceClientError,
    WatchEvent,
    error_from_status,
)
from kubewait.models.convergence import EventType, Selector
from kubewait.observability.logging import get_logger

_logger = get_logger("client.kube")


@dataclass(frozen=True)
class ApiResource:
    """Where a kind lives in the API."""

    kind: str
    group: str
    version: str
    plural: str
    singular: str = ""
    namespaced: bool = True

    @property
    def typed(self) -> bool:
        return (self.group, self.version) in _TYPED_APIS


_TYPED_APIS: dict[tuple[str, str], Callable[[Any], Any]] = {
    ("", "v1"): k8s_client.CoreV1Api,
    ("batch", "v1"): k8s_client.BatchV1Api,
    ("authorization.k8s.io", "v1"): k8s_client.AuthorizationV1Api,
}

API_RESOURCES: dict[str, ApiResource] = {
    "Build": ApiResource("Build", "build.openshift.io", "v1", "builds"),
    "ImageStream": ApiResource("ImageStream", "image.openshift.io", "v1", "imagestreams"),
    "DeploymentConfig": ApiResource("DeploymentConfig", "apps.openshift.io", "v1", "deploymentconfigs"),
    "ResourceQuota": ApiResource("ResourceQuota", "", "v1", "resourcequotas", "resource_quota"),
    "ServiceAccount": ApiResource("ServiceAccount", "", "v1", "serviceaccounts", "service_account"),
    "Pod": ApiResource("Pod", "", "v1", "pods", "pod"),
    "Job": ApiResource("Job", "batch", "v1", "jobs", "job"),
    "Event": ApiResource("Event", "", "v1", "events", "event"),
    "ClusterOperator": ApiResource(
        "ClusterOperator", "config.openshift.io", "v1", "clusteroperators", namespaced=False
    ),
    "SubjectAccessReview": ApiResource(
        "SubjectAccessReview",
        "authorization.k8s.io",
        "v1",
        "subjectaccessreviews",
        "subject_access_review",
        namespaced=False,
    ),
}


def _translate(exc: ApiException) -> ResourceClientError:
    return error_from_status(exc.status, str(exc.reason or ""), f"{exc.status} {exc.reason}: {exc.body or ''}".strip())


class KubeResourceClient(ResourceClient):
    """List/get/watch one kind through kubernetes-asyncio."""

    def __init__(
        self,
        api_client: Any,
        resource: ApiResource,
        server_timeout_seconds: int = 300,
    ) -> None:
        self._api_client = api_client
        self._resource = resource
        self._server_timeout = server_timeout_seconds
        self.kind = resource.kind

    # ------------------------------------------------------------------
    # Call plumbing
    # ------------------------------------------------------------------

    def _call(self, verb: str, namespace: str) -> tuple[Callable[..., Any], dict[str, Any]]:
        """Resolve *verb* (list, read or create) to an API method and its scope kwargs."""
        r = self._resource
        scope = "namespaced_" if r.namespaced else ""
        kwargs: dict[str, Any] = {"namespace": namespace} if r.namespaced else {}
        if r.typed:
            api = _TYPED_APIS[(r.group, r.version)](self._api_client)
            return getattr(api, f"{verb}_{scope}{r.singular}"), kwargs
        api = k8s_client.CustomObjectsApi(self._api_client)
        custom_verb = "get" if verb == "read" else verb
        kwargs.update(group=r.group, version=r.version, plural=r.plural)
        return getattr(api, f"{custom_verb}_{scope or 'cluster_'}custom_object"), kwargs

    @staticmethod
    def _selector_kwargs(selector: Selector) -> dict[str, Any]:
        kwargs: dict[str, Any] = {}
        if selector.field_selector:
            kwargs["field_selector"] = selector.field_selector
        if selector.label_selector:
            kwargs["label_selector"] = selector.label_selector
        return kwargs

    def _as_dict(self, obj: Any) -> dict[str, Any]:
        if isinstance(obj, dict):
            return obj
        return self._api_client.sanitize_for_serialization(obj)  # type: ignore[no-any-return]

    # ------------------------------------------------------------------
    # ResourceClient
    # ------------------------------------------------------------------

    async def list(self, selector: Selector) -> ListResult:
        fn, scope = self._call("list", selector.namespace)
        try:
            resp = await fn(**scope, **self._selector_kwargs(selector))
        except ApiException as exc:
            raise _translate(exc) from exc
        except aiohttp.ClientError as exc:
            raise ResourceClientError(f"transport error: {exc}") from exc
        data = self._as_dict(resp)
        return ListResult(
            items=list(data.get("items") or []),
            resource_version=str((data.get("metadata") or {}).get("resourceVersion", "")),
        )

    async def watch(self, selector: Selector, resource_version: str) -> AsyncIterator[WatchEvent]:
        fn, scope = self._call("list", selector.namespace)
        kwargs = {**scope, **self._selector_kwargs(selector)}
        if resource_version:
            kwargs["resource_version"] = resource_version
        try:
            async with k8s_watch.Watch().stream(fn, timeout_seconds=self._server_timeout, **kwargs) as stream:
                async for event in stream:
                    raw = event.get("raw_object") or self._as_dict(event.get("object"))
                    if event.get("type") == "ERROR":
                        err = error_from_status(raw.get("code"), str(raw.get("reason", "")), str(raw.get("message", "")))
                        if isinstance(err, ExpiredError):
                            _logger.debug("watch_cursor_expired", kind=self.kind, resource_version=resource_version)
                            return
                        raise err
                    yield WatchEvent(type=EventType(event["type"]), object=raw)
        except ApiException as exc:
            err = _translate(exc)
            if isinstance(err, ExpiredError):
                _logger.debug("watch_cursor_expired", kind=self.kind, resource_version=resource_version)
                return
            raise err from exc
        except aiohttp.ClientError as exc:
            raise ResourceClientError(f"transport error: {exc}") from exc

    async def get(self, namespace: str, name: str) -> dict[str, Any]:
        fn, scope = self._call("read", namespace)
        try:
            resp = await fn(name=name, **scope)
        except ApiException as exc:
            raise _translate(exc) from exc
        except aiohttp.ClientError as exc:
            raise ResourceClientError(f"transport error: {exc}") from exc
        return self._as_dict(resp)

    async def create(self, namespace: str, body: dict[str, Any]) -> dict[str, Any]:
        fn, scope = self._call("create", namespace)
        try:
            resp = await fn(body=body, **scope)
        except ApiException as exc:
            raise _translate(exc) from exc
        except aiohttp.ClientError as exc:
            raise ResourceClientError(f"transport error: {exc}") from exc
        return self._as_dict(resp)


async def build_api_client(kubeconfig: str = "") -> Any:
    """Load in-cluster config, falling back to kubeconfig, and return an ApiClient."""
    import kubernetes_asyncio.config as k8s_config  # type: ignore[import-untyped]

    try:
        # load_incluster_config() is synchronous in kubernetes-asyncio
        k8s_config.load_incluster_config()
        _logger.info("k8s client configured from in-cluster service account")
    except k8s_config.ConfigException:
        await k8s_config.load_kube_config(config_file=kubeconfig or None)
        _logger.info("k8s client configured from kubeconfig", path=kubeconfig or "<default>")
    return k8s_client.ApiClient()


def client_for(kind: str, api_client: Any, server_timeout_seconds: int = 300) -> KubeResourceClient:
    """Return a KubeResourceClient for a registered kind."""
    try:
        resource = API_RESOURCES[kind]
    except KeyError:
        raise ValueError(f"Unknown resource kind: {kind!r}. Known: {sorted(API_RESOURCES)}") from None
    return KubeResourceClient(api_client, resource, server_timeout_seconds)
