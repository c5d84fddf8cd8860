"""ResourceClient interface: list/get/watch access to one resource kind.

Implementations return raw (camelCase) API dicts; parsing into typed
snapshots happens in the waiters via the condition's snapshot type.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from kubewait.models.convergence import EventType, Selector


class ResourceClientError(Exception):
    """Error returned by the remote resource API."""

    def __init__(self, message: str, status: int | None = None, reason: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.reason = reason


class NotFoundError(ResourceClientError):
    """HTTP 404: the object (or kind) does not exist."""


class ForbiddenError(ResourceClientError):
    """HTTP 403: the caller may not access the object yet."""


class ExpiredError(ResourceClientError):
    """HTTP 410: the watch cursor is too old; a fresh list is required."""


def error_from_status(status: int | None, reason: str, message: str) -> ResourceClientError:
    """Map an HTTP status to the client error taxonomy."""
    if status == 404:
        return NotFoundError(message, status, reason)
    if status == 403:
        return ForbiddenError(message, status, reason)
    if status == 410:
        return ExpiredError(message, status, reason)
    return ResourceClientError(message, status, reason)


@dataclass(frozen=True)
class ListResult:
    """Objects matching a selector plus the list's resource version."""

    items: list[dict[str, Any]] = field(default_factory=list)
    resource_version: str = ""


@dataclass(frozen=True)
class WatchEvent:
    """One push notification from a watch channel."""

    type: EventType
    object: dict[str, Any]


class ResourceClient(ABC):
    """Capability set for one resource kind.

    ``watch`` yields events until the server closes the channel, at which
    point iteration ends *without* raising.  Errors while establishing or
    reading the channel raise ResourceClientError.
    """

    kind: str = ""

    @abstractmethod
    async def list(self, selector: Selector) -> ListResult:
        """List objects matching *selector*."""

    @abstractmethod
    def watch(self, selector: Selector, resource_version: str) -> AsyncIterator[WatchEvent]:
        """Stream changes after *resource_version*."""

    @abstractmethod
    async def get(self, namespace: str, name: str) -> dict[str, Any]:
        """Fetch one object; raise NotFoundError when absent."""

    async def create(self, namespace: str, body: dict[str, Any]) -> dict[str, Any]:
        """Create *body* and return the stored object.

        Only kinds that are answered on create, such as access reviews, need it.
        """
        raise NotImplementedError(f"{type(self).__name__} does not support create")
