"""Resource access layer for kubewait.

Submodules:
    base -- ResourceClient interface, list/watch value types, error taxonomy.
    kube -- kubernetes-asyncio implementation covering core, batch and
            OpenShift (build, image, apps) kinds.
"""

from kubewait.client.base import (
    ExpiredError,
    ForbiddenError,
    ListResult,
    NotFoundError,
    ResourceClient,
    ResourceClientError,
    WatchEvent,
)

__all__ = [
    "ExpiredError",
    "ForbiddenError",
    "ListResult",
    "NotFoundError",
    "ResourceClient",
    "ResourceClientError",
    "WatchEvent",
]
