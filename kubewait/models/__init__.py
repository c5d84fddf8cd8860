"""Core data structures for kubewait."""

from kubewait.models.config import KubeWaitConfig
from kubewait.models.convergence import (
    Classification,
    ConvergenceRequest,
    ConvergenceResult,
    EventType,
    Outcome,
    Selector,
)
from kubewait.models.snapshots import (
    BuildSnapshot,
    ClusterOperatorSnapshot,
    DeploymentConfigSnapshot,
    EventSnapshot,
    ImageStreamSnapshot,
    JobSnapshot,
    PodSnapshot,
    ResourceQuotaSnapshot,
    ResourceSnapshot,
    ServiceAccountSnapshot,
    StatusCondition,
    SubjectAccessReviewSnapshot,
    TagEvent,
)

__all__ = [
    "BuildSnapshot",
    "Classification",
    "ClusterOperatorSnapshot",
    "ConvergenceRequest",
    "ConvergenceResult",
    "DeploymentConfigSnapshot",
    "EventSnapshot",
    "EventType",
    "ImageStreamSnapshot",
    "JobSnapshot",
    "KubeWaitConfig",
    "Outcome",
    "PodSnapshot",
    "ResourceQuotaSnapshot",
    "ResourceSnapshot",
    "Selector",
    "ServiceAccountSnapshot",
    "StatusCondition",
    "SubjectAccessReviewSnapshot",
    "TagEvent",
]
