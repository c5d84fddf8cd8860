"""Immutable per-kind views of a retrieved API object.

Each variant is built from the raw (camelCase) API dict via ``from_raw`` and
is never mutated afterwards; the next observation supersedes it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, ClassVar

from kubernetes.utils.quantity import parse_quantity

# Build phases (build.openshift.io/v1)
BUILD_PHASE_NEW = "New"
BUILD_PHASE_PENDING = "Pending"
BUILD_PHASE_RUNNING = "Running"
BUILD_PHASE_COMPLETE = "Complete"
BUILD_PHASE_FAILED = "Failed"
BUILD_PHASE_ERROR = "Error"
BUILD_PHASE_CANCELLED = "Cancelled"

DOCKER_REPOSITORY_CHECK_ANNOTATION = "openshift.io/image.dockerRepositoryCheck"


def _metadata(raw: dict[str, Any]) -> dict[str, Any]:
    meta = raw.get("metadata") or {}
    return meta if isinstance(meta, dict) else {}


def _status(raw: dict[str, Any]) -> dict[str, Any]:
    status = raw.get("status") or {}
    return status if isinstance(status, dict) else {}


def _identity(raw: dict[str, Any]) -> dict[str, str]:
    meta = _metadata(raw)
    return {
        "name": str(meta.get("name", "")),
        "namespace": str(meta.get("namespace", "")),
        "resource_version": str(meta.get("resourceVersion", "")),
    }


def _quantities(values: Any) -> dict[str, Decimal]:
    if not isinstance(values, dict):
        return {}
    return {str(k): parse_quantity(v) for k, v in values.items()}


@dataclass(frozen=True)
class StatusCondition:
    """One entry of a ``status.conditions`` list."""

    type: str
    status: str
    reason: str = ""
    message: str = ""

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> StatusCondition:
        return cls(
            type=str(raw.get("type", "")),
            status=str(raw.get("status", "")),
            reason=str(raw.get("reason") or ""),
            message=str(raw.get("message") or ""),
        )

    @property
    def is_true(self) -> bool:
        return self.status == "True"

    @property
    def is_false(self) -> bool:
        return self.status == "False"


def _conditions(raw: dict[str, Any]) -> tuple[StatusCondition, ...]:
    items = _status(raw).get("conditions") or []
    return tuple(StatusCondition.from_raw(c) for c in items if isinstance(c, dict))


def find_condition(conditions: tuple[StatusCondition, ...], type_: str) -> StatusCondition | None:
    for cond in conditions:
        if cond.type == type_:
            return cond
    return None


@dataclass(frozen=True, kw_only=True)
class ResourceSnapshot:
    """Identity and cursor shared by every snapshot variant."""

    kind: ClassVar[str] = ""

    name: str
    namespace: str = ""
    resource_version: str = ""

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> ResourceSnapshot:
        return cls(**_identity(raw))

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.kind, self.namespace, self.name)


@dataclass(frozen=True, kw_only=True)
class BuildSnapshot(ResourceSnapshot):
    kind: ClassVar[str] = "Build"

    phase: str = ""
    message: str = ""
    reason: str = ""
    creation_timestamp: str = ""

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> BuildSnapshot:
        status = _status(raw)
        return cls(
            **_identity(raw),
            phase=str(status.get("phase", "")),
            message=str(status.get("message") or ""),
            reason=str(status.get("reason") or ""),
            creation_timestamp=str(_metadata(raw).get("creationTimestamp") or ""),
        )


@dataclass(frozen=True)
class TagEvent:
    """One history item of an image stream status tag."""

    docker_image_reference: str
    image: str = ""
    created: str = ""


@dataclass(frozen=True, kw_only=True)
class ImageStreamSnapshot(ResourceSnapshot):
    kind: ClassVar[str] = "ImageStream"

    tags: dict[str, tuple[TagEvent, ...]] = field(default_factory=dict)
    # Tag names requested in spec; each should eventually appear in status.
    spec_tags: tuple[str, ...] = ()
    annotations: dict[str, str] = field(default_factory=dict)
    docker_image_repository: str = ""

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> ImageStreamSnapshot:
        status = _status(raw)
        tags: dict[str, tuple[TagEvent, ...]] = {}
        for entry in status.get("tags") or []:
            if not isinstance(entry, dict):
                continue
            tags[str(entry.get("tag", ""))] = tuple(
                TagEvent(
                    docker_image_reference=str(item.get("dockerImageReference", "")),
                    image=str(item.get("image", "")),
                    created=str(item.get("created") or ""),
                )
                for item in entry.get("items") or []
                if isinstance(item, dict)
            )
        return cls(
            **_identity(raw),
            tags=tags,
            spec_tags=tuple(
                str(t.get("name", "")) for t in (raw.get("spec") or {}).get("tags") or [] if isinstance(t, dict)
            ),
            annotations={str(k): str(v) for k, v in (_metadata(raw).get("annotations") or {}).items()},
            docker_image_repository=str(status.get("dockerImageRepository", "")),
        )

    def status_tag(self, tag: str) -> tuple[TagEvent, ...] | None:
        """Return the history of *tag*, or None when the tag is not in status."""
        return self.tags.get(tag)

    @property
    def repository_check(self) -> str:
        return self.annotations.get(DOCKER_REPOSITORY_CHECK_ANNOTATION, "")


@dataclass(frozen=True, kw_only=True)
class DeploymentConfigSnapshot(ResourceSnapshot):
    kind: ClassVar[str] = "DeploymentConfig"

    latest_version: int = 0
    conditions: tuple[StatusCondition, ...] = ()

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> DeploymentConfigSnapshot:
        return cls(
            **_identity(raw),
            latest_version=int(_status(raw).get("latestVersion") or 0),
            conditions=_conditions(raw),
        )


@dataclass(frozen=True, kw_only=True)
class ResourceQuotaSnapshot(ResourceSnapshot):
    kind: ClassVar[str] = "ResourceQuota"

    hard: dict[str, Decimal] = field(default_factory=dict)
    used: dict[str, Decimal] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> ResourceQuotaSnapshot:
        status = _status(raw)
        return cls(
            **_identity(raw),
            hard=_quantities(status.get("hard")),
            used=_quantities(status.get("used")),
        )


@dataclass(frozen=True, kw_only=True)
class ServiceAccountSnapshot(ResourceSnapshot):
    kind: ClassVar[str] = "ServiceAccount"

    secrets: tuple[str, ...] = ()

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> ServiceAccountSnapshot:
        return cls(
            **_identity(raw),
            secrets=tuple(
                str(s.get("name", "")) for s in raw.get("secrets") or [] if isinstance(s, dict)
            ),
        )


@dataclass(frozen=True, kw_only=True)
class PodSnapshot(ResourceSnapshot):
    kind: ClassVar[str] = "Pod"

    phase: str = ""
    conditions: tuple[StatusCondition, ...] = ()
    labels: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> PodSnapshot:
        return cls(
            **_identity(raw),
            phase=str(_status(raw).get("phase", "")),
            conditions=_conditions(raw),
            labels={str(k): str(v) for k, v in (_metadata(raw).get("labels") or {}).items()},
        )


@dataclass(frozen=True, kw_only=True)
class JobSnapshot(ResourceSnapshot):
    kind: ClassVar[str] = "Job"

    conditions: tuple[StatusCondition, ...] = ()

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> JobSnapshot:
        return cls(**_identity(raw), conditions=_conditions(raw))


@dataclass(frozen=True, kw_only=True)
class ClusterOperatorSnapshot(ResourceSnapshot):
    kind: ClassVar[str] = "ClusterOperator"

    conditions: tuple[StatusCondition, ...] = ()

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> ClusterOperatorSnapshot:
        return cls(**_identity(raw), conditions=_conditions(raw))


@dataclass(frozen=True, kw_only=True)
class SubjectAccessReviewSnapshot(ResourceSnapshot):
    """Answer of the authorizer to one access review."""

    kind: ClassVar[str] = "SubjectAccessReview"

    allowed: bool = False
    denied: bool = False
    reason: str = ""
    evaluation_error: str = ""

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> SubjectAccessReviewSnapshot:
        status = _status(raw)
        return cls(
            **_identity(raw),
            allowed=bool(status.get("allowed")),
            denied=bool(status.get("denied")),
            reason=str(status.get("reason") or ""),
            evaluation_error=str(status.get("evaluationError") or ""),
        )


@dataclass(frozen=True, kw_only=True)
class EventSnapshot(ResourceSnapshot):
    kind: ClassVar[str] = "Event"

    reason: str = ""
    message: str = ""
    involved_kind: str = ""
    involved_name: str = ""

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> EventSnapshot:
        involved = raw.get("involvedObject") or {}
        return cls(
            **_identity(raw),
            reason=str(raw.get("reason") or ""),
            message=str(raw.get("message") or ""),
            involved_kind=str(involved.get("kind", "")),
            involved_name=str(involved.get("name", "")),
        )


SNAPSHOT_TYPES: dict[str, type[ResourceSnapshot]] = {
    cls.kind: cls
    for cls in (
        BuildSnapshot,
        ImageStreamSnapshot,
        DeploymentConfigSnapshot,
        ResourceQuotaSnapshot,
        ServiceAccountSnapshot,
        PodSnapshot,
        JobSnapshot,
        ClusterOperatorSnapshot,
        SubjectAccessReviewSnapshot,
        EventSnapshot,
    )
}
