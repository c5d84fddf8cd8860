"""Convergence request/result data structures and enumerations."""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from kubewait.models.snapshots import ResourceSnapshot

if TYPE_CHECKING:
    from kubewait.waiters.conditions import ConvergenceCondition


class Classification(StrEnum):
    """Verdict of a condition on a single observation."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def terminal(self) -> bool:
        return self is not Classification.PENDING


class Outcome(StrEnum):
    """Terminal outcome of one wait call."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"
    FATAL_ERROR = "fatal_error"


class EventType(StrEnum):
    """Kind of change carried by a watch event."""

    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"


_OUTCOME_BY_CLASSIFICATION = {
    Classification.SUCCEEDED: Outcome.SUCCEEDED,
    Classification.FAILED: Outcome.FAILED,
    Classification.CANCELLED: Outcome.CANCELLED,
}


def outcome_for(classification: Classification) -> Outcome:
    """Map a terminal classification to the matching outcome."""
    return _OUTCOME_BY_CLASSIFICATION[classification]


@dataclass(frozen=True)
class Selector:
    """Scope of a list/watch/get call: one namespace, optionally one name."""

    namespace: str
    name: str | None = None
    label_selector: str | None = None
    # Extra field selector terms, e.g. "involvedObject.name=app-1".
    fields: str | None = None

    @property
    def field_selector(self) -> str | None:
        terms = []
        if self.name is not None:
            terms.append(f"metadata.name={self.name}")
        if self.fields:
            terms.append(self.fields)
        return ",".join(terms) or None

    def describe(self) -> str:
        if self.name is not None:
            return f"{self.namespace}/{self.name}" if self.namespace else self.name
        selectors = ",".join(s for s in (self.label_selector, self.fields) if s)
        if selectors:
            return f"{self.namespace}[{selectors}]"
        return self.namespace


@dataclass(frozen=True)
class ConvergenceRequest:
    """Everything one wait call needs.

    ``deadline`` is an absolute value on the monotonic clock (the same clock
    the asyncio event loop uses).  It is fixed once at creation and never
    extended, no matter how many times the watch is re-established.
    """

    selector: Selector
    condition: ConvergenceCondition
    deadline: float
    interval: float = 1.0

    @classmethod
    def create(
        cls,
        selector: Selector,
        condition: ConvergenceCondition,
        timeout: float,
        interval: float = 1.0,
    ) -> ConvergenceRequest:
        return cls(
            selector=selector,
            condition=condition,
            deadline=time.monotonic() + timeout,
            interval=interval,
        )

    def remaining(self) -> float:
        return max(0.0, self.deadline - time.monotonic())


@dataclass(frozen=True)
class ConvergenceResult:
    """Terminal result of one wait call.

    Exactly one outcome is set.  ``snapshot`` is the last object observed;
    it is None only when nothing was ever observed (FatalError before the
    first read, or a timeout with no matching object).
    """

    outcome: Outcome
    snapshot: ResourceSnapshot | None
    elapsed: float
    message: str = ""
    error: Exception | None = None
    items: tuple[ResourceSnapshot, ...] = ()
    reconnects: int = 0

    @property
    def succeeded(self) -> bool:
        return self.outcome is Outcome.SUCCEEDED

    @property
    def observed(self) -> bool:
        return self.snapshot is not None

    def raise_for_outcome(self) -> ConvergenceResult:
        """Return self on success, raise the matching WaitError otherwise."""
        from kubewait.errors import error_for_result

        if self.outcome is Outcome.SUCCEEDED:
            return self
        raise error_for_result(self)


@dataclass
class WaitStats:
    """Mutable per-call bookkeeping owned by a single waiter invocation."""

    last_snapshot: ResourceSnapshot | None = None
    cursor: str = ""
    reconnects: int = 0
    observations: int = 0
