"""Per-kind classification capability used by both waiter engines.

A condition turns one typed snapshot into a Classification.  Waiters own
list/watch/poll mechanics; conditions own nothing but pure classification
and the human-readable status used in diagnostics.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import Any, Generic, TypeVar

from kubewait.models.convergence import Classification, Outcome, Selector
from kubewait.models.snapshots import ResourceSnapshot

S = TypeVar("S", bound=ResourceSnapshot)

Predicate = Callable[[S], bool]


class ConvergenceCondition(ABC, Generic[S]):
    """Classifies snapshots of one resource kind."""

    snapshot_type: type[S]

    @property
    def kind(self) -> str:
        return self.snapshot_type.kind

    def parse(self, raw: dict[str, Any]) -> S:
        return self.snapshot_type.from_raw(raw)  # type: ignore[return-value]

    @abstractmethod
    def classify(self, snapshot: S) -> Classification:
        """Classify one observation."""

    def classify_absent(self) -> Classification:
        """Classify an observation where the object does not (yet) exist."""
        return Classification.PENDING

    def classify_expired(self) -> Classification | None:
        """Verdict to report when the deadline passes; None reports a timeout."""
        return None

    def classify_all(self, snapshots: Sequence[S]) -> tuple[Classification, S | None, tuple[S, ...]]:
        """Classify one full listing.

        Objects are visited in list order and the first terminal verdict wins.
        Returns the verdict, the snapshot it refers to and the snapshots that
        support it.
        """
        if not snapshots:
            return self.classify_absent(), None, ()
        for snapshot in snapshots:
            verdict = self.classify(snapshot)
            if verdict.terminal:
                return verdict, snapshot, (snapshot,)
        return Classification.PENDING, snapshots[-1], ()

    def describe(self, snapshot: S) -> str:
        """Human-readable observed status, embedded in diagnostics."""
        return f"resourceVersion={snapshot.resource_version or '?'}"

    def message(self, outcome: Outcome, selector: Selector, snapshot: S | None) -> str:
        kind = self.kind.lower() or "resource"
        target = selector.name or selector.describe()
        observed = self.describe(snapshot) if snapshot is not None else "<not observed>"
        if outcome is Outcome.SUCCEEDED:
            return f"The {kind} {target!r} converged: {observed}"
        if outcome is Outcome.FAILED:
            return f"The {kind} {target!r} status is {observed}"
        if outcome is Outcome.CANCELLED:
            return f"The {kind} {target!r} was cancelled: {observed}"
        return f"Timed out waiting for {kind} {target!r}; last observed: {observed}"


class PredicateCondition(ConvergenceCondition[S]):
    """Adapter for the positional (success, failure, cancel) predicate contract.

    Predicates are evaluated in that fixed order and the first one returning
    true wins, so an object satisfying both success and failure is treated
    as succeeded.
    """

    def __init__(
        self,
        snapshot_type: type[S],
        success: Predicate[S],
        failure: Predicate[S] | None = None,
        cancel: Predicate[S] | None = None,
        describe: Callable[[S], str] | None = None,
    ) -> None:
        self.snapshot_type = snapshot_type
        self._success = success
        self._failure = failure
        self._cancel = cancel
        self._describe = describe

    def classify(self, snapshot: S) -> Classification:
        if self._success(snapshot):
            return Classification.SUCCEEDED
        if self._failure is not None and self._failure(snapshot):
            return Classification.FAILED
        if self._cancel is not None and self._cancel(snapshot):
            return Classification.CANCELLED
        return Classification.PENDING

    def describe(self, snapshot: S) -> str:
        if self._describe is not None:
            return self._describe(snapshot)
        return super().describe(snapshot)
