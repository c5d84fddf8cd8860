"""Exception taxonomy for wait outcomes.

A ConvergenceResult is the primary return channel; these exceptions exist
for callers that prefer raising (``ConvergenceResult.raise_for_outcome``)
and for the BuildResult aggregator's unobservable case.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from kubewait.models.convergence import ConvergenceResult


class WaitError(Exception):
    """Base class for every non-success wait outcome."""

    def __init__(self, message: str, result: ConvergenceResult | None = None) -> None:
        super().__init__(message)
        self.result = result


class WaitTimeoutError(WaitError):
    """The deadline elapsed without a terminal classification."""


class ResourceFailedError(WaitError):
    """The resource itself reached a terminal bad state."""


class ResourceCancelledError(WaitError):
    """The resource was cancelled before reaching success."""


class FatalWaitError(WaitError):
    """An unrecoverable client error aborted the wait."""


class SevereWaitError(WaitError):
    """The target object was never observed; its progress is unknowable.

    Distinct from WaitTimeoutError: callers must not read this as "the
    resource was too slow".
    """


def error_for_result(result: ConvergenceResult) -> WaitError:
    from kubewait.models.convergence import Outcome

    error_types: dict[Outcome, type[WaitError]] = {
        Outcome.TIMED_OUT: WaitTimeoutError,
        Outcome.FAILED: ResourceFailedError,
        Outcome.CANCELLED: ResourceCancelledError,
        Outcome.FATAL_ERROR: FatalWaitError,
    }
    error = error_types[result.outcome](result.message or result.outcome.value, result)
    if result.error is not None:
        error.__cause__ = result.error
    return error
