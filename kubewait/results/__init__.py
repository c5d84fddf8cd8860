"""Outcome aggregators handed to callers for reporting and assertions."""

from kubewait.results.build import (
    BuildResult,
    BuildResultState,
    start_build_and_wait,
    start_build_result,
    wait_for_build_result,
)

__all__ = [
    "BuildResult",
    "BuildResultState",
    "start_build_and_wait",
    "start_build_result",
    "wait_for_build_result",
]
