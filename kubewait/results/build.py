"""BuildResult: the outcome aggregator for one build.

A BuildResult is created when ``start-build`` is issued and is updated in
place by ``wait_for_build_result``.  Its flags follow the build through

    Unattempted -> Attempted -> Succeeded | Failed | Cancelled | TimedOut

where Attempted means the build object was observed at least once.  A wait
that never observed the build leaves the result Unattempted and raises
SevereWaitError instead of reporting a timeout.  A client error after the
build was observed is kept in ``error`` and reads as Errored, never as
TimedOut.
"""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum

from kubewait.client.base import ResourceClient
from kubewait.commands import AdminCommand, CommandError
from kubewait.errors import SevereWaitError
from kubewait.kinds.build import DEFAULT_COMPLETE_TIMEOUT, DEFAULT_CREATE_TIMEOUT, wait_for_a_build
from kubewait.models.convergence import ConvergenceResult, Outcome
from kubewait.models.snapshots import BuildSnapshot, ResourceSnapshot
from kubewait.observability.logging import get_logger

_logger = get_logger("results.build")

BUILD_PATH_PATTERN = re.compile(r"^build\.build\.openshift\.io/([\w\-\._]+)$")

LogDumper = Callable[["BuildResult"], Awaitable[str]]


class BuildResultState(StrEnum):
    UNATTEMPTED = "Unattempted"
    ATTEMPTED = "Attempted"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    CANCELLED = "Cancelled"
    TIMED_OUT = "TimedOut"
    ERRORED = "Errored"


@dataclass
class BuildResult:
    """Tracks one build from start-build through its terminal phase."""

    # Resource qualified name, e.g. "build.build.openshift.io/app-1".
    build_path: str = ""
    build_name: str = ""
    build_config_name: str = ""
    namespace: str = ""
    start_build_stdout: str = ""
    start_build_stderr: str = ""
    start_build_error: Exception | None = None
    # Latest observed snapshot; None until the build has been seen.
    build: BuildSnapshot | None = None
    attempted: bool = False
    succeeded: bool = False
    failed: bool = False
    cancelled: bool = False
    timed_out: bool = False
    # Client error that aborted the wait after the build was observed.
    error: Exception | None = None
    wait_result: ConvergenceResult | None = None
    log_dumper: LogDumper | None = None
    command: AdminCommand | None = field(default=None, repr=False)

    @classmethod
    def for_build(cls, name: str, namespace: str = "", command: AdminCommand | None = None) -> BuildResult:
        """Result for a build created some other way than start-build."""
        return cls(build_path=f"builds/{name}", build_name=name, namespace=namespace, command=command)

    @property
    def state(self) -> BuildResultState:
        if not self.attempted:
            return BuildResultState.UNATTEMPTED
        if self.succeeded:
            return BuildResultState.SUCCEEDED
        if self.failed:
            return BuildResultState.FAILED
        if self.cancelled:
            return BuildResultState.CANCELLED
        if self.timed_out:
            return BuildResultState.TIMED_OUT
        if self.error is not None:
            return BuildResultState.ERRORED
        return BuildResultState.ATTEMPTED

    def observe(self, snapshot: ResourceSnapshot) -> None:
        if isinstance(snapshot, BuildSnapshot):
            self.build = snapshot
            self.attempted = True

    def record(self, result: ConvergenceResult) -> None:
        """Fold the final classification of a build wait into the flags."""
        self.wait_result = result
        if isinstance(result.snapshot, BuildSnapshot):
            self.observe(result.snapshot)
        self.succeeded = result.outcome is Outcome.SUCCEEDED
        self.failed = result.outcome is Outcome.FAILED
        self.cancelled = result.outcome is Outcome.CANCELLED
        self.timed_out = self.attempted and result.outcome is Outcome.TIMED_OUT
        self.error = result.error if result.outcome is Outcome.FATAL_ERROR else None

    # ------------------------------------------------------------------
    # Logs and assertions
    # ------------------------------------------------------------------

    async def logs(self) -> str:
        """Build logs with timestamps, or the output of the injected log dumper."""
        return await self._logs("--timestamps")

    async def logs_no_timestamp(self) -> str:
        return await self._logs()

    async def _logs(self, *extra: str) -> str:
        if not self.build_path:
            raise ValueError(f"Not enough information to retrieve logs for {self!r}")
        if self.log_dumper is not None:
            return await self.log_dumper(self)
        if self.command is None:
            raise ValueError(f"No command available to retrieve logs for {self.build_path}")
        try:
            output = await self.command.run("logs", "-f", self.build_path, *extra)
        except CommandError as exc:
            raise CommandError(
                f"Error retrieving logs for {self.build_path}: {exc}",
                stdout=exc.stdout,
                stderr=exc.stderr,
                returncode=exc.returncode,
            ) from exc
        return output.stdout

    async def dump_logs(self) -> None:
        """Write the build description and logs to the log sink.  Never raises."""
        _logger.info("build_result_dump", result=repr(self), state=self.state.value)

        description: str | None = None
        if self.command is not None and self.build_path:
            try:
                description = (await self.command.run("describe", self.build_path)).stdout
            except CommandError as exc:
                _logger.warning("build_description_failed", build=self.build_path, error=str(exc))
        if description is not None:
            _logger.info("build_description", build=self.build_path, description=description)

        try:
            output = await self.logs()
        except (CommandError, ValueError) as exc:
            _logger.warning("build_logs_failed", build=self.build_path, error=str(exc))
        else:
            _logger.info("build_logs", build=self.build_path, logs=output)

    async def assert_success(self) -> BuildResult:
        if not self.succeeded:
            await self.dump_logs()
        if not self.succeeded:
            raise AssertionError(f"expected build {self.build_name!r} to succeed, state is {self.state.value}")
        return self

    async def assert_failure(self) -> BuildResult:
        """Assert the build failed.  A timeout or cancellation does not count."""
        if not self.failed:
            await self.dump_logs()
        if not self.failed:
            raise AssertionError(f"expected build {self.build_name!r} to fail, state is {self.state.value}")
        return self


async def start_build_result(command: AdminCommand, *args: str) -> BuildResult:
    """Run ``start-build ARGS -o=name`` and parse the created build's name.

    A failing command is kept on the result rather than raised, since
    start-build exits non-zero for reasons such as ``--wait`` on a failed
    build.  Raises ValueError when no build path can be parsed from stdout.
    """
    argv = (*args, "-o=name")
    result = BuildResult(command=command)
    if args and not args[0].startswith("-"):
        result.build_config_name = args[0]

    try:
        output = await command.run("start-build", *argv)
        stdout, stderr = output.stdout, output.stderr
    except CommandError as exc:
        stdout, stderr = exc.stdout, exc.stderr
        result.start_build_error = exc
    _logger.info(
        "start_build_output",
        args=list(argv),
        error=str(result.start_build_error) if result.start_build_error else None,
        stdout=stdout,
        stderr=stderr,
    )

    # --follow may add more output after the name, so only the first line counts.
    result.start_build_stdout = stdout
    result.start_build_stderr = stderr
    result.build_path = stdout.split("\n", 1)[0].strip()

    match = BUILD_PATH_PATTERN.match(result.build_path)
    if match is None:
        raise ValueError(f"Build path output did not match expected format 'build/name': {result.build_path!r}")
    result.build_name = match.group(1)
    return result


async def wait_for_build_result(
    client: ResourceClient,
    result: BuildResult,
    *,
    namespace: str | None = None,
    create_timeout: float = DEFAULT_CREATE_TIMEOUT,
    complete_timeout: float = DEFAULT_COMPLETE_TIMEOUT,
    create_interval: float = 1.0,
    reconnect_delay: float = 1.0,
) -> BuildResult:
    """Wait for the build named by *result* and record its outcome in place.

    Raises SevereWaitError if the build was never observed.
    """
    ns = namespace or result.namespace
    _logger.info("waiting_for_build", build=result.build_name, namespace=ns)
    outcome = await wait_for_a_build(
        client,
        ns,
        result.build_name,
        create_timeout=create_timeout,
        complete_timeout=complete_timeout,
        create_interval=create_interval,
        reconnect_delay=reconnect_delay,
        on_snapshot=result.observe,
    )
    result.record(outcome)

    if not result.attempted:
        raise SevereWaitError(f"Severe error waiting for build: {outcome.message}", outcome)

    _logger.info(
        "build_wait_done",
        build=result.build_name,
        state=result.state.value,
        elapsed=round(outcome.elapsed, 3),
        detail=outcome.message,
    )
    return result


async def start_build_and_wait(
    command: AdminCommand,
    client: ResourceClient,
    namespace: str,
    *args: str,
    create_timeout: float = DEFAULT_CREATE_TIMEOUT,
    complete_timeout: float = DEFAULT_COMPLETE_TIMEOUT,
    create_interval: float = 1.0,
    reconnect_delay: float = 1.0,
) -> BuildResult:
    """Start a build of an existing buildconfig and wait for it.

    Returning normally means the build was attempted, not that it succeeded;
    check the flags of the returned result.
    """
    result = await start_build_result(command, *args)
    result.namespace = namespace
    return await wait_for_build_result(
        client,
        result,
        create_timeout=create_timeout,
        complete_timeout=complete_timeout,
        create_interval=create_interval,
        reconnect_delay=reconnect_delay,
    )
