"""Administrative command collaborator.

Used only for diagnostics and side channels (starting builds, dumping logs
and object YAML).  Nothing in the convergence engines depends on it.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Protocol

from kubewait.observability.logging import get_logger

_logger = get_logger("commands")


@dataclass(frozen=True)
class CommandOutput:
    stdout: str
    stderr: str = ""


class CommandError(Exception):
    """The command exited non-zero or could not be started."""

    def __init__(self, message: str, stdout: str = "", stderr: str = "", returncode: int | None = None) -> None:
        super().__init__(message)
        self.stdout = stdout
        self.stderr = stderr
        self.returncode = returncode


class AdminCommand(Protocol):
    async def run(self, command: str, *args: str) -> CommandOutput: ...


class OcCommand:
    """Runs ``oc <command> <args...>`` as a subprocess.

    Output is decoded as UTF-8 with trailing whitespace stripped.
    """

    def __init__(self, binary: str = "oc", namespace: str | None = None, kubeconfig: str | None = None) -> None:
        self.binary = binary
        self.namespace = namespace
        self.kubeconfig = kubeconfig

    def argv(self, command: str, *args: str) -> list[str]:
        argv = [self.binary, command]
        if self.namespace:
            argv.append(f"--namespace={self.namespace}")
        if self.kubeconfig:
            argv.append(f"--kubeconfig={self.kubeconfig}")
        argv.extend(args)
        return argv

    async def run(self, command: str, *args: str) -> CommandOutput:
        argv = self.argv(command, *args)
        _logger.debug("command_started", argv=argv)
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise CommandError(f"failed to start {self.binary}: {exc}") from exc

        raw_stdout, raw_stderr = await process.communicate()
        stdout = raw_stdout.decode("utf-8", errors="replace").rstrip()
        stderr = raw_stderr.decode("utf-8", errors="replace").rstrip()
        if process.returncode != 0:
            _logger.debug("command_failed", argv=argv, returncode=process.returncode)
            raise CommandError(
                f"{' '.join(argv)} exited with status {process.returncode}",
                stdout=stdout,
                stderr=stderr,
                returncode=process.returncode,
            )
        return CommandOutput(stdout=stdout, stderr=stderr)
