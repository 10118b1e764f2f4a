"""Follow-up command execution.

Runs the external processes derived from a scaffold request (``npm``,
``git``) one after another, captures their results, and applies a
``CommandPolicy`` deciding whether a failure stops the sequence.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

from rich.console import Console

from stackgen.config import CommandPolicy
from stackgen.scaffolder.models import FollowUpCommand
from stackgen.utils import TIMEOUT_PREFIX, run_command

console = Console()

EXIT_NOT_EXECUTABLE = 126
EXIT_NOT_FOUND = 127
EXIT_TIMEOUT = -1


@dataclass
class CommandResult:
    """Structured result of one follow-up command."""

    command: FollowUpCommand
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration_seconds: float = 0.0
    timed_out: bool = False

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0 and not self.timed_out

    def summary(self) -> str:
        """One-line outcome suitable for the final summary table."""
        if self.timed_out:
            return f"timed out after {self.duration_seconds:.0f}s"
        if self.exit_code in (EXIT_NOT_EXECUTABLE, EXIT_NOT_FOUND) and not self.stdout:
            return self.stderr or "executable not found"
        if self.succeeded:
            return f"exit 0 in {self.duration_seconds:.1f}s"
        last_line = self.stderr.strip().splitlines()[-1] if self.stderr.strip() else ""
        return f"exit {self.exit_code}" + (f": {last_line[:120]}" if last_line else "")


class ExternalCommandFailedError(Exception):
    """Raised under ``abort_on_failure`` when a follow-up command fails.

    Attributes:
        result: The failing command's result.
        results: Every result collected up to and including the failure.
    """

    def __init__(self, result: CommandResult, results: list[CommandResult]) -> None:
        self.result = result
        self.results = results
        super().__init__(
            f"Command failed ({result.summary()}): {result.command.display}"
        )


class CommandRunner:
    """Executes follow-up commands sequentially under a ``CommandPolicy``."""

    def __init__(self, policy: CommandPolicy | None = None) -> None:
        self.policy = policy or CommandPolicy()

    async def run(self, commands: list[FollowUpCommand]) -> list[CommandResult]:
        """Run *commands* in order.

        Returns:
            One ``CommandResult`` per command that was started.

        Raises:
            ExternalCommandFailedError: If ``policy.abort_on_failure`` is set
                and a command fails; later commands are not run.
        """
        results: list[CommandResult] = []
        for command in commands:
            result = await self.run_one(command)
            results.append(result)
            if not result.succeeded and self.policy.abort_on_failure:
                raise ExternalCommandFailedError(result, results)
        return results

    async def run_one(self, command: FollowUpCommand) -> CommandResult:
        """Run a single command and capture its outcome.

        Missing executables, timeouts and non-zero exits are reported in the
        returned ``CommandResult`` rather than raised.
        """
        label = command.description or command.display
        console.print(f"[cyan]>[/cyan] {label} [dim]({command.display})[/dim]")

        start = time.monotonic()
        try:
            exit_code, stdout, stderr = await run_command(
                command.argv,
                cwd=command.working_directory,
                timeout=self.policy.timeout,
                stream=self.policy.stream_output,
            )
        except FileNotFoundError:
            if not command.working_directory.is_dir():
                reason = f"Working directory not found: {command.working_directory}"
            else:
                reason = f"Executable not found: '{command.executable}'"
            result = CommandResult(
                command=command,
                exit_code=EXIT_NOT_FOUND,
                stderr=reason,
                duration_seconds=time.monotonic() - start,
            )
        except PermissionError:
            result = CommandResult(
                command=command,
                exit_code=EXIT_NOT_EXECUTABLE,
                stderr=f"Permission denied executing: '{command.executable}'",
                duration_seconds=time.monotonic() - start,
            )
        else:
            elapsed = time.monotonic() - start
            result = CommandResult(
                command=command,
                exit_code=exit_code,
                stdout=stdout,
                stderr=stderr,
                duration_seconds=elapsed,
                timed_out=exit_code == EXIT_TIMEOUT and stderr.startswith(TIMEOUT_PREFIX),
            )

        if result.succeeded:
            console.print(f"  [green]+[/green] {label}")
        else:
            console.print(f"  [red]x[/red] {label}: {result.summary()}")
        return result
