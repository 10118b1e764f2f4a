"""Shared utility functions for stackgen.

Provides async command execution with live output, name validation helpers,
duration formatting, and the Rich-based console helpers every command uses
to report progress.
"""

from __future__ import annotations

import asyncio
import os
import re
from pathlib import Path

from rich.console import Console
from rich.rule import Rule
from rich.table import Table

console = Console()

TIMEOUT_PREFIX = "Command timed out"

# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: list[str],
    cwd: str | Path | None = None,
    timeout: float = 120,
    stream: bool = False,
    env: dict[str, str] | None = None,
) -> tuple[int, str, str]:
    """Run a command asynchronously and capture its output.

    Args:
        cmd: Argument vector; the first element is resolved from ``PATH``.
        cwd: Working directory for the child process.
        timeout: Maximum wall-clock seconds before the process is killed.
        stream: Echo each stdout/stderr line to the console as it arrives
            (the text is still captured and returned).
        env: Optional extra environment variables merged on top of ``os.environ``.

    Returns:
        A ``(returncode, stdout, stderr)`` tuple.  A timed-out command returns
        ``-1`` and a ``"Command timed out"`` message in stderr.

    Raises:
        FileNotFoundError: If the executable or *cwd* does not exist.
        PermissionError: If the executable cannot be run.
    """
    merged_env: dict[str, str] | None = None
    if env:
        merged_env = {**os.environ, **env}

    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=str(cwd) if cwd else None,
        env=merged_env,
    )

    try:
        if stream:
            stdout_str, stderr_str = await asyncio.wait_for(
                _communicate_streaming(process), timeout=timeout
            )
        else:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                process.communicate(), timeout=timeout
            )
            stdout_str = (stdout_bytes or b"").decode("utf-8", errors="replace")
            stderr_str = (stderr_bytes or b"").decode("utf-8", errors="replace")
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return (
            -1,
            "",
            f"{TIMEOUT_PREFIX} after {timeout}s: {' '.join(cmd)}",
        )

    return (process.returncode or 0, stdout_str.strip(), stderr_str.strip())


async def _communicate_streaming(
    process: asyncio.subprocess.Process,
) -> tuple[str, str]:
    """Drain both pipes, echoing lines to the console, until the process exits."""

    async def _pump(reader: asyncio.StreamReader | None, style: str) -> str:
        if reader is None:
            return ""
        lines: list[str] = []
        while True:
            line_bytes = await reader.readline()
            if not line_bytes:
                break
            line = line_bytes.decode("utf-8", errors="replace").rstrip("\n")
            lines.append(line)
            console.print(f"    {line}", style=style, markup=False, highlight=False)
        return "\n".join(lines)

    stdout_str, stderr_str = await asyncio.gather(
        _pump(process.stdout, "dim"),
        _pump(process.stderr, "dim yellow"),
    )
    await process.wait()
    return stdout_str, stderr_str


# ---------------------------------------------------------------------------
# String / name helpers
# ---------------------------------------------------------------------------

_SAFE_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")

MAX_NAME_LENGTH = 100


def is_safe_name(name: str) -> bool:
    """Return ``True`` if *name* can be used as a single directory name.

    Allows letters, digits, ``.``, ``_`` and ``-``; must start with a letter
    or digit and may not exceed ``MAX_NAME_LENGTH`` characters.

    Examples::

        is_safe_name("my-app")      -> True
        is_safe_name("../escape")   -> False
        is_safe_name("with space")  -> False
    """
    if not name or len(name) > MAX_NAME_LENGTH:
        return False
    return bool(_SAFE_NAME_RE.match(name))


def sanitize_name(name: str) -> str:
    """Convert an arbitrary name to a safe directory name suggestion.

    * Lowercases the input.
    * Replaces spaces and characters other than letters, digits, ``.``,
      ``_`` and ``-`` with hyphens.
    * Collapses consecutive hyphens and strips leading/trailing hyphens
      and dots.

    Examples::

        sanitize_name("My Cool App") -> "my-cool-app"
        sanitize_name("  2FA (TOTP)  ") -> "2fa-totp"
    """
    result = re.sub(r"[^a-z0-9._-]", "-", name.strip().lower())
    result = re.sub(r"-+", "-", result)
    return result.strip("-.")[:MAX_NAME_LENGTH]


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
        format_duration(3661.0) -> "1h 1m 1s"
    """
    if seconds < 0:
        return "0.0s"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = seconds % 60

    parts: list[str] = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")

    if hours > 0 or minutes > 0:
        parts.append(f"{int(secs)}s")
    else:
        parts.append(f"{secs:.1f}s")

    return " ".join(parts)


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------

STATUS_STYLES: dict[str, str] = {
    "ok": "green",
    "failed": "red",
    "skipped": "yellow",
}


def print_step_header(title: str, color: str = "bright_cyan") -> None:
    """Print a full-width rule announcing the next step."""
    console.print()
    console.print(Rule(f"[bold {color}] {title} [/bold {color}]", style=color))
    console.print()


def print_summary_table(
    rows: list[tuple[str, str, str]], title: str = "Summary"
) -> None:
    """Print a step / status / detail table.

    Args:
        rows: ``(step, status, detail)`` tuples.  ``status`` is one of the
            keys of ``STATUS_STYLES``; unknown statuses are printed unstyled.
        title: Table title.
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Step", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Detail", style="dim")

    for step, status, detail in rows:
        color = STATUS_STYLES.get(status)
        status_cell = f"[{color}]{status.upper()}[/{color}]" if color else status
        table.add_row(step, status_cell, detail)

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")
