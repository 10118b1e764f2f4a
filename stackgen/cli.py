"""stackgen command-line interface.

Subcommands::

    stackgen create-react-skeleton
    stackgen create-flask-skeleton
    stackgen create-fastapi-skeleton
    stackgen clone-repo

Every choice is collected interactively.  Each run ends with a summary table
of the steps attempted and their outcome, and the exit code tells a clean
run (0) from a hard failure (1), a run with failed steps (2) and a
cancelled one (130).
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import ValidationError
from rich.panel import Panel

from stackgen.config import Config
from stackgen.external.clone import CloneError, clone
from stackgen.external.commands import (
    CommandResult,
    CommandRunner,
    ExternalCommandFailedError,
)
from stackgen.prompts import UserCancelledError, prompt_clone_target, prompt_scaffold_request
from stackgen.scaffolder.models import ScaffoldRequest, StackKind
from stackgen.scaffolder.registry import TemplateRegistry, default_registry
from stackgen.scaffolder.writer import PartialFailureError, ScaffoldError, materialize
from stackgen.utils import (
    console,
    format_duration,
    print_error,
    print_step_header,
    print_success,
    print_summary_table,
    print_warning,
)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_STEP_FAILURES = 2
EXIT_CANCELLED = 130

_STACK_COMMANDS: dict[str, StackKind] = {
    "create-react-skeleton": StackKind.REACT,
    "create-flask-skeleton": StackKind.FLASK,
    "create-fastapi-skeleton": StackKind.FASTAPI,
}


# ---------------------------------------------------------------------------
# Run report
# ---------------------------------------------------------------------------


@dataclass
class StepRecord:
    name: str
    status: str
    detail: str = ""


@dataclass
class RunReport:
    """Every step a command attempted, in order, with its outcome."""

    steps: list[StepRecord] = field(default_factory=list)
    aborted: bool = False
    error: str = ""

    def record(self, name: str, status: str, detail: str = "") -> None:
        self.steps.append(StepRecord(name, status, detail))

    def record_command(self, result: CommandResult) -> None:
        status = "ok" if result.succeeded else "failed"
        self.record(result.command.display, status, result.summary())

    def abort(self, name: str, error: Exception) -> None:
        """Record *name* as the failed step that stopped the run."""
        self.record(name, "failed", str(error))
        self.error = str(error)
        self.aborted = True

    @property
    def failed_steps(self) -> list[StepRecord]:
        return [s for s in self.steps if s.status == "failed"]

    @property
    def exit_code(self) -> int:
        if self.aborted:
            return EXIT_FAILURE
        return EXIT_STEP_FAILURES if self.failed_steps else EXIT_OK

    def print(self, title: str = "Summary") -> None:
        print_summary_table([(s.name, s.status, s.detail) for s in self.steps], title=title)


# ---------------------------------------------------------------------------
# Command implementations
# ---------------------------------------------------------------------------


async def scaffold_project(
    request: ScaffoldRequest,
    config: Config,
    registry: TemplateRegistry | None = None,
    runner: CommandRunner | None = None,
) -> RunReport:
    """Resolve, write, and finish setting up the project described by *request*.

    A project directory that already holds files, or cannot be created, is
    recorded as a failed "Write files" step and the run is aborted before any
    follow-up command starts.
    """
    registry = registry or default_registry()
    runner = runner or CommandRunner(config.commands)
    root = config.project_root(request.project_name)
    report = RunReport()

    templates = registry.resolve_templates(request)
    report.record("Resolve templates", "ok", f"{len(templates)} file(s)")

    print_step_header(f"Writing {request.stack.label} project {request.project_name}")
    try:
        written = await materialize(root, templates)
    except PartialFailureError as exc:
        report.record("Write files", "failed", f"{len(exc.written)} written, {len(exc.failed)} failed")
        for path, reason in exc.failed:
            report.record(f"Write {path}", "failed", reason)
    except ScaffoldError as exc:
        report.abort("Write files", exc)
        for command in registry.resolve_commands(request, root, config):
            report.record(command.display, "skipped", "project not written")
        return report
    else:
        report.record("Write files", "ok", f"{len(written)} file(s) under {root}")

    commands = registry.resolve_commands(request, root, config)
    if not commands:
        return report

    if report.failed_steps and config.commands.abort_on_failure:
        for command in commands:
            report.record(command.display, "skipped", "file writes failed")
        report.aborted = True
        return report

    print_step_header("Running follow-up commands")
    try:
        results = await runner.run(commands)
    except ExternalCommandFailedError as exc:
        for result in exc.results:
            report.record_command(result)
        for command in commands[len(exc.results):]:
            report.record(command.display, "skipped", "aborted after failure")
        report.aborted = True
        report.error = str(exc)
        return report

    for result in results:
        report.record_command(result)
    return report


async def clone_repository(url: str, folder: str, config: Config) -> RunReport:
    """Clone *url* into ``config.output_dir / folder``.

    A failed clone is recorded in the returned report, which is then aborted.
    """
    report = RunReport()
    destination = config.output_dir / folder
    try:
        await clone(
            url,
            destination,
            timeout=config.clone_timeout,
            stream=config.commands.stream_output,
        )
    except CloneError as exc:
        report.abort("Clone repository", exc)
        return report
    report.record("Clone repository", "ok", f"{url} -> {destination}")
    return report


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stackgen",
        description="stackgen -- bootstrap React, Flask and FastAPI project skeletons",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  stackgen create-flask-skeleton\n"
            "  stackgen create-react-skeleton\n"
            "  stackgen --config stackgen.json clone-repo\n"
        ),
    )
    parser.add_argument(
        "--config",
        default=None,
        help="JSON configuration file (default: read STACKGEN_* environment variables)",
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND", required=True)
    subparsers.add_parser(
        "create-react-skeleton",
        help="Create a React app with optional Tailwind, ESLint, TypeScript and tests",
    )
    subparsers.add_parser(
        "create-flask-skeleton",
        help="Create a Flask project with models, schemas, routes and tests",
    )
    subparsers.add_parser(
        "create-fastapi-skeleton",
        help="Create a FastAPI project with models, schemas, routes and tests",
    )
    subparsers.add_parser("clone-repo", help="Clone one of the configured repositories")
    return parser


def load_config(path: str | None) -> Config:
    if path:
        return Config.load(Path(path))
    return Config.from_env()


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for ``stackgen`` and ``python -m stackgen``.

    Returns:
        The process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except (OSError, ValueError, ValidationError) as exc:
        print_error(f"Error: invalid configuration: {exc}")
        return EXIT_FAILURE

    console.print(
        Panel(
            f"[bold bright_cyan]stackgen[/bold bright_cyan]\n"
            f"Command : {args.command}\n"
            f"Output  : {config.output_dir.resolve()}",
            border_style="bright_cyan",
        )
    )

    start = time.monotonic()
    try:
        if args.command in _STACK_COMMANDS:
            request = prompt_scaffold_request(_STACK_COMMANDS[args.command])
            report = asyncio.run(scaffold_project(request, config))
            done_message = (
                f"{request.stack.label} project '{request.project_name}' created at "
                f"{config.project_root(request.project_name)}"
            )
        else:
            url, folder = prompt_clone_target(config.repositories)
            report = asyncio.run(clone_repository(url, folder, config))
            done_message = f"Repository cloned to {config.output_dir / folder}"
    except (UserCancelledError, KeyboardInterrupt):
        console.print()
        print_warning("Cancelled.")
        return EXIT_CANCELLED
    except ValueError as exc:
        print_error(f"Error: {exc}")
        return EXIT_FAILURE

    report.print(title=f"Summary ({format_duration(time.monotonic() - start)})")

    code = report.exit_code
    if code == EXIT_OK:
        print_success(done_message)
    elif code == EXIT_STEP_FAILURES:
        print_warning(
            f"{done_message}, but {len(report.failed_steps)} step(s) failed -- see the summary above."
        )
    elif report.error:
        print_error(f"Error: {report.error}")
    else:
        print_error("Aborted after a failed step -- see the summary above.")
    return code


if __name__ == "__main__":
    sys.exit(main())
