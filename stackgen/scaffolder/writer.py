"""Scaffold writer: materializes resolved template files under a project root.

The root must be absent or empty.  Every template is attempted; failed
writes are collected and reported together instead of stopping at the
first error.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from rich.console import Console

from .models import TemplateFile

console = Console()


class ScaffoldError(Exception):
    """Raised when a project directory cannot be materialized."""

    def __init__(self, message: str, root: Path | None = None) -> None:
        self.root = root
        super().__init__(message)


class PathConflictError(ScaffoldError):
    """Raised when the target root already exists and is not empty."""


class PartialFailureError(ScaffoldError):
    """Raised when some template writes failed.

    Attributes:
        failed: ``(relative_path, reason)`` for every write that failed.
        written: Absolute paths that were written successfully.
    """

    def __init__(
        self,
        root: Path,
        failed: list[tuple[str, str]],
        written: list[Path],
    ) -> None:
        self.failed = failed
        self.written = written
        paths = ", ".join(path for path, _ in failed)
        super().__init__(
            f"{len(failed)} of {len(failed) + len(written)} file(s) could not be "
            f"written under {root}: {paths}",
            root=root,
        )


async def materialize(root: str | Path, templates: list[TemplateFile]) -> list[Path]:
    """Create *root* and write every template beneath it, in order.

    Args:
        root: Project root directory.  Must not exist, or be an empty directory.
        templates: Rendered templates, typically from ``resolve_templates``.

    Returns:
        The absolute paths written, in template order.

    Raises:
        PathConflictError: If *root* exists and is a file or a non-empty
            directory.  Nothing is written.
        ScaffoldError: If *root* cannot be created, or a template resolves
            outside *root*.  Nothing is written.
        PartialFailureError: If one or more writes failed; the remaining
            templates were still written.
    """
    root_path = Path(root)
    await asyncio.to_thread(_check_root_available, root_path)

    targets = [
        (template.relative_path, _target_path(root_path, template), template.text)
        for template in templates
    ]

    try:
        await asyncio.to_thread(root_path.mkdir, parents=True, exist_ok=True)
    except OSError as exc:
        raise ScaffoldError(
            f"Cannot create project directory {root_path}: {exc}", root=root_path
        ) from exc

    written: list[Path] = []
    failed: list[tuple[str, str]] = []

    for relative_path, target, content in targets:
        try:
            await asyncio.to_thread(_write_file, target, content)
        except OSError as exc:
            failed.append((relative_path, exc.strerror or str(exc)))
            console.print(f"  [red]x[/red] {relative_path}: {exc}")
        else:
            written.append(target)
            console.print(f"  [green]+[/green] {relative_path}")

    if failed:
        raise PartialFailureError(root_path, failed, written)

    return written


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _check_root_available(root: Path) -> None:
    if not root.exists():
        return
    if not root.is_dir():
        raise PathConflictError(f"Target exists and is not a directory: {root}", root=root)
    if any(root.iterdir()):
        raise PathConflictError(f"Target directory is not empty: {root}", root=root)


def _target_path(root: Path, template: TemplateFile) -> Path:
    """Absolute destination for *template*; must stay inside *root*."""
    base = root.resolve()
    target = (base / template.relative_path).resolve()
    if not target.is_relative_to(base) or target == base:
        raise ScaffoldError(
            f"Template path {template.relative_path!r} resolves outside {root}",
            root=root,
        )
    return target


def _write_file(path: Path, content: str) -> None:
    """Synchronous helper: create parent dirs and write content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
