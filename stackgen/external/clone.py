"""Repository cloning.

A thin wrapper over ``git clone`` that validates its inputs up front and
reports every failure as a ``CloneError``.
"""

from __future__ import annotations

import asyncio
import re
import shutil
from pathlib import Path

from rich.console import Console
from rich.panel import Panel

from stackgen.utils import run_command

console = Console()

_SUPPORTED_SCHEMES = ("https", "http", "ssh", "git", "file")

# user@host:path, the scp-like form git accepts for ssh remotes
_SCP_LIKE_RE = re.compile(r"^[\w.-]+@[\w.-]+:(?!//).+$")
_SCHEME_RE = re.compile(r"^([A-Za-z][A-Za-z0-9+.-]*)://(.+)$")


class CloneError(Exception):
    """Raised when a repository cannot be cloned."""

    def __init__(self, reason: str, url: str = "", destination: Path | None = None) -> None:
        self.reason = reason
        self.url = url
        self.destination = destination
        super().__init__(reason)


def validate_clone_url(url: str) -> str:
    """Check that *url* uses a transport git can clone from.

    Accepts ``https``, ``http``, ``ssh``, ``git`` and ``file`` URLs and the
    scp-like ``user@host:path`` form.

    Raises:
        CloneError: For empty, malformed, or unsupported URLs.
    """
    url = url.strip()
    if not url:
        raise CloneError("Repository URL must not be empty", url=url)
    match = _SCHEME_RE.match(url)
    if match:
        scheme, rest = match.group(1).lower(), match.group(2)
        if scheme not in _SUPPORTED_SCHEMES:
            raise CloneError(f"Unsupported URL scheme '{scheme}': {url}", url=url)
        if not rest.strip("/"):
            raise CloneError(f"Repository URL has no host or path: {url}", url=url)
        return url
    if _SCP_LIKE_RE.match(url):
        return url
    raise CloneError(f"Not a recognised repository URL: {url}", url=url)


async def clone(
    url: str,
    destination: str | Path,
    timeout: float = 900,
    stream: bool = True,
) -> Path:
    """Clone *url* into *destination*.

    Args:
        url: Repository URL.
        destination: Directory to create; must not exist.
        timeout: Maximum seconds for ``git clone``.
        stream: Echo git's progress output to the console.

    Returns:
        The destination path.

    Raises:
        CloneError: If the URL is invalid, the destination exists, git is
            missing, or the clone fails or times out.  A partially-created
            destination is removed.
    """
    url = validate_clone_url(url)
    dest = Path(destination)

    if dest.exists():
        raise CloneError(f"Destination already exists: {dest}", url=url, destination=dest)

    console.print(f"[cyan]Cloning[/cyan] [bold]{url}[/bold] into [green]{dest}[/green]...")

    try:
        exit_code, _stdout, stderr = await run_command(
            ["git", "clone", "--progress", "--", url, str(dest)],
            timeout=timeout,
            stream=stream,
        )
    except FileNotFoundError as exc:
        raise CloneError(
            "git is not installed or not in PATH", url=url, destination=dest
        ) from exc
    except OSError as exc:
        raise CloneError(
            f"Cannot run git: {exc.strerror or exc}", url=url, destination=dest
        ) from exc

    if exit_code != 0:
        await asyncio.to_thread(_remove_partial, dest)
        detail = stderr.strip().splitlines()[-1] if stderr.strip() else f"exit {exit_code}"
        raise CloneError(
            f"git clone failed: {detail}", url=url, destination=dest
        )

    console.print(
        Panel(
            f"[green]Repository cloned[/green]\n"
            f"  URL:  {url}\n"
            f"  Path: {dest}",
            title="Clone Complete",
            border_style="green",
        )
    )
    return dest


def _remove_partial(dest: Path) -> None:
    if dest.is_dir():
        shutil.rmtree(dest, ignore_errors=True)
