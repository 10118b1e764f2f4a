"""Shared pytest fixtures for the stackgen test suite.

Provides reusable fixtures for:
- Temporary output directories and configurations
- Sample scaffold requests for every stack
- A temporary git repository to clone from
- Mock subprocess helpers
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from stackgen.config import CommandPolicy, Config
from stackgen.scaffolder.models import Feature, ScaffoldRequest, StackKind, TestFramework


# ---------------------------------------------------------------------------
# Paths & Configuration
# ---------------------------------------------------------------------------

@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """Directory generated projects are written into (auto-cleanup)."""
    out = tmp_path / "output"
    out.mkdir()
    yield out


@pytest.fixture
def config(output_dir: Path) -> Config:
    """Configuration writing into ``output_dir`` with quiet, short-lived commands."""
    return Config(
        output_dir=output_dir,
        commands=CommandPolicy(timeout=30, stream_output=False),
        clone_timeout=60,
    )


@pytest.fixture
def tmp_git_repo(tmp_path: Path) -> Path:
    """Temporary git repository with an initial commit.

    Creates a real git repo so that clone tests have a valid source.
    """
    repo_dir = tmp_path / "source-repo"
    repo_dir.mkdir()
    subprocess.run(["git", "init"], cwd=repo_dir, check=True, capture_output=True)
    subprocess.run(
        ["git", "config", "user.email", "test@stackgen.local"],
        cwd=repo_dir, check=True, capture_output=True,
    )
    subprocess.run(
        ["git", "config", "user.name", "stackgen Test"],
        cwd=repo_dir, check=True, capture_output=True,
    )
    subprocess.run(
        ["git", "config", "commit.gpgsign", "false"],
        cwd=repo_dir, check=True, capture_output=True,
    )
    readme = repo_dir / "README.md"
    readme.write_text("# Source Repo\n", encoding="utf-8")
    subprocess.run(["git", "add", "."], cwd=repo_dir, check=True, capture_output=True)
    subprocess.run(
        ["git", "commit", "-m", "Initial commit"],
        cwd=repo_dir, check=True, capture_output=True,
    )
    yield repo_dir


# ---------------------------------------------------------------------------
# Scaffold requests
# ---------------------------------------------------------------------------

@pytest.fixture
def flask_pytest_request() -> ScaffoldRequest:
    """Flask project with pytest."""
    return ScaffoldRequest(
        project_name="flask-app",
        stack=StackKind.FLASK,
        test_framework=TestFramework.PYTEST,
    )


@pytest.fixture
def fastapi_request() -> ScaffoldRequest:
    """FastAPI project without tests."""
    return ScaffoldRequest(project_name="fastapi-app", stack=StackKind.FASTAPI)


@pytest.fixture
def react_request() -> ScaffoldRequest:
    """Plain React project: no features, no test framework."""
    return ScaffoldRequest(project_name="react-app", stack=StackKind.REACT)


@pytest.fixture
def react_full_request() -> ScaffoldRequest:
    """React project with every feature and Jest."""
    return ScaffoldRequest(
        project_name="React-Full",
        stack=StackKind.REACT,
        features=frozenset(Feature),
        test_framework=TestFramework.JEST,
    )


# ---------------------------------------------------------------------------
# Mock Subprocess (generic)
# ---------------------------------------------------------------------------

class _FakeStreamReader:
    """Minimal stand-in for ``asyncio.StreamReader`` serving fixed lines."""

    def __init__(self, text: str) -> None:
        self._lines = [f"{line}\n".encode("utf-8") for line in text.splitlines()]

    async def readline(self) -> bytes:
        return self._lines.pop(0) if self._lines else b""


@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.  Both ``communicate()`` and line-by-line
    reads from ``stdout``/``stderr`` are supported.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.stdout = _FakeStreamReader(stdout)
        mock_proc.stderr = _FakeStreamReader(stderr)
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory
