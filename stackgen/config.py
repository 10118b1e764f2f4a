"""stackgen configuration.

Centralised, typed configuration for every command.  All settings use
Pydantic v2 models so they can be validated at construction time and
serialised to/from JSON or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

DEFAULT_REPOSITORIES: dict[str, str] = {
    "ollama": "https://github.com/ollama/ollama.git",
    "go": "https://github.com/golang/go.git",
}

_TRUTHY = {"1", "true", "yes", "on"}


class CommandPolicy(BaseModel):
    """How follow-up commands are executed and how their failures are treated."""

    abort_on_failure: bool = Field(
        default=False,
        description="Stop at the first failing command instead of running the rest",
    )
    timeout: int = Field(default=600, ge=1, description="Per-command timeout in seconds")
    stream_output: bool = Field(
        default=True, description="Echo command output to the console while it runs"
    )


class Config(BaseModel):
    """Global stackgen configuration.

    Instances are created once by the CLI entry point (from a JSON file or
    the environment) and passed explicitly to the registry, the writer and
    the command runner.
    """

    output_dir: Path = Field(default=Path("."))
    repositories: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_REPOSITORIES),
        description="Named repositories offered by clone-repo",
    )
    git_init: bool = Field(
        default=False, description="Run 'git init' in every generated project"
    )
    commands: CommandPolicy = Field(default_factory=CommandPolicy)
    clone_timeout: int = Field(default=900, ge=1, description="git clone timeout in seconds")

    def project_root(self, project_name: str) -> Path:
        """Directory a project named *project_name* is generated into."""
        return self.output_dir / project_name

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file.

        Returns:
            The path where the file was written.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON.

        Args:
            path: The JSON file to read.

        Returns:
            A validated ``Config`` instance.
        """
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            STACKGEN_OUTPUT_DIR, STACKGEN_GIT_INIT, STACKGEN_REPOSITORIES,
            STACKGEN_COMMAND_TIMEOUT, STACKGEN_ABORT_ON_FAILURE,
            STACKGEN_STREAM_OUTPUT, STACKGEN_CLONE_TIMEOUT.

        ``STACKGEN_REPOSITORIES`` is a comma-separated list of ``name=url``
        pairs that replaces the default repository map.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("STACKGEN_OUTPUT_DIR"):
            kwargs["output_dir"] = Path(os.environ["STACKGEN_OUTPUT_DIR"])
        if os.environ.get("STACKGEN_GIT_INIT"):
            kwargs["git_init"] = _env_flag("STACKGEN_GIT_INIT")
        if os.environ.get("STACKGEN_REPOSITORIES"):
            kwargs["repositories"] = _parse_repositories(os.environ["STACKGEN_REPOSITORIES"])
        if os.environ.get("STACKGEN_CLONE_TIMEOUT"):
            kwargs["clone_timeout"] = int(os.environ["STACKGEN_CLONE_TIMEOUT"])

        policy_kwargs: dict[str, Any] = {}
        if os.environ.get("STACKGEN_COMMAND_TIMEOUT"):
            policy_kwargs["timeout"] = int(os.environ["STACKGEN_COMMAND_TIMEOUT"])
        if os.environ.get("STACKGEN_ABORT_ON_FAILURE"):
            policy_kwargs["abort_on_failure"] = _env_flag("STACKGEN_ABORT_ON_FAILURE")
        if os.environ.get("STACKGEN_STREAM_OUTPUT"):
            policy_kwargs["stream_output"] = _env_flag("STACKGEN_STREAM_OUTPUT")

        return cls(commands=CommandPolicy(**policy_kwargs), **kwargs)


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in _TRUTHY


def _parse_repositories(raw: str) -> dict[str, str]:
    """Parse ``"name=url,name2=url2"`` into a mapping.

    Raises:
        ValueError: If an entry has no ``=`` or an empty name/url.
    """
    repositories: dict[str, str] = {}
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        name, sep, url = entry.partition("=")
        if not sep or not name.strip() or not url.strip():
            raise ValueError(f"Invalid repository entry (expected name=url): {entry!r}")
        repositories[name.strip()] = url.strip()
    return repositories
