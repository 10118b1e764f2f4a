"""Data model for project scaffolding.

Defines the typed request produced by the prompt layer, the template file
entries held by the registry, and the follow-up commands derived from a
request.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from stackgen.utils import MAX_NAME_LENGTH, is_safe_name


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class StackKind(str, Enum):
    """Target framework of the generated project."""
    REACT = "react"
    FLASK = "flask"
    FASTAPI = "fastapi"

    @property
    def label(self) -> str:
        return _STACK_LABELS[self]

    @property
    def is_python(self) -> bool:
        return self in (StackKind.FLASK, StackKind.FASTAPI)


_STACK_LABELS: dict[StackKind, str] = {
    StackKind.REACT: "React",
    StackKind.FLASK: "Flask",
    StackKind.FASTAPI: "FastAPI",
}


class Feature(str, Enum):
    """Optional feature toggles.  Declaration order is application order."""
    TAILWIND = "tailwind"
    LINTING = "linting"
    TYPESCRIPT = "typescript"


class TestFramework(str, Enum):
    """Test framework variants; ``NONE`` disables test scaffolding."""
    __test__ = False

    NONE = "none"
    UNITTEST = "unittest"
    PYTEST = "pytest"
    JEST = "jest"
    MOCHA = "mocha"


class WriteMode(str, Enum):
    """How a registry entry combines with an earlier entry for the same path."""
    REPLACE = "replace"
    APPEND = "append"


STACK_FEATURES: dict[StackKind, tuple[Feature, ...]] = {
    StackKind.REACT: (Feature.TAILWIND, Feature.LINTING, Feature.TYPESCRIPT),
    StackKind.FLASK: (),
    StackKind.FASTAPI: (),
}

STACK_TEST_FRAMEWORKS: dict[StackKind, tuple[TestFramework, ...]] = {
    StackKind.REACT: (TestFramework.JEST, TestFramework.MOCHA, TestFramework.NONE),
    StackKind.FLASK: (TestFramework.UNITTEST, TestFramework.PYTEST, TestFramework.NONE),
    StackKind.FASTAPI: (TestFramework.UNITTEST, TestFramework.PYTEST, TestFramework.NONE),
}


# ---------------------------------------------------------------------------
# Scaffold request
# ---------------------------------------------------------------------------

class ScaffoldRequest(BaseModel):
    """Everything the registry needs to pick templates and commands.

    Built once from user input and never mutated afterwards.
    """
    model_config = ConfigDict(frozen=True)

    project_name: str = Field(
        ..., max_length=MAX_NAME_LENGTH, description="Directory name of the new project"
    )
    stack: StackKind = Field(..., description="Framework to scaffold")
    features: frozenset[Feature] = Field(
        default_factory=frozenset, description="Optional feature toggles"
    )
    test_framework: TestFramework = Field(
        default=TestFramework.NONE, description="Test framework to set up"
    )

    @field_validator("project_name")
    @classmethod
    def _check_project_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("project name must not be empty")
        if not is_safe_name(value):
            raise ValueError(
                f"project name {value!r} is not filesystem-safe "
                "(use letters, digits, '.', '_' or '-', starting with a letter or digit)"
            )
        return value

    @model_validator(mode="after")
    def _check_stack_options(self) -> "ScaffoldRequest":
        unsupported = sorted(f.value for f in self.features - set(STACK_FEATURES[self.stack]))
        if unsupported:
            raise ValueError(
                f"features {', '.join(unsupported)} are not available for {self.stack.label}"
            )
        if self.test_framework not in STACK_TEST_FRAMEWORKS[self.stack]:
            raise ValueError(
                f"test framework {self.test_framework.value!r} is not available "
                f"for {self.stack.label}"
            )
        return self

    def has(self, feature: Feature) -> bool:
        return feature in self.features

    def template_context(self) -> dict[str, Any]:
        """Build the Jinja2 template context for this request."""
        return {
            "project_name": self.project_name,
            "stack": self.stack.value,
            "stack_label": self.stack.label,
            "features": sorted(f.value for f in self.features),
            "test_framework": self.test_framework.value,
            "tailwind": self.has(Feature.TAILWIND),
            "linting": self.has(Feature.LINTING),
            "typescript": self.has(Feature.TYPESCRIPT),
        }


# ---------------------------------------------------------------------------
# Template files
# ---------------------------------------------------------------------------

ContentGenerator = Callable[[ScaffoldRequest], str]


@dataclass(frozen=True)
class TemplateFile:
    """A file the scaffolder writes, relative to the project root.

    ``content`` is either the literal text or a generator called with the
    request at resolution time.  Paths use ``/`` separators and may never
    leave the project root.
    """

    relative_path: str
    content: Union[str, ContentGenerator]
    mode: WriteMode = WriteMode.REPLACE

    def __post_init__(self) -> None:
        validate_relative_path(self.relative_path)

    @property
    def is_rendered(self) -> bool:
        return isinstance(self.content, str)

    @property
    def text(self) -> str:
        """The literal content.  Raises ``TypeError`` if not yet rendered."""
        if not isinstance(self.content, str):
            raise TypeError(f"Template {self.relative_path!r} has not been rendered")
        return self.content

    def render(self, request: ScaffoldRequest) -> "TemplateFile":
        """Return a copy whose content is the generated string."""
        if isinstance(self.content, str):
            return self
        return replace(self, content=self.content(request))


def validate_relative_path(path: str) -> str:
    """Reject paths that are empty, absolute, or escape the project root.

    Raises:
        ValueError: On any invalid path.
    """
    if not path or not path.strip():
        raise ValueError("template path must not be empty")
    if "\\" in path:
        raise ValueError(f"template path {path!r} must use '/' separators")
    pure = PurePosixPath(path)
    if pure.is_absolute():
        raise ValueError(f"template path {path!r} must be relative")
    if ".." in pure.parts:
        raise ValueError(f"template path {path!r} must not contain '..'")
    if pure.parts in ((), (".",)):
        raise ValueError(f"template path {path!r} does not name a file")
    return path


# ---------------------------------------------------------------------------
# Follow-up commands
# ---------------------------------------------------------------------------

class FollowUpCommand(BaseModel):
    """An external process run after the project files are written."""
    model_config = ConfigDict(frozen=True)

    executable: str = Field(..., min_length=1, description="Program name or path")
    args: tuple[str, ...] = Field(default=(), description="Arguments, in order")
    working_directory: Path = Field(..., description="Directory the command runs in")
    description: str = Field(default="", description="Human-readable purpose")

    @property
    def argv(self) -> list[str]:
        return [self.executable, *self.args]

    @property
    def display(self) -> str:
        return " ".join(self.argv)
