"""Template registry: which files and commands a scaffold request produces.

Each stack contributes a disjoint base set of ``TemplateFile`` entries.
Features (in ``Feature`` declaration order) and then the selected test
framework contribute further entries on top of it.  Entries are merged by
path:

* ``WriteMode.REPLACE`` -- the later entry wins; the path keeps the position
  of its first registration.
* ``WriteMode.APPEND`` -- the entry's lines are appended to the existing
  content, skipping lines that are already present.

Resolution renders every entry to a string and touches nothing on disk, so
the output can be inspected without writing a project.
"""

from __future__ import annotations

import json
import re
from functools import lru_cache
from pathlib import Path

from stackgen.config import Config

from .models import (
    Feature,
    FollowUpCommand,
    ScaffoldRequest,
    StackKind,
    TemplateFile,
    TestFramework,
    WriteMode,
)
from .templates import TemplateRenderer


# ---------------------------------------------------------------------------
# Follow-up command data
# ---------------------------------------------------------------------------

REACT_FEATURE_PACKAGES: dict[Feature, tuple[str, ...]] = {
    Feature.TAILWIND: ("tailwindcss@3", "postcss", "autoprefixer"),
    Feature.LINTING: ("eslint@8",),
    Feature.TYPESCRIPT: ("typescript", "@types/react", "@types/react-dom"),
}

REACT_TEST_PACKAGES: dict[TestFramework, tuple[str, ...]] = {
    TestFramework.JEST: ("jest",),
    TestFramework.MOCHA: ("mocha",),
}

_REACT_TEST_SCRIPTS: dict[TestFramework, str] = {
    TestFramework.NONE: "react-scripts test",
    TestFramework.JEST: "jest",
    TestFramework.MOCHA: "mocha",
}


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TemplateRegistry:
    """Static catalog mapping a ``ScaffoldRequest`` to template files.

    The catalog is built once per instance from the packaged Jinja2
    templates; it is never mutated afterwards.
    """

    def __init__(self, renderer: TemplateRenderer | None = None) -> None:
        self.renderer = renderer or TemplateRenderer()
        r = self.renderer.generator

        python_common = [
            TemplateFile(".gitignore", r("python/gitignore.j2")),
            TemplateFile("README.md", r("python/README.md.j2")),
        ]

        self._base: dict[StackKind, list[TemplateFile]] = {
            StackKind.FLASK: [
                TemplateFile("app/__init__.py", r("python/package_init.py.j2")),
                TemplateFile("app/main.py", r("flask/app/main.py.j2")),
                TemplateFile("app/models.py", r("flask/app/models.py.j2")),
                TemplateFile("app/schemas.py", r("flask/app/schemas.py.j2")),
                TemplateFile("app/routes.py", r("flask/app/routes.py.j2")),
                TemplateFile("requirements.txt", r("flask/requirements.txt.j2")),
                TemplateFile("Dockerfile", r("flask/Dockerfile.j2")),
                *python_common,
            ],
            StackKind.FASTAPI: [
                TemplateFile("app/__init__.py", r("python/package_init.py.j2")),
                TemplateFile("app/main.py", r("fastapi/app/main.py.j2")),
                TemplateFile("app/models.py", r("fastapi/app/models.py.j2")),
                TemplateFile("app/schemas.py", r("fastapi/app/schemas.py.j2")),
                TemplateFile("app/routes.py", r("fastapi/app/routes.py.j2")),
                TemplateFile("requirements.txt", r("fastapi/requirements.txt.j2")),
                TemplateFile("Dockerfile", r("fastapi/Dockerfile.j2")),
                *python_common,
            ],
            StackKind.REACT: [
                TemplateFile("package.json", _package_json),
                TemplateFile("public/index.html", r("react/public/index.html.j2")),
                TemplateFile("src/index.js", r("react/src/index.js.j2")),
                TemplateFile("src/App.js", r("react/src/App.js.j2")),
                TemplateFile("src/index.css", r("react/src/index.css.j2")),
                TemplateFile(".gitignore", r("react/gitignore.j2")),
                TemplateFile("README.md", r("react/README.md.j2")),
            ],
        }

        # React ships its own copies of eslint and jest; a top-level install
        # of either trips the react-scripts dependency preflight.
        skip_preflight = TemplateFile(".env", r("react/env.j2"), WriteMode.APPEND)

        self._features: dict[tuple[StackKind, Feature], list[TemplateFile]] = {
            (StackKind.REACT, Feature.TAILWIND): [
                TemplateFile("src/index.css", r("react/src/index.tailwind.css.j2")),
                TemplateFile("tailwind.config.js", r("react/tailwind.config.js.j2")),
                TemplateFile("postcss.config.js", r("react/postcss.config.js.j2")),
            ],
            (StackKind.REACT, Feature.LINTING): [
                TemplateFile(".eslintrc.json", r("react/eslintrc.json.j2")),
                skip_preflight,
            ],
            (StackKind.REACT, Feature.TYPESCRIPT): [
                TemplateFile("tsconfig.json", r("react/tsconfig.json.j2")),
                TemplateFile("src/react-app-env.d.ts", r("react/react-app-env.d.ts.j2")),
            ],
        }

        self._test_frameworks: dict[tuple[StackKind, TestFramework], list[TemplateFile]] = {
            (StackKind.REACT, TestFramework.JEST): [
                TemplateFile("src/__tests__/app.test.js", r("react/tests/jest.test.js.j2")),
                skip_preflight,
            ],
            (StackKind.REACT, TestFramework.MOCHA): [
                TemplateFile("test/app.spec.js", r("react/tests/mocha.spec.js.j2")),
                TemplateFile(".mocharc.json", r("react/tests/mocharc.json.j2")),
            ],
        }
        for stack in (StackKind.FLASK, StackKind.FASTAPI):
            self._test_frameworks[(stack, TestFramework.PYTEST)] = [
                TemplateFile("tests/__init__.py", ""),
                TemplateFile("tests/test_main.py", r(f"python_tests/{stack.value}_pytest.py.j2")),
                TemplateFile("requirements.txt", "pytest\n", WriteMode.APPEND),
            ]
            # unittest is in the standard library, nothing to add to requirements.txt
            self._test_frameworks[(stack, TestFramework.UNITTEST)] = [
                TemplateFile("tests/__init__.py", ""),
                TemplateFile("tests/test_main.py", r(f"python_tests/{stack.value}_unittest.py.j2")),
            ]

    # -- Public API --------------------------------------------------------

    def contributions(self, request: ScaffoldRequest) -> list[TemplateFile]:
        """Return the unmerged entries for *request*, in application order."""
        entries = list(self._base[request.stack])
        for feature in Feature:
            if request.has(feature):
                entries.extend(self._features.get((request.stack, feature), []))
        entries.extend(
            self._test_frameworks.get((request.stack, request.test_framework), [])
        )
        return entries

    def resolve_templates(self, request: ScaffoldRequest) -> list[TemplateFile]:
        """Resolve *request* into rendered, merged template files.

        Returns:
            One ``TemplateFile`` per distinct path, with string content and
            ``WriteMode.REPLACE``, ordered by first registration.
        """
        return merge_templates(self.contributions(request), request)

    def resolve_commands(
        self,
        request: ScaffoldRequest,
        root: Path,
        config: Config,
    ) -> list[FollowUpCommand]:
        """Derive the follow-up commands for *request*, in execution order."""
        commands: list[FollowUpCommand] = []

        if request.stack is StackKind.REACT:
            commands.append(_npm(root, "Install base dependencies"))
            for feature in Feature:
                if request.has(feature):
                    commands.append(
                        _npm(
                            root,
                            f"Install {feature.value} packages",
                            "-D",
                            *REACT_FEATURE_PACKAGES[feature],
                        )
                    )
            packages = REACT_TEST_PACKAGES.get(request.test_framework)
            if packages:
                commands.append(
                    _npm(
                        root,
                        f"Install {request.test_framework.value}",
                        "--save-dev",
                        *packages,
                    )
                )

        if config.git_init:
            commands.append(
                FollowUpCommand(
                    executable="git",
                    args=("init",),
                    working_directory=root,
                    description="Initialise git repository",
                )
            )

        return commands


# ---------------------------------------------------------------------------
# Module-level convenience API
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def default_registry() -> TemplateRegistry:
    """Return the shared registry over the packaged templates."""
    return TemplateRegistry()


def resolve_templates(request: ScaffoldRequest) -> list[TemplateFile]:
    """Resolve *request* against the default registry."""
    return default_registry().resolve_templates(request)


def resolve_commands(
    request: ScaffoldRequest, root: Path, config: Config
) -> list[FollowUpCommand]:
    """Derive follow-up commands for *request* from the default registry."""
    return default_registry().resolve_commands(request, root, config)


# ---------------------------------------------------------------------------
# Merging
# ---------------------------------------------------------------------------


def merge_templates(
    entries: list[TemplateFile], request: ScaffoldRequest
) -> list[TemplateFile]:
    """Render and merge *entries* by path using their ``WriteMode``."""
    merged: dict[str, str] = {}
    for entry in entries:
        text = entry.render(request).text
        path = entry.relative_path
        if entry.mode is WriteMode.APPEND:
            merged[path] = append_lines(merged.get(path, ""), text)
        else:
            merged[path] = text
    return [TemplateFile(path, text) for path, text in merged.items()]


def append_lines(existing: str, addition: str) -> str:
    """Append the non-blank lines of *addition* that *existing* lacks.

    Comparison ignores surrounding whitespace, and every appended line is
    newline-terminated.

    Examples::

        append_lines("flask\\n", "pytest\\n")          -> "flask\\npytest\\n"
        append_lines("flask\\npytest\\n", "pytest\\n") -> "flask\\npytest\\n"
    """
    present = {line.strip() for line in existing.splitlines() if line.strip()}
    result = existing
    if result and not result.endswith("\n"):
        result += "\n"
    for line in addition.splitlines():
        stripped = line.strip()
        if not stripped or stripped in present:
            continue
        result += line.rstrip() + "\n"
        present.add(stripped)
    return result


# ---------------------------------------------------------------------------
# Content generators
# ---------------------------------------------------------------------------


def npm_package_name(project_name: str) -> str:
    """Derive a valid npm package name (lowercase, no leading ``.``/``_``)."""
    name = re.sub(r"[^a-z0-9._-]+", "-", project_name.lower())
    return name.lstrip("._-") or "app"


def _package_json(request: ScaffoldRequest) -> str:
    data: dict[str, object] = {
        "name": npm_package_name(request.project_name),
        "version": "0.1.0",
        "private": True,
        "dependencies": {
            "react": "^18.3.1",
            "react-dom": "^18.3.1",
            "react-scripts": "5.0.1",
        },
        "scripts": {
            "start": "react-scripts start",
            "build": "react-scripts build",
            "test": _REACT_TEST_SCRIPTS[request.test_framework],
        },
    }
    if not request.has(Feature.LINTING):
        data["eslintConfig"] = {"extends": ["react-app", "react-app/jest"]}
    data["browserslist"] = {
        "production": [">0.2%", "not dead", "not op_mini all"],
        "development": [
            "last 1 chrome version",
            "last 1 firefox version",
            "last 1 safari version",
        ],
    }
    return json.dumps(data, indent=2) + "\n"


def _npm(root: Path, description: str, *packages: str) -> FollowUpCommand:
    return FollowUpCommand(
        executable="npm",
        args=("install", *packages),
        working_directory=root,
        description=description,
    )
