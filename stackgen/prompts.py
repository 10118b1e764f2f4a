"""Interactive prompts.

Collects the user's choices with ``rich.prompt`` and turns the answers into
typed values (``ScaffoldRequest``, enum members) right here, so nothing
downstream compares raw answer strings.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, TypeVar

from pydantic import ValidationError
from rich.prompt import Confirm, Prompt

from stackgen.scaffolder.models import (
    STACK_TEST_FRAMEWORKS,
    Feature,
    ScaffoldRequest,
    StackKind,
    TestFramework,
)
from stackgen.utils import console, is_safe_name, print_warning, sanitize_name

E = TypeVar("E", StackKind, Feature, TestFramework)

_FEATURE_QUESTIONS: dict[Feature, str] = {
    Feature.TAILWIND: "Do you want to include Tailwind CSS?",
    Feature.LINTING: "Do you want to include Linting (ESLint)?",
    Feature.TYPESCRIPT: "Do you want to use TypeScript?",
}


class UserCancelledError(Exception):
    """Raised when the user aborts a prompt (Ctrl-C or end of input)."""


@contextmanager
def cancellable() -> Iterator[None]:
    """Translate keyboard interrupts and EOF into ``UserCancelledError``."""
    try:
        yield
    except (KeyboardInterrupt, EOFError) as exc:
        raise UserCancelledError("Cancelled by user") from exc


def ask_text(label: str, default: str | None = None) -> str:
    with cancellable():
        if default is None:
            return Prompt.ask(label, console=console)
        return Prompt.ask(label, default=default, console=console)


def ask_name(label: str = "Project Name") -> str:
    """Ask for a directory name until a filesystem-safe one is given."""
    while True:
        answer = ask_text(label).strip()
        if is_safe_name(answer):
            return answer
        suggestion = sanitize_name(answer)
        if answer and suggestion and suggestion != answer:
            print_warning(
                f"'{answer}' is not a valid directory name. Try '{suggestion}'."
            )
        else:
            print_warning(
                "Use letters, digits, '.', '_' or '-', starting with a letter or digit."
            )


def ask_choice(label: str, options: tuple[E, ...] | list[E], default: E | None = None) -> E:
    """Ask the user to pick one of *options* (enum members) by value."""
    by_value = {option.value: option for option in options}
    with cancellable():
        answer = Prompt.ask(
            label,
            choices=list(by_value),
            default=(default or options[0]).value,
            console=console,
        )
    return by_value[answer]


def ask_confirm(label: str, default: bool = False) -> bool:
    with cancellable():
        return Confirm.ask(label, default=default, console=console)


# ---------------------------------------------------------------------------
# Command-level flows
# ---------------------------------------------------------------------------


def prompt_scaffold_request(stack: StackKind) -> ScaffoldRequest:
    """Run the prompt flow for *stack* and return the validated request.

    Raises:
        UserCancelledError: If the user aborts any prompt.
    """
    while True:
        project_name = ask_name()

        features: set[Feature] = set()
        frameworks = STACK_TEST_FRAMEWORKS[stack]

        if stack is StackKind.REACT:
            for feature in (Feature.TAILWIND, Feature.LINTING):
                if ask_confirm(_FEATURE_QUESTIONS[feature]):
                    features.add(feature)
            test_framework = ask_choice("Choose a testing framework", frameworks)
            if ask_confirm(_FEATURE_QUESTIONS[Feature.TYPESCRIPT]):
                features.add(Feature.TYPESCRIPT)
        else:
            test_framework = ask_choice("Choose a testing framework", frameworks)

        try:
            return ScaffoldRequest(
                project_name=project_name,
                stack=stack,
                features=frozenset(features),
                test_framework=test_framework,
            )
        except ValidationError as exc:
            for error in exc.errors():
                print_warning(str(error.get("msg", error)))


def prompt_clone_target(repositories: dict[str, str]) -> tuple[str, str]:
    """Ask which configured repository to clone and into which folder.

    Returns:
        ``(url, folder_name)``.

    Raises:
        UserCancelledError: If the user aborts any prompt.
        ValueError: If *repositories* is empty.
    """
    if not repositories:
        raise ValueError("No repositories configured")

    names = list(repositories)
    with cancellable():
        name = Prompt.ask(
            "Select Repository to Clone",
            choices=names,
            default=names[0],
            console=console,
        )
    folder = ask_name("Enter Folder Name")
    return repositories[name], folder
