"""External processes: follow-up commands and repository cloning."""

from .clone import CloneError, clone, validate_clone_url
from .commands import CommandResult, CommandRunner, ExternalCommandFailedError

__all__ = [
    "CloneError",
    "CommandResult",
    "CommandRunner",
    "ExternalCommandFailedError",
    "clone",
    "validate_clone_url",
]
