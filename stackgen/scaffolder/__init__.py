"""stackgen scaffolder -- resolves and writes project skeletons.

A ``ScaffoldRequest`` is resolved by the template registry into an ordered
list of rendered ``TemplateFile`` entries, which ``materialize`` writes under
a fresh project root.

Quick usage::

    from stackgen.scaffolder import (
        ScaffoldRequest, StackKind, TestFramework, materialize, resolve_templates,
    )

    request = ScaffoldRequest(
        project_name="my-api",
        stack=StackKind.FLASK,
        test_framework=TestFramework.PYTEST,
    )
    written = await materialize("./my-api", resolve_templates(request))
"""

from stackgen.scaffolder.models import (
    Feature,
    FollowUpCommand,
    ScaffoldRequest,
    StackKind,
    TemplateFile,
    TestFramework,
    WriteMode,
)
from stackgen.scaffolder.registry import (
    TemplateRegistry,
    resolve_commands,
    resolve_templates,
)
from stackgen.scaffolder.templates import TemplateRenderer
from stackgen.scaffolder.writer import (
    PartialFailureError,
    PathConflictError,
    ScaffoldError,
    materialize,
)

__all__ = [
    "Feature",
    "FollowUpCommand",
    "PartialFailureError",
    "PathConflictError",
    "ScaffoldError",
    "ScaffoldRequest",
    "StackKind",
    "TemplateFile",
    "TemplateRegistry",
    "TemplateRenderer",
    "TestFramework",
    "WriteMode",
    "materialize",
    "resolve_commands",
    "resolve_templates",
]
