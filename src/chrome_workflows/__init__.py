"""Natural-language browser workflows executed by an external agent CLI."""

from chrome_workflows.runner.runner import WorkflowRunner
from chrome_workflows.workflows.definition import define_workflow
from chrome_workflows.workflows.loader import (
    get_workflow,
    get_workflow_paths,
    list_workflows,
    load_workflow,
    load_workflow_file,
)
from chrome_workflows.workflows.models import (
    MalformedWorkflowError,
    RunOptions,
    RunResult,
    WorkflowDefinition,
    WorkflowError,
    WorkflowNotFoundError,
)
from chrome_workflows.workflows.prompts import build_prompt, describe_workflow
from chrome_workflows.workflows.validator import (
    coerce_params,
    format_errors,
    resolve_params,
    validate_params,
)

__version__ = "0.1.0"

__all__ = [
    "MalformedWorkflowError",
    "RunOptions",
    "RunResult",
    "WorkflowDefinition",
    "WorkflowError",
    "WorkflowNotFoundError",
    "WorkflowRunner",
    "__version__",
    "build_prompt",
    "coerce_params",
    "define_workflow",
    "describe_workflow",
    "format_errors",
    "get_workflow",
    "get_workflow_paths",
    "list_workflows",
    "load_workflow",
    "load_workflow_file",
    "resolve_params",
    "validate_params",
]
