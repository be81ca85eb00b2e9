"""Controllers for workflow CLI commands."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from chrome_workflows.config import Settings
from chrome_workflows.runner.runner import WorkflowRunner
from chrome_workflows.workflows.loader import get_workflow, list_workflows
from chrome_workflows.workflows.models import RunOptions, RunPhase, WorkflowError
from chrome_workflows.workflows.prompts import build_prompt, describe_workflow
from chrome_workflows.workflows.validator import format_errors, resolve_params

logger = logging.getLogger(__name__)

EXAMPLE_WORKFLOW = '''\
name = "example"
description = "Open a page, screenshot it and report the page title"

task = """
Go to {{url}}
Wait for the page to finish loading.
Take a screenshot (full page: {{full_page}}).
Save the page title and URL as JSON.
"""

[params.url]
type = "string"
required = true
description = "Page to open"

[params.full_page]
type = "boolean"
default = false
description = "Capture the full scrollable page"

[capture]
screenshots = "./output/{{name}}/screenshots/"
data = "./output/{{name}}/page.json"
'''


@dataclass(slots=True)
class CommandResult:
    """Printable outcome of one CLI command."""

    lines: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class RunCommand:
    """CLI input for workflow execution."""

    workflow: str
    params: dict[str, Any]
    dry_run: bool = False
    foreground: bool = False
    work_dir: Path | None = None


@dataclass(slots=True)
class ListCommand:
    """CLI input for workflow listing."""

    paths: tuple[Path, ...] = ()


@dataclass(slots=True)
class InspectCommand:
    """CLI input for describe/validate/prompt commands."""

    workflow: str
    params: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class InitCommand:
    """CLI input for project scaffolding."""

    directory: Path


def parse_workflow_params(args: Sequence[str]) -> dict[str, Any]:
    """Parse ``--key value``, ``--key=value`` and bare ``--flag`` tokens.

    A bare flag (no following non-flag token) becomes ``True``.
    """

    params: dict[str, Any] = {}
    index = 0
    while index < len(args):
        arg = args[index]
        if not arg.startswith("--") or len(arg) == 2:
            raise ValueError(f"Unexpected argument: {arg!r} (workflow params use --name value)")

        key, separator, value = arg[2:].partition("=")
        if separator:
            params[key] = value
        elif index + 1 < len(args) and not args[index + 1].startswith("--"):
            params[key] = args[index + 1]
            index += 1
        else:
            params[key] = True
        index += 1
    return params


class WorkflowCliController:
    """Translate CLI commands into pipeline calls and printable lines."""

    def run(self, command: RunCommand) -> CommandResult:
        try:
            settings = _settings()
            result = WorkflowRunner(settings=settings).run(
                command.workflow,
                RunOptions(
                    params=command.params,
                    background=not command.foreground,
                    work_dir=command.work_dir,
                    dry_run=command.dry_run,
                ),
            )
        except (WorkflowError, ValueError) as error:
            return CommandResult(error=str(error))

        if not result.success:
            return CommandResult(error=f"Workflow failed: {result.error}")

        if result.phase is RunPhase.DRY_RUN:
            return CommandResult(
                lines=[
                    "=== DRY RUN ===",
                    "Prompt that would be sent to the agent:",
                    "",
                    result.prompt or "",
                    "",
                    "=== END DRY RUN ===",
                ],
            )

        lines: list[str] = []
        if result.phase is RunPhase.BACKGROUND_STARTED:
            lines.append(f"Workflow running in background (PID: {result.pid})")
            lines.append(f"Output will be saved to: {result.output_dir}")
            lines.append("")
            lines.append("Workflow started successfully")
        else:
            lines.append("")
            lines.append("Workflow completed successfully")
        lines.append(f"Output: {result.output_dir}")
        if result.duration_ms:
            lines.append(f"Duration: {result.duration_ms / 1000:.1f}s")
        return CommandResult(lines=lines)

    def list_definitions(self, command: ListCommand) -> CommandResult:
        try:
            settings = _settings()
        except ValueError as error:
            return CommandResult(error=str(error))

        workflows = list_workflows(
            command.paths or settings.workflow_paths,
            scan_depth=settings.scan_depth,
        )
        if not workflows:
            return CommandResult(
                lines=[
                    "No workflows found.",
                    "",
                    "Create workflows in ./workflows/ or ~/.chrome-workflows/workflows/",
                    "(run: chrome-workflows init)",
                ],
            )

        lines = ["Available workflows:", ""]
        for loaded in workflows:
            description = (
                f" - {loaded.definition.description}" if loaded.definition.description else ""
            )
            lines.append(f"  {loaded.definition.name}{description}")
        lines.append("")
        lines.append(f"Total: {len(workflows)} workflow(s)")
        lines.append("")
        lines.append("Run: chrome-workflows describe <name> for details")
        return CommandResult(lines=lines)

    def describe(self, command: InspectCommand) -> CommandResult:
        try:
            settings = _settings()
            loaded = get_workflow(
                command.workflow,
                settings.workflow_paths,
                scan_depth=settings.scan_depth,
            )
        except (WorkflowError, ValueError) as error:
            return CommandResult(error=str(error))

        lines = describe_workflow(loaded.definition).split("\n")
        lines.append("")
        lines.append(f"File: {loaded.file_path}")
        return CommandResult(lines=lines)

    def validate(self, command: InspectCommand) -> CommandResult:
        try:
            settings = _settings()
            loaded = get_workflow(
                command.workflow,
                settings.workflow_paths,
                scan_depth=settings.scan_depth,
            )
        except (WorkflowError, ValueError) as error:
            return CommandResult(error=str(error))

        validation = resolve_params(loaded.definition, command.params)
        if not validation.valid:
            return CommandResult(
                error=(
                    f'Workflow "{command.workflow}" has validation errors:\n'
                    f"{format_errors(validation.errors)}"
                ),
            )

        lines = [f'Workflow "{command.workflow}" is valid', "", "Resolved params:"]
        if not validation.resolved_params:
            lines.append("  (none)")
        for key, value in validation.resolved_params.items():
            lines.append(f"  {key}: {json.dumps(value, ensure_ascii=False, default=str)}")
        return CommandResult(lines=lines)

    def prompt(self, command: InspectCommand) -> CommandResult:
        try:
            settings = _settings()
            loaded = get_workflow(
                command.workflow,
                settings.workflow_paths,
                scan_depth=settings.scan_depth,
            )
        except (WorkflowError, ValueError) as error:
            return CommandResult(error=str(error))

        validation = resolve_params(loaded.definition, command.params)
        if not validation.valid:
            return CommandResult(error=f"Validation errors:\n{format_errors(validation.errors)}")
        return CommandResult(lines=[build_prompt(loaded.definition, validation.resolved_params)])

    def init(self, command: InitCommand) -> CommandResult:
        workflows_dir = command.directory / "workflows"
        example_path = workflows_dir / "example.toml"
        if example_path.exists():
            return CommandResult(
                lines=[f"Already initialized: {example_path} exists (left unchanged)"],
            )

        workflows_dir.mkdir(parents=True, exist_ok=True)
        example_path.write_text(EXAMPLE_WORKFLOW, "utf-8")
        logger.info("Created example workflow at %s", example_path)
        return CommandResult(
            lines=[
                f"Created {workflows_dir}/",
                f"Created {example_path}",
                "",
                "Try: chrome-workflows run example --url https://example.com --dry-run",
            ],
        )


def _settings() -> Settings:
    settings = Settings.from_env()
    settings.validate()
    return settings
