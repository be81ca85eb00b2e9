"""CLI entrypoint for chrome-workflows."""

import logging
from pathlib import Path

import rich_click as click

from chrome_workflows import __version__
from chrome_workflows.controllers import (
    CommandResult,
    InitCommand,
    InspectCommand,
    ListCommand,
    RunCommand,
    WorkflowCliController,
    parse_workflow_params,
)

click.rich_click.USE_MARKDOWN = True
CONTROLLER = WorkflowCliController()
_PASSTHROUGH = {"ignore_unknown_options": True, "allow_extra_args": True}


@click.group()
@click.version_option(version=__version__, prog_name="chrome-workflows")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
def chrome_workflows(verbose: bool) -> None:
    """Natural language browser workflows for an agent CLI."""

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@chrome_workflows.command("run", context_settings=_PASSTHROUGH)
@click.argument("workflow")
@click.option("--dry-run", is_flag=True, default=False, help="Build the prompt but do not execute.")
@click.option(
    "--foreground",
    is_flag=True,
    default=False,
    help="Run in foreground and wait for the agent to finish.",
)
@click.option(
    "--work-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Working directory for output (defaults to the current directory).",
)
@click.argument("workflow_args", nargs=-1, type=click.UNPROCESSED)
def run(
    workflow: str,
    dry_run: bool,
    foreground: bool,
    work_dir: Path | None,
    workflow_args: tuple[str, ...],
) -> None:
    """Run a browser workflow. Unknown `--name value` options become workflow params."""

    _emit(
        CONTROLLER.run(
            RunCommand(
                workflow=workflow,
                params=_workflow_params(workflow_args),
                dry_run=dry_run,
                foreground=foreground,
                work_dir=work_dir,
            ),
        ),
    )


@chrome_workflows.command("list")
@click.option(
    "--path",
    "paths",
    multiple=True,
    type=click.Path(path_type=Path),
    help="Directory to search instead of the defaults. Can be repeated.",
)
def list_command(paths: tuple[Path, ...]) -> None:
    """List available workflows."""

    _emit(CONTROLLER.list_definitions(ListCommand(paths=paths)))


@chrome_workflows.command("describe")
@click.argument("workflow")
def describe(workflow: str) -> None:
    """Show workflow parameters, captures and task template."""

    _emit(CONTROLLER.describe(InspectCommand(workflow=workflow)))


@chrome_workflows.command("validate", context_settings=_PASSTHROUGH)
@click.argument("workflow")
@click.argument("workflow_args", nargs=-1, type=click.UNPROCESSED)
def validate(workflow: str, workflow_args: tuple[str, ...]) -> None:
    """Validate workflow params without executing."""

    _emit(
        CONTROLLER.validate(
            InspectCommand(workflow=workflow, params=_workflow_params(workflow_args)),
        ),
    )


@chrome_workflows.command("prompt", context_settings=_PASSTHROUGH)
@click.argument("workflow")
@click.argument("workflow_args", nargs=-1, type=click.UNPROCESSED)
def prompt(workflow: str, workflow_args: tuple[str, ...]) -> None:
    """Show the prompt that would be sent to the agent."""

    _emit(
        CONTROLLER.prompt(
            InspectCommand(workflow=workflow, params=_workflow_params(workflow_args)),
        ),
    )


@chrome_workflows.command("init")
def init() -> None:
    """Create ./workflows/ with an example workflow."""

    _emit(CONTROLLER.init(InitCommand(directory=Path.cwd())))


def _workflow_params(args: tuple[str, ...]) -> dict[str, object]:
    try:
        return parse_workflow_params(args)
    except ValueError as error:
        raise click.ClickException(str(error)) from error


def _emit(result: CommandResult) -> None:
    for line in result.lines:
        click.echo(line)
    if not result.success:
        raise click.ClickException(result.error or "Command failed.")


if __name__ == "__main__":  # pragma: no cover
    chrome_workflows()
