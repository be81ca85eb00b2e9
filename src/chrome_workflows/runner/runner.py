"""Execute workflows by handing the composed prompt to the agent CLI."""

from __future__ import annotations

import logging
import sys
import time
from pathlib import Path

from chrome_workflows.config import Settings
from chrome_workflows.runner.backend import (
    AgentBackend,
    AgentCommand,
    BackendRunError,
    CliAgentBackend,
    build_agent_command,
)
from chrome_workflows.workflows.loader import get_workflow
from chrome_workflows.workflows.models import (
    RunOptions,
    RunPhase,
    RunResult,
    WorkflowDefinition,
)
from chrome_workflows.workflows.prompts import build_prompt
from chrome_workflows.workflows.validator import format_errors, resolve_params

logger = logging.getLogger(__name__)

OUTPUT_ROOT = "output"


def resolve_work_dir(work_dir: Path | None = None) -> Path:
    return (work_dir or Path.cwd()).expanduser().resolve()


def output_dir_for(definition: WorkflowDefinition, work_dir: Path | None = None) -> Path:
    """Default output directory: ``<work_dir>/output/<workflow name>``."""

    return resolve_work_dir(work_dir) / OUTPUT_ROOT / definition.name


def ensure_output_dir(path: Path) -> Path:
    """Create the directory tree; safe to call repeatedly."""

    path.mkdir(parents=True, exist_ok=True)
    return path


class WorkflowRunner:
    """Resolve, validate, compose and execute one workflow per call.

    Background runs are fire-and-forget: the runner keeps no handle on the
    spawned process once ``execute`` returns.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        backend: AgentBackend | None = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        self.backend = backend or CliAgentBackend()

    def run(self, name_or_path: str, options: RunOptions) -> RunResult:
        """Run a workflow by name or path.

        Discovery errors (not found, malformed) propagate before any side effect.
        """

        loaded = get_workflow(
            name_or_path,
            self.settings.workflow_paths,
            scan_depth=self.settings.scan_depth,
        )
        return self.execute(loaded.definition, options)

    def execute(self, definition: WorkflowDefinition, options: RunOptions) -> RunResult:
        """Execute an already loaded definition."""

        logger.debug("Workflow %s: %s", definition.name, RunPhase.REQUESTED.value)
        validation = resolve_params(definition, options.params)
        if not validation.valid:
            logger.debug("Workflow %s: %s", definition.name, RunPhase.PARAMS_INVALID.value)
            return RunResult(
                success=False,
                phase=RunPhase.PARAMS_INVALID,
                output_dir=None,
                error=f"Parameter validation failed:\n{format_errors(validation.errors)}",
                validation_errors=tuple(validation.errors),
            )

        work_dir = resolve_work_dir(options.work_dir)
        output_dir = output_dir_for(definition, work_dir)
        prompt = build_prompt(definition, validation.resolved_params, output_dir=str(output_dir))

        if options.dry_run:
            logger.debug("Workflow %s: %s", definition.name, RunPhase.DRY_RUN.value)
            return RunResult(
                success=True,
                phase=RunPhase.DRY_RUN,
                output_dir=output_dir,
                prompt=prompt,
            )

        start = time.monotonic()
        ensure_output_dir(output_dir)
        logger.debug("Workflow %s: %s (%s)", definition.name, RunPhase.DIRECTORY_READY.value, output_dir)

        cwd = work_dir
        try:
            command = build_agent_command(
                command_template=self.settings.agent_command,
                prompt=prompt,
            )
            if options.background:
                return self._run_background(command, cwd=cwd, output_dir=output_dir, start=start)
            return self._run_foreground(command, cwd=cwd, output_dir=output_dir, start=start)
        except BackendRunError as error:
            logger.warning("Workflow %s failed to start: %s", definition.name, error)
            return RunResult(
                success=False,
                phase=RunPhase.FAILED,
                output_dir=output_dir,
                error=str(error),
                duration_ms=_elapsed_ms(start),
                prompt=prompt,
            )

    def _run_background(
        self,
        command: AgentCommand,
        *,
        cwd: Path,
        output_dir: Path,
        start: float,
    ) -> RunResult:
        detached = self.backend.spawn_detached(
            command,
            cwd=cwd,
            liveness_seconds=self.settings.background_liveness_seconds,
        )
        if detached.exit_code not in (None, 0):
            return RunResult(
                success=False,
                phase=RunPhase.FAILED,
                output_dir=output_dir,
                error=f"Agent exited immediately with code {detached.exit_code}",
                duration_ms=_elapsed_ms(start),
                pid=detached.pid,
            )
        return RunResult(
            success=True,
            phase=RunPhase.BACKGROUND_STARTED,
            output_dir=output_dir,
            duration_ms=_elapsed_ms(start),
            pid=detached.pid,
        )

    def _run_foreground(
        self,
        command: AgentCommand,
        *,
        cwd: Path,
        output_dir: Path,
        start: float,
    ) -> RunResult:
        logger.debug("Running agent in foreground: %s", command.command_head)
        awaited = self.backend.spawn_awaited(
            command,
            cwd=cwd,
            stdout=sys.stdout,
            stderr=sys.stderr,
        )
        if awaited.exit_code == 0:
            return RunResult(
                success=True,
                phase=RunPhase.SUCCEEDED,
                output_dir=output_dir,
                duration_ms=_elapsed_ms(start),
            )
        return RunResult(
            success=False,
            phase=RunPhase.FAILED,
            output_dir=output_dir,
            error=awaited.stderr or f"Process exited with code {awaited.exit_code}",
            duration_ms=_elapsed_ms(start),
        )


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
