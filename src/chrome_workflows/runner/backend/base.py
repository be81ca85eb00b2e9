"""Process execution port used by the workflow runner."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, TextIO


@dataclass(slots=True)
class AgentCommand:
    """Rendered agent invocation."""

    run_args: str | list[str]
    command_head: str


@dataclass(slots=True)
class DetachedRun:
    """Handle data for a fire-and-forget agent process."""

    pid: int
    exit_code: int | None = None


@dataclass(slots=True)
class AwaitedRun:
    """Outcome of an agent process the caller waited for."""

    exit_code: int
    stdout: str
    stderr: str


class AgentBackend(Protocol):
    """Protocol implemented by agent process launchers."""

    def spawn_detached(
        self,
        command: AgentCommand,
        *,
        cwd: Path,
        liveness_seconds: float = 0.0,
    ) -> DetachedRun:
        """Start the agent without waiting for it to finish."""

    def spawn_awaited(
        self,
        command: AgentCommand,
        *,
        cwd: Path,
        stdout: TextIO,
        stderr: TextIO,
    ) -> AwaitedRun:
        """Run the agent to completion, streaming and buffering its output."""
