"""Runtime configuration for workflow discovery and agent execution."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_WORKFLOW_PATHS = (
    Path("workflows"),
    Path("~/.chrome-workflows/workflows"),
)
DEFAULT_AGENT_COMMAND = "claude --chrome -p {prompt} --output-format text"


@dataclass(slots=True)
class Settings:
    """Application settings loaded from CHROME_WORKFLOWS_* variables."""

    workflow_paths: tuple[Path, ...] = DEFAULT_WORKFLOW_PATHS
    scan_depth: int = 2
    agent_command: str = DEFAULT_AGENT_COMMAND
    background_liveness_seconds: float = 0.0

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment with defaults for local use."""

        return cls(
            workflow_paths=_collect_workflow_paths() or DEFAULT_WORKFLOW_PATHS,
            scan_depth=int(os.getenv("CHROME_WORKFLOWS_SCAN_DEPTH", "2")),
            agent_command=os.getenv("CHROME_WORKFLOWS_AGENT_COMMAND", DEFAULT_AGENT_COMMAND),
            background_liveness_seconds=float(
                os.getenv("CHROME_WORKFLOWS_BACKGROUND_LIVENESS_SECONDS", "0"),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error if any setting is out of range."""

        if self.scan_depth <= 0:
            raise ValueError("CHROME_WORKFLOWS_SCAN_DEPTH must be > 0.")
        if self.background_liveness_seconds < 0:
            raise ValueError("CHROME_WORKFLOWS_BACKGROUND_LIVENESS_SECONDS must be >= 0.")
        if not self.agent_command.strip():
            raise ValueError("CHROME_WORKFLOWS_AGENT_COMMAND must not be empty.")
        if "{prompt}" not in self.agent_command:
            raise ValueError("CHROME_WORKFLOWS_AGENT_COMMAND must include {prompt}.")


def _collect_workflow_paths() -> tuple[Path, ...]:
    raw = os.getenv("CHROME_WORKFLOWS_PATHS", "").strip()
    if not raw:
        return ()

    paths: list[Path] = []
    seen: set[str] = set()
    for part in raw.split(os.pathsep):
        token = part.strip()
        if not token or token in seen:
            continue
        seen.add(token)
        paths.append(Path(token))
    return tuple(paths)
