"""Shared test fixtures."""

from __future__ import annotations

import json
import shlex
import sys
from pathlib import Path
from typing import Any

import pytest

from chrome_workflows.runner.backend import AgentCommand, AwaitedRun, DetachedRun

ECHO_AGENT_COMMAND_TEMPLATE = (
    f"{shlex.quote(sys.executable)} -m chrome_workflows.runner.backend.echo_agent -- {{prompt}}"
)


def _definition_payload(name: str = "demo", **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "name": name,
        "description": f"{name} workflow",
        "params": {"url": {"type": "string", "required": True}},
        "capture": {},
        "task": "Go to {{url}}",
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def workflow_payload():
    """Build a raw definition mapping with a required `url` parameter."""

    return _definition_payload


@pytest.fixture()
def write_workflow():
    """Write a JSON workflow definition and return its path."""

    def _write(path: Path, payload: dict[str, Any]) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload), "utf-8")
        return path

    return _write


@pytest.fixture()
def clean_env(monkeypatch):
    """Drop CHROME_WORKFLOWS_* variables inherited from the developer shell."""

    for name in (
        "CHROME_WORKFLOWS_PATHS",
        "CHROME_WORKFLOWS_SCAN_DEPTH",
        "CHROME_WORKFLOWS_AGENT_COMMAND",
        "CHROME_WORKFLOWS_BACKGROUND_LIVENESS_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def echo_agent(monkeypatch, clean_env):
    """Point the agent command at the in-package echo agent."""

    monkeypatch.setenv("CHROME_WORKFLOWS_AGENT_COMMAND", ECHO_AGENT_COMMAND_TEMPLATE)


class RecordingBackend:
    """Agent backend that records launches instead of spawning processes."""

    def __init__(self, *, exit_code: int = 0, early_exit_code: int | None = None) -> None:
        self.exit_code = exit_code
        self.early_exit_code = early_exit_code
        self.detached: list[tuple[AgentCommand, Path]] = []
        self.awaited: list[tuple[AgentCommand, Path]] = []

    @property
    def spawned(self) -> int:
        return len(self.detached) + len(self.awaited)

    def spawn_detached(
        self,
        command: AgentCommand,
        *,
        cwd: Path,
        liveness_seconds: float = 0.0,
    ) -> DetachedRun:
        self.detached.append((command, cwd))
        return DetachedRun(pid=4242, exit_code=self.early_exit_code)

    def spawn_awaited(self, command: AgentCommand, *, cwd: Path, stdout, stderr) -> AwaitedRun:
        self.awaited.append((command, cwd))
        stderr_text = "" if self.exit_code == 0 else "agent blew up\n"
        return AwaitedRun(exit_code=self.exit_code, stdout="done\n", stderr=stderr_text)


@pytest.fixture()
def recording_backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture()
def make_backend():
    return RecordingBackend
