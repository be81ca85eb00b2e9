"""Agent process backend implementations."""

from chrome_workflows.runner.backend.base import (
    AgentBackend,
    AgentCommand,
    AwaitedRun,
    DetachedRun,
)
from chrome_workflows.runner.backend.cli_backend import (
    BackendRunError,
    CliAgentBackend,
    build_agent_command,
)

__all__ = [
    "AgentBackend",
    "AgentCommand",
    "AwaitedRun",
    "BackendRunError",
    "CliAgentBackend",
    "DetachedRun",
    "build_agent_command",
]
