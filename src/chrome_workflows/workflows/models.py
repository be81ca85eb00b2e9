"""Domain models for workflow definitions, validation and execution."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any

HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS")
CONSOLE_LEVELS = ("error", "warn", "log", "info", "debug")
SCREENSHOT_FORMATS = ("png", "jpg", "webp")
SCREENSHOT_NAMING = ("step", "timestamp")


class WorkflowError(Exception):
    """Base error for workflow discovery and definition problems."""


class MalformedWorkflowError(WorkflowError):
    """Definition does not have the minimum required shape."""


class WorkflowNotFoundError(WorkflowError):
    """No definition matched across all search roots."""

    def __init__(self, name: str, searched_paths: tuple[Path, ...] = ()) -> None:
        searched = ", ".join(str(path) for path in searched_paths) or "(no search paths)"
        super().__init__(f"Workflow not found: {name}\nSearched in: {searched}")
        self.name = name
        self.searched_paths = searched_paths


class ParamType(str, Enum):
    """Declared parameter kinds."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"


@dataclass(frozen=True, slots=True)
class ParamSpec:
    """One declared workflow parameter."""

    type: ParamType
    required: bool = False
    default: Any = None
    description: str | None = None

    @property
    def has_default(self) -> bool:
        return not self.required and self.default is not None


@dataclass(frozen=True, slots=True)
class NetworkCapture:
    """Network requests the agent should record."""

    patterns: tuple[str, ...]
    save_dir: str
    methods: tuple[str, ...] = ()
    status_codes: tuple[int, ...] = ()
    content_type: str | None = None
    extract_json: bool = True
    include_request_headers: bool = False
    include_response_headers: bool = False


@dataclass(frozen=True, slots=True)
class SimpleScreenshots:
    """Screenshots saved to a directory with descriptive names."""

    path: str


@dataclass(frozen=True, slots=True)
class ConfiguredScreenshots:
    """Screenshots with explicit format and naming convention."""

    dir: str
    format: str = "png"
    naming: str = "step"


ScreenshotCapture = SimpleScreenshots | ConfiguredScreenshots


@dataclass(frozen=True, slots=True)
class ConsoleCapture:
    """Console output the agent should record."""

    levels: tuple[str, ...]
    save_as: str
    pattern: str | None = None


@dataclass(frozen=True, slots=True)
class CaptureSpec:
    """Declarative description of artifacts the agent should produce."""

    network: NetworkCapture | None = None
    screenshots: ScreenshotCapture | None = None
    console: ConsoleCapture | None = None
    data: str | None = None

    @property
    def is_empty(self) -> bool:
        return (
            self.network is None
            and self.screenshots is None
            and self.console is None
            and not self.data
        )


@dataclass(frozen=True, slots=True)
class WorkflowDefinition:
    """Canonical, immutable workflow definition."""

    name: str
    task: str
    params: Mapping[str, ParamSpec] = field(default_factory=lambda: MappingProxyType({}))
    capture: CaptureSpec = field(default_factory=CaptureSpec)
    description: str | None = None


@dataclass(frozen=True, slots=True)
class LoadedWorkflow:
    """Definition plus the file it was loaded from."""

    definition: WorkflowDefinition
    file_path: Path
    directory: Path


class ValidationErrorCode(str, Enum):
    """Kinds of parameter validation failures."""

    MISSING_REQUIRED = "missing_required"
    TYPE_MISMATCH = "type_mismatch"
    UNKNOWN_PARAMETER = "unknown_parameter"


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """One parameter validation error."""

    param: str
    code: ValidationErrorCode
    message: str


@dataclass(slots=True)
class ValidationResult:
    """Outcome of coercion followed by validation."""

    valid: bool
    errors: list[ValidationIssue]
    resolved_params: dict[str, Any]


@dataclass(slots=True)
class RunOptions:
    """Caller input for one workflow run."""

    params: dict[str, Any] = field(default_factory=dict)
    background: bool = True
    work_dir: Path | None = None
    dry_run: bool = False


class RunPhase(str, Enum):
    """Execution manager states for one run."""

    REQUESTED = "requested"
    PARAMS_INVALID = "params_invalid"
    DRY_RUN = "dry_run"
    DIRECTORY_READY = "directory_ready"
    BACKGROUND_STARTED = "background_started"
    FOREGROUND_RUNNING = "foreground_running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(slots=True)
class CapturedFiles:
    """Files produced by the agent, when known."""

    network: list[str] | None = None
    screenshots: list[str] | None = None
    console: str | None = None
    data: str | None = None


@dataclass(slots=True)
class RunResult:
    """Structured outcome of one run."""

    success: bool
    phase: RunPhase
    output_dir: Path | None
    files: CapturedFiles = field(default_factory=CapturedFiles)
    error: str | None = None
    duration_ms: int | None = None
    prompt: str | None = None
    pid: int | None = None
    validation_errors: tuple[ValidationIssue, ...] = ()
