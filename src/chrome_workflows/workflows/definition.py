"""Normalize raw workflow definitions into canonical immutable values."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from chrome_workflows.workflows.models import (
    CONSOLE_LEVELS,
    HTTP_METHODS,
    SCREENSHOT_FORMATS,
    SCREENSHOT_NAMING,
    CaptureSpec,
    ConfiguredScreenshots,
    ConsoleCapture,
    MalformedWorkflowError,
    NetworkCapture,
    ParamSpec,
    ParamType,
    ScreenshotCapture,
    SimpleScreenshots,
    WorkflowDefinition,
)

_TYPE_ALIASES = {
    "list": ParamType.ARRAY,
    "record": ParamType.OBJECT,
}


def define_workflow(raw: Mapping[str, Any]) -> WorkflowDefinition:
    """Validate the minimum shape of a raw definition and build a WorkflowDefinition.

    Only the task template is altered (surrounding whitespace is trimmed);
    placeholders inside it are left for the prompt composer.
    """

    if not isinstance(raw, Mapping):
        raise MalformedWorkflowError("Workflow definition must be a table/object.")

    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        raise MalformedWorkflowError("Workflow must have a name")

    task = raw.get("task")
    if not isinstance(task, str) or not task.strip():
        raise MalformedWorkflowError(f"Workflow {name!r} must have a task")

    params = raw.get("params")
    if params is None:
        raise MalformedWorkflowError(
            f"Workflow {name!r} must have params (use an empty table if none)",
        )
    if not isinstance(params, Mapping):
        raise MalformedWorkflowError(f"Workflow {name!r}: params must be a table/object")

    capture = raw.get("capture")
    if capture is None:
        raise MalformedWorkflowError(
            f"Workflow {name!r} must have capture config (use an empty table if none)",
        )
    if not isinstance(capture, Mapping):
        raise MalformedWorkflowError(f"Workflow {name!r}: capture must be a table/object")

    description = raw.get("description")
    if description is not None and not isinstance(description, str):
        raise MalformedWorkflowError(f"Workflow {name!r}: description must be a string")

    return WorkflowDefinition(
        name=name,
        task=task.strip(),
        params=MappingProxyType(
            {
                str(param_name): _parse_param(name, str(param_name), spec)
                for param_name, spec in params.items()
            },
        ),
        capture=_parse_capture(name, capture),
        description=description,
    )


def parse_param_type(value: object) -> ParamType:
    """Map a declared type name (including list/record aliases) to ParamType."""

    if isinstance(value, ParamType):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Parameter type must be a string, got {value!r}")
    normalized = value.strip().lower()
    if normalized in _TYPE_ALIASES:
        return _TYPE_ALIASES[normalized]
    try:
        return ParamType(normalized)
    except ValueError as error:
        allowed = ", ".join(member.value for member in ParamType)
        raise ValueError(f"Unsupported parameter type {value!r} (expected one of {allowed})") from error


def _parse_param(workflow: str, param_name: str, spec: object) -> ParamSpec:
    if not isinstance(spec, Mapping):
        raise MalformedWorkflowError(
            f"Workflow {workflow!r}: parameter {param_name!r} must be a table/object",
        )
    try:
        param_type = parse_param_type(spec.get("type"))
    except ValueError as error:
        raise MalformedWorkflowError(
            f"Workflow {workflow!r}: parameter {param_name!r}: {error}",
        ) from error

    required = spec.get("required", False)
    if not isinstance(required, bool):
        raise MalformedWorkflowError(
            f"Workflow {workflow!r}: parameter {param_name!r}: required must be a boolean",
        )
    description = spec.get("description")
    if description is not None and not isinstance(description, str):
        raise MalformedWorkflowError(
            f"Workflow {workflow!r}: parameter {param_name!r}: description must be a string",
        )

    return ParamSpec(
        type=param_type,
        required=required,
        # A required parameter never falls back to a default.
        default=None if required else spec.get("default"),
        description=description,
    )


def _parse_capture(workflow: str, capture: Mapping[str, Any]) -> CaptureSpec:
    data = capture.get("data")
    if data is not None and not isinstance(data, str):
        raise MalformedWorkflowError(f"Workflow {workflow!r}: capture.data must be a path string")

    network = capture.get("network")
    screenshots = capture.get("screenshots")
    console = capture.get("console")
    return CaptureSpec(
        network=_parse_network(workflow, network) if network is not None else None,
        screenshots=(
            _parse_screenshots(workflow, screenshots) if screenshots is not None else None
        ),
        console=_parse_console(workflow, console) if console is not None else None,
        data=data or None,
    )


def _parse_network(workflow: str, raw: object) -> NetworkCapture:
    if not isinstance(raw, Mapping):
        raise MalformedWorkflowError(f"Workflow {workflow!r}: capture.network must be a table")

    patterns = _string_list(workflow, "capture.network.patterns", raw.get("patterns"))
    if not patterns:
        raise MalformedWorkflowError(
            f"Workflow {workflow!r}: capture.network.patterns must list at least one pattern",
        )
    save_dir = raw.get("save_dir")
    if not isinstance(save_dir, str) or not save_dir:
        raise MalformedWorkflowError(f"Workflow {workflow!r}: capture.network.save_dir is required")

    methods = tuple(
        method.upper()
        for method in _string_list(workflow, "capture.network.methods", raw.get("methods", []))
    )
    unknown_methods = [method for method in methods if method not in HTTP_METHODS]
    if unknown_methods:
        raise MalformedWorkflowError(
            f"Workflow {workflow!r}: unsupported HTTP method(s): {', '.join(unknown_methods)}",
        )

    status_codes = raw.get("status_codes", [])
    if not isinstance(status_codes, list) or not all(
        isinstance(code, int) and not isinstance(code, bool) for code in status_codes
    ):
        raise MalformedWorkflowError(
            f"Workflow {workflow!r}: capture.network.status_codes must be a list of integers",
        )

    content_type = raw.get("content_type")
    if content_type is not None and not isinstance(content_type, str):
        raise MalformedWorkflowError(
            f"Workflow {workflow!r}: capture.network.content_type must be a string",
        )

    return NetworkCapture(
        patterns=patterns,
        save_dir=save_dir,
        methods=methods,
        status_codes=tuple(status_codes),
        content_type=content_type or None,
        extract_json=_flag(workflow, raw, "extract_json", default=True),
        include_request_headers=_flag(workflow, raw, "include_request_headers", default=False),
        include_response_headers=_flag(workflow, raw, "include_response_headers", default=False),
    )


def _parse_screenshots(workflow: str, raw: object) -> ScreenshotCapture:
    if isinstance(raw, str):
        if not raw:
            raise MalformedWorkflowError(
                f"Workflow {workflow!r}: capture.screenshots path must not be empty",
            )
        return SimpleScreenshots(path=raw)
    if not isinstance(raw, Mapping):
        raise MalformedWorkflowError(
            f"Workflow {workflow!r}: capture.screenshots must be a path or a table",
        )

    directory = raw.get("dir")
    if not isinstance(directory, str) or not directory:
        raise MalformedWorkflowError(f"Workflow {workflow!r}: capture.screenshots.dir is required")
    image_format = raw.get("format", "png")
    if image_format not in SCREENSHOT_FORMATS:
        raise MalformedWorkflowError(
            f"Workflow {workflow!r}: unsupported screenshot format {image_format!r}",
        )
    naming = raw.get("naming", "step")
    if naming not in SCREENSHOT_NAMING:
        raise MalformedWorkflowError(
            f"Workflow {workflow!r}: unsupported screenshot naming {naming!r}",
        )
    return ConfiguredScreenshots(dir=directory, format=image_format, naming=naming)


def _parse_console(workflow: str, raw: object) -> ConsoleCapture:
    if not isinstance(raw, Mapping):
        raise MalformedWorkflowError(f"Workflow {workflow!r}: capture.console must be a table")

    levels = _string_list(workflow, "capture.console.levels", raw.get("levels"))
    if not levels:
        raise MalformedWorkflowError(
            f"Workflow {workflow!r}: capture.console.levels must list at least one level",
        )
    unknown_levels = [level for level in levels if level not in CONSOLE_LEVELS]
    if unknown_levels:
        raise MalformedWorkflowError(
            f"Workflow {workflow!r}: unsupported console level(s): {', '.join(unknown_levels)}",
        )
    save_as = raw.get("save_as")
    if not isinstance(save_as, str) or not save_as:
        raise MalformedWorkflowError(f"Workflow {workflow!r}: capture.console.save_as is required")
    pattern = raw.get("pattern")
    if pattern is not None and not isinstance(pattern, str):
        raise MalformedWorkflowError(
            f"Workflow {workflow!r}: capture.console.pattern must be a string",
        )
    return ConsoleCapture(levels=levels, save_as=save_as, pattern=pattern or None)


def _string_list(workflow: str, field_name: str, value: object) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise MalformedWorkflowError(f"Workflow {workflow!r}: {field_name} must be a list of strings")
    return tuple(value)


def _flag(workflow: str, raw: Mapping[str, Any], key: str, *, default: bool) -> bool:
    value = raw.get(key, default)
    if not isinstance(value, bool):
        raise MalformedWorkflowError(f"Workflow {workflow!r}: capture.network.{key} must be a boolean")
    return value
