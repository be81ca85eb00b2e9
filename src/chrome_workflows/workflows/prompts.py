"""Compose the agent prompt from a workflow definition and resolved params."""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any

from chrome_workflows.workflows.models import (
    CaptureSpec,
    ConfiguredScreenshots,
    ConsoleCapture,
    NetworkCapture,
    ScreenshotCapture,
    SimpleScreenshots,
    WorkflowDefinition,
)

_PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z_][\w-]*(?:\.[\w-]+)*)\s*\}\}")

_OUTPUT_FORMAT = """\
---
OUTPUT FORMAT:
When complete, summarize:
- What was done
- Files saved (with paths)
- Any errors or issues encountered"""


def render_template(template: str, context: Mapping[str, Any]) -> str:
    """Replace ``{{name}}`` placeholders with context values.

    Dotted names look up nested mappings. Missing names render as empty text.
    """

    def _substitute(match: re.Match[str]) -> str:
        value = _lookup(context, match.group(1))
        return "" if value is None else format_value(value)

    return _PLACEHOLDER.sub(_substitute, template)


def format_value(value: Any) -> str:
    """Render one context value as prompt text."""

    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join(format_value(item) for item in value)
    if isinstance(value, Mapping):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)


def _lookup(context: Mapping[str, Any], dotted_name: str) -> Any:
    current: Any = context
    for part in dotted_name.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return None
        current = current[part]
    return current


def build_prompt(
    definition: WorkflowDefinition,
    params: Mapping[str, Any],
    output_dir: str | None = None,
) -> str:
    """Build the complete prompt: rendered task, capture instructions, output format."""

    context = {
        **params,
        "name": definition.name,
        "output_dir": output_dir or f"./output/{definition.name}",
    }

    sections = [render_template(definition.task, context)]

    capture_instructions = build_capture_instructions(definition.capture, context)
    if capture_instructions:
        sections.append("")
        sections.append("---")
        sections.append("CAPTURE INSTRUCTIONS:")
        sections.append(capture_instructions)

    sections.append("")
    sections.append(_OUTPUT_FORMAT)
    return "\n".join(sections)


def build_capture_instructions(capture: CaptureSpec, context: Mapping[str, Any]) -> str:
    """Build capture blocks in fixed order: network, screenshots, console, data."""

    blocks: list[str] = []
    if capture.network is not None:
        blocks.append(_network_block(capture.network, context))
    if capture.screenshots is not None:
        blocks.append(_screenshot_block(capture.screenshots, context))
    if capture.console is not None:
        blocks.append(_console_block(capture.console, context))
    if capture.data:
        data_path = render_template(capture.data, context)
        blocks.append(f"\nDATA EXTRACTION:\n- Save extracted data as JSON to: {data_path}")
    return "\n".join(blocks)


def _network_block(config: NetworkCapture, context: Mapping[str, Any]) -> str:
    lines = ["\nNETWORK CAPTURE:"]
    patterns = ", ".join(render_template(pattern, context) for pattern in config.patterns)
    lines.append(f"- Monitor network requests matching: {patterns}")
    if config.methods:
        lines.append(f"- Only capture methods: {', '.join(config.methods)}")
    if config.status_codes:
        lines.append(
            f"- Only capture status codes: {', '.join(str(code) for code in config.status_codes)}",
        )
    if config.content_type:
        lines.append(f"- Only capture content type: {render_template(config.content_type, context)}")
    lines.append(f"- Save responses to: {render_template(config.save_dir, context)}")
    if config.extract_json:
        lines.append("- Extract and format JSON responses")
    if config.include_request_headers:
        lines.append("- Include request headers")
    if config.include_response_headers:
        lines.append("- Include response headers")
    return "\n".join(lines)


def _screenshot_block(config: ScreenshotCapture, context: Mapping[str, Any]) -> str:
    lines = ["\nSCREENSHOTS:", "- Take screenshots at key steps"]
    if isinstance(config, SimpleScreenshots):
        lines.append(f"- Save to: {render_template(config.path, context)}")
        lines.append("- Name files descriptively (e.g., 01-login-page.png, 02-dashboard.png)")
        return "\n".join(lines)

    lines.append(f"- Save to: {render_template(config.dir, context)}")
    lines.append(f"- Format: {config.format}")
    if config.naming == "timestamp":
        lines.append("- Name files with timestamps")
    else:
        lines.append("- Name files with step numbers and descriptions")
    return "\n".join(lines)


def _console_block(config: ConsoleCapture, context: Mapping[str, Any]) -> str:
    lines = ["\nCONSOLE CAPTURE:", f"- Capture console output: {', '.join(config.levels)}"]
    if config.pattern:
        lines.append(f"- Filter messages matching: {render_template(config.pattern, context)}")
    lines.append(f"- Save to: {render_template(config.save_as, context)}")
    return "\n".join(lines)


def describe_workflow(definition: WorkflowDefinition) -> str:
    """Human-readable summary of a workflow for the describe command."""

    lines = [f"Workflow: {definition.name}"]
    if definition.description:
        lines.append(f"Description: {definition.description}")

    lines.append("")
    lines.append("Parameters:")
    if not definition.params:
        lines.append("  (none)")
    for name, spec in definition.params.items():
        if spec.required:
            requirement = "(required)"
        elif spec.has_default:
            requirement = f"(default: {format_value(spec.default)})"
        else:
            requirement = "(default: none)"
        description = f" - {spec.description}" if spec.description else ""
        lines.append(f"  --{name} <{spec.type.value}> {requirement}{description}")

    lines.append("")
    lines.append("Captures:")
    capture = definition.capture
    if capture.is_empty:
        lines.append("  (none)")
    if capture.network is not None:
        lines.append(f"  - Network: {', '.join(capture.network.patterns)}")
    if isinstance(capture.screenshots, SimpleScreenshots):
        lines.append(f"  - Screenshots: {capture.screenshots.path}")
    elif isinstance(capture.screenshots, ConfiguredScreenshots):
        lines.append(f"  - Screenshots: {capture.screenshots.dir}")
    if capture.console is not None:
        lines.append(f"  - Console: {', '.join(capture.console.levels)}")
    if capture.data:
        lines.append(f"  - Data: {capture.data}")

    lines.append("")
    lines.append("Task:")
    lines.extend(f"  {line}" for line in definition.task.split("\n"))
    return "\n".join(lines)
