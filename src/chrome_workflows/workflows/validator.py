"""Parameter coercion and validation against a workflow's declared schema."""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from typing import Any

from chrome_workflows.workflows.models import (
    ParamSpec,
    ParamType,
    ValidationErrorCode,
    ValidationIssue,
    ValidationResult,
    WorkflowDefinition,
)


def coerce_params(
    schema: Mapping[str, ParamSpec],
    params: Mapping[str, Any],
) -> dict[str, Any]:
    """Best-effort conversion of raw input into declared shapes.

    Absent values take the declared default; blank strings are left for
    validation to treat as absent. Coercion never fails: values it
    cannot convert are passed through unchanged for validation to reject.
    Keys that are not in the schema are kept so they can be reported.
    """

    result: dict[str, Any] = {}
    for name, spec in schema.items():
        value = params.get(name)
        if value is None:
            if spec.has_default:
                result[name] = spec.default
            continue
        result[name] = value if value == "" else coerce_value(spec.type, value)

    for name, value in params.items():
        if name not in schema:
            result[name] = value
    return result


def coerce_value(param_type: ParamType, value: Any) -> Any:
    """Coerce one raw value to the expected type when it is unambiguous."""

    if param_type is ParamType.NUMBER:
        return _coerce_number(value)
    if param_type is ParamType.BOOLEAN:
        if value == "true":
            return True
        if value == "false":
            return False
        return value
    if param_type is ParamType.ARRAY:
        if isinstance(value, tuple):
            return list(value)
        if isinstance(value, str):
            return [token.strip() for token in value.split(",")]
        return value
    if param_type is ParamType.OBJECT:
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
            except json.JSONDecodeError:
                return value
            return parsed if isinstance(parsed, dict) else value
        return value
    return value


def _coerce_number(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    text = value.strip()
    if not text:
        return value
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return value
    return number if math.isfinite(number) else value


def validate_params(
    definition: WorkflowDefinition,
    params: Mapping[str, Any],
) -> ValidationResult:
    """Validate (already coerced) params, collecting every error."""

    errors: list[ValidationIssue] = []
    resolved: dict[str, Any] = {}

    for name, spec in definition.params.items():
        value = params.get(name)
        if value is None or value == "":
            if spec.required:
                errors.append(
                    ValidationIssue(
                        param=name,
                        code=ValidationErrorCode.MISSING_REQUIRED,
                        message=f"Required parameter missing: {name}",
                    ),
                )
            elif spec.has_default:
                resolved[name] = spec.default
            elif value == "" and spec.type is ParamType.STRING:
                resolved[name] = value
            # A blank optional non-string without a default is left unresolved.
            continue

        mismatch = _type_error(spec.type, value)
        if mismatch is not None:
            errors.append(
                ValidationIssue(
                    param=name,
                    code=ValidationErrorCode.TYPE_MISMATCH,
                    message=mismatch,
                ),
            )
            continue
        resolved[name] = value

    for name in params:
        if name not in definition.params:
            errors.append(
                ValidationIssue(
                    param=name,
                    code=ValidationErrorCode.UNKNOWN_PARAMETER,
                    message=f"Unknown parameter: {name}",
                ),
            )

    return ValidationResult(valid=not errors, errors=errors, resolved_params=resolved)


def resolve_params(
    definition: WorkflowDefinition,
    params: Mapping[str, Any],
) -> ValidationResult:
    """Run coercion then validation for raw caller input."""

    return validate_params(definition, coerce_params(definition.params, params))


def format_errors(errors: list[ValidationIssue] | tuple[ValidationIssue, ...]) -> str:
    """Format validation errors for display."""

    return "\n".join(f"  - {error.param}: {error.message}" for error in errors)


def describe_value_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


def _type_error(param_type: ParamType, value: Any) -> str | None:
    actual = describe_value_type(value)
    if param_type is ParamType.STRING:
        ok = isinstance(value, str)
    elif param_type is ParamType.NUMBER:
        ok = not isinstance(value, bool) and (
            isinstance(value, int) or (isinstance(value, float) and math.isfinite(value))
        )
        if not ok and isinstance(value, str):
            return f"Expected number, got non-numeric string {value!r}"
    elif param_type is ParamType.BOOLEAN:
        ok = isinstance(value, bool)
        if not ok and isinstance(value, str):
            return f"Expected boolean (true or false), got {value!r}"
    elif param_type is ParamType.ARRAY:
        ok = isinstance(value, list)
    else:
        ok = isinstance(value, dict)
        if not ok and isinstance(value, str):
            return "Expected object, got invalid JSON"
    if ok:
        return None
    return f"Expected {param_type.value}, got {actual}"
