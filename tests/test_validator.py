from __future__ import annotations

import allure
import pytest

from chrome_workflows.workflows.definition import define_workflow
from chrome_workflows.workflows.models import ParamType, ValidationErrorCode
from chrome_workflows.workflows.validator import (
    coerce_params,
    coerce_value,
    format_errors,
    resolve_params,
    validate_params,
)

pytestmark = [
    allure.epic("Workflow Definitions"),
    allure.feature("Parameter Validation"),
]


@pytest.fixture()
def definition(workflow_payload):
    return define_workflow(
        workflow_payload(
            params={
                "url": {"type": "string", "required": True},
                "count": {"type": "number", "default": 5},
                "headless": {"type": "boolean", "default": False},
                "tags": {"type": "array"},
                "filters": {"type": "object"},
                "label": {"type": "string"},
            },
        ),
    )


def test_missing_required_param_reports_single_error(definition) -> None:
    result = resolve_params(definition, {})

    assert not result.valid
    assert len(result.errors) == 1
    assert result.errors[0].param == "url"
    assert result.errors[0].code is ValidationErrorCode.MISSING_REQUIRED
    assert result.resolved_params == {}


def test_defaults_fill_absent_optional_params(definition) -> None:
    result = resolve_params(definition, {"url": "https://example.com"})

    assert result.valid
    assert result.resolved_params == {
        "url": "https://example.com",
        "count": 5,
        "headless": False,
    }


def test_string_inputs_are_coerced_to_declared_types(definition) -> None:
    result = resolve_params(
        definition,
        {
            "url": "https://example.com",
            "count": "7",
            "headless": "true",
            "tags": "a, b ,c",
            "filters": '{"region": "eu"}',
        },
    )

    assert result.valid, format_errors(result.errors)
    assert result.resolved_params["count"] == 7
    assert isinstance(result.resolved_params["count"], int)
    assert result.resolved_params["headless"] is True
    assert result.resolved_params["tags"] == ["a", "b", "c"]
    assert result.resolved_params["filters"] == {"region": "eu"}


def test_fractional_number_is_coerced_to_float(definition) -> None:
    result = resolve_params(definition, {"url": "x", "count": "2.5"})

    assert result.resolved_params["count"] == 2.5


@pytest.mark.parametrize(
    ("param", "value", "message"),
    [
        ("count", "abc", "non-numeric string 'abc'"),
        ("count", "inf", "non-numeric string 'inf'"),
        ("headless", "yes", "Expected boolean (true or false), got 'yes'"),
        ("filters", "{broken", "Expected object, got invalid JSON"),
        ("filters", "[1, 2]", "Expected object, got invalid JSON"),
        ("tags", 3, "Expected array, got number"),
        ("url", True, "Expected string, got boolean"),
    ],
)
def test_type_mismatch_messages(definition, param, value, message) -> None:
    params = {"url": "https://example.com", param: value}

    result = resolve_params(definition, params)

    assert not result.valid
    assert [error.param for error in result.errors] == [param]
    assert result.errors[0].code is ValidationErrorCode.TYPE_MISMATCH
    assert message in result.errors[0].message
    assert param not in result.resolved_params


def test_blank_values_count_as_absent(definition) -> None:
    result = resolve_params(definition, {"url": "", "count": "", "label": ""})

    codes = {error.param: error.code for error in result.errors}
    assert codes == {"url": ValidationErrorCode.MISSING_REQUIRED}
    assert result.resolved_params["count"] == 5
    assert result.resolved_params["label"] == ""


def test_unknown_params_are_reported_after_declared_ones(definition) -> None:
    result = resolve_params(definition, {"bogus": "1", "count": "abc", "url": "x"})

    assert [error.code for error in result.errors] == [
        ValidationErrorCode.TYPE_MISMATCH,
        ValidationErrorCode.UNKNOWN_PARAMETER,
    ]
    assert result.errors[1].message == "Unknown parameter: bogus"


def test_every_error_is_collected(definition) -> None:
    result = resolve_params(definition, {"count": "x", "headless": "maybe"})

    assert [error.param for error in result.errors] == ["url", "count", "headless"]


def test_validate_params_does_not_coerce(definition) -> None:
    result = validate_params(definition, {"url": "x", "count": "7"})

    assert not result.valid
    assert result.errors[0].param == "count"


def test_coerce_params_keeps_unknown_keys_and_skips_absent_without_default(definition) -> None:
    coerced = coerce_params(definition.params, {"url": "x", "extra": "y"})

    assert coerced == {"url": "x", "count": 5, "headless": False, "extra": "y"}


def test_coerce_value_leaves_unconvertible_input_unchanged() -> None:
    assert coerce_value(ParamType.NUMBER, "twelve") == "twelve"
    assert coerce_value(ParamType.BOOLEAN, "TRUE") == "TRUE"
    assert coerce_value(ParamType.ARRAY, ("a", "b")) == ["a", "b"]
    assert coerce_value(ParamType.STRING, 3) == 3


def test_format_errors_lists_each_issue(definition) -> None:
    result = resolve_params(definition, {"count": "x"})

    assert format_errors(result.errors) == (
        "  - url: Required parameter missing: url\n"
        "  - count: Expected number, got non-numeric string 'x'"
    )


def test_very_large_integer_is_a_valid_number(definition) -> None:
    huge = "1" + "0" * 400

    result = resolve_params(definition, {"url": "x", "count": huge})

    assert result.valid, format_errors(result.errors)
    assert result.resolved_params["count"] == int(huge)


def test_blank_optional_without_default_is_left_unresolved(workflow_payload) -> None:
    definition = define_workflow(
        workflow_payload(
            params={
                "limit": {"type": "number"},
                "tags": {"type": "array"},
                "label": {"type": "string"},
            },
        ),
    )

    result = resolve_params(definition, {"limit": "", "tags": "", "label": ""})

    assert result.valid
    assert result.errors == []
    assert result.resolved_params == {"label": ""}
