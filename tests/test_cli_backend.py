from __future__ import annotations

import gc
import shlex
import sys
import warnings

import allure
import pytest

from chrome_workflows.runner.backend.cli_backend import (
    BackendRunError,
    CliAgentBackend,
    build_agent_command,
)

pytestmark = [
    allure.epic("Workflow Execution"),
    allure.feature("Agent Command Rendering"),
]


def test_build_agent_command_windows_avoids_nested_quoting_in_quoted_payload() -> None:
    command = build_agent_command(
        command_template='agent --chrome "task:\\n{prompt}"',
        prompt='hello "world"',
        os_name="nt",
    )

    assert isinstance(command.run_args, str)
    assert command.command_head == "agent"
    assert command.run_args == 'agent --chrome "task:\\nhello \\"world\\""'


def test_build_agent_command_windows_quotes_unquoted_placeholder_values() -> None:
    command = build_agent_command(
        command_template="agent --chrome -p {prompt} --output-format text",
        prompt="hello world",
        os_name="nt",
    )

    assert isinstance(command.run_args, str)
    assert command.command_head == "agent"
    assert '-p "hello world"' in command.run_args
    assert command.run_args.endswith("--output-format text")


def test_build_agent_command_posix_passes_prompt_as_single_argument() -> None:
    prompt = "Go to https://example.com\n\n---\nSave 'data' to ./out; rm -rf /"

    command = build_agent_command(
        command_template="claude --chrome -p {prompt} --output-format text",
        prompt=prompt,
        os_name="posix",
    )

    assert command.run_args == [
        "claude",
        "--chrome",
        "-p",
        prompt,
        "--output-format",
        "text",
    ]
    assert command.command_head == "claude"


@pytest.mark.parametrize(
    ("template", "message"),
    [
        ("   ", "empty"),
        ("agent --chrome", "must include {prompt}"),
        ("agent {prompt} {model}", "Unsupported command template placeholder"),
        ("agent 'unterminated {prompt}", "not valid shell syntax"),
    ],
)
def test_build_agent_command_rejects_bad_templates(template, message) -> None:
    with pytest.raises(BackendRunError, match=message):
        build_agent_command(command_template=template, prompt="hi", os_name="posix")


def test_build_agent_command_windows_rejects_format_spec() -> None:
    with pytest.raises(BackendRunError, match="Unsupported format spec"):
        build_agent_command(
            command_template="agent {prompt} {prompt!r}",
            prompt="hi",
            os_name="nt",
        )


def _python_command(arguments: str) -> str:
    return f"{shlex.quote(sys.executable)} {arguments}"


def test_spawn_detached_reports_early_exit_within_liveness_window(tmp_path) -> None:
    command = build_agent_command(
        command_template=_python_command(
            "-m chrome_workflows.runner.backend.echo_agent --exit-code 3 -- {prompt}",
        ),
        prompt="fail fast",
        os_name="posix",
    )

    run = CliAgentBackend().spawn_detached(command, cwd=tmp_path, liveness_seconds=5)

    assert run.exit_code == 3
    assert run.pid > 0


def test_spawn_detached_treats_running_agent_as_started(tmp_path) -> None:
    command = build_agent_command(
        command_template=_python_command(
            "-c 'import sys, time; time.sleep(float(sys.argv[1]))' {prompt}",
        ),
        prompt="5",
        os_name="posix",
    )

    run = CliAgentBackend().spawn_detached(command, cwd=tmp_path, liveness_seconds=0.2)

    assert run.exit_code is None


def test_spawn_detached_keeps_handle_of_running_agent(tmp_path) -> None:
    command = build_agent_command(
        command_template=_python_command(
            "-c 'import sys, time; time.sleep(float(sys.argv[1]))' {prompt}",
        ),
        prompt="2",
        os_name="posix",
    )

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        CliAgentBackend().spawn_detached(command, cwd=tmp_path)
        gc.collect()

    assert not [item for item in caught if issubclass(item.category, ResourceWarning)]
