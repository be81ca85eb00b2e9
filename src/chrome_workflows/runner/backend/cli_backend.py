"""Subprocess-based backend for the external browser agent CLI."""

from __future__ import annotations

import logging
import os
import shlex
import string
import subprocess
import threading
from pathlib import Path
from typing import IO, TextIO

from chrome_workflows.runner.backend.base import AgentCommand, AwaitedRun, DetachedRun

logger = logging.getLogger(__name__)


class BackendRunError(RuntimeError):
    """Agent process could not be launched."""


def build_agent_command(
    *,
    command_template: str,
    prompt: str,
    os_name: str | None = None,
) -> AgentCommand:
    """Render the agent command template with the composed prompt."""

    stripped = command_template.strip()
    if not stripped:
        raise BackendRunError("Agent command template is empty.")
    if "{prompt}" not in stripped:
        raise BackendRunError("Agent command template must include {prompt}.")

    current_os_name = os_name or os.name
    try:
        if current_os_name == "nt":
            rendered = _render_windows_command_template(
                template=stripped,
                values={"prompt": prompt},
            ).strip()
            if not rendered:
                raise BackendRunError("Agent command template rendered empty command.")
            return AgentCommand(run_args=rendered, command_head=rendered.split(maxsplit=1)[0])

        rendered = stripped.format(prompt=shlex.quote(prompt))
    except (KeyError, IndexError, ValueError) as error:
        raise BackendRunError(f"Unsupported command template placeholder: {error}") from error

    try:
        argv = shlex.split(rendered)
    except ValueError as error:
        raise BackendRunError(f"Agent command template is not valid shell syntax: {error}") from error
    if not argv:
        raise BackendRunError("Agent command template rendered empty command.")
    return AgentCommand(run_args=argv, command_head=argv[0])


class CliAgentBackend:
    """Launch the agent CLI with ``subprocess.Popen`` (no shell)."""

    def spawn_detached(
        self,
        command: AgentCommand,
        *,
        cwd: Path,
        liveness_seconds: float = 0.0,
    ) -> DetachedRun:
        process = self._popen(
            command,
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            detached=True,
        )
        logger.info("Agent started in background (pid=%s)", process.pid)
        if liveness_seconds <= 0:
            _reap_in_background(process)
            return DetachedRun(pid=process.pid)

        try:
            exit_code = process.wait(timeout=liveness_seconds)
        except subprocess.TimeoutExpired:
            _reap_in_background(process)
            return DetachedRun(pid=process.pid)
        logger.info("Background agent exited early with code %s", exit_code)
        return DetachedRun(pid=process.pid, exit_code=exit_code)

    def spawn_awaited(
        self,
        command: AgentCommand,
        *,
        cwd: Path,
        stdout: TextIO,
        stderr: TextIO,
    ) -> AwaitedRun:
        process = self._popen(
            command,
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            detached=False,
        )
        logger.info("Agent started in foreground (pid=%s)", process.pid)

        stdout_chunks: list[str] = []
        stderr_chunks: list[str] = []
        pumps = [
            threading.Thread(
                target=_pump,
                args=(process.stdout, stdout, stdout_chunks),
                daemon=True,
            ),
            threading.Thread(
                target=_pump,
                args=(process.stderr, stderr, stderr_chunks),
                daemon=True,
            ),
        ]
        for pump in pumps:
            pump.start()
        exit_code = process.wait()
        for pump in pumps:
            pump.join()

        return AwaitedRun(
            exit_code=exit_code,
            stdout="".join(stdout_chunks),
            stderr="".join(stderr_chunks),
        )

    @staticmethod
    def _popen(  # noqa: PLR0913
        command: AgentCommand,
        *,
        cwd: Path,
        stdin: int,
        stdout: int,
        stderr: int,
        detached: bool,
    ) -> subprocess.Popen[str]:
        extra: dict[str, object] = {}
        if detached:
            if os.name == "nt":
                extra["creationflags"] = (
                    subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP
                )
            else:
                extra["start_new_session"] = True
        try:
            return subprocess.Popen(  # noqa: S603
                command.run_args,
                cwd=cwd,
                stdin=stdin,
                stdout=stdout,
                stderr=stderr,
                text=True,
                encoding="utf-8",
                errors="replace",
                **extra,
            )
        except FileNotFoundError as error:
            raise BackendRunError(f"Agent command not found: {command.command_head}") from error
        except OSError as error:
            raise BackendRunError(f"Agent failed to start: {error}") from error


def _reap_in_background(process: subprocess.Popen[str]) -> None:
    # The waiter thread owns the Popen handle until the detached agent exits.
    threading.Thread(target=process.wait, daemon=True).start()


def _pump(source: IO[str] | None, sink: TextIO, buffer: list[str]) -> None:
    if source is None:
        return
    with source:
        for chunk in iter(source.readline, ""):
            buffer.append(chunk)
            sink.write(chunk)
            sink.flush()


def _render_windows_command_template(*, template: str, values: dict[str, str]) -> str:
    formatter = string.Formatter()
    rendered_parts: list[str] = []
    in_double_quotes = False

    for literal_text, field_name, format_spec, conversion in formatter.parse(template):
        rendered_parts.append(literal_text)
        in_double_quotes = _advance_windows_quote_state(literal_text, in_double_quotes)
        if field_name is None:
            continue

        try:
            value = values[field_name]
        except KeyError as error:
            raise KeyError(field_name) from error

        if conversion not in (None, "", "s") or format_spec:
            raise BackendRunError(
                f"Unsupported format spec in command template placeholder: {{{field_name}}}",
            )
        if in_double_quotes:
            rendered_parts.append(value.replace('"', '\\"'))
            continue

        rendered_parts.append(subprocess.list2cmdline([value]))

    return "".join(rendered_parts)


def _advance_windows_quote_state(literal_text: str, in_double_quotes: bool) -> bool:
    for index, char in enumerate(literal_text):
        if char != '"':
            continue
        backslashes = 0
        scan_index = index - 1
        while scan_index >= 0 and literal_text[scan_index] == "\\":
            backslashes += 1
            scan_index -= 1
        if backslashes % 2 == 1:
            continue
        in_double_quotes = not in_double_quotes
    return in_double_quotes
