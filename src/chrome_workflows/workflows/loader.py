"""Workflow discovery: resolve definitions by name or path across search roots."""

from __future__ import annotations

import json
import logging
import os
import tomllib
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import Any

from chrome_workflows.config import DEFAULT_WORKFLOW_PATHS
from chrome_workflows.workflows.definition import define_workflow
from chrome_workflows.workflows.models import (
    LoadedWorkflow,
    MalformedWorkflowError,
    WorkflowNotFoundError,
)

logger = logging.getLogger(__name__)

DEFAULT_SCAN_DEPTH = 2
EXCLUDED_PREFIX = "_"


def _read_toml(path: Path) -> Any:
    return tomllib.loads(path.read_text("utf-8"))


def _read_json(path: Path) -> Any:
    return json.loads(path.read_text("utf-8"))


DEFINITION_READERS: dict[str, Callable[[Path], Any]] = {
    ".toml": _read_toml,
    ".json": _read_json,
}


def get_workflow_paths(paths: Iterable[Path | str] | None = None) -> list[Path]:
    """Expand, resolve and keep only existing search roots, in priority order."""

    candidates = DEFAULT_WORKFLOW_PATHS if paths is None else paths
    resolved: list[Path] = []
    for candidate in candidates:
        path = Path(candidate).expanduser().resolve()
        if path.is_dir() and path not in resolved:
            resolved.append(path)
    return resolved


def is_path_like(name_or_path: str) -> bool:
    """Return True when input should bypass name search and load from disk."""

    return (
        "/" in name_or_path
        or os.sep in name_or_path
        or Path(name_or_path).suffix in DEFINITION_READERS
    )


def get_workflow(
    name_or_path: str,
    paths: Sequence[Path | str] | None = None,
    *,
    scan_depth: int = DEFAULT_SCAN_DEPTH,
) -> LoadedWorkflow:
    """Get a workflow by explicit file path or by name."""

    if is_path_like(name_or_path):
        return load_workflow_file(Path(name_or_path))
    return load_workflow(name_or_path, paths, scan_depth=scan_depth)


def load_workflow(
    name: str,
    paths: Sequence[Path | str] | None = None,
    *,
    scan_depth: int = DEFAULT_SCAN_DEPTH,
) -> LoadedWorkflow:
    """Load a single workflow by name.

    Searches every root for ``<name>.<ext>``, then ``<category>/<name>.<ext>``.
    When no file is named after the workflow, all discoverable definitions are
    scanned and matched on their declared ``name``.
    """

    roots = get_workflow_paths(paths)

    for root in roots:
        direct = _find_definition_file(root, name)
        if direct is not None:
            return load_workflow_file(direct)
        for category in _subdirectories(root):
            nested = _find_definition_file(category, name)
            if nested is not None:
                return load_workflow_file(nested)

    for loaded in list_workflows(roots, scan_depth=scan_depth):
        if loaded.definition.name == name:
            return loaded

    raise WorkflowNotFoundError(name, tuple(roots))


def load_workflow_file(file_path: Path | str) -> LoadedWorkflow:
    """Load and normalize a workflow from a specific file."""

    absolute_path = Path(file_path).expanduser().resolve()
    if not absolute_path.is_file():
        raise WorkflowNotFoundError(str(file_path), (absolute_path,))

    reader = DEFINITION_READERS.get(absolute_path.suffix)
    if reader is None:
        supported = ", ".join(sorted(DEFINITION_READERS))
        raise MalformedWorkflowError(
            f"Failed to load workflow {absolute_path}: unsupported file type "
            f"(expected one of {supported})",
        )

    try:
        raw = reader(absolute_path)
    except (OSError, UnicodeDecodeError, ValueError) as error:
        # tomllib.TOMLDecodeError and json.JSONDecodeError are both ValueError.
        raise MalformedWorkflowError(f"Failed to load workflow {absolute_path}: {error}") from error

    try:
        definition = define_workflow(raw)
    except MalformedWorkflowError as error:
        raise MalformedWorkflowError(f"Invalid workflow {absolute_path}: {error}") from error

    return LoadedWorkflow(
        definition=definition,
        file_path=absolute_path,
        directory=absolute_path.parent,
    )


def list_workflows(
    paths: Sequence[Path | str] | None = None,
    *,
    scan_depth: int = DEFAULT_SCAN_DEPTH,
) -> list[LoadedWorkflow]:
    """List all discoverable workflows, first definition of each name wins."""

    found: list[LoadedWorkflow] = []
    for root in get_workflow_paths(paths):
        found.extend(_scan_directory(root, max_depth=scan_depth))

    seen: set[str] = set()
    deduped: list[LoadedWorkflow] = []
    for loaded in found:
        if loaded.definition.name in seen:
            logger.debug(
                "Skipping duplicate workflow %s from %s",
                loaded.definition.name,
                loaded.file_path,
            )
            continue
        seen.add(loaded.definition.name)
        deduped.append(loaded)
    return deduped


def _scan_directory(directory: Path, *, max_depth: int, depth: int = 0) -> list[LoadedWorkflow]:
    if depth >= max_depth or not directory.is_dir():
        return []

    workflows: list[LoadedWorkflow] = []
    for entry in sorted(directory.iterdir(), key=lambda item: item.name):
        if entry.name.startswith("."):
            continue
        if entry.is_dir():
            workflows.extend(_scan_directory(entry, max_depth=max_depth, depth=depth + 1))
            continue
        if (
            not entry.is_file()
            or entry.suffix not in DEFINITION_READERS
            or entry.name.startswith(EXCLUDED_PREFIX)
        ):
            continue
        try:
            workflows.append(load_workflow_file(entry))
        except MalformedWorkflowError as error:
            logger.debug("Skipping %s: %s", entry, error)
    return workflows


def _find_definition_file(directory: Path, name: str) -> Path | None:
    for suffix in DEFINITION_READERS:
        candidate = directory / f"{name}{suffix}"
        if candidate.is_file():
            return candidate
    return None


def _subdirectories(root: Path) -> list[Path]:
    return sorted(
        (entry for entry in root.iterdir() if entry.is_dir() and not entry.name.startswith(".")),
        key=lambda item: item.name,
    )
