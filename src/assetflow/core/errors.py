# src/assetflow/core/errors.py

"""
Error taxonomy of the build.

- BuildIOError: the filesystem refused a read, write or removal.
- TransformError: an external collaborator rejected its input.
- TaskError: wraps either of the above with the name of the failing task.

Only TaskError leaves the executor; the CLI turns it into a non-zero exit.
"""

from __future__ import annotations

from pathlib import Path


class AssetflowError(Exception):
    """Base class for every error raised by assetflow."""


class BuildIOError(AssetflowError, OSError):
    def __init__(self, message: str, path: str | Path | None = None) -> None:
        super().__init__(message)
        self.path = Path(path) if path is not None else None

    def __str__(self) -> str:
        msg = self.args[0] if self.args else ""
        return f"{msg} ({self.path})" if self.path is not None else str(msg)


class TransformError(AssetflowError):
    def __init__(self, message: str, path: str | Path | None = None) -> None:
        super().__init__(message)
        self.path = Path(path) if path is not None else None

    def __str__(self) -> str:
        msg = self.args[0] if self.args else ""
        return f"{self.path}: {msg}" if self.path is not None else str(msg)


class TaskError(AssetflowError):
    """Graph-level failure, attributable to exactly one task."""

    def __init__(self, task_name: str, cause: BaseException) -> None:
        super().__init__(f"Task '{task_name}' failed: {cause}")
        self.task_name = task_name
        self.cause = cause
