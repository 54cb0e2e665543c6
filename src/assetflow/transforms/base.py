# src/assetflow/transforms/base.py

"""Small building blocks shared by the collaborator wrappers."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace

from ..core.errors import TransformError
from ..core.files import SourceFile
from ..core.ports import Transform

logger = logging.getLogger(__name__)


def each(fn: Callable[[SourceFile], SourceFile], *, label: str) -> Transform:
    """
    Lift a per-file function into a Transform.

    Any exception from the collaborator becomes TransformError pointing at the
    offending source file.
    """

    def _apply(files: list[SourceFile]) -> list[SourceFile]:
        out: list[SourceFile] = []
        for f in files:
            try:
                out.append(fn(f))
            except TransformError:
                raise
            except Exception as exc:
                raise TransformError(f"{label} failed: {exc}", f.path) from exc
        return out

    _apply.__name__ = label
    return _apply


def rename(filename: str) -> Transform:
    """Give every file the same basename (directory part is kept)."""

    def _rename(files: list[SourceFile]) -> list[SourceFile]:
        return [replace(f, relative=f.relative.with_name(filename)) for f in files]

    return _rename
