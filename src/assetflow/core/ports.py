# src/assetflow/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the orchestrator.

The executor and the watch loop depend on these Protocols instead of the
concrete collaborators, so transforms and the dev server stay swappable and
tests can pass fakes.
"""

from collections.abc import AsyncIterable
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .files import SourceFile


class Transform(Protocol):
    """One opaque step of a task chain: file set in, file set out."""

    def __call__(self, files: list[SourceFile]) -> list[SourceFile]: ...


class ReloadNotifier(Protocol):
    """Pushes a refresh to connected browsers; both calls return how many were told."""

    async def reload(self) -> int: ...

    async def inject_css(self) -> int:
        """Re-fetch stylesheets in place, without a page reload."""
        ...


# One batch of filesystem changes: (change kind, path) pairs, as yielded by watchfiles.
ChangeBatch = set[tuple[object, str]]
ChangeSource = AsyncIterable[ChangeBatch]
