# src/assetflow/watch.py

"""
Watch mode.

A long-lived loop over filesystem change batches:
- each batch is matched against every WatchRule,
- a matching rule re-runs its target once per batch (not once per file),
- then, if the rule asks for it, browsers reload or re-fetch their CSS.

A failing re-run is logged and the loop keeps going, so the developer can fix
the input and save again. Re-runs are awaited in batch order and never
cancelled; changes arriving meanwhile are buffered by watchfiles.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from watchfiles import awatch

from .core.errors import TaskError
from .core.executor import run
from .core.files import matches_any
from .core.graph import Step
from .core.ports import ChangeBatch, ChangeSource, ReloadNotifier

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class WatchRule:
    """
    Patterns are relative to the watched root (e.g. `sass/**/*.{scss,sass}`).

    `reload` reloads the page after a successful re-run; `inject_css` swaps
    the stylesheets in place instead and wins when both are set.
    """

    patterns: tuple[str, ...]
    target: Step
    reload: bool = False
    inject_css: bool = False


def _relative(path: str, root: Path) -> str | None:
    try:
        return Path(path).resolve().relative_to(root).as_posix()
    except ValueError:
        return None


def matching_rules(rules: Iterable[WatchRule], changes: ChangeBatch, root: Path) -> list[WatchRule]:
    """Rules hit by at least one changed path, in declaration order."""
    root = root.resolve()
    paths = [p for p in (_relative(path, root) for _kind, path in changes) if p is not None]
    return [rule for rule in rules if any(matches_any(rule.patterns, p) for p in paths)]


async def handle_changes(
    rules: Iterable[WatchRule],
    changes: ChangeBatch,
    *,
    root: Path,
    notifier: ReloadNotifier | None = None,
) -> int:
    """Process one batch; returns how many rules fired."""
    fired = matching_rules(rules, changes, root)
    for rule in fired:
        try:
            await run(rule.target)
        except TaskError as exc:
            logger.error("Rebuild failed, still watching: %s", exc)
            continue
        if notifier is None:
            continue
        if rule.inject_css:
            await notifier.inject_css()
        elif rule.reload:
            await notifier.reload()
    return len(fired)


async def watch(
    rules: Iterable[WatchRule],
    *,
    root: Path,
    notifier: ReloadNotifier | None = None,
    changes: ChangeSource | None = None,
    debounce_ms: int = 50,
) -> None:
    """
    Run until the change source ends.

    With the default source (watchfiles on `root`) that is never; tests pass a
    finite async iterable instead.
    """
    rules = list(rules)
    root = Path(root)
    source = changes if changes is not None else awatch(root, debounce=debounce_ms)
    logger.info("Watching %s (%d rule(s))", root, len(rules))

    async for batch in source:
        logger.debug("Changes: %s", sorted(path for _kind, path in batch))
        await handle_changes(rules, batch, root=root, notifier=notifier)
