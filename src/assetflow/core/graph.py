# src/assetflow/core/graph.py

"""
Task graph values.

A graph is an immutable tree of leaves (Task, Action) joined by two
combinators:
- Sequential(steps): each step completes before the next starts,
- Concurrent(steps): all steps run on the event loop, joined at the end.

Graphs carry no behaviour; `core.executor.run` interprets them.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

from .ports import Transform


@dataclass(slots=True, frozen=True)
class Task:
    """Named file transformation: read input globs, run the chain, write output_dir."""

    name: str
    input_globs: tuple[str, ...]
    output_dir: Path
    transform_chain: tuple[Transform, ...] = ()
    base: Path | None = None
    description: str = ""


@dataclass(slots=True, frozen=True)
class Action:
    """Named leaf that runs a coroutine function instead of a file chain (clean, serve, watch)."""

    name: str
    fn: Callable[[], Awaitable[Any]] = field(compare=False)
    description: str = ""


@dataclass(slots=True, frozen=True)
class Sequential:
    steps: tuple[Step, ...]


@dataclass(slots=True, frozen=True)
class Concurrent:
    steps: tuple[Step, ...]


Leaf = Union[Task, Action]
Step = Union[Task, Action, Sequential, Concurrent]


def series(*steps: Step) -> Sequential:
    return Sequential(tuple(steps))


def parallel(*steps: Step) -> Concurrent:
    return Concurrent(tuple(steps))


def iter_leaves(step: Step) -> Iterator[Leaf]:
    """Depth-first, declaration order."""
    if isinstance(step, (Sequential, Concurrent)):
        for child in step.steps:
            yield from iter_leaves(child)
    else:
        yield step


def describe(step: Step, indent: int = 0) -> str:
    """Human-readable tree, used by `assetflow --tasks`."""
    pad = "  " * indent
    if isinstance(step, Sequential):
        lines = [f"{pad}series"]
    elif isinstance(step, Concurrent):
        lines = [f"{pad}parallel"]
    else:
        suffix = f"  - {step.description}" if step.description else ""
        return f"{pad}{step.name}{suffix}"
    lines.extend(describe(child, indent + 1) for child in step.steps)
    return "\n".join(lines)
