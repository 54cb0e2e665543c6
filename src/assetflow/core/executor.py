# src/assetflow/core/executor.py

"""
Graph executor.

Interprets a task graph on the running event loop:
- Sequential: await each step, in order,
- Concurrent: dispatch every step, then join them all,
- Task: collect inputs -> run the chain -> write outputs,
- Action: await its coroutine.

Failure policy:
- every leaf failure is wrapped exactly once into TaskError,
- no retries, no local recovery; the enclosing group fails,
- concurrent siblings are never cancelled; the group re-raises the first
  failure in completion order once all siblings have settled.

Blocking work (file I/O, collaborator calls) runs in worker threads so the
loop keeps serving other tasks (and the dev server) meanwhile.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import time
from dataclasses import dataclass, field
from pathlib import Path

from .errors import BuildIOError, TaskError
from .files import SourceFile, collect, write_files
from .graph import Action, Concurrent, Sequential, Step, Task

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TaskRun:
    name: str
    started_at: float
    finished_at: float
    outputs: list[Path] = field(default_factory=list)

    @property
    def elapsed_ms(self) -> float:
        return (self.finished_at - self.started_at) * 1000.0


@dataclass(slots=True)
class BuildReport:
    runs: list[TaskRun] = field(default_factory=list)

    @property
    def outputs(self) -> list[Path]:
        return [p for r in self.runs for p in r.outputs]

    def get(self, name: str) -> TaskRun | None:
        for r in self.runs:
            if r.name == name:
                return r
        return None


async def run(graph: Step, report: BuildReport | None = None) -> BuildReport:
    """Execute `graph` to completion. Raises TaskError on the first failing leaf."""
    report = report if report is not None else BuildReport()
    await _run_step(graph, report)
    return report


async def clean(build_dir: Path) -> None:
    """Remove the output tree and recreate it empty."""
    build_dir = Path(build_dir)

    def _clean() -> None:
        try:
            if build_dir.exists() or build_dir.is_symlink():
                shutil.rmtree(build_dir)
            build_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise BuildIOError(f"Cannot clean output directory: {exc.strerror or exc}", build_dir) from exc

    await asyncio.to_thread(_clean)
    logger.debug("Cleaned %s", build_dir)


async def _run_step(step: Step, report: BuildReport) -> None:
    if isinstance(step, Sequential):
        for child in step.steps:
            await _run_step(child, report)
        return

    if isinstance(step, Concurrent):
        await _run_concurrent(step, report)
        return

    await _run_leaf(step, report)


async def _run_concurrent(group: Concurrent, report: BuildReport) -> None:
    children = [asyncio.create_task(_run_step(child, report)) for child in group.steps]
    failures: list[TaskError] = []
    try:
        for fut in asyncio.as_completed(children):
            try:
                await fut
            except TaskError as exc:
                if failures:
                    logger.error("%s", exc)
                failures.append(exc)
    except asyncio.CancelledError:
        # Cancelled from outside (e.g. Ctrl+C): take the children down too.
        for child in children:
            child.cancel()
        await asyncio.gather(*children, return_exceptions=True)
        raise

    if failures:
        raise failures[0]


async def _run_leaf(leaf: Task | Action, report: BuildReport) -> None:
    logger.info("Starting '%s'...", leaf.name)
    started = time.monotonic()
    outputs: list[Path] = []
    try:
        if isinstance(leaf, Task):
            outputs = await _run_task(leaf)
        else:
            await leaf.fn()
    except TaskError:
        # Nested run() inside an Action: already attributed.
        raise
    except Exception as exc:
        finished = time.monotonic()
        logger.error(
            "'%s' errored after %.0f ms: %s", leaf.name, (finished - started) * 1000.0, exc
        )
        raise TaskError(leaf.name, exc) from exc

    record = TaskRun(name=leaf.name, started_at=started, finished_at=time.monotonic(), outputs=outputs)
    report.runs.append(record)
    logger.info("Finished '%s' after %.0f ms", leaf.name, record.elapsed_ms)


async def _run_task(task: Task) -> list[Path]:
    files: list[SourceFile] = await asyncio.to_thread(collect, task.input_globs, base=task.base)
    if not files:
        logger.debug("'%s': no input files matched %s", task.name, list(task.input_globs))

    # The whole chain runs before anything is written: a failing step leaves no partial output.
    for step in task.transform_chain:
        files = await asyncio.to_thread(step, files)

    return await asyncio.to_thread(write_files, files, task.output_dir)
