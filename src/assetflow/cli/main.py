# src/assetflow/cli/main.py

"""
CLI entrypoint.

    assetflow build     one-shot production build, then exit
    assetflow [default] dev build, then serve + watch until Ctrl+C

Exit code 0 on success, 1 when any task fails.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from dataclasses import replace
from pathlib import Path

from ..config import Settings, get_settings
from ..core.errors import TaskError
from ..core.executor import run
from ..core.graph import describe
from ..logging_setup import setup_logging
from ..pipeline import build_graph, dev_graph

logger = logging.getLogger(__name__)

COMMANDS = ("build", "default", "dev")


def _parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="assetflow", description="Static site asset pipeline.")
    p.add_argument("command", nargs="?", default="default", choices=COMMANDS)
    p.add_argument("--source", type=Path, help="source tree (default: ./source)")
    p.add_argument("--build-dir", type=Path, help="output tree (default: ./build)")
    p.add_argument("--host", help="dev server host")
    p.add_argument("--port", type=int, help="dev server port")
    p.add_argument("--log-dir", type=Path, help="where the log file is written")
    p.add_argument("--no-sourcemaps", action="store_true", help="skip style.min.css.map")
    p.add_argument("--tasks", action="store_true", help="print the task graph and exit")
    return p


def _settings_from_args(settings: Settings, args: argparse.Namespace) -> Settings:
    overrides: dict[str, object] = {}
    if args.source is not None:
        overrides["source_dir"] = args.source
    if args.build_dir is not None:
        overrides["build_dir"] = args.build_dir
    if args.host:
        overrides["dev_host"] = args.host
    if args.port is not None:
        overrides["dev_port"] = args.port
    if args.log_dir is not None:
        overrides["log_dir"] = args.log_dir
    if args.no_sourcemaps:
        overrides["sourcemaps"] = False
    return replace(settings, **overrides) if overrides else settings


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    settings = _settings_from_args(get_settings(), args)

    level_name = str(settings.log_level).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.log_dir, app_name=settings.app_name, console_level=console_level)

    graph = build_graph(settings) if args.command == "build" else dev_graph(settings)
    if args.tasks:
        print(describe(graph))
        return 0

    logger.info("Using source %s -> %s", settings.source_dir, settings.build_dir)
    try:
        report = asyncio.run(run(graph))
    except TaskError as exc:
        logger.error("Build failed: %s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted, bye.")
        return 0

    logger.info("Done: %d task(s), %d file(s) written.", len(report.runs), len(report.outputs))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
