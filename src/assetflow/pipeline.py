# src/assetflow/pipeline.py

"""
Declared tasks of the site build.

This module is the "composition root": it routes the fixed source layout
(markup, sass/, js/, img/, fonts/) to the collaborators and composes the two
graphs the CLI runs:

- build: clean -> copy -> images (optimized) -> parallel(transforms)
- dev:   clean -> copy -> images (copied)    -> parallel(transforms) -> series(serve, watch)

Output subpaths of the parallel group are disjoint (css/, js/, root *.html,
img/*.webp, img/sprite.svg, img/stack.svg).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from .config import Settings
from .core.executor import clean
from .core.graph import Action, Concurrent, Sequential, Task, parallel, series
from .core.ports import ChangeSource
from .server.devserver import DevServerHandle, serve_dev
from .transforms.base import rename
from .transforms.images import optimize_images, to_webp
from .transforms.markup import minify_markup
from .transforms.scripts import bundle, minify_js
from .transforms.sprites import stack_sprite, symbol_sprite
from .transforms.styles import compile_sass, write_source_maps
from .watch import WatchRule, watch

logger = logging.getLogger(__name__)

STYLE_ENTRY = "sass/style.{scss,sass}"
STYLE_SOURCES = "sass/**/*.{scss,sass}"
SCRIPT_SOURCES = "js/*.{js,jsx}"
MARKUP_SOURCES = "**/*.html"
MARKUP_WATCH = "*.html"
IMAGE_SOURCES = "img/**/*.{jpg,png,svg}"
WEBP_SOURCES = "img/**/*.{jpg,png}"
ICON_SOURCES = "img/icons/*.svg"
ICON_TREE_SOURCES = "img/icons/**/*.svg"
STATIC_SOURCES = ("fonts/*.{woff2,woff}", "*.ico", "img/**/*.svg")


def _src(settings: Settings, pattern: str) -> str:
    return (Path(settings.source_dir) / pattern).as_posix()


@dataclass(slots=True, frozen=True)
class SiteTasks:
    clean: Action
    copy: Task
    images: Task
    styles: Task
    markup: Task
    scripts: Task
    sprite: Task
    stack: Task
    webp: Task

    def transforms(self) -> Concurrent:
        return parallel(self.styles, self.markup, self.scripts, self.sprite, self.stack, self.webp)


def define_tasks(settings: Settings, *, optimize: bool = True) -> SiteTasks:
    """
    Declare every task for the given trees.

    `optimize` picks the single `images` task's chain: optimized for
    production, a plain copy for fast dev iterations.
    """
    build = Path(settings.build_dir)

    async def _clean() -> None:
        await clean(build)

    return SiteTasks(
        clean=Action("clean", _clean, description=f"remove and recreate {build}"),
        copy=Task(
            "copy",
            tuple(_src(settings, p) for p in STATIC_SOURCES),
            build,
            base=Path(settings.source_dir),
            description="fonts, favicon, svg as-is",
        ),
        images=Task(
            "images",
            (_src(settings, IMAGE_SOURCES),),
            build / "img",
            (optimize_images(jpeg_quality=settings.jpeg_quality),) if optimize else (),
            description="optimize png/jpg/svg" if optimize else "copy png/jpg/svg",
        ),
        styles=Task(
            "styles",
            (_src(settings, STYLE_ENTRY),),
            build / "css",
            (
                compile_sass(source_maps=settings.sourcemaps),
                rename("style.min.css"),
                write_source_maps(),
            ),
            description="sass -> css/style.min.css",
        ),
        markup=Task(
            "markup",
            (_src(settings, MARKUP_SOURCES),),
            build,
            (minify_markup(),),
            description="minify html",
        ),
        scripts=Task(
            "scripts",
            (_src(settings, SCRIPT_SOURCES),),
            build / "js",
            (minify_js(), bundle("script.min.js")),
            description="js -> js/script.min.js",
        ),
        sprite=Task(
            "sprite",
            (_src(settings, ICON_SOURCES),),
            build / "img",
            (symbol_sprite("sprite.svg"),),
            description="inline <symbol> sprite img/sprite.svg",
        ),
        stack=Task(
            "stack",
            (_src(settings, ICON_TREE_SOURCES),),
            build / "img",
            (stack_sprite("stack.svg"),),
            description="stack sprite img/stack.svg",
        ),
        webp=Task(
            "webp",
            (_src(settings, WEBP_SOURCES),),
            build / "img",
            (to_webp(quality=settings.webp_quality),),
            description="png/jpg -> webp",
        ),
    )


def build_graph(settings: Settings) -> Sequential:
    tasks = define_tasks(settings, optimize=True)
    return series(tasks.clean, tasks.copy, tasks.images, tasks.transforms())


def watch_rules(tasks: SiteTasks) -> list[WatchRule]:
    return [
        WatchRule((STYLE_SOURCES,), tasks.styles, inject_css=True),
        WatchRule((SCRIPT_SOURCES,), tasks.scripts, reload=True),
        WatchRule((MARKUP_WATCH,), tasks.markup, reload=True),
    ]


@dataclass(slots=True)
class DevSession:
    """
    Carries the dev server handle from the `serve` step to the `watch` step.

    `changes` replaces the filesystem watcher (watchfiles on the source tree)
    with any async iterable of change batches.
    """

    settings: Settings
    handle: DevServerHandle | None = field(default=None)
    changes: ChangeSource | None = None

    async def serve(self) -> None:
        self.handle = await serve_dev(
            Path(self.settings.build_dir),
            host=self.settings.dev_host,
            port=self.settings.dev_port,
        )

    async def watch(self, rules: list[WatchRule]) -> None:
        await watch(
            rules,
            root=Path(self.settings.source_dir),
            notifier=self.handle,
            changes=self.changes,
            debounce_ms=self.settings.watch_debounce_ms,
        )


def dev_graph(settings: Settings, session: DevSession | None = None) -> Sequential:
    session = session if session is not None else DevSession(settings)
    tasks = define_tasks(settings, optimize=False)
    rules = watch_rules(tasks)

    async def _watch() -> None:
        await session.watch(rules)

    return series(
        tasks.clean,
        tasks.copy,
        tasks.images,
        tasks.transforms(),
        series(
            Action("serve", session.serve, description=f"http://{settings.dev_host}:{settings.dev_port}"),
            Action("watch", _watch, description=f"rebuild on changes in {settings.source_dir}"),
        ),
    )
