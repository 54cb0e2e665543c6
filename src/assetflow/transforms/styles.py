# src/assetflow/transforms/styles.py

"""
Stylesheet chain: Sass -> minified CSS (+ source map).

libsass compiles straight to compressed output, so the map it writes
describes the exact bytes that ship. Nothing after `compile_sass` may rewrite
the CSS, or the map would point at lines that no longer exist.

The source map travels on the SourceFile until `write_source_maps` emits it
next to the final name, so a rename in between keeps the map pointing at the
right file.
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from pathlib import PurePosixPath

import sass

from ..core.errors import TransformError
from ..core.files import SourceFile
from ..core.ports import Transform
from .base import each

logger = logging.getLogger(__name__)


def compile_sass(
    *,
    source_maps: bool = True,
    include_paths: tuple[str, ...] = (),
    output_style: str = "compressed",
) -> Transform:
    """Compile .scss/.sass files; indented syntax is picked from the extension."""

    def _compile(f: SourceFile) -> SourceFile:
        css_name = f.relative.with_suffix(".css")
        kwargs: dict[str, object] = {
            "filename": str(f.path),
            "output_style": output_style,
            "include_paths": [str(f.path.parent), *include_paths],
        }
        try:
            if source_maps:
                css, source_map = sass.compile(
                    **kwargs,
                    source_map_filename=str(f.path.with_name(css_name.name + ".map")),
                    output_filename_hint=str(f.path.with_name(css_name.name)),
                    source_map_contents=True,
                    omit_source_map_url=True,
                )
            else:
                css, source_map = sass.compile(**kwargs), None
        except sass.CompileError as exc:
            raise TransformError(f"Sass compile error:\n{exc}", f.path) from exc
        return replace(f, relative=css_name, contents=css.encode("utf-8"), source_map=source_map)

    return each(_compile, label="sass")


def write_source_maps() -> Transform:
    """
    Emit `<name>.map` beside each file that carries a map and append the
    sourceMappingURL comment. Files without a map pass through untouched.
    """

    def _write(files: list[SourceFile]) -> list[SourceFile]:
        out: list[SourceFile] = []
        for f in files:
            if f.source_map is None:
                out.append(f)
                continue
            map_rel = f.relative.with_name(f.relative.name + ".map")
            try:
                data = json.loads(f.source_map)
            except ValueError as exc:
                raise TransformError(f"Invalid source map: {exc}", f.path) from exc
            data["file"] = f.relative.name
            comment = f"\n/*# sourceMappingURL={map_rel.name} */\n"
            out.append(replace(f, contents=f.contents.rstrip() + comment.encode("utf-8"), source_map=None))
            out.append(
                SourceFile(
                    path=f.path,
                    relative=PurePosixPath(map_rel),
                    contents=json.dumps(data, ensure_ascii=False, sort_keys=True).encode("utf-8"),
                )
            )
        return out

    return _write
