# src/assetflow/transforms/scripts.py

"""JS chain: minify each script with rjsmin, then bundle into one file."""

from __future__ import annotations

from dataclasses import replace
from pathlib import PurePosixPath

import rjsmin

from ..core.files import SourceFile
from ..core.ports import Transform
from .base import each


def minify_js() -> Transform:
    def _minify(f: SourceFile) -> SourceFile:
        return replace(f, contents=rjsmin.jsmin(f.text()).encode("utf-8"))

    return each(_minify, label="jsmin")


def bundle(filename: str) -> Transform:
    """
    Concatenate all files (in their collected order) into `filename`.

    An empty input stays empty: no bundle is written when no script matched.
    """

    def _bundle(files: list[SourceFile]) -> list[SourceFile]:
        if not files:
            return []
        parts = [f.contents.rstrip().rstrip(b";") + b";" for f in files if f.contents.strip()]
        first = files[0]
        return [
            replace(
                first,
                relative=PurePosixPath(filename),
                contents=b"\n".join(parts) + b"\n",
                source_map=None,
            )
        ]

    return _bundle
