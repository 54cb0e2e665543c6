# src/assetflow/transforms/markup.py

from __future__ import annotations

from dataclasses import replace

import minify_html

from ..core.files import SourceFile
from ..core.ports import Transform
from .base import each


def minify_markup(*, minify_css: bool = True, minify_js: bool = True) -> Transform:
    """Collapse whitespace and strip comments in HTML documents (minify-html)."""

    def _minify(f: SourceFile) -> SourceFile:
        html = minify_html.minify(f.text(), minify_css=minify_css, minify_js=minify_js)
        return replace(f, contents=html.encode("utf-8"))

    return each(_minify, label="htmlmin")
