# src/assetflow/transforms/sprites.py

"""
SVG sprite assemblers.

Two layouts, each collapsing N icon files into one sprite:

- symbol_sprite: every icon becomes `<symbol id="name" viewBox=...>` inside a
  hidden root `<svg>`; meant to be inlined into the page and referenced with
  `<use href="#name">`.
- stack_sprite: every icon becomes a nested `<svg id="name">`, and a small
  stylesheet shows only the `:target` one; meant for `stack.svg#name` URLs.

Icon ids come from the path below the icons directory, with `/` replaced by
`--` and the `.svg` suffix dropped. Duplicate ids are an error.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import PurePosixPath

from ..core.errors import TransformError
from ..core.files import SourceFile
from ..core.ports import Transform

logger = logging.getLogger(__name__)

SVG_NS = "http://www.w3.org/2000/svg"
XLINK_NS = "http://www.w3.org/1999/xlink"

ET.register_namespace("", SVG_NS)
ET.register_namespace("xlink", XLINK_NS)

_SVG = f"{{{SVG_NS}}}svg"
_DEFS = f"{{{SVG_NS}}}defs"

# Presentation attributes worth carrying over from the icon root.
_CARRIED_ATTRS = ("viewBox", "preserveAspectRatio", "fill", "stroke", "class")


def icon_id(relative: PurePosixPath) -> str:
    return "--".join(relative.with_suffix("").parts)


def _parse(f: SourceFile) -> ET.Element:
    try:
        root = ET.fromstring(f.contents)
    except ET.ParseError as exc:
        raise TransformError(f"Invalid SVG: {exc}", f.path) from exc
    if root.tag != _SVG:
        raise TransformError(f"Root element is <{root.tag}>, expected <svg>", f.path)
    return root


def _view_box(root: ET.Element) -> str | None:
    vb = root.get("viewBox")
    if vb:
        return vb
    width, height = root.get("width"), root.get("height")
    if width and height:
        try:
            return f"0 0 {float(width.rstrip('px')):g} {float(height.rstrip('px')):g}"
        except ValueError:
            return None
    return None


def _icons(files: list[SourceFile]) -> list[tuple[str, SourceFile, ET.Element]]:
    seen: dict[str, SourceFile] = {}
    out: list[tuple[str, SourceFile, ET.Element]] = []
    for f in sorted(files, key=lambda x: x.relative.as_posix()):
        ident = icon_id(f.relative)
        if ident in seen:
            raise TransformError(f"Duplicate icon id '{ident}' (also {seen[ident].path})", f.path)
        seen[ident] = f
        out.append((ident, f, _parse(f)))
    return out


def _serialize(root: ET.Element, *, xml_declaration: bool) -> bytes:
    body = ET.tostring(root, encoding="unicode", short_empty_elements=True)
    if xml_declaration:
        body = '<?xml version="1.0" encoding="UTF-8"?>' + body
    return body.encode("utf-8")


def symbol_sprite(filename: str = "sprite.svg", *, inline: bool = True, hidden: bool = True) -> Transform:
    def _assemble(files: list[SourceFile]) -> list[SourceFile]:
        if not files:
            return []
        sprite = ET.Element(_SVG)
        if hidden:
            sprite.set("style", "display: none;")
        shared_defs = ET.Element(_DEFS)

        for ident, _f, root in _icons(files):
            symbol = ET.SubElement(sprite, f"{{{SVG_NS}}}symbol", {"id": ident})
            vb = _view_box(root)
            for attr in _CARRIED_ATTRS:
                value = vb if attr == "viewBox" else root.get(attr)
                if value:
                    symbol.set(attr, value)
            for child in list(root):
                # <defs> are hoisted: gradients inside <symbol> render poorly in some browsers.
                if child.tag == _DEFS:
                    shared_defs.extend(list(child))
                else:
                    symbol.append(child)

        if len(shared_defs):
            sprite.insert(0, shared_defs)
        logger.debug("Symbol sprite with %d icon(s)", len(files))
        return [
            SourceFile(
                path=files[0].path,
                relative=PurePosixPath(filename),
                contents=_serialize(sprite, xml_declaration=not inline),
            )
        ]

    return _assemble


_STACK_CSS = ":root>svg{display:none}:root>svg:target{display:block}"


def stack_sprite(filename: str = "stack.svg") -> Transform:
    def _assemble(files: list[SourceFile]) -> list[SourceFile]:
        if not files:
            return []
        sprite = ET.Element(_SVG)
        style = ET.SubElement(sprite, f"{{{SVG_NS}}}style")
        style.text = _STACK_CSS

        for ident, _f, root in _icons(files):
            nested = ET.SubElement(sprite, _SVG, {"id": ident})
            vb = _view_box(root)
            if vb:
                nested.set("viewBox", vb)
            for attr in ("width", "height", "preserveAspectRatio", "fill", "stroke"):
                value = root.get(attr)
                if value:
                    nested.set(attr, value)
            nested.extend(list(root))

        logger.debug("Stack sprite with %d icon(s)", len(files))
        return [
            SourceFile(
                path=files[0].path,
                relative=PurePosixPath(filename),
                contents=_serialize(sprite, xml_declaration=True),
            )
        ]

    return _assemble
