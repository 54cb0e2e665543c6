# tests/conftest.py

from __future__ import annotations

import io
import socket
from pathlib import Path
from types import SimpleNamespace

import pytest
from PIL import Image

ICON_A = (
    '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 24 24">'
    '<defs><linearGradient id="g"><stop offset="0"/></linearGradient></defs>'
    '<path d="M0 0h24v24H0z" fill="url(#g)"/></svg>'
)
ICON_B = '<svg xmlns="http://www.w3.org/2000/svg" width="16" height="16"><circle cx="8" cy="8" r="8"/></svg>'
ICON_C = '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 10 10"><rect width="10" height="10"/></svg>'

LOGO = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    "<!-- exported by some editor -->\n"
    '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 100 100">\n'
    "  <metadata>generator junk</metadata>\n"
    '  <g>\n    <rect x="10" y="10" width="80" height="80" fill="#ff0000"/>\n  </g>\n'
    "</svg>\n"
)

INDEX_HTML = (
    "<!DOCTYPE html>\n<html lang=\"en\">\n  <head>\n    <title>Test</title>\n  </head>\n"
    "  <body>\n    <p>  Hello   world </p>\n  </body>\n</html>\n"
)


def png_bytes(size: tuple[int, int] = (32, 32), color=(200, 30, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG", compress_level=0)
    return buf.getvalue()


def jpeg_bytes(size: tuple[int, int] = (64, 64)) -> bytes:
    img = Image.new("RGB", size)
    for x in range(size[0]):
        for y in range(size[1]):
            img.putpixel((x, y), (x * 4 % 256, y * 4 % 256, 128))
    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=100)
    return buf.getvalue()


def _write(path: Path, data: str | bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(data, bytes):
        path.write_bytes(data)
    else:
        path.write_text(data, "utf-8")


@pytest.fixture()
def source_tree(tmp_path: Path) -> Path:
    """A small but complete source layout, like a real site checkout."""
    src = tmp_path / "source"
    _write(src / "index.html", INDEX_HTML)
    _write(src / "sass" / "_vars.scss", "$brand: #ff0000;\n")
    _write(src / "sass" / "style.scss", "@import 'vars';\n\n.card {\n  .title {\n    color: $brand;\n  }\n}\n")
    _write(src / "js" / "script.js", "function add(a, b) {\n  return a + b;\n}\n")
    _write(src / "js" / "menu.js", "var menu = document.querySelector('.menu');\n")
    _write(src / "img" / "photo.png", png_bytes())
    _write(src / "img" / "hero.jpg", jpeg_bytes())
    _write(src / "img" / "logo.svg", LOGO)
    _write(src / "img" / "icons" / "a.svg", ICON_A)
    _write(src / "img" / "icons" / "b.svg", ICON_B)
    _write(src / "img" / "icons" / "social" / "c.svg", ICON_C)
    _write(src / "fonts" / "body.woff2", b"wOF2-not-really-a-font")
    _write(src / "favicon.ico", b"\x00\x00\x01\x00fake-icon")
    return src


@pytest.fixture()
def settings(tmp_path: Path, source_tree: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with pipeline/config consumers.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the developer's environment and .env.
    """
    return SimpleNamespace(
        source_dir=source_tree,
        build_dir=tmp_path / "build",
        log_dir=tmp_path / "logs",
        dev_host="127.0.0.1",
        dev_port=0,
        sourcemaps=True,
        webp_quality=90,
        jpeg_quality=85,
        watch_debounce_ms=10,
    )


@pytest.fixture()
def busy_port():
    """A localhost port some other process is already listening on."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(1)
    try:
        yield sock.getsockname()[1]
    finally:
        sock.close()
