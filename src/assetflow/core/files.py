# src/assetflow/core/files.py

"""
File sets: glob routing in, output tree out.

Patterns support `*`, `?`, `[...]`, `**` (any number of directories) and
`{a,b}` brace alternatives. Relative output paths are computed against the
glob parent of the pattern (the part before the first magic segment), unless
a task gives an explicit base.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path, PurePosixPath

from .errors import BuildIOError

logger = logging.getLogger(__name__)

_MAGIC = re.compile(r"[*?\[{]")
_BRACE = re.compile(r"\{([^{}]*)\}")


@dataclass(slots=True, frozen=True)
class SourceFile:
    path: Path
    relative: PurePosixPath
    contents: bytes
    source_map: str | None = field(default=None, compare=False)

    @property
    def name(self) -> str:
        return self.relative.name

    def text(self) -> str:
        return self.contents.decode("utf-8")


def expand_braces(pattern: str) -> list[str]:
    """`a/{b,c}/*.{x,y}` -> four plain patterns, left-to-right order kept."""
    m = _BRACE.search(pattern)
    if m is None:
        return [pattern]
    head, tail = pattern[: m.start()], pattern[m.end() :]
    out: list[str] = []
    for alt in m.group(1).split(","):
        for expanded in expand_braces(head + alt + tail):
            if expanded not in out:
                out.append(expanded)
    return out


def glob_parent(pattern: str) -> Path:
    parts = PurePosixPath(pattern).parts
    fixed: list[str] = []
    for part in parts:
        if _MAGIC.search(part):
            break
        fixed.append(part)
    else:
        # No magic at all: the parent of the literal file.
        fixed = fixed[:-1]
    return Path(*fixed) if fixed else Path(".")


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate a single (brace-free) glob into a regex over POSIX paths."""
    i, n = 0, len(pattern)
    out: list[str] = []
    while i < n:
        c = pattern[i]
        if pattern.startswith("**/", i):
            out.append("(?:.*/)?")
            i += 3
            continue
        if pattern.startswith("**", i):
            out.append(".*")
            i += 2
            continue
        if c == "*":
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            j = pattern.find("]", i + 1)
            if j == -1:
                out.append(re.escape(c))
            else:
                body = pattern[i + 1 : j]
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append(f"[{body}]")
                i = j
        else:
            out.append(re.escape(c))
        i += 1
    return re.compile("".join(out) + r"\Z")


@lru_cache(maxsize=256)
def compile_glob(pattern: str) -> tuple[re.Pattern[str], ...]:
    """All brace alternatives of `pattern`, compiled once per pattern."""
    return tuple(glob_to_regex(p) for p in expand_braces(Path(pattern).as_posix()))


def matches_any(patterns: Iterable[str], path: str | Path) -> bool:
    target = Path(path).as_posix()
    return any(rx.match(target) for pattern in patterns for rx in compile_glob(pattern))


def _resolve_pattern(pattern: str) -> list[Path]:
    if not _MAGIC.search(pattern):
        p = Path(pattern)
        return [p] if p.is_file() else []
    parent = glob_parent(pattern)
    rest = PurePosixPath(pattern).relative_to(PurePosixPath(parent.as_posix())).as_posix()
    if not parent.is_dir():
        return []
    try:
        return sorted(p for p in parent.glob(rest) if p.is_file())
    except OSError as exc:
        raise BuildIOError(f"Cannot list files: {exc.strerror or exc}", parent) from exc


def collect(patterns: Sequence[str], *, base: Path | None = None) -> list[SourceFile]:
    """
    Expand patterns and read every matching file.

    Duplicates (a file matched by two patterns) are read once; the first
    pattern that matched decides its relative path. The result is sorted by
    relative path so repeated builds see files in the same order.
    """
    seen: set[Path] = set()
    out: list[SourceFile] = []
    for pattern in patterns:
        for expanded in expand_braces(Path(pattern).as_posix()):
            root = base if base is not None else glob_parent(expanded)
            for path in _resolve_pattern(expanded):
                key = path.resolve()
                if key in seen:
                    continue
                seen.add(key)
                try:
                    contents = path.read_bytes()
                except OSError as exc:
                    raise BuildIOError(f"Cannot read file: {exc.strerror or exc}", path) from exc
                relative = PurePosixPath(path.relative_to(root).as_posix())
                out.append(SourceFile(path=path, relative=relative, contents=contents))
    out.sort(key=lambda f: f.relative.as_posix())
    logger.debug("Collected %d file(s) for %s", len(out), list(patterns))
    return out


def write_files(files: Iterable[SourceFile], output_dir: Path) -> list[Path]:
    written: list[Path] = []
    for f in files:
        dest = output_dir / Path(*f.relative.parts)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_bytes(f.contents)
        except OSError as exc:
            raise BuildIOError(f"Cannot write file: {exc.strerror or exc}", dest) from exc
        written.append(dest)
    return written
