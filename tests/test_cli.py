# tests/test_cli.py

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest

import assetflow.cli.main as cli_main
from assetflow import pipeline
from assetflow.cli.main import main
from assetflow.config import get_settings


def _args(source_tree: Path, tmp_path: Path, *extra: str) -> list[str]:
    return [
        *extra,
        "--source", str(source_tree),
        "--build-dir", str(tmp_path / "build"),
        "--log-dir", str(tmp_path / "logs"),
    ]


def test_build_exits_zero(source_tree: Path, tmp_path: Path) -> None:
    assert main(_args(source_tree, tmp_path, "build")) == 0
    assert (tmp_path / "build" / "css" / "style.min.css").exists()
    assert (tmp_path / "logs" / "assetflow.log").exists()


def test_build_exits_nonzero_on_sass_error(source_tree: Path, tmp_path: Path) -> None:
    (source_tree / "sass" / "style.scss").write_text(".card { color: red;\n")

    assert main(_args(source_tree, tmp_path, "build")) == 1
    assert not (tmp_path / "build" / "css" / "style.min.css").exists()


@pytest.mark.parametrize(("command", "last"), [("build", "webp"), ("dev", "watch")])
def test_tasks_listing(source_tree: Path, tmp_path: Path, capsys, command: str, last: str) -> None:
    assert main(_args(source_tree, tmp_path, command, "--tasks")) == 0
    out = capsys.readouterr().out.strip().splitlines()
    assert out[0] == "series"
    assert out[-1].strip().startswith(last)
    # listing never touches the output tree
    assert not (tmp_path / "build").exists()


def test_log_file_is_named_after_the_app(source_tree: Path, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(cli_main, "get_settings", lambda: replace(get_settings(), app_name="mysite"))

    assert main(_args(source_tree, tmp_path, "build")) == 0
    assert (tmp_path / "logs" / "mysite.log").exists()
    assert not (tmp_path / "logs" / "assetflow.log").exists()


def test_dev_ctrl_c_exits_zero(source_tree: Path, tmp_path: Path, monkeypatch) -> None:
    async def _interrupted(rules, **kwargs) -> None:
        raise KeyboardInterrupt

    # Ctrl+C lands while the watch loop is waiting for changes.
    monkeypatch.setattr(pipeline, "watch", _interrupted)

    argv = _args(source_tree, tmp_path, "dev", "--host", "127.0.0.1", "--port", "0")
    assert main(argv) == 0
    assert (tmp_path / "build" / "index.html").exists()


def test_dev_exits_nonzero_when_port_is_taken(source_tree: Path, tmp_path: Path, busy_port: int) -> None:
    argv = _args(source_tree, tmp_path, "dev", "--host", "127.0.0.1", "--port", str(busy_port))

    assert main(argv) == 1
    log = (tmp_path / "logs" / "assetflow.log").read_text("utf-8")
    assert "Build failed" in log
    assert "serve" in log
