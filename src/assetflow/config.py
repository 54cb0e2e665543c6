# src/assetflow/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole tool.
- Every value has a working default: `assetflow build` runs in a fresh
  checkout with no configuration at all.
- CLI flags override by deriving a new Settings with dataclasses.replace.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "ASSETFLOW"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    # app_name is also the log file stem: <log_dir>/<app_name>.log
    app_name: str
    log_level: str
    log_dir: Path

    # ---- Source / output trees ----
    source_dir: Path
    build_dir: Path

    # ---- Dev server ----
    dev_host: str
    dev_port: int

    # ---- Transform tuning ----
    sourcemaps: bool
    webp_quality: int
    jpeg_quality: int

    # ---- Watch ----
    watch_debounce_ms: int

    @staticmethod
    def from_env() -> "Settings":
        return Settings(
            app_name=_env(_k("APP_NAME"), "assetflow"),
            log_level=_env(_k("LOG_LEVEL"), "INFO"),
            log_dir=_env_path(_k("LOG_DIR"), Path(".local/assetflow")),
            source_dir=_env_path(_k("SOURCE_DIR"), Path("source")),
            build_dir=_env_path(_k("BUILD_DIR"), Path("build")),
            dev_host=_env(_k("DEV_HOST"), "localhost"),
            dev_port=_env_int(_k("DEV_PORT"), 3000),
            sourcemaps=_env_bool(_k("SOURCEMAPS"), True),
            webp_quality=max(1, min(100, _env_int(_k("WEBP_QUALITY"), 90))),
            jpeg_quality=max(1, min(100, _env_int(_k("JPEG_QUALITY"), 85))),
            watch_debounce_ms=max(0, _env_int(_k("WATCH_DEBOUNCE_MS"), 50)),
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
