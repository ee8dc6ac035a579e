"""Location of the document store database."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

APP_DIR_NAME: Final[str] = "foliosync"
DATABASE_FILENAME: Final[str] = "foliosync.db"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def data_dir() -> Path:
    """``FOLIOSYNC_DATA_DIR``, else the platform's per-user data directory."""

    override = os.getenv("FOLIOSYNC_DATA_DIR", "").strip()
    if override:
        return Path(override).expanduser().resolve()
    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA") or str(Path.home() / "AppData" / "Local")
    else:
        base = os.getenv("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    return Path(base).expanduser().resolve() / APP_DIR_NAME


def get_database_config() -> DatabaseConfig:
    """``DATABASE_URI`` when set, otherwise a SQLite file inside :func:`data_dir`."""

    uri = os.getenv("DATABASE_URI", "").strip()
    if uri:
        return DatabaseConfig(uri=uri)
    directory = data_dir()
    directory.mkdir(parents=True, exist_ok=True)
    return DatabaseConfig(uri=f"sqlite+pysqlite:///{directory / DATABASE_FILENAME}")
