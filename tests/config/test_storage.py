from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from foliosync.config import data_dir, get_database_config

if TYPE_CHECKING:
    from pathlib import Path


def test_database_uri_takes_precedence(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "postgresql+psycopg://folio@db/folio")

    assert get_database_config().uri == "postgresql+psycopg://folio@db/folio"


def test_default_database_lives_in_data_dir(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.delenv("DATABASE_URI", raising=False)
    monkeypatch.setenv("FOLIOSYNC_DATA_DIR", str(tmp_path / "store"))

    config = get_database_config()

    assert data_dir() == (tmp_path / "store").resolve()
    assert (tmp_path / "store").is_dir()
    assert config.uri == f"sqlite+pysqlite:///{(tmp_path / 'store').resolve() / 'foliosync.db'}"


@pytest.mark.skipif(os.name == "nt", reason="Windows uses LOCALAPPDATA")
def test_data_dir_uses_xdg_location(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("FOLIOSYNC_DATA_DIR", raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))

    assert data_dir() == tmp_path.resolve() / "foliosync"
