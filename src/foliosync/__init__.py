"""Reconciliation and migration engine for the staff portfolio tool."""

from __future__ import annotations

from importlib import metadata

try:
    __version__ = metadata.version("foliosync")
except metadata.PackageNotFoundError:
    __version__ = "0.0.0+dev"
