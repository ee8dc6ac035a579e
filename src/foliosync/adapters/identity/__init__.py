"""Identity provider adapter over JSON/HTTP."""

from __future__ import annotations

from .client import HttpIdentityProvider

__all__ = ["HttpIdentityProvider"]
