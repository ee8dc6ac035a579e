"""Document records held by the store and mirrored into the identity provider."""

from __future__ import annotations

from .base import new_id, utcnow
from .category import CategoryEntity, EntryRecord
from .enums import Collection, Role
from .user import IdentityClaims, UserRecord

__all__ = [
    "CategoryEntity",
    "Collection",
    "EntryRecord",
    "IdentityClaims",
    "Role",
    "UserRecord",
    "new_id",
    "utcnow",
]
