"""Work categories and the portfolio entries that reference them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .base import new_id

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(eq=False, kw_only=True)
class CategoryEntity:
    id: str = field(default_factory=new_id)
    name: str
    display_order: int = 0
    form_config: dict[str, Any] = field(default_factory=dict[str, Any])
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(eq=False, kw_only=True)
class EntryRecord:
    """A portfolio entry owned by one user.

    ``category_name`` is a display cache of the referenced category's name.
    Legacy entries carry only the name and no ``category_id``.
    """

    id: str = field(default_factory=new_id)
    user_id: str
    title: str
    category_id: str | None = None
    category_name: str | None = None
    payload: dict[str, Any] = field(default_factory=dict[str, Any])
    created_at: datetime | None = None

    migrated_from: str | None = None
    migrated_at: datetime | None = None
    migrated_by: str | None = None

    @property
    def is_legacy(self) -> bool:
        return self.category_id is None and bool(self.category_name)
