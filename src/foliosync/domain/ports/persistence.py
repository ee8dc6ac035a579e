"""Ports for the document store collections."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from foliosync.domain.model import CategoryEntity, EntryRecord, UserRecord

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence


@runtime_checkable
class Repository[TRecord, TKey](Protocol):
    """Minimal contract for one keyed collection of the document store."""

    def get(self, key: TKey) -> TRecord | None: ...

    def list_all(self) -> Sequence[TRecord]: ...

    def add(self, record: TRecord) -> None: ...

    def update_fields(self, key: TKey, fields: Mapping[str, object]) -> None: ...

    def delete(self, key: TKey) -> None: ...


@runtime_checkable
class UserRepository(Repository[UserRecord, str], Protocol):
    """Staff records keyed by username."""

    def list_provisioned(self) -> Sequence[UserRecord]: ...


@runtime_checkable
class CategoryRepository(Repository[CategoryEntity, str], Protocol):
    """Work categories; ``list_all`` returns them in display order."""

    def max_display_order(self) -> int: ...


@runtime_checkable
class EntryRepository(Repository[EntryRecord, str], Protocol):
    """Portfolio entries with equality lookups for reverse references."""

    def find_by(self, **criteria: object) -> Sequence[EntryRecord]: ...

    def count_by(self, **criteria: object) -> int: ...
