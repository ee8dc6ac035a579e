"""Unit-of-work abstractions for coordinating document store repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import TracebackType

    from foliosync.domain.batch import Mutation
    from foliosync.domain.ports.persistence import (
        CategoryRepository,
        EntryRepository,
        UserRepository,
    )


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@runtime_checkable
class GroupWriter(Protocol):
    """Grouped-atomic write primitive of the document store."""

    @property
    def max_group_size(self) -> int: ...

    def write_group(self, mutations: Sequence[Mutation]) -> None:
        """Apply all ``mutations`` atomically or none of them.

        Raises ``AuthoritativeProviderError`` when the group is rejected.
        """
        ...


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Generic unit-of-work boundary around a repository collection."""

    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@dataclass(slots=True)
class DocumentStoreRepositories(RepositoryCollection):
    """Every collection of the document store."""

    users: UserRepository
    categories: CategoryRepository
    entries: EntryRepository


@runtime_checkable
class DocumentStoreUnitOfWork(UnitOfWork[DocumentStoreRepositories], GroupWriter, Protocol):
    """Request-scoped access to the document store, including grouped writes."""

    def __enter__(self) -> DocumentStoreUnitOfWork: ...
