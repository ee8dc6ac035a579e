"""Reusable fakes and helpers for grouped-write tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from foliosync.adapters.sqlalchemy.unit_of_work import SqlAlchemyDocumentStoreUnitOfWork
from foliosync.config import MAX_GROUP_OPERATIONS
from foliosync.domain.errors import AuthoritativeProviderError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from foliosync.domain.batch import Mutation


@dataclass(slots=True)
class RecordingGroupWriter:
    """``GroupWriter`` that keeps every accepted group in memory."""

    max_group_size: int = MAX_GROUP_OPERATIONS
    fail_on_group: int | None = None
    groups: list[list[Mutation]] = field(default_factory=list[list["Mutation"]])
    attempts: int = 0

    def write_group(self, mutations: Sequence[Mutation]) -> None:
        self.attempts += 1
        if len(mutations) > self.max_group_size:
            raise AssertionError(f"group of {len(mutations)} exceeds {self.max_group_size}")
        if self.attempts == self.fail_on_group:
            raise AuthoritativeProviderError(f"group {self.attempts} rejected")
        self.groups.append(list(mutations))

    @property
    def written(self) -> list[Mutation]:
        return [mutation for group in self.groups for mutation in group]


@dataclass(slots=True)
class GroupHooks:
    """Shared state for :func:`hooked_unit_of_work` across unit-of-work instances."""

    fail_on_group: int | None = None
    after_group: Callable[[int], None] | None = None
    attempts: int = 0


def hooked_unit_of_work(
    hooks: GroupHooks, *, max_group_size: int = MAX_GROUP_OPERATIONS
) -> Callable[[], SqlAlchemyDocumentStoreUnitOfWork]:
    """Factory of real SQLAlchemy units of work whose grouped writes can fail on demand."""

    class HookedUnitOfWork(SqlAlchemyDocumentStoreUnitOfWork):
        def write_group(self, mutations: Sequence[Mutation]) -> None:
            hooks.attempts += 1
            if hooks.attempts == hooks.fail_on_group:
                self.session.rollback()
                raise AuthoritativeProviderError(f"group {hooks.attempts} rejected")
            super().write_group(mutations)
            if hooks.after_group is not None:
                hooks.after_group(hooks.attempts)

    def factory() -> SqlAlchemyDocumentStoreUnitOfWork:
        return HookedUnitOfWork(max_group_size=max_group_size)

    return factory
