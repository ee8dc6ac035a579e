"""Reusable builders for document store records in tests."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from foliosync.domain.model import CategoryEntity, EntryRecord, IdentityClaims, Role, UserRecord

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from foliosync.domain.ports import DocumentStoreUnitOfWork
    from tests.support.identity import FakeIdentityProvider

FIXED_NOW = datetime(2025, 3, 1, 9, 30, tzinfo=UTC)


def make_user(
    username: str,
    *,
    role: Role = Role.USER,
    name: str | None = None,
    position: str = "Teacher",
    department: str = "Mathematics",
    external_id: str | None = None,
) -> UserRecord:
    return UserRecord(
        username=username,
        name=name or username.title(),
        position=position,
        department=department,
        role=role,
        email=f"{username}@hongson.ac.th",
        external_id=external_id,
    )


def make_entries(
    count: int,
    *,
    category: CategoryEntity | None = None,
    category_name: str | None = None,
    user_id: str = "teacher01",
    prefix: str = "entry",
) -> list[EntryRecord]:
    return [
        EntryRecord(
            id=f"{prefix}-{index:05d}",
            user_id=user_id,
            title=f"Portfolio item {index}",
            category_id=category.id if category is not None else None,
            category_name=category.name if category is not None else category_name,
        )
        for index in range(count)
    ]


def seed(
    unit_of_work: Callable[[], DocumentStoreUnitOfWork],
    *,
    users: Iterable[UserRecord] = (),
    categories: Iterable[CategoryEntity] = (),
    entries: Iterable[EntryRecord] = (),
) -> None:
    with unit_of_work() as uow:
        for user in users:
            uow.repositories.users.add(user)
        for category in categories:
            uow.repositories.categories.add(category)
        for entry in entries:
            uow.repositories.entries.add(entry)
        uow.commit()


def provision(
    provider: FakeIdentityProvider,
    user: UserRecord,
    *,
    cached_role: Role | None = None,
    cached_username: str | None = None,
) -> UserRecord:
    """Give ``user`` an identity account, optionally with claims already cached."""

    user.external_id = provider.add_account(user.email or user.username, user.name)
    if cached_role is not None:
        provider.claims[user.external_id] = IdentityClaims(
            role=cached_role, username=cached_username or user.username
        )
    return user
