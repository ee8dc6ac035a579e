from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from foliosync.domain.category_migration import CategoryMigrationCoordinator, MigrationState
from foliosync.domain.errors import NotFoundError, ValidationError
from foliosync.domain.model import CategoryEntity, EntryRecord
from tests.helpers.records import FIXED_NOW, make_entries, seed
from tests.support.unit_of_work import GroupHooks, hooked_unit_of_work

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from foliosync.adapters.sqlalchemy import SqlAlchemyDocumentStoreUnitOfWork

    UnitOfWorkFactory = Callable[[], SqlAlchemyDocumentStoreUnitOfWork]


@pytest.fixture
def categories(sqlite_unit_of_work: UnitOfWorkFactory) -> tuple[CategoryEntity, CategoryEntity]:
    source = CategoryEntity(id="cat-teaching", name="Teaching", display_order=0)
    target = CategoryEntity(id="cat-research", name="Research", display_order=1)
    seed(sqlite_unit_of_work, categories=[source, target])
    return source, target


def _coordinator(
    factory: UnitOfWorkFactory, clock: Callable[[], datetime]
) -> CategoryMigrationCoordinator:
    return CategoryMigrationCoordinator(unit_of_work_factory=factory, clock=clock)


def _entries(factory: UnitOfWorkFactory) -> list[EntryRecord]:
    with factory() as uow:
        return list(uow.repositories.entries.list_all())


def _category_exists(factory: UnitOfWorkFactory, category_id: str) -> bool:
    with factory() as uow:
        return uow.repositories.categories.get(category_id) is not None


def test_unused_category_is_deleted_directly(
    sqlite_unit_of_work: UnitOfWorkFactory,
    categories: tuple[CategoryEntity, CategoryEntity],
    clock: Callable[[], datetime],
) -> None:
    source, _ = categories

    outcome = _coordinator(sqlite_unit_of_work, clock).delete_category(source.id)

    assert outcome.deleted
    assert outcome.history == [
        MigrationState.REQUESTED,
        MigrationState.GUARDED,
        MigrationState.DONE,
    ]
    assert not _category_exists(sqlite_unit_of_work, source.id)


def test_used_category_without_target_is_kept(
    sqlite_unit_of_work: UnitOfWorkFactory,
    categories: tuple[CategoryEntity, CategoryEntity],
    clock: Callable[[], datetime],
) -> None:
    source, _ = categories
    seed(sqlite_unit_of_work, entries=make_entries(3, category=source))

    outcome = _coordinator(sqlite_unit_of_work, clock).delete_category(source.id)

    assert outcome.state is MigrationState.AWAITING_TARGET
    assert outcome.usage_count == 3
    assert _category_exists(sqlite_unit_of_work, source.id)
    assert all(entry.category_id == source.id for entry in _entries(sqlite_unit_of_work))


def test_delete_with_target_migrates_then_deletes(
    sqlite_unit_of_work: UnitOfWorkFactory,
    categories: tuple[CategoryEntity, CategoryEntity],
    clock: Callable[[], datetime],
) -> None:
    source, target = categories
    seed(sqlite_unit_of_work, entries=make_entries(4, category=source))

    outcome = _coordinator(sqlite_unit_of_work, clock).delete_category(
        source.id, target_id=target.id, actor="root"
    )

    assert outcome.deleted
    assert outcome.migrated_count == 4
    assert MigrationState.MIGRATING in outcome.history
    assert not _category_exists(sqlite_unit_of_work, source.id)
    entry = _entries(sqlite_unit_of_work)[0]
    assert entry.category_id == target.id
    assert entry.category_name == "Research"
    assert entry.migrated_from == source.id
    assert entry.migrated_by == "root"
    assert entry.migrated_at == FIXED_NOW


@pytest.mark.parametrize(
    ("target_id", "error"),
    [("cat-teaching", ValidationError), ("cat-missing", NotFoundError)],
)
def test_invalid_target_is_rejected_before_any_write(
    sqlite_unit_of_work: UnitOfWorkFactory,
    categories: tuple[CategoryEntity, CategoryEntity],
    clock: Callable[[], datetime],
    target_id: str,
    error: type[Exception],
) -> None:
    source, _ = categories
    seed(sqlite_unit_of_work, entries=make_entries(2, category=source))

    with pytest.raises(error):
        _coordinator(sqlite_unit_of_work, clock).delete_category(source.id, target_id=target_id)

    assert all(entry.migrated_at is None for entry in _entries(sqlite_unit_of_work))
    assert _category_exists(sqlite_unit_of_work, source.id)


def test_unknown_source_is_not_found(
    sqlite_unit_of_work: UnitOfWorkFactory,
    categories: tuple[CategoryEntity, CategoryEntity],
    clock: Callable[[], datetime],
) -> None:
    with pytest.raises(NotFoundError):
        _coordinator(sqlite_unit_of_work, clock).delete_category(
            "cat-gone", target_id="cat-research"
        )


def test_failed_group_rejects_deletion_with_partial_progress(
    sqlite_unit_of_work: UnitOfWorkFactory,
    categories: tuple[CategoryEntity, CategoryEntity],
    clock: Callable[[], datetime],
) -> None:
    source, target = categories
    seed(sqlite_unit_of_work, entries=make_entries(1200, category=source))
    hooks = GroupHooks(fail_on_group=2)

    outcome = _coordinator(hooked_unit_of_work(hooks), clock).delete_category(
        source.id, target_id=target.id
    )

    assert hooks.attempts == 2
    assert outcome.state is MigrationState.REJECTED
    assert outcome.migrated_count == 500
    assert outcome.error is not None
    entries = _entries(sqlite_unit_of_work)
    assert sum(entry.category_id == target.id for entry in entries) == 500
    assert sum(entry.category_id == source.id for entry in entries) == 700
    assert _category_exists(sqlite_unit_of_work, source.id)


def test_rerun_after_failure_finishes_the_deletion(
    sqlite_unit_of_work: UnitOfWorkFactory,
    categories: tuple[CategoryEntity, CategoryEntity],
    clock: Callable[[], datetime],
) -> None:
    source, target = categories
    seed(sqlite_unit_of_work, entries=make_entries(1200, category=source))
    _coordinator(hooked_unit_of_work(GroupHooks(fail_on_group=2)), clock).delete_category(
        source.id, target_id=target.id
    )

    outcome = _coordinator(sqlite_unit_of_work, clock).delete_category(
        source.id, target_id=target.id
    )

    assert outcome.usage_count == 700
    assert outcome.deleted
    assert all(entry.category_id == target.id for entry in _entries(sqlite_unit_of_work))


def test_entries_added_during_migration_block_the_delete(
    sqlite_unit_of_work: UnitOfWorkFactory,
    categories: tuple[CategoryEntity, CategoryEntity],
    clock: Callable[[], datetime],
) -> None:
    source, target = categories
    seed(sqlite_unit_of_work, entries=make_entries(3, category=source))

    def add_late_entry(_group: int) -> None:
        seed(sqlite_unit_of_work, entries=make_entries(1, category=source, prefix="late"))

    outcome = _coordinator(
        hooked_unit_of_work(GroupHooks(after_group=add_late_entry)), clock
    ).delete_category(source.id, target_id=target.id)

    assert outcome.state is MigrationState.REJECTED
    assert outcome.history[-2:] == [MigrationState.DELETING, MigrationState.REJECTED]
    assert outcome.residual_count == 1
    assert _category_exists(sqlite_unit_of_work, source.id)


def test_migrate_entries_repairs_dangling_references(
    sqlite_unit_of_work: UnitOfWorkFactory,
    categories: tuple[CategoryEntity, CategoryEntity],
    clock: Callable[[], datetime],
) -> None:
    _, target = categories
    orphan = CategoryEntity(id="cat-deleted", name="Deleted")
    seed(sqlite_unit_of_work, entries=make_entries(5, category=orphan))
    coordinator = _coordinator(sqlite_unit_of_work, clock)

    assert coordinator.check_usage("cat-deleted") == 5
    result = coordinator.migrate_entries("cat-deleted", target.id, actor="root")

    assert result.complete
    assert result.migrated_count == 5
    assert coordinator.check_usage("cat-deleted") == 0
    assert coordinator.check_usage(target.id) == 5


def test_migrate_entries_with_nothing_to_move(
    sqlite_unit_of_work: UnitOfWorkFactory,
    categories: tuple[CategoryEntity, CategoryEntity],
    clock: Callable[[], datetime],
) -> None:
    source, target = categories

    result = _coordinator(sqlite_unit_of_work, clock).migrate_entries(source.id, target.id)

    assert result.complete
    assert result.usage_count == 0
