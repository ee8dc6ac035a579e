"""Guarded deletion of work categories that portfolio entries still reference.

A deletion walks through one of these paths::

    REQUESTED -> GUARDED -> DONE
    REQUESTED -> GUARDED -> AWAITING_TARGET
    REQUESTED -> GUARDED -> AWAITING_TARGET -> MIGRATING -> DELETING -> DONE
    REQUESTED -> GUARDED -> AWAITING_TARGET -> MIGRATING -> REJECTED
    REQUESTED -> GUARDED -> AWAITING_TARGET -> MIGRATING -> DELETING -> REJECTED

Counting the reverse references and rewriting them are separate store calls.
An entry created in between is caught by the recount before deleting, in which
case the deletion is rejected and the category kept.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from foliosync.domain.batch import BatchCommitExecutor, Mutation, MutationKind
from foliosync.domain.errors import NotFoundError, ValidationError
from foliosync.domain.model import Collection, utcnow

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from foliosync.domain.batch import BatchCommitResult
    from foliosync.domain.model import CategoryEntity, EntryRecord
    from foliosync.domain.ports import DocumentStoreUnitOfWork

log = getLogger(__name__)


class MigrationState(StrEnum):
    REQUESTED = "requested"
    GUARDED = "guarded"
    AWAITING_TARGET = "awaiting_target"
    MIGRATING = "migrating"
    DELETING = "deleting"
    DONE = "done"
    REJECTED = "rejected"


@dataclass(slots=True)
class CategoryDeletion:
    """Outcome of one deletion request, including every state it passed through."""

    source_id: str
    target_id: str | None = None
    state: MigrationState = MigrationState.REQUESTED
    usage_count: int = 0
    migrated_count: int = 0
    residual_count: int = 0
    error: str | None = None
    history: list[MigrationState] = field(
        default_factory=lambda: [MigrationState.REQUESTED]
    )

    def advance(self, state: MigrationState) -> None:
        self.state = state
        self.history.append(state)

    @property
    def deleted(self) -> bool:
        return self.state is MigrationState.DONE


@dataclass(slots=True)
class MigrationResult:
    source_id: str
    target_id: str
    usage_count: int
    migrated_count: int
    error: str | None = None

    @property
    def complete(self) -> bool:
        return self.error is None and self.migrated_count == self.usage_count


def reassignment(
    entry: EntryRecord,
    target: CategoryEntity,
    *,
    source_id: str,
    migrated_at: datetime,
    migrated_by: str | None,
) -> Mutation:
    return Mutation(
        Collection.ENTRIES,
        entry.id,
        MutationKind.UPDATE,
        {
            "category_id": target.id,
            "category_name": target.name,
            "migrated_from": source_id,
            "migrated_at": migrated_at,
            "migrated_by": migrated_by,
        },
    )


class CategoryMigrationCoordinator:
    def __init__(
        self,
        *,
        unit_of_work_factory: Callable[[], DocumentStoreUnitOfWork],
        group_size: int | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._unit_of_work_factory = unit_of_work_factory
        self._group_size = group_size
        self._clock = clock

    def check_usage(self, category_id: str) -> int:
        """Number of entries whose ``category_id`` equals ``category_id``."""

        with self._unit_of_work_factory() as uow:
            return uow.repositories.entries.count_by(category_id=category_id)

    def delete_category(
        self,
        source_id: str,
        *,
        target_id: str | None = None,
        actor: str | None = None,
    ) -> CategoryDeletion:
        """Delete ``source_id``, first moving its entries to ``target_id`` if any exist.

        Raises ``NotFoundError`` for an unknown source or target and
        ``ValidationError`` when both are the same, always before any write.
        """

        outcome = CategoryDeletion(source_id=source_id, target_id=target_id)
        with self._unit_of_work_factory() as uow:
            if uow.repositories.categories.get(source_id) is None:
                raise NotFoundError(f"Category {source_id!r} does not exist")
            outcome.usage_count = uow.repositories.entries.count_by(category_id=source_id)
        outcome.advance(MigrationState.GUARDED)

        if outcome.usage_count == 0:
            self._delete(outcome)
            return outcome

        if target_id is None:
            outcome.advance(MigrationState.AWAITING_TARGET)
            log.warning(
                "Category %s is used by %d entries; choose a target category first",
                source_id,
                outcome.usage_count,
            )
            return outcome

        target = self._require_target(source_id, target_id)
        outcome.advance(MigrationState.AWAITING_TARGET)
        outcome.advance(MigrationState.MIGRATING)

        migration = self._migrate(source_id, target, actor=actor)
        outcome.migrated_count = migration.committed
        if not migration.complete:
            outcome.error = str(migration.error) if migration.error else None
            outcome.advance(MigrationState.REJECTED)
            log.warning(
                "Migration of category %s stopped after %d of %d entries; category kept",
                source_id,
                outcome.migrated_count,
                migration.total,
            )
            return outcome

        outcome.advance(MigrationState.DELETING)
        self._delete(outcome)
        return outcome

    def migrate_entries(
        self, source_id: str, target_id: str, *, actor: str | None = None
    ) -> MigrationResult:
        """Move every entry of ``source_id`` to ``target_id`` without deleting anything.

        The source category does not have to exist, which makes this the repair
        path for entries left pointing at a deleted category.
        """

        target = self._require_target(source_id, target_id)
        migration = self._migrate(source_id, target, actor=actor)
        return MigrationResult(
            source_id=source_id,
            target_id=target_id,
            usage_count=migration.total,
            migrated_count=migration.committed,
            error=str(migration.error) if migration.error else None,
        )

    def _require_target(self, source_id: str, target_id: str) -> CategoryEntity:
        if target_id == source_id:
            raise ValidationError("Target category must differ from the source category")
        with self._unit_of_work_factory() as uow:
            target = uow.repositories.categories.get(target_id)
        if target is None:
            raise NotFoundError(f"Target category {target_id!r} does not exist")
        return target

    def _migrate(
        self, source_id: str, target: CategoryEntity, *, actor: str | None
    ) -> BatchCommitResult:
        migrated_at = self._clock()
        with self._unit_of_work_factory() as uow:
            entries = uow.repositories.entries.find_by(category_id=source_id)
            mutations = [
                reassignment(
                    entry,
                    target,
                    source_id=source_id,
                    migrated_at=migrated_at,
                    migrated_by=actor,
                )
                for entry in entries
            ]
            result = BatchCommitExecutor(uow, cap=self._group_size).commit(mutations)
        log.info(
            "Migrated %d of %d entries from category %s to %s",
            result.committed,
            result.total,
            source_id,
            target.id,
        )
        return result

    def _delete(self, outcome: CategoryDeletion) -> None:
        with self._unit_of_work_factory() as uow:
            residual = uow.repositories.entries.count_by(category_id=outcome.source_id)
            if residual:
                outcome.residual_count = residual
                outcome.error = f"{residual} entries started referencing the category"
                outcome.advance(MigrationState.REJECTED)
                log.warning(
                    "Category %s gained %d entries during migration; category kept",
                    outcome.source_id,
                    residual,
                )
                return
            uow.repositories.categories.delete(outcome.source_id)
            uow.commit()
        outcome.advance(MigrationState.DONE)
        log.info("Deleted category %s", outcome.source_id)
