"""Category maintenance: listing, saving, ordering and the legacy id backfill."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any

from foliosync.domain.batch import BatchCommitExecutor, Mutation, MutationKind
from foliosync.domain.errors import NotFoundError, ValidationError
from foliosync.domain.model import CategoryEntity, Collection, utcnow

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from datetime import datetime

    from foliosync.domain.batch import BatchCommitResult
    from foliosync.domain.ports import DocumentStoreUnitOfWork

log = getLogger(__name__)


@dataclass(frozen=True, slots=True, kw_only=True)
class CategoryDraft:
    """Requested state of a category; ``id=None`` creates a new one.

    ``display_order`` and ``form_config`` keep their stored values when omitted.
    """

    id: str | None = None
    name: str
    display_order: int | None = None
    form_config: dict[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class BackfillIssue:
    entry_id: str
    category_name: str | None
    reason: str


@dataclass(slots=True)
class BackfillReport:
    legacy_entries: int = 0
    already_linked: int = 0
    updated: int = 0
    issues: list[BackfillIssue] = field(default_factory=list[BackfillIssue])
    error: str | None = None


@dataclass(frozen=True, slots=True)
class BackfillStatus:
    total: int
    with_category_id: int
    without_category_id: int

    @property
    def needs_backfill(self) -> bool:
        return self.without_category_id > 0


class CategoryCatalog:
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

    def list_categories(self) -> list[CategoryEntity]:
        with self._unit_of_work_factory() as uow:
            return list(uow.repositories.categories.list_all())

    def save_category(self, draft: CategoryDraft) -> CategoryEntity:
        """Update the category ``draft.id`` or create a new one at the end of the list."""

        name = draft.name.strip()
        if not name:
            raise ValidationError("Category name is required")
        now = self._clock()

        with self._unit_of_work_factory() as uow:
            categories = uow.repositories.categories
            if draft.id is not None:
                existing = categories.get(draft.id)
                if existing is None:
                    raise NotFoundError(f"Category {draft.id!r} does not exist")
                changes: dict[str, Any] = {"name": name, "updated_at": now}
                if draft.display_order is not None:
                    changes["display_order"] = draft.display_order
                if draft.form_config is not None:
                    changes["form_config"] = dict(draft.form_config)
                categories.update_fields(draft.id, changes)
                uow.commit()
                saved = categories.get(draft.id) or existing
                log.info("Updated category %s (%s)", draft.id, name)
            else:
                saved = CategoryEntity(
                    name=name,
                    display_order=(
                        draft.display_order
                        if draft.display_order is not None
                        else categories.max_display_order() + 1
                    ),
                    form_config=dict(draft.form_config or {}),
                    created_at=now,
                    updated_at=now,
                )
                categories.add(saved)
                uow.commit()
                log.info("Created category %s (%s)", saved.id, name)
        return saved

    def reorder_categories(self, category_ids: Sequence[str]) -> BatchCommitResult:
        """Set ``display_order`` of each category to its index in ``category_ids``."""

        if len(set(category_ids)) != len(category_ids):
            raise ValidationError("Category order lists the same category twice")
        with self._unit_of_work_factory() as uow:
            known = {category.id for category in uow.repositories.categories.list_all()}
            missing = [category_id for category_id in category_ids if category_id not in known]
            if missing:
                raise NotFoundError(f"Unknown categories: {', '.join(missing)}")
            mutations = [
                Mutation(
                    Collection.CATEGORIES,
                    category_id,
                    MutationKind.UPDATE,
                    {"display_order": index},
                )
                for index, category_id in enumerate(category_ids)
            ]
            result = BatchCommitExecutor(uow, cap=self._group_size).commit(mutations)
        log.info("Reordered %d of %d categories", result.committed, result.total)
        return result

    def backfill_category_ids(self) -> BackfillReport:
        """Link legacy entries, which only carry a category name, to the category id."""

        report = BackfillReport()
        migrated_at = self._clock()
        with self._unit_of_work_factory() as uow:
            categories = uow.repositories.categories.list_all()
            if not categories:
                raise ValidationError("No categories exist; create categories before backfilling")
            ids_by_name: dict[str, str] = {}
            for category in categories:
                ids_by_name.setdefault(category.name, category.id)

            mutations: list[Mutation] = []
            for entry in uow.repositories.entries.list_all():
                if entry.category_id:
                    report.already_linked += 1
                    continue
                report.legacy_entries += 1
                if not entry.category_name:
                    report.issues.append(
                        BackfillIssue(entry.id, None, "entry has no category name")
                    )
                    continue
                category_id = ids_by_name.get(entry.category_name)
                if category_id is None:
                    report.issues.append(
                        BackfillIssue(entry.id, entry.category_name, "no category with this name")
                    )
                    continue
                mutations.append(
                    Mutation(
                        Collection.ENTRIES,
                        entry.id,
                        MutationKind.UPDATE,
                        {"category_id": category_id, "migrated_at": migrated_at},
                    )
                )

            result = BatchCommitExecutor(uow, cap=self._group_size).commit(mutations)

        report.updated = result.committed
        if result.error is not None:
            report.error = str(result.error)
        log.info(
            "Backfilled %d of %d legacy entries (%d unresolved)",
            report.updated,
            report.legacy_entries,
            len(report.issues),
        )
        return report

    def backfill_status(self) -> BackfillStatus:
        with self._unit_of_work_factory() as uow:
            entries = uow.repositories.entries
            total = entries.count_by()
            unlinked = entries.count_by(category_id=None)
        return BackfillStatus(
            total=total, with_category_id=total - unlinked, without_category_id=unlinked
        )
