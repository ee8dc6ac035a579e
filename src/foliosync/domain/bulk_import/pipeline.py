"""Bulk import of staff users from a spreadsheet into both stores.

Stages run strictly in order: parse, validate, classify, apply, report.
Validation is all-or-nothing; apply is row by row and never rolls back. A
re-run of the same file is the recovery path, since rows that already match
are classified as skips.

Write order per row:
- create: identity account, then claims (best effort), then the user record
- update: user record, then the account and claims mirror (best effort)
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from foliosync.domain.diff import USER_FIELDS, Classification, Diff, classify, read_field
from foliosync.domain.errors import (
    AuthoritativeProviderError,
    BestEffortProviderError,
    ConflictError,
    NotFoundError,
    ProviderError,
)
from foliosync.domain.model import IdentityClaims, UserRecord, utcnow
from foliosync.domain.ports.identity import AccountCredentials, AccountUpdate

from .parse import parse_sheet
from .report import ImportPreview, PreviewRow, ReconciliationResult, RowOutcome
from .rows import ImportRow, validate_rows

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from foliosync.config.directory import DirectoryRules
    from foliosync.domain.ports import DocumentStoreUnitOfWork, IdentityProvider, SheetReader

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PlannedRow:
    row: ImportRow
    existing: UserRecord | None
    diff: Diff


def _profile(record: object) -> dict[str, str]:
    return {name: str(read_field(record, name)) for name in USER_FIELDS.mutable}


class BulkImportPipeline:
    def __init__(
        self,
        *,
        unit_of_work_factory: Callable[[], DocumentStoreUnitOfWork],
        identity_provider: IdentityProvider,
        sheet_reader: SheetReader,
        rules: DirectoryRules,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._unit_of_work_factory = unit_of_work_factory
        self._provider = identity_provider
        self._read_sheet = sheet_reader
        self._rules = rules
        self._clock = clock

    def load(self, data: bytes) -> list[ImportRow]:
        """Parse and validate ``data``; raises ``ValidationError`` before any write."""

        return validate_rows(parse_sheet(self._read_sheet(data)), rules=self._rules)

    def plan(self, rows: list[ImportRow]) -> list[PlannedRow]:
        with self._unit_of_work_factory() as uow:
            users = uow.repositories.users
            planned: list[PlannedRow] = []
            for row in rows:
                existing = users.get(row.username)
                planned.append(PlannedRow(row, existing, classify(row, existing, spec=USER_FIELDS)))
        return planned

    def preview(self, data: bytes) -> ImportPreview:
        return ImportPreview(
            rows=tuple(
                PreviewRow(
                    row=item.row.row,
                    username=item.row.username,
                    classification=item.diff.classification,
                    changed_fields=item.diff.changed_fields,
                    conflicting_fields=item.diff.conflicting_fields,
                    desired=_profile(item.row),
                    existing=_profile(item.existing) if item.existing is not None else None,
                )
                for item in self.plan(self.load(data))
            )
        )

    def apply(self, data: bytes, *, actor: str) -> ReconciliationResult:
        planned = self.plan(self.load(data))
        log.info("Applying import of %d rows on behalf of %s", len(planned), actor)

        result = ReconciliationResult()
        for item in planned:
            outcome = self._apply_row(item, actor=actor)
            if not outcome.succeeded:
                log.warning(
                    "Row %d (%s) failed: %s", outcome.row, outcome.username, outcome.message
                )
            result.record(outcome)

        log.info(
            "Import finished: %d created, %d updated, %d skipped, %d errors, %d warnings",
            result.created_count,
            result.updated_count,
            result.skipped_count,
            len(result.errors),
            len(result.warnings),
        )
        return result

    def _apply_row(self, item: PlannedRow, *, actor: str) -> RowOutcome:
        row, diff = item.row, item.diff
        if item.existing is None:
            return self._create(row, actor=actor)
        if diff.classification is Classification.UPDATE:
            return self._update(row, item.existing, diff, actor=actor)
        if diff.classification is Classification.CONFLICT:
            fields = ", ".join(diff.conflicting_fields)
            return self._failed(
                row, diff.classification, f"stored record differs in immutable fields: {fields}"
            )
        return RowOutcome(row.row, row.username, Classification.SKIP, True, "unchanged")

    def _create(self, row: ImportRow, *, actor: str) -> RowOutcome:
        now = self._clock()
        email = self._rules.email_for(row.username)

        try:
            external_id = self._provider.create_account(
                AccountCredentials(email=email, password=row.password, display_name=row.name)
            )
        except ConflictError as exc:
            return self._failed(
                row, Classification.CREATE, f"account {email} already exists: {exc}"
            )
        except ProviderError as exc:
            return self._failed(row, Classification.CREATE, f"could not create account: {exc}")

        warnings: list[str] = []
        claims = IdentityClaims(
            role=row.role, username=row.username, last_synced_at=now, synced_by=actor
        )
        self._best_effort(
            warnings,
            f"setting claims of {row.username}",
            lambda: self._provider.set_claims(external_id, claims),
        )

        user = UserRecord(
            username=row.username,
            name=row.name,
            position=row.position,
            department=row.department,
            role=row.role,
            email=email,
            external_id=external_id,
            created_at=now,
            created_by=actor,
            updated_at=now,
            updated_by=actor,
            last_imported_at=now,
            imported=True,
        )
        try:
            with self._unit_of_work_factory() as uow:
                uow.repositories.users.add(user)
                uow.commit()
        except AuthoritativeProviderError as exc:
            return self._failed(
                row,
                Classification.CREATE,
                f"account {external_id} was created but the user record was not saved "
                f"({exc}); the account is orphaned",
                warnings=warnings,
            )
        return RowOutcome(
            row.row, row.username, Classification.CREATE, True, "created", tuple(warnings)
        )

    def _update(
        self, row: ImportRow, existing: UserRecord, diff: Diff, *, actor: str
    ) -> RowOutcome:
        now = self._clock()
        changes: dict[str, object] = {name: getattr(row, name) for name in diff.changed_fields}
        changes.update(updated_at=now, updated_by=actor, last_imported_at=now, imported=True)

        try:
            with self._unit_of_work_factory() as uow:
                uow.repositories.users.update_fields(row.username, changes)
                uow.commit()
        except (AuthoritativeProviderError, NotFoundError) as exc:
            return self._failed(row, Classification.UPDATE, f"could not update user record: {exc}")

        warnings: list[str] = []
        external_id = existing.external_id
        if external_id is None:
            warnings.append("no identity account; profile and credential not mirrored")
        else:
            self._best_effort(
                warnings,
                f"updating account of {row.username}",
                lambda: self._provider.update_account(
                    external_id, AccountUpdate(display_name=row.name, password=row.password)
                ),
            )
            if "role" in diff.changed_fields:
                claims = IdentityClaims(
                    role=row.role, username=row.username, last_synced_at=now, synced_by=actor
                )
                self._best_effort(
                    warnings,
                    f"setting claims of {row.username}",
                    lambda: self._provider.set_claims(external_id, claims),
                )

        message = "updated " + ", ".join(diff.changed_fields)
        return RowOutcome(
            row.row, row.username, Classification.UPDATE, True, message, tuple(warnings)
        )

    @staticmethod
    def _failed(
        row: ImportRow,
        classification: Classification,
        message: str,
        *,
        warnings: list[str] | None = None,
    ) -> RowOutcome:
        return RowOutcome(
            row.row, row.username, classification, False, message, tuple(warnings or ())
        )

    @staticmethod
    def _best_effort(warnings: list[str], description: str, call: Callable[[], None]) -> None:
        try:
            call()
        except (ProviderError, NotFoundError) as exc:
            error = BestEffortProviderError(f"{description} failed: {exc}")
            log.warning("%s", error)
            warnings.append(str(error))
