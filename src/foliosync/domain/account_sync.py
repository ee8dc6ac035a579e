"""Reconcile identity provider accounts with the staff records of the document store.

This is the direction opposite to :mod:`foliosync.domain.claims_sync`: an account
that signs in without a ``UserRecord`` has no role and no portfolio. Accounts are
matched to records by ``external_id``, then by email, then by the username
derived from the email's local part.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from foliosync.domain.bulk_import.rows import USERNAME_PATTERN
from foliosync.domain.claims_sync import UserFailure
from foliosync.domain.diff import USER_FIELDS, Classification, classify
from foliosync.domain.errors import (
    ConfirmationRequiredError,
    ConflictError,
    ProviderError,
    ValidationError,
)
from foliosync.domain.model import UserRecord, utcnow

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from datetime import datetime

    from foliosync.config.directory import DirectoryRules
    from foliosync.domain.ports import DocumentStoreUnitOfWork, IdentityProvider
    from foliosync.domain.ports.identity import IdentityAccount

log = getLogger(__name__)


class AccountMatch(StrEnum):
    EXTERNAL_ID = "external_id"
    EMAIL = "email"
    USERNAME = "username"


def username_for(account: IdentityAccount) -> str:
    """Lowercased local part of the account's email, or ``""`` without one."""

    if not account.email:
        return ""
    return account.email.split("@", 1)[0].strip().lower()


@dataclass(frozen=True, slots=True)
class AccountStatus:
    external_id: str
    email: str | None
    display_name: str | None
    # the matched record's username, else the one derived from the email
    username: str
    matched_by: AccountMatch | None = None

    @property
    def has_record(self) -> bool:
        return self.matched_by is not None


@dataclass(slots=True)
class AccountStatusReport:
    accounts: list[AccountStatus] = field(default_factory=list[AccountStatus])

    @property
    def total_accounts(self) -> int:
        return len(self.accounts)

    @property
    def missing(self) -> list[AccountStatus]:
        return [status for status in self.accounts if not status.has_record]

    @property
    def missing_count(self) -> int:
        return len(self.missing)


@dataclass(slots=True)
class AccountSyncReport:
    total: int = 0
    created: list[str] = field(default_factory=list[str])
    failures: list[UserFailure] = field(default_factory=list[UserFailure])

    @property
    def created_count(self) -> int:
        return len(self.created)


def match_accounts(
    accounts: Sequence[IdentityAccount], users: Sequence[UserRecord]
) -> AccountStatusReport:
    """Pair every account with the record it belongs to, if any. Pure."""

    by_external_id = {user.external_id: user for user in users if user.external_id}
    by_email = {user.email.strip().lower(): user for user in users if user.email}
    by_username = {user.username: user for user in users}

    report = AccountStatusReport()
    for account in accounts:
        username = username_for(account)
        email = account.email.strip().lower() if account.email else None
        user: UserRecord | None = None
        matched_by: AccountMatch | None = None
        if account.external_id in by_external_id:
            user, matched_by = by_external_id[account.external_id], AccountMatch.EXTERNAL_ID
        elif email is not None and email in by_email:
            user, matched_by = by_email[email], AccountMatch.EMAIL
        elif username in by_username:
            user, matched_by = by_username[username], AccountMatch.USERNAME
        report.accounts.append(
            AccountStatus(
                external_id=account.external_id,
                email=account.email,
                display_name=account.display_name,
                username=user.username if user is not None else username,
                matched_by=matched_by,
            )
        )
    return report


class IdentityAccountReconciler:
    def __init__(
        self,
        *,
        unit_of_work_factory: Callable[[], DocumentStoreUnitOfWork],
        identity_provider: IdentityProvider,
        rules: DirectoryRules,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._unit_of_work_factory = unit_of_work_factory
        self._provider = identity_provider
        self._rules = rules
        self._clock = clock

    def account_status(self) -> AccountStatusReport:
        """List every provider account and whether a staff record exists for it."""

        accounts = self._provider.list_accounts()
        with self._unit_of_work_factory() as uow:
            users = list(uow.repositories.users.list_all())
        report = match_accounts(accounts, users)
        log.info(
            "%d identity accounts, %d without a user record",
            report.total_accounts,
            report.missing_count,
        )
        return report

    def sync_missing_users(self, *, synced_by: str) -> AccountSyncReport:
        """Create a default ``UserRecord`` for every account that has none.

        New records get the default position, department and role. Their claims are
        left to the next role sync. A failure for one account never stops the others.
        """

        missing = self.account_status().missing
        report = AccountSyncReport(total=len(missing))
        for status in missing:
            try:
                self._create_record(status, synced_by=synced_by)
            except (ValidationError, ConflictError, ProviderError) as exc:
                log.warning("Could not create a user record for %s: %s", status.username, exc)
                label = status.username or status.external_id
                report.failures.append(UserFailure(label, str(exc)))
                continue
            report.created.append(status.username)

        log.info(
            "Created %d of %d missing user records (%d failures)",
            report.created_count,
            report.total,
            len(report.failures),
        )
        return report

    def delete_account(self, external_id: str, *, confirm: bool = False) -> None:
        """Remove an account that no staff record links to."""

        if not confirm:
            raise ConfirmationRequiredError(
                f"Deleting identity account {external_id} needs confirm=True"
            )
        with self._unit_of_work_factory() as uow:
            linked = [
                user.username
                for user in uow.repositories.users.list_provisioned()
                if user.external_id == external_id
            ]
        if linked:
            raise ConflictError(
                f"Identity account {external_id} belongs to user {linked[0]!r}; "
                "delete or unlink the user record first"
            )
        self._provider.delete_account(external_id)
        log.warning("Deleted identity account %s", external_id)

    def _create_record(self, status: AccountStatus, *, synced_by: str) -> None:
        username = status.username
        if not USERNAME_PATTERN.match(username):
            raise ValidationError(
                f"no usable username can be derived from {status.email or 'a missing email'}"
            )
        now = self._clock()
        record = UserRecord(
            username=username,
            name=status.display_name or username,
            position=self._rules.default_position,
            department=self._rules.default_department,
            role=self._rules.default_role,
            email=status.email or self._rules.email_for(username),
            external_id=status.external_id,
            created_at=now,
            created_by=synced_by,
            updated_at=now,
            updated_by=synced_by,
        )
        with self._unit_of_work_factory() as uow:
            diff = classify(record, uow.repositories.users.get(username), spec=USER_FIELDS)
            if diff.classification is not Classification.CREATE:
                raise ConflictError(f"user {username!r} already has a record")
            uow.repositories.users.add(record)
            uow.commit()
        log.info("Created user record %s for account %s", username, status.external_id)
