"""Reconcile the authoritative role of each user with the cached identity claims.

``UserRecord.role`` is the source of truth. The identity provider keeps a copy
inside the claims payload of every account so that tokens can be authorized
without a store lookup; that copy may drift and is repaired here.

Claims are compared on the role alone. A cached ``username`` that drifted is
reported next to the mismatches but never blocks a repair.

Three failure modes are reported apart from each other:
- users never provisioned in the identity provider (no ``external_id``)
- accounts whose claims are missing (``Classification.CREATE``)
- provider calls that failed for one user

An unreachable provider aborts :meth:`IdentityClaimsSynchronizer.verify_all`
since no user could be checked.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from foliosync.domain.diff import CLAIMS_FIELDS, Classification, classify
from foliosync.domain.errors import (
    ConfirmationRequiredError,
    MissingExternalIdentityError,
    NotFoundError,
    ProviderError,
    ProviderUnavailableError,
)
from foliosync.domain.model import IdentityClaims, Role, UserRecord, utcnow

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from foliosync.domain.ports import DocumentStoreUnitOfWork, IdentityProvider

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RoleMismatch:
    username: str
    external_id: str
    authoritative_role: Role
    cached_role: Role | None
    classification: Classification
    cached_username: str | None = None

    @property
    def claims_missing(self) -> bool:
        return self.classification is Classification.CREATE


@dataclass(frozen=True, slots=True)
class UserFailure:
    username: str
    message: str


@dataclass(slots=True)
class RoleVerificationReport:
    """Read-only comparison of every user's role with their cached claims."""

    total_users: int = 0
    checked: int = 0
    mismatches: list[RoleMismatch] = field(default_factory=list[RoleMismatch])
    unprovisioned: list[str] = field(default_factory=list[str])
    failures: list[UserFailure] = field(default_factory=list[UserFailure])
    stale_usernames: list[str] = field(default_factory=list[str])

    @property
    def mismatch_count(self) -> int:
        return len(self.mismatches)

    @property
    def in_sync(self) -> bool:
        return not self.mismatches and not self.failures


@dataclass(slots=True)
class RoleSyncReport:
    attempted: int = 0
    synced: list[str] = field(default_factory=list[str])
    failures: list[UserFailure] = field(default_factory=list[UserFailure])
    unprovisioned: list[str] = field(default_factory=list[str])

    @property
    def synced_count(self) -> int:
        return len(self.synced)


@dataclass(frozen=True, slots=True)
class ClaimsSnapshot:
    """Authoritative role next to whatever the provider currently caches."""

    username: str
    external_id: str
    authoritative_role: Role
    claims: IdentityClaims | None

    @property
    def in_sync(self) -> bool:
        return self.claims is not None and self.claims.role == self.authoritative_role


class IdentityClaimsSynchronizer:
    def __init__(
        self,
        *,
        unit_of_work_factory: Callable[[], DocumentStoreUnitOfWork],
        identity_provider: IdentityProvider,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._unit_of_work_factory = unit_of_work_factory
        self._provider = identity_provider
        self._clock = clock

    def verify_all(self) -> RoleVerificationReport:
        """Compare every provisioned user's role with their cached claims. No writes."""

        with self._unit_of_work_factory() as uow:
            users = list(uow.repositories.users.list_all())

        report = RoleVerificationReport(total_users=len(users))
        for user in users:
            if user.external_id is None:
                report.unprovisioned.append(user.username)
                continue
            try:
                claims = self._provider.get_claims(user.external_id)
            except ProviderUnavailableError:
                raise
            except (ProviderError, NotFoundError) as exc:
                log.warning("Could not read claims of %s: %s", user.username, exc)
                report.failures.append(UserFailure(user.username, str(exc)))
                continue
            report.checked += 1

            if claims is not None and claims.username != user.username:
                report.stale_usernames.append(user.username)
            diff = classify(user, claims, spec=CLAIMS_FIELDS)
            if diff.classification is Classification.SKIP:
                continue
            report.mismatches.append(
                RoleMismatch(
                    username=user.username,
                    external_id=user.external_id,
                    authoritative_role=user.role,
                    cached_role=claims.role if claims is not None else None,
                    classification=diff.classification,
                    cached_username=claims.username if claims is not None else None,
                )
            )

        log.info(
            "Verified %d of %d users: %d mismatches, %d unprovisioned, %d failures",
            report.checked,
            report.total_users,
            report.mismatch_count,
            len(report.unprovisioned),
            len(report.failures),
        )
        return report

    def sync_one(self, username: str, *, synced_by: str | None = None) -> IdentityClaims:
        """Write claims matching the current authoritative role, even if already in sync."""

        user, external_id = self._provisioned_user(username)
        claims = IdentityClaims.for_user(user, synced_at=self._clock(), synced_by=synced_by)
        self._provider.set_claims(external_id, claims)
        log.info("Synced claims of %s to role %s", username, user.role)
        return claims

    def sync_all(self, *, synced_by: str | None = None) -> RoleSyncReport:
        """Repair every mismatch found by :meth:`verify_all`, one user at a time.

        Each repair re-issues the whole payload, so a drifted cached username is
        rewritten along with the role. A failure for one user never stops the others.
        """

        verification = self.verify_all()
        report = RoleSyncReport(unprovisioned=list(verification.unprovisioned))
        report.failures.extend(verification.failures)

        for mismatch in verification.mismatches:
            report.attempted += 1
            try:
                self.sync_one(mismatch.username, synced_by=synced_by)
            except (ProviderError, NotFoundError) as exc:
                log.warning("Failed to sync claims of %s: %s", mismatch.username, exc)
                report.failures.append(UserFailure(mismatch.username, str(exc)))
                continue
            report.synced.append(mismatch.username)

        log.info(
            "Synced %d of %d mismatched users (%d failures)",
            report.synced_count,
            report.attempted,
            len(report.failures),
        )
        return report

    def inspect(self, username: str) -> ClaimsSnapshot:
        user, external_id = self._provisioned_user(username)
        return ClaimsSnapshot(
            username=user.username,
            external_id=external_id,
            authoritative_role=user.role,
            claims=self._provider.get_claims(external_id),
        )

    def clear(self, username: str, *, confirm: bool = False) -> None:
        """Remove the claims payload; the user loses cached authorization until resynced."""

        if not confirm:
            raise ConfirmationRequiredError(f"Clearing the claims of {username} needs confirm=True")
        _, external_id = self._provisioned_user(username)
        self._provider.clear_claims(external_id)
        log.warning("Cleared claims of %s", username)

    def force_invalidate(self, username: str, *, confirm: bool = False) -> None:
        """Revoke every session of ``username`` so stale claims are dropped on next sign-in."""

        if not confirm:
            raise ConfirmationRequiredError(
                f"Revoking all sessions of {username} needs confirm=True"
            )
        _, external_id = self._provisioned_user(username)
        self._provider.revoke_sessions(external_id)
        log.warning("Revoked all sessions of %s", username)

    def _provisioned_user(self, username: str) -> tuple[UserRecord, str]:
        with self._unit_of_work_factory() as uow:
            user = uow.repositories.users.get(username)
        if user is None:
            raise NotFoundError(f"User {username!r} does not exist")
        if user.external_id is None:
            raise MissingExternalIdentityError(
                f"User {username!r} has no account in the identity provider"
            )
        return user, user.external_id
