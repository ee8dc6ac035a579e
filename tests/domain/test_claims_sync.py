from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from foliosync.domain.claims_sync import IdentityClaimsSynchronizer
from foliosync.domain.diff import Classification
from foliosync.domain.errors import (
    ConfirmationRequiredError,
    MissingExternalIdentityError,
    NotFoundError,
    ProviderError,
    ProviderUnavailableError,
)
from foliosync.domain.model import IdentityClaims, Role
from tests.helpers.records import FIXED_NOW, make_user, provision, seed

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from foliosync.adapters.sqlalchemy import SqlAlchemyDocumentStoreUnitOfWork
    from tests.support.identity import FakeIdentityProvider

    UnitOfWorkFactory = Callable[[], SqlAlchemyDocumentStoreUnitOfWork]


@pytest.fixture
def synchronizer(
    sqlite_unit_of_work: UnitOfWorkFactory,
    identity_provider: FakeIdentityProvider,
    clock: Callable[[], datetime],
) -> IdentityClaimsSynchronizer:
    return IdentityClaimsSynchronizer(
        unit_of_work_factory=sqlite_unit_of_work,
        identity_provider=identity_provider,
        clock=clock,
    )


@pytest.fixture
def staff(
    sqlite_unit_of_work: UnitOfWorkFactory, identity_provider: FakeIdentityProvider
) -> dict[str, str]:
    """Five users: in sync, drifted, claims missing, renamed claims and unprovisioned."""

    users = [
        provision(identity_provider, make_user("a01", role=Role.DEPUTY), cached_role=Role.DEPUTY),
        provision(identity_provider, make_user("b02", role=Role.DIRECTOR), cached_role=Role.USER),
        provision(identity_provider, make_user("c03", role=Role.USER)),
        provision(
            identity_provider,
            make_user("d04", role=Role.USER),
            cached_role=Role.USER,
            cached_username="someone",
        ),
        make_user("e05"),
    ]
    seed(sqlite_unit_of_work, users=users)
    return {user.username: user.external_id or "" for user in users}


def test_verify_all_reports_every_kind_of_drift(
    synchronizer: IdentityClaimsSynchronizer,
    identity_provider: FakeIdentityProvider,
    staff: dict[str, str],
) -> None:
    report = synchronizer.verify_all()

    assert report.total_users == 5
    assert report.checked == 4
    assert report.unprovisioned == ["e05"]
    by_user = {mismatch.username: mismatch for mismatch in report.mismatches}
    assert set(by_user) == {"b02", "c03"}
    assert by_user["b02"].classification is Classification.UPDATE
    assert by_user["b02"].cached_role is Role.USER
    assert by_user["c03"].claims_missing
    assert report.stale_usernames == ["d04"]
    assert not report.in_sync
    assert identity_provider.write_calls == []


def test_verify_all_isolates_per_user_failures(
    synchronizer: IdentityClaimsSynchronizer,
    identity_provider: FakeIdentityProvider,
    staff: dict[str, str],
) -> None:
    identity_provider.fail("get_claims", ProviderError("boom"), target=staff["a01"])

    report = synchronizer.verify_all()

    assert [failure.username for failure in report.failures] == ["a01"]
    assert report.checked == 3


def test_verify_all_aborts_when_provider_unreachable(
    synchronizer: IdentityClaimsSynchronizer,
    identity_provider: FakeIdentityProvider,
    staff: dict[str, str],
) -> None:
    identity_provider.fail("get_claims", ProviderUnavailableError("down"))

    with pytest.raises(ProviderUnavailableError):
        synchronizer.verify_all()


def test_sync_one_always_writes(
    synchronizer: IdentityClaimsSynchronizer,
    identity_provider: FakeIdentityProvider,
    staff: dict[str, str],
) -> None:
    claims = synchronizer.sync_one("a01", synced_by="root")

    assert identity_provider.write_calls == [("set_claims", staff["a01"])]
    assert claims == IdentityClaims(
        role=Role.DEPUTY, username="a01", last_synced_at=FIXED_NOW, synced_by="root"
    )
    assert identity_provider.claims[staff["a01"]] == claims


def test_sync_one_requires_provisioned_user(
    synchronizer: IdentityClaimsSynchronizer, staff: dict[str, str]
) -> None:
    with pytest.raises(MissingExternalIdentityError):
        synchronizer.sync_one("e05")
    with pytest.raises(NotFoundError):
        synchronizer.sync_one("nobody")


def test_sync_all_repairs_every_mismatch(
    synchronizer: IdentityClaimsSynchronizer,
    identity_provider: FakeIdentityProvider,
    staff: dict[str, str],
) -> None:
    report = synchronizer.sync_all(synced_by="root")

    assert sorted(report.synced) == ["b02", "c03"]
    assert report.attempted == 2
    assert report.unprovisioned == ["e05"]
    assert identity_provider.claims[staff["b02"]].role is Role.DIRECTOR
    assert identity_provider.claims[staff["c03"]].username == "c03"
    assert synchronizer.verify_all().mismatch_count == 0


def test_role_only_payload_is_repaired(
    synchronizer: IdentityClaimsSynchronizer,
    identity_provider: FakeIdentityProvider,
    sqlite_unit_of_work: UnitOfWorkFactory,
) -> None:
    user = provision(identity_provider, make_user("t01", role=Role.DIRECTOR))
    seed(sqlite_unit_of_work, users=[user])
    external_id = user.external_id or ""
    identity_provider.claims[external_id] = IdentityClaims.from_payload({"role": "user"})

    (mismatch,) = synchronizer.verify_all().mismatches
    report = synchronizer.sync_all(synced_by="root")

    assert mismatch.classification is Classification.UPDATE
    assert mismatch.cached_role is Role.USER
    assert report.synced == ["t01"]
    assert identity_provider.claims[external_id].role is Role.DIRECTOR
    assert identity_provider.claims[external_id].username == "t01"


def test_renamed_claims_with_matching_role_are_in_sync(
    synchronizer: IdentityClaimsSynchronizer,
    identity_provider: FakeIdentityProvider,
    sqlite_unit_of_work: UnitOfWorkFactory,
) -> None:
    user = provision(
        identity_provider, make_user("t02"), cached_role=Role.USER, cached_username="T02"
    )
    seed(sqlite_unit_of_work, users=[user])

    report = synchronizer.verify_all()

    assert report.mismatch_count == 0
    assert report.in_sync
    assert report.stale_usernames == ["t02"]
    assert synchronizer.sync_all().attempted == 0


def test_sync_all_continues_after_failure(
    synchronizer: IdentityClaimsSynchronizer,
    identity_provider: FakeIdentityProvider,
    staff: dict[str, str],
) -> None:
    identity_provider.fail("set_claims", ProviderError("rejected"), target=staff["b02"])

    report = synchronizer.sync_all()

    assert report.synced == ["c03"]
    assert [failure.username for failure in report.failures] == ["b02"]


def test_inspect_returns_both_sides(
    synchronizer: IdentityClaimsSynchronizer, staff: dict[str, str]
) -> None:
    snapshot = synchronizer.inspect("b02")

    assert snapshot.authoritative_role is Role.DIRECTOR
    assert snapshot.claims is not None
    assert snapshot.claims.role is Role.USER
    assert not snapshot.in_sync


def test_destructive_operations_need_confirmation(
    synchronizer: IdentityClaimsSynchronizer,
    identity_provider: FakeIdentityProvider,
    staff: dict[str, str],
) -> None:
    with pytest.raises(ConfirmationRequiredError):
        synchronizer.clear("a01")
    with pytest.raises(ConfirmationRequiredError):
        synchronizer.force_invalidate("a01")
    assert identity_provider.write_calls == []

    synchronizer.clear("a01", confirm=True)
    synchronizer.force_invalidate("a01", confirm=True)

    assert staff["a01"] not in identity_provider.claims
    assert identity_provider.accounts[staff["a01"]].sessions_revoked == 1
