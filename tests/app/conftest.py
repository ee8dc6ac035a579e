from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from foliosync.app import AdminOperations
from foliosync.config import AppConfig, DatabaseConfig
from foliosync.domain.model import Role
from tests.helpers.records import make_user, provision, seed

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from foliosync.adapters.sqlalchemy import SqlAlchemyDocumentStoreUnitOfWork
    from tests.support.identity import FakeIdentityProvider


@pytest.fixture
def operations(
    sqlite_unit_of_work: Callable[[], SqlAlchemyDocumentStoreUnitOfWork],
    identity_provider: FakeIdentityProvider,
    clock: Callable[[], datetime],
) -> AdminOperations:
    seed(
        sqlite_unit_of_work,
        users=[
            provision(
                identity_provider,
                make_user("root", role=Role.SUPERADMIN),
                cached_role=Role.SUPERADMIN,
            ),
            make_user("director", role=Role.DIRECTOR),
            make_user("k01"),
        ],
    )
    return AdminOperations(
        config=AppConfig(database=DatabaseConfig(uri="sqlite+pysqlite:///:memory:")),
        unit_of_work_factory=sqlite_unit_of_work,
        identity_provider=identity_provider,
        clock=clock,
    )
