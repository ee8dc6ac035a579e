from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from foliosync.adapters.sqlalchemy import start_mappers
from foliosync.adapters.sqlalchemy.migrations import upgrade_head
from foliosync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyDocumentStoreUnitOfWork,
    shutdown,
    startup,
)
from tests.helpers.records import FIXED_NOW
from tests.support.identity import FakeIdentityProvider

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from datetime import datetime


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyDocumentStoreUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyDocumentStoreUnitOfWork:
        return SqlAlchemyDocumentStoreUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW
