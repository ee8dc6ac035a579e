"""SQLAlchemy-backed unit of work for the document store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from foliosync.adapters.sqlalchemy.mappings import start_mappers
from foliosync.adapters.sqlalchemy.migrations import upgrade_head
from foliosync.adapters.sqlalchemy.repositories import (
    SqlAlchemyCategoryRepository,
    SqlAlchemyDocumentRepository,
    SqlAlchemyEntryRepository,
    SqlAlchemyUserRepository,
)
from foliosync.config import MAX_GROUP_OPERATIONS, get_database_config
from foliosync.domain.batch import MutationKind
from foliosync.domain.errors import AuthoritativeProviderError, NotFoundError
from foliosync.domain.model import Collection
from foliosync.domain.ports.unit_of_work import DocumentStoreRepositories, RepositoryCollection

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import TracebackType

    from sqlalchemy.engine import Engine

    from foliosync.domain.batch import Mutation

log = getLogger(__name__)


class StartupError(RuntimeError):
    """The document store adapter is not running, or a session is used out of scope."""


_NOT_RUNNING = "Document store is not running; call foliosync.adapters.sqlalchemy.startup() first"


@dataclass(slots=True)
class _StoreRuntime:
    """Process-wide engine plus the session factory bound to it."""

    engine: Engine | None = None
    sessions: sessionmaker[Session] | None = None

    def bind(self, engine: Engine) -> None:
        self.engine = engine
        self.sessions = sessionmaker(bind=engine, expire_on_commit=False)

    def reset(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
        self.engine = None
        self.sessions = None

    def open_session(self) -> Session:
        if self.sessions is None:
            raise StartupError(_NOT_RUNNING)
        return self.sessions()


_RUNTIME = _StoreRuntime()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Bind the adapter to ``engine`` (or a new one for ``database_uri``) and upgrade its schema.

    Without ``force`` a second call raises :class:`StartupError`.
    """

    if _RUNTIME.engine is not None and not force:
        raise StartupError("Document store already running; pass force=True to rebind")

    if engine is None:
        engine = create_engine(database_uri or get_database_config().uri, future=True)
    start_mappers()
    upgrade_head(engine=engine)
    _RUNTIME.bind(engine)
    log.debug("Document store bound to %s", engine.url.render_as_string(hide_password=True))


def configured_engine() -> Engine | None:
    return _RUNTIME.engine


def is_started() -> bool:
    return _RUNTIME.engine is not None


def shutdown() -> None:
    """Dispose the engine; the next unit of work needs a new :func:`startup`."""

    _RUNTIME.reset()


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """One session per ``with`` block, exposing a typed repository collection.

    Leaving the block without :meth:`commit` discards pending changes.
    """

    def __init__(self) -> None:
        if not is_started():
            raise StartupError(_NOT_RUNNING)
        self._session: Session | None = None
        self._repositories: TRepositories | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        if self._session is not None:
            raise StartupError("Unit of work is already open")
        self._session = _RUNTIME.open_session()
        self._repositories = self._build_repositories(self._session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        try:
            if exc_type is not None:
                session.rollback()
        finally:
            session.close()
            self._session = None
            self._repositories = None
        return False

    def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise AuthoritativeProviderError(f"Document store rejected the commit: {exc}") from exc

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> TRepositories:
        if self._repositories is None:
            raise StartupError("Repositories are only available inside the unit of work")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Session is only available inside the unit of work")
        return self._session


class SqlAlchemyDocumentStoreUnitOfWork(BaseSqlAlchemyUnitOfWork[DocumentStoreRepositories]):
    """Unit of work over every document store collection, with grouped writes."""

    def __init__(self, *, max_group_size: int = MAX_GROUP_OPERATIONS) -> None:
        super().__init__()
        self._max_group_size = max_group_size
        self._by_collection: dict[Collection, SqlAlchemyDocumentRepository[object]] = {}

    @property
    def max_group_size(self) -> int:
        return self._max_group_size

    def __enter__(self) -> SqlAlchemyDocumentStoreUnitOfWork:
        super().__enter__()
        return self

    def _build_repositories(self, session: Session) -> DocumentStoreRepositories:
        users = SqlAlchemyUserRepository(session)
        categories = SqlAlchemyCategoryRepository(session)
        entries = SqlAlchemyEntryRepository(session)
        self._by_collection = {
            Collection.USERS: users,
            Collection.CATEGORIES: categories,
            Collection.ENTRIES: entries,
        }
        return DocumentStoreRepositories(users=users, categories=categories, entries=entries)

    def write_group(self, mutations: Sequence[Mutation]) -> None:
        """Apply ``mutations`` in one transaction; on failure none of them persists."""

        if len(mutations) > self._max_group_size:
            raise ValueError(
                f"Group of {len(mutations)} operations exceeds the limit of "
                f"{self._max_group_size}"
            )
        try:
            for mutation in mutations:
                self._apply(mutation)
            self.session.commit()
        except (SQLAlchemyError, NotFoundError, ValueError) as exc:
            self.session.rollback()
            raise AuthoritativeProviderError(
                f"Group of {len(mutations)} operations rejected: {exc}"
            ) from exc

    def _apply(self, mutation: Mutation) -> None:
        repository = self._by_collection[mutation.collection]
        match mutation.kind:
            case MutationKind.CREATE:
                repository.create(mutation.key, mutation.fields)
            case MutationKind.UPDATE:
                repository.update_fields(mutation.key, mutation.fields)
            case MutationKind.DELETE:
                repository.delete(mutation.key)


if TYPE_CHECKING:
    from foliosync.domain.ports.unit_of_work import DocumentStoreUnitOfWork

    _uow_check: DocumentStoreUnitOfWork = SqlAlchemyDocumentStoreUnitOfWork()
