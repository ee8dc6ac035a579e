"""SQLAlchemy adapter package for the document store."""

from __future__ import annotations

from .mappings import (
    CLASS_BY_COLLECTION,
    TABLE_BY_COLLECTION,
    mapper_registry,
    start_mappers,
)
from .repositories import (
    SqlAlchemyCategoryRepository,
    SqlAlchemyDocumentRepository,
    SqlAlchemyEntryRepository,
    SqlAlchemyUserRepository,
)
from .unit_of_work import (
    SqlAlchemyDocumentStoreUnitOfWork,
    StartupError,
    shutdown,
    startup,
)

__all__ = [
    "CLASS_BY_COLLECTION",
    "TABLE_BY_COLLECTION",
    "SqlAlchemyCategoryRepository",
    "SqlAlchemyDocumentRepository",
    "SqlAlchemyDocumentStoreUnitOfWork",
    "SqlAlchemyEntryRepository",
    "SqlAlchemyUserRepository",
    "StartupError",
    "mapper_registry",
    "start_mappers",
    "shutdown",
    "startup",
]
