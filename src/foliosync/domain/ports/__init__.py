"""Domain port definitions for adapters."""

from __future__ import annotations

from .identity import AccountCredentials, AccountUpdate, IdentityAccount, IdentityProvider
from .persistence import CategoryRepository, EntryRepository, Repository, UserRepository
from .spreadsheet import SheetContent, SheetReader
from .unit_of_work import (
    DocumentStoreRepositories,
    DocumentStoreUnitOfWork,
    GroupWriter,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "AccountCredentials",
    "AccountUpdate",
    "CategoryRepository",
    "DocumentStoreRepositories",
    "DocumentStoreUnitOfWork",
    "EntryRepository",
    "GroupWriter",
    "IdentityAccount",
    "IdentityProvider",
    "Repository",
    "RepositoryCollection",
    "SheetContent",
    "SheetReader",
    "UnitOfWork",
    "UserRepository",
]
