"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select

from foliosync.adapters.sqlalchemy.mappings import (
    category_table,
    entry_table,
    user_record_table,
)
from foliosync.domain.errors import NotFoundError
from foliosync.domain.model import CategoryEntity, EntryRecord, UserRecord

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from sqlalchemy import ColumnElement, Table
    from sqlalchemy.orm import Session


class SqlAlchemyDocumentRepository[TRecord]:
    """Keyed access to one mapped collection."""

    def __init__(self, session: Session, record_cls: type[TRecord], table: Table) -> None:
        self.session = session
        self._record_cls = record_cls
        self._table = table
        (key_column,) = table.primary_key.columns
        self._key_name = key_column.name

    def get(self, key: str) -> TRecord | None:
        return self.session.get(self._record_cls, key)

    def list_all(self) -> Sequence[TRecord]:
        stmt = select(self._record_cls).order_by(self._table.c[self._key_name])
        return self.session.execute(stmt).scalars().all()

    def add(self, record: TRecord) -> None:
        self.session.add(record)

    def create(self, key: str, fields: Mapping[str, Any]) -> TRecord:
        self._check_fields(fields)
        record = self._record_cls(**{**fields, self._key_name: key})
        self.session.add(record)
        return record

    def update_fields(self, key: str, fields: Mapping[str, Any]) -> None:
        self._check_fields(fields)
        record = self._require(key)
        for name, value in fields.items():
            setattr(record, name, value)

    def delete(self, key: str) -> None:
        self.session.delete(self._require(key))

    def find_by(self, **criteria: object) -> Sequence[TRecord]:
        stmt = (
            select(self._record_cls)
            .where(*self._conditions(criteria))
            .order_by(self._table.c[self._key_name])
        )
        return self.session.execute(stmt).scalars().all()

    def count_by(self, **criteria: object) -> int:
        stmt = (
            select(func.count())
            .select_from(self._record_cls)
            .where(*self._conditions(criteria))
        )
        return self.session.execute(stmt).scalar_one()

    def _require(self, key: str) -> TRecord:
        record = self.get(key)
        if record is None:
            raise NotFoundError(f"{self._table.name} {key!r} does not exist")
        return record

    def _check_fields(self, fields: Mapping[str, Any]) -> None:
        unknown = sorted(set(fields) - set(self._table.c.keys()))
        if unknown:
            raise ValueError(f"Unknown {self._table.name} fields: {', '.join(unknown)}")

    def _conditions(self, criteria: Mapping[str, object]) -> list[ColumnElement[bool]]:
        self._check_fields(criteria)
        conditions: list[ColumnElement[bool]] = []
        for name, value in criteria.items():
            column = self._table.c[name]
            conditions.append(column.is_(None) if value is None else column == value)
        return conditions


class SqlAlchemyUserRepository(SqlAlchemyDocumentRepository[UserRecord]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, UserRecord, user_record_table)

    def list_provisioned(self) -> Sequence[UserRecord]:
        stmt = (
            select(UserRecord)
            .where(user_record_table.c.external_id.is_not(None))
            .order_by(user_record_table.c.username)
        )
        return self.session.execute(stmt).scalars().all()


class SqlAlchemyCategoryRepository(SqlAlchemyDocumentRepository[CategoryEntity]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, CategoryEntity, category_table)

    def list_all(self) -> Sequence[CategoryEntity]:
        stmt = select(CategoryEntity).order_by(
            category_table.c.display_order, category_table.c.name
        )
        return self.session.execute(stmt).scalars().all()

    def max_display_order(self) -> int:
        """Highest ``display_order`` in use, or -1 without categories."""

        stmt = select(func.max(category_table.c.display_order)).select_from(CategoryEntity)
        highest = self.session.execute(stmt).scalar_one_or_none()
        return -1 if highest is None else int(highest)


class SqlAlchemyEntryRepository(SqlAlchemyDocumentRepository[EntryRecord]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, EntryRecord, entry_table)
