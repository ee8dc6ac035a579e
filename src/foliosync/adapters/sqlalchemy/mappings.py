"""SQLAlchemy mapping metadata for the document store collections."""

from __future__ import annotations

from datetime import UTC, datetime
from functools import cache
from typing import Final

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    Integer,
    String,
    Table,
    TypeDecorator,
    orm,
)
from sqlalchemy.orm import configure_mappers

from foliosync.domain.model import CategoryEntity, Collection, EntryRecord, Role, UserRecord

ID_LENGTH: Final[int] = 64


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "pk": "pk_%(table_name)s",
}

user_record_table = Table(
    "user_record",
    mapper_registry.metadata,
    Column("username", String(ID_LENGTH), primary_key=True),
    Column("name", String, nullable=False),
    Column("position", String, nullable=False),
    Column("department", String, nullable=False),
    Column("role", Enum(Role, native_enum=False), nullable=False, default=Role.USER),
    Column("email", String, nullable=True),
    Column("external_id", String(128), nullable=True, unique=True),
    Column("created_at", UTCDateTime(), nullable=True),
    Column("created_by", String(ID_LENGTH), nullable=True),
    Column("updated_at", UTCDateTime(), nullable=True),
    Column("updated_by", String(ID_LENGTH), nullable=True),
    Column("last_imported_at", UTCDateTime(), nullable=True),
    Column("imported", Boolean, nullable=False, default=False),
)

category_table = Table(
    "category",
    mapper_registry.metadata,
    Column("id", String(ID_LENGTH), primary_key=True),
    Column("name", String, nullable=False),
    Column("display_order", Integer, nullable=False, default=0),
    Column("form_config", JSON, nullable=False, default=dict),
    Column("created_at", UTCDateTime(), nullable=True),
    Column("updated_at", UTCDateTime(), nullable=True),
)

# category_id has no foreign key: entries may point at a deleted category until migrated.
entry_table = Table(
    "entry",
    mapper_registry.metadata,
    Column("id", String(ID_LENGTH), primary_key=True),
    Column("user_id", String(ID_LENGTH), nullable=False, index=True),
    Column("title", String, nullable=False),
    Column("category_id", String(ID_LENGTH), nullable=True, index=True),
    Column("category_name", String, nullable=True),
    Column("payload", JSON, nullable=False, default=dict),
    Column("created_at", UTCDateTime(), nullable=True),
    Column("migrated_from", String(ID_LENGTH), nullable=True),
    Column("migrated_at", UTCDateTime(), nullable=True),
    Column("migrated_by", String(ID_LENGTH), nullable=True),
)

TABLE_BY_COLLECTION: Final[dict[Collection, Table]] = {
    Collection.USERS: user_record_table,
    Collection.CATEGORIES: category_table,
    Collection.ENTRIES: entry_table,
}

CLASS_BY_COLLECTION: Final[dict[Collection, type[object]]] = {
    Collection.USERS: UserRecord,
    Collection.CATEGORIES: CategoryEntity,
    Collection.ENTRIES: EntryRecord,
}


@cache
def start_mappers() -> orm.registry:
    """Map the domain dataclasses onto their tables (idempotent)."""

    mapper_registry.map_imperatively(UserRecord, user_record_table)
    mapper_registry.map_imperatively(CategoryEntity, category_table)
    mapper_registry.map_imperatively(EntryRecord, entry_table)

    configure_mappers()
    return mapper_registry
