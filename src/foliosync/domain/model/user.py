"""Staff records and the claims mirrored into the identity provider."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from .enums import Role

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(eq=False, kw_only=True)
class UserRecord:
    """Authoritative staff record keyed by ``username``.

    ``role`` here is the source of truth; the identity provider only holds a
    cached copy inside :class:`IdentityClaims`.
    """

    username: str
    name: str
    position: str
    department: str
    role: Role = Role.USER
    email: str | None = None

    # Set once the identity provider account exists.
    external_id: str | None = None

    created_at: datetime | None = None
    created_by: str | None = None
    updated_at: datetime | None = None
    updated_by: str | None = None
    last_imported_at: datetime | None = None
    imported: bool = False

    @property
    def is_provisioned(self) -> bool:
        return self.external_id is not None


@dataclass(frozen=True, slots=True, kw_only=True)
class IdentityClaims:
    """Small authorization payload carried in provider-issued tokens."""

    role: Role
    username: str
    last_synced_at: datetime | None = None
    synced_by: str | None = None

    @classmethod
    def for_user(
        cls, user: UserRecord, *, synced_at: datetime, synced_by: str | None
    ) -> IdentityClaims:
        return cls(
            role=user.role,
            username=user.username,
            last_synced_at=synced_at,
            synced_by=synced_by,
        )

    def to_payload(self) -> dict[str, str]:
        payload = {"role": str(self.role), "username": self.username}
        if self.last_synced_at is not None:
            payload["lastSyncedAt"] = self.last_synced_at.isoformat()
        if self.synced_by is not None:
            payload["syncedBy"] = self.synced_by
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> IdentityClaims:
        raw_synced = payload.get("lastSyncedAt") or payload.get("syncedAt")
        synced_by = payload.get("syncedBy")
        return cls(
            role=Role(str(payload["role"])),
            username=str(payload.get("username", "")),
            last_synced_at=datetime.fromisoformat(str(raw_synced)) if raw_synced else None,
            synced_by=str(synced_by) if synced_by else None,
        )
