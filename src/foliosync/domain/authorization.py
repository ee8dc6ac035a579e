"""Declarative access policy for administrative operations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from foliosync.domain.errors import PermissionDeniedError
from foliosync.domain.model import Role

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


class Action(StrEnum):
    VIEW_CATEGORIES = "view_categories"
    SAVE_CATEGORY = "save_category"
    DELETE_CATEGORY = "delete_category"
    CHECK_USAGE = "check_usage"
    MIGRATE_ENTRIES = "migrate_entries"
    REORDER_CATEGORIES = "reorder_categories"
    BACKFILL_CATEGORY_IDS = "backfill_category_ids"
    BACKFILL_STATUS = "backfill_status"
    VERIFY_ROLES = "verify_roles"
    SYNC_ROLE = "sync_role"
    SYNC_ALL_ROLES = "sync_all_roles"
    INSPECT_CLAIMS = "inspect_claims"
    CLEAR_CLAIMS = "clear_claims"
    FORCE_INVALIDATE = "force_invalidate"
    ACCOUNT_STATUS = "account_status"
    SYNC_MISSING_USERS = "sync_missing_users"
    DELETE_ACCOUNT = "delete_account"
    PREVIEW_IMPORT = "preview_import"
    APPLY_IMPORT = "apply_import"


@dataclass(frozen=True, slots=True)
class Actor:
    """The authenticated caller of an operation."""

    username: str
    role: Role


type PolicyTable = Mapping[tuple[Role, Action], bool]

_MANAGERS = (Role.SUPERADMIN, Role.DIRECTOR, Role.DEPUTY)

_GRANTS: dict[Action, tuple[Role, ...]] = {
    Action.VIEW_CATEGORIES: tuple(Role),
    Action.CHECK_USAGE: _MANAGERS,
    Action.BACKFILL_STATUS: _MANAGERS,
    Action.SAVE_CATEGORY: (Role.SUPERADMIN, Role.DIRECTOR),
    Action.REORDER_CATEGORIES: (Role.SUPERADMIN, Role.DIRECTOR),
    Action.DELETE_CATEGORY: (Role.SUPERADMIN,),
    Action.MIGRATE_ENTRIES: (Role.SUPERADMIN,),
    Action.BACKFILL_CATEGORY_IDS: (Role.SUPERADMIN,),
    Action.VERIFY_ROLES: (Role.SUPERADMIN,),
    Action.SYNC_ROLE: (Role.SUPERADMIN,),
    Action.SYNC_ALL_ROLES: (Role.SUPERADMIN,),
    Action.INSPECT_CLAIMS: (Role.SUPERADMIN,),
    Action.CLEAR_CLAIMS: (Role.SUPERADMIN,),
    Action.FORCE_INVALIDATE: (Role.SUPERADMIN,),
    Action.ACCOUNT_STATUS: (Role.SUPERADMIN,),
    Action.SYNC_MISSING_USERS: (Role.SUPERADMIN,),
    Action.DELETE_ACCOUNT: (Role.SUPERADMIN,),
    Action.PREVIEW_IMPORT: (Role.SUPERADMIN,),
    Action.APPLY_IMPORT: (Role.SUPERADMIN,),
}


def build_policy(grants: Mapping[Action, Iterable[Role]]) -> dict[tuple[Role, Action], bool]:
    """Expand per-action grants into a complete ``(role, action) -> allowed`` table."""

    table = {(role, action): False for role in Role for action in Action}
    for action, roles in grants.items():
        for role in roles:
            table[(role, action)] = True
    return table


DEFAULT_POLICY: PolicyTable = build_policy(_GRANTS)


def is_allowed(actor: Actor, action: Action, *, policy: PolicyTable = DEFAULT_POLICY) -> bool:
    return policy.get((actor.role, action), False)


def authorize(actor: Actor, action: Action, *, policy: PolicyTable = DEFAULT_POLICY) -> None:
    """Raise :class:`PermissionDeniedError` unless ``actor`` may perform ``action``."""

    if not is_allowed(actor, action, policy=policy):
        raise PermissionDeniedError(
            f"{actor.username} ({actor.role}) is not allowed to {action.replace('_', ' ')}"
        )
