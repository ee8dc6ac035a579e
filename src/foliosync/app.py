"""Application entry points: the administrative operations and their wiring."""

from __future__ import annotations

from collections.abc import Callable
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy.engine import make_url

from foliosync.adapters.identity import HttpIdentityProvider
from foliosync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyDocumentStoreUnitOfWork,
    is_started,
    startup,
)
from foliosync.adapters.xlsx import read_first_sheet
from foliosync.config import AppConfig, MissingConfigurationError, get_app_config
from foliosync.domain.account_sync import IdentityAccountReconciler
from foliosync.domain.authorization import DEFAULT_POLICY, Action, Actor, authorize
from foliosync.domain.bulk_import import BulkImportPipeline
from foliosync.domain.category_migration import CategoryMigrationCoordinator
from foliosync.domain.categories import CategoryCatalog
from foliosync.domain.claims_sync import IdentityClaimsSynchronizer
from foliosync.domain.errors import NotFoundError
from foliosync.domain.model import Role, utcnow
from foliosync.domain.ports.unit_of_work import DocumentStoreUnitOfWork

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from foliosync.domain.authorization import PolicyTable
    from foliosync.domain.account_sync import AccountStatusReport, AccountSyncReport
    from foliosync.domain.batch import BatchCommitResult
    from foliosync.domain.bulk_import import ImportPreview, ReconciliationResult
    from foliosync.domain.categories import BackfillReport, BackfillStatus, CategoryDraft
    from foliosync.domain.category_migration import CategoryDeletion, MigrationResult
    from foliosync.domain.claims_sync import (
        ClaimsSnapshot,
        RoleSyncReport,
        RoleVerificationReport,
    )
    from foliosync.domain.model import CategoryEntity, IdentityClaims
    from foliosync.domain.ports import IdentityProvider, SheetReader

UnitOfWorkFactory = Callable[[], DocumentStoreUnitOfWork]

log = getLogger(__name__)


class AdminOperations:
    """Every administrative operation, each authorized before any side effect."""

    def __init__(
        self,
        *,
        config: AppConfig,
        unit_of_work_factory: UnitOfWorkFactory,
        identity_provider: IdentityProvider | None = None,
        sheet_reader: SheetReader = read_first_sheet,
        clock: Callable[[], datetime] = utcnow,
        policy: PolicyTable = DEFAULT_POLICY,
    ) -> None:
        self.config = config
        self._policy = policy
        self._identity_provider = identity_provider
        self._unit_of_work_factory = unit_of_work_factory
        self._sheet_reader = sheet_reader
        self._clock = clock
        group_size = config.batch.group_size

        self.categories = CategoryCatalog(
            unit_of_work_factory=unit_of_work_factory, group_size=group_size, clock=clock
        )
        self.migrations = CategoryMigrationCoordinator(
            unit_of_work_factory=unit_of_work_factory, group_size=group_size, clock=clock
        )

    def actor(self, username: str, *, role: str | None = None) -> Actor:
        return resolve_actor(
            username, role=role, unit_of_work_factory=self._unit_of_work_factory
        )

    # Categories ---------------------------------------------------------------

    def get_all_categories(self, actor: Actor) -> list[CategoryEntity]:
        self._authorize(actor, Action.VIEW_CATEGORIES)
        return self.categories.list_categories()

    def save_category(self, actor: Actor, draft: CategoryDraft) -> CategoryEntity:
        self._authorize(actor, Action.SAVE_CATEGORY)
        return self.categories.save_category(draft)

    def delete_category(
        self, actor: Actor, category_id: str, *, target_id: str | None = None
    ) -> CategoryDeletion:
        self._authorize(actor, Action.DELETE_CATEGORY)
        return self.migrations.delete_category(
            category_id, target_id=target_id, actor=actor.username
        )

    def check_usage(self, actor: Actor, category_id: str) -> int:
        self._authorize(actor, Action.CHECK_USAGE)
        return self.migrations.check_usage(category_id)

    def migrate_entries(self, actor: Actor, source_id: str, target_id: str) -> MigrationResult:
        self._authorize(actor, Action.MIGRATE_ENTRIES)
        return self.migrations.migrate_entries(source_id, target_id, actor=actor.username)

    def reorder_categories(self, actor: Actor, category_ids: Sequence[str]) -> BatchCommitResult:
        self._authorize(actor, Action.REORDER_CATEGORIES)
        return self.categories.reorder_categories(category_ids)

    def backfill_category_ids(self, actor: Actor) -> BackfillReport:
        self._authorize(actor, Action.BACKFILL_CATEGORY_IDS)
        return self.categories.backfill_category_ids()

    def backfill_status(self, actor: Actor) -> BackfillStatus:
        self._authorize(actor, Action.BACKFILL_STATUS)
        return self.categories.backfill_status()

    # Identity claims ----------------------------------------------------------

    def verify_roles(self, actor: Actor) -> RoleVerificationReport:
        self._authorize(actor, Action.VERIFY_ROLES)
        return self._synchronizer().verify_all()

    def sync_one_role(self, actor: Actor, username: str) -> IdentityClaims:
        self._authorize(actor, Action.SYNC_ROLE)
        return self._synchronizer().sync_one(username, synced_by=actor.username)

    def sync_all_roles(self, actor: Actor) -> RoleSyncReport:
        self._authorize(actor, Action.SYNC_ALL_ROLES)
        return self._synchronizer().sync_all(synced_by=actor.username)

    def inspect_claims(self, actor: Actor, username: str) -> ClaimsSnapshot:
        self._authorize(actor, Action.INSPECT_CLAIMS)
        return self._synchronizer().inspect(username)

    def clear_claims(self, actor: Actor, username: str, *, confirm: bool = False) -> None:
        self._authorize(actor, Action.CLEAR_CLAIMS)
        self._synchronizer().clear(username, confirm=confirm)

    def force_invalidate(self, actor: Actor, username: str, *, confirm: bool = False) -> None:
        self._authorize(actor, Action.FORCE_INVALIDATE)
        self._synchronizer().force_invalidate(username, confirm=confirm)

    # Identity accounts --------------------------------------------------------

    def account_status(self, actor: Actor) -> AccountStatusReport:
        self._authorize(actor, Action.ACCOUNT_STATUS)
        return self._account_reconciler().account_status()

    def sync_missing_users(self, actor: Actor) -> AccountSyncReport:
        self._authorize(actor, Action.SYNC_MISSING_USERS)
        return self._account_reconciler().sync_missing_users(synced_by=actor.username)

    def delete_identity_account(
        self, actor: Actor, external_id: str, *, confirm: bool = False
    ) -> None:
        self._authorize(actor, Action.DELETE_ACCOUNT)
        self._account_reconciler().delete_account(external_id, confirm=confirm)

    # Bulk import --------------------------------------------------------------

    def preview_import(self, actor: Actor, data: bytes) -> ImportPreview:
        self._authorize(actor, Action.PREVIEW_IMPORT)
        return self._import_pipeline().preview(data)

    def apply_import(self, actor: Actor, data: bytes) -> ReconciliationResult:
        self._authorize(actor, Action.APPLY_IMPORT)
        return self._import_pipeline().apply(data, actor=actor.username)

    def _authorize(self, actor: Actor, action: Action) -> None:
        authorize(actor, action, policy=self._policy)
        log.debug("%s (%s) authorized for %s", actor.username, actor.role, action)

    def _provider(self) -> IdentityProvider:
        if self._identity_provider is None:
            raise MissingConfigurationError(("IDENTITY_API_URL", "IDENTITY_API_KEY"))
        return self._identity_provider

    def _synchronizer(self) -> IdentityClaimsSynchronizer:
        return IdentityClaimsSynchronizer(
            unit_of_work_factory=self._unit_of_work_factory,
            identity_provider=self._provider(),
            clock=self._clock,
        )

    def _account_reconciler(self) -> IdentityAccountReconciler:
        return IdentityAccountReconciler(
            unit_of_work_factory=self._unit_of_work_factory,
            identity_provider=self._provider(),
            rules=self.config.directory,
            clock=self._clock,
        )

    def _import_pipeline(self) -> BulkImportPipeline:
        return BulkImportPipeline(
            unit_of_work_factory=self._unit_of_work_factory,
            identity_provider=self._provider(),
            sheet_reader=self._sheet_reader,
            rules=self.config.directory,
            clock=self._clock,
        )


def build_admin_operations(
    *,
    config: AppConfig | None = None,
    identity_provider: IdentityProvider | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    require_identity: bool = True,
) -> AdminOperations:
    """Wire the operations to the SQLAlchemy store and the HTTP identity provider."""

    effective_config = config or get_app_config(require_identity=require_identity)
    if unit_of_work_factory is None:
        if not is_started():
            startup(database_uri=effective_config.database.uri)
        unit_of_work_factory = partial(
            SqlAlchemyDocumentStoreUnitOfWork, max_group_size=effective_config.batch.hard_cap
        )
    if identity_provider is None and effective_config.identity is not None:
        identity_provider = HttpIdentityProvider(effective_config.identity)

    log.info(
        "Admin operations ready: database=%s, identity=%s, group_size=%d",
        make_url(effective_config.database.uri).render_as_string(hide_password=True),
        "configured" if identity_provider is not None else "not configured",
        effective_config.batch.group_size,
    )
    return AdminOperations(
        config=effective_config,
        unit_of_work_factory=unit_of_work_factory,
        identity_provider=identity_provider,
    )


def resolve_actor(
    username: str,
    *,
    role: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory,
) -> Actor:
    """Build the acting user, taking the role from the store unless one is given."""

    if role is not None:
        return Actor(username=username, role=Role(role))
    with unit_of_work_factory() as uow:
        user = uow.repositories.users.get(username)
    if user is None:
        raise NotFoundError(f"Acting user {username!r} does not exist")
    return Actor(username=user.username, role=user.role)
