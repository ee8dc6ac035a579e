from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from foliosync.app import AdminOperations, build_admin_operations
from foliosync.config import configure_logging
from foliosync.domain.categories import CategoryDraft
from foliosync.domain.errors import (
    ConfirmationRequiredError,
    PermissionDeniedError,
    ValidationError,
)
from foliosync.domain.model import Role

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from foliosync.domain.authorization import Actor

log = logging.getLogger(__name__)

IDENTITY_COMMANDS = frozenset({"roles", "accounts", "import"})


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Administer staff portfolio records")
    parser.add_argument(
        "--actor",
        type=str,
        required=True,
        help="Username of the person running the command",
    )
    parser.add_argument(
        "--role",
        type=str,
        choices=[str(role) for role in Role],
        help="Role of the actor (defaults to the role stored for --actor)",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    categories = subparsers.add_parser("categories", help="Work category maintenance")
    category_sub = categories.add_subparsers(dest="category_command", required=True)
    category_sub.add_parser("list", help="List categories in display order")
    save = category_sub.add_parser("save", help="Create or update a category")
    save.add_argument("--id", type=str, help="Existing category id to update")
    save.add_argument("--name", type=str, required=True, help="Category name")
    save.add_argument("--order", type=int, help="Display order (defaults to the end)")
    usage = category_sub.add_parser("usage", help="Count entries referencing a category")
    usage.add_argument("category_id")
    delete = category_sub.add_parser("delete", help="Delete a category")
    delete.add_argument("category_id")
    delete.add_argument(
        "--target",
        type=str,
        help="Category receiving the entries of the deleted category",
    )
    migrate = category_sub.add_parser("migrate", help="Move entries between categories")
    migrate.add_argument("source_id")
    migrate.add_argument("target_id")
    reorder = category_sub.add_parser("reorder", help="Set the display order of categories")
    reorder.add_argument("category_ids", nargs="+")
    category_sub.add_parser("backfill", help="Link legacy entries to categories by name")
    category_sub.add_parser("backfill-status", help="Count entries without a category id")

    roles = subparsers.add_parser("roles", help="Identity claims reconciliation")
    roles_sub = roles.add_subparsers(dest="roles_command", required=True)
    roles_sub.add_parser("verify", help="Compare stored roles with cached claims")
    sync = roles_sub.add_parser("sync", help="Rewrite the claims of one user")
    sync.add_argument("username")
    roles_sub.add_parser("sync-all", help="Rewrite the claims of every mismatched user")
    inspect = roles_sub.add_parser("inspect", help="Show the cached claims of one user")
    inspect.add_argument("username")
    for name, help_text in (
        ("clear", "Remove the cached claims of one user"),
        ("invalidate", "Revoke every session of one user"),
    ):
        destructive = roles_sub.add_parser(name, help=help_text)
        destructive.add_argument("username")
        destructive.add_argument(
            "--yes",
            action="store_true",
            help="Confirm the destructive operation",
        )

    accounts = subparsers.add_parser("accounts", help="Identity accounts without user records")
    accounts_sub = accounts.add_subparsers(dest="accounts_command", required=True)
    accounts_sub.add_parser("status", help="List accounts and whether a user record exists")
    accounts_sub.add_parser("sync-missing", help="Create default records for unmatched accounts")
    remove = accounts_sub.add_parser("delete", help="Delete an account no user record links to")
    remove.add_argument("external_id")
    remove.add_argument("--yes", action="store_true", help="Confirm the deletion")

    imports = subparsers.add_parser("import", help="Bulk user import from a spreadsheet")
    import_sub = imports.add_subparsers(dest="import_command", required=True)
    for name, help_text in (
        ("preview", "Classify the rows of a file without writing"),
        ("apply", "Create and update users from a file"),
    ):
        command = import_sub.add_parser(name, help=help_text)
        command.add_argument("path", type=Path, help="Path to the .xlsx file")

    return parser.parse_args(list(argv))


def _run_categories(operations: AdminOperations, actor: Actor, args: argparse.Namespace) -> None:
    match args.category_command:
        case "list":
            for category in operations.get_all_categories(actor):
                log.info("%3d  %s  %s", category.display_order, category.id, category.name)
        case "save":
            draft = CategoryDraft(id=args.id, name=args.name, display_order=args.order)
            category = operations.save_category(actor, draft)
            log.info("Saved category %s (%s)", category.id, category.name)
        case "usage":
            count = operations.check_usage(actor, args.category_id)
            log.info("Category %s is used by %d entries", args.category_id, count)
        case "delete":
            outcome = operations.delete_category(actor, args.category_id, target_id=args.target)
            log.info(
                "Deletion of %s ended %s (usage=%d, migrated=%d, residual=%d) via %s",
                outcome.source_id,
                outcome.state,
                outcome.usage_count,
                outcome.migrated_count,
                outcome.residual_count,
                " -> ".join(outcome.history),
            )
        case "migrate":
            result = operations.migrate_entries(actor, args.source_id, args.target_id)
            log.info(
                "Migrated %d of %d entries from %s to %s",
                result.migrated_count,
                result.usage_count,
                result.source_id,
                result.target_id,
            )
        case "reorder":
            batch = operations.reorder_categories(actor, args.category_ids)
            log.info("Reordered %d of %d categories", batch.committed, batch.total)
        case "backfill":
            report = operations.backfill_category_ids(actor)
            log.info(
                "Backfilled %d of %d legacy entries (%d already linked)",
                report.updated,
                report.legacy_entries,
                report.already_linked,
            )
            for issue in report.issues:
                log.warning("Entry %s (%s): %s", issue.entry_id, issue.category_name, issue.reason)
        case "backfill-status":
            status = operations.backfill_status(actor)
            log.info(
                "%d entries: %d with a category id, %d without",
                status.total,
                status.with_category_id,
                status.without_category_id,
            )
        case _:
            raise ValueError(f"Unsupported categories command: {args.category_command}")


def _run_roles(operations: AdminOperations, actor: Actor, args: argparse.Namespace) -> None:
    match args.roles_command:
        case "verify":
            report = operations.verify_roles(actor)
            for mismatch in report.mismatches:
                log.warning(
                    "%s: stored role %s, cached %s (%s)",
                    mismatch.username,
                    mismatch.authoritative_role,
                    mismatch.cached_role or "nothing",
                    mismatch.classification,
                )
            for username in report.unprovisioned:
                log.info("%s has no identity account", username)
            for username in report.stale_usernames:
                log.info("%s: cached claims carry another username", username)
            for failure in report.failures:
                log.warning("%s could not be checked: %s", failure.username, failure.message)
            log.info("%d mismatches among %d users", report.mismatch_count, report.total_users)
        case "sync":
            claims = operations.sync_one_role(actor, args.username)
            log.info("Claims of %s now carry role %s", claims.username, claims.role)
        case "sync-all":
            report = operations.sync_all_roles(actor)
            for failure in report.failures:
                log.warning("%s: %s", failure.username, failure.message)
            log.info("Synced %d of %d users", report.synced_count, report.attempted)
        case "inspect":
            snapshot = operations.inspect_claims(actor, args.username)
            log.info(
                "%s: stored role %s, cached claims %s",
                snapshot.username,
                snapshot.authoritative_role,
                snapshot.claims.to_payload() if snapshot.claims else "none",
            )
        case "clear":
            operations.clear_claims(actor, args.username, confirm=args.yes)
        case "invalidate":
            operations.force_invalidate(actor, args.username, confirm=args.yes)
        case _:
            raise ValueError(f"Unsupported roles command: {args.roles_command}")


def _run_accounts(operations: AdminOperations, actor: Actor, args: argparse.Namespace) -> None:
    match args.accounts_command:
        case "status":
            status = operations.account_status(actor)
            for account in status.missing:
                log.warning(
                    "%s (%s): no user record, would be created as %s",
                    account.external_id,
                    account.email or "no email",
                    account.username or "?",
                )
            log.info(
                "%d accounts, %d without a user record",
                status.total_accounts,
                status.missing_count,
            )
        case "sync-missing":
            report = operations.sync_missing_users(actor)
            for failure in report.failures:
                log.warning("%s: %s", failure.username, failure.message)
            log.info("Created %d of %d missing user records", report.created_count, report.total)
        case "delete":
            operations.delete_identity_account(actor, args.external_id, confirm=args.yes)
        case _:
            raise ValueError(f"Unsupported accounts command: {args.accounts_command}")


def _run_import(operations: AdminOperations, actor: Actor, args: argparse.Namespace) -> None:
    data = args.path.read_bytes()
    if args.import_command == "preview":
        preview = operations.preview_import(actor, data)
        for row in preview.rows:
            log.info(
                "Row %d %s: %s %s",
                row.row,
                row.username,
                row.classification,
                ", ".join(row.changed_fields or row.conflicting_fields),
            )
        return
    if args.import_command == "apply":
        result = operations.apply_import(actor, data)
        for outcome in result.details:
            log.info("Row %d %s: %s", outcome.row, outcome.username, outcome.message)
        for warning in result.warnings:
            log.warning("%s", warning)
        for error in result.errors:
            log.error("%s", error.message)
        log.info(
            "Import finished: created=%d, updated=%d, skipped=%d, errors=%d",
            result.created_count,
            result.updated_count,
            result.skipped_count,
            len(result.errors),
        )
        return
    raise ValueError(f"Unsupported import command: {args.import_command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else None)

    try:
        operations = build_admin_operations(
            require_identity=parsed_args.command in IDENTITY_COMMANDS
        )
        actor = operations.actor(parsed_args.actor, role=parsed_args.role)
        if parsed_args.command == "categories":
            _run_categories(operations, actor, parsed_args)
        elif parsed_args.command == "roles":
            _run_roles(operations, actor, parsed_args)
        elif parsed_args.command == "accounts":
            _run_accounts(operations, actor, parsed_args)
        elif parsed_args.command == "import":
            _run_import(operations, actor, parsed_args)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except ValidationError as exc:
        log.error("Validation failed: %s", exc)  # noqa: TRY400
        for issue in exc.issues:
            log.error("%s", issue.message)  # noqa: TRY400
        sys.exit(2)
    except (PermissionDeniedError, ConfirmationRequiredError) as exc:
        log.error("%s", exc)  # noqa: TRY400
        sys.exit(2)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
