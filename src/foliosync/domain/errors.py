"""Error taxonomy shared by every reconciliation component.

Validation and permission errors are raised before any side effect. Provider
errors come in two flavours: *authoritative* failures of the document store
abort the current row or operation, *best-effort* failures of a mirrored write
to the identity provider are logged and reported but never abort.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class FolioSyncError(Exception):
    """Base class for all domain errors."""


@dataclass(frozen=True, slots=True)
class RowIssue:
    """Every problem found on one input row."""

    row: int
    username: str | None
    problems: tuple[str, ...]

    @property
    def message(self) -> str:
        return f"Row {self.row}: " + "; ".join(self.problems)


class ValidationError(FolioSyncError):
    """Input rejected before any mutation began."""

    def __init__(self, message: str, *, issues: Iterable[RowIssue] = ()) -> None:
        super().__init__(message)
        self.issues = tuple(issues)


class ImportFileError(ValidationError):
    """The uploaded file has no readable sheet or no data rows."""


class PermissionDeniedError(FolioSyncError):
    """The acting role may not perform the requested action."""


class NotFoundError(FolioSyncError):
    """A referenced category, entry or user does not exist."""


class MissingExternalIdentityError(NotFoundError):
    """The user was never provisioned in the identity provider."""


class ConflictError(FolioSyncError):
    """An immutable field differs from what the caller expected."""


class ConfirmationRequiredError(FolioSyncError):
    """A destructive operation was invoked without explicit confirmation."""


class ProviderError(FolioSyncError):
    """An external store failed or rejected a call."""


class AuthoritativeProviderError(ProviderError):
    """The document store failed; the enclosing row or operation must abort."""


class BestEffortProviderError(ProviderError):
    """A mirrored identity-provider write failed after the authoritative write."""


class ProviderUnavailableError(ProviderError):
    """The identity provider could not be reached."""
