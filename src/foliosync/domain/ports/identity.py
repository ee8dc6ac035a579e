"""Port for the external identity provider."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from foliosync.domain.model import IdentityClaims


@dataclass(frozen=True, slots=True, kw_only=True)
class AccountCredentials:
    email: str
    password: str
    display_name: str

    def __repr__(self) -> str:
        return f"AccountCredentials(email={self.email!r}, display_name={self.display_name!r})"


@dataclass(frozen=True, slots=True, kw_only=True)
class AccountUpdate:
    display_name: str | None = None
    password: str | None = None

    def __repr__(self) -> str:
        masked = "***" if self.password is not None else None
        return f"AccountUpdate(display_name={self.display_name!r}, password={masked!r})"


@dataclass(frozen=True, slots=True, kw_only=True)
class IdentityAccount:
    """One account as listed by the provider."""

    external_id: str
    email: str | None = None
    display_name: str | None = None


@runtime_checkable
class IdentityProvider(Protocol):
    """Credentials plus a small cached claims payload per account.

    Implementations raise ``ProviderUnavailableError`` when the provider cannot be
    reached, ``NotFoundError`` for unknown accounts, ``ConflictError`` when an
    account for the same email already exists and ``ProviderError`` otherwise.
    """

    def create_account(self, credentials: AccountCredentials) -> str: ...

    def set_claims(self, external_id: str, claims: IdentityClaims) -> None: ...

    def clear_claims(self, external_id: str) -> None: ...

    def get_claims(self, external_id: str) -> IdentityClaims | None: ...

    def update_account(self, external_id: str, update: AccountUpdate) -> None: ...

    def list_accounts(self) -> list[IdentityAccount]: ...

    def delete_account(self, external_id: str) -> None: ...

    def revoke_sessions(self, external_id: str) -> None: ...
