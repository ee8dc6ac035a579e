"""HTTP client for the identity provider's account administration API.

Endpoints, relative to ``IDENTITY_API_URL``:

- ``POST /accounts`` creates an account and returns ``{"uid": ...}``
- ``GET /accounts`` lists accounts one page at a time (``pageToken`` / ``nextPageToken``)
- ``PATCH /accounts/{uid}`` updates display name or password
- ``DELETE /accounts/{uid}`` removes the account
- ``GET|PUT|DELETE /accounts/{uid}/claims`` reads, replaces or removes custom claims
- ``POST /accounts/{uid}/revoke-sessions`` revokes every refresh token
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError as PydanticValidationError

from foliosync.adapters.http_resilience import ResilientClient
from foliosync.domain.errors import (
    ConflictError,
    NotFoundError,
    ProviderError,
    ProviderUnavailableError,
)
from foliosync.domain.model import IdentityClaims
from foliosync.domain.ports.identity import IdentityAccount

from .schema import (
    AccountPage,
    AccountResponse,
    ClaimsResponse,
    CreateAccountRequest,
    ErrorResponse,
    IdentityBaseModel,
    UpdateAccountRequest,
)

if TYPE_CHECKING:
    from types import TracebackType

    from httpx._types import QueryParamTypes

    from foliosync.config.identity import IdentityProviderConfig
    from foliosync.domain.ports.identity import AccountCredentials, AccountUpdate

PAGE_SIZE = 1000

log = getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    try:
        payload = ErrorResponse.model_validate_json(response.content)
    except PydanticValidationError:
        return response.text or response.reason_phrase
    return payload.message or payload.code or response.reason_phrase


class HttpIdentityProvider:
    """:class:`IdentityProvider` implementation over JSON/HTTP."""

    def __init__(
        self,
        config: IdentityProviderConfig,
        *,
        client: ResilientClient | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = client or ResilientClient(
            config.resilience,
            headers={"Authorization": f"Bearer {config.api_key}"},
            transport=transport,
        )

    def __enter__(self) -> HttpIdentityProvider:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def create_account(self, credentials: AccountCredentials) -> str:
        body = CreateAccountRequest(
            email=credentials.email,
            password=credentials.password,
            display_name=credentials.display_name,
        )
        response = self._send("POST", "/accounts", json=body.model_dump(by_alias=True))
        account = self._parse(AccountResponse, response)
        log.info("Created identity account %s for %s", account.id, credentials.email)
        return account.id

    def set_claims(self, external_id: str, claims: IdentityClaims) -> None:
        self._send("PUT", f"/accounts/{external_id}/claims", json=claims.to_payload())

    def clear_claims(self, external_id: str) -> None:
        self._send("DELETE", f"/accounts/{external_id}/claims")

    def get_claims(self, external_id: str) -> IdentityClaims | None:
        response = self._send("GET", f"/accounts/{external_id}/claims")
        payload = self._parse(ClaimsResponse, response)
        if not payload.claims or "role" not in payload.claims:
            return None
        try:
            return IdentityClaims.from_payload(payload.claims)
        except ValueError as exc:
            raise ProviderError(f"Unreadable claims on account {external_id}: {exc}") from exc

    def update_account(self, external_id: str, update: AccountUpdate) -> None:
        body = UpdateAccountRequest(display_name=update.display_name, password=update.password)
        self._send(
            "PATCH",
            f"/accounts/{external_id}",
            json=body.model_dump(by_alias=True, exclude_none=True),
        )

    def list_accounts(self) -> list[IdentityAccount]:
        accounts: list[IdentityAccount] = []
        page_token: str | None = None
        while True:
            params: dict[str, str | int] = {"pageSize": PAGE_SIZE}
            if page_token:
                params["pageToken"] = page_token
            page = self._parse(AccountPage, self._send("GET", "/accounts", params=params))
            accounts.extend(
                IdentityAccount(
                    external_id=summary.id,
                    email=summary.email,
                    display_name=summary.display_name,
                )
                for summary in page.accounts
            )
            page_token = page.next_page_token
            if not page_token:
                return accounts

    def delete_account(self, external_id: str) -> None:
        self._send("DELETE", f"/accounts/{external_id}")

    def revoke_sessions(self, external_id: str) -> None:
        self._send("POST", f"/accounts/{external_id}/revoke-sessions")

    def _send(
        self,
        method: str,
        url: str,
        *,
        json: object = None,
        params: QueryParamTypes | None = None,
    ) -> httpx.Response:
        try:
            response = self._client.request(method, url, json=json, params=params)
        except httpx.TransportError as exc:
            raise ProviderUnavailableError(f"Identity provider unreachable: {exc}") from exc

        status = response.status_code
        if status < 400:
            return response
        message = f"{method} {url} failed with {status}: {_error_message(response)}"
        if status == httpx.codes.NOT_FOUND:
            raise NotFoundError(message)
        if status == httpx.codes.CONFLICT:
            raise ConflictError(message)
        if status == httpx.codes.TOO_MANY_REQUESTS or status >= 500:
            raise ProviderUnavailableError(message)
        raise ProviderError(message)

    @staticmethod
    def _parse[TModel: IdentityBaseModel](
        model: type[TModel], response: httpx.Response
    ) -> TModel:
        try:
            return model.model_validate_json(response.content)
        except PydanticValidationError as exc:
            raise ProviderError(f"Unexpected identity provider response: {exc}") from exc
