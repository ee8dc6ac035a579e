"""Pydantic models describing the identity provider's JSON payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class IdentityBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class CreateAccountRequest(IdentityBaseModel):
    email: str
    password: str = Field(repr=False)
    display_name: str = Field(alias="displayName")


class UpdateAccountRequest(IdentityBaseModel):
    display_name: str | None = Field(default=None, alias="displayName")
    password: str | None = Field(default=None, repr=False)


class AccountResponse(IdentityBaseModel):
    id: str = Field(alias="uid")


class ClaimsResponse(IdentityBaseModel):
    claims: dict[str, object] | None = None


class ErrorResponse(IdentityBaseModel):
    code: str | None = None
    message: str | None = None


class AccountSummary(IdentityBaseModel):
    id: str = Field(alias="uid")
    email: str | None = None
    display_name: str | None = Field(default=None, alias="displayName")


class AccountPage(IdentityBaseModel):
    accounts: list[AccountSummary] = Field(default_factory=list[AccountSummary])
    next_page_token: str | None = Field(default=None, alias="nextPageToken")
