"""Validation of raw spreadsheet rows into :class:`ImportRow` models.

Validation is all-or-nothing: every row is checked, every problem of a row is
collected into one :class:`RowIssue`, and a single failing row rejects the file.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError

from foliosync.config.directory import DirectoryRules
from foliosync.domain.errors import RowIssue, ValidationError
from foliosync.domain.model import Role

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

USERNAME_PATTERN = re.compile(r"^[a-z0-9_-]+$")

_DEFAULT_RULES = DirectoryRules()


def _rules(info: ValidationInfo) -> DirectoryRules:
    context = info.context
    if isinstance(context, dict):
        rules = context.get("rules")
        if isinstance(rules, DirectoryRules):
            return rules
    return _DEFAULT_RULES


def _text(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _required(value: object, label: str) -> str:
    text = _text(value)
    if not text:
        raise ValueError(f"{label} is required")
    return text


class ImportRow(BaseModel):
    """One validated row of an import file. Never persisted."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    row: int
    username: str
    password: str = Field(repr=False)
    name: str
    position: str
    department: str
    role: Role

    @field_validator("username", mode="before")
    @classmethod
    def _normalize_username(cls, value: object) -> str:
        username = _required(value, "username").lower()
        if not USERNAME_PATTERN.match(username):
            raise ValueError(
                "username may only contain lowercase letters, digits, '_' and '-'"
            )
        return username

    @field_validator("password", mode="before")
    @classmethod
    def _check_password(cls, value: object, info: ValidationInfo) -> str:
        password = "" if value is None else str(value)
        if not password.strip():
            raise ValueError("password is required")
        minimum = _rules(info).min_credential_length
        if len(password) < minimum:
            raise ValueError(
                f"password must be at least {minimum} characters (got {len(password)})"
            )
        return password

    @field_validator("name", mode="before")
    @classmethod
    def _require_name(cls, value: object) -> str:
        return _required(value, "name")

    @field_validator("position", mode="before")
    @classmethod
    def _default_position(cls, value: object, info: ValidationInfo) -> str:
        return _text(value) or _rules(info).default_position

    @field_validator("department", mode="before")
    @classmethod
    def _check_department(cls, value: object, info: ValidationInfo) -> str:
        rules = _rules(info)
        department = _text(value) or rules.default_department
        if department not in rules.departments:
            raise ValueError(
                f"department {department!r} is not one of: {', '.join(rules.departments)}"
            )
        return department

    @field_validator("role", mode="before")
    @classmethod
    def _check_role(cls, value: object, info: ValidationInfo) -> Role:
        rules = _rules(info)
        raw = _text(value).lower()
        if not raw:
            return rules.default_role
        allowed = [str(role) for role in rules.roles]
        if raw not in allowed:
            raise ValueError(f"role {raw!r} is not one of: {', '.join(allowed)}")
        return Role(raw)


def _problem(error: Mapping[str, Any]) -> str:
    if error.get("type") == "value_error":
        ctx = error.get("ctx") or {}
        cause = ctx.get("error")
        if cause is not None:
            return str(cause)
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {error.get('msg', 'invalid value')}" if location else str(error["msg"])


def validate_row(
    number: int, raw: Mapping[str, object], *, rules: DirectoryRules
) -> ImportRow | RowIssue:
    """Validate one raw row, returning the model or the issue listing every problem."""

    data = {field: raw.get(field) for field in ImportRow.model_fields if field != "row"}
    data["row"] = number
    try:
        return ImportRow.model_validate(data, context={"rules": rules})
    except PydanticValidationError as exc:
        username = _text(raw.get("username")).lower() or None
        problems = tuple(_problem(error) for error in exc.errors())
        return RowIssue(row=number, username=username, problems=problems)


def validate_rows(
    raw_rows: Sequence[Mapping[str, object]], *, rules: DirectoryRules
) -> list[ImportRow]:
    """Validate every row; raise :class:`ValidationError` listing all failing rows.

    Rows are numbered from 1 in file order, header excluded. A username seen on
    an earlier row makes the later row invalid.
    """

    valid: list[ImportRow] = []
    issues: list[RowIssue] = []
    first_seen: dict[str, int] = {}

    for number, raw in enumerate(raw_rows, start=1):
        result = validate_row(number, raw, rules=rules)
        username = result.username
        problems: tuple[str, ...] = result.problems if isinstance(result, RowIssue) else ()

        if username:
            if username in first_seen:
                problems = (
                    *problems,
                    f"username {username!r} already appears on row {first_seen[username]}",
                )
            else:
                first_seen[username] = number

        if problems:
            issues.append(RowIssue(row=number, username=username, problems=problems))
        elif isinstance(result, ImportRow):
            valid.append(result)

    if issues:
        raise ValidationError(
            f"Import rejected: {len(issues)} of {len(raw_rows)} rows are invalid",
            issues=issues,
        )
    return valid
