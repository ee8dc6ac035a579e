"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Role(StrEnum):
    SUPERADMIN = "superadmin"
    DIRECTOR = "director"
    DEPUTY = "deputy"
    DUTY_OFFICER = "duty_officer"
    TEAM_LEADER = "team_leader"
    USER = "user"


class Collection(StrEnum):
    """Document store collections addressed by grouped writes."""

    USERS = "users"
    CATEGORIES = "categories"
    ENTRIES = "entries"
