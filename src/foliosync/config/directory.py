"""Staff directory rules applied to imported rows."""

from __future__ import annotations

from dataclasses import dataclass

from foliosync.domain.model import Role

from .env import optional_env_var
from .errors import ConfigurationError

DEFAULT_POSITION = "Teacher"
DEFAULT_DEPARTMENT = "Administration"
DEFAULT_EMAIL_DOMAIN = "hongson.ac.th"
MIN_CREDENTIAL_LENGTH = 6

DEPARTMENTS: tuple[str, ...] = (
    "Administration",
    "Thai Language",
    "Mathematics",
    "Science and Technology",
    "Social Studies",
    "Health and Physical Education",
    "Arts",
    "Career and Technology",
    "Foreign Languages",
    "Student Development Activities",
)

# team_leader is assigned by hand, never through a spreadsheet
IMPORTABLE_ROLES: tuple[Role, ...] = (
    Role.SUPERADMIN,
    Role.DIRECTOR,
    Role.DEPUTY,
    Role.DUTY_OFFICER,
    Role.USER,
)


@dataclass(frozen=True, slots=True)
class DirectoryRules:
    """Accepted values and defaults for staff rows coming from a spreadsheet."""

    departments: tuple[str, ...] = DEPARTMENTS
    roles: tuple[Role, ...] = IMPORTABLE_ROLES
    default_position: str = DEFAULT_POSITION
    default_department: str = DEFAULT_DEPARTMENT
    default_role: Role = Role.USER
    min_credential_length: int = MIN_CREDENTIAL_LENGTH
    email_domain: str = DEFAULT_EMAIL_DOMAIN

    def __post_init__(self) -> None:
        if self.default_department not in self.departments:
            raise ConfigurationError(
                f"Default department {self.default_department!r} is not an allowed department"
            )
        if self.default_role not in self.roles:
            raise ConfigurationError(f"Default role {self.default_role!r} is not importable")
        if self.min_credential_length < 1:
            raise ConfigurationError("Minimum credential length must be positive")

    def email_for(self, username: str) -> str:
        return f"{username}@{self.email_domain}"


def get_directory_rules() -> DirectoryRules:
    return DirectoryRules(
        email_domain=optional_env_var("IDENTITY_EMAIL_DOMAIN", DEFAULT_EMAIL_DOMAIN),
    )
