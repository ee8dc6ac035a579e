"""Identity provider configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import require_env_vars
from .http_resilience import ResilienceConfig, RetryPolicy

IDENTITY_TIMEOUT_SECONDS = 15.0


@dataclass(frozen=True, slots=True)
class IdentityProviderConfig:
    """Connection settings for the external identity provider."""

    api_key: str
    resilience: ResilienceConfig


def get_identity_config(*, resilience: ResilienceConfig | None = None) -> IdentityProviderConfig:
    values = require_env_vars(("IDENTITY_API_URL", "IDENTITY_API_KEY"))
    return IdentityProviderConfig(
        api_key=values["IDENTITY_API_KEY"],
        resilience=resilience
        or ResilienceConfig(
            name="identity",
            base_url=values["IDENTITY_API_URL"],
            timeout_seconds=IDENTITY_TIMEOUT_SECONDS,
            retry=RetryPolicy(),
        ),
    )
