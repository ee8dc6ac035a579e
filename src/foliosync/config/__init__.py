"""Application configuration helpers."""

from __future__ import annotations

from dataclasses import dataclass, field

from .batch import MAX_GROUP_OPERATIONS, BatchConfig, get_batch_config
from .directory import DirectoryRules, get_directory_rules
from .env import optional_env_var, optional_int_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import ResilienceConfig, RetryPolicy
from .identity import IdentityProviderConfig, get_identity_config
from .logging import configure_logging
from .storage import DatabaseConfig, data_dir, get_database_config


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Everything the engine needs, resolved once at startup."""

    database: DatabaseConfig
    identity: IdentityProviderConfig | None = None
    batch: BatchConfig = field(default_factory=BatchConfig)
    directory: DirectoryRules = field(default_factory=DirectoryRules)


def get_app_config(*, require_identity: bool = True) -> AppConfig:
    return AppConfig(
        database=get_database_config(),
        identity=get_identity_config() if require_identity else None,
        batch=get_batch_config(),
        directory=get_directory_rules(),
    )


__all__ = [
    "MAX_GROUP_OPERATIONS",
    "AppConfig",
    "BatchConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "DirectoryRules",
    "IdentityProviderConfig",
    "MissingConfigurationError",
    "ResilienceConfig",
    "RetryPolicy",
    "configure_logging",
    "data_dir",
    "get_app_config",
    "get_batch_config",
    "get_database_config",
    "get_directory_rules",
    "get_identity_config",
    "optional_env_var",
    "optional_int_env_var",
    "require_env_vars",
]
