"""Grouped-write defaults for the document store."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_int_env_var
from .errors import ConfigurationError

# Hard per-transaction operation cap imposed by the document store.
MAX_GROUP_OPERATIONS = 500


@dataclass(frozen=True, slots=True)
class BatchConfig:
    group_size: int = MAX_GROUP_OPERATIONS
    hard_cap: int = MAX_GROUP_OPERATIONS

    def __post_init__(self) -> None:
        if self.hard_cap < 1:
            raise ConfigurationError("Batch hard cap must be positive")
        if not 1 <= self.group_size <= self.hard_cap:
            raise ConfigurationError(
                f"Batch group size must be between 1 and {self.hard_cap}, got {self.group_size}",
                variable="FOLIOSYNC_BATCH_SIZE",
            )


def get_batch_config() -> BatchConfig:
    return BatchConfig(
        group_size=optional_int_env_var("FOLIOSYNC_BATCH_SIZE", MAX_GROUP_OPERATIONS)
    )
