"""Grouped commits of ordered mutation sequences.

Responsibilities:
- partition a mutation sequence into groups no larger than the writer's cap
- commit groups one at a time, in order, each atomically
- stop at the first failing group and report exactly what was committed

Atomicity holds inside one group only. A partially committed sequence is a
normal, reportable outcome; nothing is retried or rolled back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Any

from foliosync.domain.errors import ProviderError

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping, Sequence

    from foliosync.domain.model import Collection
    from foliosync.domain.ports.unit_of_work import GroupWriter

log = getLogger(__name__)


class MutationKind(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True, slots=True)
class Mutation:
    """One document write inside a batch group."""

    collection: Collection
    key: str
    kind: MutationKind = MutationKind.UPDATE
    fields: Mapping[str, Any] = field(default_factory=dict[str, Any])


@dataclass(slots=True)
class BatchCommitResult:
    """Progress of one executor run."""

    total: int
    committed: int = 0
    groups_total: int = 0
    groups_committed: int = 0
    error: ProviderError | None = None

    @property
    def complete(self) -> bool:
        return self.error is None and self.committed == self.total


def partition(mutations: Sequence[Mutation], cap: int) -> Iterator[Sequence[Mutation]]:
    """Yield consecutive slices of ``mutations`` of at most ``cap`` items."""

    if cap < 1:
        raise ValueError(f"Group cap must be at least 1, got {cap}")
    for start in range(0, len(mutations), cap):
        yield mutations[start : start + cap]


def group_count(total: int, cap: int) -> int:
    return -(-total // cap)


class BatchCommitExecutor:
    """Commit mutations in sequential, individually atomic groups."""

    def __init__(self, writer: GroupWriter, *, cap: int | None = None) -> None:
        hard_cap = writer.max_group_size
        effective = hard_cap if cap is None else cap
        if effective < 1:
            raise ValueError(f"Group cap must be at least 1, got {effective}")
        if effective > hard_cap:
            raise ValueError(
                f"Group cap {effective} exceeds the store limit of {hard_cap} operations"
            )
        self._writer = writer
        self._cap = effective

    @property
    def cap(self) -> int:
        return self._cap

    def commit(self, mutations: Sequence[Mutation]) -> BatchCommitResult:
        result = BatchCommitResult(
            total=len(mutations), groups_total=group_count(len(mutations), self._cap)
        )
        for index, group in enumerate(partition(mutations, self._cap), start=1):
            try:
                self._writer.write_group(group)
            except ProviderError as exc:
                log.warning(
                    "Batch group %d/%d failed after %d committed operations: %s",
                    index,
                    result.groups_total,
                    result.committed,
                    exc,
                )
                result.error = exc
                return result
            result.committed += len(group)
            result.groups_committed += 1
            log.debug(
                "Committed batch group %d/%d (%d ops)", index, result.groups_total, len(group)
            )
        return result
