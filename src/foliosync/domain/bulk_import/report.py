"""Ephemeral results of previewing and applying an import."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from foliosync.domain.diff import Classification
from foliosync.domain.errors import RowIssue

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(frozen=True, slots=True)
class RowOutcome:
    """What happened to one row during apply."""

    row: int
    username: str
    classification: Classification
    succeeded: bool
    message: str
    warnings: tuple[str, ...] = ()


@dataclass(slots=True)
class ReconciliationResult:
    created_count: int = 0
    updated_count: int = 0
    skipped_count: int = 0
    errors: list[RowIssue] = field(default_factory=list[RowIssue])
    details: list[RowOutcome] = field(default_factory=list[RowOutcome])

    def record(self, outcome: RowOutcome) -> None:
        self.details.append(outcome)
        if not outcome.succeeded:
            self.errors.append(RowIssue(outcome.row, outcome.username, (outcome.message,)))
            return
        match outcome.classification:
            case Classification.CREATE:
                self.created_count += 1
            case Classification.UPDATE:
                self.updated_count += 1
            case Classification.SKIP:
                self.skipped_count += 1
            case Classification.CONFLICT:
                pass

    @property
    def warnings(self) -> list[str]:
        return [
            f"Row {outcome.row}: {warning}"
            for outcome in self.details
            for warning in outcome.warnings
        ]

    @property
    def success(self) -> bool:
        return not self.errors


@dataclass(frozen=True, slots=True)
class PreviewRow:
    row: int
    username: str
    classification: Classification
    changed_fields: tuple[str, ...]
    conflicting_fields: tuple[str, ...]
    desired: Mapping[str, str]
    existing: Mapping[str, str] | None


@dataclass(frozen=True, slots=True)
class ImportPreview:
    """Classification of every row without any write."""

    rows: tuple[PreviewRow, ...]

    def count(self, classification: Classification) -> int:
        return self.totals[classification]

    @property
    def totals(self) -> Counter[Classification]:
        return Counter(row.classification for row in self.rows)
