"""Port for reading tabular import files."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class SheetContent:
    """Header and body cells of the first sheet, as read from the file."""

    sheet_name: str
    header: tuple[str, ...]
    rows: tuple[tuple[object, ...], ...]


@runtime_checkable
class SheetReader(Protocol):
    """Callable port returning the first sheet of a workbook.

    Raises ``ImportFileError`` when the bytes hold no readable sheet.
    """

    def __call__(self, data: bytes) -> SheetContent: ...
