"""Turn the first sheet of an import file into raw row mappings."""

from __future__ import annotations

from typing import TYPE_CHECKING

from foliosync.domain.errors import ImportFileError

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from foliosync.domain.ports.spreadsheet import SheetContent

type RawRow = dict[str, object]

HEADER_ALIASES: Mapping[str, tuple[str, ...]] = {
    "username": ("username", "user", "login", "user name"),
    "password": ("password", "credential", "initial password"),
    "name": ("name", "display name", "full name"),
    "position": ("position", "title", "job title"),
    "department": ("department", "unit", "organizational unit"),
    "role": ("role",),
}

REQUIRED_COLUMNS = ("username", "password", "name")
# credentials reach the identity provider exactly as typed
VERBATIM_COLUMNS = frozenset({"password"})


def _normalize_header(value: str) -> str:
    return " ".join(value.replace("_", " ").split()).casefold()


def resolve_columns(header: Sequence[str]) -> dict[str, int]:
    """Map each known column to its index in ``header``; unknown headers are ignored."""

    lookup = {
        _normalize_header(alias): column
        for column, aliases in HEADER_ALIASES.items()
        for alias in aliases
    }
    columns: dict[str, int] = {}
    for index, title in enumerate(header):
        column = lookup.get(_normalize_header(title))
        if column is not None and column not in columns:
            columns[column] = index
    return columns


def cell_value(value: object, *, strip: bool = True) -> object:
    """Normalise a raw cell: blanks become ``None`` and whole floats become integers."""

    if value is None:
        return None
    if isinstance(value, str):
        if not value.strip():
            return None
        return value.strip() if strip else value
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)


def parse_sheet(content: SheetContent) -> list[RawRow]:
    """Return one mapping per non-blank data row of ``content``.

    Raises :class:`ImportFileError` when required columns are missing or when the
    sheet holds no data rows.
    """

    columns = resolve_columns(content.header)
    missing = [column for column in REQUIRED_COLUMNS if column not in columns]
    if missing:
        raise ImportFileError(
            f"Sheet {content.sheet_name!r} is missing required columns: {', '.join(missing)}"
        )

    rows: list[RawRow] = []
    for cells in content.rows:
        if all(cell_value(cell) is None for cell in cells):
            continue
        rows.append(
            {
                column: cell_value(cells[index], strip=column not in VERBATIM_COLUMNS)
                if index < len(cells)
                else None
                for column, index in columns.items()
            }
        )

    if not rows:
        raise ImportFileError(f"Sheet {content.sheet_name!r} has no data rows")
    return rows
