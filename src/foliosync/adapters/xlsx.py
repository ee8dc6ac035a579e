"""openpyxl reader for ``.xlsx`` import files."""

from __future__ import annotations

from io import BytesIO
from logging import getLogger
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from foliosync.domain.errors import ImportFileError
from foliosync.domain.ports.spreadsheet import SheetContent

log = getLogger(__name__)


def _header_title(value: object) -> str:
    return "" if value is None else str(value).strip()


def read_first_sheet(data: bytes) -> SheetContent:
    """Return the header and body rows of the first worksheet in ``data``."""

    if not data:
        raise ImportFileError("The uploaded file is empty")
    try:
        workbook = load_workbook(BytesIO(data), read_only=True, data_only=True)
    except (BadZipFile, InvalidFileException, KeyError, OSError) as exc:
        raise ImportFileError(f"The uploaded file is not a readable workbook: {exc}") from exc

    try:
        if not workbook.worksheets:
            raise ImportFileError("The workbook contains no sheets")
        sheet = workbook.worksheets[0]
        rows = sheet.iter_rows(values_only=True)
        header = next(rows, None)
        if header is None:
            raise ImportFileError(f"Sheet {sheet.title!r} is empty")
        body = tuple(tuple(row) for row in rows)
        log.debug("Read %d rows from sheet %r", len(body), sheet.title)
        return SheetContent(
            sheet_name=sheet.title,
            header=tuple(_header_title(value) for value in header),
            rows=body,
        )
    finally:
        workbook.close()
