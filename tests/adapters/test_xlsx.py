from __future__ import annotations

from io import BytesIO

import pytest
from openpyxl import Workbook

from foliosync.adapters.xlsx import read_first_sheet
from foliosync.domain.errors import ImportFileError
from tests.helpers.workbooks import workbook_bytes


def test_reads_header_and_rows_of_first_sheet() -> None:
    data = workbook_bytes([("t01", "abcdef", "Ann", None, None, "user")], title="Teachers")

    content = read_first_sheet(data)

    assert content.sheet_name == "Teachers"
    assert content.header == ("username", "password", "name", "position", "department", "role")
    assert content.rows == (("t01", "abcdef", "Ann", None, None, "user"),)


def test_numeric_cells_keep_their_type() -> None:
    content = read_first_sheet(workbook_bytes([("t01", 123456, "Ann")]))

    assert content.rows[0][1] == 123456


@pytest.mark.parametrize("data", [b"", b"not a workbook"])
def test_unreadable_bytes(data: bytes) -> None:
    with pytest.raises(ImportFileError):
        read_first_sheet(data)


def test_empty_sheet() -> None:
    buffer = BytesIO()
    Workbook().save(buffer)

    with pytest.raises(ImportFileError, match="empty"):
        read_first_sheet(buffer.getvalue())
