import datetime as dt
import io

import openpyxl
import pytest
import xlwt

from certdesk.core.errors import MissingColumnsError, SpreadsheetError
from certdesk.services.spreadsheet import (
    EXPORT_COLUMNS,
    normalise_header,
    parse_spreadsheet,
    records_to_workbook,
)

HEADER = ["S No", "Roll No", "Name", "Dep", "Year", "Ins", "Location",
          "Phone Number", "Email", "Mode", "Issued By", "Date Issued", "Certificate Number"]


def _xlsx(rows):
    wb = openpyxl.Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def _xls(rows):
    wb = xlwt.Workbook()
    ws = wb.add_sheet("Sheet1")
    date_style = xlwt.easyxf(num_format_str="DD/MM/YYYY")
    for r, row in enumerate(rows):
        for c, cell in enumerate(row):
            if cell is None:
                continue
            if isinstance(cell, dt.date):
                ws.write(r, c, cell, date_style)
            else:
                ws.write(r, c, cell)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def test_normalise_header():
    assert normalise_header("  Phone   Number ") == "phone_number"
    assert normalise_header(None) == ""


def test_parse_xlsx_maps_aliases_and_cleans_cells():
    content = _xlsx([
        HEADER,
        [1, 21001, "Asha", "CSE", "2025-2026", "GPT", "Pune", 9876543210, "ASHA@X.EDU",
         "Online", "DARE", dt.datetime(2025, 6, 1), None],
        [None] * len(HEADER),
        [None, "21002", "Ravi", "ME", "2025", "GPT", "Pune", "9876543211", "ravi@x.edu",
         "offline", "DARE", "01/06/2025", "dare/air/lp/25-26/010"],
    ])
    rows = parse_spreadsheet(content, "batch.xlsx")

    assert len(rows) == 2
    first, second = rows
    assert first["sno"] == "1"
    assert first["roll_no"] == "21001"
    assert first["phone"] == "9876543210"
    assert first["email"] == "asha@x.edu"
    assert first["department"] == "CSE"
    assert first["location_or_institution"] == "GPT"
    assert first["certificate_no_raw"] == ""
    assert second["sno"] == "2"
    assert second["certificate_no_raw"] == "dare/air/lp/25-26/010"
    assert second["date_issued_raw"] == "01/06/2025"


def test_parse_csv_with_bom():
    content = ("\ufeffName,Date Issued,Email\n"
               "Asha,2025-06-01,asha@x.edu\n"
               ",,\n").encode("utf-8")
    rows = parse_spreadsheet(content, "batch.CSV")
    assert len(rows) == 1
    assert rows[0]["name"] == "Asha"
    assert rows[0]["date_issued_raw"] == "2025-06-01"


def test_missing_required_column_is_named():
    content = _xlsx([["Roll No", "Date Issued"], ["1", "2025-06-01"]])
    with pytest.raises(MissingColumnsError) as exc:
        parse_spreadsheet(content, "batch.xlsx")
    assert exc.value.missing == ["name"]
    assert "missing required columns: name" in exc.value.message


def test_empty_file_is_rejected():
    with pytest.raises(SpreadsheetError, match="no data"):
        parse_spreadsheet(b"", "empty.csv")


@pytest.mark.parametrize("filename", ["notes.txt", "noext", "sheet.ods"])
def test_unsupported_formats(filename):
    with pytest.raises(SpreadsheetError):
        parse_spreadsheet(b"whatever", filename)


def test_corrupt_xlsx():
    with pytest.raises(SpreadsheetError, match="Unable to read"):
        parse_spreadsheet(b"not a zip", "broken.xlsx")


def test_corrupt_xls():
    with pytest.raises(SpreadsheetError, match="Unable to read"):
        parse_spreadsheet(b"\xd0\xcf\x11\xe0 not really ole2", "broken.xls")


def test_export_columns_and_values():
    records = [
        {"sno": "1", "roll_no": "21001", "name": "Asha", "phone": "9876543210",
         "email": "asha@x.edu", "date_issued": dt.date(2025, 6, 1), "issued_by": "DARE",
         "mode": "online", "location_or_institution": "GPT",
         "certificate_no": "DARE/AIR/LP/25-26/001"},
    ]
    wb = openpyxl.load_workbook(io.BytesIO(records_to_workbook(records)))
    ws = wb["Certificates"]
    rows = list(ws.iter_rows(values_only=True))
    assert list(rows[0]) == list(EXPORT_COLUMNS)
    assert rows[1][EXPORT_COLUMNS.index("date_issued")] == "2025-06-01"
    assert rows[1][-1] == "DARE/AIR/LP/25-26/001"


def test_parse_legacy_xls():
    content = _xls([
        HEADER,
        [1, 21001, "Asha", "CSE", "2025-2026", "GPT", "Pune", 9876543210, "ASHA@X.EDU",
         "Online", "DARE", dt.datetime(2025, 6, 1), None],
        [None] * len(HEADER),
        [None, "21002", "Ravi", "ME", "2025", "GPT", "Pune", "9876543211", "ravi@x.edu",
         "offline", "DARE", "01/06/2025", "dare/air/lp/25-26/010"],
    ])
    rows = parse_spreadsheet(content, "Batch.XLS")

    assert len(rows) == 2
    first, second = rows
    assert first["sno"] == "1"
    assert first["roll_no"] == "21001"
    assert first["phone"] == "9876543210"
    assert first["email"] == "asha@x.edu"
    assert first["date_issued_raw"] == dt.datetime(2025, 6, 1)
    assert first["certificate_no_raw"] == ""
    assert second["sno"] == "2"
    assert second["certificate_no_raw"] == "dare/air/lp/25-26/010"


def test_repeated_header_uses_last_column():
    content = ("Name,Email,Date Issued,Email\n"
               "Asha,old@x.edu,2025-06-01,asha@x.edu\n").encode("utf-8")
    rows = parse_spreadsheet(content, "batch.csv")
    assert rows[0]["email"] == "asha@x.edu"


def test_repeated_header_blank_last_column_reads_blank():
    content = ("Name,Email,Date Issued,Email\n"
               "Asha,old@x.edu,2025-06-01,\n").encode("utf-8")
    rows = parse_spreadsheet(content, "batch.csv")
    assert rows[0]["email"] == ""
