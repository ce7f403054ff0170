# certdesk/services/spreadsheet.py
from __future__ import annotations

import csv
import io
import logging
import os
import re
import struct
import zipfile
from typing import Any, Dict, Iterable, List, Mapping, Sequence

import openpyxl
import xlrd
from openpyxl.utils.exceptions import InvalidFileException
from xlrd.compdoc import CompDocError

from certdesk.core.errors import MissingColumnsError, SpreadsheetError

log = logging.getLogger(__name__)

REQUIRED_HEADERS = ("name", "date_issued")

# campo da linha -> cabeçalhos aceitos (já normalizados), em ordem de preferência
HEADER_ALIASES: Dict[str, Sequence[str]] = {
    "sno": ("s_no", "sno"),
    "roll_no": ("roll_no",),
    "name": ("name",),
    "department": ("dep", "department"),
    "academic_year": ("year", "academic_year"),
    "location_or_institution": ("ins", "location_or_institution"),
    "location": ("location",),
    "phone": ("phone_number", "phone"),
    "certificate_no_raw": ("certificate_number", "certificate_no"),
    "mode": ("mode",),
    "issued_by": ("issued_by",),
    "qr_code_url": ("qr_url", "qr_code_url"),
    "created_at": ("create_date", "created_at"),
    "email": ("email",),
    "date_issued_raw": ("date_issued",),
    "course_name": ("course_name", "course"),
}

EXPORT_COLUMNS = (
    "sno",
    "roll_no",
    "name",
    "phone",
    "email",
    "date_issued",
    "issued_by",
    "mode",
    "location_or_institution",
    "certificate_no",
)

_SUPPORTED = (".xlsx", ".xls", ".csv")


def normalise_header(value: Any) -> str:
    return re.sub(r"\s+", "_", f"{'' if value is None else value}".strip().lower())


def _is_blank(cell: Any) -> bool:
    return cell is None or f"{cell}".strip() == ""


def _as_text(value: Any) -> str:
    # 9876543210.0 vindo do Excel vira "9876543210"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if value is None:
        return ""
    return f"{value}".strip()


def _read_xlsx(content: bytes) -> List[List[Any]]:
    try:
        wb = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as exc:
        raise SpreadsheetError(f"Unable to read the selected file: {exc}") from exc
    try:
        ws = wb.worksheets[0]
        return [list(row) for row in ws.iter_rows(values_only=True)]
    finally:
        wb.close()


def _read_xls_cell(cell: xlrd.sheet.Cell, datemode: int) -> Any:
    if cell.ctype == xlrd.XL_CELL_DATE:
        try:
            return xlrd.xldate_as_datetime(cell.value, datemode)
        except xlrd.XLDateError:
            return cell.value
    if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR):
        return None
    return cell.value


def _read_xls(content: bytes) -> List[List[Any]]:
    # formato binário antigo (BIFF); datas vêm como serial, convertidas pelo datemode do livro
    try:
        book = xlrd.open_workbook(file_contents=content, on_demand=True)
    except (xlrd.XLRDError, CompDocError, AssertionError, IndexError, struct.error, ValueError) as exc:
        raise SpreadsheetError(f"Unable to read the selected file: {exc}") from exc
    try:
        sheet = book.sheet_by_index(0)
        return [
            [_read_xls_cell(cell, book.datemode) for cell in sheet.row(r)]
            for r in range(sheet.nrows)
        ]
    finally:
        book.release_resources()


def _read_csv(content: bytes) -> List[List[Any]]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise SpreadsheetError("Unable to read the selected file: CSV must be UTF-8 encoded.") from exc
    return [row for row in csv.reader(io.StringIO(text))]


def read_table(content: bytes, filename: str) -> List[List[Any]]:
    ext = os.path.splitext(filename or "")[1].lower()
    if ext not in _SUPPORTED:
        raise SpreadsheetError(f"Unsupported file type '{ext or filename}'. Upload an .xlsx, .xls or .csv file.")
    if ext == ".xlsx":
        return _read_xlsx(content)
    if ext == ".xls":
        return _read_xls(content)
    return _read_csv(content)


def parse_rows(table: List[List[Any]]) -> List[Dict[str, Any]]:
    if not table:
        raise SpreadsheetError("The selected file has no data.")

    header_row, *rows = table
    headers = [normalise_header(h) for h in header_row]

    missing = [h for h in REQUIRED_HEADERS if h not in headers]
    if missing:
        raise MissingColumnsError(missing)

    # cabeçalho repetido: vale a última coluna
    index: Dict[str, int] = {}
    for i, h in enumerate(headers):
        index[h] = i

    def value(row: Sequence[Any], aliases: Iterable[str]) -> Any:
        for alias in aliases:
            i = index.get(alias)
            if i is not None and i < len(row) and not _is_blank(row[i]):
                cell = row[i]
                return cell.strip() if isinstance(cell, str) else cell
        return ""

    parsed: List[Dict[str, Any]] = []
    for row in rows:
        if all(_is_blank(c) for c in row):
            continue
        item = {field: value(row, aliases) for field, aliases in HEADER_ALIASES.items()}
        item["sno"] = _as_text(item["sno"]) or str(len(parsed) + 1)
        item["roll_no"] = _as_text(item["roll_no"])
        item["phone"] = _as_text(item["phone"])
        item["email"] = _as_text(item["email"]).lower()
        parsed.append(item)
    return parsed


def parse_spreadsheet(content: bytes, filename: str) -> List[Dict[str, Any]]:
    """
    Lê a primeira planilha e devolve uma linha (dict) por linha não vazia.
    Só valida cabeçalhos obrigatórios; validação por linha é de quem chama.
    """
    rows = parse_rows(read_table(content, filename))
    log.info("parsed %d rows from %s", len(rows), filename)
    return rows


def _export_value(record: Any, column: str) -> Any:
    if isinstance(record, Mapping):
        v = record.get(column)
    else:
        v = getattr(record, column, None)
    if hasattr(v, "value"):
        v = v.value
    if hasattr(v, "isoformat"):
        v = v.isoformat()
    return "" if v is None else v


def records_to_workbook(records: Iterable[Any]) -> bytes:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Certificates"
    ws.append(list(EXPORT_COLUMNS))
    for record in records:
        ws.append([_export_value(record, c) for c in EXPORT_COLUMNS])
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()
