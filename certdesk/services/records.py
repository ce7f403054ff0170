# certdesk/services/records.py
from __future__ import annotations

import datetime as dt
import re
from typing import Any, Dict, List, Optional

from certdesk.core.errors import CertificateValidationError

EXCEL_EPOCH = dt.date(1899, 12, 30)

_DELIMITED = re.compile(r"^(?P<day>\d{1,2})[/\-.](?P<month>\d{1,2})[/\-.](?P<year>\d{2,4})$")

# (chave da linha, rótulo exibido no erro)
REQUIRED_ROW_FIELDS = (
    ("name", "Name"),
    ("roll_no", "Roll No"),
    ("email", "Email"),
    ("phone", "Phone Number"),
    ("department", "Department (Dep)"),
    ("academic_year", "Academic Year (Year)"),
    ("location_or_institution", "Institution (Ins)"),
    ("location", "Location"),
    ("mode", "Mode"),
    ("issued_by", "Issued By"),
    ("date_issued_raw", "Date Issued"),
)


def _parse_delimited(value: str) -> Optional[dt.date]:
    m = _DELIMITED.match(value.strip())
    if not m:
        return None
    day, month, year = int(m["day"]), int(m["month"]), int(m["year"])
    if year < 100:
        year += (dt.date.today().year // 100) * 100
    try:
        return dt.date(year, month, day)
    except ValueError:
        return None


def normalize_date(value: Any) -> Optional[dt.date]:
    """
    Aceita date/datetime, número serial do Excel (dias desde 1899-12-30),
    ISO (YYYY-MM-DD[...]) ou D/M/YYYY, D-M-YY, D.M.YYYY.
    """
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return EXCEL_EPOCH + dt.timedelta(days=int(value))
        except OverflowError:
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return dt.date.fromisoformat(text[:10])
        except ValueError:
            pass
        return _parse_delimited(text)
    return None


def format_date_for_db(day: Optional[dt.date]) -> Optional[str]:
    if not day:
        return None
    return day.strftime("%Y-%m-%d")


def _is_blank(value: Any) -> bool:
    return value is None or f"{value}".strip() == ""


def row_errors(row: Dict[str, Any], row_number: int) -> List[str]:
    errors: List[str] = []
    for key, label in REQUIRED_ROW_FIELDS:
        if _is_blank(row.get(key)):
            errors.append(
                f'Row {row_number}: "{label}" is required and cannot be empty. '
                "Please fill all required fields in the Excel file."
            )

    raw_date = row.get("date_issued_raw")
    if not _is_blank(raw_date) and normalize_date(raw_date) is None:
        errors.append(
            f'Row {row_number}: Invalid date format for "Date Issued". '
            "Please ensure the date is in a valid format (e.g., DD/MM/YYYY or YYYY-MM-DD)."
        )

    email = row.get("email")
    if not _is_blank(email) and "@" not in f"{email}":
        errors.append(f'Row {row_number}: Invalid email format. Email must contain "@" symbol.')

    phone = row.get("phone")
    if not _is_blank(phone) and len(re.sub(r"\D", "", f"{phone}")) != 10:
        errors.append(f"Row {row_number}: Phone number must be exactly 10 digits.")

    mode = row.get("mode")
    if not _is_blank(mode) and f"{mode}".strip().lower() not in ("online", "offline"):
        errors.append(f"Row {row_number}: Mode must be Online or Offline.")

    return errors


def validate_row(row: Dict[str, Any], row_number: int) -> None:
    errors = row_errors(row, row_number)
    if errors:
        raise CertificateValidationError(errors[0], details={"row": row_number, "errors": errors})


def to_null_if_empty(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = f"{value}".strip()
    return text or None


def normalize_certificate_input(value: Any) -> str:
    """Número digitado/planilha: sem espaços e em maiúsculas."""
    return re.sub(r"\s+", "", f"{value or ''}").upper()
