from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from certdesk.models.certificate import CertificateStatus, IssuanceMode


def _digits(value: str) -> str:
    return re.sub(r"\D", "", value or "")


def _normalize_mode(value: Any) -> str:
    raw = f"{value or ''}".strip().lower()
    try:
        return IssuanceMode(raw).value
    except ValueError:
        raise ValueError("Mode is required. Please select Online or Offline.")


def _normalize_phone(value: Any) -> str:
    raw = f"{value or ''}".strip()
    if len(_digits(raw)) != 10:
        raise ValueError("Phone number must be exactly 10 digits.")
    return raw


def _normalize_email(value: Any) -> str:
    raw = f"{value or ''}".strip().lower()
    if "@" not in raw:
        raise ValueError("Please enter a valid email address with @ symbol (e.g., user@example.com)")
    return raw


class CertificateCreate(BaseModel):
    """Entrada manual (um registro)."""

    name: str = Field(min_length=1)
    roll_no: str = Field(min_length=1)
    email: str
    phone: str
    department: str = Field(min_length=1)
    academic_year: str = Field(min_length=1)
    course_name: Optional[str] = None
    location_or_institution: str = Field(min_length=1)
    location: str = Field(min_length=1)
    mode: str
    issued_by: str = Field(min_length=1)
    date_issued: date
    certificate_no: Optional[str] = None
    sno: Optional[str] = None

    @field_validator(
        "name", "roll_no", "department", "academic_year",
        "location_or_institution", "location", "issued_by",
        mode="before",
    )
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email", mode="before")
    @classmethod
    def _email(cls, v):
        return _normalize_email(v)

    @field_validator("phone", mode="before")
    @classmethod
    def _phone(cls, v):
        return _normalize_phone(v)

    @field_validator("mode", mode="before")
    @classmethod
    def _mode(cls, v):
        return _normalize_mode(v)


# colunas NOT NULL: podem ser omitidas na edição, mas não apagadas com null
_NOT_NULL_FIELDS = (
    "name", "roll_no", "email", "phone", "department", "course_name",
    "location_or_institution", "mode", "issued_by", "date_issued",
)


class CertificateUpdate(BaseModel):
    """Edição: nunca inclui status (só muda via aprovação/rejeição)."""

    name: Optional[str] = None
    roll_no: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    department: Optional[str] = None
    academic_year: Optional[str] = None
    course_name: Optional[str] = None
    location_or_institution: Optional[str] = None
    location: Optional[str] = None
    mode: Optional[str] = None
    issued_by: Optional[str] = None
    date_issued: Optional[date] = None

    model_config = {"extra": "ignore"}

    @model_validator(mode="before")
    @classmethod
    def _no_nulls(cls, data):
        if isinstance(data, dict):
            cleared = [f for f in _NOT_NULL_FIELDS if f in data and data[f] is None]
            if cleared:
                raise ValueError(f"Cannot clear required field(s): {', '.join(cleared)}.")
        return data

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, v):
        if v is None:
            return v
        v = f"{v}".strip()
        if not v:
            raise ValueError("Name is required.")
        return v

    @field_validator(
        "roll_no", "department", "academic_year", "course_name",
        "location_or_institution", "location", "issued_by",
        mode="before",
    )
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email", mode="before")
    @classmethod
    def _email(cls, v):
        return None if v is None else _normalize_email(v)

    @field_validator("phone", mode="before")
    @classmethod
    def _phone(cls, v):
        return None if v is None else _normalize_phone(v)

    @field_validator("mode", mode="before")
    @classmethod
    def _mode(cls, v):
        return None if v is None else _normalize_mode(v)


class Certificate(BaseModel):
    id: int
    sno: Optional[str] = None
    certificate_no: str
    name: str
    roll_no: str
    email: str
    phone: str
    department: str
    academic_year: Optional[str] = None
    course_name: str
    location_or_institution: str
    location: Optional[str] = None
    mode: str
    issued_by: str
    date_issued: date
    qr_code_url: str
    status: CertificateStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CertificateVerification(BaseModel):
    """Resposta pública: sem telefone/roll."""

    certificate_no: str
    name: str
    email: str
    mode: str
    location_or_institution: str
    course_name: str
    date_issued: date
    issued_by: str
    status: CertificateStatus
    qr_code_url: str

    model_config = {"from_attributes": True}


class UploadPreviewRow(BaseModel):
    row_number: int
    data: Dict[str, Any]
    errors: List[str] = []


class UploadPreview(BaseModel):
    filename: str
    total_rows: int
    valid_rows: int
    rows: List[UploadPreviewRow]


class UploadResult(BaseModel):
    created: int
    status: CertificateStatus
    certificates: List[Certificate]


class BulkApproveIn(BaseModel):
    ids: List[int] = Field(min_length=1)


class BulkApproveOut(BaseModel):
    approved: List[int]
    skipped: List[int]


class NextNumber(BaseModel):
    certificate_no: str
    sequence: int
    year_segment: str
