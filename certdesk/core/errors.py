# certdesk/core/errors.py
from __future__ import annotations

from typing import Any, Iterable, Optional


class CertdeskError(Exception):
    """Base das exceções de domínio. `code`/`status_code` alimentam o handler em main.py."""

    code = "ERROR"
    status_code = 400

    def __init__(self, message: str, *, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ConfigurationError(CertdeskError):
    code = "NOT_CONFIGURED"
    status_code = 503


class CertificateValidationError(CertdeskError):
    code = "VALIDATION_ERROR"
    status_code = 422


class DuplicateCertificateError(CertdeskError):
    code = "DUPLICATE_CERTIFICATE"
    status_code = 409

    def __init__(self, certificate_no: str, message: Optional[str] = None):
        super().__init__(
            message or f"Certificate number {certificate_no} already exists. Please use a unique certificate number.",
            details={"certificate_no": certificate_no},
        )
        self.certificate_no = certificate_no


class SequenceExhaustedError(CertdeskError):
    code = "SEQUENCE_EXHAUSTED"
    status_code = 409

    def __init__(self, attempts: int):
        super().__init__(
            f"Unable to generate unique certificate number after {attempts} attempts. "
            "Please check for duplicate entries.",
            details={"attempts": attempts},
        )
        self.attempts = attempts


class InvalidStatusTransition(CertdeskError):
    code = "INVALID_TRANSITION"
    status_code = 409


class SpreadsheetError(CertdeskError):
    code = "SPREADSHEET_ERROR"
    status_code = 422


class MissingColumnsError(SpreadsheetError):
    code = "MISSING_COLUMNS"

    def __init__(self, missing: Iterable[str]):
        self.missing = list(missing)
        super().__init__(
            f"The uploaded file is missing required columns: {', '.join(self.missing)}.",
            details={"missing": self.missing},
        )


class RenderError(CertdeskError):
    code = "RENDER_ERROR"
    status_code = 500


class TemplateError(RenderError):
    code = "TEMPLATE_ERROR"


class FieldFillError(RenderError):
    code = "FIELD_FILL_ERROR"

    def __init__(self, field: str, reason: str):
        super().__init__(
            f"Failed to fill field '{field}': {reason}. Make sure the field exists in the PDF template.",
            details={"field": field},
        )
        self.field = field


class CertificateNotFound(CertdeskError):
    code = "NOT_FOUND"
    status_code = 404


class RoleUnavailable(CertdeskError):
    code = "ROLE_UNAVAILABLE"
    status_code = 503
