# certdesk/services/issuance.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Set

from sqlalchemy.orm import Session

from certdesk.core.config import settings
from certdesk.core.errors import DuplicateCertificateError
from certdesk.crud.certificate import CertificateStore, certificate_crud
from certdesk.models.admin_role import ROLE_SUPER_ADMIN
from certdesk.models.certificate import Certificate, CertificateStatus
from certdesk.schemas.certificate import CertificateCreate
from certdesk.services.numbering import SequenceAllocator
from certdesk.services.qr import build_verify_url
from certdesk.services.records import (
    normalize_certificate_input,
    normalize_date,
    to_null_if_empty,
    validate_row,
)

log = logging.getLogger(__name__)


def initial_status_for(role: Optional[str]) -> CertificateStatus:
    # super admin publica direto; admin passa por aprovação
    if role == ROLE_SUPER_ADMIN:
        return CertificateStatus.approved
    return CertificateStatus.pending_approval


class _BatchStore:
    """Store que também enxerga os números já reservados nesta requisição."""

    def __init__(self, store: CertificateStore, reserved: Set[str]):
        self.store = store
        self.reserved = reserved

    def list_certificate_numbers(self, patterns: Optional[Sequence[str]] = None) -> List[str]:
        return self.store.list_certificate_numbers(patterns)

    def certificate_number_exists(self, certificate_no: str) -> bool:
        return certificate_no.upper() in self.reserved or self.store.certificate_number_exists(certificate_no)


class NumberReservation:
    """Reserva números (informados ou gerados) para um conjunto de linhas."""

    def __init__(self, db: Session):
        self.reserved: Set[str] = set()
        self.store = _BatchStore(CertificateStore(db), self.reserved)
        self.allocator = SequenceAllocator(self.store, use_global=True)

    def claim(self, supplied: Any = None, *, row_number: Optional[int] = None) -> str:
        number = normalize_certificate_input(supplied)
        if number:
            if self.store.certificate_number_exists(number):
                where = f" (row {row_number})" if row_number else ""
                raise DuplicateCertificateError(
                    number,
                    f"Certificate number {number} already exists{where}. Please use a unique certificate number.",
                )
        else:
            number = self.allocator.allocate(settings.CERT_YEAR_SEGMENT)
        self.reserved.add(number)
        return number


def _payload(data: Dict[str, Any], certificate_no: str, status: CertificateStatus) -> Dict[str, Any]:
    return {
        "sno": to_null_if_empty(data.get("sno")),
        "certificate_no": certificate_no,
        "name": f"{data['name']}".strip(),
        "roll_no": f"{data['roll_no']}".strip(),
        "email": f"{data['email']}".strip().lower(),
        "phone": f"{data['phone']}".strip(),
        "department": f"{data['department']}".strip(),
        "academic_year": to_null_if_empty(data.get("academic_year")),
        "course_name": to_null_if_empty(data.get("course_name")) or settings.DEFAULT_COURSE_NAME,
        "location_or_institution": f"{data['location_or_institution']}".strip(),
        "location": to_null_if_empty(data.get("location")),
        "mode": f"{data['mode']}".strip().lower(),
        "issued_by": f"{data['issued_by']}".strip(),
        "date_issued": data["date_issued"],
        "qr_code_url": to_null_if_empty(data.get("qr_code_url")) or build_verify_url(certificate_no),
        "status": status.value,
    }


def create_manual(db: Session, body: CertificateCreate, *, role: Optional[str]) -> Certificate:
    status = initial_status_for(role)
    certificate_no = NumberReservation(db).claim(body.certificate_no)
    cert = certificate_crud.create(db, _payload(body.model_dump(), certificate_no, status))
    log.info("manual entry %s created with status %s", cert.certificate_no, cert.status)
    return cert


def create_from_rows(db: Session, rows: Sequence[Dict[str, Any]], *, role: Optional[str]) -> List[Certificate]:
    """
    Upload em lote: valida todas as linhas antes de alocar qualquer número;
    insere tudo numa transação só.
    """
    for i, row in enumerate(rows, start=1):
        validate_row(row, i)

    status = initial_status_for(role)
    reservation = NumberReservation(db)
    payload: List[Dict[str, Any]] = []
    for i, row in enumerate(rows, start=1):
        certificate_no = reservation.claim(row.get("certificate_no_raw"), row_number=i)
        data = dict(row)
        data["date_issued"] = normalize_date(row.get("date_issued_raw"))
        payload.append(_payload(data, certificate_no, status))

    created = certificate_crud.create_many(db, payload)
    log.info("bulk upload: %d certificates created with status %s", len(created), status.value)
    return created
