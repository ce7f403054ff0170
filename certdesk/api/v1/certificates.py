# certdesk/api/v1/certificates.py
from __future__ import annotations

import logging
import time
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Path, Query, Response, UploadFile, status
from sqlalchemy.orm import Session

from certdesk.api.deps import CurrentUser, get_db
from certdesk.core.config import settings
from certdesk.core.rbac import require_admin, require_super_admin
from certdesk.crud.certificate import CertificateStore, certificate_crud
from certdesk.models.certificate import Certificate, CertificateStatus
from certdesk.schemas.certificate import (
    Certificate as CertificateOut,
    CertificateCreate,
    CertificateUpdate,
    NextNumber,
    UploadPreview,
    UploadPreviewRow,
    UploadResult,
)
from certdesk.services.certificates import certificate_filename, render_certificate_pdf
from certdesk.services.issuance import create_from_rows, create_manual, initial_status_for
from certdesk.services.numbering import SequenceAllocator, extract_sequence_number
from certdesk.services.qr import build_verify_url, qr_png_bytes
from certdesk.services.records import row_errors
from certdesk.services.spreadsheet import parse_spreadsheet, records_to_workbook

log = logging.getLogger(__name__)

router = APIRouter()

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

def _to_out(c: Certificate) -> CertificateOut:
    return CertificateOut.model_validate(c)

# -------------------------- leitura --------------------------

@router.get("/", response_model=List[CertificateOut])
def list_certificates(
    status_: Optional[CertificateStatus] = Query(None, alias="status"),
    q: Optional[str] = Query(None, description="Busca por nome, e-mail, número ou roll"),
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
):
    rows = certificate_crud.search(db, status=status_.value if status_ else None, q=q)
    return [_to_out(c) for c in rows]

@router.get("/export")
def export_certificates(
    status_: Optional[CertificateStatus] = Query(None, alias="status"),
    q: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
):
    rows = certificate_crud.search(db, status=status_.value if status_ else None, q=q)
    content = records_to_workbook(rows)
    filename = f"certificate-export-{int(time.time() * 1000)}.xlsx"
    return Response(
        content=content,
        media_type=XLSX_MIME,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

@router.get("/next-number", response_model=NextNumber)
def next_number(
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
):
    number = SequenceAllocator(CertificateStore(db), use_global=True).peek(settings.CERT_YEAR_SEGMENT)
    return NextNumber(
        certificate_no=number,
        sequence=extract_sequence_number(number),
        year_segment=settings.CERT_YEAR_SEGMENT,
    )

# -------------------------- emissão --------------------------

@router.post("/", response_model=CertificateOut, status_code=status.HTTP_201_CREATED)
def create_certificate(
    body: CertificateCreate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_admin),
):
    return _to_out(create_manual(db, body, role=current.role))

@router.post("/upload/preview", response_model=UploadPreview)
def preview_upload(
    file: UploadFile = File(...),
    _: CurrentUser = Depends(require_admin),
):
    rows = parse_spreadsheet(file.file.read(), file.filename or "")
    preview = [
        UploadPreviewRow(row_number=i, data=row, errors=row_errors(row, i))
        for i, row in enumerate(rows, start=1)
    ]
    return UploadPreview(
        filename=file.filename or "",
        total_rows=len(preview),
        valid_rows=sum(1 for r in preview if not r.errors),
        rows=preview,
    )

@router.post("/upload", response_model=UploadResult, status_code=status.HTTP_201_CREATED)
def upload_certificates(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_admin),
):
    rows = parse_spreadsheet(file.file.read(), file.filename or "")
    created = create_from_rows(db, rows, role=current.role)
    log.info("%s uploaded %s (%d rows)", current.user.email, file.filename, len(created))
    return UploadResult(
        created=len(created),
        status=initial_status_for(current.role),
        certificates=[_to_out(c) for c in created],
    )

# -------------------------- por id --------------------------

@router.get("/{certificate_id}", response_model=CertificateOut)
def get_certificate(
    certificate_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
):
    return _to_out(certificate_crud.get_or_404(db, certificate_id))

@router.patch("/{certificate_id}", response_model=CertificateOut)
def update_certificate(
    body: CertificateUpdate,
    certificate_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
):
    cert = certificate_crud.get_or_404(db, certificate_id)
    data = body.model_dump(exclude_unset=True)
    return _to_out(certificate_crud.update_fields(db, cert, data))

@router.delete("/{certificate_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_certificate(
    certificate_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_super_admin),
):
    cert = certificate_crud.get_or_404(db, certificate_id)
    number = cert.certificate_no
    certificate_crud.remove(db, cert)
    log.info("%s permanently deleted certificate %s", current.user.email, number)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.get("/{certificate_id}/pdf")
def download_pdf(
    certificate_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
):
    cert = certificate_crud.get_or_404(db, certificate_id)
    pdf = render_certificate_pdf(name=cert.name, certificate_no=cert.certificate_no)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{certificate_filename(cert.certificate_no)}"'},
    )

@router.get("/{certificate_id}/qr.png")
def qr_image(
    certificate_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
):
    cert = certificate_crud.get_or_404(db, certificate_id)
    return Response(content=qr_png_bytes(cert.qr_code_url or build_verify_url(cert.certificate_no)), media_type="image/png")
