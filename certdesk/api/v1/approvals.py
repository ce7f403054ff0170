# certdesk/api/v1/approvals.py
from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from certdesk.api.deps import CurrentUser, get_db
from certdesk.core.rbac import require_super_admin
from certdesk.crud.certificate import certificate_crud
from certdesk.models.certificate import CertificateStatus
from certdesk.schemas.certificate import BulkApproveIn, BulkApproveOut, Certificate as CertificateOut

log = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_super_admin)])

@router.get("/", response_model=List[CertificateOut])
def list_pending(db: Session = Depends(get_db)):
    return [CertificateOut.model_validate(c) for c in certificate_crud.pending(db)]

@router.post("/approve", response_model=BulkApproveOut)
def approve_many(body: BulkApproveIn, db: Session = Depends(get_db)):
    approved, skipped = certificate_crud.approve_many(db, body.ids)
    return BulkApproveOut(approved=[c.id for c in approved], skipped=skipped)

@router.post("/{certificate_id}/approve", response_model=CertificateOut)
def approve(
    certificate_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_super_admin),
):
    cert = certificate_crud.get_or_404(db, certificate_id)
    cert = certificate_crud.set_status(db, cert, CertificateStatus.approved)
    log.info("%s approved %s", current.user.email, cert.certificate_no)
    return CertificateOut.model_validate(cert)

@router.post("/{certificate_id}/reject", response_model=CertificateOut)
def reject(
    certificate_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_super_admin),
):
    cert = certificate_crud.get_or_404(db, certificate_id)
    cert = certificate_crud.set_status(db, cert, CertificateStatus.rejected)
    log.info("%s rejected %s", current.user.email, cert.certificate_no)
    return CertificateOut.model_validate(cert)
