# certdesk/api/v1/verify.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from certdesk.api.deps import get_db
from certdesk.crud.certificate import CertificateStore
from certdesk.schemas.certificate import CertificateVerification
from certdesk.services.verification import verify_certificate

# público: sem autenticação
router = APIRouter()

@router.get("", response_model=CertificateVerification)
def verify_by_query(
    certificate_no: str = Query("", description="Número do certificado"),
    db: Session = Depends(get_db),
):
    return CertificateVerification.model_validate(verify_certificate(CertificateStore(db), certificate_no))

@router.get("/{certificate_no:path}", response_model=CertificateVerification)
def verify_by_path(certificate_no: str, db: Session = Depends(get_db)):
    return CertificateVerification.model_validate(verify_certificate(CertificateStore(db), certificate_no))
