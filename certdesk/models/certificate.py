from enum import Enum
from datetime import date, datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Date, DateTime, func
from certdesk.db.base import Base

class CertificateStatus(str, Enum):
    pending_approval = "pending_approval"
    approved = "approved"
    rejected = "rejected"

class IssuanceMode(str, Enum):
    online = "online"
    offline = "offline"

# pending_approval -> approved | rejected; os dois são terminais
ALLOWED_TRANSITIONS = {
    CertificateStatus.pending_approval: {CertificateStatus.approved, CertificateStatus.rejected},
    CertificateStatus.approved: set(),
    CertificateStatus.rejected: set(),
}

class Certificate(Base):
    __tablename__ = "certificates"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    sno: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    certificate_no: Mapped[str] = mapped_column(String(64), unique=True, index=True)

    name: Mapped[str] = mapped_column(String(160))
    roll_no: Mapped[str] = mapped_column(String(40))
    email: Mapped[str] = mapped_column(String(160))
    phone: Mapped[str] = mapped_column(String(30))
    department: Mapped[str] = mapped_column(String(120))
    academic_year: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    course_name: Mapped[str] = mapped_column(String(200))
    location_or_institution: Mapped[str] = mapped_column(String(200))
    location: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    mode: Mapped[str] = mapped_column(String(10))
    issued_by: Mapped[str] = mapped_column(String(160))
    date_issued: Mapped[date] = mapped_column(Date)
    qr_code_url: Mapped[str] = mapped_column(String(255))

    status: Mapped[str] = mapped_column(String(20), default=CertificateStatus.pending_approval.value, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def can_transition_to(self, target: CertificateStatus) -> bool:
        return CertificateStatus(target) in ALLOWED_TRANSITIONS[CertificateStatus(self.status)]
