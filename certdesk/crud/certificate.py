from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from certdesk.core.errors import CertificateNotFound, InvalidStatusTransition
from certdesk.crud.base import CRUDBase
from certdesk.models.certificate import Certificate, CertificateStatus

log = logging.getLogger(__name__)


class CRUDCertificate(CRUDBase[Certificate]):
    not_found = CertificateNotFound

    # ---------------- números ----------------

    def list_numbers(self, db: Session, patterns: Optional[Sequence[str]] = None) -> List[str]:
        stmt = select(Certificate.certificate_no)
        if patterns:
            stmt = stmt.where(or_(*[Certificate.certificate_no.like(p) for p in patterns]))
        return [n for (n,) in db.execute(stmt).all() if n]

    def number_exists(self, db: Session, certificate_no: str) -> bool:
        if not certificate_no or not certificate_no.strip():
            return False
        found = db.execute(
            select(Certificate.id).where(Certificate.certificate_no == certificate_no.strip().upper()).limit(1)
        ).first()
        return found is not None

    def get_by_number(self, db: Session, certificate_no: str) -> Optional[Certificate]:
        return db.execute(
            select(Certificate).where(Certificate.certificate_no == certificate_no)
        ).scalar_one_or_none()

    def get_by_number_ci(self, db: Session, certificate_no: str) -> Optional[Certificate]:
        return db.execute(
            select(Certificate)
            .where(func.lower(Certificate.certificate_no) == certificate_no.lower())
            .limit(1)
        ).scalars().first()

    # ---------------- listagem ----------------

    def search(
        self,
        db: Session,
        *,
        status: Optional[str] = None,
        q: Optional[str] = None,
        order: str = "certificate_no",
    ) -> List[Certificate]:
        stmt = select(Certificate)
        if status:
            stmt = stmt.where(Certificate.status == status)
        if q:
            like = f"%{q.strip()}%"
            stmt = stmt.where(
                (Certificate.name.ilike(like)) |
                (Certificate.email.ilike(like)) |
                (Certificate.certificate_no.ilike(like)) |
                (Certificate.roll_no.ilike(like))
            )
        if order == "newest":
            stmt = stmt.order_by(Certificate.created_at.desc(), Certificate.id.desc())
        else:
            stmt = stmt.order_by(Certificate.certificate_no.asc())
        return list(db.execute(stmt).scalars().all())

    def pending(self, db: Session) -> List[Certificate]:
        return self.search(db, status=CertificateStatus.pending_approval.value, order="newest")

    # ---------------- escrita ----------------

    def create_many(self, db: Session, rows: Iterable[Dict[str, Any]]) -> List[Certificate]:
        objs = [Certificate(**row) for row in rows]
        db.add_all(objs)
        db.commit()
        for o in objs:
            db.refresh(o)
        return objs

    def update_fields(self, db: Session, cert: Certificate, data: Dict[str, Any]) -> Certificate:
        data.pop("status", None)  # status só muda por aprovação/rejeição
        data["updated_at"] = datetime.now(timezone.utc)
        return self.update(db, cert, data)

    def set_status(self, db: Session, cert: Certificate, target: CertificateStatus) -> Certificate:
        if not cert.can_transition_to(target):
            raise InvalidStatusTransition(
                f"Certificate {cert.certificate_no} is '{cert.status}' and cannot become '{target.value}'.",
                details={"id": cert.id, "status": cert.status, "target": target.value},
            )
        cert.status = target.value
        cert.updated_at = datetime.now(timezone.utc)
        db.add(cert); db.commit(); db.refresh(cert)
        log.info("certificate %s -> %s", cert.certificate_no, target.value)
        return cert

    def approve_many(self, db: Session, ids: Sequence[int]) -> tuple[List[Certificate], List[int]]:
        rows = db.execute(select(Certificate).where(Certificate.id.in_(list(ids)))).scalars().all()
        found = {c.id: c for c in rows}
        approved: List[Certificate] = []
        skipped: List[int] = []
        now = datetime.now(timezone.utc)
        for cid in ids:
            c = found.get(cid)
            if c is None or not c.can_transition_to(CertificateStatus.approved):
                skipped.append(cid)
                continue
            c.status = CertificateStatus.approved.value
            c.updated_at = now
            approved.append(c)
        db.commit()
        for c in approved:
            db.refresh(c)
        log.info("bulk approval: %d approved, %d skipped", len(approved), len(skipped))
        return approved, skipped


certificate_crud = CRUDCertificate(Certificate)


class CertificateStore:
    """Adapta o CRUD ao protocolo do alocador (services.numbering) para uma sessão."""

    def __init__(self, db: Session, crud: CRUDCertificate = certificate_crud):
        self.db = db
        self.crud = crud

    def list_certificate_numbers(self, patterns: Optional[Sequence[str]] = None) -> List[str]:
        return self.crud.list_numbers(self.db, patterns)

    def certificate_number_exists(self, certificate_no: str) -> bool:
        return self.crud.number_exists(self.db, certificate_no)

    def find_exact(self, certificate_no: str) -> Optional[Certificate]:
        return self.crud.get_by_number(self.db, certificate_no)

    def find_case_insensitive(self, certificate_no: str) -> Optional[Certificate]:
        return self.crud.get_by_number_ci(self.db, certificate_no)
