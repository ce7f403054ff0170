# certdesk/db/init_db.py
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from certdesk.core.config import settings
from certdesk.core.security import hash_password, normalize_email
from certdesk.models.admin_role import AdminRole, ROLE_NAMES, ROLE_SUPER_ADMIN
from certdesk.models.user import User

log = logging.getLogger(__name__)

def ensure_user(db: Session, *, email: str, password: str, role: str, name: Optional[str] = None) -> User:
    """Cria (ou atualiza o papel de) um usuário administrativo."""
    if role not in ROLE_NAMES:
        raise ValueError(f"Unknown role '{role}'. Expected one of: {', '.join(ROLE_NAMES)}")
    email = normalize_email(email)
    user = db.scalar(select(User).where(User.email == email))
    if not user:
        user = User(name=name or email.split("@")[0], email=email, hashed_password=hash_password(password))
        db.add(user); db.flush()
        log.info("created user %s", email)
    if user.admin_role is None:
        user.admin_role = AdminRole(role=role)
    else:
        user.admin_role.role = role
    db.commit(); db.refresh(user)
    return user

def init_db(db: Session) -> None:
    # super admin inicial só quando as variáveis existem
    if not (settings.SUPERADMIN_EMAIL and settings.SUPERADMIN_PASSWORD):
        return
    email = normalize_email(settings.SUPERADMIN_EMAIL)
    if db.scalar(select(User.id).where(User.email == email)):
        return
    ensure_user(db, email=email, password=settings.SUPERADMIN_PASSWORD, role=ROLE_SUPER_ADMIN, name="Super Admin")
