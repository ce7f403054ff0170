from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from certdesk.db.session import SessionLocal, get_db
from certdesk.models.tokens import RefreshToken
from certdesk.models.user import User
from certdesk.core.tokens import decode_access
from certdesk.services.roles import RoleResolver, lookup_role, role_resolver

__all__ = ["CurrentUser", "get_db", "get_bearer_token", "get_role_resolver", "get_session_factory", "get_current_user"]

@dataclass
class CurrentUser:
    user: User
    role: Optional[str]
    session_id: str

    @property
    def id(self) -> int:
        return self.user.id

# ----------------------------------------------------------------------
# Lê o Bearer do header Authorization (sem usar OAuth2PasswordBearer)
# ----------------------------------------------------------------------
def get_bearer_token(authorization: str = Header(None, alias="Authorization")) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid Authorization header")
    return parts[1]

def get_role_resolver() -> RoleResolver:
    return role_resolver

# a consulta de papel roda em outra thread e abre a própria sessão
def get_session_factory() -> Callable[[], Session]:
    return SessionLocal

# ----------------------------------------------------------------------
# Usuário atual + papel resolvido (consulta com timeout, cache por sessão)
# ----------------------------------------------------------------------
def get_current_user(
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db),
    resolver: RoleResolver = Depends(get_role_resolver),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
) -> CurrentUser:
    payload = decode_access(token)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid token")
    email = (payload.get("sub") or "").lower()

    user = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")

    # sessão encerrada no logout: nenhum refresh ativo para o sid
    active = db.execute(
        select(RefreshToken.id)
        .where(RefreshToken.session_id == payload["sid"], RefreshToken.revoked_at.is_(None))
        .limit(1)
    ).first()
    if active is None:
        raise HTTPException(status_code=401, detail="Session ended. Please sign in again.")

    user_id = user.id
    role = resolver.resolve(payload["sid"], lambda: lookup_role(session_factory, user_id))
    if not role:
        raise HTTPException(status_code=403, detail="No admin role assigned to this account")
    return CurrentUser(user=user, role=role, session_id=payload["sid"])
