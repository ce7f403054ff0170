# certdesk/api/v1/auth.py
from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import APIRouter, Depends, HTTPException, Body, Query
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from sqlalchemy import select, update

from certdesk.api.deps import CurrentUser, get_db, get_current_user, get_role_resolver, get_session_factory
from certdesk.core.security import normalize_email, password_policy_ok, verify_password
from certdesk.core.tokens import create_access_token, create_refresh_token, decode_refresh, new_session_id
from certdesk.models.admin_role import ROLE_SUPER_ADMIN
from certdesk.models.tokens import RefreshToken
from certdesk.models.user import User
from certdesk.schemas.token import AuthResponse
from certdesk.schemas.user import LoginIn, UserOut
from certdesk.services.roles import RoleResolver, lookup_role

log = logging.getLogger(__name__)

router = APIRouter()

# ---------- helpers ----------
def _authenticate(db: Session, email: str, password: str) -> User:
    email = normalize_email(email)
    if not email or not password_policy_ok(password):
        raise HTTPException(status_code=401, detail="Invalid credentials.")
    user = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="Invalid credentials.")
    ok, new_hash = verify_password(password, user.hashed_password)
    if not ok:
        raise HTTPException(status_code=401, detail="Invalid credentials.")
    if new_hash:
        user.hashed_password = new_hash
        db.add(user); db.commit()
    return user

def _store_refresh(db: Session, token: str) -> None:
    payload = decode_refresh(token)
    db.add(RefreshToken(
        jti=payload["jti"],
        session_id=payload["sid"],
        user_email=payload["sub"],
        issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    ))

def _open_session(
    db: Session,
    user: User,
    resolver: RoleResolver,
    session_factory: Callable[[], Session],
    *,
    required_role: Optional[str] = None,
) -> AuthResponse:
    sid = new_session_id()
    user_id = user.id
    role = resolver.resolve(sid, lambda: lookup_role(session_factory, user_id))
    if not role:
        resolver.forget(sid)
        raise HTTPException(status_code=403, detail="Access denied. This account has no admin role.")
    if required_role and role != required_role:
        resolver.forget(sid)
        raise HTTPException(status_code=403, detail="Access denied. Super admin privileges required.")

    access = create_access_token(sub=user.email, sid=sid, role=role)
    refresh = create_refresh_token(sub=user.email, sid=sid)
    _store_refresh(db, refresh)
    db.commit()
    log.info("session opened for %s (role=%s)", user.email, role)
    return AuthResponse(
        access_token=access,
        refresh_token=refresh,
        user=UserOut(id=user.id, name=user.name, email=user.email, is_active=user.is_active, role=role),
    )

def _get_token_from_body_or_query(token_body: str | None, token_query: str | None) -> str:
    tok = token_body or token_query
    if not tok:
        raise HTTPException(status_code=422, detail=[{"loc": ["token"], "msg": "Field required", "type": "value_error.missing"}])
    return tok

def _revoke_session(db: Session, sid: str) -> int:
    now = datetime.now(timezone.utc)
    result = db.execute(
        update(RefreshToken)
        .where(RefreshToken.session_id == sid, RefreshToken.revoked_at.is_(None))
        .values(revoked_at=now)
    )
    db.commit()
    return result.rowcount or 0

# ---------- endpoints ----------
@router.post("/login", response_model=AuthResponse)
def login(
    body: LoginIn,
    db: Session = Depends(get_db),
    resolver: RoleResolver = Depends(get_role_resolver),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
):
    user = _authenticate(db, body.email, body.password)
    return _open_session(db, user, resolver, session_factory)

@router.post("/super-admin/login", response_model=AuthResponse)
def login_super_admin(
    body: LoginIn,
    db: Session = Depends(get_db),
    resolver: RoleResolver = Depends(get_role_resolver),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
):
    user = _authenticate(db, body.email, body.password)
    return _open_session(db, user, resolver, session_factory, required_role=ROLE_SUPER_ADMIN)

@router.post("/token", response_model=AuthResponse)
def login_oauth2_form(
    form: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
    resolver: RoleResolver = Depends(get_role_resolver),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
):
    user = _authenticate(db, form.username, form.password or "")
    return _open_session(db, user, resolver, session_factory)

@router.post("/refresh", response_model=AuthResponse)
def refresh(
    token: str | None = Body(default=None, embed=True),        # {"token":"<refresh>"}
    token_q: str | None = Query(default=None, alias="token"),  # ?token=<refresh>
    db: Session = Depends(get_db),
    resolver: RoleResolver = Depends(get_role_resolver),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
):
    tok = _get_token_from_body_or_query(token, token_q)
    payload = decode_refresh(tok)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid token")

    row = db.execute(select(RefreshToken).where(RefreshToken.jti == payload["jti"])).scalar_one_or_none()
    if not row or row.revoked_at is not None:
        raise HTTPException(status_code=401, detail="Session ended. Please sign in again.")

    user = db.execute(select(User).where(User.email == payload["sub"])).scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="Invalid token")

    sid = payload["sid"]
    user_id = user.id
    role = resolver.resolve(sid, lambda: lookup_role(session_factory, user_id))
    if not role:
        raise HTTPException(status_code=403, detail="Access denied. This account has no admin role.")

    # rotação: revoga o refresh usado, emite outro na mesma sessão
    row.revoked_at = datetime.now(timezone.utc)
    db.add(row)
    new_refresh = create_refresh_token(sub=user.email, sid=sid)
    _store_refresh(db, new_refresh)
    db.commit()
    return AuthResponse(
        access_token=create_access_token(sub=user.email, sid=sid, role=role),
        refresh_token=new_refresh,
        user=UserOut(id=user.id, name=user.name, email=user.email, is_active=user.is_active, role=role),
    )

@router.post("/logout")
def logout(
    token: str | None = Body(default=None, embed=True),
    token_q: str | None = Query(default=None, alias="token"),
    db: Session = Depends(get_db),
    resolver: RoleResolver = Depends(get_role_resolver),
):
    tok = _get_token_from_body_or_query(token, token_q)
    payload = decode_refresh(tok)
    if payload:
        revoked = _revoke_session(db, payload["sid"])
        resolver.forget(payload["sid"])
        log.info("session closed for %s (%d refresh tokens revoked)", payload["sub"], revoked)
    return {"ok": True}

@router.get("/me", response_model=UserOut)
def me(current: CurrentUser = Depends(get_current_user)):
    u = current.user
    return UserOut(id=u.id, name=u.name, email=u.email, is_active=u.is_active, role=current.role)
