# certdesk/core/tokens.py
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt, JWTError
from certdesk.core.config import settings

ALGO = settings.ALGORITHM

def _now() -> datetime:
    return datetime.now(timezone.utc)

def _exp(minutes: int = 15) -> datetime:
    return _now() + timedelta(minutes=minutes)

def _exp_days(days: int) -> datetime:
    return _now() + timedelta(days=days)

def new_session_id() -> str:
    return uuid.uuid4().hex

def create_access_token(*, sub: str, sid: str, role: str | None = None) -> str:
    """Access token curto (minutos). `sid` identifica a sessão aberta no login."""
    payload: Dict[str, Any] = {
        "type": "access",
        "sub": sub,
        "sid": sid,
        "role": role,
        "jti": uuid.uuid4().hex,
        "iat": int(_now().timestamp()),
        "exp": int(_exp(settings.ACCESS_TOKEN_EXPIRE_MINUTES).timestamp()),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGO)

def create_refresh_token(*, sub: str, sid: str) -> str:
    """Refresh longo (dias), mesma sessão do access."""
    payload: Dict[str, Any] = {
        "type": "refresh",
        "sub": sub,
        "sid": sid,
        "jti": uuid.uuid4().hex,
        "iat": int(_now().timestamp()),
        "exp": int(_exp_days(settings.REFRESH_TOKEN_EXPIRE_DAYS).timestamp()),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGO)

def _decode(token: str, expected_type: str) -> Optional[Dict[str, Any]]:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGO])
    except JWTError:
        return None
    if not isinstance(payload, dict):
        return None
    if payload.get("type") != expected_type:
        return None
    if not payload.get("sub") or not payload.get("sid") or not payload.get("jti"):
        return None
    return payload

def decode_refresh(token: str) -> Optional[Dict[str, Any]]:
    return _decode(token, "refresh")

def decode_access(token: str) -> Optional[Dict[str, Any]]:
    return _decode(token, "access")
