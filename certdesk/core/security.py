# certdesk/core/security.py
from __future__ import annotations
from typing import Tuple
from passlib.context import CryptContext

# argon2 para hashes novos; bcrypt só para verificar hashes antigos
pwd_context = CryptContext(
    schemes=["argon2", "bcrypt"],
    deprecated=["bcrypt"],
    argon2__time_cost=2,
    argon2__memory_cost=19456,
    argon2__parallelism=1,
)

MIN_PASSWORD = 8
MAX_PASSWORD = 128

def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()

def password_policy_ok(password: str | None) -> bool:
    return isinstance(password, str) and MIN_PASSWORD <= len(password) <= MAX_PASSWORD

def hash_password(plain: str) -> str:
    return pwd_context.hash(plain)

def verify_password(plain: str, stored_hash: str) -> Tuple[bool, str | None]:
    """(ok, novo_hash): novo_hash vem preenchido quando o esquema está defasado."""
    if not stored_hash:
        return False, None
    ok = pwd_context.verify(plain, stored_hash)
    if not ok:
        return False, None
    if pwd_context.needs_update(stored_hash):
        return True, pwd_context.hash(plain)
    return True, None
