# certdesk/services/roles.py
from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Callable, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from certdesk.core.config import settings
from certdesk.core.errors import RoleUnavailable
from certdesk.models.admin_role import AdminRole

log = logging.getLogger(__name__)


def lookup_role(session_factory: Callable[[], Session], user_id: int) -> Optional[str]:
    # roda numa thread do pool: sessão própria, nunca a da requisição
    with session_factory() as db:
        return db.execute(select(AdminRole.role).where(AdminRole.user_id == user_id)).scalar_one_or_none()


class RoleCache:
    """
    Papel resolvido por sessão (sid do token). A entrada sai no logout, quando
    passa o ttl (vida do refresh token) ou quando o cache passa de max_size.
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        max_size: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds is None:
            ttl_seconds = settings.REFRESH_TOKEN_EXPIRE_DAYS * 86400
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._clock = clock
        self._roles: "OrderedDict[str, Tuple[str, float]]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            self._purge(self._clock())
            return len(self._roles)

    def _purge(self, now: float) -> None:
        # ordem de inserção == ordem de expiração (set move para o fim)
        while self._roles:
            sid, (_, expires) = next(iter(self._roles.items()))
            if expires > now:
                break
            del self._roles[sid]

    def get(self, session_id: str) -> Optional[str]:
        with self._lock:
            entry = self._roles.get(session_id)
            if entry is None:
                return None
            role, expires = entry
            if expires <= self._clock():
                del self._roles[session_id]
                return None
            return role

    def set(self, session_id: str, role: str) -> None:
        with self._lock:
            now = self._clock()
            self._roles.pop(session_id, None)
            self._roles[session_id] = (role, now + self.ttl_seconds)
            self._purge(now)
            while len(self._roles) > self.max_size:
                self._roles.popitem(last=False)

    def clear(self, session_id: str) -> None:
        with self._lock:
            self._roles.pop(session_id, None)


class RoleResolver:
    """
    Consulta o papel com tempo limite. Estourou o tempo: usa o papel em cache
    da sessão; sem cache, falha com RoleUnavailable.
    """

    def __init__(self, cache: Optional[RoleCache] = None, timeout: Optional[float] = None, max_workers: int = 4):
        self.cache = cache if cache is not None else RoleCache()
        self.timeout = timeout
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="role-lookup")

    def resolve(self, session_id: str, lookup: Callable[[], Optional[str]]) -> Optional[str]:
        timeout = self.timeout if self.timeout is not None else settings.ROLE_LOOKUP_TIMEOUT_SECONDS
        future = self._pool.submit(lookup)
        try:
            role = future.result(timeout=timeout)
        except FutureTimeout:
            cached = self.cache.get(session_id)
            if cached:
                log.warning("role lookup timed out after %.1fs; using cached role %s", timeout, cached)
                return cached
            log.error("role lookup timed out after %.1fs and no cached role for session", timeout)
            raise RoleUnavailable("Role check timeout. Please try again.")

        if role:
            self.cache.set(session_id, role)
        else:
            self.cache.clear(session_id)
        return role

    def forget(self, session_id: str) -> None:
        self.cache.clear(session_id)


role_resolver = RoleResolver()
