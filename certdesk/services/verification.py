# certdesk/services/verification.py
from __future__ import annotations

import logging
import re
from typing import Optional, Protocol

from certdesk.core.config import settings
from certdesk.core.errors import CertificateNotFound, CertificateValidationError
from certdesk.models.certificate import Certificate, CertificateStatus

log = logging.getLogger(__name__)

# .../25-26-001 (legado) -> .../25-26/001
_LEGACY_SUFFIX = re.compile(r"^(?P<head>.*/)?(?P<segment>\d{2}-\d{2})-(?P<seq>\d{3,})$")

NOT_FOUND_MESSAGE = (
    "Certificate number not found in our records. "
    "Please check the number or contact support."
)


class VerificationStore(Protocol):
    def find_exact(self, certificate_no: str) -> Optional[Certificate]: ...

    def find_case_insensitive(self, certificate_no: str) -> Optional[Certificate]: ...


def normalize_certificate_number(value: Optional[str]) -> str:
    return re.sub(r"\s+", "", f"{value or ''}".strip().upper())


def _prefix_segment_count(prefix: Optional[str] = None) -> int:
    return len((prefix if prefix is not None else settings.CERT_PREFIX).split("/"))


def convert_legacy_hyphens(value: str, prefix: Optional[str] = None) -> str:
    """Sem nenhuma '/', os N primeiros hífens (N = segmentos do prefixo) viram '/'."""
    if not value or "/" in value:
        return value
    remaining = _prefix_segment_count(prefix)
    out = []
    for ch in value:
        if ch == "-" and remaining > 0:
            out.append("/")
            remaining -= 1
        else:
            out.append(ch)
    return "".join(out)


def to_canonical_certificate(value: Optional[str], prefix: Optional[str] = None) -> str:
    normalized = normalize_certificate_number(value)
    if not normalized:
        return ""
    canonical = convert_legacy_hyphens(normalized, prefix)
    m = _LEGACY_SUFFIX.match(canonical)
    if m:
        canonical = f"{m['head'] or ''}{m['segment']}/{m['seq']}"
    return canonical


def verify_certificate(store: VerificationStore, raw: Optional[str], *, only_approved: bool = True) -> Certificate:
    """Busca exata pelo número canônico; se nada, busca sem diferenciar maiúsculas."""
    number = to_canonical_certificate(raw)
    if not number:
        raise CertificateValidationError("Enter a certificate number to proceed.")

    cert = store.find_exact(number)
    if cert is None:
        cert = store.find_case_insensitive(number)

    if cert is None or (only_approved and cert.status != CertificateStatus.approved.value):
        log.info("verification miss for %s", number)
        raise CertificateNotFound(NOT_FOUND_MESSAGE, details={"certificate_no": number})
    return cert
