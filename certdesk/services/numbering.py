# certdesk/services/numbering.py
from __future__ import annotations

import datetime as dt
import logging
import re
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from certdesk.core.config import settings
from certdesk.core.errors import ConfigurationError, SequenceExhaustedError

log = logging.getLogger(__name__)

# .../059 ou ...-059 no fim; fallback: só dígitos no fim (3+)
_SEQUENCE_PATTERNS = (
    re.compile(r"[/-](\d{3,})$"),
    re.compile(r"(\d{3,})$"),
)
_SHORT_SEGMENT = re.compile(r"^\d{2}-\d{2}$")
_FULL_SEGMENT = re.compile(r"^(\d{4})-(\d{4})$")
_SINGLE_YEAR = re.compile(r"^(\d{4})$")


class CertificateNumberStore(Protocol):
    """O que o alocador precisa do armazenamento (implementado por crud.certificate)."""

    def list_certificate_numbers(self, patterns: Optional[Sequence[str]] = None) -> List[str]: ...

    def certificate_number_exists(self, certificate_no: str) -> bool: ...


def _prefix(prefix: Optional[str]) -> str:
    value = (prefix if prefix is not None else settings.CERT_PREFIX).strip()
    if not value:
        raise ConfigurationError("Certificate prefix is not configured (CERT_PREFIX).")
    return value


def _year_segment(year_segment: Optional[str]) -> str:
    return (year_segment or settings.CERT_YEAR_SEGMENT).strip()


def extract_sequence_number(certificate_no: Optional[str]) -> int:
    if not certificate_no:
        return 0
    for pattern in _SEQUENCE_PATTERNS:
        m = pattern.search(certificate_no)
        if m:
            seq = int(m.group(1))
            if seq > 0:
                return seq
    return 0


def make_certificate_number(sequence, year_segment: Optional[str] = None, prefix: Optional[str] = None) -> str:
    try:
        seq = int(sequence)
    except (TypeError, ValueError):
        seq = 0
    return f"{_prefix(prefix)}/{_year_segment(year_segment)}/{seq:03d}"


def normalize_academic_year_segment(academic_year: Optional[str]) -> Optional[str]:
    """'25-26' fica igual; '2025-2028' -> '25-28'; '2025' -> '25-26'; resto -> None."""
    if not academic_year or not academic_year.strip():
        return None
    value = academic_year.strip()
    if _SHORT_SEGMENT.match(value):
        return value
    m = _FULL_SEGMENT.match(value)
    if m:
        return f"{m.group(1)[-2:]}-{m.group(2)[-2:]}"
    m = _SINGLE_YEAR.match(value)
    if m:
        year = int(m.group(1))
        return f"{str(year)[-2:]}-{str(year + 1)[-2:]}"
    return None


def academic_year_segment_for(day: dt.date) -> str:
    return f"{str(day.year)[-2:]}-{str(day.year + 1)[-2:]}"


def highest_sequence(numbers: Iterable[Optional[str]]) -> int:
    return max((extract_sequence_number(n) for n in numbers), default=0)


def segment_patterns(prefix: str, year_segment: str) -> List[str]:
    # formato atual (barra) e legado (hífen antes da sequência)
    return [f"{prefix}/{year_segment}/%", f"{prefix}/{year_segment}-%"]


def next_unique_sequence(
    store: CertificateNumberStore,
    *,
    prefix: Optional[str] = None,
    year_segment: Optional[str] = None,
    use_global: bool = False,
    max_attempts: Optional[int] = None,
    start: Optional[int] = None,
) -> int:
    """
    Próxima sequência livre: max(existentes) + 1, depois sonda o armazenamento
    e incrementa enquanto o número já existir. Otimista, sem transação.
    """
    prefix = _prefix(prefix)
    year_segment = _year_segment(year_segment)
    attempts_allowed = max_attempts if max_attempts is not None else settings.CERT_SEQUENCE_MAX_ATTEMPTS

    if start is not None:
        candidate = start
    else:
        patterns = None if use_global else segment_patterns(prefix, year_segment)
        numbers = store.list_certificate_numbers(patterns)
        current_max = highest_sequence(numbers)
        candidate = current_max + 1
        log.info(
            "found %d existing certificate numbers (global=%s), highest sequence %d",
            len(numbers), use_global, current_max,
        )

    attempts = 0
    while attempts < attempts_allowed:
        number = make_certificate_number(candidate, year_segment, prefix)
        if not store.certificate_number_exists(number):
            return candidate
        log.warning("certificate number %s already taken, trying next sequence", number)
        candidate += 1
        attempts += 1

    raise SequenceExhaustedError(attempts_allowed)


class SequenceAllocator:
    """
    Alocador por requisição (upload em lote): guarda a próxima sequência por
    segmento de ano para que linhas do mesmo upload não colidam entre si.
    """

    def __init__(
        self,
        store: CertificateNumberStore,
        *,
        prefix: Optional[str] = None,
        use_global: bool = True,
        max_attempts: Optional[int] = None,
    ):
        self.store = store
        self.prefix = _prefix(prefix)
        self.use_global = use_global
        self.max_attempts = max_attempts
        self._next: Dict[str, int] = {}

    def allocate(self, year_segment: Optional[str] = None) -> str:
        segment = _year_segment(year_segment)
        seq = next_unique_sequence(
            self.store,
            prefix=self.prefix,
            year_segment=segment,
            use_global=self.use_global,
            max_attempts=self.max_attempts,
            start=self._next.get(segment),
        )
        self._next[segment] = seq + 1
        return make_certificate_number(seq, segment, self.prefix)

    def peek(self, year_segment: Optional[str] = None) -> str:
        segment = _year_segment(year_segment)
        seq = next_unique_sequence(
            self.store,
            prefix=self.prefix,
            year_segment=segment,
            use_global=self.use_global,
            max_attempts=self.max_attempts,
            start=self._next.get(segment),
        )
        return make_certificate_number(seq, segment, self.prefix)
