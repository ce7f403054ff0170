import pytest

from certdesk.core.errors import ConfigurationError, SequenceExhaustedError
from certdesk.services.numbering import (
    SequenceAllocator,
    academic_year_segment_for,
    extract_sequence_number,
    make_certificate_number,
    next_unique_sequence,
    normalize_academic_year_segment,
)


class MemoryStore:
    def __init__(self, numbers=(), hidden=()):
        self.numbers = list(numbers)
        # existem, mas não aparecem na listagem (ex.: inseridos por outra requisição)
        self.hidden = set(hidden)
        self.probes = []

    def list_certificate_numbers(self, patterns=None):
        if not patterns:
            return list(self.numbers)
        prefixes = [p.rstrip("%") for p in patterns]
        return [n for n in self.numbers if any(n.startswith(p) for p in prefixes)]

    def certificate_number_exists(self, certificate_no):
        self.probes.append(certificate_no)
        return certificate_no in self.numbers or certificate_no in self.hidden


@pytest.mark.parametrize("n", [1, 42, 999, 1000, 12345])
def test_extract_inverts_make(n):
    assert extract_sequence_number(make_certificate_number(n)) == n


@pytest.mark.parametrize(
    "value,expected",
    [
        ("DARE/AIR/LP/25-26/059", 59),
        ("DARE/AIR/LP/25-26-059", 59),
        ("CERT0042", 42),
        ("DARE/AIR/LP/25-26/12", 0),
        ("", 0),
        (None, 0),
        ("DARE/AIR/LP/25-26/000", 0),
    ],
)
def test_extract_sequence_number(value, expected):
    assert extract_sequence_number(value) == expected


def test_make_certificate_number_pads_to_three_digits():
    assert make_certificate_number(1) == "DARE/AIR/LP/25-26/001"
    assert make_certificate_number(1234, "26-27") == "DARE/AIR/LP/26-27/1234"
    assert make_certificate_number(7, "24-25", prefix="ACME") == "ACME/24-25/007"


def test_blank_prefix_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        make_certificate_number(1, prefix="  ")


@pytest.mark.parametrize(
    "value,expected",
    [
        ("25-26", "25-26"),
        ("2025-2026", "25-26"),
        ("2025-2028", "25-28"),
        ("2025", "25-26"),
        ("next year", None),
        ("", None),
        (None, None),
    ],
)
def test_normalize_academic_year_segment(value, expected):
    assert normalize_academic_year_segment(value) == expected


def test_academic_year_segment_for_date():
    import datetime as dt

    assert academic_year_segment_for(dt.date(2025, 7, 1)) == "25-26"


def test_next_sequence_is_max_plus_one():
    store = MemoryStore(["DARE/AIR/LP/25-26/001", "DARE/AIR/LP/25-26/002", "DARE/AIR/LP/25-26/005"])
    assert next_unique_sequence(store) == 6


def test_next_sequence_reads_both_separators():
    store = MemoryStore(["DARE/AIR/LP/25-26-007", "DARE/AIR/LP/25-26/003"])
    assert next_unique_sequence(store) == 8


def test_segment_scope_ignores_other_years_unless_global():
    store = MemoryStore(["DARE/AIR/LP/24-25/040", "DARE/AIR/LP/25-26/002"])
    assert next_unique_sequence(store, year_segment="25-26") == 3
    assert next_unique_sequence(store, year_segment="25-26", use_global=True) == 41


def test_empty_store_starts_at_one():
    assert next_unique_sequence(MemoryStore()) == 1


def test_collision_retries_with_next_sequence():
    store = MemoryStore(["DARE/AIR/LP/25-26/001"], hidden={"DARE/AIR/LP/25-26/002"})
    assert next_unique_sequence(store) == 3
    assert store.probes == ["DARE/AIR/LP/25-26/002", "DARE/AIR/LP/25-26/003"]


def test_gives_up_after_bounded_attempts():
    store = MemoryStore(hidden={make_certificate_number(i) for i in range(1, 10)})
    with pytest.raises(SequenceExhaustedError) as exc:
        next_unique_sequence(store, max_attempts=3)
    assert len(store.probes) == 3
    assert "after 3 attempts" in exc.value.message


def test_allocator_hands_out_consecutive_numbers_without_writes():
    store = MemoryStore(["DARE/AIR/LP/25-26/010"])
    allocator = SequenceAllocator(store)
    assert allocator.peek() == "DARE/AIR/LP/25-26/011"
    assert allocator.allocate() == "DARE/AIR/LP/25-26/011"
    assert allocator.allocate() == "DARE/AIR/LP/25-26/012"
    assert allocator.peek() == "DARE/AIR/LP/25-26/013"
