from __future__ import annotations

import pytest

from outreach.app.services.phone_parser import (
    build_variants,
    normalize_phone,
    parse_candidate,
    parse_phones,
    structural_fallback,
    valid_numbers,
)


@pytest.mark.parametrize(
    "raw",
    [
        "+79161234567",
        "+7 (916) 123-45-67",
        "89161234567",
        "8 916 123 45 67",
        "79161234567",
        "9161234567",
    ],
)
def test_russian_formats_normalize_to_e164(raw):
    parsed = parse_phones(raw)

    assert len(parsed) == 1
    assert parsed[0].is_valid
    assert parsed[0].normalized == "+79161234567"
    assert parsed[0].original == raw.strip()


def test_comma_separated_cell_yields_every_number():
    parsed = parse_phones("+79161234567, 8 903 123-45-67")

    assert [phone.normalized for phone in parsed] == ["+79161234567", "+79031234567"]
    assert all(phone.is_valid for phone in parsed)


def test_numbers_separated_by_other_text_are_found():
    parsed = parse_phones("моб. +79161234567 / раб. 89031234567")

    assert [phone.normalized for phone in parsed] == ["+79161234567", "+79031234567"]


def test_digit_run_is_not_split_on_inner_seven_or_eight():
    parsed = parse_phones("9168712345")

    assert len(parsed) == 1
    assert parsed[0].normalized == "+79168712345"


def test_unparseable_candidate_is_kept_as_invalid():
    parsed = parse_phones("12345")

    assert len(parsed) == 1
    assert parsed[0].is_valid is False
    assert parsed[0].normalized == "12345"
    assert parsed[0].original == "12345"


@pytest.mark.parametrize("raw", ["", "   ", None])
def test_blank_cells_produce_no_candidates(raw):
    assert parse_phones(raw) == []


def test_lenient_mode_accepts_russian_shaped_numbers_without_metadata_match():
    assert parse_candidate("+7 100 123 45 67", lenient=True).normalized == "+71001234567"
    assert parse_candidate("+7 100 123 45 67", lenient=True).is_valid

    strict = parse_candidate("+7 100 123 45 67", lenient=False)
    assert strict.is_valid is False
    assert strict.normalized == "+7 100 123 45 67"


def test_structural_fallback_checks_prefix_and_length():
    assert structural_fallback("8 (100) 123-45-67") == "+71001234567"
    assert structural_fallback("+7 100 123 45 67") == "+71001234567"
    assert structural_fallback("71001234567") == "+71001234567"
    assert structural_fallback("12345") is None
    assert structural_fallback("+1 202 555 0100") is None


def test_build_variants_starts_with_cleaned_input_and_has_no_duplicates():
    variants = build_variants("8  916 123 45 67")

    assert variants[0] == "8 916 123 45 67"
    assert "+79161234567" in variants
    assert len(variants) == len(set(variants))


def test_normalize_phone_prefers_first_valid_number():
    assert normalize_phone("abc, +79161234567") == "+79161234567"
    assert normalize_phone("12345") == "12345"
    assert normalize_phone("") is None


def test_valid_numbers_drops_invalid_and_repeated_entries():
    parsed = parse_phones("+79161234567, 89161234567, 12345")

    assert valid_numbers(parsed) == ["+79161234567"]
