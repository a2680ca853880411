"""Extraction and normalization of phone numbers from raw spreadsheet cells."""

from __future__ import annotations

import logging
import re
from typing import Callable, Iterable, Optional

import phonenumbers
from phonenumbers import NumberParseException, PhoneNumberFormat

from ..schemas import ParsedPhone

LOGGER = logging.getLogger(__name__)

DEFAULT_REGION = "RU"
RUSSIAN_PREFIXES = ("+7", "7", "8")

_NUMBER_PATTERN = re.compile(r"(?<![\d+])(?:\+?7|8)[\d\s\-()]+")
_BARE_SEVEN_PATTERN = re.compile(r"^7[\d\s\-()]")
_WHITESPACE_PATTERN = re.compile(r"\s+")
_NON_DIGIT_PATTERN = re.compile(r"[^\d+]")
_TEN_DIGITS_PATTERN = re.compile(r"^\d{10}$")

Pass = Callable[[str], Optional[str]]


def _split_candidates(raw: str) -> list[str]:
    """Break a cell into the substrings that look like individual numbers."""

    comma_parts = [part.strip() for part in raw.split(",") if part.strip()]
    if len(comma_parts) > 1:
        return comma_parts

    matches = [match.group(0).strip() for match in _NUMBER_PATTERN.finditer(raw)]
    matches = [match for match in matches if match]
    if matches:
        return matches

    stripped = raw.strip()
    return [stripped] if stripped else []


def _normalize_russian(value: str) -> str:
    cleaned = _NON_DIGIT_PATTERN.sub("", value)
    if cleaned.startswith("8") and len(cleaned) == 11:
        return f"+7{cleaned[1:]}"
    if cleaned.startswith("7") and len(cleaned) == 11:
        return f"+{cleaned}"
    if cleaned.startswith("+7"):
        return cleaned
    if _TEN_DIGITS_PATTERN.match(cleaned):
        return f"+7{cleaned}"
    return cleaned


def _rewrite_digits(digits: str) -> str:
    if digits.startswith("8") and len(digits) == 11:
        return f"+7{digits[1:]}"
    if digits.startswith("7") and len(digits) == 11:
        return f"+{digits}"
    if not digits.startswith("+") and len(digits) >= 10:
        if digits.startswith("7"):
            return f"+{digits}"
        if len(digits) == 10:
            return f"+7{digits}"
    return digits


def build_variants(candidate: str) -> list[str]:
    """Return the ordered, de-duplicated rewrites tried for ``candidate``."""

    cleaned = _WHITESPACE_PATTERN.sub(" ", candidate).strip()
    variants = [cleaned]

    if cleaned.startswith("8"):
        variants.append(f"+7{cleaned[1:]}")
    if _BARE_SEVEN_PATTERN.match(cleaned):
        variants.append(f"+{cleaned}")

    russian = _normalize_russian(cleaned)
    if russian != cleaned:
        variants.append(russian)

    digits = _NON_DIGIT_PATTERN.sub("", cleaned)
    if digits:
        rewritten = _rewrite_digits(digits)
        if digits != cleaned:
            variants.append(digits)
        if rewritten not in (digits, cleaned):
            variants.append(rewritten)

    return list(dict.fromkeys(variants))


def _parse(variant: str, region: Optional[str]) -> Optional[phonenumbers.PhoneNumber]:
    try:
        return phonenumbers.parse(variant, region)
    except NumberParseException:
        return None


def _format(number: phonenumbers.PhoneNumber) -> str:
    return phonenumbers.format_number(number, PhoneNumberFormat.E164)


def _valid_for_region(region: Optional[str]) -> Pass:
    def _check(variant: str) -> Optional[str]:
        number = _parse(variant, region)
        if number is None or not phonenumbers.is_valid_number(number):
            return None
        return _format(number)

    return _check


def _lenient_russian_region(variant: str) -> Optional[str]:
    number = _parse(variant, DEFAULT_REGION)
    if number is None or not phonenumbers.is_possible_number(number):
        return None
    if phonenumbers.region_code_for_country_code(number.country_code) != DEFAULT_REGION:
        return None
    return _format(number)


def _lenient_russian_shape(variant: str) -> Optional[str]:
    number = _parse(variant, None)
    if number is None or not phonenumbers.is_possible_number(number):
        return None
    region = phonenumbers.region_code_for_country_code(number.country_code)
    if region != DEFAULT_REGION and not variant.startswith(RUSSIAN_PREFIXES):
        return None
    return _format(number)


STRICT_PASSES: tuple[Pass, ...] = (
    _valid_for_region(DEFAULT_REGION),
    _valid_for_region(None),
)
LENIENT_PASSES: tuple[Pass, ...] = (
    _lenient_russian_region,
    _lenient_russian_shape,
)


def _first_match(variants: Iterable[str], passes: Iterable[Pass]) -> Optional[str]:
    passes = tuple(passes)
    for variant in variants:
        for check in passes:
            formatted = check(variant)
            if formatted is not None:
                return formatted
    return None


def structural_fallback(candidate: str) -> Optional[str]:
    """Accept Russian-looking numbers by prefix and length alone."""

    digits = _NON_DIGIT_PATTERN.sub("", candidate)
    if digits.startswith("+7") and len(digits) == 12:
        return digits
    if digits.startswith("8") and len(digits) == 11:
        return f"+7{digits[1:]}"
    if digits.startswith("7") and len(digits) == 11:
        return f"+{digits}"
    return None


def parse_candidate(candidate: str, *, lenient: bool = True) -> ParsedPhone:
    """Normalize a single number-like substring.

    Variants are tried in order through each validation pass and the first hit
    wins. With ``lenient`` enabled, numbers the metadata rejects are still
    accepted when they parse as Russian or have a Russian shape.
    """

    passes = STRICT_PASSES + LENIENT_PASSES if lenient else STRICT_PASSES
    normalized = _first_match(build_variants(candidate), passes)
    if normalized is None and lenient:
        normalized = structural_fallback(candidate)

    if normalized is None:
        LOGGER.debug("Unable to normalize phone candidate %r", candidate)
        return ParsedPhone(normalized=candidate, original=candidate, is_valid=False)
    return ParsedPhone(normalized=normalized, original=candidate, is_valid=True)


def parse_phones(raw: Optional[str], *, lenient: bool = True) -> list[ParsedPhone]:
    """Split ``raw`` into candidates and normalize each one to E.164.

    Invalid candidates are kept with ``is_valid=False`` and their original text
    as the normalized value.
    """

    if not raw or not isinstance(raw, str):
        return []
    return [parse_candidate(candidate, lenient=lenient) for candidate in _split_candidates(raw)]


def normalize_phone(raw: Optional[str], *, lenient: bool = True) -> Optional[str]:
    """Return the first valid normalized number, else the first candidate."""

    parsed = parse_phones(raw, lenient=lenient)
    if not parsed:
        return None
    for phone in parsed:
        if phone.is_valid:
            return phone.normalized
    return parsed[0].normalized


def valid_numbers(phones: Iterable[ParsedPhone]) -> list[str]:
    """Distinct normalized values of the valid entries, in input order."""

    return list(dict.fromkeys(phone.normalized for phone in phones if phone.is_valid))


__all__ = [
    "build_variants",
    "normalize_phone",
    "parse_candidate",
    "parse_phones",
    "structural_fallback",
    "valid_numbers",
]
