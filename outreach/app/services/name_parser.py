"""Splitting of full-name cells into last, first and middle names."""

from __future__ import annotations

import logging
from typing import Optional

from ..schemas import ParsedName

LOGGER = logging.getLogger(__name__)

# Patronymic suffixes written as a separate fourth word ("Алиев Рашид Ахмед оглы").
EXCLUDED_WORDS = frozenset(
    {
        "оглы",
        "оглу",
        "оглыу",
        "кызы",
        "кызыу",
        "огли",
        "оглиу",
        "кызи",
        "кызиу",
    }
)


def is_excluded_word(word: Optional[str]) -> bool:
    return bool(word) and word.lower() in EXCLUDED_WORDS


def parse_full_name(full_name: Optional[str]) -> ParsedName:
    """Return the name components of ``full_name``.

    One word is a last name, two are last and first, three add the middle name.
    Longer names keep their first three words whether or not the fourth one is
    a patronymic suffix.
    """

    if not full_name or not isinstance(full_name, str):
        return ParsedName()

    words = full_name.split()
    if not words:
        return ParsedName()

    if len(words) > 3:
        if is_excluded_word(words[3]):
            LOGGER.debug("Dropping patronymic suffix %r", words[3])
        # TODO: confirm whether a non-suffix fourth word belongs in the middle name.
        words = words[:3]

    padded = (words + [None, None, None])[:3]
    return ParsedName(last_name=padded[0], first_name=padded[1], middle_name=padded[2])


__all__ = ["EXCLUDED_WORDS", "is_excluded_word", "parse_full_name"]
