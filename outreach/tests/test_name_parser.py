from __future__ import annotations

import pytest

from outreach.app.services.name_parser import is_excluded_word, parse_full_name


def test_three_words_fill_last_first_and_middle_names():
    parsed = parse_full_name("Иванов Иван Иванович")

    assert parsed.last_name == "Иванов"
    assert parsed.first_name == "Иван"
    assert parsed.middle_name == "Иванович"


def test_single_word_is_the_last_name():
    parsed = parse_full_name("  Петров ")

    assert parsed.last_name == "Петров"
    assert parsed.first_name is None
    assert parsed.middle_name is None


def test_two_words_leave_middle_name_empty():
    parsed = parse_full_name("Петров   Пётр")

    assert (parsed.last_name, parsed.first_name, parsed.middle_name) == ("Петров", "Пётр", None)


def test_patronymic_suffix_is_dropped():
    parsed = parse_full_name("Алиев Рашид Ахмед оглы")

    assert (parsed.last_name, parsed.first_name, parsed.middle_name) == ("Алиев", "Рашид", "Ахмед")


def test_longer_names_keep_their_first_three_words():
    parsed = parse_full_name("Сидоров Олег Павлович Младший")

    assert (parsed.last_name, parsed.first_name, parsed.middle_name) == (
        "Сидоров",
        "Олег",
        "Павлович",
    )


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_blank_input_gives_empty_name(raw):
    parsed = parse_full_name(raw)

    assert parsed.is_empty
    assert parsed.last_name is None


def test_excluded_words_are_case_insensitive():
    assert is_excluded_word("КЫЗЫ")
    assert is_excluded_word("Оглы")
    assert not is_excluded_word("Иванович")
    assert not is_excluded_word(None)
