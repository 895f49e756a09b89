from datetime import datetime

import pytest

from utils.colors import BLUE, PURPLE, RED, progress_to_color
from utils.time_utils import format_hms, format_money, parse_date_bound, parse_duration


def test_format_hms():
    assert format_hms(0) == "00:00:00"
    assert format_hms(59) == "00:59"
    assert format_hms(1500) == "25:00"
    assert format_hms(3725) == "01:02:05"


def test_format_money():
    assert format_money(30000) == "Rp30 000"
    assert format_money(1042) == "Rp1 042"


@pytest.mark.parametrize("text, expected", [
    ("25", (0, 25)),
    ("90", (1, 30)),
    ("1:30", (1, 30)),
    ("1ч30", (1, 30)),
    ("2.05", (2, 5)),
])
def test_parse_duration(text, expected):
    assert parse_duration(text) == expected


@pytest.mark.parametrize("text", ["", "abc", "1:75", "-5"])
def test_parse_duration_rejects_garbage(text):
    assert parse_duration(text) is None


def test_parse_date_bound():
    assert parse_date_bound("-") is None
    assert parse_date_bound("") is None
    assert parse_date_bound("2024-05-01") == datetime(2024, 5, 1)
    assert parse_date_bound("01.05.2024 18:30") == datetime(2024, 5, 1, 18, 30)


def test_date_only_upper_bound_covers_whole_day():
    bound = parse_date_bound("01.05.2024", end_of_day=True)

    assert bound.date() == datetime(2024, 5, 1).date()
    assert bound >= datetime(2024, 5, 1, 23, 59, 59)


def test_parse_date_bound_rejects_garbage():
    with pytest.raises(ValueError):
        parse_date_bound("вчера")


def test_progress_colors():
    assert progress_to_color(1.0) == BLUE
    assert progress_to_color(0.5) == PURPLE
    assert progress_to_color(0.0) == RED
    assert progress_to_color(2.0) == BLUE
