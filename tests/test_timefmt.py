import calendar
import time

import pytest

from filesniff.timefmt import (
    format_datetime,
    format_dos_date,
    format_dos_time,
    magic_warning,
)

ASCTIME = "%a %b %d %H:%M:%S %Y"


def test_epoch_utc():
    assert format_datetime(0) == "Thu Jan  1 00:00:00 1970"


@pytest.mark.parametrize("seconds", [1, 86399, 951782400, 1234567890, 2000000000])
def test_utc_round_trip(seconds):
    text = format_datetime(seconds, False)
    assert calendar.timegm(time.strptime(text, ASCTIME)) == seconds
    assert "\n" not in text


def test_local_round_trip():
    seconds = 1234567890
    text = format_datetime(seconds, True)
    assert int(time.mktime(time.strptime(text, ASCTIME))) == seconds


def test_value_is_read_as_signed_64_bit():
    assert format_datetime((1 << 64) - 1) == format_datetime(-1)
    parsed = time.strptime(format_datetime(-1), ASCTIME)
    assert calendar.timegm(parsed) == -1


def test_unrepresentable_datetime():
    assert format_datetime((1 << 63) - 1) == "*Invalid datetime*"


@pytest.mark.parametrize(
    "hours, minutes, seconds",
    [(0, 0, 0), (12, 30, 58), (23, 59, 58), (7, 5, 2)],
)
def test_dos_time_round_trip(hours, minutes, seconds):
    word = (hours << 11) | (minutes << 5) | (seconds // 2)
    text = format_dos_time(word)
    assert [int(part) for part in text.split(":")] == [hours, minutes, seconds]


def test_dos_time_ignores_high_bits():
    assert format_dos_time(0x1234) == format_dos_time(0x71234)


@pytest.mark.parametrize(
    "year, month, day",
    [(1980, 1, 1), (1999, 3, 5), (2021, 12, 31), (2107, 6, 15)],
)
def test_dos_date_fields(year, month, day):
    word = ((year - 1980) << 9) | (month << 5) | day
    weekday, month_name, day_text, year_text = format_dos_date(word).split()
    assert month_name == calendar.month_abbr[month]
    assert int(day_text) == day
    assert int(year_text) == year
    assert weekday == format_dos_date(0x21).split()[0]


def test_dos_date_weekday_is_never_computed():
    assert format_dos_date(0x21).startswith("Sun, ")


def test_dos_date_bad_month():
    month_field = format_dos_date(0x0001).split()[1]
    assert month_field == "?"
    assert format_dos_date(0x01E1).split()[1] == month_field


def test_warning_with_location(capsys):
    magic_warning("bad entry", "magic.txt", 12)
    captured = capsys.readouterr()
    assert captured.err == "magic.txt, 12: Warning: bad entry\n"
    assert captured.out == ""


def test_warning_without_location(capsys):
    magic_warning("bad entry")
    assert capsys.readouterr().err == "Warning: bad entry\n"