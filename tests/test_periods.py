from datetime import date, datetime, time, timedelta

import pytest

from periods import (
    DAILY, MONTHLY, WEEKLY, YEARLY, filter_by_period, format_long_date, parse_long_date,
    period_label, resolve,
)

TODAY = date(2026, 3, 4)  # Wednesday
HEADER = ["DATE CREATED", "CHANNEL"]


def row(day):
    return [format_long_date(day), "DIGIPOS"]


def test_format_long_date():
    assert format_long_date(date(2026, 3, 5)) == "Kamis, 5 Maret 2026"
    assert format_long_date(date(2026, 8, 17)) == "Senin, 17 Agustus 2026"
    assert format_long_date(date(2026, 3, 8)) == "Minggu, 8 Maret 2026"


def test_parse_long_date():
    assert parse_long_date("Kamis, 5 Maret 2026") == date(2026, 3, 5)
    assert parse_long_date("KAMIS, 05 MARET 2026") == date(2026, 3, 5)
    assert parse_long_date("Selasa, 31 Desember 2024") == date(2024, 12, 31)


@pytest.mark.parametrize("text", ["", "5 Maret 2026", "Kamis, 5 March 2026", "Kamis, 31 Februari 2026", "Kamis, x Maret 2026"])
def test_parse_long_date_rejects_garbage(text):
    assert parse_long_date(text) is None


def test_daily_without_anchor():
    rng = resolve(DAILY, today=TODAY)

    assert rng.start == datetime(2026, 3, 4)
    assert rng.end == datetime.combine(TODAY, time.max)


@pytest.mark.parametrize("offset", range(0, 14))
def test_weekly_always_monday_to_sunday(offset):
    anchor = date(2026, 2, 23) + timedelta(days=offset)
    rng = resolve(WEEKLY, f"{anchor.day}/{anchor.month}/{anchor.year}")

    assert rng.start.weekday() == 0
    assert rng.end.weekday() == 6
    assert (rng.end.date() - rng.start.date()).days == 6
    assert rng.start.date() <= anchor <= rng.end.date()


def test_weekly_on_sunday_goes_back_to_monday():
    rng = resolve(WEEKLY, today=date(2026, 3, 8))

    assert rng.start.date() == date(2026, 3, 2)
    assert rng.end.date() == date(2026, 3, 8)


@pytest.mark.parametrize("anchor, last_day", [
    ("15/02/2026", 28),
    ("1/2/2028", 29),
    ("30-4-2026", 30),
    ("2/12/2026", 31),
])
def test_monthly_ends_on_last_calendar_day(anchor, last_day):
    rng = resolve(MONTHLY, anchor)

    assert rng.start.day == 1
    assert rng.end.day == last_day
    assert rng.end.time() == time.max


def test_yearly_bare_year_anchor():
    rng = resolve(YEARLY, "2025")

    assert rng.start == datetime(2025, 1, 1)
    assert rng.end.date() == date(2025, 12, 31)


def test_bare_year_only_valid_for_yearly():
    assert resolve(WEEKLY, "2025") is None


def test_daily_anchor_with_dashes():
    rng = resolve(DAILY, "5-3-2026")

    assert rng.start.date() == rng.end.date() == date(2026, 3, 5)


@pytest.mark.parametrize("anchor", ["kemarin", "31/02/2026", "2026/03/05", "13/13/2026"])
def test_malformed_anchor_resolves_to_none(anchor):
    assert resolve(DAILY, anchor) is None


def test_unknown_period_resolves_to_none():
    assert resolve("hourly", today=TODAY) is None


def test_filter_by_period_weekly():
    rows = [
        HEADER,
        row(date(2026, 3, 2)),
        row(date(2026, 3, 4)),
        row(date(2026, 3, 8)),
        row(date(2026, 3, 9)),
        row(date(2026, 3, 1)),
        ["tanggal rusak", "BS"],
        ["", "BS"],
    ]
    filtered = filter_by_period(rows, WEEKLY, today=TODAY)

    assert filtered == rows[1:4]


def test_filter_by_period_falls_back_to_all_rows():
    rows = [HEADER, row(date(2020, 1, 1)), ["tanggal rusak", "BS"]]

    assert filter_by_period(rows, DAILY, "bukan tanggal", today=TODAY) == rows[1:]
    assert filter_by_period(rows, "all", today=TODAY) == rows[1:]


def test_period_labels():
    assert period_label(DAILY) == "Hari ini"
    assert period_label(DAILY, "5/3/2026") == "5/3/2026"
    assert period_label(WEEKLY) == "Minggu ini"
    assert period_label(MONTHLY, "1/3/2026") == "Bulan dari: 1/3/2026"
    assert period_label(YEARLY, today=TODAY) == "2026"
