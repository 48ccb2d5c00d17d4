import re
import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import List, Optional
from zoneinfo import ZoneInfo

# ---------------------- TIMEZONE SETUP ----------------------
JAKARTA_TZ = ZoneInfo("Asia/Jakarta")
def now_jakarta() -> datetime:
    return datetime.now(JAKARTA_TZ)
# -----------------------------------------------------------

DAILY = "daily"
WEEKLY = "weekly"
MONTHLY = "monthly"
YEARLY = "yearly"
PERIODS = (DAILY, WEEKLY, MONTHLY, YEARLY)

# Monday first, matches date.weekday()
HARI: List[str] = ["Senin", "Selasa", "Rabu", "Kamis", "Jumat", "Sabtu", "Minggu"]
BULAN: List[str] = [
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember",
]
MONTH_BY_NAME = {name.lower(): idx + 1 for idx, name in enumerate(BULAN)}

YEAR_PATTERN = re.compile(r'^(\d{4})$')
DATE_PATTERN = re.compile(r'(\d{1,2})[/\-](\d{1,2})[/\-](\d{4})')


@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime

    def contains(self, day: date) -> bool:
        moment = datetime.combine(day, time.min)
        return self.start <= moment <= self.end


def _span(first: date, last: date) -> DateRange:
    return DateRange(datetime.combine(first, time.min), datetime.combine(last, time.max))


# -------------------- LONG DATE FORMAT --------------------
def format_long_date(day: date) -> str:
    """Render a date the way the sheet stores it, e.g. ``Kamis, 5 Maret 2026``."""
    return f"{HARI[day.weekday()]}, {day.day} {BULAN[day.month - 1]} {day.year}"


def parse_long_date(text: str) -> Optional[date]:
    parts = (text or "").lower().split()
    if len(parts) < 4:
        return None
    month = MONTH_BY_NAME.get(parts[2])
    if not month:
        return None
    try:
        return date(int(parts[3]), month, int(parts[1]))
    except ValueError:
        return None


# -------------------- PERIOD RESOLVER --------------------
def _range_for(period: str, anchor: date) -> Optional[DateRange]:
    if period == DAILY:
        return _span(anchor, anchor)
    if period == WEEKLY:
        dow = anchor.isoweekday() % 7  # Sunday = 0
        monday_offset = -6 if dow == 0 else 1 - dow
        monday = anchor + timedelta(days=monday_offset)
        return _span(monday, monday + timedelta(days=6))
    if period == MONTHLY:
        last_day = calendar.monthrange(anchor.year, anchor.month)[1]
        return _span(anchor.replace(day=1), anchor.replace(day=last_day))
    if period == YEARLY:
        return _span(date(anchor.year, 1, 1), date(anchor.year, 12, 31))
    return None


def resolve(period: str, anchor: Optional[str] = None, today: Optional[date] = None) -> Optional[DateRange]:
    """Inclusive date range for a period, optionally anchored on a user-typed date.

    ``None`` means "no usable range": callers report over all rows.
    """
    period = (period or "").lower()
    if anchor and anchor.strip():
        anchor = anchor.strip()
        year_match = YEAR_PATTERN.match(anchor)
        if year_match and period == YEARLY:
            year = int(year_match.group(1))
            return _span(date(year, 1, 1), date(year, 12, 31))
        match = DATE_PATTERN.search(anchor)
        if not match:
            return None
        day, month, year = (int(g) for g in match.groups())
        try:
            target = date(year, month, day)
        except ValueError:
            return None
        return _range_for(period, target)

    if today is None:
        today = now_jakarta().date()
    return _range_for(period, today)


def filter_by_period(rows: List[List[str]], period: str, anchor: Optional[str] = None,
                     today: Optional[date] = None) -> List[List[str]]:
    """Data rows (header dropped) whose DATE CREATED falls inside the period."""
    data_rows = rows[1:]
    date_range = resolve(period, anchor, today)
    if date_range is None:
        return list(data_rows)

    filtered = []
    for row in data_rows:
        if not row or not row[0].strip():
            continue
        row_date = parse_long_date(row[0])
        if row_date and date_range.contains(row_date):
            filtered.append(row)
    return filtered


def period_label(period: str, anchor: Optional[str] = None, today: Optional[date] = None) -> str:
    if period == WEEKLY:
        return f"Minggu dari: {anchor}" if anchor else "Minggu ini"
    if period == MONTHLY:
        return f"Bulan dari: {anchor}" if anchor else "Bulan ini"
    if period == YEARLY:
        if anchor:
            return anchor
        return str((today or now_jakarta().date()).year)
    return anchor or "Hari ini"
