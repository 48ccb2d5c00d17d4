from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, List, Optional, Tuple

from periods import parse_long_date
from sektor import classify

# PROGRES PSB columns
COL_DATE = 0
COL_AO = 3
COL_SC_ORDER = 4
COL_WORKZONE = 7
COL_SYMPTOM = 10
COL_TEKNISI = 17

TEKNISI = "teknisi"
WORKZONE = "workzone"
SEKTOR = "sektor"


def cell(row: List[str], index: int, default: str = "-") -> str:
    value = row[index].strip() if index < len(row) and row[index] else ""
    return value or default


DIMENSIONS: Dict[str, Callable[[List[str]], str]] = {
    TEKNISI: lambda row: cell(row, COL_TEKNISI),
    WORKZONE: lambda row: cell(row, COL_WORKZONE),
    SEKTOR: lambda row: classify(cell(row, COL_WORKZONE, "")),
}


@dataclass
class GroupStats:
    key: str
    total: int = 0
    symptoms: Dict[str, int] = field(default_factory=dict)

    def add(self, symptom: str) -> None:
        self.total += 1
        self.symptoms[symptom] = self.symptoms.get(symptom, 0) + 1

    def sorted_symptoms(self) -> List[Tuple[str, int]]:
        return sorted(self.symptoms.items(), key=lambda item: item[1], reverse=True)


def aggregate(rows: List[List[str]], dimension: str) -> List[GroupStats]:
    """Group data rows (no header) by dimension, busiest group first.

    Python's sort is stable, so groups with equal totals keep first-seen order.
    """
    key_of = DIMENSIONS[dimension]
    groups: Dict[str, GroupStats] = {}
    for row in rows:
        key = key_of(row)
        if key not in groups:
            groups[key] = GroupStats(key)
        groups[key].add(cell(row, COL_SYMPTOM))
    return sorted(groups.values(), key=lambda g: g.total, reverse=True)


def count_by(rows: List[List[str]], dimension: str) -> List[Tuple[str, int]]:
    return [(g.key, g.total) for g in aggregate(rows, dimension)]


def _same_handle(a: str, b: str) -> bool:
    return a.lstrip("@").lower() == b.lstrip("@").lower()


def symptom_listing(rows: List[List[str]], teknisi: str, day: Optional[date] = None) -> List[Tuple[str, List[str]]]:
    teknisi = teknisi.strip()
    listing: Dict[str, List[str]] = {}
    for row in rows:
        if not _same_handle(cell(row, COL_TEKNISI), teknisi):
            continue
        if day is not None and parse_long_date(cell(row, COL_DATE, "")) != day:
            continue
        listing.setdefault(cell(row, COL_SYMPTOM), []).append(cell(row, COL_AO))
    return sorted(listing.items(), key=lambda item: len(item[1]), reverse=True)


def monthly_breakdown(rows: List[List[str]]) -> List[int]:
    counts = [0] * 12
    for row in rows:
        row_date = parse_long_date(cell(row, COL_DATE, ""))
        if row_date:
            counts[row_date.month - 1] += 1
    return counts


def find_orders(rows: List[List[str]], order_id: str) -> List[List[str]]:
    wanted = order_id.strip().upper()
    results = [row for row in rows if cell(row, COL_AO, "").upper() == wanted]
    if not results:
        results = [row for row in rows if cell(row, COL_SC_ORDER, "").upper() == wanted]
    return results
