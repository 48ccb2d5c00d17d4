import time
from datetime import date, datetime, timedelta

import pytest

from commands import ProgresBot
from periods import JAKARTA_TZ, format_long_date
from report_parser import PROGRES_COLUMNS
from sheets import SheetCache, SheetStore

# Wednesday
TODAY = date(2026, 3, 4)
MONDAY = TODAY - timedelta(days=2)

MASTER_HEADER = ["NO", "NAMA", "NIK", "JABATAN", "MITRA", "SEKTOR", "STO", "HP", "TELEGRAM", "ROLE", "STATUS"]
PROGRES_HEADER = [col.upper() for col in PROGRES_COLUMNS]


def master_row(handle, role, status="AKTIF"):
    return [""] * 8 + [handle, role, status]


def progres_row(day=TODAY, teknisi="teknisi1", workzone="SGI01", symptom="PS", ao="AO1", sc_order_no="SC1"):
    values = {
        "date_created": format_long_date(day) if isinstance(day, date) else day,
        "channel": "DIGIPOS",
        "ao": ao,
        "sc_order_no": sc_order_no,
        "service_no": "123456",
        "customer_name": "Budi",
        "workzone": workzone,
        "symptom": symptom,
        "teknisi": teknisi,
    }
    return [values.get(col, "") for col in PROGRES_COLUMNS]


class FakeBackend:
    def __init__(self, sheets=None, delay=0.0):
        self.sheets = {name: [list(r) for r in rows] for name, rows in (sheets or {}).items()}
        self.delay = delay
        self.fail = False
        self.fail_append = False
        self.get_calls = 0
        self.appended = []

    def get_rows(self, sheet_name):
        self.get_calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.fail:
            raise RuntimeError("backend down")
        return [list(r) for r in self.sheets.get(sheet_name, [])]

    def append_row(self, sheet_name, row):
        if self.fail_append:
            raise RuntimeError("quota exceeded")
        self.sheets.setdefault(sheet_name, []).append(list(row))
        self.appended.append((sheet_name, list(row)))


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def master_rows():
    return [
        MASTER_HEADER,
        master_row("@admin1", "ADMIN"),
        master_row("Teknisi1", "USER"),
        master_row("olduser", "USER", "NONAKTIF"),
        master_row("korlap", "KORLAP"),
    ]


@pytest.fixture
def backend(master_rows):
    return FakeBackend({"MASTER": master_rows, "PROGRES PSB": [PROGRES_HEADER]})


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(backend, clock):
    return SheetStore(backend, SheetCache(expiry=300, clock=clock), fetch_timeout=2)


@pytest.fixture
def bot(store):
    return ProgresBot(store, clock=lambda: datetime(2026, 3, 4, 10, 0, tzinfo=JAKARTA_TZ))
