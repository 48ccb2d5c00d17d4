import re
from datetime import datetime
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

from periods import format_long_date, now_jakarta

# -------------------- CAPTURE POLICIES --------------------
LINE = r"([^\n]*)"
TOKEN = r"([A-Za-z0-9]+)"
DIGITS = r"([0-9]+)"
PHONE = r"([0-9+\- \t]+)"
# free text that may wrap, up to the next "KEY :" line
BLOCK = r"(.*?)(?=\n[ \t]*[A-Za-z][A-Za-z ]*[ \t]*:|\Z)"


class FieldSpec(NamedTuple):
    key: str
    label: str
    capture: str = LINE

    def compile(self) -> re.Pattern:
        words = r"[ \t]*".join(re.escape(w) for w in self.label.split())
        flags = re.IGNORECASE | (re.DOTALL if self.capture == BLOCK else 0)
        return re.compile(rf"\b{words}[ \t]*:[ \t]*{self.capture}", flags)


class ReportSchema:
    """A named report dialect: which labels to look for and which must be filled."""

    def __init__(self, name: str, fields: Sequence[FieldSpec], required: Sequence[str]):
        self.name = name
        self.fields = list(fields)
        self.required = list(required)
        self.patterns = [(field_spec, field_spec.compile()) for field_spec in self.fields]
        self.labels = {field_spec.key: field_spec.label for field_spec in self.fields}


PROGRES_SCHEMA = ReportSchema(
    "progres",
    [
        FieldSpec("channel", "CHANNEL", TOKEN),
        FieldSpec("date_created", "DATE CREATED"),
        FieldSpec("workorder", "WORKORDER", TOKEN),
        FieldSpec("ao", "AO"),
        FieldSpec("sc_order_no", "SC ORDER NO"),
        FieldSpec("service_no", "SERVICE NO", DIGITS),
        FieldSpec("customer_name", "CUSTOMER NAME"),
        FieldSpec("workzone", "WORKZONE", TOKEN),
        FieldSpec("contact_phone", "CONTACT PHONE", PHONE),
        FieldSpec("odp", "ODP"),
        FieldSpec("memo", "MEMO"),
        FieldSpec("symptom", "SYMPTOM"),
        FieldSpec("tikor", "TIKOR"),
        FieldSpec("sn_ont", "SN ONT"),
        FieldSpec("nik_ont", "NIK ONT", DIGITS),
        FieldSpec("stb_id", "STB ID"),
        FieldSpec("nik_stb", "NIK STB", DIGITS),
    ],
    required=["channel", "sc_order_no", "service_no", "customer_name", "workzone"],
)

AKTIVASI_SCHEMA = ReportSchema(
    "aktivasi",
    [
        FieldSpec("channel", "CHANNEL"),
        FieldSpec("date_created", "DATE CREATED"),
        FieldSpec("sc_order_no", "SC ORDER NO"),
        FieldSpec("workorder", "WORKORDER"),
        FieldSpec("ao", "AO"),
        FieldSpec("ncli", "NCLI"),
        FieldSpec("service_no", "SERVICE NO"),
        FieldSpec("address", "ADDRESS", BLOCK),
        FieldSpec("customer_name", "CUSTOMER NAME"),
        FieldSpec("workzone", "WORKZONE"),
        FieldSpec("contact_phone", "CONTACT PHONE"),
        FieldSpec("booking_date", "BOOKING DATE"),
        FieldSpec("paket", "PAKET"),
        FieldSpec("package", "PACKAGE"),
        FieldSpec("odp", "ODP"),
        FieldSpec("mitra", "MITRA"),
        FieldSpec("symptom", "SYMPTOM"),
        FieldSpec("memo", "MEMO", BLOCK),
        FieldSpec("tikor", "TIKOR"),
        FieldSpec("sn_ont", "SN ONT"),
        FieldSpec("nik_ont", "NIK ONT"),
        FieldSpec("stb_id", "STB ID"),
        FieldSpec("nik_stb", "NIK STB"),
    ],
    required=["channel", "customer_name", "service_no", "workzone"],
)

# Column order of the PROGRES PSB sheet (A..R)
PROGRES_COLUMNS: List[str] = [
    "date_created", "channel", "workorder", "ao", "sc_order_no", "service_no",
    "customer_name", "workzone", "contact_phone", "odp", "symptom", "memo",
    "tikor", "sn_ont", "nik_ont", "stb_id", "nik_stb", "teknisi",
]


def strip_handle(handle: Optional[str]) -> str:
    handle = (handle or "").strip()
    return handle[1:] if handle.startswith("@") else handle


def parse(raw_text: str, submitter_handle: str, schema: ReportSchema = PROGRES_SCHEMA,
          now: Optional[datetime] = None) -> Dict[str, str]:
    text = raw_text or ""
    data: Dict[str, str] = {field_spec.key: "" for field_spec in schema.fields}
    for field_spec, pattern in schema.patterns:
        match = pattern.search(text)
        if match and match.group(1):
            data[field_spec.key] = match.group(1).strip()

    if not data.get("date_created"):
        data["date_created"] = format_long_date((now or now_jakarta()).date())
    data["teknisi"] = strip_handle(submitter_handle)
    return data


def missing_fields(parsed: Dict[str, str], schema: ReportSchema = PROGRES_SCHEMA) -> List[str]:
    return [schema.labels[key] for key in schema.required if not parsed.get(key)]


def to_row(parsed: Dict[str, str]) -> List[str]:
    return [parsed.get(key, "") for key in PROGRES_COLUMNS]


def resolve_package(parsed: Dict[str, str],
                    priority_by_channel: Optional[Dict[str, Tuple[str, ...]]] = None,
                    default: Tuple[str, ...] = ("package", "paket")) -> str:
    channel = (parsed.get("channel") or "").upper()
    order = (priority_by_channel or {}).get(channel, default)
    for key in order:
        if parsed.get(key):
            return parsed[key]
    return "-"
