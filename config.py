import base64
import binascii
import json
import logging
import os
from typing import Any, Dict, List, Optional, Tuple

from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, default))
    except ValueError:
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# ---------------------- CONFIGURATION ----------------------
TELEGRAM_TOKEN: str = os.environ.get("TELEGRAM_TOKEN") or os.environ.get("BOT_TOKEN", "")
SHEET_ID: str = os.environ.get("SHEET_ID") or os.environ.get("SPREADSHEET_ID", "")
GOOGLE_SERVICE_ACCOUNT_JSON: str = (
    os.environ.get("GOOGLE_SERVICE_ACCOUNT_JSON") or os.environ.get("GOOGLE_SERVICE_ACCOUNT_KEY", "")
)
GOOGLE_CREDENTIALS_PATH: str = os.environ.get("GOOGLE_CREDENTIALS_PATH", "service-account.json")

PROGRES_SHEET: str = os.environ.get("PROGRES_SHEET", "PROGRES PSB")
MASTER_SHEET: str = os.environ.get("MASTER_SHEET", "MASTER")

CACHE_EXPIRY_SECONDS: float = _env_float("CACHE_EXPIRY_SECONDS", 5 * 60)
FETCH_TIMEOUT: float = _env_float("FETCH_TIMEOUT", 15)
READ_TIMEOUT: float = _env_float("READ_TIMEOUT", 10)
AUTH_TIMEOUT: float = _env_float("AUTH_TIMEOUT", 8)
APPEND_TIMEOUT: float = _env_float("APPEND_TIMEOUT", 10)
REFRESH_INTERVAL: float = _env_float("REFRESH_INTERVAL", 43200)

GROUP_WRITE_ONLY: bool = _env_bool("GROUP_WRITE_ONLY")
LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO").upper()


def parse_package_priority(raw: Optional[str]) -> Dict[str, Tuple[str, ...]]:
    """``{"BS": ["paket", "package"]}`` -> ``{"BS": ("paket", "package")}``; bad input gives ``{}``."""
    try:
        data = json.loads(raw or "{}")
    except json.JSONDecodeError as e:
        logging.error(f"PACKAGE_PRIORITY_BY_CHANNEL is not valid JSON, ignoring it: {e}")
        return {}
    if not isinstance(data, dict):
        logging.error("PACKAGE_PRIORITY_BY_CHANNEL must be a JSON object, ignoring it")
        return {}

    priority: Dict[str, Tuple[str, ...]] = {}
    for channel, order in data.items():
        if isinstance(order, str):
            order = [order]
        if not isinstance(order, list) or not all(isinstance(key, str) for key in order):
            logging.error(f"PACKAGE_PRIORITY_BY_CHANNEL[{channel}] must be a list of field names, skipping it")
            continue
        priority[channel.upper()] = tuple(key.lower() for key in order)
    return priority


# Which of PACKAGE / PAKET wins on /AKTIVASI, per channel. Channels not listed use
# ("package", "paket"). Example: {"BS": ["paket", "package"]}
PACKAGE_PRIORITY_BY_CHANNEL: Dict[str, Tuple[str, ...]] = parse_package_priority(
    os.environ.get("PACKAGE_PRIORITY_BY_CHANNEL")
)
# -----------------------------------------------------------


def load_service_account_info(raw: Optional[str]) -> Dict[str, Any]:
    """Decode a service account key given as raw JSON, base64 JSON or escaped JSON."""
    key_data = (raw or "").lstrip("\ufeff").strip()
    if not key_data:
        raise ValueError("GOOGLE_SERVICE_ACCOUNT_JSON is empty")

    if not key_data.startswith("{"):
        try:
            decoded = base64.b64decode(key_data, validate=True).decode("utf-8")
            if decoded.strip().startswith("{"):
                key_data = decoded.strip()
        except (binascii.Error, UnicodeDecodeError):
            pass

    if not key_data.startswith("{"):
        unescaped = key_data.replace("\\n", "\n").replace('\\"', '"')
        if len(unescaped) > 1 and unescaped[0] == unescaped[-1] and unescaped[0] in "'\"":
            unescaped = unescaped[1:-1]
        key_data = unescaped.strip()

    try:
        return json.loads(key_data, strict=False)
    except json.JSONDecodeError as e:
        raise ValueError(
            "Could not parse GOOGLE_SERVICE_ACCOUNT_JSON: set it to the raw JSON content "
            "or a base64-encoded JSON string, without extra surrounding quotes"
        ) from e


def validate() -> List[str]:
    missing = []
    if not TELEGRAM_TOKEN:
        missing.append("TELEGRAM_TOKEN")
    if not SHEET_ID:
        missing.append("SHEET_ID")
    if not GOOGLE_SERVICE_ACCOUNT_JSON and not os.path.exists(GOOGLE_CREDENTIALS_PATH):
        missing.append("GOOGLE_SERVICE_ACCOUNT_JSON")
    return missing
