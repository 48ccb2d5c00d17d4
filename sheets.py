import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import gspread
from oauth2client.service_account import ServiceAccountCredentials

Rows = List[List[str]]

SCOPE = ["https://spreadsheets.google.com/feeds", "https://www.googleapis.com/auth/drive"]


class SheetStoreError(Exception):
    pass


# -------------------- GOOGLE SHEETS BACKEND --------------------
def authorize_google_sheets(info: Optional[Dict[str, Any]] = None, path: Optional[str] = None) -> gspread.Client:
    if info:
        credentials = ServiceAccountCredentials.from_json_keyfile_dict(info, SCOPE)
    elif path:
        credentials = ServiceAccountCredentials.from_json_keyfile_name(path, SCOPE)
    else:
        raise SheetStoreError("No Google service account credentials configured")
    return gspread.authorize(credentials)


class GspreadBackend:
    """Blocking gspread calls against one spreadsheet; run them in an executor."""

    def __init__(self, spreadsheet_id: str, info: Optional[Dict[str, Any]] = None, path: Optional[str] = None):
        self.spreadsheet_id = spreadsheet_id
        self._info = info
        self._path = path
        self._spreadsheet: Optional[gspread.Spreadsheet] = None

    def reconnect(self) -> gspread.Spreadsheet:
        client = authorize_google_sheets(self._info, self._path)
        self._spreadsheet = client.open_by_key(self.spreadsheet_id)
        logging.info(f"Connected to spreadsheet {self.spreadsheet_id}")
        return self._spreadsheet

    def _worksheet(self, sheet_name: str) -> gspread.Worksheet:
        spreadsheet = self._spreadsheet or self.reconnect()
        return spreadsheet.worksheet(sheet_name)

    def get_rows(self, sheet_name: str) -> Rows:
        return self._worksheet(sheet_name).get_all_values()

    def append_row(self, sheet_name: str, row: List[str]) -> None:
        self._worksheet(sheet_name).append_row(row, value_input_option="USER_ENTERED")


# -------------------- CACHE --------------------
@dataclass
class CacheEntry:
    rows: Rows
    fetched_at: float


class SheetCache:
    def __init__(self, expiry: float = 300.0, clock: Callable[[], float] = time.monotonic):
        self.expiry = expiry
        self.clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def get_fresh(self, sheet_name: str) -> Optional[Rows]:
        entry = self._entries.get(sheet_name)
        if entry and self.clock() - entry.fetched_at < self.expiry:
            return entry.rows
        return None

    def get_any(self, sheet_name: str) -> Optional[Rows]:
        entry = self._entries.get(sheet_name)
        return entry.rows if entry else None

    def put(self, sheet_name: str, rows: Rows) -> None:
        self._entries[sheet_name] = CacheEntry(rows=rows, fetched_at=self.clock())


async def with_timeout(awaitable, seconds: float, what: str = "Google API"):
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError:
        raise SheetStoreError(f"Timeout - {what} response too slow") from None


# -------------------- RECORD STORE --------------------
class SheetStore:
    def __init__(self, backend, cache: Optional[SheetCache] = None, fetch_timeout: float = 15.0):
        self.backend = backend
        self.cache = cache if cache is not None else SheetCache()
        self.fetch_timeout = fetch_timeout

    async def read(self, sheet_name: str, use_cache: bool = True, timeout: Optional[float] = None) -> Rows:
        """Rows of one sheet. Any failure, timeout included, falls back to cached rows."""
        if use_cache:
            cached = self.cache.get_fresh(sheet_name)
            if cached is not None:
                logging.debug(f"Using cached {sheet_name}")
                return cached

        loop = asyncio.get_running_loop()
        try:
            rows = await with_timeout(
                loop.run_in_executor(None, self.backend.get_rows, sheet_name),
                self.fetch_timeout if timeout is None else timeout,
            )
        except Exception as e:
            logging.error(f"Error reading {sheet_name}: {e}")
            stale = self.cache.get_any(sheet_name)
            if stale is not None:
                logging.warning(f"API error, fallback to cached {sheet_name}")
                return stale
            if isinstance(e, SheetStoreError):
                raise
            raise SheetStoreError(str(e) or e.__class__.__name__) from e

        rows = rows or []
        self.cache.put(sheet_name, rows)
        return rows

    async def append(self, sheet_name: str, row: List[str]) -> None:
        loop = asyncio.get_running_loop()
        try:
            await with_timeout(
                loop.run_in_executor(None, self.backend.append_row, sheet_name, row),
                self.fetch_timeout,
            )
        except SheetStoreError as e:
            logging.error(f"Error writing to {sheet_name}: {e}")
            raise
        except Exception as e:
            logging.error(f"Error writing to {sheet_name}: {e}")
            raise SheetStoreError(str(e) or e.__class__.__name__) from e
        logging.info(f"Row appended to {sheet_name}: {row[:2]}")

    async def reconnect(self) -> None:
        reconnect = getattr(self.backend, "reconnect", None)
        if reconnect is None:
            return
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, reconnect)


async def background_refresh(store: SheetStore, interval: float = 43200) -> None:
    while True:
        try:
            await store.reconnect()
        except Exception as e:
            logging.error(f"Error during background refresh: {e}")
        await asyncio.sleep(interval)
