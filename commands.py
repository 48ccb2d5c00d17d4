import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Dict, Optional, Tuple

import reports
from auth import ROLE_ADMIN, ROLE_USER, authorize
from periods import DAILY, PERIODS, now_jakarta
from report_parser import (
    AKTIVASI_SCHEMA, PROGRES_SCHEMA, ReportSchema, missing_fields, parse, resolve_package, to_row,
)
from sektor import SEKTOR_MAP
from sheets import SheetStore, with_timeout
from stats import find_orders, symptom_listing

COMMAND_PATTERN = re.compile(r'^/([A-Za-z0-9_]+)(?:@\w+)?\b\s*(.*)$', re.DOTALL)
LOOKUP_PATTERN = re.compile(r'^/([A-Za-z0-9]+)$')
GROUP_CHATS = ("group", "supergroup")
WRITE_COMMANDS = ("update", "aktivasi")


@dataclass
class IncomingMessage:
    chat_id: int
    message_id: Optional[int]
    username: str
    chat_type: str
    text: str


@dataclass
class Reply:
    text: str
    reply_to_message_id: Optional[int] = None


class ProgresBot:
    """Routes one slash command to its handler and renders the reply text."""

    def __init__(self, store: SheetStore, progres_sheet: str = "PROGRES PSB", master_sheet: str = "MASTER",
                 clock: Callable[[], datetime] = now_jakarta, group_write_only: bool = False,
                 read_timeout: float = 10, append_timeout: float = 10, auth_timeout: float = 8,
                 package_priority: Optional[Dict[str, Tuple[str, ...]]] = None):
        self.store = store
        self.progres_sheet = progres_sheet
        self.master_sheet = master_sheet
        self.clock = clock
        self.group_write_only = group_write_only
        self.read_timeout = read_timeout
        self.append_timeout = append_timeout
        self.auth_timeout = auth_timeout
        self.package_priority = package_priority or {}
        self.handlers: Dict[str, Tuple[Tuple[str, ...], Callable[[IncomingMessage, str, str], Awaitable[str]]]] = {
            "update": ((ROLE_USER, ROLE_ADMIN), self.cmd_update),
            "aktivasi": ((ROLE_USER, ROLE_ADMIN), self.cmd_aktivasi),
            "today": ((ROLE_ADMIN,), self.cmd_today),
            "all": ((ROLE_ADMIN,), self.cmd_all),
            "sektor": ((ROLE_ADMIN,), self.cmd_sektor),
            "help": ((), self.cmd_help),
            "start": ((), self.cmd_help),
        }
        for name, config in reports.REPORTS.items():
            self.handlers[name] = (config.roles, self.cmd_report)

    def is_ignored(self, message: IncomingMessage) -> bool:
        """True when ``handle`` would not reply: plain text, or a read command in a write-only group."""
        text = (message.text or "").strip()
        if not text.startswith("/"):
            return True
        if self.group_write_only and message.chat_type in GROUP_CHATS:
            match = COMMAND_PATTERN.match(text)
            return not match or match.group(1).lower() not in WRITE_COMMANDS
        return False

    async def handle(self, message: IncomingMessage) -> Optional[Reply]:
        if self.is_ignored(message):
            return None

        text = message.text.strip()
        logging.info(f"[{message.chat_type}] chat={message.chat_id} | [@{message.username}] {text[:60]}")
        match = COMMAND_PATTERN.match(text)
        name = match.group(1).lower() if match else ""
        args = match.group(2).strip() if match else ""

        try:
            if name in self.handlers:
                roles, handler = self.handlers[name]
                result = await self._run(message, roles, handler, name, args)
            elif LOOKUP_PATTERN.match(text):
                result = await self._run(message, (ROLE_USER, ROLE_ADMIN), self.cmd_lookup, name, text[1:])
            else:
                result = "❓ Command tidak dikenali. Ketik /help untuk melihat daftar command."
        except Exception:
            logging.exception(f"Unhandled error for: {text[:60]}")
            result = "❌ Terjadi kesalahan sistem."
        return Reply(result, message.message_id)

    async def _run(self, message: IncomingMessage, roles: Tuple[str, ...],
                   handler: Callable[[IncomingMessage, str, str], Awaitable[str]], name: str, args: str) -> str:
        auth = await authorize(self.store, self.master_sheet, message.username, roles, self.auth_timeout)
        if not auth.authorized:
            return auth.message
        try:
            return await handler(message, name, args)
        except Exception as e:
            logging.exception(f"/{name} Error: {e}")
            if name in WRITE_COMMANDS:
                return f"❌ Error: {e}. Silakan coba lagi."
            return f"❌ Error: {e}. Server sedang sibuk."

    async def _progres_rows(self):
        return await self.store.read(self.progres_sheet, timeout=self.read_timeout)

    # -------------------- WRITE COMMANDS --------------------
    async def _save(self, message: IncomingMessage, args: str, schema: ReportSchema, title: str,
                    usage: str, with_package: bool = False) -> str:
        if not args:
            return usage
        parsed = parse(args, message.username, schema, now=self.clock())
        missing = missing_fields(parsed, schema)
        if missing:
            return f"❌ Data tidak lengkap. Field wajib: {', '.join(missing)}"

        row = to_row(parsed)
        await with_timeout(self.store.append(self.progres_sheet, row), self.append_timeout)
        logging.info(f"Saved {schema.name} report from @{message.username}: {parsed.get('sc_order_no') or '-'}")
        package = resolve_package(parsed, self.package_priority) if with_package else None
        return reports.build_saved_confirmation(parsed, title, package)

    async def cmd_update(self, message: IncomingMessage, name: str, args: str) -> str:
        return await self._save(message, args, PROGRES_SCHEMA, "Data progres",
                                "❌ Silakan kirim data progres setelah /UPDATE.")

    async def cmd_aktivasi(self, message: IncomingMessage, name: str, args: str) -> str:
        return await self._save(message, args, AKTIVASI_SCHEMA, "Data aktivasi",
                                "❌ Silakan kirim data aktivasi setelah /AKTIVASI.", with_package=True)

    # -------------------- READ COMMANDS --------------------
    async def cmd_today(self, message: IncomingMessage, name: str, args: str) -> str:
        if not args:
            return "❌ Format: /today TEKNISI_ID"
        rows = await self._progres_rows()
        listing = symptom_listing(rows[1:], args, day=self.clock().date())
        return reports.build_technician_report("PROGRES HARI INI", args, listing,
                                               "<i>Belum ada data untuk hari ini</i>")

    async def cmd_all(self, message: IncomingMessage, name: str, args: str) -> str:
        if not args:
            return "❌ Format: /all TEKNISI_ID"
        rows = await self._progres_rows()
        listing = symptom_listing(rows[1:], args)
        return reports.build_technician_report("SELURUH PROGRES", args, listing)

    async def cmd_report(self, message: IncomingMessage, name: str, args: str) -> str:
        config = reports.REPORTS[name]
        rows = await self._progres_rows()
        return reports.build_report(config, rows, anchor=args or None, today=self.clock().date())

    async def cmd_sektor(self, message: IncomingMessage, name: str, args: str) -> str:
        parts = args.split()
        sektor = parts[0].upper() if parts else ""
        if sektor not in SEKTOR_MAP:
            return reports.build_sektor_usage()
        period = parts[1].lower() if len(parts) > 1 else DAILY
        anchor = parts[2] if len(parts) > 2 else None
        if period not in PERIODS:
            logging.info(f"/sektor unknown period '{period}', reporting all rows")
        rows = await self._progres_rows()
        return reports.build_sektor_report(sektor, period, anchor, rows, today=self.clock().date())

    async def cmd_lookup(self, message: IncomingMessage, name: str, args: str) -> str:
        rows = await self._progres_rows()
        order_id = args.upper()
        return reports.build_lookup(order_id, find_orders(rows[1:], order_id))

    async def cmd_help(self, message: IncomingMessage, name: str, args: str) -> str:
        return reports.build_help()
