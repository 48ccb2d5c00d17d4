import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from sheets import SheetStore

ROLE_USER = "USER"
ROLE_ADMIN = "ADMIN"
STATUS_ACTIVE = "AKTIF"

# MASTER columns
COL_USERNAME = 8
COL_ROLE = 9
COL_STATUS = 10

NOT_REGISTERED = "❌ Anda tidak terdaftar di sistem."
SERVER_BUSY = "❌ Terjadi kesalahan saat verifikasi. Server sedang sibuk."


@dataclass
class AuthResult:
    authorized: bool
    role: Optional[str] = None
    message: str = ""


def normalize_handle(handle: Optional[str]) -> str:
    return (handle or "").replace("@", "").lower().strip()


def _upper_cell(row: List[str], index: int) -> str:
    return (row[index] if index < len(row) else "").upper().strip()


def find_active_user(rows: List[List[str]], handle: str) -> Optional[List[str]]:
    wanted = normalize_handle(handle)
    if not wanted:
        return None
    for row in rows[1:]:
        sheet_user = normalize_handle(row[COL_USERNAME] if COL_USERNAME < len(row) else "")
        if sheet_user == wanted and _upper_cell(row, COL_STATUS) == STATUS_ACTIVE:
            return row
    return None


async def get_user_role(store: SheetStore, master_sheet: str, handle: str,
                        timeout: Optional[float] = None) -> Optional[str]:
    rows = await store.read(master_sheet, timeout=timeout)
    user = find_active_user(rows, handle)
    return _upper_cell(user, COL_ROLE) if user else None


async def authorize(store: SheetStore, master_sheet: str, handle: str,
                    required_roles: Iterable[str] = (), timeout: float = 8.0) -> AuthResult:
    required = set(required_roles)
    try:
        role = await get_user_role(store, master_sheet, handle, timeout)
    except Exception as e:
        logging.error(f"Authorization error for @{handle}: {e}")
        return AuthResult(False, None, SERVER_BUSY)

    if not role:
        logging.warning(f"Unauthorized access attempt: user=@{handle}")
        return AuthResult(False, None, NOT_REGISTERED)
    if required and role not in required:
        logging.warning(f"Role {role} denied for user=@{handle}")
        return AuthResult(False, role, f"❌ Akses ditolak. Role {role} tidak memiliki izin untuk command ini.")
    return AuthResult(True, role)
