import math
from dataclasses import dataclass
from datetime import date
from html import escape as html_escape
from typing import Dict, List, Optional, Tuple

from auth import ROLE_ADMIN
from periods import DAILY, MONTHLY, WEEKLY, YEARLY, filter_by_period, period_label
from sektor import SEKTOR_MAP, describe_sektors, matches_sektor
from stats import (
    COL_AO, COL_SC_ORDER, COL_SYMPTOM, COL_WORKZONE, TEKNISI, WORKZONE,
    GroupStats, aggregate, cell, count_by, monthly_breakdown,
)

MEDALS = ["🥇", "🥈", "🥉"]
MONTH_ABBR = ["Jan", "Feb", "Mar", "Apr", "Mei", "Jun", "Jul", "Ags", "Sep", "Okt", "Nov", "Des"]

DETAIL = "detail"
RANKED = "ranked"
INLINE = "inline"
YEARLY_SUMMARY = "yearly"

NO_DATA = "<i>Belum ada data</i>"
NO_DATA_PERIOD = "<i>Belum ada data untuk periode ini</i>"


def esc(value) -> str:
    return html_escape(str(value), quote=False)


@dataclass(frozen=True)
class ReportConfig:
    command: str
    dimension: str
    period: Optional[str]  # None = all rows
    title: str
    icon: str
    layout: str
    top_n: Optional[int] = None
    roles: Tuple[str, ...] = (ROLE_ADMIN,)


REPORTS: Dict[str, ReportConfig] = {
    config.command: config
    for config in [
        ReportConfig("progres", TEKNISI, DAILY, "LAPORAN TEKNISI", "📊", DETAIL),
        ReportConfig("weekly", TEKNISI, WEEKLY, "LAPORAN TEKNISI MINGGUAN", "📈", RANKED),
        ReportConfig("monthly", TEKNISI, MONTHLY, "LAPORAN TEKNISI BULANAN", "📅", RANKED, top_n=15),
        ReportConfig("yearly", TEKNISI, YEARLY, "LAPORAN TEKNISI TAHUNAN", "📆", YEARLY_SUMMARY, top_n=20),
        ReportConfig("allprogres", TEKNISI, None, "LAPORAN TEKNISI", "📊", DETAIL),
        ReportConfig("cek", WORKZONE, DAILY, "REKAP WORKZONE", "📍", DETAIL),
        ReportConfig("weekcek", WORKZONE, WEEKLY, "REKAP WORKZONE MINGGUAN", "📍", INLINE),
        ReportConfig("monthcek", WORKZONE, MONTHLY, "REKAP WORKZONE BULANAN", "📍", INLINE),
        ReportConfig("yearcek", WORKZONE, YEARLY, "REKAP WORKZONE TAHUNAN", "📍", INLINE),
        ReportConfig("allcek", WORKZONE, None, "REKAP WORKZONE", "📍", DETAIL),
    ]
}


# -------------------- GROUP RENDERING --------------------
def _symptom_lines(group: GroupStats) -> List[str]:
    return [f"   • {esc(symptom)}: {count}" for symptom, count in group.sorted_symptoms()]


def _rank(index: int) -> str:
    return MEDALS[index] if index < len(MEDALS) else f"{index + 1}."


def _render_groups(config: ReportConfig, groups: List[GroupStats]) -> List[str]:
    lines: List[str] = []
    shown = groups[:config.top_n] if config.top_n else groups
    for i, group in enumerate(shown):
        if config.layout == DETAIL:
            lines.append(f"🔸 <b>{esc(group.key)}</b>")
            lines.append(f"   <b>Total:</b> {group.total} WO")
        elif config.layout == RANKED:
            lines.append(f"{_rank(i)} <b>{esc(group.key)}</b> - {group.total} WO")
        else:
            lines.append(f"🔸 <b>{esc(group.key)}</b> - {group.total} WO")
        lines.extend(_symptom_lines(group))
        lines.append("")
    if config.top_n and len(groups) > config.top_n:
        lines.append(f"... dan {len(groups) - config.top_n} {config.dimension} lainnya")
    return lines


def _render_yearly(config: ReportConfig, groups: List[GroupStats], rows: List[List[str]]) -> List[str]:
    lines = ["<b>📊 BREAKDOWN PER BULAN:</b>"]
    for month, count in enumerate(monthly_breakdown(rows)):
        bar = "█" * min(math.ceil(count / 5), 20)
        lines.append(f"{MONTH_ABBR[month]}: {count} WO {bar}".rstrip())

    top_n = config.top_n or len(groups)
    lines.append("")
    lines.append(f"<b>🏆 TOP {top_n} {config.dimension.upper()}:</b>")
    for i, group in enumerate(groups[:top_n]):
        lines.append(f"{_rank(i)} <b>{esc(group.key)}</b> - {group.total} WO")
    if len(groups) > top_n:
        lines.append("")
        lines.append(f"... dan {len(groups) - top_n} {config.dimension} lainnya")
    return lines


def build_report(config: ReportConfig, rows: List[List[str]], anchor: Optional[str] = None,
                 today: Optional[date] = None) -> str:
    """Filter the sheet rows for the configured period and render the rekap."""
    if config.period is None:
        data_rows = rows[1:]
    else:
        data_rows = filter_by_period(rows, config.period, anchor, today)
    groups = aggregate(data_rows, config.dimension)

    if config.layout == DETAIL:
        label = "KESELURUHAN" if config.period is None else esc(period_label(config.period, anchor, today))
        header = [f"{config.icon} <b>{config.title} - {label}</b>", ""]
    else:
        label = esc(period_label(config.period, anchor, today))
        if config.period == YEARLY:
            label = f"Tahun: {label}"
        header = [f"{config.icon} <b>{config.title}</b>", label, f"Total: {len(data_rows)} WO", ""]

    if not groups:
        body = [NO_DATA if config.period is None else NO_DATA_PERIOD]
    elif config.layout == YEARLY_SUMMARY:
        body = _render_yearly(config, groups, data_rows)
    else:
        body = _render_groups(config, groups)
    return "\n".join(header + body)


# -------------------- PER TEKNISI --------------------
def build_technician_report(title: str, teknisi: str, listing: List[Tuple[str, List[str]]],
                            empty_text: str = NO_DATA) -> str:
    total = sum(len(aos) for _, aos in listing)
    lines = [f"📋 <b>{title} - {esc(teknisi)}</b>", "", f"<b>Total: {total} WO</b>"]
    if not listing:
        lines.append(empty_text)
    for symptom, aos in listing:
        lines.append(f"   • <b>{esc(symptom)}: {len(aos)}</b>")
        lines.extend(esc(ao) for ao in aos)
        lines.append("")
    return "\n".join(lines)


# -------------------- SEKTOR --------------------
def build_sektor_usage() -> str:
    sektors = "\n".join(
        f"• <b>{name}</b>: {', '.join(stos)}" for name, stos in SEKTOR_MAP.items()
    )
    return (
        f"📍 <b>DAFTAR SEKTOR:</b>\n{sektors}\n\n"
        "<b>Format:</b> /sektor [NAMA] [periode] [tanggal]\n"
        "Periode: daily, weekly, monthly, yearly\n"
        "Contoh: /sektor SIGLI monthly"
    )


def build_sektor_report(sektor: str, period: str, anchor: Optional[str], rows: List[List[str]],
                        today: Optional[date] = None) -> str:
    filtered = filter_by_period(rows, period, anchor, today)
    sektor_rows = [row for row in filtered if matches_sektor(cell(row, COL_WORKZONE, ""), sektor)]

    if period in (WEEKLY, MONTHLY):
        label = period_label(period, anchor, today)
    elif period == YEARLY:
        label = anchor or "Tahun ini"
    else:
        label = anchor or "Hari ini"

    lines = [
        f"📍 <b>LAPORAN SEKTOR {esc(sektor)}</b>",
        f"STO: {', '.join(SEKTOR_MAP.get(sektor, []))}",
        f"Periode: {esc(label)}",
        f"Total: {len(sektor_rows)} WO",
        "",
    ]
    if not sektor_rows:
        lines.append("<i>Belum ada data untuk sektor dan periode ini</i>")
        return "\n".join(lines)

    lines.append("<b>Per Workzone:</b>")
    for workzone, count in count_by(sektor_rows, WORKZONE):
        lines.append(f"• {esc(workzone)}: {count} WO")
    lines.append("")
    lines.append("<b>Per Teknisi:</b>")
    for i, (teknisi, count) in enumerate(count_by(sektor_rows, TEKNISI)):
        lines.append(f"{i + 1}. {esc(teknisi)}: {count} WO")
    return "\n".join(lines)


# -------------------- MISC REPLIES --------------------
def build_lookup(order_id: str, matches: List[List[str]]) -> str:
    if not matches:
        return f"❌ AO/SC ORDER <b>{esc(order_id)}</b> tidak ditemukan"
    lines = []
    for row in matches:
        ident = cell(row, COL_AO, "") or cell(row, COL_SC_ORDER, "")
        lines.append(f"<b>{esc(ident)}</b> : {esc(cell(row, COL_SYMPTOM))}")
    return "\n".join(lines)


def build_saved_confirmation(parsed: Dict[str, str], title: str, package: Optional[str] = None) -> str:
    lines = [
        f"✅ {title} berhasil disimpan!",
        "",
        "<b>DETAIL YANG DICATAT:</b>",
        f"📱 Channel: {esc(parsed.get('channel') or '-')}",
        f"🔢 SC Order: {esc(parsed.get('sc_order_no') or '-')}",
        f"👤 Customer: {esc(parsed.get('customer_name') or '-')}",
        f"📍 Workzone: {esc(parsed.get('workzone') or '-')}",
        f"💬 Symptom: {esc(parsed.get('symptom') or '-')}",
    ]
    if package is not None:
        lines.append(f"📦 Paket: {esc(package)}")
    return "\n".join(lines)


def build_help() -> str:
    sektor_list = "\n".join(f"  {line}" for line in describe_sektors())
    return (
        "🤖 <b>Bot Progres PSB</b>\n\n"
        "<b>📝 INPUT DATA:</b>\n"
        "• /UPDATE [data] - Input progres\n"
        "• /AKTIVASI [data] - Input aktivasi\n\n"
        "<b>👤 PER TEKNISI:</b>\n"
        "• /today [ID] - Progres hari ini\n"
        "• /all [ID] - Seluruh progres\n\n"
        "<b>📊 LAPORAN TEKNISI:</b>\n"
        "• /progres [dd/mm/yyyy] - Harian\n"
        "• /weekly [dd/mm/yyyy] - Mingguan\n"
        "• /monthly [dd/mm/yyyy] - Bulanan\n"
        "• /yearly [yyyy] - Tahunan\n"
        "• /allprogres - Keseluruhan\n\n"
        "<b>📍 REKAP WORKZONE:</b>\n"
        "• /cek [dd/mm/yyyy] - Harian\n"
        "• /weekcek [dd/mm/yyyy] - Mingguan\n"
        "• /monthcek [dd/mm/yyyy] - Bulanan\n"
        "• /yearcek [yyyy] - Tahunan\n"
        "• /allcek - Keseluruhan\n\n"
        "<b>📍 SEKTOR:</b>\n"
        "• /sektor [NAMA] [periode] [tgl]\n"
        "  Periode: daily, weekly, monthly, yearly\n"
        f"  Sektor tersedia:\n{sektor_list}\n\n"
        "<b>🔎 CEK ORDER:</b>\n"
        "• /[AO] atau /[SC_ORDER_NO]\n\n"
        "<b>Contoh:</b>\n"
        "/today FH_ABDULLAH_16891190\n"
        "/weekly 01/03/2026\n"
        "/sektor SIGLI monthly"
    )
