"""
emitter.py — re-serialise an analysis result into the styled download workbook.

Presentation only: every value written here was already computed by the
detail-sheet extractor or the rekap parser. Amount cells are passed through
``parse_number`` so Excel sees numbers; nothing else is recalculated.
"""

from __future__ import annotations

import io
import re
from typing import Any, Iterable, Sequence

import openpyxl
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from fluktuasi.config import DEFAULT_SETTINGS, Settings
from fluktuasi.models import DERIVED_FIELDS, DERIVED_LABELS, AmountColumn, AnalysisResult, RekapTable, RowType, SheetTable
from fluktuasi.normalize import cell_text, parse_number

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
DEFAULT_BASENAME = "Fluktuasi_OI"
SHEET_TITLE_LIMIT = 31
INVALID_TITLE_RE = re.compile(r"[\[\]:*?/\\]")
YEAR_SUFFIX_RE = re.compile(r"20(\d{2})")

BLUE = "4472C4"
BLUE_DARK = "244185"
RED = "C00000"
NAVY = "1F3864"
YELLOW = "FFC000"
ORANGE = "E36C09"
WHITE = "FFFFFF"
BLACK = "000000"
ROW_ALT = "EFF6FF"
SYSTEM_ROW = ("FFF5F5", "FFF0F0")
GAP_ROW = ("FFFBEB", "FEF9E0")
REASON_ROW = ("F0F3FF", "E8ECFF")

TEXT_GREY = "374151"
POSITIVE_GREEN = "15803D"
NEGATIVE_RED = "B91C1C"

NUMBER_FORMAT = "#,##0"
PERCENT_FORMAT = "0.00%"

# (row-1 label, row-2 label, kind)
SYSTEM_COLUMNS = (
    ("GAP MoM", "GAP\nMoM", "gap"),
    ("MoM %", "MoM\n%", "pct"),
    ("", "Reason MoM", "reason"),
    ("GAP YoY", "GAP\nYoY", "gap"),
    ("YoY %", "YoY\n%", "pct"),
    ("", "Reason YoY", "reason"),
)


def _fill(hex_color: str) -> PatternFill:
    return PatternFill("solid", fgColor=hex_color)


def _font(color: str = TEXT_GREY, *, bold: bool = False, size: int = 10) -> Font:
    return Font(name="Calibri", size=size, bold=bold, color=color)


def _borders(hex_color: str = "D1D5DB") -> Border:
    side = Side(style="thin", color=hex_color)
    return Border(top=side, bottom=side, left=side, right=side)


HEADER_ALIGNMENT = Alignment(horizontal="center", vertical="center", wrap_text=True)
CELL_ALIGNMENT = Alignment(vertical="center", wrap_text=False)
NUMBER_ALIGNMENT = Alignment(horizontal="right", vertical="center", wrap_text=False)


def safe_sheet_title(name: Any, taken: Iterable[str] = ()) -> str:
    """Excel-legal sheet title, unique (case-insensitively) among ``taken``."""
    cleaned = ILLEGAL_CHARACTERS_RE.sub("", INVALID_TITLE_RE.sub("", cell_text(name)))
    title = cleaned[:SHEET_TITLE_LIMIT].strip() or "Sheet"
    used = {existing.lower() for existing in taken}
    counter = 0
    candidate = title
    while candidate.lower() in used:
        counter += 1
        suffix = f"_{counter}"
        candidate = title[: SHEET_TITLE_LIMIT - len(suffix)].rstrip() + suffix
    return candidate


def download_file_name(file_name: str | None) -> str:
    base = re.sub(r"\.[^.]+$", "", file_name or "") or DEFAULT_BASENAME
    return f"{base}_HASIL.xlsx"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _cell_value(value: Any) -> Any:
    if isinstance(value, str):
        return ILLEGAL_CHARACTERS_RE.sub("", value)
    return value


def _sign_color(value: Any) -> str:
    if not _is_number(value) or value == 0:
        return TEXT_GREY
    return POSITIVE_GREEN if value > 0 else NEGATIVE_RED


def _detail_widths(headers: Sequence[str], rows: Sequence[Sequence[Any]], sample: int = 30) -> list[int]:
    widths = []
    for index, header in enumerate(headers):
        longest = max([len(header)] + [len(cell_text(row[index])) for row in rows[:sample]])
        widths.append(min(max(longest + 2, 10), 60))
    return widths


def write_detail_sheet(wb, table: SheetTable) -> None:
    ws = wb.create_sheet(safe_sheet_title(table.sheet_name, wb.sheetnames))
    original = list(table.headers)
    all_headers = original + list(DERIVED_LABELS)
    width = len(all_headers)

    ws.append([_cell_value(header) for header in all_headers])
    ws.row_dimensions[1].height = 18
    for col, cell in enumerate(ws[1], start=1):
        added = col > len(original)
        cell.fill = _fill(RED if added else BLUE)
        cell.font = _font(WHITE, bold=True)
        cell.alignment = HEADER_ALIGNMENT
        cell.border = _borders("900000" if added else "3A62A8")

    written_rows: list[list[Any]] = []
    for index, record in enumerate(table.rows):
        values = [record.get(header) for header in original] + [record.get(key) or "" for key in DERIVED_FIELDS]
        written_rows.append(values)
        ws.append([_cell_value(value) for value in values])
        row_number = ws.max_row
        ws.row_dimensions[row_number].height = 15
        even = index % 2 == 0
        for col in range(1, width + 1):
            cell = ws.cell(row_number, col)
            added = col > len(original)
            if added:
                cell.fill = _fill(SYSTEM_ROW[0] if even else SYSTEM_ROW[1])
            else:
                cell.fill = _fill(WHITE if even else ROW_ALT)
            cell.font = _font()
            cell.border = _borders("FECACA" if added else "E5E7EB")
            if _is_number(cell.value):
                cell.number_format = NUMBER_FORMAT
                cell.alignment = NUMBER_ALIGNMENT
            else:
                cell.alignment = CELL_ALIGNMENT

    ws.freeze_panes = "A2"
    for col, column_width in enumerate(_detail_widths(all_headers, written_rows), start=1):
        ws.column_dimensions[get_column_letter(col)].width = column_width


def amount_header_color(column: AmountColumn, threshold_year: int = 2026) -> str:
    if column.is_cumulative:
        return ORANGE
    match = YEAR_SUFFIX_RE.search(column.year_label or "")
    if not match:
        return BLUE_DARK
    return NAVY if 2000 + int(match.group(1)) < threshold_year else BLUE_DARK


def _merge_year_groups(ws, labels: Sequence[str]) -> None:
    start = 0
    for end in range(1, len(labels) + 1):
        if end < len(labels) and labels[end] == labels[start]:
            continue
        if labels[start] and end - 1 > start:
            ws.merge_cells(start_row=1, start_column=start + 1, end_row=1, end_column=end)
        start = end


def _style_rekap_header(ws, row_number: int, colors: Sequence[str], kinds: Sequence[str | None], height: int) -> None:
    ws.row_dimensions[row_number].height = height
    for col, (color, kind) in enumerate(zip(colors, kinds), start=1):
        cell = ws.cell(row_number, col)
        cell.fill = _fill(color)
        cell.font = _font(BLACK if kind in {"gap", "pct"} else WHITE, bold=True, size=9)
        cell.alignment = HEADER_ALIGNMENT
        cell.border = _borders("33FFFFFF")


def write_rekap_sheet(wb, rekap: RekapTable, settings: Settings = DEFAULT_SETTINGS) -> None:
    ws = wb.create_sheet(safe_sheet_title(rekap.sheet_name, wb.sheetnames))
    headers = list(rekap.headers)
    total_original = len(headers)
    amount_by_index = {column.column_index: column for column in rekap.amount_cols}
    kinds: list[str | None] = [None] * total_original + [kind for _, _, kind in SYSTEM_COLUMNS]

    year_labels = [amount_by_index[i].year_label if i in amount_by_index else "" for i in range(total_original)]
    ws.append([_cell_value(label) or None for label in year_labels] + [label or None for label, _, _ in SYSTEM_COLUMNS])
    top_colors = [
        amount_header_color(amount_by_index[i], settings.threshold_year) if i in amount_by_index else NAVY
        for i in range(total_original)
    ] + [NAVY if kind == "reason" else YELLOW for _, _, kind in SYSTEM_COLUMNS]
    _style_rekap_header(ws, 1, top_colors, kinds, 16)
    _merge_year_groups(ws, year_labels)

    date_labels = [amount_by_index[i].date_label if i in amount_by_index else headers[i] for i in range(total_original)]
    ws.append([_cell_value(label) for label in date_labels] + [label for _, label, _ in SYSTEM_COLUMNS])
    bottom_colors = [
        amount_header_color(amount_by_index[i], settings.threshold_year) if i in amount_by_index else BLUE_DARK
        for i in range(total_original)
    ] + [NAVY if kind == "reason" else YELLOW for _, _, kind in SYSTEM_COLUMNS]
    _style_rekap_header(ws, 2, bottom_colors, kinds, 22)

    for index, row in enumerate(rekap.rows):
        if row.row_type == RowType.EMPTY:
            continue
        original_values = [
            parse_number(row.values[i] if i < len(row.values) else None) if i in amount_by_index
            else (row.values[i] if i < len(row.values) else None)
            for i in range(total_original)
        ]
        ws.append(
            [_cell_value(value) for value in original_values]
            + [row.gap_mom, row.pct_mom / 100, row.reason_mom, row.gap_yoy, row.pct_yoy / 100, row.reason_yoy]
        )
        row_number = ws.max_row
        special = row.row_type in {RowType.CATEGORY, RowType.SUBTOTAL}
        ws.row_dimensions[row_number].height = 18 if row.row_type == RowType.CATEGORY else 15
        even = index % 2 == 0
        if row.row_type == RowType.CATEGORY:
            row_color = NAVY
        elif row.row_type == RowType.SUBTOTAL:
            row_color = RED
        else:
            row_color = WHITE if even else ROW_ALT

        for col, kind in enumerate(kinds, start=1):
            cell = ws.cell(row_number, col)
            color = row_color
            if not special and kind == "reason":
                color = REASON_ROW[0] if even else REASON_ROW[1]
            elif not special and kind in {"gap", "pct"}:
                color = GAP_ROW[0] if even else GAP_ROW[1]
            cell.fill = _fill(color)
            if special:
                font_color = WHITE
            elif kind in {"gap", "pct"}:
                font_color = _sign_color(cell.value)
            else:
                font_color = TEXT_GREY
            cell.font = _font(font_color, bold=row.row_type != RowType.DETAIL)
            cell.border = _borders("33FFFFFF" if special else "E5E7EB")
            cell.alignment = CELL_ALIGNMENT
            if _is_number(cell.value) and kind != "reason":
                cell.number_format = PERCENT_FORMAT if kind == "pct" else NUMBER_FORMAT
                cell.alignment = NUMBER_ALIGNMENT

    ws.freeze_panes = "A3"
    for col, kind in enumerate(kinds, start=1):
        if kind is None:
            column_width = 16 if (col - 1) in amount_by_index else 22
        else:
            column_width = 40 if kind == "reason" else 14
        ws.column_dimensions[get_column_letter(col)].width = column_width


def render_workbook(result: AnalysisResult, settings: Settings = DEFAULT_SETTINGS) -> bytes:
    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    wb.properties.creator = settings.workbook_creator

    for table in result.sheet_tables:
        write_detail_sheet(wb, table)
    if result.rekap is not None:
        write_rekap_sheet(wb, result.rekap, settings)
    if not wb.worksheets:
        wb.create_sheet("Fluktuasi")

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
