"""
rekap.py — structural parse of the freeform "rekap" summary sheet.

The rekap sheet has a two-row header (year groups on top, month / "s.d."
labels underneath, the top cells usually merged across their group), one
column of account codes, and a run of amount columns. Every data row is
classified (category / subtotal / detail / empty), gets MoM and YoY deltas,
and picks up reason text from the detail sheets of its account code.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Mapping, Sequence

from fluktuasi.column_classifier import column_samples
from fluktuasi.config import DEFAULT_SETTINGS, Settings
from fluktuasi.detail_sheets import dedupe_headers, is_detail_sheet_name, pad_row
from fluktuasi.models import (
    AccountReasons,
    AmountColumn,
    Detection,
    RawGrid,
    RekapRow,
    RekapTable,
    RowType,
)
from fluktuasi.normalize import cell_text, is_blank, maybe_parse_number, parse_number

logger = logging.getLogger(__name__)

SUBTOTAL_LABEL_RE = re.compile(r"\b(total|jumlah|sub[\s\-]?total|gesamt)\b", re.IGNORECASE)
ACCOUNT_CODE_RE = re.compile(r"^\d{5,}$")
ROLLUP_ACCOUNT_RE = re.compile(r"0{4}$")
DIGIT_RE = re.compile(r"\d")
YEAR_RE = re.compile(r"20\d{2}")
CUMULATIVE_RE = re.compile(r"total|up to|s\.d\.|ytd|kumulatif", re.IGNORECASE)
REKAP_NAME_RE = re.compile(r"rekap", re.IGNORECASE)
REASON_SEPARATOR = "; "


def non_empty_count(row: Sequence[Any]) -> int:
    return sum(1 for value in row if not is_blank(value))


def select_rekap_grid(grids: Sequence[RawGrid]) -> Detection:
    candidates = [grid for grid in grids if not is_detail_sheet_name(grid.name)]
    if len(candidates) == 1:
        return Detection(candidates[0], "statistical", 1.0, f"'{candidates[0].name}' is the only non-numeric sheet")
    if not candidates:
        return Detection(None, "fallback", 0.0, "no non-numeric sheet found; rekap section skipped")
    named = [grid for grid in candidates if REKAP_NAME_RE.search(grid.name)]
    if len(named) == 1:
        return Detection(
            named[0],
            "keyword",
            0.5,
            f"{len(candidates)} non-numeric sheets; picked '{named[0].name}' by name",
        )
    names = ", ".join(grid.name for grid in candidates)
    return Detection(None, "fallback", 0.0, f"ambiguous rekap sheet ({names}); rekap section skipped")


def detect_header_band(rows: Sequence[Sequence[Any]], scan_limit: int = 10) -> Detection:
    search_end = min(scan_limit, len(rows))
    for index in range(search_end - 1):
        if non_empty_count(rows[index]) >= 2 and non_empty_count(rows[index + 1]) >= 2:
            return Detection((index, index + 1), "statistical", 1.0, f"header rows {index + 1}-{index + 2}")
    return Detection((0, 1), "fallback", 0.0, "no two-row header found; using rows 1-2")


def merge_header_labels(
    top_row: Sequence[Any],
    bottom_row: Sequence[Any],
    width: int,
) -> tuple[list[str], list[str], list[str]]:
    top_labels: list[str] = []
    bottom_labels: list[str] = []
    effective: list[str] = []
    current_top = ""
    for col in range(width):
        top = cell_text(top_row[col]) if col < len(top_row) else ""
        if top:
            current_top = top
        bottom = cell_text(bottom_row[col]) if col < len(bottom_row) else ""
        top_labels.append(current_top)
        bottom_labels.append(bottom)
        effective.append(bottom or current_top or f"Col_{col + 1}")
    return dedupe_headers(effective), top_labels, bottom_labels


def detect_account_column(
    data_rows: Sequence[Sequence[Any]],
    width: int,
    settings: Settings = DEFAULT_SETTINGS,
) -> Detection:
    sample = data_rows[: settings.account_sample_rows]
    for col in range(width):
        hits = sum(
            1
            for row in sample
            if col < len(row) and ACCOUNT_CODE_RE.fullmatch(cell_text(row[col]))
        )
        if hits >= settings.account_min_hits:
            return Detection(col, "statistical", round(hits / len(sample), 3), f"{hits} account codes in column {col + 1}")
    return Detection(0, "fallback", 0.0, "no column holds 5+ digit account codes; using column 1")


def year_label_for(top_label: str) -> str:
    match = YEAR_RE.search(top_label)
    return match.group(0) if match else top_label


def detect_amount_columns(
    data_rows: Sequence[Sequence[Any]],
    headers: Sequence[str],
    top_labels: Sequence[str],
    bottom_labels: Sequence[str],
    account_index: int,
    settings: Settings = DEFAULT_SETTINGS,
) -> list[AmountColumn]:
    sample = data_rows[: settings.amount_sample_rows]
    columns: list[AmountColumn] = []
    for col, header in enumerate(headers):
        if col == account_index:
            continue
        values = column_samples(sample, col)
        if not values:
            continue
        numeric = sum(1 for value in values if maybe_parse_number(value) is not None)
        if numeric / len(values) < settings.amount_density_threshold:
            continue
        columns.append(
            AmountColumn(
                column_index=col,
                raw_label=header,
                year_label=year_label_for(top_labels[col]),
                date_label=bottom_labels[col] or header,
                is_cumulative=bool(CUMULATIVE_RE.search(header)),
            )
        )
    return columns


def select_comparison_indices(amount_cols: Sequence[AmountColumn]) -> tuple[int, int, int, int]:
    """Return (mom_current, mom_previous, yoy_current, yoy_previous).

    Assumes chronological column order: the last two amount columns are this
    month and last month, the first point-in-time column is a year ago.
    """
    if len(amount_cols) < 2:
        return 0, 0, 0, 0
    last = len(amount_cols) - 1
    yoy_previous = next((index for index, col in enumerate(amount_cols) if not col.is_cumulative), 0)
    return last, last - 1, last, yoy_previous


def classify_row(values: Sequence[Any], account_index: int) -> RowType:
    if all(is_blank(value) for value in values):
        return RowType.EMPTY
    if any(SUBTOTAL_LABEL_RE.search(cell_text(value)) for value in values if isinstance(value, str)):
        return RowType.SUBTOTAL

    account = cell_text(values[account_index]) if account_index < len(values) else ""
    if DIGIT_RE.search(account):
        if ROLLUP_ACCOUNT_RE.search(account):
            return RowType.SUBTOTAL
        return RowType.DETAIL

    for index, value in enumerate(values):
        if index == account_index:
            continue
        number = maybe_parse_number(value)
        if number is not None and number != 0:
            return RowType.SUBTOTAL
    return RowType.CATEGORY


def compute_deltas(current: float, previous: float) -> tuple[float, float]:
    gap = current - previous
    if previous == 0:
        return gap, 0
    return gap, (gap / abs(previous)) * 100


def format_reasons(values: Iterable[str]) -> str:
    return REASON_SEPARATOR.join(dict.fromkeys(value for value in values if value))


def _amount(values: Sequence[Any], amount_cols: Sequence[AmountColumn], index: int) -> float:
    if not amount_cols:
        return 0
    column = amount_cols[index].column_index
    return parse_number(values[column]) if column < len(values) else 0


def build_rekap_row(
    values: list[Any],
    account_index: int,
    amount_cols: Sequence[AmountColumn],
    indices: tuple[int, int, int, int],
    reason_map: Mapping[str, AccountReasons],
) -> RekapRow:
    mom_current, mom_previous, yoy_current, yoy_previous = indices
    gap_mom, pct_mom = compute_deltas(_amount(values, amount_cols, mom_current), _amount(values, amount_cols, mom_previous))
    gap_yoy, pct_yoy = compute_deltas(_amount(values, amount_cols, yoy_current), _amount(values, amount_cols, yoy_previous))

    account = cell_text(values[account_index]) if account_index < len(values) else ""
    reasons = reason_map.get(account) if account else None
    return RekapRow(
        values=values,
        row_type=classify_row(values, account_index),
        gap_mom=gap_mom,
        pct_mom=pct_mom,
        reason_mom=format_reasons(reasons.classifications) if reasons else "",
        gap_yoy=gap_yoy,
        pct_yoy=pct_yoy,
        reason_yoy=format_reasons(reasons.remarks) if reasons else "",
    )


def parse_rekap(
    grid: RawGrid,
    reason_map: Mapping[str, AccountReasons] | None = None,
    settings: Settings = DEFAULT_SETTINGS,
) -> RekapTable:
    reason_map = reason_map or {}
    width = grid.width
    band = detect_header_band(grid.rows, settings.header_scan_rows)
    top_index, bottom_index = band.value
    top_row = pad_row(grid.rows[top_index], width) if top_index < len(grid.rows) else [None] * width
    bottom_row = pad_row(grid.rows[bottom_index], width) if bottom_index < len(grid.rows) else [None] * width
    headers, top_labels, bottom_labels = merge_header_labels(top_row, bottom_row, width)

    data_rows = [pad_row(row, width) for row in grid.rows[bottom_index + 1 :]]
    account = detect_account_column(data_rows, width, settings)
    amount_cols = detect_amount_columns(data_rows, headers, top_labels, bottom_labels, account.value, settings)
    indices = select_comparison_indices(amount_cols)
    amount_detection = (
        Detection(len(amount_cols), "statistical", 1.0, f"{len(amount_cols)} amount columns")
        if len(amount_cols) >= 2
        else Detection(len(amount_cols), "fallback", 0.0, "fewer than 2 amount columns; deltas are 0")
    )
    for name, detection in (("header band", band), ("account column", account), ("amount columns", amount_detection)):
        if detection.detected:
            logger.debug("Rekap '%s' %s: %s", grid.name, name, detection.reason)
        else:
            logger.warning("Rekap '%s' %s: %s", grid.name, name, detection.reason)

    rows = [build_rekap_row(values, account.value, amount_cols, indices, reason_map) for values in data_rows]
    mom_current, mom_previous, yoy_current, yoy_previous = indices
    return RekapTable(
        sheet_name=grid.name,
        headers=headers,
        amount_cols=amount_cols,
        account_column_index=account.value,
        mom_current_index=mom_current,
        mom_previous_index=mom_previous,
        yoy_current_index=yoy_current,
        yoy_previous_index=yoy_previous,
        rows=rows,
        detections={"header_band": band, "account_column": account, "amount_columns": amount_detection},
    )
