from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Sequence

from fluktuasi.column_classifier import classify_columns
from fluktuasi.config import DEFAULT_SETTINGS, Settings
from fluktuasi.models import (
    CLASSIFICATION_FIELD,
    PERIOD_FIELD,
    REMARK_FIELD,
    AccountReasons,
    RawGrid,
    SheetTable,
)
from fluktuasi.normalize import cell_text, is_blank, parse_date_to_period

logger = logging.getLogger(__name__)

DETAIL_SHEET_RE = re.compile(r"^\d+$")
ACCRUAL_PREFIX_RE = re.compile(r"^(BIAYA\s+YMH|BYA\s+YMH)\s*[-–]?\s*", re.IGNORECASE)
ACCOUNT_PREFIX_LENGTH = 8


def is_detail_sheet_name(name: str) -> bool:
    return bool(DETAIL_SHEET_RE.fullmatch(str(name).strip()))


def row_is_empty(row: Sequence[Any]) -> bool:
    return all(is_blank(value) for value in row)


def pad_row(row: Sequence[Any], width: int) -> list[Any]:
    values = list(row[:width])
    if len(values) < width:
        values.extend([None] * (width - len(values)))
    return values


def find_header_row(rows: Sequence[Sequence[Any]], limit: int | None = None) -> int | None:
    search = rows if limit is None else rows[:limit]
    for index, row in enumerate(search):
        if not row_is_empty(row):
            return index
    return None


def dedupe_headers(labels: Iterable[Any]) -> list[str]:
    headers: list[str] = []
    seen: set[str] = set()
    counts: dict[str, int] = {}
    for position, label in enumerate(labels, start=1):
        base = cell_text(label) or f"Col_{position}"
        name = base
        if name in seen:
            suffix = counts.get(base, 0)
            while name in seen:
                suffix += 1
                name = f"{base}_{suffix}"
            counts[base] = suffix
        seen.add(name)
        headers.append(name)
    return headers


def strip_accrual_prefix(text: str) -> str:
    raw = str(text or "").strip()
    if not raw or not ACCRUAL_PREFIX_RE.match(raw):
        return raw
    if " - " in raw:
        cleaned = raw.split(" - ")[-1].strip()
    else:
        cleaned = ACCRUAL_PREFIX_RE.sub("", raw).strip()
    return cleaned or raw


def canonical_classification(account_code: str, text: str, catalogue: dict[str, list[str]]) -> str:
    """Strip the accrual prefix and snap to a known classification of the account."""
    cleaned = strip_accrual_prefix(text)
    if not cleaned:
        return ""
    code = str(account_code).strip()
    options = catalogue.get(code) or catalogue.get(code[:ACCOUNT_PREFIX_LENGTH]) or []
    if not options:
        return cleaned
    lowered = cleaned.lower()
    for option in options:
        if option.lower() == lowered:
            return option
    for option in options:
        candidate = option.lower()
        if candidate in lowered or lowered in candidate:
            return option
    return cleaned


def _cell(values: Sequence[Any], index: int | None) -> Any:
    if index is None or index >= len(values):
        return None
    return values[index]


def extract_sheet_table(grid: RawGrid, settings: Settings = DEFAULT_SETTINGS) -> SheetTable | None:
    header_index = find_header_row(grid.rows, settings.detail_header_scan_rows)
    if header_index is None:
        logger.warning("Sheet '%s' has no header row; skipped", grid.name)
        return None

    width = grid.width
    headers = dedupe_headers(pad_row(grid.rows[header_index], width))
    data_rows = [pad_row(row, width) for row in grid.rows[header_index + 1 :] if not row_is_empty(row)]
    roles = classify_columns(headers, data_rows, settings)
    account_code = grid.name.strip()

    rows: list[dict[str, Any]] = []
    for values in data_rows:
        record: dict[str, Any] = dict(zip(headers, values))
        date_value = _cell(values, roles.date.value)
        record[PERIOD_FIELD] = parse_date_to_period(date_value) if roles.date.value is not None else ""
        record[CLASSIFICATION_FIELD] = canonical_classification(
            account_code,
            cell_text(_cell(values, roles.classification.value)),
            settings.catalogue,
        )
        record[REMARK_FIELD] = cell_text(_cell(values, roles.remark.value))
        rows.append(record)

    return SheetTable(
        sheet_name=account_code,
        headers=headers,
        rows=rows,
        header_row_index=header_index,
        roles=roles,
    )


def build_account_reason_map(tables: Iterable[SheetTable]) -> dict[str, AccountReasons]:
    reasons: dict[str, AccountReasons] = {}
    for table in tables:
        entry = reasons.setdefault(table.sheet_name.strip(), AccountReasons())
        for row in table.rows:
            entry.add(str(row.get(CLASSIFICATION_FIELD) or ""), str(row.get(REMARK_FIELD) or ""))
    return reasons
