"""
pipeline.py — wire the reader, extractors and emitter together.

Two entry points mirror the two passes of the fluctuation page: ``analyse_*``
turns workbook bytes into an ``AnalysisResult`` (and from there the JSON
payload), ``build_download`` turns a payload back into the styled workbook
without touching the original bytes again.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

from fluktuasi.config import DEFAULT_SETTINGS, Settings
from fluktuasi.contracts import from_payload
from fluktuasi.detail_sheets import build_account_reason_map, extract_sheet_table, is_detail_sheet_name
from fluktuasi.emitter import XLSX_MIME, download_file_name, render_workbook
from fluktuasi.models import AnalysisResult, RawGrid, RowType
from fluktuasi.rekap import parse_rekap, select_rekap_grid
from fluktuasi.workbook_reader import WorkbookSource, read_workbook

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DownloadArtifact:
    content: bytes
    file_name: str
    mime: str = XLSX_MIME


def _extract_detail_sheets(grids: Sequence[RawGrid], result: AnalysisResult, settings: Settings) -> None:
    for grid in grids:
        if not is_detail_sheet_name(grid.name):
            continue
        try:
            table = extract_sheet_table(grid, settings)
        except Exception as exc:
            logger.error("Sheet '%s' could not be processed: %s", grid.name, exc)
            result.errors.append(f"Sheet '{grid.name}': {exc}")
            continue
        if table is None:
            result.warnings.append(f"Sheet '{grid.name}' has no header row; skipped")
            continue
        if table.roles is not None:
            for role, detection in (
                ("date", table.roles.date),
                ("classification", table.roles.classification),
                ("remark", table.roles.remark),
            ):
                if not detection.detected:
                    result.warnings.append(f"Sheet '{grid.name}' {role} column: {detection.reason}")
        result.sheet_tables.append(table)


def analyse_grids(
    grids: Sequence[RawGrid],
    file_name: str = "",
    settings: Settings = DEFAULT_SETTINGS,
) -> AnalysisResult:
    result = AnalysisResult(file_name=file_name)
    _extract_detail_sheets(grids, result, settings)
    reason_map = build_account_reason_map(result.sheet_tables)

    selection = select_rekap_grid(grids)
    if selection.value is None:
        logger.warning("%s", selection.reason)
        result.warnings.append(selection.reason)
        return result
    if selection.source == "keyword":
        result.warnings.append(selection.reason)

    grid = selection.value
    try:
        rekap = parse_rekap(grid, reason_map, settings)
    except Exception as exc:
        logger.error("Rekap sheet '%s' could not be processed: %s", grid.name, exc)
        result.errors.append(f"Rekap sheet '{grid.name}': {exc}")
        return result

    for name, detection in rekap.detections.items():
        if not detection.detected:
            result.warnings.append(f"Rekap '{grid.name}' {name.replace('_', ' ')}: {detection.reason}")
    result.rekap = rekap
    logger.info(
        "Analysed %s: %d detail sheets, rekap '%s' with %d rows",
        file_name or "workbook",
        len(result.sheet_tables),
        rekap.sheet_name,
        len(rekap.rows),
    )
    return result


def analyse_workbook(
    source: WorkbookSource,
    file_name: str | None = None,
    settings: Settings = DEFAULT_SETTINGS,
) -> AnalysisResult:
    if file_name is None and isinstance(source, (str, Path)):
        file_name = Path(source).name
    grids = read_workbook(source, file_name)
    logger.debug("Read %d sheets from %s", len(grids), file_name or "upload")
    return analyse_grids(grids, file_name or "", settings)


def build_download(payload: dict[str, Any], settings: Settings = DEFAULT_SETTINGS) -> DownloadArtifact:
    result = from_payload(payload)
    content = render_workbook(result, settings)
    return DownloadArtifact(content=content, file_name=download_file_name(result.file_name))


def _column_label(headers: Sequence[str], index: int | None) -> str | None:
    if index is None or index >= len(headers):
        return None
    return headers[index]


def summarise(result: AnalysisResult) -> dict[str, Any]:
    detail_columns = {}
    for table in result.sheet_tables:
        roles = table.roles
        detail_columns[table.sheet_name] = {
            "rows": len(table.rows),
            "date": _column_label(table.headers, roles.date.value) if roles else None,
            "classification": _column_label(table.headers, roles.classification.value) if roles else None,
            "remark": _column_label(table.headers, roles.remark.value) if roles else None,
        }

    rekap_summary = None
    rekap = result.rekap
    if rekap is not None:
        counts = Counter(row.row_type for row in rekap.rows)
        labels = [column.raw_label for column in rekap.amount_cols]

        def label(index: int) -> str | None:
            return labels[index] if index < len(labels) else None

        rekap_summary = {
            "sheet_name": rekap.sheet_name,
            "rows": {row_type.value: counts.get(row_type, 0) for row_type in RowType},
            "account_column": _column_label(rekap.headers, rekap.account_column_index),
            "amount_columns": len(rekap.amount_cols),
            "mom": {"current": label(rekap.mom_current_index), "previous": label(rekap.mom_previous_index)},
            "yoy": {"current": label(rekap.yoy_current_index), "previous": label(rekap.yoy_previous_index)},
            "rows_with_reasons": sum(1 for row in rekap.rows if row.reason_mom or row.reason_yoy),
        }

    return {
        "file_name": result.file_name,
        "detail_sheets": len(result.sheet_tables),
        "detail_rows": sum(len(table.rows) for table in result.sheet_tables),
        "detail_columns": detail_columns,
        "rekap": rekap_summary,
        "warnings_count": len(result.warnings),
        "errors_count": len(result.errors),
        "partial": result.partial,
    }
