"""Intermediate JSON contract between the analysis pass and the download pass,
plus the versioned run summaries the CLI writes."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import Any

from fluktuasi.models import (
    AmountColumn,
    AnalysisResult,
    RekapRow,
    RekapTable,
    RowType,
    SheetTable,
)

CONTRACT_VERSIONS = {
    "fluktuasi.payload": "1.0.0",
    "fluktuasi.report": "1.0.0",
    "fluktuasi.export_summary": "1.0.0",
}

ROW_TYPES = {row_type.value: row_type for row_type in RowType}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def build_contract(name: str) -> dict[str, str]:
    version = CONTRACT_VERSIONS[name]
    return {"name": name, "version": version}


def build_run_summary(
    *,
    tool: str,
    command: str,
    input_path: Path | str,
    status: str = "ok",
    output_path: Path | str | None = None,
    metrics: dict[str, Any] | None = None,
    warnings: list[str] | None = None,
) -> dict[str, Any]:
    return {
        "tool": tool,
        "command": command,
        "status": status,
        "generated_at": utc_now_iso(),
        "input_file": str(input_path),
        "output_file": str(output_path) if output_path else None,
        "warnings_count": len(warnings or []),
        "warnings": list(warnings or []),
        "metrics": metrics or {},
    }


def json_value(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return value


def _sheet_payload(table: SheetTable) -> dict[str, Any]:
    return {
        "sheetName": table.sheet_name,
        "headers": list(table.headers),
        "rows": [{key: json_value(value) for key, value in row.items()} for row in table.rows],
    }


def _amount_column_payload(column: AmountColumn) -> dict[str, Any]:
    return {
        "colIdx": column.column_index,
        "rawLabel": column.raw_label,
        "yearLabel": column.year_label,
        "dateLabel": column.date_label,
        "isCumulative": column.is_cumulative,
    }


def _rekap_row_payload(row: RekapRow) -> dict[str, Any]:
    return {
        "values": [json_value(value) for value in row.values],
        "type": row.row_type.value,
        "gapMoM": row.gap_mom,
        "pctMoM": row.pct_mom,
        "reasonMoM": row.reason_mom,
        "gapYoY": row.gap_yoy,
        "pctYoY": row.pct_yoy,
        "reasonYoY": row.reason_yoy,
    }


def _rekap_payload(rekap: RekapTable) -> dict[str, Any]:
    return {
        "sheetName": rekap.sheet_name,
        "headers": list(rekap.headers),
        "amountCols": [_amount_column_payload(column) for column in rekap.amount_cols],
        "accountColIdx": rekap.account_column_index,
        "momCurrIdx": rekap.mom_current_index,
        "momPrevIdx": rekap.mom_previous_index,
        "yoyCurrIdx": rekap.yoy_current_index,
        "yoyPrevIdx": rekap.yoy_previous_index,
        "rows": [_rekap_row_payload(row) for row in rekap.rows],
    }


def to_payload(result: AnalysisResult) -> dict[str, Any]:
    return {
        "fileName": result.file_name,
        "sheetDataList": [_sheet_payload(table) for table in result.sheet_tables],
        "rekapSheetData": _rekap_payload(result.rekap) if result.rekap is not None else None,
    }


def from_payload(payload: dict[str, Any]) -> AnalysisResult:
    """Rebuild an ``AnalysisResult`` from the wire shape.

    Missing lists and objects fall back to empty ones; nothing else is checked.
    """
    payload = payload or {}
    tables = [
        SheetTable(
            sheet_name=str(sheet.get("sheetName") or ""),
            headers=list(sheet.get("headers") or []),
            rows=list(sheet.get("rows") or []),
        )
        for sheet in payload.get("sheetDataList") or []
    ]

    rekap = None
    rekap_data = payload.get("rekapSheetData")
    if rekap_data:
        rekap = RekapTable(
            sheet_name=str(rekap_data.get("sheetName") or ""),
            headers=list(rekap_data.get("headers") or []),
            amount_cols=[
                AmountColumn(
                    column_index=int(column.get("colIdx") or 0),
                    raw_label=str(column.get("rawLabel") or ""),
                    year_label=str(column.get("yearLabel") or ""),
                    date_label=str(column.get("dateLabel") or ""),
                    is_cumulative=bool(column.get("isCumulative")),
                )
                for column in rekap_data.get("amountCols") or []
            ],
            account_column_index=int(rekap_data.get("accountColIdx") or 0),
            mom_current_index=int(rekap_data.get("momCurrIdx") or 0),
            mom_previous_index=int(rekap_data.get("momPrevIdx") or 0),
            yoy_current_index=int(rekap_data.get("yoyCurrIdx") or 0),
            yoy_previous_index=int(rekap_data.get("yoyPrevIdx") or 0),
            rows=[
                RekapRow(
                    values=list(row.get("values") or []),
                    row_type=ROW_TYPES.get(row.get("type"), RowType.DETAIL),
                    gap_mom=row.get("gapMoM") or 0,
                    pct_mom=row.get("pctMoM") or 0,
                    reason_mom=row.get("reasonMoM") or "",
                    gap_yoy=row.get("gapYoY") or 0,
                    pct_yoy=row.get("pctYoY") or 0,
                    reason_yoy=row.get("reasonYoY") or "",
                )
                for row in rekap_data.get("rows") or []
            ],
        )

    return AnalysisResult(file_name=str(payload.get("fileName") or ""), sheet_tables=tables, rekap=rekap)
