from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

PERIOD_FIELD = "__periode"
CLASSIFICATION_FIELD = "__klasifikasi"
REMARK_FIELD = "__remark"
DERIVED_FIELDS = (PERIOD_FIELD, CLASSIFICATION_FIELD, REMARK_FIELD)
DERIVED_LABELS = ("Periode", "Klasifikasi", "Remark")


class RowType(str, Enum):
    CATEGORY = "category"
    SUBTOTAL = "subtotal"
    DETAIL = "detail"
    EMPTY = "empty"


@dataclass(frozen=True)
class RawGrid:
    """One worksheet read positionally; never mutated downstream."""

    name: str
    rows: list[list[Any]]

    @property
    def width(self) -> int:
        return max((len(row) for row in self.rows), default=0)


@dataclass(frozen=True)
class Detection:
    """Outcome of one heuristic step.

    ``source`` is ``keyword`` or ``statistical`` when something was actually
    detected, ``alias``/``fallback`` when a default was substituted.
    """

    value: Any
    source: str
    confidence: float = 0.0
    reason: str = ""

    @property
    def detected(self) -> bool:
        return self.source in {"keyword", "statistical"}


@dataclass(frozen=True)
class ColumnRoles:
    date: Detection
    classification: Detection
    remark: Detection


@dataclass
class SheetTable:
    sheet_name: str
    headers: list[str]
    rows: list[dict[str, Any]]
    header_row_index: int = 0
    roles: ColumnRoles | None = None


@dataclass
class AccountReasons:
    # dicts used as insertion-ordered sets
    classifications: dict[str, None] = field(default_factory=dict)
    remarks: dict[str, None] = field(default_factory=dict)

    def add(self, classification: str, remark: str) -> None:
        if classification:
            self.classifications.setdefault(classification, None)
        if remark:
            self.remarks.setdefault(remark, None)


@dataclass(frozen=True)
class AmountColumn:
    column_index: int
    raw_label: str
    year_label: str
    date_label: str
    is_cumulative: bool


@dataclass
class RekapRow:
    values: list[Any]
    row_type: RowType
    gap_mom: float = 0
    pct_mom: float = 0
    reason_mom: str = ""
    gap_yoy: float = 0
    pct_yoy: float = 0
    reason_yoy: str = ""


@dataclass
class RekapTable:
    sheet_name: str
    headers: list[str]
    amount_cols: list[AmountColumn]
    account_column_index: int
    mom_current_index: int = 0
    mom_previous_index: int = 0
    yoy_current_index: int = 0
    yoy_previous_index: int = 0
    rows: list[RekapRow] = field(default_factory=list)
    detections: dict[str, Detection] = field(default_factory=dict)


@dataclass
class AnalysisResult:
    file_name: str
    sheet_tables: list[SheetTable] = field(default_factory=list)
    rekap: RekapTable | None = None
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.errors) or self.rekap is None
