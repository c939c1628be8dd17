from __future__ import annotations

import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))
sys.path.insert(0, str(ROOT / "tests"))

from fluktuasi.detail_sheets import (
    build_account_reason_map,
    canonical_classification,
    dedupe_headers,
    extract_sheet_table,
    find_header_row,
    is_detail_sheet_name,
    strip_accrual_prefix,
)
from fluktuasi.models import CLASSIFICATION_FIELD, PERIOD_FIELD, REMARK_FIELD, RawGrid
from workbook_factory import sample_grids


class SheetNameTests(unittest.TestCase):
    def test_numeric_names_are_detail_sheets(self):
        self.assertTrue(is_detail_sheet_name("21600001"))
        self.assertTrue(is_detail_sheet_name(" 21600001 "))
        self.assertFalse(is_detail_sheet_name("Rekap OI"))
        self.assertFalse(is_detail_sheet_name("2160-0001"))


class HeaderTests(unittest.TestCase):
    def test_first_non_empty_row_is_header(self):
        rows = [[None, ""], [None, None], ["Doc", "Text"]]
        self.assertEqual(find_header_row(rows), 2)
        self.assertIsNone(find_header_row([[None], [""]]))
        self.assertIsNone(find_header_row(rows, limit=2))

    def test_dedupe_headers(self):
        self.assertEqual(
            dedupe_headers(["Amount", "Amount", None, "Amount", "Amount_1"]),
            ["Amount", "Amount_1", "Col_3", "Amount_2", "Amount_1_1"],
        )


class ClassificationTextTests(unittest.TestCase):
    def test_strip_accrual_prefix(self):
        self.assertEqual(strip_accrual_prefix("BIAYA YMH - Gaji"), "Gaji")
        self.assertEqual(strip_accrual_prefix("Bya YMH Listrik"), "Listrik")
        self.assertEqual(strip_accrual_prefix("Pembayaran - Listrik"), "Pembayaran - Listrik")
        self.assertEqual(strip_accrual_prefix(""), "")

    def test_catalogue_snapping(self):
        catalogue = {"21600001": ["Gaji", "Cuti Tahunan"]}
        self.assertEqual(canonical_classification("21600001", "BIAYA YMH - GAJI", catalogue), "Gaji")
        self.assertEqual(canonical_classification("2160000199", "cuti tahunan 2025", catalogue), "Cuti Tahunan")
        self.assertEqual(canonical_classification("21600001", "Bonus", catalogue), "Bonus")
        self.assertEqual(canonical_classification("99999999", "Bonus", catalogue), "Bonus")


class ExtractSheetTableTests(unittest.TestCase):
    def setUp(self):
        grids = {grid.name: grid for grid in sample_grids()}
        self.gaji = extract_sheet_table(grids["21600001"])
        self.listrik = extract_sheet_table(grids["21600002"])

    def test_headers_and_derived_fields(self):
        self.assertEqual(self.gaji.sheet_name, "21600001")
        self.assertEqual(self.gaji.headers, ["Document No", "Posting Date", "Text", "Amount in LC", "Remark"])
        first = self.gaji.rows[0]
        self.assertEqual(first[PERIOD_FIELD], "2026.01")
        self.assertEqual(first[CLASSIFICATION_FIELD], "Gaji")
        self.assertEqual(first[REMARK_FIELD], "Kenaikan gaji pokok")
        self.assertEqual(first["Amount in LC"], 1500)
        self.assertEqual(self.gaji.rows[2][PERIOD_FIELD], "2025.12")
        self.assertEqual(self.gaji.rows[2][CLASSIFICATION_FIELD], "Cuti Tahunan")

    def test_header_below_blank_rows_and_remark_alias(self):
        self.assertEqual(self.listrik.header_row_index, 1)
        self.assertEqual(self.listrik.roles.remark.source, "alias")
        self.assertEqual([row[PERIOD_FIELD] for row in self.listrik.rows], ["2026.01", "2026.01"])
        self.assertEqual(self.listrik.rows[1][REMARK_FIELD], "Listrik gudang")

    def test_blank_sheet_is_skipped(self):
        self.assertIsNone(extract_sheet_table(RawGrid("21600099", [[None, None], ["", None]])))

    def test_missing_date_column_leaves_period_blank(self):
        grid = RawGrid("21600050", [["Doc", "Keterangan"], ["A", "Sewa"], ["B", "Listrik"]])
        table = extract_sheet_table(grid)
        self.assertEqual([row[PERIOD_FIELD] for row in table.rows], ["", ""])
        self.assertEqual([row[CLASSIFICATION_FIELD] for row in table.rows], ["Sewa", "Listrik"])


class AccountReasonMapTests(unittest.TestCase):
    def test_every_classification_and_remark_is_collected(self):
        tables = [extract_sheet_table(grid) for grid in sample_grids() if is_detail_sheet_name(grid.name)]
        reasons = build_account_reason_map(tables)
        self.assertEqual(set(reasons), {"21600001", "21600002"})
        self.assertEqual(list(reasons["21600001"].classifications), ["Gaji", "Cuti Tahunan"])
        self.assertEqual(list(reasons["21600001"].remarks), ["Kenaikan gaji pokok", "Cuti bersama"])
        for table in tables:
            entry = reasons[table.sheet_name]
            for row in table.rows:
                if row[CLASSIFICATION_FIELD]:
                    self.assertIn(row[CLASSIFICATION_FIELD], entry.classifications)
                if row[REMARK_FIELD]:
                    self.assertIn(row[REMARK_FIELD], entry.remarks)


if __name__ == "__main__":
    unittest.main()
