from __future__ import annotations

import io
import sys
import unittest
from dataclasses import replace
from pathlib import Path

import openpyxl

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))
sys.path.insert(0, str(ROOT / "tests"))

from fluktuasi.config import DEFAULT_SETTINGS
from fluktuasi.emitter import (
    amount_header_color,
    download_file_name,
    render_workbook,
    safe_sheet_title,
)
from fluktuasi.models import AmountColumn, AnalysisResult, RawGrid, SheetTable
from fluktuasi.pipeline import analyse_grids
from workbook_factory import sample_grids


def rgb(cell) -> str:
    return str(cell.fill.fgColor.rgb)[-6:]


class NamingTests(unittest.TestCase):
    def test_download_file_name(self):
        self.assertEqual(download_file_name("Rekap Jan.xlsx"), "Rekap Jan_HASIL.xlsx")
        self.assertEqual(download_file_name("oi.2026.xls"), "oi.2026_HASIL.xlsx")
        self.assertEqual(download_file_name(""), "Fluktuasi_OI_HASIL.xlsx")
        self.assertEqual(download_file_name(None), "Fluktuasi_OI_HASIL.xlsx")

    def test_safe_sheet_title(self):
        self.assertEqual(len(safe_sheet_title("1" * 40)), 31)
        self.assertEqual(safe_sheet_title("Rekap [Jan/Feb]"), "Rekap JanFeb")

    def test_safe_sheet_title_is_unique_within_limit(self):
        base = "1" * 31
        self.assertEqual(safe_sheet_title(base + "2", [base]), "1" * 29 + "_1")
        self.assertEqual(safe_sheet_title(base + "3", [base, "1" * 29 + "_1"]), "1" * 29 + "_2")
        self.assertEqual(safe_sheet_title("rekap oi", ["Rekap OI"]), "rekap oi_1")
        self.assertEqual(safe_sheet_title("Doc\x01"), "Doc")

    def test_amount_header_color(self):
        self.assertEqual(amount_header_color(AmountColumn(1, "s.d. Des", "2025", "s.d. Des", True)), "E36C09")
        self.assertEqual(amount_header_color(AmountColumn(1, "Jan", "2025", "Jan", False)), "1F3864")
        self.assertEqual(amount_header_color(AmountColumn(1, "Jan", "2026", "Jan", False)), "244185")
        self.assertEqual(amount_header_color(AmountColumn(1, "Jan", "Realisasi", "Jan", False)), "244185")
        self.assertEqual(amount_header_color(AmountColumn(1, "Jan", "2026", "Jan", False), threshold_year=2027), "1F3864")


class RenderWorkbookTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.result = analyse_grids(sample_grids(), "Rekap Jan.xlsx")
        content = render_workbook(cls.result)
        cls.workbook = openpyxl.load_workbook(io.BytesIO(content))

    def test_sheet_order_and_creator(self):
        self.assertEqual(self.workbook.sheetnames, ["21600001", "21600002", "Rekap OI"])
        self.assertEqual(self.workbook.properties.creator, DEFAULT_SETTINGS.workbook_creator)

    def test_detail_sheet_layout(self):
        ws = self.workbook["21600001"]
        headers = [cell.value for cell in ws[1]]
        self.assertEqual(headers, ["Document No", "Posting Date", "Text", "Amount in LC", "Remark", "Periode", "Klasifikasi", "Remark"])
        self.assertEqual(rgb(ws["A1"]), "4472C4")
        self.assertEqual(rgb(ws["F1"]), "C00000")
        self.assertTrue(ws["A1"].font.bold)
        self.assertEqual(ws.freeze_panes, "A2")
        self.assertEqual(ws["F2"].value, "2026.01")
        self.assertEqual(ws["G2"].value, "Gaji")
        self.assertEqual(ws["D2"].number_format, "#,##0")
        self.assertEqual(ws["D2"].alignment.horizontal, "right")
        self.assertEqual(ws["D2"].alignment.vertical, "center")
        self.assertEqual(ws["B2"].alignment.vertical, "center")
        self.assertEqual(rgb(ws["A3"]), "EFF6FF")
        for letter in "ABCDEFGH":
            width = ws.column_dimensions[letter].width
            self.assertGreaterEqual(width, 10)
            self.assertLessEqual(width, 60)

    def test_rekap_headers(self):
        ws = self.workbook["Rekap OI"]
        self.assertEqual(ws.freeze_panes, "A3")
        self.assertEqual([ws.cell(1, col).value for col in range(7, 13)], ["GAP MoM", "MoM %", None, "GAP YoY", "YoY %", None])
        self.assertEqual(ws.cell(2, 9).value, "Reason MoM")
        self.assertEqual(ws["C1"].value, "2025")
        self.assertEqual(ws["F1"].value, "2026")
        self.assertIn("C1:E1", {str(rng) for rng in ws.merged_cells.ranges})
        self.assertEqual(ws["D2"].value, "Jan")
        self.assertEqual(ws["A2"].value, "Kode Akun")
        self.assertEqual(rgb(ws["C2"]), "E36C09")
        self.assertEqual(rgb(ws["D2"]), "1F3864")
        self.assertEqual(rgb(ws["F2"]), "244185")
        self.assertEqual(rgb(ws["G2"]), "FFC000")
        self.assertEqual(rgb(ws["I2"]), "1F3864")
        self.assertEqual(str(ws["G2"].font.color.rgb)[-6:], "000000")

    def test_rekap_rows(self):
        ws = self.workbook["Rekap OI"]
        # the empty source row is not emitted
        self.assertEqual(ws.max_row, 2 + 5)
        category, gaji, listrik, subtotal = (3, 4, 5, 6)
        self.assertEqual(rgb(ws.cell(category, 1)), "1F3864")
        self.assertEqual(str(ws.cell(category, 1).font.color.rgb)[-6:], "FFFFFF")
        self.assertEqual(rgb(ws.cell(subtotal, 2)), "C00000")
        self.assertTrue(ws.cell(subtotal, 2).font.bold)

        self.assertEqual(ws.cell(gaji, 7).value, 500)
        self.assertEqual(ws.cell(gaji, 8).value, 0.5)
        self.assertEqual(ws.cell(gaji, 8).number_format, "0.00%")
        self.assertEqual(ws.cell(gaji, 7).number_format, "#,##0")
        self.assertEqual(ws.cell(gaji, 9).value, "Gaji; Cuti Tahunan")
        self.assertEqual(str(ws.cell(gaji, 7).font.color.rgb)[-6:], "15803D")
        self.assertFalse(ws.cell(gaji, 1).font.bold)
        self.assertEqual(ws.cell(listrik, 11).value, 0)
        self.assertEqual(str(ws.cell(listrik, 11).font.color.rgb)[-6:], "374151")
        self.assertEqual(ws.cell(7, 4).value, 1234.56)

    def test_rekap_column_widths(self):
        ws = self.workbook["Rekap OI"]
        self.assertEqual(ws.column_dimensions["A"].width, 22)
        self.assertEqual(ws.column_dimensions["C"].width, 16)
        self.assertEqual(ws.column_dimensions["G"].width, 14)
        self.assertEqual(ws.column_dimensions["I"].width, 40)

    def test_negative_gap_is_red(self):
        result = analyse_grids(sample_grids(), "x.xlsx")
        row = result.rekap.rows[1]
        row.gap_mom, row.pct_mom = -500, -25.0
        ws = openpyxl.load_workbook(io.BytesIO(render_workbook(result)))["Rekap OI"]
        self.assertEqual(str(ws.cell(4, 7).font.color.rgb)[-6:], "B91C1C")
        self.assertEqual(ws.cell(4, 8).value, -0.25)


class EdgeCaseTests(unittest.TestCase):
    def test_long_sheet_names_are_truncated(self):
        name = "2160000100000000000000000000000000000001"
        table = SheetTable(sheet_name=name, headers=["Doc"], rows=[{"Doc": "A"}])
        workbook = openpyxl.load_workbook(io.BytesIO(render_workbook(AnalysisResult("x.xlsx", [table]))))
        self.assertEqual(workbook.sheetnames, [name[:31]])

    def test_long_names_sharing_a_prefix_stay_distinct(self):
        tables = [
            SheetTable(sheet_name="1" * 31 + "1", headers=["Doc"], rows=[{"Doc": "A"}]),
            SheetTable(sheet_name="1" * 31 + "2", headers=["Doc"], rows=[{"Doc": "B"}]),
        ]
        workbook = openpyxl.load_workbook(io.BytesIO(render_workbook(AnalysisResult("x.xlsx", tables))))
        self.assertEqual(workbook.sheetnames, ["1" * 31, "1" * 29 + "_1"])
        self.assertTrue(all(len(name) <= 31 for name in workbook.sheetnames))
        self.assertEqual(workbook.worksheets[1]["A2"].value, "B")

    def test_control_characters_in_headers_are_dropped(self):
        grids = [
            RawGrid("21600001", [["Doc\x01", "Text"], ["1", "Gaji"]]),
            RawGrid("Rekap", [["Kode\x02", "Jan\x03 2026", "Feb 2026"], ["Akun", "Jan\x04", "Feb"], ["21600001", 10, 20], ["21600002", 5, 7]]),
        ]
        result = analyse_grids(grids, "x.xlsx")
        workbook = openpyxl.load_workbook(io.BytesIO(render_workbook(result)))
        self.assertEqual(workbook["21600001"]["A1"].value, "Doc")
        self.assertEqual(workbook["21600001"]["A2"].value, "1")
        rekap = workbook["Rekap"]
        self.assertEqual(rekap["B2"].value, "Jan")
        self.assertNotIn("\x03", str(rekap["B1"].value))

    def test_empty_result_still_produces_a_workbook(self):
        workbook = openpyxl.load_workbook(io.BytesIO(render_workbook(AnalysisResult("x.xlsx"))))
        self.assertEqual(len(workbook.sheetnames), 1)

    def test_creator_comes_from_settings(self):
        settings = replace(DEFAULT_SETTINGS, workbook_creator="Tim Akuntansi")
        workbook = openpyxl.load_workbook(io.BytesIO(render_workbook(AnalysisResult("x.xlsx"), settings)))
        self.assertEqual(workbook.properties.creator, "Tim Akuntansi")


if __name__ == "__main__":
    unittest.main()
