from __future__ import annotations

import importlib.util
import io
import sys
import unittest
import zipfile
from pathlib import Path
from unittest import mock

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))
sys.path.insert(0, str(ROOT / "tests"))

from fluktuasi.config import DEFAULT_SETTINGS
from fluktuasi.contracts import to_payload
from fluktuasi.pipeline import analyse_grids
from fluktuasi.workbook_reader import OLE_MAGIC
from workbook_factory import build_workbook_bytes, sample_grids

APP_PATH = ROOT / "web" / "app.py"
XLSX_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def load_app_module():
    spec = importlib.util.spec_from_file_location("fluktuasi_web_app", APP_PATH)
    module = importlib.util.module_from_spec(spec)
    assert spec.loader is not None
    spec.loader.exec_module(module)
    return module


def fake_response(content: bytes, *, url: str, headers: dict[str, str]) -> mock.Mock:
    response = mock.Mock()
    response.url = url
    response.headers = headers
    response.iter_content.return_value = [content]
    response.raise_for_status.return_value = None
    return response


class WebAppHelperTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = load_app_module()

    def test_normalize_public_url(self):
        normalize = self.app.normalize_public_url
        self.assertEqual(
            normalize("https://github.com/acme/oi/blob/main/data/rekap.xlsx"),
            "https://raw.githubusercontent.com/acme/oi/main/data/rekap.xlsx",
        )
        self.assertEqual(
            normalize("https://docs.google.com/spreadsheets/d/abc123/edit#gid=42"),
            "https://docs.google.com/spreadsheets/d/abc123/export?format=xlsx",
        )
        self.assertEqual(
            normalize("https://drive.google.com/file/d/xyz/view?usp=sharing"),
            "https://drive.google.com/uc?export=download&id=xyz",
        )
        self.assertIn("dl=1", normalize("https://www.dropbox.com/s/k/rekap.xlsx?dl=0"))
        self.assertEqual(normalize(" https://example.com/rekap.xlsx "), "https://example.com/rekap.xlsx")
        with self.assertRaises(ValueError):
            normalize("example.com/rekap.xlsx")

    def test_infer_workbook_extension(self):
        infer = self.app.infer_workbook_extension
        self.assertEqual(infer("rekap.XLSX", "", b""), ".xlsx")
        self.assertEqual(infer("download", "application/vnd.ms-excel; charset=binary", b""), ".xls")
        self.assertEqual(infer("download", "", build_workbook_bytes()), ".xlsx")
        self.assertEqual(infer("download", "", OLE_MAGIC + b"\x00" * 8), ".xls")
        self.assertEqual(infer("notes.txt", "text/plain", b"hello"), ".txt")

    def test_infer_macro_workbook(self):
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            archive.writestr("xl/workbook.xml", "<workbook/>")
            archive.writestr("xl/vbaProject.bin", b"\x00")
        self.assertEqual(self.app.infer_workbook_extension("download", "", buffer.getvalue()), ".xlsm")

    def test_rekap_preview_frame(self):
        payload = to_payload(analyse_grids(sample_grids(), "x.xlsx"))
        frame = self.app.rekap_preview_frame(payload)
        self.assertEqual(
            list(frame.columns),
            ["Type", "Kode Akun", "Uraian", "s.d. Des", "Jan", "Des", "Jan_1", *self.app.SYSTEM_LABELS],
        )
        # the empty source row is hidden
        self.assertEqual(len(frame), 5)
        self.assertEqual(frame.iloc[1]["Reason MoM"], "Gaji; Cuti Tahunan")
        self.assertEqual(frame.iloc[1]["GAP MoM"], 500)
        self.assertIsNone(self.app.rekap_preview_frame({"rekapSheetData": None}))

    def test_detail_preview_frame(self):
        payload = to_payload(analyse_grids(sample_grids(), "x.xlsx"))
        frame = self.app.detail_preview_frame(payload["sheetDataList"][0])
        self.assertEqual(
            list(frame.columns),
            ["Document No", "Posting Date", "Text", "Amount in LC", "Remark", "Periode", "Klasifikasi", "Remark_1"],
        )
        self.assertEqual(len(frame), 3)

    def test_analyse_source(self):
        state = self.app.analyse_source("Rekap Jan.xlsx", build_workbook_bytes(), DEFAULT_SETTINGS)
        self.assertEqual(state["download_name"], "Rekap Jan_HASIL.xlsx")
        self.assertEqual(state["download_mime"], XLSX_TYPE)
        self.assertTrue(state["download_bytes"].startswith(b"PK"))
        self.assertEqual(state["summary"]["detail_sheets"], 2)
        self.assertEqual(state["errors"], [])
        self.assertEqual(state["payload"]["fileName"], "Rekap Jan.xlsx")


class RemoteFetchTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = load_app_module()

    def test_fetch_uses_content_disposition_name(self):
        response = fake_response(
            build_workbook_bytes(),
            url="https://example.com/download?id=1",
            headers={"content-type": XLSX_TYPE, "content-disposition": 'attachment; filename="Rekap Jan.xlsx"'},
        )
        with mock.patch.object(self.app.requests, "get", return_value=response) as get:
            name, content = self.app.fetch_remote_workbook("https://example.com/download?id=1", 10 * 1024 * 1024)
        get.assert_called_once()
        self.assertEqual(name, "Rekap Jan.xlsx")
        self.assertTrue(content.startswith(b"PK"))
        response.close.assert_called_once()

    def test_fetch_adds_extension_from_content(self):
        response = fake_response(build_workbook_bytes(), url="https://example.com/export", headers={})
        with mock.patch.object(self.app.requests, "get", return_value=response):
            name, _ = self.app.fetch_remote_workbook("https://example.com/export", 10 * 1024 * 1024)
        self.assertEqual(name, "export.xlsx")

    def test_fetch_rejects_large_files(self):
        response = fake_response(b"PK" + b"\x00" * 2048, url="https://example.com/big.xlsx", headers={})
        with mock.patch.object(self.app.requests, "get", return_value=response):
            with self.assertRaisesRegex(ValueError, "larger than"):
                self.app.fetch_remote_workbook("https://example.com/big.xlsx", 1024)

    def test_fetch_rejects_unsupported_types(self):
        response = fake_response(b"a,b\n", url="https://example.com/data.csv", headers={"content-type": "text/csv"})
        with mock.patch.object(self.app.requests, "get", return_value=response):
            with self.assertRaisesRegex(ValueError, "Unsupported remote file type"):
                self.app.fetch_remote_workbook("https://example.com/data.csv", 1024 * 1024)


if __name__ == "__main__":
    unittest.main()
