#!/usr/bin/env python3
"""
Generates sample-data/fluktuasi_sample.xlsx, a small OI rekap workbook shaped
like the monthly uploads.

Run from the repo root:
    python sample-data/generate_fluktuasi.py

What is baked in:
  Sheets "21600001", "21600003", "21600006"
    - One detail sheet per account code, SAP line-item export layout
    - Posting dates as real dates, "DD.MM.YYYY" text and YYYYMMDD numbers
    - "BIAYA YMH -" / "BYA YMH" prefixes on the item text
    - 21600006 has a title row above the header and no remark column
  Sheet "Rekap OI"
    - Two-row header: year labels on row 1 (merged), month labels on row 2
    - A cumulative "s.d. Des" column ahead of the monthly columns
    - Category, detail, roll-up (....0000) and "Jumlah" rows
    - Indonesian-formatted amount strings in the "Selisih kurs" row
"""

from datetime import datetime
from pathlib import Path

import openpyxl

OUTPUT = Path(__file__).parent / "fluktuasi_sample.xlsx"

wb = openpyxl.Workbook()
wb.remove(wb.active)

# ── Detail sheets ────────────────────────────────────────────────────────────
detail_header = ["Document No", "Posting Date", "Text", "Amount in LC", "Remark"]

ws = wb.create_sheet("21600001")
ws.append(detail_header)
for row in [
    ["1900000101", datetime(2026, 1, 19), "BIAYA YMH - Gaji", 152_000_000, "Kenaikan gaji pokok 2026"],
    ["1900000102", datetime(2026, 1, 19), "BIAYA YMH - Tunjangan Hari Raya", 48_500_000, "THR dibayar Januari"],
    ["1900000103", "31.12.2025", "BYA YMH Cuti Tahunan", 12_250_000, "Cuti bersama akhir tahun"],
    ["1900000104", 20260131, "BIAYA YMH - Gaji", 3_100_000, "Koreksi gaji pegawai baru"],
]:
    ws.append(row)

ws = wb.create_sheet("21600003")
ws.append(detail_header)
for row in [
    ["1900000201", datetime(2026, 1, 10), "BIAYA YMH - Listrik", 27_300_000, "Tarif PLN naik"],
    ["1900000202", datetime(2026, 1, 12), "BIAYA YMH - Air", 2_150_000, ""],
    ["1900000203", "15.01.2026", "Bya YMH Telepon & Internet", 4_800_000, "Upgrade bandwidth kantor"],
]:
    ws.append(row)

ws = wb.create_sheet("21600006")
ws.append(["Rincian Biaya YMH Jasa Profesional", None, None, None])
ws.append(["Doc", "Pstng Date", "Item Text", "Amount"])
for row in [
    ["1900000301", "2026-01-08", "Jasa audit eksternal", "85.000.000"],
    ["1900000302", "2026-01-21", "Jasa konsultan pajak", "17.500.000,00"],
]:
    ws.append(row)

# ── Rekap sheet ──────────────────────────────────────────────────────────────
ws = wb.create_sheet("Rekap OI")
ws.append(["Kode Akun", "Uraian", "Kumulatif 2025", "2025", None, "2026"])
ws.append([None, None, "s.d. Des", "Jan", "Des", "Jan"])
rekap_rows = [
    ["BEBAN YANG MASIH HARUS DIBAYAR", None, None, None, None, None],
    [21600001, "Biaya YMH Gaji & Tunjangan", 1_840_000_000, 140_000_000, 165_000_000, 215_850_000],
    [21600003, "Biaya YMH Utilitas", 312_000_000, 24_000_000, 26_100_000, 34_250_000],
    [21600006, "Biaya YMH Jasa Profesional", 410_000_000, 0, 95_000_000, 102_500_000],
    [21600000, "Biaya YMH", 2_562_000_000, 164_000_000, 286_100_000, 352_600_000],
    [None, None, None, None, None, None],
    ["PENDAPATAN (BEBAN) LAIN-LAIN", None, None, None, None, None],
    [None, "Selisih kurs", None, "1.234.560,50", "2.000.000,00", "-500.000,00"],
    [None, "Jumlah", 2_562_000_000, 165_234_560.5, 288_100_000, 352_100_000],
]
for row in rekap_rows:
    ws.append(row)

ws.merge_cells("D1:E1")

wb.save(OUTPUT)
print(f"Saved: {OUTPUT}")
