"""Known accrual classifications per account code (kode akun accrual)."""

from __future__ import annotations

KODE_AKUN_KLASIFIKASI: dict[str, list[str]] = {
    "21600001": ["Gaji", "Cuti Tahunan"],
    "21600003": ["JASPRO"],
    "21600004": ["THR"],
    "21600005": ["JASPRO", "GAJI"],
    "21600006": ["PCD PPH 21"],
    "21600007": ["PENGOBATAN"],
    "21600008": ["BK REMBANG", "BK TUBAN", "LAIN-LAIN", "TL REMBANG", "TL TUBAN"],
    "21600009": [
        "PBB BABAT LAMONGAN", "PBB BANGKALAN", "PBB BANJARMASIN", "PBB BANYUWANGI",
        "PBB CIGADING", "PBB DAGEN", "PBB GRESIK", "PBB JAKARTA", "PBB LAMONGAN",
        "PBB MEMPAWAH", "PBB NAROGONG", "PBB PASURUAN", "PBB PELINDO", "PBB REMBANG",
        "PBB SAYUNG", "PBB SIDOARJO", "PBB SORONG", "PBB SQ TOWER", "PBB SURABAYA",
        "PPB TUBAN",
    ],
    "21600010": [
        "AAB TBN", "Cigading", "Infra", "KEAMANAN GRESIK", "KEAMANAN PP", "KEAMANAN TUBAN",
        "Kebersihan Gresik", "Kebersihan Tuban", "Lain-lain", "Operasional Kantor",
        "OPERASIONAL PABRIK", "Parkir", "PEMELIHARAAN ALL AREA PBR TUBAN",
        "Pemeliharaan Autonomous", "PEMELIHARAAN FM", "PEMELIHARAAN GUSI & SQ",
        "Pemeliharaan Listrik", "Pemeliharaan Pbr Gresik", "PEMELIHARAAN PBR TUBAN",
        "REVERSE", "TRANSPORTASI",
    ],
    "21600011": [
        "GUNUNG SARI", "PABRIK GRESIK", "PABRIK TUBAN", "PERDIN GRESIK", "PERDIN TUBAN",
        "PP CIGADING", "REKLAS PLN",
    ],
    "21600012": ["OA"],
    "21600018": ["LAIN-LAIN", "JASA AUDIT", "Marketing", "LGRC", "SDM", "ICT"],
    "21600019": ["BILLBOARD, IKLAN, DAN PAJAK", "Lainnya", "Point", "Product Knowledge", "SALES PROMO"],
    "21600020": [
        "AAB TBN", "AFVAL", "ASET", "ASURANSI", "BAHAN", "DEPT CLD 2021", "DEPT QA", "Dept Rnd",
        "DEPT TREASURY", "GCG", "ICT", "ICT LINK NET", "Innovation Award", "JAMUAN TAMU",
        "Jasa audit", "Kalender", "Kantong", "KENDARAAN PP", "KOMSAR", "KON HUKUM", "KON PAJAK",
        "KON TALENT", "KSO", "LAIN-LAIN", "LGRC", "Litbang", "MAKLON CB", "MAKLON CWD",
        "Maklon TJP", "MSA", "Obligasi", "PAJAK", "PELABUHAN", "Pengl. Gudang/Sprepart",
        "PJK. UM OP Mgr Sales", "Right Issue", "ROYALTY", "RT", "SDM", "Seragam",
        "Set-Off Prepaid", "SEWA KENDARAAN", "SEWA PACKING PLAN", "SPPD", "Troughput",
        "UKL PP", "UM", "UNIT SHE",
    ],
    "21600021": ["CSR"],
    "21600022": ["GRESIK", "TUBAN"],
    "21600024": [
        "BK REMBANG", "BK TUBAN", "BK TUBAN SM", "Driver", "Handak", "Lain-lain",
        "SOLAR REMBANG", "SOLAR TUBAN", "SUPPORT SG", "SUPPORT TB", "TL REMBANG", "TL TUBAN",
    ],
    "21600025": [
        "BALIKPAPAN", "BANJARMASIN", "BANYUWANGI", "CELUKAN BAWANG", "CIGADING", "CIWANDAN",
        "DC BUFFER", "MAKLON", "NAROGONG", "PONTIANAK", "SEWA PALET", "SORONG",
        "TERSUS TUBAN", "TJ PRIOK", "TUBAN",
    ],
    "21600026": ["IAR", "Asuransi Kesehatan"],
    "21600033": ["LAIN-LAIN"],
    "21600034": ["PD"],
}
