"""Heuristic settings for the fluctuation engine.

Every threshold and keyword list the detectors use lives on ``Settings`` so a
YAML file can tune them per workbook family without code changes. Missing keys
keep their defaults; unknown keys are rejected so typos do not silently pass.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from fluktuasi.classifications import KODE_AKUN_KLASIFIKASI

CONFIG_ENV_VAR = "FLUKTUASI_CONFIG"


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class Settings:
    # sampling
    classifier_sample_rows: int = 30
    account_sample_rows: int = 20
    amount_sample_rows: int = 25
    header_scan_rows: int = 10
    detail_header_scan_rows: int | None = None
    # thresholds
    date_score_threshold: float = 0.5
    amount_density_threshold: float = 0.4
    account_min_hits: int = 2
    threshold_year: int = 2026
    # keywords
    date_keywords: tuple[str, ...] = (
        "posting date",
        "pstng date",
        "tanggal",
        "tgl",
        "doc. date",
        "document date",
        "date",
    )
    classification_keywords: tuple[str, ...] = (
        "klasifikasi",
        "keterangan",
        "item text",
        "text",
        "description",
        "deskripsi",
        "uraian",
    )
    remark_keywords: tuple[str, ...] = (
        "remark",
        "reason",
        "alasan",
        "catatan",
        "note",
    )
    # output / web
    workbook_creator: str = "SIG Activa"
    max_upload_mb: int = 100
    catalogue: dict[str, list[str]] = field(default_factory=lambda: dict(KODE_AKUN_KLASIFIKASI))


DEFAULT_SETTINGS = Settings()

SECTION_FIELDS = {
    "sampling": {
        "classifier_sample_rows": "classifier_sample_rows",
        "account_sample_rows": "account_sample_rows",
        "amount_sample_rows": "amount_sample_rows",
        "header_scan_rows": "header_scan_rows",
        "detail_header_scan_rows": "detail_header_scan_rows",
    },
    "thresholds": {
        "date_score": "date_score_threshold",
        "amount_density": "amount_density_threshold",
        "account_min_hits": "account_min_hits",
        "threshold_year": "threshold_year",
    },
    "keywords": {
        "date": "date_keywords",
        "classification": "classification_keywords",
        "remark": "remark_keywords",
    },
    "output": {
        "workbook_creator": "workbook_creator",
    },
    "web": {
        "max_upload_mb": "max_upload_mb",
    },
}

STARTER_CONFIG = """sampling:
  classifier_sample_rows: 30
  account_sample_rows: 20
  amount_sample_rows: 25
  header_scan_rows: 10
  detail_header_scan_rows: null

thresholds:
  date_score: 0.5
  amount_density: 0.4
  account_min_hits: 2
  threshold_year: 2026

keywords:
  date: [posting date, pstng date, tanggal, tgl, doc. date, document date, date]
  classification: [klasifikasi, keterangan, item text, text, description, deskripsi, uraian]
  remark: [remark, reason, alasan, catatan, note]

output:
  workbook_creator: SIG Activa

web:
  max_upload_mb: 100

# catalogue:
#   "21600001": [Gaji, Cuti Tahunan]
"""


def _coerce(name: str, value: Any) -> Any:
    default = getattr(DEFAULT_SETTINGS, name)
    if isinstance(default, tuple):
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise ConfigError(f"{name} must be a list of strings")
        return tuple(item.strip().lower() for item in value if item.strip())
    if name == "detail_header_scan_rows":
        if value is not None and (not isinstance(value, int) or value < 1):
            raise ConfigError(f"{name} must be a positive integer or null")
        return value
    if not isinstance(value, (int, float, str)) or isinstance(value, bool):
        raise ConfigError(f"{name} has an invalid value: {value!r}")
    if isinstance(default, int):
        if not isinstance(value, int):
            raise ConfigError(f"{name} must be an integer")
        return value
    if isinstance(default, float):
        if not isinstance(value, (int, float)):
            raise ConfigError(f"{name} must be a number")
        return float(value)
    return str(value)


def settings_from_mapping(data: dict[str, Any]) -> Settings:
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping")
    overrides: dict[str, Any] = {}
    for section, payload in data.items():
        if section == "catalogue":
            if not isinstance(payload, dict):
                raise ConfigError("catalogue must map account codes to lists")
            overrides["catalogue"] = {str(code): [str(item) for item in items or []] for code, items in payload.items()}
            continue
        mapping = SECTION_FIELDS.get(section)
        if mapping is None:
            raise ConfigError(f"unknown config section: {section}")
        if payload is None:
            continue
        if not isinstance(payload, dict):
            raise ConfigError(f"section '{section}' must be a mapping")
        for key, value in payload.items():
            if key not in mapping:
                raise ConfigError(f"unknown key '{key}' in section '{section}'")
            name = mapping[key]
            overrides[name] = _coerce(name, value)
    return replace(DEFAULT_SETTINGS, **overrides)


def load_settings(path: Path | str | None = None) -> Settings:
    if path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if not env_path:
            return DEFAULT_SETTINGS
        path = env_path
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid yaml: {exc}") from exc
    return settings_from_mapping(data)
