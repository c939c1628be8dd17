from __future__ import annotations

import io
import zipfile
from pathlib import Path
from typing import Any, BinaryIO, Iterable, Union

import openpyxl
import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

from fluktuasi.models import RawGrid
from fluktuasi.normalize import is_blank, normalize_scalar

MODERN_WORKBOOK_FORMATS = {".xlsx", ".xlsm"}
LEGACY_WORKBOOK_FORMATS = {".xls"}
SUPPORTED_FORMATS = MODERN_WORKBOOK_FORMATS | LEGACY_WORKBOOK_FORMATS
OLE_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"

WorkbookSource = Union[bytes, bytearray, BinaryIO, str, Path]


class WorkbookReadError(ValueError):
    pass


def _source_bytes(source: WorkbookSource, file_name: str | None) -> tuple[bytes, str]:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source), file_name or ""
    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        return path.read_bytes(), file_name or path.name
    content = source.read()
    return content, file_name or Path(str(getattr(source, "name", "") or "")).name


def sniff_suffix(content: bytes) -> str:
    if content.startswith(b"PK"):
        return ".xlsx"
    if content[:8] == OLE_MAGIC:
        return ".xls"
    return ""


def is_encrypted_ooxml(content: bytes) -> bool:
    # Excel wraps encrypted .xlsx files in an OLE container holding these streams
    if content[:8] == OLE_MAGIC:
        return b"E\x00n\x00c\x00r\x00y\x00p\x00t\x00e\x00d\x00P\x00a\x00c\x00k\x00a\x00g\x00e" in content
    try:
        with zipfile.ZipFile(io.BytesIO(content)) as archive:
            names = set(archive.namelist())
    except zipfile.BadZipFile:
        return False
    return {"EncryptedPackage", "EncryptionInfo"}.issubset(names)


def _python_value(value: Any) -> Any:
    normalized = normalize_scalar(value)
    # numpy scalars from pandas frames
    if normalized is not None and not isinstance(normalized, (str, bytes)) and hasattr(normalized, "item"):
        return normalized.item()
    return normalized


def rectangular_rows(rows: Iterable[Iterable[Any]]) -> list[list[Any]]:
    """Normalise cell values, drop trailing empty rows and columns, pad the rest."""
    cleaned = [[_python_value(value) for value in row] for row in rows]
    while cleaned and all(is_blank(value) for value in cleaned[-1]):
        cleaned.pop()
    width = 0
    for row in cleaned:
        for index in range(len(row) - 1, -1, -1):
            if not is_blank(row[index]):
                width = max(width, index + 1)
                break
    return [row[:width] + [None] * (width - len(row[:width])) for row in cleaned]


def _read_modern(content: bytes) -> list[RawGrid]:
    try:
        workbook = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (zipfile.BadZipFile, InvalidFileException, KeyError, OSError) as exc:
        raise WorkbookReadError(f"Could not read workbook: {exc}") from exc
    try:
        return [RawGrid(sheet.title, rectangular_rows(sheet.iter_rows(values_only=True))) for sheet in workbook.worksheets]
    finally:
        workbook.close()


def _read_legacy(content: bytes) -> list[RawGrid]:
    try:
        frames = pd.read_excel(io.BytesIO(content), sheet_name=None, header=None, dtype=object)
    except ImportError as exc:
        raise WorkbookReadError(".xls files require xlrd; run: pip install 'fluktuasi-oi[excel-legacy]'") from exc
    except Exception as exc:
        raise WorkbookReadError(f"Could not read workbook: {exc}") from exc
    return [RawGrid(str(name), rectangular_rows(frame.itertuples(index=False, name=None))) for name, frame in frames.items()]


def read_workbook(source: WorkbookSource, file_name: str | None = None) -> list[RawGrid]:
    """Read every sheet of a workbook into memory as positional grids."""
    content, name = _source_bytes(source, file_name)
    if not content:
        raise WorkbookReadError("Could not read workbook: file is empty")

    suffix = Path(name).suffix.lower()
    if suffix not in SUPPORTED_FORMATS:
        suffix = sniff_suffix(content) or suffix
    if suffix in MODERN_WORKBOOK_FORMATS:
        if is_encrypted_ooxml(content):
            raise WorkbookReadError("Password-protected / encrypted OOXML workbooks are not supported")
        return _read_modern(content)
    if suffix in LEGACY_WORKBOOK_FORMATS:
        return _read_legacy(content)
    raise WorkbookReadError(
        f"Unsupported file type '{suffix or '[missing extension]'}'. "
        f"Supported: {', '.join(sorted(SUPPORTED_FORMATS))}"
    )
