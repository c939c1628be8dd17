from __future__ import annotations

import io
import re
import zipfile
from pathlib import Path
from typing import Any, Optional
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

import pandas as pd
import requests
import streamlit as st

from fluktuasi.config import ConfigError, Settings, load_settings
from fluktuasi.contracts import to_payload
from fluktuasi.detail_sheets import dedupe_headers
from fluktuasi.log import setup_logging
from fluktuasi.models import DERIVED_FIELDS, DERIVED_LABELS
from fluktuasi.normalize import cell_text
from fluktuasi.pipeline import analyse_workbook, build_download, summarise
from fluktuasi.workbook_reader import OLE_MAGIC, SUPPORTED_FORMATS, WorkbookReadError

SYSTEM_LABELS = ["GAP MoM", "MoM %", "Reason MoM", "GAP YoY", "YoY %", "Reason YoY"]
CONTENT_TYPE_EXTS = {
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": ".xlsx",
    "application/vnd.ms-excel.sheet.macroenabled.12": ".xlsm",
    "application/vnd.ms-excel": ".xls",
}


def ensure_state() -> None:
    st.session_state.setdefault("payload", None)
    st.session_state.setdefault("summary", None)
    st.session_state.setdefault("warnings", [])
    st.session_state.setdefault("errors", [])
    st.session_state.setdefault("download_bytes", None)
    st.session_state.setdefault("download_name", None)
    st.session_state.setdefault("download_mime", None)
    st.session_state.setdefault("public_url_input", "")


def normalize_public_url(raw_url: str) -> str:
    parsed = urlparse(raw_url.strip())
    if not parsed.scheme:
        raise ValueError("URL must start with http:// or https://")

    host = parsed.netloc.lower()
    path = parsed.path
    query = parse_qs(parsed.query, keep_blank_values=True)

    if host == "github.com" and "/blob/" in path:
        owner_repo, blob_path = path.lstrip("/").split("/blob/", 1)
        return f"https://raw.githubusercontent.com/{owner_repo}/{blob_path}"

    if "dropbox.com" in host:
        query["dl"] = ["1"]
        return urlunparse(parsed._replace(query=urlencode(query, doseq=True)))

    if host in {"drive.google.com", "docs.google.com"}:
        sheet_match = re.search(r"/spreadsheets/d/([^/]+)", path)
        if sheet_match:
            # whole workbook: the rekap needs every account sheet, so no gid
            return f"https://docs.google.com/spreadsheets/d/{sheet_match.group(1)}/export?format=xlsx"
        match = re.search(r"/file/d/([^/]+)", path)
        if match:
            return f"https://drive.google.com/uc?export=download&id={match.group(1)}"
        if "id" in query:
            return f"https://drive.google.com/uc?export=download&id={query['id'][0]}"

    if host.endswith("1drv.ms") or "onedrive.live.com" in host or "sharepoint.com" in host:
        query["download"] = ["1"]
        return urlunparse(parsed._replace(query=urlencode(query, doseq=True)))

    return raw_url.strip()


def remote_filename(raw_url: str, response: requests.Response) -> str:
    content_disposition = response.headers.get("content-disposition", "")
    match = re.search(r"filename\*=UTF-8''([^;]+)|filename=\"([^\"]+)\"|filename=([^;]+)", content_disposition, re.I)
    if match:
        for group in match.groups():
            if group:
                return Path(group.strip().strip('"')).name
    redirected = response.url or raw_url
    return Path(urlparse(redirected).path).name or Path(urlparse(raw_url).path).name or "workbook"


def infer_workbook_extension(filename: str, content_type: str, content: bytes) -> str:
    ext = Path(filename).suffix.lower()
    if ext in SUPPORTED_FORMATS:
        return ext
    mapped = CONTENT_TYPE_EXTS.get(content_type.split(";")[0].strip().lower())
    if mapped:
        return mapped
    if content.startswith(b"PK"):
        try:
            with zipfile.ZipFile(io.BytesIO(content)) as archive:
                names = set(archive.namelist())
        except zipfile.BadZipFile:
            return ext
        if "xl/vbaProject.bin" in names:
            return ".xlsm"
        if "xl/workbook.xml" in names:
            return ".xlsx"
    if content[:8] == OLE_MAGIC:
        return ".xls"
    return ext


def fetch_remote_workbook(raw_url: str, max_bytes: int) -> tuple[str, bytes]:
    url = normalize_public_url(raw_url)
    limit_mb = max_bytes // (1024 * 1024)
    response = requests.get(url, timeout=60, allow_redirects=True, stream=True)
    try:
        response.raise_for_status()
        content_length = response.headers.get("Content-Length")
        if content_length and content_length.isdigit() and int(content_length) > max_bytes:
            raise ValueError(f"Remote file is larger than {limit_mb} MB.")

        chunks: list[bytes] = []
        downloaded = 0
        for chunk in response.iter_content(chunk_size=1024 * 1024):
            if not chunk:
                continue
            downloaded += len(chunk)
            if downloaded > max_bytes:
                raise ValueError(f"Remote file is larger than {limit_mb} MB.")
            chunks.append(chunk)
        content = b"".join(chunks)
    finally:
        response.close()

    filename = remote_filename(raw_url, response)
    ext = infer_workbook_extension(filename, response.headers.get("content-type", ""), content)
    if ext not in SUPPORTED_FORMATS:
        raise ValueError(f"Unsupported remote file type: {ext or '[missing extension]'}")
    if Path(filename).suffix.lower() != ext:
        filename = f"{Path(filename).stem or 'workbook'}{ext}"
    return filename, content


def analyse_source(name: str, content: bytes, settings: Settings) -> dict[str, Any]:
    result = analyse_workbook(content, file_name=name, settings=settings)
    payload = to_payload(result)
    artifact = build_download(payload, settings)
    return {
        "payload": payload,
        "summary": summarise(result),
        "warnings": list(result.warnings),
        "errors": list(result.errors),
        "download_bytes": artifact.content,
        "download_name": artifact.file_name,
        "download_mime": artifact.mime,
    }


def rekap_preview_frame(payload: dict[str, Any]) -> Optional[pd.DataFrame]:
    rekap = payload.get("rekapSheetData")
    if not rekap:
        return None
    headers = list(rekap.get("headers") or [])
    records = []
    for row in rekap.get("rows") or []:
        if row.get("type") == "empty":
            continue
        values = list(row.get("values") or [])
        records.append(
            [row.get("type")]
            + [cell_text(values[index] if index < len(values) else None) for index in range(len(headers))]
            + [
                round(row.get("gapMoM") or 0, 2),
                round(row.get("pctMoM") or 0, 2),
                row.get("reasonMoM") or "",
                round(row.get("gapYoY") or 0, 2),
                round(row.get("pctYoY") or 0, 2),
                row.get("reasonYoY") or "",
            ]
        )
    return pd.DataFrame(records, columns=dedupe_headers(["Type", *headers, *SYSTEM_LABELS]))


def detail_preview_frame(sheet: dict[str, Any]) -> pd.DataFrame:
    headers = list(sheet.get("headers") or [])
    records = [
        [cell_text(row.get(header)) for header in headers] + [cell_text(row.get(key)) for key in DERIVED_FIELDS]
        for row in sheet.get("rows") or []
    ]
    # "Remark" may already be a source header
    return pd.DataFrame(records, columns=dedupe_headers([*headers, *DERIVED_LABELS]))


def reset_results() -> None:
    for key in ("payload", "summary", "download_bytes", "download_name", "download_mime"):
        st.session_state[key] = None
    st.session_state["warnings"] = []
    st.session_state["errors"] = []


def render_results() -> None:
    payload = st.session_state.get("payload")
    summary = st.session_state.get("summary")
    if not payload or not summary:
        return

    st.subheader(payload.get("fileName") or "Result")
    rekap_summary = summary.get("rekap") or {}
    metrics = st.columns(4)
    metrics[0].metric("Account sheets", summary["detail_sheets"])
    metrics[1].metric("Detail rows", summary["detail_rows"])
    metrics[2].metric("Rekap rows", sum((rekap_summary.get("rows") or {}).values()))
    metrics[3].metric("Rows with reasons", rekap_summary.get("rows_with_reasons", 0))

    for error in st.session_state.get("errors") or []:
        st.error(error)
    warnings = st.session_state.get("warnings") or []
    if warnings:
        st.warning("Heuristic fallbacks:\n- " + "\n- ".join(warnings))

    rekap_frame = rekap_preview_frame(payload)
    if rekap_frame is None:
        st.info("No rekap sheet was analysed; only the account sheets are included in the download.")
    else:
        st.caption(
            f"MoM: {rekap_summary['mom']['previous'] or '-'} → {rekap_summary['mom']['current'] or '-'}  •  "
            f"YoY: {rekap_summary['yoy']['previous'] or '-'} → {rekap_summary['yoy']['current'] or '-'}"
        )
        st.dataframe(rekap_frame, width="stretch", hide_index=True)

    for sheet in payload.get("sheetDataList") or []:
        with st.expander(f"{sheet.get('sheetName')}  •  {len(sheet.get('rows') or [])} rows"):
            st.dataframe(detail_preview_frame(sheet), width="stretch", hide_index=True)

    if st.session_state.get("download_bytes"):
        st.download_button(
            "Download result workbook",
            data=st.session_state["download_bytes"],
            file_name=st.session_state["download_name"],
            mime=st.session_state["download_mime"],
            type="primary",
            width="stretch",
        )


def set_visuals() -> None:
    st.set_page_config(page_title="Fluktuasi OI", page_icon="📊", layout="wide", initial_sidebar_state="collapsed")
    st.markdown(
        """
        <style>
        .block-container { padding-top: 2rem; max-width: 1400px; }
        div[data-testid="stMetricValue"] { color: #1F3864; }
        </style>
        """,
        unsafe_allow_html=True,
    )


@st.cache_resource(show_spinner=False)
def cached_settings() -> Settings:
    return load_settings()


def main() -> None:
    set_visuals()
    ensure_state()
    setup_logging()

    st.title("Fluktuasi OI")
    st.caption(
        "Upload the rekap workbook (one sheet per account code plus the rekap sheet) "
        "or paste a public link to it. MoM and YoY gaps are computed and reasons are filled from the account sheets."
    )

    try:
        settings = cached_settings()
    except ConfigError as exc:
        st.error(f"Invalid config: {exc}")
        return
    max_bytes = settings.max_upload_mb * 1024 * 1024

    upload = st.file_uploader("Upload workbook", type=[ext.lstrip(".") for ext in sorted(SUPPORTED_FORMATS)])
    st.text_input("Public workbook URL", key="public_url_input", placeholder="https://…")
    st.caption(f"Public URL mode makes an outbound request and rejects files above {settings.max_upload_mb} MB.")
    submit = st.button("Analyse", type="primary", width="stretch", disabled=not upload and not st.session_state["public_url_input"].strip())

    if submit:
        reset_results()
        try:
            with st.spinner("Reading workbook…"):
                if upload is not None:
                    content = upload.getvalue()
                    if len(content) > max_bytes:
                        raise ValueError(f"File is larger than {settings.max_upload_mb} MB.")
                    name = upload.name
                else:
                    name, content = fetch_remote_workbook(st.session_state["public_url_input"], max_bytes)
                st.session_state.update(analyse_source(name, content, settings))
        except (WorkbookReadError, ValueError, requests.RequestException) as exc:
            st.error(str(exc))
            return

    if not st.session_state.get("payload"):
        st.info("Supported here: .xlsx .xlsm .xls (legacy .xls needs the excel-legacy extra)")
        return

    render_results()


if __name__ == "__main__":
    main()
