from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from fluktuasi import __version__ as TOOL_VERSION
from fluktuasi.config import STARTER_CONFIG, ConfigError, Settings, load_settings
from fluktuasi.contracts import build_contract, build_run_summary, to_payload
from fluktuasi.emitter import download_file_name
from fluktuasi.log import setup_logging
from fluktuasi.models import AnalysisResult
from fluktuasi.pipeline import analyse_workbook, build_download, summarise

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_PARSE_FAILED = 2
EXIT_PARTIAL = 6

PAYLOAD_SUFFIX = ".json"


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class FluktuasiArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


def write_text(path: Path, payload: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(payload, encoding="utf-8")


def safe_output_path(path: Path, *, force: bool = False) -> Path:
    if path.exists() and not force:
        raise CliError(f"Refusing to overwrite existing output: {path} (use --force)", EXIT_COMMAND_ERROR)
    return path


def classify_exception(exc: Exception) -> int:
    if isinstance(exc, CliError):
        return exc.code
    if isinstance(exc, FileNotFoundError):
        return EXIT_COMMAND_ERROR
    if isinstance(exc, (ValueError, ImportError)):
        return EXIT_PARSE_FAILED
    return EXIT_COMMAND_ERROR


def exit_code_for_result(result: AnalysisResult) -> int:
    return EXIT_PARTIAL if result.partial else EXIT_SUCCESS


def require_input(raw: str) -> Path:
    path = Path(raw)
    if not path.exists():
        raise CliError(f"File not found: {path}", EXIT_COMMAND_ERROR)
    return path


def load_payload(path: Path) -> dict[str, Any]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise CliError(f"Could not read payload: {exc}", EXIT_PARSE_FAILED) from exc
    if not isinstance(payload, dict):
        raise CliError("Payload root must be a JSON object.", EXIT_PARSE_FAILED)
    return payload


def render_report_text(summary: dict[str, Any], result: AnalysisResult) -> str:
    lines = [
        "fluktuasi report",
        f"File: {summary['file_name'] or '[unknown]'}",
        f"Detail sheets: {summary['detail_sheets']} (rows: {summary['detail_rows']})",
    ]
    for sheet_name, columns in summary["detail_columns"].items():
        lines.append(
            f"- {sheet_name}: {columns['rows']} rows | date: {columns['date'] or '-'}"
            f" | classification: {columns['classification'] or '-'} | remark: {columns['remark'] or '-'}"
        )
    rekap = summary["rekap"]
    if rekap is None:
        lines.append("Rekap: [skipped]")
    else:
        rows = rekap["rows"]
        lines.extend(
            [
                f"Rekap: {rekap['sheet_name']}",
                f"Account column: {rekap['account_column'] or '-'}",
                f"Amount columns: {rekap['amount_columns']}",
                f"MoM: {rekap['mom']['previous'] or '-'} -> {rekap['mom']['current'] or '-'}",
                f"YoY: {rekap['yoy']['previous'] or '-'} -> {rekap['yoy']['current'] or '-'}",
                "Rows: " + ", ".join(f"{name} {count}" for name, count in rows.items()),
                f"Rows with reasons: {rekap['rows_with_reasons']}",
            ]
        )
    if result.warnings:
        lines.append("Warnings:")
        lines.extend(f"- {warning}" for warning in result.warnings)
    if result.errors:
        lines.append("Errors:")
        lines.extend(f"- {error}" for error in result.errors)
    return "\n".join(lines) + "\n"


def build_parser() -> argparse.ArgumentParser:
    parser = FluktuasiArgumentParser(prog="fluktuasi", description="Fluctuation (OI) reconciliation for rekap workbooks.")
    parser.add_argument("--config", help="YAML settings file (defaults to $FLUKTUASI_CONFIG)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyse = subparsers.add_parser("analyse", help="Analyse a workbook and write the intermediate JSON payload.")
    analyse.add_argument("input", help="Input workbook path")
    analyse.add_argument("--output", help="Payload output path (default: <input>_payload.json)")
    analyse.add_argument("--json", action="store_true", help="Write the payload to stdout instead of a file")
    analyse.add_argument("--force", action="store_true", help="Overwrite an existing output")
    analyse.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    analyse.add_argument("-v", "--verbose", action="store_true", help="More human logs")

    export = subparsers.add_parser("export", help="Write the styled result workbook.")
    export.add_argument("input", help="Input workbook or a payload written by 'analyse'")
    export.add_argument("--output", help="Workbook output path (default: <input>_HASIL.xlsx)")
    export.add_argument("--json", action="store_true", help="Write a machine JSON summary to stdout")
    export.add_argument("--force", action="store_true", help="Overwrite an existing output")
    export.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    export.add_argument("-v", "--verbose", action="store_true", help="More human logs")

    report = subparsers.add_parser("report", help="Summarise what was detected in a workbook.")
    report.add_argument("input", help="Input workbook path")
    report.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    report.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    report.add_argument("-v", "--verbose", action="store_true", help="More human logs")

    config = subparsers.add_parser("config", help="Generate configuration.")
    config_subparsers = config.add_subparsers(dest="config_command", required=True)
    config_init = config_subparsers.add_parser("init", help="Write a starter config file.")
    config_init.add_argument("--path", default="fluktuasi.yml", help="Config output path")

    subparsers.add_parser("version", help="Print version")
    return parser


def run_analyse(args: argparse.Namespace, settings: Settings) -> int:
    input_path = require_input(args.input)
    result = analyse_workbook(input_path, settings=settings)
    payload = to_payload(result)
    if args.json:
        print(json_dumps(payload))
    else:
        output_path = Path(args.output) if args.output else input_path.with_name(f"{input_path.stem}_payload{PAYLOAD_SUFFIX}")
        write_text(safe_output_path(output_path, force=args.force), json_dumps(payload))
        emit_human(f"Payload written: {output_path}", quiet=args.quiet)
    return exit_code_for_result(result)


def run_export(args: argparse.Namespace, settings: Settings) -> int:
    input_path = require_input(args.input)
    warnings: list[str] = []
    if input_path.suffix.lower() == PAYLOAD_SUFFIX:
        payload = load_payload(input_path)
        exit_code = EXIT_SUCCESS
    else:
        result = analyse_workbook(input_path, settings=settings)
        payload = to_payload(result)
        warnings = result.warnings + result.errors
        exit_code = exit_code_for_result(result)

    output_path = Path(args.output) if args.output else input_path.with_name(download_file_name(input_path.name))
    output_path = safe_output_path(output_path, force=args.force)
    artifact = build_download(payload, settings)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(artifact.content)

    if args.json:
        summary = build_run_summary(
            tool="fluktuasi",
            command="export",
            input_path=input_path,
            status="partial" if exit_code == EXIT_PARTIAL else "ok",
            output_path=output_path,
            metrics={
                "detail_sheets": len(payload.get("sheetDataList") or []),
                "rekap_rows": len((payload.get("rekapSheetData") or {}).get("rows") or []),
                "bytes_written": len(artifact.content),
            },
            warnings=warnings,
        )
        print(json_dumps({"contract": build_contract("fluktuasi.export_summary"), **summary}))
    else:
        for warning in warnings:
            emit_human(f"- {warning}", quiet=args.quiet)
        emit_human(f"Workbook written: {output_path}", quiet=args.quiet)
    return exit_code


def run_report(args: argparse.Namespace, settings: Settings) -> int:
    input_path = require_input(args.input)
    result = analyse_workbook(input_path, settings=settings)
    summary = summarise(result)
    if args.json:
        payload = {
            "contract": build_contract("fluktuasi.report"),
            "tool_version": TOOL_VERSION,
            "summary": summary,
            "warnings": list(result.warnings),
            "errors": list(result.errors),
        }
        print(json_dumps(payload))
    else:
        print(render_report_text(summary, result).rstrip())
    return exit_code_for_result(result)


def run_config_init(args: argparse.Namespace) -> int:
    config_path = Path(args.path)
    if config_path.exists():
        eprint(f"Refusing to overwrite existing config: {config_path}")
        return EXIT_COMMAND_ERROR
    write_text(config_path, STARTER_CONFIG)
    emit_human(f"Config written: {config_path}")
    return EXIT_SUCCESS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


COMMANDS = {
    "analyse": run_analyse,
    "export": run_export,
    "report": run_report,
}


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        if args.command == "version":
            return run_version()
        if args.command == "config":
            if args.config_command == "init":
                return run_config_init(args)
            raise CliError(f"Unknown config command: {args.config_command}", EXIT_COMMAND_ERROR)

        setup_logging(verbose=getattr(args, "verbose", False), quiet=getattr(args, "quiet", False))
        try:
            settings = load_settings(args.config)
        except ConfigError as exc:
            raise CliError(f"Invalid config: {exc}", EXIT_COMMAND_ERROR) from exc

        handler = COMMANDS.get(args.command)
        if handler is None:
            raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
        try:
            return handler(args, settings)
        except CliError:
            raise
        except Exception as exc:
            logger.error("%s", exc)
            return classify_exception(exc)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())
