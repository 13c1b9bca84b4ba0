"""
CLI (Command Line Interface).

    quartertable export <lectures.csv> [out.xlsx]
    quartertable layout <lectures.csv>
    quartertable window <date>

Note:
- the configuration is a JSON file (or a legacy .xlsx configuration workbook)
- problems with single lectures never abort a run, they are printed as
  warnings at the end
"""

from __future__ import annotations

import argparse
import logging
from zipfile import BadZipFile
from dataclasses import dataclass, replace
from datetime import date
from pathlib import Path
from typing import List, Optional

from openpyxl.utils.exceptions import InvalidFileException
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from quartertable.config import ExportConfig, add_lecture_names, load_config, load_config_workbook, save_config
from quartertable.engine import LayoutResult, build_layout, get_timezone, quarter_window_for_date, window_for_lectures
from quartertable.holidays import fetch_holidays
from quartertable.lectures_csv import default_output_filename, lectures_from_rows, most_common_class_name, read_rows
from quartertable.model import Lecture, QuarterWindow
from quartertable.workbook import TimetableWorkbook


console = Console()


@dataclass
class Run:
    config: ExportConfig
    lectures: List[Lecture]
    class_name: Optional[str]
    window: QuarterWindow
    result: LayoutResult
    warnings: List[str]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _parse_date(text: str) -> Optional[date]:
    try:
        return date.fromisoformat(text.strip())
    except ValueError:
        console.print(f"[red]Invalid date:[/red] {text} (expected YYYY-MM-DD)")
        return None


def _load_export_config(path: Optional[str]) -> ExportConfig:
    if path and Path(path).suffix.lower() == ".xlsx":
        return load_config_workbook(path)
    return load_config(path)


def _print_warnings(warnings: List[str]) -> None:
    if not warnings:
        return
    console.print(f"[yellow]{len(warnings)} warning(s):[/yellow]")
    for message in warnings:
        console.print(f"  - {message}", markup=False, highlight=False)


def _prepare(args: argparse.Namespace) -> Optional[Run]:
    """
    Read config and lectures and lay them out. None if the input is unusable.
    """
    csv_path = Path(args.lectures)
    if not csv_path.is_file():
        console.print(f"[red]Lecture file not found:[/red] {csv_path}")
        return None

    config = _load_export_config(args.config)
    if args.quarter_date:
        start = _parse_date(args.quarter_date)
        if start is None:
            return None
        config = replace(config, quarter_start_date=start)

    try:
        rows = read_rows(csv_path)
    except (OSError, UnicodeDecodeError) as exc:
        console.print(f"[red]Cannot read {csv_path}:[/red] {exc}")
        return None

    lectures, warnings = lectures_from_rows(rows, get_timezone(config.timezone))
    window = window_for_lectures(lectures, config)
    if window is None:
        console.print("[red]No lectures with a start date, nothing to lay out.[/red]")
        return None

    holidays = None if args.no_holidays else fetch_holidays
    result = build_layout(lectures, window, config, holidays)
    warnings.extend(result.warnings)

    return Run(config, lectures, most_common_class_name(rows), window, result, warnings)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _cmd_export(args: argparse.Namespace) -> int:
    """
    Lay out the lectures and write the timetable workbook.
    """
    if args.template and not Path(args.template).is_file():
        console.print(f"[red]Template not found:[/red] {args.template}")
        return 1

    run = _prepare(args)
    if run is None:
        return 1

    if args.out:
        out = Path(args.out)
    else:
        out = Path(args.lectures).resolve().parent / default_output_filename(run.class_name)

    # an existing timetable is reused as its own template
    template = args.template or (out if out.exists() else None)
    try:
        book = TimetableWorkbook(template, run.config.layout)
    except (OSError, BadZipFile, InvalidFileException, KeyError) as exc:
        console.print(f"[red]Cannot read template {template}:[/red] {exc}")
        return 1
    book.reset(run.config.exam_week_fill, run.config.exam_week_text, run.config.exam_week_font)
    run.warnings.extend(book.write_layout(run.result, run.window))
    book.save(out)

    if args.update_config and args.config and Path(args.config).suffix.lower() != ".xlsx":
        updated = add_lecture_names(run.config, sorted({lec.name for lec in run.lectures}))
        if updated is not run.config:
            save_config(updated, args.config)
            console.print(f"Configuration updated: {args.config}")

    _print_warnings(run.warnings)
    console.print(f"Exported {len(run.result.placements)} lectures to {out}")
    return 0


def _cmd_layout(args: argparse.Namespace) -> int:
    """
    Print the placements as a table instead of writing a workbook.
    """
    run = _prepare(args)
    if run is None:
        return 1

    table = Table(title=f"Quarter from {run.window.start.date().isoformat()}", box=box.SIMPLE)
    table.add_column("Lecture")
    table.add_column("Start")
    table.add_column("Label")
    table.add_column("Rows", justify="right")
    table.add_column("Column", justify="right")
    table.add_column("Fill")
    for placement in run.result.placements:
        cell_range = placement.cell_range
        table.add_row(
            placement.lecture.name,
            placement.lecture.start.strftime("%Y-%m-%d %H:%M"),
            placement.style.label,
            f"{cell_range.first_row}-{cell_range.last_row}",
            str(cell_range.first_column) + (" (exam)" if placement.exam_week else ""),
            placement.style.fill_color,
        )
    console.print(table)

    _print_warnings(run.warnings)
    return 0


def _cmd_window(args: argparse.Namespace) -> int:
    """
    Print the quarter window a date belongs to.
    """
    day = _parse_date(args.date)
    if day is None:
        return 1
    config = _load_export_config(args.config)
    window = quarter_window_for_date(day, config.quarter_start_weeks, get_timezone(config.timezone))
    console.print(f"{window.start.date().isoformat()} - {window.last_day.isoformat()}")
    return 0


# ---------------------------------------------------------------------------
# Parser & entry point
# ---------------------------------------------------------------------------


def _add_run_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("lectures", type=str, help="Lecture CSV export (name;start;end;resources;lecturers)")
    parser.add_argument("--config", type=str, default=None, help="Configuration file (.json or legacy .xlsx)")
    parser.add_argument("--quarter-date", type=str, default=None, help="Quarter start date (YYYY-MM-DD)")
    parser.add_argument("--no-holidays", action="store_true", help="Do not look up public holidays")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="quartertable", description="Quarter timetable workbook generator")
    sub = parser.add_subparsers(dest="command", required=True)

    p_export = sub.add_parser("export", help="Write the timetable workbook")
    _add_run_arguments(p_export)
    p_export.add_argument("out", type=str, nargs="?", default=None, help="Output file (default: next to the CSV)")
    p_export.add_argument("--template", type=str, default=None, help="Workbook template (.xlsx)")
    p_export.add_argument(
        "--update-config", action="store_true", help="Add new lecture names to the JSON configuration"
    )

    p_layout = sub.add_parser("layout", help="Print the placements without writing a workbook")
    _add_run_arguments(p_layout)

    p_window = sub.add_parser("window", help="Show the quarter window of a date")
    p_window.add_argument("date", type=str, help="Date (YYYY-MM-DD)")
    p_window.add_argument("--config", type=str, default=None, help="Configuration file (.json or legacy .xlsx)")
    p_window.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    return parser


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    if args.command == "export":
        raise SystemExit(_cmd_export(args))
    if args.command == "layout":
        raise SystemExit(_cmd_layout(args))
    if args.command == "window":
        raise SystemExit(_cmd_window(args))

    raise SystemExit(2)
