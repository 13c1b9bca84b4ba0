"""
Export configuration.

The configuration is a human-edited file with:
- the property table (lecture matcher -> short label, fill and font color)
- the highlight table (text -> font)
- ignore prefixes, holiday locale, quarter start weeks, exam week length
- an optional fixed quarter start date and the time zone of the lectures
- the fill, text and font of the exam week area

Two formats are supported:
- JSON (load_config / save_config), the default format of the CLI
- the legacy configuration workbook (load_config_workbook, read-only)

Loading never raises for missing files or broken values: the default for
that value is used instead.
"""

from __future__ import annotations

import json
import logging
from zipfile import BadZipFile
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from quartertable.model import Font, PropertyEntry
from quartertable.properties import unmatched_names
from quartertable.timegrid import MAX_EXAM_WEEK_LENGTH, GridLayout


log = logging.getLogger(__name__)

DEFAULT_QUARTER_START_WEEKS = (2, 15, 27, 40)
DEFAULT_EXAM_WEEK_LENGTH = 6
DEFAULT_HOLIDAY_LOCALE = "DE-BW"


@dataclass(frozen=True)
class ExportConfig:
    properties: Tuple[PropertyEntry, ...] = ()
    highlights: Mapping[str, Font] = field(default_factory=dict)
    ignore_prefixes: Tuple[str, ...] = ()
    holiday_locale: str = DEFAULT_HOLIDAY_LOCALE
    quarter_start_weeks: Tuple[int, ...] = DEFAULT_QUARTER_START_WEEKS
    exam_week_length: int = DEFAULT_EXAM_WEEK_LENGTH
    quarter_start_date: Optional[date] = None
    timezone: str = "UTC"
    exam_week_fill: str = "00FFFF"
    exam_week_text: str = ""
    exam_week_font: Font = field(default_factory=Font)

    @property
    def layout(self) -> GridLayout:
        return GridLayout(exam_week_length=self.exam_week_length)


def clamp_exam_week_length(value: int) -> int:
    return max(0, min(MAX_EXAM_WEEK_LENGTH, value))


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------


def _color(value: Any) -> Optional[str]:
    """
    Normalize 'RRGGBB', '#RRGGBB' or 'AARRGGBB' to upper-case 'RRGGBB'.
    """
    if not isinstance(value, str):
        return None
    text = value.strip().lstrip("#").upper()
    if len(text) == 8:
        text = text[2:]
    if len(text) != 6:
        return None
    try:
        int(text, 16)
    except ValueError:
        return None
    return text


def _font(data: Any) -> Font:
    if not isinstance(data, dict):
        return Font()
    size = data.get("size", 10)
    return Font(
        name=str(data.get("font", "Arial")),
        size=size if isinstance(size, int) else 10,
        color=_color(data.get("font_color", data.get("color"))),
        bold=bool(data.get("bold", False)),
    )


def _str_list(value: Any) -> Tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(x).strip() for x in value if isinstance(x, str) and x.strip())


def config_from_dict(data: Any) -> ExportConfig:
    """
    Build an ExportConfig from decoded JSON, ignoring every invalid value.
    """
    if not isinstance(data, dict):
        return ExportConfig()

    kwargs: Dict[str, Any] = {}

    entries = []
    for item in data.get("lectures", []) if isinstance(data.get("lectures"), list) else []:
        if not isinstance(item, dict):
            continue
        matcher = str(item.get("match", "")).strip()
        if not matcher:
            continue
        entries.append(
            PropertyEntry(
                matcher=matcher,
                short_label=str(item.get("short", "") or ""),
                fill_color=_color(item.get("fill")),
                font=_font(item),
            )
        )
    kwargs["properties"] = tuple(entries)

    highlights: Dict[str, Font] = {}
    for item in data.get("highlights", []) if isinstance(data.get("highlights"), list) else []:
        if isinstance(item, dict) and isinstance(item.get("text"), str) and item["text"]:
            # later duplicates overwrite earlier ones
            highlights[item["text"]] = _font(item)
    kwargs["highlights"] = highlights

    kwargs["ignore_prefixes"] = _str_list(data.get("ignore_prefixes"))

    locale = data.get("holiday_locale")
    if isinstance(locale, str) and locale.strip():
        kwargs["holiday_locale"] = locale.strip()

    weeks = data.get("quarter_start_weeks")
    if isinstance(weeks, list):
        valid = tuple(w for w in weeks if isinstance(w, int) and 1 <= w <= 53)
        if valid:
            kwargs["quarter_start_weeks"] = valid

    length = data.get("exam_week_length")
    if isinstance(length, int):
        kwargs["exam_week_length"] = clamp_exam_week_length(length)

    start = data.get("quarter_start_date")
    if isinstance(start, str) and start.strip():
        try:
            kwargs["quarter_start_date"] = date.fromisoformat(start.strip())
        except ValueError:
            log.warning("ignoring invalid quarter_start_date %r", start)

    tz = data.get("timezone")
    if isinstance(tz, str) and tz.strip():
        kwargs["timezone"] = tz.strip()

    fill = _color(data.get("exam_week_fill"))
    if fill:
        kwargs["exam_week_fill"] = fill

    text = data.get("exam_week_text")
    if isinstance(text, str):
        kwargs["exam_week_text"] = text
    if "exam_week_font" in data:
        kwargs["exam_week_font"] = _font(data["exam_week_font"])

    return ExportConfig(**kwargs)


def config_to_dict(config: ExportConfig) -> Dict[str, Any]:
    def font_fields(font: Font) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if font.color:
            out["font_color"] = font.color
        if font.bold:
            out["bold"] = True
        if font.name != "Arial":
            out["font"] = font.name
        if font.size != 10:
            out["size"] = font.size
        return out

    lectures = []
    for entry in config.properties:
        item: Dict[str, Any] = {"match": entry.matcher, "short": entry.short_label}
        if entry.fill_color:
            item["fill"] = entry.fill_color
        item.update(font_fields(entry.font))
        lectures.append(item)

    return {
        "lectures": lectures,
        "highlights": [{"text": text, **font_fields(font)} for text, font in config.highlights.items()],
        "ignore_prefixes": list(config.ignore_prefixes),
        "holiday_locale": config.holiday_locale,
        "quarter_start_weeks": list(config.quarter_start_weeks),
        "exam_week_length": config.exam_week_length,
        "quarter_start_date": config.quarter_start_date.isoformat() if config.quarter_start_date else None,
        "timezone": config.timezone,
        "exam_week_fill": config.exam_week_fill,
        "exam_week_text": config.exam_week_text,
        "exam_week_font": font_fields(config.exam_week_font),
    }


def load_config(path: str | Path | None) -> ExportConfig:
    """
    Load the JSON configuration.

    Returns the default configuration if the file does not exist or is
    invalid.
    """
    if path is None:
        return ExportConfig()
    config_path = Path(path)
    if not config_path.exists():
        log.info("no configuration at %s, using defaults", config_path)
        return ExportConfig()
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
        log.warning("cannot read configuration %s (%s), using defaults", config_path, exc)
        return ExportConfig()
    return config_from_dict(data)


def save_config(config: ExportConfig, path: str | Path) -> None:
    config_path = Path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    payload = config_to_dict(config)
    config_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")


def add_lecture_names(config: ExportConfig, names: Iterable[str]) -> ExportConfig:
    """
    Return a config with an (unstyled) entry for every new lecture name.
    """
    name_list = list(names)
    new = unmatched_names(name_list, config.properties, config.ignore_prefixes)
    if not new:
        return config
    log.info("adding %d lecture names to the configuration", len(new))
    entries = config.properties + tuple(PropertyEntry(matcher=name) for name in new)
    return replace(config, properties=entries)


# ---------------------------------------------------------------------------
# Legacy configuration workbook
# ---------------------------------------------------------------------------

FIRST_CONFIG_ROW = 3
COL_LECTURE = 1
COL_SHORT = 2
COL_HIGHLIGHT = 3
COL_PREFIX = 4
COL_LOCALE = 5
COL_WEEKS = 6
COL_EXAM_LENGTH = 7
COL_START_DATE = 8
COL_EXAM_TEXT = 9


def _cell_rgb(color: Any) -> Optional[str]:
    """
    RGB of an openpyxl color, None for theme/indexed colors.
    """
    if color is None or getattr(color, "type", "rgb") != "rgb":
        return None
    return _color(color.rgb)


def _column_strings(ws, column: int) -> list[str]:
    values = []
    for row in range(FIRST_CONFIG_ROW, ws.max_row + 1):
        value = ws.cell(row, column).value
        if isinstance(value, str) and value.strip():
            values.append(value.strip())
    return values


def load_config_workbook(path: str | Path) -> ExportConfig:
    """
    Read the legacy xlsx configuration (first sheet, values from row 3).

    Column A holds lecture matchers (their fill and font color are the
    lecture colors), B short labels, C highlight texts (font color), D ignore
    prefixes, E holiday locale parts, F quarter start weeks, G3 exam week
    length, H3 quarter start date and H4 its time zone, I3 the exam week text
    (its font and fill style the exam week area).

    A file that is not a readable workbook gives the default configuration.
    """
    workbook_path = Path(path)
    if not workbook_path.exists():
        return ExportConfig()
    try:
        wb = load_workbook(workbook_path)
    except (OSError, BadZipFile, InvalidFileException, KeyError) as exc:
        log.warning("cannot read configuration workbook %s (%s), using defaults", workbook_path, exc)
        return ExportConfig()
    ws = wb.worksheets[0]

    entries = []
    highlights: Dict[str, Font] = {}
    for row in range(FIRST_CONFIG_ROW, ws.max_row + 1):
        cell = ws.cell(row, COL_LECTURE)
        if isinstance(cell.value, str) and cell.value.strip():
            fill = _cell_rgb(cell.fill.fgColor) if cell.fill.fill_type else None
            short = ws.cell(row, COL_SHORT).value
            entries.append(
                PropertyEntry(
                    matcher=cell.value.strip(),
                    short_label=short.strip() if isinstance(short, str) else "",
                    fill_color=fill,
                    font=Font(color=_cell_rgb(cell.font.color)),
                )
            )
        hl = ws.cell(row, COL_HIGHLIGHT)
        if isinstance(hl.value, str) and hl.value:
            highlights[hl.value] = Font(color=_cell_rgb(hl.font.color))

    kwargs: Dict[str, Any] = {
        "properties": tuple(entries),
        "highlights": highlights,
        "ignore_prefixes": tuple(_column_strings(ws, COL_PREFIX)),
    }

    locale_parts = _column_strings(ws, COL_LOCALE)
    if locale_parts:
        kwargs["holiday_locale"] = "-".join(locale_parts)

    weeks = []
    for row in range(FIRST_CONFIG_ROW, ws.max_row + 1):
        value = ws.cell(row, COL_WEEKS).value
        try:
            if value is not None and str(value).strip():
                weeks.append(int(float(value)))
        except ValueError:
            continue
    if weeks:
        kwargs["quarter_start_weeks"] = tuple(weeks)

    length = ws.cell(FIRST_CONFIG_ROW, COL_EXAM_LENGTH).value
    if isinstance(length, (int, float)):
        kwargs["exam_week_length"] = clamp_exam_week_length(int(length))

    start = ws.cell(FIRST_CONFIG_ROW, COL_START_DATE).value
    if isinstance(start, datetime):
        kwargs["quarter_start_date"] = start.date()
    elif isinstance(start, date):
        kwargs["quarter_start_date"] = start
    tz = ws.cell(FIRST_CONFIG_ROW + 1, COL_START_DATE).value
    if isinstance(tz, str) and tz.strip():
        kwargs["timezone"] = tz.strip()

    exam = ws.cell(FIRST_CONFIG_ROW, COL_EXAM_TEXT)
    if isinstance(exam.value, str):
        kwargs["exam_week_text"] = exam.value
        kwargs["exam_week_font"] = Font(color=_cell_rgb(exam.font.color), bold=bool(exam.font.b))
    if exam.fill.fill_type:
        fill = _cell_rgb(exam.fill.fgColor) or _cell_rgb(exam.fill.bgColor)
        if fill:
            kwargs["exam_week_fill"] = fill

    wb.close()
    return ExportConfig(**kwargs)
