"""
Layout engine (lectures -> placements).

One export run:
1. derive the quarter window
2. group lectures by name (sorted by name, stable inside a group)
3. add the holidays of the window as a synthetic group
4. map every lecture to a cell range (unmappable lectures become warnings)
5. split parallel lectures once for the whole window
6. resolve the style once per group
7. emit one Placement per mapped lecture

A run has no I/O of its own: holidays come from a callable and the placements
are written by the workbook module. Warnings are collected and returned
together with the placements, nothing in a run is fatal.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone, tzinfo
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from quartertable.config import ExportConfig
from quartertable.errors import HolidayLookupError, LayoutError, describe_lecture
from quartertable.model import CellRange, Lecture, Placement, QuarterWindow, StyleDescriptor
from quartertable.overlap import resolve_overlaps
from quartertable.properties import default_style, resolve_style
from quartertable.timegrid import (
    GridLayout,
    cell_range_from_lecture,
    format_time,
    is_exam_week,
    is_sentinel_row,
    is_standard_interval,
)


log = logging.getLogger(__name__)

# Group key of the synthetic holiday lectures (cannot collide with a name)
HOLIDAY_GROUP = "\x00holidays"

QUARTER_WEEKS = 13
HOLIDAY_START = time(8, 0)
HOLIDAY_END = time(19, 0)
LINE_BREAK = "\n"

HolidayProvider = Callable[[date, date, str], Mapping[date, str]]


@dataclass
class LayoutResult:
    """
    Placements in output order and the warnings of the run.

    `labels` maps each lecture to its rendered label. It is keyed by lecture
    value, so identical lectures share one entry; they always share the
    label as well because the label only depends on the name.
    """

    placements: List[Placement] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    labels: Dict[Lecture, str] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Quarter window
# ---------------------------------------------------------------------------


def get_timezone(name: str) -> tzinfo:
    if name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        log.warning("unknown time zone %r, using UTC", name)
        return timezone.utc


def window_starting(day: date, tz: Optional[tzinfo] = None) -> QuarterWindow:
    start = datetime.combine(day, time(0, 0), tzinfo=tz)
    if day.isoweekday() != 1:
        log.warning("quarter start %s is not a Monday, the layout will be shifted", day.isoformat())
    return QuarterWindow(start)


def quarter_window_for_date(
    day: date, start_weeks: Sequence[int], tz: Optional[tzinfo] = None
) -> QuarterWindow:
    """
    Return the quarter window containing `day`.

    The first configured start week w with w <= ISO week < w + 13 wins.
    Without a match the window starts on the Monday of the week of `day`.
    """
    iso_year, iso_week, _ = day.isocalendar()
    for week in start_weeks:
        if week <= iso_week < week + QUARTER_WEEKS:
            return window_starting(date.fromisocalendar(iso_year, week, 1), tz)

    log.warning("ISO week %d is not in a configured quarter, starting the quarter that week", iso_week)
    return window_starting(date.fromisocalendar(iso_year, iso_week, 1), tz)


def window_for_lectures(lectures: Sequence[Lecture], config: ExportConfig) -> Optional[QuarterWindow]:
    """
    Window from the configured start date, else from the first lecture.
    """
    tz = get_timezone(config.timezone)
    if config.quarter_start_date is not None:
        return window_starting(config.quarter_start_date, tz)
    for lecture in lectures:
        if lecture.start is not None:
            return quarter_window_for_date(lecture.start.date(), config.quarter_start_weeks, tz)
    return None


# ---------------------------------------------------------------------------
# Grouping & holidays
# ---------------------------------------------------------------------------


def group_lectures(lectures: Sequence[Lecture]) -> Dict[str, List[Lecture]]:
    """
    Group lectures by name; keys sorted (case-sensitive), input order kept
    inside each group.
    """
    groups: Dict[str, List[Lecture]] = defaultdict(list)
    for lecture in lectures:
        groups[lecture.name].append(lecture)
    return {name: groups[name] for name in sorted(groups)}


def holiday_lectures(
    window: QuarterWindow,
    locale: str,
    holidays: HolidayProvider,
    warnings: List[str],
) -> List[Lecture]:
    """
    Turn the weekday holidays of the window into full-day lectures.
    """
    try:
        found = holidays(window.start.date(), window.last_day, locale)
    except HolidayLookupError as exc:
        log.warning("%s", exc)
        warnings.append(f"holidays not available: {exc}")
        return []

    tz = window.start.tzinfo
    out: List[Lecture] = []
    for day in sorted(found):
        if day.isoweekday() > 5:
            log.debug("ignoring weekend holiday %s", day)
            continue
        out.append(
            Lecture(
                name=found[day],
                start=datetime.combine(day, HOLIDAY_START, tzinfo=tz),
                end=datetime.combine(day, HOLIDAY_END, tzinfo=tz),
            )
        )
    return out


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------


def render_text(lecture: Lecture, label: str, layout: GridLayout, is_holiday: bool = False) -> str:
    """
    Cell text: label, rooms and lecturers on separate lines, plus the time
    if the lecture does not follow the usual lesson times.
    """
    if is_holiday:
        return label
    lines = [
        label,
        ",".join(lecture.resources or ()),
        ",".join(lecture.lecturers or ()),
    ]
    if not is_standard_interval(lecture, layout):
        lines.append(f"{format_time(lecture.start)}-{format_time(lecture.end)}")
    return LINE_BREAK.join(lines)


# ---------------------------------------------------------------------------
# Main entry
# ---------------------------------------------------------------------------


def build_layout(
    lectures: Sequence[Lecture],
    window: QuarterWindow,
    config: ExportConfig,
    holidays: Optional[HolidayProvider] = None,
) -> LayoutResult:
    """
    Lay out all lectures of one quarter.

    Running it twice with the same input gives the same placements.
    """
    layout = config.layout
    result = LayoutResult()

    groups: List[Tuple[str, List[Lecture]]] = list(group_lectures(lectures).items())
    if holidays is not None:
        holiday_group = holiday_lectures(window, config.holiday_locale, holidays, result.warnings)
        if holiday_group:
            groups.append((HOLIDAY_GROUP, holiday_group))

    mapped: List[Tuple[str, Lecture]] = []
    ranges: List[CellRange] = []
    for key, group in groups:
        for lecture in group:
            try:
                cell_range = cell_range_from_lecture(window, lecture, layout)
            except LayoutError as exc:
                log.warning("%s", exc)
                result.warnings.append(str(exc))
                continue
            if is_sentinel_row(cell_range.first_row, layout) or is_sentinel_row(cell_range.last_row, layout):
                message = f"lecture outside printed hours: {describe_lecture(lecture)}"
                log.warning("%s", message)
                result.warnings.append(message)
            mapped.append((key, lecture))
            ranges.append(cell_range)

    resolved = resolve_overlaps(ranges)

    styles: Dict[str, StyleDescriptor] = {}
    for key, _ in groups:
        if key != HOLIDAY_GROUP:
            styles[key] = resolve_style(key, config.properties, config.highlights, config.ignore_prefixes)

    for (key, lecture), cell_range in zip(mapped, resolved):
        is_holiday = key == HOLIDAY_GROUP
        style = default_style(lecture.name) if is_holiday else styles[key]
        result.labels[lecture] = style.label
        result.placements.append(
            Placement(
                lecture=lecture,
                cell_range=cell_range,
                style=style,
                text=render_text(lecture, style.label, layout, is_holiday),
                exam_week=is_exam_week(window, lecture.start, layout),
            )
        )

    log.info("laid out %d lectures with %d warnings", len(result.placements), len(result.warnings))
    return result
