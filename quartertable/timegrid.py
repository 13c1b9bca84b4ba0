"""
Time grid (timestamp -> cell address).

The printed quarter is a stack of blocks, one block per four weeks:

    rows    block * 49 + 4 + slot     (slot = quarter hours since 08:00)
    columns 1..10 and 12..21          (five weekdays per week, two weeks per
                                       side, column 11 separates the halves)

The column folding and the row constants are a fixed contract with the
spreadsheet template and must not be changed.

All functions are pure: the geometry comes in as a GridLayout object.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Tuple

from quartertable.errors import MalformedRangeError, UnmappableDateError
from quartertable.model import CellAddress, CellRange, Lecture, QuarterWindow


START_TIMES = ("08:00", "08:45", "09:45", "10:30", "11:30", "12:15",
               "14:00", "14:45", "15:45", "16:30", "17:30", "18:15")
END_TIMES = ("08:45", "09:30", "10:30", "11:15", "12:15", "13:00",
             "14:45", "15:30", "16:30", "17:15", "18:15", "19:00")

# Template columns
LAST_COLUMN = 21
SEPARATOR_COLUMN = 11
MAX_EXAM_WEEK_LENGTH = 10


@dataclass(frozen=True)
class GridLayout:
    """
    Geometry of one printed quarter.

    exam_columns: target columns of the exam week segment, one per exam
    column of the final block (None keeps the columns of the day math).
    exam_day_slots: slots of the exam week area (up to 17:15), the template
    continues below it.
    """

    block_rows: int = 49
    header_rows: int = 4
    day_slots: int = 44
    first_hour: int = 8
    slot_minutes: int = 15
    block_days: int = 28
    visible_days: int = 82
    exam_week_length: int = 6
    exam_day_slots: int = 37
    exam_columns: Optional[Tuple[int, ...]] = None
    exam_row_offset: int = 0
    standard_start_times: Tuple[str, ...] = START_TIMES
    standard_end_times: Tuple[str, ...] = END_TIMES

    @property
    def final_block(self) -> int:
        return (self.visible_days - 1) // self.block_days

    @property
    def exam_first_column(self) -> int:
        length = max(0, min(MAX_EXAM_WEEK_LENGTH, self.exam_week_length))
        return LAST_COLUMN + 1 - length

    def block_start_row(self, block: int) -> int:
        return block * self.block_rows


DEFAULT_LAYOUT = GridLayout()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _local(window: QuarterWindow, when: datetime) -> datetime:
    """
    Express `when` as wall-clock time of the quarter window.
    """
    tz = window.start.tzinfo
    if tz is None:
        return when.replace(tzinfo=None)
    if when.tzinfo is None:
        return when.replace(tzinfo=tz)
    return when.astimezone(tz)


def days_between(window: QuarterWindow, when: datetime) -> int:
    """
    Whole days from the quarter start to `when` (negative before the start).
    """
    local = _local(window, when).replace(tzinfo=None)
    return (local - window.start.replace(tzinfo=None)) // timedelta(days=1)


def fold_column(day_offset: int) -> int:
    """
    Column of a day inside a four week block (template contract).
    """
    column = day_offset
    column -= column // 7 * 2
    column += column // 10 + 1
    return column


def _time_slot(local: datetime, is_end: bool, layout: GridLayout) -> int:
    hour = local.hour
    minute = local.minute
    if is_end:
        # exclusive end: the last occupied minute is one minute earlier
        if minute == 0:
            minute = 59
            hour -= 1
        else:
            minute -= 1
    slots_per_hour = 60 // layout.slot_minutes
    return (hour - layout.first_hour) * slots_per_hour + minute // layout.slot_minutes


def unmappable_reason(
    window: QuarterWindow, when: Optional[datetime], layout: GridLayout = DEFAULT_LAYOUT
) -> Optional[str]:
    """
    Return why `when` has no cell, or None if it can be mapped.
    """
    if when is None:
        return "missing date"
    local = _local(window, when)
    if local.isoweekday() > 5:
        return "weekend"
    days = days_between(window, when)
    if days < 0:
        return "before quarter start"
    if days >= layout.visible_days:
        return "after the visible window"
    return None


# ---------------------------------------------------------------------------
# Core mapping
# ---------------------------------------------------------------------------


def cell_address_from_date(
    window: QuarterWindow,
    when: datetime,
    is_end: bool = False,
    layout: GridLayout = DEFAULT_LAYOUT,
) -> Optional[CellAddress]:
    """
    Map a timestamp to its grid cell.

    Set is_end for the (exclusive) end timestamp of a lecture.
    Returns None for weekends and dates outside the visible window.
    Times before 08:00 land on the row above the day, times from 19:00 on the
    row below it.
    """
    if unmappable_reason(window, when, layout) is not None:
        return None

    local = _local(window, when)
    days = days_between(window, when)
    block = days // layout.block_days
    column = fold_column(days % layout.block_days)
    row = layout.block_start_row(block) + layout.header_rows

    slot = _time_slot(local, is_end, layout)
    if slot < 0:
        row -= 1
    elif slot >= layout.day_slots:
        row += layout.day_slots
    else:
        row += slot

    if block == layout.final_block and column >= layout.exam_first_column:
        return _exam_week_address(row, column, layout)
    return CellAddress(row, column)


def _exam_week_address(row: int, column: int, layout: GridLayout) -> Optional[CellAddress]:
    """
    Route an address of the trailing exam week columns to the exam segment.
    """
    if layout.exam_columns is None:
        return CellAddress(row + layout.exam_row_offset, column)
    index = column - layout.exam_first_column
    if index >= len(layout.exam_columns):
        return None
    return CellAddress(row + layout.exam_row_offset, layout.exam_columns[index])


def is_exam_week(window: QuarterWindow, when: datetime, layout: GridLayout = DEFAULT_LAYOUT) -> bool:
    if unmappable_reason(window, when, layout) is not None:
        return False
    days = days_between(window, when)
    if days // layout.block_days != layout.final_block:
        return False
    return fold_column(days % layout.block_days) >= layout.exam_first_column


def is_sentinel_row(row: int, layout: GridLayout = DEFAULT_LAYOUT) -> bool:
    """
    True for the rows above 08:00 and below 19:00 of a block.

    Lectures before 08:00 and after 19:00 are clamped onto them.
    """
    offset = (row - layout.header_rows + 1) % layout.block_rows
    return offset == 0 or offset == layout.day_slots + 1


def cell_range_from_lecture(
    window: QuarterWindow, lecture: Lecture, layout: GridLayout = DEFAULT_LAYOUT
) -> CellRange:
    """
    Map a lecture to the rectangle between its start and last occupied cell.

    Raises UnmappableDateError if start or end has no cell and
    MalformedRangeError if both cells do not describe one session on one day.
    """
    for when in (lecture.start, lecture.end):
        reason = unmappable_reason(window, when, layout)
        if reason is not None:
            raise UnmappableDateError(lecture, reason)

    start = cell_address_from_date(window, lecture.start, False, layout)
    end = cell_address_from_date(window, lecture.end, True, layout)
    if start is None or end is None:
        raise UnmappableDateError(lecture, "outside the exam week segment")

    if days_between(window, lecture.start) != days_between(window, lecture.end):
        raise MalformedRangeError(lecture, "start and end are on different days")
    if start.column != end.column:
        raise MalformedRangeError(lecture, "start and end map to different columns")
    if start.row > end.row:
        raise MalformedRangeError(lecture, "end is not after start")

    return CellRange(start.row, end.row, start.column, end.column)


# ---------------------------------------------------------------------------
# Time labels
# ---------------------------------------------------------------------------


def format_time(when: datetime) -> str:
    return when.strftime("%H:%M")


def is_standard_interval(lecture: Lecture, layout: GridLayout = DEFAULT_LAYOUT) -> bool:
    """
    True if the lecture starts and ends on the usual lesson boundaries.
    """
    return (
        format_time(lecture.start) in layout.standard_start_times
        and format_time(lecture.end) in layout.standard_end_times
    )
