"""
Central data model definitions used across the project.

This module defines the canonical structure of the layout objects so that:
- the grid, overlap and property modules share the same field names
- lectures stay immutable while a layout run is in progress
- every export run works on its own values (no shared mutable state)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, Tuple


QUARTER_DAYS = 84


@dataclass(frozen=True)
class Lecture:
    """
    Represents one timetabled event (single start & end timestamp).

    The end timestamp is exclusive. The short label of a lecture is not stored
    here: the layout engine returns it in a separate label table.
    """

    name: str
    start: datetime
    end: datetime
    resources: Optional[Tuple[str, ...]] = None
    lecturers: Optional[Tuple[str, ...]] = None


@dataclass(frozen=True)
class QuarterWindow:
    """
    The 12 week visible period of a timetable.

    `start` should be a Monday at 00:00 local time. Other start days produce a
    shifted layout, they are not corrected.
    """

    start: datetime

    @property
    def end(self) -> datetime:
        return self.start + timedelta(days=QUARTER_DAYS)

    @property
    def last_day(self):
        return (self.end - timedelta(days=1)).date()


@dataclass(frozen=True)
class CellAddress:
    row: int
    column: int


@dataclass(frozen=True)
class CellRange:
    """
    Rectangular grid region with inclusive bounds (zero based).
    """

    first_row: int
    last_row: int
    first_column: int
    last_column: int

    @property
    def height(self) -> int:
        return self.last_row - self.first_row + 1

    def intersects(self, other: CellRange) -> bool:
        return (
            self.first_row <= other.last_row
            and other.first_row <= self.last_row
            and self.first_column <= other.last_column
            and other.first_column <= self.last_column
        )


@dataclass(frozen=True)
class Font:
    name: str = "Arial"
    size: int = 10
    color: Optional[str] = None
    bold: bool = False


@dataclass(frozen=True)
class PropertyEntry:
    """
    One row of the property table.

    `matcher` may contain '*' as a wildcard and is tested against the
    prefix-stripped lecture name.
    """

    matcher: str
    short_label: str = ""
    fill_color: Optional[str] = None
    font: Font = field(default_factory=Font)


@dataclass(frozen=True)
class HighlightSpan:
    start: int
    end: int
    font: Font


@dataclass(frozen=True)
class StyleDescriptor:
    fill_color: str
    font: Font
    label: str
    highlight_spans: Tuple[HighlightSpan, ...] = ()


@dataclass(frozen=True)
class Placement:
    """
    Final output unit of a layout run: one lecture at one grid position.
    """

    lecture: Lecture
    cell_range: CellRange
    style: StyleDescriptor
    text: str
    exam_week: bool = False
