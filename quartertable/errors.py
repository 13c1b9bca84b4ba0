"""
Exceptions raised while laying out a quarter.

None of them is fatal for an export: the engine and the workbook writer turn
them into warning lines and continue with the next lecture.
"""

from __future__ import annotations

from typing import Optional

from quartertable.model import Lecture


def describe_lecture(lecture: Lecture) -> str:
    """
    Human readable identity of a lecture used in warning lines.
    """
    start = lecture.start.strftime("%Y-%m-%d %H:%M") if lecture.start else "?"
    end = lecture.end.strftime("%Y-%m-%d %H:%M") if lecture.end else "?"
    return f"{lecture.name} at {start} - {end}"


class LayoutError(ValueError):
    """
    A single lecture could not be laid out.
    """

    prefix = "layout error"

    def __init__(self, lecture: Lecture, reason: Optional[str] = None) -> None:
        self.lecture = lecture
        self.reason = reason
        message = f"{self.prefix}: {describe_lecture(lecture)}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class UnmappableDateError(LayoutError):
    """Weekend, before the quarter or outside the visible window."""

    prefix = "unmappable lecture"


class MalformedRangeError(LayoutError):
    """Start and end map to inconsistent grid positions."""

    prefix = "malformed lecture"


class MergeConflictError(LayoutError):
    """The target region collides with an existing merged region."""

    prefix = "skipped lecture"


class HolidayLookupError(RuntimeError):
    pass
