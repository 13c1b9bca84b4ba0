"""
Spreadsheet writer (placements -> xlsx) built on openpyxl.

The timetable is the first sheet of the workbook. Grid coordinates of the
layout are zero based, openpyxl rows and columns start at 1.

Typical use:

    book = TimetableWorkbook("template.xlsx")
    book.reset(config.exam_week_fill, config.exam_week_text, config.exam_week_font)
    warnings = book.write_layout(result, window)
    book.save("Vorlesungsplan.xlsx")
"""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import List, Optional

from openpyxl import Workbook, load_workbook
from openpyxl.cell.rich_text import CellRichText, TextBlock
from openpyxl.cell.text import InlineFont
from openpyxl.styles import Alignment, PatternFill
from openpyxl.styles import Font as CellFont

from quartertable.errors import MergeConflictError
from quartertable.model import CellRange, Font, QuarterWindow, StyleDescriptor
from quartertable.timegrid import DEFAULT_LAYOUT, LAST_COLUMN, SEPARATOR_COLUMN, GridLayout


log = logging.getLogger(__name__)

SHEET_TITLE = "Vorlesungsplan"
WHITE = "FFFFFF"
DATE_FORMAT = "DD.MM.YYYY"

# Zero based cells of the header dates
GENERATED_CELL = (1, 0)
QUARTER_START_CELL = (2, 1)


def _solid(color: str) -> PatternFill:
    return PatternFill(fill_type="solid", fgColor=color, bgColor=color)


def _cell_font(font: Font) -> CellFont:
    return CellFont(name=font.name, size=font.size, color=font.color, bold=font.bold)


def _inline_font(font: Font) -> InlineFont:
    return InlineFont(rFont=font.name, sz=font.size, color=font.color, b=font.bold)


def rich_text(text: str, style: StyleDescriptor) -> str | CellRichText:
    """
    Cell value with the highlight spans of the label line in their own font.

    Spans reaching past the first line or overlapping an earlier span are
    ignored. Without usable spans the plain text is returned.
    """
    label_end = text.find("\n")
    if label_end == -1:
        label_end = len(text)

    spans = sorted(
        (s for s in style.highlight_spans if 0 <= s.start < s.end <= label_end),
        key=lambda s: s.start,
    )
    if not spans:
        return text

    main = _inline_font(style.font)
    parts: list = []
    pos = 0
    for span in spans:
        if span.start < pos:
            continue
        if span.start > pos:
            parts.append(TextBlock(main, text[pos:span.start]))
        parts.append(TextBlock(_inline_font(span.font), text[span.start:span.end]))
        pos = span.end
    if pos < len(text):
        parts.append(TextBlock(main, text[pos:]))
    return CellRichText(parts)


class TimetableWorkbook:
    def __init__(self, template: str | Path | None = None, layout: GridLayout = DEFAULT_LAYOUT) -> None:
        self.layout = layout
        if template is not None:
            self.workbook = load_workbook(Path(template), rich_text=True)
        else:
            self.workbook = Workbook()
            self.workbook.active.title = SHEET_TITLE
        self._written: List[CellRange] = []

    @property
    def sheet(self):
        return self.workbook.worksheets[0]

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    def _lecture_rows(self, block: int) -> range:
        first = self.layout.block_start_row(block) + self.layout.header_rows - 1
        return range(first, first + self.layout.day_slots + 2)

    def _exam_rows(self) -> range:
        rows = self._lecture_rows(self.layout.final_block)
        return range(rows.start, rows.start + self.layout.exam_day_slots + 1)

    def is_lecture_cell(self, row: int, column: int) -> bool:
        """
        True if the zero based cell belongs to the lecture area of a block.

        The exam week columns of the final block end with the exam day, the
        template continues below it.
        """
        if column < 1 or column > LAST_COLUMN or column == SEPARATOR_COLUMN:
            return False
        block = row // self.layout.block_rows
        if block > self.layout.final_block:
            return False
        if block == self.layout.final_block and column >= self.layout.exam_first_column:
            return row in self._exam_rows()
        return row in self._lecture_rows(block)

    def _exam_columns(self) -> List[int]:
        if self.layout.exam_columns is not None:
            return list(self.layout.exam_columns)
        return list(range(self.layout.exam_first_column, LAST_COLUMN + 1))

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def reset(self, exam_fill: str = "00FFFF", exam_text: str = "", exam_font: Optional[Font] = None) -> None:
        """
        Clear the lecture area: unmerge, blank and refill all lecture cells.

        The exam week area gets `exam_fill` and, on its top row, `exam_text`.
        """
        ws = self.sheet
        for merged in list(ws.merged_cells.ranges):
            if self.is_lecture_cell(merged.min_row - 1, merged.min_col - 1):
                ws.unmerge_cells(merged.coord)

        white = _solid(WHITE)
        for block in range(self.layout.final_block + 1):
            for row in self._lecture_rows(block):
                for column in range(1, LAST_COLUMN + 1):
                    if not self.is_lecture_cell(row, column):
                        continue
                    cell = ws.cell(row + 1, column + 1)
                    cell.value = None
                    cell.fill = white

        exam_columns = self._exam_columns()
        exam = _solid(exam_fill)
        for row in self._exam_rows():
            for column in exam_columns:
                ws.cell(row + self.layout.exam_row_offset + 1, column + 1).fill = exam

        if exam_text and exam_columns:
            top = self._exam_rows().start + self.layout.exam_row_offset
            cell = ws.cell(top + 1, exam_columns[0] + 1)
            cell.value = exam_text
            cell.font = _cell_font(exam_font or Font())
            cell.alignment = Alignment(horizontal="left", vertical="top")

        self._written = []
        log.debug("reset lecture area of %d blocks", self.layout.final_block + 1)

    def write_merged_cell(self, cell_range: CellRange, style: StyleDescriptor, text: str) -> bool:
        """
        Merge `cell_range` and write the styled text into it.

        Returns False (and writes nothing) if the range intersects a merged
        region of the sheet or a range written before.
        """
        ws = self.sheet
        for merged in ws.merged_cells.ranges:
            existing = CellRange(merged.min_row - 1, merged.max_row - 1, merged.min_col - 1, merged.max_col - 1)
            if existing.intersects(cell_range):
                return False
        if any(written.intersects(cell_range) for written in self._written):
            return False

        first_row = cell_range.first_row + 1
        first_col = cell_range.first_column + 1
        last_row = cell_range.last_row + 1
        last_col = cell_range.last_column + 1
        if first_row != last_row or first_col != last_col:
            ws.merge_cells(start_row=first_row, start_column=first_col, end_row=last_row, end_column=last_col)

        cell = ws.cell(first_row, first_col)
        cell.value = rich_text(text, style)
        cell.font = _cell_font(style.font)
        cell.fill = _solid(style.fill_color)
        cell.alignment = Alignment(wrap_text=True, vertical="top")

        self._written.append(cell_range)
        return True

    def write_date(self, position: tuple, value: date) -> None:
        cell = self.sheet.cell(position[0] + 1, position[1] + 1)
        cell.value = value
        cell.number_format = DATE_FORMAT

    def write_layout(self, result, window: QuarterWindow, today: Optional[date] = None) -> List[str]:
        """
        Write all placements of a layout result and the header dates.

        Returns the warnings for placements that could not be written.
        """
        warnings: List[str] = []
        for placement in result.placements:
            if not self.write_merged_cell(placement.cell_range, placement.style, placement.text):
                message = str(MergeConflictError(placement.lecture, "cells already in use"))
                log.warning("%s", message)
                warnings.append(message)

        self.write_date(QUARTER_START_CELL, window.start.date())
        self.write_date(GENERATED_CELL, today or date.today())
        log.info("wrote %d of %d placements", len(result.placements) - len(warnings), len(result.placements))
        return warnings

    def save(self, path: str | Path) -> None:
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        self.workbook.save(out)
