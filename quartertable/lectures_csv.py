"""
Lecture import (calendar CSV export -> Lecture objects).

Expected file layout (first line holds the column titles):

    name;start;end;resources;lecturers
    Algorithms;2024-01-08 08:00:00;2024-01-08 09:30:00;R1, TIN22A (Kurs);Dr. A, Dr. B

Resources are separated by ", ". A resource containing three upper case
letters followed by two digits ("TIN22A") is a class, everything else is a
room. Only rooms are kept on the lecture; the class names are used for the
default output file name.
"""

from __future__ import annotations

import csv
import re
from collections import Counter
from datetime import datetime, tzinfo
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from quartertable.model import Lecture


CELL_BREAK = ";"
LIST_BREAK = ", "
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
COLUMNS = 5
NAME, START, END, RESOURCES, LECTURERS = range(COLUMNS)

LECTURE_FILE_TITLE = "Vorlesungsplan"
FILE_EXTENSION = "xlsx"

CLASS_RE = re.compile(r"[A-ZÄÖÜ]{3}\d{2}")
CLASS_SUFFIX_RE = re.compile(r" \(.*\)")


def resource_is_room(resource: str) -> bool:
    return CLASS_RE.search(resource) is None


def read_rows(path: str | Path, has_title_line: bool = True) -> List[List[Optional[str]]]:
    """
    Read the CSV file into rows of exactly five cells (missing cells are None).
    """
    rows: List[List[Optional[str]]] = []
    with Path(path).open(encoding="utf-8", newline="") as f:
        reader = csv.reader(f, delimiter=CELL_BREAK)
        if has_title_line:
            next(reader, None)
        for raw in reader:
            if not any(cell.strip() for cell in raw):
                continue
            cells: List[Optional[str]] = [cell.strip() or None for cell in raw[:COLUMNS]]
            cells += [None] * (COLUMNS - len(cells))
            rows.append(cells)
    return rows


def _parse_date(value: Optional[str], tz: Optional[tzinfo]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.strptime(value, DATE_FORMAT).replace(tzinfo=tz)
    except ValueError:
        return None


def lectures_from_rows(
    rows: Sequence[Sequence[Optional[str]]], tz: Optional[tzinfo] = None
) -> Tuple[List[Lecture], List[str]]:
    """
    Convert raw rows into lectures.

    Rows without a name or with an unreadable date are reported as warnings
    and skipped.
    """
    lectures: List[Lecture] = []
    warnings: List[str] = []

    for line_no, row in enumerate(rows, start=1):
        name = row[NAME]
        if not name:
            warnings.append(f"row {line_no}: missing lecture name")
            continue

        start = _parse_date(row[START], tz)
        end = _parse_date(row[END], tz)
        if start is None:
            warnings.append(f"Cannot parse start date of the lecture \"{name}\"")
            continue
        if end is None:
            warnings.append(f"Cannot parse end date of the lecture \"{name}\"")
            continue

        resources = None
        if row[RESOURCES]:
            resources = tuple(r for r in row[RESOURCES].split(LIST_BREAK) if r and resource_is_room(r))

        lecturers = None
        if row[LECTURERS]:
            lecturers = tuple(p for p in row[LECTURERS].split(LIST_BREAK) if p)

        lectures.append(Lecture(name, start, end, resources, lecturers))

    return lectures, warnings


def read_lectures(path: str | Path, tz: Optional[tzinfo] = None) -> Tuple[List[Lecture], List[str]]:
    return lectures_from_rows(read_rows(path), tz)


def most_common_class_name(rows: Sequence[Sequence[Optional[str]]]) -> Optional[str]:
    """
    The class named most often in the resource column ("TIN22A (Kurs)" -> "TIN22A").
    """
    counts: Counter = Counter()
    for row in rows:
        if not row[RESOURCES]:
            continue
        for resource in row[RESOURCES].split(LIST_BREAK):
            if resource and not resource_is_room(resource):
                counts[CLASS_SUFFIX_RE.sub("", resource)] += 1
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def default_output_filename(class_name: Optional[str]) -> str:
    title = LECTURE_FILE_TITLE
    if class_name:
        title += "_" + class_name
    return f"{title}.{FILE_EXTENSION}"
