"""
Lecture properties (name -> color, font, short label, highlights).

The property table is an ordered list of entries. Matchers may contain '*'
as a wildcard and are matched against the lecture name without its ignore
prefix ("WKL Statistics" -> "Statistics").

Table order matters:
- if several matchers match, the LAST one in table order wins
- a highlight font matched several times only keeps its last match
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from quartertable.model import Font, HighlightSpan, PropertyEntry, StyleDescriptor


log = logging.getLogger(__name__)

DEFAULT_FILL = "FFFFFF"
DEFAULT_FONT = Font()


def strip_prefix(name: str, prefixes: Iterable[str]) -> str:
    """
    Return `name` without the first ignore prefix (followed by a space).
    """
    for prefix in prefixes:
        if prefix and name.startswith(prefix + " "):
            return name[len(prefix) + 1:]
    return name


def compile_matcher(matcher: str) -> re.Pattern[str]:
    """
    Compile a wildcard matcher: literal segments separated by arbitrary text.
    """
    return re.compile(".*".join(re.escape(part) for part in matcher.split("*")))


def matches(name: str, matcher: str) -> bool:
    return compile_matcher(matcher).fullmatch(name) is not None


def find_entry(raw_name: str, entries: Sequence[PropertyEntry]) -> Optional[PropertyEntry]:
    """
    Return the last entry whose matcher matches `raw_name`.
    """
    found: Optional[PropertyEntry] = None
    for entry in entries:
        if matches(raw_name, entry.matcher):
            found = entry
    return found


def text_highlights(text: str, highlights: Mapping[str, Font]) -> List[HighlightSpan]:
    """
    Find the spans of `text` to print with a highlight font.

    Literal, case-sensitive search for every highlight text, occurrences
    never overlap. Spans are kept per font: if one font matches several
    times (one text found twice, or two texts sharing a font) only the last
    match of the last such text survives.
    """
    by_font: Dict[Font, HighlightSpan] = {}
    for key, font in highlights.items():
        if not key:
            continue
        pos = text.find(key)
        while pos != -1:
            by_font[font] = HighlightSpan(pos, pos + len(key), font)
            pos = text.find(key, pos + len(key))
    return list(by_font.values())


def shift_spans(
    spans: Sequence[HighlightSpan], start: int, old_length: int, new_length: int
) -> List[HighlightSpan]:
    """
    Move spans over a text in which text[start:start + old_length] was
    replaced by new_length characters.

    Spans before the replaced part stay, spans behind it move, spans touching
    it are dropped.
    """
    end = start + old_length
    delta = new_length - old_length
    out: List[HighlightSpan] = []
    for span in spans:
        if span.end <= start:
            out.append(span)
        elif span.start >= end:
            out.append(HighlightSpan(span.start + delta, span.end + delta, span.font))
    return out


def default_style(label: str) -> StyleDescriptor:
    return StyleDescriptor(fill_color=DEFAULT_FILL, font=DEFAULT_FONT, label=label)


def resolve_style(
    group_name: str,
    entries: Sequence[PropertyEntry],
    highlights: Mapping[str, Font],
    ignore_prefixes: Iterable[str] = (),
) -> StyleDescriptor:
    """
    Resolve the style of a lecture group.

    Highlights are searched in the full group name, not in the short label,
    and then moved to the positions they have in the label.
    """
    raw_name = strip_prefix(group_name, ignore_prefixes)
    spans = tuple(text_highlights(group_name, highlights))
    entry = find_entry(raw_name, entries)

    if entry is None:
        log.debug("no properties for %r", group_name)
        return StyleDescriptor(DEFAULT_FILL, DEFAULT_FONT, group_name, spans)

    label = group_name
    if entry.short_label:
        start = group_name.find(raw_name)
        label = group_name[:start] + entry.short_label + group_name[start + len(raw_name):]
        spans = tuple(shift_spans(spans, start, len(raw_name), len(entry.short_label)))

    return StyleDescriptor(
        fill_color=entry.fill_color or DEFAULT_FILL,
        font=entry.font,
        label=label,
        highlight_spans=spans,
    )


def unmatched_names(
    names: Sequence[str],
    entries: Sequence[PropertyEntry],
    ignore_prefixes: Iterable[str] = (),
) -> List[str]:
    """
    Raw names that are not covered by the property table yet.

    A prefixed name is skipped if its raw name is itself in `names`.
    Duplicates are returned once, in input order.
    """
    prefixes = list(ignore_prefixes)
    out: List[str] = []
    for name in names:
        raw_name = strip_prefix(name, prefixes)
        if find_entry(raw_name, entries) is not None:
            continue
        if raw_name != name and raw_name in names:
            continue
        if raw_name not in out:
            out.append(raw_name)
    return out
