"""
Parallel lecture handling.

Lectures that share grid cells cannot be merged into the sheet side by side.
Instead every cluster of (transitively) overlapping ranges is split vertically:
the members keep their columns and get consecutive, disjoint row spans.

Splitting rule for a cluster with n members spanning min_row..max_row:
- members are ordered by (first_row, last_row), ties keep input order
- every member gets at most its own span and at most the fair share
  (max_row - min_row) / n, but never ends before the next member starts
- the last member reaches down to max_row, so the cluster keeps its height
- a cluster pushed into a neighbour is merged with it and split again
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from quartertable.model import CellRange


log = logging.getLogger(__name__)


def find_clusters(ranges: Sequence[CellRange]) -> List[List[int]]:
    """
    Group range indices into clusters of transitively intersecting ranges.

    Each index ends up in exactly one cluster. Clusters are returned in the
    order of their lowest index, members in discovery order.
    """
    remaining = list(range(len(ranges)))
    clusters: List[List[int]] = []

    while remaining:
        seed = remaining.pop(0)
        cluster = [seed]
        stack = [seed]
        # explicit stack: deep overlap chains must not hit the recursion limit
        while stack:
            current = stack.pop()
            neighbours = [i for i in remaining if ranges[current].intersects(ranges[i])]
            for i in neighbours:
                remaining.remove(i)
                cluster.append(i)
                stack.append(i)
        clusters.append(cluster)

    return clusters


def _fair_share(total_height: int, size: int) -> int:
    share = total_height // size
    if total_height % size > 1:
        share += 1
    return share


def split_cluster(members: Sequence[CellRange]) -> List[CellRange]:
    """
    Split one cluster into disjoint row spans.

    Returns the new ranges in the same order as `members`.
    """
    if len(members) < 2:
        return list(members)

    order = sorted(range(len(members)), key=lambda i: (members[i].first_row, members[i].last_row))
    rows = [[members[i].first_row, members[i].last_row] for i in order]

    min_row = min(r[0] for r in rows)
    max_row = max(r[1] for r in rows)
    share = _fair_share(max_row - min_row, len(rows))

    for current, following in zip(rows, rows[1:]):
        new_height = min(current[1] - current[0], share)
        boundary = max(min_row + new_height, following[0] - 1)
        current[1] = boundary
        following[0] = boundary + 1
        if following[1] < following[0]:
            following[1] = following[0]
        min_row = boundary + 1

    if rows[-1][1] < max_row:
        rows[-1][1] = max_row

    resolved: List[CellRange] = list(members)
    for position, i in enumerate(order):
        first, last = rows[position]
        resolved[i] = CellRange(first, last, members[i].first_column, members[i].last_column)
    return resolved


def resolve_overlaps(ranges: Sequence[CellRange]) -> List[CellRange]:
    """
    Rewrite ranges so that no two ranges intersect.

    The result has the same length and order as the input; columns are never
    changed. A split cluster can grow into a neighbouring range of the same
    column; such clusters are merged and split again from their original
    ranges until nothing collides.
    """
    groups = [sorted(c) for c in find_clusters(ranges) if len(c) > 1]

    while True:
        resolved: List[CellRange] = list(ranges)
        for group in groups:
            log.debug("splitting %d parallel lectures: %s", len(group), [ranges[i] for i in group])
            for i, new_range in zip(group, split_cluster([ranges[i] for i in group])):
                resolved[i] = new_range

        collisions = [c for c in find_clusters(resolved) if len(c) > 1]
        if not collisions:
            return resolved

        # every collision joins at least two groups, so the loop ends
        for collision in collisions:
            merged = set(collision)
            for group in [g for g in groups if merged.intersection(g)]:
                merged.update(group)
                groups.remove(group)
            groups.append(sorted(merged))
        log.debug("split pushed ranges into neighbours, merging %d clusters", len(collisions))
