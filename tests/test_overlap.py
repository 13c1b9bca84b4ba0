"""
Unit tests for splitting parallel lectures.

Checked for every cluster:
- resolved ranges are pairwise disjoint
- resolved ranges are ordered top to bottom in (first_row, last_row) order
- together they still cover the rows of the original cluster
"""

import unittest

from quartertable.model import CellRange
from quartertable.overlap import find_clusters, resolve_overlaps, split_cluster


def rows_covered(ranges) -> set:
    out = set()
    for r in ranges:
        out.update(range(r.first_row, r.last_row + 1))
    return out


class TestClusters(unittest.TestCase):
    def test_transitive_cluster(self) -> None:
        ranges = [
            CellRange(4, 9, 1, 1),
            CellRange(20, 25, 1, 1),
            CellRange(8, 12, 1, 1),
            CellRange(11, 15, 1, 1),
        ]
        self.assertEqual(sorted(sorted(c) for c in find_clusters(ranges)), [[0, 2, 3], [1]])

    def test_other_columns_do_not_cluster(self) -> None:
        ranges = [CellRange(4, 9, 1, 1), CellRange(4, 9, 2, 2)]
        self.assertEqual(find_clusters(ranges), [[0], [1]])


class TestSplit(unittest.TestCase):
    def test_identical_ranges(self) -> None:
        resolved = resolve_overlaps([CellRange(4, 9, 1, 1), CellRange(4, 9, 1, 1)])
        self.assertEqual(resolved, [CellRange(4, 6, 1, 1), CellRange(7, 9, 1, 1)])

    def test_chain_is_disjoint_ordered_and_complete(self) -> None:
        members = [CellRange(4, 9, 1, 1), CellRange(8, 12, 1, 1), CellRange(11, 15, 1, 1)]
        resolved = split_cluster(members)

        for a, b in zip(resolved, resolved[1:]):
            self.assertFalse(a.intersects(b))
            self.assertLess(a.last_row, b.first_row)
        self.assertEqual(rows_covered(resolved), set(range(4, 16)))
        self.assertEqual(resolved[-1].last_row, 15)

    def test_result_keeps_input_order(self) -> None:
        later = CellRange(6, 11, 1, 1)
        earlier = CellRange(4, 9, 1, 1)
        resolved = resolve_overlaps([later, earlier])
        self.assertEqual(resolved, [CellRange(8, 11, 1, 1), CellRange(4, 7, 1, 1)])

    def test_many_parallel_lectures(self) -> None:
        ranges = [CellRange(4, 9, 3, 3) for _ in range(4)]
        resolved = resolve_overlaps(ranges)

        for i, a in enumerate(resolved):
            for b in resolved[i + 1:]:
                self.assertFalse(a.intersects(b))
        self.assertGreaterEqual(sum(r.height for r in resolved), 6)
        self.assertEqual({r.first_column for r in resolved}, {3})

    def test_single_ranges_are_untouched(self) -> None:
        ranges = [CellRange(4, 9, 1, 1), CellRange(10, 12, 1, 1)]
        self.assertEqual(resolve_overlaps(ranges), ranges)

    def test_split_pushed_into_neighbour_is_split_again(self) -> None:
        ranges = [CellRange(4, 4, 1, 1)] * 3 + [CellRange(5, 5, 1, 1)]
        resolved = resolve_overlaps(ranges)

        self.assertEqual(
            resolved,
            [CellRange(4, 4, 1, 1), CellRange(5, 5, 1, 1), CellRange(6, 6, 1, 1), CellRange(7, 7, 1, 1)],
        )

    def test_neighbour_in_other_column_stays(self) -> None:
        ranges = [CellRange(4, 4, 1, 1)] * 3 + [CellRange(5, 5, 2, 2)]
        resolved = resolve_overlaps(ranges)
        self.assertEqual(resolved[3], CellRange(5, 5, 2, 2))
        self.assertEqual([r.first_row for r in resolved[:3]], [4, 5, 6])


if __name__ == "__main__":
    unittest.main()
