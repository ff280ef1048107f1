import unittest
from datetime import date, timedelta

from stay_booking import BlockingIntervalIndex, ConflictError, StayInterval


def stay(start_day: int, end_day: int) -> StayInterval:
    return StayInterval(date(2026, 3, start_day), date(2026, 3, end_day))


class TestBlockingIntervalIndex(unittest.TestCase):
    def setUp(self) -> None:
        self.index = BlockingIntervalIndex()
        self.index.add("cabin-1", stay(10, 13), "a")
        self.index.add("cabin-1", stay(13, 16), "b")
        self.index.add("cabin-1", stay(20, 22), "c")
        self.index.add("loft-7", stay(10, 13), "other")

    def test_finds_every_overlapping_entry(self) -> None:
        self.assertEqual(self.index.find_overlapping("cabin-1", stay(12, 21)), ["a", "b", "c"])

    def test_touching_boundaries_are_not_returned(self) -> None:
        self.assertEqual(self.index.find_overlapping("cabin-1", stay(16, 20)), [])
        self.assertEqual(self.index.find_overlapping("cabin-1", stay(5, 10)), [])

    def test_resources_are_isolated(self) -> None:
        self.assertEqual(self.index.find_overlapping("loft-7", stay(11, 12)), ["other"])
        self.assertEqual(self.index.find_overlapping("unknown", stay(11, 12)), [])

    def test_add_refuses_overlap_and_reports_ids(self) -> None:
        with self.assertRaises(ConflictError) as caught:
            self.index.add("cabin-1", stay(12, 14), "d")

        self.assertEqual(caught.exception.conflicting_ids, ("a", "b"))
        self.assertFalse(self.index.contains("cabin-1", "d"))

    def test_discard_frees_the_dates(self) -> None:
        self.assertTrue(self.index.discard("cabin-1", "b"))
        self.assertFalse(self.index.discard("cabin-1", "b"))

        self.index.add("cabin-1", stay(14, 18), "e")
        self.assertEqual([reservation_id for _, reservation_id in self.index.entries("cabin-1")], ["a", "e", "c"])

    def test_many_entries_stay_sorted(self) -> None:
        index = BlockingIntervalIndex()
        base = date(2026, 1, 1)
        for offset in reversed(range(0, 200, 2)):
            start = base + timedelta(days=offset)
            index.add("villa", StayInterval(start, start + timedelta(days=2)), f"r{offset}")

        starts = [interval.check_in for interval, _ in index.entries("villa")]
        self.assertEqual(starts, sorted(starts))
        probe = StayInterval(base + timedelta(days=101), base + timedelta(days=104))
        self.assertEqual(index.find_overlapping("villa", probe), ["r100", "r102"])


if __name__ == "__main__":
    unittest.main()
