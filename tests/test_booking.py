import unittest
from datetime import date, datetime

from stay_booking import ReservationRecord, ReservationStatus, StayInterval, ValidationError, has_date_overlap, make_interval


class TestDateOverlap(unittest.TestCase):
    def setUp(self) -> None:
        self.exist_start = date(2026, 3, 10)
        self.exist_end = date(2026, 3, 13)

    def test_non_overlapping_before_passes(self) -> None:
        self.assertFalse(has_date_overlap(date(2026, 3, 5), date(2026, 3, 8), self.exist_start, self.exist_end))

    def test_non_overlapping_after_passes(self) -> None:
        self.assertFalse(has_date_overlap(date(2026, 3, 14), date(2026, 3, 16), self.exist_start, self.exist_end))

    def test_check_out_equal_to_check_in_passes(self) -> None:
        self.assertFalse(has_date_overlap(date(2026, 3, 13), date(2026, 3, 16), self.exist_start, self.exist_end))
        self.assertFalse(has_date_overlap(date(2026, 3, 7), date(2026, 3, 10), self.exist_start, self.exist_end))

    def test_partially_overlapping_fails(self) -> None:
        self.assertTrue(has_date_overlap(date(2026, 3, 12), date(2026, 3, 15), self.exist_start, self.exist_end))

    def test_fully_contained_fails(self) -> None:
        self.assertTrue(has_date_overlap(date(2026, 3, 11), date(2026, 3, 12), self.exist_start, self.exist_end))

    def test_enclosing_fails(self) -> None:
        self.assertTrue(has_date_overlap(date(2026, 3, 1), date(2026, 3, 20), self.exist_start, self.exist_end))


class TestStayInterval(unittest.TestCase):
    def test_rejects_empty_and_inverted_stays(self) -> None:
        with self.assertRaises(ValidationError):
            StayInterval(date(2026, 3, 10), date(2026, 3, 10))
        with self.assertRaises(ValidationError):
            StayInterval(date(2026, 3, 10), date(2026, 3, 9))

    def test_nights_counts_half_open_range(self) -> None:
        self.assertEqual(StayInterval(date(2026, 3, 10), date(2026, 3, 13)).nights, 3)

    def test_make_interval_parses_iso_strings_and_datetimes(self) -> None:
        interval = make_interval("2026-03-10", datetime(2026, 3, 12, 11, 0))
        self.assertEqual(interval, StayInterval(date(2026, 3, 10), date(2026, 3, 12)))

    def test_make_interval_rejects_garbage(self) -> None:
        with self.assertRaises(ValidationError):
            make_interval("next tuesday", "2026-03-12")

    def test_make_interval_rejects_trailing_text_but_accepts_datetime_strings(self) -> None:
        for raw in ("2026-03-10garbage", "2026-03-10 junk", "2026-03-1"):
            with self.subTest(raw=raw):
                with self.assertRaises(ValidationError):
                    make_interval(raw, "2026-03-12")

        interval = make_interval("2026-03-10T15:00:00", "2026-03-12")
        self.assertEqual(interval.check_in, date(2026, 3, 10))


class TestReservationRecord(unittest.TestCase):
    def test_dict_round_trip_keeps_status_and_dates(self) -> None:
        record = ReservationRecord(
            reservation_id="r-1",
            resource_id="cabin-1",
            requester_id="guest-1",
            interval=StayInterval(date(2026, 3, 10), date(2026, 3, 13)),
            party_size=2,
            total_price=300,
            status=ReservationStatus.PENDING,
            created_at=datetime(2026, 3, 1, 9, 0),
            updated_at=datetime(2026, 3, 1, 9, 0),
        )

        payload = record.to_dict()
        self.assertEqual(payload["status"], "pending")
        self.assertEqual(payload["check_in"], "2026-03-10")
        self.assertEqual(ReservationRecord.from_dict(payload), record)
        self.assertTrue(record.is_blocking)


if __name__ == "__main__":
    unittest.main()
