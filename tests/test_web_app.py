import tempfile
import unittest
from datetime import datetime
from pathlib import Path

from stay_booking import ApprovalPolicy, BookingSettings, Resource, YamlResourceCatalog
from stay_booking.web_app import create_app


class TestWebApp(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_dir = tempfile.TemporaryDirectory()
        self.data_dir = Path(self._temp_dir.name) / "data"
        catalog = YamlResourceCatalog(self.data_dir)
        catalog.register_resource(Resource("cabin-1", owner_id="host-1", capacity=4, nightly_rate=100, min_stay=2))
        catalog.register_resource(Resource("loft-7", owner_id="host-2", capacity=2, nightly_rate=90))
        self.now = datetime(2026, 3, 1, 9, 0)
        self.app = create_app(self.data_dir, now_provider=lambda: self.now)
        self.client = self.app.test_client()

    def tearDown(self) -> None:
        self._temp_dir.cleanup()

    def _book(self, **overrides: object):
        payload = {
            "resource_id": "cabin-1",
            "requester_id": "guest-1",
            "check_in": "2026-03-10",
            "check_out": "2026-03-13",
            "party_size": 2,
        }
        payload.update(overrides)
        return self.client.post("/api/reservations", json=payload)

    def test_create_reservation_returns_201_with_price(self) -> None:
        response = self._book()

        self.assertEqual(response.status_code, 201)
        payload = response.get_json()
        self.assertTrue(payload["ok"])
        self.assertEqual(payload["reservation"]["total_price"], 300)
        self.assertEqual(payload["reservation"]["status"], "confirmed")
        self.assertEqual(payload["reservation"]["nights"], 3)
        self.assertEqual(payload["reservation"]["allowed_transitions"], ["cancelled", "completed"])
        self.assertEqual(response.headers["Access-Control-Allow-Origin"], "*")

    def test_overlap_maps_to_409_with_conflicting_ids(self) -> None:
        existing = self._book().get_json()["reservation"]

        response = self._book(requester_id="guest-2", check_in="2026-03-12", check_out="2026-03-15")

        self.assertEqual(response.status_code, 409)
        payload = response.get_json()
        self.assertFalse(payload["ok"])
        self.assertEqual(payload["error"], "ConflictError")
        self.assertEqual(payload["conflicting_ids"], [existing["reservation_id"]])

        touching = self._book(requester_id="guest-2", check_in="2026-03-13", check_out="2026-03-16")
        self.assertEqual(touching.status_code, 201)

    def test_validation_and_not_found_status_codes(self) -> None:
        self.assertEqual(self._book(check_out="2026-03-11").status_code, 400)
        self.assertEqual(self._book(party_size="many").status_code, 400)
        self.assertEqual(self._book(requester_id="").status_code, 400)
        self.assertEqual(self._book(resource_id="missing").status_code, 404)
        self.assertEqual(self.client.get("/api/reservations/missing").status_code, 404)

    def test_party_size_must_be_a_whole_number(self) -> None:
        for party_size in (2.9, 2.0, True, None, "2.5"):
            with self.subTest(party_size=party_size):
                response = self._book(party_size=party_size)
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.get_json()["error"], "ValidationError")

        listing = self.client.get("/api/reservations?actor_id=guest-1&role=requester").get_json()
        self.assertEqual(listing["reservations"], [])

        self.assertEqual(self._book(party_size="3").get_json()["reservation"]["party_size"], 3)

    def test_cancel_flow_and_error_mapping(self) -> None:
        created = self._book().get_json()["reservation"]
        cancel_url = f"/api/reservations/{created['reservation_id']}/cancel"

        forbidden = self.client.post(cancel_url, json={"actor_id": "host-2"})
        self.assertEqual(forbidden.status_code, 403)

        cancelled = self.client.post(cancel_url, json={"actor_id": "host-1"})
        self.assertEqual(cancelled.status_code, 200)
        self.assertEqual(cancelled.get_json()["reservation"]["status"], "cancelled")

        again = self.client.post(cancel_url, json={"actor_id": "guest-1"})
        self.assertEqual(again.status_code, 409)
        self.assertEqual(again.get_json()["current"], "cancelled")

    def test_availability_endpoint(self) -> None:
        self._book()

        response = self.client.get("/api/resources/cabin-1/availability?start=2026-03-01&end=2026-03-31")
        self.assertEqual(response.status_code, 200)
        payload = response.get_json()
        self.assertFalse(payload["available"])
        self.assertEqual(payload["blocked_intervals"], [{"check_in": "2026-03-10", "check_out": "2026-03-13"}])

        repeated = self.client.get("/api/resources/cabin-1/availability?start=2026-03-01&end=2026-03-31")
        self.assertEqual(repeated.get_json(), payload)

        free = self.client.get("/api/resources/loft-7/availability?start=2026-03-01&end=2026-03-31")
        self.assertTrue(free.get_json()["available"])

        self.assertEqual(self.client.get("/api/resources/cabin-1/availability?start=2026-03-01").status_code, 400)
        self.assertEqual(self.client.get("/api/resources/nope/availability?start=2026-03-01&end=2026-03-02").status_code, 404)

    def test_quote_endpoint(self) -> None:
        response = self.client.get("/api/resources/cabin-1/quote?check_in=2026-03-10&check_out=2026-03-14")
        self.assertEqual(response.get_json()["total_price"], 400)

        too_short = self.client.get("/api/resources/cabin-1/quote?check_in=2026-03-10&check_out=2026-03-11")
        self.assertEqual(too_short.status_code, 400)

    def test_listing_by_role(self) -> None:
        self._book()
        self.now = datetime(2026, 3, 1, 10, 0)
        self._book(resource_id="loft-7", party_size=1)

        mine = self.client.get("/api/reservations?actor_id=guest-1&role=requester").get_json()["reservations"]
        self.assertEqual([row["resource_id"] for row in mine], ["loft-7", "cabin-1"])

        hosted = self.client.get("/api/reservations?actor_id=host-2&role=owner").get_json()["reservations"]
        self.assertEqual([row["resource_id"] for row in hosted], ["loft-7"])

        self.assertEqual(self.client.get("/api/reservations?actor_id=guest-1&role=admin").status_code, 400)
        self.assertEqual(self.client.get("/api/reservations").status_code, 400)

    def test_sweep_endpoint_completes_past_stays(self) -> None:
        self._book()
        self.now = datetime(2026, 3, 20, 0, 0)

        response = self.client.post("/api/sweep/complete")

        self.assertEqual(response.get_json()["completed_count"], 1)
        self.assertEqual(response.get_json()["reservations"][0]["status"], "completed")

    def test_manual_policy_confirm_endpoint(self) -> None:
        app = create_app(
            self.data_dir,
            now_provider=lambda: self.now,
            settings=BookingSettings(approval_policy=ApprovalPolicy.MANUAL),
        )
        client = app.test_client()
        created = client.post(
            "/api/reservations",
            json={
                "resource_id": "loft-7",
                "requester_id": "guest-1",
                "check_in": "2026-04-01",
                "check_out": "2026-04-03",
                "party_size": 1,
            },
        ).get_json()["reservation"]
        self.assertEqual(created["status"], "pending")

        url = f"/api/reservations/{created['reservation_id']}/confirm"
        self.assertEqual(client.post(url, json={"actor_id": "guest-1"}).status_code, 403)
        confirmed = client.post(url, json={"actor_id": "host-2"})
        self.assertEqual(confirmed.get_json()["reservation"]["status"], "confirmed")


if __name__ == "__main__":
    unittest.main()
