from __future__ import annotations

from datetime import date, datetime, timedelta
from pathlib import Path
import traceback

from stay_booking import (
    BookingOrchestrator,
    ConflictError,
    Resource,
    ReservationYamlRepository,
    YamlResourceCatalog,
    load_settings,
)


def main() -> int:
    print("[INFO] Stay Booking Quick Check")
    settings = load_settings("stay_booking.yaml")
    data_dir = Path(settings.data_dir) / "quickcheck" / datetime.now().strftime("%Y%m%d%H%M%S")

    catalog = YamlResourceCatalog(data_dir)
    catalog.register_resource(Resource("cabin-1", owner_id="host-1", capacity=4, nightly_rate=12000, min_stay=2, country="US"))
    catalog.register_resource(Resource("loft-7", owner_id="host-2", capacity=2, nightly_rate=9000))
    print(f"[OK] Resources registered: {len(catalog.list_resources())}")

    orchestrator = BookingOrchestrator(ReservationYamlRepository(data_dir), catalog, settings)
    check_in = date.today() + timedelta(days=14)

    first = orchestrator.create_reservation("cabin-1", "guest-1", check_in, check_in + timedelta(days=3), 2)
    print(f"[OK] Booked {first.reservation_id} total={first.total_price} status={first.status.value}")

    turnover = orchestrator.create_reservation(
        "cabin-1", "guest-2", first.check_out, first.check_out + timedelta(days=2), 1
    )
    print(f"[OK] Same-day turnover booked: {turnover.check_in.isoformat()}~{turnover.check_out.isoformat()}")

    try:
        orchestrator.create_reservation("cabin-1", "guest-3", check_in + timedelta(days=1), check_in + timedelta(days=4), 1)
        print("[ERROR] Overlapping stay was accepted.")
        return 1
    except ConflictError as error:
        print(f"[OK] Overlap rejected, blocked by: {', '.join(error.conflicting_ids)}")

    cancelled = orchestrator.cancel_reservation(first.reservation_id, "host-1")
    print(f"[OK] Owner cancelled {cancelled.reservation_id}: {cancelled.status.value}")

    report = orchestrator.get_availability("cabin-1", check_in, check_in + timedelta(days=30))
    print(f"[OK] Availability next 30 days: available={report.available} blocked={len(report.blocked_intervals)}")
    print(f"[OK] Checked at {datetime.now().isoformat(timespec='seconds')}")
    print(f"[OK] Event Log YAML: {(data_dir / 'reservation_events.yaml').resolve()}")

    print("[DONE] Quick check completed successfully.")
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except Exception:
        print("[ERROR] Quick check failed.")
        traceback.print_exc()
        raise SystemExit(1)
