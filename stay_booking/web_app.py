from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from flask import Flask, jsonify, request

from .booking import ReservationRecord, make_interval
from .catalog import ResourceCatalog, YamlResourceCatalog
from .config import BookingSettings
from .errors import (
    AuthorizationError,
    BookingError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from .lifecycle import allowed_targets
from .orchestrator import BookingOrchestrator
from .pricing import quote_stay
from .yaml_store import ReservationYamlRepository

_ERROR_STATUS: list[tuple[type[BookingError], int]] = [
    (ValidationError, 400),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (InvalidStateError, 409),
]


def create_app(
    data_dir: str | Path | None = None,
    now_provider: Callable[[], datetime] | None = None,
    settings: BookingSettings | None = None,
    catalog: ResourceCatalog | None = None,
) -> Flask:
    app = Flask(__name__)
    effective_settings = settings or BookingSettings()
    base_dir = Path(data_dir) if data_dir is not None else Path(effective_settings.data_dir)
    repository = ReservationYamlRepository(base_dir)
    resource_catalog = catalog or YamlResourceCatalog(base_dir)
    orchestrator = BookingOrchestrator(repository, resource_catalog, effective_settings, now_provider=now_provider)
    app.extensions["stay_booking"] = orchestrator

    def _serialize_reservation(record: ReservationRecord) -> dict[str, Any]:
        return {
            **record.to_dict(),
            "nights": record.interval.nights,
            "allowed_transitions": sorted(target.value for target in allowed_targets(record.status)),
        }

    @app.after_request
    def add_cors_headers(response: Any) -> Any:
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET,POST,OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        return response

    @app.errorhandler(BookingError)
    def handle_booking_error(error: BookingError) -> Any:
        status_code = 500
        for error_type, code in _ERROR_STATUS:
            if isinstance(error, error_type):
                status_code = code
                break

        payload: dict[str, Any] = {"ok": False, "error": type(error).__name__, "message": str(error)}
        if isinstance(error, ConflictError):
            payload["conflicting_ids"] = list(error.conflicting_ids)
        if isinstance(error, InvalidStateError):
            payload["current"] = error.current
            payload["target"] = error.target
        return jsonify(payload), status_code

    @app.post("/api/reservations")
    def create_reservation() -> Any:
        payload = request.get_json(silent=True) or {}
        created = orchestrator.create_reservation(
            resource_id=_require_text(payload, "resource_id"),
            requester_id=_require_text(payload, "requester_id"),
            check_in=_require_text(payload, "check_in"),
            check_out=_require_text(payload, "check_out"),
            party_size=_require_int(payload, "party_size"),
        )
        return jsonify({"ok": True, "reservation": _serialize_reservation(created)}), 201

    @app.get("/api/reservations")
    def list_reservations() -> Any:
        actor_id = str(request.args.get("actor_id", "")).strip()
        if not actor_id:
            raise ValidationError("actor_id is required")
        role = str(request.args.get("role", "requester")).strip().lower()
        records = orchestrator.list_reservations_for(actor_id, role)
        return jsonify({"ok": True, "reservations": [_serialize_reservation(record) for record in records]})

    @app.get("/api/reservations/<reservation_id>")
    def get_reservation(reservation_id: str) -> Any:
        record = orchestrator.get_reservation(reservation_id)
        return jsonify({"ok": True, "reservation": _serialize_reservation(record)})

    @app.post("/api/reservations/<reservation_id>/cancel")
    def cancel_reservation(reservation_id: str) -> Any:
        payload = request.get_json(silent=True) or {}
        cancelled = orchestrator.cancel_reservation(reservation_id, _require_text(payload, "actor_id"))
        return jsonify({"ok": True, "reservation": _serialize_reservation(cancelled)})

    @app.post("/api/reservations/<reservation_id>/confirm")
    def confirm_reservation(reservation_id: str) -> Any:
        payload = request.get_json(silent=True) or {}
        confirmed = orchestrator.confirm_reservation(reservation_id, _require_text(payload, "actor_id"))
        return jsonify({"ok": True, "reservation": _serialize_reservation(confirmed)})

    @app.get("/api/resources/<resource_id>/availability")
    def get_availability(resource_id: str) -> Any:
        report = orchestrator.get_availability(
            resource_id,
            _require_arg("start"),
            _require_arg("end"),
        )
        return jsonify({"ok": True, **report.to_dict()})

    @app.get("/api/resources/<resource_id>/quote")
    def get_quote(resource_id: str) -> Any:
        resource = resource_catalog.get_resource(resource_id)
        quote = quote_stay(resource, make_interval(_require_arg("check_in"), _require_arg("check_out")))
        return jsonify({"ok": True, "resource_id": resource_id, **quote.to_dict()})

    @app.post("/api/sweep/complete")
    def complete_elapsed() -> Any:
        completed = orchestrator.complete_elapsed_reservations()
        return jsonify(
            {
                "ok": True,
                "completed_count": len(completed),
                "reservations": [_serialize_reservation(record) for record in completed],
            }
        )

    return app


def _require_text(payload: dict[str, Any], key: str) -> str:
    value = str(payload.get(key, "") or "").strip()
    if not value:
        raise ValidationError(f"{key} is required")
    return value


def _require_int(payload: dict[str, Any], key: str) -> int:
    value = payload.get(key)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError as error:
            raise ValidationError(f"{key} must be an integer") from error
    raise ValidationError(f"{key} must be an integer")


def _require_arg(key: str) -> str:
    value = str(request.args.get(key, "")).strip()
    if not value:
        raise ValidationError(f"{key} query parameter is required")
    return value


if __name__ == "__main__":
    app = create_app()
    app.run(host="127.0.0.1", port=5000, debug=False)
