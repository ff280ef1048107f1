from __future__ import annotations

from pathlib import Path
from typing import Any

from mcp.server.fastmcp import FastMCP

from stay_booking import BookingOrchestrator, ReservationYamlRepository, YamlResourceCatalog, load_settings

mcp = FastMCP(
    "Stay Booking MCP Server",
    instructions="Check availability, quote and manage stay reservations from the stay_booking project.",
    json_response=True,
)

SETTINGS = load_settings(Path(__file__).parent / "stay_booking.yaml")
DATA_DIR = Path(__file__).parent / SETTINGS.data_dir
CATALOG = YamlResourceCatalog(DATA_DIR)
ORCHESTRATOR = BookingOrchestrator(ReservationYamlRepository(DATA_DIR), CATALOG, SETTINGS)


@mcp.resource("booking://resources")
async def list_resources() -> list[dict[str, Any]]:
    """List bookable resources with their capacity, rate and stay limits."""
    return [resource.to_dict() for resource in CATALOG.list_resources()]


@mcp.tool()
def get_availability(resource_id: str, start: str, end: str) -> dict[str, Any]:
    """Report whether a resource is free between two ISO dates and which stays block it."""
    return ORCHESTRATOR.get_availability(resource_id, start, end).to_dict()


@mcp.tool()
def create_reservation(resource_id: str, requester_id: str, check_in: str, check_out: str, party_size: int = 1) -> dict[str, Any]:
    """Book a stay using ISO dates; check-out day is not occupied."""
    created = ORCHESTRATOR.create_reservation(resource_id, requester_id, check_in, check_out, party_size)
    return created.to_dict()


@mcp.tool()
def cancel_reservation(reservation_id: str, actor_id: str) -> dict[str, Any]:
    """Cancel a reservation as its requester or as the resource owner."""
    return ORCHESTRATOR.cancel_reservation(reservation_id, actor_id).to_dict()


@mcp.tool()
def list_reservations(actor_id: str, role: str = "requester") -> list[dict[str, Any]]:
    """Return an actor's reservations, newest first; role is requester or owner."""
    return [record.to_dict() for record in ORCHESTRATOR.list_reservations_for(actor_id, role)]


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
