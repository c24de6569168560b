class FleetEtaError(Exception):
    """Base exception for the ETA service."""


class GeocodeError(FleetEtaError):
    """Raised when an address cannot be resolved to a coordinate."""

    def __init__(self, address: str, reason: str) -> None:
        super().__init__(f"Could not geocode {address!r}: {reason}")
        self.address = address
        self.reason = reason


class TripNotFoundError(FleetEtaError):
    """Raised when a trip id is not known to the trip directory."""

    def __init__(self, trip_id: str) -> None:
        super().__init__(f"Trip {trip_id!r} not found")
        self.trip_id = trip_id
