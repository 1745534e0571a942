"""Error types raised by the planner."""

from enum import Enum


class RoutingErrorCode(str, Enum):
    INVALID_WAYPOINTS = "INVALID_WAYPOINTS"
    TOO_MANY_WAYPOINTS = "TOO_MANY_WAYPOINTS"
    INVALID_COORDINATES = "INVALID_COORDINATES"
    INVALID_VEHICLE = "INVALID_VEHICLE"
    NO_ROUTE = "NO_ROUTE"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


class RoutingError(Exception):
    """Route computation failed.

    ``service`` names where the failure originated ("validation", a provider
    name, or "all"); ``recoverable`` tells whether another provider may still
    succeed.
    """

    def __init__(
        self,
        message: str,
        code: RoutingErrorCode,
        service: str,
        recoverable: bool = True,
    ):
        self.message = message
        self.code = code
        self.service = service
        self.recoverable = recoverable
        super().__init__(message)

    def __repr__(self) -> str:
        return (
            f"RoutingError({self.message!r}, code={self.code.value}, "
            f"service={self.service!r}, recoverable={self.recoverable})"
        )


class ExportError(Exception):
    """A route could not be serialized."""

    def __init__(self, message: str, code: str, format: str):
        self.message = message
        self.code = code
        self.format = format
        super().__init__(message)


class CatalogError(Exception):
    """The campsite catalog could not be loaded."""
