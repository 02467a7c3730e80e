"""
Device location capability used by the driver app.

Mirrors the browser geolocation contract: a push subscription
(watch_position / clear_watch) plus a one-shot async request
(get_current_position). Callbacks run on the event loop thread.
"""

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Protocol


class LocationErrorCode(enum.IntEnum):
    UNKNOWN = 0
    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3


LOCATION_ERROR_MESSAGES = {
    LocationErrorCode.PERMISSION_DENIED: "GPS permission denied. Please enable location access in your device settings.",
    LocationErrorCode.POSITION_UNAVAILABLE: "GPS position unavailable. Please check your device's location settings.",
    LocationErrorCode.TIMEOUT: "GPS request timed out. Please try again.",
}


class LocationError(Exception):
    """A location source failed to produce a position."""
    
    def __init__(self, code: int, message: str = ""):
        try:
            self.code = LocationErrorCode(code)
        except ValueError:
            self.code = LocationErrorCode.UNKNOWN
        self.message = message or describe_location_error(self.code)
        super().__init__(self.message)


def describe_location_error(code: int) -> str:
    """Operator-facing text for a location error code."""
    try:
        return LOCATION_ERROR_MESSAGES.get(LocationErrorCode(code), "Unknown GPS error occurred.")
    except ValueError:
        return "Unknown GPS error occurred."


@dataclass(frozen=True)
class Position:
    latitude: float
    longitude: float
    accuracy_meters: Optional[float] = None
    timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class LocationOptions:
    """
    Acquisition options. maximum_age_seconds=0 forces a fresh fix; a cached
    fix must never be reported as the current position.
    """
    high_accuracy: bool = True
    timeout_seconds: float = 10.0
    maximum_age_seconds: float = 0.0


class LocationProvider(Protocol):
    def is_available(self) -> bool:
        ...
    
    def watch_position(
        self,
        on_position: Callable[[Position], None],
        on_error: Callable[[LocationError], None],
        options: LocationOptions,
    ) -> int:
        ...
    
    def clear_watch(self, watch_id: int) -> None:
        ...
    
    async def get_current_position(self, options: LocationOptions) -> Position:
        ...
