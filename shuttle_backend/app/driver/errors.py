"""
Driver app errors.
"""

from typing import Optional


class TripControlError(Exception):
    """The requested trip action is not valid in the current trip state."""


class TransitionInProgressError(TripControlError):
    """Another start/pause/resume/end is still waiting for the server."""


class LocationUnavailableError(TripControlError):
    """The device has no usable location source; the trip was cancelled."""


class RouteSessionApiError(Exception):
    """The tracking API rejected a call or could not be reached."""
    
    def __init__(self, message: str, status_code: Optional[int] = None, error_code: Optional[str] = None):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message)
