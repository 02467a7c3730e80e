"""
Driver-side trip session controller.

Owns one trip from start to completion: drives the server-side state machine,
and while the trip is active streams positions over two channels:

- primary: a push subscription on the location provider
- backup: a fixed-interval poll, armed only after the primary channel's
  first successful reading

Both channels feed a single at-most-one-in-flight submission gate. A reading
that arrives while a submission is pending is dropped, not queued. Every
callback reads ``self.state`` when it fires, so a pause or end that happened
after the subscription was set up is always seen.

A primary-channel error notifies the driver once, tears both channels down
and cancels the trip. Backup-channel errors are only logged.
"""

import asyncio
import enum
import logging
from contextlib import contextmanager
from dataclasses import dataclass, replace
from functools import partial
from typing import Any, Dict, Optional, Protocol, Set

from shuttle_backend.app.core.config import settings
from shuttle_backend.app.driver.errors import (
    TripControlError, TransitionInProgressError, LocationUnavailableError, RouteSessionApiError
)
from shuttle_backend.app.driver.location import (
    LocationError, LocationOptions, LocationProvider, Position, describe_location_error
)
from shuttle_backend.app.models.session_enums import SessionStatus

logger = logging.getLogger("shuttle.driver")


class TripStatus(str, enum.Enum):
    """What the driver sees; PAUSED is a started session in PENDING."""
    STOPPED = "stopped"
    ACTIVE = "active"
    PAUSED = "paused"


@dataclass(frozen=True)
class TripState:
    session_id: Optional[str] = None
    trip_status: TripStatus = TripStatus.STOPPED
    # False when the last transition was applied locally but the server rejected it
    in_sync: bool = True


class RouteSessionApi(Protocol):
    async def create_trip_session(self, route_id: str, driver_user_id: str) -> Dict[str, Any]:
        ...

    async def set_trip_session_status(self, session_id: str, status: str) -> Dict[str, Any]:
        ...

    async def set_trip_session_location(self, session_id: str, latitude: float, longitude: float) -> Dict[str, Any]:
        ...


class Notifier(Protocol):
    def info(self, message: str) -> None:
        ...

    def error(self, title: str, message: str) -> None:
        ...


class LoggingNotifier:
    """Fallback notifier for headless use."""

    def info(self, message: str) -> None:
        logger.info(message)

    def error(self, title: str, message: str) -> None:
        logger.error("%s: %s", title, message)


class TripSessionController:
    """
    Start, pause, resume and end a trip while reporting GPS positions.

    Args:
        api: Route session API (see RouteSessionApiClient)
        location_provider: Device location source, or None if the device has none
        route_id: Route being driven
        driver_user_id: Authenticated driver
        notifier: Receives one-shot messages for the driver
        backup_interval_seconds: Period of the backup poll
        location_options: Accuracy / timeout / cache options for both channels
    """

    def __init__(
        self,
        api: RouteSessionApi,
        location_provider: Optional[LocationProvider],
        route_id: str,
        driver_user_id: str,
        notifier: Optional[Notifier] = None,
        backup_interval_seconds: Optional[float] = None,
        location_options: Optional[LocationOptions] = None,
    ):
        self.api = api
        self.location_provider = location_provider
        self.route_id = route_id
        self.driver_user_id = driver_user_id
        self.notifier = notifier or LoggingNotifier()
        self.backup_interval_seconds = (
            backup_interval_seconds if backup_interval_seconds is not None
            else settings.backup_poll_interval_seconds
        )
        self.location_options = location_options or LocationOptions(
            timeout_seconds=settings.location_timeout_seconds
        )

        self.state = TripState()
        self.last_submitted: Optional[Position] = None
        self.dropped_readings = 0

        self._reporting = False
        self._watch_id: Optional[int] = None
        # Bumped per subscription; callbacks of older subscriptions are ignored
        self._watch_generation = 0
        self._backup_task: Optional[asyncio.Task] = None
        self._first_fix_received = False
        self._location_error_notified = False
        self._submission_in_flight = False
        self._transition_in_flight = False
        self._background: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Trip lifecycle
    # ------------------------------------------------------------------

    @property
    def is_reporting(self) -> bool:
        return self._reporting

    @property
    def backup_armed(self) -> bool:
        return self._backup_task is not None

    @contextmanager
    def _transition_slot(self):
        if self._transition_in_flight:
            raise TransitionInProgressError("Another trip action is still in progress")
        self._transition_in_flight = True
        try:
            yield
        finally:
            self._transition_in_flight = False

    def _require(self, *allowed: TripStatus) -> None:
        if self.state.trip_status not in allowed:
            raise TripControlError(
                f"Cannot do that while the trip is {self.state.trip_status.value}"
            )

    async def start(self) -> TripState:
        """
        Create a session, activate it and begin reporting.

        Raises:
            RouteSessionApiError: if the session could not be created or activated
            LocationUnavailableError: if there is no usable location source;
                the created session has been cancelled
        """
        with self._transition_slot():
            self._require(TripStatus.STOPPED)

            try:
                session = await self.api.create_trip_session(self.route_id, self.driver_user_id)
            except RouteSessionApiError as e:
                self.notifier.error("Failed to start trip", e.message or "An error occurred while starting the trip")
                raise
            session_id = session["id"]

            if self.location_provider is None or not self.location_provider.is_available():
                self.notifier.error("GPS not available", "Your device does not support GPS tracking")
                await self._cancel_remote(session_id, "location capability unavailable")
                self.state = TripState()
                raise LocationUnavailableError("No location source available; trip cancelled")

            try:
                await self.api.set_trip_session_status(session_id, SessionStatus.ACTIVE.value)
            except RouteSessionApiError as e:
                self.notifier.error("Failed to start trip", e.message or "An error occurred while starting the trip")
                await self._cancel_remote(session_id, "activation rejected")
                self.state = TripState()
                raise

            self.state = TripState(session_id=session_id, trip_status=TripStatus.ACTIVE)
            self._begin_reporting()

            if self.state.trip_status != TripStatus.ACTIVE:
                # The subscription failed immediately and cancelled the trip
                await self.wait_idle()
                raise LocationUnavailableError("Location source failed on start; trip cancelled")

            self.notifier.info("Trip started successfully! GPS tracking is now active.")
            return self.state

    async def pause(self) -> TripState:
        """
        Pause an active trip and stop reporting.

        The trip is paused locally even if the server rejects the change;
        ``state.in_sync`` is then False and the driver is told.
        """
        with self._transition_slot():
            self._require(TripStatus.ACTIVE)
            session_id = self.state.session_id

            self.stop_location_reporting()
            self.state = TripState(session_id=session_id, trip_status=TripStatus.PAUSED)

            try:
                await self.api.set_trip_session_status(session_id, SessionStatus.PENDING.value)
            except RouteSessionApiError as e:
                logger.warning("Pause of session %s not synced: %s", session_id, e)
                self.state = replace(self.state, in_sync=False)
                self.notifier.error("Failed to sync pause state", "Trip paused locally, but backend update failed.")
                return self.state

            self.notifier.info("Trip paused. GPS tracking stopped.")
            return self.state

    async def resume(self) -> TripState:
        """
        Resume a paused trip and restart reporting.

        Like pause, a server rejection leaves the trip resumed locally with
        ``state.in_sync`` False.

        Raises:
            LocationUnavailableError: if the location source fails as the
                watch is set up; the trip has been cancelled
        """
        with self._transition_slot():
            self._require(TripStatus.PAUSED)
            session_id = self.state.session_id

            in_sync = True
            try:
                await self.api.set_trip_session_status(session_id, SessionStatus.ACTIVE.value)
            except RouteSessionApiError as e:
                logger.warning("Resume of session %s not synced: %s", session_id, e)
                in_sync = False

            self.state = TripState(session_id=session_id, trip_status=TripStatus.ACTIVE, in_sync=in_sync)
            self._begin_reporting()

            if self.state.trip_status != TripStatus.ACTIVE:
                await self.wait_idle()
                raise LocationUnavailableError("Location source failed on resume; trip cancelled")

            if in_sync:
                self.notifier.info("Trip resumed. GPS tracking restarted.")
            else:
                self.notifier.error("Failed to sync resume state", "Trip resumed locally, but backend update failed.")
            return self.state

    async def end(self, outcome: SessionStatus = SessionStatus.COMPLETED) -> TripState:
        """
        End an active or paused trip as completed or cancelled.

        If the server rejects the change the trip is left as it was with
        ``state.in_sync`` False.
        """
        outcome = SessionStatus(outcome)
        if outcome not in (SessionStatus.COMPLETED, SessionStatus.CANCELLED):
            raise ValueError(f"A trip can only end as completed or cancelled, not {outcome.value}")

        with self._transition_slot():
            self._require(TripStatus.ACTIVE, TripStatus.PAUSED)
            session_id = self.state.session_id

            try:
                await self.api.set_trip_session_status(session_id, outcome.value)
            except RouteSessionApiError as e:
                logger.warning("End of session %s rejected: %s", session_id, e)
                self.notifier.error("Failed to end trip", e.message or "An error occurred while ending the trip")
                self.state = replace(self.state, in_sync=False)
                return self.state

            self.stop_location_reporting()
            self.state = TripState()
            self.notifier.info("Trip ended successfully.")
            return self.state

    def attach(self, existing_session: Optional[Dict[str, Any]]) -> TripState:
        """
        Pick up a session that already exists on the server (app restart).

        active -> ACTIVE with reporting restarted, pending -> PAUSED,
        anything else -> STOPPED.
        """
        self.stop_location_reporting()

        if not existing_session:
            self.state = TripState()
            return self.state

        status = existing_session.get("status")
        if status == SessionStatus.ACTIVE.value:
            self.state = TripState(session_id=existing_session["id"], trip_status=TripStatus.ACTIVE)
            self._begin_reporting()
        elif status == SessionStatus.PENDING.value:
            self.state = TripState(session_id=existing_session["id"], trip_status=TripStatus.PAUSED)
        else:
            self.state = TripState()

        return self.state

    async def shutdown(self) -> None:
        """Release both channels and wait for pending submissions."""
        self.stop_location_reporting()
        await self.wait_idle()

    async def wait_idle(self) -> None:
        """Wait until no submission or cancellation is pending."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ------------------------------------------------------------------
    # Location reporting
    # ------------------------------------------------------------------

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    def _is_reporting_session(self, session_id: Optional[str] = None) -> bool:
        state = self.state
        if not state.session_id or state.trip_status != TripStatus.ACTIVE:
            return False
        return session_id is None or state.session_id == session_id

    def _begin_reporting(self) -> None:
        self._first_fix_received = False
        self._location_error_notified = False
        self._reporting = True
        self._watch_generation += 1
        generation = self._watch_generation

        try:
            self._watch_id = self.location_provider.watch_position(
                partial(self._on_watch_position, generation),
                partial(self._on_watch_error, generation),
                self.location_options,
            )
        except LocationError as e:
            self._on_watch_error(generation, e)

    def stop_location_reporting(self) -> None:
        """Clear the watch and the backup poll. Safe to call when nothing runs."""
        self._reporting = False

        if self._watch_id is not None:
            self.location_provider.clear_watch(self._watch_id)
            self._watch_id = None

        if self._backup_task is not None:
            self._backup_task.cancel()
            self._backup_task = None

    def _is_current_watch(self, generation: int) -> bool:
        return self._reporting and generation == self._watch_generation

    def _on_watch_position(self, generation: int, position: Position) -> None:
        if not self._is_current_watch(generation):
            return

        logger.debug("GPS update: %s, %s", position.latitude, position.longitude)

        if not self._first_fix_received:
            self._first_fix_received = True
            self._backup_task = asyncio.get_running_loop().create_task(self._backup_poll())

        self._offer(position)

    def _on_watch_error(self, generation: int, error: LocationError) -> None:
        if not self._is_current_watch(generation):
            logger.debug("Ignoring GPS error from a cleared watch: %s", error.code.name)
            return

        logger.error("GPS error: %s (%s)", error.message, error.code.name)

        if not self._location_error_notified:
            self._location_error_notified = True
            self.notifier.error("GPS error", describe_location_error(error.code))

        session_id = self.state.session_id
        self.stop_location_reporting()
        self.state = TripState()

        if session_id:
            self._spawn(self._cancel_remote(session_id, f"GPS error {error.code.name}"))

    async def _backup_poll(self) -> None:
        while True:
            await asyncio.sleep(self.backup_interval_seconds)
            if self._is_reporting_session():
                self._spawn(self._poll_once(self.state.session_id))

    async def _poll_once(self, session_id: str) -> None:
        try:
            position = await self.location_provider.get_current_position(self.location_options)
        except LocationError as e:
            if self._is_reporting_session(session_id):
                logger.warning("GPS interval error: %s", e.message)
            return

        if self._reporting:
            self._offer(position)

    def _offer(self, position: Position) -> None:
        if not self._is_reporting_session():
            return

        if self._submission_in_flight:
            self.dropped_readings += 1
            return

        self._submission_in_flight = True
        self._spawn(self._submit(self.state.session_id, position))

    async def _submit(self, session_id: str, position: Position) -> None:
        try:
            await self.api.set_trip_session_location(session_id, position.latitude, position.longitude)
            self.last_submitted = position
        except RouteSessionApiError as e:
            logger.error("Failed to update location for session %s: %s", session_id, e)
        finally:
            self._submission_in_flight = False

    async def _cancel_remote(self, session_id: str, reason: str) -> None:
        try:
            await self.api.set_trip_session_status(session_id, SessionStatus.CANCELLED.value)
            logger.info("Cancelled session %s: %s", session_id, reason)
        except RouteSessionApiError as e:
            logger.error("Failed to cancel session %s after %s: %s", session_id, reason, e)
