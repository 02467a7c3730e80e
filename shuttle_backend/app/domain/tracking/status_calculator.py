"""
Rider-facing status derivation.

Turns a route session plus the route's stops into a display status
(active / delayed / offline) and an estimate of the stop the vehicle is at.
Nothing here raises: missing or stale inputs degrade to offline or to
active with zero deviation.

Functions accept ORM rows or any object with the same attribute names.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence

from shuttle_backend.app.models.session_enums import BusStatus, SessionStatus

# Bus is delayed if more than this many minutes behind schedule
DELAYED_THRESHOLD_MINUTES = 5
# Bus is offline if no GPS update within this many minutes
OFFLINE_THRESHOLD_MINUTES = 10


@dataclass(frozen=True)
class BusStatusCalculation:
    status: BusStatus
    minutes_behind_schedule: int


OFFLINE = BusStatusCalculation(status=BusStatus.OFFLINE, minutes_behind_schedule=0)
ON_TIME = BusStatusCalculation(status=BusStatus.ACTIVE, minutes_behind_schedule=0)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _minutes_between(earlier: datetime, later: datetime) -> float:
    return (_as_utc(later) - _as_utc(earlier)).total_seconds() / 60


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _has_schedule(stop) -> bool:
    return stop.scheduled_arrival_minutes is not None


def calculate_bus_status(
    session,
    stops: Sequence,
    now: Optional[datetime] = None,
    delayed_threshold_minutes: float = DELAYED_THRESHOLD_MINUTES,
    offline_threshold_minutes: float = OFFLINE_THRESHOLD_MINUTES,
) -> BusStatusCalculation:
    """
    Classify a session as active, delayed or offline.
    
    Args:
        session: Route session, or None when the route has no session
        stops: Stops of the session's route
        now: Reference time (defaults to current UTC time)
        delayed_threshold_minutes: Deviation above which the bus is delayed
        offline_threshold_minutes: Silence above which the bus is offline
    
    Returns:
        BusStatusCalculation with the rounded schedule deviation
    """
    if session is None or session.status != SessionStatus.ACTIVE:
        return OFFLINE
    
    now = now or datetime.now(timezone.utc)
    
    if session.last_location_update is None:
        minutes_since_update = math.inf
    else:
        minutes_since_update = _minutes_between(session.last_location_update, now)
    
    if minutes_since_update > offline_threshold_minutes:
        return OFFLINE
    
    # Trip just started, no deviation data yet
    if session.started_at is None:
        return ON_TIME
    
    minutes_since_start = _minutes_between(session.started_at, now)
    
    if not session.current_stop_id:
        return ON_TIME
    
    current_stop = next((s for s in stops if s.id == session.current_stop_id), None)
    if current_stop is None or not _has_schedule(current_stop):
        return ON_TIME
    
    deviation = minutes_since_start - current_stop.scheduled_arrival_minutes
    status = BusStatus.DELAYED if deviation > delayed_threshold_minutes else BusStatus.ACTIVE

    return BusStatusCalculation(status=status, minutes_behind_schedule=_round_half_up(deviation))


def estimate_current_stop(session, stops: Sequence, now: Optional[datetime] = None):
    """
    Estimate which stop the vehicle should be at from elapsed trip time.
    
    Walks the scheduled stops in order_index order and returns the last one
    whose scheduled time has passed. Before the first scheduled stop, the
    earliest scheduled stop is returned. Without any schedule, the first stop
    by order_index is returned.
    
    Returns:
        A stop, or None when there are no stops or the trip never started
    """
    if session is None or session.started_at is None or not stops:
        return None
    
    now = now or datetime.now(timezone.utc)
    minutes_since_start = _minutes_between(session.started_at, now)
    
    ordered = sorted(stops, key=lambda s: s.order_index)
    scheduled = [s for s in ordered if _has_schedule(s)]
    
    if not scheduled:
        return ordered[0]
    
    for stop in reversed(scheduled):
        if minutes_since_start >= stop.scheduled_arrival_minutes:
            return stop
    
    return scheduled[0]
