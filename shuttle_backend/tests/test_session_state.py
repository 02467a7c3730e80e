"""
Tests for the route session state machine.
"""

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from shuttle_backend.app.core.exceptions import InvalidTransitionError
from shuttle_backend.app.domain.tracking.session_state import (
    SessionTransition, apply_transition, resolve_transition, is_paused
)
from shuttle_backend.app.models.session_enums import SessionStatus

T0 = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)
T1 = datetime(2026, 3, 2, 8, 20, tzinfo=timezone.utc)
T2 = datetime(2026, 3, 2, 8, 45, tzinfo=timezone.utc)


def new_session(status=SessionStatus.PENDING, started_at=None):
    return SimpleNamespace(id="s-1", status=status, started_at=started_at, completed_at=None)


def test_first_activation_stamps_started_at():
    session = new_session()
    transition = apply_transition(session, SessionStatus.ACTIVE, now=T0)
    assert transition == SessionTransition.START
    assert session.status == SessionStatus.ACTIVE
    assert session.started_at == T0
    assert session.completed_at is None


def test_pause_resume_keeps_original_started_at():
    session = new_session()
    apply_transition(session, SessionStatus.ACTIVE, now=T0)
    
    assert apply_transition(session, SessionStatus.PENDING, now=T1) == SessionTransition.PAUSE
    assert is_paused(session)
    
    assert apply_transition(session, SessionStatus.ACTIVE, now=T2) == SessionTransition.RESUME
    assert session.started_at == T0


def test_complete_from_active_stamps_completed_at():
    session = new_session(SessionStatus.ACTIVE, started_at=T0)
    assert apply_transition(session, SessionStatus.COMPLETED, now=T2) == SessionTransition.COMPLETE
    assert session.completed_at == T2
    assert session.started_at == T0


def test_end_from_paused_is_allowed():
    session = new_session(SessionStatus.PENDING, started_at=T0)
    assert apply_transition(session, SessionStatus.CANCELLED, now=T1) == SessionTransition.CANCEL
    assert session.completed_at == T1


def test_fresh_session_can_be_cancelled_but_not_completed():
    fresh = new_session()
    with pytest.raises(InvalidTransitionError):
        resolve_transition(fresh, SessionStatus.COMPLETED)
    
    apply_transition(fresh, SessionStatus.CANCELLED, now=T1)
    assert fresh.status == SessionStatus.CANCELLED
    assert fresh.started_at is None
    assert fresh.completed_at == T1


def test_fresh_session_is_not_paused():
    assert not is_paused(new_session())


@pytest.mark.parametrize("terminal", [SessionStatus.COMPLETED, SessionStatus.CANCELLED])
@pytest.mark.parametrize("requested", list(SessionStatus))
def test_terminal_states_reject_everything(terminal, requested):
    session = new_session(terminal, started_at=T0)
    session.completed_at = T1
    with pytest.raises(InvalidTransitionError) as exc_info:
        apply_transition(session, requested, now=T2)
    assert exc_info.value.status_code == 409
    assert session.completed_at == T1


@pytest.mark.parametrize("status", [SessionStatus.PENDING, SessionStatus.ACTIVE])
def test_same_status_is_rejected(status):
    session = new_session(status, started_at=T0 if status == SessionStatus.ACTIVE else None)
    with pytest.raises(InvalidTransitionError):
        resolve_transition(session, status)


def test_rejection_leaves_session_untouched():
    session = new_session()
    with pytest.raises(InvalidTransitionError):
        apply_transition(session, SessionStatus.COMPLETED, now=T1)
    assert session.status == SessionStatus.PENDING
    assert session.completed_at is None


def test_string_status_is_accepted():
    session = new_session()
    apply_transition(session, "active", now=T0)
    assert session.status == SessionStatus.ACTIVE
