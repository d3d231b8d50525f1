from datetime import datetime

import pytest

from autoshop.scheduling.errors import TransitionError, ValidationError
from autoshop.scheduling.lifecycle import (
    ALLOWED_TRANSITIONS,
    AppointmentStatus,
    can_transition,
    is_terminal,
    transition_side_effects,
    validate_transition,
)

TERMINAL = [AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW]


@pytest.mark.parametrize("terminal", TERMINAL)
def test_terminal_states_have_no_exit(terminal):
    assert is_terminal(terminal)
    for target in AppointmentStatus:
        assert not can_transition(terminal, target)


def test_transition_table():
    assert {s.value for s in ALLOWED_TRANSITIONS[AppointmentStatus.SCHEDULED]} == {
        "confirmed", "in-progress", "cancelled", "no-show",
    }
    assert {s.value for s in ALLOWED_TRANSITIONS[AppointmentStatus.CONFIRMED]} == {
        "in-progress", "completed", "cancelled", "no-show",
    }
    assert {s.value for s in ALLOWED_TRANSITIONS[AppointmentStatus.IN_PROGRESS]} == {
        "completed", "cancelled",
    }


def test_can_transition_accepts_plain_strings():
    assert can_transition("scheduled", "confirmed")
    assert not can_transition("confirmed", "scheduled")
    assert not can_transition("scheduled", "scheduled")


def test_unknown_status_is_a_validation_error():
    with pytest.raises(ValidationError):
        can_transition("scheduled", "parked")


def test_in_progress_cannot_go_back_to_scheduled(make_record):
    record = make_record(1, status="in-progress")

    with pytest.raises(TransitionError) as exc:
        validate_transition(record, "scheduled")
    assert exc.value.from_status == "in-progress"
    assert exc.value.to_status == "scheduled"

    assert validate_transition(record, "completed") == AppointmentStatus.COMPLETED


def test_force_lets_a_manual_correction_through(make_record):
    record = make_record(1, status="completed")
    assert validate_transition(record, "confirmed", force=True) == AppointmentStatus.CONFIRMED


def test_required_fields_are_checked_before_the_table(make_record):
    record = make_record(1).model_copy(update={"service_type": ""})
    with pytest.raises(ValidationError):
        validate_transition(record, "confirmed")

    record = make_record(1).model_copy(update={"scheduled_time": None})
    with pytest.raises(ValidationError):
        validate_transition(record, "confirmed", force=True)


def test_starting_work_stamps_started_at(make_record):
    now = datetime(2024, 6, 10, 9, 5)
    assert transition_side_effects(make_record(1), "in-progress", now=now) == {"started_at": now}


def test_completing_work_derives_actual_duration(make_record):
    record = make_record(1, status="in-progress", started_at=datetime(2024, 6, 10, 9, 5))
    now = datetime(2024, 6, 10, 10, 20)

    patch = transition_side_effects(record, "completed", now=now)

    assert patch == {"completed_at": now, "actual_duration": 75}
    assert record.completed_at is None


def test_completing_without_start_leaves_duration_unset(make_record):
    patch = transition_side_effects(make_record(1, status="confirmed"), "completed")
    assert "actual_duration" not in patch
    assert "completed_at" in patch


def test_other_transitions_have_no_side_effects(make_record):
    assert transition_side_effects(make_record(1), "cancelled") == {}
