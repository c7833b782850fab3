from __future__ import annotations

from datetime import datetime


def _current(world, now):
    return world.container.schedule_service.current_or_next(teacher_id=world.teacher_id, now=now)


def test_class_in_progress_is_current(world, fixed_now):
    slot = _current(world, fixed_now)

    assert (slot.start_time, slot.end_time) == ("09:00", "10:30")


def test_between_classes_returns_next_one(world):
    slot = _current(world, datetime(2026, 3, 2, 11, 0))

    assert slot.start_time == "13:00"


def test_after_last_class_returns_none(world):
    assert _current(world, datetime(2026, 3, 2, 18, 0)) is None


def test_other_teacher_has_no_schedules(world, fixed_now):
    assert world.container.schedule_service.list_for_teacher(world.other_teacher_id) == []
