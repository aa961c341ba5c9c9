"""
Tests for time slot calculation.
"""
import pytest

from timetable_optimizer.algorithms.timeslots import add_minutes, compute_slots, lesson_slots
from timetable_optimizer.exceptions import InvalidSettings
from timetable_optimizer.models.entities import TimeSettings


class TestAddMinutes:
    """Test clock arithmetic."""

    def test_simple_addition(self):
        assert add_minutes('08:00', 45) == '08:45'
        assert add_minutes('08:45', 45) == '09:30'

    def test_wraps_past_midnight(self):
        assert add_minutes('23:30', 45) == '00:15'

    def test_normalizes_single_digit_hours(self):
        assert add_minutes('8:05', 0) == '08:05'


class TestComputeSlots:
    """Test the slot sequence derived from time settings."""

    def test_morning_with_one_break(self):
        """Two lessons, a break, two lessons, and no trailing break."""
        settings = TimeSettings(start_time='08:00', lesson_duration=45, break_duration=15,
                                lessons_before_break=2, total_lessons=4)
        slots = compute_slots(settings)

        assert [s.type for s in slots] == ['lesson', 'lesson', 'break', 'lesson', 'lesson']
        assert [s.start for s in slots] == ['08:00', '08:45', '09:30', '09:45', '10:30']
        assert [s.end for s in slots] == ['08:45', '09:30', '09:45', '10:30', '11:15']
        assert [s.id for s in slots] == ['slot-0', 'slot-1', 'break-1', 'slot-2', 'slot-3']

    def test_indices(self):
        settings = TimeSettings(lessons_before_break=2, total_lessons=4)
        slots = compute_slots(settings)

        assert [s.index for s in slots] == [0, 1, 2, 3, 4]
        assert [s.lesson_index for s in slots] == [0, 1, None, 2, 3]
        assert [s.lesson_index for s in lesson_slots(slots)] == [0, 1, 2, 3]

    @pytest.mark.parametrize('total, before_break', [
        (1, 1), (4, 2), (6, 2), (7, 3), (5, 5), (5, 0), (9, 4), (3, 10)
    ])
    def test_slot_count(self, total, before_break):
        settings = TimeSettings(start_time='07:30', total_lessons=total,
                                lessons_before_break=before_break)
        slots = compute_slots(settings)

        breaks = (total - 1) // before_break if before_break else 0
        assert len(slots) == total + breaks
        assert slots[0].start == '07:30'
        assert slots[0].is_lesson
        assert slots[-1].is_lesson
        assert len(lesson_slots(slots)) == total

    def test_slots_are_contiguous(self):
        slots = compute_slots(TimeSettings(total_lessons=7, lessons_before_break=3))
        for previous, current in zip(slots, slots[1:]):
            assert previous.end == current.start

    def test_breaks_disabled(self):
        settings = TimeSettings(lessons_before_break=0, break_duration=0, total_lessons=3)
        slots = compute_slots(settings)

        assert all(s.is_lesson for s in slots)
        assert len(slots) == 3

    def test_ids_are_unique(self):
        slots = compute_slots(TimeSettings(total_lessons=8, lessons_before_break=1))
        assert len({s.id for s in slots}) == len(slots)

    def test_deterministic(self):
        settings = TimeSettings(total_lessons=6, lessons_before_break=2)
        assert compute_slots(settings) == compute_slots(settings)

    @pytest.mark.parametrize('changes', [
        {'total_lessons': 0},
        {'lesson_duration': 0},
        {'lesson_duration': -45},
        {'break_duration': 0},
        {'lessons_before_break': -1},
        {'start_time': '8am'},
        {'start_time': '24:00'},
        {'start_time': '08:60'},
        {'total_lessons': 2.5},
    ])
    def test_invalid_settings(self, changes):
        settings = TimeSettings(**changes)
        with pytest.raises(InvalidSettings):
            compute_slots(settings)

    def test_zero_break_allowed_without_breaks(self):
        settings = TimeSettings(break_duration=0, lessons_before_break=0)
        assert len(compute_slots(settings)) == settings.total_lessons
