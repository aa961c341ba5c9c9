"""
Tests for the domain model.
"""
import pytest

from timetable_optimizer.exceptions import InvalidSettings
from timetable_optimizer.models.entities import (
    CellKey, LessonAssignment, Proposal, Schedule, TimeSettings
)


class TestCellKey:
    """Test composite cell keys."""

    def test_encode(self):
        assert CellKey('7A', 'slot-3').encode() == '7A_slot-3'

    def test_decode(self):
        assert CellKey.decode('7A_slot-3') == CellKey('7A', 'slot-3')

    def test_decode_class_id_with_separator(self):
        key = CellKey('grade_7_a', 'slot-0')
        assert CellKey.decode(key.encode()) == key

    @pytest.mark.parametrize('text', ['', 'slot-0', '_slot-0', 'A_'])
    def test_decode_invalid(self, text):
        with pytest.raises(ValueError):
            CellKey.decode(text)


class TestSchedule:
    """Test the immutable schedule value."""

    @pytest.fixture
    def schedule(self):
        return Schedule({
            CellKey('A', 'slot-0'): LessonAssignment('Math', 'T1'),
            CellKey('A', 'slot-1'): LessonAssignment('Art', 'T2'),
            CellKey('B', 'slot-0'): LessonAssignment('Math', 'T1'),
        })

    def test_swap_two_filled_cells(self, schedule):
        swapped = schedule.with_swapped('A', 'slot-0', 'slot-1')

        assert swapped.get(CellKey('A', 'slot-0')) == LessonAssignment('Art', 'T2')
        assert swapped.get(CellKey('A', 'slot-1')) == LessonAssignment('Math', 'T1')
        assert swapped.get(CellKey('B', 'slot-0')) == LessonAssignment('Math', 'T1')

    def test_swap_with_empty_cell(self, schedule):
        swapped = schedule.with_swapped('B', 'slot-0', 'slot-2')

        assert CellKey('B', 'slot-0') not in swapped
        assert swapped.get(CellKey('B', 'slot-2')) == LessonAssignment('Math', 'T1')
        assert len(swapped) == len(schedule)

    def test_swap_two_empty_cells(self, schedule):
        assert schedule.with_swapped('C', 'slot-0', 'slot-1') == schedule

    def test_operations_do_not_mutate(self, schedule):
        before = dict(schedule.cells)
        schedule.with_swapped('A', 'slot-0', 'slot-1')
        schedule.with_assignment(CellKey('C', 'slot-0'), LessonAssignment('PE', 'T3'))
        schedule.with_assignment(CellKey('A', 'slot-0'), None)
        assert dict(schedule.cells) == before

    def test_input_mapping_is_copied(self):
        cells = {CellKey('A', 'slot-0'): LessonAssignment('Math', 'T1')}
        schedule = Schedule(cells)
        cells[CellKey('A', 'slot-1')] = LessonAssignment('Art', 'T2')
        assert len(schedule) == 1

    def test_fingerprint_ignores_insertion_order(self, schedule):
        reordered = Schedule(dict(reversed(list(schedule.items()))))

        assert reordered.fingerprint() == schedule.fingerprint()
        assert reordered.digest() == schedule.digest()
        assert reordered == schedule
        assert len({schedule, reordered}) == 1

    def test_fingerprint_differs_for_different_content(self, schedule):
        swapped = schedule.with_swapped('A', 'slot-0', 'slot-1')
        assert swapped.fingerprint() != schedule.fingerprint()
        assert swapped.digest() != schedule.digest()

    def test_for_class_and_teacher(self, schedule):
        assert set(schedule.for_class('A')) == {'slot-0', 'slot-1'}
        assert sorted(schedule.for_teacher('T1')) == [CellKey('A', 'slot-0'), CellKey('B', 'slot-0')]


class TestTimeSettings:
    """Test settings validation."""

    def test_defaults_are_valid(self):
        TimeSettings().validate()

    def test_bool_rejected(self):
        with pytest.raises(InvalidSettings):
            TimeSettings(total_lessons=True).validate()

    def test_invalid_settings_is_value_error(self):
        with pytest.raises(ValueError):
            TimeSettings(total_lessons=0).validate()


class TestProposal:
    """Test proposal flags."""

    def test_is_best(self):
        assert Proposal('p1', Schedule(), 0).is_best
        assert not Proposal('p2', Schedule(), 2).is_best
