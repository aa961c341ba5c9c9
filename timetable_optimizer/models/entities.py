"""
Entity models for the timetable optimizer.
These classes represent the core domain objects used by slot calculation,
conflict detection and schedule optimization.
"""
import hashlib
import json
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterator, List, Mapping, NamedTuple, Optional, Tuple

from ..exceptions import InvalidSettings

LESSON = 'lesson'
BREAK = 'break'

KEY_SEPARATOR = '_'


@dataclass
class TimeSettings:
    """Daily time configuration from which the slot sequence is derived."""
    start_time: str = '08:00'
    lesson_duration: int = 45
    break_duration: int = 15
    lessons_before_break: int = 3
    total_lessons: int = 7

    @property
    def breaks_enabled(self) -> bool:
        return self.lessons_before_break > 0

    def validate(self) -> None:
        """
        Check that the settings describe a valid day.

        Raises:
            InvalidSettings: If any value is malformed or out of range
        """
        for name in ('lesson_duration', 'break_duration', 'lessons_before_break', 'total_lessons'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidSettings(f"{name} must be an integer, got {value!r}")

        if self.total_lessons < 1:
            raise InvalidSettings(f"total_lessons must be at least 1, got {self.total_lessons}")
        if self.lesson_duration <= 0:
            raise InvalidSettings(f"lesson_duration must be positive, got {self.lesson_duration}")
        if self.lessons_before_break < 0:
            raise InvalidSettings(
                f"lessons_before_break cannot be negative, got {self.lessons_before_break}"
            )
        if self.breaks_enabled and self.break_duration <= 0:
            raise InvalidSettings(
                f"break_duration must be positive when breaks are enabled, got {self.break_duration}"
            )

        parse_clock(self.start_time)


def parse_clock(value: str) -> Tuple[int, int]:
    """Parse an "HH:MM" string into (hours, minutes)."""
    if not isinstance(value, str):
        raise InvalidSettings(f"start_time must be an HH:MM string, got {value!r}")

    parts = value.strip().split(':')
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise InvalidSettings(f"start_time must be in HH:MM format, got {value!r}")

    hours, minutes = int(parts[0]), int(parts[1])
    if hours > 23 or minutes > 59:
        raise InvalidSettings(f"start_time out of range: {value!r}")
    return hours, minutes


@dataclass(frozen=True)
class TimeSlot:
    """One lesson period or break in the daily schedule."""
    id: str
    type: str  # lesson or break
    start: str
    end: str
    label: str
    index: int
    lesson_index: Optional[int] = None

    @property
    def is_lesson(self) -> bool:
        return self.type == LESSON

    def __str__(self) -> str:
        return f"{self.label}: {self.start} - {self.end}"


@dataclass
class ClassGroup:
    """Represents a class (a row of the timetable grid)."""
    id: str
    name: str


@dataclass
class Teacher:
    """Represents a teacher. Only the id takes part in conflict detection."""
    id: str
    name: str
    color: str = '#64748b'


@dataclass(frozen=True)
class LessonAssignment:
    """A subject taught by a teacher, occupying exactly one cell."""
    subject: str
    teacher_id: str


class CellKey(NamedTuple):
    """Composite key of one timetable cell."""
    class_id: str
    slot_id: str

    def encode(self) -> str:
        return f"{self.class_id}{KEY_SEPARATOR}{self.slot_id}"

    @classmethod
    def decode(cls, text: str) -> 'CellKey':
        """
        Decode a flat "classId_slotId" key.

        Slot ids never contain the separator, so splitting on the last one
        recovers class ids that do.
        """
        class_id, sep, slot_id = text.rpartition(KEY_SEPARATOR)
        if not sep or not class_id or not slot_id:
            raise ValueError(f"Invalid cell key: {text!r}")
        return cls(class_id, slot_id)


@dataclass(frozen=True)
class Schedule:
    """
    Immutable mapping from cell keys to lesson assignments.

    An absent key is an empty cell. Every modifying operation returns a new
    Schedule; the receiver is left untouched.
    """
    cells: Mapping[CellKey, LessonAssignment] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'cells', dict(self.cells))

    def get(self, key: CellKey) -> Optional[LessonAssignment]:
        return self.cells.get(key)

    def __contains__(self, key) -> bool:
        return key in self.cells

    def __len__(self) -> int:
        return len(self.cells)

    def __iter__(self) -> Iterator[CellKey]:
        return iter(self.cells)

    def items(self):
        return self.cells.items()

    def __eq__(self, other) -> bool:
        if not isinstance(other, Schedule):
            return NotImplemented
        return self.cells == other.cells

    def __hash__(self) -> int:
        return hash(self.fingerprint())

    def with_assignment(self, key: CellKey, assignment: Optional[LessonAssignment]) -> 'Schedule':
        """Return a copy with one cell set, or cleared when assignment is None."""
        cells = dict(self.cells)
        if assignment is None:
            cells.pop(key, None)
        else:
            cells[key] = assignment
        return Schedule(cells)

    def with_swapped(self, class_id: str, slot_a: str, slot_b: str) -> 'Schedule':
        """Return a copy with two cells of one class exchanged, empty cells included."""
        key_a = CellKey(class_id, slot_a)
        key_b = CellKey(class_id, slot_b)
        cells = dict(self.cells)
        lesson_a = cells.pop(key_a, None)
        lesson_b = cells.pop(key_b, None)
        if lesson_a is not None:
            cells[key_b] = lesson_a
        if lesson_b is not None:
            cells[key_a] = lesson_b
        return Schedule(cells)

    def fingerprint(self) -> FrozenSet[Tuple[CellKey, LessonAssignment]]:
        """Order-independent structural key; equal for equal schedules."""
        return frozenset(self.cells.items())

    def digest(self) -> str:
        """Stable sha256 hex digest of the canonical serialization."""
        canonical = sorted(
            (key.class_id, key.slot_id, lesson.subject, lesson.teacher_id)
            for key, lesson in self.cells.items()
        )
        payload = json.dumps(canonical, separators=(',', ':'), ensure_ascii=False)
        return hashlib.sha256(payload.encode('utf-8')).hexdigest()

    def for_class(self, class_id: str) -> Dict[str, LessonAssignment]:
        """Get all assignments of a class keyed by slot id."""
        return {k.slot_id: a for k, a in self.cells.items() if k.class_id == class_id}

    def for_teacher(self, teacher_id: str) -> List[CellKey]:
        """Get all cells taught by a teacher."""
        return [k for k, a in self.cells.items() if a.teacher_id == teacher_id]


# Cell key -> True for every cell involved in a double booking
ConflictSet = Dict[CellKey, bool]


@dataclass(frozen=True)
class Proposal:
    """A candidate full-schedule rearrangement offered for approval."""
    id: str
    schedule: Schedule
    conflict_count: int

    @property
    def is_best(self) -> bool:
        return self.conflict_count == 0


@dataclass
class Project:
    """Snapshot of the state an optimization run works on."""
    teachers: List[Teacher] = field(default_factory=list)
    classes: List[ClassGroup] = field(default_factory=list)
    schedule: Schedule = field(default_factory=Schedule)
    settings: TimeSettings = field(default_factory=TimeSettings)

    @property
    def teacher_ids(self) -> List[str]:
        return [t.id for t in self.teachers]

    def teacher_names(self) -> Dict[str, str]:
        return {t.id: t.name for t in self.teachers}
