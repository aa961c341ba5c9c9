# Re-export domain types
from .entities import (
    BREAK, LESSON, CellKey, ClassGroup, ConflictSet, LessonAssignment,
    Project, Proposal, Schedule, Teacher, TimeSettings, TimeSlot,
)

__all__ = [
    'BREAK', 'LESSON', 'CellKey', 'ClassGroup', 'ConflictSet', 'LessonAssignment',
    'Project', 'Proposal', 'Schedule', 'Teacher', 'TimeSettings', 'TimeSlot',
]
