"""
Timetable conflict detection and schedule optimization.
"""
from .algorithms.conflicts import count_conflicts, detect_conflicts
from .algorithms.hill_climbing import ScheduleOptimizer, optimize_schedule
from .algorithms.proposals import ProposalGenerator, generate_proposals
from .algorithms.timeslots import compute_slots
from .exceptions import InvalidProjectData, InvalidSettings, TimetableError

__version__ = '0.1.0'

__all__ = [
    'compute_slots',
    'detect_conflicts',
    'count_conflicts',
    'generate_proposals',
    'optimize_schedule',
    'ScheduleOptimizer',
    'ProposalGenerator',
    'InvalidSettings',
    'InvalidProjectData',
    'TimetableError',
]
