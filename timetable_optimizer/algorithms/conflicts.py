"""
Conflict detection.

A conflict is a teacher assigned to more than one class in the same lesson
slot. Every cell involved in such a double booking is reported.
"""
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from ..models.entities import CellKey, ClassGroup, ConflictSet, Schedule, TimeSlot


def _teacher_classes_by_slot(schedule: Schedule,
                             classes: List[ClassGroup],
                             slots: List[TimeSlot]) -> Dict[str, Dict[str, List[str]]]:
    """Map slot id -> teacher id -> class ids taught by that teacher in the slot."""
    slot_teachers: Dict[str, Dict[str, List[str]]] = {}

    for slot in slots:
        if not slot.is_lesson:
            continue  # Breaks never conflict

        for cls in classes:
            lesson = schedule.get(CellKey(cls.id, slot.id))
            if lesson is None or not lesson.teacher_id:
                continue
            slot_teachers.setdefault(slot.id, defaultdict(list))[lesson.teacher_id].append(cls.id)

    return slot_teachers


def detect_conflicts(schedule: Schedule,
                     teacher_ids: Optional[Iterable[str]],
                     classes: List[ClassGroup],
                     slots: List[TimeSlot]) -> ConflictSet:
    """
    Find every cell where a teacher is double-booked.

    Args:
        schedule: Schedule to check
        teacher_ids: Known teacher ids; may be empty, detection only compares
            the ids referenced by the schedule
        classes: Classes to scan
        slots: Slot sequence; break slots are skipped

    Returns:
        Mapping of conflicting cell keys to True
    """
    conflicts: ConflictSet = {}

    for slot_id, teachers in _teacher_classes_by_slot(schedule, classes, slots).items():
        for class_ids in teachers.values():
            if len(class_ids) > 1:
                for class_id in class_ids:
                    conflicts[CellKey(class_id, slot_id)] = True

    return conflicts


def count_conflicts(schedule: Schedule, classes: List[ClassGroup], slots: List[TimeSlot]) -> int:
    """Number of distinct conflicting cells."""
    return len(detect_conflicts(schedule, (), classes, slots))


def conflicts_by_teacher(schedule: Schedule,
                         classes: List[ClassGroup],
                         slots: List[TimeSlot]) -> Dict[str, List[Tuple[str, List[str]]]]:
    """
    Group double bookings by teacher.

    Returns:
        Mapping of teacher id to (slot id, class ids) pairs, in slot order
    """
    report: Dict[str, List[Tuple[str, List[str]]]] = defaultdict(list)

    for slot_id, teachers in _teacher_classes_by_slot(schedule, classes, slots).items():
        for teacher_id, class_ids in teachers.items():
            if len(class_ids) > 1:
                report[teacher_id].append((slot_id, list(class_ids)))

    return dict(report)
