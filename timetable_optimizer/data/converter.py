"""
Data converter module.

Handles conversions between different data formats:
- Project JSON / dictionaries to domain objects
- DataFrames to domain objects
- Domain objects back to dictionaries and DataFrames for output
"""
import numbers
import pandas as pd
from typing import Dict, List, Any, Optional
import logging
from collections import Counter

from ..exceptions import InvalidProjectData
from ..algorithms.conflicts import conflicts_by_teacher, detect_conflicts
from ..models.entities import (
    CellKey, ClassGroup, LessonAssignment, Project, Proposal,
    Schedule, Teacher, TimeSettings, TimeSlot
)

logger = logging.getLogger(__name__)

# Setting field names as stored in project files
SETTINGS_FIELDS = {
    'startTime': 'start_time',
    'lessonDuration': 'lesson_duration',
    'breakDuration': 'break_duration',
    'lessonsBeforeBreak': 'lessons_before_break',
    'totalLessons': 'total_lessons',
}


def _require(data: Any, kind: type, what: str):
    if not isinstance(data, kind):
        raise InvalidProjectData(f"{what} must be a {kind.__name__}, got {type(data).__name__}")
    return data


def _to_int(value: Any) -> Any:
    # Numeric strings and numpy scalars become ints; anything else is left for validation
    if isinstance(value, numbers.Integral) and not isinstance(value, bool):
        return int(value)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip('-').isdigit():
        return int(value.strip())
    return value


def class_column_labels(classes: List[ClassGroup]) -> Dict[str, str]:
    """Map class ids to report labels; repeated names are qualified with the id."""
    counts = Counter(c.name for c in classes)
    return {c.id: c.name if counts[c.name] == 1 else f"{c.name} ({c.id})" for c in classes}


class DataConverter:
    """
    Converts between different data representations used in the system.

    Responsibilities:
    - Convert project dictionaries and DataFrames to domain model objects
    - Convert domain model objects back to dictionaries and DataFrames
    - Generate reports from model data
    """

    @staticmethod
    def convert_settings(data: Optional[Dict[str, Any]]) -> TimeSettings:
        """
        Convert a settings dictionary to a TimeSettings object.

        Missing fields keep their defaults. Values are not validated here;
        slot calculation validates them.
        """
        settings = TimeSettings()
        if data is None:
            return settings

        _require(data, dict, "settings")
        for source, target in SETTINGS_FIELDS.items():
            if source in data and data[source] is not None:
                value = data[source]
                if target != 'start_time':
                    value = _to_int(value)
                setattr(settings, target, value)
        return settings

    @staticmethod
    def convert_teachers(data: List[Dict[str, Any]]) -> List[Teacher]:
        """Convert teacher records to Teacher objects."""
        teachers = []
        for record in _require(data, list, "teachers"):
            _require(record, dict, "teacher record")
            if not record.get('id'):
                raise InvalidProjectData(f"Teacher record without id: {record}")
            teachers.append(Teacher(
                id=str(record['id']),
                name=str(record.get('name', record['id'])),
                color=str(record.get('color') or Teacher.color)
            ))
        return teachers

    @staticmethod
    def convert_classes(data: List[Dict[str, Any]]) -> List[ClassGroup]:
        """Convert class records to ClassGroup objects."""
        classes = []
        for record in _require(data, list, "classes"):
            _require(record, dict, "class record")
            if not record.get('id'):
                raise InvalidProjectData(f"Class record without id: {record}")
            classes.append(ClassGroup(
                id=str(record['id']),
                name=str(record.get('name', record['id']))
            ))
        return classes

    @staticmethod
    def convert_schedule(data: Dict[str, Any]) -> Schedule:
        """
        Convert a flat-key schedule dictionary to a Schedule.

        Args:
            data: Mapping of "classId_slotId" to {"subject", "teacherId"}

        Returns:
            Schedule object
        """
        cells = {}
        for flat_key, lesson in _require(data, dict, "schedule").items():
            if lesson is None:
                continue  # Empty cell
            _require(lesson, dict, f"lesson {flat_key}")
            try:
                key = CellKey.decode(flat_key)
            except ValueError as e:
                raise InvalidProjectData(str(e))
            cells[key] = LessonAssignment(
                subject=str(lesson.get('subject', '')),
                teacher_id=str(lesson.get('teacherId') or '')
            )
        return Schedule(cells)

    @staticmethod
    def convert_project(data: Dict[str, Any]) -> Project:
        """Convert a project dictionary in the backup format to a Project."""
        _require(data, dict, "project")
        return Project(
            teachers=DataConverter.convert_teachers(data.get('teachers') or []),
            classes=DataConverter.convert_classes(data.get('classes') or []),
            schedule=DataConverter.convert_schedule(data.get('schedule') or {}),
            settings=DataConverter.convert_settings(data.get('settings'))
        )

    @staticmethod
    def convert_teachers_df(teachers_df: pd.DataFrame) -> List[Teacher]:
        """Convert a teachers DataFrame to Teacher objects."""
        teachers = []
        for _, row in teachers_df.iterrows():
            teacher_id = str(row['Teacher ID'])
            color = row.get('Color')
            teachers.append(Teacher(
                id=teacher_id,
                name=str(row.get('Name', teacher_id)),
                color=str(color) if pd.notna(color) else Teacher.color
            ))
        return teachers

    @staticmethod
    def convert_classes_df(classes_df: pd.DataFrame) -> List[ClassGroup]:
        """Convert a classes DataFrame to ClassGroup objects."""
        return [
            ClassGroup(id=str(row['Class ID']), name=str(row.get('Name', row['Class ID'])))
            for _, row in classes_df.iterrows()
        ]

    @staticmethod
    def convert_lessons_df(lessons_df: pd.DataFrame) -> Schedule:
        """Convert a lessons DataFrame (one row per filled cell) to a Schedule."""
        cells = {}
        for _, row in lessons_df.iterrows():
            key = CellKey(str(row['Class ID']), str(row['Slot ID']))
            if key in cells:
                logger.warning(f"Duplicate lesson for cell {key.encode()}, keeping the last one")
            teacher_id = row.get('Teacher ID')
            subject = row.get('Subject')
            cells[key] = LessonAssignment(
                subject=str(subject) if pd.notna(subject) else '',
                teacher_id=str(teacher_id) if pd.notna(teacher_id) else ''
            )
        return Schedule(cells)

    @staticmethod
    def convert_settings_df(settings_df: pd.DataFrame) -> TimeSettings:
        """Convert a single-row settings DataFrame to TimeSettings."""
        if settings_df.empty:
            return TimeSettings()
        row = settings_df.iloc[0]
        data = {name: row[name] for name in SETTINGS_FIELDS if name in row and pd.notna(row[name])}
        if 'startTime' in data:
            data['startTime'] = str(data['startTime'])
        return DataConverter.convert_settings(data)

    @staticmethod
    def settings_to_dict(settings: TimeSettings) -> Dict[str, Any]:
        return {source: getattr(settings, target) for source, target in SETTINGS_FIELDS.items()}

    @staticmethod
    def schedule_to_dict(schedule: Schedule) -> Dict[str, Dict[str, str]]:
        """Convert a Schedule to the flat-key dictionary format."""
        return {
            key.encode(): {'subject': lesson.subject, 'teacherId': lesson.teacher_id}
            for key, lesson in sorted(schedule.items())
        }

    @staticmethod
    def project_to_dict(project: Project) -> Dict[str, Any]:
        """Convert a Project back to the backup format."""
        return {
            'teachers': [{'id': t.id, 'name': t.name, 'color': t.color} for t in project.teachers],
            'classes': [{'id': c.id, 'name': c.name} for c in project.classes],
            'schedule': DataConverter.schedule_to_dict(project.schedule),
            'settings': DataConverter.settings_to_dict(project.settings)
        }

    @staticmethod
    def slot_to_dict(slot: TimeSlot) -> Dict[str, Any]:
        return {
            'id': slot.id,
            'type': slot.type,
            'start': slot.start,
            'end': slot.end,
            'label': slot.label,
            'index': slot.index,
            'lessonIndex': slot.lesson_index
        }

    @staticmethod
    def proposal_to_dict(proposal: Proposal) -> Dict[str, Any]:
        return {
            'id': proposal.id,
            'conflictCount': proposal.conflict_count,
            'best': proposal.is_best,
            'schedule': DataConverter.schedule_to_dict(proposal.schedule)
        }

    @staticmethod
    def conflicts_to_list(conflicts: Dict[CellKey, bool]) -> List[str]:
        return sorted(key.encode() for key, flagged in conflicts.items() if flagged)

    @staticmethod
    def convert_to_slots_df(slots: List[TimeSlot]) -> pd.DataFrame:
        """Convert the slot sequence to a DataFrame."""
        columns = ['Slot ID', 'Type', 'Label', 'Start', 'End', 'Index', 'Lesson Index']
        rows = [{
            'Slot ID': s.id,
            'Type': s.type,
            'Label': s.label,
            'Start': s.start,
            'End': s.end,
            'Index': s.index,
            'Lesson Index': s.lesson_index
        } for s in slots]
        return pd.DataFrame(rows, columns=columns)

    @staticmethod
    def convert_to_timetable_df(schedule: Schedule,
                                classes: List[ClassGroup],
                                slots: List[TimeSlot],
                                teachers: Optional[List[Teacher]] = None) -> pd.DataFrame:
        """
        Convert a schedule to a timetable grid.

        Rows are slots, columns are class names; a filled cell reads
        "Subject (Teacher)". Break rows show the break label. Classes sharing
        a name get their id appended so each keeps its own column.
        """
        names = {t.id: t.name for t in teachers or []}
        labels = class_column_labels(classes)
        rows = []
        for slot in slots:
            row = {'Slot': slot.label, 'Start': slot.start, 'End': slot.end}
            for cls in classes:
                if not slot.is_lesson:
                    row[labels[cls.id]] = slot.label
                    continue
                lesson = schedule.get(CellKey(cls.id, slot.id))
                if lesson is None:
                    row[labels[cls.id]] = ''
                elif lesson.teacher_id:
                    row[labels[cls.id]] = f"{lesson.subject} ({names.get(lesson.teacher_id, lesson.teacher_id)})"
                else:
                    row[labels[cls.id]] = lesson.subject
            rows.append(row)
        columns = ['Slot', 'Start', 'End'] + [labels[c.id] for c in classes]
        return pd.DataFrame(rows, columns=columns)

    @staticmethod
    def generate_conflict_report(schedule: Schedule,
                                 classes: List[ClassGroup],
                                 slots: List[TimeSlot],
                                 teachers: Optional[List[Teacher]] = None) -> pd.DataFrame:
        """
        Generate a report with one row per double-booked teacher and slot.
        """
        names = {t.id: t.name for t in teachers or []}
        class_names = class_column_labels(classes)
        slots_by_id = {s.id: s for s in slots}

        rows = []
        for teacher_id, bookings in conflicts_by_teacher(schedule, classes, slots).items():
            for slot_id, class_ids in bookings:
                slot = slots_by_id[slot_id]
                rows.append({
                    'Teacher ID': teacher_id,
                    'Teacher': names.get(teacher_id, teacher_id),
                    'Slot ID': slot_id,
                    'Slot': slot.label,
                    'Start': slot.start,
                    'End': slot.end,
                    'Classes': ';'.join(class_names.get(c, c) for c in class_ids),
                    'Conflicting Cells': len(class_ids)
                })
        rows.sort(key=lambda r: (slots_by_id[r['Slot ID']].index, r['Teacher ID']))

        columns = ['Teacher ID', 'Teacher', 'Slot ID', 'Slot', 'Start', 'End', 'Classes', 'Conflicting Cells']
        return pd.DataFrame(rows, columns=columns)

    @staticmethod
    def generate_teacher_load_report(schedule: Schedule,
                                     classes: List[ClassGroup],
                                     slots: List[TimeSlot],
                                     teachers: Optional[List[Teacher]] = None) -> pd.DataFrame:
        """
        Generate a per-teacher load report: lessons taught and conflicting cells.
        """
        class_ids = {c.id for c in classes}
        lesson_ids = {s.id for s in slots if s.is_lesson}
        conflicts = detect_conflicts(schedule, [], classes, slots)

        lessons = Counter()
        conflicted = Counter()
        for key, lesson in schedule.items():
            if key.class_id not in class_ids or key.slot_id not in lesson_ids or not lesson.teacher_id:
                continue
            lessons[lesson.teacher_id] += 1
            if key in conflicts:
                conflicted[lesson.teacher_id] += 1

        known = [t.id for t in teachers or []]
        teacher_ids = known + sorted(t for t in lessons if t not in set(known))
        names = {t.id: t.name for t in teachers or []}

        rows = []
        for teacher_id in teacher_ids:
            taught = lessons.get(teacher_id, 0)
            rows.append({
                'Teacher ID': teacher_id,
                'Teacher': names.get(teacher_id, teacher_id),
                'Lessons': taught,
                'Conflicting Cells': conflicted.get(teacher_id, 0),
                'Load': taught / len(lesson_ids) if lesson_ids else 0.0
            })
        return pd.DataFrame(rows, columns=['Teacher ID', 'Teacher', 'Lessons', 'Conflicting Cells', 'Load'])

    @staticmethod
    def generate_proposals_summary(proposals: List[Proposal], current_conflicts: int) -> pd.DataFrame:
        """Summarize ranked proposals against the current conflict count."""
        rows = [{
            'Rank': rank,
            'Proposal ID': p.id,
            'Conflicts': p.conflict_count,
            'Resolved': current_conflicts - p.conflict_count,
            'Best': p.is_best,
            'Digest': p.schedule.digest()[:12]
        } for rank, p in enumerate(proposals, start=1)]
        return pd.DataFrame(rows, columns=['Rank', 'Proposal ID', 'Conflicts', 'Resolved', 'Best', 'Digest'])
