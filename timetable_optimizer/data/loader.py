import json
import copy
import logging
import pandas as pd
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..exceptions import InvalidProjectData
from ..algorithms.timeslots import compute_slots
from ..models.entities import Project, TimeSettings
from .converter import DataConverter

logger = logging.getLogger(__name__)

DEFAULT_PROJECT: Dict[str, Any] = {
    'teachers': [],
    'classes': [],
    'schedule': {},
    'settings': DataConverter.settings_to_dict(TimeSettings()),
}

TEACHERS_FILE = 'teachers.csv'
CLASSES_FILE = 'classes.csv'
LESSONS_FILE = 'lessons.csv'
SETTINGS_FILE = 'settings.csv'


def merge_defaults(target: Any, source: Any) -> Any:
    """
    Recursively merge a loaded project over the defaults.

    Dictionaries merge key by key; lists and scalars from the source replace
    the default; a missing or null source keeps the default. Old backups that
    lack newer sections still load.
    """
    if not isinstance(target, dict):
        return source if source is not None else target

    if not isinstance(source, dict):
        return copy.deepcopy(target)

    output = copy.deepcopy(target)
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(output.get(key), dict):
            output[key] = merge_defaults(output[key], value)
        elif value is not None:
            output[key] = value
    return output


class ProjectLoader:
    """
    Handles loading and validating a timetable project.

    A project is either a JSON backup file or a directory of CSV files.
    Provides validation and relationship checking between the loaded
    teachers, classes, lessons and slots.
    """

    def __init__(self, input_path: Optional[str] = None):
        """
        Initialize the loader.

        Args:
            input_path: JSON project file or directory containing CSV files
        """
        self.input_path = Path(input_path) if input_path else Path.cwd()
        self.converter = DataConverter()
        self.project: Optional[Project] = None

        if not self.input_path.exists():
            logger.error(f"Input not found at {self.input_path}")
            raise FileNotFoundError(f"Input not found at {self.input_path}")

        logger.info("Project loader initialized successfully")

    def load_json(self) -> Project:
        """Load a project from a JSON backup file."""
        logger.info(f"Loading project file {self.input_path}")
        try:
            with self.input_path.open('r', encoding='utf-8') as f:
                raw = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidProjectData(f"Project file is not valid JSON: {e}")

        if not isinstance(raw, dict):
            raise InvalidProjectData("Project file must contain a JSON object")

        data = merge_defaults(DEFAULT_PROJECT, raw)
        return self.converter.convert_project(data)

    def load_csv_dir(self) -> Project:
        """
        Load a project from a directory of CSV files:
        - teachers.csv (required)
        - classes.csv (required)
        - lessons.csv (optional, empty schedule when missing)
        - settings.csv (optional, default settings when missing)
        """
        logger.info(f"Loading project files from {self.input_path}")
        try:
            teachers_df = pd.read_csv(self.input_path / TEACHERS_FILE, dtype=str)
            logger.info(f"Teachers loaded: {len(teachers_df)} records")

            classes_df = pd.read_csv(self.input_path / CLASSES_FILE, dtype=str)
            logger.info(f"Classes loaded: {len(classes_df)} records")
        except FileNotFoundError as e:
            logger.error(f"Missing input file: {e.filename}")
            raise InvalidProjectData(f"Missing input file: {e.filename}")

        try:
            lessons_df = pd.read_csv(self.input_path / LESSONS_FILE, dtype=str)
            logger.info(f"Lessons loaded: {len(lessons_df)} records")
        except (pd.errors.EmptyDataError, FileNotFoundError):
            lessons_df = pd.DataFrame(columns=['Class ID', 'Slot ID', 'Subject', 'Teacher ID'])
            logger.warning("Lessons not found or empty, using empty schedule")

        try:
            settings_df = pd.read_csv(self.input_path / SETTINGS_FILE, dtype={'startTime': str})
        except (pd.errors.EmptyDataError, FileNotFoundError):
            settings_df = pd.DataFrame()
            logger.warning("Settings not found or empty, using default settings")

        for name, df, required in (
            (TEACHERS_FILE, teachers_df, 'Teacher ID'),
            (CLASSES_FILE, classes_df, 'Class ID'),
        ):
            if required not in df.columns:
                raise InvalidProjectData(f"{name} is missing the '{required}' column")
        missing = {'Class ID', 'Slot ID'} - set(lessons_df.columns)
        if missing:
            raise InvalidProjectData(f"{LESSONS_FILE} is missing columns: {sorted(missing)}")

        return Project(
            teachers=self.converter.convert_teachers_df(teachers_df),
            classes=self.converter.convert_classes_df(classes_df),
            schedule=self.converter.convert_lessons_df(lessons_df),
            settings=self.converter.convert_settings_df(settings_df)
        )

    def validate_relationships(self, project: Project) -> List[str]:
        """
        Validate references between the loaded entities.
        Checks for:
        - Lessons taught by teachers missing from the teacher list
        - Lessons for classes missing from the class list
        - Lessons keyed into break slots or slots outside the current day

        Returns:
            List of issue descriptions; issues never abort loading
        """
        logger.info("Validating project relationships...")
        issues = []

        teacher_ids = set(project.teacher_ids)
        class_ids = {c.id for c in project.classes}
        slots = {s.id: s for s in compute_slots(project.settings)}

        unknown_teachers = sorted({
            a.teacher_id for a in project.schedule.cells.values()
            if a.teacher_id and a.teacher_id not in teacher_ids
        })
        if unknown_teachers:
            issues.append(f"Unknown teachers in schedule: {unknown_teachers}")

        unknown_classes = sorted({k.class_id for k in project.schedule if k.class_id not in class_ids})
        if unknown_classes:
            issues.append(f"Unknown classes in schedule: {unknown_classes}")

        for key in sorted(project.schedule):
            slot = slots.get(key.slot_id)
            if slot is None:
                issues.append(f"Lesson {key.encode()} references a slot outside the day")
            elif not slot.is_lesson:
                issues.append(f"Lesson {key.encode()} is placed in a break")

        for issue in issues:
            logger.warning(issue)

        if not issues:
            logger.info("All relationships are valid")
        else:
            logger.warning(f"Found {len(issues)} validation issues")

        return issues

    def load_all(self) -> Project:
        """
        Load and validate the project.

        Returns:
            Project snapshot
        """
        try:
            logger.info("Starting project load...")
            if self.input_path.is_dir():
                project = self.load_csv_dir()
            else:
                project = self.load_json()

            issues = self.validate_relationships(project)
            if issues:
                logger.warning(f"Project loaded with {len(issues)} validation issues")
            else:
                logger.info("Project loaded and validated successfully")

            self.project = project
            return project

        except Exception as e:
            logger.error(f"Error during project loading: {str(e)}")
            raise
