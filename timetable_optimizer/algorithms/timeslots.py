"""
Time slot calculation.
Derives the ordered sequence of lesson and break slots from time settings.
"""
import logging
from typing import List

from ..models.entities import BREAK, LESSON, TimeSettings, TimeSlot, parse_clock

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


def add_minutes(clock: str, minutes: int) -> str:
    """Add minutes to an "HH:MM" time, wrapping around midnight."""
    hours, mins = parse_clock(clock)
    total = (hours * 60 + mins + minutes) % MINUTES_PER_DAY
    return f"{total // 60:02d}:{total % 60:02d}"


def compute_slots(settings: TimeSettings) -> List[TimeSlot]:
    """
    Compute the lesson and break slots of one day.

    A break follows every ``lessons_before_break``-th lesson except the last
    lesson of the day.

    Args:
        settings: Time settings for the day

    Returns:
        Ordered list of TimeSlot objects

    Raises:
        InvalidSettings: If the settings are malformed or out of range
    """
    settings.validate()

    slots: List[TimeSlot] = []
    current = add_minutes(settings.start_time, 0)
    absolute_index = 0

    for i in range(settings.total_lessons):
        end = add_minutes(current, settings.lesson_duration)
        slots.append(TimeSlot(
            id=f"slot-{i}",
            type=LESSON,
            start=current,
            end=end,
            label=f"Lesson {i + 1}",
            index=absolute_index,
            lesson_index=i
        ))
        absolute_index += 1
        current = end

        lessons_done = i + 1
        if (settings.breaks_enabled
                and lessons_done % settings.lessons_before_break == 0
                and lessons_done < settings.total_lessons):
            break_end = add_minutes(current, settings.break_duration)
            slots.append(TimeSlot(
                id=f"break-{i}",
                type=BREAK,
                start=current,
                end=break_end,
                label='Break',
                index=absolute_index
            ))
            absolute_index += 1
            current = break_end

    logger.debug(f"Computed {len(slots)} slots ({settings.total_lessons} lessons) from {settings.start_time}")
    return slots


def lesson_slots(slots: List[TimeSlot]) -> List[TimeSlot]:
    """Return only the lesson-type slots."""
    return [s for s in slots if s.is_lesson]
