"""
Randomized hill climbing for timetable conflict reduction.
This module moves lessons around inside a class's own row to reduce the
number of double-booked cells.
"""
import logging
import time
from typing import Any, Dict, List, Optional

import numpy as np

from ..models.entities import ClassGroup, Schedule, TimeSlot
from .conflicts import count_conflicts
from .timeslots import lesson_slots

# Configure logger
logger = logging.getLogger(__name__)

DEFAULT_ITERATIONS = 2000


class ScheduleOptimizer:
    """
    Implements single-run hill climbing over pairwise swaps.

    Each iteration swaps two lesson cells of one randomly chosen class and
    keeps the result when the conflict count does not increase. Ties are
    accepted, so the search can drift across plateaus of equal conflict
    count. There is no restart or stagnation detection; the iteration
    budget is the only bound.
    """

    def __init__(self,
                 classes: List[ClassGroup],
                 slots: List[TimeSlot],
                 iterations: int = DEFAULT_ITERATIONS,
                 rng: Optional[np.random.Generator] = None):
        """
        Initialize the optimizer.

        Args:
            classes: Classes whose rows may be rearranged
            slots: Full slot sequence; only lesson slots are move candidates
            iterations: Search budget per call
            rng: Random generator; a fresh unseeded one is used when omitted
        """
        self.classes = list(classes)
        self.slots = list(slots)
        self.lesson_slots = lesson_slots(self.slots)
        self.iterations = iterations
        self.rng = rng if rng is not None else np.random.default_rng()

        self.last_run: Dict[str, Any] = {}

    def _evaluate(self, schedule: Schedule) -> int:
        return count_conflicts(schedule, self.classes, self.slots)

    def optimize(self, schedule: Schedule) -> Schedule:
        """
        Run the hill climbing search.

        Args:
            schedule: Starting schedule; it is never modified

        Returns:
            Schedule with a conflict count no greater than the input's
        """
        start_time = time.time()
        best = schedule
        best_conflicts = self._evaluate(best)
        initial_conflicts = best_conflicts

        self.last_run = {
            'initial_conflicts': initial_conflicts,
            'final_conflicts': best_conflicts,
            'iterations': 0,
            'accepted_moves': 0,
            'skipped_moves': 0
        }

        if best_conflicts == 0:
            logger.debug("Schedule already conflict-free, nothing to optimize")
            return best

        if not self.classes or len(self.lesson_slots) < 2:
            logger.debug("Not enough classes or lesson slots to move lessons")
            return best

        accepted = 0
        skipped = 0
        used = 0
        n_classes = len(self.classes)
        n_slots = len(self.lesson_slots)

        for _ in range(self.iterations):
            if best_conflicts == 0:
                break
            used += 1

            cls = self.classes[int(self.rng.integers(n_classes))]
            slot_a = self.lesson_slots[int(self.rng.integers(n_slots))]
            slot_b = self.lesson_slots[int(self.rng.integers(n_slots))]

            if slot_a.id == slot_b.id:
                skipped += 1
                continue

            candidate = best.with_swapped(cls.id, slot_a.id, slot_b.id)
            candidate_conflicts = self._evaluate(candidate)

            if candidate_conflicts <= best_conflicts:
                if candidate_conflicts < best_conflicts:
                    logger.debug(f"Swap {cls.id} {slot_a.id}<->{slot_b.id}: "
                                 f"{best_conflicts} -> {candidate_conflicts} conflicts")
                best = candidate
                best_conflicts = candidate_conflicts
                accepted += 1

        self.last_run.update({
            'final_conflicts': best_conflicts,
            'iterations': used,
            'accepted_moves': accepted,
            'skipped_moves': skipped
        })

        logger.debug(f"Hill climbing: {initial_conflicts} -> {best_conflicts} conflicts "
                     f"in {used} iterations ({accepted} accepted) "
                     f"in {time.time() - start_time:.3f} seconds")
        return best


def optimize_schedule(schedule: Schedule,
                      classes: List[ClassGroup],
                      slots: List[TimeSlot],
                      iterations: int = DEFAULT_ITERATIONS,
                      rng: Optional[np.random.Generator] = None) -> Schedule:
    """Run a single hill climbing pass over a schedule."""
    return ScheduleOptimizer(classes, slots, iterations=iterations, rng=rng).optimize(schedule)
