"""
Proposal generation.

Runs the hill climbing optimizer several times from the same starting
schedule and offers the distinct results, fewest conflicts first.
"""
import logging
import time
import uuid
from typing import List, Optional

import numpy as np

from ..models.entities import ClassGroup, Proposal, Schedule, TimeSlot
from .conflicts import count_conflicts
from .hill_climbing import DEFAULT_ITERATIONS, ScheduleOptimizer

logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 10
MAX_PROPOSALS = 10


class ProposalGenerator:
    """
    Builds a ranked, de-duplicated list of optimized schedule variants.

    Every attempt starts from the input schedule with its own random
    generator, so attempts are independent trajectories.
    """

    def __init__(self,
                 classes: List[ClassGroup],
                 slots: List[TimeSlot],
                 attempts: int = DEFAULT_ATTEMPTS,
                 max_proposals: int = MAX_PROPOSALS,
                 iterations: int = DEFAULT_ITERATIONS,
                 rng: Optional[np.random.Generator] = None):
        self.classes = list(classes)
        self.slots = list(slots)
        self.attempts = attempts
        self.max_proposals = max_proposals
        self.iterations = iterations
        self.rng = rng if rng is not None else np.random.default_rng()

    def _attempt_rngs(self) -> List[np.random.Generator]:
        seeds = self.rng.integers(0, 2 ** 63 - 1, size=self.attempts)
        return [np.random.default_rng(int(seed)) for seed in seeds]

    def generate(self, schedule: Schedule) -> List[Proposal]:
        """
        Generate proposals for a schedule.

        Args:
            schedule: Current schedule

        Returns:
            Up to ``max_proposals`` proposals sorted by conflict count; empty
            when the schedule is already conflict-free or no attempt produced
            a different arrangement
        """
        start_time = time.time()
        current_conflicts = count_conflicts(schedule, self.classes, self.slots)

        if current_conflicts == 0:
            logger.info("Schedule has no conflicts, no proposals generated")
            return []

        logger.info(f"Generating proposals: {self.attempts} attempts, "
                    f"{self.iterations} iterations each, {current_conflicts} conflicts to resolve")

        seen = {schedule.fingerprint()}
        proposals: List[Proposal] = []

        for attempt, rng in enumerate(self._attempt_rngs()):
            optimizer = ScheduleOptimizer(self.classes, self.slots, iterations=self.iterations, rng=rng)
            optimized = optimizer.optimize(schedule)

            fingerprint = optimized.fingerprint()
            if fingerprint in seen:
                logger.debug(f"Attempt {attempt} duplicated an earlier result, discarded")
                continue
            seen.add(fingerprint)

            proposals.append(Proposal(
                id=f"opt_{attempt}_{uuid.uuid4().hex[:8]}",
                schedule=optimized,
                conflict_count=optimizer.last_run['final_conflicts']
            ))

        proposals.sort(key=lambda p: p.conflict_count)
        proposals = proposals[:self.max_proposals]

        best = proposals[0].conflict_count if proposals else current_conflicts
        logger.info(f"Generated {len(proposals)} distinct proposals (best: {best} conflicts) "
                    f"in {time.time() - start_time:.2f} seconds")
        return proposals


def generate_proposals(schedule: Schedule,
                       classes: List[ClassGroup],
                       slots: List[TimeSlot],
                       attempts: int = DEFAULT_ATTEMPTS,
                       max_proposals: int = MAX_PROPOSALS,
                       iterations: int = DEFAULT_ITERATIONS,
                       rng: Optional[np.random.Generator] = None) -> List[Proposal]:
    """Generate ranked, distinct proposals for a schedule."""
    generator = ProposalGenerator(
        classes, slots,
        attempts=attempts,
        max_proposals=max_proposals,
        iterations=iterations,
        rng=rng
    )
    return generator.generate(schedule)
