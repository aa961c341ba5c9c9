"""
Main optimizer service module.

This module provides the timetable optimization service.
It orchestrates loading a project, computing slots, detecting conflicts,
generating proposals and saving the results.
"""
import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np

from .config import OptimizerConfig
from .data.loader import ProjectLoader
from .data.converter import DataConverter
from .models.entities import ConflictSet, Project, Proposal, TimeSlot
from .algorithms.timeslots import compute_slots
from .algorithms.conflicts import detect_conflicts
from .algorithms.proposals import ProposalGenerator

logger = logging.getLogger(__name__)


class TimetableOptimizer:
    """
    Main timetable optimization service.

    This class is responsible for:
    - Loading the project snapshot
    - Running conflict detection and proposal generation
    - Generating and saving results
    """

    def __init__(self, input_path: str, output_dir: str, config: Optional[OptimizerConfig] = None):
        """
        Initialize the optimizer service.

        Args:
            input_path: Project JSON file or directory of CSV files
            output_dir: Directory where result files will be saved
            config: Optimization tunables; defaults when omitted
        """
        self.input_path = Path(input_path)
        self.output_dir = Path(output_dir)
        self.config = config or OptimizerConfig()

        # Create output directory if it doesn't exist
        if not self.output_dir.exists():
            self.output_dir.mkdir(parents=True, exist_ok=True)

        self.loader = ProjectLoader(str(input_path))
        self.converter = DataConverter()

        self.project: Optional[Project] = None
        self.slots: List[TimeSlot] = []
        self.proposals: List[Proposal] = []

        self.metrics = {
            'load_time': 0,
            'slot_time': 0,
            'optimization_time': 0,
            'total_time': 0
        }

    def load_data(self) -> Project:
        """
        Load the project snapshot.

        Returns:
            Project object
        """
        start_time = time.time()
        logger.info(f"Loading project from {self.input_path}")

        try:
            self.project = self.loader.load_all()

            self.metrics['load_time'] = time.time() - start_time
            logger.info(f"Project loaded successfully in {self.metrics['load_time']:.2f} seconds")

            return self.project
        except Exception as e:
            logger.error(f"Error loading project: {str(e)}")
            raise

    def compute_slots(self, project: Project) -> List[TimeSlot]:
        """
        Compute the slot sequence for the project's time settings.

        Raises:
            InvalidSettings: If the time settings are invalid
        """
        start_time = time.time()
        self.slots = compute_slots(project.settings)
        self.metrics['slot_time'] = time.time() - start_time

        lessons = sum(1 for s in self.slots if s.is_lesson)
        logger.info(f"Computed {len(self.slots)} slots ({lessons} lessons, {len(self.slots) - lessons} breaks)")
        return self.slots

    def detect_conflicts(self, project: Project, slots: List[TimeSlot]) -> ConflictSet:
        conflicts = detect_conflicts(project.schedule, project.teacher_ids, project.classes, slots)
        logger.info(f"Detected {len(conflicts)} conflicting cells")
        return conflicts

    def run_optimization(self, project: Project, slots: List[TimeSlot]) -> List[Proposal]:
        """
        Generate ranked proposals for the project's schedule.

        Returns:
            List of proposals, fewest conflicts first
        """
        start_time = time.time()
        logger.info(f"Starting optimization: {self.config.attempts} attempts, "
                    f"{self.config.iterations} iterations, seed={self.config.seed}")

        generator = ProposalGenerator(
            classes=project.classes,
            slots=slots,
            attempts=self.config.attempts,
            max_proposals=self.config.max_proposals,
            iterations=self.config.iterations,
            rng=np.random.default_rng(self.config.seed)
        )
        self.proposals = generator.generate(project.schedule)

        self.metrics['optimization_time'] = time.time() - start_time
        logger.info(f"Optimization completed in {self.metrics['optimization_time']:.2f} seconds")

        return self.proposals

    def save_results(self, project: Project, slots: List[TimeSlot],
                     proposals: List[Proposal], current_conflicts: int) -> Dict[str, str]:
        """
        Save optimization results to CSV and JSON files.

        Returns:
            Dictionary of output file paths
        """
        logger.info(f"Saving results to {self.output_dir}")

        output_files = {
            'time_slots': str(self.output_dir / 'Time_Slots.csv'),
            'current_timetable': str(self.output_dir / 'Current_Timetable.csv'),
            'conflict_report': str(self.output_dir / 'Conflict_Report.csv'),
            'teacher_load': str(self.output_dir / 'Teacher_Load.csv'),
            'proposals_summary': str(self.output_dir / 'Proposals_Summary.csv'),
            'proposals': str(self.output_dir / 'proposals.json')
        }

        self.converter.convert_to_slots_df(slots).to_csv(output_files['time_slots'], index=False)
        self.converter.convert_to_timetable_df(
            project.schedule, project.classes, slots, project.teachers
        ).to_csv(output_files['current_timetable'], index=False)
        self.converter.generate_conflict_report(
            project.schedule, project.classes, slots, project.teachers
        ).to_csv(output_files['conflict_report'], index=False)
        self.converter.generate_teacher_load_report(
            project.schedule, project.classes, slots, project.teachers
        ).to_csv(output_files['teacher_load'], index=False)
        self.converter.generate_proposals_summary(
            proposals, current_conflicts
        ).to_csv(output_files['proposals_summary'], index=False)

        for rank, proposal in enumerate(proposals, start=1):
            path = str(self.output_dir / f'Proposal_{rank}.csv')
            self.converter.convert_to_timetable_df(
                proposal.schedule, project.classes, slots, project.teachers
            ).to_csv(path, index=False)
            output_files[f'proposal_{rank}'] = path

        with open(output_files['proposals'], 'w', encoding='utf-8') as f:
            json.dump({
                'currentConflicts': current_conflicts,
                'proposals': [self.converter.proposal_to_dict(p) for p in proposals]
            }, f, indent=2, ensure_ascii=False)

        logger.info("Results saved successfully")

        return output_files

    def apply_proposal(self, rank: int) -> str:
        """
        Write a copy of the project with a proposal's schedule applied.

        Args:
            rank: 1-based rank of the proposal from the last run

        Returns:
            Path of the written project file
        """
        if self.project is None:
            raise RuntimeError("No project loaded")
        if not 1 <= rank <= len(self.proposals):
            raise ValueError(f"No proposal with rank {rank} ({len(self.proposals)} available)")

        proposal = self.proposals[rank - 1]
        applied = Project(
            teachers=self.project.teachers,
            classes=self.project.classes,
            schedule=proposal.schedule,
            settings=self.project.settings
        )

        path = self.output_dir / 'Optimized_Project.json'
        with path.open('w', encoding='utf-8') as f:
            json.dump(self.converter.project_to_dict(applied), f, indent=2, ensure_ascii=False)

        logger.info(f"Applied proposal {proposal.id} ({proposal.conflict_count} conflicts) to {path}")
        return str(path)

    def optimize(self) -> Dict[str, Any]:
        """
        Run the complete optimization process.

        Returns:
            Dictionary containing optimization results and metrics
        """
        total_start_time = time.time()
        logger.info("Starting complete optimization process")

        try:
            project = self.load_data()
            slots = self.compute_slots(project)
            conflicts = self.detect_conflicts(project, slots)
            proposals = self.run_optimization(project, slots)
            output_files = self.save_results(project, slots, proposals, len(conflicts))

            self.metrics['total_time'] = time.time() - total_start_time

            results = {
                'schedule_summary': {
                    'teachers': len(project.teachers),
                    'classes': len(project.classes),
                    'lesson_slots': sum(1 for s in slots if s.is_lesson),
                    'assigned_cells': len(project.schedule),
                    'conflicts': len(conflicts),
                    'best_conflicts': proposals[0].conflict_count if proposals else len(conflicts),
                    'already_optimal': not proposals
                },
                'proposals': [
                    {'rank': rank, 'id': p.id, 'conflicts': p.conflict_count, 'best': p.is_best}
                    for rank, p in enumerate(proposals, start=1)
                ],
                'output_files': output_files,
                'metrics': self.metrics,
                'success': True
            }

            logger.info(f"Optimization completed successfully in {self.metrics['total_time']:.2f} seconds")

            return results

        except Exception as e:
            logger.error(f"Optimization failed: {str(e)}")

            self.metrics['total_time'] = time.time() - total_start_time

            return {
                'error': str(e),
                'metrics': self.metrics,
                'success': False
            }
