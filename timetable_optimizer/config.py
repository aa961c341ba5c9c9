"""
Runtime configuration.

Values come from the environment, optionally seeded from a .env file.
"""
import os
import logging
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .algorithms.hill_climbing import DEFAULT_ITERATIONS
from .algorithms.proposals import DEFAULT_ATTEMPTS, MAX_PROPOSALS

logger = logging.getLogger(__name__)


@dataclass
class OptimizerConfig:
    """Tunables for optimization runs and the API server."""
    iterations: int = DEFAULT_ITERATIONS
    attempts: int = DEFAULT_ATTEMPTS
    max_proposals: int = MAX_PROPOSALS
    seed: Optional[int] = None
    log_level: str = 'INFO'
    upload_folder: str = '/tmp/timetable_optimizer/uploads'
    results_folder: str = '/tmp/timetable_optimizer/results'


def _positive_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def _seed(name: str) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == '':
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")
    return value


def load_config(env_file: Optional[str] = None) -> OptimizerConfig:
    """
    Build the configuration from the environment.

    Args:
        env_file: Optional path of a .env file; variables already set in the
            environment take precedence over it

    Returns:
        OptimizerConfig instance
    """
    if env_file:
        if not os.path.exists(env_file):
            logger.warning(f"Env file not found: {env_file}")
        load_dotenv(dotenv_path=env_file)
    else:
        load_dotenv()

    defaults = OptimizerConfig()
    return OptimizerConfig(
        iterations=_positive_int('TIMETABLE_ITERATIONS', defaults.iterations),
        attempts=_positive_int('TIMETABLE_ATTEMPTS', defaults.attempts),
        max_proposals=_positive_int('TIMETABLE_MAX_PROPOSALS', defaults.max_proposals),
        seed=_seed('TIMETABLE_SEED'),
        log_level=os.environ.get('LOG_LEVEL', defaults.log_level).upper(),
        upload_folder=os.environ.get('UPLOAD_FOLDER', defaults.upload_folder),
        results_folder=os.environ.get('RESULTS_FOLDER', defaults.results_folder)
    )
