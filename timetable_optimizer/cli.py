#!/usr/bin/env python3
"""
Command-line interface for the timetable optimizer.
Provides a simple way to detect conflicts and generate proposals from the
command line.
"""
import argparse
import logging
import json
import sys
from pathlib import Path
from .config import load_config
from .optimizer import TimetableOptimizer


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description='Timetable Optimizer CLI',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument(
        '--input',
        type=str,
        default='project.json',
        help='Project JSON file or directory containing CSV files'
    )

    parser.add_argument(
        '--output-dir',
        type=str,
        default='output',
        help='Directory to save result files'
    )

    parser.add_argument(
        '--iterations',
        type=int,
        help='Hill climbing iterations per attempt (default from config)'
    )

    parser.add_argument(
        '--attempts',
        type=int,
        help='Independent optimization attempts (default from config)'
    )

    parser.add_argument(
        '--max-proposals',
        type=int,
        help='Maximum number of proposals to keep (default from config)'
    )

    parser.add_argument(
        '--seed',
        type=int,
        help='Random seed for reproducible proposals'
    )

    parser.add_argument(
        '--apply',
        type=int,
        metavar='RANK',
        help='Write Optimized_Project.json using the proposal with this rank'
    )

    parser.add_argument(
        '--env-file',
        type=str,
        help='Optional .env file with configuration'
    )

    parser.add_argument(
        '--log-level',
        type=str,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Logging level (default from config)'
    )

    parser.add_argument(
        '--json-output',
        action='store_true',
        help='Output results as JSON'
    )

    return parser.parse_args(argv)


def setup_logging(log_level):
    """Configure logging."""
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f'Invalid log level: {log_level}')

    logging.basicConfig(
        level=numeric_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def build_config(args):
    """Load configuration and apply command-line overrides."""
    config = load_config(args.env_file)

    for name in ('iterations', 'attempts', 'max_proposals'):
        value = getattr(args, name)
        if value is not None:
            if value <= 0:
                raise ValueError(f"--{name.replace('_', '-')} must be positive")
            setattr(config, name, value)

    if args.seed is not None:
        if args.seed < 0:
            raise ValueError("--seed must be non-negative")
        config.seed = args.seed
    if args.log_level:
        config.log_level = args.log_level

    return config


def print_results(results):
    """Output results in human-readable format."""
    print("\nOptimization Results:")

    if not results['success']:
        print(f"  Error: {results['error']}")
        return

    summary = results['schedule_summary']
    print(f"  Classes: {summary['classes']}  Teachers: {summary['teachers']}  "
          f"Lesson slots: {summary['lesson_slots']}")
    print(f"  Assigned cells: {summary['assigned_cells']}")
    print(f"  Current conflicts: {summary['conflicts']}")

    if summary['already_optimal']:
        print("\n  The timetable is already optimal, no better arrangement was found.")
    else:
        print("\nProposals:")
        for p in results['proposals']:
            tag = "  (best)" if p['best'] else ""
            print(f"  #{p['rank']} {p['id']}: {p['conflicts']} conflicts{tag}")

    print("\nOutput files:")
    for name, path in results['output_files'].items():
        print(f"  {name}: {path}")

    print("\nPerformance metrics:")
    for metric, value in results['metrics'].items():
        print(f"  {metric}: {value:.2f} seconds")


def main(argv=None):
    """Main entry point for the CLI."""
    args = parse_args(argv)

    try:
        config = build_config(args)
        setup_logging(config.log_level)
    except ValueError as e:
        print(f"Error: {str(e)}")
        sys.exit(1)

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: Input does not exist: {input_path}")
        sys.exit(1)

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    try:
        optimizer = TimetableOptimizer(
            input_path=str(input_path),
            output_dir=str(output_dir),
            config=config
        )

        results = optimizer.optimize()

        if results['success'] and args.apply is not None:
            results['applied_project'] = optimizer.apply_proposal(args.apply)

        if args.json_output:
            print(json.dumps(results, indent=2))
        else:
            print_results(results)
            if 'applied_project' in results:
                print(f"\nApplied proposal #{args.apply}: {results['applied_project']}")

        if not results['success']:
            sys.exit(1)

    except Exception as e:
        print(f"Error: {str(e)}")
        sys.exit(1)


if __name__ == '__main__':
    main()
