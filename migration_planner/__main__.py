"""
CLI Entry Point for the Migration Planner.
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from . import __version__
from .config import PlannerConfig, ensure_output_dir
from .errors import InvalidPlanRequestError
from .logging_config import log_context, setup_structured_logging
from .output_generator import save_plan_outputs
from .planner import MigrationPlanner
from .request import PlanRequest
from .schema import Aggressiveness

logger = logging.getLogger("migration_planner.cli")


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="migration_planner",
        description="Migration Planner - Build phased migration plans from detected legacy patterns",
    )
    parser.add_argument(
        "--request",
        required=True,
        help="Path to plan request JSON file",
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Output directory for plan files (default: $PLANNER_OUTPUT_DIR or ./artifacts)",
    )
    parser.add_argument(
        "--plan-id",
        default=None,
        help="Plan identifier (default: plan-<epoch ms>)",
    )
    parser.add_argument(
        "--aggressiveness",
        choices=[mode.value for mode in Aggressiveness],
        default=None,
        help="Override the aggressiveness in the request",
    )
    parser.add_argument(
        "--no-optimize",
        action="store_true",
        help="Keep tasks in generation order",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        help="Only validate the plan, do not save outputs",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit logs as JSON",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def load_request(path: str) -> dict:
    """Read a request document from disk."""
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the migration planner CLI."""
    args = build_parser().parse_args(argv)

    log_level = None
    if args.verbose:
        log_level = "DEBUG"
    elif args.quiet:
        log_level = "WARNING"

    try:
        config = PlannerConfig.from_env(
            output_dir=args.output_dir,
            log_level=log_level,
            json_logs=True if args.json_logs else None,
            optimize=False if args.no_optimize else None,
        )
    except ValueError as e:
        print(f"Error: Invalid configuration: {e}", file=sys.stderr)
        return 1

    setup_structured_logging(
        level=config.log_level_value,
        json_format=config.json_logs,
        environment=config.environment,
    )

    try:
        data = load_request(args.request)
    except FileNotFoundError:
        print(f"Error: Request file not found: {args.request}", file=sys.stderr)
        return 1
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON in request: {e}", file=sys.stderr)
        return 1

    try:
        request = PlanRequest.from_dict(data)
    except InvalidPlanRequestError as e:
        print("Error: Invalid plan request", file=sys.stderr)
        for error in e.errors:
            print(f"  - {error}", file=sys.stderr)
        return 1

    # Request value wins over the configured default; the CLI flag wins over both
    aggressiveness = args.aggressiveness
    if aggressiveness is None and not (data.get("customization") or {}).get("aggressiveness"):
        aggressiveness = config.default_aggressiveness
    if aggressiveness is not None:
        request = replace(
            request,
            customization=replace(request.customization, aggressiveness=aggressiveness),
        )

    try:
        planner = MigrationPlanner()

        print(
            f"Generating migration plan: {request.source.framework} {request.source.version}"
            f" -> {request.target.framework} {request.target.version}"
        )
        plan = planner.create_plan_from_request(request, plan_id=args.plan_id)

        with log_context(plan_id=plan.id):
            print(f"✓ Generated {plan.summary.total_tasks} tasks in {len(plan.phases)} phases")

            if config.optimize:
                plan = planner.optimize_plan(plan)
                print("✓ Optimized task order")

            print("Validating plan...")
            validation = planner.validate_plan(plan)
            plan = validation.plan
            if validation.repaired_cycles:
                print(f"✓ Repaired {len(validation.repaired_cycles)} circular dependencies")

            if not validation.valid:
                print("Error: Plan validation failed", file=sys.stderr)
                for error in validation.errors:
                    print(f"  - {error}", file=sys.stderr)
                return 1
            print("✓ Plan validation successful")

            if args.validate_only:
                print("Validation complete (--validate-only specified)")
                return 0

            timeline = planner.generate_execution_timeline(plan)

            output_path = ensure_output_dir(config) / plan.id / "plan"
            print(f"Saving plan outputs to: {output_path}")
            save_plan_outputs(plan, output_path, timeline, validation)

            print("✓ Saved plan.json")
            print("✓ Saved plan.md")
            print("✓ Saved dependency_graph.json")
            print("✓ Saved timeline.json")
            print("✓ Saved plan_stats.json")

            print("\nPlan Summary:")
            print(f"  Total tasks: {plan.summary.total_tasks}")
            print(f"  Automation savings: {plan.summary.automation_percentage}%")
            print(f"  Complexity score: {plan.summary.overall_complexity:.1f}/100")
            print(f"  Execution batches: {len(timeline.batches)}")

            print(f"\nPlan generated successfully: {Path(output_path) / 'plan.json'}")

    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        logger.exception("Plan generation failed: %s", e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
