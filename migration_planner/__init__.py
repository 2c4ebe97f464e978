"""
Migration Planner - Builds phased migration plans from detected legacy patterns.

Given a source stack, a target stack, detected patterns and codebase
statistics, the planner produces ordered phases of tasks, a dependency graph
with critical path and execution batches, and a complexity-scored summary.
"""

__version__ = "0.1.0"
__author__ = "Migration Planner Team"

from .complexity import estimate_complexity, estimate_task_time
from .converters import (
    convert_detector_results,
    convert_issues_to_patterns,
    convert_mcp_patterns,
    deduplicate_patterns,
)
from .dependency_graph import DependencyGraphBuilder
from .errors import GraphInvariantError, InvalidPlanRequestError, PlannerError
from .phases import PhaseGenerator, should_include_pattern
from .planner import MigrationPlanner
from .request import PlanRequest, validate_plan_request

__all__ = [
    "DependencyGraphBuilder",
    "GraphInvariantError",
    "InvalidPlanRequestError",
    "MigrationPlanner",
    "PhaseGenerator",
    "PlanRequest",
    "PlannerError",
    "convert_detector_results",
    "convert_issues_to_patterns",
    "convert_mcp_patterns",
    "deduplicate_patterns",
    "estimate_complexity",
    "estimate_task_time",
    "should_include_pattern",
    "validate_plan_request",
    "__version__",
]
