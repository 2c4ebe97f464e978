"""
Migration Planner - Composes phases, dependency graph and summary into a plan.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Sequence

from .complexity import estimate_complexity
from .dependency_graph import DependencyGraphBuilder
from .phases import PhaseGenerator
from .request import PlanRequest
from .rules import identify_required_skills
from .schema import (
    CodebaseStats,
    DetectedPattern,
    ExecutionTimeline,
    HealthScore,
    MigrationPlan,
    MigrationTask,
    PlanCustomization,
    PlanSummary,
    RiskLevel,
    SourceStack,
    TargetStack,
    TaskRef,
    TaskType,
    ValidationResult,
)

# Sort order used by optimize_plan (low risk first)
RISK_ORDER = {
    RiskLevel.LOW: 0,
    RiskLevel.MEDIUM: 1,
    RiskLevel.HIGH: 2,
}


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _coerce(value: Any, record_type: type) -> Any:
    if isinstance(value, record_type):
        return value
    return record_type.from_dict(value)


class MigrationPlanner:
    """
    Builds, optimizes and validates migration plans.

    Every operation returns new records; plans passed in are never modified.
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        graph_builder: DependencyGraphBuilder | None = None,
        phase_generator: PhaseGenerator | None = None,
    ):
        """
        Initialize the planner.

        Args:
            logger: Logger for planning diagnostics
            graph_builder: Dependency graph builder (created with ``logger`` if omitted)
            phase_generator: Phase generator (created with ``logger`` if omitted)
        """
        self.logger = logger or logging.getLogger(__name__)
        self.graph_builder = graph_builder or DependencyGraphBuilder(logger=logger)
        self.phase_generator = phase_generator or PhaseGenerator(logger=logger)

    def create_plan(
        self,
        source: SourceStack | Mapping[str, Any],
        target: TargetStack | Mapping[str, Any],
        patterns: Iterable[DetectedPattern | Mapping[str, Any]],
        codebase_stats: CodebaseStats | Mapping[str, Any],
        customization: PlanCustomization | Mapping[str, Any] | None = None,
        health_score: HealthScore | Mapping[str, Any] | None = None,
        plan_id: str | None = None,
    ) -> MigrationPlan:
        """
        Create a migration plan.

        Args:
            source: Stack being migrated from
            target: Stack being migrated to
            patterns: Detected legacy patterns
            codebase_stats: File/line counts and test coverage
            customization: Full or partial customization; missing options use defaults
            health_score: Optional scanner health figures
            plan_id: Plan identifier (defaults to ``plan-<epoch ms>``)

        Returns:
            New MigrationPlan. Cycles are logged here and repaired by ``validate_plan``.
        """
        source = _coerce(source, SourceStack)
        target = _coerce(target, TargetStack)
        patterns = tuple(_coerce(p, DetectedPattern) for p in patterns)
        codebase_stats = _coerce(codebase_stats, CodebaseStats)
        if not isinstance(customization, PlanCustomization):
            customization = PlanCustomization.from_dict(customization)
        if health_score is not None and not isinstance(health_score, HealthScore):
            health_score = HealthScore.from_dict(health_score)

        phases = self.phase_generator.generate_phases(
            source, target, patterns, customization, health_score
        )

        all_tasks = [task for phase in phases for task in phase.tasks]
        nodes = self.graph_builder.build_graph(all_tasks)

        cycles = self.graph_builder.detect_circular_dependencies(all_tasks)
        if cycles:
            self.logger.warning("Circular dependencies detected: %s", cycles)

        summary = self.calculate_summary(all_tasks, source, target, patterns, codebase_stats)
        summary = replace(
            summary,
            parallelism_score=self.graph_builder.calculate_parallelism_score(nodes),
        )

        created_at = datetime.now(timezone.utc)
        if plan_id is None:
            plan_id = f"plan-{int(created_at.timestamp() * 1000)}"

        plan = MigrationPlan(
            id=plan_id,
            source_stack=source,
            target_stack=target,
            phases=phases,
            summary=summary,
            dependency_graph=nodes,
            customization=customization,
            created_at=created_at,
        )

        self.logger.info(
            "Created plan %s: %d phases, %d tasks, complexity %.1f",
            plan.id,
            len(plan.phases),
            summary.total_tasks,
            summary.overall_complexity,
        )
        return plan

    def create_plan_from_request(
        self,
        request: PlanRequest,
        plan_id: str | None = None,
    ) -> MigrationPlan:
        """Create a plan from a parsed request document."""
        return self.create_plan(
            request.source,
            request.target,
            request.patterns,
            request.codebase_stats,
            customization=request.customization,
            health_score=request.health_score,
            plan_id=plan_id,
        )

    def calculate_summary(
        self,
        tasks: Sequence[MigrationTask],
        source: SourceStack,
        target: TargetStack,
        patterns: Sequence[DetectedPattern],
        codebase_stats: CodebaseStats,
    ) -> PlanSummary:
        """
        Aggregate counts, time totals, automation savings, complexity and skills.

        ``parallelism_score`` is left at 0; ``create_plan`` fills it from the graph.
        """
        total_estimated = sum(task.estimated_minutes for task in tasks)
        total_automated = sum(task.automated_minutes for task in tasks)

        automation_percentage = 0.0
        if total_estimated > 0:
            automation_percentage = (total_estimated - total_automated) / total_estimated * 100

        complexity = estimate_complexity(source, target, patterns, codebase_stats)

        return PlanSummary(
            total_tasks=len(tasks),
            automated_tasks=sum(1 for t in tasks if t.task_type == TaskType.AUTOMATED),
            manual_tasks=sum(1 for t in tasks if t.task_type == TaskType.MANUAL),
            review_tasks=sum(1 for t in tasks if t.task_type == TaskType.REVIEW),
            total_estimated_minutes=total_estimated,
            total_automated_minutes=total_automated,
            automation_percentage=_round_half_up(automation_percentage),
            overall_complexity=complexity.score,
            required_skills=tuple(identify_required_skills(source, target, patterns)),
        )

    def optimize_plan(self, plan: MigrationPlan) -> MigrationPlan:
        """
        Reorder tasks inside each phase for safer execution.

        Stable sort: automated tasks first, then lower risk, then fewer
        affected files. Tasks never move between phases and the dependency
        graph is kept as is.
        """

        def sort_key(task: MigrationTask) -> tuple[int, int, int]:
            return (
                0 if task.task_type == TaskType.AUTOMATED else 1,
                RISK_ORDER[task.risk_level],
                len(task.affected_files),
            )

        phases = [replace(phase, tasks=sorted(phase.tasks, key=sort_key)) for phase in plan.phases]

        self.logger.debug("Optimized task order for plan %s", plan.id)
        return replace(plan, phases=phases)

    def validate_plan(self, plan: MigrationPlan) -> ValidationResult:
        """
        Validate a plan, repairing circular dependencies first.

        Problems are reported, never raised:

        - cycles that survive the repair pass
        - task dependencies on ids that are neither tasks nor phases
        - phases without tasks

        Returns:
            ValidationResult whose ``plan`` is the repaired plan (or ``plan``
            itself when there was nothing to repair)
        """
        errors: list[str] = []

        cycles = self.graph_builder.detect_circular_dependencies(plan.tasks)
        if cycles:
            self.logger.warning(
                "Circular dependencies detected in plan %s: %s",
                plan.id,
                "; ".join(" -> ".join(cycle) for cycle in cycles),
            )
            plan = self.fix_circular_dependencies(plan, cycles)

            remaining = self.graph_builder.detect_circular_dependencies(plan.tasks)
            if remaining:
                errors.append(
                    "Circular dependencies could not be resolved: "
                    + "; ".join(" -> ".join(cycle) for cycle in remaining)
                )
            else:
                self.logger.info("Circular dependencies successfully resolved")

        task_ids = {task.id for task in plan.tasks}
        for task in plan.tasks:
            for dep in task.dependencies:
                if isinstance(dep, TaskRef) and dep.task_id not in task_ids:
                    errors.append(f"Task {task.id} depends on non-existent task {dep.task_id}")

        for phase in plan.phases:
            if not phase.tasks:
                errors.append(f"Phase {phase.id} has no tasks")

        if errors:
            self.logger.warning("Plan %s failed validation with %d errors", plan.id, len(errors))

        return ValidationResult(
            valid=not errors,
            errors=tuple(errors),
            plan=plan,
            repaired_cycles=tuple(tuple(cycle) for cycle in cycles),
        )

    def fix_circular_dependencies(
        self,
        plan: MigrationPlan,
        cycles: Sequence[Sequence[str]],
    ) -> MigrationPlan:
        """
        Return a new plan with the edges inside each cycle removed.

        Self-cycles lose the self-reference; multi-task cycles lose every
        dependency between their members. The dependency graph is rebuilt
        from the repaired tasks.
        """
        self.logger.info("Fixing %d circular dependencies in plan %s", len(cycles), plan.id)

        repaired = {
            task.id: task
            for task in self.graph_builder.remove_cycle_edges(plan.tasks, cycles)
        }
        for task in plan.tasks:
            removed = [str(dep) for dep in task.dependencies if dep not in repaired[task.id].dependencies]
            if removed:
                self.logger.info(
                    "Removed circular dependencies from %s: %s", task.id, ", ".join(removed)
                )

        phases = [
            replace(phase, tasks=[repaired[task.id] for task in phase.tasks])
            for phase in plan.phases
        ]

        all_tasks = [task for phase in phases for task in phase.tasks]
        nodes = self.graph_builder.build_graph(all_tasks)
        summary = replace(
            plan.summary,
            parallelism_score=self.graph_builder.calculate_parallelism_score(nodes),
        )

        return replace(plan, phases=phases, dependency_graph=nodes, summary=summary)

    def generate_execution_timeline(self, plan: MigrationPlan) -> ExecutionTimeline:
        """
        Compute sequential and parallel durations plus the execution batches.

        Both durations use automated minutes and the same batches, so they
        agree for any plan whose graph matches its tasks.
        """
        all_tasks = plan.tasks
        nodes = plan.dependency_graph

        sequential = self.graph_builder.estimate_total_time(nodes, all_tasks, use_automation=True)
        batches = self.graph_builder.get_execution_order(nodes)

        automated_minutes = {task.id: task.automated_minutes for task in all_tasks}
        parallel = sum(
            max((automated_minutes.get(task_id, 0) for task_id in batch), default=0)
            for batch in batches
        )

        return ExecutionTimeline(
            sequential=sequential,
            parallel=parallel,
            batches=tuple(tuple(batch) for batch in batches),
        )
