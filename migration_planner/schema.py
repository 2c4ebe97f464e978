"""
Plan Schema - Records that describe stacks, detected patterns, tasks, phases and plans.

All records are frozen dataclasses. Collections are stored as tuples and
mappings as read-only proxies, so a plan handed to another layer cannot be
changed behind the planner's back. Cycle repair produces new task and plan
records instead of editing existing ones.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Union

# Dependency ids starting with this prefix refer to a whole phase, not a task.
PHASE_GATE_PREFIX = "phase-"


class PatternCategory(str, Enum):
    """Categories a detected legacy pattern can belong to."""

    DEPENDENCY = "dependency"
    STRUCTURAL = "structural"
    COMPONENT = "component"
    DOCUMENTATION = "documentation"
    BUILD_TOOL = "build-tool"


class Severity(str, Enum):
    """Severity of a detected pattern."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RiskLevel(str, Enum):
    """Risk attached to a task or phase."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskType(str, Enum):
    """How a task gets done."""

    AUTOMATED = "automated"
    MANUAL = "manual"
    REVIEW = "review"


class Aggressiveness(str, Enum):
    """Speed/caution trade-off. Only affects time estimates."""

    CONSERVATIVE = "conservative"
    BALANCED = "balanced"
    AGGRESSIVE = "aggressive"


class ComplexityLevel(str, Enum):
    """Discrete migration difficulty derived from the 0-100 score."""

    TRIVIAL = "trivial"
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"
    VERY_COMPLEX = "very-complex"


# =============================================================================
# Dependency references
# =============================================================================

@dataclass(frozen=True)
class TaskRef:
    """Dependency on a concrete task."""

    task_id: str

    def __str__(self) -> str:
        return self.task_id


@dataclass(frozen=True)
class PhaseGate:
    """Dependency on a whole phase. Never an edge in the task graph."""

    phase_id: str

    def __str__(self) -> str:
        return self.phase_id


DependencyRef = Union[TaskRef, PhaseGate]


def parse_dependency_ref(value: str | TaskRef | PhaseGate) -> DependencyRef:
    """
    Turn a raw dependency id into a typed reference.

    Args:
        value: A ``TaskRef``/``PhaseGate`` (returned unchanged) or a string id

    Returns:
        ``PhaseGate`` for ids carrying the phase prefix, ``TaskRef`` otherwise
    """
    if isinstance(value, (TaskRef, PhaseGate)):
        return value
    if not isinstance(value, str):
        raise TypeError(f"Dependency reference must be a string, got {type(value).__name__}")
    if value.startswith(PHASE_GATE_PREFIX):
        return PhaseGate(value)
    return TaskRef(value)


def _freeze_mapping(value: Mapping[str, str] | None) -> Mapping[str, str]:
    return MappingProxyType(dict(value or {}))


# =============================================================================
# Stacks and patterns
# =============================================================================

@dataclass(frozen=True)
class SourceStack:
    """The technology stack being migrated away from."""

    framework: str
    version: str
    language: str
    dependencies: Mapping[str, str] = field(default_factory=dict)
    patterns: tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "dependencies", _freeze_mapping(self.dependencies))
        object.__setattr__(self, "patterns", tuple(self.patterns))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SourceStack":
        return cls(
            framework=data["framework"],
            version=data["version"],
            language=data["language"],
            dependencies=data.get("dependencies") or {},
            patterns=data.get("patterns") or (),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "framework": self.framework,
            "version": self.version,
            "language": self.language,
            "dependencies": dict(self.dependencies),
            "patterns": list(self.patterns),
        }


@dataclass(frozen=True)
class TargetStack:
    """The technology stack being migrated to."""

    framework: str
    version: str
    language: str
    dependencies: Mapping[str, str] = field(default_factory=dict)
    features: tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "dependencies", _freeze_mapping(self.dependencies))
        object.__setattr__(self, "features", tuple(self.features))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TargetStack":
        return cls(
            framework=data["framework"],
            version=data["version"],
            language=data["language"],
            dependencies=data.get("dependencies") or {},
            features=data.get("features") or (),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "framework": self.framework,
            "version": self.version,
            "language": self.language,
            "dependencies": dict(self.dependencies),
            "features": list(self.features),
        }


@dataclass(frozen=True)
class DetectedPattern:
    """A legacy-code pattern reported by an external detector."""

    id: str
    name: str
    category: PatternCategory
    severity: Severity
    occurrences: int = 1
    affected_files: tuple[str, ...] = ()
    description: str = ""
    automated: bool = False

    def __post_init__(self):
        object.__setattr__(self, "category", PatternCategory(self.category))
        object.__setattr__(self, "severity", Severity(self.severity))
        object.__setattr__(self, "affected_files", tuple(self.affected_files))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DetectedPattern":
        return cls(
            id=data["id"],
            name=data["name"],
            category=data["category"],
            severity=data["severity"],
            occurrences=data.get("occurrences", 1),
            affected_files=data.get("affected_files") or (),
            description=data.get("description", ""),
            automated=bool(data.get("automated", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "severity": self.severity.value,
            "occurrences": self.occurrences,
            "affected_files": list(self.affected_files),
            "description": self.description,
            "automated": self.automated,
        }


# =============================================================================
# Tasks and phases
# =============================================================================

@dataclass(frozen=True)
class MigrationTask:
    """One unit of migration work."""

    id: str
    name: str
    description: str
    task_type: TaskType
    estimated_minutes: int  # manual-equivalent effort
    automated_minutes: int  # effort with tooling
    risk_level: RiskLevel
    affected_files: tuple[str, ...] = ()
    dependencies: tuple[DependencyRef, ...] = ()
    breaking_changes: tuple[str, ...] = ()
    pattern: DetectedPattern | None = None

    def __post_init__(self):
        object.__setattr__(self, "task_type", TaskType(self.task_type))
        object.__setattr__(self, "risk_level", RiskLevel(self.risk_level))
        object.__setattr__(self, "affected_files", tuple(self.affected_files))
        object.__setattr__(
            self,
            "dependencies",
            tuple(parse_dependency_ref(dep) for dep in self.dependencies),
        )
        object.__setattr__(self, "breaking_changes", tuple(self.breaking_changes))

    @property
    def task_dependency_ids(self) -> list[str]:
        """Ids of the tasks (not phases) this task depends on."""
        return [dep.task_id for dep in self.dependencies if isinstance(dep, TaskRef)]

    def with_dependencies(self, dependencies: Iterable[DependencyRef | str]) -> "MigrationTask":
        """Return a copy of this task with a new dependency list."""
        return replace(self, dependencies=tuple(dependencies))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.task_type.value,
            "estimated_minutes": self.estimated_minutes,
            "automated_minutes": self.automated_minutes,
            "risk_level": self.risk_level.value,
            "affected_files": list(self.affected_files),
            "dependencies": [str(dep) for dep in self.dependencies],
            "breaking_changes": list(self.breaking_changes),
        }
        if self.pattern is not None:
            data["pattern"] = self.pattern.to_dict()
        return data


@dataclass(frozen=True)
class MigrationPhase:
    """An ordered group of tasks."""

    id: str
    name: str
    description: str
    order: int
    tasks: tuple[MigrationTask, ...]
    total_estimated_minutes: int
    total_automated_minutes: int
    risk_level: RiskLevel
    can_run_in_parallel: bool

    def __post_init__(self):
        object.__setattr__(self, "tasks", tuple(self.tasks))
        object.__setattr__(self, "risk_level", RiskLevel(self.risk_level))

    @classmethod
    def from_tasks(
        cls,
        *,
        id: str,
        name: str,
        description: str,
        order: int,
        tasks: Iterable[MigrationTask],
        risk_level: RiskLevel,
        can_run_in_parallel: bool,
    ) -> "MigrationPhase":
        """Build a phase, deriving the time totals from its tasks."""
        tasks = tuple(tasks)
        return cls(
            id=id,
            name=name,
            description=description,
            order=order,
            tasks=tasks,
            total_estimated_minutes=sum(t.estimated_minutes for t in tasks),
            total_automated_minutes=sum(t.automated_minutes for t in tasks),
            risk_level=risk_level,
            can_run_in_parallel=can_run_in_parallel,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "order": self.order,
            "tasks": [task.to_dict() for task in self.tasks],
            "total_estimated_minutes": self.total_estimated_minutes,
            "total_automated_minutes": self.total_automated_minutes,
            "risk_level": self.risk_level.value,
            "can_run_in_parallel": self.can_run_in_parallel,
        }


@dataclass(frozen=True)
class DependencyNode:
    """Scheduling view of a single task."""

    task_id: str
    depends_on: tuple[DependencyRef, ...]
    blocked_by: tuple[str, ...]  # ids of tasks that depend on this one
    can_run_in_parallel: bool
    critical_path: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "depends_on": [str(dep) for dep in self.depends_on],
            "blocked_by": list(self.blocked_by),
            "can_run_in_parallel": self.can_run_in_parallel,
            "critical_path": self.critical_path,
        }


# =============================================================================
# Complexity
# =============================================================================

@dataclass(frozen=True)
class ComplexityFactors:
    """Raw inputs to the complexity score."""

    codebase_size: int  # lines of code
    file_count: int
    dependency_count: int
    pattern_complexity: float  # 0-100
    framework_distance: float  # 0-100
    custom_code_ratio: float  # 0-100
    test_coverage: float  # 0-100

    def to_dict(self) -> dict[str, Any]:
        return {
            "codebase_size": self.codebase_size,
            "file_count": self.file_count,
            "dependency_count": self.dependency_count,
            "pattern_complexity": self.pattern_complexity,
            "framework_distance": self.framework_distance,
            "custom_code_ratio": self.custom_code_ratio,
            "test_coverage": self.test_coverage,
        }


@dataclass(frozen=True)
class ComplexityEstimate:
    """Weighted complexity score with its level and recommendations."""

    score: float  # 0-100
    level: ComplexityLevel
    factors: ComplexityFactors
    recommendations: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "level": self.level.value,
            "factors": self.factors.to_dict(),
            "recommendations": list(self.recommendations),
        }


@dataclass(frozen=True)
class CodebaseStats:
    """Size and coverage figures for the codebase being migrated."""

    total_files: int
    total_lines: int
    test_coverage: float

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CodebaseStats":
        return cls(
            total_files=data["total_files"],
            total_lines=data["total_lines"],
            test_coverage=data["test_coverage"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_files": self.total_files,
            "total_lines": self.total_lines,
            "test_coverage": self.test_coverage,
        }


@dataclass(frozen=True)
class HealthScore:
    """Optional repository health figures supplied by the scanner."""

    build_health: float | None = None
    total: float | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "HealthScore | None":
        if data is None:
            return None
        return cls(build_health=data.get("build_health"), total=data.get("total"))


# =============================================================================
# Customization and plan
# =============================================================================

@dataclass(frozen=True)
class PlanCustomization:
    """User choices that shape plan generation."""

    aggressiveness: Aggressiveness = Aggressiveness.BALANCED
    enabled_transformations: tuple[str, ...] = ()
    disabled_transformations: tuple[str, ...] = ()  # deny-list of pattern ids
    selected_patterns: tuple[str, ...] = ()  # allow-list of pattern ids; empty means all
    skip_tests: bool = False
    skip_documentation: bool = False

    def __post_init__(self):
        object.__setattr__(self, "aggressiveness", Aggressiveness(self.aggressiveness))
        object.__setattr__(self, "enabled_transformations", tuple(self.enabled_transformations))
        object.__setattr__(self, "disabled_transformations", tuple(self.disabled_transformations))
        object.__setattr__(self, "selected_patterns", tuple(self.selected_patterns))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "PlanCustomization":
        """Merge a partial customization with the defaults. ``None`` values mean "use default"."""
        data = data or {}
        return cls(
            aggressiveness=data.get("aggressiveness") or Aggressiveness.BALANCED,
            enabled_transformations=data.get("enabled_transformations") or (),
            disabled_transformations=data.get("disabled_transformations") or (),
            selected_patterns=data.get("selected_patterns") or (),
            skip_tests=bool(data.get("skip_tests") or False),
            skip_documentation=bool(data.get("skip_documentation") or False),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "aggressiveness": self.aggressiveness.value,
            "enabled_transformations": list(self.enabled_transformations),
            "disabled_transformations": list(self.disabled_transformations),
            "selected_patterns": list(self.selected_patterns),
            "skip_tests": self.skip_tests,
            "skip_documentation": self.skip_documentation,
        }


@dataclass(frozen=True)
class PlanSummary:
    """Aggregate figures for a plan."""

    total_tasks: int
    automated_tasks: int
    manual_tasks: int
    review_tasks: int
    total_estimated_minutes: int
    total_automated_minutes: int
    automation_percentage: int
    overall_complexity: float
    required_skills: tuple[str, ...]
    parallelism_score: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_tasks": self.total_tasks,
            "automated_tasks": self.automated_tasks,
            "manual_tasks": self.manual_tasks,
            "review_tasks": self.review_tasks,
            "total_estimated_minutes": self.total_estimated_minutes,
            "total_automated_minutes": self.total_automated_minutes,
            "automation_percentage": self.automation_percentage,
            "overall_complexity": self.overall_complexity,
            "required_skills": list(self.required_skills),
            "parallelism_score": self.parallelism_score,
        }


@dataclass(frozen=True)
class MigrationPlan:
    """Complete migration plan."""

    id: str
    source_stack: SourceStack
    target_stack: TargetStack
    phases: tuple[MigrationPhase, ...]
    summary: PlanSummary
    dependency_graph: tuple[DependencyNode, ...]
    customization: PlanCustomization
    created_at: datetime

    def __post_init__(self):
        object.__setattr__(self, "phases", tuple(self.phases))
        object.__setattr__(self, "dependency_graph", tuple(self.dependency_graph))

    @property
    def tasks(self) -> list[MigrationTask]:
        """All tasks in phase order."""
        return [task for phase in self.phases for task in phase.tasks]

    def get_task(self, task_id: str) -> MigrationTask | None:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source_stack": self.source_stack.to_dict(),
            "target_stack": self.target_stack.to_dict(),
            "phases": [phase.to_dict() for phase in self.phases],
            "summary": self.summary.to_dict(),
            "dependency_graph": [node.to_dict() for node in self.dependency_graph],
            "customization": self.customization.to_dict(),
            "created_at": self.created_at.isoformat(),
        }


# =============================================================================
# Orchestrator results
# =============================================================================

@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of plan validation.

    ``plan`` is the plan to use from here on: the input plan when nothing was
    repaired, otherwise a new plan with cycle edges removed.
    """

    valid: bool
    errors: tuple[str, ...]
    plan: MigrationPlan
    repaired_cycles: tuple[tuple[str, ...], ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": list(self.errors),
            "repaired_cycles": [list(cycle) for cycle in self.repaired_cycles],
        }


@dataclass(frozen=True)
class ExecutionTimeline:
    """Timing figures and execution batches for a plan."""

    sequential: int
    parallel: int
    batches: tuple[tuple[str, ...], ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "sequential": self.sequential,
            "parallel": self.parallel,
            "batches": [list(batch) for batch in self.batches],
        }
