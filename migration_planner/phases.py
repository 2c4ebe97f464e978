"""
Phase Generator - Turns detected patterns into ordered phases of migration tasks.
"""

from __future__ import annotations

import logging
from typing import Sequence

from .complexity import estimate_task_time
from .rules import (
    detect_entry_point,
    has_modern_build_tool,
    identify_breaking_changes,
    is_react_project,
    is_typescript,
    needs_build_tool_setup,
    requires_migration_guide,
)
from .schema import (
    DetectedPattern,
    HealthScore,
    MigrationPhase,
    MigrationTask,
    PatternCategory,
    PlanCustomization,
    RiskLevel,
    Severity,
    SourceStack,
    TargetStack,
    TaskType,
)

DEPENDENCY_PHASE_ID = "phase-1-dependencies"
DOCUMENTATION_PHASE_ORDER = 2

BUILD_TOOL_TASK_ID = "dep-vite-setup"
BUILD_TOOL_TASK_MINUTES = 10

# Documentation tasks: (task id, name, description, file, estimated, automated, pattern id, pattern name, pattern description)
README_TASK = (
    "doc-readme",
    "Generate/Update README",
    "README generation: analyzes project structure, dependencies and features to produce "
    "documentation with installation guides, usage examples and a project overview",
    "README.md",
    3,
    2,
    "readme-generation",
    "README Generation",
    "Generate comprehensive README from repository analysis",
)
CHANGELOG_TASK = (
    "doc-changelog",
    "Generate CHANGELOG",
    "Changelog generation: documents all changes, improvements and fixes in Keep a Changelog "
    "format for version tracking and release notes",
    "CHANGELOG.md",
    2,
    1,
    "changelog-generation",
    "CHANGELOG Generation",
    "Generate CHANGELOG from transformation metadata",
)
MIGRATION_GUIDE_TASK = (
    "doc-migration-guide",
    "Create Migration Guide",
    "Breaking changes migration guide: step-by-step upgrade instructions with prerequisites, "
    "breaking changes, troubleshooting and rollback procedures",
    "MIGRATION.md",
    4,
    3,
    "migration-guide-generation",
    "Migration Guide Generation",
    "Generate step-by-step migration guide for breaking changes",
)


def should_include_pattern(pattern: DetectedPattern, customization: PlanCustomization) -> bool:
    """
    Inclusion gate for patterns.

    A pattern is excluded when a non-empty allow-list does not name it, or when
    the deny-list does.
    """
    if customization.selected_patterns and pattern.id not in customization.selected_patterns:
        return False

    if pattern.id in customization.disabled_transformations:
        return False

    return True


class PhaseGenerator:
    """
    Generates migration phases from detected patterns.
    """

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger(__name__)

    def generate_phases(
        self,
        source: SourceStack,
        target: TargetStack,
        patterns: Sequence[DetectedPattern],
        customization: PlanCustomization,
        health_score: HealthScore | None = None,
    ) -> list[MigrationPhase]:
        """
        Build the ordered phase list for a migration.

        Args:
            source: Stack being migrated from
            target: Stack being migrated to
            patterns: Detected legacy patterns
            customization: Plan customization (defaults already applied)
            health_score: Optional scanner health figures

        Returns:
            Non-empty phases sorted by ``order``
        """
        self.logger.debug(
            "Generating phases for %s -> %s from %d patterns: %s",
            source.framework,
            target.framework,
            len(patterns),
            [p.id for p in patterns],
        )

        phases: list[MigrationPhase] = []

        # Phase 1: Dependency Updates
        dependency_patterns = [p for p in patterns if p.category == PatternCategory.DEPENDENCY]
        dependency_phase = self._create_dependency_phase(
            dependency_patterns, customization, source, health_score
        )
        if dependency_phase.tasks:
            phases.append(dependency_phase)

        # Phase 2: Documentation
        if not customization.skip_documentation:
            included = [p for p in patterns if should_include_pattern(p, customization)]
            documentation_phase = self._create_documentation_phase(included, customization)
            if documentation_phase.tasks:
                phases.append(documentation_phase)

        phases.sort(key=lambda phase: phase.order)

        self.logger.info(
            "Generated %d phases with %d tasks",
            len(phases),
            sum(len(phase.tasks) for phase in phases),
        )
        return phases

    def _create_dependency_phase(
        self,
        patterns: Sequence[DetectedPattern],
        customization: PlanCustomization,
        source: SourceStack,
        health_score: HealthScore | None,
    ) -> MigrationPhase:
        tasks: list[MigrationTask] = []

        for pattern in patterns:
            if not should_include_pattern(pattern, customization):
                self.logger.debug("Skipping pattern %s (not included)", pattern.id)
                continue
            tasks.append(self._create_dependency_task(pattern, customization))

        needs_setup = needs_build_tool_setup(source)
        self.logger.debug(
            "Build tool check: react=%s, modern_build_tool=%s, build_health=%s, needs_setup=%s",
            is_react_project(source),
            has_modern_build_tool(source),
            health_score.build_health if health_score else None,
            needs_setup,
        )
        if needs_setup and any(task.id == BUILD_TOOL_TASK_ID for task in tasks):
            self.logger.info("Build tool setup already covered by pattern task %s", BUILD_TOOL_TASK_ID)
        elif needs_setup:
            tasks.append(self._create_build_tool_task(source))

        return MigrationPhase.from_tasks(
            id=DEPENDENCY_PHASE_ID,
            name="Transformation Phase 1: Dependency Updates",
            description=(
                "Update package dependencies and resolve version conflicts. This transformation "
                "has the lowest risk and should be completed first."
            ),
            order=1,
            tasks=tasks,
            risk_level=RiskLevel.LOW,
            can_run_in_parallel=True,
        )

    def _create_dependency_task(
        self,
        pattern: DetectedPattern,
        customization: PlanCustomization,
    ) -> MigrationTask:
        task_type = TaskType.AUTOMATED if pattern.automated else TaskType.MANUAL
        complexity = Severity.HIGH if pattern.severity == Severity.HIGH else Severity.MEDIUM
        estimate = estimate_task_time(
            task_type,
            pattern.affected_files,
            complexity,
            customization.aggressiveness,
        )

        return MigrationTask(
            id=f"dep-{pattern.id}",
            name=f"Update {pattern.name}",
            description=pattern.description,
            task_type=task_type,
            estimated_minutes=estimate.manual,
            automated_minutes=estimate.automated,
            risk_level=RiskLevel.MEDIUM if pattern.severity == Severity.HIGH else RiskLevel.LOW,
            affected_files=pattern.affected_files,
            dependencies=(),
            breaking_changes=identify_breaking_changes(pattern),
            pattern=pattern,
        )

    def _create_build_tool_task(self, source: SourceStack) -> MigrationTask:
        entry_point = detect_entry_point(source)
        config_ext = "ts" if is_typescript(source) else "js"
        affected_files = (
            "package.json",
            f"vite.config.{config_ext}",
            "index.html",
            entry_point,
            ".eslintrc.json",
            ".prettierrc",
            ".eslintignore",
            ".prettierignore",
        )

        self.logger.info("Adding build tool setup task with entry point %s", entry_point)

        return MigrationTask(
            id=BUILD_TOOL_TASK_ID,
            name="Setup Vite Build Tool",
            description=(
                "Add Vite for fast development and optimized production builds. Includes "
                "configuration files, updated scripts, and React 18+ setup."
            ),
            task_type=TaskType.AUTOMATED,
            estimated_minutes=BUILD_TOOL_TASK_MINUTES,
            automated_minutes=BUILD_TOOL_TASK_MINUTES,
            risk_level=RiskLevel.LOW,
            affected_files=affected_files,
            dependencies=(),
            breaking_changes=(
                f"Entry point changes to {entry_point}",
                "index.html moves from public/ to root directory",
                "Build scripts change to use Vite commands",
            ),
            pattern=DetectedPattern(
                id="vite-setup",
                name="Vite Build Tool",
                category=PatternCategory.BUILD_TOOL,
                severity=Severity.MEDIUM,
                occurrences=1,
                affected_files=affected_files,
                description="Modern build tool with fast HMR and optimized builds",
                automated=True,
            ),
        )

    def _create_documentation_phase(
        self,
        included_patterns: Sequence[DetectedPattern],
        customization: PlanCustomization,
    ) -> MigrationPhase:
        definitions = [README_TASK, CHANGELOG_TASK]
        if requires_migration_guide(included_patterns, customization.aggressiveness):
            definitions.append(MIGRATION_GUIDE_TASK)

        tasks = [self._create_documentation_task(*definition) for definition in definitions]

        return MigrationPhase.from_tasks(
            id=f"phase-{DOCUMENTATION_PHASE_ORDER}-documentation",
            name=f"Transformation Phase {DOCUMENTATION_PHASE_ORDER}: Documentation Updates",
            description="Update project documentation to reflect transformation changes.",
            order=DOCUMENTATION_PHASE_ORDER,
            tasks=tasks,
            risk_level=RiskLevel.LOW,
            can_run_in_parallel=True,
        )

    @staticmethod
    def _create_documentation_task(
        task_id: str,
        name: str,
        description: str,
        file_name: str,
        estimated_minutes: int,
        automated_minutes: int,
        pattern_id: str,
        pattern_name: str,
        pattern_description: str,
    ) -> MigrationTask:
        return MigrationTask(
            id=task_id,
            name=name,
            description=description,
            task_type=TaskType.AUTOMATED,
            estimated_minutes=estimated_minutes,
            automated_minutes=automated_minutes,
            risk_level=RiskLevel.LOW,
            affected_files=(file_name,),
            dependencies=(),
            breaking_changes=(),
            pattern=DetectedPattern(
                id=pattern_id,
                name=pattern_name,
                category=PatternCategory.DOCUMENTATION,
                severity=Severity.LOW,
                occurrences=1,
                affected_files=(file_name,),
                description=pattern_description,
                automated=True,
            ),
        )
