"""
Tests for the migration planner.
"""

import logging
from datetime import datetime, timezone

import pytest

from migration_planner.planner import MigrationPlanner
from migration_planner.request import PlanRequest
from migration_planner.schema import (
    CodebaseStats,
    DetectedPattern,
    MigrationPhase,
    MigrationPlan,
    MigrationTask,
    PlanCustomization,
    SourceStack,
    TargetStack,
    TaskRef,
)


def create_source():
    """Create a React 17 source stack without a modern build tool."""
    return SourceStack(
        framework="react",
        version="17.0.2",
        language="javascript",
        dependencies={"react": "17.0.2", "react-scripts": "4.0.3", "lodash": "4.17.15"},
    )


def create_target():
    return TargetStack(framework="react", version="18.2.0", language="javascript")


def create_patterns():
    """Create a small mix of detected patterns."""
    return [
        DetectedPattern(
            id="lodash",
            name="Outdated lodash",
            category="dependency",
            severity="medium",
            affected_files=("package.json",),
            automated=True,
        ),
        DetectedPattern(
            id="react-dom",
            name="Legacy ReactDOM.render API",
            category="dependency",
            severity="high",
            affected_files=("src/index.js", "src/App.js"),
            automated=False,
        ),
        DetectedPattern(
            id="class-components",
            name="Class components",
            category="component",
            severity="low",
            affected_files=("src/App.js",),
        ),
    ]


def create_stats():
    return CodebaseStats(total_files=40, total_lines=4000, test_coverage=35)


def make_task(task_id, dependencies=(), task_type="automated", risk="low", files=1,
              estimated=10, automated=5):
    """Create a task for hand-built plans."""
    return MigrationTask(
        id=task_id,
        name=f"Task {task_id}",
        description="",
        task_type=task_type,
        estimated_minutes=estimated,
        automated_minutes=automated,
        risk_level=risk,
        affected_files=[f"file{i}.js" for i in range(files)],
        dependencies=dependencies,
    )


def make_plan(planner, *phase_tasks):
    """Build a plan directly from lists of tasks, one list per phase."""
    phases = [
        MigrationPhase.from_tasks(
            id=f"phase-{index}-test",
            name=f"Phase {index}",
            description="",
            order=index,
            tasks=tasks,
            risk_level="low",
            can_run_in_parallel=True,
        )
        for index, tasks in enumerate(phase_tasks, start=1)
    ]
    all_tasks = [task for phase in phases for task in phase.tasks]
    summary = planner.calculate_summary(all_tasks, create_source(), create_target(), [], create_stats())
    return MigrationPlan(
        id="plan-test",
        source_stack=create_source(),
        target_stack=create_target(),
        phases=phases,
        summary=summary,
        dependency_graph=planner.graph_builder.build_graph(all_tasks),
        customization=PlanCustomization(),
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


class TestCreatePlan:
    """Tests for plan creation."""

    def test_create_plan_structure(self):
        """Test phases, graph and summary of a generated plan."""
        planner = MigrationPlanner()
        plan = planner.create_plan(create_source(), create_target(), create_patterns(), create_stats())

        assert [phase.id for phase in plan.phases] == ["phase-1-dependencies", "phase-2-documentation"]
        assert [task.id for task in plan.tasks] == [
            "dep-lodash",
            "dep-react-dom",
            "dep-vite-setup",
            "doc-readme",
            "doc-changelog",
            "doc-migration-guide",
        ]
        assert [node.task_id for node in plan.dependency_graph] == [task.id for task in plan.tasks]
        assert plan.summary.total_tasks == 6
        assert plan.summary.automated_tasks == 5
        assert plan.summary.manual_tasks == 1
        assert plan.summary.review_tasks == 0
        assert plan.summary.parallelism_score == 100.0
        assert plan.summary.required_skills[-2:] == ("Git version control", "Code review")

    def test_plan_id_and_timestamp(self):
        """Test the default plan id and UTC creation time."""
        plan = MigrationPlanner().create_plan(create_source(), create_target(), [], create_stats())

        assert plan.id.startswith("plan-")
        assert plan.id[len("plan-"):].isdigit()
        assert plan.created_at.tzinfo is not None
        assert plan.created_at.utcoffset().total_seconds() == 0

    def test_plan_id_override(self):
        """Test that a caller-supplied plan id is used."""
        plan = MigrationPlanner().create_plan(
            create_source(), create_target(), [], create_stats(), plan_id="plan-fixed"
        )

        assert plan.id == "plan-fixed"

    def test_customization_defaults_merged(self):
        """Test that a partial customization gets defaults for the rest."""
        plan = MigrationPlanner().create_plan(
            create_source(),
            create_target(),
            create_patterns(),
            create_stats(),
            customization={"skip_documentation": True},
        )

        assert plan.customization.aggressiveness.value == "balanced"
        assert plan.customization.skip_documentation is True
        assert [phase.id for phase in plan.phases] == ["phase-1-dependencies"]

    def test_accepts_plain_dicts(self):
        """Test that dict inputs are converted to records."""
        plan = MigrationPlanner().create_plan(
            create_source().to_dict(),
            create_target().to_dict(),
            [pattern.to_dict() for pattern in create_patterns()],
            create_stats().to_dict(),
            health_score={"build_health": 80, "total": 70},
        )

        assert plan.summary.total_tasks == 6

    def test_vite_setup_pattern_keeps_task_ids_unique(self):
        """Test that a detected vite-setup pattern does not collide with the build tool task."""
        pattern = DetectedPattern(
            id="vite-setup",
            name="Move to Vite",
            category="dependency",
            severity="medium",
            affected_files=("package.json",),
            automated=True,
        )

        plan = MigrationPlanner().create_plan(create_source(), create_target(), [pattern], create_stats())

        task_ids = [task.id for task in plan.tasks]
        assert task_ids.count("dep-vite-setup") == 1
        assert len(task_ids) == len(set(task_ids))

    def test_task_serialization_fields(self):
        """Test the exact fields written for each task."""
        plan = MigrationPlanner().create_plan(create_source(), create_target(), create_patterns(), create_stats())

        assert set(plan.get_task("dep-lodash").to_dict()) == {
            "id",
            "name",
            "description",
            "type",
            "estimated_minutes",
            "automated_minutes",
            "risk_level",
            "affected_files",
            "dependencies",
            "breaking_changes",
            "pattern",
        }

    def test_deterministic_except_timestamp(self):
        """Test that the same inputs produce the same plan content."""
        planner = MigrationPlanner()
        first = planner.create_plan(create_source(), create_target(), create_patterns(), create_stats(), plan_id="p")
        second = planner.create_plan(create_source(), create_target(), create_patterns(), create_stats(), plan_id="p")

        first_dict = first.to_dict()
        second_dict = second.to_dict()
        first_dict.pop("created_at")
        second_dict.pop("created_at")
        assert first_dict == second_dict

    def test_create_plan_from_request(self):
        """Test building a plan from a request document."""
        request = PlanRequest.from_dict(
            {
                "source": create_source().to_dict(),
                "target": create_target().to_dict(),
                "patterns": [pattern.to_dict() for pattern in create_patterns()],
                "codebase_stats": create_stats().to_dict(),
                "customization": {"selected_patterns": ["lodash"]},
            }
        )

        plan = MigrationPlanner().create_plan_from_request(request, plan_id="plan-req")

        assert plan.id == "plan-req"
        assert "dep-react-dom" not in [task.id for task in plan.tasks]


class TestSummary:
    """Tests for summary statistics."""

    def test_automation_percentage(self):
        """Test savings of 100 estimated vs 20 automated minutes."""
        planner = MigrationPlanner()
        summary = planner.calculate_summary(
            [make_task("a", estimated=100, automated=20)],
            create_source(),
            create_target(),
            [],
            create_stats(),
        )

        assert summary.automation_percentage == 80

    def test_automation_percentage_rounds_half_up(self):
        """Test that 12.5% rounds to 13."""
        planner = MigrationPlanner()
        summary = planner.calculate_summary(
            [make_task("a", estimated=8, automated=7)],
            create_source(),
            create_target(),
            [],
            create_stats(),
        )

        assert summary.automation_percentage == 13

    def test_no_tasks(self):
        """Test that an empty task list has 0% automation."""
        summary = MigrationPlanner().calculate_summary(
            [], create_source(), create_target(), [], create_stats()
        )

        assert summary.total_tasks == 0
        assert summary.automation_percentage == 0


class TestOptimizePlan:
    """Tests for task reordering."""

    def test_sort_order(self):
        """Test automated first, then risk, then file count."""
        planner = MigrationPlanner()
        plan = make_plan(
            planner,
            [
                make_task("manual-low", task_type="manual", risk="low", files=1),
                make_task("auto-high", risk="high", files=3),
                make_task("auto-low-2", risk="low", files=2),
                make_task("auto-low-1", risk="low", files=1),
                make_task("review-low", task_type="review", risk="low", files=0),
            ],
            [make_task("doc-b", risk="medium"), make_task("doc-a", risk="low")],
        )

        optimized = planner.optimize_plan(plan)

        assert [task.id for task in optimized.phases[0].tasks] == [
            "auto-low-1",
            "auto-low-2",
            "auto-high",
            "review-low",
            "manual-low",
        ]
        assert [task.id for task in optimized.phases[1].tasks] == ["doc-a", "doc-b"]

    def test_input_plan_unchanged(self):
        """Test that optimization returns a new plan."""
        planner = MigrationPlanner()
        plan = make_plan(planner, [make_task("b", risk="high"), make_task("a")])

        optimized = planner.optimize_plan(plan)

        assert [task.id for task in plan.tasks] == ["b", "a"]
        assert [task.id for task in optimized.tasks] == ["a", "b"]
        assert optimized.dependency_graph == plan.dependency_graph

    def test_optimize_then_validate(self):
        """Test that an optimized valid plan stays valid."""
        planner = MigrationPlanner()
        plan = planner.create_plan(create_source(), create_target(), create_patterns(), create_stats())

        result = planner.validate_plan(planner.optimize_plan(plan))

        assert result.valid is True
        assert result.errors == ()
        assert result.repaired_cycles == ()


class TestValidatePlan:
    """Tests for validation and cycle repair."""

    def test_three_task_cycle_repaired(self):
        """Test that a -> b -> c -> a is repaired and schedulable."""
        planner = MigrationPlanner()
        plan = make_plan(planner, [make_task("a", ["b"]), make_task("b", ["c"]), make_task("c", ["a"])])

        result = planner.validate_plan(plan)

        assert result.valid is True
        assert len(result.repaired_cycles) == 1
        assert planner.graph_builder.detect_circular_dependencies(result.plan.tasks) == []
        assert all(task.dependencies == () for task in result.plan.tasks)

        batches = planner.graph_builder.get_execution_order(result.plan.dependency_graph)
        assert sorted(task_id for batch in batches for task_id in batch) == ["a", "b", "c"]

        # The input plan keeps its original dependencies
        assert plan.get_task("a").dependencies == (TaskRef("b"),)

    def test_repair_logged_only_when_plan_changes(self, caplog):
        """Test that building the graph of a cyclic plan does not report a repair."""
        planner = MigrationPlanner()

        with caplog.at_level(logging.INFO, logger="migration_planner"):
            plan = make_plan(planner, [make_task("a", ["b"]), make_task("b", ["a"])])
        assert "Removed circular dependencies" not in caplog.text

        caplog.clear()
        with caplog.at_level(logging.INFO, logger="migration_planner"):
            planner.validate_plan(plan)
        assert "Removed circular dependencies from a: b" in caplog.text
        assert "Removed circular dependencies from b: a" in caplog.text

    def test_self_cycle_repaired(self):
        """Test that a self-reference is removed."""
        planner = MigrationPlanner()
        plan = make_plan(planner, [make_task("a", ["a", "b"]), make_task("b")])

        result = planner.validate_plan(plan)

        assert result.valid is True
        assert result.repaired_cycles == (("a",),)
        assert result.plan.get_task("a").dependencies == (TaskRef("b"),)

    def test_repaired_graph_rebuilt(self):
        """Test that the repaired plan's nodes match its tasks."""
        planner = MigrationPlanner()
        plan = make_plan(planner, [make_task("a", ["b"]), make_task("b", ["a"])])

        result = planner.validate_plan(plan)

        assert all(node.depends_on == () for node in result.plan.dependency_graph)
        assert result.plan.summary.parallelism_score == 100.0

    def test_missing_dependency(self):
        """Test that dangling task references are reported."""
        planner = MigrationPlanner()
        plan = make_plan(planner, [make_task("a", ["ghost"])])

        result = planner.validate_plan(plan)

        assert result.valid is False
        assert result.errors == ("Task a depends on non-existent task ghost",)

    def test_phase_gate_is_not_missing(self):
        """Test that phase gates are not reported as dangling."""
        planner = MigrationPlanner()
        plan = make_plan(planner, [make_task("a", ["phase-1-test"])])

        assert planner.validate_plan(plan).valid is True

    def test_empty_phase(self):
        """Test that phases without tasks are reported."""
        planner = MigrationPlanner()
        plan = make_plan(planner, [make_task("a")], [])

        result = planner.validate_plan(plan)

        assert result.valid is False
        assert result.errors == ("Phase phase-2-test has no tasks",)

    def test_valid_plan_returned_unchanged(self):
        """Test that a plan with nothing to repair is passed through."""
        planner = MigrationPlanner()
        plan = make_plan(planner, [make_task("a"), make_task("b", ["a"])])

        result = planner.validate_plan(plan)

        assert result.plan is plan


class TestExecutionTimeline:
    """Tests for timeline generation."""

    def test_timeline(self):
        """Test batches and durations for a small chain."""
        planner = MigrationPlanner()
        plan = make_plan(
            planner,
            [
                make_task("a", automated=5),
                make_task("b", ["a"], automated=3),
                make_task("c", automated=7),
            ],
        )

        timeline = planner.generate_execution_timeline(plan)

        assert timeline.batches == (("a", "c"), ("b",))
        assert timeline.parallel == 10
        assert timeline.sequential == 10

    def test_generated_plan_timeline(self):
        """Test that a generated plan runs in a single batch."""
        planner = MigrationPlanner()
        plan = planner.create_plan(create_source(), create_target(), create_patterns(), create_stats())

        timeline = planner.generate_execution_timeline(plan)

        assert len(timeline.batches) == 1
        assert timeline.parallel == max(task.automated_minutes for task in plan.tasks)
        assert timeline.sequential == timeline.parallel

    def test_empty_plan(self):
        """Test a plan without tasks."""
        planner = MigrationPlanner()
        plan = make_plan(planner)

        timeline = planner.generate_execution_timeline(plan)

        assert timeline.batches == ()
        assert timeline.sequential == 0
        assert timeline.parallel == 0


def test_plan_to_dict_uses_string_dependencies():
    """Test JSON view of a plan."""
    planner = MigrationPlanner()
    plan = make_plan(planner, [make_task("a"), make_task("b", ["a", "phase-1-test"])])

    data = plan.to_dict()

    assert data["phases"][0]["tasks"][1]["dependencies"] == ["a", "phase-1-test"]
    assert data["dependency_graph"][0]["blocked_by"] == ["b"]
    assert data["created_at"] == "2024-01-01T00:00:00+00:00"


def test_unknown_enum_value_rejected():
    """Test that invalid enum values are rejected when building records."""
    with pytest.raises(ValueError):
        PlanCustomization(aggressiveness="reckless")
