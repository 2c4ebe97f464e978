"""
Tests for plan output generation.
"""

import json

from migration_planner.output_generator import (
    generate_plan_markdown,
    save_plan_outputs,
    visualize_graph,
)
from migration_planner.planner import MigrationPlanner
from migration_planner.schema import (
    CodebaseStats,
    DetectedPattern,
    MigrationTask,
    SourceStack,
    TargetStack,
)


def create_plan():
    """Create a plan for a React 17 -> 18 migration."""
    planner = MigrationPlanner()
    plan = planner.create_plan(
        SourceStack("react", "17.0.2", "javascript", {"react": "17.0.2"}),
        TargetStack("react", "18.2.0", "javascript"),
        [
            DetectedPattern(
                id="lodash",
                name="Outdated lodash",
                category="dependency",
                severity="high",
                affected_files=("package.json",),
            )
        ],
        CodebaseStats(total_files=12, total_lines=900, test_coverage=60),
        plan_id="plan-42",
    )
    return planner, plan


def make_task(task_id, dependencies=(), estimated=10):
    return MigrationTask(
        id=task_id,
        name=f"Task {task_id}",
        description="",
        task_type="automated",
        estimated_minutes=estimated,
        automated_minutes=1,
        risk_level="low",
        dependencies=dependencies,
    )


def test_generate_plan_markdown():
    """Test markdown sections and figures."""
    _, plan = create_plan()

    md = generate_plan_markdown(plan)

    assert md.startswith("# Migration Plan Summary")
    assert "**Source:** react 17.0.2" in md
    assert "**Target:** react 18.2.0" in md
    assert "## Overview" in md
    assert f"- Total Tasks: {plan.summary.total_tasks}" in md
    assert f"- Automation Savings: {plan.summary.automation_percentage}%" in md
    assert "## Time Estimates" in md
    assert "## Required Skills" in md
    assert "- Code review" in md
    assert "### Transformation Phase 1: Dependency Updates" in md
    assert "High-risk change - thorough testing required" in md
    assert "## Execution Timeline" not in md


def test_generate_plan_markdown_hours_round_up():
    """Test that minute totals are shown as whole hours, rounded up."""
    _, plan = create_plan()

    md = generate_plan_markdown(plan)

    # 30 + 10 + 3 + 2 + 4 = 49 manual minutes
    assert plan.summary.total_estimated_minutes == 49
    assert "- Manual Migration: 1 hours" in md


def test_generate_plan_markdown_with_timeline():
    """Test the optional execution timeline section."""
    planner, plan = create_plan()
    timeline = planner.generate_execution_timeline(plan)

    md = generate_plan_markdown(plan, timeline)

    assert "## Execution Timeline" in md
    assert f"- Parallel: {timeline.parallel} minutes" in md
    assert "1. dep-lodash, dep-vite-setup" in md


def test_visualize_graph_markers():
    """Test node markers, dependency lines and legend."""
    tasks = [
        make_task("a", estimated=5),
        make_task("b", ["a"], estimated=50),
        make_task("c", estimated=1),
        make_task("d", ["c"], estimated=1),
    ]
    nodes = MigrationPlanner().graph_builder.build_graph(tasks)

    text = visualize_graph(nodes, tasks)

    assert text.startswith("Migration Dependency Graph:")
    assert "🟢 Task a (a)" in text
    assert "🔴 Task b (b)" in text
    assert "🟡 Task d (d)" in text
    assert "  ↳ Depends on: a" in text
    assert "  ↳ Blocks: b" in text
    assert text.rstrip().endswith("🟡 Has dependencies")


def test_visualize_graph_skips_unknown_tasks():
    """Test that nodes without a task are left out."""
    tasks = [make_task("a")]
    nodes = MigrationPlanner().graph_builder.build_graph(tasks)

    assert "(a)" not in visualize_graph(nodes, [])


def test_save_plan_outputs(tmp_path):
    """Test that every output file is written."""
    planner, plan = create_plan()
    validation = planner.validate_plan(plan)
    timeline = planner.generate_execution_timeline(validation.plan)
    output_dir = tmp_path / "plan-42" / "plan"

    save_plan_outputs(validation.plan, output_dir, timeline, validation)

    for name in ("plan.json", "plan.md", "dependency_graph.json", "timeline.json", "plan_stats.json"):
        assert (output_dir / name).exists()

    plan_json = json.loads((output_dir / "plan.json").read_text(encoding="utf-8"))
    assert plan_json["id"] == "plan-42"
    assert plan_json["phases"][0]["tasks"][0]["type"] == "manual"

    graph_json = json.loads((output_dir / "dependency_graph.json").read_text(encoding="utf-8"))
    assert graph_json["nodes"] == [task.id for task in plan.tasks]
    assert graph_json["edges"] == []

    stats = json.loads((output_dir / "plan_stats.json").read_text(encoding="utf-8"))
    assert stats["validation"] == {"valid": True, "errors": [], "repaired_cycles": []}
    assert stats["summary"]["total_tasks"] == plan.summary.total_tasks

    timeline_json = json.loads((output_dir / "timeline.json").read_text(encoding="utf-8"))
    assert timeline_json["batches"] == [[task.id for task in plan.tasks]]
