"""
Output Generator - Creates plan output files (JSON, Markdown, graph views).
"""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Sequence

from .dependency_graph import graph_to_dict
from .schema import (
    DependencyNode,
    ExecutionTimeline,
    MigrationPlan,
    MigrationTask,
    ValidationResult,
)

CRITICAL_MARKER = "🔴"
PARALLEL_MARKER = "🟢"
DEPENDENT_MARKER = "🟡"


def _hours(minutes: int) -> int:
    return math.ceil(minutes / 60)


def generate_plan_markdown(plan: MigrationPlan, timeline: ExecutionTimeline | None = None) -> str:
    """
    Generate a human-readable markdown summary of the plan.

    Args:
        plan: Migration plan
        timeline: Optional execution timeline, rendered as batches

    Returns:
        Markdown formatted string
    """
    summary = plan.summary
    md_lines = []

    # Header
    md_lines.append("# Migration Plan Summary")
    md_lines.append("")
    md_lines.append(f"**Plan ID:** `{plan.id}`  ")
    md_lines.append(f"**Created:** {plan.created_at.isoformat()}  ")
    md_lines.append(f"**Source:** {plan.source_stack.framework} {plan.source_stack.version}  ")
    md_lines.append(f"**Target:** {plan.target_stack.framework} {plan.target_stack.version}")
    md_lines.append("")

    # Overview
    md_lines.append("## Overview")
    md_lines.append("")
    md_lines.append(f"- Total Tasks: {summary.total_tasks}")
    md_lines.append(f"- Automated: {summary.automated_tasks}")
    md_lines.append(f"- Manual: {summary.manual_tasks}")
    md_lines.append(f"- Review Required: {summary.review_tasks}")
    md_lines.append(f"- Automation Savings: {summary.automation_percentage}%")
    md_lines.append(f"- Complexity Score: {summary.overall_complexity:.1f}/100")
    md_lines.append(f"- Parallelism: {summary.parallelism_score:.0f}%")
    md_lines.append("")

    # Time estimates
    saved = summary.total_estimated_minutes - summary.total_automated_minutes
    md_lines.append("## Time Estimates")
    md_lines.append("")
    md_lines.append(f"- Manual Migration: {_hours(summary.total_estimated_minutes)} hours")
    md_lines.append(f"- With Automation: {_hours(summary.total_automated_minutes)} hours")
    md_lines.append(f"- Time Saved: {_hours(saved)} hours")
    md_lines.append("")

    md_lines.append("## Required Skills")
    md_lines.append("")
    for skill in summary.required_skills:
        md_lines.append(f"- {skill}")
    md_lines.append("")

    md_lines.append("## Migration Phases")
    md_lines.append("")
    for phase in plan.phases:
        md_lines.append(f"### {phase.name}")
        md_lines.append("")
        md_lines.append(phase.description)
        md_lines.append("")
        md_lines.append(f"- Tasks: {len(phase.tasks)}")
        md_lines.append(f"- Risk Level: {phase.risk_level.value}")
        md_lines.append(f"- Estimated Time: {_hours(phase.total_estimated_minutes)} hours")
        md_lines.append(f"- Automated Time: {_hours(phase.total_automated_minutes)} hours")
        md_lines.append("")

        for task in phase.tasks:
            md_lines.append(f"- **{task.id}**: {task.name} (`{task.task_type.value}`, {task.risk_level.value} risk)")
            for change in task.breaking_changes:
                md_lines.append(f"   - ⚠️ {change}")
        md_lines.append("")

    if timeline is not None:
        md_lines.append("## Execution Timeline")
        md_lines.append("")
        md_lines.append(f"- Sequential: {timeline.sequential} minutes")
        md_lines.append(f"- Parallel: {timeline.parallel} minutes")
        md_lines.append("")
        for index, batch in enumerate(timeline.batches, start=1):
            md_lines.append(f"{index}. {', '.join(batch)}")
        md_lines.append("")

    return "\n".join(md_lines)


def visualize_graph(nodes: Sequence[DependencyNode], tasks: Sequence[MigrationTask]) -> str:
    """
    Render the dependency graph as text.

    Nodes whose task is missing from ``tasks`` are skipped.
    """
    task_map = {task.id: task for task in tasks}
    lines = ["Migration Dependency Graph:", ""]

    for node in nodes:
        task = task_map.get(node.task_id)
        if task is None:
            continue

        if node.critical_path:
            marker = CRITICAL_MARKER
        elif node.can_run_in_parallel:
            marker = PARALLEL_MARKER
        else:
            marker = DEPENDENT_MARKER

        lines.append(f"{marker} {task.name} ({task.id})")
        if node.depends_on:
            lines.append(f"  ↳ Depends on: {', '.join(str(dep) for dep in node.depends_on)}")
        if node.blocked_by:
            lines.append(f"  ↳ Blocks: {', '.join(node.blocked_by)}")
        lines.append("")

    lines.append("Legend:")
    lines.append(f"{CRITICAL_MARKER} Critical path")
    lines.append(f"{PARALLEL_MARKER} Can run in parallel")
    lines.append(f"{DEPENDENT_MARKER} Has dependencies")

    return "\n".join(lines) + "\n"


def save_plan_outputs(
    plan: MigrationPlan,
    output_dir: Path,
    timeline: ExecutionTimeline,
    validation: ValidationResult,
) -> None:
    """
    Save all plan output files to the specified directory.

    Args:
        plan: Migration plan (the validated one)
        output_dir: Directory to save outputs
        timeline: Execution timeline for the plan
        validation: Validation outcome
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    # Save plan.json
    plan_json_path = output_dir / "plan.json"
    with open(plan_json_path, "w", encoding="utf-8") as f:
        json.dump(plan.to_dict(), f, indent=2, ensure_ascii=False)

    # Save plan.md
    plan_md_path = output_dir / "plan.md"
    with open(plan_md_path, "w", encoding="utf-8") as f:
        f.write(generate_plan_markdown(plan, timeline))

    # Save dependency_graph.json
    dep_graph_path = output_dir / "dependency_graph.json"
    with open(dep_graph_path, "w", encoding="utf-8") as f:
        json.dump(graph_to_dict(plan.dependency_graph), f, indent=2)

    # Save timeline.json
    timeline_path = output_dir / "timeline.json"
    with open(timeline_path, "w", encoding="utf-8") as f:
        json.dump(timeline.to_dict(), f, indent=2)

    # Save plan_stats.json
    plan_stats_path = output_dir / "plan_stats.json"
    with open(plan_stats_path, "w", encoding="utf-8") as f:
        json.dump(
            {
                "summary": plan.summary.to_dict(),
                "validation": validation.to_dict(),
            },
            f,
            indent=2,
            ensure_ascii=False,
        )
