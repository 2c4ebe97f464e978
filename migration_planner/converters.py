"""
Pattern Converters - Turn scanner and detector output into planner patterns.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Iterable, Mapping

from .schema import DetectedPattern, PatternCategory, Severity

# Scanner/detector category (lower-cased) -> planner category
CATEGORY_MAP: dict[str, PatternCategory] = {
    "dependencies": PatternCategory.DEPENDENCY,
    "dependency": PatternCategory.DEPENDENCY,
    "architecture": PatternCategory.STRUCTURAL,
    "structural": PatternCategory.STRUCTURAL,
    "structure": PatternCategory.STRUCTURAL,
    "components": PatternCategory.COMPONENT,
    "component": PatternCategory.COMPONENT,
    "documentation": PatternCategory.DOCUMENTATION,
    "docs": PatternCategory.DOCUMENTATION,
}
DEFAULT_CATEGORY = PatternCategory.STRUCTURAL

# Scanner issue severity -> pattern severity
ISSUE_SEVERITY_MAP: dict[str, Severity] = {
    "info": Severity.LOW,
    "warning": Severity.MEDIUM,
    "critical": Severity.HIGH,
}
DEFAULT_SEVERITY = Severity.MEDIUM


def map_category(category: str | None) -> PatternCategory:
    """Map a free-form category name onto a pattern category (structural if unknown)."""
    return CATEGORY_MAP.get((category or "").lower(), DEFAULT_CATEGORY)


def normalize_severity(severity: Any) -> Severity:
    """
    Map a detector severity onto a pattern severity.

    Accepts planner severities and scanner levels in any case. Anything
    else falls back to medium.
    """
    value = str(severity or "").strip().lower()
    if value in ISSUE_SEVERITY_MAP:
        return ISSUE_SEVERITY_MAP[value]
    try:
        return Severity(value)
    except ValueError:
        return DEFAULT_SEVERITY


def convert_issues_to_patterns(issues: Iterable[Mapping[str, Any]]) -> list[DetectedPattern]:
    """
    Convert scanner issues to patterns.

    Issues are assumed to need manual work, so every pattern is
    ``automated=False``.

    Args:
        issues: Dicts with ``title``, ``category``, ``severity``
            (critical/warning/info), ``description`` and optional
            ``affected_files``

    Returns:
        Patterns with ids ``pattern-<index>``
    """
    return [
        DetectedPattern(
            id=f"pattern-{index}",
            name=issue["title"],
            category=map_category(issue.get("category")),
            severity=ISSUE_SEVERITY_MAP.get(issue.get("severity"), DEFAULT_SEVERITY),
            occurrences=1,
            affected_files=issue.get("affected_files") or (),
            description=issue.get("description", ""),
            automated=False,
        )
        for index, issue in enumerate(issues)
    ]


def convert_detector_results(results: Iterable[Mapping[str, Any]]) -> list[DetectedPattern]:
    """
    Convert pattern detector results to patterns.

    Args:
        results: Dicts with optional ``name``, ``category``, ``severity``,
            ``description``, ``locations`` (list of ``{"file": ...}``) and
            ``auto_fixable``

    Returns:
        Patterns with ids ``detector-pattern-<index>``
    """
    patterns = []
    for index, result in enumerate(results):
        locations = result.get("locations") or []
        patterns.append(
            DetectedPattern(
                id=f"detector-pattern-{index}",
                name=result.get("name") or f"Detected Pattern {index + 1}",
                category=map_category(result.get("category")),
                severity=normalize_severity(result.get("severity")),
                occurrences=1,
                affected_files=[loc["file"] for loc in locations if loc.get("file")],
                description=result.get("description") or "Pattern detected by AI analyzer",
                automated=bool(result.get("auto_fixable", False)),
            )
        )
    return patterns


def convert_mcp_patterns(result: Mapping[str, Any] | None) -> list[DetectedPattern]:
    """
    Convert MCP analyzer output to patterns.

    Only ``legacy_patterns`` is read. Each entry has ``pattern`` (the
    name, also used for the category lookup), ``description``,
    ``severity``, ``occurrences`` and ``examples`` (file paths).
    Analyzer findings always need manual review.
    """
    if not result or not result.get("legacy_patterns"):
        return []

    patterns = []
    for index, entry in enumerate(result["legacy_patterns"]):
        examples = entry.get("examples")
        patterns.append(
            DetectedPattern(
                id=f"mcp-pattern-{index}",
                name=entry.get("pattern") or f"MCP Pattern {index + 1}",
                category=map_category(entry.get("pattern")),
                severity=normalize_severity(entry.get("severity")),
                occurrences=entry.get("occurrences") or 1,
                affected_files=examples if isinstance(examples, list) else (),
                description=entry.get("description") or "Pattern detected by MCP analyzer",
                automated=False,
            )
        )
    return patterns


def deduplicate_patterns(patterns: Iterable[DetectedPattern]) -> list[DetectedPattern]:
    """
    Merge patterns that share a name and category.

    Occurrences are summed and affected files unioned in first-seen order.
    All other fields come from the first pattern of each group.
    """
    merged: dict[tuple[str, PatternCategory], DetectedPattern] = {}

    for pattern in patterns:
        key = (pattern.name, pattern.category)
        existing = merged.get(key)
        if existing is None:
            merged[key] = pattern
            continue

        files = dict.fromkeys(existing.affected_files)
        files.update(dict.fromkeys(pattern.affected_files))
        merged[key] = replace(
            existing,
            occurrences=existing.occurrences + pattern.occurrences,
            affected_files=tuple(files),
        )

    return list(merged.values())
