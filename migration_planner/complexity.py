"""Complexity Estimation - Score migration difficulty and estimate task time."""

from __future__ import annotations

import logging
import math
import re
from typing import Iterable, NamedTuple, Sequence

from .rules import are_related_frameworks
from .schema import (
    Aggressiveness,
    CodebaseStats,
    ComplexityEstimate,
    ComplexityFactors,
    ComplexityLevel,
    DetectedPattern,
    PatternCategory,
    Severity,
    SourceStack,
    TargetStack,
    TaskType,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Scoring Constants
# =============================================================================

SEVERITY_WEIGHTS = {
    Severity.LOW: 1,
    Severity.MEDIUM: 3,
    Severity.HIGH: 5,
}

# Added to the severity weight of patterns that cannot be automated
MANUAL_PATTERN_PENALTY = 2

# Pattern complexity = average weighted occurrences x this, capped at 100
PATTERN_COMPLEXITY_SCALE = 10

# Negative weights lower the score
FACTOR_WEIGHTS = {
    "codebase_size": 0.15,
    "file_count": 0.10,
    "dependency_count": 0.15,
    "pattern_complexity": 0.25,
    "framework_distance": 0.20,
    "custom_code_ratio": -0.10,  # more untouched custom code is easier
    "test_coverage": -0.15,  # better coverage makes migration safer
}

# (exclusive upper bound, normalized value); anything above the last bound -> 90
CODEBASE_SIZE_BUCKETS = ((1000, 10), (5000, 30), (20000, 50), (50000, 70))
FILE_COUNT_BUCKETS = ((10, 10), (50, 30), (200, 50), (500, 70))
DEPENDENCY_COUNT_BUCKETS = ((10, 10), (30, 30), (50, 50), (100, 70))
BUCKET_CEILING = 90

# Framework distance
SAME_FRAMEWORK_DISTANCE_CAP = 30
VERSION_DISTANCE_SCALE = 10
RELATED_FRAMEWORK_DISTANCE = 50
UNRELATED_FRAMEWORK_DISTANCE = 80

# (exclusive upper bound, level); anything above the last bound is very complex
LEVEL_THRESHOLDS = (
    (20, ComplexityLevel.TRIVIAL),
    (40, ComplexityLevel.SIMPLE),
    (60, ComplexityLevel.MODERATE),
    (80, ComplexityLevel.COMPLEX),
)


# =============================================================================
# Task Time Constants
# =============================================================================

BASE_MINUTES_PER_FILE = {
    Severity.LOW: 5,
    Severity.MEDIUM: 15,
    Severity.HIGH: 30,
}

AUTOMATION_FACTORS = {
    TaskType.AUTOMATED: 0.1,  # 90% time savings
    TaskType.REVIEW: 0.3,  # 70% time savings, still needs review
    TaskType.MANUAL: 1.0,
}

AGGRESSIVENESS_FACTORS = {
    Aggressiveness.CONSERVATIVE: 1.2,
    Aggressiveness.BALANCED: 1.0,
    Aggressiveness.AGGRESSIVE: 0.8,
}


class TaskTimeEstimate(NamedTuple):
    """Whole-minute estimates for one task."""

    manual: int
    automated: int


# =============================================================================
# Factors
# =============================================================================

def calculate_pattern_complexity(patterns: Sequence[DetectedPattern]) -> float:
    """
    Score how hard the detected patterns are, on a 0-100 scale.

    Each pattern contributes ``(severity weight + manual penalty) * occurrences``;
    the total is averaged over the patterns and scaled by 10.
    """
    if not patterns:
        return 0.0

    complexity = 0
    for pattern in patterns:
        penalty = 0 if pattern.automated else MANUAL_PATTERN_PENALTY
        complexity += (SEVERITY_WEIGHTS[pattern.severity] + penalty) * pattern.occurrences

    return min(100.0, complexity / len(patterns) * PATTERN_COMPLEXITY_SCALE)


_LEADING_DIGITS = re.compile(r"\d+")


def parse_version(version: str) -> tuple[int, int]:
    """
    Extract (major, minor) from a version string.

    Each dot-separated segment contributes its first run of digits, so
    ``"^17.2.1"`` gives ``(17, 2)``. Missing or unparseable segments count as 0.
    """
    parts = (version or "").split(".")
    numbers = []
    for part in parts[:2]:
        match = _LEADING_DIGITS.search(part)
        numbers.append(int(match.group()) if match else 0)
    while len(numbers) < 2:
        numbers.append(0)
    return numbers[0], numbers[1]


def compare_versions(v1: str, v2: str) -> float:
    """Version delta: ``|major diff| * 2 + |minor diff| * 0.5``."""
    major1, minor1 = parse_version(v1)
    major2, minor2 = parse_version(v2)
    return abs(major2 - major1) * 2 + abs(minor2 - minor1) * 0.5


def calculate_framework_distance(source: SourceStack, target: TargetStack) -> float:
    """How far apart the two stacks are, 0-100."""
    # Exact name match; the related-framework table is case-insensitive
    if source.framework == target.framework:
        delta = compare_versions(source.version, target.version)
        return min(SAME_FRAMEWORK_DISTANCE_CAP, delta * VERSION_DISTANCE_SCALE)

    if are_related_frameworks(source.framework, target.framework):
        return RELATED_FRAMEWORK_DISTANCE

    return UNRELATED_FRAMEWORK_DISTANCE


def estimate_custom_code_ratio(patterns: Iterable[DetectedPattern], total_files: int) -> float:
    """
    Percentage of files untouched by dependency or structural patterns.

    Higher means more custom code that the migration leaves alone.
    """
    if total_files <= 0:
        return 0.0

    affected: set[str] = set()
    for pattern in patterns:
        if pattern.category in (PatternCategory.DEPENDENCY, PatternCategory.STRUCTURAL):
            affected.update(pattern.affected_files)

    ratio = (total_files - len(affected)) / total_files * 100
    return max(0.0, min(100.0, ratio))


def calculate_factors(
    source: SourceStack,
    target: TargetStack,
    patterns: Sequence[DetectedPattern],
    stats: CodebaseStats,
) -> ComplexityFactors:
    return ComplexityFactors(
        codebase_size=stats.total_lines,
        file_count=stats.total_files,
        dependency_count=len(source.dependencies),
        pattern_complexity=calculate_pattern_complexity(patterns),
        framework_distance=calculate_framework_distance(source, target),
        custom_code_ratio=estimate_custom_code_ratio(patterns, stats.total_files),
        test_coverage=stats.test_coverage,
    )


# =============================================================================
# Score
# =============================================================================

def _bucket(value: float, buckets: tuple[tuple[int, int], ...]) -> int:
    for upper_bound, normalized in buckets:
        if value < upper_bound:
            return normalized
    return BUCKET_CEILING


def normalize_codebase_size(lines: int) -> int:
    return _bucket(lines, CODEBASE_SIZE_BUCKETS)


def normalize_file_count(files: int) -> int:
    return _bucket(files, FILE_COUNT_BUCKETS)


def normalize_dependency_count(dependencies: int) -> int:
    return _bucket(dependencies, DEPENDENCY_COUNT_BUCKETS)


def calculate_score(factors: ComplexityFactors) -> float:
    """
    Weighted 0-100 complexity score.

    Size, file and dependency counts go through their bucket tables first;
    the remaining factors are already on a 0-100 scale.
    """
    normalized = {
        "codebase_size": normalize_codebase_size(factors.codebase_size),
        "file_count": normalize_file_count(factors.file_count),
        "dependency_count": normalize_dependency_count(factors.dependency_count),
        "pattern_complexity": factors.pattern_complexity,
        "framework_distance": factors.framework_distance,
        "custom_code_ratio": factors.custom_code_ratio,
        "test_coverage": factors.test_coverage,
    }

    score = sum(normalized[name] * weight for name, weight in FACTOR_WEIGHTS.items())
    return max(0.0, min(100.0, score))


def determine_level(score: float) -> ComplexityLevel:
    for upper_bound, level in LEVEL_THRESHOLDS:
        if score < upper_bound:
            return level
    return ComplexityLevel.VERY_COMPLEX


def generate_recommendations(factors: ComplexityFactors, level: ComplexityLevel) -> list[str]:
    """Threshold-triggered advice, in a fixed order."""
    recommendations: list[str] = []

    if level in (ComplexityLevel.COMPLEX, ComplexityLevel.VERY_COMPLEX):
        recommendations.append("Consider breaking migration into smaller incremental phases")
        recommendations.append("Set up comprehensive testing before starting migration")

    if factors.test_coverage < 50:
        recommendations.append(
            "Increase test coverage before migration to catch regressions early"
        )

    if factors.framework_distance > 60:
        recommendations.append(
            "Framework change is significant - allocate extra time for learning curve"
        )
        recommendations.append("Consider running both frameworks in parallel during transition")

    if factors.dependency_count > 50:
        recommendations.append("Audit dependencies and remove unused packages before migration")

    if factors.codebase_size > 20000:
        recommendations.append("Use feature flags to migrate functionality incrementally")
        recommendations.append("Consider automated code transformation tools")

    if factors.pattern_complexity > 60:
        recommendations.append("Review and refactor complex patterns before automated migration")

    return recommendations


def estimate_complexity(
    source: SourceStack,
    target: TargetStack,
    patterns: Sequence[DetectedPattern],
    codebase_stats: CodebaseStats,
) -> ComplexityEstimate:
    """
    Score how hard migrating from ``source`` to ``target`` will be.

    Args:
        source: Stack being migrated from
        target: Stack being migrated to
        patterns: Detected legacy patterns
        codebase_stats: File/line counts and test coverage

    Returns:
        ComplexityEstimate with score, level, raw factors and recommendations
    """
    factors = calculate_factors(source, target, patterns, codebase_stats)
    score = calculate_score(factors)
    level = determine_level(score)
    recommendations = generate_recommendations(factors, level)

    logger.debug(
        "Complexity %.1f (%s) for %s %s -> %s %s",
        score,
        level.value,
        source.framework,
        source.version,
        target.framework,
        target.version,
    )

    return ComplexityEstimate(
        score=score,
        level=level,
        factors=factors,
        recommendations=tuple(recommendations),
    )


# =============================================================================
# Task Time
# =============================================================================

def _ceil_minutes(value: float) -> int:
    # Drop float noise first so 30 * 0.1 rounds up to 3, not 4
    return math.ceil(round(value, 6))


def estimate_task_time(
    task_type: TaskType,
    affected_files: Sequence[str],
    complexity: Severity,
    aggressiveness: Aggressiveness,
) -> TaskTimeEstimate:
    """
    Estimate manual and automated minutes for a task.

    Args:
        task_type: automated, review or manual
        affected_files: Files the task touches
        complexity: low, medium or high
        aggressiveness: Plan aggressiveness

    Returns:
        TaskTimeEstimate with both figures ceiling-rounded to whole minutes
    """
    manual_minutes = BASE_MINUTES_PER_FILE[Severity(complexity)] * len(affected_files)
    automated_minutes = (
        manual_minutes
        * AUTOMATION_FACTORS[TaskType(task_type)]
        * AGGRESSIVENESS_FACTORS[Aggressiveness(aggressiveness)]
    )

    return TaskTimeEstimate(
        manual=_ceil_minutes(manual_minutes),
        automated=_ceil_minutes(automated_minutes),
    )
