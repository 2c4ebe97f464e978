"""
Planning Rules - Lookup tables and keyword rules used by the planner.

Every string heuristic the planner applies lives here: framework families,
breaking-change detection, migration-guide triggers, required-skill inference,
build-tool detection and entry-point selection. Keyword matches on pattern
names are case-sensitive substring checks.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .schema import (
    Aggressiveness,
    DetectedPattern,
    PatternCategory,
    Severity,
    SourceStack,
    TargetStack,
)

# =============================================================================
# Framework families
# =============================================================================

# Source framework -> target frameworks considered closely related
RELATED_FRAMEWORKS: dict[str, tuple[str, ...]] = {
    "next.js": ("react", "gatsby", "remix"),
    "react": ("preact", "next.js", "gatsby"),
    "vue": ("nuxt", "vue3"),
    "angular": ("angularjs",),
}


def are_related_frameworks(source_framework: str, target_framework: str) -> bool:
    """Return True if the target is listed as a relative of the source."""
    related = RELATED_FRAMEWORKS.get(source_framework.lower(), ())
    return target_framework.lower() in related


# =============================================================================
# Breaking changes
# =============================================================================

@dataclass(frozen=True)
class BreakingChangeRule:
    """Emit ``message`` when any of the configured conditions holds for a pattern."""

    message: str
    name_keywords: tuple[str, ...] = ()
    severity: Severity | None = None
    category: PatternCategory | None = None

    def matches(self, pattern: DetectedPattern) -> bool:
        if any(keyword in pattern.name for keyword in self.name_keywords):
            return True
        if self.severity is not None and pattern.severity == self.severity:
            return True
        if self.category is not None and pattern.category == self.category:
            return True
        return False


BREAKING_CHANGE_RULES: tuple[BreakingChangeRule, ...] = (
    BreakingChangeRule(
        "API signature changes may affect consumers",
        name_keywords=("API", "interface"),
    ),
    BreakingChangeRule(
        "High-risk change - thorough testing required",
        severity=Severity.HIGH,
    ),
    BreakingChangeRule(
        "File structure changes may break imports",
        category=PatternCategory.STRUCTURAL,
    ),
    BreakingChangeRule(
        "Deprecated features removed - update usage",
        name_keywords=("deprecated",),
    ),
)


def identify_breaking_changes(pattern: DetectedPattern) -> list[str]:
    """List the breaking-change notes that apply to a pattern."""
    return [rule.message for rule in BREAKING_CHANGE_RULES if rule.matches(pattern)]


# Description keywords (lower-case) that signal a breaking change
BREAKING_DESCRIPTION_KEYWORDS: tuple[str, ...] = ("breaking", "major")

# Aggressive plans get a migration guide once more than this many patterns survive
AGGRESSIVE_GUIDE_PATTERN_THRESHOLD = 2


def requires_migration_guide(
    patterns: Iterable[DetectedPattern],
    aggressiveness: Aggressiveness,
) -> bool:
    """
    Decide whether the documentation phase needs a migration guide.

    Args:
        patterns: Patterns that passed the inclusion gate
        aggressiveness: Plan aggressiveness

    Returns:
        True if any pattern is structural, any pattern looks breaking (keyword in
        its description or high severity), or the plan is aggressive with more
        than two patterns
    """
    patterns = list(patterns)

    if any(p.category == PatternCategory.STRUCTURAL for p in patterns):
        return True

    for pattern in patterns:
        description = pattern.description.lower()
        if any(keyword in description for keyword in BREAKING_DESCRIPTION_KEYWORDS):
            return True
        if pattern.severity == Severity.HIGH:
            return True

    if aggressiveness == Aggressiveness.AGGRESSIVE:
        return len(patterns) > AGGRESSIVE_GUIDE_PATTERN_THRESHOLD

    return False


# =============================================================================
# Required skills
# =============================================================================

@dataclass(frozen=True)
class SkillRule:
    """Require ``skill`` when a pattern name contains any of the keywords."""

    skill: str
    name_keywords: tuple[str, ...]


SKILL_RULES: tuple[SkillRule, ...] = (
    SkillRule("TypeScript", ("TypeScript",)),
    SkillRule("API design", ("API", "REST")),
    SkillRule("State management", ("State", "Redux")),
    SkillRule("Testing frameworks", ("Test",)),
    SkillRule("CSS/Styling", ("CSS", "Style")),
)

# Always required, appended last
BASELINE_SKILLS: tuple[str, ...] = ("Git version control", "Code review")


def identify_required_skills(
    source: SourceStack,
    target: TargetStack,
    patterns: Iterable[DetectedPattern],
) -> list[str]:
    """Infer the skills a migration needs, in first-seen order without duplicates."""
    skills: dict[str, None] = {}

    skills[f"{source.framework} experience"] = None
    skills[f"{target.framework} experience"] = None

    if source.language != target.language:
        skills[f"{target.language} proficiency"] = None

    for pattern in patterns:
        for rule in SKILL_RULES:
            if any(keyword in pattern.name for keyword in rule.name_keywords):
                skills[rule.skill] = None

    for skill in BASELINE_SKILLS:
        skills[skill] = None

    return list(skills)


# =============================================================================
# Build tooling
# =============================================================================

# Substring of the (lower-cased) source framework that marks a React project
REACT_MARKER = "react"

# Packages whose presence means the project already has a modern build tool
MODERN_BUILD_TOOLS: tuple[str, ...] = ("vite", "esbuild", "turbopack", "@vitejs/plugin-react")

# (uses JSX, is TypeScript) -> entry point
ENTRY_POINTS: dict[tuple[bool, bool], str] = {
    (True, False): "src/main.jsx",
    (True, True): "src/main.tsx",
    (False, True): "src/index.ts",
    (False, False): "src/index.js",
}


def is_react_project(source: SourceStack) -> bool:
    return REACT_MARKER in (source.framework or "").lower()


def is_typescript(source: SourceStack) -> bool:
    return (source.language or "").lower() == "typescript"


def has_modern_build_tool(source: SourceStack) -> bool:
    return any(tool in source.dependencies for tool in MODERN_BUILD_TOOLS)


def needs_build_tool_setup(source: SourceStack) -> bool:
    """React projects without a modern build tool get a build-tool setup task."""
    return is_react_project(source) and not has_modern_build_tool(source)


def detect_entry_point(source: SourceStack) -> str:
    """Pick the application entry point for a source stack."""
    uses_jsx = "react" in source.dependencies or is_react_project(source)
    return ENTRY_POINTS[(uses_jsx, is_typescript(source))]
