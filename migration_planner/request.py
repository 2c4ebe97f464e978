"""
JSON Schema definitions for plan request validation.

Defines the structure of the request document accepted by the CLI and by
``MigrationPlanner.create_plan_from_request``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from jsonschema import Draft7Validator

from .errors import InvalidPlanRequestError
from .schema import (
    Aggressiveness,
    CodebaseStats,
    DetectedPattern,
    HealthScore,
    PatternCategory,
    PlanCustomization,
    Severity,
    SourceStack,
    TargetStack,
)

_NON_EMPTY_STRING: dict[str, Any] = {"type": "string", "minLength": 1}

_STRING_LIST: dict[str, Any] = {"type": "array", "items": {"type": "string"}}

_DEPENDENCY_MAP: dict[str, Any] = {
    "type": "object",
    "description": "Package name to version",
    "additionalProperties": {"type": "string"},
}

# JSON Schema for a plan request
PLAN_REQUEST_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Migration Plan Request",
    "description": "Inputs needed to build a migration plan",
    "type": "object",
    "required": ["source", "target", "patterns", "codebase_stats"],
    "additionalProperties": False,
    "properties": {
        "owner": {"type": "string", "description": "Repository owner (informational)"},
        "repo": {"type": "string", "description": "Repository name (informational)"},
        "source": {
            "type": "object",
            "description": "Stack being migrated from",
            "required": ["framework", "version", "language"],
            "additionalProperties": False,
            "properties": {
                "framework": _NON_EMPTY_STRING,
                "version": _NON_EMPTY_STRING,
                "language": _NON_EMPTY_STRING,
                "dependencies": _DEPENDENCY_MAP,
                "patterns": _STRING_LIST,
            },
        },
        "target": {
            "type": "object",
            "description": "Stack being migrated to",
            "required": ["framework", "version", "language"],
            "additionalProperties": False,
            "properties": {
                "framework": _NON_EMPTY_STRING,
                "version": _NON_EMPTY_STRING,
                "language": _NON_EMPTY_STRING,
                "dependencies": _DEPENDENCY_MAP,
                "features": _STRING_LIST,
            },
        },
        "patterns": {
            "type": "array",
            "description": "Detected legacy-code patterns",
            "items": {
                "type": "object",
                "required": ["id", "name", "category", "severity"],
                "additionalProperties": False,
                "properties": {
                    "id": _NON_EMPTY_STRING,
                    "name": {"type": "string"},
                    "category": {"type": "string", "enum": [c.value for c in PatternCategory]},
                    "severity": {"type": "string", "enum": [s.value for s in Severity]},
                    "occurrences": {"type": "integer", "minimum": 0},
                    "affected_files": _STRING_LIST,
                    "description": {"type": "string"},
                    "automated": {"type": "boolean"},
                },
            },
        },
        "codebase_stats": {
            "type": "object",
            "required": ["total_files", "total_lines", "test_coverage"],
            "additionalProperties": False,
            "properties": {
                "total_files": {"type": "integer", "minimum": 0},
                "total_lines": {"type": "integer", "minimum": 0},
                "test_coverage": {"type": "number", "minimum": 0, "maximum": 100},
            },
        },
        "customization": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "aggressiveness": {"type": "string", "enum": [a.value for a in Aggressiveness]},
                "enabled_transformations": _STRING_LIST,
                "disabled_transformations": _STRING_LIST,
                "selected_patterns": _STRING_LIST,
                "skip_tests": {"type": "boolean"},
                "skip_documentation": {"type": "boolean"},
            },
        },
        "health_score": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "total": {"type": "number"},
                "build_health": {"type": "number"},
            },
        },
    },
}


def validate_plan_request(data: dict[str, Any]) -> tuple[bool, list[str]]:
    """
    Validate request data against the schema.

    Args:
        data: Request data dictionary

    Returns:
        Tuple of (is_valid, list_of_error_messages)
    """
    validator = Draft7Validator(PLAN_REQUEST_SCHEMA)
    errors = list(validator.iter_errors(data))

    if not errors:
        return True, []

    error_messages = []
    for error in errors:
        path = ".".join(str(p) for p in error.absolute_path) if error.absolute_path else "root"
        error_messages.append(f"{path}: {error.message}")

    return False, error_messages


def get_schema() -> dict[str, Any]:
    """Return the plan request JSON schema."""
    return PLAN_REQUEST_SCHEMA


@dataclass(frozen=True)
class PlanRequest:
    """A validated plan request, parsed into planner records."""

    source: SourceStack
    target: TargetStack
    patterns: tuple[DetectedPattern, ...]
    codebase_stats: CodebaseStats
    customization: PlanCustomization
    health_score: HealthScore | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlanRequest":
        """
        Validate and parse a request document.

        Raises:
            InvalidPlanRequestError: If the document does not match the schema
        """
        is_valid, errors = validate_plan_request(data)
        if not is_valid:
            raise InvalidPlanRequestError("Invalid plan request", errors)

        return cls(
            source=SourceStack.from_dict(data["source"]),
            target=TargetStack.from_dict(data["target"]),
            patterns=tuple(DetectedPattern.from_dict(p) for p in data["patterns"]),
            codebase_stats=CodebaseStats.from_dict(data["codebase_stats"]),
            customization=PlanCustomization.from_dict(data.get("customization")),
            health_score=HealthScore.from_dict(data.get("health_score")),
        )
