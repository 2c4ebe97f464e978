"""Configuration management for the migration planner."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .schema import Aggressiveness

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class PlannerConfig:
    """Configuration for the migration planner CLI."""

    default_aggressiveness: str = Aggressiveness.BALANCED.value
    output_dir: str = "./artifacts"
    log_level: str = "INFO"
    json_logs: bool = False
    environment: str = "development"
    optimize: bool = True

    def __post_init__(self):
        """Validate configuration after initialization."""
        valid_modes = [mode.value for mode in Aggressiveness]
        self.default_aggressiveness = str(self.default_aggressiveness).lower()
        if self.default_aggressiveness not in valid_modes:
            raise ValueError(
                f"default_aggressiveness must be one of {', '.join(valid_modes)}, "
                f"got {self.default_aggressiveness!r}"
            )

        self.log_level = str(self.log_level).upper()
        if self.log_level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {', '.join(VALID_LOG_LEVELS)}, got {self.log_level!r}"
            )

        self.output_dir = os.path.expanduser(self.output_dir)

    @property
    def log_level_value(self) -> int:
        """Numeric logging level."""
        return getattr(logging, self.log_level)

    @classmethod
    def from_env(cls, **overrides) -> "PlannerConfig":
        """Create configuration from environment variables with optional overrides."""
        load_dotenv()

        config_dict = {
            "default_aggressiveness": os.getenv("PLANNER_AGGRESSIVENESS", "balanced"),
            "output_dir": os.getenv("PLANNER_OUTPUT_DIR", "./artifacts"),
            "log_level": os.getenv("PLANNER_LOG_LEVEL", "INFO"),
            "json_logs": os.getenv("PLANNER_LOG_JSON", "false").lower() == "true",
            "environment": os.getenv("PLANNER_ENVIRONMENT", "development"),
            "optimize": os.getenv("PLANNER_OPTIMIZE", "true").lower() == "true",
        }

        # Apply overrides (filter out None values from CLI)
        for key, value in overrides.items():
            if value is not None:
                config_dict[key] = value

        return cls(**config_dict)


def ensure_output_dir(config: PlannerConfig) -> Path:
    """
    Ensure the output directory exists and return it as a Path.

    Args:
        config: Planner configuration

    Returns:
        Path object for the output directory
    """
    output_path = Path(config.output_dir)
    output_path.mkdir(parents=True, exist_ok=True)
    return output_path
