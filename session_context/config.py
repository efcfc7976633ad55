"""
Configuration management for the session context store.

Limits, usage weights, load thresholds and the compaction policy are policy
choices, not derived constants. They can be overridden from a JSON file.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

CONFIG_PATH = Path.home() / ".claude" / "session-context-config.json"
CONFIG_ENV_VAR = "SESSION_CONTEXT_CONFIG"
PROJECT_DIR_ENV_VAR = "CLAUDE_PROJECT_DIR"


def _filter_dataclass_fields(data: dict[str, Any], cls: type) -> dict[str, Any]:
    """Filter dict to only include fields that exist in the dataclass."""
    valid_fields = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in valid_fields}


def resolve_project_dir(explicit: str | Path | None = None) -> Path:
    """
    Determine the project root handed to the store.

    Priority order:
    1. Explicit argument
    2. CLAUDE_PROJECT_DIR environment variable
    3. Current working directory
    """
    if explicit is not None:
        return Path(explicit)
    env_value = os.getenv(PROJECT_DIR_ENV_VAR)
    if env_value:
        return Path(env_value)
    return Path.cwd()


@dataclass
class ContextLimits:
    """Maximum entries kept for every bounded list (most recent wins)."""

    max_decisions: int = 20
    max_discoveries: int = 30
    max_done_tasks: int = 50
    max_recent_files: int = 10
    max_blockers: int = 10
    max_errors: int = 10
    max_tool_calls: int = 10
    max_todos: int = 30


@dataclass
class UsageWeights:
    """Per-counter weights for the load score."""

    tool_call: float = 1
    file_read: float = 2
    file_modified: float = 5
    discovery: float = 3
    decision: float = 2
    todo: float = 1

    def __post_init__(self) -> None:
        for f in fields(self):
            if getattr(self, f.name) < 0:
                raise ValueError(f"Usage weight {f.name} must be non-negative")


@dataclass
class LoadThresholds:
    """
    Lower bounds of the medium, high and critical load tiers.

    Scores below ``medium`` are low; the critical tier is unbounded above.
    """

    medium: float = 30
    high: float = 60
    critical: float = 85

    def __post_init__(self) -> None:
        if not (self.medium <= self.high <= self.critical):
            raise ValueError("Load thresholds must be ascending: medium <= high <= critical")


@dataclass
class CompactionPolicy:
    """How much of each list survives a compaction."""

    keep_decisions: int = 3
    keep_discoveries: int = 5
    done_summary_threshold: int = 3
    keep_recent_files: int = 5
    keep_blockers: int = 3
    keep_tool_calls: int = 3


@dataclass
class StoreConfig:
    """Complete session context store configuration."""

    limits: ContextLimits = field(default_factory=ContextLimits)
    weights: UsageWeights = field(default_factory=UsageWeights)
    thresholds: LoadThresholds = field(default_factory=LoadThresholds)
    compaction: CompactionPolicy = field(default_factory=CompactionPolicy)

    @staticmethod
    def default_path() -> Path:
        env_value = os.getenv(CONFIG_ENV_VAR)
        if env_value:
            return Path(env_value)
        return CONFIG_PATH

    @classmethod
    def load(cls, path: Path | None = None) -> "StoreConfig":
        """
        Load configuration from file with defaults.

        Args:
            path: Optional config file path. Defaults to SESSION_CONTEXT_CONFIG
                or ~/.claude/session-context-config.json

        Returns:
            StoreConfig with user settings merged over defaults, or the
            defaults alone if the file is missing or holds invalid values
        """
        if path is None:
            path = cls.default_path()

        if not path.exists():
            return cls()

        try:
            data = json.loads(path.read_text())
            return cls(
                limits=ContextLimits(**_filter_dataclass_fields(data.get("limits", {}), ContextLimits)),
                weights=UsageWeights(**_filter_dataclass_fields(data.get("weights", {}), UsageWeights)),
                thresholds=LoadThresholds(**_filter_dataclass_fields(data.get("thresholds", {}), LoadThresholds)),
                compaction=CompactionPolicy(**_filter_dataclass_fields(data.get("compaction", {}), CompactionPolicy)),
            )
        except (OSError, ValueError, TypeError, AttributeError) as e:
            # ValueError covers malformed JSON and out-of-range values
            logger.warning("Ignoring unreadable config %s: %s", path, e)
            return cls()

    def save(self, path: Path | None = None) -> None:
        """Save configuration to file."""
        if path is None:
            path = self.default_path()

        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(asdict(self), f, indent=2)


# Default configuration instance
default_config = StoreConfig()


__all__ = [
    "CONFIG_PATH",
    "CONFIG_ENV_VAR",
    "PROJECT_DIR_ENV_VAR",
    "ContextLimits",
    "UsageWeights",
    "LoadThresholds",
    "CompactionPolicy",
    "StoreConfig",
    "default_config",
    "resolve_project_dir",
]
