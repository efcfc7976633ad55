"""
Session context schema.

Pydantic models for the session-context.json document: the single record an
assistant persists per project to survive context-window resets.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

SCHEMA_VERSION = "2.0"


def utc_now_iso() -> str:
    """Current time as an ISO-8601 UTC timestamp."""
    return datetime.now(timezone.utc).isoformat()


def parse_timestamp(value: str) -> datetime | None:
    """Parse a stored timestamp, returning None for empty or malformed values."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class TriggerType(str, Enum):
    """What caused the last save."""

    MANUAL = "manual"
    AUTO = "auto"
    COMPACT = "compact"
    CLEAR = "clear"
    AUTO_COMPACT = "auto_compact"


class TodoStatus(str, Enum):
    """Status of a mirrored task-tracker item."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class _Model(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class SessionMeta(_Model):
    """Record metadata. saved_at and version are stamped on every save."""

    version: str = SCHEMA_VERSION
    saved_at: str = ""
    session_id: str = ""
    project: str = ""
    last_trigger: TriggerType = TriggerType.MANUAL


class Goal(_Model):
    original_request: str = ""
    current_objective: str = ""


class Progress(_Model):
    """Done and pending are appended to; current is replaced wholesale."""

    done: list[str] = Field(default_factory=list)
    current: list[str] = Field(default_factory=list)
    pending: list[str] = Field(default_factory=list)


class TodoItem(_Model):
    """A task-tracker item. All three fields are required."""

    # Only the tracker's own "activeForm" key is accepted on input
    model_config = ConfigDict(populate_by_name=False)

    content: str
    status: TodoStatus
    active_form: str = Field(alias="activeForm")


class Tasks(_Model):
    todos: list[TodoItem] = Field(default_factory=list)
    last_synced: str | None = None


class Decision(_Model):
    what: str
    why: str
    rejected: list[str] | None = None


class Discovery(_Model):
    file: str
    insight: str
    timestamp: str | None = None


class WorkingState(_Model):
    recent_files: list[str] = Field(default_factory=list)
    blockers: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    last_tool_calls: list[str] | None = None


class UsageMetrics(_Model):
    """Interaction counters used for the load score."""

    tool_calls: int = 0
    files_read: int = 0
    files_modified: int = 0
    discoveries_count: int = 0
    decisions_count: int = 0
    todos_count: int = 0
    session_start: str = ""
    last_updated: str = ""

    @classmethod
    def fresh(cls, now: str | None = None) -> UsageMetrics:
        """Zero-usage block starting at ``now``."""
        now = now or utc_now_iso()
        return cls(session_start=now, last_updated=now)


class SessionContext(_Model):
    """
    Root session context record.

    Persisted at <project>/.claude/session-context.json.
    """

    meta: SessionMeta = Field(default_factory=SessionMeta)
    goal: Goal = Field(default_factory=Goal)
    progress: Progress = Field(default_factory=Progress)
    tasks: Tasks | None = None
    decisions: list[Decision] = Field(default_factory=list)
    discoveries: list[Discovery] = Field(default_factory=list)
    state: WorkingState = Field(default_factory=WorkingState)
    usage: UsageMetrics | None = None

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible dict in the on-disk shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_json(self, indent: int | None = 2) -> str:
        return self.model_dump_json(indent=indent, by_alias=True, exclude_none=True)

    @property
    def todos(self) -> list[TodoItem]:
        return self.tasks.todos if self.tasks else []


def default_context(project: str = "", session_id: str = "") -> SessionContext:
    """The empty record used when no file exists for a project."""
    return SessionContext(
        meta=SessionMeta(session_id=session_id, project=project),
        tasks=Tasks(),
        usage=UsageMetrics(),
    )


__all__ = [
    "SCHEMA_VERSION",
    "utc_now_iso",
    "parse_timestamp",
    "TriggerType",
    "TodoStatus",
    "SessionMeta",
    "Goal",
    "Progress",
    "TodoItem",
    "Tasks",
    "Decision",
    "Discovery",
    "WorkingState",
    "UsageMetrics",
    "SessionContext",
    "default_context",
]
