"""Todo-list mirroring: sync summaries and resume views."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from .schema import Tasks, TodoItem, TodoStatus

COMPLETED_PREVIEW = 5

NO_TODOS_MESSAGE = "No saved todos found. Use sync_todos to save your current task list first."


def todos_with_status(todos: list[TodoItem], status: TodoStatus) -> list[TodoItem]:
    return [t for t in todos if t.status == status]


def todos_to_wire(todos: list[TodoItem]) -> list[dict[str, Any]]:
    """Todo items in the task tracker's own format (``activeForm`` key)."""
    return [t.model_dump(mode="json", by_alias=True) for t in todos]


@dataclass
class TodoSummary:
    """Counts of a synced todo list, split by status."""

    total: int
    pending: int
    in_progress: int
    completed: int

    @classmethod
    def of(cls, todos: list[TodoItem]) -> TodoSummary:
        return cls(
            total=len(todos),
            pending=len(todos_with_status(todos, TodoStatus.PENDING)),
            in_progress=len(todos_with_status(todos, TodoStatus.IN_PROGRESS)),
            completed=len(todos_with_status(todos, TodoStatus.COMPLETED)),
        )

    def describe(self) -> str:
        return (
            f"Synced {self.total} todos ({self.completed} completed, "
            f"{self.in_progress} in progress, {self.pending} pending)"
        )


@dataclass
class ResumeView:
    """
    What a caller needs to restore its task tracker after a reset.

    With ``auto_restore`` the full ordered list is carried verbatim in
    ``todos``; otherwise only the condensed sections are filled.
    """

    auto_restore: bool
    last_synced: str | None = None
    todos: list[TodoItem] = field(default_factory=list)
    in_progress: list[TodoItem] = field(default_factory=list)
    pending: list[TodoItem] = field(default_factory=list)
    recent_completed: list[TodoItem] = field(default_factory=list)
    completed_count: int = 0

    @property
    def empty(self) -> bool:
        return not (self.todos or self.in_progress or self.pending or self.completed_count)

    @property
    def active_count(self) -> int:
        return len(self.in_progress) + len(self.pending)

    @property
    def completed_overflow(self) -> int:
        return max(self.completed_count - len(self.recent_completed), 0)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "auto_restore": self.auto_restore,
            "last_synced": self.last_synced,
            "counts": {
                "completed": self.completed_count,
                "in_progress": len(self.in_progress),
                "pending": len(self.pending),
            },
        }
        if self.auto_restore:
            data["todos"] = todos_to_wire(self.todos)
        else:
            data["in_progress"] = [t.content for t in self.in_progress]
            data["pending"] = [t.content for t in self.pending]
            data["recent_completed"] = [t.content for t in self.recent_completed]
            data["completed_overflow"] = self.completed_overflow
        return data

    def render(self) -> str:
        """Human-readable text for the calling agent."""
        if self.empty:
            return NO_TODOS_MESSAGE
        if self.auto_restore:
            return self._render_restore()
        return self._render_condensed()

    def _render_restore(self) -> str:
        todos_json = json.dumps(todos_to_wire(self.todos), indent=2, ensure_ascii=False)
        return "\n".join(
            [
                f"## Resume Tasks (saved at {self.last_synced})",
                "",
                "### Active Tasks to Restore",
                "To restore your task list, call TodoWrite with this todos array:",
                "",
                "```json",
                todos_json,
                "```",
                "",
                "### Summary",
                f"- **Completed**: {self.completed_count} tasks",
                f"- **In Progress**: {len(self.in_progress)} tasks",
                f"- **Pending**: {len(self.pending)} tasks",
                "",
                "### Next Step",
                "Call TodoWrite with the todos array above to restore your task list "
                "and continue where you left off.",
            ]
        )

    def _render_condensed(self) -> str:
        lines = [f"## Saved Tasks (from {self.last_synced})", ""]

        if self.in_progress:
            lines.append("### In Progress")
            lines.extend(f"- {t.content}" for t in self.in_progress)
            lines.append("")

        if self.pending:
            lines.append("### Pending")
            lines.extend(f"- {t.content}" for t in self.pending)
            lines.append("")

        if self.completed_count:
            lines.append(f"### Completed ({self.completed_count} tasks)")
            lines.extend(f"- {t.content}" for t in self.recent_completed)
            if self.completed_overflow:
                lines.append(f"- ... and {self.completed_overflow} more")
            lines.append("")

        lines.append("---")
        lines.append("*Use `resume_tasks` with `auto_restore: true` for TodoWrite-ready format.*")
        return "\n".join(lines)


def build_resume_view(tasks: Tasks | None, auto_restore: bool = False) -> ResumeView:
    """
    Partition stored todos into active and completed items.

    Args:
        tasks: Stored task block (None or empty means nothing to resume)
        auto_restore: Carry the full ordered list for direct reinjection
    """
    if tasks is None or not tasks.todos:
        return ResumeView(auto_restore=auto_restore)

    todos = tasks.todos
    completed = todos_with_status(todos, TodoStatus.COMPLETED)
    return ResumeView(
        auto_restore=auto_restore,
        last_synced=tasks.last_synced,
        todos=list(todos) if auto_restore else [],
        in_progress=todos_with_status(todos, TodoStatus.IN_PROGRESS),
        pending=todos_with_status(todos, TodoStatus.PENDING),
        recent_completed=[] if auto_restore else completed[-COMPLETED_PREVIEW:],
        completed_count=len(completed),
    )


__all__ = [
    "COMPLETED_PREVIEW",
    "NO_TODOS_MESSAGE",
    "todos_with_status",
    "todos_to_wire",
    "TodoSummary",
    "ResumeView",
    "build_resume_view",
]
