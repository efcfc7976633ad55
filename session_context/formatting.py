"""Markdown-like rendering of a session context for re-injection."""

from __future__ import annotations

from .schema import SessionContext, TodoStatus
from .tasks import todos_with_status

HEADER = "=== SESSION CONTEXT RESTORED ==="
FOOTER = "=== END SESSION CONTEXT ==="

RECENT_DECISIONS = 3
RECENT_DISCOVERIES = 5


def format_for_display(context: SessionContext) -> str:
    """Render the record as text. Empty sections are omitted."""
    lines = [HEADER, ""]

    goal = context.goal
    if goal.original_request or goal.current_objective:
        lines.append("## Goal")
        if goal.original_request:
            lines.append(f"- Original request: {goal.original_request}")
        if goal.current_objective:
            lines.append(f"- Current objective: {goal.current_objective}")
        lines.append("")

    progress = context.progress
    if progress.done or progress.current or progress.pending:
        lines.append("## Progress")
        for label, items in (("Done", progress.done), ("Current", progress.current), ("Pending", progress.pending)):
            if items:
                lines.append(f"{label}:")
                lines.extend(f"- {item}" for item in items)
        lines.append("")

    if context.decisions:
        lines.append("## Recent Decisions")
        for d in context.decisions[-RECENT_DECISIONS:]:
            lines.append(f"- {d.what}: {d.why}")
            if d.rejected:
                lines.append(f"  (rejected: {', '.join(d.rejected)})")
        lines.append("")

    if context.discoveries:
        lines.append("## Recent Discoveries")
        lines.extend(f"- {d.file}: {d.insight}" for d in context.discoveries[-RECENT_DISCOVERIES:])
        lines.append("")

    todos = context.todos
    if todos:
        lines.append("## Saved Tasks (TodoWrite)")
        in_progress = todos_with_status(todos, TodoStatus.IN_PROGRESS)
        pending = todos_with_status(todos, TodoStatus.PENDING)
        completed = todos_with_status(todos, TodoStatus.COMPLETED)
        if in_progress:
            lines.append("In Progress:")
            lines.extend(f"- {t.content}" for t in in_progress)
        if pending:
            lines.append("Pending:")
            lines.extend(f"- {t.content}" for t in pending)
        if completed:
            lines.append(f"Completed: {len(completed)} tasks")
        if context.tasks and context.tasks.last_synced:
            lines.append(f"(synced at {context.tasks.last_synced})")
        lines.append("")

    state = context.state
    if state.recent_files or state.blockers:
        lines.append("## State")
        if state.recent_files:
            lines.append(f"Recent files: {', '.join(state.recent_files)}")
        if state.blockers:
            lines.append("Blockers:")
            lines.extend(f"- {b}" for b in state.blockers)
        lines.append("")

    lines.append(FOOTER)
    return "\n".join(lines)


__all__ = ["HEADER", "FOOTER", "format_for_display"]
