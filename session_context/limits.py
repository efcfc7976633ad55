"""Bounded-list enforcement for session context records."""

from __future__ import annotations

import logging
from typing import TypeVar

from .config import ContextLimits
from .schema import SessionContext

logger = logging.getLogger(__name__)

T = TypeVar("T")


def keep_tail(items: list[T], limit: int) -> list[T]:
    """Keep only the most recent ``limit`` entries."""
    if limit <= 0:
        return []
    return list(items[-limit:])


def apply_limits(context: SessionContext, limits: ContextLimits | None = None) -> SessionContext:
    """
    Truncate every bounded list to its configured maximum.

    Pure and idempotent; the input record is not modified.

    Args:
        context: Record to bound
        limits: Per-field maximums (defaults to ContextLimits())

    Returns:
        New record whose lists never exceed their limits
    """
    limits = limits or ContextLimits()

    progress = context.progress.model_copy(
        update={"done": keep_tail(context.progress.done, limits.max_done_tasks)}
    )

    state = context.state
    tool_calls = state.last_tool_calls
    state = state.model_copy(
        update={
            "recent_files": keep_tail(state.recent_files, limits.max_recent_files),
            "blockers": keep_tail(state.blockers, limits.max_blockers),
            "errors": keep_tail(state.errors, limits.max_errors),
            "last_tool_calls": keep_tail(tool_calls, limits.max_tool_calls) if tool_calls is not None else None,
        }
    )

    tasks = context.tasks
    if tasks is not None:
        tasks = tasks.model_copy(update={"todos": keep_tail(tasks.todos, limits.max_todos)})

    return context.model_copy(
        update={
            "decisions": keep_tail(context.decisions, limits.max_decisions),
            "discoveries": keep_tail(context.discoveries, limits.max_discoveries),
            "progress": progress,
            "state": state,
            "tasks": tasks,
        }
    )


def truncation_counts(context: SessionContext, limits: ContextLimits | None = None) -> dict[str, int]:
    """Number of entries ``apply_limits`` would drop, per field (non-zero only)."""
    limits = limits or ContextLimits()
    sizes = {
        "decisions": (len(context.decisions), limits.max_decisions),
        "discoveries": (len(context.discoveries), limits.max_discoveries),
        "progress.done": (len(context.progress.done), limits.max_done_tasks),
        "state.recent_files": (len(context.state.recent_files), limits.max_recent_files),
        "state.blockers": (len(context.state.blockers), limits.max_blockers),
        "state.errors": (len(context.state.errors), limits.max_errors),
        "state.last_tool_calls": (len(context.state.last_tool_calls or []), limits.max_tool_calls),
        "tasks.todos": (len(context.todos), limits.max_todos),
    }
    return {
        name: size - max(limit, 0)
        for name, (size, limit) in sizes.items()
        if size > max(limit, 0)
    }


__all__ = ["keep_tail", "apply_limits", "truncation_counts"]
