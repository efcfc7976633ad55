"""Aggressive, lossy reduction of a session context record."""

from __future__ import annotations

import logging

from .config import CompactionPolicy
from .limits import keep_tail
from .schema import SessionContext, TriggerType, UsageMetrics, utc_now_iso

logger = logging.getLogger(__name__)


def summarize_done(done: list[str], threshold: int) -> list[str]:
    """Collapse a long done list into a single summary entry."""
    if len(done) > threshold:
        return [f"Completed {len(done)} earlier tasks"]
    return list(done)


def compact_context(
    context: SessionContext,
    policy: CompactionPolicy | None = None,
    now: str | None = None,
) -> SessionContext:
    """
    Produce a compacted copy of ``context``.

    Keeps only the most recent decisions, discoveries, files, blockers and
    tool calls; collapses done tasks to a count; clears errors; resets usage
    and marks the record as auto-compacted. The input is not modified.

    Args:
        context: Record to compact
        policy: How much survives (defaults to CompactionPolicy())
        now: Timestamp for the reset usage block (defaults to the current time)
    """
    policy = policy or CompactionPolicy()
    now = now or utc_now_iso()

    state = context.state
    tool_calls = state.last_tool_calls

    compacted = context.model_copy(
        update={
            "decisions": keep_tail(context.decisions, policy.keep_decisions),
            "discoveries": keep_tail(context.discoveries, policy.keep_discoveries),
            "progress": context.progress.model_copy(
                update={"done": summarize_done(context.progress.done, policy.done_summary_threshold)}
            ),
            "state": state.model_copy(
                update={
                    "recent_files": keep_tail(state.recent_files, policy.keep_recent_files),
                    "blockers": keep_tail(state.blockers, policy.keep_blockers),
                    "errors": [],
                    "last_tool_calls": (
                        keep_tail(tool_calls, policy.keep_tool_calls) if tool_calls is not None else None
                    ),
                }
            ),
            "usage": UsageMetrics.fresh(now),
            "meta": context.meta.model_copy(update={"last_trigger": TriggerType.AUTO_COMPACT}),
        }
    )

    logger.debug(
        "Compacted context: decisions %d->%d, discoveries %d->%d, done %d->%d",
        len(context.decisions),
        len(compacted.decisions),
        len(context.discoveries),
        len(compacted.discoveries),
        len(context.progress.done),
        len(compacted.progress.done),
    )
    return compacted


__all__ = ["summarize_done", "compact_context"]
