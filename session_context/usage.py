"""Usage tracking math and the load-score heuristic."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from .config import LoadThresholds, UsageWeights
from .schema import SessionContext, UsageMetrics, utc_now_iso


class LoadLevel(str, Enum):
    """Estimated context pressure, in ascending order."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


RECOMMENDATIONS: dict[LoadLevel, str] = {
    LoadLevel.LOW: "Plenty of context headroom. Keep working.",
    LoadLevel.MEDIUM: "Moderate context usage. Sync todos periodically.",
    LoadLevel.HIGH: "High context usage. Save the session context and consider clearing.",
    LoadLevel.CRITICAL: (
        "Context limit reached. Save the session context, clear, "
        "then load the session context immediately."
    ),
}

COMPACTING_LEVELS = frozenset({LoadLevel.HIGH, LoadLevel.CRITICAL})


def calculate_load_score(metrics: UsageMetrics, weights: UsageWeights | None = None) -> float:
    """
    Weighted linear sum of the six usage counters.

    Non-decreasing in every counter since all weights are non-negative.
    """
    weights = weights or UsageWeights()
    return (
        metrics.tool_calls * weights.tool_call
        + metrics.files_read * weights.file_read
        + metrics.files_modified * weights.file_modified
        + metrics.discoveries_count * weights.discovery
        + metrics.decisions_count * weights.decision
        + metrics.todos_count * weights.todo
    )


def classify_load(score: float, thresholds: LoadThresholds | None = None) -> LoadLevel:
    """Map a score to its tier; bounds are inclusive-low, exclusive-high."""
    thresholds = thresholds or LoadThresholds()
    if score < thresholds.medium:
        return LoadLevel.LOW
    if score < thresholds.high:
        return LoadLevel.MEDIUM
    if score < thresholds.critical:
        return LoadLevel.HIGH
    return LoadLevel.CRITICAL


@dataclass
class UsageStatus:
    """Current usage with the derived load tier."""

    metrics: UsageMetrics
    estimated_load: LoadLevel
    load_score: float
    recommendation: str
    should_compact: bool

    @classmethod
    def from_metrics(
        cls,
        metrics: UsageMetrics,
        weights: UsageWeights | None = None,
        thresholds: LoadThresholds | None = None,
    ) -> UsageStatus:
        score = calculate_load_score(metrics, weights)
        level = classify_load(score, thresholds)
        return cls(
            metrics=metrics,
            estimated_load=level,
            load_score=score,
            recommendation=RECOMMENDATIONS[level],
            should_compact=level in COMPACTING_LEVELS,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "metrics": self.metrics.model_dump(mode="json"),
            "estimated_load": self.estimated_load.value,
            "load_score": self.load_score,
            "recommendation": self.recommendation,
            "should_compact": self.should_compact,
        }


def record_usage(
    context: SessionContext,
    tool_calls: int = 0,
    files_read: int = 0,
    files_modified: int = 0,
    now: str | None = None,
) -> SessionContext:
    """
    Return a copy of ``context`` with usage counters advanced.

    The three event counters are incremented by the given deltas; the
    discovery, decision and todo counts are resynced from the record itself.
    """
    now = now or utc_now_iso()
    usage = context.usage.model_copy() if context.usage else UsageMetrics.fresh(now)
    if not usage.session_start:
        usage.session_start = now
    usage.tool_calls += tool_calls
    usage.files_read += files_read
    usage.files_modified += files_modified
    usage.discoveries_count = len(context.discoveries)
    usage.decisions_count = len(context.decisions)
    usage.todos_count = len(context.todos)
    usage.last_updated = now
    return context.model_copy(update={"usage": usage})


__all__ = [
    "LoadLevel",
    "RECOMMENDATIONS",
    "calculate_load_score",
    "classify_load",
    "UsageStatus",
    "record_usage",
]
