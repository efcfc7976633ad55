"""
Unit tests for usage tracking and load scoring.
"""

import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from session_context.config import LoadThresholds, UsageWeights
from session_context.schema import (
    Decision,
    Discovery,
    SessionContext,
    UsageMetrics,
    default_context,
)
from session_context.usage import (
    RECOMMENDATIONS,
    LoadLevel,
    UsageStatus,
    calculate_load_score,
    classify_load,
    record_usage,
)

COUNTERS = ["tool_calls", "files_read", "files_modified", "discoveries_count", "decisions_count", "todos_count"]


class TestCalculateLoadScore:
    """Tests for calculate_load_score."""

    def test_zero(self):
        assert calculate_load_score(UsageMetrics()) == 0

    def test_default_weights(self):
        metrics = UsageMetrics(
            tool_calls=10,
            files_read=5,
            files_modified=2,
            discoveries_count=1,
            decisions_count=3,
            todos_count=4,
        )
        # 10*1 + 5*2 + 2*5 + 1*3 + 3*2 + 4*1
        assert calculate_load_score(metrics) == 43

    def test_custom_weights(self):
        metrics = UsageMetrics(tool_calls=10, files_read=1)
        weights = UsageWeights(tool_call=0.5, file_read=0)
        assert calculate_load_score(metrics, weights) == 5

    @pytest.mark.parametrize("counter", COUNTERS)
    def test_monotonic_in_every_counter(self, counter):
        """Increasing any counter never lowers the score."""
        base = UsageMetrics(tool_calls=3, files_read=2, files_modified=1)
        bumped = base.model_copy(update={counter: getattr(base, counter) + 1})
        assert calculate_load_score(bumped) >= calculate_load_score(base)

    def test_monotonic_under_componentwise_order(self):
        """If every counter of A is <= B's, score(A) <= score(B)."""
        a = UsageMetrics(tool_calls=1, files_read=0, files_modified=2, decisions_count=1)
        b = UsageMetrics(tool_calls=4, files_read=3, files_modified=2, decisions_count=5, todos_count=1)
        weights = UsageWeights(tool_call=0.1, file_read=7, file_modified=0, discovery=2, decision=1, todo=0)

        assert calculate_load_score(a) <= calculate_load_score(b)
        assert calculate_load_score(a, weights) <= calculate_load_score(b, weights)

    def test_negative_weight_rejected(self):
        with pytest.raises(ValueError):
            UsageWeights(tool_call=-1)


class TestClassifyLoad:
    """Tests for classify_load."""

    @pytest.mark.parametrize(
        "score,level",
        [
            (0, LoadLevel.LOW),
            (29.9, LoadLevel.LOW),
            (30, LoadLevel.MEDIUM),
            (59, LoadLevel.MEDIUM),
            (60, LoadLevel.HIGH),
            (84, LoadLevel.HIGH),
            (85, LoadLevel.CRITICAL),
            (10_000, LoadLevel.CRITICAL),
        ],
    )
    def test_default_tiers(self, score, level):
        assert classify_load(score) == level

    def test_custom_thresholds(self):
        thresholds = LoadThresholds(medium=25, high=50, critical=100)
        assert classify_load(60, thresholds) == LoadLevel.HIGH
        assert classify_load(100, thresholds) == LoadLevel.CRITICAL

    def test_descending_thresholds_rejected(self):
        with pytest.raises(ValueError):
            LoadThresholds(medium=50, high=40, critical=100)


class TestUsageStatus:
    """Tests for UsageStatus."""

    def test_low_does_not_compact(self):
        status = UsageStatus.from_metrics(UsageMetrics(tool_calls=5))

        assert status.estimated_load == LoadLevel.LOW
        assert status.load_score == 5
        assert status.should_compact is False
        assert status.recommendation == RECOMMENDATIONS[LoadLevel.LOW]

    @pytest.mark.parametrize("tool_calls,level", [(60, LoadLevel.HIGH), (90, LoadLevel.CRITICAL)])
    def test_high_and_critical_compact(self, tool_calls, level):
        status = UsageStatus.from_metrics(UsageMetrics(tool_calls=tool_calls))
        assert status.estimated_load == level
        assert status.should_compact is True

    def test_to_dict(self):
        data = UsageStatus.from_metrics(UsageMetrics(tool_calls=30)).to_dict()

        assert data["estimated_load"] == "medium"
        assert data["load_score"] == 30
        assert data["should_compact"] is False
        assert data["metrics"]["tool_calls"] == 30

    def test_every_level_has_a_recommendation(self):
        assert set(RECOMMENDATIONS) == set(LoadLevel)


class TestRecordUsage:
    """Tests for record_usage."""

    def test_increments_event_counters(self):
        context = default_context()
        updated = record_usage(context, tool_calls=2, files_read=1, files_modified=3, now="T1")
        updated = record_usage(updated, tool_calls=1, now="T2")

        assert updated.usage.tool_calls == 3
        assert updated.usage.files_read == 1
        assert updated.usage.files_modified == 3
        assert updated.usage.last_updated == "T2"

    def test_starts_session_once(self):
        """session_start is set on first use and then left alone."""
        updated = record_usage(default_context(), tool_calls=1, now="T1")
        updated = record_usage(updated, tool_calls=1, now="T2")
        assert updated.usage.session_start == "T1"

    def test_creates_missing_usage_block(self):
        updated = record_usage(SessionContext(), files_read=1, now="T1")
        assert updated.usage.files_read == 1
        assert updated.usage.session_start == "T1"

    def test_resyncs_derived_counts(self):
        """Counts of record content are recomputed, not incremented."""
        context = default_context()
        context.decisions = [Decision(what="a", why="b")] * 2
        context.discoveries = [Discovery(file="f", insight="i")]
        context.usage.decisions_count = 99

        updated = record_usage(context)

        assert updated.usage.decisions_count == 2
        assert updated.usage.discoveries_count == 1
        assert updated.usage.todos_count == 0

    def test_input_is_not_modified(self):
        context = default_context()
        record_usage(context, tool_calls=5)
        assert context.usage.tool_calls == 0
