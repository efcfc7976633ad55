"""
Unit tests for ContextManager.

Exercises the load/merge/save cycle, the dedicated append operations, usage
tracking, compaction and todo synchronization against a temp project.
"""

import json
import pytest
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from session_context.config import ContextLimits, LoadThresholds, StoreConfig
from session_context.exceptions import ContextValidationError, InvalidProjectDirError
from session_context.manager import ContextManager, UpdateRequest
from session_context.schema import TodoStatus, TriggerType
from session_context.usage import LoadLevel


def _todo(content, status="pending"):
    return {"content": content, "status": status, "activeForm": f"Working on {content}"}


@pytest.fixture
def manager(tmp_path):
    return ContextManager(tmp_path)


class TestLoadAndSave:
    """Tests for basic persistence through the manager."""

    def test_invalid_project_dir(self, tmp_path):
        with pytest.raises(InvalidProjectDirError):
            ContextManager(f"{tmp_path}/../x")

    def test_load_missing(self, manager):
        assert manager.load() is None
        assert manager.load_or_default().meta.project == str(manager.project_dir)

    def test_update_merges_onto_default(self, manager):
        saved = manager.update({"goal": {"current_objective": "fix bug"}})

        assert saved.goal.current_objective == "fix bug"
        assert saved.meta.saved_at
        assert manager.load().goal.current_objective == "fix bug"

    def test_update_keeps_untouched_fields(self, manager):
        manager.update({"goal": {"original_request": "a", "current_objective": "b"}})
        manager.update({"goal": {"current_objective": "c"}})

        goal = manager.load().goal
        assert goal.original_request == "a"
        assert goal.current_objective == "c"

    def test_null_update_changes_only_saved_at(self, manager):
        """Merging an all-null update leaves the record as it was."""
        first = manager.update({"goal": {"current_objective": "b"}, "state": {"blockers": ["x"]}})
        second = manager.update({"goal": None, "state": None, "decisions": None})

        exclude = {"meta": {"saved_at"}}
        assert second.model_dump(exclude=exclude) == first.model_dump(exclude=exclude)

    def test_update_invalid_merge_raises(self, manager):
        with pytest.raises(ContextValidationError) as exc_info:
            manager.update({"decisions": [{"what": "missing why"}]})
        assert exc_info.value.field == "update"
        assert manager.load() is None

    @pytest.mark.parametrize("partial", [["goal"], "goal"])
    def test_update_rejects_non_object(self, manager, partial):
        with pytest.raises(ContextValidationError) as exc_info:
            manager.update(partial)
        assert exc_info.value.field == "payload"
        assert manager.load() is None

    def test_save_partial_stamps_manual_meta(self, manager):
        saved = manager.save_partial({"goal": {"current_objective": "x"}})

        assert saved.meta.session_id.startswith("manual-")
        assert saved.meta.last_trigger == TriggerType.MANUAL
        assert saved.meta.project == str(manager.project_dir)

    def test_save_partial_invalid_writes_nothing(self, manager):
        manager.save_partial({"goal": {"current_objective": "kept"}})
        before = manager.store.context_path.read_bytes()

        with pytest.raises(ContextValidationError):
            manager.save_partial({"goal": {"current_objective": "new"}, "progress": {"done": []}})

        assert manager.store.context_path.read_bytes() == before

    def test_stamp_meta(self, manager):
        manager.update({"goal": {"current_objective": "x"}})
        saved = manager.stamp_meta("sess-42", TriggerType.COMPACT)

        assert saved.meta.session_id == "sess-42"
        assert saved.meta.last_trigger == TriggerType.COMPACT
        assert saved.goal.current_objective == "x"

    def test_limits_from_config(self, tmp_path):
        manager = ContextManager(tmp_path, StoreConfig(limits=ContextLimits(max_blockers=2)))
        for blocker in ("a", "b", "c"):
            manager.add_blocker(blocker)
        assert manager.load().state.blockers == ["b", "c"]


class TestLoadRecent:
    """Tests for load_recent."""

    def _write_saved_at(self, manager, saved_at):
        manager.update({"goal": {"current_objective": "x"}})
        data = json.loads(manager.store.context_path.read_text())
        data["meta"]["saved_at"] = saved_at
        manager.store.context_path.write_text(json.dumps(data))

    def test_recent_record(self, manager):
        manager.update({"goal": {"current_objective": "x"}})
        assert manager.load_recent().goal.current_objective == "x"

    def test_stale_record(self, manager):
        old = (datetime.now(timezone.utc) - timedelta(hours=30)).isoformat()
        self._write_saved_at(manager, old)

        assert manager.load_recent(max_age_hours=24) is None
        assert manager.load() is not None

    def test_unparseable_saved_at_is_recent(self, manager):
        self._write_saved_at(manager, "not a date")
        assert manager.load_recent() is not None

    def test_missing(self, manager):
        assert manager.load_recent() is None


class TestClear:
    """Tests for clear."""

    def test_refused_without_confirm(self, manager):
        manager.update({"goal": {"current_objective": "x"}})
        before = manager.store.context_path.read_bytes()

        assert manager.clear() is None
        assert manager.store.context_path.read_bytes() == before

    def test_confirmed_clear(self, manager):
        manager.update({"goal": {"current_objective": "x"}})
        fresh = manager.clear(confirm=True)

        assert fresh.goal.current_objective == ""
        assert fresh.meta.session_id.startswith("fresh-")
        assert fresh.meta.last_trigger == TriggerType.CLEAR
        assert manager.load().goal.current_objective == ""


class TestTargetedUpdates:
    """Tests for the dedicated append/remove operations."""

    def test_add_done_appends(self, manager):
        manager.add_done("a")
        manager.add_done("b", "c")
        assert manager.load().progress.done == ["a", "b", "c"]

    def test_set_current_replaces(self, manager):
        manager.set_current(["a", "b"])
        manager.set_current(["c"])
        assert manager.load().progress.current == ["c"]

    def test_add_pending(self, manager):
        manager.add_pending("p1")
        manager.add_pending("p2")
        assert manager.load().progress.pending == ["p1", "p2"]

    def test_add_decision(self, manager):
        manager.add_decision("use JWT", "stateless", rejected=["sessions"])
        manager.add_decision("use bcrypt", "standard")

        decisions = manager.load().decisions
        assert [d.what for d in decisions] == ["use JWT", "use bcrypt"]
        assert decisions[0].rejected == ["sessions"]
        assert decisions[1].rejected is None

    def test_add_discovery_is_timestamped(self, manager):
        manager.add_discovery("auth.py", "tokens expire after 1h")

        discovery = manager.load().discoveries[0]
        assert discovery.file == "auth.py"
        assert discovery.timestamp

    def test_blockers(self, manager):
        manager.add_blocker("DB down")
        manager.add_blocker("CI red")
        manager.add_blocker("DB down")
        manager.remove_blocker("DB down")
        assert manager.load().state.blockers == ["CI red"]

    def test_remove_missing_blocker_is_noop(self, manager):
        manager.add_blocker("x")
        manager.remove_blocker("y")
        assert manager.load().state.blockers == ["x"]

    def test_add_tool_calls(self, manager):
        manager.add_tool_calls("Read a.py")
        manager.add_tool_calls("Edit a.py", "Bash pytest")
        assert manager.load().state.last_tool_calls == ["Read a.py", "Edit a.py", "Bash pytest"]

    def test_set_objective(self, manager):
        manager.update({"goal": {"original_request": "r"}})
        manager.set_objective("new objective")

        goal = manager.load().goal
        assert goal.current_objective == "new objective"
        assert goal.original_request == "r"

    def test_apply_updates_combines_operations(self, manager):
        request = UpdateRequest.from_dict(
            {
                "add_done": ["a"],
                "add_pending": ["b"],
                "add_decision": {"what": "w", "why": "y"},
                "add_blocker": "x",
                "remove_blocker": "x",
                "unknown": "ignored",
            }
        )
        saved = manager.apply_updates(request)

        assert saved.progress.done == ["a"]
        assert saved.progress.pending == ["b"]
        assert len(saved.decisions) == 1
        assert saved.state.blockers == []

    def test_appended_decisions_respect_limit(self, tmp_path):
        manager = ContextManager(tmp_path, StoreConfig(limits=ContextLimits(max_decisions=20)))
        for i in range(20):
            manager.add_decision(f"d{i}", "why")
        manager.add_decision("d20", "why")

        decisions = manager.load().decisions
        assert len(decisions) == 20
        assert decisions[0].what == "d1"
        assert decisions[-1].what == "d20"


class TestUpdateRequest:
    """Tests for UpdateRequest.from_dict."""

    def test_empty(self):
        assert UpdateRequest.from_dict(None) == UpdateRequest()

    def test_non_object(self):
        with pytest.raises(ContextValidationError) as exc_info:
            UpdateRequest.from_dict(["add_done"])
        assert exc_info.value.field == "payload"

    @pytest.mark.parametrize(
        "data,field",
        [
            ({"add_done": "not a list"}, "add_done"),
            ({"set_current": [1]}, "set_current"),
            ({"set_objective": 3}, "set_objective"),
            ({"add_blocker": ["x"]}, "add_blocker"),
            ({"add_decision": {"what": "x"}}, "decision"),
            ({"add_discovery": {"insight": "x"}}, "discovery"),
        ],
    )
    def test_invalid_fields(self, data, field):
        with pytest.raises(ContextValidationError) as exc_info:
            UpdateRequest.from_dict(data)
        assert exc_info.value.field == field


class TestUsage:
    """Tests for usage tracking through the manager."""

    def test_status_without_record(self, manager):
        status = manager.get_usage_status()
        assert status.estimated_load == LoadLevel.LOW
        assert status.load_score == 0

    def test_track_usage_accumulates(self, manager):
        manager.track_usage(tool_calls=2, files_read=1)
        metrics = manager.track_usage(tool_calls=3, files_modified=1)

        assert metrics.tool_calls == 5
        assert metrics.files_read == 1
        assert metrics.files_modified == 1
        assert manager.load().usage.tool_calls == 5

    def test_score_reaches_high_with_custom_thresholds(self, tmp_path):
        config = StoreConfig(thresholds=LoadThresholds(medium=25, high=50, critical=100))
        manager = ContextManager(tmp_path, config)

        manager.track_usage(tool_calls=60)
        status = manager.get_usage_status()

        assert status.estimated_load == LoadLevel.HIGH
        assert status.should_compact is True

    @pytest.mark.parametrize("bad", [-1, 1.5, True, "3"])
    def test_rejects_bad_counts(self, manager, bad):
        with pytest.raises(ContextValidationError):
            manager.track_usage(tool_calls=bad)

    def test_reset_usage(self, manager):
        manager.track_usage(tool_calls=10)
        metrics = manager.reset_usage()

        assert metrics.tool_calls == 0
        assert metrics.session_start
        assert manager.load().usage.tool_calls == 0


class TestCompact:
    """Tests for compact."""

    def test_compact_persists(self, manager):
        for i in range(6):
            manager.add_decision(f"d{i}", "why")
        manager.add_done("a", "b", "c", "d")
        manager.track_usage(tool_calls=90)

        compacted = manager.compact()

        stored = manager.load()
        assert [d.what for d in stored.decisions] == ["d3", "d4", "d5"]
        assert stored.progress.done == ["Completed 4 earlier tasks"]
        assert stored.usage.tool_calls == 0
        assert stored.meta.last_trigger == TriggerType.AUTO_COMPACT
        assert compacted.meta.saved_at == stored.meta.saved_at


class TestTodoSync:
    """Tests for sync_todos and resume_tasks."""

    def test_sync_and_resume(self, manager):
        summary = manager.sync_todos([_todo("A", "in_progress"), _todo("B"), _todo("C", "completed")])

        assert summary.total == 3
        assert summary.completed == 1

        stored = manager.load()
        assert stored.tasks.last_synced
        assert [t.status for t in stored.todos] == [
            TodoStatus.IN_PROGRESS,
            TodoStatus.PENDING,
            TodoStatus.COMPLETED,
        ]

        view = manager.resume_tasks(auto_restore=True)
        assert [t.content for t in view.todos] == ["A", "B", "C"]

    def test_sync_replaces_previous_list(self, manager):
        manager.sync_todos([_todo("A"), _todo("B")])
        manager.sync_todos([_todo("C")])
        assert [t.content for t in manager.load().todos] == ["C"]

    def test_invalid_item_leaves_stored_list(self, manager):
        """One bad item rejects the whole call."""
        manager.sync_todos([_todo("A")])
        before = manager.store.context_path.read_bytes()

        with pytest.raises(ContextValidationError):
            manager.sync_todos([_todo("B"), {"content": "C", "status": "pending"}])

        assert manager.store.context_path.read_bytes() == before

    def test_sync_keeps_tail_within_limit(self, tmp_path):
        manager = ContextManager(tmp_path, StoreConfig(limits=ContextLimits(max_todos=2)))
        summary = manager.sync_todos([_todo("A"), _todo("B"), _todo("C")])

        assert summary.total == 2
        assert [t.content for t in manager.load().todos] == ["B", "C"]

    def test_resume_without_todos(self, manager):
        assert manager.resume_tasks().empty
