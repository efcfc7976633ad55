"""
Context Manager for the session context store.

One instance per project directory. Loads, merges, bounds and saves the
session context record, and exposes the dedicated append operations, usage
tracking, compaction and todo synchronization.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, fields
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .compactor import compact_context
from .config import StoreConfig
from .exceptions import ContextValidationError
from .formatting import format_for_display
from .merge import merge_context
from .persistence import ContextStore, LoadResult
from .schema import (
    Decision,
    Discovery,
    SessionContext,
    SessionMeta,
    Tasks,
    TriggerType,
    UsageMetrics,
    default_context,
    parse_timestamp,
    utc_now_iso,
)
from .tasks import ResumeView, TodoSummary, build_resume_view
from .usage import UsageStatus, record_usage
from .validators import (
    require_object,
    validate_decision,
    validate_discovery,
    validate_save_payload,
    validate_string_list,
    validate_todos,
)

logger = logging.getLogger(__name__)


def _epoch_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class UpdateRequest:
    """
    Targeted field operations for a single update call.

    Every field is optional; ``None`` means "leave alone".
    """

    add_done: list[str] | None = None
    set_current: list[str] | None = None
    add_pending: list[str] | None = None
    add_decision: dict[str, Any] | None = None
    add_discovery: dict[str, Any] | None = None
    set_objective: str | None = None
    add_blocker: str | None = None
    remove_blocker: str | None = None
    add_tool_calls: list[str] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> UpdateRequest:
        """Build from raw caller arguments, validating every supplied field."""
        data = require_object(data)
        valid = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in valid and v is not None}

        for key in ("add_done", "set_current", "add_pending", "add_tool_calls"):
            if key in kwargs:
                kwargs[key] = validate_string_list(key, kwargs[key])
        for key in ("set_objective", "add_blocker", "remove_blocker"):
            if key in kwargs and not isinstance(kwargs[key], str):
                raise ContextValidationError(key, [{"msg": f"{key} must be a string"}])
        if "add_decision" in kwargs:
            kwargs["add_decision"] = validate_decision(kwargs["add_decision"])
        if "add_discovery" in kwargs:
            kwargs["add_discovery"] = validate_discovery(kwargs["add_discovery"])
        return cls(**kwargs)


class ContextManager:
    """
    Manages the session context of one project directory.

    Example::

        manager = ContextManager("/path/to/project")
        manager.update({"goal": {"current_objective": "fix bug"}})
        manager.add_blocker("DB down")
        print(manager.format(manager.load()))
    """

    def __init__(self, project_dir: str | Path, config: StoreConfig | None = None):
        """
        Initialize the manager.

        Args:
            project_dir: Project root (validated before any I/O)
            config: Limits, weights, thresholds and compaction policy
        """
        self.config = config or StoreConfig()
        self.store = ContextStore(project_dir, limits=self.config.limits)

    @property
    def project_dir(self) -> Path:
        return self.store.project_dir

    # =========================================================================
    # Load / save
    # =========================================================================

    def default_context(self, session_id: str = "") -> SessionContext:
        return default_context(project=str(self.project_dir), session_id=session_id)

    def load(self) -> SessionContext | None:
        """Load the stored record, or None if there is none."""
        return self.store.load()

    def load_result(self) -> LoadResult:
        return self.store.load_result()

    def load_backup(self) -> SessionContext | None:
        """Load the previous generation kept beside the primary file."""
        return self.store.read_backup()

    def load_or_default(self) -> SessionContext:
        return self.store.load() or self.default_context()

    def load_recent(self, max_age_hours: float = 24) -> SessionContext | None:
        """
        Load the record only if it was saved within ``max_age_hours``.

        Records without a parseable saved_at are treated as recent.
        """
        context = self.store.load()
        if context is None:
            return None
        saved_at = parse_timestamp(context.meta.saved_at)
        if saved_at is None:
            return context
        if datetime.now(timezone.utc) - saved_at > timedelta(hours=max_age_hours):
            logger.info("Ignoring stale session context saved at %s", context.meta.saved_at)
            return None
        return context

    def save(self, context: SessionContext) -> SessionContext:
        """Bound, stamp and persist a record."""
        return self.store.save(context)

    def update(self, partial: dict[str, Any] | None) -> SessionContext:
        """
        Merge a partial record onto the stored one (or the default) and save.

        Raises:
            ContextValidationError: If ``partial`` is not an object, or the merged
                document no longer fits the schema
        """
        partial = require_object(partial)
        current = self.load_or_default()
        try:
            merged = merge_context(current, partial)
        except ValidationError as e:
            raise ContextValidationError("update", e.errors(include_url=False)) from e
        return self.save(merged)

    def save_partial(self, payload: dict[str, Any] | None) -> SessionContext:
        """
        Validate and merge a caller-supplied save payload.

        The record gets fresh metadata: a new manual session id, the project
        path, and a manual trigger. Nothing is written if validation fails.
        """
        partial = validate_save_payload(payload)
        meta = SessionMeta(
            session_id=f"manual-{_epoch_ms()}",
            project=str(self.project_dir),
            last_trigger=TriggerType.MANUAL,
        )
        partial["meta"] = meta.model_dump(mode="json")
        return self.update(partial)

    def stamp_meta(self, session_id: str, trigger: TriggerType) -> SessionContext:
        """Record which session and lifecycle trigger produced the latest save."""
        current = self.load_or_default()
        meta = current.meta.model_copy(
            update={"session_id": session_id, "last_trigger": trigger, "project": str(self.project_dir)}
        )
        return self.save(current.model_copy(update={"meta": meta}))

    def clear(self, confirm: bool = False) -> SessionContext | None:
        """
        Replace the record with a fresh default.

        Returns None without touching the file unless ``confirm`` is true.
        """
        if not confirm:
            logger.info("Refusing to clear session context without confirmation")
            return None
        fresh = self.default_context(session_id=f"fresh-{_epoch_ms()}")
        fresh.meta.last_trigger = TriggerType.CLEAR
        logger.info("Clearing session context for %s", self.project_dir)
        return self.save(fresh)

    # =========================================================================
    # Targeted updates (read current list, append/remove, write back)
    # =========================================================================

    def apply_updates(self, request: UpdateRequest) -> SessionContext:
        """Apply every requested field operation in one load/save cycle."""
        context = self.load_or_default().model_copy(deep=True)
        progress = context.progress
        state = context.state

        if request.add_done is not None:
            progress.done.extend(request.add_done)
        if request.set_current is not None:
            progress.current = list(request.set_current)
        if request.add_pending is not None:
            progress.pending.extend(request.add_pending)
        if request.add_decision is not None:
            context.decisions.append(Decision(**validate_decision(request.add_decision)))
        if request.add_discovery is not None:
            discovery = Discovery(**validate_discovery(request.add_discovery))
            discovery.timestamp = utc_now_iso()
            context.discoveries.append(discovery)
        if request.set_objective is not None:
            context.goal.current_objective = request.set_objective
        if request.add_blocker is not None:
            state.blockers.append(request.add_blocker)
        if request.remove_blocker is not None:
            state.blockers = [b for b in state.blockers if b != request.remove_blocker]
        if request.add_tool_calls is not None:
            state.last_tool_calls = (state.last_tool_calls or []) + list(request.add_tool_calls)

        return self.save(context)

    def add_done(self, *items: str) -> SessionContext:
        return self.apply_updates(UpdateRequest(add_done=list(items)))

    def add_pending(self, *items: str) -> SessionContext:
        return self.apply_updates(UpdateRequest(add_pending=list(items)))

    def set_current(self, items: list[str]) -> SessionContext:
        return self.apply_updates(UpdateRequest(set_current=items))

    def add_decision(self, what: str, why: str, rejected: list[str] | None = None) -> SessionContext:
        decision = {"what": what, "why": why, "rejected": rejected}
        return self.apply_updates(UpdateRequest(add_decision=decision))

    def add_discovery(self, file: str, insight: str) -> SessionContext:
        return self.apply_updates(UpdateRequest(add_discovery={"file": file, "insight": insight}))

    def set_objective(self, objective: str) -> SessionContext:
        return self.apply_updates(UpdateRequest(set_objective=objective))

    def add_blocker(self, blocker: str) -> SessionContext:
        return self.apply_updates(UpdateRequest(add_blocker=blocker))

    def remove_blocker(self, blocker: str) -> SessionContext:
        return self.apply_updates(UpdateRequest(remove_blocker=blocker))

    def add_tool_calls(self, *calls: str) -> SessionContext:
        return self.apply_updates(UpdateRequest(add_tool_calls=list(calls)))

    # =========================================================================
    # Usage tracking
    # =========================================================================

    def track_usage(self, tool_calls: int = 0, files_read: int = 0, files_modified: int = 0) -> UsageMetrics:
        """Advance the usage counters and persist them."""
        for name, value in (("tool_calls", tool_calls), ("files_read", files_read), ("files_modified", files_modified)):
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ContextValidationError(name, [{"msg": f"{name} must be a non-negative integer"}])

        updated = record_usage(
            self.load_or_default(),
            tool_calls=tool_calls,
            files_read=files_read,
            files_modified=files_modified,
        )
        saved = self.save(updated)
        return saved.usage

    def get_usage_status(self) -> UsageStatus:
        """Score the stored usage and classify the load."""
        context = self.load()
        metrics = context.usage if context and context.usage else UsageMetrics()
        return UsageStatus.from_metrics(metrics, self.config.weights, self.config.thresholds)

    def reset_usage(self) -> UsageMetrics:
        """Start a fresh usage window (e.g. after a manual clear)."""
        current = self.load_or_default()
        saved = self.save(current.model_copy(update={"usage": UsageMetrics.fresh()}))
        return saved.usage

    # =========================================================================
    # Compaction
    # =========================================================================

    def compact(self) -> SessionContext:
        """Compact the stored record and persist the result."""
        compacted = compact_context(self.load_or_default(), self.config.compaction)
        logger.info("Compacted session context for %s", self.project_dir)
        return self.save(compacted)

    # =========================================================================
    # Todo synchronization
    # =========================================================================

    def sync_todos(self, todos: Any) -> TodoSummary:
        """
        Mirror the caller's full todo list.

        Every item is validated first; one malformed item rejects the call
        and leaves the stored todos unchanged. Only the tail of the list
        within the todo limit is kept.
        """
        items = validate_todos(todos)
        limit = self.config.limits.max_todos
        items = items[-limit:] if limit > 0 else []

        current = self.load_or_default()
        tasks = Tasks(todos=items, last_synced=utc_now_iso())
        saved = self.save(current.model_copy(update={"tasks": tasks}))
        return TodoSummary.of(saved.todos)

    def resume_tasks(self, auto_restore: bool = False) -> ResumeView:
        """Build the view used to restore the caller's task tracker."""
        context = self.load()
        return build_resume_view(context.tasks if context else None, auto_restore)

    # =========================================================================
    # Rendering
    # =========================================================================

    @staticmethod
    def format(context: SessionContext) -> str:
        return format_for_display(context)


__all__ = ["ContextManager", "UpdateRequest"]
