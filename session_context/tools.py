"""
Operation surface consumed by the tool-call layer.

Each method returns a ``ToolResult``. Validation and write failures become
error results instead of exceptions, so a caller never sees a traceback.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Literal

from .config import StoreConfig
from .exceptions import ContextValidationError, ContextWriteError
from .manager import ContextManager, UpdateRequest
from .persistence import dump_context
from .tasks import NO_TODOS_MESSAGE

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "No session context found. Start fresh or use save_session_context to create one."
CLEAR_REFUSED_MESSAGE = "Confirmation required. Set confirm: true to clear the session context."

LoadFormat = Literal["json", "markdown"]


@dataclass
class ToolResult:
    """Text response for the invoking layer, with optional structured data."""

    text: str
    is_error: bool = False
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"content": [{"type": "text", "text": self.text}]}
        if self.is_error:
            result["isError"] = True
        return result


def _error(e: Exception) -> ToolResult:
    if isinstance(e, ContextValidationError):
        return ToolResult(text=f"Error: {e}", is_error=True, data={"field": e.field, "errors": e.errors})
    return ToolResult(text=f"Error: {e}", is_error=True)


class ContextTools:
    """Tool-call facade over a ContextManager."""

    def __init__(self, project_dir: str | Path, config: StoreConfig | None = None):
        self.manager = ContextManager(project_dir, config)

    def save(self, args: dict[str, Any] | None = None) -> ToolResult:
        try:
            saved = self.manager.save_partial(args)
        except (ContextValidationError, ContextWriteError) as e:
            logger.warning("save_session_context failed: %s", e)
            return _error(e)
        return ToolResult(text=f"Session context saved at {saved.meta.saved_at}", data=saved.to_dict())

    def load(self, format: LoadFormat = "markdown", backup: bool = False) -> ToolResult:
        context = self.manager.load_backup() if backup else self.manager.load()
        if context is None:
            return ToolResult(text=NOT_FOUND_MESSAGE)
        if format == "json":
            return ToolResult(text=dump_context(context), data=context.to_dict())
        return ToolResult(text=self.manager.format(context), data=context.to_dict())

    def update(self, args: dict[str, Any] | None = None) -> ToolResult:
        try:
            request = UpdateRequest.from_dict(args)
            saved = self.manager.apply_updates(request)
        except (ContextValidationError, ContextWriteError) as e:
            logger.warning("update_session_context failed: %s", e)
            return _error(e)
        return ToolResult(text=f"Session context updated at {saved.meta.saved_at}", data=saved.to_dict())

    def clear(self, confirm: bool = False) -> ToolResult:
        try:
            fresh = self.manager.clear(confirm=confirm is True)
        except ContextWriteError as e:
            return _error(e)
        if fresh is None:
            return ToolResult(text=CLEAR_REFUSED_MESSAGE)
        return ToolResult(text="Session context cleared.", data=fresh.to_dict())

    def sync_todos(self, todos: Any) -> ToolResult:
        if not isinstance(todos, list):
            return ToolResult(
                text="Error: todos array is required. Pass your current TodoWrite list.",
                is_error=True,
            )
        try:
            summary = self.manager.sync_todos(todos)
        except ContextValidationError as e:
            return ToolResult(
                text="Error: Invalid todo item format. Each item must have content, status, and activeForm.",
                is_error=True,
                data={"field": e.field, "errors": e.errors},
            )
        except ContextWriteError as e:
            return _error(e)
        return ToolResult(text=summary.describe(), data=asdict(summary))

    def resume_tasks(self, auto_restore: bool = False) -> ToolResult:
        view = self.manager.resume_tasks(auto_restore=bool(auto_restore))
        if view.empty:
            return ToolResult(text=NO_TODOS_MESSAGE)
        return ToolResult(text=view.render(), data=view.to_dict())

    def usage_status(self) -> ToolResult:
        status = self.manager.get_usage_status()
        text = (
            f"Load: {status.estimated_load.value} (score {status.load_score:g}). "
            f"{status.recommendation}"
        )
        return ToolResult(text=text, data=status.to_dict())

    def track_usage(self, tool_calls: int = 0, files_read: int = 0, files_modified: int = 0) -> ToolResult:
        try:
            metrics = self.manager.track_usage(tool_calls, files_read, files_modified)
        except (ContextValidationError, ContextWriteError) as e:
            return _error(e)
        return ToolResult(
            text=f"Usage tracked: {metrics.tool_calls} tool calls, {metrics.files_read} files read, "
            f"{metrics.files_modified} files modified",
            data=metrics.model_dump(mode="json"),
        )

    def compact(self) -> ToolResult:
        try:
            compacted = self.manager.compact()
        except ContextWriteError as e:
            return _error(e)
        return ToolResult(text=f"Session context compacted at {compacted.meta.saved_at}", data=compacted.to_dict())

    def reset_usage(self) -> ToolResult:
        try:
            metrics = self.manager.reset_usage()
        except ContextWriteError as e:
            return _error(e)
        return ToolResult(text=f"Usage tracking reset at {metrics.session_start}", data=metrics.model_dump(mode="json"))


__all__ = [
    "NOT_FOUND_MESSAGE",
    "CLEAR_REFUSED_MESSAGE",
    "ToolResult",
    "ContextTools",
]
