"""Session context persistence for AI coding assistants.

Saves, restores, merges, bounds, scores and compacts a structured session
state record under <project>/.claude/session-context.json so an assistant
can survive context-window resets.
"""

__version__ = "2.0.0"

from .compactor import compact_context
from .config import (
    CompactionPolicy,
    ContextLimits,
    LoadThresholds,
    StoreConfig,
    UsageWeights,
    default_config,
    resolve_project_dir,
)
from .exceptions import (
    ContextValidationError,
    ContextWriteError,
    InvalidProjectDirError,
    SessionContextError,
)
from .formatting import format_for_display
from .limits import apply_limits
from .manager import ContextManager, UpdateRequest
from .merge import deep_merge, merge_context, merge_object, replace_list
from .persistence import ContextStore, LoadResult, LoadSource, validate_project_dir
from .schema import (
    Decision,
    Discovery,
    Goal,
    Progress,
    SessionContext,
    SessionMeta,
    Tasks,
    TodoItem,
    TodoStatus,
    TriggerType,
    UsageMetrics,
    WorkingState,
    default_context,
)
from .tasks import ResumeView, TodoSummary, build_resume_view
from .tools import ContextTools, ToolResult
from .usage import LoadLevel, UsageStatus, calculate_load_score, classify_load

__all__ = [
    # Schema
    "Decision",
    "Discovery",
    "Goal",
    "Progress",
    "SessionContext",
    "SessionMeta",
    "Tasks",
    "TodoItem",
    "TodoStatus",
    "TriggerType",
    "UsageMetrics",
    "WorkingState",
    "default_context",
    # Engine
    "ContextStore",
    "LoadResult",
    "LoadSource",
    "validate_project_dir",
    "apply_limits",
    "deep_merge",
    "merge_context",
    "merge_object",
    "replace_list",
    "compact_context",
    "LoadLevel",
    "UsageStatus",
    "calculate_load_score",
    "classify_load",
    "ResumeView",
    "TodoSummary",
    "build_resume_view",
    "format_for_display",
    "ContextManager",
    "UpdateRequest",
    "ContextTools",
    "ToolResult",
    # Config & errors
    "CompactionPolicy",
    "ContextLimits",
    "LoadThresholds",
    "StoreConfig",
    "UsageWeights",
    "default_config",
    "resolve_project_dir",
    "SessionContextError",
    "InvalidProjectDirError",
    "ContextWriteError",
    "ContextValidationError",
]
