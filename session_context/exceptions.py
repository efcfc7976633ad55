"""Error taxonomy for the session context store.

Missing and corrupted files are not errors (see ``persistence.LoadResult``),
and a refused clear is reported as a ``None`` result.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any


class SessionContextError(Exception):
    """Base exception for session_context."""


class InvalidProjectDirError(SessionContextError, ValueError):
    """Raised when a project directory contains a null byte or a '..' segment."""

    def __init__(self, project_dir: str):
        self.project_dir = project_dir
        super().__init__(f"Invalid project directory: {project_dir!r}")


class ContextWriteError(SessionContextError):
    """Raised when the context file cannot be written."""

    def __init__(self, path: Path, operation: str, cause: BaseException | None = None):
        self.path = Path(path)
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Failed to {operation} {self.path}{detail}")


class ContextValidationError(SessionContextError, ValueError):
    """Raised when caller-supplied input does not match the record shape."""

    def __init__(self, field: str, errors: list[dict[str, Any]] | None = None):
        self.field = field
        self.errors = errors or []
        super().__init__(f"Invalid {field} format")


__all__ = [
    "SessionContextError",
    "InvalidProjectDirError",
    "ContextWriteError",
    "ContextValidationError",
]
