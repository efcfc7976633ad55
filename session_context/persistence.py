"""
Context store persistence.

Owns <project>/.claude/session-context.json and its one-generation backup.
Writes go through write-to-temp-then-rename so a reader only ever sees the
old or the new document.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from pydantic import ValidationError

from .config import ContextLimits
from .exceptions import ContextWriteError, InvalidProjectDirError
from .limits import apply_limits, truncation_counts
from .schema import SCHEMA_VERSION, SessionContext, utc_now_iso

logger = logging.getLogger(__name__)

CONTEXT_DIRNAME = ".claude"
CONTEXT_FILENAME = "session-context.json"
BACKUP_SUFFIX = ".bak"


def validate_project_dir(project_dir: str | Path) -> Path:
    """
    Validate and normalize a project directory before any I/O.

    Args:
        project_dir: Caller-supplied project root

    Returns:
        Resolved absolute path

    Raises:
        InvalidProjectDirError: If the path contains a null byte or a '..' segment
    """
    raw = os.fspath(project_dir)
    if "\0" in raw or ".." in Path(raw).parts:
        raise InvalidProjectDirError(raw)
    return Path(raw).resolve()


class LoadSource(str, Enum):
    """Where a load was satisfied from."""

    PRIMARY = "primary"
    BACKUP = "backup"
    MISSING = "missing"
    CORRUPT = "corrupt"


@dataclass
class LoadResult:
    """Outcome of reading the context file."""

    source: LoadSource
    context: SessionContext | None = None

    @property
    def found(self) -> bool:
        return self.context is not None


def _read_context(path: Path) -> SessionContext | None:
    """Parse a context file, returning None if it is unreadable or invalid."""
    try:
        return SessionContext.model_validate_json(path.read_bytes())
    except FileNotFoundError:
        return None
    except (OSError, ValueError, ValidationError) as e:
        logger.warning("Unreadable session context %s: %s", path, e)
        return None


class ContextStore:
    """
    JSON persistence for one project's session context.

    One live instance per project directory; no locking is performed.
    """

    def __init__(self, project_dir: str | Path, limits: ContextLimits | None = None):
        """
        Initialize the store.

        Args:
            project_dir: Project root; validated before any I/O
            limits: Bounded-list maximums applied on every save
        """
        self.project_dir = validate_project_dir(project_dir)
        self.limits = limits or ContextLimits()
        self.context_dir = self.project_dir / CONTEXT_DIRNAME
        self.context_path = self.context_dir / CONTEXT_FILENAME
        self.backup_path = self.context_dir / (CONTEXT_FILENAME + BACKUP_SUFFIX)

    def exists(self) -> bool:
        """Check if a primary context file exists."""
        return self.context_path.exists()

    def load_result(self) -> LoadResult:
        """
        Read the record, falling back to the backup on a corrupt primary.

        Never raises for missing or corrupt files.
        """
        if not self.exists():
            return LoadResult(LoadSource.MISSING)

        context = _read_context(self.context_path)
        if context is not None:
            return LoadResult(LoadSource.PRIMARY, context)

        backup = _read_context(self.backup_path)
        if backup is not None:
            logger.warning("Recovered session context from backup %s", self.backup_path)
            return LoadResult(LoadSource.BACKUP, backup)

        return LoadResult(LoadSource.CORRUPT)

    def load(self) -> SessionContext | None:
        """Load the record, or None if absent or unrecoverable."""
        return self.load_result().context

    def read_backup(self) -> SessionContext | None:
        """Load the one-generation backup, if any."""
        return _read_context(self.backup_path)

    def save(self, context: SessionContext) -> SessionContext:
        """
        Persist a record.

        Applies limits, stamps meta.saved_at/meta.version, and atomically
        replaces the primary file. The previous valid primary becomes the backup.

        Args:
            context: Record to save (not modified)

        Returns:
            The record as written

        Raises:
            ContextWriteError: If the directory or file cannot be written
        """
        dropped = truncation_counts(context, self.limits)
        if dropped:
            logger.debug("Truncated bounded lists on save: %s", dropped)

        limited = apply_limits(context, self.limits)
        stamped = limited.model_copy(
            update={
                "meta": limited.meta.model_copy(
                    update={"saved_at": utc_now_iso(), "version": SCHEMA_VERSION}
                )
            }
        )

        try:
            self.context_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ContextWriteError(self.context_dir, "create directory", e) from e

        self._write_atomic(stamped.to_json(indent=2))
        logger.info("Saved session context to %s", self.context_path)
        return stamped

    def _write_atomic(self, content: str) -> None:
        """Write to a temp file in the same directory, back up, then rename."""
        try:
            fd, temp_path = tempfile.mkstemp(
                suffix=".tmp",
                prefix="session-context_",
                dir=self.context_dir,
            )
        except OSError as e:
            raise ContextWriteError(self.context_dir, "create temp file in", e) from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            self._backup_current()
            os.replace(temp_path, self.context_path)
        except Exception as e:
            # Clean up temp file on error
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise ContextWriteError(self.context_path, "write", e) from e

    def _backup_current(self) -> None:
        """Copy the current primary to the backup path if it is a valid record."""
        if not self.exists() or _read_context(self.context_path) is None:
            return
        try:
            shutil.copyfile(self.context_path, self.backup_path)
        except OSError as e:
            logger.warning("Could not back up %s: %s", self.context_path, e)


def dump_context(context: SessionContext) -> str:
    """Pretty JSON for the structured load format."""
    return json.dumps(context.to_dict(), indent=2, ensure_ascii=False)


__all__ = [
    "CONTEXT_DIRNAME",
    "CONTEXT_FILENAME",
    "validate_project_dir",
    "LoadSource",
    "LoadResult",
    "ContextStore",
    "dump_context",
]
