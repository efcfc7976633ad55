"""
Partial-update merging for session context records.

Two explicit strategies:

- ``replace_list``: a list in the update replaces the stored list wholesale.
- ``merge_object``: a dict in the update is merged key by key into the stored
  dict, recursing into nested dicts.

``None`` values in an update are ignored (never an overwrite or deletion).
Scalars overwrite. Callers that want to append use the dedicated operations
on ``ContextManager`` instead.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from .schema import SessionContext

logger = logging.getLogger(__name__)


def replace_list(current: Any, value: list[Any]) -> list[Any]:
    """Replace-list strategy: the update wins entirely."""
    return copy.deepcopy(value)


def merge_object(current: Any, partial: dict[str, Any]) -> dict[str, Any]:
    """
    Merge-object strategy.

    Args:
        current: Existing value at this key (non-dicts are treated as empty)
        partial: Update to apply

    Returns:
        New dict; neither argument is mutated.
    """
    result = copy.deepcopy(current) if isinstance(current, dict) else {}
    for key, value in partial.items():
        if value is None:
            continue
        if isinstance(value, list):
            result[key] = replace_list(result.get(key), value)
        elif isinstance(value, dict):
            result[key] = merge_object(result.get(key), value)
        else:
            result[key] = value
    return result


def deep_merge(current: dict[str, Any], partial: dict[str, Any] | None) -> dict[str, Any]:
    """Apply ``partial`` onto ``current`` using the strategies above."""
    if not partial:
        return copy.deepcopy(current)
    return merge_object(current, partial)


def merge_context(context: SessionContext, partial: dict[str, Any] | None) -> SessionContext:
    """
    Merge a partial update dict onto a record and re-validate the result.

    Args:
        context: Current record
        partial: Update in on-disk shape (e.g. ``{"goal": {"current_objective": "x"}}``)

    Returns:
        Merged record (limits are applied later, on save)

    Raises:
        pydantic.ValidationError: If the merged document no longer fits the schema
    """
    merged = deep_merge(context.to_dict(), partial)
    logger.debug("Merged update keys: %s", sorted((partial or {}).keys()))
    return SessionContext.model_validate(merged)


__all__ = ["replace_list", "merge_object", "deep_merge", "merge_context"]
