"""Boundary validation for untrusted partial updates.

Every ``validate_*`` function either returns the normalized value in its
on-disk shape or raises ``ContextValidationError``. The ``is_valid_*``
predicates wrap them for callers that only need a yes/no answer.
"""

from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter, ValidationError

from .exceptions import ContextValidationError
from .schema import Decision, Discovery, Goal, TodoItem, _Model


class ProgressInput(_Model):
    """Progress supplied by a caller: all three lists are mandatory."""

    done: list[str]
    current: list[str]
    pending: list[str]


class StateInput(_Model):
    """Working state supplied by a caller."""

    recent_files: list[str]
    blockers: list[str]
    errors: list[str]
    last_tool_calls: list[str] | None = None


_decision_list = TypeAdapter(list[Decision])
_discovery_list = TypeAdapter(list[Discovery])
_todo_list = TypeAdapter(list[TodoItem])
_string_list = TypeAdapter(list[str])


def _check(field: str, adapter_or_model: Any, obj: Any) -> Any:
    try:
        if isinstance(adapter_or_model, TypeAdapter):
            return adapter_or_model.validate_python(obj)
        return adapter_or_model.model_validate(obj)
    except ValidationError as e:
        raise ContextValidationError(field, e.errors(include_url=False)) from e


def validate_goal(obj: Any) -> dict[str, Any]:
    """Goal fields are individually optional; only supplied ones are returned."""
    goal = _check("goal", Goal, obj)
    return goal.model_dump(mode="json", exclude_unset=True)


def validate_progress(obj: Any) -> dict[str, Any]:
    return _check("progress", ProgressInput, obj).model_dump(mode="json")


def validate_decision(obj: Any) -> dict[str, Any]:
    return _check("decision", Decision, obj).model_dump(mode="json", exclude_none=True)


def validate_decisions(obj: Any) -> list[dict[str, Any]]:
    decisions = _check("decisions", _decision_list, obj)
    return [d.model_dump(mode="json", exclude_none=True) for d in decisions]


def validate_discovery(obj: Any) -> dict[str, Any]:
    return _check("discovery", Discovery, obj).model_dump(mode="json", exclude_none=True)


def validate_discoveries(obj: Any) -> list[dict[str, Any]]:
    discoveries = _check("discoveries", _discovery_list, obj)
    return [d.model_dump(mode="json", exclude_none=True) for d in discoveries]


def validate_state(obj: Any) -> dict[str, Any]:
    return _check("state", StateInput, obj).model_dump(mode="json", exclude_none=True)


def validate_string_list(field: str, obj: Any) -> list[str]:
    return _check(field, _string_list, obj)


def require_object(obj: Any, field: str = "payload") -> dict[str, Any]:
    """Caller arguments must be a JSON object; None counts as empty."""
    if obj is None:
        return {}
    if not isinstance(obj, dict):
        raise ContextValidationError(field, [{"msg": f"{field} must be an object"}])
    return obj


def validate_todos(obj: Any) -> list[TodoItem]:
    """Validate a whole todo list. One malformed item rejects the call."""
    if not isinstance(obj, list):
        raise ContextValidationError("todos", [{"msg": "todos must be a list"}])
    return _check("todos", _todo_list, obj)


# Save payload fields and their validators, in the order they are checked.
_SAVE_FIELDS = (
    ("goal", validate_goal),
    ("progress", validate_progress),
    ("decisions", validate_decisions),
    ("discoveries", validate_discoveries),
    ("state", validate_state),
)


def validate_save_payload(args: dict[str, Any] | None) -> dict[str, Any]:
    """
    Validate the fields of a save request.

    Args:
        args: Raw caller arguments; absent or None fields are skipped.

    Returns:
        Partial record containing only the validated fields.

    Raises:
        ContextValidationError: On the first malformed field.
    """
    args = require_object(args)
    partial: dict[str, Any] = {}
    for field, validator in _SAVE_FIELDS:
        value = args.get(field)
        if value is None:
            continue
        partial[field] = validator(value)
    return partial


def _predicate(validator):
    def check(obj: Any) -> bool:
        try:
            validator(obj)
        except ContextValidationError:
            return False
        return True

    check.__name__ = validator.__name__.replace("validate_", "is_valid_")
    check.__doc__ = f"Return True if ``obj`` passes {validator.__name__}."
    return check


is_valid_goal = _predicate(validate_goal)
is_valid_progress = _predicate(validate_progress)
is_valid_decision = _predicate(validate_decision)
is_valid_discovery = _predicate(validate_discovery)
is_valid_state = _predicate(validate_state)


def is_valid_todo_item(obj: Any) -> bool:
    """Return True if ``obj`` is a complete todo item with a known status."""
    try:
        TodoItem.model_validate(obj)
    except ValidationError:
        return False
    return True


__all__ = [
    "validate_goal",
    "validate_progress",
    "validate_decision",
    "validate_decisions",
    "validate_discovery",
    "validate_discoveries",
    "validate_state",
    "validate_string_list",
    "require_object",
    "validate_todos",
    "validate_save_payload",
    "is_valid_goal",
    "is_valid_progress",
    "is_valid_decision",
    "is_valid_discovery",
    "is_valid_state",
    "is_valid_todo_item",
]
