#!/usr/bin/env python3
"""
Restore the session context at session start.

Called by: hooks SessionStart

stdout is injected into the assistant's context, so this prints the
rendered record when one was saved within the last 24 hours and prints
nothing otherwise.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from session_context.config import resolve_project_dir
from session_context.exceptions import SessionContextError
from session_context.manager import ContextManager

MAX_AGE_HOURS = 24


def read_hook_input() -> dict[str, Any]:
    """Read hook input from stdin (JSON format)."""
    try:
        data = sys.stdin.read()
        if data:
            parsed = json.loads(data)
            if isinstance(parsed, dict):
                return parsed
    except json.JSONDecodeError:
        pass
    return {}


def main() -> int:
    hook_input = read_hook_input()

    try:
        manager = ContextManager(resolve_project_dir(hook_input.get("cwd")))
    except SessionContextError as e:
        print(f"[SESSION CONTEXT] {e}", file=sys.stderr)
        return 0

    context = manager.load_recent(max_age_hours=MAX_AGE_HOURS)
    if context is None:
        return 0

    print(manager.format(context))
    return 0


if __name__ == "__main__":
    sys.exit(main())
