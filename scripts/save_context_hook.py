#!/usr/bin/env python3
"""
Stamp session metadata onto the stored context before a compaction.

Called by: hooks PreCompact (auto and manual matchers)

Hooks receive JSON via stdin. This script:
1. Reads session_id and trigger from the hook input
2. Loads the stored context (or starts a default one)
3. Saves it back with the new session id and trigger
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
from session_context.schema import TriggerType


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


def parse_trigger(value: Any) -> TriggerType:
    """Map a hook trigger onto the stored enum; unknown triggers count as manual."""
    try:
        return TriggerType(value)
    except ValueError:
        return TriggerType.MANUAL


def main() -> int:
    hook_input = read_hook_input()
    session_id = str(hook_input.get("session_id") or "unknown")
    trigger = parse_trigger(hook_input.get("trigger"))

    try:
        manager = ContextManager(resolve_project_dir(hook_input.get("cwd")))
        saved = manager.stamp_meta(session_id, trigger)
    except SessionContextError as e:
        print(f"[SESSION CONTEXT] Save failed: {e}", file=sys.stderr)
        return 1

    print(
        f"[SESSION CONTEXT] Saved at {saved.meta.saved_at} (trigger: {trigger.value})",
        file=sys.stderr,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
