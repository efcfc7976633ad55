"""
Command-line interface for the session context store.

Usage:
    session-context save --json '{"goal": {"current_objective": "fix bug"}}'
    session-context load --format json
    session-context update --add-blocker "DB down"
    session-context sync-todos < todos.json
    session-context resume --auto-restore
    session-context status
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Sequence

from .config import StoreConfig, resolve_project_dir
from .exceptions import InvalidProjectDirError
from .tools import ContextTools, ToolResult


def _read_json(raw: str | None) -> Any:
    """Parse a JSON argument, reading stdin when the value is '-' or missing."""
    if raw is None or raw == "-":
        raw = sys.stdin.read()
    if not raw.strip():
        return None
    return json.loads(raw)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="session-context",
        description="Save, restore and compact an assistant's session context",
    )
    parser.add_argument(
        "--project-dir",
        type=Path,
        help="Project root (default: $CLAUDE_PROJECT_DIR or the current directory)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Config file (default: $SESSION_CONTEXT_CONFIG or ~/.claude/session-context-config.json)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging on stderr",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    save = sub.add_parser("save", help="Save goal/progress/decisions/discoveries/state")
    save.add_argument("--json", dest="payload", help="JSON payload (default: read from stdin)")

    load = sub.add_parser("load", help="Print the stored context")
    load.add_argument("--format", choices=["markdown", "json"], default="markdown")
    load.add_argument("--backup", action="store_true", help="Read the previous generation instead")

    update = sub.add_parser("update", help="Apply targeted field operations")
    update.add_argument("--add-done", nargs="+", metavar="TASK")
    update.add_argument("--set-current", nargs="*", metavar="TASK")
    update.add_argument("--add-pending", nargs="+", metavar="TASK")
    update.add_argument("--add-decision", nargs=2, metavar=("WHAT", "WHY"))
    update.add_argument("--add-discovery", nargs=2, metavar=("FILE", "INSIGHT"))
    update.add_argument("--set-objective", metavar="TEXT")
    update.add_argument("--add-blocker", metavar="TEXT")
    update.add_argument("--remove-blocker", metavar="TEXT")
    update.add_argument("--add-tool-calls", nargs="+", metavar="CALL")

    clear = sub.add_parser("clear", help="Reset to a fresh context")
    clear.add_argument("--confirm", action="store_true", help="Required to actually clear")

    sync = sub.add_parser("sync-todos", help="Mirror a todo list")
    sync.add_argument("--json", dest="todos", help="JSON todo array (default: read from stdin)")

    resume = sub.add_parser("resume", help="Show saved todos for resumption")
    resume.add_argument("--auto-restore", action="store_true", help="Emit the full todo array")

    sub.add_parser("status", help="Show usage load and recommendation")

    track = sub.add_parser("track", help="Record usage counters")
    track.add_argument("--tool-calls", type=int, default=0)
    track.add_argument("--files-read", type=int, default=0)
    track.add_argument("--files-modified", type=int, default=0)

    sub.add_parser("compact", help="Compact the stored context")
    sub.add_parser("reset-usage", help="Reset usage tracking")

    return parser


def _update_args(args: argparse.Namespace) -> dict[str, Any]:
    update: dict[str, Any] = {
        "add_done": args.add_done,
        "set_current": args.set_current,
        "add_pending": args.add_pending,
        "set_objective": args.set_objective,
        "add_blocker": args.add_blocker,
        "remove_blocker": args.remove_blocker,
        "add_tool_calls": args.add_tool_calls,
    }
    if args.add_decision:
        update["add_decision"] = {"what": args.add_decision[0], "why": args.add_decision[1]}
    if args.add_discovery:
        update["add_discovery"] = {"file": args.add_discovery[0], "insight": args.add_discovery[1]}
    return update


def run(args: argparse.Namespace, tools: ContextTools) -> ToolResult:
    """Dispatch a parsed command to the operation surface."""
    command = args.command
    if command == "save":
        return tools.save(_read_json(args.payload) or {})
    if command == "load":
        return tools.load(format=args.format, backup=args.backup)
    if command == "update":
        return tools.update(_update_args(args))
    if command == "clear":
        return tools.clear(confirm=args.confirm)
    if command == "sync-todos":
        return tools.sync_todos(_read_json(args.todos))
    if command == "resume":
        return tools.resume_tasks(auto_restore=args.auto_restore)
    if command == "status":
        return tools.usage_status()
    if command == "track":
        return tools.track_usage(args.tool_calls, args.files_read, args.files_modified)
    if command == "compact":
        return tools.compact()
    if command == "reset-usage":
        return tools.reset_usage()
    raise ValueError(f"Unknown command: {command}")


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        config = StoreConfig.load(args.config)
        tools = ContextTools(resolve_project_dir(args.project_dir), config)
        result = run(args, tools)
    except InvalidProjectDirError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except json.JSONDecodeError as e:
        print(f"Error: invalid JSON input: {e}", file=sys.stderr)
        return 2

    stream = sys.stderr if result.is_error else sys.stdout
    print(result.text, file=stream)
    return 1 if result.is_error else 0


if __name__ == "__main__":
    sys.exit(main())
