"""Diff previews for file-changing tool calls awaiting approval."""

from __future__ import annotations

import difflib
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.text import Text

MAX_PREVIEW_LINES = 80


def proposed_change(tool_name: str, args: dict[str, Any], cwd: Path) -> tuple[str, str] | None:
    """Return ``(before, after)`` for an ``edit_file`` or ``create_file`` call.

    None for other tools or when the arguments describe no file content.
    """
    file_path = args.get("file_path")
    if not isinstance(file_path, str) or not file_path:
        return None
    path = Path(file_path).expanduser()
    if not path.is_absolute():
        path = cwd / path

    try:
        current = path.read_text(encoding="utf-8") if path.is_file() else ""
    except (OSError, UnicodeDecodeError):
        current = ""

    if tool_name == "edit_file":
        old_text, new_text = args.get("old_text"), args.get("new_text")
        if not isinstance(old_text, str) or not isinstance(new_text, str) or not old_text:
            return None
        if args.get("replace_all"):
            return current, current.replace(old_text, new_text)
        return current, current.replace(old_text, new_text, 1)

    if tool_name == "create_file" and args.get("file_type", "file") == "file":
        return current, str(args.get("content", ""))
    return None


def render_diff(
    old: str,
    new: str,
    filename: str = "",
    *,
    console: Console | None = None,
) -> str:
    """Render a unified diff between old and new content.

    Returns the diff as a string. If a console is provided,
    also prints it with syntax highlighting.
    """
    diff_lines = list(difflib.unified_diff(
        old.splitlines(),
        new.splitlines(),
        fromfile=f"a/{filename}" if filename else "a/file",
        tofile=f"b/{filename}" if filename else "b/file",
        lineterm="",
    ))

    if not diff_lines:
        return "(no changes)"

    if console is not None:
        shown = diff_lines[:MAX_PREVIEW_LINES]
        _print_colored_diff(console, shown)
        if len(diff_lines) > len(shown):
            console.print(Text(f"... {len(diff_lines) - len(shown)} more lines", style="dim"))

    return "\n".join(diff_lines)


def _print_colored_diff(console: Console, lines: list[str]) -> None:
    for line in lines:
        if line.startswith(("+++", "---")):
            console.print(Text(line, style="bold"))
        elif line.startswith("@@"):
            console.print(Text(line, style="cyan"))
        elif line.startswith("+"):
            console.print(Text(line, style="green"))
        elif line.startswith("-"):
            console.print(Text(line, style="red"))
        else:
            console.print(Text(line, style="dim"))
