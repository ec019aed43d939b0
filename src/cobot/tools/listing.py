"""list_files: tree-style directory listing."""

from __future__ import annotations

import fnmatch
import logging
from pathlib import Path

from cobot.tools.base import BaseTool
from cobot.types.tools import ToolContext, ToolDef, ToolParam, ToolResult

logger = logging.getLogger(__name__)

IGNORE_PATTERNS: tuple[str, ...] = (
    "node_modules",
    ".git",
    "__pycache__",
    "venv",
    ".venv",
    "build",
    "dist",
    ".idea",
    ".vscode",
    ".DS_Store",
    "*.pyc",
    "*.log",
    "*.tmp",
)

# Hidden names shown even without show_hidden.
_ALLOWED_HIDDEN = frozenset({".env", ".gitignore", ".dockerfile"})

_MAX_ENTRIES = 2000

_DEFINITION = ToolDef(
    name="list_files",
    description=(
        "Browse directory contents and file structure. Use to explore project layout and "
        "CHECK IF FILES EXIST before deciding between create_file vs edit_file. "
        'Example: {"directory": "src", "pattern": "*.js", "recursive": true}'
    ),
    parameters=(
        ToolParam(
            name="directory",
            type="string",
            description=(
                'Directory path to list. Use "." or "" for current directory, "src" for '
                "subdirectory. DO NOT include leading slash."
            ),
            required=False,
            default=".",
        ),
        ToolParam(
            name="pattern",
            type="string",
            description='File pattern filter ("*.py", "test_*", etc.)',
            required=False,
            default="*",
        ),
        ToolParam(
            name="recursive",
            type="boolean",
            description="List subdirectories recursively",
            required=False,
            default=False,
        ),
        ToolParam(
            name="show_hidden",
            type="boolean",
            description="Include hidden files (.gitignore, .env, etc.)",
            required=False,
            default=False,
        ),
    ),
)


def is_ignored(name: str) -> bool:
    """Return True if an entry called *name* is never listed."""
    for pattern in IGNORE_PATTERNS:
        if "*" in pattern:
            if fnmatch.fnmatch(name, pattern):
                return True
        elif name == pattern:
            return True
    return False


def _visible_entries(directory: Path, pattern: str, show_hidden: bool) -> list[Path]:
    entries: list[Path] = []
    for child in directory.iterdir():
        name = child.name
        if is_ignored(name):
            continue
        if name.startswith(".") and not show_hidden and name not in _ALLOWED_HIDDEN:
            continue
        if child.is_file() and pattern not in ("", "*") and not fnmatch.fnmatch(name, pattern):
            continue
        entries.append(child)
    # Directories first, then case-insensitive by name.
    entries.sort(key=lambda p: (not p.is_dir(), p.name.lower()))
    return entries


def render_tree(
    directory: Path, pattern: str = "*", recursive: bool = False, show_hidden: bool = False,
) -> str:
    """Render *directory* as an indented tree."""
    lines = [f"{directory.name or str(directory)}/"]
    count = 0

    def walk(current: Path, indent: str) -> None:
        nonlocal count
        try:
            entries = _visible_entries(current, pattern, show_hidden)
        except PermissionError:
            lines.append(f"{indent}└── [permission denied]")
            return
        for idx, entry in enumerate(entries):
            if count >= _MAX_ENTRIES:
                lines.append(f"{indent}└── ... (truncated)")
                return
            count += 1
            last = idx == len(entries) - 1
            branch = "└── " if last else "├── "
            if entry.is_dir():
                lines.append(f"{indent}{branch}{entry.name}/")
                if recursive and not entry.is_symlink():
                    walk(entry, indent + ("    " if last else "│   "))
            else:
                lines.append(f"{indent}{branch}{entry.name}")

    walk(directory, "")
    return "\n".join(lines)


class ListFilesTool(BaseTool):
    """Lists a directory as a tree, skipping ignored and hidden entries."""

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def run(
        self,
        ctx: ToolContext,
        directory: str = ".",
        pattern: str = "*",
        recursive: bool = False,
        show_hidden: bool = False,
    ) -> ToolResult:
        directory = directory or "."
        path = ctx.resolve(directory)

        if not path.exists():
            return self._error("Error: Directory not found")
        if not path.is_dir():
            return self._error("Error: Path is not a directory")

        try:
            tree = render_tree(path, pattern or "*", recursive, show_hidden)
        except OSError as exc:
            logger.debug("list_files failed for %s: %s", path, exc)
            return self._error("Error: Failed to list files")
        return self._ok(tree, f"Listed {directory}")
