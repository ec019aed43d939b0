"""search_files: pattern search across the project tree."""

from __future__ import annotations

import fnmatch
import logging
import os
import re
from pathlib import Path
from typing import Any

from cobot.tools.base import BaseTool
from cobot.types.tools import ToolContext, ToolDef, ToolParam, ToolResult

logger = logging.getLogger(__name__)

PATTERN_TYPES: tuple[str, ...] = ("substring", "regex", "exact", "fuzzy")

DEFAULT_EXCLUDE_DIRS: tuple[str, ...] = (".git", "node_modules", ".next", "dist", "build", ".cache")
DEFAULT_EXCLUDE_FILES: tuple[str, ...] = ("*.log", "*.tmp", "*.cache", "*.lock")

_BINARY_EXTENSIONS = frozenset({
    ".exe", ".dll", ".so", ".dylib", ".bin", ".obj", ".o", ".a", ".lib",
    ".jpg", ".jpeg", ".png", ".gif", ".bmp", ".ico", ".svg", ".webp",
    ".mp3", ".mp4", ".avi", ".mov", ".wmv", ".flv", ".webm",
    ".zip", ".tar", ".gz", ".bz2", ".rar", ".7z",
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
})

# Hidden directories that are still searched.
_VISIBLE_HIDDEN_DIRS = frozenset({".config", ".env"})

_DEFINITION = ToolDef(
    name="search_files",
    description=(
        "Find text patterns in files across the codebase. Perfect for locating functions, "
        'classes, or specific code. Example: {"pattern": "function handleClick", '
        '"file_pattern": "*.js", "context_lines": 3}'
    ),
    parameters=(
        ToolParam(
            name="pattern",
            type="string",
            description="Text to search for (can be function names, classes, strings, etc.)",
        ),
        ToolParam(
            name="file_pattern",
            type="string",
            description='File pattern filter (e.g., "*.py", "*.js", "src/*.ts")',
            required=False,
            default="*",
        ),
        ToolParam(
            name="directory",
            type="string",
            description=(
                'Directory to search in. Use "." or "" for current directory, "src" for '
                "subdirectory. DO NOT include leading slash."
            ),
            required=False,
            default=".",
        ),
        ToolParam(
            name="case_sensitive",
            type="boolean",
            description="Case-sensitive search",
            required=False,
            default=False,
        ),
        ToolParam(
            name="pattern_type",
            type="string",
            description=(
                "Match type: substring (partial), regex (patterns), exact (whole), "
                "fuzzy (similar)"
            ),
            required=False,
            enum=PATTERN_TYPES,
            default="substring",
        ),
        ToolParam(
            name="file_types",
            type="array",
            description='File extensions to include (["py", "js", "ts"])',
            required=False,
        ),
        ToolParam(
            name="exclude_dirs",
            type="array",
            description='Directories to skip (["node_modules", ".git", "dist"])',
            required=False,
        ),
        ToolParam(
            name="exclude_files",
            type="array",
            description='File patterns to skip (["*.min.js", "*.log"])',
            required=False,
        ),
        ToolParam(
            name="max_results",
            type="integer",
            description="Maximum results to return (1-1000)",
            required=False,
            default=100,
        ),
        ToolParam(
            name="context_lines",
            type="integer",
            description="Lines of context around matches (0-10)",
            required=False,
            default=0,
        ),
        ToolParam(
            name="group_by_file",
            type="boolean",
            description="Group results by filename",
            required=False,
            default=False,
        ),
    ),
)


def compile_pattern(pattern: str, pattern_type: str, case_sensitive: bool) -> re.Pattern[str]:
    """Build the regex for a search. Raises ``re.error`` for a bad regex."""
    flags = 0 if case_sensitive else re.IGNORECASE
    match pattern_type:
        case "regex":
            return re.compile(pattern, flags)
        case "fuzzy":
            return re.compile(".*".join(re.escape(ch) for ch in pattern), flags)
        case "exact":
            return re.compile(rf"(?<!\w){re.escape(pattern)}(?!\w)", flags)
        case _:
            return re.compile(re.escape(pattern), flags)


def _matches(name: str, pattern: str) -> bool:
    if pattern in ("", "*"):
        return True
    return fnmatch.fnmatch(name.lower(), pattern.lower())


def collect_files(
    root: Path,
    file_pattern: str,
    file_types: list[str] | None,
    exclude_dirs: list[str],
    exclude_files: list[str],
) -> list[Path]:
    """Walk *root* and return the candidate files, in walk order."""
    types = {t.lstrip(".").lower() for t in file_types or []}
    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(
            d for d in dirnames
            if not any(_matches(d, p) for p in exclude_dirs)
            and (not d.startswith(".") or d in _VISIBLE_HIDDEN_DIRS)
        )
        for name in sorted(filenames):
            path = Path(dirpath) / name
            if types and path.suffix.lstrip(".").lower() not in types:
                continue
            rel = path.relative_to(root).as_posix()
            if not (_matches(name, file_pattern) or _matches(rel, file_pattern)):
                continue
            if any(_matches(name, p) for p in exclude_files):
                continue
            if path.suffix.lower() in _BINARY_EXTENSIONS:
                continue
            found.append(path)
    return found


class SearchFilesTool(BaseTool):
    """Line-oriented search with optional context and per-file grouping."""

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def run(
        self,
        ctx: ToolContext,
        pattern: str,
        file_pattern: str = "*",
        directory: str = ".",
        case_sensitive: bool = False,
        pattern_type: str = "substring",
        file_types: list[str] | None = None,
        exclude_dirs: list[str] | None = None,
        exclude_files: list[str] | None = None,
        max_results: int = 100,
        context_lines: int = 0,
        group_by_file: bool = False,
    ) -> ToolResult:
        root = ctx.resolve(directory or ".")
        if not root.exists():
            return self._error("Error: Directory not found")
        if not root.is_dir():
            return self._error("Error: Path is not a directory")

        try:
            regex = compile_pattern(pattern, pattern_type, case_sensitive)
        except re.error:
            return self._error("Error: Invalid regex pattern")

        max_results = max(1, min(int(max_results or 100), 1000))
        context_lines = max(0, min(int(context_lines or 0), 10))

        files = collect_files(
            root,
            file_pattern or "*",
            file_types,
            [*DEFAULT_EXCLUDE_DIRS, *(exclude_dirs or [])],
            [*DEFAULT_EXCLUDE_FILES, *(exclude_files or [])],
        )
        if not files:
            return self._ok([], "No files found matching criteria")

        grouped: list[dict[str, Any]] = []
        total = 0
        for path in files:
            if total >= max_results:
                break
            try:
                lines = path.read_text(encoding="utf-8").split("\n")
            except (OSError, UnicodeDecodeError):
                continue

            file_matches: list[dict[str, Any]] = []
            for idx, line in enumerate(lines):
                if total >= max_results:
                    break
                hits = list(regex.finditer(line))
                if not hits:
                    continue
                entry: dict[str, Any] = {
                    "lineNumber": idx + 1,
                    "lineContent": line,
                    "matchPositions": [
                        {"start": m.start(), "end": m.end(), "text": m.group(0)} for m in hits
                    ],
                }
                if context_lines:
                    lo = max(0, idx - context_lines)
                    entry["contextLines"] = lines[lo:idx + context_lines + 1]
                file_matches.append(entry)
                total += 1

            if file_matches:
                grouped.append({
                    "filePath": os.path.relpath(path, ctx.cwd),
                    "matches": file_matches,
                    "totalMatches": len(file_matches),
                })

        if group_by_file:
            results: list[dict[str, Any]] = grouped
        else:
            results = [
                {"filePath": g["filePath"], **m} for g in grouped for m in g["matches"]
            ]
        return self._ok(results, f"Found {total} match(es) in {len(grouped)} file(s)")
