"""read_file: reads a text file, optionally a line range."""

from __future__ import annotations

import logging

from cobot.tools.base import BaseTool
from cobot.types.tools import ToolContext, ToolDef, ToolParam, ToolResult

logger = logging.getLogger(__name__)

_MAX_FILE_SIZE = 50 * 1024 * 1024

_PATH_HINT = (
    'For files in current directory use just filename (e.g. "app.js"). '
    'For subdirectories use "src/app.js". DO NOT use absolute paths or leading slashes.'
)

_DEFINITION = ToolDef(
    name="read_file",
    description=(
        "Read file contents with optional line range. REQUIRED before edit_file. "
        "Use to check if files exist and examine current code before making changes. "
        'Example: {"file_path": "src/app.js", "start_line": 10, "end_line": 20}'
    ),
    parameters=(
        ToolParam(name="file_path", type="string", description=f"Path to file. {_PATH_HINT}"),
        ToolParam(
            name="start_line",
            type="integer",
            description="Starting line number (1-indexed, optional)",
            required=False,
        ),
        ToolParam(
            name="end_line",
            type="integer",
            description="Ending line number (1-indexed, optional)",
            required=False,
        ),
    ),
)


class ReadFileTool(BaseTool):
    """Reads a file and records it in the session's read tracker."""

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def run(
        self,
        ctx: ToolContext,
        file_path: str,
        start_line: int | None = None,
        end_line: int | None = None,
    ) -> ToolResult:
        path = ctx.resolve(file_path)

        if not path.exists():
            return self._error("Error: File not found")
        if not path.is_file():
            return self._error("Error: Path is not a file")

        try:
            if path.stat().st_size > _MAX_FILE_SIZE:
                return self._error("Error: File too large (max 50MB)")
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return self._error("Error: File not found")
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("read_file failed for %s: %s", path, exc)
            return self._error("Error: Failed to read file")

        lines = text.split("\n")

        if start_line is not None:
            start_idx = max(0, int(start_line) - 1)
            end_idx = len(lines) if end_line is None else min(len(lines), int(end_line))
            if start_idx >= len(lines):
                return self._error("Error: Start line exceeds file length")
            if ctx.read_tracker is not None:
                ctx.read_tracker.add(path)
            selected = "\n".join(lines[start_idx:end_idx])
            return self._ok(selected, f"Read lines {start_line}-{end_idx} from {file_path}")

        if ctx.read_tracker is not None:
            ctx.read_tracker.add(path)
        return self._ok(text, f"Read {len(lines)} lines from {file_path}")
