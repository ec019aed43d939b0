"""edit_file: exact text replacement in an existing file."""

from __future__ import annotations

import logging

from cobot.tools.base import BaseTool
from cobot.tools.read import _PATH_HINT
from cobot.types.tools import ToolContext, ToolDef, ToolParam, ToolResult

logger = logging.getLogger(__name__)

_DEFINITION = ToolDef(
    name="edit_file",
    description=(
        "Modify EXISTING files by exact text replacement. Use this for files that already "
        "exist. MANDATORY: Always read_file first to see current content before editing. "
        "Text must match exactly including whitespace. "
        'Example: {"file_path": "src/app.js", "old_text": "const x = 1;", '
        '"new_text": "const x = 2;"}'
    ),
    parameters=(
        ToolParam(name="file_path", type="string", description=f"Path to file to edit. {_PATH_HINT}"),
        ToolParam(
            name="old_text",
            type="string",
            description="Exact text to replace (must match perfectly including spaces/newlines)",
        ),
        ToolParam(name="new_text", type="string", description="Replacement text"),
        ToolParam(
            name="replace_all",
            type="boolean",
            description="Replace all occurrences (default: false)",
            required=False,
            default=False,
        ),
    ),
)


class EditFileTool(BaseTool):
    """Replaces one unique occurrence, or every occurrence with ``replace_all``."""

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def run(
        self,
        ctx: ToolContext,
        file_path: str,
        old_text: str,
        new_text: str,
        replace_all: bool = False,
    ) -> ToolResult:
        path = ctx.resolve(file_path)

        try:
            original = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return self._error("Error: File not found")
        except (OSError, UnicodeDecodeError) as exc:
            return self._error(f"Error: Failed to edit file - {exc}")

        if not old_text:
            return self._error("Error: old_text must not be empty")

        count = original.count(old_text)
        if count == 0:
            return self._error("Error: Text not found in file")
        if count > 1 and not replace_all:
            return self._error(
                f"Error: Text appears {count} times in file, "
                "use replace_all=true or include more surrounding context"
            )

        if replace_all:
            updated = original.replace(old_text, new_text)
        else:
            updated = original.replace(old_text, new_text, 1)
            count = 1

        try:
            path.write_text(updated, encoding="utf-8")
        except OSError as exc:
            logger.debug("edit write failed for %s: %s", path, exc)
            return self._error("Error: Failed to write changes to file")

        return self._ok(message=f"Replaced {count} occurrence(s) in {file_path}")
