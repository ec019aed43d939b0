"""create_file: creates a new file or directory."""

from __future__ import annotations

import logging

from cobot.tools.base import BaseTool
from cobot.tools.read import _PATH_HINT
from cobot.types.tools import ToolContext, ToolDef, ToolParam, ToolResult

logger = logging.getLogger(__name__)

_DEFINITION = ToolDef(
    name="create_file",
    description=(
        "Create NEW files or directories that DO NOT EXIST. CRITICAL: Always check if file "
        "exists first using list_files or read_file before creating. If file exists, use "
        "edit_file instead. Set overwrite=true only if you explicitly need to replace "
        'existing content. Example: {"file_path": "src/utils/new-helper.js", '
        '"content": "function helper() { return true; }", "file_type": "file"}'
    ),
    parameters=(
        ToolParam(
            name="file_path",
            type="string",
            description=f"Path for new file/directory. {_PATH_HINT}",
        ),
        ToolParam(
            name="content",
            type="string",
            description='File content (use empty string "" for directories)',
        ),
        ToolParam(
            name="file_type",
            type="string",
            description="Create file or directory",
            required=False,
            enum=("file", "directory"),
            default="file",
        ),
        ToolParam(
            name="overwrite",
            type="boolean",
            description="Overwrite existing file",
            required=False,
            default=False,
        ),
    ),
)


class CreateFileTool(BaseTool):
    """Creates files (with parent directories) or directories."""

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def run(
        self,
        ctx: ToolContext,
        file_path: str,
        content: str = "",
        file_type: str = "file",
        overwrite: bool = False,
    ) -> ToolResult:
        path = ctx.resolve(file_path)

        if path.exists() and not overwrite:
            return self._error("Error: File already exists, use overwrite=true")

        match file_type:
            case "directory":
                try:
                    path.mkdir(parents=True, exist_ok=True)
                except OSError as exc:
                    logger.debug("mkdir failed for %s: %s", path, exc)
                    return self._error("Error: Failed to create directory")
                return self._ok(
                    {"path": str(path), "type": "directory"},
                    f"Directory created: {file_path}",
                )
            case "file":
                try:
                    path.parent.mkdir(parents=True, exist_ok=True)
                    path.write_text(content or "", encoding="utf-8")
                except OSError as exc:
                    logger.debug("write failed for %s: %s", path, exc)
                    return self._error("Error: Failed to create file")
                return self._ok(message=f"File created: {file_path}")
            case _:
                return self._error(
                    "Error: Invalid targetType, must be 'file' or 'directory'"
                )
