"""delete_file: removes a file or directory inside the project."""

from __future__ import annotations

import logging
import shutil

from cobot.tools.base import BaseTool
from cobot.tools.read import _PATH_HINT
from cobot.types.tools import ToolContext, ToolDef, ToolParam, ToolResult

logger = logging.getLogger(__name__)

_DEFINITION = ToolDef(
    name="delete_file",
    description=(
        "Remove files or directories. Use with caution. "
        'Example: {"file_path": "temp/old_file.txt"} or '
        '{"file_path": "temp_dir", "recursive": true}'
    ),
    parameters=(
        ToolParam(
            name="file_path",
            type="string",
            description=f"Path to file/directory to delete. {_PATH_HINT}",
        ),
        ToolParam(
            name="recursive",
            type="boolean",
            description="Delete directories and their contents",
            required=False,
            default=False,
        ),
    ),
)


class DeleteFileTool(BaseTool):
    """Deletes paths under the session cwd, never the cwd itself."""

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def run(
        self, ctx: ToolContext, file_path: str, recursive: bool = False,
    ) -> ToolResult:
        path = ctx.resolve(file_path)
        root = ctx.cwd.resolve()

        if path == root:
            return self._error("Error: Cannot delete the root project directory")
        if not path.is_relative_to(root):
            return self._error("Error: Cannot delete files outside the project directory")
        if not path.exists() and not path.is_symlink():
            return self._error("Error: Path not found")

        is_dir = path.is_dir() and not path.is_symlink()
        try:
            if is_dir:
                if recursive:
                    shutil.rmtree(path)
                elif any(path.iterdir()):
                    return self._error("Error: Directory not empty, use recursive=true")
                else:
                    path.rmdir()
            else:
                path.unlink()
        except OSError as exc:
            logger.debug("delete failed for %s: %s", path, exc)
            return self._error("Error: Failed to delete")

        kind = "directory" if is_dir else "file"
        return self._ok(message=f"Deleted {kind}: {file_path}")
