"""open_file: opens a path with the OS default (or a named) application."""

from __future__ import annotations

import asyncio
import logging
import sys

from cobot.tools.base import BaseTool
from cobot.tools.read import _PATH_HINT
from cobot.types.tools import ToolContext, ToolDef, ToolParam, ToolResult

logger = logging.getLogger(__name__)

_DEFINITION = ToolDef(
    name="open_file",
    description=(
        "Open file or directory with the OS default application. On macOS uses `open` "
        "command, on Windows uses `start`, on Linux uses `xdg-open`. "
        'Example: {"file_path": "document.pdf"} or {"file_path": "src"}'
    ),
    parameters=(
        ToolParam(
            name="file_path",
            type="string",
            description=f"Path to file or directory to open. {_PATH_HINT}",
        ),
        ToolParam(
            name="with_app",
            type="string",
            description=(
                'Specific application to open the file with (optional, e.g. "code", '
                '"sublime", "chrome")'
            ),
            required=False,
        ),
    ),
)


def build_open_command(target: str, with_app: str | None, platform: str) -> list[str]:
    """Return the argv that opens *target* on *platform*."""
    if platform == "darwin":
        return ["open", "-a", with_app, target] if with_app else ["open", target]
    if platform == "win32":
        return (
            ["cmd", "/c", "start", "", with_app, target]
            if with_app else ["cmd", "/c", "start", "", target]
        )
    return [with_app, target] if with_app else ["xdg-open", target]


class OpenFileTool(BaseTool):
    """Hands a path to the desktop environment."""

    def __init__(self, platform: str | None = None) -> None:
        self._platform = platform or sys.platform

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def run(
        self, ctx: ToolContext, file_path: str, with_app: str | None = None,
    ) -> ToolResult:
        path = ctx.resolve(file_path)
        if not path.exists():
            return self._error("Error: File or directory not found")

        argv = build_open_command(str(path), with_app, self._platform)
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=15)
        except (OSError, asyncio.TimeoutError) as exc:
            return self._error(f"Error: Failed to open file - {exc}")

        if proc.returncode:
            detail = stderr.decode(errors="replace").strip()
            return self._error(f"Error: Failed to open file - {detail or proc.returncode}")

        kind = "directory" if path.is_dir() else "file"
        suffix = f" with {with_app}" if with_app else ""
        return self._ok(message=f"Opened {kind}: {file_path}{suffix}")
