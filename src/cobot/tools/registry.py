"""ToolRegistry: maps tool names to implementations and dispatches calls."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from cobot.permissions.validators import ReadTracker
from cobot.tools.base import BaseTool
from cobot.tools.command import ExecuteCommandTool
from cobot.tools.database import ClickHouseQueryTool, ClickHouseSchemaTool
from cobot.tools.delete import DeleteFileTool
from cobot.tools.edit import EditFileTool
from cobot.tools.listing import ListFilesTool
from cobot.tools.media import (
    BatchProcessImagesTool,
    ConvertDocumentTool,
    ProcessImageTool,
    ProcessMediaTool,
)
from cobot.tools.open import OpenFileTool
from cobot.tools.read import ReadFileTool
from cobot.tools.search import SearchFilesTool
from cobot.tools.tasks import CreateTasksTool, TaskBoard, UpdateTasksTool
from cobot.tools.web import CreateWebPageTool
from cobot.tools.write import CreateFileTool
from cobot.types.tools import ToolContext, ToolDef, ToolName, ToolResult

logger = logging.getLogger(__name__)

# Some models emit tool names with a namespace prefix.
_NAME_PREFIXES: tuple[str, ...] = ("repo_browser.",)


def normalize_tool_name(name: str) -> str:
    """Strip known namespace prefixes from a model-issued tool name."""
    for prefix in _NAME_PREFIXES:
        if name.startswith(prefix):
            return name[len(prefix):]
    return name


def default_tools() -> dict[ToolName, BaseTool]:
    """Return a fresh instance of every built-in tool, keyed by name."""
    return {
        ToolName.READ_FILE: ReadFileTool(),
        ToolName.CREATE_FILE: CreateFileTool(),
        ToolName.EDIT_FILE: EditFileTool(),
        ToolName.DELETE_FILE: DeleteFileTool(),
        ToolName.LIST_FILES: ListFilesTool(),
        ToolName.OPEN_FILE: OpenFileTool(),
        ToolName.SEARCH_FILES: SearchFilesTool(),
        ToolName.EXECUTE_COMMAND: ExecuteCommandTool(),
        ToolName.CREATE_TASKS: CreateTasksTool(),
        ToolName.UPDATE_TASKS: UpdateTasksTool(),
        ToolName.CONVERT_DOCUMENT: ConvertDocumentTool(),
        ToolName.PROCESS_IMAGE: ProcessImageTool(),
        ToolName.BATCH_PROCESS_IMAGES: BatchProcessImagesTool(),
        ToolName.PROCESS_MEDIA: ProcessMediaTool(),
        ToolName.GET_CLICKHOUSE_SCHEMA: ClickHouseSchemaTool(),
        ToolName.EXECUTE_CLICKHOUSE_QUERY: ClickHouseQueryTool(),
        ToolName.CREATE_WEB_PAGE: CreateWebPageTool(),
    }


class ToolRegistry:
    """Registers tools and dispatches execution requests.

    ``execute`` never raises: unknown names, bad arguments and unexpected
    failures all come back as a failed :class:`ToolResult`.

    Usage::

        registry = ToolRegistry.with_defaults(ToolContext(cwd=Path.cwd()))
        result = await registry.execute("read_file", {"file_path": "app.py"})
    """

    def __init__(self, ctx: ToolContext) -> None:
        self._ctx = ctx
        self._registry: dict[ToolName, BaseTool] = {}

    @classmethod
    def with_defaults(
        cls, ctx: ToolContext | None = None, *, cwd: Path | None = None,
    ) -> ToolRegistry:
        """Build a registry holding every built-in tool.

        Without *ctx* a fresh session context rooted at *cwd* (default: the
        process cwd) is created, with its own read tracker and task board.
        """
        if ctx is None:
            ctx = ToolContext(
                cwd=Path(cwd or Path.cwd()).resolve(),
                read_tracker=ReadTracker(),
                tasks=TaskBoard(),
            )
        registry = cls(ctx)
        for name, tool in default_tools().items():
            registry.register(tool, name)
        return registry

    @property
    def context(self) -> ToolContext:
        return self._ctx

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, tool: BaseTool, name: ToolName | None = None) -> None:
        """Add *tool* under *name*, defaulting to its definition name.

        Raises ``ValueError`` for names outside :class:`ToolName`.
        """
        key = name if name is not None else ToolName(tool.definition.name)
        self._registry[key] = tool

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, name: str) -> BaseTool | None:
        try:
            return self._registry.get(ToolName(normalize_tool_name(name)))
        except ValueError:
            return None

    def definitions(self) -> list[ToolDef]:
        """Return every registered tool definition, for the provider schema."""
        return [tool.definition for tool in self._registry.values()]

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def execute(self, name: str, args: dict[str, Any]) -> ToolResult:
        """Dispatch a tool call by name with keyword arguments from *args*."""
        tool = self.get(name)
        if tool is None:
            return ToolResult.fail("Error: Unknown tool")

        try:
            return await tool.execute(dict(args), self._ctx)
        except TypeError as exc:
            logger.debug("bad arguments for %s: %s", name, exc)
            return ToolResult.fail("Error: Invalid tool arguments")
        except Exception:  # noqa: BLE001
            logger.exception("tool %s raised", name)
            return ToolResult.fail("Error: Unexpected tool error")

    # ------------------------------------------------------------------
    # Dunder helpers
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._registry)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    def __repr__(self) -> str:
        return f"ToolRegistry(tools={sorted(n.value for n in self._registry)})"
