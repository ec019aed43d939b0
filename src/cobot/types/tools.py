"""Tool definition types, the result envelope and the tool context."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from cobot.permissions.validators import ReadTracker
    from cobot.tools.tasks import TaskBoard


class ToolName(str, Enum):
    """Every tool the model can call."""

    READ_FILE = "read_file"
    CREATE_FILE = "create_file"
    EDIT_FILE = "edit_file"
    DELETE_FILE = "delete_file"
    LIST_FILES = "list_files"
    OPEN_FILE = "open_file"
    SEARCH_FILES = "search_files"
    EXECUTE_COMMAND = "execute_command"
    CREATE_TASKS = "create_tasks"
    UPDATE_TASKS = "update_tasks"
    CONVERT_DOCUMENT = "convert_document"
    PROCESS_IMAGE = "process_image"
    BATCH_PROCESS_IMAGES = "batch_process_images"
    PROCESS_MEDIA = "process_media"
    GET_CLICKHOUSE_SCHEMA = "get_clickhouse_schema"
    EXECUTE_CLICKHOUSE_QUERY = "execute_clickhouse_query"
    CREATE_WEB_PAGE = "create_web_page"


@dataclass(frozen=True, slots=True)
class ToolParam:
    """A parameter for a tool."""

    name: str
    type: str  # "string", "integer", "boolean", "array", "object"
    description: str
    required: bool = True
    enum: tuple[str, ...] | None = None
    default: Any = None
    items: dict[str, Any] | None = None  # JSON Schema for array items


@dataclass(frozen=True, slots=True)
class ToolDef:
    """Definition of a tool exposed to the model."""

    name: str
    description: str
    parameters: tuple[ToolParam, ...] = ()


@dataclass(slots=True)
class ToolResult:
    """Uniform envelope returned by every tool invocation.

    Serialized with :meth:`to_json` into the content of a ``tool`` message.
    """

    success: bool
    content: Any = None
    message: str | None = None
    error: str | None = None
    user_rejected: bool = False

    @classmethod
    def ok(cls, content: Any = None, message: str | None = None) -> ToolResult:
        return cls(success=True, content=content, message=message)

    @classmethod
    def fail(
        cls, error: str, *, message: str | None = None, user_rejected: bool = False,
    ) -> ToolResult:
        return cls(success=False, error=error, message=message, user_rejected=user_rejected)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success}
        if self.success:
            if self.content is not None:
                data["content"] = self.content
        elif self.error is not None:
            data["error"] = self.error
        if self.message:
            data["message"] = self.message
        if self.user_rejected:
            data["userRejected"] = True
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)


@dataclass(slots=True)
class ToolContext:
    """Per-session state handed to tool implementations."""

    cwd: Path
    read_tracker: ReadTracker | None = None
    tasks: TaskBoard | None = None

    def resolve(self, path: str) -> Path:
        """Resolve *path* against the session working directory."""
        p = Path(path).expanduser()
        if not p.is_absolute():
            p = self.cwd / p
        return p.resolve()
