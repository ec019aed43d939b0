"""cobot built-in tool system."""

from cobot.tools.base import BaseTool
from cobot.tools.registry import ToolRegistry, default_tools, normalize_tool_name
from cobot.tools.tasks import TaskBoard

__all__ = [
    "BaseTool",
    "TaskBoard",
    "ToolRegistry",
    "default_tools",
    "normalize_tool_name",
]
