"""Type definitions for cobot."""

from cobot.types.callbacks import AgentCallbacks, ApprovalDecision
from cobot.types.messages import ApiUsage, Completion, Message, Role, ToolCall
from cobot.types.tools import ToolContext, ToolDef, ToolName, ToolParam, ToolResult

__all__ = [
    "AgentCallbacks",
    "ApiUsage",
    "ApprovalDecision",
    "Completion",
    "Message",
    "Role",
    "ToolCall",
    "ToolContext",
    "ToolDef",
    "ToolName",
    "ToolParam",
    "ToolResult",
]
