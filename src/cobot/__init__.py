"""cobot -- a tool-calling coding and office-work assistant.

Usage:
    import asyncio
    from cobot import Agent, AgentCallbacks

    agent = Agent.create(callbacks=AgentCallbacks(
        on_final_message=lambda text, reasoning: print(text),
    ))
    asyncio.run(agent.chat("List the files in this project"))
"""

__version__ = "1.0.0"

from cobot.core.agent import Agent
from cobot.core.errors import AgentError, AuthenticationError, MissingApiKeyError
from cobot.types.callbacks import AgentCallbacks, ApprovalDecision
from cobot.types.messages import ApiUsage, Message, ToolCall
from cobot.types.tools import ToolContext, ToolDef, ToolName, ToolParam, ToolResult

__all__ = [
    # Core API
    "Agent",
    "AgentCallbacks",
    "ApprovalDecision",
    # Errors
    "AgentError",
    "AuthenticationError",
    "MissingApiKeyError",
    # Message types
    "ApiUsage",
    "Message",
    "ToolCall",
    # Tool types
    "ToolContext",
    "ToolDef",
    "ToolName",
    "ToolParam",
    "ToolResult",
]
