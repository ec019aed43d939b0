"""Callback hooks the agent uses to talk to its front end."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from cobot.types.messages import ApiUsage
from cobot.types.tools import ToolResult


@dataclass(frozen=True, slots=True)
class ApprovalDecision:
    """Outcome of an approval prompt."""

    approved: bool
    auto_approve_session: bool = False


ToolStartHook = Callable[[str, dict[str, Any]], None]
ToolEndHook = Callable[[str, ToolResult], None]
TextHook = Callable[[str, str | None], None]
UsageHook = Callable[[ApiUsage], None]
ApprovalHook = Callable[[str, dict[str, Any]], Awaitable[ApprovalDecision]]
MaxIterationsHook = Callable[[int], Awaitable[bool]]
ErrorHook = Callable[[str], Awaitable[bool]]


@dataclass(slots=True)
class AgentCallbacks:
    """Optional hooks fired by :class:`~cobot.core.agent.Agent`.

    Decision hooks (``on_tool_approval``, ``on_max_iterations``, ``on_error``)
    are awaited and may suspend for as long as the user needs. Everything
    else is a plain notification.
    """

    on_tool_start: ToolStartHook | None = None
    on_tool_end: ToolEndHook | None = None
    on_tool_approval: ApprovalHook | None = None
    on_thinking_text: TextHook | None = None
    on_final_message: TextHook | None = None
    on_api_usage: UsageHook | None = None
    on_max_iterations: MaxIterationsHook | None = None
    on_error: ErrorHook | None = None
