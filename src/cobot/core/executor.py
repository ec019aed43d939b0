"""Runs a single model-issued tool call through the approval gate."""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from cobot.core.errors import Interrupted
from cobot.permissions.validators import (
    is_dangerous,
    is_read_before_edit_satisfied,
    read_before_edit_error,
    requires_approval,
)
from cobot.tools.registry import ToolRegistry, normalize_tool_name
from cobot.types.callbacks import AgentCallbacks, ApprovalDecision
from cobot.types.messages import ToolCall
from cobot.types.tools import ToolName, ToolResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

INTERRUPTED_ERROR = "Tool execution interrupted by user"
CANCELED_ERROR = "Tool execution canceled by user"


async def _passthrough(aw: Awaitable[T]) -> T:
    return await aw


@dataclass(slots=True)
class ExecutorOptions:
    """Per-call knobs supplied by the agent.

    ``session_auto_approve`` may be switched on by the executor when the user
    picks "approve for this session"; the caller reads it back afterwards.
    ``suspend`` wraps every wait on the user so it can be interrupted; it
    raises :class:`Interrupted` when that happens.
    """

    session_auto_approve: bool = False
    is_interrupted: Callable[[], bool] = lambda: False
    suspend: Callable[[Awaitable[Any]], Awaitable[Any]] = field(default=_passthrough)


def parse_arguments(raw: str) -> dict[str, Any]:
    """Decode a tool-call argument blob. Raises ``ValueError`` on bad input."""
    if not raw or not raw.strip():
        return {}
    parsed = json.loads(raw)
    if not isinstance(parsed, dict):
        raise ValueError(f"expected a JSON object, got {type(parsed).__name__}")
    return parsed


def _interrupted() -> ToolResult:
    return ToolResult.fail(INTERRUPTED_ERROR, user_rejected=True)


def _finish(callbacks: AgentCallbacks, name: str, result: ToolResult) -> ToolResult:
    if callbacks.on_tool_end is not None:
        callbacks.on_tool_end(name, result)
    return result


async def execute_tool_call(
    call: ToolCall,
    registry: ToolRegistry,
    callbacks: AgentCallbacks,
    options: ExecutorOptions,
) -> ToolResult:
    """Execute *call* end to end and return its result envelope.

    Never raises, except for ``asyncio.CancelledError``.
    """
    name = normalize_tool_name(call.name)

    try:
        args = parse_arguments(call.arguments)
    except ValueError as exc:
        logger.warning("unparseable arguments for %s: %s", name, exc)
        return ToolResult.fail(
            f"Tool arguments truncated: {exc}. "
            "Please break this into smaller pieces or use shorter content."
        )

    try:
        if callbacks.on_tool_start is not None:
            callbacks.on_tool_start(name, args)

        if name == ToolName.EDIT_FILE.value and args.get("file_path"):
            ctx = registry.context
            if not is_read_before_edit_satisfied(str(args["file_path"]), ctx.read_tracker, ctx.cwd):
                return _finish(
                    callbacks, name, ToolResult.fail(read_before_edit_error(str(args["file_path"]))),
                )

        dangerous = is_dangerous(name)
        approval_required = requires_approval(name)
        needs_approval = dangerous or approval_required
        can_auto_approve = approval_required and not dangerous and options.session_auto_approve

        if needs_approval and not can_auto_approve:
            if options.is_interrupted():
                return _finish(callbacks, name, _interrupted())

            if callbacks.on_tool_approval is None:
                logger.info("no approval handler wired, rejecting %s", name)
                decision = ApprovalDecision(approved=False)
            else:
                try:
                    decision = await options.suspend(callbacks.on_tool_approval(name, args))
                except Interrupted:
                    return _finish(callbacks, name, _interrupted())

            if options.is_interrupted():
                return _finish(callbacks, name, _interrupted())

            if decision.auto_approve_session and approval_required and not dangerous:
                logger.info("session auto-approve enabled via %s", name)
                options.session_auto_approve = True

            if not decision.approved:
                logger.info("user rejected %s", name)
                return _finish(
                    callbacks, name, ToolResult.fail(CANCELED_ERROR, user_rejected=True),
                )

        result = await registry.execute(name, args)
        return _finish(callbacks, name, result)
    except Exception as exc:  # noqa: BLE001
        logger.exception("tool call %s failed", name)
        return ToolResult.fail(f"Tool execution error: {exc}")
