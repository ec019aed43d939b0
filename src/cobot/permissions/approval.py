"""Approval prompts and canned decision sources."""

from __future__ import annotations

import json
from typing import Any

from cobot.types.callbacks import AgentCallbacks, ApprovalDecision
from cobot.ui.input import LineReader

# Arguments worth showing for each tool; others render nothing.
_KEY_PARAMS: dict[str, tuple[str, ...]] = {
    "read_file": ("file_path",),
    "create_file": ("file_path",),
    "edit_file": ("file_path",),
    "delete_file": ("file_path",),
    "list_files": ("directory",),
    "search_files": ("pattern",),
    "execute_command": ("command",),
    "open_file": ("file_path",),
    "convert_document": ("command_string",),
    "process_image": ("command_string",),
    "batch_process_images": ("command_string",),
    "process_media": ("command_string",),
    "execute_clickhouse_query": ("query",),
    "get_clickhouse_schema": ("table",),
    "create_web_page": ("file_path",),
}


def describe_tool_call(tool_name: str, args: dict[str, Any], separator: str = ": ") -> str:
    """Build a short description of the key arguments of a tool call.

    Strings longer than 50 characters and lists longer than three items are
    abbreviated. Tools without key parameters yield an empty string.
    """
    keys = _KEY_PARAMS.get(tool_name, ())
    if not keys:
        return ""
    parts: list[str] = []
    for key in keys:
        if key not in args:
            continue
        value = args[key]
        if isinstance(value, str) and len(value) > 50:
            value = value[:47] + "..."
        elif isinstance(value, list) and len(value) > 3:
            value = f"[{len(value)} items]"
        parts.append(f"{key}{separator}{json.dumps(value, default=str)}")
    if not parts:
        return json.dumps(args, default=str)
    return ", ".join(parts)


class StdinApprovalCallback:
    """Plain-text approval prompt using stdin/stdout."""

    def __init__(self, allow_session: bool = True, reader: LineReader | None = None) -> None:
        self._allow_session = allow_session
        self._reader = reader or LineReader()

    async def request_approval(
        self, tool_name: str, args: dict[str, Any],
    ) -> ApprovalDecision:
        """Prompt with y/n, plus ``a`` to approve for the rest of the session."""
        choices = "[y/n/a]" if self._allow_session else "[y/n]"
        description = describe_tool_call(tool_name, args)
        prompt = f"\nAllow {tool_name}? {description}\n{choices} > "
        try:
            answer = await self._reader.readline(prompt)
        except (EOFError, KeyboardInterrupt):
            return ApprovalDecision(approved=False)
        answer = answer.strip().lower()
        if self._allow_session and answer in ("a", "always"):
            return ApprovalDecision(approved=True, auto_approve_session=True)
        return ApprovalDecision(approved=answer in ("y", "yes"))

    async def confirm(self, question: str, detail: str | None = None) -> bool:
        """Ask a yes/no question; anything but ``y`` means no."""
        prompt = f"\n{detail}\n{question} [y/n] > " if detail else f"\n{question} [y/n] > "
        try:
            answer = await self._reader.readline(prompt)
        except (EOFError, KeyboardInterrupt):
            return False
        return answer.strip().lower() in ("y", "yes")


class CannedDecisions:
    """Answers every decision request with a fixed value.

    Used for non-interactive runs, where nobody is around to ask.
    """

    def __init__(
        self,
        approve: bool = False,
        auto_approve_session: bool = False,
        retry: bool = False,
        continue_after_max: bool = False,
    ) -> None:
        self.approve = approve
        self.auto_approve_session = auto_approve_session
        self.retry = retry
        self.continue_after_max = continue_after_max
        self.approval_requests: list[tuple[str, dict[str, Any]]] = []

    async def request_approval(
        self, tool_name: str, args: dict[str, Any],
    ) -> ApprovalDecision:
        self.approval_requests.append((tool_name, args))
        return ApprovalDecision(
            approved=self.approve,
            auto_approve_session=self.approve and self.auto_approve_session,
        )

    async def should_retry(self, message: str) -> bool:
        return self.retry

    async def should_continue(self, iterations: int) -> bool:
        return self.continue_after_max

    def apply(self, callbacks: AgentCallbacks) -> AgentCallbacks:
        """Wire the decision hooks of *callbacks* to this object."""
        callbacks.on_tool_approval = self.request_approval
        callbacks.on_error = self.should_retry
        callbacks.on_max_iterations = self.should_continue
        return callbacks
