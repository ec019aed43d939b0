"""Conversation store: the ordered message log sent with every request."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

from cobot.types.messages import Message, Role
from cobot.types.tools import ToolResult

logger = logging.getLogger(__name__)


class ConversationError(ValueError):
    """Raised when an append would break the tool-call pairing of the log."""


class Conversation:
    """Append-only message log with tool-batch bookkeeping.

    An assistant message carrying ``tool_calls`` opens a batch. Until every
    call id in it has a matching ``tool`` message the batch stays open, and:

    - ``tool`` messages must answer one of the open ids;
    - system notes are held back and appended once the batch closes;
    - user and plain assistant messages are rejected.

    This keeps every ``tool`` message directly behind the assistant message
    that requested it, which the chat-completion API insists on.
    """

    def __init__(self, system_prompt: str | None = None) -> None:
        self._messages: list[Message] = []
        self._pending: list[str] = []
        self._deferred: list[Message] = []
        if system_prompt is not None:
            self._messages.append(Message.system(system_prompt))

    # ------------------------------------------------------------------
    # Appending
    # ------------------------------------------------------------------

    def append(self, message: Message) -> None:
        match message.role:
            case Role.TOOL:
                self._append_tool(message)
            case Role.SYSTEM if self._pending:
                self._deferred.append(message)
            case Role.SYSTEM:
                self._messages.append(message)
            case Role.ASSISTANT | Role.USER if self._pending:
                raise ConversationError(
                    f"cannot append {message.role.value} message while tool calls "
                    f"{self._pending} are unanswered"
                )
            case Role.ASSISTANT if message.tool_calls:
                self._messages.append(message)
                self._pending = [tc.id for tc in message.tool_calls]
            case _:
                self._messages.append(message)

    def add_user_message(self, content: str) -> None:
        self.append(Message.user(content))

    def add_system_note(self, content: str) -> None:
        """Append a system note, deferred while a tool batch is open."""
        self.append(Message.system(content))

    def add_tool_result(self, tool_call_id: str, result: ToolResult) -> None:
        self.append(Message.tool(tool_call_id, result.to_json()))

    def _append_tool(self, message: Message) -> None:
        if message.tool_call_id not in self._pending:
            raise ConversationError(
                f"tool message {message.tool_call_id!r} does not answer an open tool call"
            )
        self._messages.append(message)
        self._pending.remove(message.tool_call_id)
        if not self._pending:
            self._flush_deferred()

    def close_batch(self, reason: str) -> None:
        """Answer every unanswered call of the open batch with a skipped result."""
        for call_id in list(self._pending):
            skipped = ToolResult.fail(f"Skipped: {reason}")
            self._append_tool(Message.tool(call_id, skipped.to_json()))
        self._flush_deferred()

    def _flush_deferred(self) -> None:
        deferred, self._deferred = self._deferred, []
        self._messages.extend(deferred)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def clear(self) -> None:
        """Drop everything except system messages."""
        self._messages = [m for m in self._messages if m.role is Role.SYSTEM]
        self._pending = []
        self._deferred = []

    def replace_system_message(self, content: str) -> None:
        """Replace the first system message, or insert one at the front."""
        for idx, msg in enumerate(self._messages):
            if msg.role is Role.SYSTEM:
                self._messages[idx] = Message.system(content)
                return
        self._messages.insert(0, Message.system(content))

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def messages(self) -> list[Message]:
        """A copy of the log."""
        return list(self._messages)

    @property
    def has_open_batch(self) -> bool:
        return bool(self._pending)

    @property
    def pending_tool_call_ids(self) -> tuple[str, ...]:
        return tuple(self._pending)

    def to_openai(self) -> list[dict[str, Any]]:
        return [m.to_dict() for m in self._messages]

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))

    def __repr__(self) -> str:
        return f"Conversation(messages={len(self._messages)}, pending={self._pending})"
