"""Test fixtures including MockProvider for deterministic testing."""

from __future__ import annotations

import asyncio
import copy
import json
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from cobot.core.agent import Agent
from cobot.permissions.approval import CannedDecisions
from cobot.types.callbacks import AgentCallbacks
from cobot.types.messages import ApiUsage, Completion, Message, ToolCall
from cobot.types.tools import ToolDef

_ENV_VARS = (
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "OPENAI_CONTEXT_FILE",
    "OPENAI_CONTEXT_DIR",
    "OPENAI_CONTEXT_LIMIT",
    "FRONTEND_OPENAI_API_KEY",
    "FRONTEND_OPENAI_BASE_URL",
    "FRONTEND_MODEL",
)


def tool_call(call_id: str, name: str, **args: Any) -> ToolCall:
    """Build a model-issued tool call with JSON-encoded *args*."""
    return ToolCall(id=call_id, name=name, arguments=json.dumps(args))


def default_usage() -> ApiUsage:
    return ApiUsage(prompt_tokens=100, completion_tokens=50, total_tokens=150, total_time=0.25)


@dataclass
class MockTurn:
    """A scripted response for MockProvider.

    Set ``error`` to raise instead of answering, or ``block`` to hang until
    the request is cancelled.
    """

    content: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    reasoning: str | None = None
    finish_reason: str | None = None
    usage: ApiUsage | None = field(default_factory=default_usage)
    error: BaseException | None = None
    block: bool = False


class MockProvider:
    """A deterministic provider adapter for testing.

    Usage:
        provider = MockProvider(turns=[
            MockTurn(tool_calls=[tool_call("c1", "read_file", file_path="main.py")]),
            MockTurn(content="The file prints a greeting."),
        ])
    """

    def __init__(self, turns: list[MockTurn], model: str = "mock-model") -> None:
        self._turns = list(turns)
        self._turn_index = 0
        self._model = model
        self.requests: list[dict[str, Any]] = []
        self.request_started = asyncio.Event()

    @property
    def model_id(self) -> str:
        return self._model

    def set_model(self, model: str) -> None:
        self._model = model

    async def complete(
        self,
        messages: list[dict[str, Any]],
        tools: list[ToolDef],
        temperature: float,
        max_tokens: int,
    ) -> Completion:
        self.requests.append({
            "model": self._model,
            "messages": copy.deepcopy(messages),
            "tools": [t.name for t in tools],
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        self.request_started.set()

        if self._turn_index >= len(self._turns):
            return Completion(
                message=Message.assistant("(no more scripted turns)"),
                finish_reason="stop",
                usage=default_usage(),
            )

        turn = self._turns[self._turn_index]
        self._turn_index += 1

        if turn.error is not None:
            raise turn.error
        if turn.block:
            await asyncio.Event().wait()

        finish = turn.finish_reason or ("tool_calls" if turn.tool_calls else "stop")
        return Completion(
            message=Message.assistant(turn.content, tuple(turn.tool_calls), turn.reasoning),
            finish_reason=finish,
            usage=turn.usage,
        )


class StatusError(Exception):
    """Shaped like ``openai.APIStatusError``: ``status_code`` plus a JSON ``body``."""

    def __init__(self, status_code: int, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = {"error": {"message": message, "code": code}}


class RecordingCallbacks:
    """Collects every notification the agent emits."""

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []
        self.final_messages: list[str] = []
        self.usages: list[ApiUsage] = []

    def tool_start(self, name: str, args: dict[str, Any]) -> None:
        self.events.append(("start", name))

    def tool_end(self, name: str, result: Any) -> None:
        self.events.append(("end", name, result))

    def thinking(self, content: str, reasoning: str | None) -> None:
        self.events.append(("thinking", content, reasoning))

    def final(self, content: str, reasoning: str | None) -> None:
        self.final_messages.append(content)

    def usage(self, usage: ApiUsage) -> None:
        self.usages.append(usage)
        self.events.append(("usage", usage))

    def build(self, decisions: CannedDecisions | None = None) -> AgentCallbacks:
        callbacks = AgentCallbacks(
            on_tool_start=self.tool_start,
            on_tool_end=self.tool_end,
            on_thinking_text=self.thinking,
            on_final_message=self.final,
            on_api_usage=self.usage,
        )
        if decisions is not None:
            decisions.apply(callbacks)
        return callbacks


@pytest.fixture(autouse=True)
def isolated_env(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point HOME at an empty directory and clear cobot's environment variables."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return home


@pytest.fixture
def tmp_project(tmp_path: Path) -> Path:
    """Create a temporary project directory with sample files."""
    (tmp_path / "README.md").write_text("# Test Project\n\nA test project.\n")
    (tmp_path / "main.py").write_text("def hello():\n    print('Hello, world!')\n\nhello()\n")
    src = tmp_path / "src"
    src.mkdir()
    (src / "utils.py").write_text("def add(a, b):\n    return a + b\n")
    (src / "app.py").write_text("from utils import add\n\nresult = add(1, 2)\nprint(result)\n")
    return tmp_path


@pytest.fixture
def make_agent(tmp_project: Path) -> Callable[..., tuple[Agent, MockProvider]]:
    """Factory: ``make_agent(turns, callbacks=None, **agent_kwargs)``."""

    def _make(
        turns: list[MockTurn],
        callbacks: AgentCallbacks | None = None,
        **kwargs: Any,
    ) -> tuple[Agent, MockProvider]:
        provider = MockProvider(turns)
        kwargs.setdefault("cwd", tmp_project)
        agent = Agent(provider=provider, callbacks=callbacks, **kwargs)
        return agent, provider

    return _make
