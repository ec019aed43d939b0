"""Tests for cobot.core.agent -- the tool-calling loop."""

from __future__ import annotations

import asyncio
import json

import pytest

from cobot.core import config
from cobot.core.agent import (
    INTERRUPT_NOTE,
    MAX_TOKENS,
    MAX_TOOL_ITERATIONS,
    Agent,
    build_default_system_prompt,
    rejection_note,
)
from cobot.core.errors import AuthenticationError, MissingApiKeyError
from cobot.permissions.approval import CannedDecisions
from cobot.types.callbacks import AgentCallbacks, ApprovalDecision
from cobot.types.messages import Role, ToolCall
from tests.conftest import MockTurn, RecordingCallbacks, StatusError, tool_call


def _tool_payloads(agent: Agent) -> list[dict]:
    return [json.loads(m.content) for m in agent.messages if m.role is Role.TOOL]


def _assert_tool_messages_paired(agent: Agent) -> None:
    """Every tool message answers a call of the nearest preceding assistant message."""
    messages = agent.messages
    for idx, msg in enumerate(messages):
        if not msg.tool_calls:
            continue
        ids = [tc.id for tc in msg.tool_calls]
        following = messages[idx + 1: idx + 1 + len(ids)]
        assert [m.role for m in following] == [Role.TOOL] * len(ids)
        assert sorted(m.tool_call_id for m in following) == sorted(ids)


class TestFinalAnswer:
    @pytest.mark.asyncio
    async def test_plain_answer(self, make_agent):
        rec = RecordingCallbacks()
        agent, provider = make_agent([MockTurn(content="Hello there")], callbacks=rec.build())

        await agent.chat("hi")

        assert rec.final_messages == ["Hello there"]
        assert [m.role for m in agent.messages] == [Role.SYSTEM, Role.USER, Role.ASSISTANT]
        assert agent.messages[-1].content == "Hello there"
        assert len(provider.requests) == 1

    @pytest.mark.asyncio
    async def test_request_shape(self, make_agent):
        agent, provider = make_agent([MockTurn(content="ok")], temperature=0.3)

        await agent.chat("hi")

        request = provider.requests[0]
        assert request["temperature"] == 0.3
        assert request["max_tokens"] == MAX_TOKENS
        assert "read_file" in request["tools"]
        assert len(request["tools"]) == 17
        assert request["messages"][-1] == {"role": "user", "content": "hi"}

    @pytest.mark.asyncio
    async def test_usage_reported_once_per_response(self, make_agent):
        rec = RecordingCallbacks()
        agent, _ = make_agent([
            MockTurn(content="Let me look.", tool_calls=[tool_call("c1", "list_files")]),
            MockTurn(content="done"),
        ], callbacks=rec.build())

        await agent.chat("look around")

        assert len(rec.usages) == 2
        # Usage comes before anything else done with the response.
        assert rec.events[0][0] == "usage"
        assert rec.events[1] == ("thinking", "Let me look.", None)

    @pytest.mark.asyncio
    async def test_thinking_includes_reasoning(self, make_agent):
        rec = RecordingCallbacks()
        agent, _ = make_agent([
            MockTurn(reasoning="need a listing", tool_calls=[tool_call("c1", "list_files")]),
            MockTurn(content="done"),
        ], callbacks=rec.build())

        await agent.chat("go")

        assert ("thinking", "", "need a listing") in rec.events

    @pytest.mark.asyncio
    async def test_no_thinking_without_text(self, make_agent):
        rec = RecordingCallbacks()
        agent, _ = make_agent([
            MockTurn(tool_calls=[tool_call("c1", "list_files")]),
            MockTurn(content="done"),
        ], callbacks=rec.build())

        await agent.chat("go")

        assert not [e for e in rec.events if e[0] == "thinking"]


class TestToolBatches:
    @pytest.mark.asyncio
    async def test_batch_of_three(self, make_agent):
        agent, provider = make_agent([
            MockTurn(tool_calls=[
                tool_call("c1", "read_file", file_path="main.py"),
                tool_call("c2", "list_files", directory="src"),
                tool_call("c3", "read_file", file_path="src/utils.py"),
            ]),
            MockTurn(content="All read."),
        ])

        await agent.chat("read things")

        roles = [m.role for m in agent.messages]
        assert roles == [
            Role.SYSTEM, Role.USER, Role.ASSISTANT,
            Role.TOOL, Role.TOOL, Role.TOOL, Role.ASSISTANT,
        ]
        assert [m.tool_call_id for m in agent.messages if m.role is Role.TOOL] == ["c1", "c2", "c3"]
        assert len(provider.requests) == 2
        _assert_tool_messages_paired(agent)

    @pytest.mark.asyncio
    async def test_second_request_sees_tool_results(self, make_agent):
        agent, provider = make_agent([
            MockTurn(tool_calls=[tool_call("c1", "read_file", file_path="main.py")]),
            MockTurn(content="ok"),
        ])

        await agent.chat("read main")

        second = provider.requests[1]["messages"]
        assert second[-2]["tool_calls"][0]["function"]["name"] == "read_file"
        assert second[-1]["role"] == "tool"
        assert second[-1]["tool_call_id"] == "c1"
        assert "Hello, world!" in json.loads(second[-1]["content"])["content"]

    @pytest.mark.asyncio
    async def test_unknown_tool_is_reported_to_model(self, make_agent):
        agent, provider = make_agent([
            MockTurn(tool_calls=[tool_call("c1", "fly_to_moon")]),
            MockTurn(content="Sorry."),
        ])

        await agent.chat("go")

        assert _tool_payloads(agent)[0] == {"success": False, "error": "Error: Unknown tool"}
        assert len(provider.requests) == 2

    @pytest.mark.asyncio
    async def test_prefixed_tool_name_is_normalized(self, make_agent):
        agent, _ = make_agent([
            MockTurn(tool_calls=[tool_call("c1", "repo_browser.list_files")]),
            MockTurn(content="ok"),
        ])

        await agent.chat("go")

        assert _tool_payloads(agent)[0]["success"] is True

    @pytest.mark.asyncio
    async def test_unparseable_arguments(self, make_agent):
        rec = RecordingCallbacks()
        agent, _ = make_agent([
            MockTurn(tool_calls=[ToolCall(id="c1", name="read_file", arguments='{"file_path": "ma')]),
            MockTurn(content="ok"),
        ], callbacks=rec.build())

        await agent.chat("go")

        payload = _tool_payloads(agent)[0]
        assert payload["success"] is False
        assert payload["error"].startswith("Tool arguments truncated:")
        assert not [e for e in rec.events if e[0] in ("start", "end")]


class TestApproval:
    @pytest.mark.asyncio
    async def test_safe_tool_never_prompts(self, make_agent):
        decisions = CannedDecisions(approve=False)
        agent, _ = make_agent([
            MockTurn(tool_calls=[tool_call("c1", "list_files")]),
            MockTurn(content="done"),
        ], callbacks=RecordingCallbacks().build(decisions))

        await agent.chat("list")

        assert decisions.approval_requests == []
        assert _tool_payloads(agent)[0]["success"] is True

    @pytest.mark.asyncio
    async def test_dangerous_tool_prompts_despite_auto_approve(self, make_agent):
        decisions = CannedDecisions(approve=False)
        agent, provider = make_agent([
            MockTurn(tool_calls=[tool_call("c1", "execute_command", command="echo hi", command_type="bash")]),
            MockTurn(content="never reached"),
        ], callbacks=RecordingCallbacks().build(decisions))
        agent.set_session_auto_approve(True)

        await agent.chat("run it")

        assert [name for name, _ in decisions.approval_requests] == ["execute_command"]
        assert len(provider.requests) == 1

    @pytest.mark.asyncio
    async def test_rejection_ends_batch_and_turn(self, make_agent, tmp_project):
        decisions = CannedDecisions(approve=False)
        rec = RecordingCallbacks()
        agent, provider = make_agent([
            MockTurn(tool_calls=[
                tool_call("c1", "create_file", file_path="new.txt", content="x"),
                tool_call("c2", "read_file", file_path="main.py"),
            ]),
            MockTurn(content="never reached"),
        ], callbacks=rec.build(decisions))

        await agent.chat("make a file")

        assert not (tmp_project / "new.txt").exists()
        assert len(provider.requests) == 1
        assert rec.final_messages == []
        first, second = _tool_payloads(agent)
        assert first == {
            "success": False,
            "error": "Tool execution canceled by user",
            "userRejected": True,
        }
        assert second["success"] is False
        assert second["error"].startswith("Skipped:")
        assert agent.messages[-1].role is Role.SYSTEM
        assert agent.messages[-1].content == rejection_note("create_file")
        # read_file was never executed
        assert ("start", "read_file") not in rec.events
        _assert_tool_messages_paired(agent)

    @pytest.mark.asyncio
    async def test_session_auto_approve_persists(self, make_agent, tmp_project):
        decisions = CannedDecisions(approve=True, auto_approve_session=True)
        agent, _ = make_agent([
            MockTurn(tool_calls=[tool_call("c1", "create_file", file_path="a.txt", content="a")]),
            MockTurn(tool_calls=[tool_call("c2", "create_file", file_path="b.txt", content="b")]),
            MockTurn(content="done"),
        ], callbacks=RecordingCallbacks().build(decisions))

        await agent.chat("make two files")

        assert len(decisions.approval_requests) == 1
        assert agent.session_auto_approve is True
        assert (tmp_project / "a.txt").read_text() == "a"
        assert (tmp_project / "b.txt").read_text() == "b"

    @pytest.mark.asyncio
    async def test_no_approval_callback_rejects(self, make_agent, tmp_project):
        agent, _ = make_agent([
            MockTurn(tool_calls=[tool_call("c1", "create_file", file_path="a.txt", content="a")]),
        ])

        await agent.chat("make a file")

        assert not (tmp_project / "a.txt").exists()
        assert _tool_payloads(agent)[0]["userRejected"] is True


class TestReadBeforeEdit:
    @pytest.mark.asyncio
    async def test_edit_without_read_fails_before_approval(self, make_agent, tmp_project):
        decisions = CannedDecisions(approve=True)
        agent, _ = make_agent([
            MockTurn(tool_calls=[
                tool_call("c1", "edit_file", file_path="main.py", old_text="hello", new_text="bye"),
            ]),
            MockTurn(content="ok"),
        ], callbacks=RecordingCallbacks().build(decisions))

        await agent.chat("edit")

        payload = _tool_payloads(agent)[0]
        assert payload["error"] == (
            "File must be read before editing. Use read_file tool first: main.py"
        )
        assert decisions.approval_requests == []
        assert "hello" in (tmp_project / "main.py").read_text()

    @pytest.mark.asyncio
    async def test_edit_after_read(self, make_agent, tmp_project):
        decisions = CannedDecisions(approve=True)
        agent, _ = make_agent([
            MockTurn(tool_calls=[tool_call("c1", "read_file", file_path="main.py")]),
            MockTurn(tool_calls=[
                tool_call("c2", "edit_file", file_path="main.py", old_text="def hello", new_text="def greet"),
            ]),
            MockTurn(content="ok"),
        ], callbacks=RecordingCallbacks().build(decisions))

        await agent.chat("rename")

        assert "def greet" in (tmp_project / "main.py").read_text()
        assert [name for name, _ in decisions.approval_requests] == ["edit_file"]


class TestErrors:
    @pytest.mark.asyncio
    async def test_401_is_fatal(self, make_agent):
        asked: list[str] = []

        async def on_error(message: str) -> bool:
            asked.append(message)
            return True

        agent, provider = make_agent(
            [MockTurn(error=StatusError(401, "Incorrect API key provided", "invalid_api_key"))],
            callbacks=AgentCallbacks(on_error=on_error),
        )

        with pytest.raises(AuthenticationError) as excinfo:
            await agent.chat("hi")

        assert str(excinfo.value) == (
            "API Error (401): Incorrect API key provided (Code: invalid_api_key). "
            "Please check your API key and use /login to set a valid key."
        )
        assert asked == []
        assert len(provider.requests) == 1

    @pytest.mark.asyncio
    async def test_retry_leaves_log_clean(self, make_agent):
        asked: list[str] = []

        async def on_error(message: str) -> bool:
            asked.append(message)
            return True

        rec = RecordingCallbacks()
        callbacks = rec.build()
        callbacks.on_error = on_error
        agent, provider = make_agent(
            [MockTurn(error=StatusError(500, "boom")), MockTurn(content="recovered")],
            callbacks=callbacks,
        )

        await agent.chat("hi")

        assert asked == ["API Error (500): boom"]
        assert rec.final_messages == ["recovered"]
        assert len(provider.requests) == 2
        assert [m.role for m in agent.messages] == [Role.SYSTEM, Role.USER, Role.ASSISTANT]

    @pytest.mark.asyncio
    async def test_declined_retry_records_note(self, make_agent):
        decisions = CannedDecisions(retry=False)
        agent, provider = make_agent(
            [MockTurn(error=StatusError(429, "Rate limited", "rate_limit_exceeded"))],
            callbacks=RecordingCallbacks().build(decisions),
        )

        await agent.chat("hi")

        assert agent.messages[-1].content == (
            "Request failed with error: API Error (429): Rate limited "
            "(Code: rate_limit_exceeded). User chose not to retry."
        )
        assert len(provider.requests) == 1

    @pytest.mark.asyncio
    async def test_without_error_hook_model_sees_error(self, make_agent):
        agent, provider = make_agent([
            MockTurn(error=ConnectionError("network down")),
            MockTurn(content="I will try something else."),
        ])

        await agent.chat("hi")

        note = (
            "Previous API request failed with error: Error: network down. "
            "Please try a different approach or ask the user for clarification."
        )
        assert provider.requests[1]["messages"][-1] == {"role": "system", "content": note}
        assert agent.messages[-1].content == "I will try something else."

    @pytest.mark.asyncio
    async def test_missing_api_key(self, tmp_project):
        agent = Agent(cwd=tmp_project)

        with pytest.raises(MissingApiKeyError, match="/login"):
            await agent.chat("hi")

        assert [m.role for m in agent.messages] == [Role.SYSTEM]


class TestMaxIterations:
    @pytest.mark.asyncio
    async def test_asks_once_and_stops(self, make_agent):
        asked: list[int] = []

        async def on_max(iterations: int) -> bool:
            asked.append(iterations)
            return False

        turns = [
            MockTurn(tool_calls=[tool_call(f"c{i}", "list_files")])
            for i in range(MAX_TOOL_ITERATIONS + 1)
        ]
        agent, provider = make_agent(
            turns + [MockTurn(content="done")],
            callbacks=AgentCallbacks(on_max_iterations=on_max),
        )

        await agent.chat("loop")

        assert asked == [50]
        assert len(provider.requests) == MAX_TOOL_ITERATIONS

    @pytest.mark.asyncio
    async def test_continue_resets_counter(self, make_agent):
        asked: list[int] = []

        async def on_max(iterations: int) -> bool:
            asked.append(iterations)
            return True

        rec = RecordingCallbacks()
        callbacks = rec.build()
        callbacks.on_max_iterations = on_max
        turns = [
            MockTurn(tool_calls=[tool_call(f"c{i}", "list_files")])
            for i in range(MAX_TOOL_ITERATIONS + 1)
        ]
        agent, provider = make_agent(turns + [MockTurn(content="done")], callbacks=callbacks)

        await agent.chat("loop")

        assert asked == [50]
        assert rec.final_messages == ["done"]
        assert len(provider.requests) == MAX_TOOL_ITERATIONS + 2

    @pytest.mark.asyncio
    async def test_no_hook_stops(self, make_agent):
        turns = [
            MockTurn(tool_calls=[tool_call(f"c{i}", "list_files")])
            for i in range(MAX_TOOL_ITERATIONS + 1)
        ]
        agent, provider = make_agent(turns)

        await agent.chat("loop")

        assert len(provider.requests) == MAX_TOOL_ITERATIONS


class TestInterrupt:
    @pytest.mark.asyncio
    async def test_interrupt_during_request(self, make_agent):
        rec = RecordingCallbacks()
        agent, provider = make_agent([MockTurn(block=True)], callbacks=rec.build())

        task = asyncio.create_task(agent.chat("hi"))
        await provider.request_started.wait()
        agent.interrupt()
        await asyncio.wait_for(task, timeout=2)

        assert rec.final_messages == []
        assert agent.messages[-1].role is Role.SYSTEM
        assert agent.messages[-1].content == INTERRUPT_NOTE
        assert sum(m.content == INTERRUPT_NOTE for m in agent.messages) == 1

    @pytest.mark.asyncio
    async def test_interrupt_during_approval(self, make_agent, tmp_project):
        waiting = asyncio.Event()

        async def never_answers(name, args) -> ApprovalDecision:
            waiting.set()
            await asyncio.Event().wait()
            return ApprovalDecision(approved=True)

        agent, provider = make_agent([
            MockTurn(tool_calls=[
                tool_call("c1", "create_file", file_path="a.txt", content="a"),
                tool_call("c2", "list_files"),
            ]),
            MockTurn(content="never reached"),
        ], callbacks=AgentCallbacks(on_tool_approval=never_answers))

        task = asyncio.create_task(agent.chat("make it"))
        await waiting.wait()
        agent.interrupt()
        await asyncio.wait_for(task, timeout=2)

        assert not (tmp_project / "a.txt").exists()
        assert len(provider.requests) == 1
        payloads = _tool_payloads(agent)
        assert payloads[0]["error"] == "Tool execution interrupted by user"
        assert payloads[1]["error"].startswith("Skipped:")
        # The note waits until the batch is answered, and no rejection note follows it.
        assert agent.messages[-1].content == INTERRUPT_NOTE
        assert not any("rejected" in m.content for m in agent.messages if m.role is Role.SYSTEM)
        _assert_tool_messages_paired(agent)

    @pytest.mark.asyncio
    async def test_interrupt_during_retry_decision_counts_as_no(self, make_agent):
        waiting = asyncio.Event()

        async def slow_decision(message: str) -> bool:
            waiting.set()
            await asyncio.Event().wait()
            return True

        agent, provider = make_agent(
            [MockTurn(error=StatusError(503, "unavailable")), MockTurn(content="never")],
            callbacks=AgentCallbacks(on_error=slow_decision),
        )

        task = asyncio.create_task(agent.chat("hi"))
        await waiting.wait()
        agent.interrupt()
        await asyncio.wait_for(task, timeout=2)

        assert len(provider.requests) == 1

    @pytest.mark.asyncio
    async def test_next_chat_runs_normally(self, make_agent):
        agent, provider = make_agent([MockTurn(block=True), MockTurn(content="fresh")])

        task = asyncio.create_task(agent.chat("first"))
        await provider.request_started.wait()
        agent.interrupt()
        await task

        await agent.chat("second")

        assert agent.is_interrupted is False
        assert agent.messages[-1].content == "fresh"

    @pytest.mark.asyncio
    async def test_external_cancel_propagates(self, make_agent):
        agent, provider = make_agent([MockTurn(block=True), MockTurn(content="ok")])

        task = asyncio.create_task(agent.chat("hi"))
        await provider.request_started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        # The agent is usable again afterwards.
        await agent.chat("again")
        assert agent.messages[-1].content == "ok"

    @pytest.mark.asyncio
    async def test_concurrent_chat_rejected(self, make_agent):
        agent, provider = make_agent([MockTurn(block=True)])

        task = asyncio.create_task(agent.chat("hi"))
        await provider.request_started.wait()
        with pytest.raises(RuntimeError, match="chat already in progress"):
            await agent.chat("again")

        agent.interrupt()
        await asyncio.wait_for(task, timeout=2)


class TestSessionControls:
    @pytest.mark.asyncio
    async def test_clear_history_keeps_system_and_auto_approve(self, make_agent):
        agent, _ = make_agent([MockTurn(content="hello")])
        agent.set_session_auto_approve(True)
        await agent.chat("hi")

        agent.clear_history()

        assert [m.role for m in agent.messages] == [Role.SYSTEM]
        assert agent.session_auto_approve is True

    def test_set_model_rebuilds_default_prompt(self, make_agent, tmp_project):
        agent, provider = make_agent([])

        agent.set_model("gpt-4o")

        assert agent.model == "gpt-4o"
        assert provider.model_id == "gpt-4o"
        assert agent.messages[0].content == build_default_system_prompt("gpt-4o", tmp_project.resolve())
        assert config.load_default_model() == "gpt-4o"

    def test_set_model_keeps_custom_prompt(self, make_agent):
        agent, _ = make_agent([], system_prompt="You are terse.")

        agent.set_model("gpt-4o")

        assert agent.messages[0].content == "You are terse."

    def test_default_prompt_names_model_and_cwd(self, make_agent, tmp_project):
        agent, _ = make_agent([], model="gpt-4.1")

        prompt = agent.messages[0].content
        assert "powered by gpt-4.1" in prompt
        assert f"Current working directory: {tmp_project.resolve()}" in prompt

    def test_create_prefers_saved_model(self, tmp_project):
        config.save_default_model("saved-model")

        agent = Agent.create(model="flag-model", cwd=tmp_project)

        assert agent.model == "saved-model"

    def test_create_falls_back_to_flag(self, tmp_project):
        agent = Agent.create(model="flag-model", cwd=tmp_project)

        assert agent.model == "flag-model"

    def test_project_context_loaded(self, make_agent, tmp_project):
        (tmp_project / ".cobot").mkdir()
        (tmp_project / ".cobot" / "context.md").write_text("# Project Context\nA CLI.")

        agent, _ = make_agent([])

        assert [m.role for m in agent.messages] == [Role.SYSTEM, Role.SYSTEM]
        assert agent.messages[1].content == (
            "Project context loaded from .cobot/context.md. Use this as high-level reference "
            "when reasoning about the repository.\n\n# Project Context\nA CLI."
        )

    def test_interrupt_outside_turn_adds_single_note(self, make_agent):
        agent, _ = make_agent([])

        agent.interrupt()
        agent.interrupt()

        assert sum(m.content == INTERRUPT_NOTE for m in agent.messages) == 1
