"""Interactive REPL for cobot."""

from __future__ import annotations

import asyncio
import getpass
import logging
import signal
from typing import Any

from cobot.cli.output import PlainPrinter
from cobot.core.agent import Agent
from cobot.core.errors import AgentError
from cobot.core.project_context import write_project_context
from cobot.core.stats import SessionStats
from cobot.permissions.approval import StdinApprovalCallback
from cobot.types.callbacks import AgentCallbacks
from cobot.ui.input import LineReader

logger = logging.getLogger(__name__)


class Repl:
    """Read a prompt, run one agent turn, repeat.

    Ctrl+C during a turn interrupts the agent instead of killing the
    process. Lines starting with ``/`` are slash commands.
    """

    # Order they appear in /help
    SLASH_COMMANDS = {
        "/help": "Show help and available commands",
        "/login": "Login with your OpenAI API key",
        "/apikey": "Set your OpenAI API key",
        "/model": "List available models or switch (e.g. /model gpt-4o)",
        "/clear": "Clear chat history and context",
        "/init": "Generate project context files in .cobot/",
        "/reasoning": "Toggle display of reasoning content",
        "/stats": "Display session statistics and token usage",
        "/baseurl": "Show, set or reset the API base URL (/baseurl reset)",
        "/autoapprove": "Toggle auto-approval of file edits for this session",
        "/exit": "Exit cobot (or press Ctrl+D)",
    }

    def __init__(
        self,
        agent: Agent,
        *,
        use_rich: bool = True,
        printer: Any | None = None,
        prompter: Any | None = None,
        reader: LineReader | None = None,
    ) -> None:
        self._agent = agent
        self._reader = reader or LineReader()
        if printer is None:
            if use_rich:
                from cobot.ui.terminal import RichPrinter

                printer = RichPrinter()
            else:
                printer = PlainPrinter()
        if prompter is None:
            if use_rich:
                from cobot.ui.approval import RichApprovalCallback

                prompter = RichApprovalCallback(cwd=agent.cwd, reader=self._reader)
            else:
                prompter = StdinApprovalCallback(reader=self._reader)
        self._printer = printer
        self._prompter = prompter
        self._stats = SessionStats()
        agent.set_callbacks(self._build_callbacks())

    @property
    def stats(self) -> SessionStats:
        return self._stats

    def _build_callbacks(self) -> AgentCallbacks:
        return AgentCallbacks(
            on_tool_start=self._printer.tool_start,
            on_tool_end=self._printer.tool_end,
            on_tool_approval=self._prompter.request_approval,
            on_thinking_text=self._printer.thinking,
            on_final_message=self._printer.final,
            on_api_usage=self._stats.record,
            on_max_iterations=self._ask_continue,
            on_error=self._ask_retry,
        )

    async def _ask_retry(self, message: str) -> bool:
        return await self._prompter.confirm("Retry the request?", detail=message)

    async def _ask_continue(self, iterations: int) -> bool:
        return await self._prompter.confirm(
            "Continue?",
            detail=f"The agent has run {iterations} tool iterations without finishing.",
        )

    # -- Main loop -------------------------------------------------------------

    async def run(self) -> None:
        """Main REPL loop."""
        self._printer.banner(self._agent.model, str(self._agent.cwd))

        while True:
            try:
                line = await self._read_prompt()
            except EOFError:
                self._printer.info("Goodbye!")
                break
            except KeyboardInterrupt:
                continue

            if not line:
                continue
            if line.startswith("/"):
                if not await self.handle_command(line):
                    break
                continue
            await self.run_turn(line)

    async def _read_prompt(self) -> str:
        line = await self._reader.readline(f"{self._agent.model} > ")
        return line.strip()

    async def run_turn(self, prompt: str) -> None:
        """Run one agent turn with Ctrl+C mapped to ``Agent.interrupt``."""
        loop = asyncio.get_running_loop()
        original_handler = signal.getsignal(signal.SIGINT)

        def _interrupt_handler(signum: int, frame: Any) -> None:
            loop.call_soon_threadsafe(self._agent.interrupt)

        try:
            signal.signal(signal.SIGINT, _interrupt_handler)
            await self._agent.chat(prompt)
        except AgentError as exc:
            self._printer.error(str(exc))
        finally:
            signal.signal(signal.SIGINT, original_handler)

        if self._agent.is_interrupted:
            self._printer.info("Interrupted. Tell the agent what to do instead.")

    # -- Slash commands --------------------------------------------------------

    async def handle_command(self, line: str) -> bool:
        """Run a slash command. Returns False when the REPL should exit."""
        parts = line.strip().split(maxsplit=1)
        base = parts[0].lower()
        arg = parts[1].strip() if len(parts) > 1 else ""

        if base == "/exit":
            self._printer.info("Goodbye!")
            return False

        handlers = {
            "/help": lambda: self._printer.commands(self.SLASH_COMMANDS),
            "/login": self._handle_login,
            "/apikey": self._handle_login,
            "/model": lambda: self._handle_model(arg),
            "/clear": self._handle_clear,
            "/init": self._handle_init,
            "/reasoning": self._handle_reasoning,
            "/stats": lambda: self._printer.stats(self._stats),
            "/baseurl": lambda: self._handle_baseurl(arg),
            "/autoapprove": self._handle_autoapprove,
        }
        handler = handlers.get(base)
        if handler is not None:
            result = handler()
            if asyncio.iscoroutine(result):
                await result
            return True

        matches = [c for c in self.SLASH_COMMANDS if c.startswith(base)]
        if matches:
            self._printer.error(f"Unknown command: {base}. Did you mean: {', '.join(matches)}?")
        else:
            self._printer.error(f"Unknown command: {base}. Type /help to see all commands.")
        return True

    def _handle_login(self) -> None:
        try:
            api_key = getpass.getpass("  OpenAI API key: ").strip()
        except (EOFError, KeyboardInterrupt):
            self._printer.info("Cancelled.")
            return
        if not api_key:
            self._printer.info("No key entered. Cancelled.")
            return
        path = self._agent.save_api_key(api_key)
        self._printer.info(f"API key saved to {path}")

    async def _handle_model(self, arg: str) -> None:
        if not arg:
            models, error = await self._agent.list_models()
            if error:
                self._printer.info(f"Could not fetch models: {error.rstrip('.')}. Showing common models.")
            self._printer.models(models, self._agent.model)
            self._printer.info(f"Current model: {self._agent.model}. Usage: /model <name>")
            return
        old = self._agent.model
        self._agent.set_model(arg)
        self._agent.clear_history()
        self._stats.reset()
        self._printer.info(f"{old} -> {arg} (saved as default, history cleared)")

    def _handle_clear(self) -> None:
        self._agent.clear_history()
        self._stats.reset()
        self._printer.info("Chat history and context cleared.")

    def _handle_init(self) -> None:
        try:
            md_path, json_path = write_project_context(self._agent.cwd)
        except OSError as exc:
            self._printer.error(f"Failed to generate project context: {exc}")
            return
        self._printer.info(
            f"Project context generated: {md_path} and {json_path}. "
            "It is loaded automatically in new sessions. Re-run /init to refresh."
        )

    def _handle_reasoning(self) -> None:
        self._printer.show_reasoning = not self._printer.show_reasoning
        state = "enabled" if self._printer.show_reasoning else "disabled"
        self._printer.info(f"Reasoning display is now {state}.")

    def _handle_baseurl(self, arg: str) -> None:
        from cobot.core.config import resolve_base_url

        if not arg:
            current = resolve_base_url() or "default (api.openai.com)"
            self._printer.info(f"Base URL: {current}. Usage: /baseurl <url> or /baseurl reset")
            return
        if arg.lower() in ("reset", "default", "clear"):
            self._agent.clear_base_url()
            self._printer.info("Base URL reset to default.")
            return
        if not arg.startswith(("http://", "https://")):
            self._printer.error("Base URL must start with http:// or https://")
            return
        path = self._agent.save_base_url(arg)
        self._printer.info(f"Base URL set to {arg} (saved to {path})")

    def _handle_autoapprove(self) -> None:
        enabled = not self._agent.session_auto_approve
        self._agent.set_session_auto_approve(enabled)
        state = "enabled" if enabled else "disabled"
        self._printer.info(f"Auto-approval of file edits is now {state} for this session.")
