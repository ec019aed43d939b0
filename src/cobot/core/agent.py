"""The agent loop: model request -> tool calls -> model request -> ... -> final answer."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from pathlib import Path
from typing import Any, TypeVar

from cobot.core import config
from cobot.core.conversation import Conversation
from cobot.core.errors import AuthenticationError, Interrupted, MissingApiKeyError
from cobot.core.executor import ExecutorOptions, execute_tool_call
from cobot.providers.base import describe_api_error, is_abort_error
from cobot.tools.registry import ToolRegistry
from cobot.types.callbacks import AgentCallbacks
from cobot.types.messages import Completion, Message, ToolCall
from cobot.types.providers import ProviderAdapter

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_TOOL_ITERATIONS = 50
MAX_TOKENS = 8000

INTERRUPT_NOTE = "User has interrupted the request."

SYSTEM_PROMPT = """\
You are a coding and everyday office work assistant powered by {model}. You have access \
to various tools for coding tasks. Always use these tools for any implementation requests - \
never reply with text-only responses or code snippets when the task requires actual files.

Current working directory: {cwd}

For tasks like building, creating, or implementing:
- Start with create_file or list_files - don't give explanations first.
- Use the tools to generate real, working code files (not examples).
- Build step-by-step: create essential files, then expand with features.

File Operations:
- Always check if a file exists with list_files or read_file before acting.
- If editing, read_file before using edit_file (never use create_file for editing).
- To create new files, confirm with list_files, then call create_file.
- To replace an existing file, use create_file with overwrite=true.
- Unsure? Use list_files or read_file to check.
- Always read_file before editing any file.

Tool Usage:
- Use the "file_path" parameter for file operations - avoid "path".
- Double-check required parameters in tool schemas.
- Matches in edit_file must be exact, including whitespace.
- Do NOT prefix tool names with "repo_browser.".

Commands:
- Only use execute_command for short, quick operations (tests, build, simple scripts).
- Don't run long-lasting processes like servers or daemons.
- Safe: "python test_script.py", "npm test", "ls -la", "git status"
- Avoid: "flask app.py", "npm start", "python -m http.server"
- If a long-running command is needed, provide it to the user at the end, as \
instruction - not as an execution request.

Creating Files:
- Keep files focused and easy to manage. For larger projects, start minimal and expand, \
creating separate files as you go.

Never generate markdown tables. Be brief and efficient.
"""


def build_default_system_prompt(model: str, cwd: Path | str) -> str:
    return SYSTEM_PROMPT.format(model=model, cwd=str(cwd))


def rejection_note(tool_name: str) -> str:
    return (
        f"The user rejected the {tool_name} tool execution. The response has been "
        "terminated. Please wait for the user's next instruction."
    )


class Agent:
    """A tool-calling chat session against an OpenAI-compatible endpoint.

    One ``chat()`` call runs one user turn to completion: it keeps asking the
    model for the next step, executes every requested tool through the
    approval gate, and stops on a final text answer, a rejection, an
    interrupt, or the iteration cap.

    Parameters
    ----------
    model:
        Model ID used for completion requests.
    temperature:
        Sampling temperature.
    system_prompt:
        Custom system prompt. When omitted the built-in prompt is used and
        rebuilt whenever the model changes.
    api_key, base_url:
        Explicit credentials. Missing values are resolved from the
        environment and ``~/.cobot/config.toml`` on first use.
    provider:
        Pre-built provider adapter (tests, alternative endpoints). Disables
        credential resolution.
    registry:
        Tool registry. Defaults to the full built-in catalog rooted at *cwd*.
    callbacks:
        Front-end hooks, see :class:`~cobot.types.callbacks.AgentCallbacks`.
    cwd:
        Working directory for tools and the system prompt.
    """

    def __init__(
        self,
        model: str = config.DEFAULT_MODEL,
        temperature: float = 1.0,
        system_prompt: str | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
        provider: ProviderAdapter | None = None,
        registry: ToolRegistry | None = None,
        callbacks: AgentCallbacks | None = None,
        cwd: Path | str | None = None,
    ) -> None:
        self._cwd = Path(cwd or Path.cwd()).resolve()
        self._model = model
        self._temperature = temperature
        self._custom_system_prompt = system_prompt
        self._api_key = api_key
        self._base_url = base_url
        self._provider = provider
        self._owns_provider = provider is None
        if provider is not None:
            provider.set_model(model)
        self._registry = registry or ToolRegistry.with_defaults(cwd=self._cwd)
        self._callbacks = callbacks or AgentCallbacks()

        self._conversation = Conversation(
            system_prompt or build_default_system_prompt(model, self._cwd)
        )
        project_context = config.load_project_context(self._cwd)
        if project_context is not None:
            source, text = project_context
            logger.debug("loaded project context from %s (%d chars)", source, len(text))
            self._conversation.add_system_note(
                f"Project context loaded from {source}. Use this as high-level reference "
                f"when reasoning about the repository.\n\n{text}"
            )

        self._session_auto_approve = False
        self._interrupted = False
        self._busy = False
        self._inflight: asyncio.Future[Any] | None = None
        self._request_count = 0

    @classmethod
    def create(cls, model: str = config.DEFAULT_MODEL, **kwargs: Any) -> Agent:
        """Build an agent, preferring the saved default model over *model*."""
        saved = config.load_default_model()
        if saved:
            logger.debug("using saved default model %s", saved)
        return cls(model=saved or model, **kwargs)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def model(self) -> str:
        return self._model

    @property
    def temperature(self) -> float:
        return self._temperature

    @property
    def cwd(self) -> Path:
        return self._cwd

    @property
    def conversation(self) -> Conversation:
        return self._conversation

    @property
    def messages(self) -> list[Message]:
        return self._conversation.messages

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def callbacks(self) -> AgentCallbacks:
        return self._callbacks

    @property
    def session_auto_approve(self) -> bool:
        return self._session_auto_approve

    @property
    def is_interrupted(self) -> bool:
        return self._interrupted

    @property
    def request_count(self) -> int:
        """Completion requests issued over the life of this agent."""
        return self._request_count

    # ------------------------------------------------------------------
    # Session controls
    # ------------------------------------------------------------------

    def set_callbacks(self, callbacks: AgentCallbacks) -> None:
        self._callbacks = callbacks

    def set_session_auto_approve(self, enabled: bool) -> None:
        self._session_auto_approve = enabled

    def set_model(self, model: str) -> None:
        """Switch models, persist the choice and refresh the built-in prompt.

        History is left alone; callers that want a fresh start call
        :meth:`clear_history` as well.
        """
        self._model = model
        config.save_default_model(model)
        if self._provider is not None:
            self._provider.set_model(model)
        if self._custom_system_prompt is None:
            self._conversation.replace_system_message(
                build_default_system_prompt(model, self._cwd)
            )
        logger.info("model switched to %s", model)

    def clear_history(self) -> None:
        """Drop everything but the system messages."""
        self._conversation.clear()

    def interrupt(self) -> None:
        """Stop the running turn at the next opportunity.

        Cancels whatever the turn is waiting on (request, approval or
        decision) and records a single interruption note.
        """
        if self._interrupted:
            return
        self._interrupted = True
        logger.info("interrupt requested")
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
        self._conversation.add_system_note(INTERRUPT_NOTE)

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def set_api_key(self, api_key: str | None) -> None:
        """Use *api_key* for subsequent requests without persisting it."""
        self._api_key = api_key
        self._reset_provider()

    def save_api_key(self, api_key: str) -> Path:
        path = config.save_api_key(api_key)
        self.set_api_key(api_key)
        return path

    def clear_api_key(self) -> None:
        config.clear_api_key()
        self.set_api_key(None)

    def save_base_url(self, base_url: str) -> Path:
        path = config.save_base_url(base_url)
        self._base_url = base_url
        self._reset_provider()
        return path

    def clear_base_url(self) -> None:
        config.clear_base_url()
        self._base_url = None
        self._reset_provider()

    async def list_models(self) -> tuple[list[str], str | None]:
        """Model ids offered by the endpoint, with a fallback list and reason on failure."""
        from cobot.providers.openai import FALLBACK_MODELS

        try:
            provider = self._ensure_provider()
        except MissingApiKeyError as exc:
            return list(FALLBACK_MODELS), str(exc)
        list_models = getattr(provider, "list_models", None)
        if list_models is None:
            return list(FALLBACK_MODELS), None
        return await list_models()

    def _reset_provider(self) -> None:
        if self._owns_provider:
            self._provider = None

    def _ensure_provider(self) -> ProviderAdapter:
        if self._provider is not None:
            return self._provider
        api_key = config.resolve_api_key(self._api_key)
        if not api_key:
            raise MissingApiKeyError()
        from cobot.providers.openai import OpenAIProvider

        self._provider = OpenAIProvider(
            api_key=api_key,
            model=self._model,
            base_url=config.resolve_base_url(self._base_url),
        )
        return self._provider

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    async def chat(self, user_input: str) -> None:
        """Run one user turn to completion.

        Raises
        ------
        MissingApiKeyError
            No credential could be resolved.
        AuthenticationError
            The endpoint answered 401.
        RuntimeError
            Another ``chat()`` is still running on this agent.
        """
        if self._busy:
            raise RuntimeError("chat already in progress")
        self._busy = True
        try:
            self._interrupted = False
            provider = self._ensure_provider()
            if self._conversation.has_open_batch:
                # Left behind by a turn that was cancelled from outside.
                self._conversation.close_batch("previous turn was cancelled")
            self._conversation.add_user_message(user_input)
            await self._run(provider)
        finally:
            self._busy = False
            self._inflight = None

    async def _run(self, provider: ProviderAdapter) -> None:
        iteration = 0
        while True:
            while iteration < MAX_TOOL_ITERATIONS:
                if self._interrupted:
                    return

                self._request_count += 1
                logger.debug(
                    "request #%d: %d messages, model=%s",
                    self._request_count, len(self._conversation), self._model,
                )
                try:
                    completion = await self._suspend(
                        provider.complete(
                            self._conversation.to_openai(),
                            self._registry.definitions(),
                            self._temperature,
                            MAX_TOKENS,
                        )
                    )
                except Interrupted:
                    logger.info("request interrupted by user")
                    return
                except Exception as exc:
                    if is_abort_error(exc):
                        logger.info("request aborted")
                        return
                    if not await self._handle_api_error(exc):
                        return
                    iteration += 1
                    continue

                if not await self._handle_completion(completion):
                    return
                iteration += 1

            if self._interrupted:
                return
            logger.warning("reached %d tool iterations", MAX_TOOL_ITERATIONS)
            keep_going = False
            if self._callbacks.on_max_iterations is not None:
                keep_going = await self._decide(
                    self._callbacks.on_max_iterations(MAX_TOOL_ITERATIONS)
                )
            if not keep_going:
                return
            iteration = 0

    async def _handle_completion(self, completion: Completion) -> bool:
        """Process one response. Returns True when the turn should continue."""
        message = completion.message
        if completion.usage is not None and self._callbacks.on_api_usage is not None:
            self._callbacks.on_api_usage(completion.usage)

        logger.debug(
            "finish_reason=%s content=%d chars tool_calls=%d",
            completion.finish_reason, len(message.content), len(message.tool_calls),
        )
        if completion.finish_reason not in ("stop", "tool_calls"):
            logger.warning("unexpected finish_reason: %s", completion.finish_reason)

        if message.tool_calls:
            if (message.content or message.reasoning) and self._callbacks.on_thinking_text:
                self._callbacks.on_thinking_text(message.content, message.reasoning)
            self._conversation.append(message)
            return await self._run_tool_calls(message.tool_calls)

        if self._callbacks.on_final_message is not None:
            self._callbacks.on_final_message(message.content, message.reasoning)
        self._conversation.append(Message.assistant(message.content))
        return False

    async def _run_tool_calls(self, calls: tuple[ToolCall, ...]) -> bool:
        options = ExecutorOptions(
            session_auto_approve=self._session_auto_approve,
            is_interrupted=lambda: self._interrupted,
            suspend=self._suspend,
        )
        for call in calls:
            if self._interrupted:
                logger.info("tool execution interrupted before %s", call.name)
                self._conversation.close_batch("interrupted by user")
                return False

            result = await execute_tool_call(call, self._registry, self._callbacks, options)
            self._session_auto_approve = options.session_auto_approve
            self._conversation.add_tool_result(call.id, result)

            if result.user_rejected:
                self._conversation.close_batch(f"{call.name} was not executed")
                if not self._interrupted:
                    self._conversation.add_system_note(rejection_note(call.name))
                return False
        return True

    async def _handle_api_error(self, exc: Exception) -> bool:
        """Report a failed request. Returns True when the loop should go on."""
        info = describe_api_error(exc)
        error_message = info.format()
        logger.warning("completion request failed: %s", error_message, exc_info=True)

        if info.status == 401:
            raise AuthenticationError(
                f"{error_message}. Please check your API key and use /login to set a valid key."
            ) from exc

        if self._callbacks.on_error is not None:
            if await self._decide(self._callbacks.on_error(error_message)):
                logger.info("retrying after error")
                return True
            self._conversation.add_system_note(
                f"Request failed with error: {error_message}. User chose not to retry."
            )
            return False

        self._conversation.add_system_note(
            f"Previous API request failed with error: {error_message}. "
            "Please try a different approach or ask the user for clarification."
        )
        return True

    # ------------------------------------------------------------------
    # Suspension
    # ------------------------------------------------------------------

    async def _suspend(self, aw: Awaitable[T]) -> T:
        """Await *aw* as a task that :meth:`interrupt` can cancel.

        Raises :class:`Interrupted` when the interrupt cancelled it. A
        cancellation of the calling task itself propagates unchanged.
        """
        task = asyncio.ensure_future(aw)
        self._inflight = task
        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            externally_cancelled = current is not None and current.cancelling() > 0
            if self._interrupted and task.cancelled() and not externally_cancelled:
                raise Interrupted() from None
            raise
        finally:
            if self._inflight is task:
                self._inflight = None

    async def _decide(self, aw: Awaitable[bool]) -> bool:
        """Await a yes/no decision; an interrupt counts as no."""
        try:
            answer = await self._suspend(aw)
        except Interrupted:
            logger.info("decision interrupted by user")
            return False
        return bool(answer) and not self._interrupted

    def __repr__(self) -> str:
        return (
            f"Agent(model={self._model!r}, messages={len(self._conversation)}, "
            f"auto_approve={self._session_auto_approve})"
        )
