"""OpenAI provider adapter.

Works against api.openai.com and any OpenAI-compatible endpoint (Ollama,
Groq, OpenRouter, ...) by passing a custom ``base_url``.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from cobot.providers.base import BaseProvider, describe_api_error
from cobot.types.messages import ApiUsage, Completion, Message, ToolCall
from cobot.types.tools import ToolDef

logger = logging.getLogger(__name__)

# Offered by /model when the endpoint cannot list its models.
FALLBACK_MODELS: tuple[str, ...] = ("gpt-4o", "gpt-4o-mini", "gpt-3.5-turbo")


class OpenAIProvider(BaseProvider):
    """Provider adapter for OpenAI-compatible chat completion APIs.

    Uses the official ``openai`` SDK's ``AsyncOpenAI`` client with
    non-streaming requests. Responses are normalized into a
    :class:`~cobot.types.messages.Completion`.

    Parameters
    ----------
    api_key:
        OpenAI API key. When *None* the SDK falls back to the
        ``OPENAI_API_KEY`` environment variable.
    model:
        Model ID to use for completions (default ``"gpt-4o-mini"``).
    base_url:
        Optional custom base URL for OpenAI-compatible endpoints.
    client:
        Pre-built client, mainly for tests. Overrides *api_key* and
        *base_url*.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        client: Any = None,
    ) -> None:
        super().__init__(model)
        if client is None:
            from openai import AsyncOpenAI

            kwargs: dict[str, Any] = {}
            if api_key is not None:
                kwargs["api_key"] = api_key
            if base_url is not None:
                kwargs["base_url"] = base_url
            client = AsyncOpenAI(**kwargs)
        self._client = client

    # ------------------------------------------------------------------
    # ProviderAdapter protocol
    # ------------------------------------------------------------------

    async def complete(
        self,
        messages: list[dict[str, Any]],
        tools: list[ToolDef],
        temperature: float,
        max_tokens: int = 8000,
    ) -> Completion:
        """Request one chat completion.

        Parameters
        ----------
        messages:
            The full conversation in chat-completion wire format.
        tools:
            Tool definitions offered to the model with ``tool_choice="auto"``.
        temperature:
            Sampling temperature.
        max_tokens:
            Maximum number of tokens to generate.

        Returns
        -------
        Completion
            The first choice, its finish reason and token usage.
        """
        request: dict[str, Any] = {
            "model": self._model,
            "messages": messages,
            "temperature": temperature,
            "stream": False,
            **self._token_kwargs(max_tokens),
        }
        openai_tools = self._to_openai_tools(tools)
        if openai_tools:
            request["tools"] = openai_tools
            request["tool_choice"] = "auto"

        started = time.perf_counter()
        response = await self._client.chat.completions.create(**request)
        elapsed = time.perf_counter() - started

        return self._to_completion(response, elapsed)

    async def list_models(self) -> tuple[list[str], str | None]:
        """Return the model ids the endpoint serves, sorted.

        On failure, or when the endpoint lists nothing, returns
        :data:`FALLBACK_MODELS` together with the reason.
        """
        try:
            page = await self._client.models.list()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to list models: %s", exc)
            return list(FALLBACK_MODELS), describe_api_error(exc).format()
        ids = sorted({m.id for m in getattr(page, "data", None) or []})
        if not ids:
            return list(FALLBACK_MODELS), "The endpoint returned no models"
        return ids, None

    # ------------------------------------------------------------------
    # Conversion helpers
    # ------------------------------------------------------------------

    def _token_kwargs(self, max_tokens: int) -> dict[str, Any]:
        # GPT-5+ and reasoning models (o1/o3/o4) only accept max_completion_tokens.
        model_lower = self._model.lower()
        if any(model_lower.startswith(p) for p in ("gpt-5", "o1", "o3", "o4")):
            return {"max_completion_tokens": max_tokens}
        return {"max_tokens": max_tokens}

    def _to_openai_tools(self, tools: list[ToolDef]) -> list[dict[str, Any]]:
        """Wrap the generic tool schema in OpenAI's function-calling envelope."""
        return [
            {
                "type": "function",
                "function": {
                    "name": t["name"],
                    "description": t["description"],
                    "parameters": t["input_schema"],
                },
            }
            for t in self._make_tool_defs(tools)
        ]

    @staticmethod
    def _to_completion(response: Any, elapsed: float) -> Completion:
        choices = getattr(response, "choices", None) or []
        if not choices:
            raise ValueError("completion response contained no choices")
        choice = choices[0]
        raw = choice.message

        tool_calls = tuple(
            ToolCall(
                id=tc.id,
                name=tc.function.name,
                arguments=tc.function.arguments or "",
                type=getattr(tc, "type", None) or "function",
            )
            for tc in (getattr(raw, "tool_calls", None) or [])
        )
        reasoning = getattr(raw, "reasoning", None) or getattr(raw, "reasoning_content", None)
        message = Message.assistant(
            content=getattr(raw, "content", None) or "",
            tool_calls=tool_calls,
            reasoning=reasoning or None,
        )

        usage: ApiUsage | None = None
        raw_usage = getattr(response, "usage", None)
        if raw_usage is not None:
            usage = ApiUsage(
                prompt_tokens=getattr(raw_usage, "prompt_tokens", 0) or 0,
                completion_tokens=getattr(raw_usage, "completion_tokens", 0) or 0,
                total_tokens=getattr(raw_usage, "total_tokens", 0) or 0,
                total_time=elapsed,
            )

        return Completion(
            message=message,
            finish_reason=getattr(choice, "finish_reason", None),
            usage=usage,
        )
