"""Base provider with tool schema conversion and API error normalization."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from cobot.types.messages import Completion
from cobot.types.tools import ToolDef, ToolParam

logger = logging.getLogger(__name__)

# Exception class names that mean the request was aborted on purpose.
_ABORT_ERROR_NAMES: frozenset[str] = frozenset({"APIUserAbortError", "AbortError", "CancelledError"})


@dataclass(frozen=True, slots=True)
class ApiErrorInfo:
    """The parts of a failed request the agent reports to the user."""

    message: str
    status: int | None = None
    code: str | None = None

    def format(self) -> str:
        """Render as ``API Error (401): ... (Code: ...)`` or ``Error: ...``."""
        if self.status is None:
            return f"Error: {self.message}"
        text = f"API Error ({self.status}): {self.message}"
        if self.code:
            text += f" (Code: {self.code})"
        return text


def describe_api_error(exc: BaseException) -> ApiErrorInfo:
    """Extract status, message and code from an SDK or HTTP exception.

    Works with ``openai.APIStatusError`` (``status_code`` plus a ``body``
    that may or may not wrap its payload in ``"error"``) and with anything
    else that exposes a ``status_code`` attribute.
    """
    status = getattr(exc, "status_code", None)
    if not isinstance(status, int):
        status = None

    message: str | None = None
    code: Any = None
    body = getattr(exc, "body", None)
    if isinstance(body, dict):
        payload = body.get("error", body)
        if isinstance(payload, dict):
            message = payload.get("message")
            code = payload.get("code")
    if code is None:
        code = getattr(exc, "code", None)
    if not message:
        message = str(exc) or type(exc).__name__

    return ApiErrorInfo(message=str(message), status=status, code=str(code) if code else None)


def is_abort_error(exc: BaseException) -> bool:
    """Return True when *exc* reports a deliberately aborted request."""
    return type(exc).__name__ in _ABORT_ERROR_NAMES


class BaseProvider(ABC):
    """Abstract base class for provider adapters.

    Concrete sub-classes implement :meth:`complete`.

    Parameters
    ----------
    model:
        The model identifier string (e.g. ``"gpt-4o-mini"``).
    """

    def __init__(self, model: str) -> None:
        self._model = model

    # ------------------------------------------------------------------
    # Public interface (ProviderAdapter protocol)
    # ------------------------------------------------------------------

    @property
    def model_id(self) -> str:
        """The model identifier being used by this provider instance."""
        return self._model

    def set_model(self, model: str) -> None:
        self._model = model

    @abstractmethod
    async def complete(
        self,
        messages: list[dict[str, Any]],
        tools: list[ToolDef],
        temperature: float,
        max_tokens: int,
    ) -> Completion:
        ...

    def _make_tool_defs(self, tools: list[ToolDef]) -> list[dict[str, Any]]:
        """Convert :class:`ToolDef` objects into JSON-Schema-style dicts.

        Parameters
        ----------
        tools:
            Tool definitions to convert.

        Returns
        -------
        list[dict[str, Any]]
            One dict per tool, each with keys ``name``, ``description``, and
            ``input_schema`` (a JSON Schema ``object``).

        Examples
        --------
        >>> defs = provider._make_tool_defs([ToolDef(
        ...     name="read_file",
        ...     description="Read a file from disk.",
        ...     parameters=(ToolParam(name="file_path", type="string",
        ...                          description="Path to file", required=True),),
        ... )])
        >>> defs[0]["input_schema"]["required"]
        ['file_path']
        """
        result: list[dict[str, Any]] = []
        for tool in tools:
            properties: dict[str, Any] = {}
            required_params: list[str] = []

            for param in tool.parameters:
                properties[param.name] = self._param_to_schema(param)
                if param.required:
                    required_params.append(param.name)

            schema: dict[str, Any] = {"type": "object", "properties": properties}
            if required_params:
                schema["required"] = required_params

            result.append({
                "name": tool.name,
                "description": tool.description,
                "input_schema": schema,
            })
        return result

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _param_to_schema(param: ToolParam) -> dict[str, Any]:
        """Render a single :class:`ToolParam` as a JSON Schema property dict."""
        prop: dict[str, Any] = {
            "type": param.type,
            "description": param.description,
        }
        if param.enum is not None:
            prop["enum"] = list(param.enum)
        if param.default is not None:
            prop["default"] = param.default
        # OpenAI rejects array properties without an items schema.
        if param.type == "array":
            prop["items"] = param.items if param.items is not None else {"type": "string"}
        return prop
