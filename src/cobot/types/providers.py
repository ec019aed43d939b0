"""Provider adapter protocol."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from cobot.types.messages import Completion
from cobot.types.tools import ToolDef


@runtime_checkable
class ProviderAdapter(Protocol):
    """Protocol that all provider adapters must implement."""

    async def complete(
        self,
        messages: list[dict[str, Any]],
        tools: list[ToolDef],
        temperature: float,
        max_tokens: int,
    ) -> Completion:
        """Issue one non-streaming chat completion.

        Errors carry ``status_code`` and ``body`` attributes where the
        endpoint returned an HTTP error.
        """
        ...

    @property
    def model_id(self) -> str:
        """The model identifier being used."""
        ...

    def set_model(self, model: str) -> None:
        """Switch the model used for subsequent requests."""
        ...
