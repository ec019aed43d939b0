"""Base tool class with shared logic."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from cobot.types.tools import ToolContext, ToolDef, ToolResult

logger = logging.getLogger(__name__)


class BaseTool(ABC):
    """Base class for all tools.

    Subclasses implement :meth:`run` with keyword parameters matching their
    :class:`ToolDef`. Keys the definition does not declare are dropped; a
    missing required argument surfaces as ``TypeError``, which the registry
    reports as invalid arguments.
    """

    @property
    @abstractmethod
    def definition(self) -> ToolDef:
        ...

    @abstractmethod
    async def run(self, ctx: ToolContext, **kwargs: Any) -> ToolResult:
        ...

    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResult:
        known = {p.name for p in self.definition.parameters}
        dropped = sorted(k for k in args if k not in known)
        if dropped:
            logger.debug("%s: ignoring undeclared arguments %s", self.name, dropped)
        return await self.run(ctx, **{k: v for k, v in args.items() if k in known})

    @property
    def name(self) -> str:
        return self.definition.name

    def _error(self, msg: str) -> ToolResult:
        return ToolResult.fail(msg)

    def _ok(self, content: Any = None, message: str | None = None) -> ToolResult:
        return ToolResult.ok(content, message)
