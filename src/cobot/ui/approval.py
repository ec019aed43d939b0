"""Rich-formatted approval and decision prompts."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from cobot.permissions.approval import describe_tool_call
from cobot.permissions.validators import is_dangerous
from cobot.types.callbacks import ApprovalDecision
from cobot.ui.diff import proposed_change, render_diff
from cobot.ui.input import LineReader

STYLE_PROMPT = "#fbbf24"      # amber
STYLE_DANGER = "#f87171"      # red
STYLE_DETAIL = "#94a3b8"      # slate
STYLE_HINT = "#7c7c8a"        # muted


class RichApprovalCallback:
    """Interactive approval prompt with a diff preview for file edits.

    Answers: ``y`` approves once, ``n`` rejects, ``a`` approves and turns on
    session auto-approve (only offered for tools that are not dangerous).
    """

    def __init__(
        self,
        console: Console | None = None,
        cwd: Path | None = None,
        reader: LineReader | None = None,
    ) -> None:
        self._console = console or Console(stderr=True)
        self._cwd = cwd or Path.cwd()
        self._reader = reader or LineReader()

    async def request_approval(
        self, tool_name: str, args: dict[str, Any],
    ) -> ApprovalDecision:
        dangerous = is_dangerous(tool_name)
        accent = STYLE_DANGER if dangerous else STYLE_PROMPT
        title = Text(f" ◆ {tool_name} ", style=f"bold {accent}")
        body = Text(describe_tool_call(tool_name, args) or "(no arguments)", style=STYLE_DETAIL)

        self._console.print()
        self._console.print(Panel(
            body,
            title=title,
            border_style=accent,
            expand=False,
            padding=(0, 1),
        ))

        change = proposed_change(tool_name, args, self._cwd)
        if change is not None:
            before, after = change
            render_diff(before, after, str(args.get("file_path", "")), console=self._console)

        choices = "(y/n)" if dangerous else "(y/n/a)"
        self._console.print(
            f"[bold {accent}]Allow?[/bold {accent}] [{STYLE_HINT}]{choices}[/{STYLE_HINT}] › ",
            end="",
        )
        try:
            answer = (await self._reader.readline()).strip().lower()
        except (EOFError, KeyboardInterrupt):
            self._console.print()
            return ApprovalDecision(approved=False)

        if not dangerous and answer in ("a", "always"):
            return ApprovalDecision(approved=True, auto_approve_session=True)
        return ApprovalDecision(approved=answer in ("y", "yes"))

    async def confirm(self, question: str, detail: str | None = None) -> bool:
        """Ask a yes/no question in a panel; anything but ``y`` means no."""
        self._console.print()
        self._console.print(Panel(
            Text(detail or question, style=STYLE_DETAIL),
            title=Text(f" {question} ", style=f"bold {STYLE_PROMPT}") if detail else None,
            border_style=STYLE_PROMPT,
            expand=False,
            padding=(0, 1),
        ))
        self._console.print(f"[{STYLE_HINT}](y/n)[/{STYLE_HINT}] › ", end="")
        try:
            answer = await self._reader.readline()
        except (EOFError, KeyboardInterrupt):
            self._console.print()
            return False
        return answer.strip().lower() in ("y", "yes")
