"""Rich-powered terminal output."""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from cobot.cli.output import BANNER
from cobot.core.stats import SessionStats
from cobot.permissions.approval import describe_tool_call
from cobot.types.tools import ToolResult

# ── Palette ──────────────────────────────────────────────────────────────────

TOOL_ICONS: dict[str, str] = {
    "execute_command": "█",   # █  shell
    "read_file": "▸",         # ▸  files
    "create_file": "▸",
    "edit_file": "▸",
    "delete_file": "✗",       # ✗
    "list_files": "○",        # ○  search
    "search_files": "○",
    "create_tasks": "◆",      # ◆  planning
    "update_tasks": "◆",
}
DEFAULT_ICON = "▸"

STYLE_BRAND = "#3f8097"
STYLE_TOOL_NAME = "bold #a78bfa"      # violet
STYLE_TOOL_DETAIL = "#7c7c8a"         # muted grey
STYLE_TOOL_OK = "#34d399"             # green
STYLE_ERROR_LABEL = "bold #f87171"    # red
STYLE_ERROR_BODY = "#f87171"
STYLE_THINKING = "italic #94a3b8"
STYLE_REASONING = "dim italic #7c7c8a"
STYLE_RESULT_LABEL = "bold #94a3b8"
STYLE_RESULT_VALUE = "#e2e8f0"
STYLE_INFO = "#94a3b8"


class RichPrinter:
    """Colored, formatted output for interactive sessions.

    Progress goes to stderr; the final answer is rendered as Markdown on
    stdout.
    """

    def __init__(self, console: Console | None = None, stdout: Console | None = None) -> None:
        self._console = console or Console(stderr=True)
        self._stdout = stdout or Console()
        self.show_reasoning = False

    def banner(self, model: str, cwd: str) -> None:
        self._console.print(Text(BANNER, style=STYLE_BRAND))
        self._console.print(f"  [{STYLE_TOOL_DETAIL}]{model}  │  {cwd}[/]")
        self._console.print(
            f"  [{STYLE_TOOL_DETAIL}]Type what you need, or[/] [{STYLE_BRAND}]/help[/] "
            f"[{STYLE_TOOL_DETAIL}]for commands.[/]\n"
        )

    # ── Tools ────────────────────────────────────────────────────────────────

    def tool_start(self, name: str, args: dict[str, Any]) -> None:
        icon = TOOL_ICONS.get(name, DEFAULT_ICON)
        line = Text()
        line.append(f"  {icon} ", style=STYLE_TOOL_NAME)
        line.append(name, style=STYLE_TOOL_NAME)
        detail = describe_tool_call(name, args, separator="=")
        if detail:
            line.append("  ")
            line.append(detail, style=STYLE_TOOL_DETAIL)
        self._console.print(line)

    def tool_end(self, name: str, result: ToolResult) -> None:
        if result.success:
            if result.message:
                self._console.print(Text(f"    ✓ {result.message}", style=STYLE_TOOL_OK))
            return
        label = Text("    ✗ ", style=STYLE_ERROR_LABEL)
        label.append((result.error or "")[:300], style=STYLE_ERROR_BODY)
        self._console.print(label)

    # ── Model text ───────────────────────────────────────────────────────────

    def thinking(self, content: str, reasoning: str | None) -> None:
        if reasoning and self.show_reasoning:
            self._console.print(Text(reasoning, style=STYLE_REASONING))
        if content:
            self._console.print(Text(content, style=STYLE_THINKING))

    def final(self, content: str, reasoning: str | None) -> None:
        if reasoning and self.show_reasoning:
            self._console.print(Text(reasoning, style=STYLE_REASONING))
        self._stdout.print()
        self._stdout.print(Markdown(content or ""))
        self._stdout.print()

    # ── Status ───────────────────────────────────────────────────────────────

    def info(self, text: str) -> None:
        self._console.print(Text(f"  {text}", style=STYLE_INFO))

    def error(self, text: str) -> None:
        label = Text("  ✗ ", style=STYLE_ERROR_LABEL)
        label.append(text, style=STYLE_ERROR_BODY)
        self._console.print(label)

    def stats(self, stats: SessionStats) -> None:
        tbl = Table(
            show_header=False,
            show_edge=False,
            show_lines=False,
            padding=(0, 1),
            expand=False,
        )
        tbl.add_column(style=STYLE_RESULT_LABEL, justify="right", no_wrap=True)
        tbl.add_column(style=STYLE_RESULT_VALUE, no_wrap=True)
        for label, value in stats.rows():
            tbl.add_row(label, value)
        self._console.print(Panel(
            tbl,
            title=Text(" Session Stats ", style=f"bold {STYLE_BRAND}"),
            border_style="#3f3f50",
            expand=False,
            padding=(0, 1),
        ))

    def commands(self, commands: dict[str, str]) -> None:
        self._console.print()
        self._console.print(f"  [bold {STYLE_BRAND}]━━ Commands[/]")
        for name, desc in commands.items():
            self._console.print(f"    [{STYLE_TOOL_NAME}]{name:<14}[/] [{STYLE_TOOL_DETAIL}]{desc}[/]")
        self._console.print()
        self._console.print(f"  [bold {STYLE_BRAND}]━━ Keyboard shortcuts[/]")
        self._console.print(f"    [{STYLE_TOOL_NAME}]Ctrl+C[/]   [{STYLE_TOOL_DETAIL}]Interrupt the current response[/]")
        self._console.print(f"    [{STYLE_TOOL_NAME}]Ctrl+D[/]   [{STYLE_TOOL_DETAIL}]Exit[/]")
        self._console.print()

    def models(self, models: list[str], current: str) -> None:
        self._console.print()
        self._console.print(f"  [bold {STYLE_BRAND}]━━ Models[/]")
        for model_id in models:
            if model_id == current:
                self._console.print(f"    [{STYLE_TOOL_OK}]● {model_id}[/]")
            else:
                self._console.print(f"    [{STYLE_TOOL_DETAIL}]○ {model_id}[/]")
        self._console.print()
