"""Basic text output for plain terminals and pipes."""

from __future__ import annotations

import sys
from typing import Any, TextIO

from cobot.core.stats import SessionStats
from cobot.permissions.approval import describe_tool_call
from cobot.types.tools import ToolResult

BANNER = """\
┏━╸┏━┓┏┓ ┏━┓╺┳╸
┃  ┃ ┃┣┻┓┃ ┃ ┃
┗━╸┗━┛┗━┛┗━┛ ╹
"""


class PlainPrinter:
    """Writes the answer to stdout and everything else to stderr."""

    def __init__(self, out: TextIO | None = None, err: TextIO | None = None) -> None:
        self._out = out or sys.stdout
        self._err = err or sys.stderr
        self.show_reasoning = False

    def banner(self, model: str, cwd: str) -> None:
        print(BANNER, file=self._err)
        print(f"  {model}  |  {cwd}", file=self._err)
        print("  Type what you need, or /help for commands.\n", file=self._err)

    def tool_start(self, name: str, args: dict[str, Any]) -> None:
        detail = describe_tool_call(name, args)
        print(f"[Tool: {name}] {detail}".rstrip(), file=self._err)

    def tool_end(self, name: str, result: ToolResult) -> None:
        if result.success:
            if result.message:
                print(f"  {result.message}", file=self._err)
        else:
            print(f"[Error] {(result.error or '')[:200]}", file=self._err)

    def thinking(self, content: str, reasoning: str | None) -> None:
        if reasoning and self.show_reasoning:
            print(f"(reasoning) {reasoning}", file=self._err)
        if content:
            print(content, file=self._err)

    def final(self, content: str, reasoning: str | None) -> None:
        if reasoning and self.show_reasoning:
            print(f"(reasoning) {reasoning}", file=self._err)
        print(content, file=self._out)
        self._out.flush()

    def info(self, text: str) -> None:
        print(f"  {text}", file=self._err)

    def error(self, text: str) -> None:
        print(f"Error: {text}", file=self._err)

    def stats(self, stats: SessionStats) -> None:
        print(" | ".join(f"{label}: {value}" for label, value in stats.rows()), file=self._err)

    def commands(self, commands: dict[str, str]) -> None:
        print("Available Commands:", file=self._err)
        for name, desc in commands.items():
            print(f"  {name:<14} {desc}", file=self._err)

    def models(self, models: list[str], current: str) -> None:
        print("Available Models:", file=self._err)
        for model_id in models:
            marker = "*" if model_id == current else " "
            print(f"  {marker} {model_id}", file=self._err)
