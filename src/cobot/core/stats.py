"""Cumulative token usage for an interactive session."""

from __future__ import annotations

from dataclasses import dataclass

from cobot.types.messages import ApiUsage


def format_duration(seconds: float) -> str:
    """``850ms``, ``12.3s`` or ``2m 5.0s``."""
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, rest = divmod(seconds, 60)
    return f"{int(minutes)}m {rest:.1f}s"


@dataclass(slots=True)
class SessionStats:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    total_requests: int = 0
    total_time: float = 0.0

    def record(self, usage: ApiUsage) -> None:
        """Add one response's usage to the running totals."""
        self.prompt_tokens += usage.prompt_tokens
        self.completion_tokens += usage.completion_tokens
        self.total_tokens += usage.total_tokens
        self.total_requests += 1
        self.total_time += usage.total_time

    def reset(self) -> None:
        self.prompt_tokens = 0
        self.completion_tokens = 0
        self.total_tokens = 0
        self.total_requests = 0
        self.total_time = 0.0

    def rows(self) -> list[tuple[str, str]]:
        """Label/value pairs for display."""
        return [
            ("Requests", str(self.total_requests)),
            ("Response time", format_duration(self.total_time)),
            ("Input tokens", f"{self.prompt_tokens:,}"),
            ("Output tokens", f"{self.completion_tokens:,}"),
            ("Total tokens", f"{self.total_tokens:,}"),
        ]
