"""CLI entry point for cobot."""

from __future__ import annotations

import asyncio
import sys

import click

from cobot import __version__
from cobot.core.config import DEFAULT_MODEL


def _read_piped_stdin() -> str:
    if sys.stdin is None or sys.stdin.isatty():
        return ""
    try:
        return sys.stdin.read()
    except OSError:
        return ""


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, prog_name="cobot")
@click.option("--temperature", "-t", type=float, default=1.0, show_default=True,
              help="Temperature for generation")
@click.option("--model", "-m", default=DEFAULT_MODEL, show_default=True,
              help="AI model to use for generation")
@click.option("--system", "-s", default=None, help="Custom system message")
@click.option("--debug", "-d", is_flag=True,
              help="Enable debug logging to debug-agent.log in current directory")
@click.option("--prompt", "-p", default=None,
              help="Run in non-interactive mode with a predefined prompt")
@click.option("--rich/--no-rich", default=None, help="Rich terminal output (default: auto)")
def main(
    temperature: float,
    model: str,
    system: str | None,
    debug: bool,
    prompt: str | None,
    rich: bool | None,
) -> None:
    """cobot -- a coding and office-work assistant for OpenAI-compatible models.

    \b
    Usage:
      cobot                                  (interactive REPL)
      cobot -p "Summarize README.md"
      git diff | cobot -p "Review this change"
    """
    if debug:
        from cobot.core.debug import setup_debug_logging

        log_path = setup_debug_logging()
        click.echo(f"Debug logging to {log_path}", err=True)

    from cobot.core.agent import Agent

    if prompt is not None:
        stdin_text = _read_piped_stdin()
        full_prompt = f"{prompt}\n\n{stdin_text}" if stdin_text else prompt
        try:
            agent = Agent.create(model=model, temperature=temperature, system_prompt=system)
            asyncio.run(_run_prompt(agent, full_prompt))
        except Exception as exc:  # noqa: BLE001
            click.echo(f"Error running agent: {exc}", err=True)
            sys.exit(1)
        return

    use_rich = rich if rich is not None else sys.stderr.isatty()
    from cobot.cli.repl import Repl

    try:
        agent = Agent.create(model=model, temperature=temperature, system_prompt=system)
    except Exception as exc:  # noqa: BLE001
        click.echo(f"Error initializing agent: {exc}", err=True)
        sys.exit(1)
    asyncio.run(Repl(agent, use_rich=use_rich).run())


async def _run_prompt(agent, prompt: str) -> None:
    """Headless turn: approvals are refused and only the answer is printed."""
    from cobot.permissions.approval import CannedDecisions
    from cobot.types.callbacks import AgentCallbacks

    decisions = CannedDecisions()
    agent.set_callbacks(AgentCallbacks(
        on_tool_approval=decisions.request_approval,
        on_max_iterations=decisions.should_continue,
        on_final_message=lambda content, reasoning: click.echo(content),
    ))
    await agent.chat(prompt)


if __name__ == "__main__":
    main()
