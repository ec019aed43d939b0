"""execute_command: runs a shell command or Python snippet."""

from __future__ import annotations

import asyncio
import logging
import sys

from cobot.tools.base import BaseTool
from cobot.types.tools import ToolContext, ToolDef, ToolParam, ToolResult

logger = logging.getLogger(__name__)

COMMAND_TYPES: tuple[str, ...] = ("bash", "python", "setup", "run")

_DEFAULT_TIMEOUT_S = 30
_MAX_TIMEOUT_S = 300
_MAX_OUTPUT_CHARS = 30_000

_DEFINITION = ToolDef(
    name="execute_command",
    description=(
        "Run shell commands, scripts, or code. SAFETY WARNING: Only use for commands that "
        "COMPLETE and EXIT (test scripts, build commands, short-running scripts). NEVER use "
        "for commands that run indefinitely (flask server, node app starting, "
        "python -m http.server, etc.). Always prefer short-running commands that exit. "
        'Example: {"command": "npm test", "command_type": "bash"}'
    ),
    parameters=(
        ToolParam(
            name="command",
            type="string",
            description=(
                "Shell command to execute. Only use commands that exit/stop automatically. "
                'Examples: "python my_script.py", "npm test", "ls -la". '
                'Avoid: long-running commands, "npm start" (starts servers), etc.'
            ),
        ),
        ToolParam(
            name="command_type",
            type="string",
            description=(
                "Command type: bash (shell), python (script), setup (auto-run), "
                "run (needs approval)"
            ),
            enum=COMMAND_TYPES,
        ),
        ToolParam(
            name="working_directory",
            type="string",
            description="Directory to run command in (optional)",
            required=False,
        ),
        ToolParam(
            name="timeout",
            type="integer",
            description="Max execution time in seconds (1-300)",
            required=False,
            default=_DEFAULT_TIMEOUT_S,
        ),
    ),
)


def _truncate(text: str) -> str:
    if len(text) > _MAX_OUTPUT_CHARS:
        cut = len(text) - _MAX_OUTPUT_CHARS
        return text[:_MAX_OUTPUT_CHARS] + f"\n[...{cut} characters truncated]"
    return text


class ExecuteCommandTool(BaseTool):
    """Runs a command to completion and reports stdout and stderr."""

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def run(
        self,
        ctx: ToolContext,
        command: str,
        command_type: str,
        working_directory: str | None = None,
        timeout: int | None = None,
    ) -> ToolResult:
        if command_type not in COMMAND_TYPES:
            return self._error("Error: Invalid command_type")

        cwd = ctx.cwd
        if working_directory:
            cwd = ctx.resolve(working_directory)
            if not cwd.is_dir():
                return self._error("Error: Working directory not found")

        try:
            timeout_s = int(timeout) if timeout is not None else _DEFAULT_TIMEOUT_S
        except (TypeError, ValueError):
            timeout_s = _DEFAULT_TIMEOUT_S
        timeout_s = max(1, min(timeout_s, _MAX_TIMEOUT_S))

        try:
            if command_type == "python":
                proc = await asyncio.create_subprocess_exec(
                    sys.executable, "-c", command,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    cwd=str(cwd),
                )
            else:
                proc = await asyncio.create_subprocess_shell(
                    command,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    cwd=str(cwd),
                )
        except OSError as exc:
            logger.debug("failed to start %r: %s", command, exc)
            return self._error("Error: Failed to execute command")

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                proc.communicate(), timeout=timeout_s,
            )
        except TimeoutError:
            try:
                proc.kill()
                await proc.wait()
            except ProcessLookupError:
                pass
            return self._error("Error: Command timed out")

        stdout = _truncate(stdout_bytes.decode("utf-8", errors="replace"))
        stderr = _truncate(stderr_bytes.decode("utf-8", errors="replace"))
        output = f"stdout: {stdout}\nstderr: {stderr}"

        if proc.returncode:
            return ToolResult.fail(
                f"Error: Command failed with exit code {proc.returncode}",
                message=output,
            )
        return self._ok(output, "Command executed successfully")
