"""Line input shared by the REPL prompt and the approval prompts."""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Callable

logger = logging.getLogger(__name__)


class LineReader:
    """Reads stdin lines in a worker thread, at most one read at a time.

    ``input()`` in a thread cannot be cancelled. When the task awaiting a
    line is cancelled (an interrupted approval prompt, say) the read stays
    pending and the next :meth:`readline` call receives its line, so nothing
    the user types is thrown away and no second reader competes for stdin.
    """

    def __init__(self, read_line: Callable[[str], str] | None = None) -> None:
        self._read_line = read_line
        self._pending: asyncio.Future[str] | None = None
        self._pending_prompt = ""

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def _read(self, prompt: str) -> str:
        if self._read_line is not None:
            return self._read_line(prompt)
        return input(prompt)

    async def readline(self, prompt: str = "") -> str:
        """Return the next line, raising ``EOFError`` at end of input."""
        if self._pending is None:
            loop = asyncio.get_running_loop()
            self._pending = loop.run_in_executor(None, self._read, prompt)
            self._pending_prompt = prompt
        elif prompt and prompt != self._pending_prompt:
            # The blocked read showed an older prompt.
            sys.stdout.write(prompt)
            sys.stdout.flush()
            self._pending_prompt = prompt

        pending = self._pending
        try:
            line = await asyncio.shield(pending)
        except asyncio.CancelledError:
            logger.debug("line read left pending for the next reader")
            raise
        except BaseException:
            self._pending = None
            raise
        self._pending = None
        return line
