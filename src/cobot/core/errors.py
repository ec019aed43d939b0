"""Exceptions raised out of the agent loop."""

from __future__ import annotations


class AgentError(Exception):
    """Base class for errors surfaced to the caller of ``Agent.chat``."""


class AuthenticationError(AgentError):
    """The endpoint rejected the credentials (HTTP 401). Never retried."""


class MissingApiKeyError(AgentError):
    """No credential could be resolved from any source."""

    def __init__(self, message: str = "No API key available. Please use /login to set your OpenAI API key.") -> None:
        super().__init__(message)


class Interrupted(Exception):
    """A suspended wait was cancelled by ``Agent.interrupt()``."""
