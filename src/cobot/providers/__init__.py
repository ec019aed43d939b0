"""Provider adapters for chat-completion endpoints."""

from cobot.providers.base import ApiErrorInfo, BaseProvider, describe_api_error, is_abort_error
from cobot.providers.openai import OpenAIProvider

__all__ = [
    "ApiErrorInfo",
    "BaseProvider",
    "OpenAIProvider",
    "describe_api_error",
    "is_abort_error",
]
