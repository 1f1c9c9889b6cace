"""Upstream-facing abstractions for translation requests.

This package defines the provider protocol and concrete HTTP providers, the
global rate limiter and retrying client, prompt templates, and the response
payload parser.
"""

from .gemini_provider import GeminiProvider
from .openai_provider import OpenAIProvider
from .payload import extract_fenced_payload, parse_json_value
from .prompts import PromptLibrary
from .provider import UpstreamTextProvider
from .rate_limiter import RateLimiter
from .retrying_client import RateLimitedRetryingClient

__all__ = [
    "GeminiProvider",
    "OpenAIProvider",
    "PromptLibrary",
    "RateLimitedRetryingClient",
    "RateLimiter",
    "UpstreamTextProvider",
    "extract_fenced_payload",
    "parse_json_value",
]
