"""LLM module - provider interface with OpenAI and Anthropic clients."""

from .provider import LLMProvider, get_llm_provider, parse_json_response

__all__ = [
    "LLMProvider",
    "get_llm_provider",
    "parse_json_response",
]
