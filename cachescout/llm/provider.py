"""
LLM Provider Interface.
The one call the narrative reviewer needs: a prompt in, a JSON object out.
"""

import json
import re
from abc import ABC, abstractmethod
from typing import Any

from ..core.config import settings
from ..core.errors import ConfigurationError


class LLMProvider(ABC):
    """A model that answers a review prompt with a JSON object."""

    @abstractmethod
    async def invoke_with_structured_output(
        self,
        prompt: str,
        output_schema: dict[str, Any],
        system_prompt: str | None = None,
        temperature: float = 0.2,
    ) -> dict[str, Any]:
        """
        Ask for a reply shaped by `output_schema`.

        Args:
            prompt: Page facts to review
            output_schema: JSON schema the reply must follow
            system_prompt: Reviewer instructions
            temperature: Sampling temperature

        Returns:
            The decoded reply object

        Raises:
            ValueError: If the reply holds no JSON object
        """
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Model identifier, recorded on each review."""
        pass


def schema_instruction(system_prompt: str | None, output_schema: dict[str, Any]) -> str:
    return (
        f"{system_prompt or ''}\n\n"
        f"You MUST respond with valid JSON matching this schema:\n"
        f"```json\n{json.dumps(output_schema, indent=2)}\n```\n"
        f"Do not include any text outside the JSON object."
    ).strip()


def parse_json_response(content: str) -> dict[str, Any]:
    """
    Parse a JSON object out of a model reply, tolerating code fences.

    Raises:
        ValueError: If no JSON object can be recovered
    """
    content = content.strip()
    if content.startswith("```"):
        lines = content.split("\n")
        content = "\n".join(lines[1:-1] if lines[-1].strip() == "```" else lines[1:])

    try:
        return json.loads(content)
    except json.JSONDecodeError:
        match = re.search(r"\{[\s\S]*\}", content)
        if match:
            return json.loads(match.group())
        raise ValueError(f"Failed to parse JSON response: {content[:200]}")


def get_llm_provider(provider: str | None = None) -> LLMProvider:
    """
    Build the review client for a provider.

    Args:
        provider: "openai" or "anthropic"; CACHESCOUT_LLM_PROVIDER when omitted

    Raises:
        ConfigurationError: Unknown provider or missing API key
    """
    provider = provider or settings.llm_provider

    if provider == "openai":
        from .openai_client import OpenAIClient
        return OpenAIClient()
    elif provider == "anthropic":
        from .anthropic_client import AnthropicClient
        return AnthropicClient()
    else:
        raise ConfigurationError(f"Unknown LLM provider: {provider}")
