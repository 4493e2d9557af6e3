"""
Anthropic Review Client.
Requests narrative cache reviews from Claude models.
"""

from typing import Any

from anthropic import AsyncAnthropic

from .provider import LLMProvider, schema_instruction, parse_json_response
from ..core.config import settings
from ..core.errors import ConfigurationError


# Messages API has no JSON mode; the reply is steered to a bare object
JSON_ONLY_SUFFIX = "\nStart your response with { and end with }"


class AnthropicClient(LLMProvider):
    """Messages API with the review schema carried in the system prompt."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout_s: float = 60.0,
        max_tokens: int = 2048
    ):
        """
        Args:
            api_key: Falls back to CACHESCOUT_ANTHROPIC_API_KEY
            model: Falls back to CACHESCOUT_ANTHROPIC_MODEL
            timeout_s: Per-review request timeout
            max_tokens: Reply length cap

        Raises:
            ConfigurationError: If no API key is available
        """
        key = api_key or settings.anthropic_api_key
        if not key:
            raise ConfigurationError("Anthropic API key not configured")

        self._model = model or settings.anthropic_model
        self.max_tokens = max_tokens
        self.client = AsyncAnthropic(api_key=key, timeout=timeout_s)

    @property
    def model_name(self) -> str:
        return self._model

    async def invoke_with_structured_output(
        self,
        prompt: str,
        output_schema: dict[str, Any],
        system_prompt: str | None = None,
        temperature: float = 0.2,
    ) -> dict[str, Any]:
        message = await self.client.messages.create(
            model=self._model,
            system=schema_instruction(system_prompt, output_schema) + JSON_ONLY_SUFFIX,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=self.max_tokens,
            temperature=temperature,
        )
        text = "".join(block.text for block in message.content if block.type == "text")
        return parse_json_response(text)
