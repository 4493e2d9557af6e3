"""
OpenAI Review Client.
Requests narrative cache reviews from GPT models in JSON mode.
"""

from typing import Any

from openai import AsyncOpenAI

from .provider import LLMProvider, schema_instruction, parse_json_response
from ..core.config import settings
from ..core.errors import ConfigurationError


class OpenAIClient(LLMProvider):
    """Chat Completions with `response_format={"type": "json_object"}`."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout_s: float = 60.0,
        max_tokens: int = 2048
    ):
        """
        Args:
            api_key: Falls back to CACHESCOUT_OPENAI_API_KEY
            model: Falls back to CACHESCOUT_OPENAI_MODEL
            timeout_s: Per-review request timeout
            max_tokens: Reply length cap

        Raises:
            ConfigurationError: If no API key is available
        """
        key = api_key or settings.openai_api_key
        if not key:
            raise ConfigurationError("OpenAI API key not configured")

        self._model = model or settings.openai_model
        self.max_tokens = max_tokens
        self.client = AsyncOpenAI(api_key=key, timeout=timeout_s)

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
        completion = await self.client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": schema_instruction(system_prompt, output_schema)},
                {"role": "user", "content": prompt},
            ],
            temperature=temperature,
            max_tokens=self.max_tokens,
            response_format={"type": "json_object"},
        )
        return parse_json_response(completion.choices[0].message.content or "{}")
