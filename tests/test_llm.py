"""
tests/test_llm.py

Provider selection and tolerant JSON parsing of model replies. No network
calls are made.
"""

from __future__ import annotations

import pytest

from cachescout.core.config import settings
from cachescout.core.errors import ConfigurationError
from cachescout.llm import get_llm_provider, parse_json_response
from cachescout.llm.provider import schema_instruction


class TestParseJsonResponse:
    def test_plain_object(self) -> None:
        assert parse_json_response('{"issues": []}') == {"issues": []}

    def test_code_fence(self) -> None:
        reply = '```json\n{"recommendations": [{"title": "Enable page cache", "priority": 1}]}\n```'
        assert parse_json_response(reply)["recommendations"][0]["priority"] == 1

    def test_unterminated_fence(self) -> None:
        assert parse_json_response('```json\n{"a": 1}') == {"a": 1}

    def test_object_embedded_in_prose(self) -> None:
        assert parse_json_response('Here is the review: {"a": {"b": 2}} Thanks.') == {"a": {"b": 2}}

    def test_unrecoverable(self) -> None:
        with pytest.raises(ValueError, match="Failed to parse JSON response"):
            parse_json_response("no json here")


class TestSchemaInstruction:
    def test_includes_schema_and_prompt(self) -> None:
        text = schema_instruction("You review WordPress caching.", {"type": "object"})
        assert text.startswith("You review WordPress caching.")
        assert '"type": "object"' in text

    def test_without_system_prompt(self) -> None:
        assert schema_instruction(None, {}).startswith("You MUST respond with valid JSON")


class TestGetProvider:
    def test_unknown_provider(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown LLM provider: mistral"):
            get_llm_provider("mistral")

    def test_missing_openai_key(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "openai_api_key", "")
        with pytest.raises(ConfigurationError, match="OpenAI API key not configured"):
            get_llm_provider("openai")

    def test_missing_anthropic_key(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "anthropic_api_key", "")
        with pytest.raises(ConfigurationError, match="Anthropic API key not configured"):
            get_llm_provider("anthropic")

    def test_configured_openai(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "openai_api_key", "sk-test")
        monkeypatch.setattr(settings, "openai_model", "gpt-4o-mini")

        provider = get_llm_provider("openai")

        assert provider.model_name == "gpt-4o-mini"

    def test_defaults_to_settings(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "llm_provider", "anthropic")
        monkeypatch.setattr(settings, "anthropic_api_key", "sk-ant-test")

        assert get_llm_provider().model_name == settings.anthropic_model
