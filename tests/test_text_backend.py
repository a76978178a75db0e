"""文本后端测试"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from dream_weaver.exceptions import BackendRequestError, ConfigurationError
from dream_weaver.services.text_backend import (
    AnthropicTextBackend,
    GeminiTextBackend,
    GrokTextBackend,
    OpenAITextBackend,
    _gemini_response_text,
    create_text_backend,
    provider_for_model,
)
from dream_weaver.utils.config import LLMProvider, Settings


@pytest.fixture
def settings():
    return Settings(
        text_provider=LLMProvider.OPENAI,
        openai_api_key="test-key",
        anthropic_api_key="test-key",
        google_api_key="test-key",
        xai_api_key="test-key",
    )


def _openai_client(content):
    client = MagicMock()
    client.chat.completions.create = AsyncMock(
        return_value=SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
        )
    )
    return client


class TestProviderForModel:
    @pytest.mark.parametrize(
        "model, provider",
        [
            ("gpt-4o-mini", LLMProvider.OPENAI),
            ("o3-mini", LLMProvider.OPENAI),
            ("claude-sonnet-4-20250514", LLMProvider.ANTHROPIC),
            ("gemini-2.5-flash", LLMProvider.GEMINI),
            ("grok-2-latest", LLMProvider.GROK),
        ],
    )
    def test_known_prefixes(self, model, provider):
        assert provider_for_model(model) == provider

    def test_unknown_model(self):
        assert provider_for_model("mistral-large") is None
        assert provider_for_model("") is None


class TestCreateTextBackend:
    def test_defaults_to_configured_provider(self, settings):
        assert isinstance(create_text_backend(settings), OpenAITextBackend)

    def test_model_name_wins_over_settings(self, settings):
        assert isinstance(
            create_text_backend(settings, text_model="claude-3-5-haiku-latest"),
            AnthropicTextBackend,
        )
        assert isinstance(create_text_backend(settings, text_model="gemini-2.5-pro"), GeminiTextBackend)
        assert isinstance(create_text_backend(settings, text_model="grok-3"), GrokTextBackend)

    def test_explicit_provider(self, settings):
        backend = create_text_backend(settings, provider=LLMProvider.GROK)
        assert backend.provider == LLMProvider.GROK


class TestOpenAITextBackend:
    @pytest.mark.asyncio
    async def test_complete_strips_text(self, settings):
        backend = OpenAITextBackend(settings)
        client = _openai_client("  Bonjour  \n")
        with patch.object(backend, "_get_client", return_value=client):
            text = await backend.complete("prompt", system="sys")

        assert text == "Bonjour"
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == settings.openai_model
        assert kwargs["messages"][0] == {"role": "system", "content": "sys"}
        assert "response_format" not in kwargs

    @pytest.mark.asyncio
    async def test_json_mode(self, settings):
        backend = OpenAITextBackend(settings)
        client = _openai_client('{"title": "T"}')
        with patch.object(backend, "_get_client", return_value=client):
            await backend.complete("prompt", model="gpt-4o", json_schema={"type": "OBJECT"})

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["response_format"] == {"type": "json_object"}

    @pytest.mark.asyncio
    async def test_none_content_becomes_empty_string(self, settings):
        backend = OpenAITextBackend(settings)
        with patch.object(backend, "_get_client", return_value=_openai_client(None)):
            assert await backend.complete("prompt") == ""

    @pytest.mark.asyncio
    async def test_request_error_is_wrapped(self, settings):
        backend = OpenAITextBackend(settings)
        client = MagicMock()
        client.chat.completions.create = AsyncMock(side_effect=RuntimeError("503"))
        with patch.object(backend, "_get_client", return_value=client):
            with pytest.raises(BackendRequestError, match="503"):
                await backend.complete("prompt")

    @pytest.mark.asyncio
    async def test_missing_key_raises_configuration_error(self):
        backend = OpenAITextBackend(Settings(openai_api_key=""))
        with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
            await backend.complete("prompt")


class TestAnthropicTextBackend:
    @pytest.mark.asyncio
    async def test_joins_text_blocks(self, settings):
        backend = AnthropicTextBackend(settings)
        client = MagicMock()
        client.messages.create = AsyncMock(
            return_value=SimpleNamespace(
                content=[
                    SimpleNamespace(type="text", text="Il était "),
                    SimpleNamespace(type="tool_use", text="ignored"),
                    SimpleNamespace(type="text", text="une fois"),
                ]
            )
        )
        with patch.object(backend, "_get_client", return_value=client):
            text = await backend.complete("prompt", system="sys")

        assert text == "Il était une fois"
        assert client.messages.create.call_args.kwargs["system"] == "sys"


class TestGeminiResponseText:
    def test_prefers_text(self):
        assert _gemini_response_text(SimpleNamespace(text="hello", candidates=[])) == "hello"

    def test_falls_back_to_candidate_parts(self):
        response = SimpleNamespace(
            text=None,
            candidates=[
                SimpleNamespace(
                    content=SimpleNamespace(parts=[SimpleNamespace(text=None), SimpleNamespace(text="part")])
                )
            ],
        )
        assert _gemini_response_text(response) == "part"

    def test_blocked_response(self):
        assert _gemini_response_text(SimpleNamespace(text=None, candidates=None)) is None


class TestGeminiTextBackend:
    @pytest.mark.asyncio
    async def test_complete(self, settings):
        backend = GeminiTextBackend(settings)
        client = MagicMock()
        client.aio.models.generate_content = AsyncMock(
            return_value=SimpleNamespace(text=" Une idée ", candidates=[])
        )
        with patch.object(backend, "_get_client", return_value=client):
            text = await backend.complete("prompt", system="sys")

        assert text == "Une idée"
        kwargs = client.aio.models.generate_content.call_args.kwargs
        assert kwargs["model"] == settings.gemini_model
        assert kwargs["contents"] == "prompt"
        assert kwargs["config"].max_output_tokens == settings.max_tokens
