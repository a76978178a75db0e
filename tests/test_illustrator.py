"""插图生成测试"""

import base64
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from dream_weaver.services.illustrator import (
    QUALITY_SUFFIX,
    GeminiImageGenerator,
    OpenAIImageGenerator,
    create_image_generator,
    enhance_prompt,
    provider_for_model,
    to_data_uri,
)
from dream_weaver.utils.config import ImageProvider, Settings

PLACEHOLDER_PREFIX = "https://picsum.photos/800/800?random="


@pytest.fixture
def settings():
    return Settings(
        image_provider=ImageProvider.OPENAI,
        openai_api_key="test-key",
        google_api_key="test-key",
    )


def _openai_client(data):
    client = MagicMock()
    client.images.generate = AsyncMock(return_value=SimpleNamespace(data=data))
    return client


def _gemini_client(parts):
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(
        return_value=SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))])
    )
    return client


class TestHelpers:
    def test_enhance_prompt(self):
        assert enhance_prompt("A giraffe") == "A giraffe" + QUALITY_SUFFIX

    def test_to_data_uri_from_bytes(self):
        assert to_data_uri(b"abc", "image/png") == "data:image/png;base64,YWJj"

    def test_to_data_uri_from_base64(self):
        assert to_data_uri("YWJj", "image/jpeg") == "data:image/jpeg;base64,YWJj"

    @pytest.mark.parametrize(
        "model, provider",
        [
            ("gpt-image-1", ImageProvider.OPENAI),
            ("dall-e-3", ImageProvider.OPENAI),
            ("imagen-4.0-generate-001", ImageProvider.GEMINI),
            ("gemini-2.5-flash-image", ImageProvider.GEMINI),
            ("stable-diffusion", None),
        ],
    )
    def test_provider_for_model(self, model, provider):
        assert provider_for_model(model) == provider

    def test_create_image_generator(self, settings):
        assert isinstance(create_image_generator(settings), OpenAIImageGenerator)
        assert isinstance(
            create_image_generator(settings, image_model="imagen-4.0-generate-001"),
            GeminiImageGenerator,
        )


class TestOpenAIImageGenerator:
    @pytest.mark.asyncio
    async def test_b64_result(self, settings):
        generator = OpenAIImageGenerator(settings)
        client = _openai_client([SimpleNamespace(b64_json="iVBORw0KGgo=", url=None)])
        with patch.object(generator, "_get_client", return_value=client):
            image = await generator.generate_image("A giraffe under the stars")

        assert image.url == "data:image/png;base64,iVBORw0KGgo="
        assert not image.is_placeholder
        kwargs = client.images.generate.call_args.kwargs
        assert kwargs["model"] == "gpt-image-1"
        assert kwargs["prompt"] == "A giraffe under the stars" + QUALITY_SUFFIX
        assert kwargs["size"] == "1024x1024"
        assert "response_format" not in kwargs

    @pytest.mark.asyncio
    async def test_dalle_requests_b64(self, settings):
        generator = OpenAIImageGenerator(settings)
        client = _openai_client([SimpleNamespace(b64_json="AAAA", url=None)])
        with patch.object(generator, "_get_client", return_value=client):
            await generator.generate_image("A giraffe", "dall-e-3")

        kwargs = client.images.generate.call_args.kwargs
        assert kwargs["model"] == "dall-e-3"
        assert kwargs["response_format"] == "b64_json"

    @pytest.mark.asyncio
    async def test_url_result(self, settings):
        generator = OpenAIImageGenerator(settings)
        client = _openai_client([SimpleNamespace(b64_json=None, url="https://cdn.example.com/a.png")])
        with patch.object(generator, "_get_client", return_value=client):
            image = await generator.generate_image("A giraffe")

        assert image.url == "https://cdn.example.com/a.png"

    @pytest.mark.asyncio
    async def test_empty_result_returns_placeholder(self, settings):
        generator = OpenAIImageGenerator(settings)
        with patch.object(generator, "_get_client", return_value=_openai_client([])):
            image = await generator.generate_image("A giraffe")

        assert image.is_placeholder
        assert image.url.startswith(PLACEHOLDER_PREFIX)

    @pytest.mark.asyncio
    async def test_request_error_returns_placeholder(self, settings):
        generator = OpenAIImageGenerator(settings)
        client = MagicMock()
        client.images.generate = AsyncMock(side_effect=RuntimeError("content policy"))
        with patch.object(generator, "_get_client", return_value=client):
            image = await generator.generate_image("A giraffe")

        assert image.is_placeholder

    @pytest.mark.asyncio
    async def test_missing_key_returns_placeholder(self):
        generator = OpenAIImageGenerator(Settings(openai_api_key=""))
        image = await generator.generate_image("A giraffe")
        assert image.is_placeholder
        assert image.url.startswith(PLACEHOLDER_PREFIX)


class TestGeminiImageGenerator:
    @pytest.mark.asyncio
    async def test_inline_image(self, settings):
        generator = GeminiImageGenerator(settings)
        client = _gemini_client(
            [
                SimpleNamespace(inline_data=None, text="Here is your picture."),
                SimpleNamespace(
                    inline_data=SimpleNamespace(data=b"\x89PNG", mime_type="image/png"), text=None
                ),
            ]
        )
        with patch.object(generator, "_get_client", return_value=client):
            image = await generator.generate_image("A giraffe")

        expected = base64.b64encode(b"\x89PNG").decode("ascii")
        assert image.url == f"data:image/png;base64,{expected}"
        assert client.aio.models.generate_content.call_args.kwargs["model"] == "gemini-2.5-flash-image"

    @pytest.mark.asyncio
    async def test_refusal_returns_placeholder(self, settings):
        generator = GeminiImageGenerator(settings)
        client = _gemini_client(
            [SimpleNamespace(inline_data=None, text="I can't draw that.")]
        )
        with patch.object(generator, "_get_client", return_value=client):
            image = await generator.generate_image("A giraffe")

        assert image.is_placeholder

    @pytest.mark.asyncio
    async def test_no_candidates_returns_placeholder(self, settings):
        generator = GeminiImageGenerator(settings)
        client = MagicMock()
        client.aio.models.generate_content = AsyncMock(return_value=SimpleNamespace(candidates=[]))
        with patch.object(generator, "_get_client", return_value=client):
            image = await generator.generate_image("A giraffe")

        assert image.is_placeholder

    @pytest.mark.asyncio
    async def test_imagen(self, settings):
        generator = GeminiImageGenerator(settings)
        client = MagicMock()
        client.aio.models.generate_images = AsyncMock(
            return_value=SimpleNamespace(
                generated_images=[SimpleNamespace(image=SimpleNamespace(image_bytes=b"jpg"))]
            )
        )
        with patch.object(generator, "_get_client", return_value=client):
            image = await generator.generate_image("A giraffe", "imagen-4.0-generate-001")

        assert image.url == "data:image/jpeg;base64,anBn"
        client.aio.models.generate_content.assert_not_called()
