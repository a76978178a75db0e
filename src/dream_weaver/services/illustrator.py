"""插图生成服务

任何失败（网络错误、空结果、模型拒绝）都在这一层被吸收并替换为占位图，
单张插图失败不会中断整本书的生成。
"""

import base64
import random
from abc import ABC, abstractmethod
from typing import Optional

from ..core.models import ImageResource
from ..exceptions import BackendRequestError, EmptyResultError
from ..utils.config import ImageProvider, Settings
from ..utils.logger import get_logger

logger = get_logger(__name__)

QUALITY_SUFFIX = (
    ". High quality, detailed, masterpiece. Exclude: text, words, signature, watermark, "
    "frame, border, humans, human hands, extra limbs, unnatural poses. "
    "Ensure anatomical correctness."
)


def enhance_prompt(image_prompt: str) -> str:
    return f"{image_prompt}{QUALITY_SUFFIX}"


def to_data_uri(data: bytes | str, mime_type: str) -> str:
    """把后端返回的图片数据转成 data URI

    SDK 可能返回原始字节，也可能返回已编码的 base64 字符串。
    """
    if isinstance(data, bytes):
        data = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{data}"


class ImageGenerator(ABC):
    """图像生成能力接口

    子类只需实现 `_generate`，返回 data URI 或远程URL；
    抛出的任何异常都由 `generate_image` 转换为占位图。
    """

    provider: ImageProvider

    def __init__(self, settings: Settings):
        self.settings = settings
        self._client = None

    def _get_client(self):
        if self._client is None:
            api_key = self.settings.require_api_key(self.provider)
            self._client = self._create_client(api_key)
        return self._client

    @abstractmethod
    def _create_client(self, api_key: str):
        ...

    @abstractmethod
    async def _generate(self, client, prompt: str, model: str) -> str:
        ...

    def placeholder(self) -> ImageResource:
        url = self.settings.placeholder_image_url.format(seed=random.randint(0, 10**9))
        return ImageResource(url=url, is_placeholder=True)

    async def generate_image(self, image_prompt: str, image_model: Optional[str] = None) -> ImageResource:
        """生成一张插图，从不抛出异常"""
        model = image_model or self.default_model
        try:
            client = self._get_client()
            url = await self._generate(client, enhance_prompt(image_prompt), model)
        except Exception as e:
            logger.error("Image generation failed (%s, %s): %s", self.provider.value, model, e)
            return self.placeholder()
        return ImageResource(url=url)


class OpenAIImageGenerator(ImageGenerator):
    """OpenAI 图像接口（文生图批量接口）"""

    provider = ImageProvider.OPENAI

    SIZE = "1024x1024"

    @property
    def default_model(self) -> str:
        return self.settings.openai_image_model

    def _create_client(self, api_key: str):
        from openai import AsyncOpenAI

        return AsyncOpenAI(
            api_key=api_key,
            base_url=self.settings.get_openai_base_url(),
            timeout=self.settings.request_timeout,
        )

    async def _generate(self, client, prompt, model):
        kwargs = {}
        # gpt-image 系列总是返回 b64_json，不接受 response_format 参数
        if not model.startswith("gpt-image"):
            kwargs["response_format"] = "b64_json"
        try:
            response = await client.images.generate(
                model=model,
                prompt=prompt,
                size=self.SIZE,
                n=1,
                **kwargs,
            )
        except Exception as e:
            raise BackendRequestError(f"OpenAI image request failed: {e}") from e

        first = response.data[0] if response.data else None
        if first is not None and first.b64_json:
            return to_data_uri(first.b64_json, "image/png")
        if first is not None and first.url:
            return first.url
        raise EmptyResultError("No image data found in response.")


class GeminiImageGenerator(ImageGenerator):
    """Google 图像生成

    - 模型名包含 "imagen": 使用 generate_images 批量接口
    - 其他模型（如 gemini-2.5-flash-image）: 使用多模态 generate_content，
      从返回的 parts 中寻找内嵌图片，文本 part 视为拒绝说明
    """

    provider = ImageProvider.GEMINI

    @property
    def default_model(self) -> str:
        return self.settings.gemini_image_model

    def _create_client(self, api_key: str):
        from google import genai
        from google.genai import types

        return genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(self.settings.request_timeout * 1000)),
        )

    async def _generate(self, client, prompt, model):
        if "imagen" in model:
            return await self._generate_imagen(client, prompt, model)
        return await self._generate_multimodal(client, prompt, model)

    async def _generate_imagen(self, client, prompt, model):
        from google.genai import types

        response = await client.aio.models.generate_images(
            model=model,
            prompt=prompt,
            config=types.GenerateImagesConfig(
                number_of_images=1,
                output_mime_type="image/jpeg",
                aspect_ratio="1:1",
            ),
        )
        generated = response.generated_images or []
        image = generated[0].image if generated else None
        if image is None or not image.image_bytes:
            raise EmptyResultError("No image data found in Imagen response.")
        return to_data_uri(image.image_bytes, "image/jpeg")

    async def _generate_multimodal(self, client, prompt, model):
        from google.genai import types

        response = await client.aio.models.generate_content(
            model=model,
            contents=types.Content(role="user", parts=[types.Part(text=prompt)]),
            config=types.GenerateContentConfig(
                response_modalities=["IMAGE", "TEXT"],
                image_config=types.ImageConfig(aspect_ratio="1:1"),
            ),
        )
        if not response.candidates:
            raise EmptyResultError("No response or candidates from Gemini image model")

        content = response.candidates[0].content
        if content is None or not content.parts:
            raise EmptyResultError("No content parts in image response.")

        refusal = ""
        for part in content.parts:
            if part.inline_data is not None and part.inline_data.data:
                mime_type = part.inline_data.mime_type or "image/png"
                return to_data_uri(part.inline_data.data, mime_type)
            if part.text:
                refusal += part.text

        if refusal:
            raise EmptyResultError(f"Gemini refused to generate image: {refusal}")
        raise EmptyResultError("No image data found in response.")


_GENERATORS: dict[ImageProvider, type[ImageGenerator]] = {
    ImageProvider.OPENAI: OpenAIImageGenerator,
    ImageProvider.GEMINI: GeminiImageGenerator,
}


def provider_for_model(image_model: str) -> Optional[ImageProvider]:
    """根据模型名推断图像提供商，无法判断时返回 None"""
    name = image_model.lower()
    if "imagen" in name or "gemini" in name:
        return ImageProvider.GEMINI
    if name.startswith(("gpt-image", "dall-e")):
        return ImageProvider.OPENAI
    return None


def create_image_generator(
    settings: Settings,
    provider: Optional[ImageProvider] = None,
    image_model: str = "",
) -> ImageGenerator:
    """按模型名或配置选择图像后端"""
    provider = provider or provider_for_model(image_model) or settings.image_provider
    generator_cls = _GENERATORS.get(provider)
    if generator_cls is None:
        raise ValueError(f"不支持的图像提供商: {provider}")
    return generator_cls(settings)
