"""文本生成后端 - 不同LLM提供商的统一调用接口"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from ..exceptions import BackendRequestError
from ..utils.config import LLMProvider, Settings
from ..utils.logger import get_logger

logger = get_logger(__name__)


class TextBackend(ABC):
    """文本生成能力接口

    子类负责各提供商的客户端初始化与请求格式。
    `json_schema` 非空时要求后端以JSON模式返回。
    """

    provider: LLMProvider

    def __init__(self, settings: Settings):
        self.settings = settings
        self._client = None

    def _get_client(self):
        """延迟初始化客户端；缺少API密钥时抛出 ConfigurationError"""
        if self._client is None:
            api_key = self.settings.require_api_key(self.provider)
            self._client = self._create_client(api_key)
        return self._client

    @abstractmethod
    def _create_client(self, api_key: str):
        ...

    @abstractmethod
    async def _request(
        self,
        client,
        prompt: str,
        model: str,
        system: Optional[str],
        json_schema: Optional[dict[str, Any]],
    ) -> Optional[str]:
        ...

    async def complete(
        self,
        prompt: str,
        model: Optional[str] = None,
        system: Optional[str] = None,
        json_schema: Optional[dict[str, Any]] = None,
    ) -> str:
        """发送一次请求，返回文本（可能为空字符串）"""
        client = self._get_client()
        model = model or self.default_model
        logger.debug("%s request: model=%s json=%s", self.provider.value, model, bool(json_schema))
        try:
            text = await self._request(client, prompt, model, system, json_schema)
        except Exception as e:
            raise BackendRequestError(f"{self.provider.value} request failed: {e}") from e
        return (text or "").strip()


class OpenAITextBackend(TextBackend):
    """OpenAI Chat Completions"""

    provider = LLMProvider.OPENAI

    @property
    def default_model(self) -> str:
        return self.settings.openai_model

    def _base_url(self) -> str:
        return self.settings.get_openai_base_url()

    def _create_client(self, api_key: str):
        from openai import AsyncOpenAI

        return AsyncOpenAI(
            api_key=api_key,
            base_url=self._base_url(),
            timeout=self.settings.request_timeout,
        )

    async def _request(self, client, prompt, model, system, json_schema):
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        kwargs = {}
        if json_schema:
            kwargs["response_format"] = {"type": "json_object"}

        response = await client.chat.completions.create(
            model=model,
            max_completion_tokens=self.settings.max_tokens,
            messages=messages,
            **kwargs,
        )
        if not response.choices:
            return None
        return response.choices[0].message.content


class GrokTextBackend(OpenAITextBackend):
    """xAI Grok（兼容OpenAI协议）"""

    provider = LLMProvider.GROK

    @property
    def default_model(self) -> str:
        return self.settings.grok_model

    def _base_url(self) -> str:
        return self.settings.xai_base_url.rstrip("/")


class AnthropicTextBackend(TextBackend):
    """Anthropic Messages API

    没有原生JSON模式，依靠 system 指令加调用方解析。
    """

    provider = LLMProvider.ANTHROPIC

    @property
    def default_model(self) -> str:
        return self.settings.anthropic_model

    def _create_client(self, api_key: str):
        from anthropic import AsyncAnthropic

        return AsyncAnthropic(api_key=api_key, timeout=self.settings.request_timeout)

    async def _request(self, client, prompt, model, system, json_schema):
        kwargs = {}
        if system:
            kwargs["system"] = system
        response = await client.messages.create(
            model=model,
            max_tokens=self.settings.max_tokens,
            messages=[{"role": "user", "content": prompt}],
            **kwargs,
        )
        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )


class GeminiTextBackend(TextBackend):
    """Google Gemini（google-genai SDK）"""

    provider = LLMProvider.GEMINI

    @property
    def default_model(self) -> str:
        return self.settings.gemini_model

    def _create_client(self, api_key: str):
        from google import genai
        from google.genai import types

        return genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(self.settings.request_timeout * 1000)),
        )

    async def _request(self, client, prompt, model, system, json_schema):
        from google.genai import types

        config = types.GenerateContentConfig(
            system_instruction=system,
            max_output_tokens=self.settings.max_tokens,
        )
        if json_schema:
            config.response_mime_type = "application/json"
            config.response_schema = json_schema

        response = await client.aio.models.generate_content(
            model=model,
            contents=prompt,
            config=config,
        )
        text = _gemini_response_text(response)
        if not text:
            # 内容被安全策略拦截时 text 为空
            logger.warning("Gemini returned no text (possibly blocked for safety reasons)")
        return text


def _gemini_response_text(response) -> Optional[str]:
    """读取 response.text，失败时回退到第一个候选的第一段"""
    try:
        text = response.text
    except (ValueError, AttributeError):
        text = None
    if text:
        return text
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            if getattr(part, "text", None):
                return part.text
    return None


_BACKENDS: dict[LLMProvider, type[TextBackend]] = {
    LLMProvider.OPENAI: OpenAITextBackend,
    LLMProvider.GROK: GrokTextBackend,
    LLMProvider.ANTHROPIC: AnthropicTextBackend,
    LLMProvider.GEMINI: GeminiTextBackend,
}


_MODEL_PREFIXES = {
    "gpt": LLMProvider.OPENAI,
    "o1": LLMProvider.OPENAI,
    "o3": LLMProvider.OPENAI,
    "o4": LLMProvider.OPENAI,
    "claude": LLMProvider.ANTHROPIC,
    "gemini": LLMProvider.GEMINI,
    "grok": LLMProvider.GROK,
}


def provider_for_model(text_model: str) -> Optional[LLMProvider]:
    """根据模型名推断文本提供商，无法判断时返回 None"""
    name = text_model.lower()
    for prefix, provider in _MODEL_PREFIXES.items():
        if name.startswith(prefix):
            return provider
    return None


def create_text_backend(
    settings: Settings,
    provider: Optional[LLMProvider] = None,
    text_model: str = "",
) -> TextBackend:
    """按模型名或配置选择文本后端"""
    provider = provider or provider_for_model(text_model) or settings.text_provider
    backend_cls = _BACKENDS.get(provider)
    if backend_cls is None:
        raise ValueError(f"不支持的LLM提供商: {provider}")
    return backend_cls(settings)

