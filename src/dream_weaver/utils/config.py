"""配置管理"""

from enum import Enum
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from ..exceptions import ConfigurationError


class LLMProvider(str, Enum):
    """文本生成提供商"""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GEMINI = "gemini"
    GROK = "grok"


class ImageProvider(str, Enum):
    """图像生成提供商"""

    OPENAI = "openai"
    GEMINI = "gemini"


class Language(str, Enum):
    """故事文本支持的语言"""

    FRENCH = "fr"
    ENGLISH = "en"
    CHINESE = "zh"
    JAPANESE = "ja"
    KOREAN = "ko"


class Settings(BaseSettings):
    """应用配置

    从环境变量或.env文件加载配置
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Anthropic (Claude)
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"

    # OpenAI (ChatGPT / gpt-image)
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_image_model: str = "gpt-image-1"
    openai_base_url: str = "https://api.openai.com/v1"

    # Google (Gemini / Imagen)
    google_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    gemini_image_model: str = "gemini-2.5-flash-image"

    # xAI (Grok)
    xai_api_key: str = ""
    grok_model: str = "grok-2-latest"
    xai_base_url: str = "https://api.x.ai/v1"

    # 生成通用配置
    text_provider: LLMProvider = LLMProvider.OPENAI
    image_provider: ImageProvider = ImageProvider.OPENAI
    story_language: Language = Language.FRENCH
    max_tokens: int = 4096
    request_timeout: float = 120.0

    # 图片生成失败时使用的占位图
    placeholder_image_url: str = "https://picsum.photos/800/800?random={seed}"

    # 日志与输出
    log_level: str = "INFO"
    output_dir: str = "./output"

    def get_api_key(self, provider: LLMProvider | ImageProvider) -> str:
        """获取指定提供商的API密钥"""
        provider_keys = {
            "anthropic": self.anthropic_api_key,
            "openai": self.openai_api_key,
            "gemini": self.google_api_key,
            "grok": self.xai_api_key,
        }
        return provider_keys.get(provider.value, "")

    def require_api_key(self, provider: LLMProvider | ImageProvider) -> str:
        """获取API密钥，缺失时抛出配置错误（在任何网络请求之前）"""
        api_key = self.get_api_key(provider)
        if not api_key:
            env_names = {
                "anthropic": "ANTHROPIC_API_KEY",
                "openai": "OPENAI_API_KEY",
                "gemini": "GOOGLE_API_KEY",
                "grok": "XAI_API_KEY",
            }
            raise ConfigurationError(
                f"{env_names[provider.value]} is not defined in the environment."
            )
        return api_key

    def get_text_model(self) -> str:
        """获取当前文本提供商的默认模型"""
        provider_models = {
            LLMProvider.ANTHROPIC: self.anthropic_model,
            LLMProvider.OPENAI: self.openai_model,
            LLMProvider.GEMINI: self.gemini_model,
            LLMProvider.GROK: self.grok_model,
        }
        return provider_models.get(self.text_provider, "")

    def get_image_model(self) -> str:
        """获取当前图像提供商的默认模型"""
        if self.image_provider == ImageProvider.GEMINI:
            return self.gemini_image_model
        return self.openai_image_model

    def get_openai_base_url(self) -> str:
        return self.openai_base_url.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """获取配置单例"""
    return Settings()
