"""工具模块 - 配置与日志"""

from .config import ImageProvider, Language, LLMProvider, Settings, get_settings
from .logger import get_logger, setup_logging

__all__ = [
    "ImageProvider",
    "Language",
    "LLMProvider",
    "Settings",
    "get_settings",
    "get_logger",
    "setup_logging",
]
