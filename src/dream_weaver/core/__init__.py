"""核心模块 - 数据模型与生成编排

编排器位于 core.generator，它依赖 services 层，因此不在这里导入。
"""

from .models import (
    AppState,
    GenerationContext,
    GenerationProgress,
    ImageResource,
    StoryPage,
    StoryParams,
    StoryStructure,
)

__all__ = [
    "AppState",
    "GenerationContext",
    "GenerationProgress",
    "ImageResource",
    "StoryPage",
    "StoryParams",
    "StoryStructure",
]
