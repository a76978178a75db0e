"""数据模型定义"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..utils.config import Language


class AppState(str, Enum):
    """应用状态（线性状态机）"""

    INPUT = "INPUT"
    GENERATING_STORY = "GENERATING_STORY"
    GENERATING_IMAGES = "GENERATING_IMAGES"
    READING = "READING"
    ERROR = "ERROR"


class StoryParams(BaseModel):
    """一次生成的输入参数（不可变）"""

    model_config = ConfigDict(frozen=True)

    character: str = Field(..., description="主角")
    story: str = Field(..., description="故事梗概")
    style: str = Field(default="Beatrix Potter (Aquarelle)", description="画风")
    text_model: str = Field(default="", description="文本模型，留空使用配置默认值")
    image_model: str = Field(default="", description="图像模型，留空使用配置默认值")
    page_count: int = Field(default=5, ge=3, le=10, description="页数")
    age: int = Field(default=5, ge=1, le=10, description="目标年龄")
    language: Language = Field(default=Language.FRENCH, description="故事语言")


class StoryPage(BaseModel):
    """绘本中的一页"""

    model_config = ConfigDict(populate_by_name=True)

    page_number: int = Field(..., alias="pageNumber", description="页码，从1开始")
    text: str = Field(..., description="故事文本，段落之间以换行分隔")
    image_prompt: str = Field(..., alias="imagePrompt", description="英文插图提示词")
    image_url: Optional[str] = Field(None, alias="imageUrl", description="data URI 或远程URL")

    @property
    def paragraphs(self) -> list[str]:
        return [p.strip() for p in self.text.split("\n") if p.strip()]


class StoryStructure(BaseModel):
    """生成的绘本"""

    title: str = Field(..., description="绘本标题")
    pages: list[StoryPage] = Field(default_factory=list, description="按页码排序的页面")

    def to_markdown(self) -> str:
        """导出为Markdown格式"""
        lines = [f"# {self.title}", ""]
        for page in self.pages:
            lines.extend([f"## Page {page.page_number}", ""])
            if page.image_url and not page.image_url.startswith("data:"):
                lines.extend([f"![Page {page.page_number}]({page.image_url})", ""])
            lines.extend(["\n\n".join(page.paragraphs), ""])
        return "\n".join(lines)


class ImageResource(BaseModel):
    """一张插图：内嵌的 data URI、远程URL，或生成失败时的占位图"""

    model_config = ConfigDict(frozen=True)

    url: str
    is_placeholder: bool = False


class GenerationProgress(BaseModel):
    """面向界面的进度状态，每一步之后覆盖"""

    current_step: str = ""
    completed_images: int = 0
    total_images: int = 0

    @property
    def fraction(self) -> float:
        if self.total_images <= 0:
            return 0.0
        return self.completed_images / self.total_images


class GenerationContext(BaseModel):
    """状态机上下文

    由编排器独占写入；查看器和导出器只读取 snapshot() 的结果。
    """

    state: AppState = AppState.INPUT
    book: Optional[StoryStructure] = None
    progress: GenerationProgress = Field(default_factory=GenerationProgress)
    error: Optional[str] = None

    def snapshot(self) -> "GenerationContext":
        return self.model_copy(deep=True)
