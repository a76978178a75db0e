"""故事文本生成服务 - 生成标题、逐页文本和插图提示词"""

import json
from typing import Optional

from pydantic import ValidationError

from ..core.labels import get_labels
from ..core.models import StoryPage, StoryStructure
from ..exceptions import DreamWeaverError, EmptyResultError, MalformedResponseError
from ..prompts import load_prompt, render_prompt
from ..utils.config import Language
from ..utils.logger import get_logger
from .text_backend import TextBackend

logger = get_logger(__name__)

# Gemini 结构化输出使用的 schema
STORY_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "title": {"type": "STRING"},
        "pages": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "pageNumber": {"type": "INTEGER"},
                    "text": {"type": "STRING"},
                    "imagePrompt": {"type": "STRING"},
                },
                "required": ["pageNumber", "text", "imagePrompt"],
            },
        },
    },
    "required": ["title", "pages"],
}


class StoryWriterService:
    """故事文本生成服务

    一次LLM调用生成整本书的结构化内容:
    - 标题
    - 每页故事文本（目标语言）
    - 每页英文插图提示词（包含角色外观描述与画风）

    生成失败会直接抛出，由编排器切换到 ERROR 状态，不做重试。
    """

    LANGUAGE_NAMES = {
        Language.FRENCH: "French (Français)",
        Language.ENGLISH: "English",
        Language.CHINESE: "Simplified Chinese (简体中文)",
        Language.JAPANESE: "Japanese (日本語)",
        Language.KOREAN: "Korean (한국어)",
    }

    def __init__(self, backend: TextBackend):
        self.backend = backend

    def _get_language_name(self, language: Language) -> str:
        return self.LANGUAGE_NAMES.get(language, "French (Français)")

    @staticmethod
    def _age_band(age: int) -> str:
        if age <= 3:
            return "1-3 years"
        if age <= 6:
            return "4-6 years"
        return "7-10 years"

    def build_story_prompt(
        self,
        character: str,
        premise: str,
        style: str,
        page_count: int,
        age: int,
        character_signature: str,
        language: Language,
    ) -> str:
        return render_prompt(
            "story",
            character=character,
            premise=premise,
            style=style,
            page_count=page_count,
            age=age,
            age_band=self._age_band(age),
            signature=character_signature or character,
            language_name=self._get_language_name(language),
        )

    async def generate_story(
        self,
        character: str,
        premise: str,
        style: str,
        page_count: int,
        age: int,
        text_model: Optional[str] = None,
        character_signature: str = "",
        language: Language = Language.FRENCH,
    ) -> StoryStructure:
        """生成故事结构

        Raises:
            EmptyResultError: 后端没有返回文本，或没有页面
            MalformedResponseError: 返回内容不是预期的JSON结构，或页数不足
            BackendRequestError: 请求失败
        """
        prompt = self.build_story_prompt(
            character, premise, style, page_count, age, character_signature, language
        )
        text = await self.backend.complete(
            prompt,
            model=text_model or None,
            system=load_prompt("story_system"),
            json_schema=STORY_SCHEMA,
        )
        if not text:
            raise EmptyResultError("empty response")

        return parse_story(text, page_count)

    async def suggest_story_idea(
        self,
        character: str,
        theme: str,
        age: int,
        language: Language = Language.FRENCH,
        text_model: Optional[str] = None,
    ) -> str:
        """为表单生成一句故事梗概，失败时返回固定的默认梗概"""
        character_clause = (
            f'featuring "{character.strip()}"' if character.strip() else "with a cute animal character"
        )
        theme_clause = f'about "{theme.strip()}"' if theme.strip() else ""
        prompt = render_prompt(
            "story_idea",
            age=age,
            character_clause=character_clause,
            theme_clause=theme_clause,
            language_name=self._get_language_name(language),
        )
        fallback = get_labels(language)["fallback_idea"]
        try:
            idea = await self.backend.complete(prompt, model=text_model or None)
        except DreamWeaverError as e:
            logger.warning("Story idea request failed: %s", e)
            return fallback
        return idea.strip().strip('"') or fallback


def _strip_code_fences(text: str) -> str:
    return text.replace("```json", "").replace("```", "").strip()


def parse_story(text: str, page_count: int) -> StoryStructure:
    """解析并校验LLM返回的故事JSON

    多出的页面被截断；页面少于 page_count 视为错误。
    页码按位置重新编号。
    """
    cleaned = _strip_code_fences(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        # 兼容JSON前后带有说明文字的情况
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start == -1 or end <= start:
            raise MalformedResponseError("malformed JSON")
        try:
            data = json.loads(cleaned[start : end + 1])
        except json.JSONDecodeError as e:
            raise MalformedResponseError("malformed JSON") from e

    if not isinstance(data, dict):
        raise MalformedResponseError("malformed JSON")

    raw_pages = data.get("pages")
    if not isinstance(raw_pages, list) or not raw_pages:
        raise EmptyResultError("no pages")

    if len(raw_pages) < page_count:
        raise MalformedResponseError(f"expected {page_count} pages, got {len(raw_pages)}")
    if len(raw_pages) > page_count:
        logger.warning("Got %d pages, truncating to %d", len(raw_pages), page_count)

    title = data.get("title")
    if not isinstance(title, str) or not title.strip():
        raise MalformedResponseError("malformed JSON")

    try:
        pages = [StoryPage.model_validate(raw) for raw in raw_pages[:page_count]]
    except ValidationError as e:
        raise MalformedResponseError("malformed JSON") from e

    for index, page in enumerate(pages, start=1):
        page.page_number = index
        page.image_url = None

    return StoryStructure(title=title.strip(), pages=pages)
