"""角色外观描述生成 - 保证多张插图中主角外观一致"""

from typing import Optional

from ..data import load_character_library
from ..exceptions import DreamWeaverError
from ..prompts import render_prompt
from ..utils.logger import get_logger
from .text_backend import TextBackend

logger = get_logger(__name__)

FALLBACK_SIGNATURE = "{character} keeps the same outfit, colors, and accessories in every scene."


class SignatureBuilder:
    """角色外观描述（signature）生成器

    signature 是一句固定的英文外观描述，会原样嵌入每一页的插图提示词。
    查找顺序:
    1. 预设角色表（无网络请求）
    2. 让LLM生成一句描述
    3. 请求失败时返回通用描述，不会中断生成流程
    """

    def __init__(self, backend: TextBackend, library: Optional[dict[str, str]] = None):
        self.backend = backend
        self.library = load_character_library() if library is None else library

    async def build_signature(
        self, character: str, style: str, text_model: Optional[str] = None
    ) -> str:
        name = character.strip()
        if not name:
            return ""

        if name in self.library:
            logger.debug("Using curated signature for %s", name)
            return self.library[name]

        prompt = render_prompt("character_signature", character=name, style=style)
        try:
            signature = await self.backend.complete(prompt, model=text_model or None)
        except DreamWeaverError as e:
            logger.warning("Character signature request failed for %s: %s", name, e)
            return FALLBACK_SIGNATURE.format(character=name)

        if not signature:
            logger.warning("Empty character signature for %s, using fallback", name)
            return FALLBACK_SIGNATURE.format(character=name)

        return signature.strip().strip('"')
