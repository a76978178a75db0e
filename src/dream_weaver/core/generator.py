"""绘本生成编排器"""

import asyncio
import inspect
from typing import AsyncIterator, Awaitable, Callable, Optional, Union

from ..exceptions import InvalidTransitionError
from ..services.illustrator import ImageGenerator, create_image_generator
from ..services.signature import SignatureBuilder
from ..services.story_writer import StoryWriterService
from ..services.text_backend import TextBackend, create_text_backend
from ..utils.config import Settings, get_settings
from ..utils.logger import get_logger
from .labels import get_labels
from .models import (
    AppState,
    GenerationContext,
    GenerationProgress,
    StoryPage,
    StoryParams,
)

logger = get_logger(__name__)

ProgressCallback = Callable[[GenerationContext], Union[None, Awaitable[None]]]

_TRANSITIONS: dict[AppState, set[AppState]] = {
    AppState.INPUT: {AppState.GENERATING_STORY},
    AppState.GENERATING_STORY: {AppState.GENERATING_IMAGES, AppState.ERROR},
    AppState.GENERATING_IMAGES: {AppState.READING, AppState.ERROR},
    AppState.READING: {AppState.INPUT},
    AppState.ERROR: {AppState.INPUT},
}


def build_page_prompt(params: StoryParams, signature: str, page: StoryPage) -> str:
    """组合单页插图的最终提示词

    角色参考 + 角色外观描述 + 本页动作 + 画风 + 固定的解剖/负面约束。
    """
    character_context = f"Character Reference: {params.character}." if params.character else ""
    visual_signature = signature or params.character
    return (
        f"{character_context} Consistent Character Sheet: {visual_signature}. "
        "Keep the same accessories, colors, and proportions on every page. "
        f"Action: {page.image_prompt}. Art Style: {params.style}. "
        "Constraint: If character is an animal, they must have PAWS or HOOVES, "
        "NEVER human hands, fingers, or feet. Exclude: text, words, signature, watermark, "
        "frame, border, humans, human hands, extra limbs, unnatural poses. "
        "Keep natural animal anatomy."
    ).strip()


class StoryBookGenerator:
    """儿童绘本生成器

    工作流程:
    1. 生成角色外观描述（预设角色直接查表）
    2. 一次LLM调用生成标题与逐页文本、插图提示词
    3. 按页码顺序逐页生成插图，每完成一页发布一次进度

    状态机: INPUT -> GENERATING_STORY -> GENERATING_IMAGES -> READING，
    前两步失败进入 ERROR；READING/ERROR 可通过 reset() 回到 INPUT。
    单张插图失败由插图服务替换为占位图，不会进入 ERROR。
    """

    def __init__(
        self,
        settings: Settings | None = None,
        text_backend: TextBackend | None = None,
        image_generator: ImageGenerator | None = None,
    ):
        self.settings = settings or get_settings()
        self._text_backend = text_backend
        self._image_generator = image_generator
        self.context = GenerationContext()

    @property
    def state(self) -> AppState:
        return self.context.state

    def _transition(self, target: AppState) -> None:
        if target not in _TRANSITIONS[self.context.state]:
            raise InvalidTransitionError(f"{self.context.state.value} -> {target.value}")
        logger.debug("State %s -> %s", self.context.state.value, target.value)
        self.context.state = target

    async def _publish(self, on_progress: Optional[ProgressCallback]) -> None:
        if on_progress is None:
            return
        result = on_progress(self.context.snapshot())
        if inspect.isawaitable(result):
            await result

    async def _publish_error(self, on_progress: Optional[ProgressCallback]) -> None:
        """发布 ERROR 快照；回调本身再失败时只记录日志，状态已经可以 reset"""
        try:
            await self._publish(on_progress)
        except Exception as e:
            logger.error("Progress callback failed while reporting an error: %s", e)

    def _set_step(self, step: str, completed: int = 0, total: int = 0) -> None:
        self.context.progress = GenerationProgress(
            current_step=step, completed_images=completed, total_images=total
        )

    def _backends_for(self, params: StoryParams) -> tuple[TextBackend, ImageGenerator]:
        text_backend = self._text_backend or create_text_backend(
            self.settings, text_model=params.text_model
        )
        image_generator = self._image_generator or create_image_generator(
            self.settings, image_model=params.image_model
        )
        return text_backend, image_generator

    def _preflight(self, text_backend: TextBackend, image_generator: ImageGenerator) -> None:
        """在任何网络请求之前检查凭据"""
        self.settings.require_api_key(text_backend.provider)
        self.settings.require_api_key(image_generator.provider)

    async def generate(
        self, params: StoryParams, on_progress: Optional[ProgressCallback] = None
    ) -> GenerationContext:
        """执行一次完整生成

        不抛出生成过程中的异常：失败时上下文处于 ERROR 状态并携带错误信息。

        Returns:
            最终上下文的快照
        """
        labels = get_labels(params.language)

        self._transition(AppState.GENERATING_STORY)
        self.context.error = None
        self.context.book = None
        self._set_step(labels["building_character"])

        try:
            await self._publish(on_progress)
            text_backend, image_generator = self._backends_for(params)
            self._preflight(text_backend, image_generator)

            signature = await SignatureBuilder(text_backend).build_signature(
                params.character, params.style, params.text_model
            )
            logger.info("Character signature: %s", signature or params.character)

            self._set_step(labels["writing_story"])
            await self._publish(on_progress)

            book = await StoryWriterService(text_backend).generate_story(
                character=params.character,
                premise=params.story,
                style=params.style,
                page_count=params.page_count,
                age=params.age,
                text_model=params.text_model,
                character_signature=signature,
                language=params.language,
            )
            logger.info("Story %r written with %d pages", book.title, len(book.pages))

            total = len(book.pages)
            self.context.book = book
            self._transition(AppState.GENERATING_IMAGES)
            self._set_step(labels["drawing"], completed=0, total=total)
            await self._publish(on_progress)

            for index, page in enumerate(book.pages, start=1):
                prompt = build_page_prompt(params, signature, page)
                image = await image_generator.generate_image(prompt, params.image_model)
                if image.is_placeholder:
                    logger.warning("Page %d uses a placeholder illustration", page.page_number)
                page.image_url = image.url
                self._set_step(
                    labels["drawing_page"].format(current=min(index + 1, total), total=total),
                    completed=index,
                    total=total,
                )
                await self._publish(on_progress)

        except Exception as e:
            logger.error("Generation failed: %s", e, exc_info=True)
            self.context.book = None
            self.context.error = str(e) or labels["generic_error"]
            self._transition(AppState.ERROR)
            await self._publish_error(on_progress)
            return self.context.snapshot()

        self._transition(AppState.READING)
        self.context.progress.current_step = labels["done"]
        await self._publish(on_progress)
        return self.context.snapshot()

    async def iter_generate(self, params: StoryParams) -> AsyncIterator[GenerationContext]:
        """以异步迭代器的形式逐步返回生成进度快照，供界面流式刷新"""
        queue: asyncio.Queue = asyncio.Queue()
        task = asyncio.create_task(self.generate(params, on_progress=queue.put_nowait))
        task.add_done_callback(lambda _: queue.put_nowait(None))

        while True:
            snapshot = await queue.get()
            if snapshot is None:
                break
            yield snapshot

        await task

    def reset(self) -> GenerationContext:
        """丢弃当前绘本和错误信息，回到 INPUT"""
        if self.context.state == AppState.INPUT:
            return self.context.snapshot()
        self._transition(AppState.INPUT)
        self.context.book = None
        self.context.error = None
        self.context.progress = GenerationProgress()
        return self.context.snapshot()
