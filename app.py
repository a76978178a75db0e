"""Gradio Web 应用 - DreamWeaver 儿童绘本生成器"""

from html import escape
from pathlib import Path

import gradio as gr

from dream_weaver.core.generator import StoryBookGenerator
from dream_weaver.core.labels import get_labels
from dream_weaver.core.models import AppState, StoryParams, StoryStructure
from dream_weaver.data import load_character_library, load_style_presets
from dream_weaver.exceptions import ExportError
from dream_weaver.services.pdf_exporter import PDFExporter, pdf_filename
from dream_weaver.services.print_layout import PRINT_CSS, render_page_html, render_print_html
from dream_weaver.services.story_writer import StoryWriterService
from dream_weaver.services.text_backend import create_text_backend
from dream_weaver.utils.config import Language, get_settings
from dream_weaver.utils.logger import get_logger, setup_logging

logger = get_logger("app")


def _status_text(snapshot) -> str:
    """把进度快照格式化为状态文本"""
    progress = snapshot.progress
    if snapshot.state == AppState.ERROR:
        return f"❌ Oups !\n\n{snapshot.error}"
    lines = [f"✨ {progress.current_step}"]
    if progress.total_images:
        filled = round(progress.fraction * 20)
        lines.append(
            f"`{'▓' * filled}{'░' * (20 - filled)}` {progress.completed_images}/{progress.total_images}"
        )
    return "\n\n".join(lines)


def render_viewer(book: StoryStructure | None, index: int, language: Language) -> str:
    """阅读器：一次显示一页，尚未生成插图的页面显示空白插图框"""
    if book is None:
        return ""
    if not book.pages:
        return "<div class='sheet'><h2>Le Livre est vide</h2></div>"
    index = min(max(0, index), len(book.pages) - 1)
    page = book.pages[index]
    return (
        f"<style>{PRINT_CSS}</style>"
        f"<div class='sheet'><h2>{escape(book.title)}</h2>"
        f"{render_page_html(page, language)}"
        f"<p class='page-number'>{index + 1} / {len(book.pages)}</p></div>"
    )


async def generate_book(
    character: str,
    story: str,
    style: str,
    pages: int,
    age: int,
    language: str,
    text_model: str,
    image_model: str,
    generator: StoryBookGenerator | None = None,
):
    """生成绘本（流式返回进度与已完成的页面）

    每个会话复用同一个编排器；上一本书读完或出错后先 reset 回到输入状态。

    Yields:
        (status, viewer_html, book, page_index, pdf_file, print_file, generator)
    """
    if not character or not character.strip() or not story or not story.strip() or not style:
        yield "❌ 请填写角色、故事和画风", "", None, 0, None, None, generator
        return

    settings = get_settings()
    lang = Language(language)
    params = StoryParams(
        character=character.strip(),
        story=story.strip(),
        style=style,
        text_model=text_model or "",
        image_model=image_model or "",
        page_count=int(pages),
        age=int(age),
        language=lang,
    )

    # 上一次生成被中断时编排器停在 GENERATING_*，直接换一个新的
    if generator is None or generator.state in (AppState.GENERATING_STORY, AppState.GENERATING_IMAGES):
        generator = StoryBookGenerator(settings)
    generator.reset()

    final = None
    async for snapshot in generator.iter_generate(params):
        final = snapshot
        yield (
            _status_text(snapshot),
            render_viewer(snapshot.book, 0, lang),
            snapshot.book,
            0,
            None,
            None,
            generator,
        )

    if final is None or final.state != AppState.READING or final.book is None:
        return

    output_dir = Path(settings.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    print_path = output_dir / Path(pdf_filename(final.book.title)).with_suffix(".html")
    print_path.write_text(render_print_html(final.book, lang), encoding="utf-8")

    status = _status_text(final)
    pdf_path = None
    try:
        exporter = PDFExporter(request_timeout=settings.request_timeout)
        pdf_path = str(await exporter.aexport(final.book, output_dir, lang))
    except ExportError as e:
        logger.error("PDF export failed: %s", e)
        status += f"\n\n⚠️ {get_labels(lang)['export_error']}"

    yield status, render_viewer(final.book, 0, lang), final.book, 0, pdf_path, str(print_path), generator


def turn_page(book: StoryStructure | None, index: int, step: int, language: str):
    """翻页"""
    if book is None or not book.pages:
        return "", 0
    index = min(max(0, index + step), len(book.pages) - 1)
    return render_viewer(book, index, Language(language)), index


async def suggest_idea(character: str, theme: str, age: int, language: str) -> str:
    """为“故事”输入框生成一句梗概"""
    settings = get_settings()
    writer = StoryWriterService(create_text_backend(settings))
    return await writer.suggest_story_idea(character or "", theme or "", int(age), Language(language))


def reset(generator: StoryBookGenerator | None = None):
    """回到输入状态，丢弃当前绘本"""
    if generator is not None and generator.state in (AppState.READING, AppState.ERROR):
        generator.reset()
    return "", "", None, 0, None, None, generator


settings = get_settings()
setup_logging(settings.log_level)

with gr.Blocks(title="DreamWeaver", theme=gr.themes.Soft()) as demo:
    gr.Markdown(
        """
        # 📚 DreamWeaver

        Décrivez votre héros et son aventure, et l'IA écrira et illustrera le livre.
        """
    )

    book_state = gr.State(None)
    generator_state = gr.State(None)
    page_state = gr.State(0)

    with gr.Row():
        with gr.Column(scale=2):
            character = gr.Dropdown(
                choices=list(load_character_library()),
                allow_custom_value=True,
                label="Qui est le personnage principal ?",
                info="ex: Un petit grille-pain courageux...",
            )
            theme = gr.Textbox(
                label="Thème (Optionnel)",
                placeholder="ex: L'espace, La plage, Noël, Les pirates...",
            )
            with gr.Row():
                story = gr.Textbox(label="De quoi parle l'histoire ?", lines=3, scale=4)
                idea_btn = gr.Button("🎲 Suggérer une idée", scale=1)
            style = gr.Dropdown(
                choices=list(load_style_presets()),
                value=load_style_presets()[0],
                allow_custom_value=True,
                label="Inspiration artistique",
            )
            with gr.Row():
                pages = gr.Slider(minimum=3, maximum=10, value=5, step=1, label="Pages")
                age = gr.Slider(minimum=1, maximum=10, value=5, step=1, label="Âge")
            with gr.Accordion("Options", open=False):
                language = gr.Dropdown(
                    choices=[lang.value for lang in Language],
                    value=settings.story_language.value,
                    label="Langue",
                )
                text_model = gr.Textbox(label="Modèle texte", placeholder=settings.get_text_model())
                image_model = gr.Textbox(label="Modèle image", placeholder=settings.get_image_model())

            with gr.Row():
                generate_btn = gr.Button("✨ Créer mon livre", variant="primary", size="lg")
                reset_btn = gr.Button("Réessayer")

        with gr.Column(scale=3):
            status_output = gr.Markdown()
            viewer = gr.HTML()
            with gr.Row():
                prev_btn = gr.Button("◀")
                next_btn = gr.Button("▶")
            pdf_output = gr.File(label="📖 PDF", file_types=[".pdf"])
            print_output = gr.File(label="🖨️ Imprimer (HTML)", file_types=[".html"])

    outputs = [status_output, viewer, book_state, page_state, pdf_output, print_output, generator_state]

    generate_btn.click(
        fn=generate_book,
        inputs=[character, story, style, pages, age, language, text_model, image_model, generator_state],
        outputs=outputs,
    )
    idea_btn.click(fn=suggest_idea, inputs=[character, theme, age, language], outputs=[story])
    prev_btn.click(
        fn=lambda book, index, lang: turn_page(book, index, -1, lang),
        inputs=[book_state, page_state, language],
        outputs=[viewer, page_state],
    )
    next_btn.click(
        fn=lambda book, index, lang: turn_page(book, index, 1, lang),
        inputs=[book_state, page_state, language],
        outputs=[viewer, page_state],
    )
    reset_btn.click(fn=reset, inputs=[generator_state], outputs=outputs)


if __name__ == "__main__":
    demo.launch(
        server_name="0.0.0.0",
        server_port=7860,
        share=False,
        show_error=True,
    )
