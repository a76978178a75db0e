"""命令行接口"""

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn

from .core.generator import StoryBookGenerator
from .core.models import AppState, GenerationContext, StoryParams
from .data import load_character_library, load_style_presets
from .exceptions import ExportError
from .services.pdf_exporter import PDFExporter, pdf_filename
from .services.print_layout import render_print_html
from .services.story_writer import StoryWriterService
from .services.text_backend import create_text_backend
from .utils.config import Language, get_settings
from .utils.logger import setup_logging

app = typer.Typer(
    name="dream-weaver",
    help="""儿童绘本自动生成工具 - 根据角色和故事梗概生成带插图的绘本

快速开始:
  dream-weaver generate "Gigi la Girafe" "cherche une étoile"
  dream-weaver generate "Un petit grille-pain" "part en voyage" --pages 3 --age 4
  dream-weaver idea --character "Léo le Lionceau" --theme "la plage"
  dream-weaver characters                        # 查看预设角色
  dream-weaver styles                            # 查看预设画风
""",
)
console = Console()


def _parse_language(language: str) -> Language:
    try:
        return Language(language)
    except ValueError:
        console.print(f"[red]不支持的语言: {language}[/red]")
        console.print("支持的语言: " + ", ".join(lang.value for lang in Language))
        raise typer.Exit(1)


@app.command()
def generate(
    character: str = typer.Argument(..., help="主角，如：Gigi la Girafe"),
    story: str = typer.Argument(..., help="故事梗概，如：cherche une étoile"),
    style: str = typer.Option(
        "Beatrix Potter (Aquarelle)", "--style", "-s", help="画风（见 styles 命令）"
    ),
    pages: int = typer.Option(5, "--pages", "-p", help="页数 (3-10)", min=3, max=10),
    age: int = typer.Option(5, "--age", "-a", help="目标年龄 (1-10)", min=1, max=10),
    language: str = typer.Option(None, "--lang", "-l", help="故事语言: fr, en, zh, ja, ko"),
    text_model: str = typer.Option("", "--text-model", help="文本模型，留空使用配置"),
    image_model: str = typer.Option("", "--image-model", help="图像模型，留空使用配置"),
    output: str = typer.Option(None, "--output", "-o", help="输出目录 (默认: ./output)"),
    html: bool = typer.Option(True, "--html/--no-html", help="同时导出可打印的HTML"),
    markdown: bool = typer.Option(False, "--markdown/--no-markdown", help="同时导出Markdown"),
):
    """生成一本带插图的儿童绘本，并导出PDF"""
    settings = get_settings()
    setup_logging(settings.log_level)
    lang = _parse_language(language) if language else settings.story_language

    params = StoryParams(
        character=character,
        story=story,
        style=style,
        text_model=text_model,
        image_model=image_model,
        page_count=pages,
        age=age,
        language=lang,
    )

    console.print(
        Panel(
            f"[bold]角色:[/bold] {character}\n"
            f"[bold]故事:[/bold] {story}\n"
            f"[bold]画风:[/bold] {style}\n"
            f"[bold]页数:[/bold] {pages}\n"
            f"[bold]年龄:[/bold] {age}岁\n"
            f"[bold]语言:[/bold] {lang.value}",
            title="绘本生成配置",
            border_style="blue",
        )
    )

    result = asyncio.run(_generate_async(settings, params))

    if result.state != AppState.READING or result.book is None:
        console.print(f"[red]生成失败: {result.error}[/red]")
        raise typer.Exit(1)

    output_dir = Path(output or settings.output_dir)
    console.print(f"\n[green]绘本《{result.book.title}》生成完成![/green]")

    try:
        pdf_path = PDFExporter(request_timeout=settings.request_timeout).export(
            result.book, output_dir, lang
        )
        console.print(f"[green]PDF 已保存到: {pdf_path}[/green]")
    except ExportError as e:
        console.print(f"[yellow]⚠ {e}[/yellow]")

    if html:
        html_path = output_dir / Path(pdf_filename(result.book.title)).with_suffix(".html")
        html_path.parent.mkdir(parents=True, exist_ok=True)
        html_path.write_text(render_print_html(result.book, lang), encoding="utf-8")
        console.print(f"[green]打印版已保存到: {html_path}[/green]")

    if markdown:
        md_path = output_dir / Path(pdf_filename(result.book.title)).with_suffix(".md")
        md_path.parent.mkdir(parents=True, exist_ok=True)
        md_path.write_text(result.book.to_markdown(), encoding="utf-8")
        console.print(f"[green]Markdown 已保存到: {md_path}[/green]")


async def _generate_async(settings, params: StoryParams) -> GenerationContext:
    """运行生成流程，用 rich 进度条显示插图进度"""
    generator = StoryBookGenerator(settings)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("", total=None)

        def on_progress(snapshot: GenerationContext) -> None:
            p = snapshot.progress
            progress.update(
                task,
                description=p.current_step,
                completed=p.completed_images,
                total=p.total_images or None,
            )

        return await generator.generate(params, on_progress=on_progress)


@app.command()
def idea(
    character: str = typer.Option("", "--character", "-c", help="主角（可选）"),
    theme: str = typer.Option("", "--theme", "-t", help="主题（可选）"),
    age: int = typer.Option(5, "--age", "-a", min=1, max=10),
    language: str = typer.Option(None, "--lang", "-l", help="语言: fr, en, zh, ja, ko"),
):
    """随机给出一句故事梗概"""
    settings = get_settings()
    setup_logging(settings.log_level)
    lang = _parse_language(language) if language else settings.story_language

    writer = StoryWriterService(create_text_backend(settings))
    suggestion = asyncio.run(writer.suggest_story_idea(character, theme, age, lang))
    console.print(suggestion)


@app.command()
def characters():
    """列出预设角色（外观固定，无需额外请求）"""
    console.print("\n[bold]预设角色:[/bold]\n")
    for name, signature in load_character_library().items():
        console.print(f"  [cyan]{name}[/cyan]")
        console.print(f"    [dim]{signature}[/dim]")
    console.print()


@app.command()
def styles():
    """列出预设画风"""
    console.print("\n[bold]预设画风:[/bold]\n")
    for style in load_style_presets():
        console.print(f"  {style}")
    console.print()


@app.command()
def version():
    """显示版本信息"""
    from . import __version__

    console.print(f"dream-weaver v{__version__}")


if __name__ == "__main__":
    app()
