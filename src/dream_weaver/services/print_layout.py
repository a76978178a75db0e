"""打印版式 - 生成每张纸一页的HTML"""

from html import escape

from ..core.labels import get_labels, page_label
from ..core.models import StoryPage, StoryStructure
from ..utils.config import Language

PRINT_CSS = """
body { font-family: Georgia, 'Times New Roman', serif; color: #2d2a26; margin: 0; }
.sheet { max-width: 48rem; margin: 0 auto; padding: 2rem; text-align: center; }
.sheet + .sheet { border-top: 1px solid #e3dacb; }
.title h1 { font-size: 2.5rem; margin: 6rem 0 1rem; }
.title p { color: #78716c; font-style: italic; }
.illustration { width: 100%; aspect-ratio: 1 / 1; display: flex; align-items: center;
  justify-content: center; border: 1px solid #e5e7eb; border-radius: 0.5rem;
  background: #fafaf9; overflow: hidden; margin-bottom: 1.5rem; }
.illustration img { max-width: 100%; max-height: 100%; object-fit: contain; }
.text p { font-size: 1.3rem; line-height: 1.6; margin: 0 0 1rem; }
.page-number { color: #a8a29e; font-size: 0.8rem; }
@media print {
  .sheet { page-break-after: always; break-after: page; border: none !important; }
  .sheet:last-child { page-break-after: auto; break-after: auto; }
}
"""


def render_page_html(page: StoryPage, language: Language = Language.FRENCH) -> str:
    """渲染单页（插图 + 段落 + 页码），阅读器和打印版共用"""
    image = ""
    if page.image_url:
        alt = escape(page_label(language, page.page_number))
        image = f'<img src="{escape(page.image_url, quote=True)}" alt="{alt}">'
    paragraphs = "".join(f"<p>{escape(p)}</p>" for p in page.paragraphs)
    return (
        f'<div class="illustration">{image}</div>'
        f'<div class="text">{paragraphs}</div>'
        f'<div class="page-number">{escape(page_label(language, page.page_number))}</div>'
    )


def render_print_html(book: StoryStructure, language: Language = Language.FRENCH) -> str:
    """完整的可打印HTML文档: 标题页 + 每个故事页各占一张纸"""
    subtitle = get_labels(language)["subtitle"]
    sheets = [
        f'<section class="sheet title"><h1>{escape(book.title)}</h1>'
        f"<p>{escape(subtitle)}</p></section>"
    ]
    sheets.extend(
        f'<section class="sheet">{render_page_html(page, language)}</section>' for page in book.pages
    )
    return (
        "<!DOCTYPE html>\n"
        f'<html lang="{language.value}"><head><meta charset="utf-8">'
        f"<title>{escape(book.title)}</title><style>{PRINT_CSS}</style></head>"
        f"<body>{''.join(sheets)}</body></html>"
    )
