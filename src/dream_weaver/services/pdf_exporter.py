"""PDF导出服务 - 将绘本渲染为可下载的PDF"""

import asyncio
import base64
import re
from io import BytesIO
from pathlib import Path
from typing import Optional

import httpx
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas
from tenacity import retry, stop_after_attempt, wait_exponential

from ..core.labels import get_labels
from ..core.models import StoryPage, StoryStructure
from ..exceptions import ExportError
from ..utils.config import Language
from ..utils.logger import get_logger

logger = get_logger(__name__)

_DATA_URI = re.compile(r"^data:(?P<mime>[\w/+.-]+);base64,(?P<data>.+)$", re.DOTALL)


def pdf_filename(title: str) -> str:
    """由标题生成文件名，非字母数字字符替换为下划线"""
    stem = re.sub(r"[^A-Za-z0-9]", "_", title.strip())
    return f"{stem or 'storybook'}.pdf"


class PDFExporter:
    """绘本PDF导出

    版式（A4）:
    - 标题页: 居中标题 + 副标题
    - 每个故事页: 居中插图（限制在 120x110mm 内）、居中换行的正文、页脚页码
    插图加载失败时留出空白，不中断导出。
    """

    MARGIN = 20 * mm
    IMAGE_TOP = 25 * mm
    IMAGE_MAX_WIDTH = 120 * mm
    IMAGE_MAX_HEIGHT = 110 * mm
    IMAGE_GAP = 15 * mm
    MISSING_IMAGE_GAP = 50 * mm

    def __init__(
        self,
        font_path: Optional[str] = None,
        request_timeout: float = 30.0,
    ):
        self.request_timeout = request_timeout
        self.title_font = "Times-Bold"
        self.body_font = "Times-Roman"
        self.caption_font = "Helvetica"
        if font_path:
            # 非拉丁文字（中文、日文等）需要外部TTF字体
            pdfmetrics.registerFont(TTFont("StoryFont", font_path))
            self.title_font = self.body_font = self.caption_font = "StoryFont"

    def export(
        self,
        book: StoryStructure,
        output_dir: Path | str,
        language: Language = Language.FRENCH,
    ) -> Path:
        """写出PDF文件并返回路径

        Raises:
            ExportError: 渲染或写文件失败
        """
        output_path = Path(output_dir) / pdf_filename(book.title)
        try:
            data = self.render(book, language)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_bytes(data)
        except ExportError:
            raise
        except Exception as e:
            raise ExportError(f"PDF generation failed: {e}") from e
        logger.info("PDF saved to %s", output_path)
        return output_path

    async def aexport(
        self,
        book: StoryStructure,
        output_dir: Path | str,
        language: Language = Language.FRENCH,
    ) -> Path:
        """异步版本的 export

        渲染和下载远程插图都是阻塞操作，放到线程中执行，不占用事件循环。
        """
        return await asyncio.to_thread(self.export, book, output_dir, language)

    def render(self, book: StoryStructure, language: Language = Language.FRENCH) -> bytes:
        """渲染为PDF字节"""
        buffer = BytesIO()
        try:
            pdf = canvas.Canvas(buffer, pagesize=A4)
            pdf.setTitle(book.title)
            width, height = A4

            self._draw_title_page(pdf, book, language, width, height)
            for index, page in enumerate(book.pages, start=1):
                self._draw_story_page(pdf, page, index, width, height)

            pdf.save()
        except Exception as e:
            raise ExportError(f"PDF generation failed: {e}") from e
        return buffer.getvalue()

    # ------------------------------------------------------------------ pages

    def _draw_title_page(
        self,
        pdf: canvas.Canvas,
        book: StoryStructure,
        language: Language,
        width: float,
        height: float,
    ) -> None:
        max_line_width = width - 2 * self.MARGIN
        y = height - height / 3

        pdf.setFont(self.title_font, 24)
        pdf.setFillGray(0)
        for line in simpleSplit(book.title, self.title_font, 24, max_line_width):
            pdf.drawCentredString(width / 2, y, line)
            y -= 10 * mm

        pdf.setFont(self.caption_font, 12)
        pdf.setFillGray(100 / 255)
        pdf.drawCentredString(width / 2, y - 10 * mm, get_labels(language)["subtitle"])
        pdf.showPage()

    def _draw_story_page(
        self,
        pdf: canvas.Canvas,
        page: StoryPage,
        number: int,
        width: float,
        height: float,
    ) -> None:
        # 以页面顶部为原点向下累计
        offset = self.IMAGE_TOP
        image = self._load_image(page.image_url) if page.image_url else None

        if image is not None:
            img_width, img_height = self._fit(*image.getSize())
            x = (width - img_width) / 2
            pdf.drawImage(image, x, height - offset - img_height, img_width, img_height)
            offset += img_height + self.IMAGE_GAP
        else:
            offset += self.MISSING_IMAGE_GAP

        max_line_width = width - 2 * self.MARGIN
        pdf.setFont(self.body_font, 14)
        pdf.setFillGray(40 / 255)
        for paragraph in page.paragraphs:
            for line in simpleSplit(paragraph, self.body_font, 14, max_line_width):
                pdf.drawCentredString(width / 2, height - offset, line)
                offset += 6 * mm

        pdf.setFont(self.caption_font, 10)
        pdf.setFillGray(150 / 255)
        pdf.drawCentredString(width / 2, 10 * mm, f"- {number} -")
        pdf.showPage()

    def _fit(self, width: float, height: float) -> tuple[float, float]:
        """按比例缩放到插图框内"""
        ratio = height / width
        img_width = self.IMAGE_MAX_WIDTH
        img_height = img_width * ratio
        if img_height > self.IMAGE_MAX_HEIGHT:
            img_height = self.IMAGE_MAX_HEIGHT
            img_width = img_height / ratio
        return img_width, img_height

    @retry(stop=stop_after_attempt(3), wait=wait_exponential(multiplier=1, min=1, max=4), reraise=True)
    def _fetch_remote_image(self, url: str) -> bytes:
        """下载远程插图（如占位图），失败时重试"""
        response = httpx.get(url, timeout=self.request_timeout, follow_redirects=True)
        response.raise_for_status()
        return response.content

    def _load_image(self, url: str) -> Optional[ImageReader]:
        try:
            match = _DATA_URI.match(url)
            if match:
                raw = base64.b64decode(match.group("data"))
            else:
                raw = self._fetch_remote_image(url)
            reader = ImageReader(BytesIO(raw))
            reader.getSize()
            return reader
        except Exception as e:
            logger.warning("Could not add image to PDF: %s", e)
            return None
