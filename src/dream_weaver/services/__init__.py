"""服务模块 - 外部生成服务与导出"""

from .illustrator import ImageGenerator, create_image_generator
from .pdf_exporter import PDFExporter
from .print_layout import render_print_html
from .signature import SignatureBuilder
from .story_writer import StoryWriterService
from .text_backend import TextBackend, create_text_backend

__all__ = [
    "ImageGenerator",
    "create_image_generator",
    "PDFExporter",
    "render_print_html",
    "SignatureBuilder",
    "StoryWriterService",
    "TextBackend",
    "create_text_backend",
]
