"""
Markdown with Mermaid diagrams to styled HTML and PDF.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

from .assembler import assemble, text_to_markup
from .config import Config
from .errors import ConversionCancelled, ConversionError, InputValidationError, MarkupError, PdfGenerationError
from .extractor import ExtractionResult, extract
from .models import DiagramBlock, DocumentOptions, Margins, PageFormat, RenderResult
from .pdf import PdfGenerator
from .pipeline import ConversionResult, DocumentConverter
from .renderer import DiagramRenderer, MermaidCliRenderer, render_all

__version__ = "0.1.0"

__all__ = [
    "assemble",
    "text_to_markup",
    "Config",
    "ConversionCancelled",
    "ConversionError",
    "InputValidationError",
    "MarkupError",
    "PdfGenerationError",
    "ExtractionResult",
    "extract",
    "DiagramBlock",
    "DocumentOptions",
    "Margins",
    "PageFormat",
    "RenderResult",
    "PdfGenerator",
    "ConversionResult",
    "DocumentConverter",
    "DiagramRenderer",
    "MermaidCliRenderer",
    "render_all",
]
