"""
Input checks applied at the HTTP and CLI boundaries before any conversion work.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import re
from typing import Any

from .errors import InputValidationError

MAX_MARKDOWN_LENGTH = 500_000  # ~500 KB
DEFAULT_PDF_FILENAME = "document.pdf"


def validate_markdown(markdown: Any) -> str:
    """Return the Markdown text unchanged or raise InputValidationError."""
    if not isinstance(markdown, str):
        raise InputValidationError("Markdown must be a string.", status=400)
    if len(markdown) == 0:
        raise InputValidationError("Markdown cannot be empty.", status=400)
    if len(markdown) > MAX_MARKDOWN_LENGTH:
        raise InputValidationError("Markdown is too long. Max 500 KB.", status=413)
    return markdown


def sanitize_pdf_filename(name: str) -> str:
    """Strip directories, replace unsafe characters and ensure a .pdf suffix."""
    base = re.sub(r'^.*[/\\]', '', name)
    base = re.sub(r'[^a-zA-Z0-9._-]', '_', base)
    trimmed = base.strip() or "document"
    return trimmed if trimmed.lower().endswith(".pdf") else f"{trimmed}.pdf"


def resolve_pdf_filename(value: Any) -> str:
    """Sanitize a user-supplied filename; missing or blank names become document.pdf."""
    if not isinstance(value, str) or not value.strip():
        return DEFAULT_PDF_FILENAME
    return sanitize_pdf_filename(value.strip())
