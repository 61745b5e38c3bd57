"""
Exception types raised by the conversion pipeline.

Per-diagram render failures are never raised; they travel as failed
RenderResult values and end up as error boxes in the document.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""


class ConversionError(Exception):
    """A failure that is fatal to a single conversion request."""


class InputValidationError(ConversionError):
    """Rejected input; carries the status code the HTTP boundary answers with."""

    def __init__(self, message: str, status: int = 400):
        super().__init__(message)
        self.message = message
        self.status = status


class MarkupError(ConversionError):
    """Markdown to HTML transformation or placeholder substitution failed."""


class PdfGenerationError(ConversionError):
    """The browser could not produce a PDF from the assembled HTML."""


class ConversionCancelled(Exception):
    """The caller stopped waiting for a conversion (timeout or superseded request)."""

    def __init__(self, message: str = "Conversion was cancelled", timeout: float = None):
        super().__init__(message)
        self.timeout = timeout
