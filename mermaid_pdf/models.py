"""
Data types passed between the extractor, the renderer and the assembler.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from .validation import resolve_pdf_filename

DEFAULT_SCALE = 2.0
MIN_SCALE = 0.1
MAX_SCALE = 2.0
DEFAULT_MARGIN = "20mm"
DEFAULT_DIAGRAM_MAX_WIDTH = "100%"

# Same margin grammar the page template accepts: number plus optional unit
MARGIN_PATTERN = re.compile(r'^(\d+(?:\.\d+)?)\s*(cm|in|mm|pt|px)?$')
WIDTH_PATTERN = re.compile(r'^(\d+(?:\.\d+)?)\s*(%|px|mm|cm|in|pt|em|rem|vw)$')


@dataclass(frozen=True)
class DiagramBlock:
    """A Mermaid block pulled out of the Markdown source."""
    id: str
    source: str
    ordinal: int


@dataclass(frozen=True)
class RenderResult:
    """Outcome of rendering one DiagramBlock: SVG markup or a failure reason, never both."""
    id: str
    image: Optional[str] = None
    failure_reason: Optional[str] = None

    def __post_init__(self):
        if (self.image is None) == (self.failure_reason is None):
            raise ValueError(f"RenderResult {self.id!r} needs exactly one of image or failure_reason")

    @classmethod
    def succeeded(cls, block_id: str, image: str) -> "RenderResult":
        return cls(id=block_id, image=image)

    @classmethod
    def failed(cls, block_id: str, reason: str) -> "RenderResult":
        return cls(id=block_id, failure_reason=reason)

    @property
    def ok(self) -> bool:
        return self.image is not None


class PageFormat(str, Enum):
    """Paper sizes understood by Chromium's print-to-PDF."""
    A0 = "A0"
    A1 = "A1"
    A2 = "A2"
    A3 = "A3"
    A4 = "A4"
    A5 = "A5"
    A6 = "A6"
    LETTER = "Letter"
    LEGAL = "Legal"
    TABLOID = "Tabloid"
    LEDGER = "Ledger"

    @classmethod
    def parse(cls, value: Any, default: "PageFormat" = None) -> "PageFormat":
        """Case-insensitive lookup; unknown values resolve to the default (A4)."""
        default = default or cls.A4
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            wanted = value.strip().lower()
            for member in cls:
                if member.value.lower() == wanted:
                    return member
        return default


def parse_scale(value: Any) -> float:
    """Parse-or-default a print scale, then clamp it to [0.1, 2.0].

    Unparseable, zero and non-finite values fall back to 2.0.
    """
    if isinstance(value, bool):
        return DEFAULT_SCALE
    try:
        scale = float(value)
    except (TypeError, ValueError):
        return DEFAULT_SCALE
    if not math.isfinite(scale) or scale == 0:
        return DEFAULT_SCALE
    return min(MAX_SCALE, max(MIN_SCALE, scale))


def parse_margin(value: Any) -> str:
    """Return a normalized CSS length, or the 20mm default if the value is not one."""
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value >= 0:
        return f"{value}px"
    if not isinstance(value, str):
        return DEFAULT_MARGIN
    match = MARGIN_PATTERN.match(value.strip())
    if not match:
        return DEFAULT_MARGIN
    number, unit = match.groups()
    return f"{number}{unit or 'px'}"


def parse_diagram_max_width(value: Any) -> str:
    """Accept a CSS width such as '80%' or '600px'; anything else becomes 100%."""
    if isinstance(value, str):
        match = WIDTH_PATTERN.match(value.strip())
        if match:
            return f"{match.group(1)}{match.group(2)}"
    return DEFAULT_DIAGRAM_MAX_WIDTH


@dataclass(frozen=True)
class Margins:
    top: str = DEFAULT_MARGIN
    right: str = DEFAULT_MARGIN
    bottom: str = DEFAULT_MARGIN
    left: str = DEFAULT_MARGIN

    @classmethod
    def parse(cls, value: Any) -> "Margins":
        """Build margins from a mapping of sides or a single length for all four."""
        if isinstance(value, Mapping):
            return cls(
                top=parse_margin(value.get("top")),
                right=parse_margin(value.get("right")),
                bottom=parse_margin(value.get("bottom")),
                left=parse_margin(value.get("left")),
            )
        if value is None:
            return cls()
        margin = parse_margin(value)
        return cls(margin, margin, margin, margin)

    def as_dict(self) -> Dict[str, str]:
        return {"top": self.top, "right": self.right, "bottom": self.bottom, "left": self.left}


@dataclass(frozen=True)
class DocumentOptions:
    """Per-invocation layout options. Invalid values fall back to defaults, never raise."""
    page_format: PageFormat = PageFormat.A4
    scale: float = DEFAULT_SCALE
    print_background: bool = True
    margins: Margins = field(default_factory=Margins)
    diagram_max_width: str = DEFAULT_DIAGRAM_MAX_WIDTH
    output_filename: str = "document.pdf"

    def __post_init__(self):
        # Normalise direct construction the same way from_mapping does
        object.__setattr__(self, "page_format", PageFormat.parse(self.page_format))
        object.__setattr__(self, "scale", parse_scale(self.scale))
        object.__setattr__(self, "print_background", self.print_background if isinstance(self.print_background, bool) else True)
        if not isinstance(self.margins, Margins):
            object.__setattr__(self, "margins", Margins.parse(self.margins))
        object.__setattr__(self, "diagram_max_width", parse_diagram_max_width(self.diagram_max_width))
        object.__setattr__(self, "output_filename", resolve_pdf_filename(self.output_filename))

    @classmethod
    def from_mapping(cls, options: Optional[Mapping[str, Any]]) -> "DocumentOptions":
        """Build options from the JSON shape the web client sends.

        Recognised keys: format, scale, printBackground, margin, diagramMaxWidth, filename.
        """
        if not isinstance(options, Mapping):
            options = {}
        return cls(
            page_format=options.get("format"),
            scale=options.get("scale"),
            print_background=options.get("printBackground", True),
            margins=Margins.parse(options.get("margin")),
            diagram_max_width=options.get("diagramMaxWidth"),
            output_filename=options.get("filename"),
        )
