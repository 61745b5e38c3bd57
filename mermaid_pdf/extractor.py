"""
Pulls ```mermaid fenced blocks out of Markdown and leaves block-level
placeholders in their place.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import re
from dataclasses import dataclass
from typing import List

from .models import DiagramBlock

DIAGRAM_LANGUAGE = "mermaid"
MARKER_PREFIX = '<figure data-mermaid-id="'
NEUTRAL_MARKER_PREFIX = '&lt;figure data-mermaid-id="'

# Opening and closing fences must start at column 0. The body is matched lazily
# up to the first line that is exactly ``` (trailing blanks allowed), so lines
# such as "```js" or an indented fence inside the diagram do not end the block.
# Handles both Unix (\n) and Windows (\r\n) line endings.
MERMAID_BLOCK_PATTERN = re.compile(
    r'^```' + DIAGRAM_LANGUAGE + r'[ \t]*\r?\n(.*?)^```[ \t]*\r?$',
    re.MULTILINE | re.DOTALL,
)


@dataclass(frozen=True)
class ExtractionResult:
    rewritten: str
    blocks: List[DiagramBlock]


def placeholder_id(ordinal: int) -> str:
    return f"{DIAGRAM_LANGUAGE}-placeholder-{ordinal}"


def placeholder_for(block_id: str) -> str:
    """The exact marker text emitted for a block; the assembler replaces this literal string."""
    return f'{MARKER_PREFIX}{block_id}"></figure>'


def neutralize_markers(text: str) -> str:
    """Escape anything in text that the substitution step would take for a placeholder."""
    return text.replace(MARKER_PREFIX, NEUTRAL_MARKER_PREFIX)


def extract(raw: str) -> ExtractionResult:
    """Replace every Mermaid block with a placeholder and return the blocks in document order.

    Marker-like HTML already present in the surrounding text is escaped, so
    each emitted placeholder occurs exactly once. Never fails on malformed
    diagram bodies; those are passed through to the renderer, which reports
    the problem.
    """
    blocks: List[DiagramBlock] = []
    parts: List[str] = []
    position = 0

    for match in MERMAID_BLOCK_PATTERN.finditer(raw):
        parts.append(neutralize_markers(raw[position:match.start()]))
        ordinal = len(blocks)
        block_id = placeholder_id(ordinal)
        blocks.append(DiagramBlock(id=block_id, source=match.group(1).strip(), ordinal=ordinal))
        # Blank lines on both sides keep Markdown from wrapping the marker in <p>
        parts.append(f"\n\n{placeholder_for(block_id)}\n\n")
        position = match.end()

    parts.append(neutralize_markers(raw[position:]))
    return ExtractionResult(rewritten="".join(parts), blocks=blocks)
