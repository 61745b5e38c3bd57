"""
HTML assembly: Markdown with diagram placeholders -> complete styled document.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import html
import re
from typing import List, Optional, Sequence

import markdown

from .errors import MarkupError
from .extractor import neutralize_markers, placeholder_for
from .log import logger
from .models import DocumentOptions, PageFormat, RenderResult

MARKDOWN_EXTENSIONS = ["tables", "fenced_code", "sane_lists"]
GENERIC_FAILURE_MESSAGE = "Diagram could not be rendered."
DEFAULT_TITLE = "Document"
FENCE_PATTERN = re.compile(r'^\s{0,3}(`{3,}|~{3,})')

# Portrait paper widths, used as the content width of the on-screen preview
PAGE_WIDTHS = {
    PageFormat.A0: "841mm",
    PageFormat.A1: "594mm",
    PageFormat.A2: "420mm",
    PageFormat.A3: "297mm",
    PageFormat.A4: "210mm",
    PageFormat.A5: "148mm",
    PageFormat.A6: "105mm",
    PageFormat.LETTER: "8.5in",
    PageFormat.LEGAL: "8.5in",
    PageFormat.TABLOID: "11in",
    PageFormat.LEDGER: "17in",
}


def text_to_markup(text: str) -> str:
    """Convert Markdown to HTML. Raw block-level HTML (our placeholders) passes through untouched."""
    try:
        return markdown.markdown(text, extensions=MARKDOWN_EXTENSIONS, output_format="html")
    except Exception as e:
        raise MarkupError(f"Failed to convert Markdown to HTML: {e}") from e


def diagram_container(result: RenderResult) -> str:
    """The markup a placeholder is replaced with: the SVG, or an escaped error box."""
    if result.ok:
        svg = neutralize_markers(result.image)
        return f'<figure class="mermaid-diagram">{svg}</figure>'
    message = html.escape(result.failure_reason) if result.failure_reason else GENERIC_FAILURE_MESSAGE
    return f'<figure class="mermaid-error"><pre>{message}</pre></figure>'


def substitute_diagrams(markup: str, results: Sequence[RenderResult]) -> str:
    """Replace each result's placeholder with its container.

    Plain substring replacement of the exact marker text; replacements never
    contain a marker, so running this again on its own output changes nothing.
    """
    for result in results:
        placeholder = placeholder_for(result.id)
        if placeholder not in markup:
            logger.warning(f"Placeholder for {result.id} not found in generated HTML; diagram dropped")
            continue
        markup = markup.replace(placeholder, diagram_container(result))
    return markup


def _prose_lines(content: str) -> List[str]:
    """Lines outside fenced code blocks; a '# comment' in a shell snippet is not a heading."""
    lines = []
    fence = None
    for line in content.splitlines():
        match = FENCE_PATTERN.match(line)
        if fence is None:
            if match:
                fence = match.group(1)
                continue
            lines.append(line)
        elif match:
            marker = match.group(1)
            # Closing fence: same character, at least as long, nothing after it
            if marker[0] == fence[0] and len(marker) >= len(fence) and not line.strip()[len(marker):].strip():
                fence = None
    return lines


def extract_title(content: str) -> str:
    """Document title from the first ATX or setext H1 outside code blocks, else a generic title."""
    lines = _prose_lines(content)
    for line in lines:
        stripped = line.strip()
        if stripped.startswith('# '):
            heading_text = stripped[2:].strip()
            if heading_text:
                return heading_text

    for i in range(len(lines) - 1):
        current_line = lines[i].strip()
        if current_line and re.fullmatch(r"=+", lines[i + 1].strip()):
            return current_line

    return DEFAULT_TITLE


def wrap_document(body: str, options: Optional[DocumentOptions] = None, title: str = DEFAULT_TITLE) -> str:
    """Wrap body HTML in a self-contained page with screen and print styling."""
    options = options or DocumentOptions()
    page_width = PAGE_WIDTHS.get(options.page_format, "210mm")
    diagram_max_width = options.diagram_max_width

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{html.escape(title)}</title>
  <style>
    * {{ box-sizing: border-box; }}

    body {{
      font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Oxygen, Ubuntu, 'Helvetica Neue', Arial, sans-serif;
      line-height: 1.6;
      color: #1a1a1a;
      max-width: {page_width};
      margin: 0 auto;
      padding: 20px;
    }}

    h1, h2, h3, h4, h5, h6 {{
      color: #2c3e50;
      font-weight: 600;
      margin-bottom: 0.4em;
    }}
    h1 {{ font-size: 1.75rem; border-bottom: 2px solid #333; padding-bottom: 0.3em; }}
    h2 {{ font-size: 1.35rem; margin-top: 1.5em; }}
    h3 {{ font-size: 1.15rem; margin-top: 1.25em; }}

    p {{ margin: 0.6em 0; }}

    pre, code {{ font-family: 'Consolas', 'Monaco', 'Courier New', monospace; background: #f5f5f5; }}
    pre {{
      padding: 12px;
      border-radius: 6px;
      max-width: 100%;
      white-space: pre-wrap;
      word-break: break-word;
      overflow-wrap: break-word;
      overflow-x: visible;
    }}
    code {{ padding: 2px 6px; border-radius: 4px; font-size: 0.9em; }}
    pre code {{ padding: 0; background: none; white-space: pre-wrap; word-break: break-word; overflow-wrap: break-word; }}

    blockquote {{
      border-left: 4px solid #3498db;
      margin: 0.8em 0;
      padding: 0.3em 0.8em;
      background-color: #f8f9fa;
      color: #555;
    }}

    table {{ border-collapse: collapse; width: 100%; margin: 1em 0; }}
    th, td {{ border: 1px solid #ddd; padding: 8px 12px; text-align: left; }}
    th {{ background: #f5f5f5; font-weight: 600; }}

    img {{ max-width: 100%; height: auto; }}

    figure.mermaid-diagram {{
      margin: 1.5em auto;
      text-align: center;
      max-width: {diagram_max_width};
    }}
    figure.mermaid-diagram svg {{ max-width: 100%; height: auto; }}
    figure.mermaid-error {{
      margin: 1.5em 0;
      padding: 12px;
      background: #fff3cd;
      border: 1px solid #ffc107;
      border-radius: 6px;
    }}
    figure.mermaid-error pre {{ margin: 0; background: transparent; color: #856404; }}

    @media print {{
      /* Never end a page right after a section heading */
      h1, h2, h3 {{
        page-break-after: avoid;
        break-after: avoid;
      }}
      h1, h2, h3, h4, h5, h6 {{
        page-break-inside: avoid;
        break-inside: avoid;
      }}
      /* Keep a diagram whole and on the same page as the heading above it */
      figure.mermaid-diagram, figure.mermaid-error {{
        page-break-before: avoid;
        break-before: avoid;
        page-break-inside: avoid;
        break-inside: avoid;
      }}
      /* Keep at least two lines with a heading when a break is forced nearby */
      h1, h2, h3 {{ orphans: 2; widows: 2; }}
      p, li {{ orphans: 3; widows: 3; }}
      pre, blockquote, table {{
        page-break-inside: avoid;
        break-inside: avoid;
      }}
    }}
  </style>
</head>
<body>
{body}
</body>
</html>"""


def assemble_body(rewritten: str, results: Sequence[RenderResult]) -> str:
    """Markdown to HTML, then placeholders to diagrams; no document shell."""
    return substitute_diagrams(text_to_markup(rewritten), results)


def assemble(rewritten: str, results: Sequence[RenderResult], options: Optional[DocumentOptions] = None,
             title: Optional[str] = None) -> str:
    """Build the complete styled HTML document for preview or PDF generation."""
    body = assemble_body(rewritten, results)
    return wrap_document(body, options, title or extract_title(rewritten))
