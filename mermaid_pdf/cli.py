#!/usr/bin/env python3
"""
Command line entry point: mermaid-pdf <input.md> <output.pdf>

Converts a Markdown file (e.g. a .plan.md) with Mermaid diagrams into a
print-ready PDF. Mermaid code blocks are rendered as SVG.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from .config import Config
from .dependencies import check_dependencies
from .errors import ConversionCancelled, ConversionError
from .log import logger
from .models import DocumentOptions, PageFormat
from .pipeline import DocumentConverter, with_timeout
from .validation import sanitize_pdf_filename, validate_markdown

EPILOG = """
Examples:
  mermaid-pdf my.plan.md my.pdf
  mermaid-pdf ./docs/plan.md ./out/plan.pdf --format Letter --margin 15mm
  mermaid-pdf notes.md notes.html --html
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mermaid-pdf",
        description="Convert a Markdown file with Mermaid diagrams into a high-quality PDF",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("input", nargs="?", help="Markdown file to convert")
    parser.add_argument("output", nargs="?", help="Output PDF path (or HTML path with --html)")
    parser.add_argument("--format", default="A4", choices=[f.value for f in PageFormat], help="Page format (default: A4)")
    parser.add_argument("--scale", default="2", help="Print scale, clamped to 0.1-2.0 (default: 2)")
    parser.add_argument("--margin", default="20mm", help="Margin applied to all four sides, e.g. 20mm, 1in (default: 20mm)")
    parser.add_argument("--no-background", action="store_true", help="Do not print background colors")
    parser.add_argument("--diagram-max-width", default="100%", help="Maximum diagram width, e.g. 80%% or 600px (default: 100%%)")
    parser.add_argument("--html", action="store_true", help="Write the styled HTML document instead of a PDF")
    parser.add_argument("--max-renders", type=int, default=None, help="Maximum concurrent diagram renders (default: from config/env, 4)")
    parser.add_argument("--timeout", type=float, default=None, help="Give up after this many seconds")
    parser.add_argument("--no-progress", action="store_true", help="Hide the diagram progress bar")
    parser.add_argument("--check", action="store_true", help="Check that mmdc and Playwright Chromium are installed and exit")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging for detailed output")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = Config({
        "debug": True if args.debug else None,
        "max_concurrent_renders": args.max_renders,
    })
    logger.set_debug(config.get_debug())

    if args.check:
        return 0 if check_dependencies(config, check_pdf=not args.html) else 1

    if not args.input or not args.output:
        parser.print_usage(sys.stderr)
        logger.error("Both <input> and <output> are required")
        return 1

    input_file = Path(args.input).resolve()
    output_file = Path(args.output).resolve()
    if not args.html:
        output_file = output_file.with_name(sanitize_pdf_filename(output_file.name))

    options = DocumentOptions(
        page_format=args.format,
        scale=args.scale,
        print_background=not args.no_background,
        margins=args.margin,
        diagram_max_width=args.diagram_max_width,
        output_filename=output_file.name,
    )
    converter = DocumentConverter.from_config(config, progress=not args.no_progress)

    try:
        markdown = validate_markdown(input_file.read_text(encoding="utf-8"))
        if args.html:
            job = converter.write_html(markdown, output_file, options)
        else:
            job = converter.write_pdf(markdown, output_file, options)
        result = asyncio.run(with_timeout(job, args.timeout))
    except ConversionCancelled as e:
        logger.error(f"{e}. Try fewer or simpler Mermaid diagrams.")
        return 1
    except (ConversionError, OSError, UnicodeDecodeError) as e:
        logger.error(f"Error: {e}")
        return 1

    if result.failed_diagrams:
        logger.warning(f"{result.failed_diagrams} of {result.diagram_count} diagram(s) could not be rendered")
    logger.success(f"Done: {output_file}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
