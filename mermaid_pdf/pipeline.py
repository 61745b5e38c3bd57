"""
End-to-end conversion: extract -> render all diagrams -> assemble -> (PDF).

A DocumentConverter holds only immutable collaborators; every call builds its
own blocks, results and workspaces, so concurrent conversions are isolated.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import asyncio
import os
import stat
import tempfile
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Awaitable, Dict, Optional, TypeVar

from .assembler import assemble
from .config import Config
from .errors import ConversionCancelled
from .extractor import extract
from .log import logger
from .models import DocumentOptions
from .pdf import PdfGenerator
from .renderer import DiagramRenderer, MermaidCliRenderer, render_all

T = TypeVar("T")


@dataclass(frozen=True)
class ConversionResult:
    html: str
    diagram_count: int
    failed_diagrams: int
    pdf: Optional[bytes] = None


class DocumentConverter:
    """Converts Markdown with Mermaid blocks into styled HTML or PDF."""

    def __init__(self, renderer: DiagramRenderer, pdf_generator: Optional[PdfGenerator] = None,
                 max_concurrent_renders: Optional[int] = None, progress: bool = False):
        self.renderer = renderer
        self.pdf_generator = pdf_generator or PdfGenerator()
        self.max_concurrent_renders = max_concurrent_renders
        self.progress = progress

    @classmethod
    def from_config(cls, config: Config, progress: bool = False) -> "DocumentConverter":
        return cls(
            renderer=MermaidCliRenderer.from_config(config),
            pdf_generator=PdfGenerator(content_timeout=config.get_pdf_timeout()),
            max_concurrent_renders=config.get_max_concurrent_renders(),
            progress=progress,
        )

    async def to_html(self, markdown: str, options: Optional[DocumentOptions] = None) -> ConversionResult:
        """Run the pipeline up to the styled HTML document."""
        options = options or DocumentOptions()
        extraction = extract(markdown)
        blocks = extraction.blocks

        results = []
        if blocks:
            logger.info(f"Rendering {len(blocks)} Mermaid diagram(s)...")
            results = await render_all(blocks, self.renderer, self.max_concurrent_renders, self.progress)

        failed = sum(1 for result in results if not result.ok)
        if failed:
            logger.warning(f"{failed} diagram(s) could not be rendered and will show an error placeholder.")

        html = assemble(extraction.rewritten, results, options)
        return ConversionResult(html=html, diagram_count=len(blocks), failed_diagrams=failed)

    async def to_pdf(self, markdown: str, options: Optional[DocumentOptions] = None) -> ConversionResult:
        """Run the full pipeline, including PDF generation."""
        options = options or DocumentOptions()
        result = await self.to_html(markdown, options)
        logger.info("Generating PDF...")
        pdf = await self.pdf_generator.generate(result.html, options)
        return replace(result, pdf=pdf)

    async def write_pdf(self, markdown: str, output_path: Path, options: Optional[DocumentOptions] = None) -> ConversionResult:
        """Convert and write the PDF; the target file only appears once complete."""
        result = await self.to_pdf(markdown, options)
        write_atomic(Path(output_path), result.pdf)
        return result

    async def write_html(self, markdown: str, output_path: Path, options: Optional[DocumentOptions] = None) -> ConversionResult:
        result = await self.to_html(markdown, options)
        write_atomic(Path(output_path), result.html.encode("utf-8"))
        return result


def write_atomic(path: Path, data: bytes) -> None:
    """Write to a sibling temp file, then rename over the target.

    The result gets the mode a plain open() would give it: the existing
    target's mode, or 0666 minus the umask for a new file.
    """
    directory = path.parent if str(path.parent) else Path(".")
    directory.mkdir(parents=True, exist_ok=True)
    mode = _target_mode(path)
    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".part", dir=directory)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.chmod(temp_name, mode)
        os.replace(temp_name, path)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise


def _target_mode(path: Path) -> int:
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        # os.umask can only be read by setting it
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


async def with_timeout(awaitable: Awaitable[T], timeout: Optional[float]) -> T:
    """Await with an upper bound; running out of time is a cancellation, not a failure."""
    if not timeout:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError:
        raise ConversionCancelled(f"Conversion timed out after {timeout:g}s", timeout=timeout)


class LatestOnly:
    """At most one in-flight conversion per key; a newer call supersedes the older one.

    The superseded caller gets ConversionCancelled. Its task is cancelled,
    which removes its diagram workspaces and stops its mmdc processes.
    """

    def __init__(self):
        self._tasks: Dict[str, asyncio.Task] = {}

    def in_flight(self, key: str) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()

    async def run(self, key: str, awaitable: Awaitable[T]) -> T:
        previous = self._tasks.get(key)
        if previous is not None and not previous.done():
            logger.debug(f"Superseding in-flight conversion for {key}")
            previous.cancel()

        task = asyncio.ensure_future(awaitable)
        self._tasks[key] = task
        try:
            return await task
        except asyncio.CancelledError:
            if task.cancelled() and self._tasks.get(key) is not task:
                raise ConversionCancelled("Superseded by a newer request")
            raise
        finally:
            if self._tasks.get(key) is task:
                del self._tasks[key]
