"""
Mermaid diagram rendering.

Each block is rendered by the mermaid CLI (mmdc) in its own temporary
workspace. Blocks of one document are rendered concurrently and the batch
always settles: a failing block becomes a failed RenderResult instead of an
exception.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import asyncio
import os
import shutil
import signal
import sys
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Sequence

from tqdm import tqdm

from .config import Config
from .log import logger
from .models import DiagramBlock, RenderResult

FAILURE_PREFIX = "Mermaid render failed"


class RenderFailure(Exception):
    """Raised inside a single render; converted to a failed RenderResult."""


class DiagramRenderer(ABC):
    """Turns one diagram block into SVG markup or a failure reason."""

    @abstractmethod
    async def render(self, block: DiagramBlock) -> RenderResult:
        """Render one block. Expected failures come back as a failed result, not an exception."""


class MermaidCliRenderer(DiagramRenderer):
    """Renders diagrams by running the mermaid CLI against a private temp directory."""

    def __init__(self, mmdc_path: str = "mmdc", puppeteer_config: Optional[str] = None,
                 temp_dir: Optional[str] = None, timeout: float = 60.0):
        self.mmdc_path = mmdc_path
        self.puppeteer_config = puppeteer_config
        self.temp_dir = temp_dir
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: Config) -> "MermaidCliRenderer":
        return cls(
            mmdc_path=config.get_mmdc_path(),
            puppeteer_config=config.get_puppeteer_config(),
            temp_dir=config.get_temp_dir(),
            timeout=config.get_render_timeout(),
        )

    def build_command(self, input_path: Path, output_path: Path) -> List[str]:
        """Command line for one render: input, output, transparent background."""
        args = ["-i", str(input_path), "-o", str(output_path), "-b", "transparent"]
        if self.puppeteer_config:
            # --no-sandbox etc. for Chromium when running as root (e.g. Docker)
            args = ["-p", self.puppeteer_config] + args
        if sys.platform == "win32" and self.mmdc_path.lower().endswith(".cmd"):
            return ["cmd.exe", "/c", self.mmdc_path] + args
        return [self.mmdc_path] + args

    async def _run_mmdc(self, command: List[str]) -> None:
        # Own process group on POSIX so the Chromium that mmdc starts can be killed with it
        extra = {} if sys.platform == "win32" else {"start_new_session": True}
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                **extra,
            )
        except OSError as e:
            raise RenderFailure(f"could not start {command[0]}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            _kill(process)
            await process.wait()
            raise RenderFailure(f"mmdc timed out after {self.timeout:g}s")
        except asyncio.CancelledError:
            # Caller gave up on this request; do not leave the browser running
            _kill(process)
            raise

        if process.returncode != 0:
            detail = (stderr or stdout or b"").decode("utf-8", errors="replace").strip()
            message = f"mmdc exited with code {process.returncode}"
            raise RenderFailure(f"{message}: {detail}" if detail else message)

    async def _render_in_workspace(self, block: DiagramBlock, workspace: Path) -> str:
        input_path = workspace / f"diag-{block.ordinal}.mmd"
        output_path = workspace / f"diag-{block.ordinal}.svg"
        await asyncio.to_thread(input_path.write_text, block.source, encoding="utf-8")

        await self._run_mmdc(self.build_command(input_path, output_path))

        if not output_path.exists():
            raise RenderFailure("mmdc did not produce an output file")
        svg = await asyncio.to_thread(output_path.read_text, encoding="utf-8")
        if "<svg" not in svg:
            raise RenderFailure("mmdc output is not an SVG document")
        return svg

    async def render(self, block: DiagramBlock) -> RenderResult:
        logger.debug(f"Rendering Mermaid diagram {block.ordinal} ({block.id})")
        try:
            workspace = tempfile.mkdtemp(prefix="md2pdf-", dir=self.temp_dir)
        except OSError as e:
            return RenderResult.failed(block.id, f"{FAILURE_PREFIX}: could not create workspace: {e}")

        try:
            svg = await self._render_in_workspace(block, Path(workspace))
        except (RenderFailure, OSError, UnicodeDecodeError) as e:
            return RenderResult.failed(block.id, f"{FAILURE_PREFIX}: {e}")
        finally:
            # Removed on every exit path, cancellation included
            await asyncio.to_thread(shutil.rmtree, workspace, ignore_errors=True)
        return RenderResult.succeeded(block.id, svg)


def _kill(process: asyncio.subprocess.Process) -> None:
    """Kill mmdc and, on POSIX, everything left in its process group."""
    try:
        if sys.platform == "win32":
            if process.returncode is None:
                process.kill()
        else:
            # The group can outlive mmdc itself while its browser still holds the pipes
            os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


async def _settle(renderer: DiagramRenderer, block: DiagramBlock) -> RenderResult:
    """Run one render; an unexpected exception is captured as that block's failure."""
    try:
        result = await renderer.render(block)
    except Exception as e:
        return RenderResult.failed(block.id, f"{FAILURE_PREFIX}: {type(e).__name__}: {e}")
    if result.id != block.id:
        return RenderResult.failed(block.id, f"{FAILURE_PREFIX}: renderer returned result for {result.id!r}")
    return result


async def render_all(blocks: Sequence[DiagramBlock], renderer: DiagramRenderer,
                     max_concurrency: Optional[int] = None, progress: bool = False,
                     description: str = "  Mermaid diagrams") -> List[RenderResult]:
    """Render every block concurrently and return one result per block, in block order.

    Resolves only after every render has succeeded or failed. max_concurrency
    bounds how many external processes run at once for this call.
    """
    if not blocks:
        return []

    semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    with tqdm(total=len(blocks), desc=description, unit="diagram", leave=False, disable=not progress) as pbar:

        async def _one(block: DiagramBlock) -> RenderResult:
            if semaphore is None:
                result = await _settle(renderer, block)
            else:
                async with semaphore:
                    result = await _settle(renderer, block)
            pbar.update(1)
            if not result.ok:
                logger.warning(f"Mermaid diagram {block.ordinal} failed: {result.failure_reason}")
            return result

        results = await asyncio.gather(*(_one(block) for block in blocks))

    return list(results)
