"""
Shared test fixtures: stub diagram renderers, a fake PDF generator and a fake
mermaid CLI executable.
"""

import asyncio
import os
import stat
import sys
from pathlib import Path

import pytest

from mermaid_pdf.errors import PdfGenerationError
from mermaid_pdf.models import RenderResult
from mermaid_pdf.pipeline import DocumentConverter
from mermaid_pdf.renderer import DiagramRenderer

SCENARIO_MARKDOWN = "# Title\n\n```mermaid\nflowchart TD\nA-->B\n```\n\nText."


class StubRenderer(DiagramRenderer):
    """Succeeds with a fixed SVG unless the block id is listed as failing."""

    def __init__(self, svg="<svg>ok</svg>", fail_ids=(), reason="boom", fail_all=False, delay=0.0):
        self.svg = svg
        self.fail_ids = set(fail_ids)
        self.reason = reason
        self.fail_all = fail_all
        self.delay = delay
        self.calls = []

    async def render(self, block):
        self.calls.append(block.id)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_all or block.id in self.fail_ids:
            return RenderResult.failed(block.id, self.reason)
        return RenderResult.succeeded(block.id, self.svg)


class EchoRenderer(DiagramRenderer):
    """Returns an SVG embedding the diagram source, after a per-source delay."""

    def __init__(self, delays=None):
        self.delays = delays or {}

    async def render(self, block):
        await asyncio.sleep(self.delays.get(block.source, 0.01))
        return RenderResult.succeeded(block.id, f"<svg><text>{block.source}</text></svg>")


class FakePdfGenerator:
    def __init__(self, payload=b"%PDF-1.4 fake", error=None):
        self.payload = payload
        self.error = error
        self.calls = []

    async def generate(self, html, options=None):
        self.calls.append((html, options))
        if self.error:
            raise PdfGenerationError(self.error)
        return self.payload


@pytest.fixture
def stub_renderer():
    return StubRenderer()


@pytest.fixture
def fake_pdf():
    return FakePdfGenerator()


@pytest.fixture
def converter(stub_renderer, fake_pdf):
    return DocumentConverter(renderer=stub_renderer, pdf_generator=fake_pdf)


FAKE_MMDC = '''#!{python}
import subprocess, sys, time
args = sys.argv[1:]
src = args[args.index("-i") + 1]
out = args[args.index("-o") + 1]
with open({log!r}, "a") as log:
    log.write(src + "\\n")
source = open(src, encoding="utf-8").read()
if "FAIL" in source:
    sys.stderr.write("Parse error on line 1\\n")
    sys.exit(1)
if "SPAWN" in source:
    # Stands in for the headless browser: inherits our stdout/stderr and outlives us
    child = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(30)"])
    with open({log!r} + ".pid", "w") as f:
        f.write(str(child.pid))
    time.sleep(30)
if "SLEEP" in source:
    time.sleep(30)
if "NOSVG" in source:
    open(out, "w").write("not an image")
    sys.exit(0)
if "NOFILE" in source:
    sys.exit(0)
with open(out, "w", encoding="utf-8") as f:
    f.write('<svg xmlns="http://www.w3.org/2000/svg"><text>' + source + '</text></svg>')
'''


@pytest.fixture
def fake_mmdc(tmp_path):
    """An executable standing in for mmdc. Returns (path, log_file)."""
    if sys.platform == "win32":
        pytest.skip("fake mmdc script relies on a shebang line")
    log_file = tmp_path / "mmdc-calls.log"
    script = tmp_path / "bin" / "mmdc"
    script.parent.mkdir()
    script.write_text(FAKE_MMDC.format(python=sys.executable, log=str(log_file)), encoding="utf-8")
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(script), log_file


def logged_inputs(log_file: Path):
    if not log_file.exists():
        return []
    return [line for line in log_file.read_text().splitlines() if line]


def process_alive(pid: int) -> bool:
    """True while pid is running; an unreaped zombie counts as gone."""
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    stat_file = Path(f"/proc/{pid}/stat")
    if stat_file.exists():
        try:
            return stat_file.read_text().rsplit(")", 1)[1].split()[0] != "Z"
        except (OSError, IndexError):
            return False
    return True
