"""
Checks for the external programs the converter drives: the mermaid CLI and
Playwright's Chromium.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import subprocess
from pathlib import Path
from typing import List, Optional

from .config import Config
from .log import logger


def check_command(cmd: List[str], description: str) -> bool:
    """Check if a command is available."""
    try:
        subprocess.run(cmd, check=True, capture_output=True, timeout=60)
        logger.success(f"{description} is available")
        return True
    except (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError):
        logger.error(f"{description} is not available")
        return False


def check_chromium() -> bool:
    """Check that Playwright has a Chromium build installed."""
    try:
        from playwright.sync_api import sync_playwright

        with sync_playwright() as p:
            executable = p.chromium.executable_path
    except Exception as e:
        logger.error(f"Playwright Chromium is not available: {e}")
        return False

    if not executable or not Path(executable).exists():
        logger.error("Playwright Chromium is not installed. Run: python -m playwright install chromium")
        return False
    logger.success("Playwright Chromium is available")
    return True


def check_dependencies(config: Optional[Config] = None, check_pdf: bool = True) -> bool:
    """Check every external dependency; returns False if any is missing."""
    config = config or Config()
    mmdc = config.get_mmdc_path()
    ok = check_command([mmdc, "--version"], f"Mermaid CLI ({mmdc})")
    if not ok:
        logger.info("Install it with: npm install -g @mermaid-js/mermaid-cli")
    if check_pdf:
        ok = check_chromium() and ok
    return ok
