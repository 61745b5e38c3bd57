"""
PDF generation: assembled HTML -> paginated PDF via Playwright (Chromium).

Every call launches its own browser, so concurrent requests never share
pages, contexts or in-flight state.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

from typing import Optional

from playwright.async_api import async_playwright

from .errors import PdfGenerationError
from .log import logger
from .models import DocumentOptions, parse_scale

BROWSER_ARGS = [
    '--no-sandbox',              # Required in some environments (root in Docker)
    '--disable-setuid-sandbox',
    '--disable-dev-shm-usage',   # Use /tmp instead of /dev/shm (prevents OOM crashes)
]

CRASH_KEYWORDS = [
    "Connection closed", "Browser has been closed", "Target closed",
    "crashed", "Protocol error",
]


class PdfGenerator:
    """Prints an HTML document to PDF bytes using headless Chromium."""

    def __init__(self, content_timeout: float = 30.0, max_attempts: int = 2):
        self.content_timeout = content_timeout
        self.max_attempts = max_attempts

    async def _print_once(self, html: str, options: DocumentOptions) -> bytes:
        playwright = await async_playwright().start()
        try:
            browser = await playwright.chromium.launch(headless=True, args=BROWSER_ARGS)
            try:
                page = await browser.new_page()
                await page.set_content(html, wait_until="networkidle", timeout=self.content_timeout * 1000)
                return await page.pdf(
                    format=options.page_format.value,
                    scale=parse_scale(options.scale),
                    print_background=options.print_background,
                    prefer_css_page_size=False,
                    margin=options.margins.as_dict(),
                )
            finally:
                await browser.close()
        finally:
            await playwright.stop()

    async def generate(self, html: str, options: Optional[DocumentOptions] = None) -> bytes:
        """Render html to PDF bytes.

        Retries once with a fresh browser if Chromium crashes mid-conversion;
        any other failure raises PdfGenerationError with the underlying cause.
        """
        options = options or DocumentOptions()

        for attempt in range(1, self.max_attempts + 1):
            try:
                logger.debug(f"Generating PDF: format={options.page_format.value} scale={options.scale} margins={options.margins.as_dict()}")
                return await self._print_once(html, options)
            except Exception as e:
                error_msg = str(e)
                is_crash = any(kw in error_msg for kw in CRASH_KEYWORDS)

                if is_crash and attempt < self.max_attempts:
                    logger.warning("Browser crashed during PDF generation, restarting and retrying...")
                    continue
                raise PdfGenerationError(f"Failed to generate PDF: {error_msg or type(e).__name__}") from e

        raise PdfGenerationError("Failed to generate PDF")
