"""
Web API for the preview / download UI.

Routes: POST /api/preview, POST /api/pdf, GET /api/health, GET /sample.plan.md

Dependencies: fastapi, uvicorn, mermaid_pdf.pipeline
System role: HTTP boundary; validates input before it reaches the pipeline

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import uvicorn
from fastapi import Depends, FastAPI, Header, Request
from fastapi.responses import FileResponse, JSONResponse, Response
from pydantic import BaseModel

from .config import Config
from .errors import ConversionCancelled, ConversionError, InputValidationError
from .log import logger
from .models import DocumentOptions
from .pipeline import DocumentConverter, LatestOnly, with_timeout
from .validation import validate_markdown

SAMPLE_FILE = Path(__file__).parent / "sample.plan.md"
PREVIEW_TIMEOUT_MESSAGE = "Preview timed out. Try fewer or simpler Mermaid diagrams."
SUPERSEDED_MESSAGE = "Preview superseded by a newer request."


class PreviewRequest(BaseModel):
    # Typed loosely so validate_markdown can report the specific problem
    markdown: Any = None
    diagramMaxWidth: Any = None


class PdfRequest(BaseModel):
    markdown: Any = None
    options: Any = None


@lru_cache
def get_config() -> Config:
    return Config()


@lru_cache
def get_converter() -> DocumentConverter:
    return DocumentConverter.from_config(get_config())


def _error_response(error: Exception) -> JSONResponse:
    """Map a pipeline exception to the JSON error the client shows."""
    if isinstance(error, InputValidationError):
        return JSONResponse({"error": error.message}, status_code=error.status)
    if isinstance(error, ConversionCancelled):
        if error.timeout is not None:
            return JSONResponse({"error": PREVIEW_TIMEOUT_MESSAGE}, status_code=504)
        return JSONResponse({"error": SUPERSEDED_MESSAGE}, status_code=409)
    if isinstance(error, ConversionError):
        logger.error(str(error))
        return JSONResponse({"error": str(error)}, status_code=500)
    logger.error(f"Unexpected conversion error: {type(error).__name__}: {error}")
    return JSONResponse({"error": str(error) or type(error).__name__}, status_code=500)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Application with the preview, PDF and sample routes registered
    """
    app = FastAPI(
        title="Mermaid PDF",
        description="Markdown with Mermaid diagrams to styled HTML preview and PDF",
        version="0.1.0",
    )
    app.state.previews = LatestOnly()

    @app.get("/api/health")
    async def health() -> dict:
        return {"status": "ok"}

    @app.get("/sample.plan.md")
    async def sample():
        if not SAMPLE_FILE.exists():
            return Response("Sample file not found", status_code=404, media_type="text/plain")
        return FileResponse(SAMPLE_FILE, media_type="text/markdown")

    @app.post("/api/preview")
    async def preview(
        body: PreviewRequest,
        request: Request,
        converter: DocumentConverter = Depends(get_converter),
        config: Config = Depends(get_config),
        x_preview_session: Optional[str] = Header(default=None),
    ):
        """
        Render Markdown to a complete HTML document for the preview frame.

        Body: {markdown, diagramMaxWidth?}. Returns {html} or {error}.
        A request carrying the same X-Preview-Session as an in-flight one
        supersedes it; the older request answers 409.
        """
        try:
            markdown = validate_markdown(body.markdown)
            options = DocumentOptions(diagram_max_width=body.diagramMaxWidth)
            job = with_timeout(converter.to_html(markdown, options), config.get_preview_timeout())
            if x_preview_session:
                result = await request.app.state.previews.run(x_preview_session, job)
            else:
                result = await job
        except Exception as e:
            return _error_response(e)

        return JSONResponse(
            {"html": result.html},
            headers={"X-Diagram-Failures": str(result.failed_diagrams)},
        )

    @app.post("/api/pdf")
    async def pdf(body: PdfRequest, converter: DocumentConverter = Depends(get_converter)):
        """
        Convert Markdown to a PDF download.

        Body: {markdown, options?}; options may carry format, scale,
        printBackground, margin, diagramMaxWidth and filename.
        """
        try:
            markdown = validate_markdown(body.markdown)
            options = DocumentOptions.from_mapping(body.options)
            result = await converter.to_pdf(markdown, options)
        except Exception as e:
            return _error_response(e)

        logger.success(f"Generated {options.output_filename} ({len(result.pdf)} bytes)")
        return Response(
            content=result.pdf,
            media_type="application/pdf",
            headers={
                "Content-Disposition": f'attachment; filename="{options.output_filename}"',
                "X-Diagram-Failures": str(result.failed_diagrams),
            },
        )

    return app


app = create_app()


def main() -> None:
    """Run the HTTP API server."""
    config = get_config()
    logger.set_debug(config.get_debug())
    logger.info(f"Mermaid PDF API listening on http://{config.get_host()}:{config.get_port()} (POST /api/preview, POST /api/pdf)")
    uvicorn.run(app, host=config.get_host(), port=config.get_port())


if __name__ == "__main__":
    main()
