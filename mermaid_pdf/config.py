"""
Process-wide configuration, resolved once at startup.

Precedence (highest first): explicit overrides passed to Config, environment
variables, built-in defaults.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import os
import shutil
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from .log import logger

DEFAULTS = {
    "mmdc_path": None,
    "puppeteer_config": None,
    "temp_dir": None,
    "render_timeout": 60.0,
    "max_concurrent_renders": 4,
    "preview_timeout": 90.0,
    "pdf_timeout": 30.0,
    "debug": False,
    "host": "127.0.0.1",
    "port": 3333,
}

ENV_VARS = {
    "mmdc_path": "MERMAID_PDF_MMDC",
    "puppeteer_config": "MERMAID_PDF_PUPPETEER_CONFIG",
    "temp_dir": "MERMAID_PDF_TEMP_DIR",
    "render_timeout": "MERMAID_PDF_RENDER_TIMEOUT",
    "max_concurrent_renders": "MERMAID_PDF_MAX_RENDERS",
    "preview_timeout": "MERMAID_PDF_PREVIEW_TIMEOUT",
    "pdf_timeout": "MERMAID_PDF_PDF_TIMEOUT",
    "debug": "MERMAID_PDF_DEBUG",
    "host": "HOST",
    "port": "PORT",
}


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _parse_positive(value: Any, cast, key: str):
    """Parse a positive number, falling back to the default on bad input."""
    try:
        parsed = cast(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid value for {key}: {value!r}. Using default {DEFAULTS[key]}.")
        return DEFAULTS[key]
    if parsed <= 0:
        logger.warning(f"{key} must be greater than 0, got {value!r}. Using default {DEFAULTS[key]}.")
        return DEFAULTS[key]
    return parsed


class Config:
    """Configuration for the converter, the renderer and the web server."""

    def __init__(self, overrides: Optional[Dict[str, Any]] = None, environ: Optional[Dict[str, str]] = None, base_dir: Optional[Path] = None):
        self._environ = os.environ if environ is None else environ
        self._base_dir = Path(base_dir) if base_dir else Path.cwd()
        self._values: Dict[str, Any] = dict(DEFAULTS)

        for key, env_name in ENV_VARS.items():
            raw = self._environ.get(env_name)
            if raw not in (None, ""):
                self._values[key] = raw

        for key, value in (overrides or {}).items():
            if key not in DEFAULTS:
                raise ValueError(f"Unknown configuration key '{key}'. Available keys: {', '.join(DEFAULTS)}")
            if value is not None:
                self._values[key] = value

        # Normalise types once so getters stay trivial
        self._values["render_timeout"] = _parse_positive(self._values["render_timeout"], float, "render_timeout")
        self._values["preview_timeout"] = _parse_positive(self._values["preview_timeout"], float, "preview_timeout")
        self._values["pdf_timeout"] = _parse_positive(self._values["pdf_timeout"], float, "pdf_timeout")
        self._values["max_concurrent_renders"] = _parse_positive(self._values["max_concurrent_renders"], int, "max_concurrent_renders")
        self._values["port"] = _parse_positive(self._values["port"], int, "port")
        self._values["debug"] = _parse_bool(self._values["debug"])

        self._mmdc_path = self._resolve_mmdc_path()
        self._puppeteer_config = self._resolve_puppeteer_config()

    def _resolve_mmdc_path(self) -> str:
        """Locate the mermaid CLI: explicit setting, bundled node_modules, PATH."""
        explicit = self._values["mmdc_path"]
        if explicit:
            return str(explicit)

        bin_dir = self._base_dir / "node_modules" / ".bin"
        candidates = ["mmdc.cmd", "mmdc"] if sys.platform == "win32" else ["mmdc"]
        for name in candidates:
            bundled = bin_dir / name
            if bundled.exists():
                return str(bundled)

        found = shutil.which("mmdc")
        return found if found else "mmdc"

    def _resolve_puppeteer_config(self) -> Optional[str]:
        explicit = self._values["puppeteer_config"]
        if explicit:
            return str(explicit)
        bundled = self._base_dir / "puppeteer-config.json"
        return str(bundled) if bundled.exists() else None

    def get_mmdc_path(self) -> str:
        return self._mmdc_path

    def get_puppeteer_config(self) -> Optional[str]:
        return self._puppeteer_config

    def get_temp_dir(self) -> str:
        """Root directory under which per-diagram workspaces are created."""
        return str(self._values["temp_dir"] or tempfile.gettempdir())

    def get_render_timeout(self) -> float:
        return self._values["render_timeout"]

    def get_max_concurrent_renders(self) -> int:
        return self._values["max_concurrent_renders"]

    def get_preview_timeout(self) -> float:
        return self._values["preview_timeout"]

    def get_pdf_timeout(self) -> float:
        return self._values["pdf_timeout"]

    def get_debug(self) -> bool:
        return self._values["debug"]

    def get_host(self) -> str:
        return str(self._values["host"])

    def get_port(self) -> int:
        return self._values["port"]
