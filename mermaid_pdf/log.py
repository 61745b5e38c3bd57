"""
Colored console logging shared by the CLI, the server and the pipeline.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import sys
import threading

from colorama import init, Fore, Style

# Initialize colorama for cross-platform colored output
init(autoreset=True)


class ConsoleLogger:
    """Prints colored, prefixed log lines. Warnings and errors go to stderr."""

    def __init__(self, debug: bool = False):
        self.debug_enabled = debug
        self._lock = threading.Lock()

    def set_debug(self, enabled: bool) -> None:
        self.debug_enabled = enabled

    def _emit(self, prefix: str, message: str, stream=None) -> None:
        with self._lock:
            print(f"{prefix}{Style.RESET_ALL} {message}", file=stream or sys.stdout)

    def debug(self, message: str) -> None:
        """Log debug message with color (only if debug mode is enabled)."""
        if self.debug_enabled:
            self._emit(f"{Fore.CYAN}[DEBUG]", message)

    def info(self, message: str) -> None:
        """Log info message with color."""
        self._emit(f"{Fore.GREEN}[INFO]", message)

    def warning(self, message: str) -> None:
        """Log warning message with color."""
        self._emit(f"{Fore.YELLOW}[WARNING]", message, sys.stderr)

    def error(self, message: str) -> None:
        """Log error message with color."""
        self._emit(f"{Fore.RED}[ERROR]", message, sys.stderr)

    def success(self, message: str) -> None:
        """Log success message with color."""
        self._emit(f"{Fore.GREEN}[OK]", message)


logger = ConsoleLogger()
