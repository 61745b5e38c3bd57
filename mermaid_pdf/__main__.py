"""
Allows running the converter as a module: python -m mermaid_pdf <input.md> <output.pdf>

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import sys

from .cli import main

sys.exit(main())
