"""Markdown Docs Converter - rebuild Markdown-authored Google Docs.

This package scans a user's Google Drive for documents whose text was
written as Markdown, rebuilds each one as a formatted Google Doc through
ordered Docs API edit requests, exports the results and bundles them in
a downloadable ZIP archive.

Key Features:
- Regex-signal heuristic for Markdown-like text
- HTML tree to Docs edit operation transformer with a cursor-owning builder
- Sequential batch pipeline with per-document outcomes
- Per-job archive storage isolated by Google user
- FastMCP server with HTTP routes and MCP tools
"""

__version__ = "0.1.0"
__author__ = "Markdown Docs Converter Contributors"
__license__ = "MIT"

# Public API exports
from .config import Settings
from .models import ClassificationVerdict, ConversionOutcome, ConversionResult, ConversionStatus
from .pipeline import BatchConverter
from .server import ConverterServer
from .utils.classifier import classify, evaluate
from .utils.structure_transformer import html_to_operations, transform

__all__ = [
    "ConverterServer",
    "BatchConverter",
    "ClassificationVerdict",
    "ConversionOutcome",
    "ConversionResult",
    "ConversionStatus",
    "Settings",
    "classify",
    "evaluate",
    "html_to_operations",
    "transform",
    "__version__",
]
