"""
Google Docs Text Extractor

Flattens a Docs API ``documents.get`` payload into plain text so the
classifier and the Markdown renderer can read what the author typed.

Main entry point: extract_text(document) -> str

Flattening rules:
- Paragraphs yield the concatenation of their text runs, without the
  trailing paragraph newline
- Tables yield rows, then cells, then each cell's nested content
- Tables of contents yield their nested content
- Section breaks and other blocks yield nothing
- Top-level blocks are joined with a newline
"""

from typing import Any

from ..exceptions import ContentExtractionFailure
from ..logger import get_logger

logger = get_logger(__name__)


def paragraph_text(paragraph: dict[str, Any]) -> str:
    """Concatenate the text runs of a paragraph."""
    parts = []
    for element in paragraph.get("elements", []):
        text_run = element.get("textRun")
        if text_run and text_run.get("content"):
            parts.append(text_run["content"])
    return "".join(parts).rstrip("\n")


def flatten_blocks(blocks: list[dict[str, Any]]) -> list[str]:
    """Flatten structural elements depth-first into a list of lines."""
    lines = []
    for block in blocks:
        if "paragraph" in block:
            lines.append(paragraph_text(block["paragraph"]))
        elif "table" in block:
            for row in block["table"].get("tableRows", []):
                for cell in row.get("tableCells", []):
                    lines.extend(flatten_blocks(cell.get("content", [])))
        elif "tableOfContents" in block:
            lines.extend(flatten_blocks(block["tableOfContents"].get("content", [])))
    return lines


def extract_body_text(document: dict[str, Any]) -> str:
    """Flatten a document body, raising on malformed payloads.

    Raises:
        ContentExtractionFailure: If the payload is not a Docs document structure
    """
    try:
        blocks = document["body"]["content"]
        return "\n".join(flatten_blocks(blocks))
    except (KeyError, TypeError, AttributeError) as exc:
        raise ContentExtractionFailure(f"Malformed document body: {exc!r}") from exc


def extract_text(document: dict[str, Any]) -> str:
    """Extract plain text from a Docs API document.

    Args:
        document: Payload returned by ``documents.get``

    Returns:
        ExtractedText, or an empty string when the payload is malformed
    """
    try:
        return extract_body_text(document)
    except ContentExtractionFailure as exc:
        logger.warning(
            "Content extraction failed, treating document as empty",
            extra_data={"document_id": _document_id(document), "error": str(exc)},
        )
        return ""


def _document_id(document: Any) -> str | None:
    return document.get("documentId") if isinstance(document, dict) else None
