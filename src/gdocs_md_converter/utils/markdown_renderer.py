"""Markdown to HTML rendering with Python-Markdown."""

import markdown

from ..config import settings


def render_html(markdown_text: str, extensions: list[str] | None = None) -> str:
    """Convert Markdown source to an HTML fragment.

    Args:
        markdown_text: Markdown source
        extensions: Python-Markdown extension names (defaults to configured ones)

    Returns:
        HTML fragment (no html/body wrapper)
    """
    if not markdown_text or not markdown_text.strip():
        return ""
    return markdown.markdown(
        markdown_text,
        extensions=settings.markdown_extensions if extensions is None else extensions,
        output_format="html",
    )
