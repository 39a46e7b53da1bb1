"""
Markdown Content Classifier

Decides whether plain text extracted from a Google Doc was authored as
Markdown source. This is a permissive filter, not a validator: false
positives are acceptable because non-markdown text simply renders as
plain paragraphs.

Main entry points:
- classify(text) -> bool
- evaluate(text) -> ClassificationVerdict

Decision rule:
- At least two distinct signals match, or
- At least one important signal (heading, list, emphasis) matches
"""

import re
from typing import NamedTuple

from ..logger import get_logger
from ..models import ClassificationVerdict

logger = get_logger(__name__)


class MarkdownSignal(NamedTuple):
    """Named predicate over text."""

    name: str
    pattern: re.Pattern
    important: bool = False

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


SIGNAL_PATTERNS = {
    "heading": (r"^#{1,6}[ \t]", True),
    "bullet_list": (r"^[-*+][ \t]", True),
    "ordered_list": (r"^\d+\.[ \t]", True),
    "fenced_code": (r"```[\s\S]*?```", False),
    "inline_code": (r"`[^`\n]+`", False),
    "emphasis": (r"\*\*|__|\*|_", True),
    "link": (r"\[[^\]\n]*\]\([^)\n]*\)", False),
    "blockquote": (r"^>[ \t]", False),
    "table_row": (r"[^|\s][ \t]*\|[ \t]*[^|\s]", False),
    "horizontal_rule": (r"^(?:-{3,}|\*{3,}|_{3,})[ \t]*$", False),
}

SIGNALS = tuple(
    MarkdownSignal(name, re.compile(pattern, re.MULTILINE), important)
    for name, (pattern, important) in SIGNAL_PATTERNS.items()
)

# Two weak signals are enough when no important one matched
MIN_SIGNALS = 2


def matched_signals(text: str) -> list[str]:
    """Return the names of all signals matching ``text``, in table order."""
    if not text or not text.strip():
        return []
    return [signal.name for signal in SIGNALS if signal.matches(text)]


def evaluate(text: str) -> ClassificationVerdict:
    """Classify text and report which signals matched.

    Args:
        text: Plain text of a document, any length, possibly empty

    Returns:
        ClassificationVerdict with the boolean decision and matched signal names
    """
    names = matched_signals(text)
    important = {signal.name for signal in SIGNALS if signal.important}
    is_markdown = len(names) >= MIN_SIGNALS or any(name in important for name in names)

    logger.debug(
        "Classified document text",
        extra_data={"is_markdown": is_markdown, "signals": ",".join(names) or "-", "length": len(text or "")},
    )
    return ClassificationVerdict(is_markdown=is_markdown, signals=names)


def classify(text: str) -> bool:
    """Return True when ``text`` looks like Markdown source."""
    return evaluate(text).is_markdown
