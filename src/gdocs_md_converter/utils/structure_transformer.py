"""
HTML to Google Docs Structure Transformer

Walks the HTML produced by the Markdown renderer and emits the ordered
edit operations that rebuild the content, with styling, inside an empty
Google Doc through ``documents.batchUpdate``.

Main entry points:
- html_to_operations(html_content) -> list[EditOperation]
- transform(root) -> list[EditOperation]
- operations_to_requests(operations) -> list[dict]

Conversion Rules:
- Skip script/style subtrees and non-element nodes
- Descend into layout containers (div, section, table, ...) without emitting
- Emit every other element once, as one paragraph of its trimmed text
- Unwrap lists into prefixed items ("• " or "1. ") with indentation
- Emit table rows as tab-separated paragraphs, header rows in bold
- Style inline runs (bold, italic, code, links) inside each paragraph

Operations are positional: each insertion lands at the cursor left by
the previous one, so the list must be applied in order.
"""

from typing import Any, Literal, NamedTuple

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PageElement, PreformattedString
from pydantic import BaseModel, Field

from ..logger import get_logger

logger = get_logger(__name__)

# Index 0 is the implicit document start in the Docs model
DOCUMENT_START_INDEX = 1

BULLET = "• "
INDENT_STEP_PT = 36


def utf16_len(text: str) -> int:
    """Length of ``text`` in UTF-16 code units, the unit of Docs indexes."""
    return len(text.encode("utf-16-le")) // 2


def _dimension(magnitude: float) -> dict[str, Any]:
    return {"magnitude": magnitude, "unit": "PT"}


def _rgb(level: float) -> dict[str, Any]:
    return {"color": {"rgbColor": {"red": level, "green": level, "blue": level}}}


def _range(start_index: int, end_index: int) -> dict[str, int]:
    return {"startIndex": start_index, "endIndex": end_index}


class InsertText(BaseModel):
    """Insert ``text`` at ``index``."""

    kind: Literal["insert_text"] = "insert_text"
    index: int = Field(..., ge=DOCUMENT_START_INDEX)
    text: str

    def to_requests(self) -> list[dict[str, Any]]:
        return [{"insertText": {"location": {"index": self.index}, "text": self.text}}]


class SetTextStyle(BaseModel):
    """Apply character styling to the half-open range [start_index, end_index)."""

    kind: Literal["set_text_style"] = "set_text_style"
    start_index: int
    end_index: int
    text_style: dict[str, Any]

    def to_requests(self) -> list[dict[str, Any]]:
        return [
            {
                "updateTextStyle": {
                    "range": _range(self.start_index, self.end_index),
                    "textStyle": self.text_style,
                    "fields": ",".join(self.text_style),
                }
            }
        ]


class SetParagraphStyle(BaseModel):
    """Apply paragraph styling, optionally combined with the paragraph's text style."""

    kind: Literal["set_paragraph_style"] = "set_paragraph_style"
    start_index: int
    end_index: int
    paragraph_style: dict[str, Any]
    text_style: dict[str, Any] | None = None

    def to_requests(self) -> list[dict[str, Any]]:
        requests = [
            {
                "updateParagraphStyle": {
                    "range": _range(self.start_index, self.end_index),
                    "paragraphStyle": self.paragraph_style,
                    "fields": ",".join(self.paragraph_style),
                }
            }
        ]
        if self.text_style:
            requests.extend(
                SetTextStyle(
                    start_index=self.start_index, end_index=self.end_index, text_style=self.text_style
                ).to_requests()
            )
        return requests


EditOperation = InsertText | SetTextStyle | SetParagraphStyle


class InlineRun(NamedTuple):
    """Styled span inside a paragraph, in UTF-16 offsets from the paragraph start."""

    start: int
    end: int
    style: dict[str, Any]


MONOSPACE = {"weightedFontFamily": {"fontFamily": "Courier New"}}
CODE_BLOCK_TEXT = {**MONOSPACE, "backgroundColor": _rgb(0.95)}
NORMAL_TEXT = {"namedStyleType": "NORMAL_TEXT"}

HEADING_SIZES = {"h1": 24, "h2": 20, "h3": 16, "h4": 14, "h5": 12, "h6": 11}

# tag -> (paragraph style, text style)
BLOCK_STYLES: dict[str, tuple[dict[str, Any], dict[str, Any] | None]] = {
    **{
        tag: ({"namedStyleType": f"HEADING_{tag[1]}"}, {"bold": True, "fontSize": _dimension(size)})
        for tag, size in HEADING_SIZES.items()
    },
    "p": (NORMAL_TEXT, None),
    "pre": (NORMAL_TEXT, CODE_BLOCK_TEXT),
    "code": (NORMAL_TEXT, CODE_BLOCK_TEXT),
    "blockquote": (
        {
            **NORMAL_TEXT,
            "indentStart": _dimension(INDENT_STEP_PT),
            "borderLeft": {
                "color": _rgb(0.6),
                "width": _dimension(3),
                "padding": _dimension(6),
                "dashStyle": "SOLID",
            },
        },
        {"italic": True},
    ),
}
DEFAULT_BLOCK_STYLE = (NORMAL_TEXT, None)

INLINE_STYLES = {
    "strong": {"bold": True},
    "b": {"bold": True},
    "em": {"italic": True},
    "i": {"italic": True},
    "code": MONOSPACE,
    "del": {"strikethrough": True},
    "s": {"strikethrough": True},
}

SKIPPED_TAGS = frozenset({"script", "style", "head", "template", "noscript"})
LIST_TAGS = frozenset({"ul", "ol"})
CONTAINER_TAGS = frozenset(
    {
        "[document]",
        "html",
        "body",
        "div",
        "section",
        "article",
        "main",
        "header",
        "footer",
        "nav",
        "aside",
        "figure",
        "table",
        "thead",
        "tbody",
        "tfoot",
    }
)
# Text of these blocks is kept verbatim apart from surrounding blank lines
PREFORMATTED_TAGS = frozenset({"pre"})


def list_item_style(depth: int) -> dict[str, Any]:
    indent = _dimension(INDENT_STEP_PT * (depth + 1))
    return {**NORMAL_TEXT, "indentStart": indent, "indentFirstLine": indent}


class DocumentEditBuilder:
    """Owns the cursor and the ordered edit operations of one document."""

    def __init__(self, start_index: int = DOCUMENT_START_INDEX):
        self.cursor = start_index
        self.operations: list[EditOperation] = []

    def add_paragraph(
        self,
        text: str,
        paragraph_style: dict[str, Any],
        text_style: dict[str, Any] | None = None,
        runs: list[InlineRun] | tuple[InlineRun, ...] = (),
    ) -> bool:
        """Append one styled paragraph at the cursor.

        Returns:
            False when ``text`` is blank and nothing was emitted
        """
        if not text.strip():
            return False

        start = self.cursor
        length = utf16_len(text)
        self.operations.append(InsertText(index=start, text=text + "\n"))
        self.operations.append(
            SetParagraphStyle(
                start_index=start,
                end_index=start + length,
                paragraph_style=paragraph_style,
                text_style=text_style or None,
            )
        )
        for run in runs:
            self.operations.append(
                SetTextStyle(start_index=start + run.start, end_index=start + run.end, text_style=run.style)
            )
        self.cursor = start + length + 1
        return True

    def to_requests(self) -> list[dict[str, Any]]:
        return operations_to_requests(self.operations)


def _inline_style(tag: Tag) -> dict[str, Any] | None:
    if tag.name == "a":
        href = tag.get("href")
        return {"link": {"url": href}} if href else None
    return INLINE_STYLES.get(tag.name)


def collect_text(
    node: Tag, exclude: frozenset[str] = frozenset(), with_runs: bool = True, preformatted: bool = False
) -> tuple[str, list[InlineRun]]:
    """Gather the trimmed text of ``node`` and the inline runs inside it.

    Args:
        node: Element whose descendants are read
        exclude: Tag names whose subtrees are left out (nested lists)
        with_runs: Record inline style runs
        preformatted: Keep leading indentation, strip only blank lines

    Returns:
        Tuple of (text, runs) with run offsets relative to the trimmed text
    """
    parts: list[str] = []
    spans: list[tuple[int, int, dict[str, Any]]] = []
    position = 0

    # (element, start offset); a start offset marks the element's closing visit
    stack: list[tuple[PageElement, int | None]] = [(child, None) for child in reversed(node.contents)]
    while stack:
        current, start = stack.pop()
        if start is not None:
            style = _inline_style(current) if with_runs else None
            if style and position > start:
                spans.append((start, position, style))
            continue
        if isinstance(current, NavigableString):
            if not isinstance(current, PreformattedString):
                parts.append(str(current))
                position += len(current)
            continue
        if not isinstance(current, Tag) or current.name in SKIPPED_TAGS or current.name in exclude:
            continue
        if current.name == "br":
            parts.append("\n")
            position += 1
            continue
        stack.append((current, position))
        stack.extend((child, None) for child in reversed(current.contents))

    raw = "".join(parts)
    text = raw.strip("\n").rstrip() if preformatted else raw.strip()
    lead = len(raw) - len(raw.lstrip("\n" if preformatted else None))

    runs = []
    for start, end, style in sorted(spans, key=lambda span: (span[0], -span[1])):
        start, end = max(start - lead, 0), min(end - lead, len(text))
        if end > start and text[start:end].strip():
            runs.append(InlineRun(utf16_len(text[:start]), utf16_len(text[:end]), style))
    return text, runs


def _shift(runs: list[InlineRun], offset: int) -> list[InlineRun]:
    return [InlineRun(run.start + offset, run.end + offset, run.style) for run in runs]


class StructureTransformer:
    """Turns a parsed HTML tree into Docs edit operations."""

    def __init__(self, start_index: int = DOCUMENT_START_INDEX):
        self.builder = DocumentEditBuilder(start_index)

    def transform(self, root: Tag) -> list[EditOperation]:
        body = root.find("body") if root.name in ("[document]", "html") else None
        # (node, list depth, item prefix); a prefix marks a list item awaiting emission
        stack: list[tuple[Tag, int, str | None]] = [(body or root, 0, None)]
        while stack:
            node, depth, prefix = stack.pop()
            if prefix is not None:
                self._emit_item(node, depth, prefix)
                nested = node.find_all(list(LIST_TAGS), recursive=False)
                stack.extend((child, depth + 1, None) for child in reversed(nested))
            elif node.name in SKIPPED_TAGS:
                continue
            elif node.name in LIST_TAGS:
                stack.extend(reversed(_list_items(node, depth)))
            elif node.name in CONTAINER_TAGS:
                stack.extend((child, depth, None) for child in reversed(node.contents) if isinstance(child, Tag))
            elif node.name == "tr":
                self._emit_row(node)
            else:
                self._emit_block(node)
        return self.builder.operations

    def _emit_block(self, node: Tag) -> None:
        paragraph_style, text_style = BLOCK_STYLES.get(node.name, DEFAULT_BLOCK_STYLE)
        preformatted = node.name in PREFORMATTED_TAGS
        text, runs = collect_text(node, with_runs=not preformatted, preformatted=preformatted)
        self.builder.add_paragraph(text, paragraph_style, text_style, runs)

    def _emit_item(self, item: Tag, depth: int, prefix: str) -> None:
        text, runs = collect_text(item, exclude=LIST_TAGS)
        if text:
            self.builder.add_paragraph(prefix + text, list_item_style(depth), runs=_shift(runs, utf16_len(prefix)))

    def _emit_row(self, row: Tag) -> None:
        cells = row.find_all(["td", "th"], recursive=False)
        if not cells:
            return
        text = "\t".join(collect_text(cell, with_runs=False)[0] for cell in cells)
        header = all(cell.name == "th" for cell in cells)
        self.builder.add_paragraph(text, NORMAL_TEXT, {"bold": True} if header else None)


def _list_start(node: Tag) -> int:
    try:
        return int(node.get("start", 1))
    except (TypeError, ValueError):
        return 1


def _list_items(node: Tag, depth: int) -> list[tuple[Tag, int, str]]:
    """Direct items of a ``ul``/``ol`` with their prefixes ("• " or "n. ")."""
    ordered = node.name == "ol"
    start = _list_start(node)
    return [
        (item, depth, f"{start + offset}. " if ordered else BULLET)
        for offset, item in enumerate(node.find_all("li", recursive=False))
    ]


def transform(root: Tag, start_index: int = DOCUMENT_START_INDEX) -> list[EditOperation]:
    """Walk a parsed HTML tree and return the ordered edit operations.

    Args:
        root: BeautifulSoup document or element
        start_index: Cursor position of the first insertion

    Returns:
        Ordered list of InsertText / SetParagraphStyle / SetTextStyle operations
    """
    operations = StructureTransformer(start_index).transform(root)
    logger.debug("Transformed HTML tree", extra_data={"operations": len(operations)})
    return operations


def html_to_operations(html_content: str, start_index: int = DOCUMENT_START_INDEX) -> list[EditOperation]:
    """Parse an HTML fragment and return the ordered edit operations."""
    if not html_content or not html_content.strip():
        return []
    return transform(BeautifulSoup(html_content, "html.parser"), start_index)


def operations_to_requests(operations: list[EditOperation]) -> list[dict[str, Any]]:
    """Serialise operations to ``documents.batchUpdate`` request dicts, preserving order."""
    return [request for operation in operations for request in operation.to_requests()]
