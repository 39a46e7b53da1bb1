"""Tests for the HTML to Docs edit operation transformer."""

import pytest
from bs4 import BeautifulSoup
from pydantic import ValidationError

from gdocs_md_converter.utils.markdown_renderer import render_html
from gdocs_md_converter.utils.structure_transformer import (
    BULLET,
    CODE_BLOCK_TEXT,
    NORMAL_TEXT,
    DocumentEditBuilder,
    InlineRun,
    InsertText,
    SetParagraphStyle,
    SetTextStyle,
    html_to_operations,
    list_item_style,
    operations_to_requests,
    transform,
    utf16_len,
)


def inserted(operations):
    return [op for op in operations if isinstance(op, InsertText)]


class TestBlocks:
    """Test block-level emission."""

    def test_heading_and_paragraph(self):
        """A heading and a paragraph produce exactly four operations."""
        operations = html_to_operations("<h1>Title</h1><p>Body</p>")

        assert len(operations) == 4
        assert operations[0] == InsertText(index=1, text="Title\n")
        assert isinstance(operations[1], SetParagraphStyle)
        assert (operations[1].start_index, operations[1].end_index) == (1, 6)
        assert operations[1].paragraph_style == {"namedStyleType": "HEADING_1"}
        assert operations[1].text_style["bold"] is True
        assert operations[1].text_style["fontSize"] == {"magnitude": 24, "unit": "PT"}
        assert operations[2] == InsertText(index=7, text="Body\n")
        assert (operations[3].start_index, operations[3].end_index) == (7, 11)
        assert operations[3].paragraph_style == NORMAL_TEXT

    @pytest.mark.parametrize("level", range(1, 7))
    def test_heading_levels(self, level):
        """Each heading level maps to its named style."""
        operations = html_to_operations(f"<h{level}>Heading</h{level}>")
        assert operations[1].paragraph_style["namedStyleType"] == f"HEADING_{level}"

    def test_whitespace_only_element_emits_nothing(self):
        """Blank blocks leave no trace."""
        assert html_to_operations("<p>   \n\t</p>") == []

    def test_empty_input(self):
        """Empty HTML yields no operations."""
        assert html_to_operations("") == []
        assert html_to_operations("   ") == []

    def test_text_is_trimmed(self):
        """Leading and trailing whitespace is removed from block text."""
        operations = html_to_operations("<p>\n  spaced out  \n</p>")
        assert operations[0].text == "spaced out\n"

    def test_unknown_tag_uses_normal_text(self):
        """Tags without a style entry still become a normal paragraph."""
        operations = html_to_operations("<span>loose</span>")
        assert operations[0].text == "loose\n"
        assert operations[1].paragraph_style == NORMAL_TEXT
        assert operations[1].text_style is None

    def test_containers_are_transparent(self):
        """Layout containers emit only their children."""
        operations = html_to_operations("<div><section><p>one</p></section><p>two</p></div>")
        assert [op.text for op in inserted(operations)] == ["one\n", "two\n"]

    def test_script_and_style_skipped(self):
        """Script and style subtrees are never emitted."""
        operations = html_to_operations("<script>alert(1)</script><style>p{}</style><p>kept</p>")
        assert [op.text for op in inserted(operations)] == ["kept\n"]

    def test_comments_ignored(self):
        """HTML comments contribute no text."""
        operations = html_to_operations("<p>visible<!-- hidden --></p>")
        assert operations[0].text == "visible\n"

    def test_preformatted_block_keeps_indentation(self):
        """Code blocks keep inner indentation and get monospace styling."""
        operations = html_to_operations("<pre><code>def f():\n    return 1\n</code></pre>")
        assert operations[0].text == "def f():\n    return 1\n"
        assert operations[1].text_style == CODE_BLOCK_TEXT
        assert len(operations) == 2

    def test_blockquote_is_one_paragraph(self):
        """A blockquote is emitted once with its nested paragraph text."""
        operations = html_to_operations("<blockquote>\n<p>Quoted words</p>\n</blockquote>")
        assert len(operations) == 2
        assert operations[0].text == "Quoted words\n"
        assert operations[1].text_style == {"italic": True}
        assert "borderLeft" in operations[1].paragraph_style


class TestInlineRuns:
    """Test character styling inside paragraphs."""

    def test_bold_run(self):
        """Strong text is styled over its exact span."""
        operations = html_to_operations("<p>a <strong>bold</strong> move</p>")
        assert operations[0].text == "a bold move\n"
        run = operations[2]
        assert isinstance(run, SetTextStyle)
        assert (run.start_index, run.end_index) == (3, 7)
        assert run.text_style == {"bold": True}

    def test_link_run(self):
        """Anchors carry their href."""
        operations = html_to_operations('<p><a href="https://example.com">site</a> here</p>')
        run = operations[2]
        assert (run.start_index, run.end_index) == (1, 5)
        assert run.text_style == {"link": {"url": "https://example.com"}}

    def test_anchor_without_href_is_plain(self):
        """Anchors lacking an href add no run."""
        operations = html_to_operations("<p><a>nowhere</a></p>")
        assert len(operations) == 2

    def test_runs_follow_trimmed_text(self):
        """Run offsets account for stripped leading whitespace."""
        operations = html_to_operations("<p>\n   <em>first</em> word</p>")
        run = operations[2]
        assert (run.start_index, run.end_index) == (1, 6)
        assert run.text_style == {"italic": True}

    def test_heading_with_inline_code(self):
        """Inline code inside a heading is styled without duplicating text."""
        operations = html_to_operations("<h2>Use <code>pip</code></h2>")
        assert [op.text for op in inserted(operations)] == ["Use pip\n"]
        assert operations[2].text_style == {"weightedFontFamily": {"fontFamily": "Courier New"}}
        assert (operations[2].start_index, operations[2].end_index) == (5, 8)


class TestLists:
    """Test list unwrapping."""

    def test_unordered_list(self):
        """Bullets are prefixed and emitted per item."""
        operations = html_to_operations("<ul><li>A</li><li>B</li></ul>")
        assert operations[0] == InsertText(index=1, text=f"{BULLET}A\n")
        assert (operations[1].start_index, operations[1].end_index) == (1, 4)
        assert operations[2] == InsertText(index=5, text=f"{BULLET}B\n")
        assert (operations[3].start_index, operations[3].end_index) == (5, 8)
        assert len(operations) == 4

    def test_ordered_list_numbering(self):
        """Ordered items are numbered from one."""
        operations = html_to_operations("<ol><li>first</li><li>second</li></ol>")
        assert [op.text for op in inserted(operations)] == ["1. first\n", "2. second\n"]

    def test_ordered_list_start_attribute(self):
        """The start attribute offsets numbering."""
        operations = html_to_operations('<ol start="3"><li>x</li><li>y</li></ol>')
        assert [op.text for op in inserted(operations)] == ["3. x\n", "4. y\n"]

    def test_nested_list_indentation(self):
        """Nested lists follow their parent item, one indent level deeper."""
        operations = html_to_operations("<ul><li>outer<ul><li>inner</li></ul></li><li>next</li></ul>")
        texts = [op.text for op in inserted(operations)]
        assert texts == [f"{BULLET}outer\n", f"{BULLET}inner\n", f"{BULLET}next\n"]
        assert operations[1].paragraph_style == list_item_style(0)
        assert operations[3].paragraph_style == list_item_style(1)
        assert operations[3].paragraph_style["indentStart"]["magnitude"] == 72

    def test_empty_item_skipped(self):
        """Items without text produce nothing."""
        operations = html_to_operations("<ul><li> </li><li>B</li></ul>")
        assert [op.text for op in inserted(operations)] == [f"{BULLET}B\n"]

    def test_item_runs_shift_past_prefix(self):
        """Inline runs in items account for the bullet prefix."""
        operations = html_to_operations("<ul><li><strong>hot</strong> take</li></ul>")
        run = operations[2]
        assert (run.start_index, run.end_index) == (3, 6)


class TestTables:
    """Test table row emission."""

    def test_rows_are_tab_joined(self):
        """Cells join with tabs and header rows are bold."""
        html = "<table><tr><th>Name</th><th>Role</th></tr><tr><td>Ada</td><td>Engineer</td></tr></table>"
        operations = html_to_operations(html)
        assert [op.text for op in inserted(operations)] == ["Name\tRole\n", "Ada\tEngineer\n"]
        assert operations[1].text_style == {"bold": True}
        assert operations[3].text_style is None

    def test_rendered_markdown_table(self):
        """Tables rendered from Markdown pass through thead and tbody."""
        operations = html_to_operations(render_html("| a | b |\n|---|---|\n| 1 | 2 |"))
        assert [op.text for op in inserted(operations)] == ["a\tb\n", "1\t2\n"]


class TestMalformedInput:
    """Test that broken or extreme HTML degrades to partial output."""

    def test_unclosed_tags(self):
        """Unclosed inline tags still produce the paragraph and its run."""
        operations = html_to_operations("<p>unclosed <b>bold")
        assert operations[0] == InsertText(index=1, text="unclosed bold\n")
        assert (operations[2].start_index, operations[2].end_index) == (10, 14)
        assert operations[2].text_style == {"bold": True}

    def test_cells_without_rows(self):
        """Stray cells are emitted as plain blocks."""
        operations = html_to_operations("<table><td>a<td>b")
        text = "".join(op.text for op in inserted(operations))
        assert "a" in text
        assert "b" in text

    def test_deeply_nested_containers(self):
        """Nesting far beyond the interpreter recursion limit is walked."""
        operations = html_to_operations("<div>" * 1200 + "<p>x</p>" + "</div>" * 1200)
        assert [op.text for op in inserted(operations)] == ["x\n"]

    def test_deeply_nested_inline_tags(self):
        """Deep inline nesting inside one block keeps its text."""
        operations = html_to_operations("<p>" + "<em>" * 1200 + "deep" + "</em>" * 1200 + "</p>")
        assert operations[0].text == "deep\n"
        assert all(op.text_style == {"italic": True} for op in operations[2:])

    def test_deeply_nested_lists(self):
        """Each nesting level of a deep list is indented one step further."""
        operations = html_to_operations("<ul><li>a" * 300 + "</li></ul>" * 300)
        items = inserted(operations)
        assert len(items) == 300
        assert operations[-1].paragraph_style["indentStart"]["magnitude"] == 36 * 300


class TestCursor:
    """Test positional bookkeeping."""

    def test_utf16_offsets(self):
        """Astral characters count as two units."""
        assert utf16_len("😀 ok") == 5
        operations = html_to_operations("<p>😀 ok</p><p>next</p>")
        assert operations[1].end_index == 6
        assert operations[2].index == 7

    def test_each_insert_lands_after_previous(self):
        """Insertion indexes advance by the inserted length."""
        operations = html_to_operations(render_html("# Title\n\nSome *text*.\n\n- a\n- b\n\n```\ncode\n```"))
        cursor = 1
        for op in inserted(operations):
            assert op.index == cursor
            cursor += utf16_len(op.text)

    def test_custom_start_index(self):
        """A non-default start index shifts every operation."""
        operations = html_to_operations("<p>x</p>", start_index=10)
        assert operations[0].index == 10
        assert operations[1].start_index == 10

    def test_builder_rejects_blank_text(self):
        """The builder reports blank paragraphs and leaves the cursor alone."""
        builder = DocumentEditBuilder()
        assert builder.add_paragraph("  ", NORMAL_TEXT) is False
        assert builder.cursor == 1
        assert builder.add_paragraph("ok", NORMAL_TEXT, runs=[InlineRun(0, 2, {"bold": True})]) is True
        assert builder.cursor == 4
        assert len(builder.operations) == 3

    def test_insert_index_must_be_positive(self):
        """Index zero is outside the document body."""
        with pytest.raises(ValidationError):
            InsertText(index=0, text="x")

    def test_transform_accepts_parsed_tree(self):
        """transform works on an already parsed document."""
        soup = BeautifulSoup("<html><body><p>inside</p></body></html>", "html.parser")
        operations = transform(soup)
        assert operations[0].text == "inside\n"


class TestRequests:
    """Test serialisation to batchUpdate requests."""

    def test_request_order_and_shape(self):
        """Paragraph styles precede their text styles and keep field masks."""
        requests = operations_to_requests(html_to_operations("<h1>Title</h1><p>Body</p>"))
        assert [next(iter(r)) for r in requests] == [
            "insertText",
            "updateParagraphStyle",
            "updateTextStyle",
            "insertText",
            "updateParagraphStyle",
        ]
        assert requests[0] == {"insertText": {"location": {"index": 1}, "text": "Title\n"}}
        assert requests[1]["updateParagraphStyle"]["fields"] == "namedStyleType"
        assert requests[2]["updateTextStyle"]["fields"] == "bold,fontSize"
        assert requests[2]["updateTextStyle"]["range"] == {"startIndex": 1, "endIndex": 6}

    def test_builder_to_requests(self):
        """The builder serialises its own operations."""
        builder = DocumentEditBuilder()
        builder.add_paragraph("hi", NORMAL_TEXT)
        assert builder.to_requests() == operations_to_requests(builder.operations)
