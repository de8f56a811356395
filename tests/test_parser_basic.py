"""
Basic parser tests - simplest cases

Tests empty source, headings, paragraphs, lists, code fences and inline
content.
"""

import pytest

from pagemark.lib.parser import Parser
from pagemark.lib.errors import MarkupError, UnterminatedBlockError
from pagemark.models.page import (
    CodeFence,
    CodeSpan,
    Heading,
    Link,
    ListBlock,
    Paragraph,
    Text,
)


class TestEmptyAndSimple:
    """Test empty source and the simplest blocks"""

    def test_empty_source(self):
        """Empty string should parse to an empty body"""
        page = Parser("").parse()
        assert page.body == ()
        assert page.title == ""

    def test_whitespace_only(self):
        """Only whitespace should parse to an empty body"""
        page = Parser("   \n\n  \t  ").parse()
        assert page.body == ()

    def test_heading(self):
        """ATX heading with level and text"""
        page = Parser("## Hello World").parse()

        assert len(page.body) == 1
        heading = page.body[0]
        assert isinstance(heading, Heading)
        assert heading.level == 2
        assert heading.inlines == (Text("Hello World"),)
        assert heading.line_number == 1
        assert heading.anchor is None

    def test_heading_explicit_anchor(self):
        """A trailing {#id} becomes the heading anchor"""
        heading = Parser("## Setup {#setup-agent}").parse().body[0]
        assert heading.anchor == "setup-agent"
        assert heading.inlines == (Text("Setup"),)

    def test_paragraph_spans_lines(self):
        """Consecutive lines form one paragraph"""
        page = Parser("First line\nsecond line").parse()

        assert len(page.body) == 1
        assert isinstance(page.body[0], Paragraph)
        assert page.body[0].inlines == (Text("First line\nsecond line"),)

    def test_blank_line_separates_paragraphs(self):
        """A blank line ends a paragraph"""
        page = Parser("One\n\nTwo").parse()

        assert [block.line_number for block in page.body] == [1, 3]
        assert page.body[1].inlines == (Text("Two"),)

    def test_heading_interrupts_paragraph(self):
        """A heading line ends the paragraph before it"""
        page = Parser("Text\n# Title").parse()
        assert isinstance(page.body[0], Paragraph)
        assert isinstance(page.body[1], Heading)


class TestCodeFences:
    """Test fenced code blocks"""

    def test_language_tag_verbatim(self):
        """Language tag is kept exactly as written"""
        page = Parser("```java\npublic class A {}\n```").parse()

        fence = page.body[0]
        assert isinstance(fence, CodeFence)
        assert fence.language == "java"
        assert fence.content == "public class A {}"
        assert fence.source_excerpt_path is None

    def test_trailing_whitespace_stripped(self):
        """Only trailing whitespace is removed from fence lines"""
        source = "```sh\necho hi   \n\n  indented\t\n```"
        fence = Parser(source).parse().body[0]
        assert fence.content == "echo hi\n\n  indented"

    def test_content_not_parsed(self):
        """Markup inside a fence stays literal"""
        source = "```md\n# not a heading\n[x][missing]\n<?path-base \"x\"?>\n```"
        page = Parser(source).parse()

        assert len(page.body) == 1
        assert page.body[0].content == "# not a heading\n[x][missing]\n<?path-base \"x\"?>"

    def test_tilde_fence_and_no_language(self):
        """~~~ fences work and a missing tag is the empty string"""
        fence = Parser("~~~\nplain\n~~~").parse().body[0]
        assert fence.language == ""
        assert fence.content == "plain"

    def test_longer_closing_fence(self):
        """A closing fence may be longer than the opening one"""
        fence = Parser("```\ncode\n`````").parse().body[0]
        assert fence.content == "code"

    def test_unclosed_fence_raises(self):
        """An unclosed fence is fatal and reports its opening line"""
        with pytest.raises(UnterminatedBlockError) as exc_info:
            Parser("Intro\n\n```java\nclass A {}").parse()

        assert exc_info.value.line_number == 3
        assert exc_info.value.kind == "UnterminatedBlockError"

    def test_unclosed_fence_line_after_frontmatter(self):
        """Line numbers count the front-matter block"""
        source = "---\ntitle: X\n---\nIntro\n\n```java\ncode"
        with pytest.raises(UnterminatedBlockError) as exc_info:
            Parser(source).parse()
        assert exc_info.value.line_number == 6

    def test_stray_closing_shortcode(self):
        """A closing callout with no opening one is a markup error"""
        with pytest.raises(MarkupError) as exc_info:
            Parser("Text\n\n{{% /alert %}}").parse()

        assert not isinstance(exc_info.value, UnterminatedBlockError)
        assert exc_info.value.line_number == 3


class TestLists:
    """Test ordered and unordered lists"""

    def test_bullet_list(self):
        """Each marker starts a sibling item"""
        page = Parser("- one\n- two\n- three").parse()

        assert len(page.body) == 1
        lst = page.body[0]
        assert isinstance(lst, ListBlock)
        assert lst.ordered is False
        assert len(lst.items) == 3
        assert lst.items[1].blocks == (Paragraph((Text("two"),), 2),)

    def test_ordered_list_start(self):
        """Ordered lists keep their first number"""
        lst = Parser("3. three\n4. four").parse().body[0]
        assert lst.ordered is True
        assert lst.start == 3
        assert len(lst.items) == 2

    def test_lazy_continuation(self):
        """An unindented line continues the item's paragraph"""
        lst = Parser("- item one\ncontinues here").parse().body[0]
        assert lst.items[0].blocks[0].inlines == (Text("item one\ncontinues here"),)

    def test_nested_list(self):
        """Indented markers nest inside the parent item"""
        lst = Parser("- parent\n  - child\n- sibling").parse().body[0]

        assert len(lst.items) == 2
        parent = lst.items[0]
        assert isinstance(parent.blocks[0], Paragraph)
        assert isinstance(parent.blocks[1], ListBlock)
        assert parent.blocks[1].items[0].line_number == 2

    def test_marker_type_change_starts_new_list(self):
        """Switching between bullets and numbers ends the list"""
        page = Parser("- bullet\n1. number").parse()
        assert [block.ordered for block in page.body] == [False, True]

    def test_loose_items_across_blank_lines(self):
        """Blank lines between items keep one list"""
        lst = Parser("1. first\n\n2. second").parse().body[0]
        assert len(lst.items) == 2


class TestInlines:
    """Test inline parsing"""

    def test_code_span(self):
        """Backticks produce a code span"""
        inlines = Parser("Use `agent.jar` here").parse().body[0].inlines
        assert inlines == (Text("Use "), CodeSpan("agent.jar"), Text(" here"))

    def test_double_backtick_code_span(self):
        """Double backticks may contain a single backtick"""
        inlines = Parser("Run `` a`b `` now").parse().body[0].inlines
        assert inlines[1] == CodeSpan("a`b")

    def test_inline_link_with_title(self):
        """Inline link keeps URL and title"""
        inlines = Parser('See [docs](https://x.io/docs "Docs").').parse().body[0].inlines

        link = inlines[1]
        assert isinstance(link, Link)
        assert link.url == "https://x.io/docs"
        assert link.title == "Docs"
        assert link.ref is None
        assert link.children == (Text("docs"),)
        assert inlines[2] == Text(".")

    def test_image(self):
        """![alt](src) is an image link"""
        link = Parser("![Logo](/img/logo.png)").parse().body[0].inlines[0]
        assert link.image is True
        assert link.url == "/img/logo.png"

    def test_code_in_link_text(self):
        """Link text is parsed for code spans"""
        link = Parser("[the `otel` agent](/agent/)").parse().body[0].inlines[0]
        assert link.children == (Text("the "), CodeSpan("otel"), Text(" agent"))

    def test_backslash_escapes(self):
        """Escaped brackets are text"""
        inlines = Parser(r"\[not a link\]").parse().body[0].inlines
        assert inlines == (Text("[not a link]"),)

    def test_footnote_and_empty_brackets_stay_text(self):
        """[^1] and [] are not references"""
        inlines = Parser("Note[^1] and []").parse().body[0].inlines
        assert inlines == (Text("Note[^1] and []"),)

    def test_task_list_box_stays_text(self):
        """A leading [x] in an item is a checkbox, not a reference"""
        lst = Parser("- [x] done").parse().body[0]
        assert lst.items[0].blocks[0].inlines == (Text("[x] done"),)
