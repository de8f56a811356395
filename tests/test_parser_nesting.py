"""
Nesting parser tests - verify nested block structure

Tests callouts nested in lists, callouts nested in callouts, and code
fences inside both, and validates that:
- Each callout is its own block with its own severity and title
- Nesting is preserved at every depth
- Line numbers of nested blocks are those of the source file
"""

import pytest

from pagemark.lib.errors import UnterminatedBlockError
from pagemark.lib.parser import Parser
from pagemark.models.page import (
    CalloutBox,
    CodeFence,
    ListBlock,
    Paragraph,
    Severity,
    Text,
    blocks_walk,
)


class TestCallouts:
    """Test callout shortcodes"""

    def test_simple_callout(self):
        """Callout with title and severity"""
        source = """{{% alert title="Note" color="warning" %}}
Mind the gap.
{{% /alert %}}"""
        page = Parser(source).parse()

        assert len(page.body) == 1
        callout = page.body[0]
        assert isinstance(callout, CalloutBox)
        assert callout.severity == Severity.WARNING
        assert callout.title == "Note"
        assert callout.blocks == (Paragraph((Text("Mind the gap."),), 2),)

    def test_default_severity_is_info(self):
        """No color means info, and no title means None"""
        callout = Parser("{{% alert %}}\nx\n{{% /alert %}}").parse().body[0]
        assert callout.severity == Severity.INFO
        assert callout.title is None

    @pytest.mark.parametrize("color,severity", [
        ("danger", Severity.WARNING),
        ("caution", Severity.WARNING),
        ("primary", Severity.INFO),
        ("mauve", Severity.INFO),
    ])
    def test_color_mapping(self, color, severity):
        """Colors map onto the two severities"""
        callout = Parser(f'{{{{% alert color="{color}" %}}}}\nx\n{{{{% /alert %}}}}').parse().body[0]
        assert callout.severity == severity

    def test_one_line_callout(self):
        """Opening, content and closing on one line"""
        page = Parser('{{% alert title="Tip" %}} Short note. {{% /alert %}}').parse()

        callout = page.body[0]
        assert callout.title == "Tip"
        assert callout.blocks == (Paragraph((Text("Short note."),), 1),)

    def test_angle_bracket_delimiters(self):
        """{{< alert >}} works like {{% alert %}}"""
        callout = Parser("{{< alert >}}\nx\n{{< /alert >}}").parse().body[0]
        assert isinstance(callout, CalloutBox)

    def test_unclosed_callout_raises(self):
        """An unclosed callout reports its opening line"""
        with pytest.raises(UnterminatedBlockError) as exc_info:
            Parser("Intro\n\n{{% alert %}}\nNever closed.").parse()
        assert exc_info.value.line_number == 3

    def test_shortcode_in_code_span_is_text(self):
        """A quoted shortcode is not a callout"""
        page = Parser("Write `{{% alert %}}` to open one.").parse()
        assert isinstance(page.body[0], Paragraph)


class TestNestedCallouts:
    """Test callouts at more than one level"""

    def test_callout_in_list_item_is_distinct(self):
        """A top-level callout and one inside a list item stay separate"""
        source = """Intro paragraph.

{{% alert title="Note" color="warning" %}}
Top-level callout.
{{% /alert %}}

1. First step

   {{% alert title="Tip" %}}
   Nested in a list item.
   {{% /alert %}}

2. Second step
"""
        page = Parser(source).parse()

        assert [type(block) for block in page.body] == [Paragraph, CalloutBox, ListBlock]

        top = page.body[1]
        assert top.title == "Note"
        assert top.severity == Severity.WARNING
        assert top.line_number == 3

        lst = page.body[2]
        assert len(lst.items) == 2
        nested = lst.items[0].blocks[1]
        assert isinstance(nested, CalloutBox)
        assert nested.title == "Tip"
        assert nested.severity == Severity.INFO
        assert nested.line_number == 9
        assert nested.blocks == (Paragraph((Text("Nested in a list item."),), 10),)

        callouts = [block for block in blocks_walk(page.body) if isinstance(block, CalloutBox)]
        assert len(callouts) == 2
        assert callouts[0] is not callouts[1]

    def test_callout_inside_callout(self):
        """Callouts nest to any depth"""
        source = """{{% alert title="Outer" %}}
Outer text.

{{% alert title="Inner" color="warning" %}}
Inner text.
{{% /alert %}}

After inner.
{{% /alert %}}"""
        page = Parser(source).parse()

        assert len(page.body) == 1
        outer = page.body[0]
        assert [type(block) for block in outer.blocks] == [Paragraph, CalloutBox, Paragraph]
        inner = outer.blocks[1]
        assert inner.title == "Inner"
        assert inner.severity == Severity.WARNING
        assert outer.blocks[2].inlines == (Text("After inner."),)

    def test_list_inside_callout(self):
        """Callouts may contain lists"""
        source = "{{% alert %}}\n- a\n- b\n{{% /alert %}}"
        callout = Parser(source).parse().body[0]
        assert isinstance(callout.blocks[0], ListBlock)
        assert len(callout.blocks[0].items) == 2

    def test_fence_inside_callout_hides_delimiters(self):
        """A closing shortcode quoted in a fence does not close the callout"""
        source = """{{% alert %}}
```md
{{% /alert %}}
```
{{% /alert %}}"""
        callout = Parser(source).parse().body[0]

        fence = callout.blocks[0]
        assert isinstance(fence, CodeFence)
        assert fence.content == "{{% /alert %}}"

    def test_unclosed_fence_inside_callout(self):
        """The unclosed fence, not the callout, is reported"""
        with pytest.raises(UnterminatedBlockError) as exc_info:
            Parser("{{% alert %}}\n```java\ncode\n{{% /alert %}}").parse()
        assert exc_info.value.line_number == 2


class TestFencesInLists:
    """Test code fences nested in list items"""

    def test_indented_fence_in_item(self):
        """Item indentation is removed from fence content"""
        source = """1. Run:

   ```sh
   ./gradlew run
     --info
   ```
2. Done"""
        lst = Parser(source).parse().body[0]

        assert len(lst.items) == 2
        fence = lst.items[0].blocks[1]
        assert isinstance(fence, CodeFence)
        assert fence.language == "sh"
        assert fence.content == "./gradlew run\n  --info"
        assert fence.line_number == 3

    def test_fence_blank_lines_stay_in_item(self):
        """Blank lines inside a fence do not end the item"""
        source = "- Example:\n\n  ```\n  a\n\n  b\n  ```\n"
        lst = Parser(source).parse().body[0]
        assert lst.items[0].blocks[1].content == "a\n\nb"

    def test_fence_on_marker_line_is_verbatim(self):
        """A fence opened on the marker line keeps shortcodes and directives as text"""
        source = '- ```md\n  {{% alert %}} hi {{% /alert %}}\n  <?code-excerpt "x"?>\n  ```\n'
        page = Parser(source).parse()

        fence = page.body[0].items[0].blocks[0]
        assert isinstance(fence, CodeFence)
        assert fence.language == "md"
        assert fence.content == '{{% alert %}} hi {{% /alert %}}\n<?code-excerpt "x"?>'
        assert fence.source_excerpt_path is None
        assert not [block for block in blocks_walk(page.body) if isinstance(block, CalloutBox)]

    def test_fence_on_nested_marker_line(self):
        """Markers may stack before the fence"""
        source = "1. - ```\n     {{% /alert %}}\n     ```\n"
        outer = Parser(source).parse().body[0]

        inner = outer.items[0].blocks[0]
        assert isinstance(inner, ListBlock)
        fence = inner.items[0].blocks[0]
        assert isinstance(fence, CodeFence)
        assert fence.content == "{{% /alert %}}"
