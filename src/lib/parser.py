"""
Parser for documentation pages

Transforms page source (front-matter + markup) into an immutable Page.

The parser operates in four phases:
1. Front-matter: split the YAML metadata block from the body
2. Directives: strip <?directive?> instructions into an ordered log
3. Blocks: recursive descent over numbered lines producing headings,
   paragraphs, lists, code fences, callouts and link-definition tables
4. Links: resolve reference-style links against the page's definitions

Key features:
- Line number tracking for error reporting (nested blocks keep the line
  numbers of the file they came from)
- Depth tracking for nested callout shortcodes and link brackets
- Code fences are opaque: nothing inside them is parsed
- Unclosed fences and callouts are fatal, never silently truncated

Example:
    >>> page = Parser("---\\ntitle: X\\n---\\n# Hello").parse()
    >>> page.title
    'X'
    >>> page.body[0].level
    1
"""

from typing import List, Optional, Tuple

from ..models.page import (
    Block,
    CalloutBox,
    CodeFence,
    CodeSpan,
    Heading,
    Inline,
    Link,
    LinkDefinition,
    LinkDefinitionTable,
    ListBlock,
    ListItem,
    Page,
    Paragraph,
    Severity,
    Text,
)
from ..models.parser import FenceOpening, ListMarker, ShortcodeMatch, SourceLine
from .directives import DirectiveProcessor, DirectiveRegistry
from .errors import MarkupError, UnterminatedBlockError
from .frontmatter import frontMatter_split
from .log import LOG
from .resolver import LinkResolver
from .syntax import (
    CODE_SPAN_PATTERN,
    blank_is,
    codeSpans_find,
    definition_match,
    fenceOpening_find,
    fence_match,
    heading_match,
    indent_width,
    listMarker_match,
    shortcodes_find,
)


ESCAPABLE = set('!"#$%&\'()*+,-./:;<=>?@[\\]^_`{|}~')

SEVERITY_BY_COLOR = {
    'warning': Severity.WARNING,
    'danger': Severity.WARNING,
    'caution': Severity.WARNING,
    'info': Severity.INFO,
    'primary': Severity.INFO,
    'secondary': Severity.INFO,
    'success': Severity.INFO,
    'note': Severity.INFO,
}


class Parser:
    """
    Parser for documentation page source

    Handles:
    - YAML front-matter
    - <?code-excerpt?> style directives
    - Headings, paragraphs, nested lists
    - Fenced code blocks with language tags
    - {{% alert %}} callout shortcodes, nested to any depth
    - Inline code, inline links, images and reference-style links
    - Error reporting with line numbers
    """

    def __init__(
        self,
        source: str,
        source_path: Optional[str] = None,
        registry: Optional[DirectiveRegistry] = None,
        resolve: bool = True,
        duplicate_policy: Optional[str] = None,
        directive_warnings: Optional[bool] = None,
        strict: Optional[bool] = None,
        callout_names: Optional[List[str]] = None,
    ):
        """
        Initialize parser with source text

        Args:
            source: Raw page text
            source_path: Path used in error messages
            registry: Optional DirectiveRegistry for recognised directives
            resolve: Resolve reference-style links once parsing completes
            duplicate_policy: Duplicate link-definition policy for the
                              resolver (defaults to appsettings)
            directive_warnings: Warn about unknown/malformed directives
            strict: Treat directive problems as fatal
            callout_names: Shortcode names parsed as callout boxes

        Attributes:
            source: Source text being parsed
            directives: DirectiveProcessor holding the directive log and
                        excerpt context of the most recent parse()
        """
        from ..config import appsettings

        self.source = source
        self.source_path = source_path
        self.resolve = resolve
        self.duplicate_policy = duplicate_policy
        self.callout_names = callout_names if callout_names is not None else appsettings.callout_shortcodes
        self.registry = registry if registry is not None else DirectiveRegistry()
        self.directive_warnings = directive_warnings
        self.strict = strict
        self.directives = self.directives_reset()

    def directives_reset(self) -> DirectiveProcessor:
        """Start a fresh directive log and excerpt context for one parse"""
        self.directives = DirectiveProcessor(
            registry=self.registry,
            warnings=self.directive_warnings,
            strict=self.strict,
            source_path=self.source_path,
        )
        return self.directives

    def parse(self) -> Page:
        """
        Parse source text into a Page

        Main entry point for parsing.

        Returns:
            Page with metadata and body blocks. Reference links are
            resolved unless the parser was created with resolve=False.

        Raises:
            MetadataParseError: Malformed or unterminated front-matter
            UnterminatedBlockError: Unclosed code fence or callout
            MarkupError: Closing shortcode without an opening one
            UnresolvedReferenceError: Reference link with no definition
            DuplicateDefinitionError: Repeated label under the "error" policy
            DirectiveSyntaxError: Bad directive in strict mode

        Example:
            >>> page = Parser("Hello [traces][]\\n\\n[traces]: /docs/traces/").parse()
            >>> page.body[0].inlines[1].url
            '/docs/traces/'
        """
        self.directives_reset()
        split = frontMatter_split(self.source, source_path=self.source_path)

        lines: List[SourceLine] = []
        if split.body:
            lines = [
                SourceLine(split.body_start_line + offset, text)
                for offset, text in enumerate(split.body.split('\n'))
            ]

        lines = self.directives.lines_scan(lines)
        lines = self.shortcodes_split(lines)

        body = tuple(self.blocks_parse(lines))
        LOG(f"Parsed {len(body)} top-level blocks", level=3)

        page = Page(metadata=split.metadata, body=body, source_path=self.source_path)

        if self.resolve:
            page = LinkResolver(duplicate_policy=self.duplicate_policy).page_resolve(page)

        return page

    def shortcodes_split(self, lines: List[SourceLine]) -> List[SourceLine]:
        """
        Put every callout shortcode delimiter on a line of its own

        Allows one-line callouts such as
            {{% alert title="Note" %}} Text {{% /alert %}}
        to parse like the multi-line form. Split pieces keep the original
        line number and indentation. Fence content is left alone.

        Args:
            lines: Body lines after directive scanning

        Returns:
            New list of SourceLine
        """
        result: List[SourceLine] = []
        fence: Optional[FenceOpening] = None

        for line in lines:
            if fence is not None:
                if fence.closes(line.text):
                    fence = None
                result.append(line)
                continue

            opening = fenceOpening_find(line.text)
            if opening is not None:
                fence = opening
                result.append(line)
                continue

            matches = self.shortcodes_locate(line.text)
            if not matches or (len(matches) == 1 and line.text.strip() == line.text[matches[0].start:matches[0].end]):
                result.append(line)
                continue

            indent = ' ' * indent_width(line.text)
            pos = 0
            for match in matches:
                before = line.text[pos:match.start]
                if before.strip():
                    result.append(SourceLine(line.number, indent + before.strip()))
                result.append(SourceLine(line.number, indent + line.text[match.start:match.end]))
                pos = match.end
            after = line.text[pos:]
            if after.strip():
                result.append(SourceLine(line.number, indent + after.strip()))

        return result

    def shortcodes_locate(self, text: str) -> List[ShortcodeMatch]:
        """Find callout shortcodes on a line, ignoring those inside code spans"""
        if '{{' not in text:
            return []
        spans = codeSpans_find(text)
        return [
            match for match in shortcodes_find(text, self.callout_names)
            if not any(start <= match.start < end for start, end in spans)
        ]

    def shortcodeLine_match(self, text: str) -> Optional[ShortcodeMatch]:
        """Return the shortcode if ``text`` consists of exactly one delimiter"""
        matches = self.shortcodes_locate(text)
        if len(matches) != 1:
            return None
        match = matches[0]
        if text.strip() != text[match.start:match.end]:
            return None
        return match

    def blockStart_is(self, text: str, definitions: bool = True) -> bool:
        """
        Whether ``text`` starts a new block and so ends a paragraph

        Args:
            text: Line to test
            definitions: Whether a link definition counts as a block start
        """
        if fence_match(text) or heading_match(text) or self.shortcodeLine_match(text):
            return True
        marker = listMarker_match(text)
        if marker is not None and marker.text.strip() and (not marker.ordered or marker.start == 1):
            return True
        if definitions and definition_match(text):
            return True
        return False

    def paragraphLine_is(self, text: str) -> bool:
        """Whether ``text`` can be continued lazily as paragraph text"""
        if blank_is(text) or fence_match(text) or heading_match(text):
            return False
        return self.shortcodeLine_match(text) is None and definition_match(text) is None

    def blocks_parse(self, lines: List[SourceLine]) -> List[Block]:
        """
        Parse a window of lines into blocks

        Called recursively for list item and callout content.

        Args:
            lines: Lines to parse (already dedented for nested content)

        Returns:
            Blocks in document order
        """
        blocks: List[Block] = []
        index = 0

        while index < len(lines):
            text = lines[index].text

            if blank_is(text):
                index += 1
                continue

            opening = fence_match(text)
            if opening is not None:
                fence, index = self.fence_parse(lines, index, opening)
                blocks.append(fence)
                continue

            shortcode = self.shortcodeLine_match(text)
            if shortcode is not None:
                if shortcode.closing:
                    raise MarkupError(
                        f"closing '{{{{% /{shortcode.name} %}}}}' without a matching opening shortcode",
                        line_number=lines[index].number,
                        source_path=self.source_path,
                    )
                callout, index = self.callout_parse(lines, index, shortcode)
                blocks.append(callout)
                continue

            heading = heading_match(text)
            if heading is not None:
                level, content, anchor = heading
                number = lines[index].number
                blocks.append(Heading(
                    level=level,
                    inlines=self.inlines_parse(content, [number]),
                    line_number=number,
                    anchor=anchor,
                ))
                index += 1
                continue

            if definition_match(text):
                table, index = self.definitions_parse(lines, index)
                blocks.append(table)
                continue

            marker = listMarker_match(text)
            if marker is not None:
                list_block, index = self.list_parse(lines, index, marker)
                blocks.append(list_block)
                continue

            paragraph, index = self.paragraph_parse(lines, index)
            blocks.append(paragraph)

        return blocks

    def fence_parse(
        self, lines: List[SourceLine], index: int, opening: FenceOpening
    ) -> Tuple[CodeFence, int]:
        """
        Parse a fenced code block

        Content is kept as written except that the fence's own indentation
        is removed and trailing whitespace is stripped from each line.

        Args:
            lines: Line window
            index: Index of the opening fence line
            opening: Matched opening fence

        Returns:
            (CodeFence, index of the line after the closing fence)

        Raises:
            UnterminatedBlockError: If no closing fence follows
        """
        start = lines[index]
        content: List[str] = []
        cursor = index + 1

        while cursor < len(lines):
            text = lines[cursor].text
            if opening.closes(text):
                break
            content.append(self.line_dedent(text, opening.indent).rstrip())
            cursor += 1
        else:
            raise UnterminatedBlockError(
                f"code fence opened with '{opening.char * opening.length}' is never closed",
                line_number=start.number,
                source_path=self.source_path,
            )

        fence = CodeFence(
            language=opening.language,
            content='\n'.join(content),
            line_number=start.number,
            source_excerpt_path=self.directives.fence_claim(start.number),
        )
        return fence, cursor + 1

    def callout_findClosing(self, lines: List[SourceLine], index: int, opening: ShortcodeMatch) -> int:
        """
        Find the line closing the callout opened at ``index``

        Tracks nesting depth of same-named shortcodes and skips fenced code,
        so delimiters quoted inside a code sample do not count.

        Returns:
            Index of the closing delimiter line

        Raises:
            UnterminatedBlockError: If EOF is reached first (or a code
                                    fence inside the callout never closes)
        """
        depth = 1
        cursor = index + 1
        fence: Optional[FenceOpening] = None
        fence_line = 0

        while cursor < len(lines):
            text = lines[cursor].text
            if fence is not None:
                if fence.closes(text):
                    fence = None
                cursor += 1
                continue

            candidate = fenceOpening_find(text)
            if candidate is not None:
                fence = candidate
                fence_line = lines[cursor].number
                cursor += 1
                continue

            match = self.shortcodeLine_match(text)
            if match is not None and match.name == opening.name:
                depth += -1 if match.closing else 1
                if depth == 0:
                    return cursor
            cursor += 1

        if fence is not None:
            raise UnterminatedBlockError(
                f"code fence opened with '{fence.char * fence.length}' is never closed",
                line_number=fence_line,
                source_path=self.source_path,
            )
        raise UnterminatedBlockError(
            f"callout '{{{{% {opening.name} %}}}}' is never closed",
            line_number=lines[index].number,
            source_path=self.source_path,
        )

    def callout_parse(
        self, lines: List[SourceLine], index: int, opening: ShortcodeMatch
    ) -> Tuple[CalloutBox, int]:
        """
        Parse a callout box and its nested blocks

        Returns:
            (CalloutBox, index of the line after the closing delimiter)
        """
        closing = self.callout_findClosing(lines, index, opening)
        number = lines[index].number

        color = opening.arguments.keywords.get('color', 'info').strip().lower()
        severity = SEVERITY_BY_COLOR.get(color)
        if severity is None:
            LOG(
                f"Line {number}: unknown callout color '{color}', using info",
                level=1,
                severity="WARNING",
            )
            severity = Severity.INFO

        callout = CalloutBox(
            severity=severity,
            blocks=tuple(self.blocks_parse(lines[index + 1:closing])),
            line_number=number,
            title=opening.arguments.keywords.get('title'),
        )
        return callout, closing + 1

    def definitions_parse(self, lines: List[SourceLine], index: int) -> Tuple[LinkDefinitionTable, int]:
        """Collect consecutive [label]: url lines into one table"""
        definitions: List[LinkDefinition] = []
        start = lines[index].number
        cursor = index

        while cursor < len(lines):
            matched = definition_match(lines[cursor].text)
            if matched is None:
                break
            label, url, title = matched
            definitions.append(LinkDefinition(
                label=label, url=url, line_number=lines[cursor].number, title=title
            ))
            cursor += 1

        return LinkDefinitionTable(definitions=tuple(definitions), line_number=start), cursor

    def list_parse(
        self, lines: List[SourceLine], index: int, marker: ListMarker
    ) -> Tuple[ListBlock, int]:
        """
        Parse a list of sibling items

        A list continues while the next non-blank line is an item of the
        same kind (ordered or bullet) indented less than the previous
        item's content.

        Returns:
            (ListBlock, index of the first line after the list)
        """
        first = marker
        items: List[ListItem] = []
        cursor = index

        while True:
            item_lines, end = self.listItem_collect(lines, cursor, marker)
            items.append(ListItem(
                blocks=tuple(self.blocks_parse(item_lines)),
                line_number=lines[cursor].number,
            ))
            cursor = end

            ahead = cursor
            while ahead < len(lines) and blank_is(lines[ahead].text):
                ahead += 1
            if ahead >= len(lines):
                break
            sibling = listMarker_match(lines[ahead].text)
            if (
                sibling is None
                or sibling.ordered != first.ordered
                or sibling.indent >= marker.content_indent
                or sibling.indent < first.indent
            ):
                break
            marker = sibling
            cursor = ahead

        list_block = ListBlock(
            ordered=first.ordered,
            items=tuple(items),
            line_number=lines[index].number,
            start=first.start,
        )
        return list_block, cursor

    def listItem_collect(
        self, lines: List[SourceLine], index: int, marker: ListMarker
    ) -> Tuple[List[SourceLine], int]:
        """
        Gather the lines belonging to one list item, dedented

        An item owns: its first line's text, following lines indented to
        its content column, blank lines that are followed by such lines,
        lazy paragraph continuation lines, and everything inside a code
        fence that opened within the item.

        Returns:
            (dedented item lines, index of the first line not in the item)
        """
        collected = [SourceLine(lines[index].number, marker.text)]
        fence = fenceOpening_find(marker.text)
        paragraph_open = fence is None and self.paragraphLine_is(marker.text)
        cursor = index + 1

        while cursor < len(lines):
            line = lines[cursor]
            text = line.text

            if fence is not None:
                collected.append(SourceLine(line.number, self.line_dedent(text, marker.content_indent)))
                if fence.closes(text):
                    fence = None
                cursor += 1
                continue

            if blank_is(text):
                ahead = cursor
                while ahead < len(lines) and blank_is(lines[ahead].text):
                    ahead += 1
                if ahead < len(lines) and indent_width(lines[ahead].text) >= marker.content_indent:
                    collected.extend(SourceLine(blank.number, "") for blank in lines[cursor:ahead])
                    cursor = ahead
                    paragraph_open = False
                    continue
                break

            if indent_width(text) >= marker.content_indent:
                dedented = self.line_dedent(text, marker.content_indent)
                collected.append(SourceLine(line.number, dedented))
                fence = fenceOpening_find(dedented)
                paragraph_open = fence is None and self.paragraphLine_is(dedented)
                cursor += 1
                continue

            # A marker outside the content column is a sibling (or an outer
            # list's item), never continuation text
            if listMarker_match(text) is not None:
                break

            # Lazy continuation of the item's paragraph
            if paragraph_open and not self.blockStart_is(text):
                collected.append(SourceLine(line.number, text.strip()))
                cursor += 1
                continue

            break

        return collected, cursor

    def paragraph_parse(self, lines: List[SourceLine], index: int) -> Tuple[Paragraph, int]:
        """
        Parse a paragraph: consecutive lines up to a blank line or a line
        that starts another block
        """
        collected = [lines[index]]
        cursor = index + 1

        while cursor < len(lines):
            text = lines[cursor].text
            if blank_is(text) or self.blockStart_is(text, definitions=False):
                break
            collected.append(lines[cursor])
            cursor += 1

        numbers = [line.number for line in collected]
        text = '\n'.join(line.text.strip() for line in collected)
        return Paragraph(inlines=self.inlines_parse(text, numbers), line_number=numbers[0]), cursor

    def inlines_parse(
        self, text: str, line_numbers: List[int], links: bool = True
    ) -> Tuple[Inline, ...]:
        """
        Parse inline content

        Recognises backslash escapes, code spans, inline links and images,
        and full / collapsed / shortcut reference links. Everything else is
        text.

        Args:
            text: Inline source (lines joined with newlines)
            line_numbers: Source line number of each line in ``text``
            links: Parse links (False inside link text)

        Returns:
            Tuple of Text, CodeSpan and Link nodes with adjacent text merged

        Example:
            Input: "See `agent.jar` and [the docs][docs]."
            Output: (Text("See "), CodeSpan("agent.jar"), Text(" and "),
                     Link(text="the docs", ref="docs", url=None, ...), Text("."))
        """
        nodes: List[Inline] = []
        buffer: List[str] = []

        def flush() -> None:
            if buffer:
                nodes.append(Text(''.join(buffer)))
                buffer.clear()

        pos = 0
        while pos < len(text):
            char = text[pos]

            if char == '\\' and pos + 1 < len(text) and text[pos + 1] in ESCAPABLE:
                buffer.append(text[pos + 1])
                pos += 2
                continue

            if char == '`':
                match = CODE_SPAN_PATTERN.match(text, pos)
                if match:
                    flush()
                    nodes.append(CodeSpan(self.codeSpan_normalize(match.group('code'))))
                    pos = match.end()
                    continue
                run = len(text[pos:]) - len(text[pos:].lstrip('`'))
                buffer.append(text[pos:pos + run])
                pos += run
                continue

            if links and (char == '[' or (char == '!' and text.startswith('[', pos + 1))):
                found = self.link_match(text, pos, line_numbers)
                if found is not None:
                    flush()
                    link, pos = found
                    nodes.append(link)
                    continue

            buffer.append(char)
            pos += 1

        flush()
        return tuple(nodes)

    @staticmethod
    def codeSpan_normalize(code: str) -> str:
        """Strip one padding space from both ends, as CommonMark does"""
        if len(code) > 2 and code.startswith(' ') and code.endswith(' ') and code.strip():
            return code[1:-1]
        return code

    def link_match(
        self, text: str, pos: int, line_numbers: List[int]
    ) -> Optional[Tuple[Link, int]]:
        """
        Try to parse a link or image starting at ``pos``

        Returns:
            (Link, position after the link) or None if the brackets do not
            form a link (the caller then treats them as text)
        """
        image = text[pos] == '!'
        open_pos = pos + 1 if image else pos
        close = self.bracket_findMatching(text, open_pos, '[', ']')
        if close is None:
            return None

        label = text[open_pos + 1:close]
        line_index = text.count('\n', 0, pos)
        line_number = line_numbers[min(line_index, len(line_numbers) - 1)] if line_numbers else 0
        children = self.inlines_parse(label, line_numbers[line_index:], links=False)
        after = close + 1

        if after < len(text) and text[after] == '(':
            close_paren = self.bracket_findMatching(text, after, '(', ')')
            if close_paren is None:
                return None
            url, title = self.destination_split(text[after + 1:close_paren])
            return Link(
                text=label, children=children, url=url, ref=None,
                line_number=line_number, image=image, title=title,
            ), close_paren + 1

        if after < len(text) and text[after] == '[':
            close_ref = self.bracket_findMatching(text, after, '[', ']')
            if close_ref is not None:
                ref = text[after + 1:close_ref]
                if not ref.strip():
                    ref = label
                return Link(
                    text=label, children=children, url=None, ref=ref,
                    line_number=line_number, image=image,
                ), close_ref + 1

        # Shortcut reference [label]; empty brackets, footnotes and task-list
        # boxes stay text
        if not label.strip() or label.startswith('^'):
            return None
        if pos == 0 and label in ('x', 'X'):
            return None
        return Link(
            text=label, children=children, url=None, ref=label,
            line_number=line_number, image=image,
        ), after

    @staticmethod
    def bracket_findMatching(text: str, start: int, opener: str, closer: str) -> Optional[int]:
        """
        Find the bracket matching the one at ``start`` using depth tracking

        Backslash-escaped brackets and brackets inside code spans do not
        count.

        Returns:
            Position of the matching closer, or None if unbalanced

        Example:
            For "[a [b] c](x)" at position 0: returns 8
        """
        depth = 1
        pos = start + 1
        while pos < len(text):
            char = text[pos]
            if char == '\\':
                pos += 2
                continue
            if char == '`':
                match = CODE_SPAN_PATTERN.match(text, pos)
                if match:
                    pos = match.end()
                    continue
            if char == opener:
                depth += 1
            elif char == closer:
                depth -= 1
                if depth == 0:
                    return pos
            pos += 1
        return None

    @staticmethod
    def destination_split(inner: str) -> Tuple[str, Optional[str]]:
        """
        Split "(url "title")" content into url and optional title

        Example:
            >>> Parser.destination_split('/docs/ "The docs"')
            ('/docs/', 'The docs')
        """
        inner = inner.strip()
        if inner.startswith('<') and '>' in inner:
            end = inner.index('>')
            url, rest = inner[1:end], inner[end + 1:]
        else:
            parts = inner.split(None, 1)
            url = parts[0] if parts else ""
            rest = parts[1] if len(parts) > 1 else ""

        title = None
        rest = rest.strip()
        if len(rest) >= 2 and rest[0] + rest[-1] in ('""', "''", '()'):
            title = rest[1:-1]
        return url, title

    @staticmethod
    def line_dedent(text: str, columns: int) -> str:
        """Remove up to ``columns`` leading spaces"""
        return text[min(indent_width(text), columns):]
