"""
Compiler for pagemark pages to HTML and JSON

Transforms a resolved Page into a standalone HTML document (or a JSON
render tree).
"""

import html
import json
import posixpath
import re
from dataclasses import fields, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set

from ..models.page import (
    Block,
    CalloutBox,
    CodeFence,
    CodeSpan,
    Heading,
    Inline,
    Link,
    LinkDefinitionTable,
    ListBlock,
    ListItem,
    Page,
    Paragraph,
    Text,
)
from ..models.site import SiteIndex
from .errors import UnresolvedReferenceError
from .log import LOG


def slug_make(title: str) -> str:
    no_number = re.sub(r"^\d+\.?\s*", "", title.lower())
    slug = re.sub(r"[^a-z0-9]+", "-", no_number).strip("-")
    return slug or "section"


def slug_makeUnique(base: str, used: Set[str]) -> str:
    """Generate a unique slug, appending numeric suffixes when needed."""
    candidate = base
    suffix = 2
    while candidate in used:
        candidate = f"{base}-{suffix}"
        suffix += 1
    used.add(candidate)
    return candidate


def inlines_toPlain(inlines) -> str:
    """Flatten inline nodes to their visible text"""
    parts = []
    for inline in inlines:
        if isinstance(inline, Text):
            parts.append(inline.text)
        elif isinstance(inline, CodeSpan):
            parts.append(inline.code)
        elif isinstance(inline, Link):
            parts.append(inlines_toPlain(inline.children))
    return ''.join(parts)


def node_serialize(node: Any) -> Any:
    """
    Convert a page tree to JSON-compatible data

    Dataclass nodes become dicts tagged with their type name; enums become
    their values.

    Example:
        >>> node_serialize(Text("hi"))
        {'type': 'Text', 'text': 'hi'}
    """
    if is_dataclass(node) and not isinstance(node, type):
        data: Dict[str, Any] = {'type': type(node).__name__}
        for item in fields(node):
            data[item.name] = node_serialize(getattr(node, item.name))
        return data
    if isinstance(node, Enum):
        return node.value
    if isinstance(node, (list, tuple)):
        return [node_serialize(value) for value in node]
    if isinstance(node, dict):
        return {str(key): node_serialize(value) for key, value in node.items()}
    return node


class Compiler:
    """
    Compiles a resolved Page to HTML

    Responsibilities:
    - Transform blocks and inlines to HTML
    - Highlight code fences with Pygments
    - Give headings unique ids
    - Wrap the body in a document with site navigation
    - Generate final output (HTML or JSON)
    """

    def __init__(
        self,
        page: Page,
        pygments_style: Optional[str] = None,
        site_index: Optional[SiteIndex] = None,
        page_href: str = "index.html",
    ) -> None:
        """
        Initialize compiler

        Args:
            page: Parsed page with resolved links
            pygments_style: Pygments style name (defaults to appsettings)
            site_index: Pages for the navigation list
            page_href: This page's output path relative to the output root,
                       used to make navigation links relative
        """
        from ..config import appsettings

        self.page = page
        self.pygments_style = pygments_style or appsettings.pygments_style
        self.site_index = site_index or SiteIndex()
        self.page_href = page_href
        self.slugs_used: Set[str] = set()

        self.handlers: Dict[type, Callable[[Any], str]] = {
            Heading: self.heading_compile,
            Paragraph: self.paragraph_compile,
            ListBlock: self.list_compile,
            CodeFence: self.codeFence_compile,
            CalloutBox: self.callout_compile,
            LinkDefinitionTable: self.definitions_compile,
        }

    def compile(self, output_file: Optional[Path] = None, output_format: str = "html") -> Dict[str, Any]:
        """
        Compile the page

        Args:
            output_file: Where to write the result (nothing is written if None)
            output_format: "html" or "json"

        Returns:
            dict with compilation results and statistics
        """
        LOG(f"Compiling {self.page.source_path or '<string>'} to {output_format}", level=2)

        if output_format == "json":
            output = self.tree_serialize()
        else:
            output = self.htmlDocument_build(self.body_compile(self.page.body))

        if output_file is not None:
            output_file.parent.mkdir(parents=True, exist_ok=True)
            output_file.write_text(output, encoding='utf-8')
            LOG(f"Wrote {output_file}", level=2)

        return {
            'status': True,
            'output_file': str(output_file) if output_file is not None else None,
            'block_count': len(self.page.body),
            'output': output,
        }

    def body_compile(self, blocks) -> str:
        """
        Compile a sequence of blocks to HTML

        Args:
            blocks: Blocks in document order

        Returns:
            HTML fragments joined with newlines (blocks that render to
            nothing are dropped)
        """
        html_parts = []
        for block in blocks:
            compiled = self.block_compile(block)
            if compiled:
                html_parts.append(compiled)
        return '\n'.join(html_parts)

    def block_compile(self, block: Block) -> str:
        """Dispatch one block to its handler"""
        handler = self.handlers.get(type(block))
        if handler is None:
            raise TypeError(f"no HTML handler for {type(block).__name__}")
        return handler(block)

    def heading_compile(self, heading: Heading) -> str:
        base = heading.anchor or slug_make(inlines_toPlain(heading.inlines))
        slug = slug_makeUnique(base, self.slugs_used)
        return f'<h{heading.level} id="{slug}">{self.inlines_compile(heading.inlines)}</h{heading.level}>'

    def paragraph_compile(self, paragraph: Paragraph) -> str:
        return f'<p>{self.inlines_compile(paragraph.inlines)}</p>'

    def list_compile(self, list_block: ListBlock) -> str:
        if list_block.ordered:
            start = f' start="{list_block.start}"' if list_block.start != 1 else ''
            opening, closing = f'<ol{start}>', '</ol>'
        else:
            opening, closing = '<ul>', '</ul>'
        items = '\n'.join(self.listItem_compile(item) for item in list_block.items)
        return f'{opening}\n{items}\n{closing}'

    def listItem_compile(self, item: ListItem) -> str:
        """A single-paragraph item renders tight, without the <p> wrapper"""
        if len(item.blocks) == 1 and isinstance(item.blocks[0], Paragraph):
            return f'<li>{self.inlines_compile(item.blocks[0].inlines)}</li>'
        return f'<li>\n{self.body_compile(item.blocks)}\n</li>'

    def codeFence_compile(self, fence: CodeFence) -> str:
        """
        Highlight a code fence

        The wrapper div carries the verbatim language tag and, for excerpts,
        the source file the code came from.
        """
        from pygments import highlight
        from pygments.lexers import get_lexer_by_name, TextLexer
        from pygments.lexer import Lexer
        from pygments.formatters import HtmlFormatter
        from pygments.util import ClassNotFound

        lexer: Lexer
        try:
            lexer = get_lexer_by_name(fence.language) if fence.language else TextLexer()
        except ClassNotFound:
            LOG(f"Line {fence.line_number}: no highlighter for '{fence.language}'", level=3)
            lexer = TextLexer()

        formatter = HtmlFormatter(style=self.pygments_style, noclasses=True)
        highlighted = highlight(fence.content, lexer, formatter)

        attributes = f' data-language="{html.escape(fence.language)}"'
        if fence.source_excerpt_path:
            attributes += f' data-source="{html.escape(fence.source_excerpt_path)}"'
        return f'<div class="code-fence"{attributes}>\n{highlighted}</div>'

    def callout_compile(self, callout: CalloutBox) -> str:
        parts = [f'<div class="alert alert-{callout.severity.value}" role="alert">']
        if callout.title:
            parts.append(f'<h4 class="alert-heading">{html.escape(callout.title)}</h4>')
        body = self.body_compile(callout.blocks)
        if body:
            parts.append(body)
        parts.append('</div>')
        return '\n'.join(parts)

    def definitions_compile(self, table: LinkDefinitionTable) -> str:
        return ""

    def inlines_compile(self, inlines) -> str:
        """
        Compile inline nodes to HTML

        Raises:
            UnresolvedReferenceError: For a reference link that was never
                                      resolved
        """
        parts: List[str] = []
        for inline in inlines:
            parts.append(self.inline_compile(inline))
        return ''.join(parts)

    def inline_compile(self, inline: Inline) -> str:
        if isinstance(inline, Text):
            return html.escape(inline.text, quote=False)
        if isinstance(inline, CodeSpan):
            return f'<code>{html.escape(inline.code, quote=False)}</code>'

        if inline.url is None:
            raise UnresolvedReferenceError(
                inline.ref or inline.text,
                line_number=inline.line_number,
                source_path=self.page.source_path,
            )
        url = html.escape(inline.url)
        title = f' title="{html.escape(inline.title)}"' if inline.title else ''
        if inline.image:
            alt = html.escape(inlines_toPlain(inline.children))
            return f'<img src="{url}" alt="{alt}"{title}>'
        return f'<a href="{url}"{title}>{self.inlines_compile(inline.children)}</a>'

    def navigation_build(self) -> str:
        """
        Build the site navigation list

        Links are relative to this page's location; the current page is
        marked with aria-current.
        """
        if not len(self.site_index):
            return ""

        base = posixpath.dirname(self.page_href) or '.'
        items = []
        for entry in self.site_index:
            href = html.escape(posixpath.relpath(entry.href, start=base))
            current = ' aria-current="page"' if entry.href == self.page_href else ''
            items.append(f'        <li><a href="{href}"{current}>{html.escape(entry.title)}</a></li>')

        return '<nav class="site-nav">\n    <ul>\n' + '\n'.join(items) + '\n    </ul>\n</nav>'

    def htmlDocument_build(self, content: str) -> str:
        """
        Build complete HTML document with head and navigation

        Args:
            content: Compiled page body

        Returns:
            Complete HTML document
        """
        title = self.page.title or Path(self.page_href).stem
        description = ''
        if self.page.description:
            description = f'\n    <meta name="description" content="{html.escape(self.page.description)}">'

        return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>{html.escape(title)}</title>{description}
</head>
<body>
{self.navigation_build()}
<main>
{content}
</main>
</body>
</html>
"""

    def tree_serialize(self) -> str:
        """Serialise the page tree as JSON"""
        return json.dumps(node_serialize(self.page), indent=2, ensure_ascii=False, default=str) + '\n'
