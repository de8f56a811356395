"""
Page content model

Immutable data structures produced by the parser and consumed by the link
resolver and the compiler.

A Page carries its front-matter metadata and an ordered body of blocks.
Blocks are a tagged variant (Heading, Paragraph, ListBlock, CodeFence,
CalloutBox, LinkDefinitionTable); ListItem and CalloutBox hold nested
blocks, so the body is a tree built by recursive descent. Inline content is
a second, smaller variant (Text, CodeSpan, Link).

Every node is a frozen dataclass. Link resolution returns a new Page rather
than mutating the parsed one.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Tuple, Union


class Severity(Enum):
    """Visual severity of a callout box"""
    INFO = "info"
    WARNING = "warning"


@dataclass(frozen=True)
class Text:
    """Literal run of text"""
    text: str


@dataclass(frozen=True)
class CodeSpan:
    """Inline `code`"""
    code: str


@dataclass(frozen=True)
class Link:
    """
    Inline or reference-style link (or image)

    Attributes:
        text: Raw link text as written between the brackets
        children: Parsed inline content of the link text
        url: Target URL; None for a reference link that is not yet resolved
        ref: Reference label for [text][ref], [text][] and [ref] forms,
             None for inline links
        line_number: Source line of the opening bracket
        image: True for ![alt](src) images
        title: Optional link title
    """
    text: str
    children: Tuple['Inline', ...]
    url: Optional[str]
    ref: Optional[str]
    line_number: int
    image: bool = False
    title: Optional[str] = None

    @property
    def is_reference(self) -> bool:
        return self.ref is not None


Inline = Union[Text, CodeSpan, Link]


@dataclass(frozen=True)
class Heading:
    level: int
    inlines: Tuple[Inline, ...]
    line_number: int
    anchor: Optional[str] = None


@dataclass(frozen=True)
class Paragraph:
    inlines: Tuple[Inline, ...]
    line_number: int


@dataclass(frozen=True)
class ListItem:
    blocks: Tuple['Block', ...]
    line_number: int


@dataclass(frozen=True)
class ListBlock:
    ordered: bool
    items: Tuple[ListItem, ...]
    line_number: int
    start: int = 1


@dataclass(frozen=True)
class CodeFence:
    """
    Fenced code block

    Attributes:
        language: Fence language tag, copied verbatim (e.g. "java", "sh")
        content: Code with trailing whitespace stripped from every line
        line_number: Line of the opening fence
        source_excerpt_path: Source file this fence is an excerpt of, when a
                             code-excerpt directive preceded it
    """
    language: str
    content: str
    line_number: int
    source_excerpt_path: Optional[str] = None


@dataclass(frozen=True)
class CalloutBox:
    severity: Severity
    blocks: Tuple['Block', ...]
    line_number: int
    title: Optional[str] = None


@dataclass(frozen=True)
class LinkDefinition:
    """A [label]: url line"""
    label: str
    url: str
    line_number: int
    title: Optional[str] = None


@dataclass(frozen=True)
class LinkDefinitionTable:
    definitions: Tuple[LinkDefinition, ...]
    line_number: int


Block = Union[Heading, Paragraph, ListBlock, CodeFence, CalloutBox, LinkDefinitionTable]


@dataclass(frozen=True)
class PageMetadata:
    """
    Front-matter metadata

    Attributes:
        title: Page title
        description: One-line page description
        weight: Ordering hint (lower sorts first)
        params: Every other front-matter key, preserved as parsed
    """
    title: str = ""
    description: str = ""
    weight: int = 0
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Page:
    metadata: PageMetadata
    body: Tuple[Block, ...]
    source_path: Optional[str] = None

    @property
    def title(self) -> str:
        return self.metadata.title

    @property
    def description(self) -> str:
        return self.metadata.description

    @property
    def weight(self) -> int:
        return self.metadata.weight


def blocks_walk(blocks: Tuple[Block, ...]) -> Iterator[Block]:
    """
    Yield every block in document order, descending into list items and
    callout boxes.
    """
    for block in blocks:
        yield block
        if isinstance(block, ListBlock):
            for item in block.items:
                yield from blocks_walk(item.blocks)
        elif isinstance(block, CalloutBox):
            yield from blocks_walk(block.blocks)


def inlines_walk(inlines: Tuple[Inline, ...]) -> Iterator[Inline]:
    """Yield every inline node, descending into link text"""
    for inline in inlines:
        yield inline
        if isinstance(inline, Link):
            yield from inlines_walk(inline.children)


def links_find(blocks: Tuple[Block, ...]) -> Iterator[Link]:
    """Yield every link in the block tree in document order"""
    for block in blocks_walk(blocks):
        if isinstance(block, (Heading, Paragraph)):
            for inline in inlines_walk(block.inlines):
                if isinstance(inline, Link):
                    yield inline
