"""
Parser-specific data models

Type-safe structures for parser operations and return values.
"""

from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple

from .page import PageMetadata


class SourceLine(NamedTuple):
    """
    One body line together with its line number in the source file

    The block parser slices, dedents and recurses over lists of these, so
    nested blocks still report the line they came from.
    """
    number: int
    text: str


@dataclass
class SplitDocument:
    """
    Result of separating front-matter from body text

    Returned by frontMatter_split().

    Attributes:
        metadata: Parsed metadata (empty PageMetadata when the document has
                  no front-matter block)
        body: Remaining document text after the closing delimiter
        body_start_line: Source line number of the first body line
        has_frontmatter: Whether a metadata block was present

    Example:
        For "---\\ntitle: X\\n---\\nHello":
        SplitDocument(
            metadata=PageMetadata(title="X"),
            body="Hello",
            body_start_line=4,
            has_frontmatter=True
        )
    """
    metadata: PageMetadata
    body: str
    body_start_line: int
    has_frontmatter: bool = False


@dataclass
class ParsedArguments:
    """
    Arguments of a directive or shortcode

    Attributes:
        positional: Bare "value" arguments in order
        keywords: key="value" arguments

    Example:
        Input: 'path-base="examples/java" "build.gradle"'
        Result: ParsedArguments(
            positional=["build.gradle"],
            keywords={"path-base": "examples/java"}
        )
    """
    positional: List[str] = field(default_factory=list)
    keywords: Dict[str, str] = field(default_factory=dict)


@dataclass
class ShortcodeMatch:
    """
    A callout shortcode delimiter found on a line

    Attributes:
        name: Shortcode name (e.g., "alert")
        closing: True for {{% /alert %}}
        arguments: Parsed title=/color= arguments (empty for closers)
        start: Column where the delimiter starts
        end: Column just past the delimiter
    """
    name: str
    closing: bool
    arguments: ParsedArguments
    start: int
    end: int


@dataclass
class ListMarker:
    """
    A list item marker found at the start of a line

    Attributes:
        indent: Columns of indentation before the marker
        ordered: True for "1." / "1)" markers
        start: Number of an ordered marker (1 for bullets)
        content_indent: Column where the item's content begins
        text: Text of the first line after the marker
    """
    indent: int
    ordered: bool
    start: int
    content_indent: int
    text: str


@dataclass
class FenceOpening:
    """Opening line of a fenced code block"""
    indent: int
    char: str
    length: int
    language: str

    def closes(self, text: str) -> bool:
        """Whether ``text`` is a closing fence for this opening"""
        stripped = text.strip()
        return (
            len(stripped) >= self.length
            and stripped == self.char * len(stripped)
        )

