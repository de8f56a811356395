"""
Reference link resolution

Reference-style links ([label][ref], [ref][] and [ref]) are parsed with
url=None. LinkResolver collects the page's link definitions, matches each
reference after label normalisation (case-folded, whitespace collapsed)
and returns a new Page whose links all carry a URL.

Definitions may appear anywhere on the page, including after their use and
inside list items or callouts.
"""

from dataclasses import replace
from typing import Dict, Optional, Set, Tuple, get_args

from ..models.page import (
    Block,
    CalloutBox,
    Heading,
    Inline,
    Link,
    LinkDefinition,
    LinkDefinitionTable,
    ListBlock,
    Page,
    Paragraph,
    blocks_walk,
)
from .errors import DuplicateDefinitionError, UnresolvedReferenceError
from .log import LOG


class LinkResolver:
    """
    Resolves reference links against a page's link definitions

    Duplicate labels follow the configured policy:
        last-wins   later definition replaces the earlier one (logged)
        first-wins  earlier definition is kept (logged)
        error       DuplicateDefinitionError

    Any other policy name is a ValueError.
    """

    def __init__(self, duplicate_policy: Optional[str] = None) -> None:
        from ..config import appsettings, DuplicatePolicy

        self.settings = appsettings
        self.duplicate_policy = duplicate_policy or appsettings.duplicate_definitions
        if self.duplicate_policy not in get_args(DuplicatePolicy):
            raise ValueError(f"unknown duplicate-definition policy '{self.duplicate_policy}'")
        self.source_path: Optional[str] = None
        self.used: Set[str] = set()

    def definitions_collect(self, blocks: Tuple[Block, ...]) -> Dict[str, LinkDefinition]:
        """
        Build the label -> definition table for a block tree

        Returns:
            Dict keyed by normalised label

        Raises:
            DuplicateDefinitionError: Under the "error" policy
        """
        table: Dict[str, LinkDefinition] = {}

        for block in blocks_walk(blocks):
            if not isinstance(block, LinkDefinitionTable):
                continue
            for definition in block.definitions:
                key = self.settings.labelKey_make(definition.label)
                earlier = table.get(key)
                if earlier is not None:
                    if self.duplicate_policy == "error":
                        raise DuplicateDefinitionError(
                            definition.label,
                            line_number=definition.line_number,
                            first_line=earlier.line_number,
                            source_path=self.source_path,
                        )
                    LOG(
                        f"Line {definition.line_number}: link label '{definition.label}' "
                        f"already defined at line {earlier.line_number} ({self.duplicate_policy})",
                        level=1,
                        severity="WARNING",
                    )
                    if self.duplicate_policy == "first-wins":
                        continue
                table[key] = definition

        return table

    def page_resolve(self, page: Page) -> Page:
        """
        Return a copy of ``page`` with every reference link resolved

        Raises:
            UnresolvedReferenceError: For the first reference (in document
                                      order) whose label has no definition
        """
        self.source_path = page.source_path
        self.used = set()

        table = self.definitions_collect(page.body)
        body = self.blocks_resolve(page.body, table)

        for key, definition in table.items():
            if key not in self.used:
                LOG(
                    f"Line {definition.line_number}: link definition '{definition.label}' is never used",
                    level=2,
                )

        return replace(page, body=body)

    def blocks_resolve(
        self, blocks: Tuple[Block, ...], table: Dict[str, LinkDefinition]
    ) -> Tuple[Block, ...]:
        resolved = []
        for block in blocks:
            if isinstance(block, (Heading, Paragraph)):
                block = replace(block, inlines=self.inlines_resolve(block.inlines, table))
            elif isinstance(block, ListBlock):
                items = tuple(
                    replace(item, blocks=self.blocks_resolve(item.blocks, table))
                    for item in block.items
                )
                block = replace(block, items=items)
            elif isinstance(block, CalloutBox):
                block = replace(block, blocks=self.blocks_resolve(block.blocks, table))
            resolved.append(block)
        return tuple(resolved)

    def inlines_resolve(
        self, inlines: Tuple[Inline, ...], table: Dict[str, LinkDefinition]
    ) -> Tuple[Inline, ...]:
        resolved = []
        for inline in inlines:
            if isinstance(inline, Link) and inline.is_reference and inline.url is None:
                inline = self.link_resolve(inline, table)
            resolved.append(inline)
        return tuple(resolved)

    def link_resolve(self, link: Link, table: Dict[str, LinkDefinition]) -> Link:
        """
        Resolve one reference link

        Example:
            [traces][] with "[Traces]: /docs/traces/" defined
            -> Link(url="/docs/traces/", ref="traces", ...)
        """
        key = self.settings.labelKey_make(link.ref or "")
        definition = table.get(key)
        if definition is None:
            raise UnresolvedReferenceError(
                link.ref or "", line_number=link.line_number, source_path=self.source_path
            )
        self.used.add(key)
        return replace(link, url=definition.url, title=link.title or definition.title)
