"""
Site-level data models

Structures shared between the two passes of a multi-page build: the
read-only index of every page that parsed, and the per-page result the
build reports.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, Optional, Tuple

from .page import Page


@dataclass(frozen=True)
class NavEntry:
    """
    One page in the site navigation

    Attributes:
        title: Page title (falls back to the file stem)
        weight: Ordering weight from front-matter
        href: Output path relative to the output root, "/"-separated
        description: Page description
    """
    title: str
    weight: int
    href: str
    description: str = ""


@dataclass(frozen=True)
class SiteIndex:
    """
    Read-only index of the pages in a build, ordered by weight then title

    Built once after every page has parsed and shared by the render pass.
    """
    entries: Tuple[NavEntry, ...] = ()

    @classmethod
    def pages_index(cls, pages: Iterable[Tuple[Page, str]]) -> "SiteIndex":
        """
        Build an index from (page, href) pairs

        Example:
            >>> index = SiteIndex.pages_index([(page_b, "b.html"), (page_a, "a.html")])
            >>> [entry.href for entry in index]  # page_a has the lower weight
            ['a.html', 'b.html']
        """
        entries = [
            NavEntry(
                title=page.title or Path(href).stem,
                weight=page.weight,
                href=href,
                description=page.description,
            )
            for page, href in pages
        ]
        entries.sort(key=lambda entry: (entry.weight, entry.title.lower(), entry.href))
        return cls(entries=tuple(entries))

    def __iter__(self) -> Iterator[NavEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


@dataclass
class PageResult:
    """
    Outcome of building one page

    Attributes:
        source: Source file
        output_file: Written output (None when the page failed)
        error: The PageError that stopped the page, if any
        block_count: Top-level blocks rendered
    """
    source: Path
    output_file: Optional[Path] = None
    error: Optional[Exception] = None
    block_count: int = field(default=0)

    @property
    def ok(self) -> bool:
        return self.error is None
