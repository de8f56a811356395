"""
Error types raised while loading and rendering a page

Every structural problem is fatal for the page being processed. Each error
carries the line number and (once known) the source path so a build can
report "file:line: Kind: message" and carry on with the remaining pages.
"""

from typing import Optional


class PageError(Exception):
    """Base class for fatal, per-page content errors"""

    def __init__(
        self,
        message: str,
        line_number: Optional[int] = None,
        source_path: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.line_number = line_number
        self.source_path = source_path

    @property
    def kind(self) -> str:
        return type(self).__name__

    def location_set(self, source_path: Optional[str]) -> "PageError":
        """Attach a source path if the raiser did not know it"""
        if self.source_path is None:
            self.source_path = source_path
        return self

    def __str__(self) -> str:
        location = self.source_path or "<string>"
        if self.line_number is not None:
            location = f"{location}:{self.line_number}"
        return f"{location}: {self.kind}: {self.message}"


class MetadataParseError(PageError):
    """Malformed, unterminated or incomplete front-matter"""
    pass


class MarkupError(PageError):
    """Structurally broken markup in the page body"""
    pass


class UnterminatedBlockError(MarkupError):
    """Code fence or callout opened but never closed"""
    pass


class DirectiveSyntaxError(PageError):
    """Unknown or malformed directive (raised in strict mode only)"""
    pass


class LinkError(PageError):
    """Problem with reference-style links or their definitions"""
    pass


class UnresolvedReferenceError(LinkError):
    """Reference link whose label has no definition"""

    def __init__(
        self, label: str, line_number: Optional[int] = None, source_path: Optional[str] = None
    ) -> None:
        super().__init__(
            f"no link definition for label '{label}'", line_number, source_path
        )
        self.label = label


class DuplicateDefinitionError(LinkError):
    """Link label defined more than once (when duplicates are an error)"""

    def __init__(
        self,
        label: str,
        line_number: Optional[int] = None,
        first_line: Optional[int] = None,
        source_path: Optional[str] = None,
    ) -> None:
        message = f"link label '{label}' is defined more than once"
        if first_line is not None:
            message += f" (first definition at line {first_line})"
        super().__init__(message, line_number, source_path)
        self.label = label
        self.first_line = first_line
