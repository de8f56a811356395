"""
Directive specification and state models

Defines the structure of <?directive?> processing instructions for
validation, registry management, and the excerpt context that directives
fold into as code fences are built.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set


@dataclass
class DirectiveRecord:
    """
    One recognised directive occurrence

    Directives are logged in document order and folded left to right into
    an ExcerptContext.

    Attributes:
        line_number: Source line of the directive
        name: Directive name (e.g., "code-excerpt")
        positional: Bare "value" arguments
        keywords: key="value" arguments
    """
    line_number: int
    name: str
    positional: List[str] = field(default_factory=list)
    keywords: Dict[str, str] = field(default_factory=dict)


@dataclass
class ExcerptContext:
    """
    Current code-excerpt state while walking a document

    Attributes:
        path_base: Prefix applied to every later excerpt path until changed
        pending_excerpt: Excerpt path waiting for the next code fence
    """
    path_base: Optional[str] = None
    pending_excerpt: Optional[str] = None

    def path_resolve(self, excerpt: str) -> str:
        """
        Join an excerpt path onto the current base

        Example:
            >>> ExcerptContext(path_base="examples/java").path_resolve("build.gradle")
            'examples/java/build.gradle'
        """
        if self.path_base:
            return f"{self.path_base}/{excerpt}"
        return excerpt


@dataclass
class DirectiveSpec:
    """
    Specification for a processing-instruction directive

    Defines metadata, argument validation, and handler for a directive.
    Used by DirectiveRegistry to manage available directives.

    Attributes:
        name: Directive name as written after "<?"
        description: Human-readable description
        handler: Function (record, context) -> None folding the directive
                 into the excerpt context
        keywords: Accepted key="value" argument names
        max_positional: Maximum number of bare "value" arguments
        examples: Example usage strings
        aliases: Alternative names for the directive
    """
    name: str
    description: str
    handler: Callable[[DirectiveRecord, ExcerptContext], None]
    keywords: Set[str] = field(default_factory=set)
    max_positional: int = 1
    examples: List[str] = field(default_factory=list)
    aliases: List[str] = field(default_factory=list)

    def arguments_accept(self, positional: List[str], keywords: Dict[str, str]) -> Optional[str]:
        """
        Validate parsed arguments against this directive's signature

        Returns:
            None when the arguments are acceptable, otherwise a short reason
        """
        if len(positional) > self.max_positional:
            return f"expected at most {self.max_positional} positional argument(s)"
        unknown = sorted(set(keywords) - self.keywords)
        if unknown:
            return f"unknown argument(s): {', '.join(unknown)}"
        if not positional and not keywords:
            return "missing argument"
        return None
