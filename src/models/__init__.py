"""
Models package for pagemark

Contains the page content model and the data structures used by the parser
and the build pipeline.
"""

from .state import ProgramState, pipeline
from .page import Page, PageMetadata, Severity
from .site import NavEntry, PageResult, SiteIndex
from .directives import DirectiveSpec, DirectiveRecord, ExcerptContext

__all__ = [
    "ProgramState",
    "pipeline",
    "Page",
    "PageMetadata",
    "Severity",
    "NavEntry",
    "PageResult",
    "SiteIndex",
    "DirectiveSpec",
    "DirectiveRecord",
    "ExcerptContext",
]
