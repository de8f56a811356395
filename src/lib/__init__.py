"""
pagemark - Documentation page parser and renderer
"""

__version__ = "1.0.0"

from .parser import Parser
from .resolver import LinkResolver
from .compiler import Compiler
from .builder import SiteBuilder
from .directives import DirectiveRegistry, DirectiveProcessor
from .frontmatter import frontMatter_split, frontMatter_serialize
from .log import LOG, state_connectToLogger

__all__ = [
    "Parser",
    "LinkResolver",
    "Compiler",
    "SiteBuilder",
    "DirectiveRegistry",
    "DirectiveProcessor",
    "frontMatter_split",
    "frontMatter_serialize",
    "LOG",
    "state_connectToLogger",
    "__version__",
]
