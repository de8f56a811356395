"""
pagemark - Documentation page parser and renderer

Parses Markdown-style documentation pages with YAML front-matter, code
excerpt directives, callout shortcodes and reference links, and renders
them to HTML.
"""

__version__ = "1.0.0"

from .lib import Parser, Compiler, SiteBuilder, DirectiveRegistry, LOG, state_connectToLogger

__all__ = ["Parser", "Compiler", "SiteBuilder", "DirectiveRegistry", "LOG", "state_connectToLogger", "__version__"]
