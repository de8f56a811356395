"""
Application settings and configuration

Uses pydantic-settings for type-safe configuration via environment variables.
All settings use PAGEMARK_ prefix (e.g., PAGEMARK_STRICT_MODE=true).

Settings can also be loaded from a .env file in the project root.
"""

from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DuplicatePolicy = Literal["last-wins", "first-wins", "error"]


class AppSettings(BaseSettings):
    """
    Application configuration via environment variables.

    Environment variables use PAGEMARK_ prefix.

    Examples:
        PAGEMARK_DUPLICATE_DEFINITIONS=error
        PAGEMARK_DIRECTIVE_WARNINGS=false
        PAGEMARK_PYGMENTS_STYLE=friendly
    """

    model_config = SettingsConfigDict(
        env_prefix="PAGEMARK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Front-matter configuration
    required_metadata: List[str] = Field(
        default=["title"],
        description="Front-matter keys that must be present when a metadata block exists",
    )

    # Link resolution configuration
    duplicate_definitions: DuplicatePolicy = Field(
        default="last-wins",
        description="Policy for repeated link-definition labels: last-wins, first-wins or error",
    )

    # Directive configuration
    directive_warnings: bool = Field(
        default=True,
        description="Log a warning for unknown or malformed <?directive?> instructions",
    )

    strict_mode: bool = Field(
        default=False,
        description="Strict mode: treat directive warnings as errors",
    )

    callout_shortcodes: List[str] = Field(
        default=["alert"],
        description="Shortcode names rendered as callout boxes",
    )

    # Output configuration
    pygments_style: str = Field(
        default="monokai",
        description="Pygments style used to highlight code fences",
    )

    page_glob: str = Field(
        default="**/*.md",
        description="Glob (relative to the input directory) selecting source pages",
    )

    def labelKey_make(self, label: str) -> str:
        """
        Normalise a link label into its lookup key.

        Labels match case-insensitively and runs of whitespace collapse to a
        single space.

        Args:
            label: Label as written in the page

        Returns:
            Normalised lookup key

        Example:
            >>> settings = AppSettings()
            >>> settings.labelKey_make("Java  Agent")
            'java agent'
        """
        return " ".join(label.split()).lower()


# Singleton instance - import this in your code
appsettings = AppSettings()
