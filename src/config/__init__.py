"""
Configuration package for pagemark

Provides application settings via environment variables using pydantic-settings.
"""

from .settings import appsettings, AppSettings, DuplicatePolicy

__all__ = ["appsettings", "AppSettings", "DuplicatePolicy"]
