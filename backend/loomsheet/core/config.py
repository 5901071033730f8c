"""
Configuration settings for LoomSheet

The settings implementation lives in settings.py using pydantic-settings.

Usage:
    from loomsheet.core.config import settings
    # or
    from loomsheet.core.settings import get_settings
    settings = get_settings()
"""
from loomsheet.core.settings import Settings, get_settings, settings

__all__ = ["Settings", "get_settings", "settings"]
