"""Configuration package for the CRM reporting service"""

from .settings import get_settings, clear_settings_cache, Settings

__all__ = ["get_settings", "clear_settings_cache", "Settings"]
