"""API package for the CRM reporting service"""

from . import health, analytics

__all__ = ["health", "analytics"]
