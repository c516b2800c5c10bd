"""Utilities package for backend services"""

from backend.utils.errors import ErrorCode, create_error_response
from backend.utils.logging import setup_logging

__all__ = ['ErrorCode', 'create_error_response', 'setup_logging']
