"""
API Middleware
"""

from .auth import get_current_account

__all__ = ["get_current_account"]
