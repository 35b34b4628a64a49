"""
Rate limiting for the schedule service.
"""

from .fixed_window import FixedWindowRateLimiter, get_client_id

__all__ = ["FixedWindowRateLimiter", "get_client_id"]
