"""Shared helpers for the kiosk services."""

from .exceptions import KioskError
from .retry import RetryPolicy, retry

__all__ = ["KioskError", "RetryPolicy", "retry"]
