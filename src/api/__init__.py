"""Kiosk control API."""

from .gateway import APIGateway
from .service import APIService

__all__ = ["APIGateway", "APIService"]
