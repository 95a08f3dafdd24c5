"""Payments domain - saved cards, payment intents, holds, captures and refunds"""

from .router import admin_router, router

__all__ = ["router", "admin_router"]
