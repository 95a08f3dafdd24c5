"""Scheduling domain - cleaner portal, time off and cleaner availability"""

from .router import cleaner_router, router

__all__ = ["router", "cleaner_router"]
