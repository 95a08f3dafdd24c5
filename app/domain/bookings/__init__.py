"""Bookings domain - admin booking management, recurrence, pricing and the client portal"""

from .router import checklist_router, client_router, router

__all__ = ["router", "client_router", "checklist_router"]
