"""Leads domain - public booking inquiries and the admin lead kanban"""

from .router import public_router, router

__all__ = ["router", "public_router"]
