"""Reports domain - admin dashboards"""

from .router import router

__all__ = ["router"]
