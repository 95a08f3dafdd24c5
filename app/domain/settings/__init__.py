"""Settings domain - configuration, pricing rules, checklist and email templates"""

from .router import router

__all__ = ["router"]
