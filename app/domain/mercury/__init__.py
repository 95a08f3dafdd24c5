"""Mercury domain - bank reconciliation against the Mercury API"""

from .router import router

__all__ = ["router"]
