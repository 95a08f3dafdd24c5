"""Users domain - admin management of clients, cleaners and admins"""

from .router import router

__all__ = ["router"]
