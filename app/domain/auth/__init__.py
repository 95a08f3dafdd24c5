"""Auth domain - login, registration and password reset"""

from .router import router

__all__ = ["router"]
