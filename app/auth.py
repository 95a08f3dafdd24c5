import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .models import User, UserRole
from .security_utils import decode_access_token
from .shared.permissions import has_permission

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from the Bearer access token"""

    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    token = credentials.credentials
    if len(token.split(".")) != 3:
        logger.warning(f"⚠️ Malformed token received, length: {len(token)}")
        raise HTTPException(status_code=401, detail="Invalid token format. Expected a valid JWT token.")

    payload = decode_access_token(token)
    if not payload or not payload.get("userId"):
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user = db.query(User).filter(User.id == payload["userId"]).first()
    if not user:
        logger.warning(f"⚠️ Token references missing user {payload['userId']}")
        raise HTTPException(status_code=404, detail="User not found")

    logger.debug(f"✅ User authenticated: {user.email}")
    return user


def require_role(*roles: str):
    """Dependency factory: the current user must have one of the given roles"""

    async def dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            logger.warning(f"⚠️ User {user.id} with role {user.role} denied (requires {roles})")
            raise HTTPException(status_code=403, detail="You do not have access to this resource")
        return user

    return dependency


def require_admin(permission: Optional[str] = None):
    """
    Dependency factory for admin endpoints.

    The user must be an ADMIN or OWNER and, when a permission is named,
    hold that permission (OWNER always does).
    """

    async def dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in UserRole.STAFF:
            raise HTTPException(status_code=403, detail="Admin access required")
        if permission and not has_permission(user, permission):
            logger.warning(f"⚠️ Admin {user.id} lacks permission {permission}")
            raise HTTPException(
                status_code=403, detail=f"You do not have permission to perform this action ({permission})"
            )
        return user

    return dependency


require_client = require_role(UserRole.CLIENT)
require_cleaner = require_role(UserRole.CLEANER)
