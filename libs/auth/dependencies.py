from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.errors import ForbiddenError
from libs.common.logging import get_logger
from libs.db.session import get_async_db

settings = get_settings()
security = HTTPBearer(auto_error=False)
logger = get_logger(__name__)


def decode_access_token(token: str) -> AuthUser:
    """
    Verify a Supabase access token and return the identity it carries.

    Raises ``JWTError`` / ``ValidationError`` when the token is unusable.
    """
    payload = jwt.decode(
        token,
        settings.SUPABASE_JWT_SECRET,
        algorithms=["HS256"],
        # Supabase tokens vary in aud across projects
        options={"verify_aud": False},
    )
    return AuthUser(**payload)


async def get_current_user(
    token: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> AuthUser:
    """
    Validate the bearer token and return the authenticated user.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if token is None or not token.credentials:
        raise credentials_exception

    try:
        return decode_access_token(token.credentials)
    except (JWTError, ValidationError) as exc:
        logger.info("Rejected bearer token: %s", exc)
        raise credentials_exception


async def is_admin_user(db: AsyncSession, user_id: str) -> bool:
    """Look up the ``is_admin`` flag for ``user_id`` in the users table."""
    from services.payments_service.models import User

    result = await db.execute(select(User.is_admin).where(User.id == user_id))
    return bool(result.scalar_one_or_none())


async def require_admin(
    current_user: Annotated[AuthUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_async_db)],
) -> AuthUser:
    """
    Ensure the caller is flagged as admin in the users table.
    """
    if not await is_admin_user(db, current_user.user_id):
        logger.warning("Admin access denied for user %s", current_user.user_id)
        raise ForbiddenError("Admin privileges required")
    return current_user
