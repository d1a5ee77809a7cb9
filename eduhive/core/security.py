"""
Request authentication.

Accounts and sessions live in the hosted auth service; this API only verifies
the access tokens it issues and loads the caller's profile.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from fastapi.security import OAuth2PasswordBearer
from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from eduhive.core.config import settings
from eduhive.models.profile import Profile
from eduhive.db.database import get_db

# tokenUrl only documents where clients obtain tokens; it is served by the auth service
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/v1/token")


def create_access_token(
    user_id: str,
    expires_delta: Optional[timedelta] = None,
    additional_claims: Optional[Dict[str, Any]] = None
) -> str:
    """Issue a token shaped like the auth service's; used by scripts and tests."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(hours=1))
    payload = {
        "sub": str(user_id),
        "exp": int(expire.timestamp()),
        "iat": int(now.timestamp()),
        "role": "authenticated",
    }
    if settings.JWT_AUDIENCE:
        payload["aud"] = settings.JWT_AUDIENCE
    if additional_claims:
        payload.update(additional_claims)
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str) -> dict:
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            options={"verify_aud": bool(settings.JWT_AUDIENCE)},
        )
        if not payload.get("sub"):
            raise JWTError("Token has no subject")
        return payload
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_profile_by_id(db: AsyncSession, user_id: str) -> Optional[Profile]:
    result = await db.execute(select(Profile).where(Profile.id == user_id))
    return result.scalars().first()


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
) -> Profile:
    payload = verify_token(token)
    profile = await get_profile_by_id(db, payload["sub"])
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Profile not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return profile


async def get_current_active_user(
    current_user: Profile = Depends(get_current_user)
) -> Profile:
    if current_user.is_deactivated:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated"
        )
    return current_user
