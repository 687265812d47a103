import hashlib
from typing import Annotated, Optional

import redis.asyncio as aioredis
from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import APIKeyHeader
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from groceryindex.config import settings
from groceryindex.database import get_db
from groceryindex.models.user import User, UserRole

DbSession = Annotated[AsyncSession, Depends(get_db)]

# auto_error=False: public endpoints share this scheme; a missing key on a
# protected endpoint raises 401 in get_current_user
api_key_header = APIKeyHeader(name=settings.api_key_header_name, auto_error=False)


def hash_api_key(raw_key: str) -> str:
    return hashlib.sha256(raw_key.encode()).hexdigest()


async def get_redis(request: Request) -> aioredis.Redis:
    """Inject the Redis client from app.state (set during lifespan startup)."""
    return request.app.state.redis


async def _lookup_user(db: AsyncSession, raw_key: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.api_key_hash == hash_api_key(raw_key)))
    return result.scalar_one_or_none()


async def get_current_user(
    raw_key: Optional[str] = Security(api_key_header),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Authenticate a request via X-API-Key header.

    Computes SHA-256 hash of the raw key and looks it up in users.api_key_hash.
    Raises 401 for both missing and invalid keys (no distinction, prevents enumeration).
    """
    if not raw_key:
        raise HTTPException(status_code=401, detail="Authentication required")
    user = await _lookup_user(db, raw_key)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid API key")
    return user


async def get_optional_user(
    raw_key: Optional[str] = Security(api_key_header),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Resolve the caller on public endpoints. Missing or unknown keys yield None."""
    if not raw_key:
        return None
    return await _lookup_user(db, raw_key)


CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[Optional[User], Depends(get_optional_user)]
RedisClient = Annotated[aioredis.Redis, Depends(get_redis)]


async def require_moderator(user: User = Depends(get_current_user)) -> User:
    """Gate: moderation endpoints are restricted to moderator and admin roles."""
    if user.role not in (UserRole.moderator.value, UserRole.admin.value):
        raise HTTPException(status_code=403, detail="Moderator role required")
    return user


RequireModerator = Annotated[User, Depends(require_moderator)]
