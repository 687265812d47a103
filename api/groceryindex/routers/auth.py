"""API key registration and session endpoints.

POST /api/v1/keys          -- register a user and receive an API key (no auth)
GET  /api/v1/auth/session  -- the caller's user row, or null without a key
"""

import secrets

import structlog
from fastapi import APIRouter, HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from groceryindex.dependencies import DbSession, OptionalUser, hash_api_key
from groceryindex.models.user import User
from groceryindex.schemas.auth import APIKeyCreate, APIKeyResponse, SessionResponse, SessionUser
from groceryindex.schemas.common import DataResponse

router = APIRouter(prefix="/api/v1", tags=["auth"])

log = structlog.get_logger()


@router.post("/keys", response_model=DataResponse[APIKeyResponse], status_code=201)
async def generate_api_key(body: APIKeyCreate, db: DbSession) -> DataResponse[APIKeyResponse]:
    """Register a user and return a new API key.

    The raw key is returned exactly once; only its SHA-256 hash is stored.
    Registering an email that already exists is a 409.
    """
    email = body.email.strip().lower()
    result = await db.execute(select(User.id).where(User.email == email))
    if result.scalar_one_or_none() is not None:
        raise HTTPException(status_code=409, detail="Email already registered")

    raw_key = secrets.token_urlsafe(32)
    user = User(email=email, name=body.name, api_key_hash=hash_api_key(raw_key))
    db.add(user)

    try:
        await db.commit()
    except IntegrityError:
        # Lost a race on the same email
        await db.rollback()
        raise HTTPException(status_code=409, detail="Email already registered")

    await db.refresh(user)
    log.info("user_registered", user_id=user.id)

    return DataResponse(data=APIKeyResponse(api_key=raw_key, user_id=user.id))


@router.get("/auth/session", response_model=DataResponse[SessionResponse])
async def get_session(user: OptionalUser) -> DataResponse[SessionResponse]:
    if user is None:
        return DataResponse(data=SessionResponse(user=None))
    return DataResponse(data=SessionResponse(user=SessionUser.model_validate(user)))
