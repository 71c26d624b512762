from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
from jose import JWTError, jwt
from datetime import datetime, timezone, timedelta
from typing import Optional, Any
import logging
import uuid

from bettersafe.database import SessionDep
from bettersafe.models.user import Profile, ProfileRead, ProfileUpdate
from bettersafe.config import settings
from bettersafe.utils.security import sanitize_input
from bettersafe.utils.storage import is_path_owned

logger = logging.getLogger(__name__)

router = APIRouter()
security = HTTPBearer(auto_error=False)

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    to_encode.setdefault("aud", settings.JWT_AUDIENCE)
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt

def decode_access_token(token: str) -> dict:
    """Decode and verify a bearer token, raising JWTError when invalid"""
    payload = jwt.decode(
        token,
        settings.SECRET_KEY,
        algorithms=[settings.ALGORITHM],
        audience=settings.JWT_AUDIENCE
    )
    if payload.get("sub") is None:
        raise JWTError("Token has no subject")
    uuid.UUID(str(payload["sub"]))
    return payload

async def get_or_create_profile(db: AsyncSession, payload: dict) -> Profile:
    """Load the caller's profile, creating it on first sight of a user id"""
    user_id = uuid.UUID(str(payload["sub"]))

    result = await db.execute(select(Profile).where(Profile.user_id == user_id))
    profile = result.scalar_one_or_none()

    if profile is None:
        metadata = payload.get("user_metadata") or {}
        profile = Profile(
            user_id=user_id,
            email=payload.get("email"),
            full_name=metadata.get("full_name")
        )
        db.add(profile)
        await db.commit()
        await db.refresh(profile)
        logger.info(f"Created profile for user {user_id}")

    return profile

async def get_current_user(
    db: SessionDep,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Profile:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    try:
        payload = decode_access_token(credentials.credentials)
    except (JWTError, ValueError):
        raise credentials_exception

    return await get_or_create_profile(db, payload)

async def get_optional_user(
    db: SessionDep,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[Profile]:
    """Like get_current_user, but anonymous callers (or bad tokens) get None"""
    if credentials is None:
        return None

    try:
        payload = decode_access_token(credentials.credentials)
    except (JWTError, ValueError):
        logger.info("Ignoring invalid bearer token on optional-auth route")
        return None

    return await get_or_create_profile(db, payload)

async def require_admin(current_user: Profile = Depends(get_current_user)) -> Profile:
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user

@router.get("/me", response_model=ProfileRead)
async def get_my_profile(
    current_user: Profile = Depends(get_current_user)
):
    return current_user

@router.put("/me", response_model=ProfileRead)
async def update_my_profile(
    db: SessionDep,
    profile_update: ProfileUpdate,
    current_user: Profile = Depends(get_current_user)
):
    updates = profile_update.model_dump(exclude_unset=True)

    if "username" in updates and updates["username"] is not None:
        username = sanitize_input(updates["username"], max_length=51)
        if not 3 <= len(username) <= 50:
            raise HTTPException(status_code=400, detail="Username must be between 3 and 50 characters")

        result = await db.execute(
            select(Profile).where(Profile.username == username, Profile.id != current_user.id)
        )
        if result.scalar_one_or_none():
            raise HTTPException(status_code=409, detail="Username already taken")
        updates["username"] = username

    if updates.get("avatar_url") and not is_path_owned(updates["avatar_url"], current_user.user_id):
        raise HTTPException(status_code=403, detail="Avatar must belong to the current user")

    if updates.get("full_name") is not None:
        updates["full_name"] = sanitize_input(updates["full_name"], max_length=100)

    for key, value in updates.items():
        setattr(current_user, key, value)
    current_user.updated_at = datetime.now(timezone.utc)

    db.add(current_user)
    await db.commit()
    await db.refresh(current_user)

    return current_user

@router.get("/me/admin")
async def get_admin_status(
    current_user: Profile = Depends(get_current_user)
) -> dict[str, Any]:
    return {"is_admin": current_user.is_admin}
