import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from conduit.database import get_db
from conduit.schemas import UserCreate, UserDetail, UserResponse
from conduit.services import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/users", tags=["users"])

_DUPLICATE_USER = "A user with this username or email already exists"


@router.get("", response_model=list[UserResponse])
async def list_users(db: AsyncSession = Depends(get_db)):
    return await user_service.get_users(db)


@router.get("/{username}", response_model=UserDetail)
async def get_profile(username: str, db: AsyncSession = Depends(get_db)):
    """A user with the articles they wrote, newest first."""
    profile = await user_service.get_user_by_username(db, username)
    if profile is None:
        raise HTTPException(status_code=404, detail=f"User {username!r} not found")
    return profile


@router.post("", status_code=201, response_model=UserResponse)
async def register_user(data: UserCreate, db: AsyncSession = Depends(get_db)):
    try:
        return await user_service.create_user(db, data)
    except IntegrityError:
        logger.info("Registration refused for %r: username or email taken", data.username)
        raise HTTPException(status_code=409, detail=_DUPLICATE_USER)
