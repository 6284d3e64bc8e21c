from fastapi import Depends, Header, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.config import settings
from conduit.database import get_db
from conduit.models import User
from conduit.services import user_service


class PaginationParams:
    """
    Reusable FastAPI dependency that parses and validates pagination
    query parameters.  Article lists have a fixed order (newest first), so
    there is no sort parameter.

    Attributes
    ----------
    page:
        1-based page number (minimum 1).
    page_size:
        Number of items per page, clamped to ``settings.MAX_PAGE_SIZE``
        regardless of the value supplied by the caller.
    """

    def __init__(
        self,
        page: int = Query(
            1,
            ge=1,
            description="Page number (1-based).",
        ),
        page_size: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            le=100,
            description="Number of items returned per page (max 100).",
        ),
    ) -> None:
        self.page = page
        # Respect the application-level hard ceiling even if the schema
        # already validates le=100, so a settings change is sufficient.
        self.page_size = min(page_size, settings.MAX_PAGE_SIZE)


async def get_optional_user(
    x_username: str | None = Header(None),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """
    Resolve the acting user from the ``X-Username`` header.

    Authentication is not part of this service; the header stands in for
    whatever identity an upstream gateway has already established.
    """
    if not x_username:
        return None
    return await user_service.find_by_username(db, x_username)


async def get_current_user(user: User | None = Depends(get_optional_user)) -> User:
    """Like ``get_optional_user`` but rejects anonymous requests with 401."""
    if user is None:
        raise HTTPException(status_code=401, detail="Unknown or missing X-Username header")
    return user
