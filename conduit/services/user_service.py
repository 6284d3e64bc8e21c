"""
User service — the small slice of the User aggregate that Conduit needs:
registration, lookup by username (acting user, author facet) and profile
listing.
"""
import logging

from sqlalchemy import select
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.models import Article, User
from conduit.schemas import UserCreate

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _user_to_dict(user: User) -> dict:
    """Serialise a User ORM instance to a plain dict (list view)."""
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "display_name": user.display_name,
        "bio": user.bio,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def _article_summary_to_dict(article: Article) -> dict:
    """
    Serialise an Article to a lightweight summary dict suitable for
    embedding inside a UserDetail response.

    Tags, favorites and the author are omitted to avoid loading the whole
    aggregate for every article on the profile.
    """
    return {
        "id": article.id,
        "slug": article.slug,
        "title": article.title,
        "description": article.description,
        "content": article.content,
        "tags": [],
        "created_at": article.created_at.isoformat() if article.created_at else None,
        "updated_at": article.updated_at.isoformat() if article.updated_at else None,
        "favorited": False,
        "favorites_count": 0,
        "author": None,
    }


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def find_by_username(db: AsyncSession, username: str) -> User | None:
    """Return the User entity called *username*, or None."""
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def get_users(db: AsyncSession) -> list[dict]:
    """Return all users ordered by creation date (newest first)."""
    q = select(User).order_by(User.created_at.desc(), User.id.desc())

    result = await db.execute(q)
    return [_user_to_dict(u) for u in result.scalars().all()]


async def get_user_by_username(db: AsyncSession, username: str) -> dict | None:
    """
    Return the profile dict for *username* including a summary of their
    articles (newest first).

    Returns None when the user does not exist.
    """
    q = (
        select(User)
        .where(User.username == username)
        .options(selectinload(User.articles))
    )

    result = await db.execute(q)
    user = result.unique().scalar_one_or_none()
    if user is None:
        return None

    data = _user_to_dict(user)
    articles = sorted(user.articles, key=lambda a: a.id, reverse=True)
    data["articles"] = [_article_summary_to_dict(a) for a in articles]
    return data


async def create_user(db: AsyncSession, data: UserCreate) -> dict:
    """
    Create a new user and return its serialised dict.

    Email and username uniqueness is enforced at the database level
    (unique constraints in the schema); the router is responsible for
    translating integrity errors into 409 responses.
    """
    user = User(
        username=data.username,
        email=data.email,
        display_name=data.display_name,
        bio=data.bio,
    )
    db.add(user)
    await db.flush()
    logger.info("User %r registered", user.username)
    return _user_to_dict(user)
