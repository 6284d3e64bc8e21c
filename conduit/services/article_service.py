"""
Article service — use cases for the Article aggregate.

Design notes
------------
- Reads and writes go through ``ArticleRepository``, which eager-loads
  author, tags and favorites so the aggregate methods see the whole
  association sets.
- Business rules (slug derivation, authorship, idempotent tagging and
  favoriting) live on ``Article`` itself; this module only loads, calls
  and saves.
- ``AuthorizationError`` and ``IntegrityError`` propagate to the router,
  which maps them to 403 and 409.
- Service functions flush but do not commit; the transaction boundary
  is owned by the ``get_db`` dependency in the router layer.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from conduit.exceptions import AuthorizationError
from conduit.models import Article, User
from conduit.repositories import ArticleRepository, TagRepository
from conduit.schemas import ArticleCreate, ArticleUpdate, PaginatedResponse

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _serialize_author(author: User | None) -> dict | None:
    if author is None:
        return None
    return {
        "username": author.username,
        "display_name": author.display_name,
        "bio": author.bio,
    }


def _article_to_dict(article: Article, viewer: User | None = None) -> dict:
    """Serialise an Article aggregate to a plain dict as seen by *viewer*."""
    return {
        "id": article.id,
        "slug": article.slug,
        "title": article.title,
        "description": article.description,
        "content": article.content,
        "tags": article.tag_names,
        "created_at": article.created_at.isoformat() if article.created_at else None,
        "updated_at": article.updated_at.isoformat() if article.updated_at else None,
        "favorited": viewer is not None and article.is_favorited_by(viewer),
        "favorites_count": article.number_of_likes(),
        "author": _serialize_author(article.author),
    }


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

async def list_articles(
    db: AsyncSession,
    tag: str | None = None,
    author: str | None = None,
    favorited: str | None = None,
    page: int = 1,
    page_size: int = 20,
    viewer: User | None = None,
) -> PaginatedResponse:
    """Return one page of articles filtered by any combination of facets."""
    result = await ArticleRepository(db).find_by_facets(
        tag=tag,
        author=author,
        favorited=favorited,
        page=page,
        page_size=page_size,
    )
    return PaginatedResponse(
        items=[_article_to_dict(a, viewer) for a in result.items],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        pages=result.pages,
    )


async def get_article(db: AsyncSession, slug: str, viewer: User | None = None) -> dict | None:
    """Return the article identified by *slug*, or None when it does not exist."""
    article = await ArticleRepository(db).get_by_slug(slug)
    if article is None:
        return None
    return _article_to_dict(article, viewer)


async def list_tags(db: AsyncSession) -> list[str]:
    return await TagRepository(db).list_names()


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

async def create_article(db: AsyncSession, author: User, data: ArticleCreate) -> dict:
    """
    Create a new article written by *author* and return its dict.

    Tag names are resolved (and created when missing) before the article is
    built.  A title or slug that already exists makes the flush raise
    ``IntegrityError``.
    """
    tag_repo = TagRepository(db)
    tags = [await tag_repo.get_or_create(name) for name in data.tags]

    article = Article.create(
        author=author,
        title=data.title,
        description=data.description,
        content=data.content,
    )
    for tag in tags:
        article.add_tag(tag)

    await ArticleRepository(db).save(article)
    logger.info("Article %r created by %s", article.slug, author.username)
    return _article_to_dict(article, author)


async def update_article(
    db: AsyncSession,
    slug: str,
    acting_user: User,
    data: ArticleUpdate,
) -> dict | None:
    """
    Partially update the article identified by *slug*.

    Returns None when the article does not exist.  Raises
    ``AuthorizationError`` when *acting_user* is not the author.
    """
    repo = ArticleRepository(db)
    article = await repo.get_by_slug(slug)
    if article is None:
        return None

    try:
        article.update(
            acting_user,
            title=data.title,
            description=data.description,
            content=data.content,
        )
    except AuthorizationError:
        logger.warning("%s may not edit article %r", acting_user.username, slug)
        raise

    await repo.save(article)
    logger.info("Article %r updated (slug now %r)", slug, article.slug)
    return _article_to_dict(article, acting_user)


async def delete_article(db: AsyncSession, slug: str, acting_user: User) -> bool:
    """
    Delete the article identified by *slug* together with its tag links and
    favorites.

    Returns True on success, False when the article does not exist.
    """
    repo = ArticleRepository(db)
    article = await repo.get_by_slug(slug)
    if article is None:
        return False

    if not article.is_written_by(acting_user):
        logger.warning("%s may not delete article %r", acting_user.username, slug)
        raise AuthorizationError("You can't delete articles written by others.")

    await repo.delete(article)
    logger.info("Article %r deleted", slug)
    return True


async def favorite_article(db: AsyncSession, slug: str, user: User) -> dict | None:
    """Mark the article as a favorite of *user*; repeating the call is a no-op."""
    repo = ArticleRepository(db)
    article = await repo.get_by_slug(slug)
    if article is None:
        return None

    article.favorite(user)
    await repo.save(article)
    logger.info("%s favorited article %r", user.username, slug)
    return _article_to_dict(article, user)


async def unfavorite_article(db: AsyncSession, slug: str, user: User) -> dict | None:
    """Remove *user*'s favorite from the article, if there is one."""
    repo = ArticleRepository(db)
    article = await repo.get_by_slug(slug)
    if article is None:
        return None

    article.unfavorite(user)
    await repo.save(article)
    logger.info("%s unfavorited article %r", user.username, slug)
    return _article_to_dict(article, user)
