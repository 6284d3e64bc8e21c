"""
Persistence boundary for the Article aggregate.

Repositories wrap an ``AsyncSession``; they flush but never commit, so the
transaction boundary stays with the ``get_db`` dependency.  Every Article
they return has its author, tags and favorites eagerly loaded (the
relationships themselves are ``lazy="noload"``).
"""
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from conduit.models import Article, ArticleFavorite, ArticleTag, Tag, User

logger = logging.getLogger(__name__)


@dataclass
class Page:
    """One slice of a paginated query plus the totals needed to navigate it."""

    items: list[Article]
    total: int
    page: int
    page_size: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.total > 0 else 0


def _load_aggregate(stmt: Select) -> Select:
    return stmt.options(
        joinedload(Article.author),
        selectinload(Article.tag_links).joinedload(ArticleTag.tag),
        selectinload(Article.favorites).joinedload(ArticleFavorite.user),
    )


def _apply_facets(
    stmt: Select,
    tag: str | None,
    author: str | None,
    favorited: str | None,
) -> Select:
    """AND together the facets that were supplied; ``None`` means no constraint."""
    if tag is not None:
        stmt = stmt.where(Article.tag_links.any(ArticleTag.tag.has(Tag.name == tag)))
    if author is not None:
        stmt = stmt.where(Article.author.has(User.username == author))
    if favorited is not None:
        stmt = stmt.where(
            Article.favorites.any(ArticleFavorite.user.has(User.username == favorited))
        )
    return stmt


class ArticleRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get(self, article_id: int) -> Article | None:
        q = _load_aggregate(select(Article).where(Article.id == article_id))
        result = await self.db.execute(q)
        return result.unique().scalar_one_or_none()

    async def get_by_slug(self, slug: str) -> Article | None:
        q = _load_aggregate(select(Article).where(Article.slug == slug))
        result = await self.db.execute(q)
        return result.unique().scalar_one_or_none()

    async def save(self, article: Article) -> Article:
        """
        Stamp ``updated_at`` and flush *article* with its associations.

        Unique title/slug violations surface as ``IntegrityError`` from the
        flush and are left for the caller to handle.
        """
        article.updated_at = datetime.now(timezone.utc)
        self.db.add(article)
        await self.db.flush()
        return article

    async def delete(self, article: Article) -> None:
        """
        Delete *article*.  Its tag links and favorites are deleted in the same
        flush through the ``delete-orphan`` cascade, so callers must pass an
        article loaded through this repository.
        """
        await self.db.delete(article)
        await self.db.flush()
        logger.debug("Deleted article id=%s with its associations", article.id)

    async def find_by_facets(
        self,
        tag: str | None = None,
        author: str | None = None,
        favorited: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page:
        """
        Return one page of articles matching every supplied facet, most
        recent first (ties broken by id, newest first).

        Two SQL statements are issued:
        1. COUNT over the filtered articles.
        2. SELECT with LIMIT/OFFSET plus the eager loads of the aggregate.
        """
        count_q = _apply_facets(
            select(func.count()).select_from(Article), tag, author, favorited
        )
        total: int = (await self.db.execute(count_q)).scalar_one()

        articles_q = (
            _load_aggregate(_apply_facets(select(Article), tag, author, favorited))
            .order_by(Article.created_at.desc(), Article.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        result = await self.db.execute(articles_q)
        items = list(result.unique().scalars().all())

        return Page(items=items, total=total, page=page, page_size=page_size)


class TagRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_by_name(self, name: str) -> Tag | None:
        result = await self.db.execute(select(Tag).where(Tag.name == name))
        return result.scalar_one_or_none()

    async def get_or_create(self, name: str) -> Tag:
        """Return the tag called *name*, inserting it first if it does not exist."""
        tag = await self.get_by_name(name)
        if tag is None:
            tag = Tag(name=name)
            self.db.add(tag)
            await self.db.flush()
            logger.debug("Created tag %r", name)
        return tag

    async def list_names(self) -> list[str]:
        result = await self.db.execute(select(Tag.name).order_by(Tag.name))
        return list(result.scalars().all())
