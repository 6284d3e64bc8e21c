from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from conduit.database import Base
from conduit.exceptions import AuthorizationError

# ASCII whitespace only; other Unicode spaces are kept in the slug.
_WHITESPACE_RE = re.compile(r"\s+", re.ASCII)

# Non-breaking spaces and NEL never make a value blank.
_NON_BREAKING_SPACES = frozenset("\x85\u00a0\u2007\u202f")


def slugify(title: str) -> str:
    """
    Return the slug for *title*: lowercased, with every run of whitespace
    collapsed into a single hyphen.

    Punctuation and non-ASCII characters are kept as they are.
    """
    return _WHITESPACE_RE.sub("-", title.lower())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_blank(value: str | None) -> bool:
    if value is None:
        return True
    return all(ch.isspace() and ch not in _NON_BREAKING_SPACES for ch in value)


# ---------------------------------------------------------------------------
# Identity semantics shared by the entities
# ---------------------------------------------------------------------------
class IdentityMixin:
    """
    Equality and hashing on the surrogate key.

    Two instances are equal only when both carry the same assigned ``id``.
    An instance that has not been flushed yet (``id is None``) is equal to
    itself and nothing else.  The hash follows the id, so it changes once
    the row is inserted; do not keep unsaved entities in sets or dict keys
    across a flush.
    """

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, type(self)):
            return NotImplemented
        return self.id is not None and self.id == other.id

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.id))


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------
class User(IdentityMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=_utcnow, nullable=True
    )

    # Relationships — lazy="noload" enforces explicit eager loading in repositories
    articles: Mapped[List["Article"]] = relationship(
        "Article", back_populates="author", lazy="noload"
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r}>"


# ---------------------------------------------------------------------------
# Tag
# ---------------------------------------------------------------------------
class Tag(IdentityMixin, Base):
    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<Tag id={self.id} name={self.name!r}>"


# ---------------------------------------------------------------------------
# Association entities: Article <-> Tag, Article <-> User (favorite)
# ---------------------------------------------------------------------------
class ArticleTag(Base):
    """Links one article to one tag; identified by ``(article_id, tag_id)``."""

    __tablename__ = "article_tags"

    article_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("articles.id", ondelete="CASCADE"), primary_key=True
    )
    tag_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True
    )

    article: Mapped["Article"] = relationship(
        "Article", back_populates="tag_links", lazy="noload"
    )
    tag: Mapped["Tag"] = relationship("Tag", lazy="noload")

    @property
    def key(self) -> tuple[int | None, int | None]:
        return (self.article_id, self.tag_id)

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, ArticleTag):
            return NotImplemented
        return None not in self.key and self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __repr__(self) -> str:
        return f"<ArticleTag article_id={self.article_id} tag_id={self.tag_id}>"


class ArticleFavorite(Base):
    """A user's favorite on an article; the row count is the like count."""

    __tablename__ = "article_favorites"

    article_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("articles.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    article: Mapped["Article"] = relationship(
        "Article", back_populates="favorites", lazy="noload"
    )
    user: Mapped["User"] = relationship("User", lazy="noload")

    @property
    def key(self) -> tuple[int | None, int | None]:
        return (self.article_id, self.user_id)

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, ArticleFavorite):
            return NotImplemented
        return None not in self.key and self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __repr__(self) -> str:
        return f"<ArticleFavorite article_id={self.article_id} user_id={self.user_id}>"


# ---------------------------------------------------------------------------
# Article
# ---------------------------------------------------------------------------
class Article(IdentityMixin, Base):
    """
    Aggregate root for a published article.

    The article owns its tag and favorite associations: they are saved with
    it and deleted with it (``delete-orphan``), so removing a link from
    ``tag_links`` or ``favorites`` removes the row.  The slug is derived from
    the title by a validator and is regenerated on every title assignment.
    """

    __tablename__ = "articles"

    __table_args__ = (
        # Author feed sorted by date (author facet)
        Index("ix_articles_author_id_created_at", "author_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    slug: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    description: Mapped[str] = mapped_column(String(50), nullable=False)
    content: Mapped[str] = mapped_column(String(1000), default="", nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False, index=True
    )
    # Stamped by ArticleRepository.save, never by the entity itself.
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Foreign key
    author_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Relationships — all lazy="noload"; repositories load them explicitly
    author: Mapped["User"] = relationship("User", back_populates="articles", lazy="noload")
    tag_links: Mapped[List["ArticleTag"]] = relationship(
        "ArticleTag",
        back_populates="article",
        cascade="all, delete-orphan",
        lazy="noload",
    )
    favorites: Mapped[List["ArticleFavorite"]] = relationship(
        "ArticleFavorite",
        back_populates="article",
        cascade="all, delete-orphan",
        lazy="noload",
    )

    @classmethod
    def create(
        cls,
        author: User,
        title: str,
        description: str,
        content: str = "",
    ) -> Article:
        """Build a new, unsaved article; the id is assigned on first flush."""
        return cls(
            author=author,
            title=title,
            description=description,
            content=content,
            created_at=_utcnow(),
        )

    @validates("title")
    def _derive_slug(self, key: str, title: str) -> str:
        self.slug = slugify(title)
        return title

    # -- authorship ---------------------------------------------------------

    def is_written_by(self, user: User) -> bool:
        """
        True when *user* is the author.

        ``author`` is ``lazy="noload"``: the article must come from
        :class:`ArticleRepository` (or be built with ``create``), otherwise
        ``author`` is ``None`` and this returns False for everyone.
        """
        return self.author == user

    def update(
        self,
        acting_user: User,
        title: str | None = None,
        description: str | None = None,
        content: str | None = None,
    ) -> Article:
        """
        Apply a partial update in place and return ``self``.

        ``None`` and blank strings both mean "leave unchanged"; a field
        cannot be cleared through this method.  Raises
        :class:`AuthorizationError` without touching any field when
        *acting_user* is not the author.
        """
        if not self.is_written_by(acting_user):
            raise AuthorizationError()

        if not _is_blank(title):
            self.title = title
        if not _is_blank(description):
            self.description = description
        if not _is_blank(content):
            self.content = content
        return self

    # -- tags ---------------------------------------------------------------

    @property
    def tags(self) -> list[Tag]:
        return [link.tag for link in self.tag_links]

    @property
    def tag_names(self) -> list[str]:
        """Tag names in ascending order, for deterministic output."""
        return sorted(tag.name for tag in self.tags)

    def has_tag(self, tag: Tag) -> bool:
        return any(link.tag == tag for link in self.tag_links)

    def add_tag(self, tag: Tag) -> None:
        # Pending links carry no key yet, so dedupe on the tag side of the pair.
        if self.has_tag(tag):
            return
        self.tag_links.append(ArticleTag(tag=tag))

    # -- favorites ----------------------------------------------------------

    def number_of_likes(self) -> int:
        return len(self.favorites)

    def is_favorited_by(self, user: User) -> bool:
        return any(favorite.user == user for favorite in self.favorites)

    def favorite(self, user: User) -> None:
        if self.is_favorited_by(user):
            return
        self.favorites.append(ArticleFavorite(user=user))

    def unfavorite(self, user: User) -> None:
        for favorite in list(self.favorites):
            if favorite.user == user:
                self.favorites.remove(favorite)

    def is_same_article(self, favorite: ArticleFavorite) -> bool:
        if favorite.article is not None:
            return self == favorite.article
        return self.id is not None and favorite.article_id == self.id

    def __repr__(self) -> str:
        return f"<Article id={self.id} slug={self.slug!r}>"
