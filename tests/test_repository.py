"""
Repository tests — the faceted query, timestamp stamping, uniqueness and
cascading deletes against a real (SQLite) database.
"""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.models import Article, ArticleFavorite, ArticleTag, User
from conduit.repositories import ArticleRepository, Page, TagRepository

_BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _create_user(db: AsyncSession, username: str) -> User:
    user = User(username=username, email=f"{username}@example.com")
    db.add(user)
    await db.flush()
    return user


async def _create_article(
    db: AsyncSession,
    author: User,
    title: str,
    tags: tuple[str, ...] = (),
    minutes: int = 0,
) -> Article:
    tag_repo = TagRepository(db)
    resolved = [await tag_repo.get_or_create(name) for name in tags]
    article = Article.create(author=author, title=title, description="desc")
    article.created_at = _BASE_TIME + timedelta(minutes=minutes)
    for tag in resolved:
        article.add_tag(tag)
    return await ArticleRepository(db).save(article)


async def _seed_facets(db: AsyncSession):
    alice = await _create_user(db, "alice")
    bob = await _create_user(db, "bob")
    a1 = await _create_article(db, alice, "A1", tags=("go",), minutes=1)
    a2 = await _create_article(db, bob, "A2", tags=("rust",), minutes=2)
    a3 = await _create_article(db, bob, "A3", tags=("go",), minutes=3)
    return alice, bob, a1, a2, a3


# ---------------------------------------------------------------------------
# Faceted query
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_find_by_tag(db_session: AsyncSession):
    _, _, a1, _, a3 = await _seed_facets(db_session)
    page = await ArticleRepository(db_session).find_by_facets(tag="go")
    assert [a.title for a in page.items] == ["A3", "A1"]
    assert page.items == [a3, a1]
    assert page.total == 2


@pytest.mark.asyncio
async def test_find_by_tag_and_author(db_session: AsyncSession):
    await _seed_facets(db_session)
    page = await ArticleRepository(db_session).find_by_facets(tag="go", author="bob")
    assert [a.title for a in page.items] == ["A3"]
    assert page.total == 1


@pytest.mark.asyncio
async def test_find_by_author_only(db_session: AsyncSession):
    await _seed_facets(db_session)
    page = await ArticleRepository(db_session).find_by_facets(author="bob")
    assert [a.title for a in page.items] == ["A3", "A2"]


@pytest.mark.asyncio
async def test_find_without_filters_returns_all_newest_first(db_session: AsyncSession):
    await _seed_facets(db_session)
    page = await ArticleRepository(db_session).find_by_facets()
    assert [a.title for a in page.items] == ["A3", "A2", "A1"]
    assert page.total == 3
    assert page.pages == 1


@pytest.mark.asyncio
async def test_find_by_favorited(db_session: AsyncSession):
    alice, bob, a1, a2, a3 = await _seed_facets(db_session)
    carol = await _create_user(db_session, "carol")
    repo = ArticleRepository(db_session)
    for article in (a1, a2):
        article.favorite(carol)
        await repo.save(article)
    a3.favorite(alice)
    await repo.save(a3)

    page = await repo.find_by_facets(favorited="carol")
    assert [a.title for a in page.items] == ["A2", "A1"]

    page = await repo.find_by_facets(favorited="carol", tag="go")
    assert [a.title for a in page.items] == ["A1"]


@pytest.mark.asyncio
async def test_find_with_unknown_facet_value_is_empty(db_session: AsyncSession):
    await _seed_facets(db_session)
    page = await ArticleRepository(db_session).find_by_facets(tag="haskell")
    assert page.items == []
    assert page.total == 0
    assert page.pages == 0


@pytest.mark.asyncio
async def test_find_paginates_matching_rows(db_session: AsyncSession):
    author = await _create_user(db_session, "writer")
    other = await _create_user(db_session, "other")
    for i in range(5):
        await _create_article(db_session, author, f"Paged {i}", minutes=i)
    await _create_article(db_session, other, "Not Counted", minutes=10)

    repo = ArticleRepository(db_session)
    first = await repo.find_by_facets(author="writer", page=1, page_size=2)
    last = await repo.find_by_facets(author="writer", page=3, page_size=2)

    assert [a.title for a in first.items] == ["Paged 4", "Paged 3"]
    assert [a.title for a in last.items] == ["Paged 0"]
    assert first.total == last.total == 5
    assert first.pages == 3


@pytest.mark.asyncio
async def test_find_breaks_creation_time_ties_by_id(db_session: AsyncSession):
    author = await _create_user(db_session, "tied")
    first = await _create_article(db_session, author, "First", minutes=5)
    second = await _create_article(db_session, author, "Second", minutes=5)
    page = await ArticleRepository(db_session).find_by_facets()
    assert page.items == [second, first]


def test_page_count():
    assert Page(items=[], total=0, page=1, page_size=20).pages == 0
    assert Page(items=[], total=20, page=1, page_size=20).pages == 1
    assert Page(items=[], total=21, page=1, page_size=20).pages == 2


# ---------------------------------------------------------------------------
# save / get / delete
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_save_assigns_id_and_stamps_updated_at(db_session: AsyncSession):
    author = await _create_user(db_session, "stamper")
    article = Article.create(author=author, title="Stamped", description="d")
    assert article.id is None
    await ArticleRepository(db_session).save(article)
    assert article.id is not None
    assert article.updated_at is not None


@pytest.mark.asyncio
async def test_get_by_slug_loads_aggregate(db_session: AsyncSession):
    author = await _create_user(db_session, "loader")
    await _create_article(db_session, author, "Load Me Please", tags=("b", "a"))
    article = await ArticleRepository(db_session).get_by_slug("load-me-please")
    assert article is not None
    assert article.author == author
    assert article.tag_names == ["a", "b"]
    assert await ArticleRepository(db_session).get(article.id) is article
    assert await ArticleRepository(db_session).get_by_slug("missing") is None


@pytest.mark.asyncio
async def test_duplicate_title_raises_integrity_error(db_session: AsyncSession):
    author = await _create_user(db_session, "dupe")
    await _create_article(db_session, author, "Same Title")
    with pytest.raises(IntegrityError):
        await _create_article(db_session, author, "Same Title")


@pytest.mark.asyncio
async def test_tag_rows_are_unique_per_article(db_session: AsyncSession):
    author = await _create_user(db_session, "tagger")
    article = await _create_article(db_session, author, "Tagged", tags=("x",))
    tag = await TagRepository(db_session).get_or_create("x")
    article.add_tag(tag)
    await ArticleRepository(db_session).save(article)
    count = (await db_session.execute(select(func.count()).select_from(ArticleTag))).scalar_one()
    assert count == 1


@pytest.mark.asyncio
async def test_delete_removes_tag_links_and_favorites(db_session: AsyncSession):
    author = await _create_user(db_session, "deleter")
    fan = await _create_user(db_session, "fan")
    await _create_article(db_session, author, "Doomed", tags=("x", "y"))
    repo = ArticleRepository(db_session)
    article = await repo.get_by_slug("doomed")
    article.favorite(fan)
    await repo.save(article)

    await repo.delete(article)

    assert await repo.get_by_slug("doomed") is None
    links = (await db_session.execute(select(func.count()).select_from(ArticleTag))).scalar_one()
    favorites = (
        await db_session.execute(select(func.count()).select_from(ArticleFavorite))
    ).scalar_one()
    assert links == 0
    assert favorites == 0


@pytest.mark.asyncio
async def test_tag_repository_get_or_create_reuses_existing(db_session: AsyncSession):
    repo = TagRepository(db_session)
    first = await repo.get_or_create("python")
    second = await repo.get_or_create("python")
    assert first is second
    await repo.get_or_create("asyncio")
    assert await repo.list_names() == ["asyncio", "python"]
