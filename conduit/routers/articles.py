from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from conduit.database import get_db
from conduit.dependencies import PaginationParams, get_current_user, get_optional_user
from conduit.models import User
from conduit.schemas import ArticleCreate, ArticleResponse, ArticleUpdate, PaginatedResponse
from conduit.services import article_service

router = APIRouter(prefix="/api/v1/articles", tags=["articles"])

_DUPLICATE_TITLE = "An article with this title already exists"


@router.get("", response_model=PaginatedResponse)
async def list_articles(
    tag: str | None = Query(None, description="Only articles carrying this tag."),
    author: str | None = Query(None, description="Only articles written by this username."),
    favorited: str | None = Query(None, description="Only articles favorited by this username."),
    pagination: PaginationParams = Depends(),
    viewer: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    return await article_service.list_articles(
        db, tag, author, favorited, pagination.page, pagination.page_size, viewer
    )


@router.get("/{slug}", response_model=ArticleResponse)
async def get_article(
    slug: str,
    viewer: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    article = await article_service.get_article(db, slug, viewer)
    if not article:
        raise HTTPException(status_code=404, detail="Article not found")
    return article


@router.post("", status_code=201, response_model=ArticleResponse)
async def create_article(
    data: ArticleCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await article_service.create_article(db, user, data)
    except IntegrityError:
        raise HTTPException(status_code=409, detail=_DUPLICATE_TITLE)


@router.put("/{slug}", response_model=ArticleResponse)
async def update_article(
    slug: str,
    data: ArticleUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        article = await article_service.update_article(db, slug, user, data)
    except IntegrityError:
        raise HTTPException(status_code=409, detail=_DUPLICATE_TITLE)
    if not article:
        raise HTTPException(status_code=404, detail="Article not found")
    return article


@router.delete("/{slug}", status_code=204)
async def delete_article(
    slug: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    deleted = await article_service.delete_article(db, slug, user)
    if not deleted:
        raise HTTPException(status_code=404, detail="Article not found")


@router.post("/{slug}/favorite", response_model=ArticleResponse)
async def favorite_article(
    slug: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    article = await article_service.favorite_article(db, slug, user)
    if not article:
        raise HTTPException(status_code=404, detail="Article not found")
    return article


@router.delete("/{slug}/favorite", response_model=ArticleResponse)
async def unfavorite_article(
    slug: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    article = await article_service.unfavorite_article(db, slug, user)
    if not article:
        raise HTTPException(status_code=404, detail="Article not found")
    return article
