from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime


# --- User ---

class UserBase(BaseModel):
    username: str = Field(max_length=50)
    email: str = Field(max_length=255)
    display_name: str | None = None
    bio: str | None = None


class UserCreate(UserBase):
    pass


class UserResponse(UserBase):
    id: int
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class UserDetail(UserResponse):
    articles: list["ArticleResponse"] = []


# --- Article ---

class ArticleCreate(BaseModel):
    title: str = Field(min_length=1, max_length=50)
    description: str = Field(min_length=1, max_length=50)
    content: str = Field("", max_length=1000)
    tags: list[str] = []  # tag names


class ArticleUpdate(BaseModel):
    # None or blank leaves the field unchanged.
    title: str | None = Field(None, max_length=50)
    description: str | None = Field(None, max_length=50)
    content: str | None = Field(None, max_length=1000)


class AuthorProfile(BaseModel):
    username: str
    display_name: str | None = None
    bio: str | None = None


class ArticleResponse(BaseModel):
    id: int
    slug: str
    title: str
    description: str
    content: str
    tags: list[str] = []
    created_at: datetime
    updated_at: datetime | None = None
    favorited: bool = False
    favorites_count: int = 0
    author: AuthorProfile | None = None


# --- Pagination ---

class PaginatedResponse(BaseModel):
    items: list  # serialised article dicts
    total: int
    page: int
    page_size: int
    pages: int


# --- Tags ---

class TagListResponse(BaseModel):
    tags: list[str]


# Required for forward-reference resolution (UserDetail.articles)
UserDetail.model_rebuild()
