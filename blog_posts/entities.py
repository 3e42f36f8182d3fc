from datetime import datetime
from enum import Enum
from typing import ClassVar
from uuid import UUID

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 200
SLUG_MIN_LENGTH = 3
SLUG_MAX_LENGTH = 220
AUTHOR_ID_MAX_LENGTH = 100


class BaseEntity(BaseModel):
    """Base entity class for all database models."""

    model_config: ClassVar[ConfigDict] = ConfigDict(use_enum_values=True)
    id: UUID


class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class Post(BaseEntity):
    """A persisted blog post, as returned by the store."""

    title: str
    slug: str
    content: str
    published: bool = False
    author_id: str
    created_at: datetime
    updated_at: datetime


# Input models - validated before the service touches the store
class PostCreate(BaseModel):
    title: str = Field(min_length=TITLE_MIN_LENGTH, max_length=TITLE_MAX_LENGTH)
    slug: str | None = Field(
        default=None, min_length=SLUG_MIN_LENGTH, max_length=SLUG_MAX_LENGTH
    )
    content: str = Field(min_length=1)
    published: bool = False
    author_id: str = Field(min_length=1, max_length=AUTHOR_ID_MAX_LENGTH)


class PostPatch(BaseModel):
    """Partial update of a post. Fields left unset are not touched."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    title: str | None = Field(
        default=None, min_length=TITLE_MIN_LENGTH, max_length=TITLE_MAX_LENGTH
    )
    slug: str | None = Field(
        default=None, min_length=SLUG_MIN_LENGTH, max_length=SLUG_MAX_LENGTH
    )
    content: str | None = Field(default=None, min_length=1)
    published: bool | None = None


# Update model - defines which columns the repository may change
class PostUpdate(BaseModel):
    title: str | None = None
    slug: str | None = None
    content: str | None = None
    published: bool | None = None


# Search model - all filters optional
class PostSearch(BaseModel):
    published: bool | None = None
    q: str | None = None
    limit: int = Field(default=20, ge=0)
    offset: int = Field(default=0, ge=0)


class PostPage(BaseModel):
    """One page of posts plus the size of the whole filtered set."""

    items: list[Post]
    total: int
    limit: int
    offset: int
