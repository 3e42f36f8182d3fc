"""Blog post CRUD core on PostgreSQL"""

from blog_posts.config import DatabaseSettings, RepositoryConfig
from blog_posts.db_context import Database
from blog_posts.entities import Post, PostPage, PostPatch
from blog_posts.errors import (
    ConstraintViolationError,
    InvalidPostError,
    PostServiceError,
    SlugConflictError,
    StoreUnavailableError,
)
from blog_posts.post_repository import PostRepository
from blog_posts.post_service import PostService
from blog_posts.slugs import SlugResolver, slugify

__all__ = [
    "Database",
    "DatabaseSettings",
    "RepositoryConfig",
    "Post",
    "PostPage",
    "PostPatch",
    "PostRepository",
    "PostService",
    "SlugResolver",
    "slugify",
    "PostServiceError",
    "InvalidPostError",
    "ConstraintViolationError",
    "SlugConflictError",
    "StoreUnavailableError",
]
