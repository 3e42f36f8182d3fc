"""Post use cases: create, get, list, update and delete.

Every operation takes plain values and returns pydantic models, None when
the post does not exist, or raises a PostServiceError subclass.
"""

from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar
from uuid import UUID, uuid4

from pydantic import BaseModel, ValidationError

from blog_posts.config import RepositoryConfig
from blog_posts.db_context import Database
from blog_posts.entities import (
    Post,
    PostCreate,
    PostPage,
    PostPatch,
    PostSearch,
    PostUpdate,
)
from blog_posts.errors import InvalidPostError, SlugConflictError
from blog_posts.post_repository import PostRepository
from blog_posts.slugs import SlugResolver, slugify

M = TypeVar("M", bound=BaseModel)


def _validate(model: type[M], data: Any) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise InvalidPostError(str(exc), errors=exc.errors()) from exc


def _parse_id(post_id: UUID | str) -> UUID | None:
    """Ids that are not UUIDs cannot name an existing post."""
    if isinstance(post_id, UUID):
        return post_id
    try:
        return UUID(str(post_id))
    except ValueError:
        return None


class PostService:
    def __init__(self, repository: PostRepository, resolver: SlugResolver | None = None):
        self.repository = repository
        self.resolver = resolver or SlugResolver(repository)

    @classmethod
    def from_database(
        cls, database: Database, config: RepositoryConfig | None = None
    ) -> "PostService":
        return cls(PostRepository(database, config))

    async def _write_with_slug(
        self,
        base_slug: str,
        ignore_id: UUID | None,
        write: Callable[[str], Awaitable[Post | None]],
    ) -> Post | None:
        """Resolve a free slug and write with it, re-resolving once if it was taken meanwhile."""
        slug = await self.resolver.resolve(base_slug, ignore_id)
        try:
            return await write(slug)
        except SlugConflictError:
            slug = await self.resolver.resolve(base_slug, ignore_id)
            return await write(slug)

    async def create_post(
        self,
        title: str,
        content: str,
        author_id: str,
        published: bool = False,
        slug: str | None = None,
    ) -> Post:
        """Create a post; its slug comes from `slug` when given, else from `title`."""
        data = _validate(
            PostCreate,
            {
                "title": title,
                "content": content,
                "author_id": author_id,
                "published": published,
                "slug": slug,
            },
        )
        base_slug = slugify(data.slug if data.slug is not None else data.title)
        post_id = uuid4()

        async def insert(resolved: str) -> Post:
            return await self.repository.insert(
                post_id,
                data.title,
                resolved,
                data.content,
                data.published,
                data.author_id,
            )

        return await self._write_with_slug(base_slug, None, insert)

    async def get_post(self, post_id: UUID | str) -> Post | None:
        parsed = _parse_id(post_id)
        if parsed is None:
            return None
        return await self.repository.find_by_id(parsed)

    async def list_posts(
        self,
        limit: int = 20,
        offset: int = 0,
        q: str | None = None,
        published: bool | None = None,
    ) -> PostPage:
        search = _validate(
            PostSearch,
            {"limit": limit, "offset": offset, "q": q, "published": published},
        )
        items, total = await self.repository.list_posts(search)
        return PostPage(items=items, total=total, limit=search.limit, offset=search.offset)

    async def update_post(
        self, post_id: UUID | str, patch: PostPatch | Mapping[str, Any]
    ) -> Post | None:
        """Apply a partial update.

        An explicit slug in the patch wins; otherwise a new title recomputes the
        slug; otherwise the slug is kept. The post's own id never blocks its slug.
        """
        if not isinstance(patch, PostPatch):
            patch = _validate(PostPatch, patch)
        changes = patch.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise InvalidPostError("At least one field must be provided for update")

        parsed = _parse_id(post_id)
        if parsed is None:
            return None
        existing = await self.repository.find_by_id(parsed)
        if existing is None:
            return None

        if patch.slug is not None:
            base_slug = slugify(patch.slug)
        elif patch.title is not None:
            base_slug = slugify(patch.title)
        else:
            return await self.repository.update(existing.id, PostUpdate(**changes))

        async def apply(resolved: str) -> Post | None:
            return await self.repository.update(
                existing.id, PostUpdate(**{**changes, "slug": resolved})
            )

        return await self._write_with_slug(base_slug, existing.id, apply)

    async def delete_post(self, post_id: UUID | str) -> bool:
        """Hard delete; False when there was nothing to delete."""
        parsed = _parse_id(post_id)
        if parsed is None:
            return False
        return await self.repository.delete(parsed)
