from uuid import UUID

from blog_posts.config import RepositoryConfig
from blog_posts.db_context import Database
from blog_posts.entities import Post, PostSearch, PostUpdate, SortOrder
from blog_posts.errors import ConstraintViolationError, SlugConflictError
from blog_posts.repository import Repository

SLUG_CONSTRAINT = "posts_slug_key"
SEARCHABLE_FIELDS = ["title", "content"]


class PostRepository(Repository[Post, PostUpdate]):
    """All reads and writes of the posts table."""

    def __init__(self, database: Database, config: RepositoryConfig | None = None):
        super().__init__(
            database,
            entity_class=Post,
            update_class=PostUpdate,
            table_name="posts",
            config=config,
        )

    async def insert(
        self,
        post_id: UUID,
        title: str,
        slug: str,
        content: str,
        published: bool,
        author_id: str,
    ) -> Post:
        try:
            return await self.create(
                {
                    "id": post_id,
                    "title": title,
                    "slug": slug,
                    "content": content,
                    "published": published,
                    "author_id": author_id,
                }
            )
        except ConstraintViolationError as exc:
            if exc.constraint_name == SLUG_CONSTRAINT:
                raise SlugConflictError(slug, exc.constraint_name) from exc
            raise

    async def update(self, entity_id: UUID, update_data: PostUpdate) -> Post | None:
        try:
            return await super().update(entity_id, update_data)
        except ConstraintViolationError as exc:
            if update_data.slug is not None and exc.constraint_name == SLUG_CONSTRAINT:
                raise SlugConflictError(update_data.slug, exc.constraint_name) from exc
            raise

    async def slug_taken(self, slug: str, exclude_id: UUID | None = None) -> bool:
        """True when a post other than `exclude_id` already holds `slug`"""
        query = self.where("slug", slug)
        if exclude_id is not None:
            query = query.where("id", "<>", exclude_id)
        return await query.exists()

    async def find_by_slug(self, slug: str) -> Post | None:
        return await self.where("slug", slug).first()

    async def list_posts(self, search: PostSearch) -> tuple[list[Post], int]:
        """Return one page of posts, newest first, and the filtered total.

        The total counts every post matching the filters, before limit/offset.
        """
        query = self
        if search.published is not None:
            query = query.where("published", search.published)
        if search.q:
            query = query.where_contains(SEARCHABLE_FIELDS, search.q)

        async with self.database.connection():
            total = await query.count()
            items = await (
                query.order_by("created_at", SortOrder.DESC)
                .order_by("id", SortOrder.DESC)
                .limit(search.limit)
                .offset(search.offset)
                .get()
            )
        return items, total
