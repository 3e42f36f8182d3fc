"""Posts table DDL and seed data. Both are safe to run repeatedly."""

import logging
from uuid import uuid4

from blog_posts.config import RepositoryConfig
from blog_posts.database_operations import DatabaseOperations
from blog_posts.db_context import Database

logger = logging.getLogger(__name__)

POSTS_DDL = """
CREATE TABLE IF NOT EXISTS {table} (
    id UUID PRIMARY KEY,
    title VARCHAR(200) NOT NULL,
    slug VARCHAR(220) NOT NULL,
    content TEXT NOT NULL,
    published BOOLEAN NOT NULL DEFAULT FALSE,
    author_id VARCHAR(100) NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    CONSTRAINT posts_slug_key UNIQUE (slug)
);
CREATE INDEX IF NOT EXISTS idx_posts_created_at ON {table} (created_at DESC);
"""

SEED_AUTHOR_ID = "seed-user"
SEED_POSTS = [
    ("Hello World", "hello-world", "This is the first post.", True),
    ("Draft Post", "draft-post", "Work in progress...", False),
]


async def create_posts_table(
    database: Database, config: RepositoryConfig | None = None
) -> None:
    config = config or RepositoryConfig()
    db_ops = DatabaseOperations(database)
    async with database.transaction():
        if config.db_schema:
            await db_ops.execute_query(
                f"CREATE SCHEMA IF NOT EXISTS {config.db_schema}", []
            )
        # Multiple statements are only allowed without parameters
        await db_ops.execute_query(POSTS_DDL.format(table=config.qualify("posts")), [])
    logger.info("Posts table ready in %s", config.db_schema or "the default schema")


async def seed_posts(database: Database, config: RepositoryConfig | None = None) -> int:
    """Insert the sample posts whose slugs are still free. Returns how many were added."""
    config = config or RepositoryConfig()
    db_ops = DatabaseOperations(database)
    inserted = 0
    async with database.transaction():
        for title, slug, content, published in SEED_POSTS:
            result = await db_ops.execute_query(
                f"INSERT INTO {config.qualify('posts')} "
                "(id, title, slug, content, published, author_id) "
                "VALUES ($1, $2, $3, $4, $5, $6) ON CONFLICT (slug) DO NOTHING",
                [uuid4(), title, slug, content, published, SEED_AUTHOR_ID],
            )
            if result != "INSERT 0 0":
                inserted += 1
    logger.info("Seeded %d posts", inserted)
    return inserted
