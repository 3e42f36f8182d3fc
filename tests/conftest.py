import asyncpg
import pytest
import pytest_asyncio
from testcontainers.postgres import PostgresContainer

from blog_posts.config import RepositoryConfig
from blog_posts.db_context import Database
from blog_posts.post_repository import PostRepository
from blog_posts.post_service import PostService
from blog_posts.schema import create_posts_table


@pytest.fixture(scope="session")
def postgres_container():
    """Start a PostgreSQL test container for the session."""
    with PostgresContainer("postgres:17") as postgres:
        yield postgres


@pytest.fixture(scope="session")
def postgres_dsn(postgres_container) -> str:
    host = postgres_container.get_container_host_ip()
    port = postgres_container.get_exposed_port(5432)
    return (
        f"postgresql://{postgres_container.username}:{postgres_container.password}"
        f"@{host}:{port}/{postgres_container.dbname}"
    )


@pytest_asyncio.fixture
async def database(postgres_dsn):
    """A Database on a fresh pool with empty posts tables."""
    # A new pool per test avoids sharing connections across event loops
    pool = await asyncpg.create_pool(postgres_dsn, min_size=1, max_size=5)
    database = Database(pool, name="test", command_timeout=10, acquire_timeout=10)

    await create_posts_table(database)
    await create_posts_table(database, RepositoryConfig(db_schema="app"))
    async with pool.acquire() as conn:
        await conn.execute("TRUNCATE TABLE posts; TRUNCATE TABLE app.posts;")

    yield database

    await pool.close()


@pytest.fixture
def post_repo(database) -> PostRepository:
    return PostRepository(database)


@pytest.fixture
def post_service(database) -> PostService:
    return PostService.from_database(database)
