from uuid import uuid4

import pytest

from blog_posts.errors import InvalidPostError
from blog_posts.slugs import SlugResolver


async def add(repo, slug):
    return await repo.insert(uuid4(), slug, slug, "Body", False, "author-1")


class TestSlugResolver:
    @pytest.mark.asyncio
    async def test_free_slug_is_returned_unchanged(self, post_repo):
        assert await SlugResolver(post_repo).resolve("fresh") == "fresh"

    @pytest.mark.asyncio
    async def test_suffixes_count_up_from_one(self, post_repo):
        resolver = SlugResolver(post_repo)
        await add(post_repo, "news")
        await add(post_repo, "news-1")

        assert await resolver.resolve("news") == "news-2"

    @pytest.mark.asyncio
    async def test_gaps_are_filled_first(self, post_repo):
        await add(post_repo, "news")
        await add(post_repo, "news-2")

        assert await SlugResolver(post_repo).resolve("news") == "news-1"

    @pytest.mark.asyncio
    async def test_own_slug_does_not_block(self, post_repo):
        mine = await add(post_repo, "mine")

        assert await SlugResolver(post_repo).resolve("mine", ignore_id=mine.id) == "mine"

    @pytest.mark.asyncio
    async def test_own_suffixed_slug_is_reclaimed(self, post_repo):
        await add(post_repo, "topic")
        second = await add(post_repo, "topic-1")

        assert await SlugResolver(post_repo).resolve("topic", ignore_id=second.id) == "topic-1"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("base_slug", ["", "a", "qa"])
    async def test_too_short_base_slug_rejected(self, post_repo, base_slug):
        with pytest.raises(InvalidPostError, match="shorter than 3"):
            await SlugResolver(post_repo).resolve(base_slug)

    @pytest.mark.asyncio
    async def test_three_character_base_slug_accepted(self, post_repo):
        assert await SlugResolver(post_repo).resolve("q-a") == "q-a"

    @pytest.mark.asyncio
    async def test_one_lookup_per_candidate(self, database, post_repo):
        await add(post_repo, "busy")
        await add(post_repo, "busy-1")

        async with database.track_queries() as tracker:
            await SlugResolver(post_repo).resolve("busy")

        assert tracker.count() == 3
        assert [log.params[0] for log in tracker.get_queries()] == ["busy", "busy-1", "busy-2"]

    @pytest.mark.asyncio
    async def test_suffixed_candidates_fit_max_length(self, post_repo):
        resolver = SlugResolver(post_repo, max_length=10)
        await add(post_repo, "abcdefghij")

        assert await resolver.resolve("abcdefghijklmnop") == "abcdefgh-1"


def test_with_suffix_trims_trailing_hyphen_of_cut_base():
    resolver = SlugResolver(repository=None, max_length=8)

    assert resolver.with_suffix("abcde-fgh", 1) == "abcde-1"
    assert resolver.with_suffix("abc", 12) == "abc-12"
