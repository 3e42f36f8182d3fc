"""URL slug generation and uniqueness resolution."""

import re
from typing import TYPE_CHECKING
from uuid import UUID

from blog_posts.entities import SLUG_MAX_LENGTH, SLUG_MIN_LENGTH
from blog_posts.errors import InvalidPostError

if TYPE_CHECKING:
    from blog_posts.post_repository import PostRepository

_INELIGIBLE = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")


def slugify(text: str) -> str:
    """Turn arbitrary text into a URL-safe slug.

    Only lowercase ASCII letters, digits and single inner hyphens survive.
    May return an empty string when nothing in `text` is eligible.

    >>> slugify("Hello World!")
    'hello-world'
    >>> slugify("  Rock -- n' Roll  ")
    'rock-n-roll'
    """
    slug = _INELIGIBLE.sub("", text.lower().strip())
    slug = _WHITESPACE.sub("-", slug)
    slug = _HYPHENS.sub("-", slug)
    return slug.strip("-")


class SlugResolver:
    """Finds a slug nobody else holds by appending -1, -2, ... to a base slug.

    Check-then-write is not atomic: a concurrent writer can take the returned
    slug before it is stored. Writers must handle SlugConflictError.
    """

    def __init__(self, repository: "PostRepository", max_length: int = SLUG_MAX_LENGTH):
        self.repository = repository
        self.max_length = max_length

    def with_suffix(self, base_slug: str, counter: int) -> str:
        """`base-counter`, trimming the base so the result fits in max_length."""
        suffix = f"-{counter}"
        return f"{base_slug[: self.max_length - len(suffix)].rstrip('-')}{suffix}"

    async def resolve(self, base_slug: str, ignore_id: UUID | None = None) -> str:
        """Return the first of base, base-1, base-2, ... not held by a post other than `ignore_id`."""
        if len(base_slug) < SLUG_MIN_LENGTH:
            raise InvalidPostError(
                f"Slug '{base_slug}' is shorter than {SLUG_MIN_LENGTH} characters"
            )

        base_slug = base_slug[: self.max_length].rstrip("-")
        candidate = base_slug
        counter = 1
        while await self.repository.slug_taken(candidate, exclude_id=ignore_id):
            candidate = self.with_suffix(base_slug, counter)
            counter += 1
        return candidate
