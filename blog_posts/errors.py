"""Errors raised by the post core.

A missing post is not an error: lookups return None and deletes return False.
"""


class PostServiceError(Exception):
    """Base class for every failure surfaced by the post core."""


class InvalidPostError(PostServiceError):
    """Input was rejected before reaching the store.

    `errors` holds pydantic's per-field error list when validation failed.
    """

    def __init__(self, message: str, errors: list | None = None):
        super().__init__(message)
        self.errors = errors or []


class ConstraintViolationError(PostServiceError):
    """The store refused a write because of an integrity constraint."""

    def __init__(self, message: str, constraint_name: str | None = None):
        super().__init__(message)
        self.constraint_name = constraint_name


class SlugConflictError(ConstraintViolationError):
    """Another post claimed the slug between resolution and the write.

    Callers may re-resolve the slug and retry once.
    """

    def __init__(self, slug: str, constraint_name: str | None = None):
        super().__init__(f"Slug '{slug}' is already taken", constraint_name)
        self.slug = slug


class StoreUnavailableError(PostServiceError):
    """The store timed out or the connection was lost.

    The original exception is chained as __cause__.
    """
