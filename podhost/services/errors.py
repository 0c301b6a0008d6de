"""Typed failures raised by the podcast service and its collaborators.

The HTTP layer maps these to status codes; nothing below the router knows
about HTTP.
"""


class PodcastServiceError(Exception):
    """Base class for domain failures."""


class NotFoundError(PodcastServiceError):
    """Entity is absent or not owned by the caller."""


class InvalidInputError(PodcastServiceError):
    """Payload is malformed or missing a required field."""


class StorageIOError(PodcastServiceError):
    """A content store operation failed."""


class ForbiddenError(PodcastServiceError):
    """Reserved for when ownership failures are reported separately."""
