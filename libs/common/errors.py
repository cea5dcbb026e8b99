"""Error types raised by the data access layer.

Routers map these onto HTTP status codes:

- ValidationError -> 400
- NotFoundError -> 404
- ConflictError -> 409

Anything else is treated as unexpected and reported as a generic 500.
"""


class StoreError(Exception):
    """Base class for expected data access failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(StoreError):
    """Missing or malformed input."""


class NotFoundError(StoreError):
    """No document matches the given id or name."""


class ConflictError(StoreError):
    """A uniqueness constraint would be violated."""
