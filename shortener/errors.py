"""Error taxonomy for the link shortener.

Store-native errors (asyncpg, sqlite3, SQLAlchemy) never leave
``LinkRepository``; they are classified into the store errors below once,
at that boundary. The HTTP layer maps each kind to a status code.

Hierarchy
=========
::
    ShortenerError
    ├── InvalidURLError              -> 400
    ├── InvalidExpiryError           -> 400
    ├── AllocationError              -> 500
    │   ├── RandomSourceError
    │   └── AllocationExhaustedError
    └── StoreError
        ├── NotFound                 -> 404
        ├── UniquenessConflict       -> retried, never surfaced
        └── StorageError             -> 500
"""

__all__ = [
    "ShortenerError",
    "InvalidURLError",
    "InvalidExpiryError",
    "AllocationError",
    "RandomSourceError",
    "AllocationExhaustedError",
    "StoreError",
    "NotFound",
    "UniquenessConflict",
    "StorageError",
]


class ShortenerError(Exception):
    """Base class for all errors raised by the shortener package."""


class InvalidURLError(ShortenerError):
    """The submitted URL is missing or not a valid absolute URL."""


class InvalidExpiryError(ShortenerError):
    """The requested lifetime does not fit in a timestamp."""


class AllocationError(ShortenerError):
    """A short code could not be allocated for a new link."""


class RandomSourceError(AllocationError):
    """The cryptographic random source is unavailable."""


class AllocationExhaustedError(AllocationError):
    def __init__(self, attempts: int) -> None:
        super().__init__(f"could not allocate a unique short code after {attempts} attempts")
        self.attempts = attempts


class StoreError(ShortenerError):
    """Base class for errors surfaced by the link store."""


class NotFound(StoreError):
    def __init__(self, short_code: str) -> None:
        super().__init__(f"link '{short_code}' not found")
        self.short_code = short_code


class UniquenessConflict(StoreError):
    def __init__(self, short_code: str) -> None:
        super().__init__(f"short code '{short_code}' is already taken")
        self.short_code = short_code


class StorageError(StoreError):
    """Any store failure that is not a lookup miss or a code collision."""
