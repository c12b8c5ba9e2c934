"""Application services."""

from delicious.services.stores import (
    PopulatedStore,
    SlugConflictError,
    StoreValidationError,
    TagCount,
    TopStore,
)

__all__ = [
    "PopulatedStore",
    "SlugConflictError",
    "StoreValidationError",
    "TagCount",
    "TopStore",
]
