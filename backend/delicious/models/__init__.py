"""SQLAlchemy models."""

from delicious.models.review import Review
from delicious.models.store import Store
from delicious.models.user import User

__all__ = [
    "Review",
    "Store",
    "User",
]
