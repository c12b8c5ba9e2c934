"""Store service.

Validation and the save pipeline (validate, assign slug, write), the read
paths that attach each store's reviews, and the two aggregate views used by
the tags page and the top-stores page.
"""

import logging
import uuid
from collections import Counter, defaultdict
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import func, inspect, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from delicious.config import get_settings
from delicious.models import Review, Store, User
from delicious.services.slugs import name_changed, resolve_unique_slug, slugify_name

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class StoreValidationError(ValueError):
    """One or more required fields are missing; nothing was written."""

    def __init__(self, errors: dict[str, str]):
        self.errors = errors
        super().__init__("; ".join(f"{field}: {msg}" for field, msg in errors.items()))


class SlugConflictError(RuntimeError):
    """Another store took the same slug between the lookup and the write."""

    def __init__(self, slug: str | None):
        self.slug = slug
        super().__init__(f"Slug already in use: {slug}")


# ---------------------------------------------------------------------------
# Data transfer objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PopulatedStore:
    """A store together with the reviews that point at it."""

    store: Store
    reviews: list[Review]


@dataclass(frozen=True, slots=True)
class TagCount:
    tag: str
    count: int


@dataclass(frozen=True, slots=True)
class TopStore:
    """A store in the top-rated ranking."""

    id: uuid.UUID
    photo: Optional[str]
    name: str
    slug: str
    average_rating: Optional[float]
    reviews: list[Review]


# ---------------------------------------------------------------------------
# Validation and save pipeline
# ---------------------------------------------------------------------------

_REQUIRED_MESSAGES = {
    "name": "Please enter a store name!",
    "location.coordinates": "You must supply coordinates",
    "location.address": "You must supply an address",
    "author": "You must supply an author",
}
_UNSLUGGABLE_NAME = "Store name must contain letters or numbers"


def _has_author(store: Store) -> bool:
    if store.author_id is not None:
        return True
    # Don't trigger a lazy load; only look at an author set on the instance.
    return isinstance(inspect(store).attrs.author.loaded_value, User)


def validate_store(store: Store) -> None:
    """Raise :class:`StoreValidationError` with one message per failing field."""
    missing = []
    if not store.name:
        missing.append("name")
    if not store.coordinates:
        missing.append("location.coordinates")
    if not store.address:
        missing.append("location.address")
    if not _has_author(store):
        missing.append("author")

    errors = {field: _REQUIRED_MESSAGES[field] for field in missing}
    # A name like "!!!" would get an empty slug.
    if store.name and not slugify_name(store.name):
        errors["name"] = _UNSLUGGABLE_NAME
    if errors:
        raise StoreValidationError(errors)


async def save_store(session: AsyncSession, store: Store) -> Store:
    """Validate *store*, assign its slug if the name changed, and flush it.

    The caller owns the transaction. On :class:`SlugConflictError` the
    session must be rolled back before it is used again.
    """
    validate_store(store)

    if name_changed(store):
        store.slug = await resolve_unique_slug(session, store.name)

    # A failed flush leaves the instance unreadable until rollback.
    slug = store.slug
    session.add(store)
    try:
        await session.flush()
    except IntegrityError as exc:
        if "slug" not in str(exc.orig).lower():
            raise
        raise SlugConflictError(slug) from exc
    return store


_PLAIN_FIELDS = ("name", "description", "photo", "author_id")


def _apply(store: Store, data: Mapping[str, Any]) -> None:
    """Copy submitted fields onto *store*; absent keys are left alone."""
    for field in _PLAIN_FIELDS:
        if field in data:
            setattr(store, field, data[field])
    if "tags" in data:
        store.tags = list(data["tags"] or [])
    if "location" in data:
        location = data["location"] or {}
        store.coordinates = location.get("coordinates")
        store.address = location.get("address")


async def _save_with_retry(
    session: AsyncSession, prepare: Callable[[], Awaitable[Store | None]]
) -> Store | None:
    """Run ``prepare`` + :func:`save_store` + commit, retrying slug conflicts.

    Each attempt starts from a rolled-back session, so ``prepare`` must build
    or reload the store from scratch.
    """
    attempts = get_settings().slug_retry_attempts
    attempt = 0
    while True:
        attempt += 1
        store = await prepare()
        if store is None:
            return None
        try:
            await save_store(session, store)
            await session.commit()
            return store
        except SlugConflictError as exc:
            await session.rollback()
            if attempt >= attempts:
                logger.error("Giving up on slug %s after %d attempts", exc.slug, attempt)
                raise
            logger.warning("Slug conflict on %s, retrying (%d/%d)", exc.slug, attempt, attempts)


async def create_store(session: AsyncSession, data: Mapping[str, Any]) -> PopulatedStore:
    """Create and commit a store from submitted *data*."""

    async def prepare() -> Store:
        store = Store()
        _apply(store, data)
        return store

    store = await _save_with_retry(session, prepare)
    logger.info("Created store %s (%s)", store.slug, store.id)
    return (await populate_reviews(session, [store]))[0]


async def update_store(
    session: AsyncSession, store_id: uuid.UUID, data: Mapping[str, Any]
) -> PopulatedStore | None:
    """Apply *data* to an existing store and commit. ``None`` if not found."""

    async def prepare() -> Store | None:
        store = await session.get(Store, store_id)
        if store is not None:
            _apply(store, data)
        return store

    try:
        store = await _save_with_retry(session, prepare)
    except StoreValidationError:
        # Drop the half-applied edit so the session holds no partial write.
        await session.rollback()
        raise
    if store is None:
        return None
    logger.info("Updated store %s (%s)", store.slug, store.id)
    return (await populate_reviews(session, [store]))[0]


# ---------------------------------------------------------------------------
# Read paths (every one goes through populate_reviews)
# ---------------------------------------------------------------------------


async def populate_reviews(
    session: AsyncSession, stores: Sequence[Store]
) -> list[PopulatedStore]:
    """Attach each store's reviews, newest first, in a single query."""
    by_store: dict[uuid.UUID, list[Review]] = defaultdict(list)
    ids = [store.id for store in stores]
    if ids:
        result = await session.execute(
            select(Review)
            .where(Review.store_id.in_(ids))
            .order_by(Review.created.desc())
        )
        for review in result.scalars():
            by_store[review.store_id].append(review)

    return [PopulatedStore(store=store, reviews=by_store[store.id]) for store in stores]


async def get_store(session: AsyncSession, store_id: uuid.UUID) -> PopulatedStore | None:
    store = await session.get(Store, store_id)
    if store is None:
        return None
    return (await populate_reviews(session, [store]))[0]


async def get_store_by_slug(session: AsyncSession, slug: str) -> PopulatedStore | None:
    result = await session.execute(select(Store).where(Store.slug == slug))
    store = result.scalar_one_or_none()
    if store is None:
        return None
    return (await populate_reviews(session, [store]))[0]


async def list_stores(
    session: AsyncSession,
    *,
    offset: int = 0,
    limit: int | None = None,
) -> list[PopulatedStore]:
    """Return stores newest first, each with its reviews."""
    stmt = select(Store).order_by(Store.created.desc(), Store.slug).offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await session.execute(stmt)
    return await populate_reviews(session, result.scalars().all())


# ---------------------------------------------------------------------------
# Aggregations
# ---------------------------------------------------------------------------


async def get_tags_list(session: AsyncSession) -> list[TagCount]:
    """Count how many stores carry each tag, most used first.

    Equal counts are ordered by tag name.
    """
    result = await session.execute(select(Store.tags))
    counts = Counter(tag for tags in result.scalars() for tag in (tags or []))
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [TagCount(tag=tag, count=count) for tag, count in ranked]


async def get_top_stores(
    session: AsyncSession, *, limit: int | None = None
) -> list[TopStore]:
    """Best average rating first, among stores with at least two reviews."""
    settings = get_settings()
    if limit is None:
        limit = settings.top_stores_limit

    average_rating = func.avg(Review.rating).label("average_rating")
    stmt = (
        select(Store, average_rating)
        .join(Review, Review.store_id == Store.id)
        .group_by(Store.id)
        .having(func.count(Review.id) >= settings.top_stores_min_reviews)
        .order_by(average_rating.desc().nulls_last(), Store.slug)
        .limit(limit)
    )
    result = await session.execute(stmt)
    rows = result.all()

    populated = await populate_reviews(session, [store for store, _ in rows])
    return [
        TopStore(
            id=entry.store.id,
            photo=entry.store.photo,
            name=entry.store.name,
            slug=entry.store.slug,
            average_rating=float(avg) if avg is not None else None,
            reviews=entry.reviews,
        )
        for entry, (_, avg) in zip(populated, rows)
    ]
