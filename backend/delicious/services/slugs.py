"""Slug generation and duplicate-slug disambiguation for stores.

A store's slug is derived from its name. When other stores already use the
same base slug (either bare or with a numeric suffix) the new slug gets a
``-<n>`` suffix where ``n`` is the number of such stores plus one::

    "Clean Bean"  ->  clean-bean
    "Clean Bean"  ->  clean-bean-2
    "Clean Bean"  ->  clean-bean-3
"""

import logging
import re

from slugify import slugify
from sqlalchemy import inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from delicious.models import Store

logger = logging.getLogger(__name__)


def slugify_name(name: str) -> str:
    """Lowercase, transliterate and hyphenate *name*."""
    return slugify(name.strip())


def slug_pattern(base: str) -> re.Pattern:
    """Match *base* alone or followed by ``-<digits>``, case-insensitively."""
    return re.compile(rf"^({re.escape(base)})(-[0-9]*)?$", re.IGNORECASE)


def name_changed(store: Store) -> bool:
    """True when the store is new or its ``name`` holds a different value."""
    state = inspect(store)
    if state.transient or state.pending:
        return True
    history = state.attrs.name.history
    if not history.added:
        return False
    return list(history.added) != list(history.deleted)


async def count_slug_matches(session: AsyncSession, base: str) -> int:
    """Count stored slugs equal to *base* or to *base* plus a numeric suffix.

    Every stored row counts, including the one being renamed.
    """
    # ILIKE narrows the scan, the regex decides.
    stmt = select(Store.slug).where(Store.slug.ilike(f"{base}%"))

    with session.no_autoflush:
        result = await session.execute(stmt)

    pattern = slug_pattern(base)
    return sum(1 for slug in result.scalars() if slug is not None and pattern.match(slug))


async def resolve_unique_slug(session: AsyncSession, name: str) -> str:
    base = slugify_name(name)
    count = await count_slug_matches(session, base)
    if count:
        slug = f"{base}-{count + 1}"
    else:
        slug = base
    logger.debug("Resolved slug for %r -> %s (%d existing)", name, slug, count)
    return slug
