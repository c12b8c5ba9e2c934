"""Tests for slug generation and duplicate counting."""

import pytest

from delicious.models import Store
from delicious.services.slugs import (
    count_slug_matches,
    name_changed,
    resolve_unique_slug,
    slug_pattern,
    slugify_name,
)


class TestSlugifyName:
    def test_basic(self):
        assert slugify_name("Clean Bean") == "clean-bean"

    def test_trims_and_collapses_separators(self):
        assert slugify_name("  Clean   --  Bean!!  ") == "clean-bean"

    def test_transliterates_accents(self):
        assert slugify_name("Café Olé") == "cafe-ole"

    def test_punctuation_only_is_empty(self):
        assert slugify_name("!!!") == ""


class TestSlugPattern:
    def test_matches_base_and_numeric_suffix(self):
        pattern = slug_pattern("clean-bean")
        assert pattern.match("clean-bean")
        assert pattern.match("clean-bean-2")
        assert pattern.match("clean-bean-12")

    def test_is_case_insensitive(self):
        assert slug_pattern("clean-bean").match("Clean-Bean-3")

    def test_rejects_other_slugs(self):
        pattern = slug_pattern("clean-bean")
        assert not pattern.match("clean-beans")
        assert not pattern.match("clean-bean-x")
        assert not pattern.match("the-clean-bean")
        assert not pattern.match("clean-bean-2-2")


def test_name_changed_for_new_store():
    assert name_changed(Store(name="Clean Bean")) is True


@pytest.mark.asyncio
async def test_count_ignores_lookalike_prefixes(db, make_store):
    await make_store("Clean Bean")
    await make_store("Clean Beans")
    await make_store("Clean Bean")

    assert await count_slug_matches(db, "clean-bean") == 2
    assert await count_slug_matches(db, "clean-beans") == 1


@pytest.mark.asyncio
async def test_count_includes_every_stored_slug(db, make_store):
    await make_store("Clean Bean")
    await make_store("Clean Bean")

    # The store about to be renamed is counted too.
    assert await count_slug_matches(db, "clean-bean") == 2
    assert await count_slug_matches(db, "CLEAN-BEAN") == 2


@pytest.mark.asyncio
async def test_resolve_unique_slug(db, make_store):
    assert await resolve_unique_slug(db, "Clean Bean") == "clean-bean"

    await make_store("Clean Bean")
    assert await resolve_unique_slug(db, "Clean Bean") == "clean-bean-2"