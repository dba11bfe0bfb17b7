"""Tests for the generic content store."""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from mosaic.auth import DENY_ALL, MANAGE_CONTENT, PermissionAuthorizer
from mosaic.db.services.content_service import ContentStore, get_content_store
from mosaic.lib.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
    ValidationError,
)
from mosaic.lib.hooks import ENTRY_VIEW, REVALIDATE, hooks
from mosaic.lib.query import Pagination, QueryParams

WHITENING = {
    "data": {"slug": "whitening", "price": 49.90},
    "translations": {"pt": {"title": "Branqueamento"}, "en": {"title": "Whitening"}},
}


async def _create(store, slug, price=None, titles=None):
    data = {"slug": slug}
    if price is not None:
        data["price"] = price
    translations = titles if titles is not None else {"en": {"title": slug.title()}}
    return await store.create(data, translations)


async def _slugs(store, **query):
    result = await store.find(QueryParams(**query))
    return sorted(item["slug"] for item in result.data)


class TestCreateAndFind:
    """Round trips through create, find and find_one."""

    @pytest.mark.asyncio
    async def test_find_one_overlays_requested_locale(self, treatment_store):
        """Test that find_one merges the locale's translation onto the base data."""
        created = await treatment_store.create(WHITENING["data"], WHITENING["translations"])

        view = await treatment_store.find_one(created["id"], QueryParams(locale="en"))

        assert view["slug"] == "whitening"
        assert view["price"] == pytest.approx(49.90)
        assert view["title"] == "Whitening"
        assert view["locale"] == "en"

    @pytest.mark.asyncio
    async def test_missing_translation_has_no_fallback(self, treatment_store):
        """Test that a locale without a translation row omits translatable fields."""
        created = await treatment_store.create({"slug": "cleaning"}, {"pt": {"title": "Limpeza"}})

        view = await treatment_store.find_one(created["id"], QueryParams(locale="en"))

        assert "title" not in view
        assert view["slug"] == "cleaning"

    @pytest.mark.asyncio
    async def test_create_returns_unmerged_record(self, treatment_store):
        """Test that create returns the base document and every translation row."""
        created = await treatment_store.create(WHITENING["data"], WHITENING["translations"])

        assert created["status"] == "draft"
        assert created["published_at"] is None
        assert created["data"] == {"slug": "whitening", "price": pytest.approx(49.90)}
        assert created["translations"] == [
            {"language_code": "en", "data": {"title": "Whitening"}},
            {"language_code": "pt", "data": {"title": "Branqueamento"}},
        ]

    @pytest.mark.asyncio
    async def test_translatable_value_in_data_goes_to_default_locale(self, treatment_store):
        """Test that translatable values in data are stored for the default locale."""
        created = await treatment_store.create({"slug": "implants", "title": "Implantes"})

        assert created["data"] == {"slug": "implants"}
        assert created["translations"] == [{"language_code": "pt", "data": {"title": "Implantes"}}]

    @pytest.mark.asyncio
    async def test_explicit_translation_wins_over_data(self, treatment_store):
        """Test that an explicit default-locale translation beats the value in data."""
        created = await treatment_store.create(
            {"slug": "implants", "title": "From data"}, {"pt": {"title": "Explicit"}}
        )

        assert created["translations"][0]["data"]["title"] == "Explicit"

    @pytest.mark.asyncio
    async def test_list_style_translations_are_accepted(self, treatment_store):
        """Test the [{language_code, data}] spelling of translations."""
        created = await treatment_store.create(
            {"slug": "braces"}, [{"language_code": "en", "data": {"title": "Braces"}}]
        )

        view = await treatment_store.find_one(created["id"], QueryParams(locale="en"))
        assert view["title"] == "Braces"

    @pytest.mark.asyncio
    async def test_find_without_locale_lists_translations(self, treatment_store):
        """Test that reads without a locale expose the raw translation rows."""
        await treatment_store.create(WHITENING["data"], WHITENING["translations"])

        result = await treatment_store.find()

        record = result.data[0]
        assert "title" not in record
        assert {row["language_code"] for row in record["translations"]} == {"en", "pt"}

    @pytest.mark.asyncio
    async def test_find_one_unknown_id_raises_not_found(self, treatment_store):
        """Test that unknown and malformed ids are both NotFound."""
        with pytest.raises(NotFoundError):
            await treatment_store.find_one(uuid4())
        with pytest.raises(NotFoundError):
            await treatment_store.find_one("not-an-id")

    @pytest.mark.asyncio
    async def test_get_content_store_unknown_type(self, db_session):
        """Test that building a store for an unknown content type fails."""
        with pytest.raises(NotFoundError):
            await get_content_store(db_session, "missing")

    @pytest.mark.asyncio
    async def test_unsupported_locale_is_rejected(self, treatment_store):
        """Test that locales outside i18n.locales are refused."""
        with pytest.raises(ValidationError) as exc_info:
            await treatment_store.find(QueryParams(locale="de"))
        assert exc_info.value.field == "locale"


class TestValidation:
    """Required fields, typing and bounds on writes."""

    @pytest.mark.asyncio
    async def test_missing_required_field_fails_on_create(self, treatment_store):
        """Test that create without the required title names that field."""
        with pytest.raises(ValidationError) as exc_info:
            await treatment_store.create({"slug": "whitening", "price": 10})

        assert exc_info.value.field == "title"

    @pytest.mark.asyncio
    async def test_update_does_not_recheck_required(self, treatment_store):
        """Test that a partial update supplying only price succeeds."""
        created = await treatment_store.create(WHITENING["data"], WHITENING["translations"])

        updated = await treatment_store.update(created["id"], {"price": 59.0})

        assert updated["data"] == {"slug": "whitening", "price": 59.0}

    @pytest.mark.asyncio
    async def test_required_translatable_satisfied_by_any_locale(self, treatment_store):
        """Test that one translation is enough for a required translatable field."""
        created = await treatment_store.create({"slug": "x-ray"}, {"en": {"title": "X-Ray"}})
        assert created["id"]

    @pytest.mark.asyncio
    async def test_null_required_value_is_missing(self, treatment_store):
        """Test that an explicit null does not satisfy a required field."""
        with pytest.raises(ValidationError) as exc_info:
            await treatment_store.create({"slug": None}, {"en": {"title": "X"}})
        assert exc_info.value.field == "slug"

    @pytest.mark.asyncio
    async def test_numeric_bound_is_inclusive(self, treatment_store):
        """Test that price == min_value is accepted and one below is rejected."""
        created = await treatment_store.create({"slug": "free", "price": 0}, {"en": {"title": "Free"}})
        assert created["data"]["price"] == 0

        with pytest.raises(ValidationError) as exc_info:
            await treatment_store.create({"slug": "neg", "price": -1}, {"en": {"title": "Neg"}})
        assert exc_info.value.field == "price"

    @pytest.mark.asyncio
    async def test_bounds_checked_on_update(self, treatment_store):
        """Test that update applies the same type validation as create."""
        created = await treatment_store.create(WHITENING["data"], WHITENING["translations"])

        with pytest.raises(ValidationError):
            await treatment_store.update(created["id"], {"price": -5})

    @pytest.mark.asyncio
    async def test_unknown_field_is_rejected(self, treatment_store):
        """Test that fields missing from the schema are refused."""
        with pytest.raises(ValidationError) as exc_info:
            await treatment_store.create({"slug": "a", "colour": "red"}, {"en": {"title": "A"}})
        assert exc_info.value.field == "colour"

    @pytest.mark.asyncio
    async def test_non_translatable_field_in_translation(self, treatment_store):
        """Test that base fields may not appear inside a translation payload."""
        with pytest.raises(ValidationError) as exc_info:
            await treatment_store.create({"slug": "a"}, {"en": {"title": "A", "slug": "b"}})
        assert exc_info.value.field == "slug"

    @pytest.mark.asyncio
    async def test_invalid_slug_is_rejected(self, treatment_store):
        """Test the slug format check."""
        with pytest.raises(ValidationError):
            await treatment_store.create({"slug": "Not A Slug"}, {"en": {"title": "A"}})

    @pytest.mark.asyncio
    async def test_failed_validation_writes_nothing(self, treatment_store):
        """Test that a rejected create leaves no entry behind."""
        with pytest.raises(ValidationError):
            await treatment_store.create({"slug": "a", "price": -1}, {"en": {"title": "A"}})

        assert await treatment_store.count() == 0


class TestUpdateAndDelete:
    """Partial updates, translation upserts and deletion."""

    @pytest.mark.asyncio
    async def test_update_upserts_translations(self, treatment_store):
        """Test that update adds new locales and merges existing ones."""
        created = await treatment_store.create({"slug": "whitening"}, {"pt": {"title": "Branqueamento"}})

        await treatment_store.update(created["id"], translations={"en": {"title": "Whitening"}})
        await treatment_store.update(created["id"], translations={"pt": {"title": "Branqueamento dental"}})

        pt = await treatment_store.find_one(created["id"], QueryParams(locale="pt"))
        en = await treatment_store.find_one(created["id"], QueryParams(locale="en"))
        assert pt["title"] == "Branqueamento dental"
        assert en["title"] == "Whitening"

    @pytest.mark.asyncio
    async def test_update_keeps_untouched_base_values(self, treatment_store):
        """Test that base data is merged rather than replaced."""
        created = await treatment_store.create(WHITENING["data"], WHITENING["translations"])

        await treatment_store.update(created["id"], {"slug": "whitening-pro"})

        view = await treatment_store.find_one(created["id"])
        assert view["slug"] == "whitening-pro"
        assert view["price"] == pytest.approx(49.90)

    @pytest.mark.asyncio
    async def test_delete_removes_entry(self, treatment_store):
        """Test that deleted entries are gone with their translations."""
        created = await treatment_store.create(WHITENING["data"], WHITENING["translations"])

        await treatment_store.delete(created["id"])

        with pytest.raises(NotFoundError):
            await treatment_store.find_one(created["id"])
        assert await treatment_store.count() == 0

    @pytest.mark.asyncio
    async def test_delete_unknown_entry(self, treatment_store):
        """Test that deleting a missing entry raises NotFound."""
        with pytest.raises(NotFoundError):
            await treatment_store.delete(uuid4())


class TestFilters:
    """The filter language over base and translation documents."""

    @pytest.fixture
    async def catalog(self, treatment_store):
        await _create(treatment_store, "checkup", 5, {"en": {"title": "Checkup"}})
        await _create(treatment_store, "cleaning", 10, {"en": {"title": "Cleaning"}, "pt": {"title": "Limpeza"}})
        await _create(treatment_store, "whitening", 50, {"en": {"title": "Whitening"}, "pt": {"title": "Branqueamento"}})
        await _create(treatment_store, "implant", 100, {"pt": {"title": "Implante"}})
        await _create(treatment_store, "surgery", 150, {"en": {"title": "Oral Surgery"}})
        await _create(treatment_store, "consult", None, {"en": {"title": "Consult"}})
        return treatment_store

    @pytest.mark.asyncio
    async def test_range_on_numeric_field(self, catalog):
        """Test that $gte and $lte on one field are ANDed."""
        slugs = await _slugs(catalog, filters={"price": {"$gte": 10, "$lte": 100}})
        assert slugs == ["cleaning", "implant", "whitening"]

    @pytest.mark.asyncio
    async def test_literal_is_equality(self, catalog):
        """Test that a bare value means $eq."""
        assert await _slugs(catalog, filters={"slug": "implant"}) == ["implant"]

    @pytest.mark.asyncio
    async def test_in_is_set_membership(self, catalog):
        """Test $in over a text field."""
        slugs = await _slugs(catalog, filters={"slug": {"$in": ["checkup", "surgery", "nope"]}})
        assert slugs == ["checkup", "surgery"]

    @pytest.mark.asyncio
    async def test_in_with_a_scalar_operand_is_not_split(self, catalog):
        """Test that a single string value containing a comma is one candidate."""
        await _create(catalog, "bridge", 80, {"en": {"title": "Crowns, bridges"}})

        slugs = await _slugs(catalog, filters={"title": {"$in": "Crowns, bridges"}}, locale="en")
        assert slugs == ["bridge"]

    @pytest.mark.asyncio
    async def test_not_in_keeps_missing_values(self, catalog):
        """Test that $notIn also matches entries without the field."""
        slugs = await _slugs(catalog, filters={"price": {"$notIn": [5, 10, 50, 100]}})
        assert slugs == ["consult", "surgery"]

    @pytest.mark.asyncio
    async def test_contains_is_case_insensitive(self, catalog):
        """Test $contains on a translatable field within a locale."""
        slugs = await _slugs(catalog, filters={"title": {"$contains": "SURG"}}, locale="en")
        assert slugs == ["surgery"]

    @pytest.mark.asyncio
    async def test_translatable_filter_without_locale_matches_any(self, catalog):
        """Test that without a locale any translation may match."""
        slugs = await _slugs(catalog, filters={"title": {"$startsWith": "impl"}})
        assert slugs == ["implant"]

    @pytest.mark.asyncio
    async def test_translatable_negation_includes_untranslated(self, catalog):
        """Test that $ne keeps entries lacking a translation in the locale."""
        slugs = await _slugs(catalog, filters={"title": {"$ne": "Whitening"}}, locale="en")
        assert "whitening" not in slugs
        assert "implant" in slugs

    @pytest.mark.asyncio
    async def test_null_operator(self, catalog):
        """Test $null on a base field."""
        assert await _slugs(catalog, filters={"price": {"$null": True}}) == ["consult"]
        assert len(await _slugs(catalog, filters={"price": {"$null": False}})) == 5

    @pytest.mark.asyncio
    async def test_ends_with(self, catalog):
        """Test $endsWith over a base text field."""
        assert await _slugs(catalog, filters={"slug": {"$endsWith": "ING"}}) == ["cleaning", "whitening"]

    @pytest.mark.asyncio
    async def test_query_string_values_are_coerced(self, catalog):
        """Test that string operands are coerced to the field type."""
        assert await _slugs(catalog, filters={"price": {"$gt": "100"}}) == ["surgery"]

    @pytest.mark.asyncio
    async def test_native_status_filter(self, catalog):
        """Test filtering on the native status column."""
        result = await catalog.find(QueryParams(filters={"status": "published"}))
        assert result.total == 0

    @pytest.mark.asyncio
    async def test_unknown_filter_field(self, catalog):
        """Test that filtering on an unknown field fails."""
        with pytest.raises(ValidationError):
            await catalog.find(QueryParams(filters={"colour": "red"}))

    @pytest.mark.asyncio
    async def test_unknown_operator(self, catalog):
        """Test that unknown operators fail."""
        with pytest.raises(ValidationError):
            await catalog.find(QueryParams(filters={"price": {"$between": [1, 2]}}))

    @pytest.mark.asyncio
    async def test_count_uses_filters(self, catalog):
        """Test count with the same filter language."""
        assert await catalog.count({"price": {"$lt": 50}}) == 2


class TestSortAndPagination:
    """Sorting and the pagination envelope."""

    @pytest.mark.asyncio
    async def test_sort_on_base_field(self, treatment_store):
        """Test ascending and descending sort on a document field."""
        for slug, price in (("b", 20), ("a", 10), ("c", 30)):
            await _create(treatment_store, slug, price)

        result = await treatment_store.find(QueryParams(sort=["price:desc"]))
        assert [item["slug"] for item in result.data] == ["c", "b", "a"]

    @pytest.mark.asyncio
    async def test_sort_on_translatable_field_needs_locale(self, treatment_store):
        """Test that sorting by title without a locale is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            await treatment_store.find(QueryParams(sort=["title:asc"]))
        assert exc_info.value.field == "sort"

    @pytest.mark.asyncio
    async def test_sort_on_translatable_field_with_locale(self, treatment_store):
        """Test sorting by the locale's translated value."""
        await _create(treatment_store, "one", titles={"en": {"title": "Zeta"}})
        await _create(treatment_store, "two", titles={"en": {"title": "Alpha"}})

        result = await treatment_store.find(QueryParams(sort=["title:asc"], locale="en"))
        assert [item["title"] for item in result.data] == ["Alpha", "Zeta"]

    @pytest.mark.asyncio
    async def test_pagination_meta(self, treatment_store):
        """Test page windows and the meta block."""
        for index in range(5):
            await _create(treatment_store, f"item-{index}", index)

        result = await treatment_store.find(
            QueryParams(sort=["price:asc"], pagination=Pagination(page=2, page_size=2))
        )

        assert [item["slug"] for item in result.data] == ["item-2", "item-3"]
        assert result.to_dict()["meta"]["pagination"] == {
            "page": 2,
            "pageSize": 2,
            "pageCount": 3,
            "total": 5,
        }

    @pytest.mark.asyncio
    async def test_page_size_is_capped(self, treatment_store):
        """Test that page sizes above the configured maximum are capped."""
        result = await treatment_store.find(QueryParams(pagination=Pagination(page_size=1000)))
        assert result.pagination.page_size == 100


class TestStorageFailures:
    """Database failures on reads surface as StorageError naming the content type."""

    @pytest.mark.asyncio
    async def test_find_wraps_database_errors(self, treatment_store):
        failure = OperationalError("SELECT", {}, Exception("no such table"))
        with patch.object(treatment_store.db_session, "execute", AsyncMock(side_effect=failure)):
            with pytest.raises(StorageError) as exc_info:
                await treatment_store.find()

        assert exc_info.value.entity == treatment_store.entity

    @pytest.mark.asyncio
    async def test_count_and_find_one_wrap_database_errors(self, treatment_store):
        failure = OperationalError("SELECT", {}, Exception("no such table"))
        with patch.object(treatment_store.db_session, "execute", AsyncMock(side_effect=failure)):
            with pytest.raises(StorageError):
                await treatment_store.count()
            with pytest.raises(StorageError):
                await treatment_store.find_one(uuid4())


class TestPublication:
    """Status transitions and publicationState."""

    @pytest.mark.asyncio
    async def test_publish_stamps_published_at(self, treatment_store):
        """Test that publishing sets published_at."""
        created = await treatment_store.create(WHITENING["data"], WHITENING["translations"])

        published = await treatment_store.set_status(created["id"], "published")

        assert published["status"] == "published"
        assert published["published_at"] is not None

    @pytest.mark.asyncio
    async def test_unpublish_clears_published_at(self, treatment_store):
        """Test that going back to draft clears published_at."""
        created = await treatment_store.create(WHITENING["data"], WHITENING["translations"])
        await treatment_store.perform_action(created["id"], "publish")

        draft = await treatment_store.perform_action(created["id"], "unpublish")

        assert draft["status"] == "draft"
        assert draft["published_at"] is None

    @pytest.mark.asyncio
    async def test_archived_is_terminal(self, treatment_store):
        """Test that nothing leaves the archived state."""
        created = await treatment_store.create(WHITENING["data"], WHITENING["translations"])
        await treatment_store.perform_action(created["id"], "archive")

        with pytest.raises(InvalidTransitionError):
            await treatment_store.set_status(created["id"], "published")

    @pytest.mark.asyncio
    async def test_unknown_action(self, treatment_store):
        """Test that unknown actions are validation errors."""
        created = await treatment_store.create(WHITENING["data"], WHITENING["translations"])
        with pytest.raises(ValidationError):
            await treatment_store.perform_action(created["id"], "promote")

    @pytest.mark.asyncio
    async def test_live_only_returns_published(self, treatment_store):
        """Test that publicationState=live hides drafts."""
        draft = await _create(treatment_store, "draft-one")
        live = await _create(treatment_store, "live-one")
        await treatment_store.set_status(live["id"], "published")

        assert await _slugs(treatment_store, publication_state="live") == ["live-one"]
        assert await _slugs(treatment_store) == ["draft-one", "live-one"]
        with pytest.raises(NotFoundError):
            await treatment_store.find_one(draft["id"], QueryParams(publication_state="live"))


class TestAuthorizationAndHooks:
    """Authorizer checks and hook dispatch."""

    @pytest.mark.asyncio
    async def test_denied_before_validation(self, db_session, treatment_type, settings):
        """Test that the authorizer runs before any validation."""
        store = ContentStore(db_session, treatment_type, authorizer=DENY_ALL, settings=settings)

        with pytest.raises(PermissionDeniedError) as exc_info:
            await store.create({"colour": "invalid"})
        assert exc_info.value.permission == MANAGE_CONTENT

    @pytest.mark.asyncio
    async def test_publish_needs_publish_permission(self, db_session, treatment_type, settings, treatment_store):
        """Test that manage-content alone cannot publish."""
        created = await treatment_store.create(WHITENING["data"], WHITENING["translations"])
        editor = ContentStore(
            db_session,
            treatment_type,
            authorizer=PermissionAuthorizer(frozenset({MANAGE_CONTENT})),
            settings=settings,
        )

        with pytest.raises(PermissionDeniedError):
            await editor.set_status(created["id"], "published")

    @pytest.mark.asyncio
    async def test_revalidate_fires_after_writes(self, treatment_store, clean_hooks):
        """Test that every write signals revalidation with the entry key."""
        calls = []
        hooks.add_action(REVALIDATE, lambda scope, key: calls.append((scope, key)))

        created = await treatment_store.create(WHITENING["data"], WHITENING["translations"])
        await treatment_store.update(created["id"], {"price": 1})
        await treatment_store.delete(created["id"])

        assert calls == [("content", f"treatment:{created['id']}")] * 3

    @pytest.mark.asyncio
    async def test_entry_view_filter(self, treatment_store, clean_hooks):
        """Test that the entry_view filter shapes read results."""

        def add_flag(view, content_type, locale):
            return {**view, "content_type": content_type}

        hooks.add_filter(ENTRY_VIEW, add_flag)
        created = await treatment_store.create(WHITENING["data"], WHITENING["translations"])

        view = await treatment_store.find_one(created["id"], QueryParams(locale="pt"))
        assert view["content_type"] == "treatment"
