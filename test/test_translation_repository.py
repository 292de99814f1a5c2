"""
Tests for TranslationRepository

Covers create/update/delete semantics, soft delete, search filters and
pagination, the query budget of search, and export caching/invalidation.
"""

import json

import pytest
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from translation_api.exceptions import ConflictError, NotFoundError, StoreError, ValidationError
from translation_api.models import Tag, Translation, TranslationState
from translation_api.repositories import ReferenceRepository, TranslationRepository
from translation_api.services.cache_service import CacheService
from translation_api.utils.cache import CacheManager
from utils.mocks import MockRedis
from utils.query_counter import QueryCounter

EXPORT_EN = "translations_export_en"
EXPORT_FR = "translations_export_fr"


async def make(repo, locale, key, content="text", tags=None):
    return await repo.create({"key": key, "locale_id": locale.id, "content": content, "tags": tags})


class TestCreate:
    """Test TranslationRepository.create"""

    async def test_create_then_find_matches_input(self, repo, locale_en, tag_web, tag_mobile):
        """A created translation reads back with the same key, content, locale and tags"""
        created = await make(repo, locale_en, "home.title", "Welcome", [tag_web.id, tag_mobile.id])

        found = await repo.find_by_id(created.id)
        assert found is not None
        assert found.key == "home.title"
        assert found.content == "Welcome"
        assert found.locale_id == locale_en.id
        assert found.locale.code == "en"
        assert sorted(tag.id for tag in found.tags) == sorted([tag_web.id, tag_mobile.id])

    async def test_create_returns_loaded_relations(self, repo, locale_en, tag_web):
        """The returned record carries locale and tags without further loading"""
        created = await make(repo, locale_en, "home.title", tags=[tag_web.id])

        assert created.locale.code == "en"
        assert [tag.name for tag in created.tags] == ["web"]
        assert created.state == TranslationState.ACTIVE

    async def test_create_without_tags(self, repo, locale_en):
        """Omitting tags creates a translation with an empty tag set"""
        created = await repo.create({"key": "plain", "locale_id": locale_en.id, "content": "x"})
        assert created.tags == []

    async def test_create_unknown_locale(self, repo):
        """An unknown locale id is a validation error on locale_id"""
        with pytest.raises(ValidationError) as exc_info:
            await repo.create({"key": "k", "locale_id": 999, "content": "x"})
        assert exc_info.value.field == "locale_id"

    async def test_create_unknown_tag(self, repo, locale_en, tag_web):
        """Unknown tag ids are rejected and nothing is written"""
        with pytest.raises(ValidationError) as exc_info:
            await make(repo, locale_en, "k", tags=[tag_web.id, 4242])

        assert exc_info.value.field == "tags"
        assert exc_info.value.details["missing_ids"] == [4242]
        page = await repo.search({})
        assert page.total == 0

    async def test_duplicate_live_pair_conflicts(self, repo, locale_en):
        """A second live translation with the same key and locale is a conflict"""
        await make(repo, locale_en, "dup")

        with pytest.raises(ConflictError):
            await make(repo, locale_en, "dup")

    async def test_tag_deleted_before_flush_is_a_validation_error(self, repo, db_session, monkeypatch, locale_en, tag_web):
        """A tag removed between lookup and insert is reported as invalid, not as a duplicate key"""
        tag_id = tag_web.id
        load_tags = repo._load_tags
        lost = []

        async def load_then_lose(tag_ids):
            tags = await load_tags(tag_ids)
            if tags and not lost:
                lost.append(tag_id)
                await db_session.execute(
                    delete(Tag).where(Tag.id == tag_id).execution_options(synchronize_session=False)
                )
                await db_session.commit()
            return tags

        monkeypatch.setattr(repo, "_load_tags", load_then_lose)

        with pytest.raises(ValidationError) as exc_info:
            await make(repo, locale_en, "k", tags=[tag_id])

        assert exc_info.value.field == "tags"
        assert exc_info.value.details["missing_ids"] == [tag_id]

    async def test_unexplained_integrity_error_is_a_store_error(self, repo, db_session, monkeypatch, locale_en):
        async def failing_flush(*args, **kwargs):
            raise IntegrityError("INSERT INTO translations", {}, Exception("constraint failed"))

        monkeypatch.setattr(db_session, "flush", failing_flush)

        with pytest.raises(StoreError):
            await make(repo, locale_en, "k")

    async def test_same_key_in_other_locale_is_allowed(self, repo, locale_en, locale_fr):
        """Uniqueness is per (key, locale)"""
        await make(repo, locale_en, "dup", "Hello")
        other = await make(repo, locale_fr, "dup", "Bonjour")
        assert other.locale.code == "fr"

    async def test_duplicate_from_second_session_conflicts(self, session_factory, cache, locale_en):
        """The database constraint rejects a duplicate written through another session"""
        async with session_factory() as first_session, session_factory() as second_session:
            first = TranslationRepository(first_session, cache)
            second = TranslationRepository(second_session, cache)

            await make(first, locale_en, "race")
            with pytest.raises(ConflictError):
                await make(second, locale_en, "race")

            page = await first.search({"key": "race"})
            assert page.total == 1

    async def test_recreate_after_soft_delete(self, repo, locale_en):
        """Soft-deleted rows do not block a new translation for the same pair"""
        original = await make(repo, locale_en, "again", "v1")
        assert await repo.delete(original) is True

        recreated = await make(repo, locale_en, "again", "v2")
        assert recreated.id != original.id
        assert recreated.content == "v2"


class TestUpdate:
    """Test TranslationRepository.update"""

    async def test_partial_update_changes_only_given_fields(self, repo, locale_en, tag_web):
        """Fields that are not supplied keep their values"""
        created = await make(repo, locale_en, "k", "old", [tag_web.id])

        updated = await repo.update(created, {"content": "new"})

        assert updated.content == "new"
        assert updated.key == "k"
        assert [tag.id for tag in updated.tags] == [tag_web.id]

    async def test_tags_replace_previous_set(self, repo, locale_en, tag_web, tag_mobile):
        """A supplied tag list fully replaces the old one"""
        created = await make(repo, locale_en, "k", tags=[tag_web.id])

        updated = await repo.update(created, {"tags": [tag_mobile.id]})

        assert [tag.id for tag in updated.tags] == [tag_mobile.id]

    async def test_empty_tag_list_detaches_all(self, repo, locale_en, tag_web, tag_mobile):
        """tags=[] leaves zero attached tags"""
        created = await make(repo, locale_en, "k", tags=[tag_web.id, tag_mobile.id])

        await repo.update(created, {"tags": []})

        found = await repo.find_by_id(created.id)
        assert found.tags == []

    async def test_tags_none_leaves_tags_untouched(self, repo, locale_en, tag_web):
        """tags=None is treated as not supplied"""
        created = await make(repo, locale_en, "k", tags=[tag_web.id])

        updated = await repo.update(created, {"key": "k2", "tags": None})

        assert updated.key == "k2"
        assert [tag.id for tag in updated.tags] == [tag_web.id]

    async def test_update_with_unknown_tag_changes_nothing(self, repo, locale_en, tag_web):
        """A failed tag sync rolls back the field changes as well"""
        created = await make(repo, locale_en, "k", "old", [tag_web.id])
        translation_id, tag_id = created.id, tag_web.id

        with pytest.raises(ValidationError):
            await repo.update(created, {"content": "new", "tags": [9999]})

        found = await repo.find_by_id(translation_id)
        assert found.content == "old"
        assert [tag.id for tag in found.tags] == [tag_id]

    async def test_update_key_collision_conflicts(self, repo, locale_en):
        """Renaming onto another live key of the same locale is a conflict"""
        await make(repo, locale_en, "taken")
        other = await make(repo, locale_en, "free")

        with pytest.raises(ConflictError):
            await repo.update(other, {"key": "taken"})

    async def test_update_deleted_translation(self, repo, locale_en):
        """Updating a row that was deleted in the meantime is NotFound"""
        created = await make(repo, locale_en, "gone")
        await repo.delete(created)

        with pytest.raises(NotFoundError):
            await repo.update(created, {"content": "new"})


class TestDelete:
    """Test TranslationRepository.delete (soft delete)"""

    async def test_delete_hides_row_but_keeps_it(self, repo, db_session, locale_en):
        """After delete, find_by_id is None and the row is still stored with deleted_at set"""
        created = await make(repo, locale_en, "bye")

        assert await repo.delete(created) is True

        assert await repo.find_by_id(created.id) is None
        deleted_at = await db_session.scalar(select(Translation.deleted_at).where(Translation.id == created.id))
        assert deleted_at is not None
        assert created.state == TranslationState.DELETED

    async def test_delete_twice(self, repo, locale_en):
        """The second delete reports that nothing was marked"""
        created = await make(repo, locale_en, "bye")

        assert await repo.delete(created) is True
        assert await repo.delete(created) is False

    async def test_deleted_rows_are_excluded_everywhere(self, repo, locale_en):
        """Soft-deleted rows never appear in search or export"""
        keep = await make(repo, locale_en, "keep", "K")
        drop = await make(repo, locale_en, "drop", "D")
        await repo.delete(drop)

        page = await repo.search({})
        assert [t.id for t in page.data] == [keep.id]
        assert await repo.export_by_locale("en") == {"keep": "K"}


class TestSearch:
    """Test TranslationRepository.search"""

    async def test_filter_by_key_substring(self, repo, locale_en):
        await make(repo, locale_en, "home.title")
        await make(repo, locale_en, "home.subtitle")
        await make(repo, locale_en, "about.title")

        page = await repo.search({"key": "home"})

        assert sorted(t.key for t in page.data) == ["home.subtitle", "home.title"]
        assert page.total == 2

    async def test_filter_by_content_substring(self, repo, locale_en):
        await make(repo, locale_en, "a", "Hello world")
        await make(repo, locale_en, "b", "Goodbye")

        page = await repo.search({"content": "world"})

        assert [t.key for t in page.data] == ["a"]

    async def test_filters_are_case_sensitive(self, repo, locale_en):
        """Substring filters match case exactly"""
        await make(repo, locale_en, "Welcome")
        await make(repo, locale_en, "welcome")

        page = await repo.search({"key": "welcome"})

        assert [t.key for t in page.data] == ["welcome"]

    async def test_wildcards_match_literally(self, repo, locale_en):
        """% and _ in a filter are not LIKE wildcards"""
        await make(repo, locale_en, "100%_done")
        await make(repo, locale_en, "100x_done")
        await make(repo, locale_en, "a_b")
        await make(repo, locale_en, "axb")

        assert [t.key for t in (await repo.search({"key": "100%"})).data] == ["100%_done"]
        assert [t.key for t in (await repo.search({"key": "a_b"})).data] == ["a_b"]

    async def test_filter_by_locale_code(self, repo, locale_en, locale_fr):
        await make(repo, locale_en, "greeting", "Hello")
        await make(repo, locale_fr, "greeting", "Bonjour")

        page = await repo.search({"locale": "fr"})

        assert [t.content for t in page.data] == ["Bonjour"]

    async def test_filter_by_tag_name_exact(self, repo, db_session, locale_en, tag_web, tag_mobile):
        """tag matches the name exactly, case included"""
        web_upper = await ReferenceRepository(db_session).get_or_create_tag("Web")
        await make(repo, locale_en, "one", tags=[tag_web.id])
        await make(repo, locale_en, "two", tags=[tag_mobile.id])
        await make(repo, locale_en, "three", tags=[web_upper.id])
        await make(repo, locale_en, "four", tags=[tag_web.id, tag_mobile.id])

        page = await repo.search({"tag": "web"})

        assert sorted(t.key for t in page.data) == ["four", "one"]

    async def test_filters_combine_with_and(self, repo, locale_en, locale_fr, tag_web):
        await make(repo, locale_en, "home.title", tags=[tag_web.id])
        await make(repo, locale_fr, "home.title", tags=[tag_web.id])
        await make(repo, locale_en, "home.body")

        page = await repo.search({"key": "home", "locale": "en", "tag": "web"})

        assert len(page.data) == 1
        assert page.data[0].locale.code == "en"

    async def test_pagination(self, repo, locale_en):
        """25 rows at 20 per page: two pages, the second holds five"""
        for i in range(25):
            await make(repo, locale_en, f"key_{i:02d}")

        first = await repo.search({"per_page": 20})
        second = await repo.search({"per_page": 20, "page": 2})
        beyond = await repo.search({"per_page": 20, "page": 3})

        assert len(first.data) == 20
        assert first.total == 25
        assert first.last_page == 2
        assert first.current_page == 1
        assert len(second.data) == 5
        assert beyond.data == []
        assert beyond.total == 25

    async def test_default_page_size(self, repo, locale_en):
        for i in range(21):
            await make(repo, locale_en, f"key_{i:02d}")

        page = await repo.search({})

        assert page.per_page == 20
        assert len(page.data) == 20

    async def test_empty_result(self, repo):
        page = await repo.search({"key": "nothing"})
        assert page.data == []
        assert page.total == 0
        assert page.last_page == 1

    @pytest.mark.parametrize(
        "filters,field",
        [({"per_page": -1}, "per_page"), ({"per_page": 0}, "per_page"), ({"page": 0}, "page")],
    )
    async def test_invalid_page_size(self, repo, filters, field):
        with pytest.raises(ValidationError) as exc_info:
            await repo.search(filters)
        assert exc_info.value.field == field

    @pytest.mark.parametrize("rows", [25, 60])
    async def test_query_budget_is_constant(self, engine, session_factory, cache, locale_en, tag_web, tag_mobile, rows):
        """A search page costs at most three round trips whatever the table size"""
        async with session_factory() as writer_session:
            writer = TranslationRepository(writer_session, cache)
            for i in range(rows):
                await make(writer, locale_en, f"key_{i}", tags=[tag_web.id, tag_mobile.id])

        async with session_factory() as reader_session:
            reader = TranslationRepository(reader_session, cache)
            with QueryCounter(engine) as counter:
                page = await reader.search({"per_page": 20})

            assert len(page.data) == 20
            assert counter.count <= 3
            # relations are already loaded: touching them must not hit the database
            with QueryCounter(engine) as lazy_counter:
                for translation in page.data:
                    assert translation.locale.code == "en"
                    assert len(translation.tags) == 2
            assert lazy_counter.count == 0


class TestExport:
    """Test TranslationRepository.export_by_locale and cache invalidation"""

    async def test_export_is_ordered_by_key(self, repo, locale_en):
        await make(repo, locale_en, "c.d", "Y")
        await make(repo, locale_en, "a.b", "X")

        exported = await repo.export_by_locale("en")

        assert exported == {"a.b": "X", "c.d": "Y"}
        assert list(exported) == ["a.b", "c.d"]

    async def test_export_only_contains_requested_locale(self, repo, locale_en, locale_fr):
        await make(repo, locale_en, "greeting", "Hello")
        await make(repo, locale_fr, "greeting", "Bonjour")

        assert await repo.export_by_locale("fr") == {"greeting": "Bonjour"}

    async def test_export_unknown_locale_is_empty(self, repo):
        assert await repo.export_by_locale("xx") == {}

    async def test_second_export_is_served_from_cache(self, repo, engine, mock_redis, locale_en):
        """Two exports with no write in between are identical and the second does not query"""
        await make(repo, locale_en, "a.b", "X")
        await make(repo, locale_en, "c.d", "Y")

        first = await repo.export_by_locale("en")
        with QueryCounter(engine) as counter:
            second = await repo.export_by_locale("en")

        assert counter.count == 0
        assert json.dumps(first) == json.dumps(second)
        assert mock_redis.decoded(EXPORT_EN) == {"a.b": "X", "c.d": "Y"}
        assert mock_redis.ttls[EXPORT_EN] == 3600

    async def test_create_invalidates_export(self, repo, mock_redis, locale_en, tag_web):
        await repo.export_by_locale("en")
        assert EXPORT_EN in mock_redis.store

        await make(repo, locale_en, "home.title", "Home", [tag_web.id])

        assert EXPORT_EN not in mock_redis.store
        assert (await repo.export_by_locale("en"))["home.title"] == "Home"

    async def test_update_invalidates_export(self, repo, mock_redis, locale_en):
        created = await make(repo, locale_en, "k", "old")
        assert await repo.export_by_locale("en") == {"k": "old"}

        await repo.update(created, {"content": "new"})

        assert EXPORT_EN not in mock_redis.store
        assert await repo.export_by_locale("en") == {"k": "new"}

    async def test_delete_invalidates_export(self, repo, mock_redis, locale_en):
        created = await make(repo, locale_en, "k", "v")
        assert await repo.export_by_locale("en") == {"k": "v"}

        await repo.delete(created)

        assert EXPORT_EN not in mock_redis.store
        assert await repo.export_by_locale("en") == {}

    async def test_invalidation_is_scoped_to_the_locale(self, repo, mock_redis, locale_en, locale_fr):
        """Writing to en leaves the fr snapshot in place"""
        await make(repo, locale_fr, "greeting", "Bonjour")
        await repo.export_by_locale("fr")

        await make(repo, locale_en, "greeting", "Hello")

        assert EXPORT_FR in mock_redis.store
        assert mock_redis.commands("delete")[-1] == EXPORT_EN

    async def test_failed_write_does_not_invalidate(self, repo, mock_redis, locale_en):
        """A rejected create leaves the cached snapshot alone"""
        await make(repo, locale_en, "dup")
        await repo.export_by_locale("en")

        with pytest.raises(ConflictError):
            await make(repo, locale_en, "dup")

        assert EXPORT_EN in mock_redis.store


class TestCacheOutage:
    """The store keeps working when Redis is unreachable"""

    @pytest.fixture
    def broken_repo(self, db_session):
        manager = CacheManager(url="redis://down:6379/0", enabled=True, client=MockRedis(fail=True))
        return TranslationRepository(db_session, CacheService(cache=manager, export_ttl=3600))

    async def test_mutations_and_export_succeed(self, broken_repo, locale_en):
        created = await make(broken_repo, locale_en, "k", "v")
        assert await broken_repo.export_by_locale("en") == {"k": "v"}

        await broken_repo.update(created, {"content": "v2"})
        assert await broken_repo.export_by_locale("en") == {"k": "v2"}

        assert await broken_repo.delete(created) is True
        assert await broken_repo.export_by_locale("en") == {}
