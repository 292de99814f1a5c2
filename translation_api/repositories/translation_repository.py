"""
Translation Repository

Mediates every read and write of translations:

    create            - insert a row and its tag edges atomically
    update            - partial update; a supplied tag list replaces the old set
    delete            - soft delete (sets ``deleted_at``)
    find_by_id        - live row with locale and tags, or None
    search            - filtered, paginated listing (<= 3 queries per call)
    export_by_locale  - ``{key: content}`` for one locale, cached per locale

Cache protocol: each mutation commits first and then drops the export
snapshot of the affected locale before returning. A reader that missed
before the commit can still store a pre-write snapshot after the drop; that
entry lives at most ``export_ttl`` seconds.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload
from sqlalchemy.orm.attributes import set_committed_value

from translation_api.config import settings
from translation_api.exceptions import ConflictError, NotFoundError, StoreError, ValidationError
from translation_api.models import Locale, Tag, Translation
from translation_api.services.cache_service import CacheService
from translation_api.utils.metrics import record_translation_operation
from translation_api.utils.pagination import Page

logger = logging.getLogger(__name__)

EXPORT_STREAM_BATCH = 1000


def _with_relations(query):
    # locale is many-to-one so it rides along in the row query; tags need one SELECT ... IN
    return query.options(joinedload(Translation.locale), selectinload(Translation.tags))


class TranslationRepository:
    """Read/write access to translations with per-locale export caching."""

    def __init__(self, db: AsyncSession, cache: CacheService):
        self.db = db
        self.cache = cache

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create(self, fields: Mapping[str, Any]) -> Translation:
        """
        Insert a translation and its tag set in one transaction.

        Args:
            fields: ``key``, ``locale_id``, ``content`` and optional ``tags``
                (list of tag ids)

        Returns:
            The new record with ``locale`` and ``tags`` loaded.

        Raises:
            ValidationError: unknown locale or tag id
            ConflictError: a live translation with this key and locale exists
            StoreError: any other database failure
        """
        key = fields["key"]
        locale_id = fields["locale_id"]

        try:
            locale = await self.db.get(Locale, locale_id)
            if locale is None:
                raise ValidationError("The selected locale_id is invalid.", field="locale_id")
            tags = await self._load_tags(fields.get("tags") or [])

            translation = Translation(key=key, locale=locale, content=fields["content"])
            translation.tags = tags
            self.db.add(translation)
            await self.db.flush()
            translation_id = translation.id
            locale_code = locale.code
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise await self._explain_integrity_error(
                "create", key, locale_id, fields.get("tags") or []
            ) from e
        except ValidationError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error creating translation: {e}")
            raise StoreError(operation="create") from e

        await self._invalidate_export(locale_code)
        record_translation_operation("create")
        logger.info("Translation created: id=%d key=%s locale=%s", translation_id, key, locale_code)

        return await self._reload(translation_id)

    async def update(self, existing: Translation, fields: Mapping[str, Any]) -> Translation:
        """
        Apply a partial update.

        Only keys present in ``fields`` change. ``tags`` set to a list replaces
        the whole association set (``[]`` detaches everything); ``tags`` set
        to None or omitted leaves the tags untouched.

        Raises:
            NotFoundError: the row was deleted in the meantime
            ValidationError: unknown tag id
            ConflictError: the new key collides with another live row
            StoreError: any other database failure
        """
        translation_id = existing.id
        locale_id = existing.locale_id
        current_key = existing.key
        try:
            translation = await self._fetch_live(translation_id)
            if translation is None:
                raise NotFoundError("Translation", translation_id)
            locale_code = translation.locale.code

            for name in ("key", "content"):
                value = fields.get(name)
                if value is not None:
                    setattr(translation, name, value)

            tag_ids = fields.get("tags")
            if tag_ids is not None:
                await self._sync_tags(translation, tag_ids)

            translation.updated_at = datetime.now(timezone.utc)
            await self.db.flush()
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise await self._explain_integrity_error(
                "update",
                fields.get("key") or current_key,
                locale_id,
                fields.get("tags") or [],
                exclude_id=translation_id,
            ) from e
        except (NotFoundError, ValidationError):
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error updating translation {translation_id}: {e}")
            raise StoreError(operation="update") from e

        await self._invalidate_export(locale_code)
        record_translation_operation("update")
        logger.info("Translation updated: id=%d locale=%s", translation_id, locale_code)

        return await self._reload(translation_id)

    async def delete(self, existing: Translation) -> bool:
        """
        Soft-delete a translation.

        Returns:
            True if this call marked the row deleted, False if it was already
            gone. The export cache is only invalidated on True.
        """
        translation_id = existing.id
        locale_id = existing.locale_id
        deleted_at = datetime.now(timezone.utc)
        try:
            locale_code = await self._locale_code(locale_id)
            result = await self.db.execute(
                update(Translation)
                .where(Translation.id == translation_id, Translation.is_live)
                .values(deleted_at=deleted_at)
                .execution_options(synchronize_session=False)
            )
            marked = result.rowcount == 1
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error deleting translation {translation_id}: {e}")
            raise StoreError(operation="delete") from e

        if not marked:
            logger.info("Translation %d was already deleted", translation_id)
            return False

        set_committed_value(existing, "deleted_at", deleted_at)
        if locale_code is not None:
            await self._invalidate_export(locale_code)
        record_translation_operation("delete")
        logger.info("Translation deleted: id=%d locale=%s", translation_id, locale_code)
        return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def find_by_id(self, translation_id: int) -> Translation | None:
        """Live translation with locale and tags loaded, or None."""
        try:
            return await self._fetch_live(translation_id)
        except SQLAlchemyError as e:
            logger.error(f"Error fetching translation {translation_id}: {e}")
            raise StoreError(operation="find") from e

    async def search(self, filters: Mapping[str, Any]) -> Page[Translation]:
        """
        Filter live translations and return one page.

        Filters (all optional, combined with AND):
            key, content: case-sensitive substring; ``%`` and ``_`` match literally
            locale: exact locale code
            tag: exact tag name
            per_page: page size, default 20
            page: 1-based page number, default 1
        """
        per_page = filters.get("per_page")
        if per_page is None:
            per_page = settings.default_per_page
        current_page = filters.get("page")
        if current_page is None:
            current_page = 1
        if per_page < 1:
            raise ValidationError("per_page must be at least 1.", field="per_page")
        if current_page < 1:
            raise ValidationError("page must be at least 1.", field="page")

        conditions = [Translation.is_live]
        if filters.get("key"):
            conditions.append(Translation.key.contains(filters["key"], autoescape=True))
        if filters.get("content"):
            conditions.append(Translation.content.contains(filters["content"], autoescape=True))
        if filters.get("locale"):
            conditions.append(Translation.locale.has(Locale.code == filters["locale"]))
        if filters.get("tag"):
            conditions.append(Translation.tags.any(Tag.name == filters["tag"]))

        page = Page(current_page=current_page, per_page=per_page)
        try:
            total = await self.db.scalar(select(func.count(Translation.id)).where(*conditions))
            page.total = total or 0

            if page.total > page.offset:
                query = _with_relations(
                    select(Translation)
                    .where(*conditions)
                    .order_by(Translation.id)
                    .offset(page.offset)
                    .limit(per_page)
                )
                result = await self.db.execute(query)
                page.data = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error searching translations: {e}")
            raise StoreError(operation="search") from e

        record_translation_operation("search")
        return page

    async def export_by_locale(self, locale_code: str) -> dict[str, str]:
        """
        All live ``key -> content`` pairs of a locale, ordered by key.

        Served from the cache when present; otherwise streamed from the
        database and cached for ``export_ttl`` seconds.
        """
        record_translation_operation("export")
        return await self.cache.remember(
            self.cache.export_key(locale_code),
            self.cache.export_ttl,
            lambda: self._load_export(locale_code),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _load_export(self, locale_code: str) -> dict[str, str]:
        logger.debug(f"Export cache miss for locale {locale_code}; reading from database")
        query = (
            select(Translation.key, Translation.content)
            .join(Locale, Translation.locale_id == Locale.id)
            .where(Locale.code == locale_code, Translation.is_live)
            .order_by(Translation.key)
            .execution_options(yield_per=EXPORT_STREAM_BATCH)
        )
        exported: dict[str, str] = {}
        try:
            result = await self.db.stream(query)
            async for key, content in result:
                exported[key] = content
        except SQLAlchemyError as e:
            logger.error(f"Error exporting locale {locale_code}: {e}")
            raise StoreError(operation="export") from e
        return exported

    async def _fetch_live(self, translation_id: int) -> Translation | None:
        query = _with_relations(
            select(Translation).where(Translation.id == translation_id, Translation.is_live)
        ).execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalars().first()

    async def _reload(self, translation_id: int) -> Translation:
        try:
            translation = await self._fetch_live(translation_id)
        except SQLAlchemyError as e:
            raise StoreError(operation="reload") from e
        if translation is None:
            # deleted by a concurrent request between commit and reload
            raise NotFoundError("Translation", translation_id)
        return translation

    async def _load_tags(self, tag_ids: Iterable[int]) -> list[Tag]:
        wanted = set(tag_ids)
        if not wanted:
            return []
        result = await self.db.execute(select(Tag).where(Tag.id.in_(wanted)).order_by(Tag.id))
        tags = list(result.scalars().all())
        missing = wanted - {tag.id for tag in tags}
        if missing:
            raise ValidationError(
                "The selected tags are invalid.",
                field="tags",
                details={"missing_ids": sorted(missing)},
            )
        return tags

    async def _sync_tags(self, translation: Translation, tag_ids: Iterable[int]) -> None:
        """Make ``translation.tags`` exactly ``tag_ids``: detach the extras, attach the new ones."""
        new_tags = await self._load_tags(tag_ids)
        new_ids = {tag.id for tag in new_tags}
        current_ids = {tag.id for tag in translation.tags}

        for tag in [t for t in translation.tags if t.id not in new_ids]:
            translation.tags.remove(tag)
        for tag in new_tags:
            if tag.id not in current_ids:
                translation.tags.append(tag)

    async def _explain_integrity_error(
        self,
        operation: str,
        key: str,
        locale_id: int,
        tag_ids: Iterable[int],
        exclude_id: int | None = None,
    ) -> Exception:
        """
        Map a rejected write to the error the caller should see.

        Runs after the rollback: a live row holding the same key and locale
        is a conflict, a locale or tag that has disappeared is a validation
        error, anything else is a store failure.
        """
        try:
            duplicate = select(Translation.id).where(
                Translation.key == key, Translation.locale_id == locale_id, Translation.is_live
            )
            if exclude_id is not None:
                duplicate = duplicate.where(Translation.id != exclude_id)
            if await self.db.scalar(duplicate.limit(1)) is not None:
                logger.info(f"Duplicate translation rejected: key={key!r} locale_id={locale_id}")
                return ConflictError("Translation", "key", key, details={"locale_id": locale_id})
            if await self._locale_code(locale_id) is None:
                return ValidationError("The selected locale_id is invalid.", field="locale_id")
            await self._load_tags(tag_ids)
        except ValidationError as e:
            return e
        except SQLAlchemyError as e:
            logger.error(f"Error inspecting failed {operation}: {e}")
            return StoreError(operation=operation)

        logger.error(f"Integrity error on {operation} with no duplicate or missing reference: key={key!r}")
        return StoreError(operation=operation)

    async def _locale_code(self, locale_id: int) -> str | None:
        return await self.db.scalar(select(Locale.code).where(Locale.id == locale_id))

    async def _invalidate_export(self, locale_code: str) -> None:
        await self.cache.forget(self.cache.export_key(locale_code))
