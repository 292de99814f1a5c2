"""
Reference data: locales and tags.

Both are created idempotently by their natural key and otherwise static.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from translation_api.exceptions import StoreError
from translation_api.models import Locale, Tag

logger = logging.getLogger(__name__)


class ReferenceRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_locale_by_code(self, code: str) -> Locale | None:
        result = await self.db.execute(select(Locale).where(Locale.code == code))
        return result.scalars().first()

    async def locale_code_exists(self, code: str) -> bool:
        try:
            found = await self.db.scalar(select(Locale.id).where(Locale.code == code).limit(1))
        except SQLAlchemyError as e:
            raise StoreError(operation="locale_lookup") from e
        return found is not None

    async def get_or_create_locale(self, code: str, name: str) -> Locale:
        """Return the locale with ``code``, inserting it with ``name`` if absent."""
        existing = await self.get_locale_by_code(code)
        if existing is not None:
            return existing

        locale = Locale(code=code, name=name)
        self.db.add(locale)
        try:
            await self.db.commit()
        except IntegrityError:
            # created concurrently; the other writer won
            await self.db.rollback()
            return await self.get_locale_by_code(code)
        logger.info("Locale created: %s (%s)", code, name)
        return locale

    async def get_or_create_tag(self, name: str) -> Tag:
        """Return the tag called ``name``, inserting it if absent."""
        result = await self.db.execute(select(Tag).where(Tag.name == name))
        existing = result.scalars().first()
        if existing is not None:
            return existing

        tag = Tag(name=name)
        self.db.add(tag)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            result = await self.db.execute(select(Tag).where(Tag.name == name))
            return result.scalars().one()
        logger.info("Tag created: %s", name)
        return tag
