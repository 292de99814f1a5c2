"""
Translation model

One row per (key, locale) pair holding the translated text. Rows are never
physically removed by the API: deleting sets ``deleted_at`` and every read
path filters on ``Translation.is_live``.

Relationships are declared ``lazy="raise"`` so that a record can never issue
a hidden query; repositories must eager-load ``locale`` and ``tags``.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import relationship

from translation_api.database import Base
from translation_api.models.translation_tags import translation_tag

KEY_MAX_LENGTH = 255


class TranslationState(str, enum.Enum):
    """Soft-delete state of a translation row."""

    ACTIVE = "active"
    DELETED = "deleted"


class Translation(Base):
    __tablename__ = "translations"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(KEY_MAX_LENGTH), nullable=False, index=True)
    locale_id = Column(
        Integer,
        ForeignKey("locales.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    content = Column(Text, nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    locale = relationship("Locale", lazy="raise")
    tags = relationship("Tag", secondary=translation_tag, lazy="raise", order_by="Tag.id")

    __table_args__ = (
        # One live translation per (key, locale); soft-deleted rows do not count
        Index(
            "uq_translations_key_locale_live",
            "key",
            "locale_id",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
        Index("idx_translations_key_locale", "key", "locale_id"),
    )

    @hybrid_property
    def is_live(self) -> bool:
        return self.deleted_at is None

    @is_live.expression
    def is_live(cls):
        return cls.deleted_at.is_(None)

    @property
    def state(self) -> TranslationState:
        return TranslationState.ACTIVE if self.deleted_at is None else TranslationState.DELETED

    def __repr__(self) -> str:
        return f"<Translation id={self.id} key={self.key!r} locale_id={self.locale_id}>"
