from sqlalchemy import Table, Column, Integer, ForeignKey
from translation_api.database import Base

translation_tag = Table(
    "translation_tag",
    Base.metadata,
    Column("translation_id", Integer, ForeignKey("translations.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True, index=True),
)
