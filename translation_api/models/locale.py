from sqlalchemy import Column, Integer, String
from translation_api.database import Base


class Locale(Base):
    """A language/region a translation is written for, e.g. ``en`` or ``fr-CA``.

    Translations reference locales with ``ON DELETE CASCADE``; there is no ORM
    relationship back to them so loading a locale never drags its rows along.
    """

    __tablename__ = "locales"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(10), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=False)

    def __repr__(self) -> str:
        return f"<Locale id={self.id} code={self.code!r}>"
