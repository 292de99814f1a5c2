from sqlalchemy import Column, Integer, String
from translation_api.database import Base


class Tag(Base):
    __tablename__ = "tags"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, index=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Tag id={self.id} name={self.name!r}>"
