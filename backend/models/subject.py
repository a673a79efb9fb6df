from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.models.base import Base, TimestampMixin


class Subject(Base, TimestampMixin):
    __tablename__ = "subjects"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)

    subtopics: Mapped[list["Subtopic"]] = relationship(  # type: ignore[name-defined] # noqa: F821
        back_populates="subject", cascade="all, delete-orphan", passive_deletes=True
    )
    flashcards: Mapped[list["Flashcard"]] = relationship(  # type: ignore[name-defined] # noqa: F821
        back_populates="subject", cascade="all, delete-orphan", passive_deletes=True
    )
