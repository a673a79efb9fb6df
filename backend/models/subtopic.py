from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.models.base import Base, TimestampMixin


class Subtopic(Base, TimestampMixin):
    __tablename__ = "subtopics"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    subject_id: Mapped[int] = mapped_column(
        ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    display_order: Mapped[int | None] = mapped_column(Integer, nullable=True)

    subject: Mapped["Subject"] = relationship(back_populates="subtopics")  # type: ignore[name-defined] # noqa: F821
    flashcards: Mapped[list["Flashcard"]] = relationship(  # type: ignore[name-defined] # noqa: F821
        back_populates="subtopic", cascade="all, delete-orphan", passive_deletes=True
    )
