"""Flashcard model: a front/back pair filed under a subject and subtopic."""

from sqlalchemy import ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.models.base import Base, TimestampMixin


class Flashcard(Base, TimestampMixin):
    """A question/answer card curated by the administrator."""

    __tablename__ = "flashcards"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    subject_id: Mapped[int] = mapped_column(
        ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    subtopic_id: Mapped[int] = mapped_column(
        ForeignKey("subtopics.id", ondelete="CASCADE"), nullable=False, index=True
    )
    front_text: Mapped[str] = mapped_column(Text, nullable=False)
    back_text: Mapped[str] = mapped_column(Text, nullable=False)
    display_order: Mapped[int | None] = mapped_column(Integer, nullable=True)  # None until reordered

    subject: Mapped["Subject"] = relationship(back_populates="flashcards")  # type: ignore[name-defined] # noqa: F821
    subtopic: Mapped["Subtopic"] = relationship(back_populates="flashcards")  # type: ignore[name-defined] # noqa: F821
    mastery: Mapped[list["CardMastery"]] = relationship(  # type: ignore[name-defined] # noqa: F821
        back_populates="flashcard", cascade="all, delete-orphan", passive_deletes=True
    )
