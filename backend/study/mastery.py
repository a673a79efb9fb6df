"""Per-user mastery tracking for the dashboard.

Mastery is a counter kept beside the study session, never read by it: a
card is mastered once it has been answered correctly ``mastery_threshold``
times in a row.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import and_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.config import settings, utcnow
from backend.errors import StoreError
from backend.models.flashcard import Flashcard
from backend.models.mastery import CardMastery
from backend.models.subject import Subject

logger = logging.getLogger(__name__)


@dataclass
class SubjectMastery:
    subject_id: int
    subject_name: str
    total_cards: int
    mastered_cards: int

    @property
    def percentage(self) -> float:
        if self.total_cards == 0:
            return 0.0
        return round(self.mastered_cards / self.total_cards * 100, 1)

    @property
    def band(self) -> str:
        return mastery_band(self.percentage)


def mastery_band(percentage: float) -> str:
    """Colour band used by the dashboard chart."""
    if percentage >= 80:
        return "green"
    if percentage >= 60:
        return "yellow"
    if percentage > 0:
        return "orange"
    return "gray"


async def record_answer(
    db: AsyncSession,
    user_id: int,
    flashcard_id: int,
    correct: bool,
) -> CardMastery:
    """Update the mastery counters for one answer.

    Raises:
        StoreError: The read or write failed; the caller decides whether
            to surface it.
    """
    try:
        stmt = select(CardMastery).where(
            and_(CardMastery.user_id == user_id, CardMastery.flashcard_id == flashcard_id)
        )
        row = (await db.execute(stmt)).scalar_one_or_none()
        if row is None:
            row = CardMastery(
                user_id=user_id,
                flashcard_id=flashcard_id,
                attempts=0,
                correct_count=0,
                correct_streak=0,
            )
            db.add(row)

        row.attempts += 1
        if correct:
            row.correct_count += 1
            row.correct_streak += 1
        else:
            row.correct_streak = 0
        row.last_reviewed_at = utcnow()
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise StoreError(str(exc)) from exc
    return row


async def subject_mastery(
    db: AsyncSession,
    user_id: int,
    threshold: int | None = None,
) -> list[SubjectMastery]:
    """Return mastered/total card counts for every subject, by name."""
    threshold = settings.mastery_threshold if threshold is None else threshold

    totals_stmt = (
        select(Subject.id, Subject.name, func.count(Flashcard.id))
        .outerjoin(Flashcard, Flashcard.subject_id == Subject.id)
        .group_by(Subject.id, Subject.name)
        .order_by(Subject.name)
    )
    mastered_stmt = (
        select(Flashcard.subject_id, func.count(CardMastery.id))
        .join(CardMastery, CardMastery.flashcard_id == Flashcard.id)
        .where(
            and_(
                CardMastery.user_id == user_id,
                CardMastery.correct_streak >= threshold,
            )
        )
        .group_by(Flashcard.subject_id)
    )
    try:
        totals = (await db.execute(totals_stmt)).all()
        mastered = dict((await db.execute(mastered_stmt)).all())
    except SQLAlchemyError as exc:
        raise StoreError(str(exc)) from exc

    return [
        SubjectMastery(
            subject_id=subject_id,
            subject_name=name,
            total_cards=total,
            mastered_cards=mastered.get(subject_id, 0),
        )
        for subject_id, name, total in totals
    ]
