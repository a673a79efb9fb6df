"""Deck construction for the three study modes."""

import logging
import random
from collections.abc import Sequence
from enum import Enum
from typing import TypeVar

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.config import settings
from backend.errors import NoCardsAvailableError, StoreError, ValidationError
from backend.models.flashcard import Flashcard
from backend.study.ordering import card_sort_key
from backend.study.session import StudyCard

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StudyMode(str, Enum):
    SUBJECT = "subject"
    SUBTOPIC = "subtopic"
    RANDOM = "random"


def shuffled(cards: Sequence[T], rng: random.Random | None = None) -> list[T]:
    """Return a uniformly shuffled copy of ``cards``."""
    result = list(cards)
    (rng or random).shuffle(result)  # Fisher-Yates
    return result


def random_deck(
    cards: Sequence[T],
    size: int | None = None,
    rng: random.Random | None = None,
) -> list[T]:
    """Shuffle the whole pool, then keep the first ``size`` cards.

    A pool smaller than ``size`` is returned whole (shuffled).
    """
    size = settings.random_deck_size if size is None else size
    return shuffled(cards, rng)[:size]


async def load_deck(
    db: AsyncSession,
    mode: StudyMode,
    subject_id: int | None = None,
    subtopic_id: int | None = None,
    rng: random.Random | None = None,
) -> list[StudyCard]:
    """Fetch the eligible cards for a study configuration.

    Args:
        db: Database session.
        mode: Which scope to draw cards from.
        subject_id: Required for subject mode.
        subtopic_id: Required for subtopic mode.
        rng: Random source for random mode (tests pass a seeded one).

    Returns:
        Cards in display order, or a random subset for random mode.

    Raises:
        ValidationError: The mode's scope id is missing.
        NoCardsAvailableError: No cards match; the caller must change scope.
        StoreError: The query failed.
    """
    stmt = select(Flashcard)
    if mode is StudyMode.SUBJECT:
        if subject_id is None:
            raise ValidationError("Choose a subject to study")
        stmt = stmt.where(Flashcard.subject_id == subject_id)
    elif mode is StudyMode.SUBTOPIC:
        if subtopic_id is None:
            raise ValidationError("Choose a subtopic to study")
        stmt = stmt.where(Flashcard.subtopic_id == subtopic_id)

    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as exc:
        logger.exception("Failed to load flashcards for %s mode", mode.value)
        raise StoreError(str(exc)) from exc

    cards = sorted((StudyCard.from_model(c) for c in result.scalars().all()), key=card_sort_key)
    if mode is StudyMode.RANDOM:
        cards = random_deck(cards, rng=rng)

    if not cards:
        logger.warning(
            "No cards for mode=%s subject=%s subtopic=%s", mode.value, subject_id, subtopic_id
        )
        raise NoCardsAvailableError()

    logger.info("Loaded %d cards for %s mode", len(cards), mode.value)
    return cards
