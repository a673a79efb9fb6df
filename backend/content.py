"""Subject, subtopic and flashcard management.

Every function takes the caller's ``AsyncSession``. Input is validated
before any query; failed writes are rolled back and re-raised as
``StoreError`` with the driver's message. Nothing is retried.
"""

import logging
from collections.abc import Sequence

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.capabilities import require_display_order
from backend.errors import NotFoundError, StoreError, ValidationError
from backend.models.flashcard import Flashcard
from backend.models.subject import Subject
from backend.models.subtopic import Subtopic
from backend.study import ordering

logger = logging.getLogger(__name__)


def _required(value: str | None, label: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{label} is required")
    return value


async def _commit(db: AsyncSession, action: str) -> None:
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        logger.warning("Constraint violation while trying to %s", action)
        raise StoreError(f"Could not {action}: {exc.orig}") from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Failed to %s", action)
        raise StoreError(str(exc)) from exc


async def _get(db: AsyncSession, model: type, item_id: int, label: str):  # type: ignore[no-untyped-def]
    item = await db.get(model, item_id)
    if item is None:
        raise NotFoundError(f"{label} {item_id} not found")
    return item


# --- Subjects ---


async def list_subjects(db: AsyncSession) -> list[Subject]:
    result = await db.execute(select(Subject).order_by(Subject.name))
    return list(result.scalars().all())


async def get_subject(db: AsyncSession, subject_id: int) -> Subject:
    return await _get(db, Subject, subject_id, "Subject")


async def create_subject(db: AsyncSession, name: str) -> Subject:
    subject = Subject(name=_required(name, "Subject name"))
    db.add(subject)
    await _commit(db, "create subject")
    logger.info("Created subject %d (%s)", subject.id, subject.name)
    return subject


async def rename_subject(db: AsyncSession, subject_id: int, name: str) -> Subject:
    name = _required(name, "Subject name")
    subject = await get_subject(db, subject_id)
    subject.name = name
    await _commit(db, "rename subject")
    return subject


async def delete_subject(db: AsyncSession, subject_id: int) -> None:
    """Delete a subject together with its subtopics and flashcards."""
    subject = await get_subject(db, subject_id)
    await db.delete(subject)
    await _commit(db, "delete subject")
    logger.info("Deleted subject %d", subject_id)


# --- Subtopics ---


async def list_subtopics(db: AsyncSession, subject_id: int | None = None) -> list[Subtopic]:
    """Subtopics in display order, grouped by subject when unfiltered."""
    stmt = select(Subtopic)
    if subject_id is not None:
        stmt = stmt.where(Subtopic.subject_id == subject_id)
    subtopics = (await db.execute(stmt)).scalars().all()
    return sorted(subtopics, key=lambda s: (s.subject_id, ordering.subtopic_sort_key(s)))


async def get_subtopic(db: AsyncSession, subtopic_id: int) -> Subtopic:
    return await _get(db, Subtopic, subtopic_id, "Subtopic")


async def _next_subtopic_index(db: AsyncSession, subject_id: int) -> int:
    stmt = select(func.max(Subtopic.display_order)).where(Subtopic.subject_id == subject_id)
    current = (await db.execute(stmt)).scalar()
    return 0 if current is None else current + 1


async def create_subtopic(db: AsyncSession, subject_id: int, name: str) -> Subtopic:
    """Create a subtopic at the end of its subject's list."""
    name = _required(name, "Subtopic name")
    await get_subject(db, subject_id)
    subtopic = Subtopic(
        subject_id=subject_id,
        name=name,
        display_order=await _next_subtopic_index(db, subject_id),
    )
    db.add(subtopic)
    await _commit(db, "create subtopic")
    logger.info("Created subtopic %d in subject %d", subtopic.id, subject_id)
    return subtopic


async def update_subtopic(
    db: AsyncSession,
    subtopic_id: int,
    name: str,
    subject_id: int | None = None,
) -> Subtopic:
    name = _required(name, "Subtopic name")
    subtopic = await get_subtopic(db, subtopic_id)
    if subject_id is not None and subject_id != subtopic.subject_id:
        await get_subject(db, subject_id)
        subtopic.display_order = await _next_subtopic_index(db, subject_id)
        subtopic.subject_id = subject_id
        # Cards follow their subtopic
        await db.execute(
            update(Flashcard).where(Flashcard.subtopic_id == subtopic_id).values(subject_id=subject_id)
        )
    subtopic.name = name
    await _commit(db, "update subtopic")
    return subtopic


async def delete_subtopic(db: AsyncSession, subtopic_id: int) -> None:
    subtopic = await get_subtopic(db, subtopic_id)
    await db.delete(subtopic)
    await _commit(db, "delete subtopic")
    logger.info("Deleted subtopic %d", subtopic_id)


async def _apply_order(
    db: AsyncSession,
    items: Sequence[Subtopic] | Sequence[Flashcard],
    assignments: list[tuple[int, int]],
    action: str,
) -> None:
    by_id = {item.id: item for item in items}
    for item_id, index in assignments:
        by_id[item_id].display_order = index
    await _commit(db, action)
    logger.info("Applied %d display-order updates (%s)", len(assignments), action)


async def move_subtopic(db: AsyncSession, subtopic_id: int, offset: int) -> list[Subtopic]:
    """Move a subtopic up (-1) or down (+1) within its subject."""
    await require_display_order(db, "subtopics")
    subtopic = await get_subtopic(db, subtopic_id)
    siblings = await list_subtopics(db, subtopic.subject_id)
    await _apply_order(db, siblings, ordering.move(siblings, subtopic_id, offset), "move subtopic")
    return await list_subtopics(db, subtopic.subject_id)


async def reorder_subtopics(
    db: AsyncSession, subject_id: int, ordered_ids: Sequence[int]
) -> list[Subtopic]:
    await require_display_order(db, "subtopics")
    await get_subject(db, subject_id)
    siblings = await list_subtopics(db, subject_id)
    try:
        assignments = ordering.reorder(siblings, ordered_ids)
    except ValueError as exc:
        raise ValidationError(f"Subtopic order must list every subtopic of subject {subject_id} once") from exc
    await _apply_order(db, siblings, assignments, "reorder subtopics")
    return await list_subtopics(db, subject_id)


# --- Flashcards ---


async def list_flashcards(
    db: AsyncSession,
    subject_id: int | None = None,
    subtopic_id: int | None = None,
    search: str | None = None,
) -> list[Flashcard]:
    """Flashcards in display order, optionally filtered.

    ``search`` matches front or back text, case-insensitively.
    """
    stmt = select(Flashcard)
    if subject_id is not None:
        stmt = stmt.where(Flashcard.subject_id == subject_id)
    if subtopic_id is not None:
        stmt = stmt.where(Flashcard.subtopic_id == subtopic_id)
    query = (search or "").strip().lower()
    if query:
        # Match the query literally, not as LIKE wildcards
        escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        stmt = stmt.where(
            or_(
                func.lower(Flashcard.front_text).like(pattern, escape="\\"),
                func.lower(Flashcard.back_text).like(pattern, escape="\\"),
            )
        )
    cards = (await db.execute(stmt)).scalars().all()
    return sorted(cards, key=ordering.card_sort_key)


async def get_flashcard(db: AsyncSession, flashcard_id: int) -> Flashcard:
    return await _get(db, Flashcard, flashcard_id, "Flashcard")


async def _checked_subtopic(db: AsyncSession, subject_id: int, subtopic_id: int) -> Subtopic:
    await get_subject(db, subject_id)
    subtopic = await get_subtopic(db, subtopic_id)
    if subtopic.subject_id != subject_id:
        raise ValidationError("Subtopic does not belong to the selected subject")
    return subtopic


async def _next_card_index(db: AsyncSession, subtopic_id: int) -> int:
    stmt = select(func.max(Flashcard.display_order)).where(Flashcard.subtopic_id == subtopic_id)
    current = (await db.execute(stmt)).scalar()
    return 0 if current is None else current + 1


async def create_flashcard(
    db: AsyncSession,
    subject_id: int,
    subtopic_id: int,
    front_text: str,
    back_text: str,
) -> Flashcard:
    """Create a card at the end of its subtopic."""
    front_text = _required(front_text, "Front text")
    back_text = _required(back_text, "Back text")
    await _checked_subtopic(db, subject_id, subtopic_id)

    card = Flashcard(
        subject_id=subject_id,
        subtopic_id=subtopic_id,
        front_text=front_text,
        back_text=back_text,
        display_order=await _next_card_index(db, subtopic_id),
    )
    db.add(card)
    await _commit(db, "create flashcard")
    logger.info("Created flashcard %d in subtopic %d", card.id, subtopic_id)
    return card


async def update_flashcard(
    db: AsyncSession,
    flashcard_id: int,
    front_text: str,
    back_text: str,
    subject_id: int | None = None,
    subtopic_id: int | None = None,
) -> Flashcard:
    front_text = _required(front_text, "Front text")
    back_text = _required(back_text, "Back text")
    card = await get_flashcard(db, flashcard_id)

    new_subject = card.subject_id if subject_id is None else subject_id
    new_subtopic = card.subtopic_id if subtopic_id is None else subtopic_id
    if (new_subject, new_subtopic) != (card.subject_id, card.subtopic_id):
        await _checked_subtopic(db, new_subject, new_subtopic)
        if new_subtopic != card.subtopic_id:
            card.display_order = await _next_card_index(db, new_subtopic)
        card.subject_id = new_subject
        card.subtopic_id = new_subtopic

    card.front_text = front_text
    card.back_text = back_text
    await _commit(db, "update flashcard")
    return card


async def delete_flashcard(db: AsyncSession, flashcard_id: int) -> None:
    card = await get_flashcard(db, flashcard_id)
    await db.delete(card)
    await _commit(db, "delete flashcard")
    logger.info("Deleted flashcard %d", flashcard_id)


async def move_flashcard(db: AsyncSession, flashcard_id: int, offset: int) -> list[Flashcard]:
    """Move a card up (-1) or down (+1) within its subtopic."""
    await require_display_order(db, "flashcards")
    card = await get_flashcard(db, flashcard_id)
    siblings = await list_flashcards(db, subtopic_id=card.subtopic_id)
    await _apply_order(db, siblings, ordering.move(siblings, flashcard_id, offset), "move flashcard")
    return await list_flashcards(db, subtopic_id=card.subtopic_id)


async def reorder_flashcards(
    db: AsyncSession, subtopic_id: int, ordered_ids: Sequence[int]
) -> list[Flashcard]:
    await require_display_order(db, "flashcards")
    await get_subtopic(db, subtopic_id)
    siblings = await list_flashcards(db, subtopic_id=subtopic_id)
    try:
        assignments = ordering.reorder(siblings, ordered_ids)
    except ValueError as exc:
        raise ValidationError(f"Card order must list every card of subtopic {subtopic_id} once") from exc
    await _apply_order(db, siblings, assignments, "reorder flashcards")
    return await list_flashcards(db, subtopic_id=subtopic_id)
