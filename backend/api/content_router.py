"""API routes for subjects, subtopics and flashcards.

Any signed-in user can read; only the administrator can write.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from backend import content
from backend.api.deps import get_admin, get_auth
from backend.api.schemas import (
    FlashcardRequest,
    FlashcardResponse,
    MoveRequest,
    OrderRequest,
    SubjectRequest,
    SubjectResponse,
    SubtopicRequest,
    SubtopicResponse,
)
from backend.auth import AuthContext
from backend.database import get_session
from backend.study.export import flashcards_as_text

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/content", tags=["content"])


# --- Subjects ---


@router.get("/subjects", response_model=list[SubjectResponse])
async def list_subjects(
    _: AuthContext = Depends(get_auth),
    db: AsyncSession = Depends(get_session),
) -> list[SubjectResponse]:
    return [SubjectResponse.model_validate(s) for s in await content.list_subjects(db)]


@router.post("/subjects", response_model=SubjectResponse, status_code=201)
async def create_subject(
    request: SubjectRequest,
    _: AuthContext = Depends(get_admin),
    db: AsyncSession = Depends(get_session),
) -> SubjectResponse:
    return SubjectResponse.model_validate(await content.create_subject(db, request.name))


@router.put("/subjects/{subject_id}", response_model=SubjectResponse)
async def rename_subject(
    subject_id: int,
    request: SubjectRequest,
    _: AuthContext = Depends(get_admin),
    db: AsyncSession = Depends(get_session),
) -> SubjectResponse:
    return SubjectResponse.model_validate(
        await content.rename_subject(db, subject_id, request.name)
    )


@router.delete("/subjects/{subject_id}", status_code=204)
async def delete_subject(
    subject_id: int,
    _: AuthContext = Depends(get_admin),
    db: AsyncSession = Depends(get_session),
) -> None:
    await content.delete_subject(db, subject_id)


# --- Subtopics ---


@router.get("/subtopics", response_model=list[SubtopicResponse])
async def list_subtopics(
    subject_id: int | None = None,
    _: AuthContext = Depends(get_auth),
    db: AsyncSession = Depends(get_session),
) -> list[SubtopicResponse]:
    return [SubtopicResponse.model_validate(s) for s in await content.list_subtopics(db, subject_id)]


@router.post("/subtopics", response_model=SubtopicResponse, status_code=201)
async def create_subtopic(
    request: SubtopicRequest,
    _: AuthContext = Depends(get_admin),
    db: AsyncSession = Depends(get_session),
) -> SubtopicResponse:
    subtopic = await content.create_subtopic(db, request.subject_id, request.name)
    return SubtopicResponse.model_validate(subtopic)


@router.put("/subtopics/{subtopic_id}", response_model=SubtopicResponse)
async def update_subtopic(
    subtopic_id: int,
    request: SubtopicRequest,
    _: AuthContext = Depends(get_admin),
    db: AsyncSession = Depends(get_session),
) -> SubtopicResponse:
    subtopic = await content.update_subtopic(db, subtopic_id, request.name, request.subject_id)
    return SubtopicResponse.model_validate(subtopic)


@router.delete("/subtopics/{subtopic_id}", status_code=204)
async def delete_subtopic(
    subtopic_id: int,
    _: AuthContext = Depends(get_admin),
    db: AsyncSession = Depends(get_session),
) -> None:
    await content.delete_subtopic(db, subtopic_id)


@router.post("/subtopics/{subtopic_id}/move", response_model=list[SubtopicResponse])
async def move_subtopic(
    subtopic_id: int,
    request: MoveRequest,
    _: AuthContext = Depends(get_admin),
    db: AsyncSession = Depends(get_session),
) -> list[SubtopicResponse]:
    """Move a subtopic one place up or down; returns its subject's new order."""
    siblings = await content.move_subtopic(db, subtopic_id, request.offset)
    return [SubtopicResponse.model_validate(s) for s in siblings]


@router.put("/subjects/{subject_id}/subtopic-order", response_model=list[SubtopicResponse])
async def reorder_subtopics(
    subject_id: int,
    request: OrderRequest,
    _: AuthContext = Depends(get_admin),
    db: AsyncSession = Depends(get_session),
) -> list[SubtopicResponse]:
    """Apply a drag-and-drop order to a subject's subtopics."""
    siblings = await content.reorder_subtopics(db, subject_id, request.ordered_ids)
    return [SubtopicResponse.model_validate(s) for s in siblings]


# --- Flashcards ---


@router.get("/flashcards", response_model=list[FlashcardResponse])
async def list_flashcards(
    subject_id: int | None = None,
    subtopic_id: int | None = None,
    search: str | None = None,
    _: AuthContext = Depends(get_auth),
    db: AsyncSession = Depends(get_session),
) -> list[FlashcardResponse]:
    cards = await content.list_flashcards(db, subject_id, subtopic_id, search)
    return [FlashcardResponse.model_validate(c) for c in cards]


@router.get("/flashcards/export", response_class=PlainTextResponse)
async def export_flashcards(
    _: AuthContext = Depends(get_admin),
    db: AsyncSession = Depends(get_session),
) -> str:
    """All cards as plain text, grouped by subject and subtopic."""
    return flashcards_as_text(
        await content.list_subjects(db),
        await content.list_subtopics(db),
        await content.list_flashcards(db),
    )


@router.post("/flashcards", response_model=FlashcardResponse, status_code=201)
async def create_flashcard(
    request: FlashcardRequest,
    _: AuthContext = Depends(get_admin),
    db: AsyncSession = Depends(get_session),
) -> FlashcardResponse:
    card = await content.create_flashcard(
        db, request.subject_id, request.subtopic_id, request.front_text, request.back_text
    )
    return FlashcardResponse.model_validate(card)


@router.put("/flashcards/{flashcard_id}", response_model=FlashcardResponse)
async def update_flashcard(
    flashcard_id: int,
    request: FlashcardRequest,
    _: AuthContext = Depends(get_admin),
    db: AsyncSession = Depends(get_session),
) -> FlashcardResponse:
    card = await content.update_flashcard(
        db,
        flashcard_id,
        request.front_text,
        request.back_text,
        subject_id=request.subject_id,
        subtopic_id=request.subtopic_id,
    )
    return FlashcardResponse.model_validate(card)


@router.delete("/flashcards/{flashcard_id}", status_code=204)
async def delete_flashcard(
    flashcard_id: int,
    _: AuthContext = Depends(get_admin),
    db: AsyncSession = Depends(get_session),
) -> None:
    await content.delete_flashcard(db, flashcard_id)


@router.post("/flashcards/{flashcard_id}/move", response_model=list[FlashcardResponse])
async def move_flashcard(
    flashcard_id: int,
    request: MoveRequest,
    _: AuthContext = Depends(get_admin),
    db: AsyncSession = Depends(get_session),
) -> list[FlashcardResponse]:
    siblings = await content.move_flashcard(db, flashcard_id, request.offset)
    return [FlashcardResponse.model_validate(c) for c in siblings]


@router.put("/subtopics/{subtopic_id}/card-order", response_model=list[FlashcardResponse])
async def reorder_flashcards(
    subtopic_id: int,
    request: OrderRequest,
    _: AuthContext = Depends(get_admin),
    db: AsyncSession = Depends(get_session),
) -> list[FlashcardResponse]:
    siblings = await content.reorder_flashcards(db, subtopic_id, request.ordered_ids)
    return [FlashcardResponse.model_validate(c) for c in siblings]
