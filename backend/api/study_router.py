"""API routes for flashcard study sessions.

The session lives in memory and is the source of truth while it lasts.
Mastery counters are written after each mark, but a failed write is only
logged: it never changes or blocks the session.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.deps import get_auth, get_study_store
from backend.api.schemas import (
    ScoreResponse,
    StudySessionResponse,
    StudyStartRequest,
    SubjectMasteryResponse,
)
from backend.auth import AuthContext
from backend.database import get_session
from backend.errors import StoreError
from backend.study.deck import load_deck
from backend.study.mastery import record_answer, subject_mastery
from backend.study.session import MarkResult, StudySession
from backend.study.store import SessionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/study", tags=["study"])


def _response(session_id: str, session: StudySession) -> StudySessionResponse:
    return StudySessionResponse(session_id=session_id, **session.snapshot())


async def _record(db: AsyncSession, user_id: int, result: MarkResult) -> None:
    try:
        await record_answer(db, user_id, result.card.id, result.correct)
    except StoreError as exc:
        logger.warning("Could not record mastery for card %d: %s", result.card.id, exc.message)


@router.post("/sessions", response_model=StudySessionResponse, status_code=201)
async def create_session(
    request: StudyStartRequest,
    auth: AuthContext = Depends(get_auth),
    store: SessionStore = Depends(get_study_store),
    db: AsyncSession = Depends(get_session),
) -> StudySessionResponse:
    """Load a deck for the chosen mode and scope; the session waits to be started."""
    deck = await load_deck(db, request.mode, request.subject_id, request.subtopic_id)
    session = StudySession(deck=deck)
    session_id = store.create(auth.user.id, session)
    return _response(session_id, session)


@router.get("/sessions/{session_id}", response_model=StudySessionResponse)
async def get_session_state(
    session_id: str,
    auth: AuthContext = Depends(get_auth),
    store: SessionStore = Depends(get_study_store),
) -> StudySessionResponse:
    return _response(session_id, store.get(session_id, auth.user.id))


@router.post("/sessions/{session_id}/start", response_model=StudySessionResponse)
async def start_session(
    session_id: str,
    auth: AuthContext = Depends(get_auth),
    store: SessionStore = Depends(get_study_store),
) -> StudySessionResponse:
    session = store.get(session_id, auth.user.id)
    session.start()
    return _response(session_id, session)


@router.post("/sessions/{session_id}/flip", response_model=StudySessionResponse)
async def flip_card(
    session_id: str,
    auth: AuthContext = Depends(get_auth),
    store: SessionStore = Depends(get_study_store),
) -> StudySessionResponse:
    session = store.get(session_id, auth.user.id)
    session.flip()
    return _response(session_id, session)


@router.post("/sessions/{session_id}/correct", response_model=StudySessionResponse)
async def mark_correct(
    session_id: str,
    auth: AuthContext = Depends(get_auth),
    store: SessionStore = Depends(get_study_store),
    db: AsyncSession = Depends(get_session),
) -> StudySessionResponse:
    session = store.get(session_id, auth.user.id)
    result = session.mark_correct()
    await _record(db, auth.user.id, result)
    return _response(session_id, session)


@router.post("/sessions/{session_id}/wrong", response_model=StudySessionResponse)
async def mark_wrong(
    session_id: str,
    auth: AuthContext = Depends(get_auth),
    store: SessionStore = Depends(get_study_store),
    db: AsyncSession = Depends(get_session),
) -> StudySessionResponse:
    session = store.get(session_id, auth.user.id)
    result = session.mark_wrong()
    await _record(db, auth.user.id, result)
    return _response(session_id, session)


@router.post("/sessions/{session_id}/review", response_model=StudySessionResponse)
async def review_missed(
    session_id: str,
    auth: AuthContext = Depends(get_auth),
    store: SessionStore = Depends(get_study_store),
) -> StudySessionResponse:
    """Start a review round over the cards missed in the last round."""
    session = store.get(session_id, auth.user.id)
    session.review_missed()
    return _response(session_id, session)


@router.post("/sessions/{session_id}/restart", response_model=StudySessionResponse)
async def restart_session(
    session_id: str,
    auth: AuthContext = Depends(get_auth),
    store: SessionStore = Depends(get_study_store),
) -> StudySessionResponse:
    """Study again: back to the full deck, waiting to be started."""
    session = store.get(session_id, auth.user.id)
    session.restart()
    return _response(session_id, session)


@router.get("/sessions/{session_id}/score", response_model=ScoreResponse)
async def session_score(
    session_id: str,
    auth: AuthContext = Depends(get_auth),
    store: SessionStore = Depends(get_study_store),
) -> ScoreResponse:
    session = store.get(session_id, auth.user.id)
    score = session.score()
    return ScoreResponse(
        correct=score.correct,
        total=score.total,
        perfect=score.perfect,
        missed=len(session.round_wrong_ids),
        is_review_round=session.is_review_round,
    )


@router.delete("/sessions/{session_id}", status_code=204)
async def end_session(
    session_id: str,
    auth: AuthContext = Depends(get_auth),
    store: SessionStore = Depends(get_study_store),
) -> None:
    store.end(session_id, auth.user.id)


@router.get("/mastery", response_model=list[SubjectMasteryResponse])
async def mastery(
    auth: AuthContext = Depends(get_auth),
    db: AsyncSession = Depends(get_session),
) -> list[SubjectMasteryResponse]:
    """Per-subject mastery for the dashboard."""
    return [
        SubjectMasteryResponse(
            subject_id=m.subject_id,
            subject_name=m.subject_name,
            total_cards=m.total_cards,
            mastered_cards=m.mastered_cards,
            percentage=m.percentage,
            band=m.band,
        )
        for m in await subject_mastery(db, auth.user.id)
    ]
