"""Pydantic schemas for API request/response models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from backend.study.deck import StudyMode

# --- Auth ---


class RegisterRequest(BaseModel):
    email: str
    password: str
    confirm_password: str | None = None


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime


class PasswordResetRequest(BaseModel):
    email: str


class PasswordResetResponse(BaseModel):
    """The reset token would be e-mailed; it is returned only in debug mode."""

    status: str = "sent"
    reset_token: str | None = None


class PasswordResetConfirm(BaseModel):
    token: str
    password: str
    confirm_password: str


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    email_verified: bool
    created_at: datetime


class MeResponse(UserResponse):
    is_admin: bool


# --- Content ---


class SubjectRequest(BaseModel):
    name: str


class SubjectResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class SubtopicRequest(BaseModel):
    subject_id: int
    name: str


class SubtopicResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    subject_id: int
    name: str
    display_order: int | None = None


class FlashcardRequest(BaseModel):
    subject_id: int
    subtopic_id: int
    front_text: str
    back_text: str


class FlashcardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    subject_id: int
    subtopic_id: int
    front_text: str
    back_text: str
    display_order: int | None = None
    created_at: datetime | None = None


class MoveRequest(BaseModel):
    offset: int  # -1 = up, +1 = down


class OrderRequest(BaseModel):
    ordered_ids: list[int]


# --- Study ---


class StudyStartRequest(BaseModel):
    mode: StudyMode
    subject_id: int | None = None
    subtopic_id: int | None = None


class CurrentCard(BaseModel):
    id: int
    text: str
    side: str  # front, back


class StudySessionResponse(BaseModel):
    """State of a study session after an action."""

    session_id: str
    status: str
    is_review_round: bool
    round_number: int
    position: int
    total_cards: int
    deck_size: int
    remaining: int
    progress: float
    flipped: bool
    current_card: CurrentCard | None = None
    correct_ids: list[int]
    wrong_ids: list[int]
    missed_ids: list[int]


class ScoreResponse(BaseModel):
    correct: int
    total: int
    perfect: bool
    missed: int
    is_review_round: bool


class SubjectMasteryResponse(BaseModel):
    subject_id: int
    subject_name: str
    total_cards: int
    mastered_cards: int
    percentage: float
    band: str  # green, yellow, orange, gray
