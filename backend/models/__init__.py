"""SQLAlchemy ORM models for the Flashdeck database."""

from backend.models.base import Base
from backend.models.flashcard import Flashcard
from backend.models.mastery import CardMastery
from backend.models.subject import Subject
from backend.models.subtopic import Subtopic
from backend.models.user import AuthToken, User

__all__ = ["AuthToken", "Base", "CardMastery", "Flashcard", "Subject", "Subtopic", "User"]
