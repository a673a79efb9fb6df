"""Study session state machine.

A session walks one deck of flashcards. Each card is marked correct or
wrong; when the last card is marked the round completes and its misses
are frozen. From there the learner can review only the missed cards (a
review round, repeatable while misses remain) or study the full deck
again.

    not-started --start--> in-progress --last mark--> complete
    complete --review_missed--> in-progress (missed cards only)
    any --restart--> not-started (full deck)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, NamedTuple

from backend.errors import NoCardsAvailableError, SessionStateError

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETE = "complete"


@dataclass(frozen=True)
class StudyCard:
    """Immutable copy of a flashcard taken when the deck is loaded."""

    id: int
    front_text: str
    back_text: str
    subject_id: int
    subtopic_id: int
    display_order: int | None = None
    created_at: datetime | None = None

    @classmethod
    def from_model(cls, card: Any) -> StudyCard:
        return cls(
            id=card.id,
            front_text=card.front_text,
            back_text=card.back_text,
            subject_id=card.subject_id,
            subtopic_id=card.subtopic_id,
            display_order=card.display_order,
            created_at=card.created_at,
        )


class Score(NamedTuple):
    correct: int
    total: int

    @property
    def perfect(self) -> bool:
        return self.correct == self.total


@dataclass(frozen=True)
class MarkResult:
    """Outcome of marking the current card."""

    card: StudyCard
    correct: bool
    round_complete: bool


@dataclass
class StudySession:
    """One learner's pass through a deck, plus any review rounds."""

    deck: list[StudyCard] = field(default_factory=list)
    status: SessionStatus = SessionStatus.NOT_STARTED
    is_review_round: bool = False
    flipped: bool = False
    position: int = 0
    round_number: int = 1
    _active: list[StudyCard] = field(default_factory=list)
    _correct: set[int] = field(default_factory=set)
    _wrong: set[int] = field(default_factory=set)
    _round_wrong: frozenset[int] = frozenset()

    def __post_init__(self) -> None:
        """Begin with the full deck as the active round."""
        self.deck = list(self.deck)
        self._active = list(self.deck)

    # --- Read-only views ---

    @property
    def active_cards(self) -> tuple[StudyCard, ...]:
        return tuple(self._active)

    @property
    def correct_ids(self) -> frozenset[int]:
        return frozenset(self._correct)

    @property
    def wrong_ids(self) -> frozenset[int]:
        return frozenset(self._wrong)

    @property
    def round_wrong_ids(self) -> frozenset[int]:
        """Misses of the last completed round."""
        return self._round_wrong

    @property
    def current_card(self) -> StudyCard | None:
        """Return the card being shown, or None unless a round is in progress."""
        if self.status is not SessionStatus.IN_PROGRESS:
            return None
        return self._active[self.position]

    @property
    def remaining(self) -> int:
        """Cards left in this round, counting the current one."""
        if self.status is SessionStatus.COMPLETE:
            return 0
        if self.status is SessionStatus.NOT_STARTED:
            return len(self._active)
        return len(self._active) - self.position

    @property
    def progress(self) -> float:
        """Percent through the round, counting the current card as seen."""
        if not self._active or self.status is SessionStatus.NOT_STARTED:
            return 0.0
        if self.status is SessionStatus.COMPLETE:
            return 100.0
        return (self.position + 1) / len(self._active) * 100

    @property
    def is_perfect(self) -> bool:
        return self.status is SessionStatus.COMPLETE and not self._round_wrong

    # --- Transitions ---

    def start(self, cards: Sequence[StudyCard] | None = None) -> None:
        """Begin the first round, on ``cards`` if given or on the current deck.

        Raises:
            NoCardsAvailableError: The deck is empty; the session stays put.
            SessionStateError: A round is already in progress.
        """
        if self.status is SessionStatus.IN_PROGRESS:
            raise SessionStateError("Session is already in progress")
        deck = list(cards) if cards is not None else self.deck
        if not deck:
            raise NoCardsAvailableError()

        self.deck = deck
        self._reset_round(deck)
        self._round_wrong = frozenset()
        self.is_review_round = False
        self.round_number = 1
        self.status = SessionStatus.IN_PROGRESS
        logger.info("Study session started with %d cards", len(deck))

    def flip(self) -> bool:
        """Toggle between front and back. Returns True when the back is shown."""
        self._require(SessionStatus.IN_PROGRESS, "flip a card")
        self.flipped = not self.flipped
        return self.flipped

    def mark_correct(self) -> MarkResult:
        self._require(SessionStatus.IN_PROGRESS, "mark a card")
        card = self._active[self.position]
        self._correct.add(card.id)
        self._wrong.discard(card.id)
        return MarkResult(card=card, correct=True, round_complete=self._advance())

    def mark_wrong(self) -> MarkResult:
        self._require(SessionStatus.IN_PROGRESS, "mark a card")
        card = self._active[self.position]
        self._wrong.add(card.id)
        # A card holds one classification per round
        self._correct.discard(card.id)
        return MarkResult(card=card, correct=False, round_complete=self._advance())

    def review_missed(self) -> None:
        """Start a review round over the last round's misses, in deck order."""
        self._require(SessionStatus.COMPLETE, "review missed cards")
        if not self._round_wrong:
            raise SessionStateError("There are no missed cards to review")

        missed = [card for card in self.deck if card.id in self._round_wrong]
        self._reset_round(missed)
        self.is_review_round = True
        self.round_number += 1
        self.status = SessionStatus.IN_PROGRESS
        logger.info("Review round %d started with %d cards", self.round_number, len(missed))

    def restart(self) -> None:
        """Return to the full deck with fresh state, waiting to be started."""
        self._reset_round(self.deck)
        self._round_wrong = frozenset()
        self.is_review_round = False
        self.round_number = 1
        self.status = SessionStatus.NOT_STARTED

    def score(self) -> Score:
        """Score the round that just completed.

        Both numbers are local to that round: a review round is scored out
        of the cards it contained, not the full deck.
        """
        self._require(SessionStatus.COMPLETE, "score a round")
        total = len(self._active)
        return Score(correct=total - len(self._round_wrong), total=total)

    def snapshot(self) -> dict[str, Any]:
        """Return a JSON-friendly view of the session."""
        card = self.current_card
        return {
            "status": self.status.value,
            "is_review_round": self.is_review_round,
            "round_number": self.round_number,
            "position": self.position,
            "total_cards": len(self._active),
            "deck_size": len(self.deck),
            "remaining": self.remaining,
            "progress": round(self.progress, 1),
            "flipped": self.flipped,
            "current_card": None
            if card is None
            else {
                "id": card.id,
                "text": card.back_text if self.flipped else card.front_text,
                "side": "back" if self.flipped else "front",
            },
            "correct_ids": sorted(self._correct),
            "wrong_ids": sorted(self._wrong),
            "missed_ids": sorted(self._round_wrong),
        }

    # --- Internals ---

    def _advance(self) -> bool:
        self.flipped = False
        if self.position >= len(self._active) - 1:
            self._round_wrong = frozenset(self._wrong)
            self.status = SessionStatus.COMPLETE
            logger.info(
                "Round %d complete: %d of %d correct",
                self.round_number,
                len(self._active) - len(self._round_wrong),
                len(self._active),
            )
            return True
        self.position += 1
        return False

    def _reset_round(self, cards: list[StudyCard]) -> None:
        self._active = list(cards)
        self.position = 0
        self.flipped = False
        self._correct = set()
        self._wrong = set()

    def _require(self, status: SessionStatus, action: str) -> None:
        if self.status is not status:
            raise SessionStateError(f"Cannot {action} while the session is {self.status.value}")
