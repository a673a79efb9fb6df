"""Local missed-card list kept as a JSON array of card ids.

This is the lightweight tracker used by the command-line client between
runs. Study sessions do not read it.
"""

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from backend.config import settings

logger = logging.getLogger(__name__)


class MissedCardTracker:
    """Reads and writes the missed-card file at ``path``."""

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path or settings.missed_cards_path)

    def get(self) -> set[int]:
        """Return the stored ids; unreadable storage counts as empty."""
        if not self.path.exists():
            return set()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return {int(card_id) for card_id in data}
        except (OSError, ValueError, TypeError):
            logger.exception("Error reading missed cards from %s", self.path)
            return set()

    def _write(self, card_ids: set[int]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(sorted(card_ids)), encoding="utf-8")
        except OSError:
            logger.exception("Error saving missed cards to %s", self.path)

    def add(self, card_id: int) -> None:
        card_ids = self.get()
        card_ids.add(card_id)
        self._write(card_ids)

    def remove(self, card_id: int) -> None:
        card_ids = self.get()
        card_ids.discard(card_id)
        self._write(card_ids)

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError:
            logger.exception("Error clearing missed cards at %s", self.path)

    def for_subject(self, subject_id: int, cards: Iterable[Any]) -> list[int]:
        """Ids of missed cards among ``cards`` that belong to ``subject_id``."""
        missed = self.get()
        return [card.id for card in cards if card.subject_id == subject_id and card.id in missed]
