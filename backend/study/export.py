"""Plain-text and CSV exports for the admin tools."""

import csv
import io
from collections import defaultdict
from collections.abc import Iterable, Sequence
from typing import Any

from backend.study.ordering import card_sort_key

UNKNOWN = "Unknown"


def flashcards_as_text(
    subjects: Iterable[Any],
    subtopics: Iterable[Any],
    cards: Iterable[Any],
) -> str:
    """Render every card grouped by subject, then subtopic.

    Groups are alphabetical; cards keep their display order and are
    numbered from 1 within each subtopic.
    """
    subject_names = {s.id: s.name for s in subjects}
    subtopic_names = {s.id: s.name for s in subtopics}

    grouped: dict[str, dict[str, list[Any]]] = defaultdict(lambda: defaultdict(list))
    for card in cards:
        subject = subject_names.get(card.subject_id, UNKNOWN)
        subtopic = subtopic_names.get(card.subtopic_id, UNKNOWN)
        grouped[subject][subtopic].append(card)

    lines: list[str] = []
    for subject in sorted(grouped):
        lines.append(f"=== {subject} ===")
        lines.append("")
        for subtopic in sorted(grouped[subject]):
            lines.append(f"--- {subtopic} ---")
            lines.append("")
            for number, card in enumerate(sorted(grouped[subject][subtopic], key=card_sort_key), 1):
                lines.append(f"Card {number}:")
                lines.append(f"Front: {card.front_text}")
                lines.append(f"Back: {card.back_text}")
                lines.append("")
        lines.append("")
    return "\n".join(lines)


def users_as_csv(users: Sequence[Any]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["Email", "Signup Date", "Email Verified"])
    for user in users:
        writer.writerow(
            [
                user.email,
                user.created_at.date().isoformat(),
                "Yes" if user.email_verified else "No",
            ]
        )
    return buffer.getvalue()


def email_list(users: Sequence[Any]) -> str:
    return "\n".join(user.email for user in users)
