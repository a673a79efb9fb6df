"""Tests for the local missed-card tracker."""

from pathlib import Path
from types import SimpleNamespace

from backend.study.missed_cards import MissedCardTracker


def test_add_remove_clear(tmp_path: Path) -> None:
    tracker = MissedCardTracker(tmp_path / "missed.json")
    assert tracker.get() == set()

    tracker.add(3)
    tracker.add(1)
    tracker.add(3)
    assert tracker.get() == {1, 3}
    assert (tmp_path / "missed.json").read_text() == "[1, 3]"

    tracker.remove(3)
    tracker.remove(42)
    assert tracker.get() == {1}

    tracker.clear()
    assert tracker.get() == set()
    tracker.clear()


def test_corrupt_file_reads_as_empty(tmp_path: Path) -> None:
    path = tmp_path / "missed.json"
    path.write_text("{not json")
    tracker = MissedCardTracker(path)
    assert tracker.get() == set()

    tracker.add(5)
    assert tracker.get() == {5}


def test_for_subject(tmp_path: Path) -> None:
    tracker = MissedCardTracker(tmp_path / "missed.json")
    for card_id in (1, 2, 4):
        tracker.add(card_id)
    cards = [
        SimpleNamespace(id=1, subject_id=10),
        SimpleNamespace(id=2, subject_id=20),
        SimpleNamespace(id=3, subject_id=10),
        SimpleNamespace(id=4, subject_id=10),
    ]
    assert tracker.for_subject(10, cards) == [1, 4]


def test_default_path_comes_from_settings() -> None:
    assert MissedCardTracker().path.name == "missed_cards.json"
