"""CLI interface for Flashdeck.

Usage:
    python -m flashdeck study --mode random          Drill 25 random cards
    python -m flashdeck study --mode subject -s 1    Drill one subject
    python -m flashdeck subjects                     List subjects and subtopics
    python -m flashdeck add "Subject" "Subtopic" "front" "back"
    python -m flashdeck export                       Print every card as text
    python -m flashdeck mastery user@example.com     Show mastery per subject
    python -m flashdeck missed [--clear]             Show locally tracked misses
    python -m flashdeck register user@example.com    Create an account
"""

import argparse
import asyncio
import getpass
import logging
from collections.abc import Awaitable, Callable

from sqlalchemy import select

from backend import auth, content
from backend.database import async_session, init_db
from backend.errors import FlashdeckError, StoreError
from backend.models.subject import Subject
from backend.models.subtopic import Subtopic
from backend.models.user import User
from backend.study.deck import StudyMode, load_deck
from backend.study.export import flashcards_as_text
from backend.study.mastery import record_answer, subject_mastery
from backend.study.missed_cards import MissedCardTracker
from backend.study.session import MarkResult, SessionStatus, StudySession

logger = logging.getLogger(__name__)

MarkHook = Callable[[MarkResult], Awaitable[None]]


async def ensure_db() -> None:
    """Create tables if they don't exist."""
    await init_db()


async def run_session(
    session: StudySession,
    ask: Callable[[str], str] = input,
    tracker: MissedCardTracker | None = None,
    on_mark: MarkHook | None = None,
) -> None:
    """Drive a study session from terminal input until the learner quits.

    ``ask`` is ``input`` by default; tests pass a scripted replacement.
    """
    print(f"\n  You'll be studying {len(session.deck)} flashcard{'s' if len(session.deck) != 1 else ''}.")
    print("  Commands: f=flip  y=got it right  n=got it wrong  q=quit\n")
    session.start()

    while True:
        if session.status is SessionStatus.IN_PROGRESS:
            card = session.active_cards[session.position]
            label = "Back" if session.flipped else "Front"
            text = card.back_text if session.flipped else card.front_text
            round_label = " (review)" if session.is_review_round else ""
            print(f"  [{session.position + 1}/{len(session.active_cards)}]{round_label} {label}: {text}")

            choice = ask("  > ").strip().lower()
            if choice == "q":
                print("\n  Session ended early.")
                return
            if choice == "f":
                session.flip()
                continue
            if choice not in ("y", "n"):
                print("  Type f, y, n or q.")
                continue

            result = session.mark_correct() if choice == "y" else session.mark_wrong()
            if tracker is not None:
                if result.correct:
                    tracker.remove(result.card.id)
                else:
                    tracker.add(result.card.id)
            if on_mark is not None:
                await on_mark(result)
            continue

        score = session.score()
        print(f"\n  Session complete! You got {score.correct} out of {score.total} cards correct!")
        if score.perfect:
            print("  Perfect score!")
            prompt = "  a=study again  q=quit > "
        else:
            print("  Keep practicing!")
            prompt = f"  r=review missed cards ({len(session.round_wrong_ids)})  a=study again  q=quit > "

        choice = ask(prompt).strip().lower()
        if choice == "r" and not score.perfect:
            session.review_missed()
        elif choice == "a":
            session.restart()
            session.start()
        elif choice == "q":
            return
        else:
            print("  Unknown choice.")


async def _find_user(email: str) -> User | None:
    async with async_session() as db:
        stmt = select(User).where(User.email == auth.normalize_email(email))
        return (await db.execute(stmt)).scalar_one_or_none()


def _mastery_hook(user_id: int) -> MarkHook:
    async def on_mark(result: MarkResult) -> None:
        async with async_session() as db:
            try:
                await record_answer(db, user_id, result.card.id, result.correct)
            except StoreError as exc:
                logger.warning("Could not record mastery: %s", exc.message)

    return on_mark


async def cmd_study(args: argparse.Namespace) -> None:
    """Run an interactive study session."""
    await ensure_db()
    mode = StudyMode(args.mode)

    async with async_session() as db:
        try:
            deck = await load_deck(db, mode, args.subject, args.subtopic)
        except FlashdeckError as exc:
            print(f"\n  {exc.message}")
            return

    on_mark = None
    if args.email:
        user = await _find_user(args.email)
        if user is None:
            print(f"\n  No account for {args.email}; mastery will not be recorded.")
        else:
            on_mark = _mastery_hook(user.id)

    await run_session(StudySession(deck=deck), tracker=MissedCardTracker(), on_mark=on_mark)


async def cmd_subjects(args: argparse.Namespace) -> None:
    """List subjects with their subtopics and card counts."""
    await ensure_db()
    async with async_session() as db:
        subjects = await content.list_subjects(db)
        subtopics = await content.list_subtopics(db)
        cards = await content.list_flashcards(db)

    if not subjects:
        print("\n  No subjects yet. Add one with: python -m flashdeck add ...")
        return

    counts: dict[int, int] = {}
    for card in cards:
        counts[card.subtopic_id] = counts.get(card.subtopic_id, 0) + 1

    print()
    for subject in subjects:
        print(f"  [{subject.id}] {subject.name}")
        for subtopic in subtopics:
            if subtopic.subject_id == subject.id:
                print(f"      [{subtopic.id}] {subtopic.name} ({counts.get(subtopic.id, 0)} cards)")


async def get_or_create_subtopic(subject_name: str, subtopic_name: str) -> Subtopic:
    """Find a subject and subtopic by name, creating whichever is missing."""
    async with async_session() as db:
        subject = (
            await db.execute(select(Subject).where(Subject.name == subject_name.strip()))
        ).scalar_one_or_none()
        if subject is None:
            subject = await content.create_subject(db, subject_name)

        subtopic = (
            await db.execute(
                select(Subtopic).where(
                    Subtopic.subject_id == subject.id,
                    Subtopic.name == subtopic_name.strip(),
                )
            )
        ).scalar_one_or_none()
        if subtopic is None:
            subtopic = await content.create_subtopic(db, subject.id, subtopic_name)
        return subtopic


async def cmd_add(args: argparse.Namespace) -> None:
    """Add a flashcard, creating its subject and subtopic if needed."""
    await ensure_db()
    try:
        subtopic = await get_or_create_subtopic(args.subject, args.subtopic)
        async with async_session() as db:
            card = await content.create_flashcard(
                db, subtopic.subject_id, subtopic.id, args.front, args.back
            )
    except FlashdeckError as exc:
        print(f"\n  {exc.message}")
        return
    print(f"  Added card {card.id} to {args.subject} / {args.subtopic}")


async def cmd_export(args: argparse.Namespace) -> None:
    await ensure_db()
    async with async_session() as db:
        text = flashcards_as_text(
            await content.list_subjects(db),
            await content.list_subtopics(db),
            await content.list_flashcards(db),
        )
    print(text)


async def cmd_mastery(args: argparse.Namespace) -> None:
    """Show mastered cards per subject for one user."""
    await ensure_db()
    user = await _find_user(args.email)
    if user is None:
        print(f"\n  No account for {args.email}")
        return

    async with async_session() as db:
        rows = await subject_mastery(db, user.id)

    print(f"\n  Mastery for {user.email}\n")
    for row in rows:
        print(
            f"  {row.subject_name:<30} {row.mastered_cards:>4}/{row.total_cards:<4}"
            f" {row.percentage:5.1f}%  ({row.band})"
        )


async def cmd_missed(args: argparse.Namespace) -> None:
    """Show or clear the locally tracked missed cards."""
    tracker = MissedCardTracker()
    if args.clear:
        tracker.clear()
        print("  Cleared missed cards.")
        return

    if args.subject is not None:
        await ensure_db()
        async with async_session() as db:
            cards = await content.list_flashcards(db, subject_id=args.subject)
        missed = tracker.for_subject(args.subject, cards)
    else:
        missed = sorted(tracker.get())

    if not missed:
        print("  No missed cards.")
        return
    print(f"  {len(missed)} missed card(s): {', '.join(str(card_id) for card_id in missed)}")


async def cmd_register(args: argparse.Namespace) -> None:
    """Create an account, prompting for the password."""
    await ensure_db()
    password = args.password or getpass.getpass("  Password: ")
    confirm = args.password or getpass.getpass("  Confirm password: ")
    async with async_session() as db:
        try:
            user = await auth.register(db, args.email, password, confirm)
        except FlashdeckError as exc:
            print(f"\n  {exc.message}")
            return
    admin = " (administrator)" if auth.is_admin_email(user.email) else ""
    print(f"  Registered {user.email}{admin}")


def main() -> None:
    """Entry point for the Flashdeck CLI application."""
    parser = argparse.ArgumentParser(
        prog="flashdeck",
        description="Exam flashcard study tool",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # study
    study_parser = subparsers.add_parser("study", help="Start a study session")
    study_parser.add_argument(
        "-m", "--mode", choices=[m.value for m in StudyMode], default=StudyMode.RANDOM.value
    )
    study_parser.add_argument("-s", "--subject", type=int, help="Subject id (subject mode)")
    study_parser.add_argument("-t", "--subtopic", type=int, help="Subtopic id (subtopic mode)")
    study_parser.add_argument("-e", "--email", help="Record mastery for this account")

    # subjects
    subparsers.add_parser("subjects", help="List subjects and subtopics")

    # add
    add_parser = subparsers.add_parser("add", help="Add a flashcard")
    add_parser.add_argument("subject", help="Subject name")
    add_parser.add_argument("subtopic", help="Subtopic name")
    add_parser.add_argument("front", help="Front text")
    add_parser.add_argument("back", help="Back text")

    # export
    subparsers.add_parser("export", help="Print every flashcard as text")

    # mastery
    mastery_parser = subparsers.add_parser("mastery", help="Show mastery per subject")
    mastery_parser.add_argument("email", help="Account e-mail")

    # missed
    missed_parser = subparsers.add_parser("missed", help="Show locally tracked missed cards")
    missed_parser.add_argument("-s", "--subject", type=int, help="Only cards of this subject")
    missed_parser.add_argument("--clear", action="store_true", help="Forget all missed cards")

    # register
    register_parser = subparsers.add_parser("register", help="Create an account")
    register_parser.add_argument("email")
    register_parser.add_argument("-p", "--password", help="Password (prompted if omitted)")

    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    if not args.command:
        parser.print_help()
        return

    cmd_map = {
        "study": cmd_study,
        "subjects": cmd_subjects,
        "add": cmd_add,
        "export": cmd_export,
        "mastery": cmd_mastery,
        "missed": cmd_missed,
        "register": cmd_register,
    }

    asyncio.run(cmd_map[args.command](args))


if __name__ == "__main__":
    main()
