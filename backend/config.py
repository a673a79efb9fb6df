from datetime import UTC, datetime
from pathlib import Path

from pydantic_settings import BaseSettings

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime.

    Replaces the deprecated ``datetime.utcnow()`` while keeping datetimes
    naive so they stay compatible with SQLite (which doesn't store tz info).
    """
    return datetime.now(UTC).replace(tzinfo=None)


class Settings(BaseSettings):
    app_name: str = "Flashdeck"
    database_url: str = f"sqlite+aiosqlite:///{DATA_DIR / 'flashdeck.db'}"
    admin_email: str = ""
    random_deck_size: int = 25
    min_password_length: int = 6
    auth_token_ttl_seconds: int = 604800  # 7 days
    reset_token_ttl_seconds: int = 3600
    session_ttl_seconds: int = 7200  # 2 hours
    mastery_threshold: int = 3
    missed_cards_path: str = str(DATA_DIR / "missed_cards.json")
    debug: bool = False

    model_config = {"env_prefix": "FLASHDECK_", "env_file": ".env"}


settings = Settings()
