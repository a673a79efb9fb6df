"""Point the app at a throwaway database before anything imports it."""

import os
import tempfile
from pathlib import Path

_tmp = Path(tempfile.mkdtemp(prefix="flashdeck-tests-"))
os.environ["FLASHDECK_DATABASE_URL"] = f"sqlite+aiosqlite:///{_tmp / 'test.db'}"
os.environ["FLASHDECK_MISSED_CARDS_PATH"] = str(_tmp / "missed_cards.json")
os.environ["FLASHDECK_ADMIN_EMAIL"] = "admin@example.com"
