import pytest

from portal.config import Settings
from portal.database import Database


class RecordingNotifier:
    """Stands in for the reset email sender and keeps every token it was given."""

    def __init__(self):
        self.sent = []

    async def __call__(self, email: str, token: str):
        self.sent.append((email, token))
        return True

    @property
    def last_token(self) -> str:
        return self.sent[-1][1]


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'portal_test.db'}",
        secret_key="test-secret-key",
        uploads_dir=str(tmp_path / "uploads"),
        max_photo_bytes=1024,
        max_resume_bytes=2048,
        debug=False,
    )


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
async def database(settings):
    """Fresh SQLite database for each test."""
    database = Database(settings)
    await database.init_models()
    try:
        yield database
    finally:
        await database.dispose()


@pytest.fixture
async def db(database):
    async with database.session_maker() as session:
        yield session
