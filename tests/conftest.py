"""Shared pytest fixtures for the storylab test suite."""

import pytest
import pytest_asyncio


# ---------------------------------------------------------------------------
# Gateway fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite database path."""
    return tmp_path / "test_storylab.db"


@pytest.fixture
def gateway(tmp_db_path):
    """Return an initialized SQLiteGateway backed by a temp file."""
    from gateway.sqlite import SQLiteGateway
    return SQLiteGateway(tmp_db_path)


# ---------------------------------------------------------------------------
# Settings fixture
# ---------------------------------------------------------------------------

@pytest.fixture
def settings(tmp_path):
    """Return a Settings instance with all paths pointing to tmp_path."""
    from config.settings import Settings
    return Settings(
        _env_file=None,
        sqlite_db_path=tmp_path / "storylab.db",
        log_dir=tmp_path / "logs",
        autosave_delay_seconds=0.05,
    )


# ---------------------------------------------------------------------------
# Session and store fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def notifier():
    from store.notifier import RecordingNotifier
    return RecordingNotifier()


@pytest.fixture
def session(gateway):
    from session.provider import SessionProvider
    return SessionProvider(gateway)


@pytest.fixture
def store(gateway, session, notifier):
    """Return an AppDataStore bound to ``session``; nobody is signed in yet."""
    from store.app_store import AppDataStore
    return AppDataStore(gateway, session, notifier)


@pytest_asyncio.fixture
async def signed_in(store, session):
    """Sign up a fresh user and return the (loaded, empty) store."""
    await session.sign_up("Ada", "ada@example.com", "correct horse")
    return store


# ---------------------------------------------------------------------------
# Sample data fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def sample_story(signed_in):
    """Create and return a story titled "Test" with no chapters."""
    from models.story import Story
    result = await signed_in.add_story(Story(title="Test", genre="Mystery"))
    assert result.ok
    return signed_in.get_story(result.value)


@pytest_asyncio.fixture
async def sample_chapter(signed_in, sample_story):
    """Create and return chapter 1 of the sample story."""
    from models.story import Chapter
    result = await signed_in.add_chapter(
        sample_story.id,
        Chapter(number=1, title="Chapter 1", content="<p>Hello world</p>", word_count=2),
    )
    assert result.ok
    return signed_in.get_chapter(sample_story.id, result.value)
