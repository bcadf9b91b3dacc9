"""Pytest configuration for all tests."""

import pytest
import structlog

from fakes import FakeAuth, FakeClock, InMemoryRemote, make_session
from gamenight.core.config import get_settings
from gamenight.core.logging import clear_context


@pytest.fixture(autouse=True)
def _reset_settings_and_context():
    """Drop cached settings and logging context between tests."""
    get_settings.cache_clear()
    clear_context()
    yield
    get_settings.cache_clear()
    clear_context()
    structlog.reset_defaults()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def remote() -> InMemoryRemote:
    """Empty in-memory remote with nobody signed in."""
    return InMemoryRemote(FakeAuth())


@pytest.fixture
def signed_in_remote() -> InMemoryRemote:
    """Remote seeded with a verified player, tonight's event and a roster."""
    remote = InMemoryRemote(FakeAuth(make_session("user-1", "Ada")))
    remote.seed(
        "players",
        {"id": "user-1", "name": "Ada", "platforms": ["windows"], "is_verified": True},
        {"id": "user-2", "name": "Grace", "platforms": ["mac"], "is_verified": True},
    )
    remote.seed(
        "events",
        {"id": 1, "start_at": "2026-10-08T19:00:00+00:00"},
        {"id": 2, "start_at": "2026-10-15T19:00:00+00:00"},
        {"id": 3, "start_at": "2026-10-22T19:00:00+00:00"},
    )
    remote.seed(
        "activities",
        {"id": 10, "name": "Among Us", "type": "video_game", "price": 500},
        {"id": 11, "name": "Catan", "type": "board_game"},
        {"id": 12, "name": "Codenames", "type": "board_game", "price": 1999},
    )
    remote.seed(
        "votes",
        {"id": 100, "event_id": 2, "activity_id": 11, "player_id": "user-2"},
        {"id": 101, "event_id": 1, "activity_id": 10, "player_id": "user-2"},
    )
    remote.seed("rsvps", {"id": 200, "event_id": 2, "player_id": "user-2"})
    return remote
