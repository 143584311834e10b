"""Shared test fixtures."""

import pytest
import responses

from spotify_mcp import auth
from spotify_mcp.api import SpotifyApi
from spotify_mcp.auth import TOKEN_URL, TokenCache



class FakeClock:
    """Stand-in for time.time that only moves when told to."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory."""
    config_dir = tmp_path / ".config" / "spotify-mcp"
    config_dir.mkdir(parents=True)
    return config_dir


@pytest.fixture
def mock_config_dir(temp_config_dir, monkeypatch):
    """Patch get_config_dir to use temp directory."""
    monkeypatch.setattr(auth, "DEFAULT_CONFIG_DIR", temp_config_dir)
    monkeypatch.delenv(auth.LOG_LEVEL_ENV, raising=False)
    return temp_config_dir


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def token_cache(clock):
    """Token cache with test credentials and a controllable clock."""
    return TokenCache("test_client_id", "test_client_secret", clock=clock)


@pytest.fixture
def api(token_cache):
    return SpotifyApi(token_cache)


@pytest.fixture
def mocked_responses():
    """Activate responses with the token endpoint already answering."""
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        rsps.add(
            responses.POST,
            TOKEN_URL,
            json={"access_token": "test_access_token", "token_type": "Bearer", "expires_in": 3600},
            status=200,
        )
        yield rsps
