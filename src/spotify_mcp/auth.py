"""Configuration, credentials and access-token management for the Spotify Web API."""

import base64
import json
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import requests

from .errors import ErrorKind, ToolError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "spotify-mcp"
TOKEN_URL = "https://accounts.spotify.com/api/token"
DEFAULT_REQUEST_TIMEOUT = 30  # seconds

CLIENT_ID_ENV = "SPOTIFY_CLIENT_ID"
CLIENT_SECRET_ENV = "SPOTIFY_CLIENT_SECRET"
LOG_LEVEL_ENV = "SPOTIFY_MCP_LOG_LEVEL"


def get_config_dir() -> Path:
    """Get or create the config directory."""
    config_dir = DEFAULT_CONFIG_DIR
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def load_config() -> dict:
    """Load configuration from config.json.

    The file is optional; credentials never live in it.
    """
    config_file = get_config_dir() / "config.json"
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_file}")
    with open(config_file) as f:
        return json.load(f)


def get_user_preferences() -> dict:
    """Get user preferences with defaults.

    Returns:
        dict with keys:
        - request_timeout: float seconds for each HTTP call (default 30)
        - log_level: str logging level name (default "INFO")
    """
    try:
        config = load_config()
        prefs = config.get("preferences", {})
    except (FileNotFoundError, json.JSONDecodeError):
        prefs = {}

    return {
        "request_timeout": prefs.get("request_timeout", DEFAULT_REQUEST_TIMEOUT),
        "log_level": os.environ.get(LOG_LEVEL_ENV) or prefs.get("log_level", "INFO"),
    }


def load_credentials(environ: Optional[dict] = None) -> tuple[str, str]:
    """Read the client ID and secret from the environment.

    Raises:
        ValueError: if either variable is missing or empty.
    """
    env = os.environ if environ is None else environ
    client_id = env.get(CLIENT_ID_ENV, "")
    client_secret = env.get(CLIENT_SECRET_ENV, "")
    missing = [
        name for name, value in ((CLIENT_ID_ENV, client_id), (CLIENT_SECRET_ENV, client_secret))
        if not value
    ]
    if missing:
        raise ValueError(
            f"{' and '.join(missing)} environment variable(s) required.\n"
            "Create an app at https://developer.spotify.com/dashboard to get them."
        )
    return client_id, client_secret


@dataclass(frozen=True)
class TokenInfo:
    """A bearer token and the moment it stops being valid."""

    access_token: str
    expires_at: float  # absolute, seconds since the epoch

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


class TokenCache:
    """Caches one client-credentials bearer token for the process lifetime.

    The token is renewed when it is missing or expired. No safety margin is
    subtracted from the server-declared lifetime and concurrent renewals are
    not coalesced; the last write wins.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        clock: Callable[[], float] = time.time,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.timeout = timeout
        self._clock = clock
        self._token_info: Optional[TokenInfo] = None

    @property
    def token_info(self) -> Optional[TokenInfo]:
        return self._token_info

    def _basic_auth_header(self) -> str:
        raw = f"{self.client_id}:{self.client_secret}".encode("utf-8")
        return "Basic " + base64.b64encode(raw).decode("ascii")

    def get_access_token(self) -> str:
        """Return a valid bearer token, exchanging credentials if needed.

        Raises:
            ToolError: (internal) if the exchange fails. Nothing is cached then.
        """
        if self._token_info and self._token_info.is_valid(self._clock()):
            return self._token_info.access_token

        try:
            response = requests.post(
                TOKEN_URL,
                data={"grant_type": "client_credentials"},
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Authorization": self._basic_auth_header(),
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ToolError(ErrorKind.INTERNAL, f"Failed to get Spotify access token: {e}") from e

        if not response.ok:
            detail = _token_error_detail(response)
            logger.warning("Token exchange failed: %s", detail)
            raise ToolError(ErrorKind.INTERNAL, f"Failed to get Spotify access token: {detail}")

        try:
            data = response.json()
            access_token = data["access_token"]
            expires_in = float(data["expires_in"])
        except (ValueError, KeyError, TypeError) as e:
            raise ToolError(
                ErrorKind.INTERNAL, f"Failed to get Spotify access token: malformed response ({e})"
            ) from e

        self._token_info = TokenInfo(
            access_token=access_token,
            expires_at=self._clock() + expires_in,
        )
        logger.info("Obtained Spotify access token (expires in %ds)", int(expires_in))
        return access_token


def _token_error_detail(response: requests.Response) -> str:
    """Best description of a failed token exchange."""
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        detail = data.get("error_description") or data.get("error")
        if detail:
            return str(detail)
    return f"{response.status_code} {response.reason}"
