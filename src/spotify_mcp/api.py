"""HTTP client for the Spotify Web API."""

import logging
from typing import Any, Optional, Union
from urllib.parse import urlencode

import requests

from .auth import DEFAULT_REQUEST_TIMEOUT, TokenCache
from .errors import ErrorKind, Result, ToolError

logger = logging.getLogger(__name__)

BASE_URL = "https://api.spotify.com/v1"
HTTP_METHODS = ("GET", "POST", "PUT", "DELETE")

QueryValue = Optional[Union[str, int, float, bool]]


def extract_id(identifier: str, kind: str) -> str:
    """Strip a "<scheme>:<kind>:" prefix from an identifier.

    "spotify:track:4iV5W9uYEdYUVa79Axb7Rh" with kind "track" gives
    "4iV5W9uYEdYUVa79Axb7Rh". Anything else, including a URI of a different
    kind, is returned unchanged. No character-set validation is done.
    """
    parts = identifier.split(":")
    if len(parts) >= 3 and parts[0] and parts[1] == kind:
        return parts[2]
    return identifier


def _format_query_value(value: Union[str, int, float, bool]) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build_query_string(params: dict[str, QueryValue]) -> str:
    """Build "?k=v&..." from params, skipping None values.

    Pairs keep the insertion order of params and commas stay literal, so
    "ids=a,b" reads the way Spotify documents it. Returns "" when nothing
    is left.
    """
    pairs = [
        (key, _format_query_value(value))
        for key, value in params.items()
        if value is not None
    ]
    if not pairs:
        return ""
    return "?" + urlencode(pairs, safe=",")


class SpotifyApi:
    """Authenticated requests against BASE_URL."""

    def __init__(
        self,
        token_cache: TokenCache,
        base_url: str = BASE_URL,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        self.token_cache = token_cache
        self.base_url = base_url
        self.timeout = timeout

    def make_request(self, path: str, method: str = "GET", data: Any = None) -> Result:
        """Call base_url + path with a bearer token.

        Args:
            path: API path including any query string (e.g. "/tracks/abc")
            method: GET, POST, PUT or DELETE
            data: JSON body, sent only for non-GET methods

        Returns:
            (True, parsed JSON or None for an empty body) on 2xx,
            (False, ToolError) for token, transport or API failures.
        """
        if method not in HTTP_METHODS:
            raise ValueError(f"Unsupported HTTP method: {method}")

        try:
            token = self.token_cache.get_access_token()
        except ToolError as e:
            return False, e

        kwargs: dict[str, Any] = {
            "headers": {"Authorization": f"Bearer {token}"},
            "timeout": self.timeout,
        }
        if method != "GET" and data is not None:
            kwargs["json"] = data

        url = f"{self.base_url}{path}"
        try:
            response = requests.request(method, url, **kwargs)
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, path, e)
            return False, ToolError(ErrorKind.INTERNAL, f"Spotify API error: {e}")

        if not response.ok:
            message = _api_error_message(response)
            logger.warning("%s %s returned %s: %s", method, path, response.status_code, message)
            return False, ToolError(ErrorKind.INTERNAL, f"Spotify API error: {message}")

        if not response.content:
            return True, None
        try:
            return True, response.json()
        except ValueError:
            return False, ToolError(
                ErrorKind.INTERNAL, f"Spotify API error: invalid JSON in response to {path}"
            )


def _api_error_message(response: requests.Response) -> str:
    """Pull error.message out of the API's error envelope, if there is one."""
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return f"{response.status_code} {response.reason}"
