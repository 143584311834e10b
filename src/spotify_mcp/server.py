"""MCP server for the Spotify Web API catalog.

Catalog tools proxy the Spotify Web API using client-credentials auth. On
macOS, the spotify_* tools drive the Spotify desktop app through AppleScript.
"""

import asyncio
import json
import logging
import sys
from typing import Any, Callable, Optional

import mcp.server.stdio
import mcp.types as types
from mcp.server import Server
from mcp.shared.exceptions import McpError
from mcp.types import INTERNAL_ERROR, METHOD_NOT_FOUND, ErrorData

from . import __version__
from .api import SpotifyApi
from .applescript import DesktopBridge
from .auth import TokenCache, get_user_preferences, load_credentials
from .errors import Result, ToolError
from .handlers import (
    AlbumsHandler,
    ArtistsHandler,
    AudiobooksHandler,
    PlaylistsHandler,
    TracksHandler,
)
from .tools import TOOL_DEFINITIONS, TOOLS_BY_NAME, ToolDefinition, validate_arguments

logger = logging.getLogger(__name__)

SERVER_NAME = "spotify-mcp"


def format_result(value: Any) -> str:
    """Render a handler's value as tool output text.

    Text passes through, an empty upstream body becomes "Success" and
    anything else is pretty-printed JSON.
    """
    if value is None:
        return "Success"
    if isinstance(value, str):
        return value
    return json.dumps(value, indent=2)


class ToolDispatcher:
    """Validates tool calls and routes them to their handlers.

    Failed results and handler exceptions are turned into McpError here and
    nowhere else.
    """

    def __init__(
        self,
        token_cache: TokenCache,
        api: Optional[SpotifyApi] = None,
        bridge: Optional[DesktopBridge] = None,
    ):
        self.token_cache = token_cache
        self.api = api or SpotifyApi(token_cache, timeout=token_cache.timeout)
        self.bridge = bridge or DesktopBridge()

        artists = ArtistsHandler(self.api)
        albums = AlbumsHandler(self.api)
        tracks = TracksHandler(self.api)
        audiobooks = AudiobooksHandler(self.api)
        playlists = PlaylistsHandler(self.api)

        self._table: dict[str, Callable[[dict], Result]] = {
            "get_access_token": self._get_access_token,
            "search": tracks.search,
            "get_track": tracks.get_track,
            "get_recommendations": tracks.get_recommendations,
            "get_available_genres": tracks.get_available_genres,
            "get_artist": artists.get_artist,
            "get_multiple_artists": artists.get_multiple_artists,
            "get_artist_albums": artists.get_artist_albums,
            "get_artist_top_tracks": artists.get_artist_top_tracks,
            "get_artist_related_artists": artists.get_artist_related_artists,
            "get_album": albums.get_album,
            "get_multiple_albums": albums.get_multiple_albums,
            "get_album_tracks": albums.get_album_tracks,
            "get_new_releases": albums.get_new_releases,
            "get_audiobook": audiobooks.get_audiobook,
            "get_multiple_audiobooks": audiobooks.get_multiple_audiobooks,
            "get_audiobook_chapters": audiobooks.get_audiobook_chapters,
            "get_playlist": playlists.get_playlist,
            "get_playlist_tracks": playlists.get_playlist_tracks,
            "get_playlist_items": playlists.get_playlist_items,
            "get_my_playlists": playlists.get_my_playlists,
            "modify_playlist": playlists.modify_playlist,
            "add_tracks_to_playlist": playlists.add_tracks_to_playlist,
            "remove_tracks_from_playlist": playlists.remove_tracks_from_playlist,
            "spotify_play_pause": self.bridge.toggle_play_pause,
            "spotify_next_track": self.bridge.next_track,
            "spotify_previous_track": self.bridge.previous_track,
            "spotify_get_current_track": self.bridge.get_current_track,
            "spotify_play_track": self.bridge.play_track,
        }

        if set(self._table) != set(TOOLS_BY_NAME):
            mismatch = set(self._table) ^ set(TOOLS_BY_NAME)
            raise RuntimeError(f"Tool registry and dispatch table disagree: {sorted(mismatch)}")

    def _get_access_token(self, args: dict) -> Result:
        try:
            return True, self.token_cache.get_access_token()
        except ToolError as e:
            return False, e

    def list_tools(self) -> list[ToolDefinition]:
        return list(TOOL_DEFINITIONS)

    def call_tool(self, name: str, arguments: dict | None) -> list[types.TextContent]:
        """Run one tool call and wrap its output as MCP text content.

        Raises:
            McpError: METHOD_NOT_FOUND, INVALID_PARAMS, INTERNAL_ERROR or
                resource-not-found, depending on what failed.
        """
        handler = self._table.get(name)
        if handler is None:
            raise McpError(ErrorData(code=METHOD_NOT_FOUND, message=f"Unknown tool: {name}"))

        args = arguments if arguments is not None else {}
        error = validate_arguments(TOOLS_BY_NAME[name].input_schema, args)
        if error:
            raise error.to_mcp_error()

        logger.debug("Calling tool %s", name)
        try:
            success, value = handler(args)
        except McpError:
            raise
        except ToolError as e:
            raise e.to_mcp_error() from e
        except Exception as e:
            logger.exception("Unexpected error in tool %s", name)
            raise McpError(ErrorData(code=INTERNAL_ERROR, message=f"Unexpected error: {e}")) from e

        if not success:
            raise value.to_mcp_error()
        return [types.TextContent(type="text", text=format_result(value))]


def create_server(dispatcher: ToolDispatcher) -> Server:
    """Wire the dispatcher into a low-level MCP server."""
    server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def handle_list_tools() -> list[types.Tool]:
        return [
            types.Tool(name=t.name, description=t.description, inputSchema=t.input_schema)
            for t in dispatcher.list_tools()
        ]

    # Registered directly: the call_tool decorator folds McpError into an
    # isError result, and tool failures must reach the host as protocol errors.
    async def handle_call_tool(req: types.CallToolRequest) -> types.ServerResult:
        content = await asyncio.to_thread(dispatcher.call_tool, req.params.name, req.params.arguments)
        return types.ServerResult(types.CallToolResult(content=content, isError=False))

    server.request_handlers[types.CallToolRequest] = handle_call_tool
    return server


def configure_logging(level: str) -> None:
    """Log to stderr; stdout carries the MCP channel."""
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


async def run_stdio(server: Server) -> None:
    async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def main():
    """Run the MCP server."""
    prefs = get_user_preferences()
    configure_logging(prefs["log_level"])

    try:
        client_id, client_secret = load_credentials()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    token_cache = TokenCache(client_id, client_secret, timeout=prefs["request_timeout"])
    server = create_server(ToolDispatcher(token_cache))

    logger.info("Spotify MCP server %s running on stdio", __version__)
    try:
        asyncio.run(run_stdio(server))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
