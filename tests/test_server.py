"""Tests for server module: dispatch, error translation and server wiring."""

import asyncio
import json
from unittest.mock import MagicMock, patch

import mcp.types as types
import pytest
import responses
from mcp.shared.exceptions import McpError
from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, METHOD_NOT_FOUND

from spotify_mcp import server
from spotify_mcp.api import BASE_URL as API
from spotify_mcp.applescript import DesktopBridge
from spotify_mcp.auth import TOKEN_URL
from spotify_mcp.errors import RESOURCE_NOT_FOUND, ErrorKind, ToolError
from spotify_mcp.server import ToolDispatcher, create_server, format_result
from spotify_mcp.tools import TOOL_DEFINITIONS


class FakeRunner:
    def __init__(self, success=True, output=""):
        self.success = success
        self.output = output
        self.scripts = []

    def __call__(self, script):
        self.scripts.append(script)
        return self.success, self.output


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def dispatcher(token_cache, runner):
    return ToolDispatcher(token_cache, bridge=DesktopBridge(runner))


def _api_calls(rsps):
    return [c for c in rsps.calls if c.request.url != TOKEN_URL]


def _call_error(dispatcher, name, arguments):
    with pytest.raises(McpError) as exc_info:
        dispatcher.call_tool(name, arguments)
    return exc_info.value.error


class TestFormatResult:
    """Tests for format_result function."""

    def test_none_is_success(self):
        """Should render an empty upstream body as Success."""
        assert format_result(None) == "Success"

    def test_text_passes_through(self):
        """Should return text results unchanged."""
        assert format_result("Spotify is not playing") == "Spotify is not playing"

    def test_json_is_pretty_printed(self):
        """Should pretty-print structured results with two-space indent."""
        assert format_result({"id": "abc"}) == '{\n  "id": "abc"\n}'


class TestDispatcherSetup:
    """Tests for ToolDispatcher construction."""

    def test_table_matches_registry(self, dispatcher):
        """Should route every registered tool name."""
        assert set(dispatcher._table) == {t.name for t in TOOL_DEFINITIONS}

    def test_list_tools_is_registry_in_order(self, dispatcher):
        """Should list the registry verbatim and in order."""
        assert dispatcher.list_tools() == TOOL_DEFINITIONS

    def test_registry_mismatch_is_a_defect(self, token_cache):
        """Should refuse to start when registry and table disagree."""
        with patch.object(server, "TOOLS_BY_NAME", {**server.TOOLS_BY_NAME, "not_in_table": None}):
            with pytest.raises(RuntimeError):
                ToolDispatcher(token_cache)


class TestCallTool:
    """Tests for ToolDispatcher.call_tool."""

    def test_unknown_tool(self, dispatcher):
        """Should raise METHOD_NOT_FOUND for an unregistered name."""
        error = _call_error(dispatcher, "no_such_tool", {})
        assert error.code == METHOD_NOT_FOUND
        assert error.message == "Unknown tool: no_such_tool"

    def test_missing_required_field(self, dispatcher, mocked_responses):
        """Should raise INVALID_PARAMS naming the missing field, with no HTTP call."""
        error = _call_error(dispatcher, "get_album", {})

        assert error.code == INVALID_PARAMS
        assert "id" in error.message
        assert _api_calls(mocked_responses) == []

    def test_wrong_type_rejected(self, dispatcher):
        """Should reject a string where an integer is declared."""
        error = _call_error(dispatcher, "get_album_tracks", {"id": "abc", "limit": "10"})
        assert error.code == INVALID_PARAMS

    def test_none_arguments(self, dispatcher, mocked_responses):
        """Should treat missing arguments as an empty object."""
        mocked_responses.add(responses.GET, f"{API}/recommendations/available-genre-seeds", json={"genres": ["pop"]})

        content = dispatcher.call_tool("get_available_genres", None)

        assert json.loads(content[0].text) == {"genres": ["pop"]}

    def test_returns_pretty_json_text(self, dispatcher, mocked_responses):
        """Should wrap the result in a single text content item."""
        mocked_responses.add(responses.GET, f"{API}/tracks/abc", json={"id": "abc", "name": "Song"})

        content = dispatcher.call_tool("get_track", {"id": "spotify:track:abc"})

        assert len(content) == 1
        assert content[0].type == "text"
        assert content[0].text == json.dumps({"id": "abc", "name": "Song"}, indent=2)

    @pytest.mark.parametrize("limit", [0, 51])
    def test_album_tracks_limit_out_of_range(self, dispatcher, mocked_responses, limit):
        """Should reject limits 0 and 51 before any HTTP call."""
        error = _call_error(dispatcher, "get_album_tracks", {"id": "abc", "limit": limit})

        assert error.code == INVALID_PARAMS
        assert error.message == "Limit must be between 1 and 50"
        assert _api_calls(mocked_responses) == []

    def test_album_tracks_limit_at_bound(self, dispatcher, mocked_responses):
        """Should accept limit 50 with offset 0."""
        mocked_responses.add(responses.GET, f"{API}/albums/abc/tracks", json={"items": []})

        dispatcher.call_tool("get_album_tracks", {"id": "abc", "limit": 50, "offset": 0})

        assert _api_calls(mocked_responses)[0].request.url == f"{API}/albums/abc/tracks?limit=50&offset=0"

    @pytest.mark.parametrize("name, arguments, url", [
        ("get_album_tracks", {"id": "abc", "limit": None}, f"{API}/albums/abc/tracks?limit=20&offset=0"),
        ("get_album_tracks", {"id": "abc", "offset": None}, f"{API}/albums/abc/tracks?limit=20&offset=0"),
        ("get_new_releases", {"offset": None}, f"{API}/browse/new-releases?limit=20&offset=0"),
        ("get_new_releases", {"limit": None, "offset": None}, f"{API}/browse/new-releases?limit=20&offset=0"),
    ])
    def test_null_paging_uses_defaults(self, dispatcher, mocked_responses, name, arguments, url):
        """Should treat a JSON null limit or offset as absent."""
        mocked_responses.add(responses.GET, url.split("?")[0], json={})

        dispatcher.call_tool(name, arguments)

        assert _api_calls(mocked_responses)[0].request.url == url

    def test_too_many_artist_ids(self, dispatcher, mocked_responses):
        """Should reject 51 artist IDs before any HTTP call."""
        ids = [f"id{i}" for i in range(51)]

        error = _call_error(dispatcher, "get_multiple_artists", {"ids": ids})

        assert error.code == INVALID_PARAMS
        assert _api_calls(mocked_responses) == []

    def test_fifty_artist_ids(self, dispatcher, mocked_responses):
        """Should accept 50 artist IDs."""
        mocked_responses.add(responses.GET, f"{API}/artists", json={"artists": []})

        dispatcher.call_tool("get_multiple_artists", {"ids": [f"id{i}" for i in range(50)]})

        assert len(_api_calls(mocked_responses)) == 1

    def test_recommendations_need_a_seed(self, dispatcher, mocked_responses):
        """Should reject recommendations with no seeds."""
        error = _call_error(dispatcher, "get_recommendations", {})

        assert error.code == INVALID_PARAMS
        assert error.message == "At least one seed (tracks, artists, or genres) must be provided"
        assert _api_calls(mocked_responses) == []

    def test_recommendations_with_genre(self, dispatcher, mocked_responses):
        """Should accept a single genre seed."""
        mocked_responses.add(responses.GET, f"{API}/recommendations", json={"tracks": []})

        dispatcher.call_tool("get_recommendations", {"seed_genres": ["pop"]})

        assert len(_api_calls(mocked_responses)) == 1

    def test_upstream_failure_is_internal_error(self, dispatcher, mocked_responses):
        """Should surface API errors as INTERNAL_ERROR with the API message."""
        mocked_responses.add(
            responses.GET, f"{API}/tracks/bad", json={"error": {"status": 400, "message": "invalid id"}}, status=400
        )

        error = _call_error(dispatcher, "get_track", {"id": "bad"})

        assert error.code == INTERNAL_ERROR
        assert error.message == "Spotify API error: invalid id"

    def test_empty_upstream_body_is_success(self, dispatcher, mocked_responses):
        """Should report Success for an empty 2xx body."""
        mocked_responses.add(responses.PUT, f"{API}/playlists/p1", body="")

        content = dispatcher.call_tool("modify_playlist", {"id": "p1", "name": "New"})

        assert content[0].text == "Success"

    def test_get_access_token(self, dispatcher, mocked_responses):
        """Should return the cached bearer token as text."""
        content = dispatcher.call_tool("get_access_token", {})
        assert content[0].text == "test_access_token"

    def test_get_access_token_failure(self, dispatcher):
        """Should surface a failed exchange as INTERNAL_ERROR."""
        with responses.RequestsMock() as rsps:
            rsps.add(responses.POST, TOKEN_URL, json={"error": "invalid_client"}, status=401)
            error = _call_error(dispatcher, "get_access_token", {})

        assert error.code == INTERNAL_ERROR
        assert error.message.startswith("Failed to get Spotify access token")

    def test_raised_tool_error_is_translated(self, dispatcher):
        """Should translate a raised ToolError using its kind."""
        def handler(args):
            raise ToolError(ErrorKind.NOT_FOUND, "gone")

        dispatcher._table["get_track"] = handler
        error = _call_error(dispatcher, "get_track", {"id": "abc"})

        assert error.code == RESOURCE_NOT_FOUND
        assert error.message == "gone"

    def test_unexpected_exception_is_internal(self, dispatcher):
        """Should wrap any other exception as INTERNAL_ERROR."""
        def handler(args):
            raise KeyError("boom")

        dispatcher._table["get_track"] = handler
        error = _call_error(dispatcher, "get_track", {"id": "abc"})

        assert error.code == INTERNAL_ERROR
        assert error.message.startswith("Unexpected error:")


class TestDesktopTools:
    """Tests for the spotify_* desktop tools through the dispatcher."""

    def test_current_track_idle(self, token_cache):
        """Should return the idle sentinel as normal text."""
        dispatcher = ToolDispatcher(token_cache, bridge=DesktopBridge(FakeRunner(output="Spotify is not playing")))

        content = dispatcher.call_tool("spotify_get_current_track", {})

        assert content[0].text == "Spotify is not playing"

    def test_play_track_invalid_uri(self, dispatcher, runner):
        """Should reject a malformed URI without running a script."""
        error = _call_error(dispatcher, "spotify_play_track", {"uri": "not-a-uri"})

        assert error.code == INVALID_PARAMS
        assert runner.scripts == []

    def test_play_track_runs_script_once(self, dispatcher, runner):
        """Should run exactly one script for a valid track URI."""
        content = dispatcher.call_tool("spotify_play_track", {"uri": "spotify:track:abc"})

        assert content[0].text == "Success"
        assert len(runner.scripts) == 1

    def test_app_not_running(self, token_cache):
        """Should map a not-running app to resource-not-found."""
        bridge = DesktopBridge(FakeRunner(False, "execution error: Application isn't running. (-600)"))
        dispatcher = ToolDispatcher(token_cache, bridge=bridge)

        error = _call_error(dispatcher, "spotify_next_track", {})

        assert error.code == RESOURCE_NOT_FOUND


class TestCreateServer:
    """Tests for create_server function."""

    def test_lists_registry(self, dispatcher):
        """Should expose every registry entry through tools/list."""
        srv = create_server(dispatcher)
        handler = srv.request_handlers[types.ListToolsRequest]

        result = asyncio.run(handler(types.ListToolsRequest(method="tools/list")))

        tools = result.root.tools
        assert [t.name for t in tools] == [t.name for t in TOOL_DEFINITIONS]
        assert tools[1].inputSchema == TOOL_DEFINITIONS[1].input_schema

    def test_call_tool_returns_text(self, dispatcher, mocked_responses):
        """Should answer tools/call with the dispatcher's text content."""
        mocked_responses.add(responses.GET, f"{API}/tracks/abc", json={"id": "abc"})
        srv = create_server(dispatcher)
        handler = srv.request_handlers[types.CallToolRequest]
        request = types.CallToolRequest(
            method="tools/call",
            params=types.CallToolRequestParams(name="get_track", arguments={"id": "abc"}),
        )

        result = asyncio.run(handler(request))

        assert result.root.isError is False
        assert json.loads(result.root.content[0].text) == {"id": "abc"}

    def test_call_tool_errors_propagate(self, dispatcher):
        """Should let McpError reach the session with its code."""
        srv = create_server(dispatcher)
        handler = srv.request_handlers[types.CallToolRequest]
        request = types.CallToolRequest(
            method="tools/call",
            params=types.CallToolRequestParams(name="missing", arguments={}),
        )

        with pytest.raises(McpError) as exc_info:
            asyncio.run(handler(request))

        assert exc_info.value.error.code == METHOD_NOT_FOUND


class TestMain:
    """Tests for main function."""

    def test_exits_without_credentials(self, mock_config_dir, monkeypatch, capsys):
        """Should print the missing variables and exit with status 1."""
        monkeypatch.delenv("SPOTIFY_CLIENT_ID", raising=False)
        monkeypatch.delenv("SPOTIFY_CLIENT_SECRET", raising=False)

        with pytest.raises(SystemExit) as exc_info:
            server.main()

        assert exc_info.value.code == 1
        assert "SPOTIFY_CLIENT_ID" in capsys.readouterr().err

    def test_runs_stdio_with_credentials(self, mock_config_dir, monkeypatch):
        """Should start the stdio transport when credentials are set."""
        monkeypatch.setenv("SPOTIFY_CLIENT_ID", "id")
        monkeypatch.setenv("SPOTIFY_CLIENT_SECRET", "secret")

        with patch.object(server, "run_stdio", MagicMock(return_value=None)) as run_stdio, \
                patch.object(server.asyncio, "run") as run:
            server.main()

        run_stdio.assert_called_once()
        run.assert_called_once()

    def test_interrupt_exits_cleanly(self, mock_config_dir, monkeypatch):
        """Should return normally on Ctrl-C."""
        monkeypatch.setenv("SPOTIFY_CLIENT_ID", "id")
        monkeypatch.setenv("SPOTIFY_CLIENT_SECRET", "secret")

        with patch.object(server, "run_stdio", MagicMock(return_value=None)), \
                patch.object(server.asyncio, "run", side_effect=KeyboardInterrupt):
            server.main()
