"""Static tool registry and the argument validator.

The schemas here are the contract listed to the host verbatim. The validator
is kept apart from them so it can be driven directly with any schema.
"""

from dataclasses import dataclass
from typing import Any, Optional

from .errors import ErrorKind, ToolError


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    input_schema: dict


def _id_property(kind: str) -> dict:
    return {"type": "string", "description": f"The Spotify ID or URI for the {kind}"}


def _ids_property(kind: str, max_items: int) -> dict:
    return {
        "type": "array",
        "items": {"type": "string"},
        "description": f"Array of Spotify {kind} IDs or URIs (max {max_items})",
        "maxItems": max_items,
    }


def _limit_property(what: str, maximum: int = 50) -> dict:
    return {
        "type": "integer",
        "description": f"Maximum number of {what} to return (1-{maximum})",
        "minimum": 1,
        "maximum": maximum,
        "default": 20,
    }


def _offset_property(what: str) -> dict:
    return {
        "type": "integer",
        "description": f"The index of the first {what} to return",
        "minimum": 0,
        "default": 0,
    }


MARKET_PROPERTY = {
    "type": "string",
    "description": "Optional. An ISO 3166-1 alpha-2 country code",
}

FIELDS_PROPERTY = {
    "type": "string",
    "description": "Optional. Comma-separated list of fields to return",
}


def _object(properties: Optional[dict] = None, required: Optional[list] = None) -> dict:
    return {"type": "object", "properties": properties or {}, "required": required or []}


TOOL_DEFINITIONS: list[ToolDefinition] = [
    ToolDefinition(
        "get_access_token",
        "Get a valid Spotify access token for API requests",
        _object(),
    ),
    # ---- tracks ----
    ToolDefinition(
        "search",
        "Search for tracks, albums, artists, or playlists",
        _object(
            {
                "query": {"type": "string", "description": "Search query"},
                "type": {
                    "type": "string",
                    "description": "Type of item to search for",
                    "enum": ["track", "album", "artist", "playlist"],
                },
                "limit": _limit_property("results"),
            },
            ["query", "type"],
        ),
    ),
    ToolDefinition(
        "get_track",
        "Get Spotify catalog information for a track",
        _object({"id": _id_property("track")}, ["id"]),
    ),
    ToolDefinition(
        "get_recommendations",
        "Get track recommendations based on seed tracks, artists, or genres",
        _object(
            {
                "seed_tracks": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Array of Spotify track IDs or URIs",
                },
                "seed_artists": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Array of Spotify artist IDs or URIs",
                },
                "seed_genres": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Array of genre names",
                },
                "limit": _limit_property("recommendations", 100),
            },
        ),
    ),
    ToolDefinition(
        "get_available_genres",
        "Get a list of available genre seeds for recommendations",
        _object(),
    ),
    # ---- artists ----
    ToolDefinition(
        "get_artist",
        "Get Spotify catalog information for an artist",
        _object({"id": _id_property("artist")}, ["id"]),
    ),
    ToolDefinition(
        "get_multiple_artists",
        "Get Spotify catalog information for multiple artists",
        _object({"ids": _ids_property("artist", 50)}, ["ids"]),
    ),
    ToolDefinition(
        "get_artist_albums",
        "Get Spotify catalog information about an artist's albums",
        _object(
            {
                "id": _id_property("artist"),
                "include_groups": {
                    "type": "array",
                    "items": {
                        "type": "string",
                        "enum": ["album", "single", "appears_on", "compilation"],
                    },
                    "description": "Optional. Filter by album types",
                },
                "limit": _limit_property("albums"),
                "offset": _offset_property("album"),
            },
            ["id"],
        ),
    ),
    ToolDefinition(
        "get_artist_top_tracks",
        "Get Spotify catalog information about an artist's top tracks",
        _object(
            {
                "id": _id_property("artist"),
                "market": {
                    "type": "string",
                    "description": "An ISO 3166-1 alpha-2 country code (required by Spotify)",
                },
            },
            ["id", "market"],
        ),
    ),
    ToolDefinition(
        "get_artist_related_artists",
        "Get Spotify catalog information about artists similar to a given artist",
        _object({"id": _id_property("artist")}, ["id"]),
    ),
    # ---- albums ----
    ToolDefinition(
        "get_album",
        "Get Spotify catalog information for an album",
        _object({"id": _id_property("album")}, ["id"]),
    ),
    ToolDefinition(
        "get_multiple_albums",
        "Get Spotify catalog information for multiple albums",
        _object({"ids": _ids_property("album", 20)}, ["ids"]),
    ),
    ToolDefinition(
        "get_album_tracks",
        "Get Spotify catalog information for an album's tracks",
        _object(
            {
                "id": _id_property("album"),
                "limit": _limit_property("tracks"),
                "offset": _offset_property("track"),
            },
            ["id"],
        ),
    ),
    ToolDefinition(
        "get_new_releases",
        "Get a list of new album releases featured in Spotify",
        _object(
            {
                "country": {
                    "type": "string",
                    "description": "Optional. A country code (ISO 3166-1 alpha-2)",
                },
                "limit": _limit_property("releases"),
                "offset": _offset_property("release"),
            },
        ),
    ),
    # ---- audiobooks ----
    ToolDefinition(
        "get_audiobook",
        "Get Spotify catalog information for an audiobook",
        _object({"id": _id_property("audiobook"), "market": MARKET_PROPERTY}, ["id"]),
    ),
    ToolDefinition(
        "get_multiple_audiobooks",
        "Get Spotify catalog information for multiple audiobooks",
        _object({"ids": _ids_property("audiobook", 50), "market": MARKET_PROPERTY}, ["ids"]),
    ),
    ToolDefinition(
        "get_audiobook_chapters",
        "Get Spotify catalog information about an audiobook's chapters",
        _object(
            {
                "id": _id_property("audiobook"),
                "market": MARKET_PROPERTY,
                "limit": _limit_property("chapters"),
                "offset": _offset_property("chapter"),
            },
            ["id"],
        ),
    ),
    # ---- playlists ----
    ToolDefinition(
        "get_playlist",
        "Get a playlist owned by a Spotify user",
        _object({"id": _id_property("playlist"), "market": MARKET_PROPERTY}, ["id"]),
    ),
    ToolDefinition(
        "get_playlist_tracks",
        "Get full details of the tracks of a playlist",
        _object(
            {
                "id": _id_property("playlist"),
                "market": MARKET_PROPERTY,
                "limit": _limit_property("tracks", 100),
                "offset": _offset_property("track"),
                "fields": FIELDS_PROPERTY,
            },
            ["id"],
        ),
    ),
    ToolDefinition(
        "get_playlist_items",
        "Get full details of the items of a playlist",
        _object(
            {
                "id": _id_property("playlist"),
                "market": MARKET_PROPERTY,
                "limit": _limit_property("items", 100),
                "offset": _offset_property("item"),
                "fields": FIELDS_PROPERTY,
            },
            ["id"],
        ),
    ),
    ToolDefinition(
        "get_my_playlists",
        "Get a list of the playlists owned or followed by the current user",
        _object(
            {
                "limit": _limit_property("playlists"),
                "offset": _offset_property("playlist"),
            },
        ),
    ),
    ToolDefinition(
        "modify_playlist",
        "Change a playlist's name and public/private state",
        _object(
            {
                "id": _id_property("playlist"),
                "name": {"type": "string", "description": "The new name for the playlist"},
                "public": {"type": "boolean", "description": "Whether the playlist is public"},
                "collaborative": {
                    "type": "boolean",
                    "description": "Whether other users can modify the playlist",
                },
                "description": {"type": "string", "description": "The new playlist description"},
            },
            ["id"],
        ),
    ),
    ToolDefinition(
        "add_tracks_to_playlist",
        "Add one or more items to a user's playlist",
        _object(
            {
                "id": _id_property("playlist"),
                "uris": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Array of Spotify track or episode URIs to add",
                },
                "position": {
                    "type": "integer",
                    "description": "Optional. Zero-based position to insert the items at",
                    "minimum": 0,
                },
            },
            ["id", "uris"],
        ),
    ),
    ToolDefinition(
        "remove_tracks_from_playlist",
        "Remove one or more items from a user's playlist",
        _object(
            {
                "id": _id_property("playlist"),
                "tracks": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {"uri": {"type": "string"}},
                        "required": ["uri"],
                    },
                    "description": "Array of objects containing Spotify URIs to remove",
                },
                "snapshot_id": {
                    "type": "string",
                    "description": "Optional. The playlist's snapshot ID to target",
                },
            },
            ["id", "tracks"],
        ),
    ),
    # ---- desktop app (macOS) ----
    ToolDefinition(
        "spotify_play_pause",
        "Toggle play/pause in the Spotify desktop app (macOS only)",
        _object(),
    ),
    ToolDefinition(
        "spotify_next_track",
        "Skip to the next track in the Spotify desktop app (macOS only)",
        _object(),
    ),
    ToolDefinition(
        "spotify_previous_track",
        "Go back to the previous track in the Spotify desktop app (macOS only)",
        _object(),
    ),
    ToolDefinition(
        "spotify_get_current_track",
        "Get the track currently loaded in the Spotify desktop app (macOS only)",
        _object(),
    ),
    ToolDefinition(
        "spotify_play_track",
        "Play a track by URI in the Spotify desktop app (macOS only)",
        _object(
            {
                "uri": {
                    "type": "string",
                    "description": "Spotify track URI, e.g. spotify:track:4iV5W9uYEdYUVa79Axb7Rh",
                },
            },
            ["uri"],
        ),
    ),
]

TOOLS_BY_NAME: dict[str, ToolDefinition] = {t.name: t for t in TOOL_DEFINITIONS}


# ============ VALIDATION ============

_JSON_TYPES = {
    "string": (str,),
    "integer": (int,),
    "number": (int, float),
    "boolean": (bool,),
    "array": (list,),
    "object": (dict,),
}


def _matches_type(value: Any, json_type: str) -> bool:
    # bool is an int subclass; never let True pass as a number
    if isinstance(value, bool) and json_type in ("integer", "number"):
        return False
    if json_type == "integer" and isinstance(value, float):
        return value.is_integer()
    return isinstance(value, _JSON_TYPES.get(json_type, (object,)))


def _check_value(path: str, value: Any, prop: dict) -> Optional[ToolError]:
    json_type = prop.get("type")
    if json_type and not _matches_type(value, json_type):
        return ToolError(ErrorKind.INVALID_PARAMS, f"Invalid type for {path}: expected {json_type}")
    if "enum" in prop and value not in prop["enum"]:
        allowed = ", ".join(str(v) for v in prop["enum"])
        return ToolError(ErrorKind.INVALID_PARAMS, f"Invalid value for {path}: must be one of {allowed}")
    if json_type == "array" and "items" in prop:
        for i, item in enumerate(value):
            error = _check_value(f"{path}[{i}]", item, prop["items"])
            if error:
                return error
    if json_type == "object" and "properties" in prop:
        return _check_object(path, value, prop)
    return None


def _check_object(path: str, value: dict, schema: dict) -> Optional[ToolError]:
    prefix = f"{path}." if path else ""
    for field in schema.get("required", []):
        if value.get(field) is None:
            return ToolError(ErrorKind.INVALID_PARAMS, f"Missing required parameter: {prefix}{field}")
    properties = schema.get("properties", {})
    for key, item in value.items():
        if key in properties and item is not None:
            error = _check_value(f"{prefix}{key}", item, properties[key])
            if error:
                return error
    return None


def validate_arguments(schema: dict, arguments: Any) -> Optional[ToolError]:
    """Check arguments against an input schema, stopping at the first violation.

    Covers required-field presence, declared JSON types and enums. Numeric
    ranges and list sizes are left to the handlers. Unknown keys are ignored.

    Returns:
        None if the arguments are acceptable, else an invalid_params ToolError.
    """
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, dict):
        return ToolError(ErrorKind.INVALID_PARAMS, "Arguments must be an object")
    return _check_object("", arguments, schema)
