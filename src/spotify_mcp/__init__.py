"""MCP server exposing the Spotify Web API catalog and desktop playback control."""

__version__ = "0.2.0"
