"""Catalog handlers: one class per Spotify resource family.

Each method takes the validated tool arguments, normalizes identifiers,
enforces local bounds and delegates to SpotifyApi.make_request. Bound
violations come back as failed results before any request is made.
"""

from typing import Optional

from .api import SpotifyApi, build_query_string, extract_id
from .errors import Result, invalid_params

DEFAULT_LIMIT = 20
DEFAULT_OFFSET = 0
MAX_PAGE_LIMIT = 50
MAX_RECOMMENDATIONS = 100
MAX_ARTIST_IDS = 50
MAX_ALBUM_IDS = 20
MAX_AUDIOBOOK_IDS = 50


def _arg(args: dict, key: str, default):
    """args[key], with a missing key or JSON null both meaning default."""
    value = args.get(key)
    return default if value is None else value


def _check_limit(limit: int, maximum: int = MAX_PAGE_LIMIT) -> Optional[Result]:
    if limit < 1 or limit > maximum:
        return invalid_params(f"Limit must be between 1 and {maximum}")
    return None


def _check_pagination(limit: int, offset: int) -> Optional[Result]:
    failure = _check_limit(limit)
    if failure:
        return failure
    if offset < 0:
        return invalid_params("Offset must be non-negative")
    return None


def _check_id_count(ids: list, maximum: int, label: str) -> Optional[Result]:
    if len(ids) == 0:
        return invalid_params(f"At least one {label} ID must be provided")
    if len(ids) > maximum:
        return invalid_params(f"Maximum of {maximum} {label} IDs allowed")
    return None


def _join(values: list[str]) -> Optional[str]:
    return ",".join(values) if values else None


class _CatalogHandler:
    kind = ""

    def __init__(self, api: SpotifyApi):
        self.api = api

    def extract_id(self, identifier: str) -> str:
        return extract_id(identifier, self.kind)


class ArtistsHandler(_CatalogHandler):
    kind = "artist"

    def get_artist(self, args: dict) -> Result:
        return self.api.make_request(f"/artists/{self.extract_id(args['id'])}")

    def get_multiple_artists(self, args: dict) -> Result:
        ids = args["ids"]
        failure = _check_id_count(ids, MAX_ARTIST_IDS, "artist")
        if failure:
            return failure
        artist_ids = [self.extract_id(i) for i in ids]
        return self.api.make_request(f"/artists{build_query_string({'ids': _join(artist_ids)})}")

    def get_artist_top_tracks(self, args: dict) -> Result:
        market = args.get("market")
        if not market:
            return invalid_params("market parameter is required for top tracks")
        artist_id = self.extract_id(args["id"])
        return self.api.make_request(
            f"/artists/{artist_id}/top-tracks{build_query_string({'market': market})}"
        )

    def get_artist_related_artists(self, args: dict) -> Result:
        return self.api.make_request(f"/artists/{self.extract_id(args['id'])}/related-artists")

    def get_artist_albums(self, args: dict) -> Result:
        limit = _arg(args, "limit", DEFAULT_LIMIT)
        offset = _arg(args, "offset", DEFAULT_OFFSET)
        failure = _check_pagination(limit, offset)
        if failure:
            return failure

        artist_id = self.extract_id(args["id"])
        params = {
            "limit": limit,
            "offset": offset,
            "include_groups": _join(args.get("include_groups") or []),
        }
        return self.api.make_request(f"/artists/{artist_id}/albums{build_query_string(params)}")


class AlbumsHandler(_CatalogHandler):
    kind = "album"

    def get_album(self, args: dict) -> Result:
        return self.api.make_request(f"/albums/{self.extract_id(args['id'])}")

    def get_multiple_albums(self, args: dict) -> Result:
        ids = args["ids"]
        failure = _check_id_count(ids, MAX_ALBUM_IDS, "album")
        if failure:
            return failure
        album_ids = [self.extract_id(i) for i in ids]
        return self.api.make_request(f"/albums{build_query_string({'ids': _join(album_ids)})}")

    def get_album_tracks(self, args: dict) -> Result:
        limit = _arg(args, "limit", DEFAULT_LIMIT)
        offset = _arg(args, "offset", DEFAULT_OFFSET)
        failure = _check_pagination(limit, offset)
        if failure:
            return failure

        album_id = self.extract_id(args["id"])
        params = {"limit": limit, "offset": offset}
        return self.api.make_request(f"/albums/{album_id}/tracks{build_query_string(params)}")

    def get_new_releases(self, args: dict) -> Result:
        limit = _arg(args, "limit", DEFAULT_LIMIT)
        offset = _arg(args, "offset", DEFAULT_OFFSET)
        failure = _check_pagination(limit, offset)
        if failure:
            return failure

        params = {"country": args.get("country"), "limit": limit, "offset": offset}
        return self.api.make_request(f"/browse/new-releases{build_query_string(params)}")


class TracksHandler(_CatalogHandler):
    kind = "track"

    def get_track(self, args: dict) -> Result:
        return self.api.make_request(f"/tracks/{self.extract_id(args['id'])}")

    def search(self, args: dict) -> Result:
        limit = _arg(args, "limit", DEFAULT_LIMIT)
        failure = _check_limit(limit)
        if failure:
            return failure

        params = {"q": args["query"], "type": args["type"], "limit": limit}
        return self.api.make_request(f"/search{build_query_string(params)}")

    def get_recommendations(self, args: dict) -> Result:
        seed_tracks = args.get("seed_tracks") or []
        seed_artists = args.get("seed_artists") or []
        seed_genres = args.get("seed_genres") or []
        limit = _arg(args, "limit", DEFAULT_LIMIT)

        if not (seed_tracks or seed_artists or seed_genres):
            return invalid_params("At least one seed (tracks, artists, or genres) must be provided")
        failure = _check_limit(limit, MAX_RECOMMENDATIONS)
        if failure:
            return failure

        params = {
            "seed_tracks": _join([self.extract_id(t) for t in seed_tracks]),
            "seed_artists": _join([extract_id(a, "artist") for a in seed_artists]),
            "seed_genres": _join(seed_genres),
            "limit": limit,
        }
        return self.api.make_request(f"/recommendations{build_query_string(params)}")

    def get_available_genres(self, args: dict) -> Result:
        return self.api.make_request("/recommendations/available-genre-seeds")


class AudiobooksHandler(_CatalogHandler):
    kind = "audiobook"

    def get_audiobook(self, args: dict) -> Result:
        audiobook_id = self.extract_id(args["id"])
        params = {"market": args.get("market")}
        return self.api.make_request(f"/audiobooks/{audiobook_id}{build_query_string(params)}")

    def get_multiple_audiobooks(self, args: dict) -> Result:
        ids = args["ids"]
        failure = _check_id_count(ids, MAX_AUDIOBOOK_IDS, "audiobook")
        if failure:
            return failure

        params = {
            "ids": _join([self.extract_id(i) for i in ids]),
            "market": args.get("market"),
        }
        return self.api.make_request(f"/audiobooks{build_query_string(params)}")

    def get_audiobook_chapters(self, args: dict) -> Result:
        audiobook_id = self.extract_id(args["id"])
        params = {
            "market": args.get("market"),
            "limit": args.get("limit"),
            "offset": args.get("offset"),
        }
        return self.api.make_request(
            f"/audiobooks/{audiobook_id}/chapters{build_query_string(params)}"
        )


class PlaylistsHandler(_CatalogHandler):
    """Playlist reads and mutations.

    Only required-field presence is checked here; Spotify is authoritative
    for everything else about a mutation.
    """

    kind = "playlist"

    def _listing_params(self, args: dict) -> dict:
        return {
            "market": args.get("market"),
            "limit": args.get("limit"),
            "offset": args.get("offset"),
            "fields": args.get("fields"),
        }

    def get_playlist(self, args: dict) -> Result:
        playlist_id = self.extract_id(args["id"])
        params = {"market": args.get("market")}
        return self.api.make_request(f"/playlists/{playlist_id}{build_query_string(params)}")

    def get_playlist_tracks(self, args: dict) -> Result:
        playlist_id = self.extract_id(args["id"])
        query = build_query_string(self._listing_params(args))
        return self.api.make_request(f"/playlists/{playlist_id}/tracks{query}")

    def get_playlist_items(self, args: dict) -> Result:
        playlist_id = self.extract_id(args["id"])
        query = build_query_string(self._listing_params(args))
        return self.api.make_request(f"/playlists/{playlist_id}/items{query}")

    def get_my_playlists(self, args: dict) -> Result:
        params = {"limit": args.get("limit"), "offset": args.get("offset")}
        return self.api.make_request(f"/me/playlists{build_query_string(params)}")

    def modify_playlist(self, args: dict) -> Result:
        playlist_id = self.extract_id(args["id"])
        data = {
            key: args[key]
            for key in ("name", "public", "collaborative", "description")
            if args.get(key) is not None
        }
        return self.api.make_request(f"/playlists/{playlist_id}", "PUT", data)

    def add_tracks_to_playlist(self, args: dict) -> Result:
        playlist_id = self.extract_id(args["id"])
        data = {"uris": args["uris"]}
        if args.get("position") is not None:
            data["position"] = args["position"]
        return self.api.make_request(f"/playlists/{playlist_id}/tracks", "POST", data)

    def remove_tracks_from_playlist(self, args: dict) -> Result:
        playlist_id = self.extract_id(args["id"])
        data = {"tracks": args["tracks"]}
        if args.get("snapshot_id") is not None:
            data["snapshot_id"] = args["snapshot_id"]
        return self.api.make_request(f"/playlists/{playlist_id}/tracks", "DELETE", data)
