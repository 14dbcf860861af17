"""
Spotify Web API calls: read a playlist, search the catalog, append tracks.

Every call takes the bearer token explicitly. An already-built ``spotipy``
client may be passed instead so tests never hit the network. spotipy errors
are translated into the extender's own exceptions:

- 404 -> ``NotFoundError`` (``NoMatchError`` for search)
- any other status -> ``HttpStatusError``
- no response at all -> ``TransportError``
"""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

import requests
import spotipy
from pydantic import ValidationError
from spotipy.exceptions import SpotifyException

from spotify_extender.errors import (
    DecodeError,
    HttpStatusError,
    NoMatchError,
    NotFoundError,
    TransportError,
    VibeFillError,
)
from spotify_extender.models import Playlist, SearchResponse, SongSuggestion

logger = logging.getLogger(__name__)

# Spotify rejects more than 100 URIs per add-items request.
MAX_TRACKS_PER_REQUEST = 100
PLAYLIST_FIELDS = "tracks.items(track(name,uri,artists(name)))"


def spotify_client(access_token: str) -> spotipy.Spotify:
    """
    Bearer-token client with no automatic retries.

    Handing spotipy a plain Session skips the urllib3 retry adapter it
    would otherwise mount.
    """
    return spotipy.Spotify(auth=access_token, requests_session=requests.Session())


def _client(access_token: str, client: Optional[spotipy.Spotify]) -> spotipy.Spotify:
    return client if client is not None else spotify_client(access_token)


# --- PlaylistReader --------------------------------------------------------
def fetch_playlist(
    access_token: str,
    playlist_id: str,
    client: Optional[spotipy.Spotify] = None,
) -> Playlist:
    sp = _client(access_token, client)
    logger.debug("Fetching playlist %s", playlist_id)
    try:
        payload = sp.playlist(playlist_id, fields=PLAYLIST_FIELDS)
    except SpotifyException as exc:
        if exc.http_status == 404:
            raise NotFoundError("Invalid Playlist ID: The playlist could not be found.") from exc
        raise HttpStatusError(
            exc.http_status, f"Error fetching playlist: {exc.http_status}"
        ) from exc
    except requests.RequestException as exc:
        raise TransportError(f"Error fetching playlist: {exc}") from exc

    # spotipy hands back None when a 2xx body is not JSON
    if payload is None:
        raise DecodeError("Playlist response body could not be decoded")
    try:
        return Playlist.model_validate(payload)
    except ValidationError as exc:
        raise DecodeError(f"Unexpected playlist payload: {exc}") from exc


def render_playlist_text(playlist: Playlist) -> str:
    """
    Flatten a playlist into "<track> by <artists>, " chunks, in API order.

    The trailing separator is kept as-is.
    """
    parts = []
    for item in playlist.tracks.items:
        track = item.track
        if track is None:
            continue
        parts.append(f"{track.name} by {track.artist_names}, ")
    return "".join(parts)


# --- TrackResolver ---------------------------------------------------------
def search_track(
    access_token: str,
    artist: str,
    track_name: str,
    client: Optional[spotipy.Spotify] = None,
) -> str:
    """Return the URI of the best catalog match for ``artist``/``track_name``."""
    sp = _client(access_token, client)
    # requests percent-encodes the query string, so '&', '#', '+' and
    # non-ASCII names survive intact.
    query = f"artist:{artist} track:{track_name}"
    logger.debug("Searching catalog: %s", query)
    try:
        payload = sp.search(q=query, limit=1, type="track")
    except SpotifyException as exc:
        if exc.http_status == 404:
            raise NoMatchError("No results found for the specified artist and track.") from exc
        raise HttpStatusError(exc.http_status) from exc
    except requests.RequestException as exc:
        raise TransportError(str(exc)) from exc

    if payload is None:
        raise DecodeError("Search response body could not be decoded")
    try:
        result = SearchResponse.model_validate(payload)
    except ValidationError as exc:
        raise DecodeError(f"Unexpected search payload: {exc}") from exc

    if not result.tracks.items or not result.tracks.items[0].uri:
        raise NoMatchError()
    return result.tracks.items[0].uri


def resolve_suggestions(
    access_token: str,
    suggestions: Sequence[SongSuggestion],
    client: Optional[spotipy.Spotify] = None,
) -> Tuple[List[str], List[str]]:
    """
    Resolve every suggestion independently.

    Returns (uris, warnings). A failed lookup becomes a warning and is left
    out of ``uris``; it never stops the loop.
    """
    sp = _client(access_token, client)
    uris: List[str] = []
    warnings: List[str] = []
    for song in suggestions:
        try:
            uris.append(search_track(access_token, song.artist, song.name, client=sp))
        except VibeFillError as exc:
            warning = f"Error finding song '{song.name} - {song.artist}': {exc}"
            logger.warning(warning)
            warnings.append(warning)
    return uris, warnings


# --- PlaylistWriter --------------------------------------------------------
def add_tracks(
    access_token: str,
    playlist_id: str,
    uris: Sequence[str],
    client: Optional[spotipy.Spotify] = None,
) -> None:
    """
    Append ``uris`` to the playlist.

    Callers skip this when there is nothing to add. Lists longer than the
    per-request cap go out in consecutive chunks.
    """
    sp = _client(access_token, client)
    uris = list(uris)
    for start in range(0, len(uris), MAX_TRACKS_PER_REQUEST):
        chunk = uris[start : start + MAX_TRACKS_PER_REQUEST]
        logger.debug("Adding %d tracks to playlist %s", len(chunk), playlist_id)
        try:
            sp.playlist_add_items(playlist_id, chunk)
        except SpotifyException as exc:
            raise HttpStatusError(
                exc.http_status,
                f"Failed to add tracks to playlist: {exc.http_status}",
            ) from exc
        except requests.RequestException as exc:
            raise TransportError(f"Failed to add tracks to playlist: {exc}") from exc


__all__ = [
    "MAX_TRACKS_PER_REQUEST",
    "spotify_client",
    "fetch_playlist",
    "render_playlist_text",
    "search_track",
    "resolve_suggestions",
    "add_tracks",
]
