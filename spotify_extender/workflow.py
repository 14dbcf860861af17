"""
End-to-end playlist extension: token -> playlist -> LLM -> search -> add.

Each stage runs once, in order, on the calling thread. Recoverable failures
are printed for the operator and the run moves on (or stops early when no
later stage can do anything useful). Only authentication failures propagate.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

import spotipy

from spotify_extender.errors import (
    LlmError,
    ParseError,
    SpotifyApiError,
    TransportError,
)
from spotify_extender.llm_recommender import (
    CompletionClient,
    NimChatCompletionClient,
    SongResponseParser,
    ask_for_recommendations,
)
from spotify_extender.models import SongSuggestion
from spotify_extender.settings import Settings
from spotify_extender.spotify_auth import Authenticator
from spotify_extender.spotify_catalog import (
    add_tracks,
    fetch_playlist,
    render_playlist_text,
    resolve_suggestions,
    spotify_client,
)

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Successfully added songs to the playlist."
NOTHING_TO_ADD_MESSAGE = "No suggested songs could be found on Spotify; playlist left unchanged."


@dataclass(frozen=True)
class ExtensionRunResult:
    """Bundle returned by extend_playlist."""

    playlist_text: str
    suggestions: List[SongSuggestion]
    resolved_uris: List[str]
    warnings: List[str]
    added: bool


def extend_playlist(
    settings: Settings,
    authenticator: Authenticator,
    count: int,
    *,
    spotify_client_factory: Callable[[str], spotipy.Spotify] = spotify_client,
    completion_client: Optional[CompletionClient] = None,
    parser: Optional[SongResponseParser] = None,
) -> ExtensionRunResult:
    """
    Ask the LLM for ``count`` songs like the configured playlist and append
    the ones Spotify can find.
    """
    warnings: List[str] = []

    def report(message: str) -> None:
        print(message)
        warnings.append(message)

    def finish(
        suggestions: Sequence[SongSuggestion] = (),
        uris: Sequence[str] = (),
        added: bool = False,
    ) -> ExtensionRunResult:
        return ExtensionRunResult(
            playlist_text=playlist_text,
            suggestions=list(suggestions),
            resolved_uris=list(uris),
            warnings=warnings,
            added=added,
        )

    access_token = authenticator.obtain_access_token()
    sp = spotify_client_factory(access_token)

    playlist_text = ""
    try:
        playlist = fetch_playlist(access_token, settings.playlist_id, client=sp)
        playlist_text = render_playlist_text(playlist)
    except (SpotifyApiError, TransportError) as exc:
        # the LLM still gets asked, just without any seed tracks
        report(str(exc))

    client = completion_client or NimChatCompletionClient(settings.llm_api_key)
    try:
        raw_response = ask_for_recommendations(
            settings.llm_api_key, playlist_text, count, client=client
        )
    except (LlmError, TransportError) as exc:
        report(f"Error getting song suggestions: {exc}")
        return finish()

    parser = parser or SongResponseParser()
    try:
        suggestions = parser.parse_response(raw_response)
    except ParseError as exc:
        report(str(exc))
        return finish()
    logger.info("LLM suggested %d songs", len(suggestions))

    uris, resolve_warnings = resolve_suggestions(access_token, suggestions, client=sp)
    for warning in resolve_warnings:
        report(warning)

    if not uris:
        report(NOTHING_TO_ADD_MESSAGE)
        return finish(suggestions)

    try:
        add_tracks(access_token, settings.playlist_id, uris, client=sp)
    except (SpotifyApiError, TransportError) as exc:
        report(str(exc))
        return finish(suggestions, uris)

    print(SUCCESS_MESSAGE)
    return finish(suggestions, uris, added=True)


__all__ = ["ExtensionRunResult", "extend_playlist", "SUCCESS_MESSAGE"]
