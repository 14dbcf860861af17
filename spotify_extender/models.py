"""
Wire models for the Spotify and chat-completion payloads.

Only the fields the extender reads are declared; everything else in the
responses is ignored.
"""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel


class Artist(BaseModel):
    name: str


class Track(BaseModel):
    name: str
    artists: List[Artist] = []
    uri: Optional[str] = None

    @property
    def artist_names(self) -> str:
        return ", ".join(artist.name for artist in self.artists)


class PlaylistItem(BaseModel):
    # local or removed tracks come back as null
    track: Optional[Track] = None


class PlaylistTracks(BaseModel):
    items: List[PlaylistItem] = []


class Playlist(BaseModel):
    tracks: PlaylistTracks


class SearchTracks(BaseModel):
    items: List[Track] = []


class SearchResponse(BaseModel):
    tracks: SearchTracks


class SongSuggestion(BaseModel):
    """One song the LLM proposed; not yet resolved to a URI."""

    name: str
    artist: str


class SongList(BaseModel):
    songs: List[SongSuggestion]


class Message(BaseModel):
    role: str
    content: str


class ChatRequest(BaseModel):
    model: str
    messages: List[Message]


__all__ = [
    "Artist",
    "Track",
    "PlaylistItem",
    "PlaylistTracks",
    "Playlist",
    "SearchTracks",
    "SearchResponse",
    "SongSuggestion",
    "SongList",
    "Message",
    "ChatRequest",
]
