"""
LLM-powered song suggestions for a Spotify playlist.

The chat integration is kept behind a small protocol so the workflow can be
unit tested without hitting any external API. The main pieces are:

- ``build_prompt``: Turns the rendered playlist and a desired count into the
  single user instruction sent to the model.
- ``NimChatCompletionClient``: Adapter around the OpenAI SDK, pointed at the
  NVIDIA NIM OpenAI-compatible endpoint. Translates SDK failures into
  ``LlmError`` subclasses.
- ``SongResponseParser``: Strips incidental formatting from the reply and
  decodes it into ``SongSuggestion`` objects.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Protocol

import openai
from openai import OpenAI
from pydantic import ValidationError

from spotify_extender.errors import (
    LlmDecodeError,
    LlmHttpError,
    NoChoicesError,
    ParseError,
    TransportError,
)
from spotify_extender.models import ChatRequest, Message, SongList, SongSuggestion

logger = logging.getLogger(__name__)

NIM_BASE_URL = "https://integrate.api.nvidia.com/v1"
DEFAULT_MODEL = "nvidia/llama-3.1-nemotron-70b-instruct"


# --- Chat wiring -----------------------------------------------------------
class CompletionClient(Protocol):
    """Tiny protocol so we can swap out the actual chat client in tests."""

    def complete(self, prompt: str) -> str:  # pragma: no cover - interface only
        ...


class NimChatCompletionClient:
    """
    Small adapter around the OpenAI SDK so the recommender can stay decoupled.

    SDK retries are disabled; every failure is final for the run.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = NIM_BASE_URL,
        client: Optional[OpenAI] = None,
    ):
        self._client = client or OpenAI(api_key=api_key, base_url=base_url, max_retries=0)
        self._model = model

    def complete(self, prompt: str) -> str:
        """
        Issues a chat completion and returns the first choice's text unmodified.
        """
        request = ChatRequest(
            model=self._model,
            messages=[Message(role="user", content=prompt)],
        )
        logger.debug("Requesting chat completion from %s", self._model)
        try:
            completion = self._client.chat.completions.create(**request.model_dump())
        except openai.APIStatusError as exc:
            raise LlmHttpError(exc.status_code) from exc
        except openai.APIResponseValidationError as exc:
            raise LlmDecodeError(f"Failed to parse response: {exc}") from exc
        except openai.APIConnectionError as exc:
            raise TransportError(f"LLM request failed: {exc}") from exc
        except ValueError as exc:
            # malformed JSON under a JSON content-type
            raise LlmDecodeError(f"Failed to parse response: {exc}") from exc

        # A non-JSON 2xx body comes back from the SDK as a bare string.
        choices = getattr(completion, "choices", None)
        if choices is None:
            raise LlmDecodeError("Failed to parse response: missing 'choices'")
        if not choices:
            raise NoChoicesError()
        try:
            content = choices[0].message.content
        except (AttributeError, IndexError, TypeError) as exc:
            raise LlmDecodeError(f"Failed to parse response: {exc}") from exc
        return content or ""


# --- Prompt assembly -------------------------------------------------------
def build_prompt(playlist_text: str, count: int) -> str:
    """Returns the full user prompt sent to the model."""
    return (
        f"I will give you a playlist, give me {count} songs that are similar to "
        "the songs in the playlist, no songs that you give me should be the same "
        "as the songs in the playlist. Your goal is to give me songs that fit the "
        "vibe of the playlist. You are only allowed to give me the songs nothing "
        "more. The format of your answer will be a JSON object with the key "
        "'songs' and the value being a list of song objects. Each song object "
        "should have the keys 'name' and 'artist', for example "
        '{"songs": [{"name": "Song title", "artist": "Artist name"}]}. '
        f"Here is the playlist: {playlist_text}"
    )


def ask_for_recommendations(
    api_key: str,
    playlist_text: str,
    count: int,
    client: Optional[CompletionClient] = None,
) -> str:
    """Send the playlist to the chat endpoint and return the raw reply text."""
    client = client or NimChatCompletionClient(api_key)
    return client.complete(build_prompt(playlist_text, count))


# --- Response parsing ------------------------------------------------------
def clean(raw: str) -> str:
    """
    Trim whitespace, then backticks wrapped around the payload.

    Only backtick characters are removed; a fence language tag such as
    ``json`` stays in place.
    """
    return raw.strip().strip("`")


def parse(cleaned: str) -> List[SongSuggestion]:
    """Strictly decode ``{"songs": [{"name", "artist"}, ...]}``."""
    try:
        return SongList.model_validate_json(cleaned).songs
    except ValidationError as exc:
        raise ParseError(f"LLM response was not a valid song list: {exc}") from exc


class SongResponseParser:
    """
    Ensures the model's output matches the expected schema.
    """

    def clean(self, raw: str) -> str:
        return clean(raw)

    def parse(self, cleaned: str) -> List[SongSuggestion]:
        return parse(cleaned)

    def parse_response(self, raw: str) -> List[SongSuggestion]:
        """
        Parse the raw assistant reply and return the suggestions.
        """
        return self.parse(self.clean(raw))


__all__ = [
    "DEFAULT_MODEL",
    "NIM_BASE_URL",
    "CompletionClient",
    "NimChatCompletionClient",
    "SongResponseParser",
    "ask_for_recommendations",
    "build_prompt",
    "clean",
    "parse",
]
