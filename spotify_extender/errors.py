"""Exception classes for the playlist extender."""


class VibeFillError(Exception):
    """Base exception for every failure raised by the extender."""


class ConfigError(VibeFillError):
    """Required configuration is missing or invalid."""


class AuthError(VibeFillError):
    """The token endpoint failed or returned no access token."""


class TransportError(VibeFillError):
    """The request never produced an HTTP response (DNS, timeout, reset)."""


class SpotifyApiError(VibeFillError):
    """Base class for Spotify Web API failures."""


class NotFoundError(SpotifyApiError):
    """The requested resource does not exist (HTTP 404)."""


class NoMatchError(NotFoundError):
    """Catalog search returned no usable track."""

    def __init__(self, message: str = "No result found for the specified artist and track."):
        super().__init__(message)


class HttpStatusError(SpotifyApiError):
    """Unexpected non-success HTTP status.

    Attributes:
        status: HTTP status code returned by the server
    """

    def __init__(self, status: int, message: str = ""):
        self.status = status
        super().__init__(message or f"Unexpected HTTP status {status}")


class DecodeError(SpotifyApiError):
    """A success response body did not match the expected shape."""


class LlmError(VibeFillError):
    """Base class for chat-completion failures."""


class LlmHttpError(LlmError):
    """The chat endpoint answered with a non-success status."""

    def __init__(self, status: int, message: str = ""):
        self.status = status
        super().__init__(message or f"LLM request failed with HTTP status {status}")


class LlmDecodeError(LlmError):
    """The chat endpoint answered 2xx but the body could not be decoded."""


class NoChoicesError(LlmError):
    """The chat completion carried zero choices."""

    def __init__(self, message: str = "No response choices available"):
        super().__init__(message)


class ParseError(VibeFillError):
    """The LLM reply did not decode into the expected song list."""


__all__ = [
    "VibeFillError",
    "ConfigError",
    "AuthError",
    "TransportError",
    "SpotifyApiError",
    "NotFoundError",
    "NoMatchError",
    "HttpStatusError",
    "DecodeError",
    "LlmError",
    "LlmHttpError",
    "LlmDecodeError",
    "NoChoicesError",
    "ParseError",
]
