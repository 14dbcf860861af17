"""
Spotify token acquisition.

Two strategies share one tiny protocol so the workflow does not care which
OAuth flow produced the bearer token:

- ``AuthorizationCodeAuth``: three-legged flow. The operator visits the
  authorization URL and hands back the code from the redirect.
- ``ClientCredentialsAuth``: two-legged, machine-to-machine flow.

Tokens are never written to disk; spotipy is given an in-memory cache.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol
from urllib.parse import urlencode

import requests
from spotipy.cache_handler import MemoryCacheHandler
from spotipy.oauth2 import SpotifyClientCredentials, SpotifyOAuth, SpotifyOauthError

from spotify_extender.errors import AuthError, ConfigError
from spotify_extender.settings import AUTHORIZATION_CODE, CLIENT_CREDENTIALS, Settings

logger = logging.getLogger(__name__)

SCOPE = "playlist-modify-public playlist-modify-private"
AUTHORIZE_URL = SpotifyOAuth.OAUTH_AUTHORIZE_URL

# Receives the authorization URL, returns the code pasted by the operator.
CodeProvider = Callable[[str], str]


def _oauth_manager(client_id: str, client_secret: str, redirect_uri: str) -> SpotifyOAuth:
    return SpotifyOAuth(
        client_id=client_id,
        client_secret=client_secret,
        redirect_uri=redirect_uri,
        scope=SCOPE,
        cache_handler=MemoryCacheHandler(),
        open_browser=False,
    )


def build_authorization_url(client_id: str, redirect_uri: str) -> str:
    """Return the consent URL for the authorization-code flow. No network call."""
    query = urlencode(
        {
            "response_type": "code",
            "client_id": client_id,
            "scope": SCOPE,
            "redirect_uri": redirect_uri,
        }
    )
    return f"{AUTHORIZE_URL}?{query}"


def _exchange(grant_type: str, request: Callable[[], str]) -> str:
    try:
        token = request()
    except SpotifyOauthError as exc:
        raise AuthError(f"Token exchange ({grant_type}) rejected: {exc}") from exc
    except requests.RequestException as exc:
        raise AuthError(f"Token exchange ({grant_type}) failed: {exc}") from exc
    except (KeyError, ValueError) as exc:
        raise AuthError(f"Token response ({grant_type}) could not be decoded: {exc}") from exc
    if not isinstance(token, str) or not token:
        raise AuthError(f"Token response ({grant_type}) carried no access_token")
    logger.debug("Obtained access token via %s", grant_type)
    return token


def authorize_code_flow(
    client_id: str, client_secret: str, code: str, redirect_uri: str
) -> str:
    """Exchange an authorization code for a bearer token."""
    manager = _oauth_manager(client_id, client_secret, redirect_uri)
    return _exchange(
        AUTHORIZATION_CODE,
        lambda: manager.get_access_token(code, as_dict=False, check_cache=False),
    )


def client_credentials_flow(client_id: str, client_secret: str) -> str:
    """Obtain an app token using HTTP basic auth with the client credentials."""
    manager = SpotifyClientCredentials(
        client_id=client_id,
        client_secret=client_secret,
        cache_handler=MemoryCacheHandler(),
    )
    return _exchange(
        CLIENT_CREDENTIALS,
        lambda: manager.get_access_token(as_dict=False, check_cache=False),
    )


class Authenticator(Protocol):
    """Anything that can hand the workflow a bearer token."""

    def obtain_access_token(self) -> str:  # pragma: no cover - interface only
        ...


class AuthorizationCodeAuth:
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        code_provider: CodeProvider,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.code_provider = code_provider

    def authorization_url(self) -> str:
        return build_authorization_url(self.client_id, self.redirect_uri)

    def obtain_access_token(self) -> str:
        code = self.code_provider(self.authorization_url()).strip()
        return authorize_code_flow(
            self.client_id, self.client_secret, code, self.redirect_uri
        )


class ClientCredentialsAuth:
    def __init__(self, client_id: str, client_secret: str):
        self.client_id = client_id
        self.client_secret = client_secret

    def obtain_access_token(self) -> str:
        return client_credentials_flow(self.client_id, self.client_secret)


def authenticator_from_settings(
    settings: Settings, code_provider: Optional[CodeProvider] = None
) -> Authenticator:
    """Pick the strategy named by ``settings.auth_flow``."""
    if settings.auth_flow == CLIENT_CREDENTIALS:
        return ClientCredentialsAuth(settings.client_id, settings.client_secret)
    if settings.auth_flow == AUTHORIZATION_CODE:
        if not settings.redirect_uri:
            raise ConfigError("SPOTIFY_REDIRECT_URI is required for the authorization_code flow")
        if code_provider is None:
            raise ConfigError("authorization_code flow needs a way to read the authorization code")
        return AuthorizationCodeAuth(
            settings.client_id,
            settings.client_secret,
            settings.redirect_uri,
            code_provider,
        )
    raise ConfigError(f"Unknown auth flow '{settings.auth_flow}'")


__all__ = [
    "SCOPE",
    "Authenticator",
    "AuthorizationCodeAuth",
    "ClientCredentialsAuth",
    "authenticator_from_settings",
    "authorize_code_flow",
    "build_authorization_url",
    "client_credentials_flow",
]
