from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from spotify_extender.errors import ConfigError

AUTHORIZATION_CODE = "authorization_code"
CLIENT_CREDENTIALS = "client_credentials"
AUTH_FLOWS = (AUTHORIZATION_CODE, CLIENT_CREDENTIALS)

DEFAULT_ENV_FILE = Path(".env")


def load_env_file(path: Path) -> None:
    """Copy KEY=VALUE lines from ``path`` into os.environ without overriding."""
    if not path.exists():
        return
    for raw in path.read_text().splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and value:
            os.environ.setdefault(key, value)


@dataclass(frozen=True)
class Settings:
    """Everything a run needs, resolved once at startup."""

    client_id: str
    client_secret: str
    llm_api_key: str
    playlist_id: str
    auth_flow: str = AUTHORIZATION_CODE
    redirect_uri: Optional[str] = None

    def redacted(self) -> Dict[str, Optional[str]]:
        return {
            "client_id": redact(self.client_id),
            "client_secret": redact(self.client_secret),
            "llm_api_key": redact(self.llm_api_key),
            "playlist_id": self.playlist_id,
            "auth_flow": self.auth_flow,
            "redirect_uri": self.redirect_uri,
        }


# env var -> Settings field
REQUIRED_VARS = {
    "SPOTIFY_CLIENT_ID": "client_id",
    "SPOTIFY_CLIENT_SECRET": "client_secret",
    "LLM_API_KEY": "llm_api_key",
    "PLAYLIST_ID": "playlist_id",
}
REDIRECT_VAR = "SPOTIFY_REDIRECT_URI"
FLOW_VAR = "VIBEFILL_AUTH_FLOW"


def redact(value: str) -> str:
    if not value:
        return ""
    if len(value) <= 4:
        return "***"
    return value[:2] + "***" + value[-2:]


def required_vars(flow: str) -> List[str]:
    names = list(REQUIRED_VARS)
    if flow == AUTHORIZATION_CODE:
        names.append(REDIRECT_VAR)
    return names


def resolve_flow(env: Mapping[str, str], flow: Optional[str] = None) -> str:
    chosen = (flow or env.get(FLOW_VAR) or AUTHORIZATION_CODE).strip().lower()
    if chosen not in AUTH_FLOWS:
        raise ConfigError(
            f"Unknown auth flow '{chosen}'; expected one of: {', '.join(AUTH_FLOWS)}"
        )
    return chosen


def load_settings(
    env: Optional[Mapping[str, str]] = None,
    flow: Optional[str] = None,
) -> Settings:
    """
    Build Settings from the environment.

    Raises ConfigError naming every required variable that is unset or empty.
    """
    env = os.environ if env is None else env
    auth_flow = resolve_flow(env, flow)

    missing = [name for name in required_vars(auth_flow) if not env.get(name)]
    if missing:
        raise ConfigError(f"Missing required configuration: {', '.join(missing)}")

    values = {field: env[name] for name, field in REQUIRED_VARS.items()}
    return Settings(
        auth_flow=auth_flow,
        redirect_uri=env.get(REDIRECT_VAR) or None,
        **values,
    )


__all__ = [
    "AUTHORIZATION_CODE",
    "CLIENT_CREDENTIALS",
    "AUTH_FLOWS",
    "Settings",
    "load_env_file",
    "load_settings",
    "required_vars",
    "resolve_flow",
    "redact",
]
