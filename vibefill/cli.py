from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from spotify_extender import settings as engine_settings
from spotify_extender.errors import AuthError, ConfigError
from spotify_extender.spotify_auth import authenticator_from_settings, build_authorization_url
from spotify_extender.workflow import extend_playlist

COUNT_PROMPT = "Enter the number of songs you want to add to the playlist:"
CODE_PROMPT = "Enter the authorization code:"


def _load_env(args: argparse.Namespace) -> None:
    env_file = Path(args.env_file).expanduser() if args.env_file else engine_settings.DEFAULT_ENV_FILE
    engine_settings.load_env_file(env_file)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _read_count(value: str | None) -> int:
    if value is None:
        print(COUNT_PROMPT)
        value = input()
    try:
        count = int(value.strip())
    except ValueError:
        raise SystemExit(f"Please enter a valid number (got {value.strip()!r}).")
    if count < 1:
        raise SystemExit("The number of songs must be at least 1.")
    return count


def _prompt_for_code(auth_url: str) -> str:
    print(f"Go to this URL to authorize: {auth_url}")
    print(CODE_PROMPT)
    return input().strip()


def cmd_run(args: argparse.Namespace) -> int:
    _configure_logging(args.verbose)
    _load_env(args)
    try:
        settings = engine_settings.load_settings(flow=args.flow)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    count = _read_count(args.count)
    try:
        authenticator = authenticator_from_settings(settings, code_provider=_prompt_for_code)
        extend_playlist(settings, authenticator, count)
    except (ConfigError, AuthError) as exc:
        print(f"Authentication failed: {exc}", file=sys.stderr)
        return 1
    return 0


def cmd_auth_url(args: argparse.Namespace) -> int:
    _load_env(args)
    client_id = os.environ.get("SPOTIFY_CLIENT_ID")
    redirect_uri = os.environ.get(engine_settings.REDIRECT_VAR)
    if not client_id or not redirect_uri:
        print(f"SPOTIFY_CLIENT_ID and {engine_settings.REDIRECT_VAR} must be set.", file=sys.stderr)
        return 2
    print(build_authorization_url(client_id, redirect_uri))
    return 0


def cmd_doctor(args: argparse.Namespace) -> int:
    _load_env(args)
    try:
        flow = engine_settings.resolve_flow(os.environ, args.flow)
    except ConfigError as exc:
        print(str(exc))
        return 1

    print(f"Auth flow: {flow}")
    print("Env:")
    missing = []
    for key in engine_settings.required_vars(flow):
        val = os.environ.get(key)
        if not val:
            missing.append(key)
        status = "set" if val else "missing"
        print(f"  {key}: {status} ({engine_settings.redact(val or '')})")

    if missing:
        print(f"Missing required variables: {', '.join(missing)}")
        return 1
    return 0


def cmd_print_config(args: argparse.Namespace) -> int:
    _load_env(args)
    try:
        settings = engine_settings.load_settings(flow=args.flow)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2
    print("Settings (redacted where applicable):")
    print(json.dumps(settings.redacted(), indent=2))
    return 0


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="VibeFill: extend a Spotify playlist with LLM picks")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--env-file", help="Read KEY=VALUE pairs from this file (default: ./.env).")
        p.add_argument(
            "--flow",
            choices=engine_settings.AUTH_FLOWS,
            help=f"Override {engine_settings.FLOW_VAR} for this command.",
        )

    p_run = sub.add_parser("run", help="Suggest songs and append them to the playlist.")
    add_common(p_run)
    p_run.add_argument("--count", help="Number of songs to ask for (prompted if omitted).")
    p_run.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    p_run.set_defaults(func=cmd_run)

    p_url = sub.add_parser("auth-url", help="Print the Spotify authorization URL.")
    add_common(p_url)
    p_url.set_defaults(func=cmd_auth_url)

    p_doc = sub.add_parser("doctor", help="Check required environment variables.")
    add_common(p_doc)
    p_doc.set_defaults(func=cmd_doctor)

    p_print = sub.add_parser("print-config", help="Print resolved settings.")
    add_common(p_print)
    p_print.set_defaults(func=cmd_print_config)

    args = parser.parse_args(argv)
    code = args.func(args)
    sys.exit(code)


if __name__ == "__main__":
    main()
