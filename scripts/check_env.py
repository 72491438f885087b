"""Verify the gateway's environment configuration before (re)starting it.

Checks performed:

1. ``AppSettings`` loads from the given ``.env`` file.
2. The Spotify client id, secret and redirect URI are present, and the
   selected credential backend has what it needs. Without these the
   service starts but every login or token refresh fails.
3. Optionally, a checksum of the ``.env`` file is recorded or verified so
   unexpected edits are caught.

Example usages::

    # Validate settings and record the expected checksum.
    python -m scripts.check_env record --env-file /opt/spotify-gateway/.env \
        --hash-file /opt/spotify-gateway/.env.sha256

    # Run later (e.g. from cron/systemd) to alert on drift.
    python -m scripts.check_env verify --env-file /opt/spotify-gateway/.env \
        --hash-file /opt/spotify-gateway/.env.sha256
"""

from __future__ import annotations

import argparse
import hashlib
import sys
from pathlib import Path
from typing import Callable

from pydantic import ValidationError

from app.core.config import AppSettings, _load_env_file

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_RUNTIME_ERROR = 5


class ConfigurationProblem(Exception):
    """Settings load but cannot support login, refresh or storage."""

    def __init__(self, problems: list[str]) -> None:
        super().__init__("; ".join(problems))
        self.problems = problems


def _compute_hash(env_file: Path) -> str:
    return hashlib.sha256(env_file.read_bytes()).hexdigest()


def _find_problems(settings: AppSettings) -> list[str]:
    problems: list[str] = []
    spotify = settings.spotify
    if not spotify.client_id:
        problems.append("SPOTIFY_CLIENT_ID is not set")
    if not spotify.client_secret:
        problems.append("SPOTIFY_CLIENT_SECRET is not set")
    if not spotify.redirect_uri:
        problems.append("SPOTIFY_REDIRECT_URI is not set")
    if settings.storage.backend == "dynamodb" and not settings.storage.dynamodb_table_name:
        problems.append("DYNAMODB_TABLE_NAME is required when CREDENTIAL_STORE_BACKEND=dynamodb")
    return problems


def _validate_settings(env_file: Path) -> AppSettings:
    """Load settings from ``env_file`` and check the Spotify/storage essentials."""
    _load_env_file(str(env_file))
    settings = AppSettings()  # type: ignore[call-arg]
    problems = _find_problems(settings)
    if problems:
        raise ConfigurationProblem(problems)
    return settings


def _record_checksum(env_file: Path, hash_file: Path) -> int:
    checksum = _compute_hash(env_file)
    hash_file.write_text(f"{checksum}\n", encoding="utf-8")
    print(f"Recorded checksum to {hash_file} ({checksum})")
    return EXIT_OK


def _verify_checksum(env_file: Path, hash_file: Path) -> int:
    """Compare the current checksum to the recorded baseline."""
    if not hash_file.exists():
        print(
            f"Expected checksum file {hash_file} is missing. "
            "Re-run with the 'record' command to establish a baseline.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    expected = hash_file.read_text(encoding="utf-8").strip()
    actual = _compute_hash(env_file)
    if expected == actual:
        print("Environment checksum OK.")
        return EXIT_OK

    print(
        "Environment checksum mismatch!\n"
        f"  expected: {expected}\n"
        f"  actual:   {actual}\n"
        "Investigate recent changes before restarting the gateway.",
        file=sys.stderr,
    )
    return EXIT_CHECKSUM_ERROR


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate gateway settings and detect .env drift."
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        type=Path,
        help="Path to the environment file (default: .env in the repo root).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("record", "Validate settings and store the checksum baseline."),
        ("verify", "Validate settings and compare the checksum with the baseline."),
    ):
        subparser = subparsers.add_parser(name, help=help_text)
        subparser.add_argument(
            "--hash-file",
            required=True,
            type=Path,
            help="Location of the checksum baseline.",
        )

    subparsers.add_parser("check", help="Validate settings only.")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    env_file: Path = args.env_file

    if not env_file.exists():
        print(
            f"Environment file {env_file} does not exist. "
            "Ensure the path is correct or create it before running this tool.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    try:
        settings = _validate_settings(env_file)
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR
    except ConfigurationProblem as exc:
        print("Gateway configuration is incomplete:", file=sys.stderr)
        for problem in exc.problems:
            print(f"  - {problem}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR
    except Exception as exc:  # pylint: disable=broad-except
        print(f"Unexpected error during validation: {exc}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    print(f"Settings OK (environment={settings.environment}, store={settings.storage.backend}).")

    handlers: dict[str, Callable[[], int]] = {
        "record": lambda: _record_checksum(env_file, args.hash_file),
        "verify": lambda: _verify_checksum(env_file, args.hash_file),
        "check": lambda: EXIT_OK,
    }
    return handlers[args.command]()


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
