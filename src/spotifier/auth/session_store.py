"""
Session Store Module - Persist session cookies on disk.
=======================================================

The file holds a JSON object with at most two keys::

    {"portal": "laravel_session=...; XSRF-TOKEN=...", "identity_provider": "TGC=..."}
"""

import json
from pathlib import Path

from spotifier.auth.authenticator import COOKIE_SCOPES
from spotifier.shared.exceptions import ParsingError
from spotifier.shared.logging import get_logger
from spotifier.shared.utils import load_json, save_json

logger = get_logger(__name__)


def save_session(path: Path, cookies: dict[str, str]) -> None:
    """
    Write exported cookies to a JSON file.

    Args:
        path: Destination file (parent directories are created)
        cookies: Mapping from scope to cookie header string
    """
    payload = {scope: cookies[scope] for scope in COOKIE_SCOPES if cookies.get(scope)}
    save_json(Path(path), payload)
    logger.info(f"Saved session cookies to {path}")


def load_session(path: Path) -> dict[str, str]:
    """
    Read cookies written by :func:`save_session`.

    Returns:
        The cookie mapping; empty when the file does not exist

    Raises:
        ParsingError: If the file is not a valid session file
    """
    path = Path(path)
    if not path.exists():
        return {}

    try:
        data = load_json(path)
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ParsingError(f"Failed to read session file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ParsingError(f"Session file {path} does not contain an object")

    return {scope: str(data[scope]) for scope in COOKIE_SCOPES if data.get(scope)}


def delete_session(path: Path) -> bool:
    """Remove a session file. Returns True if a file was deleted."""
    path = Path(path)
    if path.exists():
        path.unlink()
        return True
    return False
