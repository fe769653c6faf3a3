"""
Utilities Module - Common helper functions.
==========================================

Provides utility functions for:
- Hashing (short stable digests for cache file names)
- File I/O (JSON, atomic writes)
- Directory management
- Text and URL helpers shared by the extractors
"""

import hashlib
import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlparse

from spotifier.shared.logging import get_logger

logger = get_logger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Hashing Functions
# ─────────────────────────────────────────────────────────────────────────────


def compute_hash(text: str, algorithm: str = "sha256") -> str:
    """
    Compute hash of text content.

    Args:
        text: Text to hash
        algorithm: Hash algorithm (default: sha256)

    Returns:
        Hexadecimal hash string
    """
    hasher = hashlib.new(algorithm)
    hasher.update(text.encode("utf-8"))
    return hasher.hexdigest()


# ─────────────────────────────────────────────────────────────────────────────
# Directory Management
# ─────────────────────────────────────────────────────────────────────────────


def ensure_directory(path: Path) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path

    Returns:
        The path (for chaining)
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def ensure_parent_directory(file_path: Path) -> Path:
    """Ensure the parent directory of a file exists."""
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    return file_path


# ─────────────────────────────────────────────────────────────────────────────
# File I/O
# ─────────────────────────────────────────────────────────────────────────────


def atomic_write_text(file_path: Path, text: str) -> None:
    """
    Write text so that readers see either the old file or the new one.

    The content goes to a uniquely named temporary file in the target
    directory, which is then renamed over the destination.

    Raises:
        OSError: If the write or the rename fails (the temporary file is removed)
    """
    file_path = Path(file_path)
    ensure_parent_directory(file_path)

    fd, tmp_name = tempfile.mkstemp(dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_name, file_path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def load_json(file_path: Path) -> Any:
    """
    Load data from a JSON file.

    Raises:
        FileNotFoundError: If file doesn't exist
        json.JSONDecodeError: If file is not valid JSON
    """
    with open(Path(file_path), "r", encoding="utf-8") as f:
        return json.load(f)


def save_json(file_path: Path, data: Any, indent: int = 2) -> None:
    """
    Save data to a JSON file atomically.

    Args:
        file_path: Path to JSON file
        data: Data to save (must be JSON serializable)
        indent: Indentation level (default: 2)
    """
    atomic_write_text(Path(file_path), json.dumps(data, indent=indent, ensure_ascii=False, default=str))
    logger.debug(f"Saved JSON to {file_path}")


# ─────────────────────────────────────────────────────────────────────────────
# Text Utilities
# ─────────────────────────────────────────────────────────────────────────────


def clean_whitespace(text: str) -> str:
    """Collapse runs of whitespace into single spaces and strip the ends."""
    return re.sub(r"\s+", " ", text).strip()


def extract_trailing_id(href: Optional[str]) -> Optional[int]:
    """
    Extract the trailing numeric path segment of a link.

    Example:
        >>> extract_trailing_id("/mhs/dashboard/2510009532")
        2510009532
    """
    if not href:
        return None
    path = urlparse(href).path.rstrip("/")
    match = re.search(r"/(\d+)$", path)
    return int(match.group(1)) if match else None


def url_path(href: str) -> str:
    """Return only the path of a relative or absolute link."""
    return urlparse(href).path or "/"
