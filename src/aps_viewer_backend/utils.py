"""
Utility functions for naming remote storage resources.

This module provides helper functions for:
- Turning arbitrary strings into valid bucket keys
- Normalizing uploaded filenames into object keys
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath, PureWindowsPath

# Bucket keys must match [-_.a-z0-9]{3,128}
BUCKET_KEY_PATTERN = re.compile(r"[^a-z0-9._-]+")
BUCKET_KEY_MIN_LENGTH = 3
BUCKET_KEY_MAX_LENGTH = 128


def sanitize_bucket_key(name: str, fallback: str = "basic-app") -> str:
    """
    Generate a valid bucket key from a client id derived name.

    Args:
        name: The proposed bucket name
        fallback: Value used when nothing usable remains after sanitization

    Returns:
        A lowercase key of 3-128 characters using only [-_.a-z0-9]

    Example:
        >>> sanitize_bucket_key("AbC123-basic-app")
        "abc123-basic-app"
        >>> sanitize_bucket_key("!!")
        "basic-app"
    """
    cleaned = BUCKET_KEY_PATTERN.sub("-", name.strip().lower()).strip("-")
    if len(cleaned) < BUCKET_KEY_MIN_LENGTH:
        return fallback
    return cleaned[:BUCKET_KEY_MAX_LENGTH]


def object_key_from_filename(filename: str) -> str:
    """
    Strip any client-side directory components from an uploaded filename.

    Browsers normally send a bare name, but some clients send full local paths
    (with either separator).

    Example:
        >>> object_key_from_filename("C:\\\\models\\\\house.rvt")
        "house.rvt"
    """
    name = PureWindowsPath(PurePosixPath(filename).name).name
    return name.strip()
