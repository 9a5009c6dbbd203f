"""Configuration utilities for deltasharing.

This module loads credential profiles, parses table URLs, and resolves the
default cache location.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from deltasharing.core.exceptions import InvalidArgumentError, ProfileError
from deltasharing.core.models import Profile, Table


logger = logging.getLogger(__name__)

SUPPORTED_CREDENTIALS_VERSION = 1

PROFILE_ENV_VAR = "DELTA_SHARING_PROFILE"
CACHE_DIR_ENV_VAR = "DELTA_SHARING_CACHE_DIR"


def load_profile(path: Path | str) -> Profile:
    """Load a profile file.

    A profile file is a JSON object such as::

        {
          "shareCredentialsVersion": 1,
          "endpoint": "https://sharing.example.com/delta-sharing/",
          "bearerToken": "<token>"
        }

    Args:
        path: Path to the profile file.

    Returns:
        The loaded Profile.

    Raises:
        ProfileError: If the file is missing, not valid JSON, lacks a
            required field, has a field of the wrong type, or uses an
            unsupported credentials version.
    """
    path = Path(path).expanduser()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ProfileError(f"Profile file not found: {path}", path=str(path), cause=e) from e
    except OSError as e:
        raise ProfileError(f"Cannot read profile file: {path}", path=str(path), cause=e) from e
    except json.JSONDecodeError as e:
        raise ProfileError(
            f"Profile file is not valid JSON (line {e.lineno}): {path}",
            path=str(path),
            cause=e,
        ) from e

    if not isinstance(data, dict):
        raise ProfileError(f"Profile file must hold a JSON object: {path}", path=str(path))

    try:
        profile = Profile.from_json(data)
    except KeyError as e:
        raise ProfileError(
            f"Profile file is missing field {e}: {path}", path=str(path), cause=e
        ) from e
    except (TypeError, ValueError) as e:
        raise ProfileError(
            f"Profile file has a field of the wrong type: {path}", path=str(path), cause=e
        ) from e
    except InvalidArgumentError as e:
        raise ProfileError(f"{e.message}: {path}", path=str(path), cause=e) from e

    if profile.share_credentials_version > SUPPORTED_CREDENTIALS_VERSION:
        raise ProfileError(
            f"Profile credentials version {profile.share_credentials_version} "
            f"is not supported (max {SUPPORTED_CREDENTIALS_VERSION}): {path}",
            path=str(path),
        )
    if profile.is_expired():
        logger.warning(
            "Profile token expired at %s; the server will likely reject it: %s",
            profile.expiration_time,
            path,
        )
    return profile


def parse_table_url(url: str) -> tuple[str, Table]:
    """Split a table URL into profile path and table.

    The format is ``<profile-file-path>#<share>.<schema>.<table>``; the
    last '#' separates the two parts.

    Raises:
        InvalidArgumentError: If the URL does not have that shape.

    Example:
        >>> profile, table = parse_table_url("config.share#sales.default.orders")
        >>> profile, table.coordinate
        ('config.share', 'sales.default.orders')
    """
    profile, sep, coordinate = url.rpartition("#")
    if not sep or not profile.strip():
        raise InvalidArgumentError(
            f"Invalid table URL '{url}', expected "
            "'<profile-file-path>#<share>.<schema>.<table>'"
        )
    return profile.strip(), Table.parse(coordinate)


def find_project_root(start: Path | None = None) -> Path:
    """Find the project root directory by walking up from start directory.

    Searches for marker files in the following priority order:
    1. .deltasharing - Explicit project marker
    2. pyproject.toml - Python project root
    3. .git - Version control root

    Args:
        start: Directory to start searching from. If None, uses current directory.

    Returns:
        Path to project root directory. Returns start directory if no markers found.
    """
    if start is None:
        start = Path.cwd()

    markers = [".deltasharing", "pyproject.toml", ".git"]
    current = start.resolve()

    for parent in [current, *current.parents]:
        for marker in markers:
            if (parent / marker).exists():
                return parent

    return current


def default_cache_dir(start: Path | None = None) -> Path:
    """Return the directory for cached data files.

    Uses $DELTA_SHARING_CACHE_DIR when set, otherwise
    ``<project root>/.deltasharing/cache``.
    """
    env_dir = os.environ.get(CACHE_DIR_ENV_VAR)
    if env_dir:
        return Path(env_dir).expanduser()
    return find_project_root(start) / ".deltasharing" / "cache"
