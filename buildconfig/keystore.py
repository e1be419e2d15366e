"""Android keystore resolution.

The keystore input is either a local file (file:// prefix) or a URL the
keystore is downloaded from. Either way the result is a filesystem path
that goes into the android section of build.json. The keystore itself is
never opened or checked.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

import requests

from buildconfig.errors import DownloadError, PathResolutionError

FILE_SCHEME = "file://"
KEYSTORE_FILENAME = "keystore.jks"
CHUNK_SIZE = 8192

_ENV_VAR = re.compile(r"\$(?:\{(\w+)\}|(\w+))")


def resolve_keystore(reference: str, scratch_dir: Path) -> Path:
    """Turn a keystore reference into an absolute path.

    Args:
        reference: Local file locator ("file://...") or remote URL.
        scratch_dir: Directory a remote keystore is downloaded into.

    Returns:
        Absolute path of the keystore.

    Raises:
        PathResolutionError: If a local path can't be resolved.
        DownloadError: If a remote keystore can't be fetched.
    """
    if reference.startswith(FILE_SCHEME):
        return local_keystore_path(reference[len(FILE_SCHEME):])

    return download_keystore(reference, scratch_dir / KEYSTORE_FILENAME)


def local_keystore_path(raw_path: str) -> Path:
    """Expand ~ and $VARS in a local path and make it absolute.

    The tilde is expanded first, then $VAR and ${VAR} are substituted;
    unset variables become empty strings. A ~ coming from a variable value
    is kept literally. Symlinks are left alone, so file:///tmp/a.jks stays
    /tmp/a.jks.
    """
    if not raw_path:
        raise PathResolutionError("Failed to expand path: empty keystore path")

    try:
        expanded = expand_env(os.path.expanduser(raw_path))
        return Path(os.path.abspath(expanded))
    except (OSError, ValueError) as exc:
        raise PathResolutionError(
            f"Failed to expand path ({raw_path}), error: {exc}"
        ) from exc


def expand_env(value: str) -> str:
    """Substitute $VAR and ${VAR} from os.environ, unset names as empty."""
    return _ENV_VAR.sub(
        lambda m: os.environ.get(m.group(1) or m.group(2), ""),
        value,
    )


def download_keystore(url: str, dest: Path) -> Path:
    """Download the keystore at `url` to `dest` with a single GET.

    No retries and no timeout: the step blocks until the transfer finishes
    or fails.

    Raises:
        DownloadError: On connection errors, non-2xx responses, or if the
                       destination can't be written.
    """
    try:
        with requests.get(url, stream=True) as resp:
            resp.raise_for_status()
            with open(dest, "wb") as f:
                for chunk in resp.iter_content(CHUNK_SIZE):
                    f.write(chunk)
    except requests.RequestException as exc:
        raise DownloadError(f"Failed to download keystore, error: {exc}") from exc
    except OSError as exc:
        raise DownloadError(
            f"Failed to write keystore to {dest}, error: {exc}"
        ) from exc

    return dest
