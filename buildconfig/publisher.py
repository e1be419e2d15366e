"""build.json persistence and pipeline handoff.

The document is written unredacted: the Cordova CLI needs the real
passwords. The absolute path of the file is then exported with envman so
later steps can pass it to `cordova build --buildConfig`.
"""

from __future__ import annotations

import contextlib
import json
import os
import shutil
import subprocess
import tempfile
from pathlib import Path

from buildconfig.errors import PersistenceError, PublishError, SerializationError
from buildconfig.models import BuildConfiguration

BUILD_CONFIG_FILENAME = "build.json"
OUTPUT_KEY = "BITRISE_CORDOVA_BUILD_CONFIGURATION"


def serialize(document: BuildConfiguration) -> bytes:
    """Encode the unredacted document as indented UTF-8 JSON.

    Key order is fixed (android, ios; fields in declaration order), so the
    same inputs always produce the same bytes.

    Raises:
        SerializationError: If the payload can't be encoded.
    """
    try:
        text = json.dumps(document.to_payload(reveal=True), indent=2, ensure_ascii=False)
        return text.encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Failed to marshal build config, error: {exc}") from exc


def write_document(data: bytes, scratch_dir: Path) -> Path:
    """Write build.json into `scratch_dir`.

    The bytes go to a temporary file in the same directory first and are
    renamed into place, so a reader never sees a partial file.

    Returns:
        Absolute path of the written build.json.

    Raises:
        PersistenceError: If the file can't be written.
    """
    config_path = (scratch_dir / BUILD_CONFIG_FILENAME).absolute()
    tmp_name: str | None = None

    try:
        with tempfile.NamedTemporaryFile(
            dir=config_path.parent,
            prefix=".build-",
            suffix=".json",
            delete=False,
        ) as tmp:
            tmp_name = tmp.name
            tmp.write(data)
        os.replace(tmp_name, config_path)
    except OSError as exc:
        if tmp_name is not None:
            with contextlib.suppress(OSError):
                Path(tmp_name).unlink(missing_ok=True)
        raise PersistenceError(
            f"Failed to write {BUILD_CONFIG_FILENAME} file, error: {exc}"
        ) from exc

    return config_path


def export_output(key: str, value: str) -> None:
    """Publish `key=value` to the pipeline environment via envman.

    Raises:
        PublishError: If envman is missing or exits non-zero.
    """
    if shutil.which("envman") is None:
        raise PublishError(
            f"Failed to export {key}: required tool 'envman' not found in PATH"
        )

    try:
        subprocess.run(
            ["envman", "add", "--key", key],
            input=value,
            check=True,
            capture_output=True,
            text=True,
        )
    except (OSError, subprocess.CalledProcessError) as exc:
        detail = getattr(exc, "stderr", None) or exc
        raise PublishError(f"Failed to export {key}, error: {detail}") from exc
