"""Tests for keystore resolution: local paths and remote downloads."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Iterator

import pytest
import requests

from buildconfig.errors import DownloadError, PathResolutionError
from buildconfig.keystore import (
    KEYSTORE_FILENAME,
    download_keystore,
    local_keystore_path,
    resolve_keystore,
)


class _FakeResponse:
    """Minimal stand-in for a streamed requests.Response."""

    def __init__(self, body: bytes, status_code: int = 200) -> None:
        self.body: bytes = body
        self.status_code: int = status_code
        self.closed: bool = False

    def __enter__(self) -> _FakeResponse:
        return self

    def __exit__(self, *exc: object) -> None:
        self.closed = True

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def iter_content(self, chunk_size: int) -> Iterator[bytes]:
        for i in range(0, len(self.body), chunk_size):
            yield self.body[i : i + chunk_size]


def _no_network(*args: Any, **kwargs: Any) -> None:
    raise AssertionError("network access not expected")


class TestLocalKeystore:
    """Test file:// references."""

    def test_absolute_file_url(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(requests, "get", _no_network)
        result = resolve_keystore("file:///tmp/a.jks", tmp_path)
        assert result == Path("/tmp/a.jks")
        assert result.is_absolute()

    def test_relative_path_uses_working_directory(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        result = resolve_keystore("file://keys/release.jks", tmp_path / "scratch")
        assert result == Path(os.getcwd()) / "keys" / "release.jks"

    def test_dot_segments_collapsed(self) -> None:
        assert local_keystore_path("/tmp/keys/../a.jks") == Path("/tmp/a.jks")

    def test_home_directory_expanded(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HOME", str(tmp_path))
        assert resolve_keystore("file://~/a.jks", tmp_path) == tmp_path / "a.jks"

    def test_environment_variable_expanded(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KEYSTORE_DIR", "/opt/keys")
        assert local_keystore_path("$KEYSTORE_DIR/a.jks") == Path("/opt/keys/a.jks")

    def test_empty_path_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(PathResolutionError):
            resolve_keystore("file://", tmp_path)

    def test_file_is_not_required_to_exist(self, tmp_path: Path) -> None:
        missing = tmp_path / "missing.jks"
        assert resolve_keystore(f"file://{missing}", tmp_path) == missing


class TestRemoteKeystore:
    """Test downloads of remote keystores."""

    def test_download_writes_body_to_scratch(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        body = os.urandom(20000)
        calls: list[tuple[str, dict[str, Any]]] = []

        def fake_get(url: str, **kwargs: Any) -> _FakeResponse:
            calls.append((url, kwargs))
            return _FakeResponse(body)

        monkeypatch.setattr(requests, "get", fake_get)

        result = resolve_keystore("https://example.com/a.jks", tmp_path)

        assert result == tmp_path / KEYSTORE_FILENAME
        assert result.read_bytes() == body
        assert len(calls) == 1
        assert calls[0][0] == "https://example.com/a.jks"
        assert calls[0][1]["stream"] is True

    def test_response_closed_after_download(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        response = _FakeResponse(b"keystore")
        monkeypatch.setattr(requests, "get", lambda url, **kw: response)
        download_keystore("https://example.com/a.jks", tmp_path / "k.jks")
        assert response.closed is True

    def test_http_error_status(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        response = _FakeResponse(b"not found", status_code=404)
        monkeypatch.setattr(requests, "get", lambda url, **kw: response)

        with pytest.raises(DownloadError, match="404"):
            resolve_keystore("https://example.com/a.jks", tmp_path)
        assert response.closed is True

    def test_connection_error(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        def fail(url: str, **kwargs: Any) -> None:
            raise requests.ConnectionError("connection refused")

        monkeypatch.setattr(requests, "get", fail)

        with pytest.raises(DownloadError, match="connection refused"):
            resolve_keystore("https://example.com/a.jks", tmp_path)

    def test_no_retry_after_failure(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        attempts: list[str] = []

        def fail(url: str, **kwargs: Any) -> None:
            attempts.append(url)
            raise requests.Timeout("timed out")

        monkeypatch.setattr(requests, "get", fail)

        with pytest.raises(DownloadError):
            resolve_keystore("https://example.com/a.jks", tmp_path)
        assert len(attempts) == 1

    def test_unwritable_destination(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        response = _FakeResponse(b"keystore")
        monkeypatch.setattr(requests, "get", lambda url, **kw: response)

        with pytest.raises(DownloadError, match="Failed to write keystore"):
            resolve_keystore("https://example.com/a.jks", tmp_path / "missing-dir")
        assert response.closed is True


class TestLocalKeystoreExpansion:
    """Test ~ and $VAR expansion order and unset variables."""

    def test_unset_variable_becomes_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("KEYSTORE_UNSET_DIR", raising=False)
        assert local_keystore_path("$KEYSTORE_UNSET_DIR/a.jks") == Path("/a.jks")

    def test_braced_variable_expanded(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KEYSTORE_DIR", "/opt/keys")
        assert local_keystore_path("${KEYSTORE_DIR}/a.jks") == Path("/opt/keys/a.jks")

    def test_tilde_in_variable_value_kept(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """~ is expanded before variables, so one coming from a value stays literal."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", "/home/builder")
        monkeypatch.setenv("KEYSTORE_DIR", "~/keys")

        result = local_keystore_path("$KEYSTORE_DIR/a.jks")

        assert result == Path(os.getcwd()) / "~" / "keys" / "a.jks"

    def test_tilde_then_variable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HOME", "/home/builder")
        monkeypatch.setenv("KEYSTORE_NAME", "release.jks")
        assert local_keystore_path("~/$KEYSTORE_NAME") == Path("/home/builder/release.jks")
