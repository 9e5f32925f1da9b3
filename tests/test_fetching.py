"""Tests for the idempotent, atomic archive fetcher."""

import pytest

from errors import FilesystemError, NetworkError
from fetching import fetch


def test_fetch_downloads_to_dest(tmp_path):
    src = tmp_path / "mirror" / "foo.deb"
    src.parent.mkdir()
    src.write_bytes(b"payload")
    dest = tmp_path / "cache" / "deep" / "foo.deb"

    assert fetch(src.as_uri(), dest) is True
    assert dest.read_bytes() == b"payload"
    assert not dest.with_name("foo.deb.tmp").exists()


def test_fetch_is_a_noop_when_dest_exists(tmp_path):
    dest = tmp_path / "foo.deb"
    dest.write_bytes(b"old")

    # The URL is never consulted on a cache hit.
    assert fetch((tmp_path / "does-not-exist").as_uri(), dest) is False
    assert dest.read_bytes() == b"old"


def test_fetch_failure_leaves_nothing_behind(tmp_path):
    dest = tmp_path / "cache" / "foo.deb"

    with pytest.raises(NetworkError):
        fetch((tmp_path / "missing.deb").as_uri(), dest)

    assert not dest.exists()
    assert not dest.with_name("foo.deb.tmp").exists()


def test_fetch_reports_uncreatable_directory(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")

    with pytest.raises(FilesystemError):
        fetch((tmp_path / "whatever").as_uri(), blocker / "sub" / "foo.deb")
