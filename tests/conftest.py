from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path

import pytest

FIXED_NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

_SETTING_VARIABLES = (
    "DIROPDS_ROOT",
    "DIROPDS_TITLE",
    "DIROPDS_AUTHOR",
    "DIROPDS_AUTHOR_EMAIL",
    "DIROPDS_AUTHOR_URI",
    "DIROPDS_HOST",
    "DIROPDS_PORT",
    "DIROPDS_DEBUG",
    "DIROPDS_LOG_LEVEL",
    "DIROPDS_DATA",
)


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path_factory, monkeypatch):
    # Keep the developer's own config.json and environment out of the tests.
    settings_dir = tmp_path_factory.mktemp("settings")
    monkeypatch.setenv("DIROPDS_SETTINGS_DIR", str(settings_dir))
    for name in _SETTING_VARIABLES:
        monkeypatch.delenv(name, raising=False)
    return settings_dir


def write_book(path: Path, *, mtime: float | None = None, payload: bytes = b"book") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(payload)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def catalog_root(tmp_path) -> Path:
    """``a.epub`` at the root and ``sub/b.epub``, with ``b`` the newer file."""

    root = tmp_path / "books"
    root.mkdir()
    write_book(root / "a.epub", mtime=1_600_000_000)
    write_book(root / "sub" / "b.epub", mtime=1_700_000_000)
    return root


@pytest.fixture
def locked_directory(catalog_root):
    """``locked/`` under the catalog root, holding a book but with every permission removed."""

    if hasattr(os, "geteuid") and os.geteuid() == 0:
        pytest.skip("permission bits are not enforced for root")
    locked = catalog_root / "locked"
    write_book(locked / "hidden.epub")
    locked.chmod(0o000)
    yield locked
    locked.chmod(0o755)
