"""Pytest configuration for clintrialdata tests.

Every test runs against a private cache, log and config location under
``tmp_path`` and a fresh process-wide lock registry.  Network access is never
needed: remote behaviour is driven by :class:`FakeCatalog`.
"""

from __future__ import annotations

import io
import os
import zipfile
from pathlib import Path
from typing import Iterable, Mapping, Optional

import pytest
import requests

from clintrialdata.config import loader as config_loader
from clintrialdata.locking.registry import reset_registry
from clintrialdata.models import Asset, Release
from clintrialdata.remote.catalog import assets_for_version, normalize_assets, normalize_releases


# --------------------------------------------------------------------------- #
# Fakes and builders                                                          #
# --------------------------------------------------------------------------- #
class FakeCatalog:
    """In-memory :class:`~clintrialdata.remote.RemoteCatalog`.

    Args:
        releases: Release rows, newest first (``tag`` or ``tag_name``).
        assets: Asset rows (``file_name``/``name``, ``size``, ``tag``/``tag_name``).
        payloads: Bytes written by :meth:`download_asset`, keyed by file name.
        fail: Operation names that raise a transport error.
        silent: File names whose download "succeeds" without writing a file.
    """

    def __init__(
        self,
        releases: Iterable[Mapping] = (),
        assets: Iterable[Mapping] = (),
        payloads: Optional[Mapping[str, bytes]] = None,
        fail: Iterable[str] = (),
        silent: Iterable[str] = (),
    ):
        self.releases = list(releases)
        self.assets = list(assets)
        self.payloads = dict(payloads or {})
        self.fail = set(fail)
        self.silent = set(silent)
        self.calls: list[tuple] = []

    def _record(self, *call) -> None:
        self.calls.append(call)
        if call[0] in self.fail:
            raise requests.exceptions.ConnectionError(f"{call[0]}: network unreachable")

    def calls_to(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]

    def list_releases(self, repo: str) -> list[Release]:
        self._record("list_releases", repo)
        return normalize_releases(self.releases)

    def list_assets(self, repo: str, tag: Optional[str] = None) -> list[Asset]:
        self._record("list_assets", repo, tag)
        assets = normalize_assets(self.assets)
        return assets_for_version(assets, tag) if tag is not None else assets

    def download_asset(self, file_name: str, dest: Path, repo: str, tag: str) -> Path:
        self._record("download_asset", file_name, repo, tag)
        target = Path(dest) / file_name
        if file_name in self.silent:
            return target
        if file_name not in self.payloads:
            raise FileNotFoundError(file_name)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(self.payloads[file_name])
        return target


def make_study_zip(
    source: str,
    files: Optional[Mapping[str, str]] = None,
    root: Optional[str] = None,
) -> bytes:
    """Return the bytes of a study archive laid out as ``<root>/<relpath>``."""
    files = files or {"adam/adsl.csv": "USUBJID,AGE\n01-001,63\n01-002,71\n"}
    top = source if root is None else root
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for rel, text in files.items():
            zf.writestr(f"{top}/{rel}" if top else rel, text)
    return buf.getvalue()


def _relax_tree(root: Path) -> None:
    """Restore write access so pytest can delete hardened study trees."""
    if not root.exists():
        return
    for current, dirs, files in os.walk(root):
        os.chmod(current, 0o755)
        for d in dirs:
            p = Path(current) / d
            if not p.is_symlink():
                os.chmod(p, 0o755)
        for f in files:
            p = Path(current) / f
            if not p.is_symlink():
                os.chmod(p, 0o644)


# --------------------------------------------------------------------------- #
# Fixtures                                                                    #
# --------------------------------------------------------------------------- #
@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Point cache, logs and configuration at *tmp_path*."""
    monkeypatch.setenv("CLINTRIALDATA_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.setenv("CLINTRIALDATA_LOG_DIR", str(tmp_path / "logs"))
    for var in (
        "CLINTRIALDATA_CONFIG",
        "CLINTRIALDATA_REPO",
        "CLINTRIALDATA_TIMEOUT",
        "GITHUB_TOKEN",
        "GITHUB_PAT",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(config_loader, "_user_config", lambda: tmp_path / "user-config.yaml")

    reset_registry()
    yield
    reset_registry()
    _relax_tree(tmp_path)


@pytest.fixture
def cache_root(tmp_path: Path) -> Path:
    """The cache directory used by the current test (not created)."""
    return tmp_path / "cache"


@pytest.fixture
def study_zip():
    """Builder for in-memory study archives."""
    return make_study_zip


@pytest.fixture
def catalog_factory():
    """Builder for :class:`FakeCatalog` instances."""
    return FakeCatalog
