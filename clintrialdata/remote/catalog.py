"""
Remote catalog of study releases.

The rest of the package never calls the network directly; it talks to an
object implementing the :class:`RemoteCatalog` protocol:

* ``list_releases(repo)`` → newest-first :class:`~clintrialdata.models.Release`
  records;
* ``list_assets(repo, tag=None)`` → :class:`~clintrialdata.models.Asset`
  records, optionally restricted to one release;
* ``download_asset(file_name, dest, repo, tag)`` → path of the downloaded file.

:class:`GitHubReleaseCatalog` is the production implementation on top of the
GitHub REST API.  Tests supply their own fakes.

Upstream listings name the version column either ``tag`` or ``tag_name``.
:func:`normalize_assets` and :func:`normalize_releases` fold both spellings into
the single ``tag`` field right here at the boundary.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Protocol, runtime_checkable

from ..config import ConfigSchema
from ..models import Asset, Release
from .client import github_get, stream_to_file

log = logging.getLogger(__name__)

LATEST = "latest"


@runtime_checkable
class RemoteCatalog(Protocol):
    """Capability interface for the release store."""

    def list_releases(self, repo: str) -> list[Release]: ...

    def list_assets(self, repo: str, tag: Optional[str] = None) -> list[Asset]: ...

    def download_asset(self, file_name: str, dest: Path, repo: str, tag: str) -> Path: ...


# --------------------------------------------------------------------------- #
# Normalisation                                                               #
# --------------------------------------------------------------------------- #
def normalize_assets(rows: Iterable[Asset | Mapping[str, Any]]) -> list[Asset]:
    """Return :class:`Asset` records from raw rows using ``tag`` or ``tag_name``."""
    return [r if isinstance(r, Asset) else Asset.model_validate(dict(r)) for r in rows]


def normalize_releases(rows: Iterable[Release | Mapping[str, Any]]) -> list[Release]:
    """Return :class:`Release` records from raw rows using ``tag`` or ``tag_name``."""
    return [r if isinstance(r, Release) else Release.model_validate(dict(r)) for r in rows]


def assets_for_version(assets: Iterable[Asset], version: str) -> list[Asset]:
    """Return the assets that belong to release *version*."""
    return [a for a in assets if a.tag == version]


# --------------------------------------------------------------------------- #
# GitHub implementation                                                       #
# --------------------------------------------------------------------------- #
class GitHubReleaseCatalog:
    """:class:`RemoteCatalog` backed by the GitHub REST API.

    Args:
        api_url: Root of the REST API.
        token: Optional token; raises rate limits and reaches private repos.
        timeout: Per-request timeout in seconds.
        per_page: Page size used when listing releases.
    """

    def __init__(
        self,
        api_url: str = "https://api.github.com",
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        per_page: int = 100,
    ):
        self.api_url = api_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.per_page = per_page

    @classmethod
    def from_config(cls, cfg: ConfigSchema) -> "GitHubReleaseCatalog":
        """Build a catalog from a validated configuration."""
        return cls(api_url=cfg.api_url, token=cfg.token, timeout=cfg.timeout)

    def __repr__(self) -> str:
        return f"GitHubReleaseCatalog(api_url={self.api_url!r})"

    # ------------------------------------------------------------------ #
    # raw API                                                            #
    # ------------------------------------------------------------------ #
    def _get_json(self, endpoint: str, params: Optional[dict] = None) -> Any:
        url = f"{self.api_url}/{endpoint.lstrip('/')}"
        log.debug("GET %s", url)
        return github_get(url, self.token, params, timeout=self.timeout).json()

    def _raw_releases(self, repo: str) -> list[dict]:
        releases: list[dict] = []
        page = 1
        while True:
            batch = self._get_json(
                f"repos/{repo}/releases", {"per_page": self.per_page, "page": page}
            )
            releases.extend(batch)
            if len(batch) < self.per_page:
                return releases
            page += 1

    def _raw_release(self, repo: str, tag: str) -> dict:
        if tag == LATEST:
            return self._get_json(f"repos/{repo}/releases/latest")
        return self._get_json(f"repos/{repo}/releases/tags/{tag}")

    # ------------------------------------------------------------------ #
    # RemoteCatalog                                                      #
    # ------------------------------------------------------------------ #
    def list_releases(self, repo: str) -> list[Release]:
        """Return the repository's releases, newest first."""
        return normalize_releases(self._raw_releases(repo))

    def list_assets(self, repo: str, tag: Optional[str] = None) -> list[Asset]:
        """Return assets across all releases, or only those of *tag*."""
        rows = [
            {"file_name": a["name"], "size": a.get("size", 0), "tag_name": rel["tag_name"]}
            for rel in self._raw_releases(repo)
            for a in rel.get("assets", [])
        ]
        assets = normalize_assets(rows)
        return assets_for_version(assets, tag) if tag is not None else assets

    def download_asset(self, file_name: str, dest: Path, repo: str, tag: str) -> Path:
        """Download *file_name* from release *tag* (``"latest"`` allowed) into *dest*.

        Raises:
            FileNotFoundError: The release carries no such asset.
            requests.exceptions.RequestException: Transport failure.
        """
        release = self._raw_release(repo, tag)
        asset = next((a for a in release.get("assets", []) if a["name"] == file_name), None)
        if asset is None:
            raise FileNotFoundError(
                f"Asset {file_name!r} not attached to release {release.get('tag_name', tag)!r}"
            )

        # The API asset URL honours the token; the browser URL works anonymously.
        url = asset["url"] if self.token else asset["browser_download_url"]
        dest = Path(dest)
        dest.mkdir(parents=True, exist_ok=True)
        target = dest / file_name
        log.info("Downloading %s (%s bytes) → %s", file_name, asset.get("size", "?"), target)
        return stream_to_file(url, target, self.token, timeout=self.timeout)


__all__ = [
    "LATEST",
    "RemoteCatalog",
    "GitHubReleaseCatalog",
    "normalize_assets",
    "normalize_releases",
    "assets_for_version",
]
