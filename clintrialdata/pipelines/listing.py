"""
List the studies that can be downloaded from the release store.

Each successful call overwrites the offline snapshot under the cache root.
When the store cannot be reached, the last snapshot is returned instead, with
its ``cached`` column recomputed from the filesystem, a
:class:`~clintrialdata.utils.errors.StaleListingWarning`, and
``frame.attrs["stale"] = True``.  The fallback applies to this listing only;
single-study downloads never fall back.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import pandas as pd

from ..cache.listing import StaleListingCache
from ..config import load_config
from ..models import StudyListingEntry, StudyListingSnapshot, empty_listing_frame
from ..remote.catalog import GitHubReleaseCatalog, RemoteCatalog, normalize_assets
from ..utils.errors import CatalogUnreachable
from ..utils.paths import cache_dir

log = logging.getLogger(__name__)

_TRANSPORT_ERRORS = (OSError, ValueError)
_BYTES_PER_MB = 1024 * 1024


def _stale_frame(snapshot: StudyListingSnapshot) -> pd.DataFrame:
    frame = snapshot.to_frame()
    frame.attrs["stale"] = True
    return frame


def list_available_studies(
    repo: Optional[str] = None,
    *,
    catalog: Optional[RemoteCatalog] = None,
    cache_root: Optional[Path] = None,
) -> pd.DataFrame:
    """Return the studies published as release assets and their cache status.

    Args:
        repo: ``owner/repo``; defaults to the configured repository.
        catalog: Release store collaborator; defaults to GitHub.
        cache_root: Cache directory; defaults to
            :func:`~clintrialdata.utils.paths.cache_dir`.

    Returns:
        DataFrame with columns ``source`` (pass to ``download_study``),
        ``version`` (release tag), ``size_mb`` and ``cached``.

    Raises:
        CatalogUnreachable: The releases could not be fetched and no offline
            snapshot exists.
    """
    cfg = load_config() if (catalog is None or repo is None or cache_root is None) else None
    repo = repo or cfg.repo
    catalog = catalog if catalog is not None else GitHubReleaseCatalog.from_config(cfg)
    root = Path(cache_root) if cache_root is not None else cache_dir(cfg)
    snapshots = StaleListingCache(root)

    # --------------------------- releases -------------------------------- #
    try:
        releases = catalog.list_releases(repo)
    except _TRANSPORT_ERRORS as exc:
        stale = snapshots.load_with_refresh(
            f"Could not fetch releases from GitHub repo '{repo}'."
        )
        if stale is not None:
            return _stale_frame(stale)
        raise CatalogUnreachable(
            f"Could not fetch releases from GitHub repo '{repo}'.\n"
            "Check your internet connection and that the repo exists.\n"
            f"Details: {exc}"
        ) from exc

    if not releases:
        log.info("No releases found in repo '%s'.", repo)
        return empty_listing_frame()

    # ---------------------------- assets --------------------------------- #
    try:
        assets = normalize_assets(catalog.list_assets(repo))
    except _TRANSPORT_ERRORS as exc:
        log.debug("Asset listing failed for %s: %s", repo, exc)
        assets = []

    if not assets:
        stale = snapshots.load_with_refresh("Could not fetch asset listing from GitHub.")
        if stale is not None:
            return _stale_frame(stale)
        log.info("No dataset assets found in any release.")
        return empty_listing_frame()

    # One zip per study
    zips = [a for a in assets if a.file_name.endswith(".zip")]
    if not zips:
        log.info("No .zip study assets found in releases.")
        return empty_listing_frame()

    entries = []
    for asset in zips:
        source = asset.file_name[: -len(".zip")]
        entries.append(
            StudyListingEntry(
                source=source,
                version=asset.tag,
                size_mb=round(asset.size / _BYTES_PER_MB, 1),
                cached=(root / source).is_dir(),
            )
        )
    snapshot = StudyListingSnapshot(entries=entries)

    snapshots.save(snapshot)
    return snapshot.to_frame()


__all__ = ["list_available_studies"]
