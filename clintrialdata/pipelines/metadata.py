"""
Study metadata: parsing ``metadata.json`` and the ``dataset_info`` lookup.

``dataset_info`` resolves metadata without downloading the study itself:

1. ``<cache root>/<source>/metadata.json`` (works offline);
2. the bundled ``exampledata/<source>/metadata.json``;
3. the small ``<source>_metadata.json`` asset attached to a release.
"""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError

from ..config import load_config
from ..models import StudyMetadata
from ..remote.catalog import GitHubReleaseCatalog, RemoteCatalog, normalize_assets
from ..utils.display import render_dataset_info
from ..utils.errors import (
    AssetNotFound,
    CatalogUnreachable,
    DownloadFailed,
    MalformedMetadataJSON,
    NoReleasesFound,
)
from ..utils.paths import bundled_data_root, cache_dir

log = logging.getLogger(__name__)

METADATA_FILE = "metadata.json"
_TRANSPORT_ERRORS = (OSError, ValueError)


def parse_metadata(text: str, origin: str = "<string>") -> StudyMetadata:
    """Parse and validate a metadata JSON document.

    Raises:
        MalformedMetadataJSON: Invalid JSON, a non-object document, or a
            document without a usable ``source`` field.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedMetadataJSON(f"Failed to parse metadata JSON from {origin}: {exc}") from exc
    if not isinstance(data, dict):
        raise MalformedMetadataJSON(f"Metadata JSON from {origin} is not an object")
    try:
        return StudyMetadata.model_validate(data)
    except ValidationError as exc:
        raise MalformedMetadataJSON(f"Invalid metadata in {origin}: {exc}") from exc


def load_metadata(path: Path) -> StudyMetadata:
    """Read and validate the metadata file at *path*.

    Raises:
        MalformedMetadataJSON: The file is not UTF-8 or fails
            :func:`parse_metadata`.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedMetadataJSON(f"Metadata file {path} is not valid UTF-8: {exc}") from exc
    return parse_metadata(text, origin=str(path))


def local_metadata_path(source: str, cache_root: Path) -> Optional[Path]:
    """Return the cached or bundled ``metadata.json`` for *source*, if any."""
    for candidate in (cache_root / source / METADATA_FILE, bundled_data_root() / source / METADATA_FILE):
        if candidate.is_file():
            return candidate
    return None


def fetch_remote_metadata(source: str, repo: str, catalog: RemoteCatalog) -> StudyMetadata:
    """Download ``<source>_metadata.json`` from whichever release carries it."""
    try:
        releases = catalog.list_releases(repo)
    except _TRANSPORT_ERRORS as exc:
        raise CatalogUnreachable(f"Could not reach GitHub: {exc}") from exc
    if not releases:
        raise NoReleasesFound(f"No releases found in repo '{repo}'.")

    asset_name = f"{source}_metadata.json"
    try:
        assets = normalize_assets(catalog.list_assets(repo))
    except _TRANSPORT_ERRORS as exc:
        log.debug("Asset listing failed for %s: %s", repo, exc)
        assets = []

    asset = next((a for a in assets if a.file_name == asset_name), None)
    if asset is None:
        raise AssetNotFound(
            f"No metadata found for '{source}'.\n"
            "The study may not exist, or metadata has not been generated yet.\n"
            "Use list_available_studies() to see all available studies."
        )

    with tempfile.TemporaryDirectory(prefix="clintrialdata-") as tmp:
        try:
            path = catalog.download_asset(asset_name, Path(tmp), repo, asset.tag)
        except _TRANSPORT_ERRORS as exc:
            raise DownloadFailed(f"Could not download '{asset_name}': {exc}") from exc
        return load_metadata(Path(path))


def dataset_info(
    source: str,
    repo: Optional[str] = None,
    *,
    catalog: Optional[RemoteCatalog] = None,
    cache_root: Optional[Path] = None,
    echo: bool = True,
) -> StudyMetadata:
    """Return (and by default print) the metadata of *source*.

    Local copies are preferred so the call works offline for downloaded and
    bundled studies; otherwise a ~2 KB metadata asset is fetched.

    Args:
        source: Study name, e.g. ``"cdisc_pilot"``.
        repo: ``owner/repo``; defaults to the configured repository.
        catalog: Release store collaborator; defaults to GitHub.
        cache_root: Cache directory; defaults to the configured cache root.
        echo: Print the rendered summary.
    """
    cfg = load_config() if (cache_root is None or (catalog is None or repo is None)) else None
    root = Path(cache_root) if cache_root is not None else cache_dir(cfg)

    local = local_metadata_path(source, root)
    if local is not None:
        meta = load_metadata(local)
    else:
        meta = fetch_remote_metadata(
            source,
            repo or cfg.repo,
            catalog if catalog is not None else GitHubReleaseCatalog.from_config(cfg),
        )

    if echo:
        click.echo(render_dataset_info(meta))
    return meta


__all__ = [
    "METADATA_FILE",
    "parse_metadata",
    "load_metadata",
    "local_metadata_path",
    "fetch_remote_metadata",
    "dataset_info",
]
