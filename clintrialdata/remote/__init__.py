"""Access to the remote release store (GitHub Releases)."""

from .catalog import (
    LATEST,
    GitHubReleaseCatalog,
    RemoteCatalog,
    assets_for_version,
    normalize_assets,
    normalize_releases,
)

__all__ = [
    "LATEST",
    "GitHubReleaseCatalog",
    "RemoteCatalog",
    "assets_for_version",
    "normalize_assets",
    "normalize_releases",
]
