"""Study download state machine."""

from __future__ import annotations

from pathlib import Path

import pytest

from clintrialdata.locking import LockRegistry, PermissionHardener
from clintrialdata.pipelines import DownloadState, StudyDownloader, download_study
from clintrialdata.pipelines import download as download_mod
from clintrialdata.utils.errors import (
    AssetListFailed,
    AssetNotFound,
    CatalogUnreachable,
    DownloadFailed,
    NoReleasesFound,
    StudyDownloadError,
    UnexpectedArchiveLayout,
    ZipMissingAfterDownload,
)

REPO = "owner/studies"
RELEASES = [{"tag_name": "v1.1.0"}, {"tag_name": "v1.0.0"}]


def _catalog(catalog_factory, study_zip, **kwargs):
    defaults = dict(
        releases=RELEASES,
        assets=[
            {"name": "pilot_ext.zip", "size": 2048, "tag_name": "v1.1.0"},
            {"name": "pilot_ext_metadata.json", "size": 200, "tag_name": "v1.1.0"},
            {"name": "old_study.zip", "size": 2048, "tag": "v1.0.0"},
        ],
        payloads={"pilot_ext.zip": study_zip("pilot_ext")},
    )
    defaults.update(kwargs)
    return catalog_factory(**defaults)


def _downloader(catalog, cache_root: Path) -> StudyDownloader:
    registry = LockRegistry(hardener=PermissionHardener(cache_root))
    return StudyDownloader(catalog, registry, cache_root, repo=REPO)


def _leftovers(cache_root: Path) -> list[str]:
    if not cache_root.exists():
        return []
    return sorted(p.name for p in cache_root.iterdir())


def test_latest_download_extracts_and_locks(catalog_factory, study_zip, cache_root) -> None:
    """Verify a fresh download lands in the cache and ends locked."""
    catalog = _catalog(catalog_factory, study_zip)
    dl = _downloader(catalog, cache_root)

    path = dl.download("pilot_ext")

    assert path == cache_root / "pilot_ext"
    assert (path / "adam" / "adsl.csv").is_file()
    assert dl.registry.is_locked(path)
    assert _leftovers(cache_root) == ["pilot_ext"]

    run = dl.last_run
    assert run.version == "v1.1.0"
    assert run.history == [
        DownloadState.CHECK_CACHE,
        DownloadState.RESOLVE_VERSION,
        DownloadState.LIST_ASSETS,
        DownloadState.VERIFY_ASSET_PRESENT,
        DownloadState.DOWNLOAD,
        DownloadState.EXTRACT,
        DownloadState.VERIFY_LAYOUT,
        DownloadState.LOCK,
        DownloadState.DONE,
    ]


def test_latest_download_requests_literal_latest_tag(catalog_factory, study_zip, cache_root) -> None:
    """Verify the transfer asks for 'latest' while assets use the resolved tag."""
    catalog = _catalog(catalog_factory, study_zip)
    _downloader(catalog, cache_root).download("pilot_ext")

    assert catalog.calls_to("list_assets") == [("list_assets", REPO, "v1.1.0")]
    assert catalog.calls_to("download_asset") == [("download_asset", "pilot_ext.zip", REPO, "latest")]


def test_explicit_version_skips_release_lookup(catalog_factory, study_zip, cache_root) -> None:
    """Verify a pinned version neither lists releases nor uses 'latest'."""
    catalog = _catalog(
        catalog_factory,
        study_zip,
        payloads={"old_study.zip": study_zip("old_study")},
    )
    _downloader(catalog, cache_root).download("old_study", version="v1.0.0")

    assert catalog.calls_to("list_releases") == []
    assert catalog.calls_to("download_asset") == [("download_asset", "old_study.zip", REPO, "v1.0.0")]


def test_cached_study_makes_no_network_calls(catalog_factory, study_zip, cache_root) -> None:
    """Verify an existing study short-circuits without touching the catalog."""
    (cache_root / "pilot_ext").mkdir(parents=True)
    catalog = _catalog(catalog_factory, study_zip, fail={"list_releases", "list_assets", "download_asset"})
    dl = _downloader(catalog, cache_root)

    assert dl.download("pilot_ext") == cache_root / "pilot_ext"
    assert catalog.calls == []
    assert dl.last_run.network_calls == 0
    assert dl.last_run.history == [DownloadState.CHECK_CACHE, DownloadState.DONE]


def test_force_replaces_existing_copy(catalog_factory, study_zip, cache_root) -> None:
    """Verify force re-download removes stray files and re-locks the study."""
    catalog = _catalog(catalog_factory, study_zip)
    dl = _downloader(catalog, cache_root)
    path = dl.download("pilot_ext")

    dl.registry.unlock(path)
    (path / "stray_marker.txt").write_text("left behind")
    dl.registry.lock(path)

    dl.download("pilot_ext", force=True)

    assert not (path / "stray_marker.txt").exists()
    assert (path / "adam" / "adsl.csv").is_file()
    assert dl.registry.is_locked(path)
    assert _leftovers(cache_root) == ["pilot_ext"]


def test_failed_force_keeps_previous_copy(catalog_factory, study_zip, cache_root) -> None:
    """Verify a force download that fails validation leaves the old study intact."""
    good = _catalog(catalog_factory, study_zip)
    dl = _downloader(good, cache_root)
    path = dl.download("pilot_ext")

    dl.catalog = _catalog(
        catalog_factory, study_zip, payloads={"pilot_ext.zip": study_zip("pilot_ext", root="wrong")}
    )
    with pytest.raises(UnexpectedArchiveLayout):
        dl.download("pilot_ext", force=True)

    assert (path / "adam" / "adsl.csv").is_file()
    assert _leftovers(cache_root) == ["pilot_ext"]


def test_rename_race_raises_download_error(catalog_factory, study_zip, cache_root, monkeypatch) -> None:
    """Verify a copy moved into place by a concurrent run is reported, not a raw OSError."""
    dl = _downloader(_catalog(catalog_factory, study_zip), cache_root)
    path = dl.download("pilot_ext")
    remove_tree = download_mod._remove_tree

    def racing_remove(target: Path) -> None:
        remove_tree(target)
        if target == path:
            (path / "adam").mkdir(parents=True)
            (path / "adam" / "adsl.csv").write_text("USUBJID\n99\n")

    monkeypatch.setattr(download_mod, "_remove_tree", racing_remove)
    with pytest.raises(StudyDownloadError, match="Could not move 'pilot_ext'"):
        dl.download("pilot_ext", force=True)

    assert (path / "adam" / "adsl.csv").read_text() == "USUBJID\n99\n"
    assert _leftovers(cache_root) == ["pilot_ext"]
    assert dl.last_run.state is DownloadState.FAILED


def test_asset_not_in_release(catalog_factory, study_zip, cache_root) -> None:
    """Verify a missing asset names the study and the release."""
    catalog = _catalog(catalog_factory, study_zip)
    with pytest.raises(AssetNotFound, match="not found in release") as exc:
        _downloader(catalog, cache_root).download("missing_study")

    assert "missing_study" in str(exc.value)
    assert "pilot_ext.zip" in str(exc.value)
    assert catalog.calls_to("download_asset") == []
    assert _leftovers(cache_root) == []


def test_unexpected_layout(catalog_factory, study_zip, cache_root) -> None:
    """Verify an archive without <source>/ at its root is rejected."""
    catalog = _catalog(
        catalog_factory,
        study_zip,
        payloads={"pilot_ext.zip": study_zip("pilot_ext", root="pilot_ext_v2")},
    )
    dl = _downloader(catalog, cache_root)
    with pytest.raises(UnexpectedArchiveLayout, match="Extraction did not produce expected directory") as exc:
        dl.download("pilot_ext")

    assert "pilot_ext_v2" in str(exc.value)
    assert _leftovers(cache_root) == []
    assert dl.last_run.state is DownloadState.FAILED
    assert dl.last_run.history[-2:] == [DownloadState.VERIFY_LAYOUT, DownloadState.FAILED]


def test_corrupt_archive(catalog_factory, study_zip, cache_root) -> None:
    """Verify a payload that is not a zip is reported as a layout problem."""
    catalog = _catalog(catalog_factory, study_zip, payloads={"pilot_ext.zip": b"not a zip"})
    with pytest.raises(UnexpectedArchiveLayout, match="not a valid ZIP archive"):
        _downloader(catalog, cache_root).download("pilot_ext")
    assert _leftovers(cache_root) == []


def test_no_releases(catalog_factory, study_zip, cache_root) -> None:
    """Verify 'latest' cannot resolve against an empty repository."""
    catalog = _catalog(catalog_factory, study_zip, releases=[])
    with pytest.raises(NoReleasesFound, match="No releases found"):
        _downloader(catalog, cache_root).download("pilot_ext")


def test_releases_unreachable_never_falls_back(catalog_factory, study_zip, cache_root) -> None:
    """Verify release lookup failures raise even when a listing snapshot exists."""
    cache_root.mkdir()
    (cache_root / ".studies_cache.json").write_text(
        '{"entries": [{"source": "pilot_ext", "version": "v1.1.0", "size_mb": 0.1, "cached": false}]}'
    )
    catalog = _catalog(catalog_factory, study_zip, fail={"list_releases"})
    with pytest.raises(CatalogUnreachable, match=REPO):
        _downloader(catalog, cache_root).download("pilot_ext")


def test_asset_listing_failure(catalog_factory, study_zip, cache_root) -> None:
    """Verify asset listing transport errors surface as AssetListFailed."""
    catalog = _catalog(catalog_factory, study_zip, fail={"list_assets"})
    with pytest.raises(AssetListFailed):
        _downloader(catalog, cache_root).download("pilot_ext")


def test_transfer_failure(catalog_factory, study_zip, cache_root) -> None:
    """Verify transport errors during the transfer surface as DownloadFailed."""
    catalog = _catalog(catalog_factory, study_zip, fail={"download_asset"})
    with pytest.raises(DownloadFailed):
        _downloader(catalog, cache_root).download("pilot_ext")
    assert _leftovers(cache_root) == []


def test_zip_missing_after_download(catalog_factory, study_zip, cache_root) -> None:
    """Verify a 'successful' transfer that wrote nothing is detected."""
    catalog = _catalog(catalog_factory, study_zip, silent={"pilot_ext.zip"})
    with pytest.raises(ZipMissingAfterDownload, match="zip file not found"):
        _downloader(catalog, cache_root).download("pilot_ext")


def test_all_failures_share_base_class(catalog_factory, study_zip, cache_root) -> None:
    """Verify callers can catch every download failure with one class."""
    catalog = _catalog(catalog_factory, study_zip, releases=[])
    with pytest.raises(StudyDownloadError):
        _downloader(catalog, cache_root).download("pilot_ext")


def test_download_study_uses_injected_collaborators(catalog_factory, study_zip, cache_root) -> None:
    """Verify the public entry point wires catalog, registry and cache root."""
    catalog = _catalog(catalog_factory, study_zip)
    registry = LockRegistry()

    path = download_study(
        "pilot_ext", repo=REPO, catalog=catalog, registry=registry, cache_root=cache_root
    )

    assert path == cache_root / "pilot_ext"
    assert registry.is_locked(path)
