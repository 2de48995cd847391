"""
Fetch one study from the release store into the local cache.

:class:`StudyDownloader` walks a fixed sequence of states and records the
walk in a :class:`DownloadRun`::

    CHECK_CACHE → RESOLVE_VERSION → LIST_ASSETS → VERIFY_ASSET_PRESENT
        → DOWNLOAD → EXTRACT → VERIFY_LAYOUT → LOCK → DONE

Any step may end the run in ``FAILED`` by raising a
:class:`~clintrialdata.utils.errors.StudyDownloadError` subclass.  Integrity
problems (missing release, missing asset, wrong archive layout) are never
retried, and there is no offline fallback.

Two details keep a cache directory consistent:

* The archive is extracted into a hidden ``.staging-*`` folder inside the
  cache root.  Only once ``<staging>/<source>/`` has been verified is any
  previous copy removed and the staged folder renamed into place, so a
  failed ``force=True`` download leaves the old copy intact and two
  processes never unzip into the same directory.
* When the caller asked for ``"latest"``, the download itself is requested
  with the literal ``"latest"`` tag rather than the resolved tag, which the
  release store resolves more reliably.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import zipfile
from contextlib import ExitStack
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from ..config import load_config
from ..locking.registry import LockRegistry, get_registry
from ..models import Asset
from ..remote.catalog import (
    LATEST,
    GitHubReleaseCatalog,
    RemoteCatalog,
    assets_for_version,
    normalize_assets,
)
from ..utils.archive import archive_roots, extract_zip, looks_like_zip
from ..utils.errors import (
    AssetListFailed,
    AssetNotFound,
    CatalogUnreachable,
    DownloadFailed,
    NoReleasesFound,
    StudyDownloadError,
    UnexpectedArchiveLayout,
    ZipMissingAfterDownload,
)
from ..utils.paths import cache_dir

log = logging.getLogger(__name__)

# requests' exceptions derive from OSError; ValueError covers bad JSON payloads.
_TRANSPORT_ERRORS = (OSError, ValueError)


class DownloadState(str, Enum):
    """States of a single study download."""

    CHECK_CACHE = "check_cache"
    RESOLVE_VERSION = "resolve_version"
    LIST_ASSETS = "list_assets"
    VERIFY_ASSET_PRESENT = "verify_asset_present"
    DOWNLOAD = "download"
    EXTRACT = "extract"
    VERIFY_LAYOUT = "verify_layout"
    LOCK = "lock"
    DONE = "done"
    FAILED = "failed"


@dataclass
class DownloadRun:
    """Mutable record of one :meth:`StudyDownloader.download` call."""

    source: str
    requested_version: str
    force: bool
    repo: str
    study_path: Path
    state: DownloadState = DownloadState.CHECK_CACHE
    history: list[DownloadState] = field(default_factory=list)
    version: Optional[str] = None
    used_latest: bool = False
    assets: list[Asset] = field(default_factory=list)
    zip_path: Optional[Path] = None
    staging: Optional[Path] = None
    error: Optional[BaseException] = None
    network_calls: int = 0

    @property
    def asset_name(self) -> str:
        return f"{self.source}.zip"

    @property
    def failed(self) -> bool:
        return self.state is DownloadState.FAILED


def _remove_tree(path: Path) -> None:
    """Delete *path* recursively, first restoring write access on read-only dirs."""
    if not path.exists():
        return
    for current, _dirs, _files in os.walk(path):
        os.chmod(current, 0o755)
    shutil.rmtree(path)


class StudyDownloader:
    """Download, unpack, verify and lock studies from a :class:`RemoteCatalog`.

    Args:
        catalog: Release store collaborator.
        registry: Lock registry that receives the new study.
        cache_root: Directory under which ``<source>/`` folders are created.
        repo: Default ``owner/repo`` used when :meth:`download` gets none.
    """

    def __init__(
        self,
        catalog: RemoteCatalog,
        registry: LockRegistry,
        cache_root: Path,
        repo: str = "Lovemore-Gakava/clinTrialData",
    ):
        self.catalog = catalog
        self.registry = registry
        self.cache_root = Path(cache_root)
        self.repo = repo
        self.last_run: Optional[DownloadRun] = None

    # ------------------------------------------------------------------ #
    # driver                                                             #
    # ------------------------------------------------------------------ #
    def download(
        self,
        source: str,
        version: str = LATEST,
        force: bool = False,
        repo: Optional[str] = None,
    ) -> Path:
        """Return the cached path of *source*, downloading it when needed.

        Args:
            source: Study name; the release asset is ``<source>.zip``.
            version: Release tag or ``"latest"``.
            force: Re-download and fully replace an existing cached copy.
            repo: ``owner/repo``; defaults to the downloader's repository.

        Raises:
            StudyDownloadError: A subclass naming the failing step.
        """
        run = DownloadRun(
            source=source,
            requested_version=version,
            force=force,
            repo=repo or self.repo,
            study_path=self.cache_root / source,
        )
        self.last_run = run

        steps: dict[DownloadState, Callable[[DownloadRun, ExitStack], DownloadState]] = {
            DownloadState.CHECK_CACHE: self._check_cache,
            DownloadState.RESOLVE_VERSION: self._resolve_version,
            DownloadState.LIST_ASSETS: self._list_assets,
            DownloadState.VERIFY_ASSET_PRESENT: self._verify_asset_present,
            DownloadState.DOWNLOAD: self._download,
            DownloadState.EXTRACT: self._extract,
            DownloadState.VERIFY_LAYOUT: self._verify_layout,
            DownloadState.LOCK: self._lock,
        }

        with ExitStack() as cleanup:
            try:
                while run.state is not DownloadState.DONE:
                    run.history.append(run.state)
                    log.debug("download %s: %s", source, run.state.value)
                    run.state = steps[run.state](run, cleanup)
            except Exception as exc:
                run.error = exc
                run.state = DownloadState.FAILED
                run.history.append(DownloadState.FAILED)
                log.debug("download %s failed: %s", source, exc)
                raise

        run.history.append(DownloadState.DONE)
        return run.study_path

    # ------------------------------------------------------------------ #
    # states                                                             #
    # ------------------------------------------------------------------ #
    def _check_cache(self, run: DownloadRun, cleanup: ExitStack) -> DownloadState:
        if run.study_path.is_dir() and not run.force:
            log.info(
                "Study '%s' is already cached at:\n  %s\nUse force=True to re-download.",
                run.source,
                run.study_path,
            )
            return DownloadState.DONE
        return DownloadState.RESOLVE_VERSION

    def _resolve_version(self, run: DownloadRun, cleanup: ExitStack) -> DownloadState:
        if run.requested_version != LATEST:
            run.version = run.requested_version
            return DownloadState.LIST_ASSETS

        run.used_latest = True
        run.network_calls += 1
        try:
            releases = self.catalog.list_releases(run.repo)
        except _TRANSPORT_ERRORS as exc:
            raise CatalogUnreachable(
                f"Could not fetch releases from '{run.repo}': {exc}"
            ) from exc
        if not releases:
            raise NoReleasesFound(f"No releases found in repo '{run.repo}'.")

        run.version = releases[0].tag
        log.debug("Resolved 'latest' to %s", run.version)
        return DownloadState.LIST_ASSETS

    def _list_assets(self, run: DownloadRun, cleanup: ExitStack) -> DownloadState:
        assert run.version is not None
        run.network_calls += 1
        try:
            raw = self.catalog.list_assets(run.repo, tag=run.version)
            run.assets = assets_for_version(normalize_assets(raw), run.version)
        except _TRANSPORT_ERRORS as exc:
            raise AssetListFailed(
                f"Could not list assets for release '{run.version}': {exc}"
            ) from exc
        return DownloadState.VERIFY_ASSET_PRESENT

    def _verify_asset_present(self, run: DownloadRun, cleanup: ExitStack) -> DownloadState:
        names = [a.file_name for a in run.assets]
        if run.asset_name not in names:
            raise AssetNotFound(
                f"Study '{run.source}' not found in release '{run.version}'.\n"
                f"Available assets: {', '.join(names) if names else '(none)'}\n"
                "Use list_available_studies() to see all options."
            )
        return DownloadState.DOWNLOAD

    def _download(self, run: DownloadRun, cleanup: ExitStack) -> DownloadState:
        tmp_dir = Path(cleanup.enter_context(tempfile.TemporaryDirectory(prefix="clintrialdata-")))
        tag = LATEST if run.used_latest else run.version
        assert tag is not None

        log.info("Downloading '%s' (%s) ...", run.source, run.version)
        run.network_calls += 1
        try:
            self.catalog.download_asset(run.asset_name, tmp_dir, run.repo, tag)
        except _TRANSPORT_ERRORS as exc:
            raise DownloadFailed(
                f"Could not download '{run.asset_name}' from release '{tag}': {exc}"
            ) from exc

        run.zip_path = tmp_dir / run.asset_name
        if not run.zip_path.is_file():
            raise ZipMissingAfterDownload(
                f"Download appeared to succeed but zip file not found at: {run.zip_path}"
            )
        return DownloadState.EXTRACT

    def _extract(self, run: DownloadRun, cleanup: ExitStack) -> DownloadState:
        assert run.zip_path is not None
        if not looks_like_zip(run.zip_path):
            raise UnexpectedArchiveLayout(
                f"Downloaded file {run.asset_name} is not a valid ZIP archive "
                f"({run.zip_path.stat().st_size} bytes). Retry the download."
            )
        self.cache_root.mkdir(parents=True, exist_ok=True)
        run.staging = Path(tempfile.mkdtemp(prefix=".staging-", dir=self.cache_root))
        cleanup.callback(_remove_tree, run.staging)

        log.info("Extracting to cache ...")
        try:
            extract_zip(run.zip_path, run.staging)
        except (zipfile.BadZipFile, ValueError) as exc:
            raise UnexpectedArchiveLayout(
                f"Could not extract {run.asset_name}: {exc}"
            ) from exc
        return DownloadState.VERIFY_LAYOUT

    def _verify_layout(self, run: DownloadRun, cleanup: ExitStack) -> DownloadState:
        assert run.staging is not None and run.zip_path is not None
        staged = run.staging / run.source
        if not staged.is_dir():
            found = ", ".join(sorted(archive_roots(run.zip_path))) or "(empty archive)"
            raise UnexpectedArchiveLayout(
                f"Extraction did not produce expected directory: {run.study_path}\n"
                f"The zip may have a different internal structure (top-level entries: {found})."
            )

        # Replace, never merge: drop the old copy only after the new one is verified.
        if run.study_path.exists():
            self.registry.unlock(run.study_path)
            _remove_tree(run.study_path)
        try:
            staged.rename(run.study_path)
        except OSError as exc:
            # another process moved its copy into place after the removal above
            raise StudyDownloadError(
                f"Could not move '{run.source}' into the cache at {run.study_path}: {exc}\n"
                "Another download of this study may have finished first; "
                "use download_study(force=True) to replace it."
            ) from exc
        return DownloadState.LOCK

    def _lock(self, run: DownloadRun, cleanup: ExitStack) -> DownloadState:
        self.registry.lock(
            run.study_path, reason=f"Downloaded from GitHub release {run.version}"
        )
        log.info(
            "Done. '%s' is ready. Connect with:\n  connect_clinical_data(\"%s\")",
            run.source,
            run.source,
        )
        return DownloadState.DONE


# --------------------------------------------------------------------------- #
# Public entry point                                                          #
# --------------------------------------------------------------------------- #
def download_study(
    source: str,
    version: str = LATEST,
    force: bool = False,
    repo: Optional[str] = None,
    *,
    catalog: Optional[RemoteCatalog] = None,
    registry: Optional[LockRegistry] = None,
    cache_root: Optional[Path] = None,
) -> Path:
    """Download *source* from a release into the local cache and return its path.

    Once downloaded, the study is available to
    :func:`clintrialdata.connect_clinical_data` without network access.
    Collaborators default to the configured GitHub catalog, the process-wide
    lock registry and :func:`~clintrialdata.utils.paths.cache_dir`.

    Examples::

        download_study("cdisc_pilot_extended")
        download_study("cdisc_pilot_extended", version="v1.0.0", force=True)
    """
    cfg = load_config() if (catalog is None or repo is None or cache_root is None) else None
    downloader = StudyDownloader(
        catalog=catalog if catalog is not None else GitHubReleaseCatalog.from_config(cfg),
        registry=registry if registry is not None else get_registry(),
        cache_root=cache_root if cache_root is not None else cache_dir(cfg),
        repo=repo or cfg.repo,
    )
    return downloader.download(source, version=version, force=force)


__all__ = ["DownloadState", "DownloadRun", "StudyDownloader", "download_study", "StudyDownloadError"]
