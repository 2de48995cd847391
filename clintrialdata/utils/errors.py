"""Exceptions and advisory warnings shared across *clintrialdata*.

Fatal conditions derive from :class:`ClinTrialDataError` so the CLI can turn
any of them into a clean ``click.ClickException``.  Each class carries a
``kind`` label naming the failure category it represents.

Lock bookkeeping never raises; it emits :class:`LockWarning` and returns a
boolean instead.  The offline study listing emits :class:`StaleListingWarning`
when it serves a snapshot.
"""

from __future__ import annotations


class ClinTrialDataError(RuntimeError):
    """Base class for every unrecoverable *clintrialdata* error."""

    kind: str = "ClinTrialDataError"


# --------------------------------------------------------------------------- #
# Download / remote catalog failures                                          #
# --------------------------------------------------------------------------- #
class StudyDownloadError(ClinTrialDataError):
    """Raised when fetching a study from the release store fails."""

    kind = "StudyDownloadError"


class CatalogUnreachable(StudyDownloadError):
    """The release listing could not be fetched."""

    kind = "CatalogUnreachable"


class AssetListFailed(StudyDownloadError):
    """The asset listing for a release could not be fetched."""

    kind = "AssetListFailed"


class NoReleasesFound(StudyDownloadError):
    """The repository has no releases to resolve ``"latest"`` against."""

    kind = "NoReleasesFound"


class AssetNotFound(StudyDownloadError):
    """The expected asset is absent from the resolved release."""

    kind = "AssetNotFound"


class DownloadFailed(StudyDownloadError):
    """The transport failed while transferring an asset."""

    kind = "DownloadFailed"


class ZipMissingAfterDownload(StudyDownloadError):
    """The download primitive returned but the archive is not on disk."""

    kind = "ZipMissingAfterDownload"


class UnexpectedArchiveLayout(StudyDownloadError):
    """The archive did not extract to ``<cache>/<source>/``."""

    kind = "UnexpectedArchiveLayout"


# --------------------------------------------------------------------------- #
# Access-layer failures                                                       #
# --------------------------------------------------------------------------- #
class LockedFolderViolation(ClinTrialDataError):
    """A write or remove was attempted on a locked study folder."""

    kind = "LockedFolderViolation"


class MalformedMetadataJSON(ClinTrialDataError):
    """A ``metadata.json`` document could not be parsed or validated."""

    kind = "MalformedMetadataJSON"


class SourceNotFound(ClinTrialDataError):
    """No cached or bundled study exists under the requested name."""

    kind = "SourceNotFound"


# --------------------------------------------------------------------------- #
# Advisory warnings                                                           #
# --------------------------------------------------------------------------- #
class LockWarning(UserWarning):
    """Non-fatal lock bookkeeping notice (missing folder, blocked write)."""


class StaleListingWarning(UserWarning):
    """The study listing was served from the offline snapshot."""


__all__ = [
    "ClinTrialDataError",
    "StudyDownloadError",
    "CatalogUnreachable",
    "AssetListFailed",
    "NoReleasesFound",
    "AssetNotFound",
    "DownloadFailed",
    "ZipMissingAfterDownload",
    "UnexpectedArchiveLayout",
    "LockedFolderViolation",
    "MalformedMetadataJSON",
    "SourceNotFound",
    "LockWarning",
    "StaleListingWarning",
]
