"""High-level workflows: downloading, listing and describing studies."""

from .download import DownloadRun, DownloadState, StudyDownloader, download_study
from .listing import list_available_studies
from .metadata import dataset_info, load_metadata, parse_metadata

__all__ = [
    "DownloadRun",
    "DownloadState",
    "StudyDownloader",
    "download_study",
    "list_available_studies",
    "dataset_info",
    "load_metadata",
    "parse_metadata",
]
