"""
clintrialdata package initialisation.

Clinical-trial example datasets (CDISC ADaM/SDTM) ready to read, plus a
download cache for larger studies published as GitHub release assets.

Typical use::

    from clintrialdata import connect_clinical_data, download_study

    db = connect_clinical_data("cdisc_pilot")
    adsl = db.adam.read("adsl")

    download_study("cdisc_pilot_extended")

Every bundled and cached study is locked for the session as soon as the
lock registry is first used; writes through the returned connectors then
raise :class:`LockedFolderViolation` until :func:`unlock_study` is called.

Module attributes
-----------------
__version__ : str
    Semantic version derived from the installed wheel.
"""

from importlib.metadata import PackageNotFoundError, version

# --------------------------------------------------------------------------- #
# Version resolution
# --------------------------------------------------------------------------- #
try:
    __version__: str = version("clintrialdata")
except PackageNotFoundError:
    # Source tree without installed metadata.
    __version__ = "0.0.0"

# --------------------------------------------------------------------------- #
# Public re-exports
# --------------------------------------------------------------------------- #
from .access import (  # noqa: E402
    connect_clinical_data,
    list_data_sources,
)
from .config import load_config  # noqa: E402
from .locking import (  # noqa: E402
    can_write_study,
    get_lock_status,
    is_study_locked,
    lock_all_studies,
    lock_study,
    unlock_study,
)
from .pipelines import dataset_info, download_study, list_available_studies  # noqa: E402
from .utils.errors import (  # noqa: E402
    ClinTrialDataError,
    LockedFolderViolation,
    LockWarning,
    SourceNotFound,
    StaleListingWarning,
    StudyDownloadError,
)
from .utils.paths import cache_dir  # noqa: E402

__all__: list[str] = [
    "__version__",
    "load_config",
    "cache_dir",
    "connect_clinical_data",
    "list_data_sources",
    "download_study",
    "list_available_studies",
    "dataset_info",
    "is_study_locked",
    "lock_study",
    "unlock_study",
    "lock_all_studies",
    "get_lock_status",
    "can_write_study",
    "ClinTrialDataError",
    "StudyDownloadError",
    "LockedFolderViolation",
    "SourceNotFound",
    "LockWarning",
    "StaleListingWarning",
]
