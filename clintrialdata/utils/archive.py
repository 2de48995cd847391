"""
Helpers for inspecting and unpacking study archives.

Study assets are plain ZIP files whose single top-level folder carries the
study name (``cdisc_pilot.zip`` → ``cdisc_pilot/adam/…``).  The helpers here
stay free of download or lock logic so the download pipeline and the tests
can share them.
"""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path, PurePosixPath
from typing import Set

log = logging.getLogger(__name__)


def looks_like_zip(path: Path) -> bool:
    """Return *True* when *path* is an existing file with a valid ZIP header."""
    return path.is_file() and zipfile.is_zipfile(path)


def archive_roots(archive: Path) -> Set[str]:
    """Collect the first-level names declared inside *archive*.

    Best-effort only: an unreadable archive yields an empty set and a
    warning in the log.
    """
    try:
        with zipfile.ZipFile(archive) as zf:
            names = zf.namelist()
    except (OSError, zipfile.BadZipFile) as exc:
        log.warning("Could not inspect %s to collect top-level entries: %s", archive, exc)
        return set()
    roots = {PurePosixPath(n).parts[0] for n in names if n and PurePosixPath(n).parts}
    # macOS Finder archives carry a resource-fork folder next to the real root
    roots.discard("__MACOSX")
    return roots


def extract_zip(archive: Path, dest: Path) -> list[Path]:
    """Extract *archive* into *dest* and return the extracted file paths.

    Members that would land outside *dest* (absolute names, ``..``
    components) are rejected with :class:`ValueError` before anything is
    written.
    """
    dest = dest.resolve()
    dest.mkdir(parents=True, exist_ok=True)

    with zipfile.ZipFile(archive) as zf:
        members = zf.infolist()
        for m in members:
            target = (dest / m.filename).resolve()
            if target != dest and not target.is_relative_to(dest):
                raise ValueError(f"Archive member escapes destination: {m.filename}")

        log.info("Unzipping ZIP: %s → %s", archive, dest)
        zf.extractall(dest)

    return [dest / m.filename for m in members if not m.is_dir()]


__all__ = ["looks_like_zip", "archive_roots", "extract_zip"]
