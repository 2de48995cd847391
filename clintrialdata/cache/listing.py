"""
Offline fallback for the remote study listing.

Every successful :func:`~clintrialdata.pipelines.listing.list_available_studies`
call overwrites ``<cache root>/.studies_cache.json`` wholesale.  When the
release store is unreachable, the listing is served from that file instead.

The ``cached`` column is never trusted from disk: it is recomputed against the
live cache directory on every load, because any study downloaded after the
snapshot was written would otherwise be reported as missing.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import warnings
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from ..models import StudyListingSnapshot
from ..utils.errors import StaleListingWarning

log = logging.getLogger(__name__)

SNAPSHOT_NAME = ".studies_cache.json"


class StaleListingCache:
    """Persist and reload the last successful study listing.

    Args:
        cache_root: Directory that holds the snapshot file and the cached
            study folders whose presence drives the ``cached`` column.
    """

    def __init__(self, cache_root: str | os.PathLike):
        self.cache_root = Path(cache_root)

    @property
    def path(self) -> Path:
        """Location of the snapshot file."""
        return self.cache_root / SNAPSHOT_NAME

    # ------------------------------------------------------------------ #
    # write                                                              #
    # ------------------------------------------------------------------ #
    def save(self, snapshot: StudyListingSnapshot) -> bool:
        """Overwrite the snapshot file with *snapshot*.

        The payload goes to a temporary file in the same directory which is
        then renamed over the old snapshot, so readers never see a partial
        document.  Failures are logged and swallowed.

        Returns:
            ``True`` when the snapshot was written.
        """
        tmp_name: Optional[str] = None
        try:
            self.cache_root.mkdir(parents=True, exist_ok=True)
            payload = snapshot.model_dump_json(indent=2)
            fd, tmp_name = tempfile.mkstemp(
                prefix=".studies_cache.", suffix=".tmp", dir=self.cache_root
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp_name, self.path)
            tmp_name = None
            log.debug("Saved study listing snapshot (%d entries) to %s", len(snapshot.entries), self.path)
            return True
        except (OSError, ValueError) as exc:
            log.debug("Could not save study listing snapshot to %s: %s", self.path, exc)
            return False
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)

    # ------------------------------------------------------------------ #
    # read                                                               #
    # ------------------------------------------------------------------ #
    def load(self) -> Optional[StudyListingSnapshot]:
        """Return the stored snapshot as written, or *None* when unusable."""
        path = self.path
        if not path.is_file():
            return None
        try:
            snapshot = StudyListingSnapshot.model_validate(
                json.loads(path.read_text(encoding="utf-8"))
            )
            mtime = path.stat().st_mtime
        except (OSError, ValueError, ValidationError) as exc:
            log.debug("Ignoring unreadable study listing snapshot %s: %s", path, exc)
            return None
        if not snapshot.entries:
            return None
        snapshot.saved_at = datetime.fromtimestamp(mtime, tz=timezone.utc)
        return snapshot

    def refresh_cached(self, snapshot: StudyListingSnapshot) -> StudyListingSnapshot:
        """Recompute every entry's ``cached`` flag from the cache directory."""
        for entry in snapshot.entries:
            entry.cached = (self.cache_root / entry.source).is_dir()
        return snapshot

    def load_with_refresh(self, reason: str) -> Optional[StudyListingSnapshot]:
        """Return the snapshot with live ``cached`` flags, or *None*.

        Emits a :class:`StaleListingWarning` that embeds *reason* whenever a
        snapshot is returned.
        """
        snapshot = self.load()
        if snapshot is None:
            return None

        self.refresh_cached(snapshot)
        saved = f" (saved {snapshot.saved_at:%Y-%m-%d %H:%M} UTC)" if snapshot.saved_at else ""
        warnings.warn(
            f"{reason}\nReturning cached study list{saved} (may be out of date).",
            StaleListingWarning,
            stacklevel=2,
        )
        return snapshot


__all__ = ["StaleListingCache", "SNAPSHOT_NAME"]
