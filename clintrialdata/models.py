"""
Typed value objects that circulate between the cache, catalog and lock layers.

Every model inherits from :class:`pydantic.BaseModel`.  Records that only
describe remote or on-disk state are ``frozen=True`` so they can be hashed and
shared without accidental mutation; the listing snapshot stays mutable because
its ``cached`` column is recomputed in place on every load.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

LISTING_COLUMNS: tuple[str, ...] = ("source", "version", "size_mb", "cached")


class Release(BaseModel, frozen=True):
    """One release of the remote study repository.

    The GitHub API calls the version column ``tag_name`` while some listing
    helpers call it ``tag``; both spellings are accepted on input.
    """

    tag: str = Field(validation_alias=AliasChoices("tag", "tag_name"))
    name: Optional[str] = None
    draft: bool = False
    prerelease: bool = False


class Asset(BaseModel, frozen=True):
    """A single file attached to a release."""

    file_name: str = Field(validation_alias=AliasChoices("file_name", "name"))
    size: int = 0
    tag: str = Field(validation_alias=AliasChoices("tag", "tag_name"))


class StudyListingEntry(BaseModel):
    """One row of the remote study listing."""

    source: str
    version: str
    size_mb: float
    cached: bool = False


class StudyListingSnapshot(BaseModel):
    """Ordered study listing plus the time it was saved.

    ``saved_at`` is filled from the snapshot file's mtime on load; it is not
    part of the serialised payload.
    """

    entries: List[StudyListingEntry] = Field(default_factory=list)
    saved_at: Optional[datetime] = Field(default=None, exclude=True)

    def to_frame(self) -> pd.DataFrame:
        """Return the entries as a DataFrame with the listing columns."""
        if not self.entries:
            return empty_listing_frame()
        frame = pd.DataFrame([e.model_dump() for e in self.entries])
        return frame.loc[:, list(LISTING_COLUMNS)]


class StudyMetadata(BaseModel):
    """Contents of a study's ``metadata.json``.

    Only ``source`` is guaranteed; every other field is independently
    optional.  Unknown keys are preserved.
    """

    model_config = ConfigDict(extra="allow")

    source: str
    description: Optional[str] = None
    domains: Optional[Dict[str, List[str]]] = None
    n_subjects: Optional[int] = None
    version: Optional[str] = None
    license: Optional[str] = None
    source_url: Optional[str] = None


class LockStatus(BaseModel, frozen=True):
    """Result of :meth:`clintrialdata.locking.LockRegistry.status`."""

    locked: bool
    path: Path


def empty_listing_frame() -> pd.DataFrame:
    """Return an empty listing DataFrame with correctly typed columns."""
    return pd.DataFrame(
        {
            "source": pd.Series(dtype="object"),
            "version": pd.Series(dtype="object"),
            "size_mb": pd.Series(dtype="float64"),
            "cached": pd.Series(dtype="bool"),
        }
    )


__all__ = [
    "LISTING_COLUMNS",
    "Release",
    "Asset",
    "StudyListingEntry",
    "StudyListingSnapshot",
    "StudyMetadata",
    "LockStatus",
    "empty_listing_frame",
]
