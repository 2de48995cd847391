"""
Filesystem connector for one domain folder (``adam/``, ``sdtm/``, …).

Datasets are stored one file per table, either Parquet (read and written with
pandas + pyarrow) or CSV.  Names may be given with or without extension; when
both formats exist for the same stem, Parquet wins.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import pandas as pd

log = logging.getLogger(__name__)

DATASET_SUFFIXES: tuple[str, ...] = (".parquet", ".csv")


def dataset_files(folder: Path) -> list[Path]:
    """Return the dataset files directly inside *folder*, sorted by name."""
    if not folder.is_dir():
        return []
    return sorted(
        p for p in folder.iterdir() if p.is_file() and p.suffix.lower() in DATASET_SUFFIXES
    )


class FilesystemConnector:
    """Read/write access to the datasets in a single directory.

    Args:
        path: Domain folder holding ``*.parquet`` / ``*.csv`` files.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(path={str(self.path)!r})"

    # ------------------------------------------------------------------ #
    # helpers                                                            #
    # ------------------------------------------------------------------ #
    def _resolve(self, name: str) -> Optional[Path]:
        candidate = self.path / name
        if candidate.suffix.lower() in DATASET_SUFFIXES:
            return candidate if candidate.is_file() else None
        for suffix in DATASET_SUFFIXES:
            path = self.path / f"{name}{suffix}"
            if path.is_file():
                return path
        return None

    # ------------------------------------------------------------------ #
    # API                                                                #
    # ------------------------------------------------------------------ #
    def list_content(self) -> list[str]:
        """Return the dataset file names in the folder."""
        return [p.name for p in dataset_files(self.path)]

    def read(self, name: str) -> pd.DataFrame:
        """Load dataset *name* into a DataFrame.

        Raises:
            FileNotFoundError: No matching dataset file exists.
        """
        path = self._resolve(name)
        if path is None:
            raise FileNotFoundError(f"Dataset '{name}' not found in {self.path}")
        log.debug("Reading %s", path)
        if path.suffix.lower() == ".parquet":
            return pd.read_parquet(path)
        return pd.read_csv(path)

    def write(self, data: pd.DataFrame, name: str, overwrite: bool = False) -> Path:
        """Write *data* as dataset *name* and return the file path.

        A bare name is stored as Parquet.

        Raises:
            FileExistsError: The file exists and *overwrite* is false.
        """
        target = self.path / name
        if target.suffix.lower() not in DATASET_SUFFIXES:
            target = target.with_name(f"{name}.parquet")
        if target.exists() and not overwrite:
            raise FileExistsError(f"{target} already exists; pass overwrite=True to replace it")

        self.path.mkdir(parents=True, exist_ok=True)
        log.debug("Writing %s", target)
        if target.suffix.lower() == ".parquet":
            data.to_parquet(target, index=False)
        else:
            data.to_csv(target, index=False)
        return target

    def remove(self, name: str) -> Path:
        """Delete dataset *name* and return the removed path.

        Raises:
            FileNotFoundError: No matching dataset file exists.
        """
        path = self._resolve(name)
        if path is None:
            raise FileNotFoundError(f"Dataset '{name}' not found in {self.path}")
        path.unlink()
        log.debug("Removed %s", path)
        return path


__all__ = ["DATASET_SUFFIXES", "FilesystemConnector", "dataset_files"]
